"""Defines common Value Objects used across the validkit domain.

These objects describe an outbound call (request descriptor), the response
a transport hands back, and the per-client resilience configuration.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, NewType, Optional

# === Core Value Objects ===

ClientIdentity = NewType("ClientIdentity", str)  # API key or sentinel the rate-limit state is keyed by

ANONYMOUS_CLIENT = ClientIdentity("anonymous")

# Defaults used when the caller gives no explicit resilience settings
DEFAULT_RETRY_ATTEMPTS = 2
DEFAULT_RETRY_DELAY_MS = 1000


@dataclass(frozen=True)
class ResilienceConfig:
    """Per-client retry and fallback settings.

    Attributes:
        fallback_enabled: Return a locally synthesized payload when the remote call fails.
        retry_attempts: Additional attempts beyond the first one. Negative values clamp to 0.
        retry_delay: Base backoff unit in milliseconds. Negative values clamp to 0.
    """
    fallback_enabled: bool = False
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_delay: int = DEFAULT_RETRY_DELAY_MS

    def __post_init__(self) -> None:
        # frozen dataclass, so normalise through object.__setattr__
        object.__setattr__(self, "fallback_enabled", bool(self.fallback_enabled))
        object.__setattr__(self, "retry_attempts", max(0, int(self.retry_attempts)))
        object.__setattr__(self, "retry_delay", max(0, int(self.retry_delay)))

    @property
    def total_attempts(self) -> int:
        """The first attempt plus every configured retry."""
        return 1 + self.retry_attempts


@dataclass
class RequestDescriptor:
    """An already-built outbound request. Opaque to the resilience layer."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    params: Optional[Dict[str, Any]] = None
    json: Optional[Any] = None


@dataclass
class TransportResponse:
    """What a transport returns for any HTTP response, whatever its status."""
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    data: Any = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300
