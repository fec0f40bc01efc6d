"""Domain Events related to remote calls and resilience.

Emitted by the resilience executor when calls are deferred, retried,
rate limited, answered from fallback, succeed or fail.
"""

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when a transport call is about to be made."""
    client_id: str
    endpoint: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when a call returns a 2xx response."""
    client_id: str
    endpoint: str
    status_code: int
    latency_ms: float
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a call fails definitively (retries exhausted or non-retryable)."""
    client_id: str
    endpoint: str
    error_type: str
    error_message: str
    status_code: Optional[int] = None
    attempts: int = 1
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallDeferred(DomainEvent):
    """Event triggered when a call waits up front because the client is rate limited."""
    client_id: str
    endpoint: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed call."""
    client_id: str
    endpoint: str
    attempt_number: int
    delay_seconds: float
    error_type: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class RateLimitObserved(DomainEvent):
    """Event triggered when the service answers 429."""
    client_id: str
    endpoint: str
    retry_after: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class FallbackUsed(DomainEvent):
    """Event triggered when a synthesized payload replaces the real response."""
    client_id: str
    endpoint: str
    reason: str
    attempts: int
    timestamp: float = field(default_factory=time.time)
