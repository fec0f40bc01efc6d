"""validkit: async client for a remote data-validation service.

The interesting part lives in ``validkit.infrastructure.resilience``: retries
with exponential backoff, server-announced rate limits and offline fallbacks.
"""

from validkit.core.client import ValidationClient
from validkit.domain.models.common import RequestDescriptor, ResilienceConfig, TransportResponse
from validkit.domain.models.errors import (
    ClientError,
    RateLimited,
    RemoteCallError,
    ServerError,
    TransportError,
    UnknownOperationError,
    ValidationError,
    ValidKitError,
)
from validkit.domain.models.operations import Operation
from validkit.infrastructure.resilience.api_retry import ResilienceExecutor
from validkit.infrastructure.resilience.fallback import FallbackSynthesizer
from validkit.infrastructure.resilience.rate_limiter import RateLimitRegistry, get_default_registry

__version__ = "0.1.0"

__all__ = [
    "ValidationClient",
    "RequestDescriptor",
    "ResilienceConfig",
    "TransportResponse",
    "ClientError",
    "RateLimited",
    "RemoteCallError",
    "ServerError",
    "TransportError",
    "UnknownOperationError",
    "ValidationError",
    "ValidKitError",
    "Operation",
    "ResilienceExecutor",
    "FallbackSynthesizer",
    "RateLimitRegistry",
    "get_default_registry",
]
