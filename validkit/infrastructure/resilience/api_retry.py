"""Service for executing remote calls with rate-limit awareness, retries and fallback.

Every call goes through ``ResilienceExecutor.execute``: it waits up front when
the client is known to be rate limited, retries transport failures and 5xx
responses with exponential backoff, never retries 429 or other 4xx, records
rate-limit headers from every response, and on failure either returns the
caller's fallback payload or raises the classified error.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from validkit.domain.events.api_events import (
    ApiCallDeferred,
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    DomainEvent,
    FallbackUsed,
    RateLimitObserved,
    RetryScheduled,
)
from validkit.domain.interfaces.transport import TransportCall
from validkit.domain.models.common import (
    ANONYMOUS_CLIENT,
    RequestDescriptor,
    ResilienceConfig,
    TransportResponse,
)
from validkit.domain.models.errors import (
    ClientError,
    RateLimited,
    RemoteCallError,
    ServerError,
    TransportError,
)
from validkit.infrastructure.resilience.backoff import backoff_delay
from validkit.infrastructure.resilience.rate_limiter import RateLimitRegistry, get_default_registry

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]
EventHandler = Callable[[DomainEvent], None]


def classify_response(response: TransportResponse) -> Optional[RemoteCallError]:
    """Maps a non-success response to its error, or None for 2xx."""
    if response.is_success:
        return None
    status = response.status_code
    message = _error_message(response)
    if status == 429:
        return RateLimited(headers=response.headers, body=response.data)
    if status >= 500:
        return ServerError(message, status_code=status, headers=response.headers, body=response.data)
    return ClientError(message, status_code=status, headers=response.headers, body=response.data)


def classify_exception(exc: Exception) -> TransportError:
    """Maps an exception raised by a transport to a TransportError.

    No response means a network failure, except when the client itself gave up
    (timeouts), which is not retried. This is a heuristic: transports differ in
    what they expose for timeouts.
    """
    if isinstance(exc, TransportError):
        return exc
    # asyncio.TimeoutError is only an alias of TimeoutError from 3.11 on
    aborted = isinstance(exc, (TimeoutError, asyncio.TimeoutError))
    error = TransportError(f"{type(exc).__name__}: {exc}", aborted=aborted)
    error.__cause__ = exc
    return error


def _error_message(response: TransportResponse) -> str:
    data = response.data
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if message:
            return str(message)
    return f"Request failed with status code {response.status_code}"


class ResilienceExecutor:
    """Handles remote call execution with rate limiting, retries, and fallback."""

    def __init__(
        self,
        config: Optional[ResilienceConfig] = None,
        client_id: str = ANONYMOUS_CLIENT,
        registry: Optional[RateLimitRegistry] = None,
        sleep: Sleep = asyncio.sleep,
        event_handler: Optional[EventHandler] = None,
    ):
        """Initializes the ResilienceExecutor.

        Args:
            config: Retry and fallback settings. Defaults to ``ResilienceConfig()``.
            client_id: Identity the rate-limit state is tracked under.
            registry: Rate-limit registry. Defaults to the process-wide one.
            sleep: Coroutine function taking seconds; replaced by a virtual clock in tests.
            event_handler: Optional callable receiving every domain event.
        """
        self._config = config or ResilienceConfig()
        self._client_id = client_id
        self.registry = registry if registry is not None else get_default_registry()
        self._sleep = sleep
        self._event_handler = event_handler

        logger.info(
            f"ResilienceExecutor initialized: client='{self._client_id}', "
            f"retry_attempts={self._config.retry_attempts}, "
            f"retry_delay={self._config.retry_delay}ms, "
            f"fallback_enabled={self._config.fallback_enabled}"
        )

    @property
    def config(self) -> ResilienceConfig:
        return self._config

    @property
    def client_id(self) -> str:
        return self._client_id

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_handler is not None:
            self._event_handler(event)

    async def execute(
        self,
        transport_call: TransportCall,
        request: RequestDescriptor,
        fallback: Optional[T] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Any:
        """Executes a request with preflight rate-limit wait, retries and fallback.

        Args:
            transport_call: Async callable sending the request.
            request: The already-built request.
            fallback: Payload returned as-is if the call fails and fallback is enabled.
            timeout: Optional deadline in seconds for the whole operation,
                waits included. Exceeding it raises ``asyncio.TimeoutError``.

        Returns:
            The response payload, or ``fallback`` in degraded mode.

        Raises:
            RateLimited: The service answered 429.
            ClientError: Non-retryable 4xx.
            ServerError: 5xx on every attempt.
            TransportError: No response on every attempt, or a client-side abort.
        """
        if timeout is None:
            return await self._execute(transport_call, request, fallback)
        return await asyncio.wait_for(self._execute(transport_call, request, fallback), timeout)

    async def _execute(
        self,
        transport_call: TransportCall,
        request: RequestDescriptor,
        fallback: Optional[T],
    ) -> Any:
        endpoint = f"{request.method.upper()} {request.url}"
        total_attempts = self._config.total_attempts

        self.registry.purge_expired()
        await self._preflight_wait(endpoint)

        last_error: Optional[RemoteCallError] = None
        attempt = 0
        for attempt in range(1, total_attempts + 1):
            self._dispatch(ApiCallInitiated(client_id=self._client_id, endpoint=endpoint, attempt_number=attempt))
            start_time = time.perf_counter()
            try:
                response = await transport_call(request)
            except Exception as e:
                last_error = classify_exception(e)
            else:
                self.registry.update(self._client_id, response.headers)
                last_error = classify_response(response)
                if last_error is None:
                    latency_ms = (time.perf_counter() - start_time) * 1000
                    self._dispatch(ApiCallSucceeded(
                        client_id=self._client_id, endpoint=endpoint, status_code=response.status_code,
                        latency_ms=latency_ms, attempt_number=attempt,
                    ))
                    return response.data

            if isinstance(last_error, RateLimited):
                last_error.retry_after = self.registry.retry_after(self._client_id)
                logger.warning(
                    f"Rate limited (429) calling {endpoint} for client '{self._client_id}'. Not retrying."
                )
                self._dispatch(RateLimitObserved(
                    client_id=self._client_id, endpoint=endpoint, retry_after=last_error.retry_after,
                ))
                break

            if not last_error.retryable:
                logger.error(f"Non-retryable error calling {endpoint} on attempt {attempt}: {last_error}")
                break

            if attempt == total_attempts:
                logger.error(f"Max retries ({self._config.retry_attempts}) reached for {endpoint}. Last error: {last_error}")
                break

            delay_s = backoff_delay(attempt, self._config.retry_delay) / 1000
            logger.warning(
                f"Retryable error calling {endpoint} on attempt {attempt}/{total_attempts}: "
                f"{type(last_error).__name__}. Waiting {delay_s:.2f}s..."
            )
            self._dispatch(RetryScheduled(
                client_id=self._client_id, endpoint=endpoint, attempt_number=attempt,
                delay_seconds=delay_s, error_type=type(last_error).__name__,
            ))
            await self._sleep(delay_s)

        return self._handle_failure(endpoint, last_error, attempt, fallback)

    async def _preflight_wait(self, endpoint: str) -> None:
        """Waits once before the first attempt when the client is out of requests."""
        if not self.registry.is_rate_limited(self._client_id):
            return
        retry_after = self.registry.retry_after(self._client_id)
        if not retry_after:
            return
        logger.warning(f"Client '{self._client_id}' is rate limited. Waiting {retry_after} seconds...")
        self._dispatch(ApiCallDeferred(client_id=self._client_id, endpoint=endpoint, wait_time_seconds=retry_after))
        await self._sleep(retry_after)

    def _handle_failure(
        self,
        endpoint: str,
        error: RemoteCallError,
        attempts: int,
        fallback: Optional[T],
    ) -> T:
        if self._config.fallback_enabled and fallback is not None:
            logger.warning(f"Request to {endpoint} failed after {attempts} attempts. Using fallback data.")
            self._dispatch(FallbackUsed(
                client_id=self._client_id, endpoint=endpoint, reason=type(error).__name__, attempts=attempts,
            ))
            return fallback

        if self._config.fallback_enabled:
            logger.info(f"Fallback enabled but no fallback payload supplied for {endpoint}; raising original error.")
        self._dispatch(ApiCallFailed(
            client_id=self._client_id, endpoint=endpoint, error_type=type(error).__name__,
            error_message=str(error), status_code=error.status_code, attempts=attempts,
        ))
        raise error
