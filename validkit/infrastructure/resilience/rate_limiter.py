"""Registry of server-announced rate limits, keyed by client identity.

The service reports its limits through response headers. The registry keeps the
last observed values per client so the next call can wait before dispatching
when the client is known to be out of requests. Entries untouched for five
minutes are purged lazily; there is no background sweeper.
"""

import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Mapping, Optional

from validkit.domain.models.rate_limit import (
    LIMIT_HEADER,
    REMAINING_HEADER,
    RESET_HEADER,
    RETRY_AFTER_HEADER,
    RateLimitState,
    parse_header_value,
)

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


class _Entry:
    """One identity's state and the lock guarding it."""

    __slots__ = ("state", "lock")

    def __init__(self, created_at: float) -> None:
        # stamped at creation so a concurrent purge never sees it as expired
        self.state = RateLimitState(last_updated=created_at)
        self.lock = threading.Lock()


class RateLimitRegistry:
    """Per-client rate-limit state with per-identity locking.

    The registry lock only guards the mapping (insertions and purges). Reads and
    writes of a single identity's state happen under that identity's own lock,
    so busy clients do not contend with each other.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the registry.

        Args:
            ttl_seconds: Age after which an untouched entry is purged.
            clock: Time source in seconds. Monotonic by default.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _get_entry(self, client_id: str) -> Optional[_Entry]:
        with self._lock:
            return self._entries.get(client_id)

    def _get_or_create_entry(self, client_id: str) -> _Entry:
        with self._lock:
            entry = self._entries.get(client_id)
            if entry is None:
                entry = _Entry(self._clock())
                self._entries[client_id] = entry
            return entry

    def update(self, client_id: str, headers: Optional[Mapping[str, str]]) -> None:
        """Records the rate-limit headers of a response.

        Header names are matched case-insensitively. A value that is absent,
        negative or not a number leaves the stored field as it was.

        Args:
            client_id: Identity the response belongs to.
            headers: Response headers (any mapping).
        """
        normalized = {str(k).lower(): v for k, v in (headers or {}).items()}

        limit = parse_header_value(normalized.get(LIMIT_HEADER))
        remaining = parse_header_value(normalized.get(REMAINING_HEADER))
        retry_after = parse_header_value(normalized.get(RETRY_AFTER_HEADER))
        reset = normalized.get(RESET_HEADER)

        entry = self._get_or_create_entry(client_id)
        with entry.lock:
            state = entry.state
            if limit.is_numeric:
                state.limit = limit.number
            if remaining.is_numeric:
                state.remaining = remaining.number
            elif remaining.is_unlimited:
                state.is_unlimited = True
            if isinstance(reset, str) and reset:
                state.reset_time = reset
            if retry_after.is_numeric:
                state.retry_after = retry_after.number
            state.last_updated = self._clock()
            logger.debug(
                f"Rate limit updated for '{client_id}': limit={state.limit}, "
                f"remaining={state.remaining}, unlimited={state.is_unlimited}, "
                f"retry_after={state.retry_after}"
            )

    def is_rate_limited(self, client_id: str) -> bool:
        """True when the client's last known remaining count is zero or below."""
        entry = self._get_entry(client_id)
        if entry is None:
            return False
        with entry.lock:
            return entry.state.is_rate_limited

    def retry_after(self, client_id: str) -> Optional[int]:
        """Last observed retry-after value in seconds, if any."""
        entry = self._get_entry(client_id)
        if entry is None:
            return None
        with entry.lock:
            return entry.state.retry_after

    def get_state(self, client_id: str) -> Optional[RateLimitState]:
        """Returns a copy of the client's state, or None if nothing was observed."""
        entry = self._get_entry(client_id)
        if entry is None:
            return None
        with entry.lock:
            return replace(entry.state)

    def purge_expired(self) -> int:
        """Removes entries whose last update is older than the TTL.

        Returns:
            The number of entries removed.
        """
        now = self._clock()
        removed = 0
        with self._lock:
            for client_id in list(self._entries):
                entry = self._entries[client_id]
                with entry.lock:
                    expired = now - entry.state.last_updated > self.ttl_seconds
                if expired:
                    del self._entries[client_id]
                    removed += 1
        if removed:
            logger.debug(f"Purged {removed} expired rate limit entries.")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, client_id: object) -> bool:
        with self._lock:
            return client_id in self._entries


_default_registry: Optional[RateLimitRegistry] = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> RateLimitRegistry:
    """Returns the process-wide registry shared by executors built without one."""
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = RateLimitRegistry()
            logger.debug("Created process-wide RateLimitRegistry.")
        return _default_registry
