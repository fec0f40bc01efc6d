"""Domain models for server-announced rate limits.

Header values arrive loosely typed: a number as a string, the literal
``unlimited``, nothing at all, or garbage. ``parse_header_value`` collapses
them into one tagged ``HeaderValue`` so callers only ever branch on its kind.
"""

import enum
import re
from dataclasses import dataclass
from typing import Any, Optional

# Response headers consumed by the rate-limit registry (lower-case)
LIMIT_HEADER = "x-ratelimit-limit-requests"
REMAINING_HEADER = "x-ratelimit-remaining-requests"
RESET_HEADER = "x-ratelimit-reset-requests"
RETRY_AFTER_HEADER = "retry-after"

UNLIMITED_TOKEN = "unlimited"

_NON_NEGATIVE_INT = re.compile(r"^\d+$")


class HeaderKind(enum.Enum):
    ABSENT = "absent"
    UNLIMITED = "unlimited"
    NUMERIC = "numeric"
    INVALID = "invalid"


@dataclass(frozen=True)
class HeaderValue:
    """A parsed rate-limit header. ``number`` is set only for NUMERIC."""
    kind: HeaderKind
    number: Optional[int] = None

    @property
    def is_numeric(self) -> bool:
        return self.kind is HeaderKind.NUMERIC

    @property
    def is_unlimited(self) -> bool:
        return self.kind is HeaderKind.UNLIMITED


ABSENT = HeaderValue(HeaderKind.ABSENT)
UNLIMITED = HeaderValue(HeaderKind.UNLIMITED)
INVALID = HeaderValue(HeaderKind.INVALID)


def parse_header_value(raw: Any) -> HeaderValue:
    """Parses a single rate-limit header value.

    Args:
        raw: The header value as received (usually a string, sometimes an int).

    Returns:
        ABSENT for a missing or blank value, UNLIMITED for the literal token in
        any case, NUMERIC for a non-negative integer, INVALID for anything else.
    """
    if raw is None:
        return ABSENT
    # bool is an int subclass but never a meaningful header value
    if isinstance(raw, bool):
        return INVALID
    if isinstance(raw, int):
        return HeaderValue(HeaderKind.NUMERIC, raw) if raw >= 0 else INVALID
    if not isinstance(raw, str):
        return INVALID

    text = raw.strip()
    if not text:
        return ABSENT
    if text.lower() == UNLIMITED_TOKEN:
        return UNLIMITED
    if _NON_NEGATIVE_INT.match(text):
        return HeaderValue(HeaderKind.NUMERIC, int(text))
    return INVALID


@dataclass
class RateLimitState:
    """Rate-limit state observed for one client identity."""
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset_time: Optional[str] = None  # opaque, stored verbatim
    retry_after: Optional[int] = None  # seconds
    is_unlimited: bool = False
    last_updated: float = 0.0

    @property
    def is_rate_limited(self) -> bool:
        if self.is_unlimited:
            return False
        return self.remaining is not None and self.remaining <= 0
