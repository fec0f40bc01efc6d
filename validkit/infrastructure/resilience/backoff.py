"""Exponential backoff delays for retries.

``backoff_delay(attempt, base)`` doubles per retry: base, 2*base, 4*base...
Jitter is opt-in so the default sequence stays deterministic.
"""

import random
from typing import Optional

JITTER_RATIO = 0.25


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: Optional[float] = None,
    jitter: bool = False,
) -> float:
    """Computes the wait before a retry.

    Args:
        attempt: 1-indexed retry number (1 for the first retry).
        base_delay: Base delay, in whatever unit the caller uses (ms in validkit).
        max_delay: Optional cap applied before jitter.
        jitter: Spread the delay by up to +/-25% to avoid thundering herds.

    Returns:
        The delay in the same unit as ``base_delay``.
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")

    delay = base_delay * (2 ** (attempt - 1))
    if max_delay is not None:
        delay = min(delay, max_delay)
    if jitter:
        delay *= 1 + random.uniform(-JITTER_RATIO, JITTER_RATIO)  # noqa: S311
    return max(0.0, delay)
