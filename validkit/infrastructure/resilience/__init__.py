"""API Resilience Implementations.

Contains services for honoring server-announced rate limits, retries with
exponential backoff, and offline fallback payloads.
Bounded Context: API Resilience
"""
