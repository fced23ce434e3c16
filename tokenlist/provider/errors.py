"""
Discovery provider error classification.

Every error raised here is a transport-level failure: it aborts the current
discovery run and leaves the pagination checkpoint untouched so the next run
can retry from the last completed page.

    HTTP 429           -> RateLimitedError   (retried with backoff first)
    HTTP 5xx, timeout  -> TransientHttpError (retried with backoff first)
    network failure    -> TransientHttpError (retried with backoff first)
    HTTP 4xx           -> FatalHttpError     (no retry)
    malformed payload  -> FatalHttpError     (no retry)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ProviderHttpError(Exception):
    """
    Base exception for discovery provider failures.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code (None for non-HTTP errors).
        response_text: Raw response body text.
        payload: Parsed response payload if available.
    """
    message: str
    status_code: int | None = None
    response_text: str | None = None
    payload: Any | None = None

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.response_text:
            parts.append(f"response={self.response_text[:500]}")
        return " | ".join(parts)


class RateLimitedError(ProviderHttpError):
    """HTTP 429 after the retry budget was spent."""


class TransientHttpError(ProviderHttpError):
    """5xx, timeout, connection failure or undecodable body after retries."""


class FatalHttpError(ProviderHttpError):
    """Non-retryable 4xx response or a page payload with an unusable shape."""
