"""Retry decision logic and exponential backoff computation.

Two pure functions used by the transport layer:

* :func:`should_retry` -- decide whether a failed request is retryable.
* :func:`compute_backoff` -- compute the delay before the next retry attempt.
"""

from __future__ import annotations

import random

import httpx

# HTTP status codes that are safe to retry.
RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

# Network-level exceptions that warrant a retry.
_RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
)


def should_retry(
    status_code: int | None,
    exception: Exception | None,
    attempt: int,
    max_attempts: int,
) -> bool:
    """Decide whether a request should be retried.

    Parameters
    ----------
    status_code:
        HTTP status code from the response, or ``None`` if the request never
        received a response (e.g. network timeout).
    exception:
        The exception that was raised, or ``None`` if a response was received.
    attempt:
        The current attempt number (0-indexed).
    max_attempts:
        Maximum total attempts allowed (including the initial request).
    """
    if attempt + 1 >= max_attempts:
        return False

    if exception is not None:
        return isinstance(exception, _RETRYABLE_EXCEPTIONS)

    if status_code is not None:
        return status_code in RETRYABLE_STATUSES

    return False


def compute_backoff(
    attempt: int,
    base: float = 1.0,
    maximum: float = 60.0,
    jitter: bool = True,
    retry_after: float | None = None,
) -> float:
    """Compute the delay before the next retry attempt.

    A server-provided ``Retry-After`` value is used as is (jitter still
    applies).  Otherwise the delay is ``base * 2**attempt`` capped at
    *maximum*.  Jitter scales the delay to between 50 % and 100 % of its
    value.

    Examples
    --------
    >>> compute_backoff(3, base=1.0, maximum=5.0, jitter=False)
    5.0
    """
    if retry_after is not None:
        delay = retry_after
    else:
        delay = min(base * (2 ** attempt), maximum)

    if jitter:
        delay *= 0.5 + random.random() * 0.5

    return delay
