"""HTTP transport for the Notion API.

Each request goes through the same lifecycle:

1. Wait for the pacing bucket (minimum interval between calls).
2. Send the HTTP request with auth and version headers.
3. On ``2xx`` -- return the parsed JSON response.
4. On ``429`` -- honour ``Retry-After``, sleep, and retry.
5. On ``5xx`` / network error -- exponential backoff and retry.
6. On non-retryable ``4xx`` -- raise the matching typed error immediately.
7. On max attempts exceeded -- raise :class:`RateLimitError` if the last
   answer was ``429``, :class:`NetworkError` if the last attempt never got
   a response, :class:`RetryExhaustedError` otherwise.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from typing import Any

import httpx

from notionsync.config import NotionSyncConfig
from notionsync.errors import (
    ApiError,
    BadRequestError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RemoteConflictError,
    RetryExhaustedError,
    UnauthorizedError,
)
from notionsync.observability import NoopMetricsHook, get_logger

from .rate_limit import TokenBucket
from .retries import RETRYABLE_STATUSES, compute_backoff, should_retry

log = get_logger("notionsync.transport")

PAGE_SIZE = 100


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Extract the ``Retry-After`` header value as a float, or ``None``."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the :class:`NotionSyncError` subclass for a non-retryable status."""
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    notion_message = body.get("message", response.text[:500])
    notion_code = body.get("code", "")

    if status == 400:
        raise BadRequestError(
            message=f"Bad request on {method} {path}: {notion_message}",
            context={"status_code": status, "notion_code": notion_code, "body": body},
        )
    if status == 401:
        raise UnauthorizedError(
            message=f"Authentication failed on {method} {path}: {notion_message}",
            context={"status_code": status, "notion_code": notion_code},
        )
    if status == 403:
        raise ForbiddenError(
            message=f"Permission denied on {method} {path}: {notion_message}",
            context={
                "status_code": status,
                "notion_code": notion_code,
                "operation": f"{method} {path}",
            },
        )
    if status == 404:
        raise NotFoundError(
            message=f"Resource not found on {method} {path}: {notion_message}",
            context={"status_code": status, "notion_code": notion_code, "path": path},
        )
    if status == 409:
        raise RemoteConflictError(
            message=f"Conflict on {method} {path}: {notion_message}",
            context={"status_code": status, "notion_code": notion_code},
        )

    raise ApiError(
        message=f"API error {status} on {method} {path}: {notion_message}",
        context={"status_code": status, "notion_code": notion_code, "body": body},
    )


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class NotionTransport:
    """Synchronous HTTP transport with auth, retry, and pacing.

    Parameters
    ----------
    config:
        A :class:`NotionSyncConfig` instance controlling transport behaviour.
    client:
        Optional pre-built :class:`httpx.Client`.  Tests pass one backed by
        :class:`httpx.MockTransport`.
    """

    def __init__(self, config: NotionSyncConfig, client: httpx.Client | None = None) -> None:
        self._config = config
        self._bucket: TokenBucket | None = (
            TokenBucket.from_interval(config.min_request_interval)
            if config.min_request_interval > 0
            else None
        )
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

        if client is None:
            client = httpx.Client(
                base_url=config.base_url,
                timeout=httpx.Timeout(config.timeout_seconds),
                proxy=config.http_proxy,
            )
        client.headers.update({
            "Authorization": f"Bearer {config.token}",
            "Notion-Version": config.notion_version,
            "Content-Type": "application/json",
        })
        self._client = client

    # -- public API --------------------------------------------------------

    def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute an HTTP request against the Notion API.

        Parameters
        ----------
        method:
            HTTP method (``GET``, ``POST``, ``PATCH``, ``DELETE``).
        path:
            API path relative to ``base_url`` (e.g. ``/pages``).
        **kwargs:
            Forwarded to :meth:`httpx.Client.request`.

        Returns
        -------
        dict
            Parsed JSON response body (``{}`` for empty responses).

        Raises
        ------
        BadRequestError, UnauthorizedError, ForbiddenError, NotFoundError,
        RemoteConflictError, ApiError
            On non-retryable 4xx responses.
        RateLimitError
            When the retry budget runs out on ``429`` responses.
        RetryExhaustedError
            When the retry budget runs out on ``5xx`` responses.
        NetworkError
            On transport-level failures after exhausting retries.
        """
        max_attempts = self._config.retry_max_attempts
        last_status: int | None = None
        last_retry_after: float | None = None

        for attempt in range(max_attempts):
            # 1. Pacing
            if self._bucket is not None:
                self._bucket.acquire()

            # 2. Send request
            t0 = time.monotonic()
            try:
                response = self._client.request(method, path, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                time.sleep(self._handle_network_exception(method, path, exc, attempt))
                continue
            elapsed_ms = (time.monotonic() - t0) * 1000

            # 3. Process response
            last_status = response.status_code
            tags = {"method": method, "status": str(response.status_code)}
            self._metrics.increment("notionsync.requests_total", tags=tags)
            self._metrics.timing("notionsync.request_duration_ms", elapsed_ms, tags=tags)

            if 200 <= response.status_code < 300:
                if response.status_code == 204 or not response.content:
                    return {}
                result: dict = response.json()
                return result

            if response.status_code not in RETRYABLE_STATUSES:
                _raise_for_status(response, method, path)

            reason = "server_error"
            last_retry_after = None
            if response.status_code == 429:
                reason = "rate_limited"
                last_retry_after = _parse_retry_after(response)
                self._metrics.increment("notionsync.rate_limited_total", tags={"method": method})
                log.warning(
                    "Rate limited by Notion API",
                    extra={"extra_fields": {
                        "op": "request",
                        "method": method,
                        "path": path,
                        "status_code": 429,
                        "retry_after": last_retry_after,
                        "attempt": attempt + 1,
                    }},
                )

            if not should_retry(response.status_code, None, attempt, max_attempts):
                break

            delay = compute_backoff(
                attempt,
                base=self._config.retry_base_delay,
                maximum=self._config.retry_max_delay,
                jitter=self._config.retry_jitter,
                retry_after=last_retry_after,
            )
            self._metrics.increment(
                "notionsync.retries_total", tags={"method": method, "reason": reason},
            )
            time.sleep(delay)

        # 4. All attempts exhausted.
        ctx: dict[str, Any] = {"attempts": max_attempts, "last_status_code": last_status}
        if last_status == 429:
            ctx["retry_after_seconds"] = last_retry_after
            raise RateLimitError(
                message=f"Still rate limited after {max_attempts} attempts for {method} {path}",
                context=ctx,
            )
        raise RetryExhaustedError(
            message=(
                f"All {max_attempts} attempts exhausted for {method} {path} "
                f"(last status: {last_status})"
            ),
            context=ctx,
        )

    def paginate(self, path: str, **kwargs: Any) -> Iterator[dict]:
        """Auto-paginate a Notion list endpoint, yielding each result item.

        Issues repeated requests with ``start_cursor`` / ``page_size`` until
        ``has_more`` is ``False``.  ``GET`` endpoints take the cursor as a
        query parameter, ``POST`` endpoints in the JSON body.
        """
        method = kwargs.pop("method", "GET")
        cursor: str | None = None

        while True:
            if method.upper() in ("POST", "PATCH"):
                json_body: dict = kwargs.get("json", {}) or {}
                json_body["page_size"] = PAGE_SIZE
                if cursor is not None:
                    json_body["start_cursor"] = cursor
                else:
                    json_body.pop("start_cursor", None)
                kwargs["json"] = json_body
            else:
                params: dict = kwargs.get("params", {}) or {}
                params["page_size"] = PAGE_SIZE
                if cursor is not None:
                    params["start_cursor"] = cursor
                else:
                    params.pop("start_cursor", None)
                kwargs["params"] = params

            data = self.request(method, path, **kwargs)
            yield from data.get("results", [])

            if not data.get("has_more", False):
                break
            cursor = data.get("next_cursor")
            if cursor is None:
                break

    def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> NotionTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- internals ---------------------------------------------------------

    def _handle_network_exception(
        self, method: str, path: str, exc: Exception, attempt: int,
    ) -> float:
        """Return the backoff delay, or raise :class:`NetworkError` when spent."""
        self._metrics.increment(
            "notionsync.requests_total", tags={"method": method, "status": "error"},
        )
        log.warning(
            "Request network error",
            extra={"extra_fields": {
                "op": "request",
                "method": method,
                "path": path,
                "attempt": attempt + 1,
                "error": str(exc),
            }},
        )
        if should_retry(None, exc, attempt, self._config.retry_max_attempts):
            self._metrics.increment(
                "notionsync.retries_total", tags={"method": method, "reason": "network_error"},
            )
            return compute_backoff(
                attempt,
                base=self._config.retry_base_delay,
                maximum=self._config.retry_max_delay,
                jitter=self._config.retry_jitter,
            )
        raise NetworkError(
            message=f"Network error on {method} {path}: {exc}",
            context={"url": path, "attempt": attempt + 1},
            cause=exc,
        ) from exc
