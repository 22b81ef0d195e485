"""Metrics hook protocol and no-op default implementation.

notionsync emits counters at the points that matter for a sync run:

* ``notionsync.requests_total``      -- counter, tagged by method and status
* ``notionsync.retries_total``       -- counter, tagged by reason
* ``notionsync.rate_limited_total``  -- counter
* ``notionsync.request_duration_ms`` -- timing
* ``notionsync.documents_total``     -- counter, tagged by direction and outcome

Supply any object satisfying :class:`MetricsHook` via
``NotionSyncConfig(metrics=...)`` to route them to a backend.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy."""

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass
