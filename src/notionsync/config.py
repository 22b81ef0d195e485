"""Runtime configuration for notionsync.

:class:`NotionSyncConfig` captures every tuneable knob used by the
connector, the converters and the two orchestrators.  A single instance is
shared by everything that takes part in one run.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Literal

ConflictStrategy = Literal["local_wins", "remote_wins", "notion_wins", "newest_wins", "manual"]

# "notion_wins" is accepted as an alias of "remote_wins".
CONFLICT_STRATEGIES: tuple[str, ...] = (
    "local_wins",
    "remote_wins",
    "notion_wins",
    "newest_wins",
    "manual",
)


@dataclass
class NotionSyncConfig:
    """Complete configuration for a sync or pull run.

    Every parameter has a sensible default so that the only value needed
    for talking to the remote store is ``token``.

    Parameters
    ----------
    token:
        Notion integration token.  Never logged.
    notion_version:
        Value of the ``Notion-Version`` header sent with every request.
    base_url:
        API root URL.  Override for proxy or testing environments.
    conflict_strategy:
        How a pull resolves a page whose local copy may have changed.

        * ``"manual"`` -- flag local edits for a human (default).
        * ``"local_wins"`` -- never overwrite a local document.
        * ``"remote_wins"`` (alias ``"notion_wins"``) -- always overwrite
          from the remote copy.
        * ``"newest_wins"`` -- compare timestamps.
    preserve_metadata:
        On export, encode underline and colour annotations as paired
        HTML comments so they survive a round trip through markdown.
    resolve_links:
        Rewrite links between local documents into page mentions on push,
        and remote page links back into relative paths on pull.
    skip_child_links:
        Demote links that point into a sub-directory of the current
        document to plain text.  Useful when child pages already appear
        as sub-pages of the directory page.
    min_request_interval:
        Minimum number of seconds between two remote calls.
    retry_max_attempts:
        Maximum number of attempts per request for retryable HTTP errors.
    retry_base_delay:
        Base delay (seconds) for exponential backoff.
    retry_max_delay:
        Upper cap (seconds) on computed backoff delay.
    retry_jitter:
        Add random jitter to backoff intervals.
    timeout_seconds:
        HTTP request timeout in seconds.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    max_nesting_depth:
        Recursion guard for nested lists and nested remote children.
    """

    # ── Core ────────────────────────────────────────────────────────────
    token: str = ""

    notion_version: str = "2022-06-28"

    base_url: str = "https://api.notion.com/v1"

    # ── Sync behaviour ──────────────────────────────────────────────────
    conflict_strategy: ConflictStrategy = "manual"

    preserve_metadata: bool = True

    resolve_links: bool = True

    skip_child_links: bool = False

    # ── Pacing & retry ──────────────────────────────────────────────────
    min_request_interval: float = 0.334

    retry_max_attempts: int = 5

    retry_base_delay: float = 1.0

    retry_max_delay: float = 60.0

    retry_jitter: bool = True

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Conversion ──────────────────────────────────────────────────────
    max_nesting_depth: int = 8

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        parsed = urlparse(self.base_url)
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect your API token, or target localhost for testing."
            )

        if self.conflict_strategy not in CONFLICT_STRATEGIES:
            raise ValueError(
                f"conflict_strategy must be one of {', '.join(CONFLICT_STRATEGIES)}, "
                f"got {self.conflict_strategy!r}"
            )
        if self.retry_max_attempts < 1:
            raise ValueError(f"retry_max_attempts must be >= 1, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0:
            raise ValueError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.retry_max_delay < 0:
            raise ValueError(f"retry_max_delay must be >= 0, got {self.retry_max_delay}")
        if self.min_request_interval < 0:
            raise ValueError(
                f"min_request_interval must be >= 0, got {self.min_request_interval}"
            )
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.max_nesting_depth < 1:
            raise ValueError(f"max_nesting_depth must be >= 1, got {self.max_nesting_depth}")

    def __repr__(self) -> str:
        """Mask the token to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"NotionSyncConfig({', '.join(parts)})"
