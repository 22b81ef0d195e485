"""notionsync.notion_api -- Notion API transport and endpoint wrappers.

This sub-package provides:

* :mod:`.rate_limit` -- Token-bucket pacing.
* :mod:`.retries` -- Retry decision logic and exponential backoff.
* :mod:`.transport` -- HTTP transport with auth, retries, and pacing.
* :mod:`.pages` -- Page API wrapper.
* :mod:`.blocks` -- Block API wrapper.
"""

from __future__ import annotations

from .blocks import BlockAPI
from .pages import PageAPI, extract_title, title_property
from .rate_limit import TokenBucket
from .retries import compute_backoff, should_retry
from .transport import NotionTransport

__all__ = [
    "BlockAPI",
    "NotionTransport",
    "PageAPI",
    "TokenBucket",
    "compute_backoff",
    "extract_title",
    "should_retry",
    "title_property",
]
