"""notionsync: bidirectional sync between a markdown tree and Notion pages.

Public re-exports
-----------------

* **Orchestrators:** :class:`SyncOrchestrator`, :class:`PullOrchestrator`,
  :class:`Auditor`
* **Remote access:** :class:`NotionConnector`, :class:`RemoteConnector`
* **Conversion:** :class:`MarkdownToBlocks`, :class:`BlocksToMarkdown`
* **Links and conflicts:** :class:`LinkIndex`, :class:`ConflictResolver`
* **Configuration:** :class:`NotionSyncConfig`
* **Errors:** Every :class:`NotionSyncError` subclass and :class:`ErrorCode`
* **Models:** Blocks, rich text, run results and audit reports

Usage::

    from notionsync import NotionConnector, NotionSyncConfig, SyncOrchestrator

    config = NotionSyncConfig(token="secret_xxx")
    with NotionConnector(config) as remote:
        result = SyncOrchestrator(remote, config).sync_directory("docs", "<page_id>")
    print(result.format())
"""

from __future__ import annotations

from notionsync.audit import Auditor
from notionsync.config import CONFLICT_STRATEGIES, NotionSyncConfig
from notionsync.conflict import ConflictResolver
from notionsync.connector import NotionConnector, RemoteConnector
from notionsync.converter import BlocksToMarkdown, MarkdownToBlocks
from notionsync.errors import (
    ApiError,
    BadRequestError,
    ConversionError,
    DuplicateTitlesError,
    ErrorCode,
    ForbiddenError,
    FrontmatterError,
    LocalIOError,
    NetworkError,
    NotFoundError,
    NotionSyncError,
    ProvisionError,
    RateLimitError,
    RemoteConflictError,
    RetryExhaustedError,
    SourceDirectoryError,
    UnauthorizedError,
)
from notionsync.link_index import LinkIndex, is_child_link
from notionsync.models import (
    Annotations,
    AuditEntry,
    AuditReport,
    AuditStatus,
    Block,
    BlockKind,
    ConflictEntry,
    ConflictStatus,
    ConversionResult,
    DocumentError,
    DocumentRecord,
    FileEntry,
    LocalState,
    PullResult,
    RemotePage,
    Resolution,
    RichText,
    SyncResult,
)
from notionsync.pull import PullOrchestrator, slugify
from notionsync.sync import SyncOrchestrator

__all__ = [
    # Orchestrators
    "SyncOrchestrator",
    "PullOrchestrator",
    "ConflictResolver",
    "Auditor",
    # Remote access
    "NotionConnector",
    "RemoteConnector",
    # Conversion
    "MarkdownToBlocks",
    "BlocksToMarkdown",
    # Links
    "LinkIndex",
    "is_child_link",
    "slugify",
    # Configuration
    "NotionSyncConfig",
    "CONFLICT_STRATEGIES",
    # Error base + code enum
    "NotionSyncError",
    "ErrorCode",
    # Remote errors
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitError",
    "RemoteConflictError",
    "ApiError",
    "NetworkError",
    "RetryExhaustedError",
    # Local errors
    "FrontmatterError",
    "DuplicateTitlesError",
    "SourceDirectoryError",
    "LocalIOError",
    "ProvisionError",
    "ConversionError",
    # Models: content
    "Annotations",
    "RichText",
    "Block",
    "BlockKind",
    "ConversionResult",
    # Models: documents and pages
    "DocumentRecord",
    "FileEntry",
    "RemotePage",
    "LocalState",
    # Models: conflicts and results
    "ConflictStatus",
    "ConflictEntry",
    "Resolution",
    "DocumentError",
    "SyncResult",
    "PullResult",
    "AuditStatus",
    "AuditEntry",
    "AuditReport",
]
