"""Audit: compare a local document tree with the remote page tree.

Nothing is written on either side.  Every local document and every remote
page below the root gets one :class:`~notionsync.models.AuditEntry`:

===========  ==============================================================
status       meaning
===========  ==============================================================
synced       linked; the body still matches its stored hash and the page
             was not edited after the last sync
stale        linked, but the body or the page changed after the last sync,
             or no sync time is stored
local_only   the document has no page id, or its page was not found below
             the root
notion_only  a page below the root that no document links to
===========  ==============================================================

Pages created for sub-directories carry no document of their own.  A page
whose title matches a local directory and which has child pages is taken
to be such a directory page and left out of the report.
"""

from __future__ import annotations

from pathlib import Path

from notionsync.config import NotionSyncConfig
from notionsync.connector import RemoteConnector
from notionsync.errors import NotionSyncError
from notionsync.frontmatter import (
    content_changed,
    derive_title_from_path,
    effective_title,
    humanize,
    read_document,
)
from notionsync.link_index import LinkIndex, compact_id
from notionsync.models import AuditEntry, AuditReport, AuditStatus, FileEntry, RemotePage
from notionsync.observability import NoopMetricsHook, get_logger
from notionsync.sync import discover_files

log = get_logger("notionsync.audit")


class Auditor:
    """Report how a local tree and its remote page tree differ.

    Parameters
    ----------
    connector:
        Remote operations; only page listing is used.
    config:
        Supplies the metrics hook.
    """

    def __init__(
        self,
        connector: RemoteConnector,
        config: NotionSyncConfig | None = None,
    ) -> None:
        self._connector = connector
        self._config = config or NotionSyncConfig()
        self._metrics = self._config.metrics if self._config.metrics is not None else NoopMetricsHook()

    def audit_directory(
        self,
        root: Path,
        root_page_id: str,
        *,
        status: AuditStatus | str | None = None,
    ) -> AuditReport:
        """Compare *root* with the pages below *root_page_id*.

        Parameters
        ----------
        root:
            Local sync root.
        root_page_id:
            Page the tree is mirrored under.
        status:
            Keep only entries with this status.

        Raises
        ------
        SourceDirectoryError
            If *root* is not a directory.
        ValueError
            If *status* is not a known audit status.
        """
        root = Path(root)
        wanted = AuditStatus(status) if status is not None else None
        files = discover_files(root)
        link_index = LinkIndex.build(root)
        pages = self._scan_remote(root_page_id)

        log.info(
            "audit started",
            extra={"extra_fields": {
                "op": "audit_directory", "root": str(root),
                "documents": len(files), "pages": len(pages),
            }},
        )

        remote_by_id = {compact_id(page.id): page for page in pages}
        entries = [self._audit_file(entry, remote_by_id) for entry in files]
        entries += self._orphans(files, pages, link_index)

        report = AuditReport(entries)
        if wanted is not None:
            report = AuditReport(report.by_status(wanted))

        counts = report.counts()
        for audit_status, count in counts.items():
            self._metrics.increment(
                "notionsync.audit_entries_total", value=count, tags={"status": audit_status.value},
            )
        log.info(
            "audit finished",
            extra={"extra_fields": {
                "op": "audit_directory", "root": str(root),
                **{s.value: counts[s] for s in AuditStatus},
            }},
        )
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _scan_remote(self, page_id: str) -> list[RemotePage]:
        """Every page below *page_id*, parents before their children."""
        pages: list[RemotePage] = []
        pending = [page_id]
        while pending:
            parent = pending.pop(0)
            children = self._connector.list_child_pages(parent)
            pages.extend(children)
            pending.extend(child.id for child in children)
        return pages

    def _audit_file(self, entry: FileEntry, remote_by_id: dict[str, RemotePage]) -> AuditEntry:
        rel = entry.relative_path
        try:
            record, body = read_document(entry.path)
        except NotionSyncError as exc:
            log.warning(
                "document header unreadable",
                extra={"extra_fields": {"op": "audit_directory", "path": rel, "reason": exc.reason}},
            )
            return AuditEntry.local_only(rel, derive_title_from_path(rel))

        title = effective_title(record, rel)
        if record.notion_id is None:
            return AuditEntry.local_only(rel, title)

        synced_at = record.notion_synced_at
        remote = remote_by_id.get(compact_id(record.notion_id))
        if remote is None:
            return AuditEntry.unverified(rel, title, record.notion_id, synced_at)

        remote_edited = (
            remote.last_edited_at is not None
            and (synced_at is None or remote.last_edited_at > synced_at)
        )
        if synced_at is None or remote_edited or content_changed(body, record.content_hash):
            return AuditEntry.stale_page(rel, title, record.notion_id, synced_at)
        return AuditEntry.synced(rel, title, record.notion_id, synced_at)

    @staticmethod
    def _orphans(files: list[FileEntry], pages: list[RemotePage], link_index: LinkIndex) -> list[AuditEntry]:
        directory_titles = {
            humanize(segment)
            for entry in files if entry.parent_path
            for segment in entry.parent_path.split("/")
        }
        parent_ids = {compact_id(page.parent_id) for page in pages if page.parent_id}

        orphans: list[AuditEntry] = []
        for page in pages:
            if link_index.id_to_path(page.id) is not None:
                continue
            if page.title in directory_titles and compact_id(page.id) in parent_ids:
                continue
            orphans.append(AuditEntry.notion_only(page.id, page.title))
        return orphans
