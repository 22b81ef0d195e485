"""Push direction: local markdown tree -> remote page tree.

:class:`SyncOrchestrator` walks a directory of markdown documents and
mirrors it under a root page:

* every sub-directory becomes a page (titled after the directory) and the
  documents inside it become its child pages;
* an ``index.md`` fills its own directory's page instead of becoming a
  separate child page;
* a document without a stored page id is created, and the new id, sync
  time and body hash are written back into its header;
* a document with a stored id is updated only when its body hash changed.

When link resolution is requested and some documents have no page id yet,
the run takes two passes.  The first only creates the missing pages, with
links left as written.  The second rebuilds the :class:`LinkIndex`, pushes
every linked document that changed, and rewrites the content of any page
whose links now resolve to a page created in the first pass.
"""

from __future__ import annotations

import posixpath
from collections import defaultdict
from pathlib import Path
from typing import Literal

from notionsync.config import NotionSyncConfig
from notionsync.connector import RemoteConnector
from notionsync.converter.markdown_to_blocks import MarkdownToBlocks
from notionsync.errors import (
    ConversionError,
    DuplicateTitlesError,
    FrontmatterError,
    LocalIOError,
    NotionSyncError,
    ProvisionError,
    SourceDirectoryError,
)
from notionsync.frontmatter import (
    content_changed,
    effective_title,
    humanize,
    read_document,
    set_notion_id,
    update_synced_at,
)
from notionsync.link_index import LinkIndex
from notionsync.models import Block, DocumentRecord, FileEntry, SyncResult
from notionsync.observability import NoopMetricsHook, get_logger

log = get_logger("notionsync.sync")

SyncAction = Literal["created", "updated", "skipped"]

DRY_RUN_PREFIX = "dry-run-"


# ---------------------------------------------------------------------------
# Discovery and pre-flight
# ---------------------------------------------------------------------------

def discover_files(root: Path) -> list[FileEntry]:
    """Find every ``*.md`` document under *root*, ancestors first.

    Documents are ordered by depth, then by directory, with each
    directory's ``index.md`` ahead of its siblings.

    Raises
    ------
    SourceDirectoryError
        If *root* is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        raise SourceDirectoryError(
            message=f"{root} is not a directory",
            context={"path": str(root)},
        )
    entries = [FileEntry.from_path(path, root) for path in root.rglob("*.md") if path.is_file()]
    return sorted(
        entries,
        key=lambda e: (e.depth, e.directory, not e.is_index, e.relative_path),
    )


def validate_unique_titles(files: list[FileEntry]) -> None:
    """Require effective titles to be unique among sibling pages.

    An index document's page sits beside its directory's siblings, so it
    is grouped with the documents of the parent directory.

    A document whose header cannot be read counts with its path-derived
    title; the read error itself is reported when the document is synced.

    Raises
    ------
    DuplicateTitlesError
        Listing every clashing title with the files that share it.
    """
    groups: dict[tuple[str, str], list[str]] = defaultdict(list)
    for entry in files:
        try:
            record, _ = read_document(entry.path)
        except (FrontmatterError, LocalIOError):
            record = DocumentRecord()
        title = effective_title(record, entry.relative_path)
        groups[(_page_parent_dir(entry), title)].append(entry.relative_path)

    duplicates = {key: paths for key, paths in groups.items() if len(paths) > 1}
    if not duplicates:
        return

    lines = [
        f"  {title!r} in {directory or '.'}: {', '.join(sorted(paths))}"
        for (directory, title), paths in sorted(duplicates.items())
    ]
    raise DuplicateTitlesError(
        message="Duplicate page titles in the same directory:\n" + "\n".join(lines),
        context={"duplicates": {f"{d}/{t}" if d else t: p for (d, t), p in duplicates.items()}},
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class SyncOrchestrator:
    """Push a directory of markdown documents to the remote store.

    Parameters
    ----------
    connector:
        Remote operations, typically a :class:`~notionsync.connector.NotionConnector`.
    config:
        Supplies ``resolve_links``, ``skip_child_links`` and the metrics hook.
    """

    def __init__(
        self,
        connector: RemoteConnector,
        config: NotionSyncConfig | None = None,
    ) -> None:
        self._connector = connector
        self._config = config or NotionSyncConfig()
        self._converter = MarkdownToBlocks(self._config)
        self._metrics = self._config.metrics if self._config.metrics is not None else NoopMetricsHook()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def sync_directory(
        self,
        root: Path,
        root_page_id: str,
        *,
        dry_run: bool = False,
        resolve_links: bool | None = None,
    ) -> SyncResult:
        """Sync every document under *root* beneath *root_page_id*.

        Parameters
        ----------
        root:
            Local directory to push.
        root_page_id:
            Remote page that mirrors *root*.
        dry_run:
            Decide and report without touching the remote store or any file.
        resolve_links:
            Turn links between documents into page mentions.  Defaults to
            the configured value.

        Raises
        ------
        SourceDirectoryError
            If *root* is not a directory.
        DuplicateTitlesError
            If two documents in one directory share a title.  Nothing has
            been changed when this is raised.
        """
        root = Path(root)
        if resolve_links is None:
            resolve_links = self._config.resolve_links

        files = discover_files(root)
        validate_unique_titles(files)

        log.info(
            "sync started",
            extra={"extra_fields": {
                "op": "sync_directory", "root": str(root), "documents": len(files),
                "dry_run": dry_run, "resolve_links": resolve_links,
            }},
        )

        page_map: dict[str, str] = {"": root_page_id}
        if resolve_links and not dry_run and self._any_unlinked(files):
            first = self._run_pass(
                files, page_map, link_index=None, dry_run=False, create_only=True,
            )
            link_index = LinkIndex.build(root)
            failed = {e.path for e in first.errors}
            second = self._run_pass(
                [f for f in files if f.relative_path not in failed],
                page_map,
                link_index=link_index,
                dry_run=False,
                created=set(first.created),
            )
            result = SyncResult.merge_passes(first, second)
        else:
            link_index = LinkIndex.build(root) if resolve_links else None
            result = self._run_pass(files, page_map, link_index=link_index, dry_run=dry_run)

        log.info(
            "sync finished",
            extra={"extra_fields": {
                "op": "sync_directory", "root": str(root), "dry_run": dry_run,
                "created": len(result.created), "updated": len(result.updated),
                "skipped": len(result.skipped), "errors": len(result.errors),
            }},
        )
        return result

    def sync_file(
        self,
        entry: FileEntry,
        parent_id: str | None = None,
        *,
        link_index: LinkIndex | None = None,
        dry_run: bool = False,
        force: bool = False,
        relink_ids: set[str] | None = None,
    ) -> tuple[SyncAction, str]:
        """Create, update or skip one document.

        Parameters
        ----------
        entry:
            The document to push.
        parent_id:
            Page the document is created under when it has no page id.
            Required in that case.
        link_index:
            Resolves links between documents into page mentions.
        dry_run:
            Decide without calling the remote store or writing the file.
        force:
            Update even when the body hash is unchanged.
        relink_ids:
            A document whose converted content mentions one of these page
            ids is updated even when its body hash is unchanged.

        Returns
        -------
        tuple[str, str]
            The action taken and the document's page id (a synthetic
            ``dry-run-<path>`` id when a dry run would create it).
        """
        record, body = read_document(entry.path)
        title = effective_title(record, entry.relative_path)

        if dry_run:
            if record.notion_id is None:
                return "created", f"{DRY_RUN_PREFIX}{entry.relative_path}"
            if content_changed(body, record.content_hash):
                return "updated", record.notion_id
            return "skipped", record.notion_id

        blocks = self._convert(body, entry, link_index)

        if record.notion_id is None:
            if parent_id is None:
                raise ValueError(f"{entry.relative_path} has no page id and no parent page")
            page_id = self._connector.create_page(parent_id, title, blocks)
            set_notion_id(entry.path, page_id, body)
            return "created", page_id

        stale = force or content_changed(body, record.content_hash)
        if not stale and relink_ids and _mentions_any(blocks, relink_ids):
            stale = True
        if not stale:
            return "skipped", record.notion_id

        self._connector.replace_page_blocks(record.notion_id, blocks)
        update_synced_at(entry.path, body)
        return "updated", record.notion_id

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_pass(
        self,
        files: list[FileEntry],
        page_map: dict[str, str],
        *,
        link_index: LinkIndex | None,
        dry_run: bool,
        created: set[str] | None = None,
        create_only: bool = False,
    ) -> SyncResult:
        """Push *files* once.

        With *create_only*, documents that already have a page are left
        alone and do not appear in the result.

        *created* names documents created by an earlier pass.  Those are
        rewritten when their content now mentions any known page, and the
        other documents are rewritten when they mention one of them.
        """
        result = SyncResult()
        failed_dirs: dict[str, ProvisionError] = {}
        created = created or set()
        known_ids: set[str] | None = None
        created_ids: set[str] | None = None
        if created and link_index is not None:
            known_ids = link_index.page_ids()
            created_ids = {
                page_id for page_id in map(link_index.path_to_id, created) if page_id
            }

        # Directory pages already populated by their index document.
        for entry in files:
            if entry.is_index and entry.directory:
                try:
                    record, _ = read_document(entry.path)
                except NotionSyncError:
                    continue
                if record.notion_id:
                    page_map.setdefault(entry.directory, record.notion_id)

        for entry in files:
            rel = entry.relative_path
            own_dir = entry.is_index and bool(entry.directory)
            parent_dir = _page_parent_dir(entry)

            try:
                record, _ = read_document(entry.path)
            except NotionSyncError as exc:
                self._record_error(result, rel, exc)
                continue

            if create_only and record.notion_id is not None:
                continue

            # Only a document about to be created needs its parent page.
            parent_id: str | None = None
            if record.notion_id is None:
                blocked = _failed_ancestor(parent_dir, failed_dirs)
                if blocked is not None:
                    self._record_error(result, rel, blocked)
                    continue
                try:
                    parent_id = self._ensure_directory(parent_dir, page_map, dry_run)
                except ProvisionError as exc:
                    failed_dirs[exc.context["directory"]] = exc
                    self._record_error(result, rel, exc)
                    continue

            try:
                action, page_id = self.sync_file(
                    entry, parent_id, link_index=link_index, dry_run=dry_run,
                    relink_ids=known_ids if rel in created else created_ids,
                )
            except NotionSyncError as exc:
                self._record_error(result, rel, exc)
                continue

            if own_dir:
                page_map[entry.directory] = page_id
            getattr(result, action).append(rel)
            self._metrics.increment(
                "notionsync.documents_total", tags={"direction": "push", "outcome": action},
            )
            log.info(
                f"document {action}",
                extra={"extra_fields": {
                    "op": "sync_file", "path": rel, "action": action,
                    "page_id": page_id, "dry_run": dry_run,
                }},
            )

        return result

    def _ensure_directory(self, directory: str, page_map: dict[str, str], dry_run: bool) -> str:
        """Return the page id for *directory*, creating missing pages.

        Pages are provisioned one path segment at a time, shallowest first.

        Raises
        ------
        ProvisionError
            Naming the first segment whose page could not be created.
        """
        if directory in page_map:
            return page_map[directory]

        parent_id = page_map[""]
        current = ""
        for segment in directory.split("/"):
            current = f"{current}/{segment}" if current else segment
            if current in page_map:
                parent_id = page_map[current]
                continue

            if dry_run:
                page_id = f"{DRY_RUN_PREFIX}{current}"
            else:
                page_id = self._provision(parent_id, current, humanize(segment))
            page_map[current] = page_id
            parent_id = page_id

        return parent_id

    def _provision(self, parent_id: str, directory: str, title: str) -> str:
        """Reuse the child page of *parent_id* titled *title*, or create it."""
        try:
            for page in self._connector.list_child_pages(parent_id):
                if page.title == title:
                    return page.id
            page_id = self._connector.create_page(parent_id, title, [])
        except NotionSyncError as exc:
            raise ProvisionError(
                message=f"Could not provision page for directory {directory}: {exc.message}",
                context={"directory": directory, "reason": exc.reason},
                cause=exc,
            ) from exc
        log.info(
            "directory page created",
            extra={"extra_fields": {
                "op": "provision", "directory": directory, "page_id": page_id,
            }},
        )
        return page_id

    def _convert(self, body: str, entry: FileEntry, link_index: LinkIndex | None) -> list[Block]:
        try:
            return self._converter.convert(
                body, link_index=link_index, current_path=entry.relative_path,
            ).blocks
        except RecursionError as exc:
            raise ConversionError(
                message=f"Could not convert {entry.relative_path}: nesting too deep",
                context={"path": entry.relative_path},
                cause=exc,
            ) from exc

    def _record_error(self, result: SyncResult, path: str, exc: NotionSyncError) -> None:
        result.add_error(path, exc.reason, exc.message)
        self._metrics.increment(
            "notionsync.documents_total", tags={"direction": "push", "outcome": "error"},
        )
        log.warning(
            "document failed",
            extra={"extra_fields": {
                "op": "sync_file", "path": path, "reason": exc.reason, "error": exc.message,
            }},
        )

    @staticmethod
    def _any_unlinked(files: list[FileEntry]) -> bool:
        for entry in files:
            try:
                record, _ = read_document(entry.path)
            except NotionSyncError:
                continue
            if record.notion_id is None:
                return True
        return False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _page_parent_dir(entry: FileEntry) -> str:
    """Directory whose page is the parent of *entry*'s page."""
    if entry.is_index and entry.directory:
        return posixpath.dirname(entry.directory)
    return entry.directory


def _failed_ancestor(
    directory: str, failed_dirs: dict[str, ProvisionError],
) -> ProvisionError | None:
    for failed, exc in failed_dirs.items():
        if directory == failed or directory.startswith(failed + "/"):
            return exc
    return None


def _mentions_any(blocks: list[Block], page_ids: set[str]) -> bool:
    for block in blocks:
        spans = list(block.rich_text)
        for cell in block.cells:
            spans.extend(cell)
        if any(span.is_mention and span.mention_id in page_ids for span in spans):
            return True
        if _mentions_any(block.children, page_ids):
            return True
    return False
