"""Pull direction: remote pages -> local markdown documents.

A pull resolves a set of remote pages (the *scope*), then handles each page
on its own:

1. Fetch the page metadata and its block tree.
2. Find the matching local document: by stored page id, by a caller hint,
   or by the path a new document would get.
3. Ask the :class:`~notionsync.conflict.ConflictResolver` what to do.
4. On ``update``, render the blocks to markdown (links to known pages are
   turned back into relative document paths) and rewrite the document
   with a fresh header.

Scopes
------
``linked_only``
    Every local document that already stores a page id.
``all_children``
    Every page below the root page, recursively.  A page with sub-pages
    is written to ``<slug>/index.md`` so that a later push maps it back
    onto the same directory page; a leaf page is written to ``<slug>.md``.
``explicit_list``
    The given page ids.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from notionsync.config import NotionSyncConfig
from notionsync.conflict import ConflictResolver
from notionsync.connector import RemoteConnector
from notionsync.converter.blocks_to_markdown import BlocksToMarkdown
from notionsync.errors import NotionSyncError, SourceDirectoryError
from notionsync.frontmatter import (
    compute_hash,
    file_modified_at,
    read_document,
    sync_timestamp,
    touch,
    write_document,
)
from notionsync.link_index import LinkIndex
from notionsync.models import DocumentRecord, LocalState, PullResult, RemotePage
from notionsync.observability import NoopMetricsHook, get_logger

log = get_logger("notionsync.pull")

PullScope = Literal["linked_only", "all_children", "explicit_list"]

PULL_SCOPES: tuple[str, ...] = ("linked_only", "all_children", "explicit_list")

_SLUG_DROP_RE = re.compile(r"[^a-z0-9\s-]")
_SLUG_SPACE_RE = re.compile(r"\s+")
_SLUG_MAX_LENGTH = 50


def slugify(title: str) -> str:
    """File name for a page pulled without a local document.

    Examples
    --------
    >>> slugify("Getting Started: A Guide!")
    'getting-started-a-guide.md'
    >>> slugify("???")
    'untitled.md'
    """
    slug = _SLUG_DROP_RE.sub("", title.lower())
    slug = _SLUG_SPACE_RE.sub("-", slug.strip())[:_SLUG_MAX_LENGTH]
    return f"{slug or 'untitled'}.md"


@dataclass(frozen=True)
class PullTarget:
    """A remote page selected for pulling.

    Attributes
    ----------
    page_id:
        The remote page.
    path:
        Known local document for the page, if any.
    suggested_path:
        Where a new document goes when no local one exists.
    """

    page_id: str
    path: str | None = None
    suggested_path: str | None = None


class PullOrchestrator:
    """Write remote pages back into a local document tree.

    Parameters
    ----------
    connector:
        Remote operations.
    config:
        Supplies ``conflict_strategy``, ``preserve_metadata``,
        ``resolve_links`` and the metrics hook.
    """

    def __init__(
        self,
        connector: RemoteConnector,
        config: NotionSyncConfig | None = None,
    ) -> None:
        self._connector = connector
        self._config = config or NotionSyncConfig()
        self._resolver = ConflictResolver(self._config.conflict_strategy)
        self._renderer = BlocksToMarkdown(preserve_metadata=self._config.preserve_metadata)
        self._metrics = self._config.metrics if self._config.metrics is not None else NoopMetricsHook()

    def pull(
        self,
        root: Path,
        *,
        root_page_id: str | None = None,
        scope: PullScope = "linked_only",
        page_ids: list[str] | None = None,
        dry_run: bool = False,
        path_hints: dict[str, str] | None = None,
    ) -> PullResult:
        """Pull the pages selected by *scope* into *root*.

        Parameters
        ----------
        root:
            Local document tree.
        root_page_id:
            Page whose descendants ``all_children`` pulls.
        scope:
            ``linked_only``, ``all_children`` or ``explicit_list``.
        page_ids:
            Pages to pull with ``explicit_list``.
        dry_run:
            Report decisions without writing any file.
        path_hints:
            ``page id -> relative path`` for pages that have no linked
            local document yet.

        Raises
        ------
        ValueError
            On an unknown scope or a scope missing its required argument.
        SourceDirectoryError
            If *root* is not a directory.
        NotionSyncError
            If the child pages of *root_page_id* cannot be listed.
        """
        if scope not in PULL_SCOPES:
            raise ValueError(f"unknown pull scope {scope!r}")
        if scope == "all_children" and not root_page_id:
            raise ValueError("scope 'all_children' requires root_page_id")
        if scope == "explicit_list" and not page_ids:
            raise ValueError("scope 'explicit_list' requires page_ids")

        root = Path(root)
        if not root.is_dir():
            raise SourceDirectoryError(
                message=f"{root} is not a directory",
                context={"path": str(root)},
            )

        result = PullResult()
        link_index = LinkIndex.build(root)
        targets = self.resolve_scope(
            scope, link_index, root_page_id=root_page_id, page_ids=page_ids, result=result,
        )
        hints = path_hints or {}

        log.info(
            "pull started",
            extra={"extra_fields": {
                "op": "pull", "root": str(root), "scope": scope,
                "pages": len(targets), "dry_run": dry_run,
                "strategy": self._resolver.strategy,
            }},
        )

        for target in targets:
            if target.path is None and target.page_id in hints:
                target = PullTarget(target.page_id, hints[target.page_id], target.suggested_path)
            try:
                self.pull_page(target, root, link_index, result, dry_run=dry_run)
            except NotionSyncError as exc:
                label = target.path or target.suggested_path or target.page_id
                result.add_error(label, exc.reason, exc.message)
                self._count("error")
                log.warning(
                    "page failed",
                    extra={"extra_fields": {
                        "op": "pull_page", "page_id": target.page_id, "path": label,
                        "reason": exc.reason, "error": exc.message,
                    }},
                )

        log.info(
            "pull finished",
            extra={"extra_fields": {
                "op": "pull", "root": str(root), "dry_run": dry_run,
                "created": len(result.created), "updated": len(result.updated),
                "skipped": len(result.skipped), "conflicts": len(result.conflicts),
                "errors": len(result.errors),
            }},
        )
        return result

    def resolve_scope(
        self,
        scope: PullScope,
        link_index: LinkIndex,
        *,
        root_page_id: str | None = None,
        page_ids: list[str] | None = None,
        result: PullResult | None = None,
    ) -> list[PullTarget]:
        """Select the pages to pull."""
        if scope == "linked_only":
            owners = {page_id: link_index.id_to_path(page_id) for _, page_id in link_index.items()}
            return [
                PullTarget(page_id, path)
                for page_id, path in sorted(owners.items(), key=lambda item: item[1] or "")
            ]
        if scope == "explicit_list":
            return [PullTarget(page_id, link_index.id_to_path(page_id)) for page_id in page_ids or []]

        targets = self._walk_children(root_page_id or "", "", result or PullResult())
        return [
            PullTarget(t.page_id, link_index.id_to_path(t.page_id), t.suggested_path)
            for t in targets
        ]

    def pull_page(
        self,
        target: PullTarget,
        root: Path,
        link_index: LinkIndex,
        result: PullResult,
        *,
        dry_run: bool = False,
    ) -> None:
        """Pull one page and record the outcome in *result*."""
        remote = self._connector.get_page(target.page_id)
        blocks = self._connector.get_page_blocks(target.page_id)

        rel = target.path or target.suggested_path or slugify(remote.title)
        local = self._local_state(root / rel, rel)
        resolution = self._resolver.resolve(local, remote)

        if resolution.action == "conflict" and resolution.entry is not None:
            result.conflicts.append(resolution.entry)
            self._count("conflict")
            log.info(
                "page in conflict",
                extra={"extra_fields": {
                    "op": "pull_page", "page_id": remote.id, "path": rel,
                    "status": resolution.entry.status.value,
                }},
            )
            return

        if resolution.action == "skip":
            result.skipped.append(rel)
            self._count("skipped")
            log.info(
                "page skipped",
                extra={"extra_fields": {"op": "pull_page", "page_id": remote.id, "path": rel}},
            )
            return

        action = "created" if local is None else "updated"
        if not dry_run:
            link_index_for_render = link_index if self._config.resolve_links else None
            markdown = self._renderer.render(
                blocks, link_index=link_index_for_render, current_path=rel,
            )
            self._write(root / rel, remote, markdown)

        getattr(result, action).append(rel)
        self._count(action)
        log.info(
            f"page {action}",
            extra={"extra_fields": {
                "op": "pull_page", "page_id": remote.id, "path": rel,
                "action": action, "dry_run": dry_run,
            }},
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _walk_children(self, page_id: str, directory: str, result: PullResult) -> list[PullTarget]:
        targets: list[PullTarget] = []
        for child in self._connector.list_child_pages(page_id):
            slug = slugify(child.title)[:-3]
            child_dir = posixpath.join(directory, slug) if directory else slug
            try:
                below = self._walk_children(child.id, child_dir, result)
            except NotionSyncError as exc:
                result.add_error(child_dir, exc.reason, exc.message)
                below = []
            suggested = f"{child_dir}/index.md" if below else f"{child_dir}.md"
            targets.append(PullTarget(child.id, suggested_path=suggested))
            targets.extend(below)
        return targets

    @staticmethod
    def _local_state(path: Path, rel: str) -> LocalState | None:
        modified_at = file_modified_at(path)
        if modified_at is None:
            return None
        record, _ = read_document(path)
        return LocalState(
            path=rel,
            modified_at=modified_at,
            synced_at=record.notion_synced_at,
            notion_id=record.notion_id,
        )

    @staticmethod
    def _write(path: Path, remote: RemotePage, markdown: str) -> None:
        record = read_document(path)[0] if path.exists() else DocumentRecord()
        body = f"\n{markdown}" if markdown else ""
        synced_at = sync_timestamp()
        record.title = remote.title
        record.notion_id = remote.id
        record.notion_synced_at = synced_at
        record.content_hash = compute_hash(body)
        write_document(path, record, body)
        touch(path, synced_at)

    def _count(self, outcome: str) -> None:
        self._metrics.increment(
            "notionsync.documents_total", tags={"direction": "pull", "outcome": outcome},
        )
