"""Data models shared by both sync directions.

The content model is deliberately small: a :class:`Block` tree whose nodes
carry :class:`RichText` spans.  Both converters (markdown and remote JSON)
read and write this model, so neither needs to know about the other's
format.

Run accumulators (:class:`SyncResult`, :class:`PullResult`, :class:`AuditReport`)
are filled in by the orchestrators and handed to the caller once the run is
complete.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Literal

# ---------------------------------------------------------------------------
# Rich text
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Annotations:
    """Display annotations carried by a :class:`RichText` span."""

    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    code: bool = False
    color: str = "default"

    def is_default(self) -> bool:
        return self == _DEFAULT_ANNOTATIONS

    def with_flags(self, **flags: bool) -> Annotations:
        """Return a copy with the given flags switched on (OR-merge)."""
        updates = {key: getattr(self, key) or value for key, value in flags.items()}
        return replace(self, **updates)


_DEFAULT_ANNOTATIONS = Annotations()


@dataclass
class RichText:
    """A run of text (or a page mention) with uniform annotations.

    Attributes
    ----------
    kind:
        ``"text"`` for literal content, ``"mention"`` for a live reference
        to another page.
    content:
        The literal text, or the display text of a mention.
    annotations:
        Display annotations.
    link:
        Link target for text spans.
    mention_id:
        Target page id for mention spans.
    """

    content: str
    kind: Literal["text", "mention"] = "text"
    annotations: Annotations = field(default_factory=Annotations)
    link: str | None = None
    mention_id: str | None = None

    @classmethod
    def text(
        cls,
        content: str,
        *,
        link: str | None = None,
        annotations: Annotations | None = None,
        **flags: bool,
    ) -> RichText:
        annots = annotations or Annotations()
        if flags:
            annots = annots.with_flags(**flags)
        return cls(content=content, annotations=annots, link=link)

    @classmethod
    def mention(cls, page_id: str, content: str) -> RichText:
        return cls(content=content, kind="mention", mention_id=page_id)

    @property
    def is_mention(self) -> bool:
        return self.kind == "mention"

    def can_merge(self, other: RichText) -> bool:
        """Return ``True`` if *other* may be coalesced into this span.

        Mentions never merge, not even with another mention.
        """
        return (
            self.kind == "text"
            and other.kind == "text"
            and self.annotations == other.annotations
            and self.link == other.link
        )


def plain_text(spans: list[RichText]) -> str:
    """Concatenate the content of *spans*."""
    return "".join(span.content for span in spans)


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

class BlockKind(str, Enum):
    """Every block kind the converters understand.

    Values double as the remote ``type`` names.
    """

    PARAGRAPH = "paragraph"
    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    BULLETED_LIST_ITEM = "bulleted_list_item"
    NUMBERED_LIST_ITEM = "numbered_list_item"
    CODE = "code"
    QUOTE = "quote"
    TABLE = "table"
    TABLE_ROW = "table_row"
    IMAGE = "image"

    @property
    def heading_level(self) -> int | None:
        if self.value.startswith("heading_"):
            return int(self.value[-1])
        return None


DEFAULT_CODE_LANGUAGE = "plain text"


@dataclass
class Block:
    """One node of a content tree.

    Kind-specific fields are only meaningful for their kind:

    * ``language`` -- code
    * ``table_width``, ``has_column_header``, ``has_row_header`` -- table
      (rows live in ``children`` as ``TABLE_ROW`` blocks)
    * ``cells`` -- table_row
    * ``url``, ``caption`` -- image
    """

    kind: BlockKind
    rich_text: list[RichText] = field(default_factory=list)
    children: list[Block] = field(default_factory=list)
    color: str = "default"
    language: str | None = None
    table_width: int = 0
    has_column_header: bool = False
    has_row_header: bool = False
    cells: list[list[RichText]] = field(default_factory=list)
    url: str | None = None
    caption: list[RichText] = field(default_factory=list)

    # -- constructors ------------------------------------------------------

    @classmethod
    def paragraph(cls, rich_text: list[RichText]) -> Block:
        return cls(BlockKind.PARAGRAPH, rich_text=rich_text)

    @classmethod
    def heading(cls, level: int, rich_text: list[RichText]) -> Block:
        level = min(max(level, 1), 3)
        return cls(BlockKind(f"heading_{level}"), rich_text=rich_text)

    @classmethod
    def bulleted(cls, rich_text: list[RichText], children: list[Block] | None = None) -> Block:
        return cls(BlockKind.BULLETED_LIST_ITEM, rich_text=rich_text, children=children or [])

    @classmethod
    def numbered(cls, rich_text: list[RichText], children: list[Block] | None = None) -> Block:
        return cls(BlockKind.NUMBERED_LIST_ITEM, rich_text=rich_text, children=children or [])

    @classmethod
    def code(cls, content: str, language: str | None = None) -> Block:
        return cls(
            BlockKind.CODE,
            rich_text=[RichText.text(content)] if content else [],
            language=language or DEFAULT_CODE_LANGUAGE,
        )

    @classmethod
    def quote(cls, rich_text: list[RichText]) -> Block:
        return cls(BlockKind.QUOTE, rich_text=rich_text)

    @classmethod
    def table(
        cls,
        rows: list[list[list[RichText]]],
        *,
        has_column_header: bool = False,
        has_row_header: bool = False,
        table_width: int | None = None,
    ) -> Block:
        width = table_width if table_width is not None else (len(rows[0]) if rows else 0)
        return cls(
            BlockKind.TABLE,
            children=[cls.table_row(row) for row in rows],
            table_width=width,
            has_column_header=has_column_header,
            has_row_header=has_row_header,
        )

    @classmethod
    def table_row(cls, cells: list[list[RichText]]) -> Block:
        return cls(BlockKind.TABLE_ROW, cells=cells)

    @classmethod
    def image(cls, url: str, caption: list[RichText] | None = None) -> Block:
        return cls(BlockKind.IMAGE, url=url, caption=caption or [])

    # -- helpers -----------------------------------------------------------

    def plain_text(self) -> str:
        return plain_text(self.rich_text)


@dataclass
class ConversionResult:
    """Output of a markdown-to-blocks conversion.

    Attributes
    ----------
    blocks:
        Top-level blocks in document order.
    batches:
        The same blocks split into submission batches of at most 100.
    """

    blocks: list[Block] = field(default_factory=list)
    batches: list[list[Block]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

@dataclass
class DocumentRecord:
    """Header metadata stored at the top of a local document.

    ``extra`` keeps any keys this package does not own so that rewriting
    the header never drops user data.
    """

    title: str | None = None
    notion_id: str | None = None
    notion_synced_at: datetime | None = None
    content_hash: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class FileEntry:
    """A markdown document discovered under a sync root.

    Attributes
    ----------
    path:
        Absolute path on disk.
    relative_path:
        POSIX-style path relative to the sync root.
    depth:
        Number of directories between the root and the file.
    parent_path:
        Relative directory of the file, ``None`` at the root.
    filename:
        Base name including the extension.
    """

    path: Path
    relative_path: str
    depth: int
    parent_path: str | None
    filename: str

    @classmethod
    def from_path(cls, path: Path, root: Path) -> FileEntry:
        rel = PurePosixPath(path.relative_to(root).as_posix())
        parent = rel.parent.as_posix()
        return cls(
            path=path,
            relative_path=rel.as_posix(),
            depth=len(rel.parts) - 1,
            parent_path=None if parent == "." else parent,
            filename=rel.name,
        )

    @property
    def directory(self) -> str:
        """Relative directory, ``""`` for the root."""
        return self.parent_path or ""

    @property
    def is_index(self) -> bool:
        return self.filename.lower() == "index.md"


@dataclass
class RemotePage:
    """Metadata of a remote page as returned by the connector."""

    id: str
    title: str = "Untitled"
    last_edited_at: datetime | None = None
    parent_id: str | None = None


@dataclass
class LocalState:
    """What the conflict resolver needs to know about a local document."""

    path: str
    modified_at: datetime | None
    synced_at: datetime | None
    notion_id: str | None = None


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------

class ConflictStatus(str, Enum):
    """Outcome of comparing a local document against its remote page."""

    NO_CONFLICT = "no_conflict"
    REMOTE_NEWER = "remote_newer"
    LOCAL_NEWER = "local_newer"
    BOTH_MODIFIED = "both_modified"
    NEW_PAGE = "new_page"


_CONFLICT_MESSAGES: dict[ConflictStatus, str] = {
    ConflictStatus.BOTH_MODIFIED: "both modified since last sync",
    ConflictStatus.REMOTE_NEWER: "Notion page is newer",
    ConflictStatus.LOCAL_NEWER: "local file is newer",
}


@dataclass(frozen=True)
class ConflictEntry:
    """A document that needs a human decision before it can be pulled."""

    path: str
    notion_id: str
    status: ConflictStatus
    local_modified_at: datetime | None = None
    remote_modified_at: datetime | None = None

    def format(self) -> str:
        message = _CONFLICT_MESSAGES.get(self.status, self.status.value)
        return f"{self.path} - {message}"


@dataclass(frozen=True)
class Resolution:
    """Decision returned by the conflict resolver.

    ``action`` is ``"update"`` (carrying the remote page to write back),
    ``"skip"``, or ``"conflict"`` (carrying the entry to report).
    """

    action: Literal["update", "skip", "conflict"]
    remote: RemotePage | None = None
    entry: ConflictEntry | None = None

    @classmethod
    def update(cls, remote: RemotePage) -> Resolution:
        return cls("update", remote=remote)

    @classmethod
    def skip(cls) -> Resolution:
        return cls("skip")

    @classmethod
    def conflict(cls, entry: ConflictEntry) -> Resolution:
        return cls("conflict", entry=entry)


# ---------------------------------------------------------------------------
# Run results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DocumentError:
    """A per-document failure recorded during a run."""

    path: str
    reason: str
    message: str


@dataclass
class SyncResult:
    """Accumulated outcome of a push run."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[DocumentError] = field(default_factory=list)

    def add_error(self, path: str, reason: str, message: str) -> None:
        self.errors.append(DocumentError(path, reason, message))

    @property
    def total_count(self) -> int:
        return len(self.created) + len(self.updated) + len(self.skipped) + len(self.errors)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @classmethod
    def merge_passes(cls, first: SyncResult, second: SyncResult) -> SyncResult:
        """Combine the two passes of a link-resolving run.

        Pages are created in the first pass only; the second pass decides
        what was updated or skipped.  A page created in the first pass and
        rewritten in the second counts as created.  Errors from both passes
        are kept.
        """
        created = set(first.created)
        return cls(
            created=list(first.created),
            updated=[p for p in second.updated if p not in created],
            skipped=[p for p in second.skipped if p not in created],
            errors=list(first.errors) + list(second.errors),
        )

    def format(self, *, dry_run: bool = False) -> str:
        prefix = "[DRY RUN] " if dry_run else ""
        lines = [
            f"{prefix}Sync Complete",
            "=============",
            f"Created: {len(self.created)}",
            f"Updated: {len(self.updated)}",
            f"Skipped: {len(self.skipped)}",
            f"Errors:  {len(self.errors)}",
        ]
        if self.errors:
            lines += ["", "Errors:"]
            lines += [f"  {e.path}: {e.message}" for e in self.errors]
        return "\n".join(lines)


@dataclass
class PullResult:
    """Accumulated outcome of a pull run."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    conflicts: list[ConflictEntry] = field(default_factory=list)
    errors: list[DocumentError] = field(default_factory=list)

    def add_error(self, path: str, reason: str, message: str) -> None:
        self.errors.append(DocumentError(path, reason, message))

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def format(self, *, dry_run: bool = False) -> str:
        prefix = "[DRY RUN] " if dry_run else ""
        lines = [
            f"{prefix}Pull Complete",
            "=============",
            f"Created: {len(self.created)}",
            f"Updated: {len(self.updated)}",
            f"Skipped: {len(self.skipped)}",
            f"Conflicts: {len(self.conflicts)}",
            f"Errors:  {len(self.errors)}",
        ]
        if self.conflicts:
            lines += ["", "Conflicts (require manual resolution):"]
            lines += [f"  {c.format()}" for c in self.conflicts]
        if self.errors:
            lines += ["", "Errors:"]
            lines += [f"  {e.path}: {e.message}" for e in self.errors]
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

class AuditStatus(str, Enum):
    """How a document or page compares across the two trees."""

    SYNCED = "synced"
    STALE = "stale"
    LOCAL_ONLY = "local_only"
    NOTION_ONLY = "notion_only"


ORPHAN_FILE = "[orphan page]"

_AUDIT_ACTIONS: dict[AuditStatus, str] = {
    AuditStatus.SYNCED: "none",
    AuditStatus.STALE: "update",
    AuditStatus.LOCAL_ONLY: "create",
    AuditStatus.NOTION_ONLY: "delete",
}

_AUDIT_HEADERS: tuple[str, ...] = ("File", "Title", "Local", "Notion", "Synced At", "Action")


@dataclass(frozen=True)
class AuditEntry:
    """One row of an audit report.

    ``notion_status`` is ``"unknown"`` for a document whose stored page
    was not found below the audited root; such a document counts as
    local only.
    """

    file: str
    title: str
    local_status: Literal["exists", "missing"]
    notion_status: Literal["exists", "missing", "unknown"]
    notion_id: str | None = None
    synced_at: datetime | None = None
    stale: bool = False

    @classmethod
    def synced(cls, file: str, title: str, notion_id: str, synced_at: datetime | None) -> AuditEntry:
        return cls(file, title, "exists", "exists", notion_id, synced_at)

    @classmethod
    def stale_page(cls, file: str, title: str, notion_id: str, synced_at: datetime | None) -> AuditEntry:
        return cls(file, title, "exists", "exists", notion_id, synced_at, stale=True)

    @classmethod
    def local_only(cls, file: str, title: str) -> AuditEntry:
        return cls(file, title, "exists", "missing")

    @classmethod
    def unverified(cls, file: str, title: str, notion_id: str, synced_at: datetime | None) -> AuditEntry:
        return cls(file, title, "exists", "unknown", notion_id, synced_at)

    @classmethod
    def notion_only(cls, notion_id: str, title: str) -> AuditEntry:
        return cls(ORPHAN_FILE, title, "missing", "exists", notion_id)

    @property
    def status(self) -> AuditStatus:
        if self.local_status == "missing":
            return AuditStatus.NOTION_ONLY
        if self.notion_status != "exists":
            return AuditStatus.LOCAL_ONLY
        return AuditStatus.STALE if self.stale else AuditStatus.SYNCED

    @property
    def action_needed(self) -> str:
        return _AUDIT_ACTIONS[self.status]

    def row(self) -> list[str]:
        """Cells for :meth:`AuditReport.format`."""
        if self.notion_status == "exists":
            remote = f"Y ({self.notion_id[:8]})" if self.notion_id else "Y"
        elif self.notion_status == "unknown":
            remote = f"? ({self.notion_id[:8]})" if self.notion_id else "?"
        else:
            remote = "-"
        return [
            self.file,
            _truncate(self.title, 30),
            "Y" if self.local_status == "exists" else "-",
            remote,
            self.synced_at.strftime("%Y-%m-%d %H:%M") if self.synced_at else "-",
            "-" if self.action_needed == "none" else self.action_needed.upper(),
        ]


@dataclass
class AuditReport:
    """Entries of an audit run, local documents first."""

    entries: list[AuditEntry] = field(default_factory=list)

    def by_status(self, status: AuditStatus) -> list[AuditEntry]:
        return [e for e in self.entries if e.status is status]

    def counts(self) -> dict[AuditStatus, int]:
        counts = {status: 0 for status in AuditStatus}
        for entry in self.entries:
            counts[entry.status] += 1
        return counts

    def summary(self) -> str:
        counts = self.counts()
        return (
            f"Summary: {counts[AuditStatus.SYNCED]} synced, {counts[AuditStatus.STALE]} stale, "
            f"{counts[AuditStatus.LOCAL_ONLY]} local-only, {counts[AuditStatus.NOTION_ONLY]} notion-only"
        )

    def format(self) -> str:
        rows = [list(_AUDIT_HEADERS)] + [entry.row() for entry in self.entries]
        widths = [max(len(row[i]) for row in rows) for i in range(len(_AUDIT_HEADERS))]
        lines = [" | ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip() for row in rows]
        lines.insert(1, "-+-".join("-" * w for w in widths))
        return "\n".join(lines + ["", self.summary()])


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."
