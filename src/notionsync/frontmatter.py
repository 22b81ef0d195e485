"""Header metadata of local markdown documents.

Each document may start with a YAML header delimited by ``---`` lines::

    ---
    title: "Page Title"
    notion_id: "abc123-def456"
    notion_synced_at: "2026-01-07T10:30:00Z"
    content_hash: "sha256:..."
    ---

    # Content starts here

Everything after the closing delimiter is the body.  Rewrites are whole-file
read-modify-write transactions: the header is loaded, updated, serialised,
and the file is overwritten in one write.  Header keys this package does not
own are kept.
"""

from __future__ import annotations

import os
import re
from datetime import date, datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from notionsync.errors import FrontmatterError, LocalIOError
from notionsync.models import DocumentRecord
from notionsync.observability import get_logger
from notionsync.utils.hashing import compute_content_hash

log = get_logger("notionsync.frontmatter")

FRONTMATTER_RE = re.compile(r"\A---[ \t]*\n(.*?)^---[ \t]*(?:\n|\Z)(.*)\Z", re.DOTALL | re.MULTILINE)

_OWNED_KEYS: tuple[str, ...] = ("title", "notion_id", "notion_synced_at", "content_hash")

_HEADING_RE = re.compile(r"^#[ \t]+(.+)$", re.MULTILINE)


# ---------------------------------------------------------------------------
# Parsing and serialisation
# ---------------------------------------------------------------------------

def parse(content: str, path: str | None = None) -> tuple[DocumentRecord, str]:
    """Split *content* into its header record and body.

    A document without a header, or whose header is not a YAML mapping,
    yields an empty record and the whole content as body.

    Raises
    ------
    FrontmatterError
        If the header is not valid YAML.
    """
    match = FRONTMATTER_RE.match(content)
    if match is None:
        return DocumentRecord(), content

    raw_header, body = match.group(1), match.group(2)
    try:
        data = yaml.safe_load(raw_header) if raw_header.strip() else {}
    except yaml.YAMLError as exc:
        raise FrontmatterError(
            message=f"Invalid YAML header{f' in {path}' if path else ''}: {exc}",
            context={"path": path},
            cause=exc,
        ) from exc

    if not isinstance(data, dict):
        # Not a header: a thematic-break pair around plain text.
        return DocumentRecord(), content

    return _record_from_mapping(data), body


def serialize(record: DocumentRecord) -> str:
    """Render *record* as a delimited header block ending in a newline.

    Owned keys come first, in a fixed order, as double-quoted strings.
    ``None`` values are omitted.
    """
    lines: list[str] = []
    for key in _OWNED_KEYS:
        value = getattr(record, key)
        if value is None:
            continue
        lines.append(f"{key}: {_format_value(value)}")

    for key, value in record.extra.items():
        dumped = yaml.safe_dump(
            {key: value}, default_flow_style=False, allow_unicode=True, sort_keys=False,
        )
        lines.append(dumped.rstrip("\n"))

    return "---\n" + "\n".join(lines) + "\n---\n"


def render_document(record: DocumentRecord, body: str) -> str:
    return serialize(record) + body


def _record_from_mapping(data: dict[str, Any]) -> DocumentRecord:
    title = data.get("title")
    notion_id = data.get("notion_id")
    content_hash = data.get("content_hash")
    return DocumentRecord(
        title=str(title) if title is not None else None,
        notion_id=str(notion_id) if notion_id is not None else None,
        notion_synced_at=parse_timestamp(data.get("notion_synced_at")),
        content_hash=str(content_hash) if content_hash is not None else None,
        extra={k: v for k, v in data.items() if k not in _OWNED_KEYS},
    )


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce a header or API timestamp into an aware UTC datetime.

    Unparseable values become ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _format_value(value: Any) -> str:
    if isinstance(value, datetime):
        return f'"{format_timestamp(value)}"'
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


# ---------------------------------------------------------------------------
# Content hashing
# ---------------------------------------------------------------------------

def compute_hash(body: str) -> str:
    """Return the ``sha256:<hex>`` digest of a document body."""
    return compute_content_hash(body)


def content_changed(body: str, stored_hash: str | None) -> bool:
    """Return ``True`` if *body* differs from what *stored_hash* describes.

    A missing hash always counts as changed.
    """
    if stored_hash is None:
        return True
    return compute_hash(body) != stored_hash


# ---------------------------------------------------------------------------
# File transactions
# ---------------------------------------------------------------------------

def read_document(path: Path) -> tuple[DocumentRecord, str]:
    """Read and parse the document at *path*.

    Raises
    ------
    LocalIOError
        If the file cannot be read.
    FrontmatterError
        If its header is malformed.
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise LocalIOError(
            message=f"Failed to read {path}: {exc.strerror or exc}",
            context={"path": str(path)},
            cause=exc,
        ) from exc
    return parse(content, str(path))


def write_document(path: Path, record: DocumentRecord, body: str) -> None:
    """Overwrite *path* with *record* and *body*, creating directories."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_document(record, body), encoding="utf-8")
    except OSError as exc:
        raise LocalIOError(
            message=f"Failed to write {path}: {exc.strerror or exc}",
            context={"path": str(path)},
            cause=exc,
        ) from exc


def update_file(path: Path, **updates: Any) -> DocumentRecord:
    """Apply *updates* to the header of *path* and rewrite the file.

    Only owned keys may be updated.  Returns the new record.
    """
    unknown = set(updates) - set(_OWNED_KEYS)
    if unknown:
        raise ValueError(f"cannot update header keys: {', '.join(sorted(unknown))}")

    record, body = read_document(path)
    for key, value in updates.items():
        setattr(record, key, value)
    write_document(path, record, body)
    return record


def set_notion_id(
    path: Path,
    notion_id: str,
    body: str | None = None,
    *,
    now: datetime | None = None,
) -> DocumentRecord:
    """Store a freshly created page id, the sync time and the body hash."""
    synced_at = now or sync_timestamp()
    updates: dict[str, Any] = {"notion_id": notion_id, "notion_synced_at": synced_at}
    if body is not None:
        updates["content_hash"] = compute_hash(body)
    record = update_file(path, **updates)
    touch(path, synced_at)
    return record


def update_synced_at(
    path: Path,
    body: str | None = None,
    *,
    now: datetime | None = None,
) -> DocumentRecord:
    """Refresh the sync time and, when *body* is given, the body hash."""
    synced_at = now or sync_timestamp()
    updates: dict[str, Any] = {"notion_synced_at": synced_at}
    if body is not None:
        updates["content_hash"] = compute_hash(body)
    record = update_file(path, **updates)
    touch(path, synced_at)
    return record


def sync_timestamp() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def touch(path: Path, when: datetime) -> None:
    """Set the modification time of *path* to *when*.

    A file written during a sync must not look locally modified after it.
    """
    ts = when.timestamp()
    try:
        os.utime(path, (ts, ts))
    except OSError as exc:
        raise LocalIOError(
            message=f"Failed to touch {path}: {exc.strerror or exc}",
            context={"path": str(path)},
            cause=exc,
        ) from exc


def file_modified_at(path: Path) -> datetime | None:
    """Modification time of *path* in UTC, ``None`` if it does not exist."""
    try:
        return datetime.fromtimestamp(Path(path).stat().st_mtime, tz=timezone.utc)
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise LocalIOError(
            message=f"Failed to stat {path}: {exc.strerror or exc}",
            context={"path": str(path)},
            cause=exc,
        ) from exc


# ---------------------------------------------------------------------------
# Titles
# ---------------------------------------------------------------------------

def humanize(name: str) -> str:
    """``"my-great_doc"`` -> ``"My Great Doc"``."""
    words = re.sub(r"[-_]", " ", name).split()
    return " ".join(word.capitalize() for word in words)


def derive_title_from_path(path: str) -> str:
    """Derive a page title from a document path.

    An index document takes its parent directory's name; the root index
    keeps the literal title ``"Index"``.  Other documents humanize their
    file name.

    Examples
    --------
    >>> derive_title_from_path("docs/architecture/index.md")
    'Architecture'
    >>> derive_title_from_path("index.md")
    'Index'
    >>> derive_title_from_path("my-doc.md")
    'My Doc'
    """
    pure = PurePosixPath(str(path).replace("\\", "/"))
    stem = pure.name[:-3] if pure.name.lower().endswith(".md") else pure.stem
    if stem.lower() == "index":
        parent = pure.parent.name
        return humanize(parent) if parent else "Index"
    return humanize(stem)


def effective_title(record: DocumentRecord, relative_path: str) -> str:
    """Stored title if present, otherwise the path-derived one."""
    if record.title:
        return record.title
    return derive_title_from_path(relative_path)


def extract_title_from_content(body: str) -> str | None:
    match = _HEADING_RE.search(body)
    return match.group(1).strip() if match else None


def ensure_frontmatter(path: Path, root: Path | None = None) -> str | None:
    """Give *path* a header title if it lacks a meaningful one.

    The title is taken from the first level-one heading, falling back to
    the path-derived title (relative to *root* when given).  A literal
    ``"Index"`` counts as missing so that index documents pick up their
    directory name.

    Returns
    -------
    str | None
        The title written, or ``None`` if the document already had one.
    """
    record, body = read_document(path)
    if record.title and record.title != "Index":
        return None

    heading = extract_title_from_content(body)
    rel = Path(path).relative_to(root).as_posix() if root is not None else str(path)
    title = heading if heading and heading != "Index" else derive_title_from_path(rel)
    record.title = title
    write_document(path, record, body)
    log.info(
        "header title added",
        extra={"extra_fields": {"op": "ensure_frontmatter", "path": str(path), "title": title}},
    )
    return title


def ensure_frontmatter_in_directory(root: Path) -> dict[str, str | None]:
    """Run :func:`ensure_frontmatter` on every markdown file under *root*."""
    return {
        str(path): ensure_frontmatter(path, Path(root))
        for path in sorted(Path(root).rglob("*.md"))
    }
