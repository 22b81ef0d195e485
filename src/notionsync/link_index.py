"""Bidirectional mapping between local document paths and remote page ids.

The index is built once per run by scanning every document under the sync
root and reading the page id stored in its header.  It is used in both
directions:

* push -- ``[text](other.md#anchor)`` becomes a page mention (or a
  ``https://notion.so/<id>`` link) for the document that owns the page;
* pull -- ``https://www.notion.so/<id>#anchor`` becomes ``other.md#anchor``.

Paths are stored relative to the root, POSIX-style.  Forward lookups are
case-insensitive and ignore a leading ``./``.
"""

from __future__ import annotations

import posixpath
import re
from pathlib import Path
from typing import Literal, NamedTuple

from notionsync.errors import FrontmatterError, LocalIOError, SourceDirectoryError
from notionsync.frontmatter import read_document
from notionsync.observability import get_logger

log = get_logger("notionsync.link_index")

NOTION_URL_PREFIXES: tuple[str, ...] = ("https://notion.so/", "https://www.notion.so/")

_NOTION_URL_RE = re.compile(r"^https://(www\.)?notion\.so/")
_TRAILING_ID_RE = re.compile(r"([0-9a-fA-F]{32})$")


class LinkTarget(NamedTuple):
    """Result of :meth:`LinkIndex.resolve_for_mention`.

    ``kind`` is ``"mention"`` (``value`` is a page id) or ``"link"``
    (``value`` is the href to keep).
    """

    kind: Literal["mention", "link"]
    value: str


# ---------------------------------------------------------------------------
# Path and id helpers
# ---------------------------------------------------------------------------

def normalize_path(path: str) -> str:
    """Case-fold *path* and strip any leading ``./``."""
    while path.startswith("./"):
        path = path[2:]
    return path.lower()


def split_anchor(href: str) -> tuple[str, str | None]:
    path, sep, anchor = href.partition("#")
    return path, (anchor if sep else None)


def is_external(href: str) -> bool:
    return href.startswith(("http://", "https://"))


def is_document_link(href: str) -> bool:
    """Return ``True`` for hrefs that point at another markdown document."""
    path, _ = split_anchor(href)
    return bool(path) and not is_external(href) and path.lower().endswith(".md")


def resolve_relative(path: str, current_path: str | None) -> str:
    """Resolve *path* against the directory of *current_path*.

    The result is normalised (``..`` and ``.`` collapsed) and case-folded.
    """
    path = normalize_path(path)
    if current_path:
        path = posixpath.join(posixpath.dirname(current_path), path)
    return normalize_path(posixpath.normpath(path))


def is_notion_url(href: str) -> bool:
    return href.startswith(NOTION_URL_PREFIXES)


def compact_id(page_id: str) -> str:
    """Canonical form of a page id: lower-case hex without hyphens."""
    return page_id.replace("-", "").lower()


def extract_notion_id(url_or_id: str) -> str:
    """Strip scheme, host, anchor and query from a remote page URL.

    Slugged URLs such as ``https://www.notion.so/My-Page-<32 hex>`` reduce
    to the trailing id.
    """
    bare = _NOTION_URL_RE.sub("", url_or_id)
    bare = bare.split("#", 1)[0].split("?", 1)[0]
    if _looks_like_uuid(bare):
        return bare
    match = _TRAILING_ID_RE.search(bare)
    return match.group(1) if match else bare


def _looks_like_uuid(value: str) -> bool:
    return re.fullmatch(r"[0-9a-fA-F-]{32,36}", value) is not None


def page_url(page_id: str) -> str:
    return f"https://notion.so/{page_id}"


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------

class LinkIndex:
    """Bidirectional ``path <-> page id`` map.

    Parameters
    ----------
    entries:
        Mapping of root-relative document path to stored page id.

    When two paths claim the same id, the lexically first path owns the
    reverse entry and the collision is logged and recorded in
    :attr:`collisions`.
    """

    def __init__(self, entries: dict[str, str] | None = None) -> None:
        self._path_to_id: dict[str, str] = {}
        self._id_to_path: dict[str, str] = {}
        self.collisions: dict[str, list[str]] = {}

        entries = entries or {}
        for path in sorted(entries):
            self.add(path, entries[path])

    @classmethod
    def empty(cls) -> LinkIndex:
        return cls()

    @classmethod
    def build(cls, root: Path) -> LinkIndex:
        """Scan every markdown document under *root*.

        Documents without a stored id are skipped, as are documents whose
        header cannot be read (a warning is logged for those).

        Raises
        ------
        SourceDirectoryError
            If *root* is not a directory.
        """
        root = Path(root)
        if not root.is_dir():
            raise SourceDirectoryError(
                message=f"Directory not found: {root}",
                context={"path": str(root)},
            )

        entries: dict[str, str] = {}
        for path in sorted(root.rglob("*.md")):
            rel = path.relative_to(root).as_posix()
            try:
                record, _ = read_document(path)
            except (FrontmatterError, LocalIOError) as exc:
                log.warning(
                    "document skipped while building link index",
                    extra={"extra_fields": {"path": rel, "reason": exc.reason}},
                )
                continue
            if record.notion_id:
                entries[rel] = record.notion_id

        index = cls(entries)
        log.debug(
            "link index built",
            extra={"extra_fields": {"root": str(root), "documents": len(index)}},
        )
        return index

    def add(self, path: str, page_id: str) -> None:
        """Register *path* as owning *page_id*."""
        key = normalize_path(path)
        self._path_to_id[key] = page_id

        cid = compact_id(page_id)
        owner = self._id_to_path.get(cid)
        if owner is None:
            self._id_to_path[cid] = path
            return
        if owner == path:
            return
        claimants = self.collisions.setdefault(page_id, [owner])
        claimants.append(path)
        if path < owner:
            self._id_to_path[cid] = path
        log.warning(
            "duplicate page id in link index",
            extra={"extra_fields": {
                "notion_id": page_id,
                "paths": sorted(claimants),
                "kept": self._id_to_path[cid],
            }},
        )

    def __len__(self) -> int:
        return len(self._path_to_id)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_path(path) in self._path_to_id

    def page_ids(self) -> set[str]:
        """Every page id the index knows, as stored."""
        return set(self._path_to_id.values())

    def items(self) -> list[tuple[str, str]]:
        """``(normalized path, page id)`` pairs in path order."""
        return sorted(self._path_to_id.items())

    # -- lookups -----------------------------------------------------------

    def path_to_id(self, path: str) -> str | None:
        return self._path_to_id.get(normalize_path(path))

    def id_to_path(self, url_or_id: str) -> str | None:
        return self._id_to_path.get(compact_id(extract_notion_id(url_or_id)))

    # -- resolution --------------------------------------------------------

    def resolve_forward(self, href: str, current_path: str | None = None) -> str:
        """Turn a link to a local document into a remote page URL.

        External, anchor-only and unknown hrefs come back unchanged.  The
        anchor survives resolution.
        """
        target = self._lookup_document(href, current_path)
        if target is None:
            return href
        page_id, anchor = target
        url = page_url(page_id)
        return f"{url}#{anchor}" if anchor else url

    def resolve_reverse(self, href: str, current_path: str | None = None) -> str:
        """Turn a remote page URL into a document path.

        The path is root-relative, or relative to the directory of
        *current_path* when one is given.  Non-remote and unknown URLs come
        back unchanged.  The anchor survives resolution.
        """
        if not is_notion_url(href):
            return href
        path = self.id_to_path(href)
        if path is None:
            return href
        if current_path is not None:
            path = posixpath.relpath(path, posixpath.dirname(current_path) or ".")
        _, anchor = split_anchor(href)
        return f"{path}#{anchor}" if anchor else path

    def resolve_for_mention(self, href: str, current_path: str | None = None) -> LinkTarget:
        """Resolve *href* into a mention target or a plain link.

        Mentions cannot carry an anchor, so it is dropped on a hit.
        """
        target = self._lookup_document(href, current_path)
        if target is None:
            return LinkTarget("link", href)
        return LinkTarget("mention", target[0])

    def _lookup_document(
        self, href: str, current_path: str | None,
    ) -> tuple[str, str | None] | None:
        if is_external(href) or href.startswith("#") or not is_document_link(href):
            return None
        path, anchor = split_anchor(href)
        page_id = self.path_to_id(resolve_relative(path, current_path))
        if page_id is None:
            return None
        return page_id, anchor


def is_child_link(href: str, current_path: str) -> bool:
    """Return ``True`` if *href* points into a sub-directory of *current_path*.

    Siblings, ancestors and targets in the same directory are not child
    links; neither are external or anchor-only hrefs.

    Examples
    --------
    >>> is_child_link("child/index.md", "parent/index.md")
    True
    >>> is_child_link("sibling.md", "parent/index.md")
    False
    >>> is_child_link("../x.md", "parent/child/index.md")
    False
    """
    if is_external(href) or href.startswith("#"):
        return False
    path, _ = split_anchor(href)
    if not path:
        return False

    current_dir = posixpath.dirname(normalize_path(current_path))
    target = posixpath.normpath(posixpath.join(current_dir, normalize_path(path)))
    target_dir = posixpath.dirname(target)

    if target_dir == current_dir or not target_dir or target_dir.startswith(".."):
        return False
    if not current_dir:
        return True
    return target_dir.startswith(current_dir + "/")
