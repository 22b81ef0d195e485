"""Shared test fixtures for the notionsync test suite."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from pathlib import Path

import pytest

from notionsync.config import NotionSyncConfig
from notionsync.converter.blocks_to_markdown import BlocksToMarkdown
from notionsync.converter.markdown_to_blocks import MarkdownToBlocks
from notionsync.errors import ApiError
from notionsync.models import Block, RemotePage


@pytest.fixture
def config() -> NotionSyncConfig:
    """Default test configuration with a dummy token."""
    return NotionSyncConfig(token="test_token_1234")


@pytest.fixture
def converter(config: NotionSyncConfig) -> MarkdownToBlocks:
    """Markdown-to-blocks converter using the default test config."""
    return MarkdownToBlocks(config)


@pytest.fixture
def renderer() -> BlocksToMarkdown:
    """Blocks-to-markdown renderer with metadata preservation on."""
    return BlocksToMarkdown(preserve_metadata=True)


# ---------------------------------------------------------------------------
# In-memory remote store
# ---------------------------------------------------------------------------

def _remote_now() -> datetime:
    # The remote store reports edit times rounded down to the minute.
    return datetime.now(timezone.utc).replace(second=0, microsecond=0)


class FakeConnector:
    """In-memory :class:`~notionsync.connector.RemoteConnector`.

    Pages live in ``self.pages`` keyed by id.  Every call is recorded in
    ``self.calls`` as ``(method, first_argument)``.  Titles listed in
    ``fail_titles`` make ``create_page`` raise :class:`ApiError`.
    """

    def __init__(self, root_id: str = "root-page") -> None:
        self.root_id = root_id
        self.pages: dict[str, dict] = {
            root_id: {"title": "Root", "parent": None, "blocks": [], "edited": None},
        }
        self.calls: list[tuple[str, str]] = []
        self.fail_titles: set[str] = set()
        self.fail_pages: set[str] = set()
        self._ids = itertools.count(1)

    # -- helpers -----------------------------------------------------------

    def add_page(
        self,
        title: str,
        parent_id: str | None = None,
        blocks: list[Block] | None = None,
        edited: datetime | None = None,
        page_id: str | None = None,
    ) -> str:
        page_id = page_id or self._new_id()
        self.pages[page_id] = {
            "title": title,
            "parent": parent_id or self.root_id,
            "blocks": list(blocks or []),
            "edited": edited or datetime(2026, 1, 1, tzinfo=timezone.utc),
        }
        return page_id

    def children_of(self, page_id: str) -> list[str]:
        return [pid for pid, page in self.pages.items() if page["parent"] == page_id]

    def titles_under(self, page_id: str) -> list[str]:
        return [self.pages[pid]["title"] for pid in self.children_of(page_id)]

    def calls_named(self, method: str) -> list[str]:
        return [arg for name, arg in self.calls if name == method]

    def _new_id(self) -> str:
        return f"{next(self._ids):032x}"

    # -- RemoteConnector ---------------------------------------------------

    def create_page(self, parent_id: str, title: str, blocks: list[Block]) -> str:
        self.calls.append(("create_page", title))
        if title in self.fail_titles:
            raise ApiError(message=f"cannot create {title}", context={"status_code": 500})
        return self.add_page(title, parent_id, blocks, edited=_remote_now())

    def replace_page_blocks(self, page_id: str, blocks: list[Block]) -> None:
        self.calls.append(("replace_page_blocks", page_id))
        self.pages[page_id]["blocks"] = list(blocks)
        self.pages[page_id]["edited"] = _remote_now()

    def get_page(self, page_id: str) -> RemotePage:
        self.calls.append(("get_page", page_id))
        if page_id in self.fail_pages or page_id not in self.pages:
            raise ApiError(message=f"no page {page_id}", context={"status_code": 404})
        page = self.pages[page_id]
        return RemotePage(
            id=page_id, title=page["title"], last_edited_at=page["edited"], parent_id=page["parent"],
        )

    def get_page_blocks(self, page_id: str) -> list[Block]:
        self.calls.append(("get_page_blocks", page_id))
        return list(self.pages[page_id]["blocks"])

    def list_child_pages(self, page_id: str) -> list[RemotePage]:
        self.calls.append(("list_child_pages", page_id))
        return [
            RemotePage(
                id=pid, title=self.pages[pid]["title"],
                last_edited_at=self.pages[pid]["edited"], parent_id=page_id,
            )
            for pid in self.children_of(page_id)
        ]

    def delete_block(self, block_id: str) -> None:
        self.calls.append(("delete_block", block_id))
        self.pages.pop(block_id, None)


@pytest.fixture
def fake_remote() -> FakeConnector:
    return FakeConnector()


def write_doc(root: Path, rel: str, body: str, **header: str) -> Path:
    """Write a markdown document with an optional YAML header."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    if header:
        lines = "\n".join(f'{key}: "{value}"' for key, value in header.items())
        path.write_text(f"---\n{lines}\n---\n{body}", encoding="utf-8")
    else:
        path.write_text(body, encoding="utf-8")
    return path


@pytest.fixture
def docs_root(tmp_path: Path) -> Path:
    root = tmp_path / "docs"
    root.mkdir()
    return root


@pytest.fixture
def make_doc(docs_root: Path):
    """Return a ``make_doc(rel, body, **header)`` writer rooted at ``docs_root``."""

    def _make(rel: str, body: str, **header: str) -> Path:
        return write_doc(docs_root, rel, body, **header)

    return _make
