"""Remote connector: the page-level operations the orchestrators rely on.

:class:`RemoteConnector` is the structural interface both orchestrators
depend on; :class:`NotionConnector` implements it on top of the Notion
REST API.  Tests substitute an in-memory fake.

Usage::

    from notionsync import NotionConnector, NotionSyncConfig

    with NotionConnector(NotionSyncConfig(token="secret_xxx")) as remote:
        page_id = remote.create_page(parent_id, "My Page", blocks)
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx

from notionsync.config import NotionSyncConfig
from notionsync.converter.remote_codec import blocks_from_remote, blocks_to_remote
from notionsync.frontmatter import parse_timestamp
from notionsync.models import Block, RemotePage
from notionsync.notion_api.blocks import BlockAPI
from notionsync.notion_api.pages import PageAPI, extract_title, title_property
from notionsync.notion_api.transport import NotionTransport
from notionsync.observability import get_logger
from notionsync.utils.chunk import MAX_BLOCKS_PER_REQUEST, chunk_blocks

log = get_logger("notionsync.connector")


@runtime_checkable
class RemoteConnector(Protocol):
    """Operations against the remote page tree."""

    def create_page(self, parent_id: str, title: str, blocks: list[Block]) -> str:
        """Create a child page of *parent_id* and return its id."""
        ...

    def replace_page_blocks(self, page_id: str, blocks: list[Block]) -> None:
        """Replace the whole content of *page_id* with *blocks*."""
        ...

    def get_page(self, page_id: str) -> RemotePage:
        """Fetch page metadata (title, last edit time)."""
        ...

    def get_page_blocks(self, page_id: str) -> list[Block]:
        """Fetch the full block tree of *page_id*."""
        ...

    def list_child_pages(self, page_id: str) -> list[RemotePage]:
        """List the direct child pages of *page_id*."""
        ...

    def delete_block(self, block_id: str) -> None:
        """Archive a block (or page)."""
        ...


class NotionConnector:
    """:class:`RemoteConnector` backed by the Notion REST API.

    Parameters
    ----------
    config:
        Connection settings.  ``token`` is required.
    client:
        Optional :class:`httpx.Client` handed to the transport.
    """

    def __init__(self, config: NotionSyncConfig, client: httpx.Client | None = None) -> None:
        self._config = config
        self._transport = NotionTransport(config, client=client)
        self._pages = PageAPI(self._transport)
        self._blocks = BlockAPI(self._transport)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_page(self, parent_id: str, title: str, blocks: list[Block]) -> str:
        """Create a page under *parent_id* holding *blocks*.

        The first 100 blocks travel with the create call; the rest are
        appended in batches of 100.

        Returns
        -------
        str
            The new page id.
        """
        payload = blocks_to_remote(blocks)
        first, rest = payload[:MAX_BLOCKS_PER_REQUEST], payload[MAX_BLOCKS_PER_REQUEST:]

        page = self._pages.create(
            parent={"page_id": parent_id},
            properties=title_property(title),
            children=first,
        )
        page_id: str = page["id"]
        self._append(page_id, rest)

        log.info(
            "page created",
            extra={"extra_fields": {
                "op": "create_page", "page_id": page_id, "parent_id": parent_id,
                "blocks": len(payload),
            }},
        )
        return page_id

    def replace_page_blocks(self, page_id: str, blocks: list[Block]) -> None:
        """Archive every existing child of *page_id*, then append *blocks*.

        ``child_page`` entries are kept: a directory page holds its index
        content and its sub-documents side by side.
        """
        deleted = 0
        for block in self._blocks.get_children(page_id):
            block_id = block.get("id")
            if block_id and block.get("type") != "child_page":
                self._blocks.delete(block_id)
                deleted += 1

        payload = blocks_to_remote(blocks)
        self._append(page_id, payload)

        log.info(
            "page content replaced",
            extra={"extra_fields": {
                "op": "replace_page_blocks", "page_id": page_id,
                "blocks_deleted": deleted, "blocks_inserted": len(payload),
            }},
        )

    def delete_block(self, block_id: str) -> None:
        self._blocks.delete(block_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_page(self, page_id: str) -> RemotePage:
        page = self._pages.retrieve(page_id)
        return _remote_page(page)

    def get_page_blocks(self, page_id: str) -> list[Block]:
        """Fetch and decode all blocks of *page_id*, children included.

        Nested children are fetched down to ``max_nesting_depth`` levels.
        """
        raw = self._blocks.get_children(page_id)
        self._fetch_blocks_recursive(raw, current_depth=0, max_depth=self._config.max_nesting_depth)
        return blocks_from_remote(raw)

    def list_child_pages(self, page_id: str) -> list[RemotePage]:
        return [
            RemotePage(
                id=block["id"],
                title=(block.get("child_page") or {}).get("title") or "Untitled",
                last_edited_at=parse_timestamp(block.get("last_edited_time")),
                parent_id=page_id,
            )
            for block in self._blocks.get_children(page_id)
            if block.get("type") == "child_page"
        ]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> NotionConnector:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _append(self, page_id: str, payload: list[dict[str, Any]]) -> None:
        for batch in chunk_blocks(payload):
            self._blocks.append_children(page_id, batch)

    def _fetch_blocks_recursive(
        self,
        blocks: list[dict],
        current_depth: int,
        max_depth: int,
    ) -> None:
        """Attach fetched children under each block's type-specific key."""
        if current_depth >= max_depth:
            return

        for block in blocks:
            block_type = block.get("type", "")
            if not block.get("has_children", False) or block_type == "child_page":
                continue
            block_id = block.get("id")
            if not block_id:
                continue

            children = self._blocks.get_children(block_id)
            if block_type and isinstance(block.get(block_type), dict):
                block[block_type]["children"] = children
            else:
                block["children"] = children

            self._fetch_blocks_recursive(children, current_depth + 1, max_depth)


def _remote_page(page: dict[str, Any]) -> RemotePage:
    parent = page.get("parent") or {}
    return RemotePage(
        id=page.get("id", ""),
        title=extract_title(page),
        last_edited_at=parse_timestamp(page.get("last_edited_time")),
        parent_id=parent.get("page_id"),
    )
