"""Tests for NotionConnector against a mocked HTTP layer."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from notionsync.config import NotionSyncConfig
from notionsync.connector import NotionConnector, RemoteConnector
from notionsync.errors import NotFoundError
from notionsync.models import Block, BlockKind, RichText


def paragraph(block_id: str, text: str, **extra) -> dict:
    return {
        "object": "block", "id": block_id, "type": "paragraph",
        "paragraph": {"rich_text": [{"type": "text", "text": {"content": text}, "plain_text": text}]},
        **extra,
    }


def listing(results: list[dict]) -> dict:
    return {"object": "list", "results": results, "has_more": False, "next_cursor": None}


class FakeNotionAPI:
    """Routes requests by ``(method, path)`` and records every call."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], dict] = {}
        self.calls: list[tuple[str, str, dict | None]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1")
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, path, body))
        if (request.method, path) in self.routes:
            return httpx.Response(200, json=self.routes[(request.method, path)])
        if request.method in ("PATCH", "DELETE"):
            return httpx.Response(200, json={})
        return httpx.Response(404, json={"message": f"no route {path}"})

    def called(self, method: str) -> list[str]:
        return [path for m, path, _ in self.calls if m == method]


@pytest.fixture
def api() -> FakeNotionAPI:
    return FakeNotionAPI()


@pytest.fixture
def connector(api) -> NotionConnector:
    config = NotionSyncConfig(token="test_token_1234", min_request_interval=0, max_nesting_depth=3)
    client = httpx.Client(base_url=config.base_url, transport=httpx.MockTransport(api))
    return NotionConnector(config, client=client)


class TestProtocol:
    def test_satisfies_remote_connector(self, connector):
        assert isinstance(connector, RemoteConnector)


class TestCreatePage:
    def test_small_page_in_one_call(self, api, connector):
        api.routes[("POST", "/pages")] = {"id": "new-page"}
        page_id = connector.create_page("root", "Hello", [Block.paragraph([RichText.text("x")])])
        assert page_id == "new-page"
        _, _, body = api.calls[0]
        assert body["parent"] == {"page_id": "root"}
        assert body["properties"]["title"]["title"][0]["text"]["content"] == "Hello"
        assert len(body["children"]) == 1
        assert api.called("PATCH") == []

    def test_large_page_appends_remaining_batches(self, api, connector):
        api.routes[("POST", "/pages")] = {"id": "big"}
        blocks = [Block.paragraph([RichText.text(f"p{i}")]) for i in range(250)]
        connector.create_page("root", "Big", blocks)
        assert len(api.calls[0][2]["children"]) == 100
        appends = [body for method, _, body in api.calls if method == "PATCH"]
        assert [len(b["children"]) for b in appends] == [100, 50]
        assert api.called("PATCH") == ["/blocks/big/children"] * 2


class TestReplacePageBlocks:
    def test_deletes_content_but_keeps_child_pages(self, api, connector):
        api.routes[("GET", "/blocks/p1/children")] = listing([
            paragraph("b1", "old"),
            {"object": "block", "id": "c1", "type": "child_page", "child_page": {"title": "Sub"}},
            paragraph("b2", "older"),
        ])
        connector.replace_page_blocks("p1", [Block.heading(1, [RichText.text("New")])])
        assert api.called("DELETE") == ["/blocks/b1", "/blocks/b2"]
        appended = [body for method, _, body in api.calls if method == "PATCH"][0]
        assert appended["children"][0]["type"] == "heading_1"

    def test_empty_replacement_only_deletes(self, api, connector):
        api.routes[("GET", "/blocks/p1/children")] = listing([paragraph("b1", "old")])
        connector.replace_page_blocks("p1", [])
        assert api.called("DELETE") == ["/blocks/b1"]
        assert api.called("PATCH") == []


class TestReads:
    def test_get_page(self, api, connector):
        api.routes[("GET", "/pages/p1")] = {
            "id": "p1",
            "last_edited_time": "2026-03-01T10:15:00.000Z",
            "parent": {"type": "page_id", "page_id": "root"},
            "properties": {"title": {"title": [{"plain_text": "Guide"}]}},
        }
        page = connector.get_page("p1")
        assert page.title == "Guide"
        assert page.parent_id == "root"
        assert page.last_edited_at == datetime(2026, 3, 1, 10, 15, tzinfo=timezone.utc)

    def test_get_page_not_found(self, connector):
        with pytest.raises(NotFoundError):
            connector.get_page("missing")

    def test_get_page_blocks_fetches_nested_children(self, api, connector):
        item = {
            "object": "block", "id": "li", "type": "bulleted_list_item", "has_children": True,
            "bulleted_list_item": {"rich_text": [{"type": "text", "text": {"content": "a"}}]},
        }
        api.routes[("GET", "/blocks/p1/children")] = listing([item])
        api.routes[("GET", "/blocks/li/children")] = listing([paragraph("n1", "nested")])
        blocks = connector.get_page_blocks("p1")
        assert blocks[0].kind is BlockKind.BULLETED_LIST_ITEM
        assert blocks[0].children[0].plain_text() == "nested"

    def test_child_pages_are_not_descended(self, api, connector):
        api.routes[("GET", "/blocks/p1/children")] = listing([
            {"object": "block", "id": "c1", "type": "child_page", "has_children": True,
             "child_page": {"title": "Sub"}},
        ])
        assert connector.get_page_blocks("p1") == []
        assert api.called("GET") == ["/blocks/p1/children"]

    def test_list_child_pages(self, api, connector):
        api.routes[("GET", "/blocks/p1/children")] = listing([
            paragraph("b1", "text"),
            {"object": "block", "id": "c1", "type": "child_page", "child_page": {"title": "Sub"},
             "last_edited_time": "2026-03-01T10:00:00.000Z"},
        ])
        pages = connector.list_child_pages("p1")
        assert [(p.id, p.title, p.parent_id) for p in pages] == [("c1", "Sub", "p1")]

    def test_delete_block(self, api, connector):
        connector.delete_block("b1")
        assert api.called("DELETE") == ["/blocks/b1"]
