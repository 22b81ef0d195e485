"""Encode and decode the remote block JSON format.

Remote blocks look like::

    {
        "object": "block",
        "type": "paragraph",
        "paragraph": {"rich_text": [...], "color": "default", "children": [...]}
    }

Tables, table rows, code and image blocks carry their own fields (width and
header flags, cell arrays, language and caption, external URL).

Rich-text elements are either literal text::

    {"type": "text", "text": {"content": "hi", "link": {"url": "..."}},
     "annotations": {...}, "plain_text": "hi", "href": "..."}

or a page mention::

    {"type": "mention", "mention": {"type": "page", "page": {"id": "..."}},
     "annotations": {...}, "plain_text": "Other page", "href": "..."}

Block types outside :class:`~notionsync.models.BlockKind` are skipped when
decoding.
"""

from __future__ import annotations

from typing import Any

from notionsync.link_index import page_url
from notionsync.models import (
    DEFAULT_CODE_LANGUAGE,
    Annotations,
    Block,
    BlockKind,
    RichText,
)
from notionsync.observability import get_logger
from notionsync.utils.text_split import RICH_TEXT_LIMIT, split_string

log = get_logger("notionsync.converter")

_KINDS_BY_TYPE: dict[str, BlockKind] = {kind.value: kind for kind in BlockKind}

_TEXT_KINDS: frozenset[BlockKind] = frozenset({
    BlockKind.PARAGRAPH,
    BlockKind.HEADING_1,
    BlockKind.HEADING_2,
    BlockKind.HEADING_3,
    BlockKind.BULLETED_LIST_ITEM,
    BlockKind.NUMBERED_LIST_ITEM,
    BlockKind.QUOTE,
})


# ---------------------------------------------------------------------------
# Rich text
# ---------------------------------------------------------------------------

def rich_text_from_remote(items: list[dict[str, Any]] | None) -> list[RichText]:
    """Decode a remote rich-text array.

    Page mentions become mention spans.  Other mention types (users,
    dates, databases) and equations keep their ``plain_text`` as literal
    text, linked to their ``href`` when there is one.
    """
    spans: list[RichText] = []
    for item in items or []:
        annotations = _annotations_from_remote(item.get("annotations"))
        item_type = item.get("type", "text")

        if item_type == "text":
            text = item.get("text") or {}
            link = (text.get("link") or {}).get("url") or item.get("href")
            spans.append(RichText(
                content=text.get("content", item.get("plain_text", "")),
                annotations=annotations,
                link=link,
            ))
            continue

        mention = item.get("mention") or {}
        if item_type == "mention" and mention.get("type") == "page":
            spans.append(RichText(
                content=item.get("plain_text", ""),
                kind="mention",
                annotations=annotations,
                mention_id=(mention.get("page") or {}).get("id"),
            ))
            continue

        spans.append(RichText(
            content=item.get("plain_text", ""),
            annotations=annotations,
            link=item.get("href"),
        ))
    return spans


def rich_text_to_remote(spans: list[RichText]) -> list[dict[str, Any]]:
    """Encode spans as a remote rich-text array.

    Text content longer than the per-element limit is split into several
    elements with identical annotations and link.
    """
    items: list[dict[str, Any]] = []
    for span in spans:
        annotations = _annotations_to_remote(span.annotations)

        if span.is_mention and span.mention_id:
            items.append({
                "type": "mention",
                "mention": {"type": "page", "page": {"id": span.mention_id}},
                "annotations": annotations,
                "plain_text": span.content,
                "href": page_url(span.mention_id),
            })
            continue

        chunks = split_string(span.content, RICH_TEXT_LIMIT) if span.content else [""]
        for chunk in chunks:
            items.append({
                "type": "text",
                "text": {
                    "content": chunk,
                    "link": {"url": span.link} if span.link else None,
                },
                "annotations": dict(annotations),
                "plain_text": chunk,
                "href": span.link,
            })
    return items


def _annotations_from_remote(data: dict[str, Any] | None) -> Annotations:
    data = data or {}
    return Annotations(
        bold=bool(data.get("bold", False)),
        italic=bool(data.get("italic", False)),
        strikethrough=bool(data.get("strikethrough", False)),
        underline=bool(data.get("underline", False)),
        code=bool(data.get("code", False)),
        color=data.get("color") or "default",
    )


def _annotations_to_remote(annotations: Annotations) -> dict[str, Any]:
    return {
        "bold": annotations.bold,
        "italic": annotations.italic,
        "strikethrough": annotations.strikethrough,
        "underline": annotations.underline,
        "code": annotations.code,
        "color": annotations.color,
    }


# ---------------------------------------------------------------------------
# Blocks: remote -> model
# ---------------------------------------------------------------------------

def blocks_from_remote(blocks: list[dict[str, Any]]) -> list[Block]:
    """Decode remote block dicts into :class:`Block` nodes.

    Children are read from the block payload's ``children`` list (the
    connector attaches fetched children there).
    """
    decoded: list[Block] = []
    for raw in blocks:
        block = block_from_remote(raw)
        if block is not None:
            decoded.append(block)
    return decoded


def block_from_remote(raw: dict[str, Any]) -> Block | None:
    """Decode one remote block, or return ``None`` for unsupported types."""
    block_type = raw.get("type", "")
    kind = _KINDS_BY_TYPE.get(block_type)
    data = raw.get(block_type)
    if kind is None or not isinstance(data, dict):
        log.debug(
            "remote block type skipped",
            extra={"extra_fields": {"op": "blocks_from_remote", "block_type": block_type}},
        )
        return None

    children = blocks_from_remote(data.get("children") or [])

    if kind in _TEXT_KINDS:
        return Block(
            kind,
            rich_text=rich_text_from_remote(data.get("rich_text")),
            children=children,
            color=data.get("color") or "default",
        )

    if kind is BlockKind.CODE:
        return Block(
            kind,
            rich_text=rich_text_from_remote(data.get("rich_text")),
            language=data.get("language") or DEFAULT_CODE_LANGUAGE,
        )

    if kind is BlockKind.TABLE:
        return Block(
            kind,
            children=children,
            table_width=data.get("table_width") or 0,
            has_column_header=bool(data.get("has_column_header", False)),
            has_row_header=bool(data.get("has_row_header", False)),
        )

    if kind is BlockKind.TABLE_ROW:
        return Block(kind, cells=[rich_text_from_remote(cell) for cell in data.get("cells") or []])

    # BlockKind.IMAGE: "external" or uploaded "file" sources.
    source = data.get(data.get("type", "external")) or {}
    return Block(
        kind,
        url=source.get("url"),
        caption=rich_text_from_remote(data.get("caption")),
    )


# ---------------------------------------------------------------------------
# Blocks: model -> remote
# ---------------------------------------------------------------------------

def blocks_to_remote(blocks: list[Block]) -> list[dict[str, Any]]:
    """Encode :class:`Block` nodes as remote block dicts."""
    return [block_to_remote(block) for block in blocks]


def block_to_remote(block: Block) -> dict[str, Any]:
    block_type = block.kind.value
    data: dict[str, Any]

    if block.kind is BlockKind.CODE:
        data = {
            "rich_text": rich_text_to_remote(block.rich_text),
            "language": block.language or DEFAULT_CODE_LANGUAGE,
            "caption": [],
        }
    elif block.kind is BlockKind.TABLE:
        data = {
            "table_width": block.table_width,
            "has_column_header": block.has_column_header,
            "has_row_header": block.has_row_header,
            "children": blocks_to_remote(block.children),
        }
    elif block.kind is BlockKind.TABLE_ROW:
        data = {"cells": [rich_text_to_remote(cell) for cell in block.cells]}
    elif block.kind is BlockKind.IMAGE:
        data = {
            "type": "external",
            "external": {"url": block.url},
            "caption": rich_text_to_remote(block.caption),
        }
    else:
        data = {
            "rich_text": rich_text_to_remote(block.rich_text),
            "color": block.color,
        }
        if block.children:
            data["children"] = blocks_to_remote(block.children)

    return {"object": "block", "type": block_type, block_type: data}
