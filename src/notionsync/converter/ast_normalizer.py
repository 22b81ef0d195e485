"""Parse Markdown and normalize to canonical AST tokens.

Wraps mistune v3's AST renderer and maps its raw token stream onto the
small set of canonical types that :mod:`notionsync.converter.markdown_to_blocks`
understands.

Canonical block tokens:
    heading, paragraph, block_quote, list, list_item, block_code, table,
    table_head, table_body, table_row, table_cell, thematic_break, html_block

Canonical inline tokens:
    text, strong, emphasis, codespan, strikethrough, link, image,
    softbreak, linebreak, html_inline
"""

from __future__ import annotations

import mistune

from notionsync.observability import get_logger

log = get_logger("notionsync.converter")

_BLOCK_TYPE_MAP: dict[str, str] = {
    "heading": "heading",
    "paragraph": "paragraph",
    "block_quote": "block_quote",
    "list": "list",
    "list_item": "list_item",
    "block_code": "block_code",
    "table": "table",
    "thematic_break": "thematic_break",
    "block_html": "html_block",
    # Tight list items wrap their inline content in block_text.
    "block_text": "paragraph",
}

_INLINE_TYPE_MAP: dict[str, str] = {
    "text": "text",
    "strong": "strong",
    "emphasis": "emphasis",
    "codespan": "codespan",
    "strikethrough": "strikethrough",
    "link": "link",
    "image": "image",
    "softbreak": "softbreak",
    "linebreak": "linebreak",
    "inline_html": "html_inline",
}

_TABLE_PART_TYPES: frozenset[str] = frozenset({
    "table_head", "table_body", "table_row", "table_cell",
})

_SKIP_TYPES: frozenset[str] = frozenset({"blank_line"})

# Inline HTML tags with a direct rich-text meaning.
_LINEBREAK_TAGS: frozenset[str] = frozenset({"<br>", "<br/>", "<br />"})


class ASTNormalizer:
    """Parse Markdown and normalize to canonical AST tokens."""

    def __init__(self) -> None:
        self._parser = mistune.create_markdown(
            renderer="ast",
            plugins=["strikethrough", "table", "url"],
        )

    def parse(self, markdown: str) -> list[dict]:
        """Parse markdown and return the normalized token list."""
        raw_tokens = self._parser(markdown)
        if isinstance(raw_tokens, str):
            return []
        return self._normalize_tokens(raw_tokens)

    def _normalize_tokens(self, tokens: list[dict]) -> list[dict]:
        result: list[dict] = []
        for token in tokens:
            normalized = self._normalize_token(token)
            if normalized is not None:
                result.append(normalized)
        return result

    def _normalize_token(self, token: dict) -> dict | None:
        raw_type = token.get("type", "")

        if raw_type in _SKIP_TYPES:
            return None

        if raw_type in _BLOCK_TYPE_MAP:
            return self._normalize_block(token, _BLOCK_TYPE_MAP[raw_type])

        if raw_type in _INLINE_TYPE_MAP:
            return self._normalize_inline(token, _INLINE_TYPE_MAP[raw_type])

        if raw_type in _TABLE_PART_TYPES:
            return self._normalize_container(token, raw_type)

        if raw_type == "raw":
            return {"type": "text", "raw": token.get("raw", "")}

        log.debug(
            "markdown token skipped",
            extra={"extra_fields": {"op": "parse", "token_type": raw_type}},
        )
        return None

    def _normalize_block(self, token: dict, canonical_type: str) -> dict:
        if canonical_type == "block_code":
            raw_code = token.get("raw", "")
            if raw_code.endswith("\n"):
                raw_code = raw_code[:-1]
            result: dict = {"type": "block_code", "raw": raw_code}
            info = (token.get("attrs") or {}).get("info")
            if info:
                result["attrs"] = {"info": info}
            return result

        if canonical_type == "html_block":
            return {"type": "html_block", "raw": token.get("raw", "")}

        if canonical_type == "thematic_break":
            return {"type": "thematic_break"}

        return self._normalize_container(token, canonical_type)

    def _normalize_inline(self, token: dict, canonical_type: str) -> dict:
        if canonical_type in ("text", "codespan"):
            return {"type": canonical_type, "raw": token.get("raw", "")}

        if canonical_type in ("softbreak", "linebreak"):
            return {"type": canonical_type}

        if canonical_type == "html_inline":
            raw = token.get("raw", "")
            if raw.strip().lower() in _LINEBREAK_TAGS:
                return {"type": "linebreak"}
            return {"type": "html_inline", "raw": raw}

        return self._normalize_container(token, canonical_type)

    def _normalize_container(self, token: dict, canonical_type: str) -> dict:
        result: dict = {"type": canonical_type}

        attrs = token.get("attrs")
        if attrs:
            result["attrs"] = dict(attrs)

        children = token.get("children")
        if children:
            result["children"] = self._normalize_tokens(children)

        return result
