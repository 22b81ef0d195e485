"""Markdown to :class:`~notionsync.models.Block` conversion.

:class:`MarkdownToBlocks` runs a two-stage pipeline:

1. **Parse** -- :class:`ASTNormalizer` turns markdown into canonical tokens.
2. **Build** -- a dispatch table maps each block token onto zero or more
   :class:`Block` nodes, resolving document links on the way.

Supported block tokens:

- heading (levels 1-3 map directly; 4-6 collapse to heading_3)
- paragraph (a paragraph holding a single image becomes an image block;
  oversized paragraphs split into several)
- block_quote (all contained paragraphs flattened into one quote)
- list (bulleted/numbered items with nested sub-lists as children)
- block_code (language from the info string)
- table (header row from ``table_head``)

Thematic breaks and HTML blocks have no block counterpart and are skipped.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from urllib.parse import urlparse

from notionsync.config import NotionSyncConfig
from notionsync.converter.ast_normalizer import ASTNormalizer
from notionsync.converter.rich_text import (
    InlineContext,
    build_rich_text,
    extract_text,
    split_paragraph_spans,
)
from notionsync.link_index import LinkIndex
from notionsync.models import DEFAULT_CODE_LANGUAGE, Block, ConversionResult, RichText
from notionsync.observability import get_logger
from notionsync.utils.chunk import chunk_blocks

log = get_logger("notionsync.converter")

# ---------------------------------------------------------------------------
# Code language mapping
# ---------------------------------------------------------------------------

# The remote store accepts a fixed set of language identifiers.
_NOTION_LANGUAGES: frozenset[str] = frozenset({
    "abap", "arduino", "bash", "basic", "c", "clojure", "coffeescript",
    "c++", "c#", "css", "dart", "diff", "docker", "elixir", "elm",
    "erlang", "flow", "fortran", "f#", "gherkin", "glsl", "go", "graphql",
    "groovy", "haskell", "html", "java", "javascript", "json", "julia",
    "kotlin", "latex", "less", "lisp", "livescript", "lua", "makefile",
    "markdown", "markup", "matlab", "mermaid", "nix", "objective-c",
    "ocaml", "pascal", "perl", "php", "plain text", "powershell",
    "prolog", "protobuf", "python", "r", "reason", "ruby", "rust",
    "sass", "scala", "scheme", "scss", "shell", "sql", "swift",
    "typescript", "vb.net", "verilog", "vhdl", "visual basic",
    "webassembly", "xml", "yaml", "java/c/c++/c#",
})

_LANGUAGE_ALIASES: dict[str, str] = {
    "py": "python",
    "js": "javascript",
    "ts": "typescript",
    "sh": "shell",
    "zsh": "shell",
    "rb": "ruby",
    "rs": "rust",
    "yml": "yaml",
    "md": "markdown",
    "ex": "elixir",
    "exs": "elixir",
    "cs": "c#",
    "cpp": "c++",
    "dockerfile": "docker",
    "make": "makefile",
    "tex": "latex",
    "jsx": "javascript",
    "tsx": "typescript",
    "golang": "go",
    "kt": "kotlin",
    "text": DEFAULT_CODE_LANGUAGE,
    "plaintext": DEFAULT_CODE_LANGUAGE,
    "txt": DEFAULT_CODE_LANGUAGE,
}


def normalize_language(info: str | None) -> str:
    """Map a code fence info string to an accepted language name.

    Examples
    --------
    >>> normalize_language("py")
    'python'
    >>> normalize_language(None)
    'plain text'
    """
    if not info or not info.strip():
        return DEFAULT_CODE_LANGUAGE
    lang = info.strip().lower().split()[0]
    if lang in _NOTION_LANGUAGES:
        return lang
    if lang in _LANGUAGE_ALIASES:
        return _LANGUAGE_ALIASES[lang]
    # "python3" -> "python"
    stripped = re.sub(r"\d+$", "", lang)
    if stripped in _NOTION_LANGUAGES:
        return stripped
    return _LANGUAGE_ALIASES.get(stripped, DEFAULT_CODE_LANGUAGE)


def is_external_image(url: str) -> bool:
    """Only ``http``/``https`` sources can become image blocks."""
    return bool(url) and urlparse(url).scheme in ("http", "https")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class MarkdownToBlocks:
    """Convert markdown text into a flat list of top-level blocks.

    Parameters
    ----------
    config:
        Supplies ``skip_child_links`` and ``max_nesting_depth``.

    Examples
    --------
    >>> result = MarkdownToBlocks().convert("# Hello\\n\\nWorld")
    >>> [b.kind.value for b in result.blocks]
    ['heading_1', 'paragraph']
    """

    def __init__(self, config: NotionSyncConfig | None = None) -> None:
        self._config = config or NotionSyncConfig()
        self._normalizer = ASTNormalizer()

    def convert(
        self,
        markdown: str,
        *,
        link_index: LinkIndex | None = None,
        current_path: str | None = None,
        skip_child_links: bool | None = None,
    ) -> ConversionResult:
        """Parse *markdown* and build blocks.

        Parameters
        ----------
        markdown:
            Document body (header already removed).
        link_index:
            When given, links to other documents become page mentions.
        current_path:
            Root-relative path of the document, for relative links.
        skip_child_links:
            Overrides the configured value.
        """
        if skip_child_links is None:
            skip_child_links = self._config.skip_child_links
        inline = InlineContext(
            link_index=link_index,
            current_path=current_path,
            skip_child_links=skip_child_links,
        )
        tokens = self._normalizer.parse(markdown)
        ctx = _BuildContext(inline, self._config.max_nesting_depth)
        blocks = _process_tokens(tokens, ctx)
        return ConversionResult(blocks=blocks, batches=chunk_blocks(blocks))


class _BuildContext:
    """Settings shared by every handler during one conversion."""

    __slots__ = ("inline", "max_depth")

    def __init__(self, inline: InlineContext, max_depth: int) -> None:
        self.inline = inline
        self.max_depth = max_depth

    def rich_text(self, children: list[dict]) -> list[RichText]:
        return build_rich_text(children, self.inline)


# ---------------------------------------------------------------------------
# Token dispatch
# ---------------------------------------------------------------------------

def _process_tokens(tokens: list[dict], ctx: _BuildContext, depth: int = 0) -> list[Block]:
    produced: list[Block] = []
    for token in tokens:
        produced.extend(_process_token(token, ctx, depth))
    return produced


def _process_token(token: dict, ctx: _BuildContext, depth: int = 0) -> list[Block]:
    token_type = token.get("type", "")
    handler = _BLOCK_HANDLERS.get(token_type)
    if handler is not None:
        return handler(token, ctx, depth)
    log.debug(
        "block token skipped",
        extra={"extra_fields": {"op": "markdown_to_blocks", "token_type": token_type}},
    )
    return []


# ---------------------------------------------------------------------------
# Block builders
# ---------------------------------------------------------------------------

def _build_heading(token: dict, ctx: _BuildContext, depth: int) -> list[Block]:
    level = (token.get("attrs") or {}).get("level", 1)
    return [Block.heading(level, ctx.rich_text(token.get("children", [])))]


def _build_paragraph(token: dict, ctx: _BuildContext, depth: int) -> list[Block]:
    children = token.get("children", [])

    if len(children) == 1 and children[0].get("type") == "image":
        return _build_image(children[0])

    rich_text = ctx.rich_text(children)
    if not rich_text:
        return []
    return [Block.paragraph(group) for group in split_paragraph_spans(rich_text)]


def _build_image(token: dict) -> list[Block]:
    url = (token.get("attrs") or {}).get("url", "")
    if not is_external_image(url):
        # Empty, data: and relative sources cannot be referenced remotely.
        return []
    alt = extract_text(token.get("children", []))
    return [Block.image(url, [RichText.text(alt)] if alt else [])]


def _build_block_quote(token: dict, ctx: _BuildContext, depth: int) -> list[Block]:
    rich_text: list[RichText] = []
    for child in token.get("children", []):
        child_type = child.get("type", "")
        if child_type == "paragraph":
            spans = ctx.rich_text(child.get("children", []))
        elif child_type == "block_quote":
            spans = [span for b in _build_block_quote(child, ctx, depth + 1) for span in b.rich_text]
        else:
            log.debug(
                "block inside quote skipped",
                extra={"extra_fields": {"op": "markdown_to_blocks", "token_type": child_type}},
            )
            continue
        if not spans:
            continue
        if rich_text:
            rich_text.append(RichText.text("\n"))
        rich_text.extend(spans)
    return [Block.quote(rich_text)]


def _build_list(token: dict, ctx: _BuildContext, depth: int) -> list[Block]:
    """Build list item blocks from a list token.

    There are no list wrapper blocks: each item is a top-level
    ``bulleted_list_item`` or ``numbered_list_item`` with sub-items nested
    inside via ``children``.
    """
    ordered = (token.get("attrs") or {}).get("ordered", False)
    return [
        _build_list_item(item, ordered, ctx, depth)
        for item in token.get("children", [])
        if item.get("type") == "list_item"
    ]


def _build_list_item(token: dict, ordered: bool, ctx: _BuildContext, depth: int) -> Block:
    rich_text: list[RichText] = []
    nested: list[Block] = []

    for child in token.get("children", []):
        child_type = child.get("type", "")
        if child_type == "paragraph":
            rich_text.extend(ctx.rich_text(child.get("children", [])))
        elif depth + 1 >= ctx.max_depth:
            log.warning(
                "nesting depth exceeded, nested content dropped",
                extra={"extra_fields": {
                    "op": "markdown_to_blocks", "depth": depth + 1, "limit": ctx.max_depth,
                }},
            )
        else:
            nested.extend(_process_token(child, ctx, depth + 1))

    factory = Block.numbered if ordered else Block.bulleted
    return factory(rich_text, nested)


def _build_code_block(token: dict, ctx: _BuildContext, depth: int) -> list[Block]:
    info = (token.get("attrs") or {}).get("info")
    return [Block.code(token.get("raw", ""), normalize_language(info))]


def _build_table(token: dict, ctx: _BuildContext, depth: int) -> list[Block]:
    """Build a table block.

    ``table_head`` holds header cells directly; ``table_body`` holds
    ``table_row`` tokens.  The width is taken from the first row.
    """
    head_rows: list[list[list[RichText]]] = []
    body_rows: list[list[list[RichText]]] = []

    for part in token.get("children", []):
        part_type = part.get("type", "")
        if part_type == "table_head":
            cells = _row_cells(part, ctx)
            if cells:
                head_rows.append(cells)
        elif part_type == "table_body":
            for row in part.get("children", []):
                if row.get("type") == "table_row":
                    body_rows.append(_row_cells(row, ctx))

    rows = head_rows + body_rows
    if not rows:
        return []
    return [Block.table(rows, has_column_header=bool(head_rows))]


def _row_cells(row: dict, ctx: _BuildContext) -> list[list[RichText]]:
    return [
        ctx.rich_text(cell.get("children", []))
        for cell in row.get("children", [])
        if cell.get("type") == "table_cell"
    ]


def _skip(token: dict, ctx: _BuildContext, depth: int) -> list[Block]:
    log.debug(
        "block token has no block counterpart",
        extra={"extra_fields": {"op": "markdown_to_blocks", "token_type": token.get("type")}},
    )
    return []


# ---------------------------------------------------------------------------
# Block handler dispatch table
# ---------------------------------------------------------------------------

_BlockHandler = Callable[[dict, _BuildContext, int], list[Block]]

_BLOCK_HANDLERS: dict[str, _BlockHandler] = {
    "heading": _build_heading,
    "paragraph": _build_paragraph,
    "block_quote": _build_block_quote,
    "list": _build_list,
    "block_code": _build_code_block,
    "table": _build_table,
    "thematic_break": _skip,
    "html_block": _skip,
}
