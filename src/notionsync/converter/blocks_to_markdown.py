"""Block tree to markdown renderer.

Usage::

    from notionsync.converter.blocks_to_markdown import BlocksToMarkdown

    md = BlocksToMarkdown().render(blocks)

Top-level blocks are joined with one blank line; the result always ends in
a single newline unless it is empty.  Blocks with no markdown form (a lone
``table_row``, or a kind this renderer does not know) render to ``""`` and
are dropped from the join.
"""

from __future__ import annotations

from collections.abc import Callable

from notionsync.converter.inline_renderer import markdown_escape, render_rich_text
from notionsync.link_index import LinkIndex
from notionsync.models import DEFAULT_CODE_LANGUAGE, Block, BlockKind, RichText, plain_text
from notionsync.observability import get_logger

log = get_logger("notionsync.converter")

_INDENT = "  "


class _RenderContext:
    __slots__ = ("current_path", "indent_level", "link_index", "preserve_metadata")

    def __init__(
        self,
        preserve_metadata: bool,
        indent_level: int,
        link_index: LinkIndex | None,
        current_path: str | None = None,
    ) -> None:
        self.preserve_metadata = preserve_metadata
        self.indent_level = indent_level
        self.link_index = link_index
        self.current_path = current_path

    def nested(self) -> _RenderContext:
        return _RenderContext(
            self.preserve_metadata, self.indent_level + 1, self.link_index, self.current_path,
        )

    def inline(self, spans: list[RichText]) -> str:
        return render_rich_text(
            spans, preserve_metadata=self.preserve_metadata,
            link_index=self.link_index, current_path=self.current_path,
        )


class BlocksToMarkdown:
    """Render :class:`~notionsync.models.Block` lists to markdown.

    Parameters
    ----------
    preserve_metadata:
        Default for :meth:`render`; encode underline and colour as
        paired HTML comments.
    """

    def __init__(self, preserve_metadata: bool = True) -> None:
        self._preserve_metadata = preserve_metadata

    def render(
        self,
        blocks: list[Block],
        *,
        preserve_metadata: bool | None = None,
        indent_level: int = 0,
        link_index: LinkIndex | None = None,
        current_path: str | None = None,
    ) -> str:
        """Render *blocks* to a markdown document.

        Parameters
        ----------
        blocks:
            Top-level blocks in order.
        preserve_metadata:
            Overrides the instance default.
        indent_level:
            Starting indent for list items, two spaces per level.
        link_index:
            Rewrites remote page links to local document paths.
        current_path:
            Path of the document being rendered, relative to the root.
            Rewritten links are made relative to its directory so that
            they resolve the same way on the next push.

        Returns
        -------
        str
            Markdown ending in exactly one newline, or ``""`` when nothing
            renders.
        """
        if preserve_metadata is None:
            preserve_metadata = self._preserve_metadata
        ctx = _RenderContext(preserve_metadata, indent_level, link_index, current_path)

        parts = [part for part in (render_block(b, ctx) for b in blocks) if part]
        if not parts:
            return ""
        text = "\n\n".join(parts).strip()
        return text + "\n" if text else ""


def render_block(block: Block, ctx: _RenderContext) -> str:
    """Route *block* to the renderer for its kind."""
    renderer = _RENDERERS.get(block.kind)
    if renderer is None:
        log.debug(
            "block kind has no markdown form",
            extra={"extra_fields": {"op": "blocks_to_markdown", "block_kind": block.kind.value}},
        )
        return ""
    return renderer(block, ctx)


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------

def _render_heading(block: Block, ctx: _RenderContext) -> str:
    level = block.kind.heading_level or 1
    return f"{'#' * level} {ctx.inline(block.rich_text)}"


def _render_paragraph(block: Block, ctx: _RenderContext) -> str:
    return ctx.inline(block.rich_text)


def _render_list_item(block: Block, ctx: _RenderContext) -> str:
    marker = "1." if block.kind is BlockKind.NUMBERED_LIST_ITEM else "-"
    line = f"{_INDENT * ctx.indent_level}{marker} {ctx.inline(block.rich_text)}"

    child_ctx = ctx.nested()
    children = [part for part in (render_block(c, child_ctx) for c in block.children) if part]
    if not children:
        return line
    return line + "\n" + "\n".join(children)


def _render_code(block: Block, ctx: _RenderContext) -> str:
    language = block.language or DEFAULT_CODE_LANGUAGE
    return f"```{language}\n{plain_text(block.rich_text)}\n```"


def _render_quote(block: Block, ctx: _RenderContext) -> str:
    return "\n".join(f"> {line}" for line in ctx.inline(block.rich_text).split("\n"))


def _render_table(block: Block, ctx: _RenderContext) -> str:
    rows = [row for row in block.children if row.kind is BlockKind.TABLE_ROW]
    if not rows:
        return ""

    lines = [_render_table_row(row, ctx) for row in rows]
    if block.has_column_header:
        width = block.table_width or 1
        lines.insert(1, "| " + " | ".join(["---"] * width) + " |")
    return "\n".join(lines)


def _render_table_row(row: Block, ctx: _RenderContext) -> str:
    cells = [ctx.inline(cell).replace("|", "\\|").strip() for cell in row.cells]
    return "| " + " | ".join(cells) + " |"


def _render_image(block: Block, ctx: _RenderContext) -> str:
    if not block.url:
        return ""
    alt = plain_text(block.caption)
    return f"![{alt}]({markdown_escape(block.url, 'url')})"


def _render_nothing(block: Block, ctx: _RenderContext) -> str:
    # Rows are only meaningful inside their table.
    return ""


_Renderer = Callable[[Block, _RenderContext], str]

_RENDERERS: dict[BlockKind, _Renderer] = {
    BlockKind.HEADING_1: _render_heading,
    BlockKind.HEADING_2: _render_heading,
    BlockKind.HEADING_3: _render_heading,
    BlockKind.PARAGRAPH: _render_paragraph,
    BlockKind.BULLETED_LIST_ITEM: _render_list_item,
    BlockKind.NUMBERED_LIST_ITEM: _render_list_item,
    BlockKind.CODE: _render_code,
    BlockKind.QUOTE: _render_quote,
    BlockKind.TABLE: _render_table,
    BlockKind.TABLE_ROW: _render_nothing,
    BlockKind.IMAGE: _render_image,
}
