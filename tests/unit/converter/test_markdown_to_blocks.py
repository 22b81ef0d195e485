"""Tests for notionsync.converter.markdown_to_blocks.

Covers:
- Block mapping for every supported markdown construct
- Inline annotation flattening
- Paragraph splitting at the rich-text limit
- Link resolution into page mentions
- Nesting depth limit and batching
"""

from __future__ import annotations

import pytest

from notionsync.config import NotionSyncConfig
from notionsync.converter.markdown_to_blocks import (
    MarkdownToBlocks,
    is_external_image,
    normalize_language,
)
from notionsync.link_index import LinkIndex
from notionsync.models import BlockKind, plain_text


def make_converter(**overrides) -> MarkdownToBlocks:
    return MarkdownToBlocks(NotionSyncConfig(token="test_token_1234", **overrides))


def kinds(blocks) -> list[str]:
    return [b.kind.value for b in blocks]


# ---------------------------------------------------------------------------
# Block mapping
# ---------------------------------------------------------------------------

class TestBlockMapping:
    def test_heading_and_paragraph(self, converter):
        result = converter.convert("# Hello\n\nWorld")
        assert kinds(result.blocks) == ["heading_1", "paragraph"]
        assert result.blocks[0].plain_text() == "Hello"
        assert result.blocks[1].plain_text() == "World"

    @pytest.mark.parametrize("level,kind", [
        (1, "heading_1"), (2, "heading_2"), (3, "heading_3"),
        (4, "heading_3"), (6, "heading_3"),
    ])
    def test_heading_levels_collapse_to_three(self, converter, level, kind):
        result = converter.convert("#" * level + " Title")
        assert kinds(result.blocks) == [kind]

    def test_bulleted_list_with_nested_items(self, converter):
        result = converter.convert("- a\n- b\n  - c\n")
        assert kinds(result.blocks) == ["bulleted_list_item", "bulleted_list_item"]
        nested = result.blocks[1].children
        assert kinds(nested) == ["bulleted_list_item"]
        assert nested[0].plain_text() == "c"

    def test_numbered_list(self, converter):
        result = converter.convert("1. one\n2. two\n")
        assert kinds(result.blocks) == ["numbered_list_item", "numbered_list_item"]
        assert [b.plain_text() for b in result.blocks] == ["one", "two"]

    def test_code_block_language_is_normalized(self, converter):
        result = converter.convert("```py\nprint(1)\n```\n")
        block = result.blocks[0]
        assert block.kind is BlockKind.CODE
        assert block.language == "python"
        assert block.plain_text() == "print(1)"

    def test_code_block_without_info_is_plain_text(self, converter):
        result = converter.convert("```\nraw\n```\n")
        assert result.blocks[0].language == "plain text"

    def test_quote_paragraphs_are_joined_by_newline(self, converter):
        result = converter.convert("> first\n>\n> second\n")
        assert kinds(result.blocks) == ["quote"]
        assert result.blocks[0].plain_text() == "first\nsecond"

    def test_table_with_header(self, converter):
        md = "| a | b |\n|---|---|\n| 1 | 2 |\n"
        result = converter.convert(md)
        table = result.blocks[0]
        assert table.kind is BlockKind.TABLE
        assert table.table_width == 2
        assert table.has_column_header is True
        rows = [[plain_text(cell) for cell in row.cells] for row in table.children]
        assert rows == [["a", "b"], ["1", "2"]]

    def test_external_image_becomes_image_block(self, converter):
        result = converter.convert("![diagram](https://example.com/d.png)")
        block = result.blocks[0]
        assert block.kind is BlockKind.IMAGE
        assert block.url == "https://example.com/d.png"
        assert plain_text(block.caption) == "diagram"

    def test_relative_image_is_dropped(self, converter):
        assert converter.convert("![local](img/d.png)").blocks == []

    def test_thematic_break_is_skipped(self, converter):
        result = converter.convert("a\n\n---\n\nb\n")
        assert kinds(result.blocks) == ["paragraph", "paragraph"]

    def test_empty_document(self, converter):
        result = converter.convert("")
        assert result.blocks == []
        assert result.batches == []


# ---------------------------------------------------------------------------
# Inline content
# ---------------------------------------------------------------------------

class TestInlineContent:
    def test_bold_and_italic_spans(self, converter):
        spans = converter.convert("**bold** and *it*").blocks[0].rich_text
        assert [s.content for s in spans] == ["bold", " and ", "it"]
        assert spans[0].annotations.bold
        assert spans[2].annotations.italic
        assert spans[1].annotations.is_default()

    def test_nested_formatting_flattens_to_one_span(self, converter):
        spans = converter.convert("**_x_**").blocks[0].rich_text
        assert len(spans) == 1
        assert spans[0].annotations.bold and spans[0].annotations.italic

    def test_inline_code_and_strikethrough(self, converter):
        spans = converter.convert("`x` ~~gone~~").blocks[0].rich_text
        assert spans[0].annotations.code
        assert spans[-1].content == "gone"
        assert spans[-1].annotations.strikethrough

    def test_softbreak_becomes_space(self, converter):
        assert converter.convert("a\nb").blocks[0].plain_text() == "a b"

    def test_external_link_keeps_href(self, converter):
        span = converter.convert("[site](https://example.com)").blocks[0].rich_text[0]
        assert span.content == "site"
        assert span.link == "https://example.com"

    def test_long_paragraph_is_split(self, converter):
        result = converter.convert("a" * 4500)
        assert kinds(result.blocks) == ["paragraph"] * 3
        assert [len(b.plain_text()) for b in result.blocks] == [2000, 2000, 500]


# ---------------------------------------------------------------------------
# Links between documents
# ---------------------------------------------------------------------------

class TestDocumentLinks:
    def test_link_without_index_is_kept(self, converter):
        span = converter.convert("[B](b.md)").blocks[0].rich_text[0]
        assert span.is_mention is False
        assert span.link == "b.md"

    def test_known_link_becomes_mention(self, converter):
        index = LinkIndex({"b.md": "page-b"})
        spans = converter.convert("See [B](b.md)", link_index=index, current_path="a.md").blocks[0].rich_text
        assert spans[0].content == "See "
        assert spans[1].is_mention
        assert spans[1].mention_id == "page-b"
        assert spans[1].content == "B"

    def test_relative_parent_link_resolves(self, converter):
        index = LinkIndex({"x.md": "page-x"})
        span = converter.convert(
            "[up](../x.md#part)", link_index=index, current_path="guide/a.md",
        ).blocks[0].rich_text[0]
        assert span.mention_id == "page-x"

    def test_unknown_link_stays_a_link(self, converter):
        index = LinkIndex({"b.md": "page-b"})
        span = converter.convert("[C](c.md)", link_index=index, current_path="a.md").blocks[0].rich_text[0]
        assert span.is_mention is False
        assert span.link == "c.md"

    def test_mention_keeps_annotations(self, converter):
        index = LinkIndex({"b.md": "page-b"})
        span = converter.convert("**[B](b.md)**", link_index=index, current_path="a.md").blocks[0].rich_text[0]
        assert span.is_mention and span.annotations.bold

    def test_skip_child_links_demotes_to_text(self):
        converter = make_converter(skip_child_links=True)
        span = converter.convert("[c](sub/c.md)", current_path="index.md").blocks[0].rich_text[0]
        assert span.content == "c"
        assert span.link is None

    def test_skip_child_links_keeps_sibling_links(self):
        converter = make_converter(skip_child_links=True)
        span = converter.convert("[s](s.md)", current_path="index.md").blocks[0].rich_text[0]
        assert span.link == "s.md"


# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------

class TestLimits:
    def test_nesting_beyond_limit_is_dropped(self):
        converter = make_converter(max_nesting_depth=2)
        result = converter.convert("- a\n  - b\n    - c\n")
        b = result.blocks[0].children[0]
        assert b.plain_text() == "b"
        assert b.children == []

    def test_batches_of_at_most_one_hundred(self, converter):
        md = "\n\n".join(f"p{i}" for i in range(250))
        result = converter.convert(md)
        assert len(result.blocks) == 250
        assert [len(batch) for batch in result.batches] == [100, 100, 50]


class TestHelpers:
    @pytest.mark.parametrize("info,expected", [
        ("py", "python"),
        ("python3", "python"),
        ("C++", "c++"),
        ("yml", "yaml"),
        ("brainfudge", "plain text"),
        (None, "plain text"),
        ("   ", "plain text"),
    ])
    def test_normalize_language(self, info, expected):
        assert normalize_language(info) == expected

    @pytest.mark.parametrize("url,expected", [
        ("https://example.com/a.png", True),
        ("http://example.com/a.png", True),
        ("data:image/png;base64,AAA", False),
        ("img/a.png", False),
        ("", False),
    ])
    def test_is_external_image(self, url, expected):
        assert is_external_image(url) is expected
