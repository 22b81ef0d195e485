"""Conversion between markdown, the block model and remote block JSON."""

from notionsync.converter.blocks_to_markdown import BlocksToMarkdown
from notionsync.converter.inline_renderer import render_rich_text
from notionsync.converter.markdown_to_blocks import MarkdownToBlocks
from notionsync.converter.remote_codec import (
    blocks_from_remote,
    blocks_to_remote,
    rich_text_from_remote,
    rich_text_to_remote,
)
from notionsync.converter.rich_text import InlineContext, build_rich_text, split_paragraph_spans

__all__ = [
    "BlocksToMarkdown",
    "InlineContext",
    "MarkdownToBlocks",
    "blocks_from_remote",
    "blocks_to_remote",
    "build_rich_text",
    "render_rich_text",
    "rich_text_from_remote",
    "rich_text_to_remote",
    "split_paragraph_spans",
]
