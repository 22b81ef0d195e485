"""Inline rendering: rich-text spans to markdown strings.

Annotation wrapping order (innermost first)::

    code -> bold -> italic -> strikethrough -> link -> underline -> color

Underline and colour have no markdown syntax.  When metadata preservation
is on they are encoded as paired HTML comments::

    <!-- notion:underline -->text<!-- /notion:underline -->
    <!-- notion:color=red -->text<!-- /notion:color -->
"""

from __future__ import annotations

from notionsync.link_index import LinkIndex, page_url
from notionsync.models import RichText


def markdown_escape(text: str, context: str = "url") -> str:
    """Escape *text* for the given markdown *context*.

    Only ``"url"`` needs work: parentheses are percent-encoded so that the
    link target does not close early.  ``"code"`` is returned unchanged.
    """
    if context == "url":
        return text.replace("(", "%28").replace(")", "%29")
    return text


def render_rich_text(
    spans: list[RichText],
    *,
    preserve_metadata: bool = True,
    link_index: LinkIndex | None = None,
    current_path: str | None = None,
) -> str:
    """Render *spans* to a markdown string.

    Parameters
    ----------
    spans:
        Rich-text spans to render.
    preserve_metadata:
        Encode underline and non-default colour as HTML comments.
    link_index:
        When given, remote page links are rewritten to local document
        paths.  Mentions always render as links to their page.
    current_path:
        Document the spans belong to; rewritten links are made relative
        to its directory.
    """
    return "".join(
        render_span(
            span, preserve_metadata=preserve_metadata,
            link_index=link_index, current_path=current_path,
        )
        for span in spans
    )


def render_span(
    span: RichText,
    *,
    preserve_metadata: bool = True,
    link_index: LinkIndex | None = None,
    current_path: str | None = None,
) -> str:
    annotations = span.annotations
    core = span.content.strip()
    if core:
        # Emphasis cannot open or close next to whitespace.
        start = span.content.index(core)
        lead, trail = span.content[:start], span.content[start + len(core):]
    else:
        lead, trail = span.content, ""

    text = core
    if core:
        if annotations.code:
            text = f"`{text}`"
        if annotations.bold:
            text = f"**{text}**"
        if annotations.italic:
            text = f"*{text}*"
        if annotations.strikethrough:
            text = f"~~{text}~~"
    text = lead + text + trail

    target = page_url(span.mention_id) if span.is_mention and span.mention_id else span.link
    if target:
        if link_index is not None:
            target = link_index.resolve_reverse(target, current_path)
        text = f"[{text}]({markdown_escape(target, 'url')})"

    if preserve_metadata:
        if annotations.underline:
            text = f"<!-- notion:underline -->{text}<!-- /notion:underline -->"
        if annotations.color and annotations.color != "default":
            text = f"<!-- notion:color={annotations.color} -->{text}<!-- /notion:color -->"

    return text
