"""Build :class:`~notionsync.models.RichText` spans from inline AST tokens.

Nested formatting is flattened: each ``strong``/``emphasis``/``strikethrough``
wrapper OR-merges its flag into the annotations inherited by its children,
so ``**_x_**`` yields a single bold+italic span.  After the walk, adjacent
text spans with identical annotations and link target are merged; mention
spans never merge.

Links to other local documents are resolved through a
:class:`~notionsync.link_index.LinkIndex` when one is supplied.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from notionsync.link_index import LinkIndex, is_child_link, is_document_link
from notionsync.models import Annotations, RichText, plain_text
from notionsync.utils.text_split import RICH_TEXT_LIMIT, split_string


@dataclass(frozen=True)
class InlineContext:
    """Link-resolution settings for one document's inline content.

    Attributes
    ----------
    link_index:
        Index used to turn document links into page mentions.  ``None``
        keeps every link as written.
    current_path:
        Root-relative path of the document being converted; relative
        hrefs are resolved against its directory.
    skip_child_links:
        Demote links into sub-directories of *current_path* to plain text.
    """

    link_index: LinkIndex | None = None
    current_path: str | None = None
    skip_child_links: bool = False


_NO_LINKS = InlineContext()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_rich_text(
    children: list[dict],
    ctx: InlineContext | None = None,
    *,
    annotations: Annotations | None = None,
    link: str | None = None,
) -> list[RichText]:
    """Convert inline AST tokens to a merged list of rich-text spans.

    Parameters
    ----------
    children:
        List of normalized inline AST tokens.
    ctx:
        Link-resolution settings.  Defaults to no resolution.
    annotations:
        Inherited annotations from a parent inline node.
    link:
        Inherited link target from a parent ``link`` node.
    """
    return merge_spans(_walk(children, ctx or _NO_LINKS, annotations or Annotations(), link))


def merge_spans(spans: list[RichText]) -> list[RichText]:
    """Coalesce adjacent spans that :meth:`RichText.can_merge` allows."""
    merged: list[RichText] = []
    for span in spans:
        if merged and merged[-1].can_merge(span):
            merged[-1] = replace(merged[-1], content=merged[-1].content + span.content)
        else:
            merged.append(span)
    return merged


def split_paragraph_spans(
    spans: list[RichText], limit: int = RICH_TEXT_LIMIT,
) -> list[list[RichText]]:
    """Partition *spans* into groups whose total length is at most *limit*.

    Groups break at span boundaries and keep the original order.  A single
    span longer than *limit* is first cut into *limit*-sized pieces, so every
    group respects the ceiling.  Input within the limit comes back as one
    group.

    Examples
    --------
    >>> groups = split_paragraph_spans([RichText.text("a" * 1500), RichText.text("b" * 1500)])
    >>> [len(plain_text(g)) for g in groups]
    [1500, 1500]
    """
    if len(plain_text(spans)) <= limit:
        return [spans]

    pieces: list[RichText] = []
    for span in spans:
        if len(span.content) <= limit:
            pieces.append(span)
        else:
            pieces.extend(replace(span, content=chunk) for chunk in split_string(span.content, limit))

    groups: list[list[RichText]] = []
    current: list[RichText] = []
    current_len = 0
    for piece in pieces:
        size = len(piece.content)
        if current and current_len + size > limit:
            groups.append(current)
            current, current_len = [], 0
        current.append(piece)
        current_len += size
    if current:
        groups.append(current)
    return groups


def extract_text(children: list[dict]) -> str:
    """Recursively extract plain text from inline tokens."""
    parts: list[str] = []
    for token in children:
        token_type = token.get("type", "")
        if token_type == "text":
            parts.append(token.get("raw", ""))
        elif token_type == "softbreak":
            parts.append(" ")
        elif token_type == "linebreak":
            parts.append("\n")
        elif "children" in token:
            parts.append(extract_text(token["children"]))
        elif "raw" in token:
            parts.append(token["raw"])
    return "".join(parts)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_FLAG_TOKENS: dict[str, str] = {
    "strong": "bold",
    "emphasis": "italic",
    "strikethrough": "strikethrough",
}


def _walk(
    children: list[dict],
    ctx: InlineContext,
    annotations: Annotations,
    link: str | None,
) -> list[RichText]:
    spans: list[RichText] = []

    for token in children:
        token_type = token.get("type", "")

        if token_type == "text":
            raw = token.get("raw", "")
            if raw:
                spans.append(RichText.text(raw, annotations=annotations, link=link))

        elif token_type in _FLAG_TOKENS:
            child_annots = annotations.with_flags(**{_FLAG_TOKENS[token_type]: True})
            spans.extend(_walk(token.get("children", []), ctx, child_annots, link))

        elif token_type == "codespan":
            spans.append(RichText.text(
                token.get("raw", ""), annotations=annotations.with_flags(code=True), link=link,
            ))

        elif token_type == "link":
            spans.extend(_link_spans(token, ctx, annotations))

        elif token_type == "image":
            # Inline images have no block of their own; keep the alt text.
            alt = extract_text(token.get("children", []))
            if alt:
                spans.append(RichText.text(alt, annotations=annotations, link=link))

        elif token_type == "softbreak":
            spans.append(RichText.text(" ", annotations=annotations, link=link))

        elif token_type == "linebreak":
            spans.append(RichText.text("\n", annotations=annotations, link=link))

        elif token_type == "html_inline":
            raw = token.get("raw", "")
            if raw:
                spans.append(RichText.text(raw, annotations=annotations, link=link))

    return spans


def _link_spans(token: dict, ctx: InlineContext, annotations: Annotations) -> list[RichText]:
    url = (token.get("attrs") or {}).get("url", "")
    children = token.get("children", [])

    if not is_document_link(url):
        return _walk(children, ctx, annotations, url or None)

    if ctx.skip_child_links and ctx.current_path and is_child_link(url, ctx.current_path):
        return _walk(children, ctx, annotations, None)

    if ctx.link_index is None:
        return _walk(children, ctx, annotations, url)

    target = ctx.link_index.resolve_for_mention(url, ctx.current_path)
    if target.kind == "mention":
        mention = RichText.mention(target.value, extract_text(children) or url)
        return [replace(mention, annotations=annotations)]
    return _walk(children, ctx, annotations, url)
