"""Code-point safe string splitting.

A single rich-text element may carry at most 2 000 characters of content.
Python ``str`` slicing works on code-points, so plain slicing never cuts a
multi-byte character in half.
"""

from __future__ import annotations

RICH_TEXT_LIMIT = 2000


def split_string(text: str, limit: int = RICH_TEXT_LIMIT) -> list[str]:
    """Split *text* into chunks of at most *limit* characters.

    Parameters
    ----------
    text:
        The input string to partition.
    limit:
        Maximum number of characters per chunk.

    Returns
    -------
    list[str]
        Non-empty chunks whose concatenation equals *text*.  An empty
        *text* yields an empty list.

    Raises
    ------
    ValueError
        If *limit* is less than 1.

    Examples
    --------
    >>> split_string("hello world", 5)
    ['hello', ' worl', 'd']
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    if not text:
        return []

    return [text[i : i + limit] for i in range(0, len(text), limit)]
