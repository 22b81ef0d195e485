"""Batch a list of blocks into groups of at most *size* items.

The remote ``append block children`` endpoint (and the ``children`` field of
a page-create call) accepts at most 100 blocks per request.
"""

from __future__ import annotations

from typing import TypeVar

T = TypeVar("T")

MAX_BLOCKS_PER_REQUEST = 100


def chunk_blocks(blocks: list[T], size: int = MAX_BLOCKS_PER_REQUEST) -> list[list[T]]:
    """Split *blocks* into order-preserving batches of at most *size*.

    Works for model :class:`~notionsync.models.Block` objects and for
    encoded remote dicts alike.

    Parameters
    ----------
    blocks:
        The full list to partition.
    size:
        Maximum number of items per batch.

    Returns
    -------
    list[list]
        Batches whose concatenation equals *blocks*.  An empty input
        returns an empty list (not ``[[]]``).

    Raises
    ------
    ValueError
        If *size* is less than 1.

    Examples
    --------
    >>> [len(b) for b in chunk_blocks(list(range(250)))]
    [100, 100, 50]
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")

    if not blocks:
        return []

    return [blocks[i : i + size] for i in range(0, len(blocks), size)]
