"""Tests for notionsync.utils (chunking, hashing, string splitting)."""

from __future__ import annotations

import pytest

from notionsync.utils import (
    MAX_BLOCKS_PER_REQUEST,
    RICH_TEXT_LIMIT,
    chunk_blocks,
    compute_content_hash,
    split_string,
)


class TestChunkBlocks:
    def test_default_size(self):
        assert MAX_BLOCKS_PER_REQUEST == 100
        assert [len(b) for b in chunk_blocks(list(range(201)))] == [100, 100, 1]

    def test_exact_multiple(self):
        assert [len(b) for b in chunk_blocks(list(range(200)))] == [100, 100]

    def test_empty(self):
        assert chunk_blocks([]) == []

    def test_order_is_preserved(self):
        items = list(range(7))
        batches = chunk_blocks(items, size=3)
        assert batches == [[0, 1, 2], [3, 4, 5], [6]]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunk_blocks([1], size=0)


class TestComputeContentHash:
    def test_known_digest(self):
        assert compute_content_hash("hello") == (
            "sha256:2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
        )

    def test_unicode_is_hashed_as_utf8(self):
        assert compute_content_hash("é") != compute_content_hash("e")

    def test_whitespace_matters(self):
        assert compute_content_hash("a\n") != compute_content_hash("a")


class TestSplitString:
    def test_default_limit(self):
        assert RICH_TEXT_LIMIT == 2000
        assert [len(c) for c in split_string("x" * 4001)] == [2000, 2000, 1]

    def test_small_limit(self):
        assert split_string("hello world", 5) == ["hello", " worl", "d"]

    def test_empty(self):
        assert split_string("") == []

    def test_code_points_are_not_cut(self):
        chunks = split_string("😀" * 5, 2)
        assert chunks == ["😀😀", "😀😀", "😀"]

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            split_string("x", 0)
