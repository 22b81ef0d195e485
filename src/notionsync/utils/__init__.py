from .chunk import MAX_BLOCKS_PER_REQUEST, chunk_blocks
from .hashing import compute_content_hash
from .text_split import RICH_TEXT_LIMIT, split_string

__all__ = [
    "MAX_BLOCKS_PER_REQUEST",
    "RICH_TEXT_LIMIT",
    "chunk_blocks",
    "compute_content_hash",
    "split_string",
]
