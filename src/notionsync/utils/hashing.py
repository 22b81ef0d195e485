"""Content hashing for incremental sync.

The hash is taken over the raw markdown body (header excluded) so that a
change in link resolution alone never forces a remote update.
"""

from __future__ import annotations

import hashlib

HASH_PREFIX = "sha256:"


def compute_content_hash(body: str) -> str:
    """Return an algorithm-tagged SHA-256 digest of *body*.

    Examples
    --------
    >>> compute_content_hash("hello")[:15]
    'sha256:2cf24dba'
    """
    digest = hashlib.sha256(body.encode("utf-8")).hexdigest()
    return f"{HASH_PREFIX}{digest}"
