"""Hashing utilities for content fingerprints and hashed embeddings.

This module provides deterministic hashing functions for:
- content_hash: change detection over profile or job text
- stable_token_bucket: mapping a token to a fixed vector slot for embeddings
"""

import hashlib
import re


def compute_content_hash(*parts: str) -> str:
    """Compute a content hash for change detection.

    Each part is normalized (lowercase, collapsed whitespace) and the parts are
    joined with newlines before hashing, so reordering parts changes the hash
    but cosmetic whitespace differences do not.

    Args:
        *parts: Text fragments making up the content (None values are skipped)

    Returns:
        Hexadecimal string representation of SHA256 hash (64 characters)

    Example:
        >>> compute_content_hash("Backend Intern", "Python and Django")
        '5c1d...'
    """
    normalized = [_normalize_text(part) for part in parts if part]
    composite_content = "\n".join(normalized)

    hash_obj = hashlib.sha256(composite_content.encode("utf-8"))
    return hash_obj.hexdigest()


def stable_token_bucket(token: str, buckets: int) -> int:
    """Map a token to a bucket index in ``range(buckets)``.

    Uses the first 8 bytes of a SHA256 digest so the mapping is identical
    across processes (unlike the built-in ``hash``, which is salted).

    Args:
        token: Token to map
        buckets: Number of buckets (must be positive)

    Returns:
        Bucket index

    Raises:
        ValueError: If buckets is not positive
    """
    if buckets <= 0:
        raise ValueError(f"buckets must be positive, got: {buckets}")

    digest = hashlib.sha256(token.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % buckets


def _normalize_text(text: str) -> str:
    """Normalize text for consistent hashing.

    Normalization steps:
    1. Convert to lowercase
    2. Strip leading/trailing whitespace
    3. Replace multiple whitespace characters with single space

    Args:
        text: Text to normalize

    Returns:
        Normalized text string
    """
    normalized = text.lower().strip()
    return re.sub(r"\s+", " ", normalized)
