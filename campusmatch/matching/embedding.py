"""Text embeddings and cosine similarity.

The default HashingEmbedder is a lexical bag-of-words hashed into a fixed
number of dimensions. Vectors from different embedders (or different
dimensions) are not comparable; a stored signal must be re-embedded when
the embedder changes.
"""

import math
import re
from typing import List, Protocol, Sequence, Tuple

from campusmatch.utils.hashing import stable_token_bucket

from .exceptions import ScoringInputError

DEFAULT_DIMENSIONS = 384

_TOKEN = re.compile(r"[a-z0-9][a-z0-9+#.]*")


class Embedder(Protocol):
    """Turns text into a fixed-length vector."""

    dimensions: int

    def embed(self, text: str) -> Tuple[float, ...]:
        ...


def tokenize(text: str) -> List[str]:
    """Lower-case word tokens; keeps '+', '#' and '.' inside tokens (c++, c#, node.js)."""
    return [token.rstrip(".") for token in _TOKEN.findall((text or "").lower())]


class HashingEmbedder:
    """Bag-of-words embedder using a stable SHA-256 token hash.

    Each token increments the slot ``sha256(token) mod dimensions``; the
    vector is then L2-normalized. Empty text gives the zero vector.
    """

    def __init__(self, dimensions: int = DEFAULT_DIMENSIONS):
        if dimensions <= 0:
            raise ValueError(f"dimensions must be positive, got: {dimensions}")
        self.dimensions = dimensions

    def embed(self, text: str) -> Tuple[float, ...]:
        vector = [0.0] * self.dimensions
        for token in tokenize(text):
            if token:
                vector[stable_token_bucket(token, self.dimensions)] += 1.0

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0.0:
            return tuple(vector)
        return tuple(v / norm for v in vector)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        ScoringInputError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise ScoringInputError(f"Embedding length mismatch: {len(a)} != {len(b)}")

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)
