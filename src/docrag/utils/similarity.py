"""Vector similarity calculation utilities."""

import math

from docrag.errors import DimensionMismatch


def cosine_similarity(
    vec1: list[float],
    vec2: list[float],
    strict: bool = False,
) -> float:
    """Calculate cosine similarity between two vectors.

    Args:
        vec1: First vector
        vec2: Second vector
        strict: Raise instead of scoring 0 when dimensions differ

    Returns:
        Similarity score in [-1, 1]. 0.0 when either vector is empty or has
        zero magnitude, or when dimensions differ and ``strict`` is False.

    Raises:
        DimensionMismatch: If ``strict`` and the vectors have different dimensions
    """
    if len(vec1) != len(vec2):
        if strict:
            raise DimensionMismatch(len(vec1), len(vec2))
        return 0.0

    if not vec1:
        return 0.0

    dot_product = math.fsum(a * b for a, b in zip(vec1, vec2))
    norm1 = math.sqrt(math.fsum(a * a for a in vec1))
    norm2 = math.sqrt(math.fsum(b * b for b in vec2))

    if norm1 == 0.0 or norm2 == 0.0:
        return 0.0

    # Clamp to [-1, 1] to handle floating point errors
    return max(-1.0, min(1.0, dot_product / (norm1 * norm2)))
