"""Vector primitives for comparing face embeddings.

All functions are pure and accept numpy arrays or plain sequences of floats.
Vectors compared against each other must have the same length; a mismatch
is a programming error and raises instead of truncating.
"""
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from facecluster.core.exceptions import DimensionMismatchError, EmptyInputError

VectorLike = Union[np.ndarray, Sequence[float]]


def as_vector(v: VectorLike) -> np.ndarray:
    """Convert ``v`` to a 1-D float64 array."""
    return np.asarray(v, dtype=np.float64).reshape(-1)


def _check_dimensions(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(
            f"Vectors must have the same length, got {a.shape[0]} and {b.shape[0]}",
            details={"left": int(a.shape[0]), "right": int(b.shape[0])},
        )


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """Cosine of the angle between ``a`` and ``b``, in [-1, 1].

    Returns 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    va, vb = as_vector(a), as_vector(b)
    _check_dimensions(va, vb)

    denominator = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denominator == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denominator)


def cosine_distance(a: VectorLike, b: VectorLike) -> float:
    """``1 - cosine_similarity(a, b)``, in [0, 2]."""
    return 1.0 - cosine_similarity(a, b)


def euclidean_distance(a: VectorLike, b: VectorLike) -> float:
    """Straight-line distance between ``a`` and ``b``."""
    va, vb = as_vector(a), as_vector(b)
    _check_dimensions(va, vb)
    return float(np.linalg.norm(va - vb))


def mean_vector(vectors: Iterable[VectorLike]) -> np.ndarray:
    """Element-wise arithmetic mean of ``vectors``.

    Raises:
        EmptyInputError: If ``vectors`` is empty
        DimensionMismatchError: If the vectors differ in length
    """
    arrays = [as_vector(v) for v in vectors]
    if not arrays:
        raise EmptyInputError("Cannot compute mean of empty array")

    first = arrays[0]
    for other in arrays[1:]:
        _check_dimensions(first, other)
    return np.mean(np.vstack(arrays), axis=0)


def normalize_vector(v: VectorLike) -> np.ndarray:
    """Unit-length copy of ``v``; a zero vector is returned unchanged."""
    vec = as_vector(v)
    norm = float(np.linalg.norm(vec))
    if norm == 0.0:
        return vec.copy()
    return vec / norm


def similarity_matrix(vectors: Sequence[VectorLike]) -> np.ndarray:
    """Pairwise cosine similarities of ``vectors`` as an (n, n) matrix.

    Rows for zero vectors are all zero, matching ``cosine_similarity``.
    """
    if len(vectors) == 0:
        return np.zeros((0, 0))
    arrays = [as_vector(v) for v in vectors]
    for other in arrays[1:]:
        _check_dimensions(arrays[0], other)
    normalized = np.vstack([normalize_vector(v) for v in arrays])
    return normalized @ normalized.T


def find_most_similar(
    query: VectorLike,
    candidates: Iterable[Tuple[str, VectorLike]],
    threshold: float = 0.5,
) -> Optional[Tuple[str, float]]:
    """Best ``(id, similarity)`` among candidates with similarity >= threshold.

    The first candidate wins ties. Returns None when nothing qualifies.
    """
    best: Optional[Tuple[str, float]] = None
    for candidate_id, embedding in candidates:
        similarity = cosine_similarity(query, embedding)
        if similarity >= threshold and (best is None or similarity > best[1]):
            best = (candidate_id, similarity)
    return best


def find_similar(
    query: VectorLike,
    candidates: Iterable[Tuple[str, VectorLike]],
    threshold: float = 0.5,
    limit: int = 10,
) -> List[Tuple[str, float]]:
    """All ``(id, similarity)`` pairs >= threshold, most similar first, at most ``limit``."""
    results = []
    for candidate_id, embedding in candidates:
        similarity = cosine_similarity(query, embedding)
        if similarity >= threshold:
            results.append((candidate_id, similarity))
    results.sort(key=lambda item: item[1], reverse=True)
    return results[:limit]
