# qbank/memory/vector_math.py

from typing import Sequence, Union

import numpy as np

from qbank.errors import InvalidInputError

Vector = Union[Sequence[float], np.ndarray]


def require_finite(vector: Vector) -> np.ndarray:
    """Return `vector` as a float64 array, rejecting NaN and infinities."""

    array = np.asarray(vector, dtype="float64")

    if not np.all(np.isfinite(array)):
        raise InvalidInputError("Vector contains NaN or infinite values")

    return array


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    Cosine similarity between two equal-length vectors.

    Returns a float in [-1, 1]. A zero-magnitude vector on either side
    yields 0.0 instead of NaN.

    Raises:
        InvalidInputError: if the vectors differ in length, are not 1-D,
            or hold a NaN or infinite component
    """

    vec_a = np.asarray(a, dtype="float64")
    vec_b = np.asarray(b, dtype="float64")

    if vec_a.ndim != 1 or vec_b.ndim != 1:
        raise InvalidInputError("Vectors must be one-dimensional")

    if vec_a.shape[0] != vec_b.shape[0]:
        raise InvalidInputError(
            f"Vector dimension mismatch: {vec_a.shape[0]} != {vec_b.shape[0]}"
        )

    vec_a = require_finite(vec_a)
    vec_b = require_finite(vec_b)

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = np.dot(vec_a, vec_b) / (norm_a * norm_b)

    # Rounding can push |a·a| / |a|² a hair past 1
    return float(np.clip(similarity, -1.0, 1.0))
