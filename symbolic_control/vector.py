"""
Vector helpers.

Vectors are plain one-dimensional float numpy arrays; these helpers only
coerce and normalize them consistently across the package.
"""

import numpy as np


def as_vector(values, dimension: int = None) -> np.ndarray:
    """
    Coerce values to a 1-D float array.

    Args:
        values: Scalar, sequence or array
        dimension: Expected length (optional)

    Returns:
        1-D float array (a copy)
    """
    vector = np.array(values, dtype=float).reshape(-1)
    if dimension is not None and vector.shape[0] != dimension:
        raise ValueError(f"Expected a vector of length {dimension}, got {vector.shape[0]}")
    return vector


def dot(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.dot(a, b))


def norm(v: np.ndarray) -> float:
    return float(np.linalg.norm(v))


def normalize(v: np.ndarray) -> np.ndarray:
    """Return v scaled to unit length (the zero vector is returned unchanged)."""
    length = norm(v)
    if length == 0.0:
        return np.array(v, dtype=float)
    return np.asarray(v, dtype=float) / length
