"""
3-D vector helpers built on NumPy.

Vectors are float64 arrays of shape (3,).  Every helper returns a new array
and leaves its inputs untouched, so a body's cached vectors can never alias
one another through these functions.
"""

import numpy as np
from numpy.typing import NDArray

Vector3 = NDArray[np.float64]


def vec3(x: float, y: float, z: float) -> Vector3:
    return np.array([x, y, z], dtype=np.float64)


def zero() -> Vector3:
    return np.zeros(3, dtype=np.float64)


def as_vector(value) -> Vector3:
    """Coerce a length-3 sequence into a fresh float64 vector.

    Raises
    ------
    ValueError
        If *value* does not hold exactly three components.
    """
    arr = np.array(value, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {np.shape(value)}")
    return arr


def add(a: Vector3, b: Vector3) -> Vector3:
    return np.add(a, b, dtype=np.float64)


def sub(a: Vector3, b: Vector3) -> Vector3:
    return np.subtract(a, b, dtype=np.float64)


def scale(a: Vector3, s: float) -> Vector3:
    return np.multiply(a, s, dtype=np.float64)


def dot(a: Vector3, b: Vector3) -> float:
    return float(np.dot(a, b))


def cross(a: Vector3, b: Vector3) -> Vector3:
    return np.cross(a, b).astype(np.float64)


def length(a: Vector3) -> float:
    return float(np.linalg.norm(a))


def length_sq(a: Vector3) -> float:
    return float(np.dot(a, a))


def normalize(a: Vector3) -> Vector3:
    """Unit vector along *a*; the zero vector maps to the zero vector."""
    n = length(a)
    if n == 0.0:
        return zero()
    return np.divide(a, n, dtype=np.float64)


def is_finite(a: Vector3) -> bool:
    return bool(np.all(np.isfinite(a)))
