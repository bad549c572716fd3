"""
===============================================================================
ORBITSIM - Quaternion Orientation
===============================================================================

Unit quaternion used to carry the orientation of every simulated body: the
fixed-rate spin of a primary and the velocity-aligned attitude of a
secondary.  The presentation layer reads these values to place models; the
physics never feeds back from them.

Convention
----------
Scalar-first:

    q = [q_w, q_x, q_y, q_z] = q_w + q_x*i + q_y*j + q_z*k

A quaternion is an *active* rotation: ``rotate_vector(v)`` returns the
vector v rotated by q, equivalently ``to_dcm() @ v``.  For a body, that maps
a direction expressed in the model frame into the inertial frame.

Composition ``q1.multiply(q2)`` applies q2 first and q1 second.  Right
multiplication therefore rotates about the body's *local* axes, which is how
both the primary spin and the model-axis correction are applied.

References
----------
    [1] Markley & Crassidis, "Fundamentals of Spacecraft Attitude
        Determination and Control", Springer, 2014.
    [2] Shepperd, "Quaternion from Rotation Matrix", JGCD, 1978.

===============================================================================
"""

import numpy as np
from typing import Tuple


class Quaternion:
    """
    Unit quaternion for 3-D orientation.

    A rotation by angle theta about unit axis n is encoded as:

        q = [cos(theta/2), sin(theta/2) * n]

    Instances are treated as immutable values: every operation returns a new
    quaternion, so a body's orientation can be handed to the presentation
    layer without copying.

    Attributes
    ----------
    w, x, y, z : float
        Scalar and vector components.
    """

    _NORM_TOLERANCE = 1e-10
    _COMPARISON_TOLERANCE = 1e-9

    def __init__(self, w: float, x: float, y: float, z: float,
                 normalize: bool = True) -> None:
        """
        Parameters
        ----------
        w, x, y, z : float
            Scalar-first components.
        normalize : bool, optional
            Normalize to unit length and enforce ``w >= 0`` (default).  Only
            internal callers that already hold a unit quaternion pass False.
        """
        self._q = np.array([w, x, y, z], dtype=np.float64)

        if normalize:
            self._normalize_in_place()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def w(self) -> float:
        return float(self._q[0])

    @property
    def x(self) -> float:
        return float(self._q[1])

    @property
    def y(self) -> float:
        return float(self._q[2])

    @property
    def z(self) -> float:
        return float(self._q[3])

    @property
    def vector(self) -> np.ndarray:
        """Vector part [x, y, z] as a new array."""
        return self._q[1:].copy()

    @property
    def components(self) -> np.ndarray:
        """All four components [w, x, y, z] as a new array."""
        return self._q.copy()

    @property
    def norm(self) -> float:
        return float(np.linalg.norm(self._q))

    @property
    def rotation_angle(self) -> float:
        """Rotation angle in radians, in [0, pi] for the w >= 0 form."""
        return 2.0 * float(np.arccos(np.clip(abs(self._q[0]), 0.0, 1.0)))

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _normalize_in_place(self) -> None:
        n = np.linalg.norm(self._q)

        if n < self._NORM_TOLERANCE:
            raise ValueError(
                f"Cannot normalize near-zero quaternion (norm = {n:.2e})."
            )

        self._q /= n

        # q and -q are the same rotation; keep the w >= 0 representative.
        if self._q[0] < 0.0:
            self._q = -self._q

    # =========================================================================
    # FACTORY METHODS
    # =========================================================================

    @staticmethod
    def identity() -> 'Quaternion':
        """The identity quaternion [1, 0, 0, 0] (no rotation)."""
        return Quaternion(1.0, 0.0, 0.0, 0.0, normalize=False)

    @staticmethod
    def from_axis_angle(axis: np.ndarray, angle: float) -> 'Quaternion':
        """
        Create a quaternion rotating by *angle* radians about *axis*.

        Parameters
        ----------
        axis : np.ndarray
            3-element axis; normalized internally.
        angle : float
            Rotation angle in radians.

        Raises
        ------
        ValueError
            If *axis* has near-zero magnitude.
        """
        axis = np.asarray(axis, dtype=np.float64)
        axis_norm = np.linalg.norm(axis)

        if axis_norm < 1e-12:
            raise ValueError(
                "Rotation axis has near-zero magnitude. "
                "Cannot define a rotation about a zero vector."
            )

        n = axis / axis_norm
        half_angle = 0.5 * angle
        sin_half = np.sin(half_angle)

        return Quaternion(np.cos(half_angle),
                          sin_half * n[0], sin_half * n[1], sin_half * n[2])

    @staticmethod
    def from_dcm(dcm: np.ndarray) -> 'Quaternion':
        """
        Create a quaternion from a 3x3 rotation matrix.

        The matrix columns are the images of the model-frame axes, i.e. the
        same matrix ``to_dcm`` returns.  Shepperd's method extracts the
        largest component first, which keeps the conversion well conditioned
        near 180-degree rotations where the trace-only formula breaks down.

        Raises
        ------
        ValueError
            If *dcm* is not 3x3 or not orthogonal.
        """
        dcm = np.asarray(dcm, dtype=np.float64)

        if dcm.shape != (3, 3):
            raise ValueError(f"DCM must be 3x3, got shape {dcm.shape}")

        orthogonality_error = np.linalg.norm(dcm.T @ dcm - np.eye(3))
        if orthogonality_error > 1e-6:
            raise ValueError(
                f"Input matrix is not orthogonal (error = {orthogonality_error:.2e})."
            )

        trace = np.trace(dcm)

        d0 = 1.0 + trace                          # 4*w^2
        d1 = 1.0 + 2.0 * dcm[0, 0] - trace        # 4*x^2
        d2 = 1.0 + 2.0 * dcm[1, 1] - trace        # 4*y^2
        d3 = 1.0 + 2.0 * dcm[2, 2] - trace        # 4*z^2

        d_max = max(d0, d1, d2, d3)

        if d_max == d0:
            w = 0.5 * np.sqrt(d0)
            s = 0.25 / w
            x = (dcm[2, 1] - dcm[1, 2]) * s
            y = (dcm[0, 2] - dcm[2, 0]) * s
            z = (dcm[1, 0] - dcm[0, 1]) * s
        elif d_max == d1:
            x = 0.5 * np.sqrt(d1)
            s = 0.25 / x
            w = (dcm[2, 1] - dcm[1, 2]) * s
            y = (dcm[0, 1] + dcm[1, 0]) * s
            z = (dcm[0, 2] + dcm[2, 0]) * s
        elif d_max == d2:
            y = 0.5 * np.sqrt(d2)
            s = 0.25 / y
            w = (dcm[0, 2] - dcm[2, 0]) * s
            x = (dcm[0, 1] + dcm[1, 0]) * s
            z = (dcm[1, 2] + dcm[2, 1]) * s
        else:
            z = 0.5 * np.sqrt(d3)
            s = 0.25 / z
            w = (dcm[1, 0] - dcm[0, 1]) * s
            x = (dcm[0, 2] + dcm[2, 0]) * s
            y = (dcm[1, 2] + dcm[2, 1]) * s

        return Quaternion(w, x, y, z)

    # =========================================================================
    # ARITHMETIC AND ROTATION
    # =========================================================================

    def conjugate(self) -> 'Quaternion':
        """Reverse rotation (equal to the inverse for unit quaternions)."""
        return Quaternion(self.w, -self.x, -self.y, -self.z, normalize=False)

    def multiply(self, other: 'Quaternion') -> 'Quaternion':
        """
        Hamilton product ``self * other``: rotate by *other*, then by *self*.
        """
        a1, b1, c1, d1 = self._q
        a2, b2, c2, d2 = other._q

        w = a1 * a2 - b1 * b2 - c1 * c2 - d1 * d2
        x = a1 * b2 + b1 * a2 + c1 * d2 - d1 * c2
        y = a1 * c2 - b1 * d2 + c1 * a2 + d1 * b2
        z = a1 * d2 + b1 * c2 - c1 * b2 + d1 * a2

        return Quaternion(w, x, y, z)

    def rotate_vector(self, v: np.ndarray) -> np.ndarray:
        """
        Rotate a 3-vector by this quaternion.

        Uses the Rodrigues form  v' = v + w*t + u x t  with t = 2 (u x v),
        which avoids building the full sandwich product.
        """
        v = np.asarray(v, dtype=np.float64)
        u = self._q[1:]
        t = 2.0 * np.cross(u, v)
        return v + self._q[0] * t + np.cross(u, t)

    def to_dcm(self) -> np.ndarray:
        """
        Rotation matrix R with ``R @ v == rotate_vector(v)``.

        Column k of R is the image of model axis k.
        """
        w, x, y, z = self._q

        xx, yy, zz = x * x, y * y, z * z
        xy, xz, yz = x * y, x * z, y * z
        wx, wy, wz = w * x, w * y, w * z

        return np.array([
            [1.0 - 2.0 * (yy + zz),  2.0 * (xy - wz),        2.0 * (xz + wy)],
            [2.0 * (xy + wz),         1.0 - 2.0 * (xx + zz),  2.0 * (yz - wx)],
            [2.0 * (xz - wy),         2.0 * (yz + wx),         1.0 - 2.0 * (xx + yy)]
        ], dtype=np.float64)

    def angle_to(self, other: 'Quaternion') -> float:
        """Smallest rotation angle (rad) taking this orientation to *other*."""
        d = np.clip(abs(np.dot(self._q, other._q)), 0.0, 1.0)
        return 2.0 * float(np.arccos(d))

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.w, self.x, self.y, self.z)

    # =========================================================================
    # DUNDER METHODS
    # =========================================================================

    def __mul__(self, other: 'Quaternion') -> 'Quaternion':
        if isinstance(other, Quaternion):
            return self.multiply(other)
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        """Equal when both represent the same rotation within tolerance."""
        if not isinstance(other, Quaternion):
            return NotImplemented

        diff_pos = np.linalg.norm(self._q - other._q)
        diff_neg = np.linalg.norm(self._q + other._q)
        return min(diff_pos, diff_neg) < self._COMPARISON_TOLERANCE

    def __hash__(self) -> int:
        return hash(tuple(np.round(self._q, decimals=8)))

    def __repr__(self) -> str:
        return (f"Quaternion(w={self.w:+.8f}, x={self.x:+.8f}, "
                f"y={self.y:+.8f}, z={self.z:+.8f})")

    def is_unit(self, tolerance: float = 1e-8) -> bool:
        return abs(self.norm - 1.0) < tolerance

    def copy(self) -> 'Quaternion':
        return Quaternion(self.w, self.x, self.y, self.z, normalize=False)
