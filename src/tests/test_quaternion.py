"""
===============================================================================
ORBITSIM - Quaternion Test Suite
===============================================================================
Tests for the Quaternion class: identity, normalization, conjugate,
composition order, vector rotation, DCM conversions and equality.

All floating-point comparisons use numpy.testing.assert_allclose with
explicit tolerances appropriate for double-precision arithmetic.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from orbitsim.core.quaternion import Quaternion


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def identity_quat():
    return Quaternion.identity()


@pytest.fixture
def quat_90z():
    """90-degree rotation about Z."""
    return Quaternion.from_axis_angle(np.array([0.0, 0.0, 1.0]), np.pi / 2)


@pytest.fixture
def quat_90x():
    """90-degree rotation about X."""
    return Quaternion.from_axis_angle(np.array([1.0, 0.0, 0.0]), np.pi / 2)


@pytest.fixture
def general_quat():
    """A fixed rotation with no special symmetry."""
    return Quaternion.from_axis_angle(np.array([0.3, -0.5, 0.8]), 1.234)


# =============================================================================
# Test: Construction
# =============================================================================

class TestConstruction:

    def test_identity(self, identity_quat):
        assert_allclose(identity_quat.components, [1.0, 0.0, 0.0, 0.0], atol=1e-15)
        assert identity_quat.is_unit()
        assert_allclose(identity_quat.rotation_angle, 0.0, atol=1e-15)

    @pytest.mark.parametrize("w,x,y,z", [
        (2.0, 0.0, 0.0, 0.0),
        (3.0, 4.0, 0.0, 0.0),
        (1.0, 2.0, 3.0, 4.0),
    ])
    def test_normalized_on_construction(self, w, x, y, z):
        q = Quaternion(w, x, y, z)
        assert_allclose(q.norm, 1.0, atol=1e-14)

    def test_scalar_part_kept_non_negative(self):
        """q and -q are the same rotation; the w >= 0 form is stored."""
        q = Quaternion(-1.0, 1.0, 0.0, 0.0)
        assert q.w >= 0.0
        assert_allclose(q.components, np.array([1.0, -1.0, 0.0, 0.0]) / np.sqrt(2.0),
                        atol=1e-15)

    def test_zero_quaternion_rejected(self):
        with pytest.raises(ValueError):
            Quaternion(0.0, 0.0, 0.0, 0.0)

    def test_zero_axis_rejected(self):
        with pytest.raises(ValueError):
            Quaternion.from_axis_angle(np.zeros(3), 1.0)

    def test_axis_angle_rotation_angle(self, general_quat):
        assert_allclose(general_quat.rotation_angle, 1.234, atol=1e-12)


# =============================================================================
# Test: Conjugate and composition
# =============================================================================

class TestComposition:

    def test_conjugate_flips_vector_part(self, quat_90z):
        qc = quat_90z.conjugate()
        assert_allclose(qc.w, quat_90z.w, atol=1e-15)
        assert_allclose(qc.vector, -quat_90z.vector, atol=1e-15)

    def test_multiply_by_conjugate_is_identity(self, general_quat):
        result = general_quat.multiply(general_quat.conjugate())
        assert_allclose(result.components, [1.0, 0.0, 0.0, 0.0], atol=1e-14)

    def test_multiply_identity(self, general_quat, identity_quat):
        assert_allclose(general_quat.multiply(identity_quat).components,
                        general_quat.components, atol=1e-14)
        assert_allclose(identity_quat.multiply(general_quat).components,
                        general_quat.components, atol=1e-14)

    def test_right_operand_applied_first(self, quat_90z, quat_90x):
        """(qz * qx) rotates by qx and then by qz."""
        v = np.array([0.0, 1.0, 0.0])
        composed = quat_90z.multiply(quat_90x).rotate_vector(v)
        sequential = quat_90z.rotate_vector(quat_90x.rotate_vector(v))
        assert_allclose(composed, sequential, atol=1e-14)
        # y -> z under qx, z stays under qz
        assert_allclose(composed, [0.0, 0.0, 1.0], atol=1e-14)

    def test_mul_operator(self, quat_90z, quat_90x):
        assert (quat_90z * quat_90x) == quat_90z.multiply(quat_90x)


# =============================================================================
# Test: Rotate vector
# =============================================================================

class TestRotateVector:

    def test_rotate_vector_90z(self, quat_90z):
        assert_allclose(quat_90z.rotate_vector(np.array([1.0, 0.0, 0.0])),
                        [0.0, 1.0, 0.0], atol=1e-14)

    def test_rotate_preserves_magnitude(self, general_quat):
        v = np.array([3.0, -4.0, 5.0])
        assert_allclose(np.linalg.norm(general_quat.rotate_vector(v)),
                        np.linalg.norm(v), atol=1e-12)

    @pytest.mark.parametrize("axis,angle,v_in,v_expected", [
        ([0, 0, 1], np.pi, [1, 0, 0], [-1, 0, 0]),
        ([0, 1, 0], np.pi / 2, [1, 0, 0], [0, 0, -1]),
        ([1, 0, 0], np.pi / 2, [0, 1, 0], [0, 0, 1]),
    ])
    def test_rotate_parametrized(self, axis, angle, v_in, v_expected):
        q = Quaternion.from_axis_angle(np.array(axis, dtype=float), angle)
        result = q.rotate_vector(np.array(v_in, dtype=float))
        assert_allclose(result, np.array(v_expected, dtype=float), atol=1e-14)


# =============================================================================
# Test: DCM conversion
# =============================================================================

class TestDCM:

    def test_dcm_matches_rotate_vector(self, general_quat):
        v = np.array([0.2, -1.5, 0.7])
        assert_allclose(general_quat.to_dcm() @ v, general_quat.rotate_vector(v),
                        atol=1e-14)

    def test_dcm_is_orthonormal(self, general_quat):
        dcm = general_quat.to_dcm()
        assert_allclose(dcm.T @ dcm, np.eye(3), atol=1e-14)
        assert_allclose(np.linalg.det(dcm), 1.0, atol=1e-14)

    @pytest.mark.parametrize("axis,angle", [
        ([1, 0, 0], 0.3),
        ([0, 1, 0], np.pi - 1e-9),
        ([0, 0, 1], np.pi),
        ([1, 1, 1], 2.5),
        ([-0.2, 0.9, 0.1], 1.0),
    ])
    def test_from_dcm_recovers_rotation(self, axis, angle):
        """Includes near-180-degree cases where Shepperd's branch matters."""
        q = Quaternion.from_axis_angle(np.array(axis, dtype=float), angle)
        recovered = Quaternion.from_dcm(q.to_dcm())
        assert recovered == q

    def test_from_dcm_rejects_non_orthogonal(self):
        with pytest.raises(ValueError):
            Quaternion.from_dcm(np.diag([1.0, 2.0, 1.0]))

    def test_from_dcm_rejects_wrong_shape(self):
        with pytest.raises(ValueError):
            Quaternion.from_dcm(np.eye(2))


# =============================================================================
# Test: Equality and copies
# =============================================================================

class TestEquality:

    def test_equal_within_tolerance(self, general_quat):
        other = Quaternion(*(general_quat.components + 1e-12))
        assert other == general_quat

    def test_different_rotations_not_equal(self, quat_90z, quat_90x):
        assert quat_90z != quat_90x

    def test_angle_to(self, identity_quat, quat_90z):
        assert_allclose(identity_quat.angle_to(quat_90z), np.pi / 2, atol=1e-12)

    def test_copy_is_independent_value(self, general_quat):
        dup = general_quat.copy()
        assert dup == general_quat
        assert dup is not general_quat

    def test_as_tuple(self, quat_90z):
        assert_allclose(quat_90z.as_tuple(),
                        [np.cos(np.pi / 4), 0.0, 0.0, np.sin(np.pi / 4)], atol=1e-15)
