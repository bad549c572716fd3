"""
===============================================================================
ORBITSIM - Orientation Solver Test Suite
===============================================================================
Tests for the look-at basis, the velocity-aligned orientation of secondaries
(including the speed deadband and degenerate geometry) and primary spin.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from orbitsim.core.quaternion import Quaternion
from orbitsim.dynamics.body import Body, BodyRole
from orbitsim.dynamics.orientation import (
    MODEL_FORWARD_AXIS, look_at_dcm, solve_orientation, spin,
)


def make_body(position, velocity, orientation=None):
    return Body(body_id=1, name='Sat', role=BodyRole.SECONDARY, mass=1000.0,
                position=position, velocity=velocity,
                orientation=orientation or Quaternion.identity())


# =============================================================================
# Test: Look-at basis
# =============================================================================

class TestLookAt:

    def test_basis_for_prograde_motion(self):
        dcm = look_at_dcm(np.zeros(3), np.array([0.0, 1.0, 0.0]), np.array([0.0, 0.0, 1.0]))
        # columns: local x, y, z in inertial coordinates
        assert_allclose(dcm[:, 0], [1.0, 0.0, 0.0], atol=1e-15)
        assert_allclose(dcm[:, 1], [0.0, 0.0, 1.0], atol=1e-15)
        assert_allclose(dcm[:, 2], [0.0, -1.0, 0.0], atol=1e-15)

    def test_negative_z_points_at_target(self):
        eye = np.array([1.0, 2.0, 3.0])
        target = np.array([4.0, -2.0, 3.0])
        dcm = look_at_dcm(eye, target, np.array([0.0, 0.0, 1.0]))
        assert_allclose(-dcm[:, 2], (target - eye) / np.linalg.norm(target - eye), atol=1e-15)
        assert_allclose(dcm.T @ dcm, np.eye(3), atol=1e-14)
        assert_allclose(np.linalg.det(dcm), 1.0, atol=1e-14)

    def test_coincident_eye_and_target(self):
        assert look_at_dcm(np.ones(3), np.ones(3), np.array([0.0, 0.0, 1.0])) is None

    def test_up_parallel_to_view(self):
        assert look_at_dcm(np.zeros(3), np.array([0.0, 0.0, 1.0]),
                           np.array([0.0, 0.0, 1.0])) is None


# =============================================================================
# Test: Velocity-aligned orientation
# =============================================================================

class TestSolveOrientation:

    @pytest.mark.parametrize("position,velocity", [
        ([6.871e6, 0.0, 0.0], [0.0, 7612.6, 0.0]),
        ([0.0, 7.0e6, 0.0], [-7500.0, 0.0, 0.0]),
        ([4.0e6, 4.0e6, 3.0e6], [-3000.0, 2000.0, 5000.0]),
        ([7.0e6, 0.0, 0.0], [0.0, 5000.0, 5000.0]),
    ])
    def test_model_forward_follows_velocity(self, position, velocity):
        body = make_body(position, velocity)
        q = solve_orientation(body)
        forward = np.asarray(velocity) / np.linalg.norm(velocity)
        assert_allclose(q.rotate_vector(MODEL_FORWARD_AXIS), forward, atol=1e-12)
        assert q.is_unit()

    def test_model_axis_tracks_orbit_normal(self):
        """Model +Z ends up anti-parallel to the orbital-plane normal r x v."""
        body = make_body([6.871e6, 0.0, 0.0], [0.0, 7612.6, 0.0])
        q = solve_orientation(body)
        assert_allclose(q.rotate_vector([0.0, 0.0, 1.0]), [0.0, 0.0, -1.0], atol=1e-12)

    def test_below_speed_threshold_keeps_current(self):
        current = Quaternion.from_axis_angle([0.0, 1.0, 0.0], 0.7)
        body = make_body([7.0e6, 0.0, 0.0], [0.0, 0.3, 0.0], orientation=current)
        assert solve_orientation(body) is current

    def test_explicit_current_used_in_deadband(self):
        current = Quaternion.from_axis_angle([1.0, 0.0, 0.0], 0.2)
        body = make_body([7.0e6, 0.0, 0.0], [0.0, 0.0, 0.0])
        assert solve_orientation(body, current=current) is current

    def test_threshold_is_configurable(self):
        body = make_body([7.0e6, 0.0, 0.0], [0.0, 5.0, 0.0])
        assert solve_orientation(body, speed_sq_threshold=100.0) is body.orientation
        assert solve_orientation(body, speed_sq_threshold=0.1) is not body.orientation

    def test_radial_motion_keeps_current(self):
        body = make_body([7.0e6, 0.0, 0.0], [100.0, 0.0, 0.0])
        assert solve_orientation(body) is body.orientation

    def test_primary_offset(self):
        centre = np.array([1.0e6, -2.0e6, 0.5e6])
        body = make_body(centre + [6.871e6, 0.0, 0.0], [0.0, 7612.6, 0.0])
        reference = make_body([6.871e6, 0.0, 0.0], [0.0, 7612.6, 0.0])
        assert solve_orientation(body, primary_position=centre) == solve_orientation(reference)


# =============================================================================
# Test: Primary spin
# =============================================================================

class TestSpin:

    def test_spin_angle(self):
        q = spin(Quaternion.identity(), np.array([0.0, 1.0, 0.0]), 7.292115e-5, 60.0)
        assert_allclose(q.rotation_angle, 7.292115e-5 * 60.0, rtol=1e-9)

    def test_spin_accumulates(self):
        axis = np.array([0.0, 1.0, 0.0])
        q = Quaternion.identity()
        for _ in range(10):
            q = spin(q, axis, 0.01, 1.0)
        assert q == Quaternion.from_axis_angle(axis, 0.1)

    def test_zero_rate_returns_same(self):
        q = Quaternion.from_axis_angle([0.0, 0.0, 1.0], 0.4)
        assert spin(q, np.array([0.0, 1.0, 0.0]), 0.0, 10.0) is q

    def test_spin_about_local_axis(self):
        """With a tilted start, the spin axis is the body's own (rotated) axis."""
        tilt = Quaternion.from_axis_angle([1.0, 0.0, 0.0], np.pi / 2)
        q = spin(tilt, np.array([0.0, 1.0, 0.0]), np.pi / 2, 1.0)
        # the body's y axis is unchanged by a spin about it
        assert_allclose(q.rotate_vector([0.0, 1.0, 0.0]),
                        tilt.rotate_vector([0.0, 1.0, 0.0]), atol=1e-14)
