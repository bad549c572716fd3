"""
===============================================================================
ORBITSIM - Body State and Integration Test Suite
===============================================================================
Tests for Body validation, cloning and the velocity-Verlet integration step:
the update formulas, the no-op cases, time symmetry and the absence of
aliasing between the cached and current vectors.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from orbitsim.core.exceptions import InvalidBodyError, InvalidTimestepError
from orbitsim.dynamics.body import Body, BodyRole, ForceFlags, integrate
from orbitsim.simulation.assets import AssetHandle


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def body():
    return Body(body_id=7, name='Probe', role=BodyRole.SECONDARY, mass=100.0,
                position=[7.0e6, 0.0, 0.0], velocity=[0.0, 7.5e3, 10.0],
                previous_acceleration=[-8.0, 0.1, 0.0])


# =============================================================================
# Test: Construction and validation
# =============================================================================

class TestBodyState:

    def test_vectors_coerced(self, body):
        assert body.position.dtype == np.float64
        assert body.position.shape == (3,)

    def test_role_parsed_from_string(self):
        b = Body(body_id=1, name='E', role='primary', mass=1.0)
        assert b.role is BodyRole.PRIMARY
        assert b.is_primary and not b.is_secondary

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            Body(body_id=1, name='E', role='moon', mass=1.0)

    def test_valid_body_passes(self, body):
        body.validate()

    @pytest.mark.parametrize("mass", [0.0, -1.0, np.nan, np.inf])
    def test_invalid_mass(self, mass):
        b = Body(body_id=1, name='Bad', role=BodyRole.SECONDARY, mass=mass)
        with pytest.raises(InvalidBodyError):
            b.validate()

    @pytest.mark.parametrize("field_name", ['position', 'velocity'])
    def test_non_finite_state(self, body, field_name):
        setattr(body, field_name, np.array([np.nan, 0.0, 0.0]))
        with pytest.raises(InvalidBodyError):
            body.validate()
        assert not body.is_finite()

    def test_invalid_body_is_value_error(self):
        b = Body(body_id=1, name='Bad', role=BodyRole.SECONDARY, mass=0.0)
        with pytest.raises(ValueError):
            b.validate()

    def test_speed(self, body):
        assert_allclose(body.speed, np.hypot(7.5e3, 10.0))


# =============================================================================
# Test: Cloning
# =============================================================================

class TestClone:

    def test_clone_copies_vectors(self, body):
        dup = body.clone(body_id=8, name='Probe 2')
        assert dup.body_id == 8 and dup.name == 'Probe 2'
        assert_allclose(dup.position, body.position)
        dup.position[0] = 0.0
        dup.velocity[1] = 0.0
        assert body.position[0] == 7.0e6
        assert body.velocity[1] == 7.5e3

    def test_clone_copies_flags(self, body):
        dup = body.clone(body_id=8)
        dup.flags.drag_enabled = False
        assert body.flags.drag_enabled

    def test_clone_shares_asset(self, body):
        body.asset = AssetHandle('model.glb')
        dup = body.clone(body_id=8)
        assert dup.asset is body.asset

    def test_clone_starts_out_of_scene(self, body):
        body.in_scene = True
        assert not body.clone(body_id=8).in_scene


# =============================================================================
# Test: Velocity-Verlet integration
# =============================================================================

class TestIntegrate:

    def test_update_formulas(self, body):
        dt = 2.0
        a_new = np.array([-7.9, 0.2, 0.05])
        x0, v0, a0 = body.position.copy(), body.velocity.copy(), body.previous_acceleration.copy()

        integrate(body, dt, a_new)

        assert_allclose(body.position, x0 + v0 * dt + 0.5 * a0 * dt ** 2, rtol=1e-15)
        assert_allclose(body.velocity, v0 + 0.5 * (a0 + a_new) * dt, rtol=1e-15)
        assert_allclose(body.previous_acceleration, a_new)

    def test_method_delegates(self, body):
        expected = body.clone(body_id=99)
        integrate(expected, 1.0, [0.0, 0.0, -1.0])
        body.integrate(1.0, [0.0, 0.0, -1.0])
        assert_allclose(body.position, expected.position)
        assert_allclose(body.velocity, expected.velocity)

    def test_zero_dt_is_noop(self, body):
        before = body.clone(body_id=99)
        integrate(body, 0.0, [1.0, 1.0, 1.0])
        assert_allclose(body.position, before.position)
        assert_allclose(body.velocity, before.velocity)
        assert_allclose(body.previous_acceleration, before.previous_acceleration)

    @pytest.mark.parametrize("dt", [1e-3, 1.0, 60.0, 1e6])
    def test_forces_disabled_is_noop(self, body, dt):
        body.flags = ForceFlags(forces_enabled=False)
        before = body.clone(body_id=99)
        integrate(body, dt, [5.0, 5.0, 5.0])
        assert_allclose(body.position, before.position)
        assert_allclose(body.velocity, before.velocity)
        assert_allclose(body.previous_acceleration, before.previous_acceleration)

    @pytest.mark.parametrize("dt", [np.nan, np.inf, -np.inf])
    def test_non_finite_dt_rejected(self, body, dt):
        with pytest.raises(InvalidTimestepError):
            integrate(body, dt, [0.0, 0.0, 0.0])

    @pytest.mark.parametrize("dt", [0.1, 10.0, 60.0])
    def test_time_symmetric_for_constant_acceleration(self, body, dt):
        """Forward by dt then back by -dt returns to the start."""
        a = np.array([-8.1, 0.3, -0.02])
        body.previous_acceleration = a.copy()
        x0, v0 = body.position.copy(), body.velocity.copy()

        integrate(body, dt, a)
        integrate(body, -dt, a)

        assert_allclose(body.position, x0, rtol=1e-13, atol=1e-6)
        assert_allclose(body.velocity, v0, rtol=1e-13, atol=1e-9)

    def test_no_aliasing_between_cache_and_input(self, body):
        a_new = np.array([1.0, 2.0, 3.0])
        integrate(body, 1.0, a_new)
        a_new[0] = 100.0
        assert body.previous_acceleration[0] == 1.0

    def test_no_aliasing_between_position_and_velocity(self, body):
        old_position = body.position
        old_velocity = body.velocity
        integrate(body, 1.0, [0.0, 0.0, 0.0])
        assert body.position is not old_position
        assert body.velocity is not old_velocity
        assert not np.shares_memory(body.position, body.velocity)
        assert not np.shares_memory(body.velocity, body.previous_acceleration)
