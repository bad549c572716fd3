"""
===============================================================================
ORBITSIM - Orientation Solver
===============================================================================
Derives body orientations for the presentation layer:

    solve_orientation   secondary faces along its velocity, "up" along the
                        orbital-plane normal, plus a fixed model-axis fix-up
    spin                fixed-rate rotation of a primary about its own axis

The look-at basis follows the usual scene-graph convention: the local -Z
axis points at the target and local +Y is as close to the reference up as
the basis allows.  Satellite models are authored with their forward along a
different axis, so a +90 degree turn about the local lateral (X) axis is
applied afterwards; net effect, model axis ``MODEL_FORWARD_AXIS`` ends up
along the velocity.
===============================================================================
"""

import logging
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ..core import vectors as vec
from ..core.constants import HALF_PI, ORIENTATION_SPEED_SQ_THRESHOLD
from ..core.quaternion import Quaternion

logger = logging.getLogger(__name__)

# Model-frame axis that ends up aligned with the velocity vector.
MODEL_FORWARD_AXIS = np.array([0.0, -1.0, 0.0])

# Local axis and angle of the model-axis correction.
_LATERAL_AXIS = np.array([1.0, 0.0, 0.0])
_MODEL_CORRECTION = Quaternion.from_axis_angle(_LATERAL_AXIS, HALF_PI)

# Below this, a basis vector is treated as degenerate.
_DEGENERATE_NORM = 1e-12


def look_at_dcm(eye: NDArray, target: NDArray, up: NDArray) -> Optional[NDArray]:
    """
    Rotation matrix whose local -Z axis points from *eye* toward *target*.

    Columns are the local axes expressed in the inertial frame:

        z = unit(eye - target)
        x = unit(up x z)
        y = z x x

    Returns
    -------
    ndarray (3, 3) or None
        None when eye and target coincide or *up* is parallel to the view
        axis, i.e. when no unique basis exists.
    """
    z_axis = vec.sub(eye, target)
    if vec.length(z_axis) < _DEGENERATE_NORM:
        return None
    z_axis = vec.normalize(z_axis)

    x_axis = vec.cross(up, z_axis)
    if vec.length(x_axis) < _DEGENERATE_NORM:
        return None
    x_axis = vec.normalize(x_axis)

    y_axis = vec.cross(z_axis, x_axis)
    return np.column_stack((x_axis, y_axis, z_axis))


def solve_orientation(body, current: Optional[Quaternion] = None,
                      speed_sq_threshold: float = ORIENTATION_SPEED_SQ_THRESHOLD,
                      primary_position: Optional[NDArray] = None) -> Quaternion:
    """
    Velocity-aligned orientation for a secondary.

    Parameters
    ----------
    body : Body
        Secondary to orient.
    current : Quaternion, optional
        Orientation to keep when no new one can be derived.  Defaults to the
        body's own orientation.
    speed_sq_threshold : float, optional
        Squared-speed deadband (m^2/s^2); at or below it the orientation is
        left unchanged rather than snapping to an arbitrary value.
    primary_position : ndarray (3,), optional
        Centre of the primary; the origin when omitted.

    Returns
    -------
    Quaternion
        New orientation, or *current* when the speed is inside the deadband
        or the motion is purely radial (orbital-plane normal undefined).
    """
    if current is None:
        current = body.orientation

    velocity = body.velocity
    if vec.length_sq(velocity) <= speed_sq_threshold:
        return current

    forward = vec.normalize(velocity)
    radial = body.position
    if primary_position is not None:
        radial = vec.sub(radial, primary_position)
    up = vec.normalize(vec.cross(vec.normalize(radial), velocity))

    # Looking from the body toward body + forward; the basis only depends on
    # the difference, so the origin stands in for the (large) position.
    dcm = look_at_dcm(vec.zero(), forward, up)
    if dcm is None:
        logger.debug("Orientation of '%s' left unchanged: degenerate basis", body.name)
        return current

    return Quaternion.from_dcm(dcm).multiply(_MODEL_CORRECTION)


def spin(orientation: Quaternion, axis: NDArray, rate: float, dt: float) -> Quaternion:
    """Rotate *orientation* by ``rate * dt`` radians about its local *axis*."""
    angle = rate * dt
    if angle == 0.0:
        return orientation
    return orientation.multiply(Quaternion.from_axis_angle(axis, angle))
