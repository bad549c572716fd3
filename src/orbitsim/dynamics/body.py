"""
===============================================================================
ORBITSIM - Body State
===============================================================================
Physical state of one simulated body and its integration contract.

A ``Body`` holds only value-like physical state (position, velocity, cached
acceleration, mass, flags, orientation).  The visual asset the presentation
layer draws it with is a shared reference that cloning never duplicates.

Integration
-----------
Velocity Verlet, using the acceleration cached from the previous step:

    x' = x + v*dt + 0.5*a_prev*dt^2
    v' = v + 0.5*(a_prev + a)*dt
    a_prev' = a

It is time-reversible and second-order accurate, so orbits stay closed under
a fixed or near-fixed step where explicit Euler would drift in energy.
===============================================================================
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

import numpy as np

from ..core import vectors as vec
from ..core.constants import DEFAULT_SPIN_AXIS
from ..core.exceptions import InvalidBodyError, InvalidTimestepError
from ..core.quaternion import Quaternion
from ..core.vectors import Vector3
from .forces import DragParameters

logger = logging.getLogger(__name__)


class BodyRole(Enum):
    """Which update routine a body receives."""
    PRIMARY = 'primary'
    SECONDARY = 'secondary'

    @classmethod
    def parse(cls, value) -> 'BodyRole':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown body role: {value!r}. Valid: {[r.value for r in cls]}"
            ) from None


@dataclass
class ForceFlags:
    """
    Per-body force switches.

    ``forces_enabled`` is the master switch: when False the body is frozen
    regardless of the other flags.  Gravity and drag only apply to
    secondaries.
    """
    forces_enabled: bool = True
    gravity_enabled: bool = True
    drag_enabled: bool = True
    drag: DragParameters = field(default_factory=DragParameters)


@dataclass
class Body:
    """
    One simulated physical object.

    Attributes
    ----------
    body_id : int
        Identity, unique for the lifetime of a run.
    name : str
        Display name (from the template unless overridden).
    role : BodyRole
        PRIMARY (fixed-rate spin only) or SECONDARY (force-driven).
    mass : float
        Mass in kg; must be positive.
    position : ndarray (3,)
        Primary-centred inertial position (m).
    velocity : ndarray (3,)
        Inertial velocity (m/s).
    previous_acceleration : ndarray (3,)
        Acceleration cached from the last integration step (m/s^2).
    orientation : Quaternion
        Model-to-inertial rotation read by the presentation layer.
    radius : float
        Physical radius (m); a primary's radius sets the drag altitude datum.
    scale : ndarray (3,)
        Model scale requested by the template, passed through untouched.
    spin_axis : ndarray (3,)
        Local axis a primary spins about.
    rotation_rate : float
        Primary spin rate (rad/s).
    flags : ForceFlags
        Force switches and drag tuning.
    in_scene : bool
        Whether the body is stepped and visible.
    asset : object or None
        Shared visual asset handle; never copied.
    """
    body_id: int
    name: str
    role: BodyRole
    mass: float
    position: Vector3 = field(default_factory=vec.zero)
    velocity: Vector3 = field(default_factory=vec.zero)
    previous_acceleration: Vector3 = field(default_factory=vec.zero)
    orientation: Quaternion = field(default_factory=Quaternion.identity)
    radius: float = 0.0
    scale: Vector3 = field(default_factory=lambda: vec.vec3(1.0, 1.0, 1.0))
    spin_axis: Vector3 = field(default_factory=lambda: vec.as_vector(DEFAULT_SPIN_AXIS))
    rotation_rate: float = 0.0
    flags: ForceFlags = field(default_factory=ForceFlags)
    in_scene: bool = False
    asset: Optional[Any] = None

    def __post_init__(self) -> None:
        self.role = BodyRole.parse(self.role)
        self.position = vec.as_vector(self.position)
        self.velocity = vec.as_vector(self.velocity)
        self.previous_acceleration = vec.as_vector(self.previous_acceleration)
        self.scale = vec.as_vector(self.scale)
        self.spin_axis = vec.as_vector(self.spin_axis)

    # ------------------------------------------------------------------ #
    @property
    def is_primary(self) -> bool:
        return self.role is BodyRole.PRIMARY

    @property
    def is_secondary(self) -> bool:
        return self.role is BodyRole.SECONDARY

    @property
    def speed(self) -> float:
        return vec.length(self.velocity)

    def validate(self) -> None:
        """
        Reject a body that cannot safely enter the force calculations.

        Raises
        ------
        InvalidBodyError
            If mass is not a positive finite number, or position/velocity
            contain NaN or infinity.
        """
        if not math.isfinite(self.mass) or self.mass <= 0.0:
            raise InvalidBodyError(
                f"Body '{self.name}' must have positive finite mass, got {self.mass!r}"
            )
        if not vec.is_finite(self.position):
            raise InvalidBodyError(f"Body '{self.name}' has a non-finite position")
        if not vec.is_finite(self.velocity):
            raise InvalidBodyError(f"Body '{self.name}' has a non-finite velocity")
        if self.radius < 0.0 or not math.isfinite(self.radius):
            raise InvalidBodyError(
                f"Body '{self.name}' must have a finite non-negative radius"
            )

    def is_finite(self) -> bool:
        return (vec.is_finite(self.position)
                and vec.is_finite(self.velocity)
                and vec.is_finite(self.previous_acceleration))

    def clone(self, body_id: int, name: Optional[str] = None) -> 'Body':
        """
        Copy the physical state under a new identity.

        Vectors and flags are duplicated; the asset handle is shared so a
        model loaded once can back any number of bodies.  The clone starts
        out of the scene.
        """
        return Body(
            body_id=body_id,
            name=name if name is not None else self.name,
            role=self.role,
            mass=self.mass,
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            previous_acceleration=self.previous_acceleration.copy(),
            orientation=self.orientation.copy(),
            radius=self.radius,
            scale=self.scale.copy(),
            spin_axis=self.spin_axis.copy(),
            rotation_rate=self.rotation_rate,
            flags=replace(self.flags),
            in_scene=False,
            asset=self.asset,
        )

    def integrate(self, dt: float, acceleration: Vector3) -> None:
        integrate(self, dt, acceleration)


def integrate(body: Body, dt: float, acceleration: Vector3) -> None:
    """
    Advance *body* by one velocity-Verlet step, in place.

    Parameters
    ----------
    body : Body
        Body to advance.  Nothing happens when ``body.flags.forces_enabled``
        is False: position, velocity and the acceleration cache stay frozen.
    dt : float
        Time step (s).  Zero is a no-op.  A negative value steps backward in
        time; because the scheme is symmetric, stepping by +dt and then -dt
        with the same acceleration returns to the starting state.
    acceleration : ndarray (3,)
        Acceleration at the new state (m/s^2).  Copied into the cache.

    Raises
    ------
    InvalidTimestepError
        If *dt* is NaN or infinite.
    """
    if not math.isfinite(dt):
        raise InvalidTimestepError(f"Time step must be finite, got {dt!r}")
    if dt == 0.0 or not body.flags.forces_enabled:
        return

    acceleration = vec.as_vector(acceleration)
    a_prev = body.previous_acceleration

    new_position = (body.position
                    + body.velocity * dt
                    + a_prev * (0.5 * dt * dt))
    new_velocity = body.velocity + (a_prev + acceleration) * (0.5 * dt)

    body.previous_acceleration = acceleration
    body.position = np.asarray(new_position, dtype=np.float64)
    body.velocity = np.asarray(new_velocity, dtype=np.float64)
