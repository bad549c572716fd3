"""
===============================================================================
ORBITSIM - Force Models
===============================================================================
Pure force functions for a primary/secondary pair:

    gravity(primary, secondary)        Newtonian point-mass attraction
    drag(secondary, params, radius)    exponential-atmosphere drag

Neither function mutates its arguments.  Both accept any object exposing
``position``, ``velocity``, ``mass`` and ``name`` (normally ``Body``), so they
can be exercised with literal states in tests.

The forces returned are in newtons; ``total_acceleration`` combines the
enabled contributions and divides by the secondary's mass.
===============================================================================
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import numpy as np

from ..core import vectors as vec
from ..core.constants import (
    EARTH_RADIUS,
    EARTH_SCALE_HEIGHT,
    EARTH_SEA_LEVEL_DENSITY,
    GRAVITATIONAL_CONSTANT,
    SATELLITE_CROSS_SECTION,
    SATELLITE_DRAG_COEFFICIENT,
)
from ..core.exceptions import CoincidentBodiesError
from ..core.vectors import Vector3
from .environment import ExponentialAtmosphere

if TYPE_CHECKING:
    from .body import Body


@dataclass(frozen=True)
class DragParameters:
    """
    Drag tuning for one secondary.

    Attributes
    ----------
    drag_coefficient : float
        Cd (dimensionless), 2.2 is typical for satellites.
    cross_section_area : float
        Projected area normal to the flow (m^2).
    sea_level_air_density : float
        Atmosphere density at zero altitude (kg/m^3).
    scale_height : float
        Altitude over which density falls by 1/e (m).
    """
    drag_coefficient: float = SATELLITE_DRAG_COEFFICIENT
    cross_section_area: float = SATELLITE_CROSS_SECTION
    sea_level_air_density: float = EARTH_SEA_LEVEL_DENSITY
    scale_height: float = EARTH_SCALE_HEIGHT

    def __post_init__(self) -> None:
        for name in ('drag_coefficient', 'cross_section_area', 'sea_level_air_density'):
            value = getattr(self, name)
            if not np.isfinite(value) or value < 0.0:
                raise ValueError(f"{name} must be finite and non-negative, got {value!r}")
        if not np.isfinite(self.scale_height) or self.scale_height <= 0.0:
            raise ValueError(f"scale_height must be positive, got {self.scale_height!r}")

    def atmosphere(self, primary_radius: float) -> ExponentialAtmosphere:
        return ExponentialAtmosphere(
            rho_0=self.sea_level_air_density,
            scale_height=self.scale_height,
            body_radius=primary_radius,
        )


# ============================================================================
#  GRAVITY
# ============================================================================

def gravity(primary, secondary,
            gravitational_constant: float = GRAVITATIONAL_CONSTANT) -> Vector3:
    """
    Newtonian attraction on *secondary* due to *primary*.

        r = secondary.position - primary.position
        F = -G * m_p * m_s / |r|^2 * r_hat

    The force points from the secondary toward the primary.

    Parameters
    ----------
    primary, secondary : Body
        The attracting body and the body the force acts on.
    gravitational_constant : float, optional
        G in m^3 kg^-1 s^-2.

    Returns
    -------
    ndarray, shape (3,)
        Force on the secondary (N).

    Raises
    ------
    CoincidentBodiesError
        If the two positions are identical.
    """
    r = vec.sub(secondary.position, primary.position)
    distance_sq = vec.length_sq(r)

    if distance_sq == 0.0:
        raise CoincidentBodiesError(primary.name, secondary.name)

    magnitude = gravitational_constant * primary.mass * secondary.mass / distance_sq
    return vec.scale(vec.normalize(r), -magnitude)


# ============================================================================
#  ATMOSPHERIC DRAG
# ============================================================================

def drag(secondary, params: DragParameters,
         primary_radius: float = EARTH_RADIUS,
         primary_position: Optional[Vector3] = None) -> Vector3:
    """
    Atmospheric drag opposing the secondary's velocity.

        h   = |position| - R_primary
        rho = rho_0 * exp(-h / H)
        F   = 0.5 * rho * v^2 * Cd * A,  directed along -v_hat

    Returns the zero vector when the body is below the surface (the model
    is undefined there) or at rest (no direction to oppose).

    Parameters
    ----------
    secondary : Body
        Body the drag acts on.
    params : DragParameters
        Drag coefficient, area and atmosphere parameters.
    primary_radius : float, optional
        Mean radius of the primary (m).
    primary_position : ndarray (3,), optional
        Centre of the primary; the origin when omitted.

    Returns
    -------
    ndarray, shape (3,)
        Drag force (N).
    """
    atmosphere = params.atmosphere(primary_radius)
    position = secondary.position
    if primary_position is not None:
        position = vec.sub(position, primary_position)
    altitude = atmosphere.altitude(position)
    if altitude < 0.0:
        return vec.zero()

    speed = vec.length(secondary.velocity)
    if speed == 0.0:
        return vec.zero()

    density = atmosphere.get_density(altitude)
    magnitude = (0.5 * density * speed * speed
                 * params.drag_coefficient * params.cross_section_area)
    return vec.scale(vec.normalize(secondary.velocity), -magnitude)


# ============================================================================
#  COMBINED ACCELERATION
# ============================================================================

def total_acceleration(primary: 'Body', secondary: 'Body',
                       gravitational_constant: float = GRAVITATIONAL_CONSTANT,
                       primary_radius: float = EARTH_RADIUS) -> Vector3:
    """
    Acceleration of *secondary* from its enabled force contributions.

    Gravity and drag are each included only when the secondary's flags
    enable them; the sum is divided by the secondary's mass.  Mass is
    validated when a body is admitted, so no guard is needed here.
    """
    flags = secondary.flags
    total_force = vec.zero()

    if flags.gravity_enabled:
        total_force = vec.add(total_force,
                              gravity(primary, secondary, gravitational_constant))
    if flags.drag_enabled:
        total_force = vec.add(total_force,
                              drag(secondary, flags.drag, primary_radius,
                                   primary.position))

    return vec.scale(total_force, 1.0 / secondary.mass)
