"""
===============================================================================
ORBITSIM - Environment Models
===============================================================================
Exponential atmosphere of the primary body, used by the drag model.

All positions are expressed in the primary-centred inertial frame; altitude
is measured from the primary's mean radius.  SI units throughout.
===============================================================================
"""

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ..core.constants import EARTH_RADIUS, EARTH_SCALE_HEIGHT, EARTH_SEA_LEVEL_DENSITY


# ============================================================================
#  EXPONENTIAL ATMOSPHERE MODEL
# ============================================================================

class ExponentialAtmosphere:
    """
    Simplified exponential atmosphere.

    The density is modelled as:

        rho(h) = rho_0 * exp(-h / H)

    where
        rho_0 = sea-level density  (1.225 kg/m^3 for Earth)
        H     = scale height       (8500 m for Earth)
        h     = altitude above the mean radius (m)

    The model is undefined inside the body, so negative altitudes yield zero
    density.  An optional upper limit truncates the tail to exactly zero.

    Parameters
    ----------
    rho_0 : float, optional
        Sea-level atmospheric density in kg/m^3.
    scale_height : float, optional
        Atmospheric scale height in metres.
    body_radius : float, optional
        Mean radius of the primary (m).
    atmosphere_limit : float, optional
        Altitude above which density is treated as zero (m).  None (default)
        keeps the exponential tail everywhere.
    """

    def __init__(
        self,
        rho_0: float = EARTH_SEA_LEVEL_DENSITY,
        scale_height: float = EARTH_SCALE_HEIGHT,
        body_radius: float = EARTH_RADIUS,
        atmosphere_limit: Optional[float] = None,
    ) -> None:
        if scale_height <= 0.0:
            raise ValueError(f"scale_height must be positive, got {scale_height}")
        self.rho_0 = rho_0
        self.scale_height = scale_height
        self.body_radius = body_radius
        self.atmosphere_limit = atmosphere_limit

    # ------------------------------------------------------------------ #
    def get_density(self, altitude: float) -> float:
        """
        Return atmospheric density at the given altitude.

        Parameters
        ----------
        altitude : float
            Altitude above the mean radius in metres.

        Returns
        -------
        float
            Density in kg/m^3; 0.0 below the surface or above the limit.
        """
        if altitude < 0.0:
            return 0.0
        if self.atmosphere_limit is not None and altitude > self.atmosphere_limit:
            return 0.0

        return float(self.rho_0 * np.exp(-altitude / self.scale_height))

    # ------------------------------------------------------------------ #
    def altitude(self, position: NDArray) -> float:
        """Altitude of a primary-centred position above the mean radius (m)."""
        return float(np.linalg.norm(position)) - self.body_radius

    def get_density_from_position(self, position: NDArray) -> float:
        """Density at a primary-centred position vector (kg/m^3)."""
        return self.get_density(self.altitude(position))

    def __repr__(self) -> str:
        return (f"ExponentialAtmosphere(rho_0={self.rho_0}, "
                f"scale_height={self.scale_height}, body_radius={self.body_radius})")
