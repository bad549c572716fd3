"""
===============================================================================
ORBITSIM - Physical Constants and Simulation Defaults
===============================================================================
Central repository for the physical constants and tuning defaults used by the
force models and the stepper.  SI units throughout (meters, seconds,
kilograms, radians).

Positions are expressed in an inertial frame centred on the primary body's
nominal origin.  Any scaling applied for display is the caller's concern; no
constant here is a display factor.
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
TWO_PI = 2.0 * np.pi
HALF_PI = 0.5 * np.pi
DEG2RAD = PI / 180.0
RAD2DEG = 180.0 / PI

# =============================================================================
# FUNDAMENTAL PHYSICAL CONSTANTS
# =============================================================================
GRAVITATIONAL_CONSTANT = 6.67430e-11   # m^3 / (kg * s^2)

# =============================================================================
# EARTH PARAMETERS
# =============================================================================
EARTH_MASS = 5.972e24                  # kg
EARTH_RADIUS = 6.371e6                 # Mean radius (m)
EARTH_ROTATION_RATE = 7.292115e-5      # rad/s (sidereal)

# Earth atmosphere model constants (exponential model)
EARTH_SEA_LEVEL_DENSITY = 1.225        # kg/m^3
EARTH_SCALE_HEIGHT = 8500.0            # m

# =============================================================================
# SATELLITE DEFAULTS
# =============================================================================
SATELLITE_MASS = 1000.0                # kg
SATELLITE_DRAG_COEFFICIENT = 2.2       # typical flat-faced satellite Cd
SATELLITE_CROSS_SECTION = 10.0         # m^2
SATELLITE_INIT_ALTITUDE = 500e3        # m

# =============================================================================
# STEPPER DEFAULTS
# =============================================================================
MAX_FRAME_DT = 0.1                     # s; cap on one wall-clock frame delta
DEFAULT_TIME_SCALE = 1.0               # simulated seconds per (clamped) wall second
DEFAULT_TELEMETRY_LIMIT = 100_000      # in-memory telemetry records per stepper

# Orientation is only recomputed above this squared speed (m^2/s^2)
ORIENTATION_SPEED_SQ_THRESHOLD = 0.1

# Primary spin axis in its own frame (the model's vertical axis)
DEFAULT_SPIN_AXIS = (0.0, 1.0, 0.0)

# =============================================================================
# USEFUL DERIVED QUANTITIES
# =============================================================================
EARTH_MU = GRAVITATIONAL_CONSTANT * EARTH_MASS
SATELLITE_INIT_RADIUS = EARTH_RADIUS + SATELLITE_INIT_ALTITUDE
SATELLITE_CIRCULAR_VELOCITY = np.sqrt(EARTH_MU / SATELLITE_INIT_RADIUS)
SATELLITE_ORBITAL_PERIOD = TWO_PI * np.sqrt(SATELLITE_INIT_RADIUS**3 / EARTH_MU)
