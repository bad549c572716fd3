"""
===============================================================================
ORBITSIM
===============================================================================
Orbital simulator core: primaries spinning at a fixed rate, secondaries
moving under point-mass gravity and exponential-atmosphere drag, advanced by
velocity Verlet and oriented along their velocity.

Subpackages:
    core          -- vectors, quaternion, constants, configuration, exceptions
    dynamics      -- force models, body state and integration, orientation
    simulation    -- assets, templates, the system stepper, clock, diagnostics
    visualization -- offline telemetry plots
===============================================================================
"""

from .core.config import SimulationConfig, load_config
from .core.exceptions import (
    AssetNotReadyError,
    CoincidentBodiesError,
    ConfigurationError,
    InvalidBodyError,
    InvalidTimestepError,
    OrbitSimError,
    UnknownBodyError,
)
from .simulation.stepper import StepFailure, SystemStepper

__version__ = '1.0.0'

__all__ = [
    'SimulationConfig',
    'load_config',
    'SystemStepper',
    'StepFailure',
    'OrbitSimError',
    'InvalidBodyError',
    'CoincidentBodiesError',
    'InvalidTimestepError',
    'UnknownBodyError',
    'AssetNotReadyError',
    'ConfigurationError',
]
