"""
===============================================================================
ORBITSIM - Simulation Configuration
===============================================================================
Global simulation constants and the YAML loader that reads them.

A configuration file has three top-level sections::

    simulation:             # SimulationConfig fields (all optional)
        gravitational_constant: 6.6743e-11
        primary_radius: 6.371e+6
        ...
    templates:              # name -> body template mapping
        earth: {role: primary, mass: 5.972e+24, ...}
    scenario:               # which bodies to create and how long to run
        ticks: 600
        dt: 10.0
        bodies:
            - {template: earth}
            - {template: satellite, primary: earth}

Missing keys fall back to the defaults in ``core.constants``.
===============================================================================
"""

import logging
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .constants import (
    DEFAULT_TELEMETRY_LIMIT,
    DEFAULT_TIME_SCALE,
    EARTH_RADIUS,
    EARTH_ROTATION_RATE,
    EARTH_SCALE_HEIGHT,
    EARTH_SEA_LEVEL_DENSITY,
    GRAVITATIONAL_CONSTANT,
    MAX_FRAME_DT,
    ORIENTATION_SPEED_SQ_THRESHOLD,
    SATELLITE_CROSS_SECTION,
    SATELLITE_DRAG_COEFFICIENT,
)
from .exceptions import ConfigurationError
from ..dynamics.forces import DragParameters

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """
    Global constants shared by every system in a run.

    Attributes
    ----------
    gravitational_constant : float
        G in m^3 kg^-1 s^-2.
    primary_radius : float
        Default primary radius (m), used by templates that omit one.
    primary_rotation_rate : float
        Default primary spin rate (rad/s).
    drag_coefficient, cross_section_area : float
        Default secondary drag tuning (dimensionless, m^2).
    sea_level_air_density, scale_height : float
        Exponential atmosphere parameters (kg/m^3, m).
    max_frame_dt : float
        Cap applied to one wall-clock frame delta (s).
    time_scale : float
        Simulated seconds per clamped wall second.
    orientation_speed_sq_threshold : float
        Squared speed (m^2/s^2) below which orientation is left unchanged.
    record_telemetry : bool
        Whether the stepper keeps per-tick telemetry records.
    telemetry_limit : int
        Most recent records kept in memory; older ones are discarded.  0
        keeps every record.
    """
    gravitational_constant: float = GRAVITATIONAL_CONSTANT
    primary_radius: float = EARTH_RADIUS
    primary_rotation_rate: float = EARTH_ROTATION_RATE
    drag_coefficient: float = SATELLITE_DRAG_COEFFICIENT
    cross_section_area: float = SATELLITE_CROSS_SECTION
    sea_level_air_density: float = EARTH_SEA_LEVEL_DENSITY
    scale_height: float = EARTH_SCALE_HEIGHT
    max_frame_dt: float = MAX_FRAME_DT
    time_scale: float = DEFAULT_TIME_SCALE
    orientation_speed_sq_threshold: float = ORIENTATION_SPEED_SQ_THRESHOLD
    record_telemetry: bool = True
    telemetry_limit: int = DEFAULT_TELEMETRY_LIMIT

    # Fields that must be strictly positive / merely non-negative.
    _POSITIVE = (
        'gravitational_constant', 'primary_radius', 'scale_height',
        'max_frame_dt', 'time_scale',
    )
    _NON_NEGATIVE = (
        'drag_coefficient', 'cross_section_area', 'sea_level_air_density',
        'orientation_speed_sq_threshold', 'telemetry_limit',
    )

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check every numeric field.

        Raises
        ------
        ConfigurationError
            If a value is non-finite or outside its allowed range.
        """
        for f in fields(self):
            if f.name == 'record_telemetry':
                continue
            value = getattr(self, f.name)
            if not math.isfinite(value):
                raise ConfigurationError(f"{f.name} must be finite, got {value!r}")
        for name in self._POSITIVE:
            if getattr(self, name) <= 0.0:
                raise ConfigurationError(
                    f"{name} must be positive, got {getattr(self, name)!r}"
                )
        for name in self._NON_NEGATIVE:
            if getattr(self, name) < 0.0:
                raise ConfigurationError(
                    f"{name} must be non-negative, got {getattr(self, name)!r}"
                )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'SimulationConfig':
        """
        Build a config from a (possibly partial) mapping.

        Unknown keys are logged and ignored; numeric strings such as
        ``"5.972e24"`` (which YAML 1.1 does not parse as floats) are coerced.
        """
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}

        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown simulation setting '%s'", key)
                continue
            if key == 'record_telemetry':
                kwargs[key] = bool(value)
                continue
            try:
                kwargs[key] = int(float(value)) if key == 'telemetry_limit' else float(value)
            except (TypeError, ValueError, OverflowError) as exc:
                raise ConfigurationError(
                    f"Setting '{key}' must be numeric, got {value!r}"
                ) from exc

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def default_drag_parameters(self):
        """Drag parameters for secondaries whose template gives none."""
        return DragParameters(
            drag_coefficient=self.drag_coefficient,
            cross_section_area=self.cross_section_area,
            sea_level_air_density=self.sea_level_air_density,
            scale_height=self.scale_height,
        )


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a simulation configuration from a YAML file.

    Parameters
    ----------
    config_path : str or Path
        Path to the YAML file.

    Returns
    -------
    dict
        ``simulation`` -> SimulationConfig, ``templates`` -> raw mapping,
        ``scenario`` -> raw mapping.

    Raises
    ------
    ConfigurationError
        If the file is not a YAML mapping.
    """
    config_path = Path(config_path)
    logger.info("Loading configuration from: %s", config_path)

    with open(config_path, 'r', encoding='utf-8') as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"{config_path} must contain a mapping at the top level"
        )

    config = {
        'simulation': SimulationConfig.from_dict(raw.get('simulation')),
        'templates': dict(raw.get('templates') or {}),
        'scenario': dict(raw.get('scenario') or {}),
    }
    logger.info(
        "Configuration loaded: %d template(s), %d scenario body(ies)",
        len(config['templates']), len(config['scenario'].get('bodies') or []),
    )
    return config
