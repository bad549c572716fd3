"""
===============================================================================
ORBITSIM - Body Templates
===============================================================================
Named blueprints from which bodies are instantiated.

A template fixes everything a body starts with: mass, radius, model scale,
initial position and velocity, force switches and drag tuning, the asset it
is drawn with and (for primaries) its spin.  Templates are plain values;
``SystemStepper.create_body`` turns one into a live ``Body``.

Template mapping format (as found under ``templates:`` in the YAML config)::

    satellite:
        role: secondary
        mass: 1000.0
        scale: [2.0, 2.0, 2.0]
        altitude: 500.0e+3          # placed on +X at primary radius + altitude
        velocity: circular          # sqrt(G*M/r) along +Y
        forces_enabled: true
        gravity_enabled: true
        drag_enabled: true
        drag: {drag_coefficient: 2.2, cross_section_area: 10.0}
        asset: assets/models/Satellite2.glb

Either ``position`` or ``altitude`` may be given; ``velocity`` is a 3-vector
or the string ``circular``.
===============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from ..core.config import SimulationConfig
from ..core.constants import (
    DEFAULT_SPIN_AXIS,
    EARTH_MASS,
    EARTH_RADIUS,
    SATELLITE_INIT_ALTITUDE,
    SATELLITE_MASS,
)
from ..core.exceptions import ConfigurationError
from ..dynamics.body import BodyRole
from ..dynamics.forces import DragParameters

Triple = Tuple[float, float, float]

CIRCULAR = 'circular'


@dataclass(frozen=True)
class BodyTemplate:
    """
    Blueprint for a body.

    Attributes
    ----------
    name : str
        Template name; also the default body name.
    role : BodyRole
        PRIMARY or SECONDARY.
    mass : float
        kg.
    radius : float
        Physical radius (m).  For primaries this is the drag altitude datum.
    scale : tuple
        Model scale for the presentation layer.
    position : tuple or None
        Initial primary-centred position (m).
    altitude : float or None
        Alternative to *position*: start on +X at ``primary radius + altitude``.
    velocity : tuple or str
        Initial velocity (m/s), or ``"circular"`` for a prograde circular
        orbit about the paired primary.
    forces_enabled, gravity_enabled, drag_enabled : bool
        Initial force switches.
    drag : DragParameters or None
        Drag tuning; None takes the global defaults.
    asset : str or None
        Visual asset source.
    spin_axis : tuple
        Local spin axis (primaries).
    rotation_rate : float or None
        Spin rate (rad/s); None takes the global primary rotation rate.
    """
    name: str
    role: BodyRole
    mass: float
    radius: float = 0.0
    scale: Triple = (1.0, 1.0, 1.0)
    position: Optional[Triple] = None
    altitude: Optional[float] = None
    velocity: Any = (0.0, 0.0, 0.0)
    forces_enabled: bool = True
    gravity_enabled: bool = True
    drag_enabled: bool = True
    drag: Optional[DragParameters] = None
    asset: Optional[str] = None
    spin_axis: Triple = DEFAULT_SPIN_AXIS
    rotation_rate: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'role', BodyRole.parse(self.role))
        if self.position is not None and self.altitude is not None:
            raise ConfigurationError(
                f"Template '{self.name}' sets both position and altitude"
            )
        if isinstance(self.velocity, str) and self.velocity != CIRCULAR:
            raise ConfigurationError(
                f"Template '{self.name}': velocity must be a 3-vector or "
                f"'{CIRCULAR}', got {self.velocity!r}"
            )

    @property
    def wants_circular_velocity(self) -> bool:
        return isinstance(self.velocity, str)

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any],
                  config: Optional[SimulationConfig] = None) -> 'BodyTemplate':
        """
        Build a template from a YAML mapping.

        Raises
        ------
        ConfigurationError
            If a required key is missing or a value has the wrong shape.
        """
        data = dict(data)
        try:
            role = BodyRole.parse(data.pop('role'))
            mass = float(data.pop('mass'))
        except KeyError as exc:
            raise ConfigurationError(
                f"Template '{name}' is missing required key {exc.args[0]!r}"
            ) from None
        except ValueError as exc:
            raise ConfigurationError(f"Template '{name}': {exc}") from None

        kwargs: Dict[str, Any] = {'name': str(data.pop('name', name)),
                                  'role': role, 'mass': mass}
        try:
            if 'radius' in data:
                kwargs['radius'] = float(data.pop('radius'))
            elif role is BodyRole.PRIMARY and config is not None:
                kwargs['radius'] = config.primary_radius
            for key in ('scale', 'position', 'spin_axis'):
                if key in data:
                    kwargs[key] = parse_triple(data.pop(key))
            if 'altitude' in data:
                kwargs['altitude'] = float(data.pop('altitude'))
            if 'velocity' in data:
                velocity = data.pop('velocity')
                kwargs['velocity'] = velocity if isinstance(velocity, str) else parse_triple(velocity)
            for key in ('forces_enabled', 'gravity_enabled', 'drag_enabled'):
                if key in data:
                    kwargs[key] = bool(data.pop(key))
            if 'drag' in data:
                kwargs['drag'] = parse_drag_parameters(data.pop('drag'), config)
            if 'asset' in data:
                kwargs['asset'] = str(data.pop('asset'))
            if 'rotation_rate' in data:
                kwargs['rotation_rate'] = float(data.pop('rotation_rate'))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Template '{name}': {exc}") from None

        kwargs['extra'] = data
        return cls(**kwargs)


def parse_triple(value) -> Triple:
    items = tuple(float(v) for v in value)
    if len(items) != 3:
        raise ValueError(f"expected 3 components, got {len(items)}")
    return items


def parse_drag_parameters(data: Mapping[str, Any],
                     config: Optional[SimulationConfig]) -> DragParameters:
    base = (config or SimulationConfig()).default_drag_parameters()
    values = {
        'drag_coefficient': base.drag_coefficient,
        'cross_section_area': base.cross_section_area,
        'sea_level_air_density': base.sea_level_air_density,
        'scale_height': base.scale_height,
    }
    for key, value in dict(data).items():
        if key not in values:
            raise ValueError(f"unknown drag parameter {key!r}")
        values[key] = float(value)
    return DragParameters(**values)


def default_templates(config: Optional[SimulationConfig] = None) -> Dict[str, BodyTemplate]:
    """
    The two stock templates: an Earth-like primary and a 1-tonne satellite
    in a 500 km circular orbit.
    """
    config = config or SimulationConfig()
    return {
        'earth': BodyTemplate(
            name='Earth',
            role=BodyRole.PRIMARY,
            mass=EARTH_MASS,
            radius=EARTH_RADIUS,
            scale=(0.5, 0.5, 0.5),
            position=(0.0, 0.0, 0.0),
            asset='assets/models/Earth.glb',
            rotation_rate=config.primary_rotation_rate,
        ),
        'satellite': BodyTemplate(
            name='Satellite',
            role=BodyRole.SECONDARY,
            mass=SATELLITE_MASS,
            scale=(2.0, 2.0, 2.0),
            altitude=SATELLITE_INIT_ALTITUDE,
            velocity=CIRCULAR,
            drag=config.default_drag_parameters(),
            asset='assets/models/Satellite2.glb',
        ),
    }


def load_templates(mapping: Optional[Mapping[str, Any]],
                   config: Optional[SimulationConfig] = None,
                   include_defaults: bool = True) -> Dict[str, BodyTemplate]:
    """
    Build a name -> template dictionary from a YAML ``templates`` section.

    Entries in *mapping* override stock templates of the same name.
    """
    templates = default_templates(config) if include_defaults else {}
    for name, data in (mapping or {}).items():
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Template '{name}' must be a mapping")
        templates[name] = BodyTemplate.from_dict(name, data, config)
    return templates
