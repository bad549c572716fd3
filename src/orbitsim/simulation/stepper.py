"""
===============================================================================
ORBITSIM - System Stepper
===============================================================================
Authoritative body registry and the per-tick update loop.

For every tick of length dt, systems are visited in creation order:

    1. PRIMARY     -- fixed-rate spin about its own axis (kinematic only).
    2. SECONDARIES -- in creation order, for each one in scene:
         a. gravity from the system's primary        (if enabled)
         b. exponential-atmosphere drag               (if enabled)
         c. acceleration = total force / mass
         d. velocity-Verlet integration
         e. velocity-aligned orientation
    3. TELEMETRY   -- one record per stepped body (when enabled).

Note the ordering differs from a literal reading of steps a-d: forces are
not evaluated at the pre-step state but where velocity Verlet needs them,
at the body's new position x + v*dt + 0.5*a_prev*dt^2, with the velocity
predicted as v + a_prev*dt for the drag term.  Evaluating at the pre-step
state would make the scheme first order in dt and not time reversible.

A secondary's acceleration cache is primed at its current state whenever
it enters the scene or its force flags change, so the first step after
either is a true Verlet step.

Body lifecycle requests (scene membership, force flags, removal) made while
a tick is running are queued and applied once the tick completes; the loop
itself iterates over snapshots, so observers may safely request changes
from inside their callbacks.

Positions and velocities are stored in physical units (m, m/s) relative to
each system's primary centre.  Any display-space scaling is the caller's
business.
===============================================================================
"""

import itertools
import logging
import math
from collections import deque
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from ..core import vectors as vec
from ..core.config import SimulationConfig
from ..core.exceptions import (
    AssetNotReadyError,
    CoincidentBodiesError,
    ConfigurationError,
    InvalidBodyError,
    InvalidTimestepError,
    OrbitSimError,
    UnknownBodyError,
)
from ..core.quaternion import Quaternion
from ..core.vectors import Vector3
from ..dynamics.body import Body, BodyRole, ForceFlags, integrate
from ..dynamics.forces import DragParameters, total_acceleration
from ..dynamics.orientation import solve_orientation, spin
from . import diagnostics
from .assets import AssetRegistry
from .system import OrbitalSystem
from .templates import (
    BodyTemplate, default_templates, parse_drag_parameters, parse_triple,
)

logger = logging.getLogger(__name__)

BodyHandle = int
Observer = Callable[[BodyHandle, Body], None]

# Direction of the initial circular velocity is z_hat x r_hat, falling back
# to x_hat x r_hat for a body placed on the z axis.
_ORBIT_NORMAL = np.array([0.0, 0.0, 1.0])
_FALLBACK_NORMAL = np.array([1.0, 0.0, 0.0])

_SCALAR_OVERRIDES = ('mass', 'radius', 'altitude', 'rotation_rate')
_TRIPLE_OVERRIDES = ('position', 'scale', 'spin_axis')
_FLAG_OVERRIDES = ('forces_enabled', 'gravity_enabled', 'drag_enabled')


@dataclass(frozen=True)
class StepFailure:
    """A body taken out of the scene by a physics error during a tick."""
    handle: BodyHandle
    time: float
    reason: str


class SystemStepper:
    """
    Owns every body of a run and advances them tick by tick.

    Parameters
    ----------
    config : SimulationConfig, optional
        Global constants; defaults to the Earth/satellite values.
    templates : dict, optional
        Name -> ``BodyTemplate`` lookup for ``create_body``; defaults to the
        stock Earth and satellite templates.
    assets : AssetRegistry, optional
        Shared asset handles; a fresh registry by default.

    Attributes
    ----------
    failures : list of StepFailure
        Every per-body failure recorded so far.
    current_time : float
        Simulated time elapsed (s).
    tick_count : int
        Number of completed non-zero ticks.
    telemetry : deque of dict
        Raw per-body records, converted to a DataFrame on request.  Holds
        at most ``config.telemetry_limit`` of the most recent records.
    """

    def __init__(self, config: Optional[SimulationConfig] = None,
                 templates: Optional[Mapping[str, BodyTemplate]] = None,
                 assets: Optional[AssetRegistry] = None) -> None:
        self.config = config or SimulationConfig()
        self.templates: Dict[str, BodyTemplate] = dict(
            templates if templates is not None else default_templates(self.config)
        )
        self.assets = assets if assets is not None else AssetRegistry()

        self._bodies: Dict[BodyHandle, Body] = {}
        self._systems: Dict[BodyHandle, OrbitalSystem] = {}
        self._primary_of: Dict[BodyHandle, BodyHandle] = {}
        self._needs_priming: set = set()
        self._ids = itertools.count(1)

        self._in_tick = False
        self._pending: List[Tuple[str, Callable[..., None], tuple]] = []
        self._observers: List[Observer] = []

        self.failures: List[StepFailure] = []
        self.current_time: float = 0.0
        self.tick_count: int = 0
        self.telemetry: Deque[Dict[str, Any]] = deque(maxlen=self.config.telemetry_limit or None)
        self._telemetry_truncated = False

        logger.info("SystemStepper created.  G=%.5e, telemetry=%s",
                    self.config.gravitational_constant, self.config.record_telemetry)

    # =========================================================================
    # BODY CREATION
    # =========================================================================

    def create_body(self, template: Union[str, BodyTemplate],
                    role: Optional[Union[str, BodyRole]] = None,
                    primary: Optional[BodyHandle] = None,
                    **overrides) -> BodyHandle:
        """
        Instantiate a body from a template.

        The new body starts out of the scene.

        Parameters
        ----------
        template : str or BodyTemplate
            Template, or the name of one in ``self.templates``.
        role : str or BodyRole, optional
            Overrides the template's role.
        primary : int, optional
            Handle of the primary a secondary is bound to.  Defaults to the
            first primary created.
        **overrides
            Template fields to replace for this body only (``name``,
            ``mass``, ``position``, ``velocity``, ``drag_enabled`` ...).

        Returns
        -------
        int
            Handle of the new body.

        Raises
        ------
        InvalidBodyError
            Non-positive mass, non-finite state, no primary to bind to, or a
            secondary created on top of its primary.
        UnknownBodyError
            *primary* is not a registered primary.
        ConfigurationError
            Unknown template name or override.
        """
        template = self._resolve_template(template, role, overrides)
        handle = next(self._ids)

        if template.role is BodyRole.PRIMARY:
            body = self._build_primary(handle, template)
        else:
            primary_handle = self._resolve_primary(primary)
            body = self._build_secondary(handle, template, self._bodies[primary_handle])

        body.validate()
        self._register(handle, body, None if body.is_primary else primary_handle)
        return handle

    def clone_body(self, handle: BodyHandle, name: Optional[str] = None) -> BodyHandle:
        """
        Duplicate a registered secondary under a new handle.

        The clone copies the physical state and force flags, shares the
        original's asset handle and is bound to the same primary.  Like a
        freshly created body it starts out of the scene.

        Raises
        ------
        UnknownBodyError
            If *handle* is not registered.
        InvalidBodyError
            If *handle* is a primary; primaries are created from templates.
        """
        original = self._require(handle)
        if original.is_primary:
            raise InvalidBodyError(f"Cannot clone primary '{original.name}' (handle {handle})")
        new_handle = next(self._ids)
        body = original.clone(new_handle, name)
        self._register(new_handle, body, self._primary_of[handle])
        return new_handle

    def _register(self, handle: BodyHandle, body: Body,
                  primary_handle: Optional[BodyHandle]) -> None:
        self._bodies[handle] = body
        if body.is_primary:
            self._systems[handle] = OrbitalSystem(primary=handle)
            logger.info("Created primary '%s' (handle %d)", body.name, handle)
        else:
            self._systems[primary_handle].add_secondary(handle)
            self._primary_of[handle] = primary_handle
            logger.info("Created secondary '%s' (handle %d) bound to handle %d, "
                        "r=%.1f m, v=%.2f m/s",
                        body.name, handle, primary_handle,
                        vec.length(body.position), body.speed)

    def _resolve_template(self, template, role, overrides) -> BodyTemplate:
        if isinstance(template, str):
            try:
                template = self.templates[template]
            except KeyError:
                raise ConfigurationError(
                    f"Unknown template '{template}'. Known: {sorted(self.templates)}"
                ) from None

        changes = self._coerce_overrides(template.name, overrides)
        if role is not None:
            changes['role'] = BodyRole.parse(role)
        # position and altitude are alternatives; an override of one drops the other.
        if 'position' in changes and 'altitude' not in changes:
            changes['altitude'] = None
        if 'altitude' in changes and 'position' not in changes:
            changes['position'] = None

        if not changes:
            return template
        try:
            return replace(template, **changes)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid body override: {exc}") from None

    def _coerce_overrides(self, name: str, overrides: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply the same conversions ``BodyTemplate.from_dict`` applies to YAML values."""
        changes = dict(overrides)
        try:
            for key in _SCALAR_OVERRIDES:
                if changes.get(key) is not None:
                    changes[key] = float(changes[key])
            for key in _TRIPLE_OVERRIDES:
                if changes.get(key) is not None:
                    changes[key] = parse_triple(changes[key])
            if 'velocity' in changes and not isinstance(changes['velocity'], str):
                changes['velocity'] = parse_triple(changes['velocity'])
            for key in _FLAG_OVERRIDES:
                if key in changes:
                    changes[key] = bool(changes[key])
            if 'name' in changes:
                changes['name'] = str(changes['name'])
            drag = changes.get('drag')
            if isinstance(drag, Mapping):
                changes['drag'] = parse_drag_parameters(drag, self.config)
            elif drag is not None and not isinstance(drag, DragParameters):
                raise TypeError(
                    f"drag must be a mapping or DragParameters, got {type(drag).__name__}"
                )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid override for '{name}': {exc}") from None
        return changes

    def _resolve_primary(self, primary: Optional[BodyHandle]) -> BodyHandle:
        if primary is None:
            if not self._systems:
                raise InvalidBodyError("A secondary needs a primary; none has been created")
            return next(iter(self._systems))
        if primary not in self._bodies:
            raise UnknownBodyError(f"No body with handle {primary!r}")
        if primary not in self._systems:
            raise InvalidBodyError(f"Handle {primary} is not a primary")
        return primary

    def _build_primary(self, handle: BodyHandle, template: BodyTemplate) -> Body:
        position = template.position if template.position is not None else vec.zero()
        rotation_rate = (template.rotation_rate if template.rotation_rate is not None
                         else self.config.primary_rotation_rate)
        return Body(
            body_id=handle,
            name=template.name,
            role=BodyRole.PRIMARY,
            mass=template.mass,
            position=position,
            velocity=vec.zero(),
            radius=template.radius if template.radius > 0.0 else self.config.primary_radius,
            scale=template.scale,
            spin_axis=template.spin_axis,
            rotation_rate=rotation_rate,
            flags=self._flags_from(template),
            asset=self._acquire(template.asset),
        )

    def _build_secondary(self, handle: BodyHandle, template: BodyTemplate,
                         primary: Body) -> Body:
        if template.position is not None:
            position = vec.as_vector(template.position)
        elif template.altitude is not None:
            position = vec.add(primary.position,
                               vec.vec3(primary.radius + template.altitude, 0.0, 0.0))
        else:
            raise InvalidBodyError(
                f"Template '{template.name}' gives neither position nor altitude"
            )

        if template.wants_circular_velocity:
            velocity = self._circular_velocity(template.name, primary, position)
        else:
            velocity = vec.as_vector(template.velocity)

        return Body(
            body_id=handle,
            name=template.name,
            role=BodyRole.SECONDARY,
            mass=template.mass,
            position=position,
            velocity=velocity,
            radius=template.radius,
            scale=template.scale,
            spin_axis=template.spin_axis,
            rotation_rate=0.0,
            flags=self._flags_from(template),
            asset=self._acquire(template.asset),
        )

    def _circular_velocity(self, name: str, primary: Body, position: Vector3) -> Vector3:
        r = vec.sub(position, primary.position)
        distance = vec.length(r)
        if distance == 0.0 or not math.isfinite(distance):
            raise InvalidBodyError(
                f"Cannot place '{name}' in a circular orbit at distance {distance!r}"
            )
        r_hat = vec.scale(r, 1.0 / distance)
        direction = vec.cross(_ORBIT_NORMAL, r_hat)
        if vec.length(direction) < 1e-12:
            direction = vec.cross(_FALLBACK_NORMAL, r_hat)
        mu = self.config.gravitational_constant * primary.mass
        return vec.scale(vec.normalize(direction),
                         diagnostics.circular_velocity(mu, distance))

    def _flags_from(self, template: BodyTemplate) -> ForceFlags:
        return ForceFlags(
            forces_enabled=template.forces_enabled,
            gravity_enabled=template.gravity_enabled,
            drag_enabled=template.drag_enabled,
            drag=template.drag or self.config.default_drag_parameters(),
        )

    def _acquire(self, source: Optional[str]):
        return self.assets.acquire(source) if source else None

    # =========================================================================
    # LIFECYCLE REQUESTS (deferred while a tick is running)
    # =========================================================================

    def set_in_scene(self, handle: BodyHandle, in_scene: bool) -> None:
        """
        Add a body to, or take it out of, the stepped scene.

        Raises
        ------
        UnknownBodyError
            If *handle* is not registered.
        AssetNotReadyError
            If the body's asset has not loaded.
        InvalidBodyError
            If the body's state cannot enter the force calculations.
        """
        body = self._require(handle)
        if in_scene:
            self._check_admissible(body)
        self._submit('set_in_scene', self._apply_in_scene, handle, bool(in_scene))

    def set_force_flags(self, handle: BodyHandle,
                        forces_enabled: Optional[bool] = None,
                        gravity_enabled: Optional[bool] = None,
                        drag_enabled: Optional[bool] = None,
                        drag_params: Optional[DragParameters] = None) -> None:
        """Update any subset of a body's force switches; None leaves a flag as is."""
        self._require(handle)
        changes = {}
        if forces_enabled is not None:
            changes['forces_enabled'] = bool(forces_enabled)
        if gravity_enabled is not None:
            changes['gravity_enabled'] = bool(gravity_enabled)
        if drag_enabled is not None:
            changes['drag_enabled'] = bool(drag_enabled)
        if drag_params is not None:
            if not isinstance(drag_params, DragParameters):
                drag_params = DragParameters(**dict(drag_params))
            changes['drag'] = drag_params
        if changes:
            self._submit('set_force_flags', self._apply_force_flags, handle, changes)

    def remove_body(self, handle: BodyHandle) -> None:
        """
        Delete a body.  Removing a primary removes its whole system.

        The handle stays valid until the request is applied (at once outside
        a tick, at the end of the tick otherwise).
        """
        self._require(handle)
        self._submit('remove_body', self._apply_remove, handle)

    def subscribe(self, callback: Observer) -> None:
        """Call ``callback(handle, body)`` after each body update in a tick."""
        self._observers.append(callback)

    def unsubscribe(self, callback: Observer) -> None:
        self._observers.remove(callback)

    def _submit(self, label: str, action: Callable[..., None], *args) -> None:
        if self._in_tick:
            logger.debug("Deferring %s%r to the end of the tick", label, args)
            self._pending.append((label, action, args))
        else:
            action(*args)

    def _flush_pending(self) -> None:
        pending, self._pending = self._pending, []
        for label, action, args in pending:
            handle = args[0]
            if handle not in self._bodies:
                logger.debug("Dropping deferred %s for removed handle %d", label, handle)
                continue
            try:
                action(*args)
            except OrbitSimError as exc:
                logger.warning("Deferred %s for handle %d rejected: %s", label, handle, exc)
                self.failures.append(StepFailure(handle, self.current_time, str(exc)))

    def _apply_in_scene(self, handle: BodyHandle, in_scene: bool) -> None:
        body = self._bodies[handle]
        if in_scene == body.in_scene:
            return
        if in_scene:
            self._check_admissible(body)
            if body.is_secondary:
                self._needs_priming.add(handle)
        body.in_scene = in_scene
        logger.info("Body '%s' (handle %d) %s the scene",
                    body.name, handle, 'entered' if in_scene else 'left')

    def _apply_force_flags(self, handle: BodyHandle, changes: Dict[str, Any]) -> None:
        body = self._bodies[handle]
        body.flags = replace(body.flags, **changes)
        if body.is_secondary:
            self._needs_priming.add(handle)
        logger.info("Force flags of '%s' (handle %d) set: %s",
                    body.name, handle,
                    ', '.join(f"{k}={v}" for k, v in changes.items() if k != 'drag'))

    def _apply_remove(self, handle: BodyHandle) -> None:
        system = self._systems.pop(handle, None)
        if system is not None:
            for secondary in list(system.secondaries):
                self._discard(secondary)
        else:
            primary = self._primary_of.get(handle)
            if primary is not None and primary in self._systems:
                self._systems[primary].remove_secondary(handle)
        self._discard(handle)

    def _discard(self, handle: BodyHandle) -> None:
        body = self._bodies.pop(handle, None)
        self._primary_of.pop(handle, None)
        self._needs_priming.discard(handle)
        if body is not None:
            body.in_scene = False
            logger.info("Removed body '%s' (handle %d)", body.name, handle)

    def _check_admissible(self, body: Body) -> None:
        body.validate()
        if body.asset is not None and not body.asset.is_ready:
            raise AssetNotReadyError(
                f"Body '{body.name}' cannot enter the scene: asset "
                f"'{body.asset.source}' is {body.asset.status.value}"
            )

    # =========================================================================
    # STEPPING
    # =========================================================================

    def step(self, dt: float) -> None:
        """
        Advance every in-scene body by *dt* seconds.

        On return all positions, velocities and orientations are updated and
        every deferred request has been applied.

        Raises
        ------
        InvalidTimestepError
            If *dt* is negative or non-finite.  dt == 0 is a no-op.
        """
        if not math.isfinite(dt) or dt < 0.0:
            raise InvalidTimestepError(f"Time step must be finite and >= 0, got {dt!r}")
        if self._in_tick:
            raise OrbitSimError("step() called from inside a tick")
        if dt == 0.0:
            return

        self._in_tick = True
        try:
            for system in list(self._systems.values()):
                self._step_system(system, dt)
            self.current_time += dt
            self.tick_count += 1
        finally:
            self._in_tick = False
            self._flush_pending()

        logger.debug("Tick %d done: t=%.3f s", self.tick_count, self.current_time)

    def _step_system(self, system: OrbitalSystem, dt: float) -> None:
        primary = self._bodies.get(system.primary)
        if primary is None or not primary.in_scene:
            return

        primary.orientation = spin(primary.orientation, primary.spin_axis,
                                   primary.rotation_rate, dt)
        self._after_update(system.primary, primary, None, dt)

        for handle in tuple(system.secondaries):
            body = self._bodies.get(handle)
            if body is None or not body.in_scene:
                continue
            try:
                self._step_secondary(handle, primary, body, dt)
            except (CoincidentBodiesError, InvalidBodyError) as exc:
                self._evict(handle, body, str(exc))
                continue
            self._after_update(handle, body, primary, dt)

    def _step_secondary(self, handle: BodyHandle, primary: Body, body: Body,
                        dt: float) -> None:
        if not body.flags.forces_enabled:
            return

        if handle in self._needs_priming:
            body.previous_acceleration = self._acceleration(primary, body)
            self._needs_priming.discard(handle)

        a_prev = body.previous_acceleration
        predicted = replace(
            body,
            position=body.position + body.velocity * dt + a_prev * (0.5 * dt * dt),
            velocity=body.velocity + a_prev * dt,
        )
        acceleration = self._acceleration(primary, predicted)

        integrate(body, dt, acceleration)
        if not body.is_finite():
            raise InvalidBodyError(f"State of '{body.name}' became non-finite")

        body.orientation = solve_orientation(
            body, speed_sq_threshold=self.config.orientation_speed_sq_threshold,
            primary_position=primary.position,
        )

    def _acceleration(self, primary: Body, body: Body) -> Vector3:
        return total_acceleration(primary, body,
                                  self.config.gravitational_constant,
                                  primary.radius)

    def _evict(self, handle: BodyHandle, body: Body, reason: str) -> None:
        body.in_scene = False
        self.failures.append(StepFailure(handle, self.current_time, reason))
        logger.warning("Body '%s' (handle %d) removed from the scene at t=%.3f s: %s",
                       body.name, handle, self.current_time, reason)

    def _after_update(self, handle: BodyHandle, body: Body,
                      primary: Optional[Body], dt: float) -> None:
        if self.config.record_telemetry:
            self._log_telemetry(handle, body, primary, self.current_time + dt)
        for callback in list(self._observers):
            callback(handle, body)

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def _require(self, handle: BodyHandle) -> Body:
        try:
            return self._bodies[handle]
        except KeyError:
            raise UnknownBodyError(f"No body with handle {handle!r}") from None

    def body(self, handle: BodyHandle) -> Body:
        """The live body; read it, do not mutate it."""
        return self._require(handle)

    def position(self, handle: BodyHandle) -> Vector3:
        return self._require(handle).position.copy()

    def velocity(self, handle: BodyHandle) -> Vector3:
        return self._require(handle).velocity.copy()

    def orientation(self, handle: BodyHandle) -> Quaternion:
        return self._require(handle).orientation.copy()

    def primary_of(self, handle: BodyHandle) -> Optional[BodyHandle]:
        self._require(handle)
        return self._primary_of.get(handle)

    def bodies(self) -> List[Body]:
        return list(self._bodies.values())

    def handles(self) -> List[BodyHandle]:
        return list(self._bodies)

    def systems(self) -> List[OrbitalSystem]:
        return [OrbitalSystem(s.primary, list(s.secondaries)) for s in self._systems.values()]

    @property
    def is_idle(self) -> bool:
        """True when no body is in the scene."""
        return not any(body.in_scene for body in self._bodies.values())

    def __contains__(self, handle: BodyHandle) -> bool:
        return handle in self._bodies

    def __len__(self) -> int:
        return len(self._bodies)

    # =========================================================================
    # TELEMETRY
    # =========================================================================

    def _log_telemetry(self, handle: BodyHandle, body: Body,
                       primary: Optional[Body], time: float) -> None:
        pos = body.position
        vel = body.velocity
        att = body.orientation

        if primary is not None:
            rel = vec.sub(pos, primary.position)
            mu = self.config.gravitational_constant * primary.mass
            altitude = vec.length(rel) - primary.radius
            energy = diagnostics.specific_energy(mu, rel, vel)
        else:
            altitude = float('nan')
            energy = float('nan')

        if len(self.telemetry) == self.telemetry.maxlen and not self._telemetry_truncated:
            logger.warning("Telemetry limit of %d records reached; dropping the oldest",
                           self.telemetry.maxlen)
            self._telemetry_truncated = True

        self.telemetry.append({
            'time': time,
            'tick': self.tick_count + 1,
            'handle': handle,
            'name': body.name,
            'role': body.role.value,
            'pos_x': pos[0],
            'pos_y': pos[1],
            'pos_z': pos[2],
            'vel_x': vel[0],
            'vel_y': vel[1],
            'vel_z': vel[2],
            'quat_w': att.w,
            'quat_x': att.x,
            'quat_y': att.y,
            'quat_z': att.z,
            'altitude_m': altitude,
            'speed_m_s': body.speed,
            'specific_energy': energy,
        })

    def get_telemetry(self) -> pd.DataFrame:
        """
        Telemetry records as a DataFrame indexed by ``time``.

        Columns: tick, handle, name, role, pos_x/y/z, vel_x/y/z,
        quat_w/x/y/z, altitude_m, speed_m_s, specific_energy.  Altitude and
        energy are NaN for primaries.
        """
        if not self.telemetry:
            logger.warning("No telemetry recorded.")
            return pd.DataFrame()

        df = pd.DataFrame(list(self.telemetry))
        df.set_index('time', inplace=True)
        return df

    def save_telemetry(self, filepath: Union[str, Path]) -> None:
        df = self.get_telemetry()
        df.to_csv(filepath)
        logger.info("Telemetry saved to %s  (%d records)", filepath, len(df))

    def __repr__(self) -> str:
        return (
            f"SystemStepper(t={self.current_time:.1f}s, bodies={len(self._bodies)}, "
            f"systems={len(self._systems)}, failures={len(self.failures)})"
        )
