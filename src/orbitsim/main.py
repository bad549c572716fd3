#!/usr/bin/env python3
"""
===============================================================================
ORBITSIM - COMMAND LINE RUNNER
===============================================================================
Runs a scenario headless: builds the bodies named in the configuration,
steps them for a fixed number of ticks and writes telemetry (and optionally
plots) to an output directory.

USAGE:
    orbitsim                                  # stock Earth + satellite, 1 orbit
    orbitsim --config config/simulation.yaml
    orbitsim --ticks 600 --dt 10 --plot
    orbitsim --log-level DEBUG

OUTPUTS:
    <output>/telemetry.csv          - one row per stepped body per tick
    <output>/trajectory_3d.png      - with --plot
    <output>/altitude_speed.png     - with --plot
    <output>/energy_drift.png       - with --plot

There is no renderer here, so every asset is marked loaded before bodies
enter the scene.
===============================================================================
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .core import vectors as vec
from .core.config import SimulationConfig, load_config
from .core.constants import SATELLITE_ORBITAL_PERIOD
from .core.exceptions import ConfigurationError, OrbitSimError
from .simulation.diagnostics import specific_energy
from .simulation.stepper import SystemStepper
from .simulation.templates import load_templates

logger = logging.getLogger('orbitsim')

DEFAULT_DT = 10.0
DEFAULT_TICKS = int(round(SATELLITE_ORBITAL_PERIOD / DEFAULT_DT))

DEFAULT_SCENARIO = {
    'bodies': [
        {'template': 'earth'},
        {'template': 'satellite', 'primary': 'earth'},
    ],
}


def build_stepper(config: Dict[str, Any]) -> SystemStepper:
    """
    Create a stepper and the scenario bodies described by *config*.

    ``config`` is the dictionary returned by ``load_config``.  Each entry of
    ``scenario.bodies`` names a ``template``; ``key`` (default: the template
    name) lets later entries refer to it as their ``primary``.  Any other
    keys are passed to ``create_body`` as overrides.  Bodies enter the scene
    unless ``in_scene: false`` is given.
    """
    sim_config = config.get('simulation') or SimulationConfig()
    templates = load_templates(config.get('templates'), sim_config)
    stepper = SystemStepper(sim_config, templates)

    scenario = config.get('scenario') or {}
    entries = scenario.get('bodies') or DEFAULT_SCENARIO['bodies']

    handles: Dict[str, int] = {}
    scene = []
    for index, entry in enumerate(entries):
        entry = dict(entry)
        try:
            template = entry.pop('template')
        except KeyError:
            raise ConfigurationError(f"Scenario body #{index} names no template") from None
        key = str(entry.pop('key', template))
        in_scene = bool(entry.pop('in_scene', True))
        primary_key = entry.pop('primary', None)

        primary = None
        if primary_key is not None:
            try:
                primary = handles[str(primary_key)]
            except KeyError:
                raise ConfigurationError(
                    f"Scenario body '{key}' refers to unknown primary '{primary_key}'"
                ) from None

        handle = stepper.create_body(template, primary=primary, **entry)
        if key in handles:
            logger.warning("Scenario key '%s' reused; later references get the newest body", key)
        handles[key] = handle
        if in_scene:
            scene.append(handle)

    # Headless: nothing to load.
    stepper.assets.mark_all_loaded()
    for handle in scene:
        stepper.set_in_scene(handle, True)

    return stepper


def run(stepper: SystemStepper, ticks: int, dt: float) -> SystemStepper:
    """Step *stepper* ``ticks`` times by ``dt`` and log a per-body summary."""
    logger.info("Run started.  %d ticks of %.3f s (%.1f s simulated)", ticks, dt, ticks * dt)
    wall_start = time.time()

    initial = {body.body_id: (body.position.copy(), body.velocity.copy())
               for body in stepper.bodies() if body.is_secondary}

    for tick in range(ticks):
        stepper.step(dt)
        if (tick + 1) % 1000 == 0:
            logger.info("Tick %d  t=%.1f s", tick + 1, stepper.current_time)

    logger.info("Run complete.  %d ticks in %.2f s wall time.  Sim time: %.1f s",
                stepper.tick_count, time.time() - wall_start, stepper.current_time)

    for body in stepper.bodies():
        if not body.is_secondary or body.body_id not in initial:
            continue
        primary = stepper.body(stepper.primary_of(body.body_id))
        mu = stepper.config.gravitational_constant * primary.mass
        r0, v0 = initial[body.body_id]
        e0 = specific_energy(mu, r0, v0)
        rel = vec.sub(body.position, primary.position)
        e1 = specific_energy(mu, rel, body.velocity)
        logger.info("  %-12s altitude=%.1f km  speed=%.2f m/s  dE/|E0|=%.3e",
                    body.name, (vec.length(rel) - primary.radius) / 1e3,
                    body.speed, (e1 - e0) / abs(e0))

    for failure in stepper.failures:
        logger.warning("  Failure: handle %d at t=%.1f s: %s",
                       failure.handle, failure.time, failure.reason)
    return stepper


def write_outputs(stepper: SystemStepper, output_dir: Path, plot: bool) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    if not stepper.telemetry:
        logger.warning("Telemetry disabled or empty; nothing written to %s", output_dir)
        return
    stepper.save_telemetry(output_dir / 'telemetry.csv')

    if plot:
        from .visualization import plots

        telemetry = stepper.get_telemetry()
        radius = stepper.config.primary_radius
        primaries = [b for b in stepper.bodies() if b.is_primary]
        if primaries:
            radius = primaries[0].radius
        plots.plot_trajectory_3d(telemetry, radius, 'Secondary trajectories',
                                 str(output_dir / 'trajectory_3d.png'))
        plots.plot_altitude_history(telemetry, 'Altitude and speed',
                                    str(output_dir / 'altitude_speed.png'))
        plots.plot_energy_drift(telemetry, 'Specific energy drift',
                                str(output_dir / 'energy_drift.png'))


def main(argv: Optional[list] = None) -> int:
    """
    Parse command line arguments and run the scenario.

    Returns the process exit status.
    """
    parser = argparse.ArgumentParser(
        description='Headless orbit simulation (gravity + exponential-atmosphere drag)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--config', type=str, default=None,
                        help='Path to simulation YAML (default: stock Earth + satellite)')
    parser.add_argument('--ticks', type=int, default=None,
                        help='Number of ticks (default: scenario value or one orbit)')
    parser.add_argument('--dt', type=float, default=None,
                        help=f'Tick length in seconds (default: scenario value or {DEFAULT_DT})')
    parser.add_argument('--output', type=str, default='output',
                        help='Output directory (default: output)')
    parser.add_argument('--plot', action='store_true',
                        help='Write trajectory / altitude / energy plots')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        if args.config is not None:
            config = load_config(args.config)
        else:
            config = {'simulation': SimulationConfig(), 'templates': {},
                      'scenario': DEFAULT_SCENARIO}

        scenario = config.get('scenario') or {}
        ticks = args.ticks if args.ticks is not None else int(scenario.get('ticks', DEFAULT_TICKS))
        dt = args.dt if args.dt is not None else float(scenario.get('dt', DEFAULT_DT))
        if ticks < 0:
            raise ConfigurationError(f"ticks must be non-negative, got {ticks}")

        stepper = build_stepper(config)
        run(stepper, ticks, dt)
        write_outputs(stepper, Path(args.output), args.plot)
    except (OrbitSimError, OSError) as exc:
        logger.error("%s", exc)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
