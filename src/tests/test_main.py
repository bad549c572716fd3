"""
===============================================================================
ORBITSIM - Command Line Runner Test Suite
===============================================================================
End-to-end runs of the headless runner: scenario construction, telemetry
and plot output, and the exit status on bad input.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pandas as pd
import pytest
import yaml

from orbitsim.core.config import load_config
from orbitsim.core.exceptions import ConfigurationError
from orbitsim.main import build_stepper, main

SHIPPED_CONFIG = os.path.join(os.path.dirname(__file__), '..', '..', 'config', 'simulation.yaml')


def write_config(path, data):
    path.write_text(yaml.safe_dump(data))
    return str(path)


# =============================================================================
# Test: Scenario construction
# =============================================================================

class TestBuildStepper:

    def test_shipped_scenario(self):
        stepper = build_stepper(load_config(SHIPPED_CONFIG))
        names = [body.name for body in stepper.bodies()]
        assert names == ['Earth', 'Satellite', 'Low Satellite']
        assert all(body.in_scene for body in stepper.bodies())
        earth = stepper.bodies()[0].body_id
        assert all(stepper.primary_of(b.body_id) == earth for b in stepper.bodies()[1:])

    def test_out_of_scene_entry(self, tmp_path):
        config = load_config(write_config(tmp_path / 'c.yaml', {'scenario': {'bodies': [
            {'template': 'earth'},
            {'template': 'satellite', 'in_scene': False},
        ]}}))
        stepper = build_stepper(config)
        assert [body.in_scene for body in stepper.bodies()] == [True, False]

    def test_unknown_primary_key(self, tmp_path):
        config = load_config(write_config(tmp_path / 'c.yaml', {'scenario': {'bodies': [
            {'template': 'earth'},
            {'template': 'satellite', 'primary': 'moon'},
        ]}}))
        with pytest.raises(ConfigurationError):
            build_stepper(config)

    def test_entry_without_template(self, tmp_path):
        config = load_config(write_config(tmp_path / 'c.yaml',
                                          {'scenario': {'bodies': [{'key': 'x'}]}}))
        with pytest.raises(ConfigurationError):
            build_stepper(config)

    def test_scenario_overrides_coerced(self, tmp_path):
        path = tmp_path / 'c.yaml'
        path.write_text(
            "scenario:\n"
            "  bodies:\n"
            "    - {template: earth}\n"
            "    - {template: satellite, primary: earth, altitude: 300e3,\n"
            "       drag: {cross_section_area: 4.0}}\n"
        )
        stepper = build_stepper(load_config(str(path)))
        sat = stepper.bodies()[1]
        assert sat.position[0] == pytest.approx(stepper.config.primary_radius + 300e3)
        assert sat.flags.drag.cross_section_area == 4.0
        stepper.step(10.0)
        assert stepper.failures == []


# =============================================================================
# Test: main()
# =============================================================================

class TestMain:

    def test_default_run_writes_telemetry(self, tmp_path):
        status = main(['--ticks', '5', '--dt', '10', '--output', str(tmp_path),
                       '--log-level', 'WARNING'])
        assert status == 0
        df = pd.read_csv(tmp_path / 'telemetry.csv')
        assert len(df) == 10
        assert set(df['name']) == {'Earth', 'Satellite'}

    def test_shipped_config_with_plots(self, tmp_path):
        status = main(['--config', SHIPPED_CONFIG, '--ticks', '3', '--output', str(tmp_path),
                       '--plot', '--log-level', 'WARNING'])
        assert status == 0
        for name in ('telemetry.csv', 'trajectory_3d.png', 'altitude_speed.png',
                     'energy_drift.png'):
            assert (tmp_path / name).exists()

    def test_zero_ticks(self, tmp_path):
        out = tmp_path / 'out'
        assert main(['--ticks', '0', '--output', str(out), '--log-level', 'ERROR']) == 0
        assert not (out / 'telemetry.csv').exists()

    def test_invalid_config(self, tmp_path):
        path = write_config(tmp_path / 'bad.yaml', {'simulation': {'scale_height': -1.0}})
        assert main(['--config', path, '--output', str(tmp_path), '--log-level', 'ERROR']) == 1

    def test_missing_config(self, tmp_path):
        assert main(['--config', str(tmp_path / 'nope.yaml'), '--output', str(tmp_path),
                     '--log-level', 'ERROR']) == 1

    def test_negative_dt(self, tmp_path):
        assert main(['--ticks', '2', '--dt', '-1', '--output', str(tmp_path),
                     '--log-level', 'ERROR']) == 1

    def test_scenario_with_string_altitude(self, tmp_path):
        path = tmp_path / 'c.yaml'
        path.write_text(
            "scenario:\n"
            "  bodies:\n"
            "    - {template: earth}\n"
            "    - {template: satellite, primary: earth, altitude: 300e3}\n"
        )
        assert main(['--config', str(path), '--ticks', '2', '--output', str(tmp_path),
                     '--log-level', 'ERROR']) == 0
        df = pd.read_csv(tmp_path / 'telemetry.csv')
        first = df[df['name'] == 'Satellite'].iloc[0]
        assert abs(first['altitude_m'] - 300e3) < 1e3

    def test_malformed_override_exits_with_error(self, tmp_path):
        path = tmp_path / 'c.yaml'
        path.write_text(
            "scenario:\n"
            "  bodies:\n"
            "    - {template: earth}\n"
            "    - {template: satellite, drag: {colour: red}}\n"
        )
        assert main(['--config', str(path), '--ticks', '2', '--output', str(tmp_path),
                     '--log-level', 'ERROR']) == 1
