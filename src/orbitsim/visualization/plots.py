"""
Offline plots of stepper telemetry using matplotlib.

These are post-run figures written to disk, not the real-time presentation
layer.  All functions take the DataFrame returned by
``SystemStepper.get_telemetry()`` (indexed by time).
"""

import logging
import os

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for saving
import matplotlib.pyplot as plt
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401  registers the 3d projection

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# PlotStyle -- shared styling helpers
# ---------------------------------------------------------------------------

class PlotStyle:
    """Centralised styling and figure management for telemetry plots."""

    COLORS = {
        'primary': '#2E86AB',      # primary body sphere
        'reference': '#546E7A',    # zero lines
    }

    # One colour per secondary, cycled
    PALETTE = ['#F18F01', '#A23B72', '#2E7D32', '#C73E1D', '#7B1FA2', '#00838F']

    @staticmethod
    def setup_style():
        plt.rcParams.update({
            'font.size': 11,
            'axes.titleweight': 'bold',
            'axes.grid': True,
            'axes.spines.top': False,
            'axes.spines.right': False,
            'axes.prop_cycle': plt.cycler(color=PlotStyle.PALETTE),
            'grid.color': '#E0E0E0',
            'lines.linewidth': 1.8,
            'savefig.facecolor': 'white',
        })

    @staticmethod
    def create_figure(nrows=1, ncols=1, figsize=None):
        return plt.subplots(nrows, ncols, figsize=figsize, squeeze=True)

    @staticmethod
    def save_figure(fig, filepath, dpi=150):
        """Save *fig* to *filepath*, creating directories as needed."""
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fig.tight_layout()
        fig.savefig(filepath, dpi=dpi, bbox_inches='tight')
        plt.close(fig)
        logger.info("Plot saved to %s", filepath)


def _secondaries(telemetry):
    """Yield (name, frame) per secondary handle, in handle order."""
    secondary = telemetry[telemetry['role'] == 'secondary']
    for handle, frame in secondary.groupby('handle', sort=True):
        yield f"{frame['name'].iloc[0]} #{handle}", frame


def plot_trajectory_3d(telemetry, primary_radius, title, filepath):
    """3-D trajectory of every secondary around a sphere for the primary.

    Parameters
    ----------
    telemetry : pandas.DataFrame
    primary_radius : float
        Radius of the primary sphere (m).
    title : str
    filepath : str
    """
    PlotStyle.setup_style()
    fig = plt.figure(figsize=(10, 9))
    ax = fig.add_subplot(111, projection='3d')

    # Positions are plotted in km.
    r_km = primary_radius / 1e3
    u = np.linspace(0, 2 * np.pi, 40)
    v = np.linspace(0, np.pi, 20)
    ax.plot_surface(r_km * np.outer(np.cos(u), np.sin(v)),
                    r_km * np.outer(np.sin(u), np.sin(v)),
                    r_km * np.outer(np.ones_like(u), np.cos(v)),
                    color=PlotStyle.COLORS['primary'], alpha=0.3, linewidth=0)

    for idx, (label, frame) in enumerate(_secondaries(telemetry)):
        colour = PlotStyle.PALETTE[idx % len(PlotStyle.PALETTE)]
        ax.plot(frame['pos_x'] / 1e3, frame['pos_y'] / 1e3, frame['pos_z'] / 1e3,
                color=colour, label=label)

    limit = max(r_km, np.abs(telemetry[['pos_x', 'pos_y', 'pos_z']].to_numpy()).max() / 1e3)
    ax.set_xlim(-limit, limit)
    ax.set_ylim(-limit, limit)
    ax.set_zlim(-limit, limit)
    ax.set_xlabel('X [km]')
    ax.set_ylabel('Y [km]')
    ax.set_zlabel('Z [km]')
    ax.set_title(title)
    ax.legend(loc='upper left', fontsize=9)
    PlotStyle.save_figure(fig, filepath)


def plot_altitude_history(telemetry, title, filepath):
    """Altitude and speed of each secondary vs time, one panel each."""
    PlotStyle.setup_style()
    fig, (ax_alt, ax_speed) = PlotStyle.create_figure(nrows=2, figsize=(10, 8))

    for label, frame in _secondaries(telemetry):
        ax_alt.plot(frame.index, frame['altitude_m'] / 1e3, label=label)
        ax_speed.plot(frame.index, frame['speed_m_s'], label=label)

    ax_alt.set_ylabel('Altitude [km]')
    ax_alt.set_title(title)
    ax_alt.legend()
    ax_speed.set_xlabel('Time [s]')
    ax_speed.set_ylabel('Speed [m/s]')
    PlotStyle.save_figure(fig, filepath)


def plot_energy_drift(telemetry, title, filepath):
    """Relative specific-energy change of each secondary since its first record."""
    PlotStyle.setup_style()
    fig, ax = PlotStyle.create_figure(figsize=(10, 5))

    for label, frame in _secondaries(telemetry):
        energy = frame['specific_energy'].to_numpy()
        ax.plot(frame.index, (energy - energy[0]) / abs(energy[0]), label=label)

    ax.set_xlabel('Time [s]')
    ax.axhline(0.0, color=PlotStyle.COLORS['reference'], linewidth=0.8)
    ax.set_ylabel(r'$\Delta E / |E_0|$')
    ax.set_title(title)
    ax.legend()
    PlotStyle.save_figure(fig, filepath)
