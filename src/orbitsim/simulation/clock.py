"""
Wall-clock to simulation-time conversion.

Frame deltas from the presentation loop are irregular; after a hitch a
single frame can span seconds.  ``FrameClock`` caps each delta at
``max_frame_dt`` and then applies ``time_scale`` so the stepper always
receives a bounded, non-negative dt.
"""

import logging
import math
import time
from typing import Callable, Optional

from ..core.config import SimulationConfig
from ..core.constants import DEFAULT_TIME_SCALE, MAX_FRAME_DT

logger = logging.getLogger(__name__)


class FrameClock:
    """
    Parameters
    ----------
    max_frame_dt : float
        Largest wall-clock delta accepted for one frame (s).
    time_scale : float
        Simulated seconds per clamped wall second.
    timer : callable, optional
        Monotonic time source; ``time.perf_counter`` by default.
    """

    def __init__(self, max_frame_dt: float = MAX_FRAME_DT,
                 time_scale: float = DEFAULT_TIME_SCALE,
                 timer: Callable[[], float] = time.perf_counter) -> None:
        if not max_frame_dt > 0.0:
            raise ValueError(f"max_frame_dt must be positive, got {max_frame_dt!r}")
        if not time_scale > 0.0:
            raise ValueError(f"time_scale must be positive, got {time_scale!r}")
        self.max_frame_dt = max_frame_dt
        self.time_scale = time_scale
        self._timer = timer
        self._last: Optional[float] = None

    @classmethod
    def from_config(cls, config: SimulationConfig, **kwargs) -> 'FrameClock':
        return cls(max_frame_dt=config.max_frame_dt,
                   time_scale=config.time_scale, **kwargs)

    def clamp(self, raw_dt: float) -> float:
        """Simulation dt for a raw wall-clock delta of *raw_dt* seconds."""
        if not math.isfinite(raw_dt) or raw_dt <= 0.0:
            return 0.0
        if raw_dt > self.max_frame_dt:
            logger.debug("Frame delta %.3f s clamped to %.3f s", raw_dt, self.max_frame_dt)
            raw_dt = self.max_frame_dt
        return raw_dt * self.time_scale

    def tick(self) -> float:
        """
        Simulation dt since the previous call.  The first call only starts
        the clock and returns 0.
        """
        now = self._timer()
        if self._last is None:
            self._last = now
            return 0.0
        raw_dt = now - self._last
        self._last = now
        return self.clamp(raw_dt)

    def reset(self) -> None:
        self._last = None
