"""
FITCOUNT Counting Service - Baseline Calibrator

Discovers the user's rest posture (standing hip height, extended elbow angle)
without an explicit calibration step. The baseline is only ever written while
the owning counter is at rest.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationParams:
    """Tuning for one exercise's baseline tracking."""
    min_samples: int = 3          # stable samples needed for the first commit
    variance_epsilon: float = 0.01
    change_epsilon: float = 0.01  # max frame-to-frame change counted as stable
    min_stable_streak: int = 10   # stable frames before blending starts
    blend: float = 0.02           # fraction of the new value mixed in per frame


class BaselineCalibrator:
    """
    Slowly-adapting reference value for a tracked signal.

    observe() may write the baseline; hold() is called on frames where the
    counter is not at rest and never writes.
    """

    def __init__(self, params: CalibrationParams):
        self.params = params
        self.baseline: Optional[float] = None
        self.stable_streak = 0
        self._pending: deque = deque(maxlen=params.min_samples)
        self._last_sample: Optional[float] = None

    @property
    def is_calibrated(self) -> bool:
        return self.baseline is not None

    def observe(self, sample: float, smoothed: float) -> Optional[float]:
        """
        Feed one rest-state frame.

        Args:
            sample: Instantaneous (unsmoothed) signal value
            smoothed: Moving-average signal value

        Returns:
            The baseline after this frame (None while uncalibrated)
        """
        if self.baseline is None:
            self._pending.append(smoothed)
            if len(self._pending) >= self.params.min_samples:
                variance = float(np.var(self._pending))
                if variance < self.params.variance_epsilon:
                    self.baseline = float(np.mean(self._pending))
                    self.stable_streak = 0
                    logger.debug(f"🎯 Baseline committed: {self.baseline:.3f} (variance {variance:.6f})")
        elif self._last_sample is not None and abs(sample - self._last_sample) < self.params.change_epsilon:
            self.stable_streak += 1
            if self.stable_streak >= self.params.min_stable_streak:
                blend = self.params.blend
                self.baseline = self.baseline * (1.0 - blend) + smoothed * blend
        else:
            self.stable_streak = 0

        self._last_sample = sample
        return self.baseline

    def hold(self, sample: float):
        """Track a frame without writing the baseline."""
        self.stable_streak = 0
        self._pending.clear()
        self._last_sample = sample

    def deviation(self, value: float) -> Optional[float]:
        """Absolute distance of value from the baseline, None if uncalibrated."""
        if self.baseline is None:
            return None
        return abs(value - self.baseline)

    def reset(self):
        self.baseline = None
        self.stable_streak = 0
        self._pending.clear()
        self._last_sample = None
