"""
FITCOUNT Counting Service - Sample Smoother

Fixed-size moving average used wherever a rep threshold is compared.
"""

from collections import deque
from typing import List, Optional

import numpy as np


class SampleSmoother:
    """Moving average over the last `window` scalar samples."""

    def __init__(self, window: int = 5):
        if window < 1:
            raise ValueError("Smoothing window must be at least 1")
        self.window = window
        self._samples: deque = deque(maxlen=window)

    def push(self, value: float) -> float:
        """Add a sample and return the new smoothed value."""
        self._samples.append(float(value))
        return self.value

    @property
    def value(self) -> Optional[float]:
        if not self._samples:
            return None
        return float(np.mean(self._samples))

    @property
    def samples(self) -> List[float]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def reset(self):
        self._samples.clear()
