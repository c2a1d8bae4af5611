"""
FITCOUNT Counting Service - Exercise Strategies

Registry mapping an exercise tag to its counter, and the engine that routes
frames to the currently selected counter. Both are plain instances: every
session owns its own engine, so counters are never shared.
"""

import logging
import time
from typing import Callable, Dict, Optional

from core.config import settings

from .exercises import ExerciseType, get_geometry
from .geometry import Pose
from .rep_counter import AnalysisResult, HysteresisRepCounter

logger = logging.getLogger(__name__)


class ExerciseStrategyRegistry:
    """Lazily builds and caches one counter per exercise tag."""

    def __init__(
        self,
        smoothing_window: Optional[int] = None,
        debounce_ms: Optional[float] = None,
        default_video_height: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        log_every: Optional[int] = None,
    ):
        self.smoothing_window = smoothing_window or settings.COUNTER_SMOOTHING_WINDOW
        self.debounce_ms = settings.COUNTER_DEBOUNCE_MS if debounce_ms is None else debounce_ms
        self.default_video_height = default_video_height or settings.COUNTER_DEFAULT_VIDEO_HEIGHT
        self.clock = clock
        self.log_every = settings.COUNTER_LOG_EVERY if log_every is None else log_every
        self._counters: Dict[ExerciseType, HysteresisRepCounter] = {}

    def get(self, exercise) -> HysteresisRepCounter:
        """
        Return the counter for a tag, creating it on first use.

        Raises:
            ValueError: Unknown exercise tag
        """
        exercise = ExerciseType(exercise)
        counter = self._counters.get(exercise)
        if counter is None:
            counter = HysteresisRepCounter(
                get_geometry(exercise),
                smoothing_window=self.smoothing_window,
                debounce_interval_ms=self.debounce_ms,
                default_video_height=self.default_video_height,
                clock=self.clock,
                log_every=self.log_every,
            )
            self._counters[exercise] = counter
            logger.debug(f"🧩 Created {exercise.value} counter")
        return counter

    def reset(self, exercise):
        counter = self._counters.get(ExerciseType(exercise))
        if counter is not None:
            counter.reset()

    def reset_all(self):
        for counter in self._counters.values():
            counter.reset()

    def __contains__(self, exercise) -> bool:
        return ExerciseType(exercise) in self._counters


class RepCountingEngine:
    """Routes frames to the counter for the selected exercise."""

    def __init__(self, registry: Optional[ExerciseStrategyRegistry] = None):
        self.registry = registry or ExerciseStrategyRegistry()
        self._exercise: Optional[ExerciseType] = None

    @property
    def exercise_type(self) -> Optional[ExerciseType]:
        return self._exercise

    def set_exercise_type(self, exercise):
        """Select an exercise and start it from a clean slate."""
        self._exercise = ExerciseType(exercise)
        self.registry.get(self._exercise).reset()
        logger.info(f"🏋️ Counting {self._exercise.value}")

    def reset(self):
        """Reset the selected counter; a no-op before any exercise is selected."""
        if self._exercise is not None:
            self.registry.reset(self._exercise)

    def analyze(self, pose: Optional[Pose], current_count: int = 0,
                video_height: Optional[int] = None) -> AnalysisResult:
        """
        Analyse one frame with the selected counter.

        Raises:
            RuntimeError: No exercise has been selected
        """
        if self._exercise is None:
            raise RuntimeError("No exercise selected; call set_exercise_type() first")
        return self.registry.get(self._exercise).analyze(pose, current_count, video_height)
