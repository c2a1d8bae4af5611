"""
FITCOUNT Counting Service - Hysteresis Rep Counter

One generic two-state counter (rest <-> flexed) driven by an ExerciseGeometry.
Turns a noisy stream of per-frame keypoints into exactly-once repetition
events:

    keypoints -> joint angles / hip height -> moving average
              -> baseline calibrator (rest state only)
              -> hysteresis transition + dwell extremum
              -> quality bar + debounce guard -> AnalysisResult

The counter never raises on bad input; missing or low-confidence landmarks
produce a neutral "no count this frame" result.
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .calibration import BaselineCalibrator
from .debounce import DebounceGuard
from .exercises import (
    AngleCombine,
    ExerciseGeometry,
    ExerciseState,
    LevelSignal,
    TriggerRule,
)
from .feedback import MISSING_LANDMARKS, generate_feedback
from .geometry import (
    Keypoint,
    Pose,
    calculate_angle,
    find_keypoints,
    horizontal_spread,
    normalize_keypoints,
)
from .smoothing import SampleSmoother

logger = logging.getLogger(__name__)

STRAIGHT_ANGLE = 180.0


# ═══════════════════════════════════════════════════════════════════════════════
# RESULT TYPES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class CounterDiagnostics:
    """Read-only view of a counter's internals after a frame."""
    exercise: str
    frame_index: int
    baseline: Optional[float]
    stable_streak: int
    enter_angle: float
    exit_angle: float
    enter_depth: Optional[float]
    exit_depth: Optional[float]
    smoothed_angle: Optional[float]
    smoothed_level: Optional[float]
    dwell_min_angle: Optional[float]
    dwell_peak_depth: Optional[float]
    side_view: bool
    last_accepted_at: Optional[float]


@dataclass
class AnalysisResult:
    """Outcome of analysing one frame."""
    count: int
    is_complete: bool
    depth: int
    angle: int
    state: ExerciseState
    feedback: Optional[str] = None
    diagnostics: Optional[CounterDiagnostics] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "count": self.count,
            "is_complete": self.is_complete,
            "depth": self.depth,
            "angle": self.angle,
            "state": self.state.value,
            "feedback": self.feedback,
            "diagnostics": asdict(self.diagnostics) if self.diagnostics else None,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# COUNTER
# ═══════════════════════════════════════════════════════════════════════════════

class HysteresisRepCounter:
    """
    Rep counter for a single exercise session.

    Owned by exactly one caller; not shared between sessions or threads.
    """

    def __init__(
        self,
        geometry: ExerciseGeometry,
        smoothing_window: int = 5,
        debounce_interval_ms: float = 500,
        default_video_height: int = 720,
        clock: Callable[[], float] = time.monotonic,
        log_every: int = 0,
    ):
        """
        Args:
            geometry: Landmarks and thresholds for the exercise
            smoothing_window: Moving-average window in frames
            debounce_interval_ms: Minimum time between two accepted reps
            default_video_height: Used to normalise pixel coordinates
            clock: Monotonic time source in seconds
            log_every: Emit a sampled debug dump every N frames (0 disables)
        """
        self.geometry = geometry
        self.default_video_height = default_video_height
        self.log_every = log_every

        self._flex_smoother = SampleSmoother(smoothing_window)
        self._extend_smoother = SampleSmoother(smoothing_window)
        self._level_smoother = SampleSmoother(smoothing_window)
        self.calibrator = BaselineCalibrator(geometry.calibration)
        self.debounce = DebounceGuard(debounce_interval_ms, clock)

        self.state = geometry.rest_state
        self._frame_index = 0
        self._side_view = False
        self._dwell_min_angle: Optional[float] = None
        self._dwell_peak_depth: Optional[float] = None
        self._dwell_side_view = False

    @property
    def baseline(self) -> Optional[float]:
        return self.calibrator.baseline

    # ───────────────────────────────────────────────────────────────────────────
    # Per-frame analysis
    # ───────────────────────────────────────────────────────────────────────────

    def analyze(self, pose: Optional[Pose], current_count: int = 0,
                video_height: Optional[int] = None) -> AnalysisResult:
        """
        Analyse one frame and decide whether a repetition just completed.

        Args:
            pose: Detected pose (None or empty when nothing was detected)
            current_count: Running total owned by the caller
            video_height: Source frame height, used for pixel coordinates

        Returns:
            AnalysisResult; is_complete is True only on the accepting frame
        """
        self._frame_index += 1
        g = self.geometry

        found = find_keypoints(pose.keypoints if pose else [], g.landmarks, g.min_score)
        if any(found[name] is None for name in g.required):
            return self._neutral_result(current_count)

        found = normalize_keypoints(found, video_height or self.default_video_height)

        left, right = (self._chain_angle(found, chain) for chain in g.chains)
        self._side_view = self._is_side_view(found)
        flex_raw, extend_raw = self._decision_angles(left, right, self._side_view)
        flex = self._flex_smoother.push(flex_raw)
        extend = self._extend_smoother.push(extend_raw)

        if g.level_signal == LevelSignal.HIP_HEIGHT:
            level_raw = (found["left_hip"].y + found["right_hip"].y) / 2
            level = self._level_smoother.push(level_raw)
        else:
            level_raw, level = flex_raw, flex

        depth = self._depth(level)
        relax = g.side_view_relaxation if self._side_view else 0.0

        is_complete = False
        rejected = None
        reported_depth = depth or 0.0

        if self.state == g.rest_state:
            if self._should_enter(flex, depth, relax):
                self.state = g.flexed_state
                self._dwell_min_angle = flex
                self._dwell_peak_depth = depth or 0.0
                self._dwell_side_view = self._side_view
                reported_depth = self._dwell_peak_depth
                logger.debug(
                    f"⬇️ {g.exercise.value} down: angle={flex:.1f} depth={reported_depth:.3f} "
                    f"side_view={self._side_view}"
                )
        else:
            self._track_dwell(flex, depth)
            reported_depth = self._dwell_peak_depth
            if self._should_exit(flex, extend, depth, relax):
                is_complete, rejected = self._finish_dwell(current_count)

        # Baseline is only written while at rest, never during a dwell
        in_rest_zone = g.level_signal == LevelSignal.HIP_HEIGHT or level >= g.exit_angle
        if self.state == g.rest_state and in_rest_zone:
            self.calibrator.observe(level_raw, level)
        else:
            self.calibrator.hold(level_raw)

        if self.log_every and self._frame_index % self.log_every == 0:
            logger.debug(f"📊 {g.exercise.value} sample: {asdict(self.diagnostics())}")

        angle = int(round(flex))
        depth_out = int(round(reported_depth * g.depth_scale))
        return AnalysisResult(
            count=current_count + 1 if is_complete else current_count,
            is_complete=is_complete,
            depth=depth_out,
            angle=angle,
            state=self.state,
            feedback=generate_feedback(
                g.exercise, self.state, is_complete, angle, depth_out,
                self.calibrator.is_calibrated, rejected,
            ),
            diagnostics=self.diagnostics(),
        )

    def _neutral_result(self, current_count: int) -> AnalysisResult:
        return AnalysisResult(
            count=current_count,
            is_complete=False,
            depth=0,
            angle=int(STRAIGHT_ANGLE),
            state=self.state,
            feedback=MISSING_LANDMARKS,
            diagnostics=self.diagnostics(),
        )

    # ───────────────────────────────────────────────────────────────────────────
    # Signal extraction
    # ───────────────────────────────────────────────────────────────────────────

    @staticmethod
    def _chain_angle(found: Dict[str, Optional[Keypoint]], chain: Tuple[str, str, str]) -> Optional[float]:
        a, b, c = (found.get(name) for name in chain)
        if a is None or b is None or c is None:
            return None
        return calculate_angle(a, b, c)

    def _is_side_view(self, found: Dict[str, Optional[Keypoint]]) -> bool:
        """Side-on when the straightest-looking limb barely moves along x."""
        if self.geometry.side_view_spread is None:
            return False
        spreads = [
            horizontal_spread(*(found[name] for name in chain))
            for chain in self.geometry.chains
            if all(found.get(name) is not None for name in chain)
        ]
        return bool(spreads) and min(spreads) < self.geometry.side_view_spread

    def _decision_angles(self, left: Optional[float], right: Optional[float],
                         side_view: bool) -> Tuple[float, float]:
        """Return (flex angle, extend angle) for this frame."""
        visible = [a for a in (left, right) if a is not None]
        if not visible:
            return STRAIGHT_ANGLE, STRAIGHT_ANGLE

        combine = self.geometry.angle_combine
        if combine == AngleCombine.MEAN:
            mean = sum(visible) / len(visible)
            return mean, mean
        if combine == AngleCombine.EITHER_ARM and not side_view:
            return min(visible), max(visible)
        return min(visible), min(visible)

    def _depth(self, level: float) -> Optional[float]:
        deviation = self.calibrator.deviation(level)
        if deviation is None and self.geometry.depth_reference is not None:
            return abs(level - self.geometry.depth_reference)
        return deviation

    # ───────────────────────────────────────────────────────────────────────────
    # Transitions
    # ───────────────────────────────────────────────────────────────────────────

    def _should_enter(self, flex: float, depth: Optional[float], relax: float) -> bool:
        g = self.geometry
        if g.requires_baseline and not self.calibrator.is_calibrated:
            return False

        cues = [flex < g.enter_angle + relax]
        if g.enter_depth is not None:
            cues.append(depth is not None and depth > g.enter_depth)
        return any(cues) if g.trigger == TriggerRule.ANY else all(cues)

    def _should_exit(self, flex: float, extend: float, depth: Optional[float], relax: float) -> bool:
        g = self.geometry
        # Stay down while the most-flexed side is still past the entry threshold
        if flex < g.enter_angle + relax:
            return False

        back = [extend > g.exit_angle - relax]
        if g.exit_depth is not None:
            back.append(depth is None or depth < g.exit_depth)
        # Entry on any cue needs every cue back to exit, and vice versa
        return all(back) if g.trigger == TriggerRule.ANY else any(back)

    def _track_dwell(self, flex: float, depth: Optional[float]):
        if self._dwell_min_angle is None or flex < self._dwell_min_angle:
            self._dwell_min_angle = flex
        if depth is not None and (self._dwell_peak_depth is None or depth > self._dwell_peak_depth):
            self._dwell_peak_depth = depth
        self._dwell_side_view = self._dwell_side_view or self._side_view

    def _meets_quality(self) -> bool:
        g = self.geometry
        checks = []
        if g.min_depth is not None:
            checks.append((self._dwell_peak_depth or 0.0) >= g.min_depth)
        if g.max_flexed_angle is not None and self._dwell_min_angle is not None:
            relax = g.side_view_relaxation if self._dwell_side_view else 0.0
            checks.append(self._dwell_min_angle < g.max_flexed_angle + relax)
        return any(checks)

    def _finish_dwell(self, current_count: int) -> Tuple[bool, Optional[str]]:
        """Close a dwell on the flexed -> rest crossing. Returns (accepted, rejection reason)."""
        g = self.geometry
        peak_depth = self._dwell_peak_depth or 0.0
        min_angle = self._dwell_min_angle

        accepted = False
        rejected = None
        if not self._meets_quality():
            rejected = "shallow"
            logger.debug(
                f"⚠️ {g.exercise.value} too shallow, not counted: "
                f"min_angle={min_angle:.1f} peak_depth={peak_depth:.3f}"
            )
        elif not self.debounce.try_accept():
            rejected = "too_fast"
            logger.debug(f"⏱️ {g.exercise.value} rep within debounce interval, not counted")
        else:
            accepted = True
            logger.info(
                f"✅ {g.exercise.value} rep {current_count + 1}: "
                f"min_angle={min_angle:.1f} peak_depth={peak_depth:.3f}"
            )

        self.state = g.rest_state
        self._dwell_min_angle = None
        self._dwell_peak_depth = None
        self._dwell_side_view = False
        return accepted, rejected

    # ───────────────────────────────────────────────────────────────────────────
    # Introspection / lifecycle
    # ───────────────────────────────────────────────────────────────────────────

    def diagnostics(self) -> CounterDiagnostics:
        g = self.geometry
        relax = g.side_view_relaxation if self._side_view else 0.0
        return CounterDiagnostics(
            exercise=g.exercise.value,
            frame_index=self._frame_index,
            baseline=self.calibrator.baseline,
            stable_streak=self.calibrator.stable_streak,
            enter_angle=g.enter_angle + relax,
            exit_angle=g.exit_angle - relax,
            enter_depth=g.enter_depth,
            exit_depth=g.exit_depth,
            smoothed_angle=self._flex_smoother.value,
            smoothed_level=self._level_smoother.value,
            dwell_min_angle=self._dwell_min_angle,
            dwell_peak_depth=self._dwell_peak_depth,
            side_view=self._side_view,
            last_accepted_at=self.debounce.last_accepted,
        )

    def reset(self):
        """Clear all per-session state: smoothing, calibration, dwell and debounce."""
        self._flex_smoother.reset()
        self._extend_smoother.reset()
        self._level_smoother.reset()
        self.calibrator.reset()
        self.debounce.reset()
        self.state = self.geometry.rest_state
        self._frame_index = 0
        self._side_view = False
        self._dwell_min_angle = None
        self._dwell_peak_depth = None
        self._dwell_side_view = False
