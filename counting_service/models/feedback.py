"""
FITCOUNT Counting Service - Rep Feedback

Short coaching messages derived from a counter's per-frame result.
Depth values here are in the counter's output units (normalised x 1000).
"""

from typing import Callable, Dict, Optional

from .exercises import ExerciseState, ExerciseType

MISSING_LANDMARKS = "Required joints not detected"
TOO_FAST = "Slow down - that rep was too quick to count"


def _squat_feedback(state: ExerciseState, is_complete: bool, angle: int, depth: int,
                    calibrated: bool, rejected: Optional[str]) -> Optional[str]:
    if is_complete:
        if angle > 160:
            return "Bend your knees more"
        if depth < 50:
            return "Squat a little deeper"
        return "Good form"

    if rejected == "shallow":
        return "Squat deeper - that rep was too shallow"

    if state == ExerciseState.DOWN:
        return "Stand back up"

    if not calibrated:
        return "Stand still so we can find your starting position"
    if depth < 20 and angle > 160:
        return "Go a little lower"
    return None


def _pushup_feedback(state: ExerciseState, is_complete: bool, angle: int, depth: int,
                     calibrated: bool, rejected: Optional[str]) -> Optional[str]:
    if is_complete:
        return "Push-up complete!"
    if rejected == "shallow":
        return "Lower your chest further"
    if state == ExerciseState.DOWN:
        return "Extend your arms fully"
    return "Bend your arms more"


def _lunge_feedback(state: ExerciseState, is_complete: bool, angle: int, depth: int,
                    calibrated: bool, rejected: Optional[str]) -> Optional[str]:
    if is_complete:
        return "Lunge complete!"
    if rejected == "shallow":
        return "Lunge depth insufficient"
    if state == ExerciseState.DOWN:
        if angle > 120:
            return "Bend your front knee more"
        return None
    if not calibrated:
        return "Stand still so we can find your starting position"
    return "Good posture"


FeedbackFn = Callable[[ExerciseState, bool, int, int, bool, Optional[str]], Optional[str]]

_FEEDBACK: Dict[ExerciseType, FeedbackFn] = {
    ExerciseType.SQUAT: _squat_feedback,
    ExerciseType.PUSHUP: _pushup_feedback,
    ExerciseType.LUNGE: _lunge_feedback,
    ExerciseType.CUSTOM: _squat_feedback,
}


def generate_feedback(
    exercise: ExerciseType,
    state: ExerciseState,
    is_complete: bool,
    angle: int,
    depth: int,
    calibrated: bool,
    rejected: Optional[str] = None,
) -> Optional[str]:
    """
    Build the feedback message for one analysed frame.

    Args:
        rejected: "shallow" or "too_fast" on the frame a dwell ended without a count
    """
    if rejected == "too_fast":
        return TOO_FAST
    return _FEEDBACK[exercise](state, is_complete, angle, depth, calibrated, rejected)
