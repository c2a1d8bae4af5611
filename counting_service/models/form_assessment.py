"""
FITCOUNT Counting Service - Form Assessment

Rule-based posture scoring for a single frame. Independent of rep counting:
a rep is counted regardless of its form score, the score only feeds the
session record and the user-facing feedback.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .exercises import ExerciseType
from .geometry import Pose, find_keypoints, normalize_keypoints

MIN_VISIBLE_KEYPOINTS = 10

# Height-normalised distances
SHOULDER_LEVEL_TOLERANCE = 0.03
ARM_RANGE_MIN = 0.04
HIP_SAG_MAX = 0.14
KNEE_OVER_TOE_MAX = 0.04
SQUAT_DEPTH_GAP_MAX = 0.07
LUNGE_KNEE_OVER_TOE_MAX = 0.03
HIP_LEVEL_TOLERANCE = 0.02
LUNGE_DEPTH_MIN = 0.055


class FormQuality(Enum):
    """Form quality assessment levels."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


@dataclass
class FormAssessment:
    """Exercise form assessment result."""
    exercise_type: ExerciseType
    quality: FormQuality
    score: float  # 0-100
    details: Dict[str, float] = field(default_factory=dict)
    feedback: List[str] = field(default_factory=list)
    timestamp: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "exercise_type": self.exercise_type.value,
            "quality": self.quality.value,
            "score": round(self.score, 1),
            "details": self.details,
            "feedback": self.feedback,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# PER-EXERCISE RULES
# ═══════════════════════════════════════════════════════════════════════════════

def _pushup_rules(kp: Dict) -> Dict:
    alignment, range_score = 100.0, 100.0
    feedback = []

    ls, rs = kp["left_shoulder"], kp["right_shoulder"]
    lw, lh = kp["left_wrist"], kp["left_hip"]

    if ls and rs and abs(ls.y - rs.y) > SHOULDER_LEVEL_TOLERANCE:
        alignment -= 20
        feedback.append("Keep your shoulders level")

    if ls and lw and abs(lw.y - ls.y) < ARM_RANGE_MIN:
        range_score -= 30
        feedback.append("Bend your arms more")

    if ls and lh and lh.y - ls.y > HIP_SAG_MAX:
        alignment -= 15
        feedback.append("Lower your hips in line with your body")

    if not feedback:
        feedback.append("Perfect form!")
    return {"alignment": alignment, "range": range_score, "feedback": feedback}


def _squat_rules(kp: Dict) -> Dict:
    alignment, range_score = 100.0, 100.0
    feedback = []

    lh, lk, la = kp["left_hip"], kp["left_knee"], kp["left_ankle"]

    if lk and la and abs(lk.x - la.x) > KNEE_OVER_TOE_MAX:
        alignment -= 25
        feedback.append("Keep your knees behind your toes")

    if lh and lk and lk.y - lh.y > SQUAT_DEPTH_GAP_MAX:
        range_score -= 30
        feedback.append("Sit deeper")

    if not feedback:
        feedback.append("Good form!")
    return {"alignment": alignment, "range": range_score, "feedback": feedback}


def _lunge_rules(kp: Dict) -> Dict:
    alignment, range_score = 100.0, 100.0
    feedback = []

    lh, rh = kp["left_hip"], kp["right_hip"]
    lk, rk, la = kp["left_knee"], kp["right_knee"], kp["left_ankle"]

    if lk and la and abs(lk.x - la.x) > LUNGE_KNEE_OVER_TOE_MAX:
        alignment -= 20
        feedback.append("Keep your front knee behind your toes")

    if lh and rh and abs(lh.y - rh.y) > HIP_LEVEL_TOLERANCE:
        alignment -= 15
        feedback.append("Keep your hips level")

    if lh and rh and lk and rk:
        if abs(lk.y - lh.y) < LUNGE_DEPTH_MIN or abs(rk.y - rh.y) < LUNGE_DEPTH_MIN:
            range_score -= 25
            feedback.append("Lunge deeper")

    if not feedback:
        feedback.append("Good lunge posture!")
    return {"alignment": alignment, "range": range_score, "feedback": feedback}


_RULES = {
    ExerciseType.PUSHUP: _pushup_rules,
    ExerciseType.SQUAT: _squat_rules,
    ExerciseType.LUNGE: _lunge_rules,
}

_ASSESSED_LANDMARKS = (
    "left_shoulder", "right_shoulder", "left_wrist", "right_wrist",
    "left_hip", "right_hip", "left_knee", "right_knee",
    "left_ankle", "right_ankle",
)


def _quality_for(score: float) -> FormQuality:
    if score >= 90:
        return FormQuality.EXCELLENT
    elif score >= 75:
        return FormQuality.GOOD
    elif score >= 50:
        return FormQuality.FAIR
    return FormQuality.POOR


def assess_form(pose: Optional[Pose], exercise, video_height: int = 720) -> FormAssessment:
    """
    Score the posture in one frame.

    Args:
        pose: Detected pose
        exercise: Exercise tag
        video_height: Used to normalise pixel coordinates

    Returns:
        FormAssessment with a 0-100 score and feedback
    """
    exercise = ExerciseType(exercise)
    keypoints = pose.keypoints if pose else []

    if len(keypoints) < MIN_VISIBLE_KEYPOINTS:
        return FormAssessment(
            exercise_type=exercise,
            quality=FormQuality.FAIR,
            score=50.0,
            details={"alignment": 50.0, "range": 50.0, "stability": 100.0},
            feedback=["Show your whole body to the camera"],
            timestamp=time.time(),
        )

    rules = _RULES.get(exercise)
    if rules is None:
        return FormAssessment(
            exercise_type=exercise,
            quality=FormQuality.GOOD,
            score=75.0,
            details={"alignment": 100.0, "range": 100.0, "stability": 100.0},
            feedback=["Keep going!"],
            timestamp=time.time(),
        )

    found = normalize_keypoints(find_keypoints(keypoints, _ASSESSED_LANDMARKS, min_score=0.0), video_height)
    checked = rules(found)

    score = max(0.0, min(100.0, (checked["alignment"] + checked["range"]) / 2))
    return FormAssessment(
        exercise_type=exercise,
        quality=_quality_for(score),
        score=score,
        details={"alignment": checked["alignment"], "range": checked["range"], "stability": 100.0},
        feedback=checked["feedback"],
        timestamp=time.time(),
    )
