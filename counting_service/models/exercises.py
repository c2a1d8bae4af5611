"""
FITCOUNT Counting Service - Exercise Geometry

Declarative descriptors for each supported exercise. The rep counter holds no
exercise-specific logic; everything that differs between a squat, a push-up
and a lunge lives in one of the ExerciseGeometry instances below.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .calibration import CalibrationParams


class ExerciseType(str, Enum):
    """Supported exercise tags."""
    SQUAT = "squat"
    PUSHUP = "pushup"
    LUNGE = "lunge"
    CUSTOM = "custom"


class ExerciseState(str, Enum):
    """Counter states. Each exercise uses exactly two of these."""
    STANDING = "standing"
    UP = "up"
    DOWN = "down"


class AngleCombine(str, Enum):
    """How left/right joint angles become the decision angle."""
    MEAN = "mean"              # average of the visible sides
    MIN = "min"                # most-flexed side
    EITHER_ARM = "either_arm"  # flex on the most-flexed side, extend on the most-extended side


class LevelSignal(str, Enum):
    """Signal the baseline and depth are measured on."""
    HIP_HEIGHT = "hip_height"
    JOINT_ANGLE = "joint_angle"


class TriggerRule(str, Enum):
    """Combination of entry cues. Exit uses the complementary rule."""
    ANY = "any"
    ALL = "all"


JointChain = Tuple[str, str, str]


@dataclass(frozen=True)
class ExerciseGeometry:
    """Landmarks, thresholds and quality bars for one exercise."""
    exercise: ExerciseType
    rest_state: ExerciseState
    flexed_state: ExerciseState
    required: Tuple[str, ...]
    chains: Tuple[JointChain, JointChain]  # (left, right) as (outer, vertex, outer)
    angle_combine: AngleCombine
    level_signal: LevelSignal
    enter_angle: float
    exit_angle: float
    calibration: CalibrationParams
    enter_depth: Optional[float] = None
    exit_depth: Optional[float] = None
    trigger: TriggerRule = TriggerRule.ANY
    min_depth: Optional[float] = None
    max_flexed_angle: Optional[float] = None
    requires_baseline: bool = True
    side_view_spread: Optional[float] = None
    side_view_relaxation: float = 0.0
    min_score: float = 0.3
    depth_reference: Optional[float] = None  # used for depth before calibration
    depth_scale: float = 1000.0

    @property
    def landmarks(self) -> Tuple[str, ...]:
        names = list(self.required)
        for chain in self.chains:
            names.extend(n for n in chain if n not in names)
        return tuple(names)


SQUAT_GEOMETRY = ExerciseGeometry(
    exercise=ExerciseType.SQUAT,
    rest_state=ExerciseState.STANDING,
    flexed_state=ExerciseState.DOWN,
    required=("left_hip", "right_hip", "left_knee", "right_knee"),
    chains=(
        ("left_hip", "left_knee", "left_ankle"),
        ("right_hip", "right_knee", "right_ankle"),
    ),
    angle_combine=AngleCombine.MEAN,
    level_signal=LevelSignal.HIP_HEIGHT,
    enter_angle=160.0,
    exit_angle=165.0,
    enter_depth=0.02,
    exit_depth=0.015,
    trigger=TriggerRule.ANY,
    min_depth=0.036,
    min_score=0.3,
    calibration=CalibrationParams(
        min_samples=3,
        variance_epsilon=0.01,
        change_epsilon=0.01,
        min_stable_streak=10,
        blend=0.02,
    ),
)

PUSHUP_GEOMETRY = ExerciseGeometry(
    exercise=ExerciseType.PUSHUP,
    rest_state=ExerciseState.UP,
    flexed_state=ExerciseState.DOWN,
    required=(
        "left_shoulder", "right_shoulder",
        "left_elbow", "right_elbow",
        "left_wrist", "right_wrist",
    ),
    chains=(
        ("left_shoulder", "left_elbow", "left_wrist"),
        ("right_shoulder", "right_elbow", "right_wrist"),
    ),
    angle_combine=AngleCombine.EITHER_ARM,
    level_signal=LevelSignal.JOINT_ANGLE,
    enter_angle=100.0,
    exit_angle=130.0,
    max_flexed_angle=95.0,
    requires_baseline=False,
    side_view_spread=0.15,
    side_view_relaxation=10.0,
    min_score=0.2,
    depth_reference=180.0,
    depth_scale=1000.0 / 180.0,
    calibration=CalibrationParams(
        min_samples=5,
        variance_epsilon=50.0,
        change_epsilon=5.0,
        min_stable_streak=3,
        blend=0.02,
    ),
)

LUNGE_GEOMETRY = ExerciseGeometry(
    exercise=ExerciseType.LUNGE,
    rest_state=ExerciseState.STANDING,
    flexed_state=ExerciseState.DOWN,
    required=("left_hip", "right_hip", "left_knee", "right_knee"),
    chains=(
        ("left_hip", "left_knee", "left_ankle"),
        ("right_hip", "right_knee", "right_ankle"),
    ),
    angle_combine=AngleCombine.MIN,
    level_signal=LevelSignal.HIP_HEIGHT,
    enter_angle=120.0,
    exit_angle=130.0,
    enter_depth=0.08,
    exit_depth=0.06,
    trigger=TriggerRule.ALL,
    min_depth=0.10,  # must exceed enter_depth
    min_score=0.3,
    calibration=CalibrationParams(
        min_samples=3,
        variance_epsilon=0.01,
        change_epsilon=0.01,
        min_stable_streak=5,
        blend=0.05,
    ),
)

# Custom exercises fall back to squat counting
EXERCISE_GEOMETRIES: Dict[ExerciseType, ExerciseGeometry] = {
    ExerciseType.SQUAT: SQUAT_GEOMETRY,
    ExerciseType.PUSHUP: PUSHUP_GEOMETRY,
    ExerciseType.LUNGE: LUNGE_GEOMETRY,
    ExerciseType.CUSTOM: SQUAT_GEOMETRY,
}


def get_geometry(exercise) -> ExerciseGeometry:
    """Resolve a tag (enum or string) to its geometry. Unknown tags raise ValueError."""
    return EXERCISE_GEOMETRIES[ExerciseType(exercise)]


EXERCISE_DETAILS = {
    ExerciseType.SQUAT: {
        "name": "Squat",
        "description": "Bend the knees to lower the hips, then stand back up",
        "recognition_guide": [
            "Knees must bend below 160 degrees to start a rep",
            "Hips must drop noticeably below your standing height to count",
            "Keep feet shoulder-width apart and knees behind the toes",
        ],
    },
    ExerciseType.PUSHUP: {
        "name": "Push-up",
        "description": "Bend the arms to lower the body, then push back up",
        "recognition_guide": [
            "Elbows must bend below 100 degrees to start a rep",
            "Extend the arms past 130 degrees to complete it",
            "Keep shoulders, elbows and wrists in line and the torso straight",
        ],
    },
    ExerciseType.LUNGE: {
        "name": "Lunge",
        "description": "Step forward and bend the knees until the front thigh is level",
        "recognition_guide": [
            "Front knee must bend below 120 degrees",
            "Hips must drop well below your standing height to count",
            "Keep the front knee behind the toes and the torso upright",
        ],
    },
    ExerciseType.CUSTOM: {
        "name": "Custom",
        "description": "User-defined exercise counted with the squat detector",
        "recognition_guide": [],
    },
}
