"""
FITCOUNT Counting Service Models

Hysteresis-based repetition counting over pose keypoints.
"""

from .geometry import (
    Keypoint,
    Pose,
    LandmarkName,
    calculate_angle,
    find_keypoint,
    normalize_keypoints
)

from .exercises import (
    ExerciseType,
    ExerciseState,
    ExerciseGeometry,
    EXERCISE_DETAILS,
    get_geometry
)

from .rep_counter import (
    HysteresisRepCounter,
    AnalysisResult,
    CounterDiagnostics
)

from .strategies import (
    ExerciseStrategyRegistry,
    RepCountingEngine
)

from .form_assessment import (
    FormQuality,
    FormAssessment,
    assess_form
)

from .session import (
    ExerciseSession,
    ExerciseSessionHandler,
    SessionState,
    RepRecord,
    SetRecord,
    get_session_handler
)

__all__ = [
    # Geometry
    "Keypoint",
    "Pose",
    "LandmarkName",
    "calculate_angle",
    "find_keypoint",
    "normalize_keypoints",
    # Exercises
    "ExerciseType",
    "ExerciseState",
    "ExerciseGeometry",
    "EXERCISE_DETAILS",
    "get_geometry",
    # Counting
    "HysteresisRepCounter",
    "AnalysisResult",
    "CounterDiagnostics",
    "ExerciseStrategyRegistry",
    "RepCountingEngine",
    # Form
    "FormQuality",
    "FormAssessment",
    "assess_form",
    # Sessions
    "ExerciseSession",
    "ExerciseSessionHandler",
    "SessionState",
    "RepRecord",
    "SetRecord",
    "get_session_handler",
]
