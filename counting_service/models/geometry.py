"""
FITCOUNT Counting Service - Pose Geometry

Keypoint/pose data classes and the pure geometric helpers shared by every
exercise counter.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional


class LandmarkName(str, Enum):
    """Named body landmarks produced by the pose detector."""
    NOSE = "nose"
    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    LEFT_EAR = "left_ear"
    RIGHT_EAR = "right_ear"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


@dataclass
class Keypoint:
    """A single named landmark with 2D coordinates and optional depth/confidence."""
    name: str
    x: float
    y: float
    z: Optional[float] = None
    score: Optional[float] = None


@dataclass
class Pose:
    """All keypoints for one detected body in one frame."""
    keypoints: List[Keypoint] = field(default_factory=list)
    score: Optional[float] = None

    @classmethod
    def from_dicts(cls, keypoints: Iterable[Dict], score: Optional[float] = None) -> "Pose":
        return cls(
            keypoints=[
                Keypoint(
                    name=kp["name"],
                    x=float(kp["x"]),
                    y=float(kp["y"]),
                    z=kp.get("z"),
                    score=kp.get("score"),
                )
                for kp in keypoints
            ],
            score=score,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# ANGLES AND LOOKUP
# ═══════════════════════════════════════════════════════════════════════════════

def calculate_angle(a: Keypoint, b: Keypoint, c: Keypoint) -> float:
    """
    Calculate the interior angle at vertex b formed by rays b->a and b->c.

    Returns:
        Angle in degrees (0-180). Coincident points are the caller's problem.
    """
    radians = math.atan2(c.y - b.y, c.x - b.x) - math.atan2(a.y - b.y, a.x - b.x)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def find_keypoint(keypoints: Iterable[Keypoint], name: str, min_score: float = 0.3) -> Optional[Keypoint]:
    """
    Find a keypoint by name, rejecting it when its score is at or below min_score.

    Keypoints without a score are accepted.
    """
    for kp in keypoints:
        if kp.name == name:
            if kp.score is None or kp.score > min_score:
                return kp
            return None
    return None


def find_keypoints(keypoints: Iterable[Keypoint], names: Iterable[str], min_score: float = 0.3) -> Dict[str, Optional[Keypoint]]:
    """Look up several keypoints at once. Missing names map to None."""
    keypoints = list(keypoints)
    return {name: find_keypoint(keypoints, name, min_score) for name in names}


def horizontal_spread(shoulder: Keypoint, elbow: Keypoint, wrist: Keypoint) -> float:
    """Total horizontal travel along a shoulder-elbow-wrist chain."""
    return abs(shoulder.x - elbow.x) + abs(elbow.x - wrist.x)


# ═══════════════════════════════════════════════════════════════════════════════
# COORDINATE SCALE
# ═══════════════════════════════════════════════════════════════════════════════

def is_pixel_scale(keypoints: Iterable[Optional[Keypoint]]) -> bool:
    """Heuristic: any coordinate above 1.0 means the detector reported pixels."""
    return any(
        kp is not None and (abs(kp.x) > 1.0 or abs(kp.y) > 1.0)
        for kp in keypoints
    )


def normalize_keypoints(found: Dict[str, Optional[Keypoint]], video_height: float) -> Dict[str, Optional[Keypoint]]:
    """
    Rescale pixel keypoints into height-normalised units.

    x and y are both divided by the frame height so joint angles are unchanged.
    Already-normalised sets are returned as-is.
    """
    if not is_pixel_scale(found.values()) or video_height <= 0:
        return found

    return {
        name: None if kp is None else Keypoint(
            name=kp.name,
            x=kp.x / video_height,
            y=kp.y / video_height,
            z=kp.z,
            score=kp.score,
        )
        for name, kp in found.items()
    }
