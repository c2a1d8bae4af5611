"""Tests for per-frame feedback messages and posture scoring."""

from counting_service.models import ExerciseState, ExerciseType, FormQuality, Pose, assess_form
from counting_service.models.feedback import MISSING_LANDMARKS, TOO_FAST, generate_feedback

from .poses import full_body_pose, scale_pose


class TestFeedback:
    def test_squat_messages(self):
        assert generate_feedback(ExerciseType.SQUAT, ExerciseState.STANDING, True, 120, 80, True) == "Good form"
        assert generate_feedback(ExerciseType.SQUAT, ExerciseState.STANDING, True, 120, 40, True) == "Squat a little deeper"
        assert generate_feedback(ExerciseType.SQUAT, ExerciseState.DOWN, False, 120, 60, True) == "Stand back up"
        assert generate_feedback(ExerciseType.SQUAT, ExerciseState.STANDING, False, 175, 5, True) == "Go a little lower"

    def test_pushup_messages(self):
        assert generate_feedback(ExerciseType.PUSHUP, ExerciseState.DOWN, False, 80, 500, True) == "Extend your arms fully"
        assert generate_feedback(ExerciseType.PUSHUP, ExerciseState.UP, False, 170, 50, True) == "Bend your arms more"

    def test_lunge_messages(self):
        assert generate_feedback(ExerciseType.LUNGE, ExerciseState.DOWN, False, 130, 90, True) == "Bend your front knee more"
        assert generate_feedback(ExerciseType.LUNGE, ExerciseState.STANDING, False, 175, 0, True) == "Good posture"

    def test_too_fast_overrides(self):
        for exercise in ExerciseType:
            assert generate_feedback(exercise, ExerciseState.STANDING, False, 170, 0, True, "too_fast") == TOO_FAST

    def test_missing_landmarks_message(self):
        assert MISSING_LANDMARKS == "Required joints not detected"


class TestFormAssessment:
    def test_too_few_keypoints(self):
        assessment = assess_form(Pose(keypoints=full_body_pose().keypoints[:6]), "squat")
        assert assessment.score == 50
        assert assessment.quality == FormQuality.FAIR
        assert assessment.details["alignment"] == 50

    def test_deep_squat_is_excellent(self):
        assessment = assess_form(full_body_pose(hip_y=0.66, knee_y=0.70), ExerciseType.SQUAT)
        assert assessment.score == 100
        assert assessment.quality == FormQuality.EXCELLENT

    def test_standing_squat_asks_for_depth(self):
        assessment = assess_form(full_body_pose(hip_y=0.50, knee_y=0.70), ExerciseType.SQUAT)
        assert assessment.score == 85
        assert assessment.quality == FormQuality.GOOD
        assert "Sit deeper" in assessment.feedback

    def test_knee_over_toe(self):
        assessment = assess_form(full_body_pose(hip_y=0.66, knee_x=0.35, ankle_x=0.45), ExerciseType.SQUAT)
        assert assessment.details["alignment"] == 75
        assert "Keep your knees behind your toes" in assessment.feedback

    def test_pixel_coordinates(self):
        pose = full_body_pose(hip_y=0.66, knee_y=0.70)
        assert assess_form(scale_pose(pose, 720), "squat", video_height=720).score == 100

    def test_custom_exercise_gets_neutral_score(self):
        assessment = assess_form(full_body_pose(), "custom")
        assert assessment.score == 75
        assert assessment.to_dict()["quality"] == "good"
