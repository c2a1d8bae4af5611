"""
FITCOUNT Counting Service - Exercise Session Handler

Manages counting sessions: sets, reps, form scores and the completion summary.
Each session owns its own RepCountingEngine, so concurrent sessions never share
counter state.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime
from enum import Enum
import logging
import time
import uuid

from core.config import settings

from .exercises import ExerciseState, ExerciseType
from .form_assessment import FormAssessment, FormQuality, assess_form
from .geometry import Pose
from .rep_counter import AnalysisResult
from .strategies import ExerciseStrategyRegistry, RepCountingEngine

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Exercise session states."""
    IDLE = "idle"
    ACTIVE = "active"
    REST = "rest"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass
class RepRecord:
    """Record of a single counted repetition."""
    rep_number: int
    timestamp: float
    form_score: float
    form_quality: FormQuality
    duration_seconds: float
    angle: int
    depth: int
    state: ExerciseState
    feedback: List[str] = field(default_factory=list)


@dataclass
class SetRecord:
    """Record of an exercise set."""
    set_number: int
    exercise_type: ExerciseType
    target_reps: int
    completed_reps: int
    reps: List[RepRecord] = field(default_factory=list)
    avg_form_score: float = 0.0
    start_time: float = 0.0
    end_time: float = 0.0

    @property
    def duration_seconds(self) -> float:
        return self.end_time - self.start_time if self.end_time > self.start_time else 0.0

    def calculate_avg_score(self):
        if self.reps:
            self.avg_form_score = sum(r.form_score for r in self.reps) / len(self.reps)


@dataclass
class ExerciseSession:
    """Complete counting session data."""
    session_id: str
    user_id: str
    exercise_type: ExerciseType
    engine: RepCountingEngine
    state: SessionState = SessionState.IDLE

    # Configuration
    target_sets: int = 3
    target_reps_per_set: int = 10
    rest_duration_seconds: int = 10

    # Progress tracking
    current_set: int = 1
    current_rep: int = 0
    sets: List[SetRecord] = field(default_factory=list)

    # Timing
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    last_rep_time: float = 0.0

    # Metrics
    total_reps: int = 0
    avg_form_score: float = 0.0
    frames_processed: int = 0
    frames_without_pose: int = 0

    current_feedback: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "exercise_type": self.exercise_type.value,
            "state": self.state.value,
            "target_sets": self.target_sets,
            "target_reps_per_set": self.target_reps_per_set,
            "current_set": self.current_set,
            "current_rep": self.current_rep,
            "total_reps": self.total_reps,
            "avg_form_score": round(self.avg_form_score, 1),
            "frames_processed": self.frames_processed,
            "frames_without_pose": self.frames_without_pose,
            "current_feedback": self.current_feedback,
            "duration_seconds": (self.end_time or time.time()) - (self.start_time or time.time()),
            "sets": [
                {
                    "set_number": s.set_number,
                    "completed_reps": s.completed_reps,
                    "target_reps": s.target_reps,
                    "avg_form_score": round(s.avg_form_score, 1),
                    "duration_seconds": round(s.duration_seconds, 1)
                }
                for s in self.sets
            ]
        }


class ExerciseSessionHandler:
    """
    Manages counting sessions with real-time pose analysis.

    Features:
    - Multi-set exercise tracking
    - Exactly-once rep counting per session
    - Real-time form feedback and scoring
    - Session summary generation
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize session handler.

        Args:
            clock: Monotonic time source handed to every session's counters
        """
        self.clock = clock
        self.active_sessions: Dict[str, ExerciseSession] = {}

    def create_session(
        self,
        user_id: str,
        exercise_type: ExerciseType,
        target_sets: Optional[int] = None,
        target_reps: Optional[int] = None,
        rest_duration: Optional[int] = None
    ) -> ExerciseSession:
        """
        Create a new counting session.

        Args:
            user_id: User ID
            exercise_type: Type of exercise
            target_sets: Number of sets
            target_reps: Reps per set
            rest_duration: Rest time between sets (seconds)

        Returns:
            New ExerciseSession
        """
        exercise_type = ExerciseType(exercise_type)
        session_id = str(uuid.uuid4())[:8]

        engine = RepCountingEngine(ExerciseStrategyRegistry(clock=self.clock))
        engine.set_exercise_type(exercise_type)

        session = ExerciseSession(
            session_id=session_id,
            user_id=user_id,
            exercise_type=exercise_type,
            engine=engine,
            target_sets=target_sets or settings.SESSION_DEFAULT_SETS,
            target_reps_per_set=target_reps or settings.SESSION_DEFAULT_REPS,
            rest_duration_seconds=settings.SESSION_REST_SECONDS if rest_duration is None else rest_duration
        )

        self.active_sessions[session_id] = session
        logger.info(f"📋 Session {session_id} created: {exercise_type.value} for {user_id}")

        return session

    def start_session(self, session_id: str) -> Dict[str, Any]:
        """
        Start a counting session.

        Returns status dict.
        """
        session = self.active_sessions.get(session_id)
        if not session:
            return {"error": "Session not found", "session_id": session_id}

        if session.state != SessionState.IDLE:
            return {"error": f"Session already {session.state.value}", "session_id": session_id}

        session.state = SessionState.ACTIVE
        session.start_time = time.time()
        session.engine.reset()

        first_set = SetRecord(
            set_number=1,
            exercise_type=session.exercise_type,
            target_reps=session.target_reps_per_set,
            completed_reps=0,
            start_time=time.time()
        )
        session.sets.append(first_set)

        return {
            "status": "started",
            "session_id": session_id,
            "exercise": session.exercise_type.value,
            "target_sets": session.target_sets,
            "target_reps": session.target_reps_per_set
        }

    def process_frame(self, session_id: str, pose: Optional[Pose],
                      video_height: Optional[int] = None) -> Dict[str, Any]:
        """
        Process one video frame during exercise.

        Args:
            session_id: Active session ID
            pose: Detected pose, None when the detector found nobody
            video_height: Source frame height for pixel coordinates

        Returns:
            Real-time feedback dict
        """
        session = self.active_sessions.get(session_id)
        if not session:
            return {"error": "Session not found"}

        if session.state != SessionState.ACTIVE:
            return {"status": session.state.value, "message": "Session not active"}

        session.frames_processed += 1

        if pose is None or not pose.keypoints:
            session.frames_without_pose += 1
            return {
                "session_id": session_id,
                "state": session.state.value,
                "pose_detected": False,
                "current_set": session.current_set,
                "current_rep": session.current_rep,
                "target_reps": session.target_reps_per_set,
                "rep_completed": False,
            }

        result = session.engine.analyze(pose, session.current_rep, video_height)
        form_assessment = assess_form(
            pose, session.exercise_type, video_height or settings.COUNTER_DEFAULT_VIDEO_HEIGHT
        )

        # Exactly one increment per accepted rep
        rep_completed = result.is_complete and result.count == session.current_rep + 1

        response = {
            "session_id": session_id,
            "state": session.state.value,
            "pose_detected": True,
            "current_set": session.current_set,
            "current_rep": result.count,
            "target_reps": session.target_reps_per_set,
            "rep_completed": rep_completed,
            "exercise_state": result.state.value,
            "angle": result.angle,
            "depth": result.depth,
            "feedback": result.feedback,
            "form_score": form_assessment.score,
            "form_quality": form_assessment.quality.value,
            "form_feedback": form_assessment.feedback,
        }

        if rep_completed:
            self._record_rep(session, result, form_assessment)

            current_set = session.sets[-1] if session.sets else None
            if current_set and current_set.completed_reps >= session.target_reps_per_set:
                response["set_completed"] = True
                response["message"] = f"Set {session.current_set} complete!"

                if session.current_set >= session.target_sets:
                    response["summary"] = self.complete_session(session_id)
                    response["session_completed"] = True
                else:
                    session.state = SessionState.REST
                    response["rest_duration"] = session.rest_duration_seconds

            response["state"] = session.state.value

        session.current_feedback = form_assessment.feedback

        return response

    def _record_rep(self, session: ExerciseSession, result: AnalysisResult, assessment: FormAssessment):
        """Record a completed repetition."""
        current_time = time.time()
        duration = current_time - session.last_rep_time if session.last_rep_time > 0 else 0.0

        rep = RepRecord(
            rep_number=result.count,
            timestamp=current_time,
            form_score=assessment.score,
            form_quality=assessment.quality,
            duration_seconds=duration,
            angle=result.angle,
            depth=result.depth,
            state=result.state,
            feedback=assessment.feedback
        )

        if session.sets:
            current_set = session.sets[-1]
            current_set.reps.append(rep)
            current_set.completed_reps += 1
            current_set.calculate_avg_score()

        session.current_rep = result.count
        session.total_reps += 1
        session.last_rep_time = current_time

        all_scores = []
        for s in session.sets:
            all_scores.extend([r.form_score for r in s.reps])
        if all_scores:
            session.avg_form_score = sum(all_scores) / len(all_scores)

    def start_next_set(self, session_id: str) -> Dict[str, Any]:
        """
        Start the next set after the rest period.

        Returns status dict.
        """
        session = self.active_sessions.get(session_id)
        if not session:
            return {"error": "Session not found"}

        if session.state == SessionState.COMPLETED or session.current_set >= session.target_sets:
            return {"error": "All sets completed"}

        if session.sets:
            session.sets[-1].end_time = time.time()

        session.current_set += 1
        session.current_rep = 0
        session.state = SessionState.ACTIVE

        session.engine.reset()

        new_set = SetRecord(
            set_number=session.current_set,
            exercise_type=session.exercise_type,
            target_reps=session.target_reps_per_set,
            completed_reps=0,
            start_time=time.time()
        )
        session.sets.append(new_set)

        return {
            "status": "set_started",
            "session_id": session_id,
            "current_set": session.current_set,
            "total_sets": session.target_sets
        }

    def pause_session(self, session_id: str) -> Dict[str, Any]:
        """Pause an active session."""
        session = self.active_sessions.get(session_id)
        if not session:
            return {"error": "Session not found"}

        session.state = SessionState.PAUSED
        return {"status": "paused", "session_id": session_id}

    def resume_session(self, session_id: str) -> Dict[str, Any]:
        """Resume a paused session."""
        session = self.active_sessions.get(session_id)
        if not session:
            return {"error": "Session not found"}

        if session.state == SessionState.PAUSED:
            session.state = SessionState.ACTIVE
            return {"status": "resumed", "session_id": session_id}

        return {"error": "Session not paused"}

    def complete_session(self, session_id: str) -> Dict[str, Any]:
        """
        Complete a session and generate its summary.

        Returns complete session summary.
        """
        session = self.active_sessions.get(session_id)
        if not session:
            return {"error": "Session not found"}

        session.state = SessionState.COMPLETED
        session.end_time = time.time()

        if session.sets:
            session.sets[-1].end_time = time.time()

        summary = self._generate_summary(session)
        session.engine.reset()
        logger.info(f"🏁 Session {session_id} completed: {session.total_reps} reps")

        return summary

    def _generate_summary(self, session: ExerciseSession) -> Dict[str, Any]:
        """Generate session summary."""
        duration = (session.end_time or time.time()) - (session.start_time or time.time())

        target_total = session.target_sets * session.target_reps_per_set
        completion_rate = (session.total_reps / target_total * 100) if target_total > 0 else 0

        if completion_rate >= 100 and session.avg_form_score >= 85:
            performance = "excellent"
            message = "Outstanding performance! 🌟"
        elif completion_rate >= 80 and session.avg_form_score >= 70:
            performance = "good"
            message = "Great job! Keep it up! 👍"
        elif completion_rate >= 60:
            performance = "fair"
            message = "Good effort! Room for improvement."
        else:
            performance = "needs_improvement"
            message = "Keep practicing! You'll get better."

        return {
            "status": "completed",
            "session_id": session.session_id,
            "user_id": session.user_id,
            "exercise": session.exercise_type.value,
            "summary": {
                "total_reps": session.total_reps,
                "target_reps": target_total,
                "completion_rate": round(completion_rate, 1),
                "sets_completed": len([s for s in session.sets if s.completed_reps > 0]),
                "target_sets": session.target_sets,
                "avg_form_score": round(session.avg_form_score, 1),
                "duration_seconds": round(duration, 1),
                "performance_rating": performance,
                "message": message
            },
            "sets": [
                {
                    "set_number": s.set_number,
                    "reps": s.completed_reps,
                    "avg_score": round(s.avg_form_score, 1),
                    "duration": round(s.duration_seconds, 1)
                }
                for s in session.sets
            ],
            "recommendations": self._get_recommendations(session, completion_rate),
            "completed_at": datetime.now().isoformat()
        }

    def _get_recommendations(self, session: ExerciseSession, completion_rate: float) -> List[str]:
        """Suggestions based on completion and form."""
        recommendations = []

        if session.total_reps and session.avg_form_score < 70:
            recommendations.append("Focus on controlled reps with good form rather than speed")

        if session.frames_processed and session.frames_without_pose / session.frames_processed > 0.2:
            recommendations.append("Position the camera so your whole body stays in frame")

        if completion_rate < 80:
            recommendations.append("Try fewer sets or reps in your next session")
        elif completion_rate >= 100 and session.avg_form_score >= 85:
            recommendations.append("You're ready to increase difficulty! Try more reps per set")

        if not recommendations:
            recommendations.append("Great progress! Maintain this consistency")

        return recommendations

    def get_session(self, session_id: str) -> Optional[ExerciseSession]:
        """Get session by ID."""
        return self.active_sessions.get(session_id)

    def get_session_status(self, session_id: str) -> Dict[str, Any]:
        """Get current session status."""
        session = self.active_sessions.get(session_id)
        if not session:
            return {"error": "Session not found"}

        return session.to_dict()

    def cleanup_session(self, session_id: str):
        """Remove session from active sessions."""
        if session_id in self.active_sessions:
            del self.active_sessions[session_id]


# ═══════════════════════════════════════════════════════════════════════════════
# MODULE-LEVEL SINGLETON
# ═══════════════════════════════════════════════════════════════════════════════

_handler_instance: Optional[ExerciseSessionHandler] = None

def get_session_handler() -> ExerciseSessionHandler:
    """Get or create the global session handler instance."""
    global _handler_instance
    if _handler_instance is None:
        _handler_instance = ExerciseSessionHandler()
    return _handler_instance
