"""
FITCOUNT Counting Service Router

Endpoints for real-time repetition counting. Clients run pose detection on
their side and post keypoints per frame, over HTTP or the session WebSocket.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field, ValidationError

from .models import (
    EXERCISE_DETAILS,
    ExerciseSessionHandler,
    ExerciseType,
    LandmarkName,
    Pose,
    SessionState,
    get_session_handler,
)

router = APIRouter()
logger = logging.getLogger(__name__)


# Service instances (singleton pattern)
_session_handler: Optional[ExerciseSessionHandler] = None


def get_services() -> ExerciseSessionHandler:
    """Get or initialize service instances."""
    global _session_handler
    if _session_handler is None:
        _session_handler = get_session_handler()
    return _session_handler


# ============= Pydantic Models =============

class KeypointIn(BaseModel):
    name: LandmarkName
    x: float
    y: float
    z: Optional[float] = None
    score: Optional[float] = None


class FrameRequest(BaseModel):
    keypoints: List[KeypointIn] = Field(default_factory=list)
    score: Optional[float] = None
    video_height: Optional[int] = Field(default=None, gt=0)

    def to_pose(self) -> Optional[Pose]:
        if not self.keypoints:
            return None
        return Pose.from_dicts([kp.model_dump(mode="json") for kp in self.keypoints], score=self.score)


class StartSessionRequest(BaseModel):
    user_id: str
    exercise_type: str
    target_reps: Optional[int] = Field(default=None, gt=0)
    target_sets: Optional[int] = Field(default=None, gt=0)
    rest_duration: Optional[int] = Field(default=None, ge=0)


def _session_or_404(session_handler: ExerciseSessionHandler, session_id: str):
    session = session_handler.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _raise_on_error(result: dict) -> dict:
    if "error" in result:
        status = 404 if result["error"] == "Session not found" else 400
        raise HTTPException(status_code=status, detail=result["error"])
    return result


# ============= Exercise Catalogue =============

@router.get("/exercises")
async def get_exercises():
    """List the exercises the counter understands."""
    exercises = [
        {"id": ex.value, **details}
        for ex, details in EXERCISE_DETAILS.items()
    ]
    return {
        "exercises": exercises,
        "total": len(exercises)
    }


# ============= Session Endpoints =============

@router.post("/session/start")
async def create_counting_session(request: StartSessionRequest):
    """
    Create a new counting session.

    Returns a session ID for use with the frame endpoint or the WebSocket stream.
    """
    session_handler = get_services()

    try:
        ex_type = ExerciseType(request.exercise_type)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid exercise type. Valid types: {[e.value for e in ExerciseType]}"
        )

    session = session_handler.create_session(
        user_id=request.user_id,
        exercise_type=ex_type,
        target_reps=request.target_reps,
        target_sets=request.target_sets,
        rest_duration=request.rest_duration
    )

    return {
        "status": "created",
        "session_id": session.session_id,
        "user_id": request.user_id,
        "exercise_type": ex_type.value,
        "target": {
            "reps": session.target_reps_per_set,
            "sets": session.target_sets
        },
        "websocket_url": f"/api/counting/ws/session/{session.session_id}"
    }


@router.post("/session/{session_id}/start")
async def start_counting_session(session_id: str):
    """Begin counting for a created session."""
    session_handler = get_services()
    return _raise_on_error(session_handler.start_session(session_id))


@router.post("/session/{session_id}/frame")
async def submit_frame(session_id: str, request: FrameRequest):
    """Analyse one frame of keypoints and return the running count."""
    session_handler = get_services()
    _session_or_404(session_handler, session_id)

    return _raise_on_error(
        session_handler.process_frame(session_id, request.to_pose(), request.video_height)
    )


@router.post("/session/{session_id}/next-set")
async def start_next_set(session_id: str):
    """Start the next set after the rest period."""
    session_handler = get_services()
    return _raise_on_error(session_handler.start_next_set(session_id))


@router.post("/session/{session_id}/pause")
async def pause_session(session_id: str):
    session_handler = get_services()
    return _raise_on_error(session_handler.pause_session(session_id))


@router.post("/session/{session_id}/resume")
async def resume_session(session_id: str):
    session_handler = get_services()
    return _raise_on_error(session_handler.resume_session(session_id))


@router.post("/session/{session_id}/complete")
async def complete_session(session_id: str):
    """Complete a counting session and get final results."""
    session_handler = get_services()
    _session_or_404(session_handler, session_id)

    result = session_handler.complete_session(session_id)

    return {
        "status": "completed",
        "session_id": session_id,
        "result": result
    }


@router.get("/session/{session_id}")
async def get_session_status(session_id: str):
    """Current progress of a session."""
    session_handler = get_services()
    return _raise_on_error(session_handler.get_session_status(session_id))


# ============= WebSocket Stream =============

@router.websocket("/ws/session/{session_id}")
async def counting_session_stream(websocket: WebSocket, session_id: str):
    """
    Real-time counting over a WebSocket.

    Each inbound message is a JSON frame ({"keypoints": [...], "video_height": ...}).
    Provides:
    - Live rep counting
    - Form quality assessment
    - Set and session completion events
    """
    await websocket.accept()
    session_handler = get_services()

    session = session_handler.get_session(session_id)
    if not session:
        await websocket.send_json({
            "type": "ERROR",
            "message": f"Session {session_id} not found"
        })
        await websocket.close()
        return

    if session.state == SessionState.IDLE:
        session_handler.start_session(session_id)

    try:
        await websocket.send_json({
            "type": "CONNECTED",
            "session_id": session_id,
            "exercise_type": session.exercise_type.value,
            "target_reps": session.target_reps_per_set,
            "target_sets": session.target_sets
        })

        while True:
            raw = await websocket.receive_text()

            try:
                frame = FrameRequest.model_validate_json(raw)
            except ValidationError as e:
                await websocket.send_json({
                    "type": "ERROR",
                    "message": f"Invalid frame: {e.error_count()} validation error(s)"
                })
                continue

            result = session_handler.process_frame(session_id, frame.to_pose(), frame.video_height)
            if "error" in result:
                await websocket.send_json({"type": "ERROR", "message": result["error"]})
                continue

            await websocket.send_json({"type": "FRAME_RESULT", **result})

            if result.get("set_completed"):
                await websocket.send_json({
                    "type": "SET_COMPLETED",
                    "set_number": result.get("current_set"),
                    "rest_duration": result.get("rest_duration")
                })

            if result.get("session_completed"):
                await websocket.send_json({
                    "type": "SESSION_COMPLETED",
                    "summary": result.get("summary", {})
                })
                break

    except WebSocketDisconnect:
        logger.info(f"🔌 Session {session_id} disconnected")
        if session.state == SessionState.ACTIVE:
            session.state = SessionState.PAUSED
