"""Tests for the multi-set session handler."""

import pytest

from counting_service.models import ExerciseSessionHandler, ExerciseType, SessionState

from .poses import FakeClock, squat_rep


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def handler(clock):
    return ExerciseSessionHandler(clock=clock)


def feed(handler, session_id, frames):
    return [handler.process_frame(session_id, pose) for pose in frames]


def do_rep(handler, session_id, clock):
    responses = feed(handler, session_id, squat_rep())
    clock.advance(1.0)
    return responses


class TestSessionLifecycle:
    def test_create_uses_settings_defaults(self, handler):
        session = handler.create_session("user-1", "lunge")
        assert session.exercise_type == ExerciseType.LUNGE
        assert session.target_sets == 3
        assert session.target_reps_per_set == 10
        assert session.rest_duration_seconds == 10
        assert session.state == SessionState.IDLE
        assert session.engine.exercise_type == ExerciseType.LUNGE

    def test_sessions_own_their_engines(self, handler):
        a = handler.create_session("user-1", "squat")
        b = handler.create_session("user-2", "squat")
        assert a.session_id != b.session_id
        assert a.engine is not b.engine

    def test_frames_ignored_until_started(self, handler):
        session = handler.create_session("user-1", "squat")
        response = handler.process_frame(session.session_id, squat_rep()[0])
        assert response == {"status": "idle", "message": "Session not active"}

    def test_unknown_session(self, handler):
        assert handler.process_frame("nope", None) == {"error": "Session not found"}
        assert handler.start_session("nope")["error"] == "Session not found"
        assert handler.get_session_status("nope") == {"error": "Session not found"}

    def test_start_only_from_idle(self, handler):
        session = handler.create_session("user-1", "squat")
        sid = session.session_id
        assert handler.start_session(sid)["status"] == "started"

        assert handler.start_session(sid)["error"] == "Session already active"
        handler.complete_session(sid)
        assert handler.start_session(sid)["error"] == "Session already completed"

        assert session.state == SessionState.COMPLETED
        assert [s.set_number for s in session.sets] == [1]

    def test_missing_pose_skips_frame(self, handler):
        session = handler.create_session("user-1", "squat")
        handler.start_session(session.session_id)

        response = handler.process_frame(session.session_id, None)
        assert response["pose_detected"] is False
        assert response["current_rep"] == 0
        assert session.frames_without_pose == 1

    def test_pause_and_resume(self, handler):
        session = handler.create_session("user-1", "squat")
        sid = session.session_id
        handler.start_session(sid)

        assert handler.pause_session(sid)["status"] == "paused"
        assert handler.process_frame(sid, squat_rep()[0])["message"] == "Session not active"
        assert handler.resume_session(sid)["status"] == "resumed"
        assert handler.resume_session(sid) == {"error": "Session not paused"}


class TestCounting:
    def test_rep_recorded_once(self, handler, clock):
        session = handler.create_session("user-1", "squat", target_sets=1, target_reps=5)
        handler.start_session(session.session_id)

        responses = do_rep(handler, session.session_id, clock)
        assert sum(r["rep_completed"] for r in responses) == 1
        assert responses[-1]["current_rep"] == 1
        assert session.current_rep == 1
        assert session.total_reps == 1

        rep = session.sets[0].reps[0]
        assert rep.rep_number == 1
        assert rep.depth == 80
        assert rep.form_score == 50

    def test_full_workout(self, handler, clock):
        session = handler.create_session("user-1", "squat", target_sets=2, target_reps=2, rest_duration=5)
        sid = session.session_id
        handler.start_session(sid)

        do_rep(handler, sid, clock)
        last = do_rep(handler, sid, clock)[-1]
        assert last["set_completed"] is True
        assert last["state"] == "rest"
        assert last["rest_duration"] == 5
        assert session.state == SessionState.REST

        assert handler.process_frame(sid, squat_rep()[0])["status"] == "rest"

        started = handler.start_next_set(sid)
        assert started["status"] == "set_started"
        assert started["current_set"] == 2
        assert session.current_rep == 0

        do_rep(handler, sid, clock)
        last = do_rep(handler, sid, clock)[-1]
        assert last["session_completed"] is True
        assert session.state == SessionState.COMPLETED

        summary = last["summary"]
        assert summary["summary"]["total_reps"] == 4
        assert summary["summary"]["completion_rate"] == 100.0
        assert [s["reps"] for s in summary["sets"]] == [2, 2]
        assert summary["recommendations"]

        assert handler.start_next_set(sid) == {"error": "All sets completed"}

    def test_status_snapshot(self, handler, clock):
        session = handler.create_session("user-1", "squat", target_reps=5)
        handler.start_session(session.session_id)
        do_rep(handler, session.session_id, clock)

        status = handler.get_session_status(session.session_id)
        assert status["state"] == "active"
        assert status["current_rep"] == 1
        assert status["sets"][0]["completed_reps"] == 1

    def test_complete_and_cleanup(self, handler):
        session = handler.create_session("user-1", "pushup")
        sid = session.session_id
        handler.start_session(sid)

        summary = handler.complete_session(sid)
        assert summary["status"] == "completed"
        assert summary["summary"]["total_reps"] == 0
        assert summary["summary"]["performance_rating"] == "needs_improvement"

        handler.cleanup_session(sid)
        assert handler.get_session(sid) is None
