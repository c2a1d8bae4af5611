"""Tests for the exercise registry and the counting engine."""

import pytest

from counting_service.models import (
    ExerciseState,
    ExerciseStrategyRegistry,
    ExerciseType,
    RepCountingEngine,
)
from counting_service.models.exercises import SQUAT_GEOMETRY

from .poses import FakeClock, pushup_rep, run, squat_rep


def make_registry(clock=None):
    return ExerciseStrategyRegistry(clock=clock or FakeClock(), log_every=0)


class TestRegistry:
    def test_counter_cached_per_tag(self):
        registry = make_registry()
        assert registry.get("squat") is registry.get(ExerciseType.SQUAT)
        assert registry.get("squat") is not registry.get("pushup")
        assert "squat" in registry
        assert "lunge" not in registry

    def test_custom_uses_squat_geometry(self):
        registry = make_registry()
        assert registry.get("custom").geometry is SQUAT_GEOMETRY
        assert registry.get("custom") is not registry.get("squat")

    def test_unknown_tag(self):
        with pytest.raises(ValueError):
            make_registry().get("burpee")

    def test_settings_defaults(self):
        registry = ExerciseStrategyRegistry()
        counter = registry.get("squat")
        assert counter.default_video_height == 720
        assert counter.debounce.min_interval_s == pytest.approx(0.5)

    def test_reset_single_and_all(self):
        registry = make_registry()
        squat = registry.get("squat")
        pushup = registry.get("pushup")
        run(squat, squat_rep()[:12])
        run(pushup, pushup_rep()[:18])
        assert squat.state == ExerciseState.DOWN
        assert pushup.state == ExerciseState.DOWN

        registry.reset("squat")
        assert squat.state == ExerciseState.STANDING
        assert pushup.state == ExerciseState.DOWN

        registry.reset_all()
        assert pushup.state == ExerciseState.UP


class TestRepCountingEngine:
    def test_requires_exercise(self):
        engine = RepCountingEngine(make_registry())
        assert engine.exercise_type is None
        engine.reset()  # no-op before selection
        with pytest.raises(RuntimeError):
            engine.analyze(None)

    def test_routes_to_selected_counter(self):
        engine = RepCountingEngine(make_registry())
        engine.set_exercise_type("squat")
        assert engine.exercise_type == ExerciseType.SQUAT
        assert run(engine, squat_rep())[-1].count == 1

    def test_switching_exercise_starts_clean(self):
        engine = RepCountingEngine(make_registry())
        engine.set_exercise_type("squat")
        run(engine, squat_rep()[:12])

        engine.set_exercise_type("pushup")
        engine.set_exercise_type("squat")
        counter = engine.registry.get("squat")
        assert counter.state == ExerciseState.STANDING
        assert counter.baseline is None

    def test_engines_do_not_share_state(self):
        frames = squat_rep()
        solo = RepCountingEngine(make_registry())
        solo.set_exercise_type("squat")
        expected = [r.count for r in run(solo, frames)]

        a = RepCountingEngine(make_registry())
        b = RepCountingEngine(make_registry())
        a.set_exercise_type("squat")
        b.set_exercise_type("squat")

        counts_a, counts_b = [], []
        count_a = count_b = 0
        for pose in frames:
            count_a = a.analyze(pose, count_a).count
            # b sees every frame twice, which must not disturb a
            for _ in range(2):
                count_b = b.analyze(pose, count_b).count
            counts_a.append(count_a)
            counts_b.append(count_b)

        assert counts_a == expected
        assert counts_b[-1] == 1
