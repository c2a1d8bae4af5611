"""Tests for the smoothing, calibration and debounce building blocks."""

import pytest

from counting_service.models.calibration import BaselineCalibrator, CalibrationParams
from counting_service.models.debounce import DebounceGuard
from counting_service.models.smoothing import SampleSmoother

from .poses import FakeClock


class TestSampleSmoother:
    def test_mean_over_window(self):
        smoother = SampleSmoother(window=3)
        assert smoother.push(3.0) == pytest.approx(3.0)
        assert smoother.push(6.0) == pytest.approx(4.5)
        smoother.push(9.0)
        assert smoother.push(12.0) == pytest.approx(9.0)
        assert len(smoother) == 3

    def test_window_of_one_is_passthrough(self):
        smoother = SampleSmoother(window=1)
        smoother.push(10.0)
        assert smoother.push(20.0) == 20.0

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            SampleSmoother(window=0)

    def test_reset(self):
        smoother = SampleSmoother()
        smoother.push(1.0)
        smoother.reset()
        assert smoother.value is None
        assert smoother.samples == []


class TestBaselineCalibrator:
    params = CalibrationParams(min_samples=3, variance_epsilon=0.01, change_epsilon=0.01,
                               min_stable_streak=2, blend=0.5)

    def test_commits_after_stable_samples(self):
        cal = BaselineCalibrator(self.params)
        assert cal.observe(0.3, 0.3) is None
        assert cal.observe(0.3, 0.3) is None
        assert cal.observe(0.3, 0.3) == pytest.approx(0.3)
        assert cal.is_calibrated

    def test_no_commit_while_unstable(self):
        cal = BaselineCalibrator(CalibrationParams(variance_epsilon=0.0001))
        for value in (0.1, 0.3, 0.5, 0.1, 0.5):
            cal.observe(value, value)
        assert cal.baseline is None

    def test_blends_after_stable_streak(self):
        cal = BaselineCalibrator(self.params)
        for _ in range(3):
            cal.observe(0.30, 0.30)
        cal.observe(0.305, 0.40)  # streak 1, no blend yet
        assert cal.baseline == pytest.approx(0.30)
        cal.observe(0.305, 0.40)  # streak 2, blend
        assert cal.baseline == pytest.approx(0.35)

    def test_large_change_resets_streak(self):
        cal = BaselineCalibrator(self.params)
        for _ in range(3):
            cal.observe(0.30, 0.30)
        cal.observe(0.30, 0.30)
        cal.observe(0.50, 0.34)
        assert cal.stable_streak == 0
        assert cal.baseline == pytest.approx(0.30)

    def test_hold_never_writes(self):
        cal = BaselineCalibrator(self.params)
        cal.observe(0.3, 0.3)
        cal.observe(0.3, 0.3)
        cal.hold(0.3)
        # Pending samples were dropped, so one more frame is not enough
        assert cal.observe(0.3, 0.3) is None
        assert cal.baseline is None

    def test_deviation(self):
        cal = BaselineCalibrator(self.params)
        assert cal.deviation(0.4) is None
        for _ in range(3):
            cal.observe(0.3, 0.3)
        assert cal.deviation(0.4) == pytest.approx(0.1)
        assert cal.deviation(0.2) == pytest.approx(0.1)

    def test_reset(self):
        cal = BaselineCalibrator(self.params)
        for _ in range(3):
            cal.observe(0.3, 0.3)
        cal.reset()
        assert cal.baseline is None
        assert cal.stable_streak == 0


class TestDebounceGuard:
    def test_first_event_always_accepted(self):
        guard = DebounceGuard(500, FakeClock())
        assert guard.try_accept()

    def test_rejects_within_interval(self):
        clock = FakeClock()
        guard = DebounceGuard(500, clock)
        guard.try_accept()
        clock.advance(0.3)
        assert not guard.try_accept()
        clock.advance(0.3)
        # Rejections do not move the reference point
        assert guard.try_accept()

    def test_elapsed_and_reset(self):
        clock = FakeClock()
        guard = DebounceGuard(500, clock)
        assert guard.elapsed() is None
        guard.try_accept()
        clock.advance(2.0)
        assert guard.elapsed() == pytest.approx(2.0)
        guard.reset()
        assert guard.last_accepted is None
