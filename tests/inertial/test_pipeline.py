"""
Unit tests for inertial/pipeline.py (DeadReckoningPipeline).

Tests cover:
    - Calibration lifecycle and status
    - ZUPT: a device at rest settles STATIONARY with exactly zero velocity
    - Position is the running sum of v·Δt
    - Stale and gap ticks
    - Rotation-matrix orientation source (missing and invalid matrices)
    - Step mode: one stride per detected step along the heading
    - End-to-end run on a synthetic walk/stop trace

Run with: pytest tests/inertial/test_pipeline.py -v
"""

import unittest

import numpy as np

from inertial.config import FilterConfig, PipelineConfig
from inertial.pipeline import DeadReckoningPipeline
from inertial.sensors.types import (
    LowPassPlacement,
    MotionState,
    Sample,
    TrackingStatus,
)
from inertial.sim import walk_stop_trace

DT_NS = 10_000_000
AT_REST = np.array([0.0, 0.0, 9.8])
NO_ROTATION = np.zeros(3)


def _calibrated(config=None):
    pipe = DeadReckoningPipeline(config)
    for k in range(200):
        pipe.calibrate(Sample(AT_REST, k * DT_NS, NO_ROTATION))
    return pipe


class TestCalibrationLifecycle(unittest.TestCase):
    """Test suite for calibration inside the pipeline."""

    def test_status(self) -> None:
        pipe = DeadReckoningPipeline()
        assert pipe.status == TrackingStatus.CALIBRATING
        assert pipe.calibration_progress == (0, 200)
        for k in range(199):
            assert pipe.calibrate(Sample(AT_REST, k * DT_NS)) is None
        bias = pipe.calibrate(Sample(AT_REST, 199 * DT_NS))

        assert bias is not None
        assert pipe.is_calibrated
        assert pipe.status == TrackingStatus.TRACKING
        assert pipe.calibration_progress == (200, 200)

    def test_exact_bias_from_identical_readings(self) -> None:
        reading = np.array([0.05, -0.12, 9.91])
        pipe = DeadReckoningPipeline()
        bias = pipe.calibrate(np.tile(reading, (200, 1)))
        assert np.array_equal(bias.accel, reading)
        assert pipe.bias is bias

    def test_update_before_calibration(self) -> None:
        pipe = DeadReckoningPipeline()
        est = pipe.update(Sample(AT_REST, 0, NO_ROTATION))
        assert est.motion_state == MotionState.MOVING
        assert pipe.status == TrackingStatus.CALIBRATING

    def test_reset(self) -> None:
        pipe = _calibrated()
        pipe.update(Sample(AT_REST, 300 * DT_NS, NO_ROTATION))
        pipe.reset()

        assert pipe.status == TrackingStatus.CALIBRATING
        assert pipe.last_estimate is None
        assert np.array_equal(pipe.position, np.zeros(3))
        assert pipe.motion_state == MotionState.MOVING


class TestZeroVelocityUpdate(unittest.TestCase):
    """Test suite for stillness detection and ZUPT through the pipeline."""

    def test_at_rest_commits_stationary_with_zero_velocity(self) -> None:
        pipe = _calibrated()
        estimates = [
            pipe.update(Sample(AT_REST, (300 + k) * DT_NS, NO_ROTATION)) for k in range(200)
        ]

        for est in estimates[:28]:
            assert est.motion_state == MotionState.MOVING
        for est in estimates[28:]:
            assert est.motion_state == MotionState.STATIONARY
        for est in estimates:
            assert np.array_equal(est.velocity, np.zeros(3))
            assert np.array_equal(est.position, np.zeros(3))

    def test_preprocessor_lowpass_placement(self) -> None:
        cfg = PipelineConfig(filter=FilterConfig(placement=LowPassPlacement.PREPROCESSOR))
        pipe = _calibrated(cfg)
        for k in range(100):
            est = pipe.update(Sample(AT_REST, (300 + k) * DT_NS, NO_ROTATION))
        assert est.motion_state == MotionState.STATIONARY
        assert np.array_equal(est.velocity, np.zeros(3))
        assert np.allclose(pipe.gravity_estimate, AT_REST)

    def test_stop_after_motion_zeroes_velocity(self) -> None:
        pipe = _calibrated(PipelineConfig.from_dict({"orientation": {"source": "rotation_matrix"}}))
        ts = 300 * DT_NS
        pipe.update(Sample(AT_REST, ts), np.eye(3))
        for k in range(1, 30):
            ts += DT_NS
            ax = 3.0 if k % 2 else -1.0
            pipe.update(Sample([ax, 0.0, 9.8], ts), np.eye(3))
        assert np.linalg.norm(pipe.velocity) > 0.0

        for _ in range(40):
            ts += DT_NS
            est = pipe.update(Sample(AT_REST, ts), np.eye(3))

        assert est.motion_state == MotionState.STATIONARY
        assert np.array_equal(est.velocity, np.zeros(3))


class TestTiming(unittest.TestCase):
    """Test suite for integration timing through the pipeline."""

    def _moving_pipeline(self):
        pipe = _calibrated(PipelineConfig.from_dict({"orientation": {"source": "rotation_matrix"}}))
        ts = 300 * DT_NS
        estimates = [pipe.update(Sample(AT_REST, ts), np.eye(3))]
        for k in range(1, 40):
            ts += DT_NS
            ax = 3.0 if k % 2 else -1.0
            estimates.append(pipe.update(Sample([ax, 0.0, 9.8], ts), np.eye(3)))
        return pipe, estimates, ts

    def test_position_is_running_sum(self) -> None:
        _, estimates, _ = self._moving_pipeline()
        for prev, est in zip(estimates, estimates[1:]):
            dt = (est.timestamp_ns - prev.timestamp_ns) * 1e-9
            assert np.array_equal(est.position, prev.position + est.velocity * dt)
        assert estimates[-1].position[0] > 0.0

    def test_stale_tick_returns_previous_estimate(self) -> None:
        pipe, estimates, ts = self._moving_pipeline()
        held = pipe.update(Sample([50.0, 0.0, 9.8], ts), np.eye(3))
        older = pipe.update(Sample([50.0, 0.0, 9.8], ts - DT_NS), np.eye(3))
        assert held is estimates[-1]
        assert older is estimates[-1]

    def test_gap_changes_nothing_then_resumes(self) -> None:
        pipe, estimates, ts = self._moving_pipeline()
        last = estimates[-1]
        assert np.linalg.norm(last.velocity) > 0.0

        gap = pipe.update(Sample([50.0, 0.0, 9.8], ts + 600_000_000), np.eye(3))

        np.testing.assert_array_equal(gap.velocity, last.velocity)
        np.testing.assert_array_equal(gap.position, last.position)
        assert gap.timestamp_ns == ts + 600_000_000

        resumed = pipe.update(Sample([3.0, 0.0, 9.8], ts + 610_000_000), np.eye(3))
        assert not np.array_equal(resumed.position, last.position)
        dt = DT_NS * 1e-9
        assert np.array_equal(resumed.position, last.position + resumed.velocity * dt)

    def test_gap_keeps_gyro_orientation(self) -> None:
        pipe = _calibrated()
        pipe.update(Sample(AT_REST, 300 * DT_NS, [0.0, 0.0, 0.0]))
        pipe.update(Sample(AT_REST, 301 * DT_NS, [0.0, 0.0, 1.0]))
        yaw = pipe.orientation.yaw

        pipe.update(Sample(AT_REST, 401 * DT_NS, [0.0, 0.0, 1.0]))
        assert pipe.orientation.yaw == yaw

        pipe.update(Sample(AT_REST, 402 * DT_NS, [0.0, 0.0, 1.0]))
        assert np.isclose(pipe.orientation.yaw, yaw + 0.01)

    def test_accel_only_ticks_advance_orientation_clock(self) -> None:
        pipe = _calibrated()
        pipe.update(Sample(AT_REST, 300 * DT_NS, [0.0, 0.0, 0.0]))
        for k in range(301, 401):
            pipe.update(Sample(AT_REST, k * DT_NS))

        pipe.update(Sample(AT_REST, 401 * DT_NS, [0.0, 0.0, 0.5]))
        assert np.isclose(pipe.orientation.yaw, 0.005)


class TestRotationMatrixSource(unittest.TestCase):
    """Test suite for orientation from a supplied rotation matrix."""

    def _pipeline(self):
        return _calibrated(PipelineConfig.from_dict({"orientation": {"source": "rotation_matrix"}}))

    def test_missing_rotation_holds_state(self) -> None:
        pipe = self._pipeline()
        with self.assertLogs("inertial.pipeline", level="WARNING") as cm:
            est = pipe.update(Sample(AT_REST, 300 * DT_NS))
            pipe.update(Sample(AT_REST, 301 * DT_NS))

        assert len(cm.output) == 1
        assert np.array_equal(est.position, np.zeros(3))
        assert pipe.last_estimate is None

    def test_invalid_rotation_holds_state(self) -> None:
        pipe = self._pipeline()
        first = pipe.update(Sample(AT_REST, 300 * DT_NS), np.eye(3))

        with self.assertLogs("inertial.pipeline", level="WARNING") as cm:
            held = pipe.update(Sample([5.0, 0.0, 9.8], 301 * DT_NS), 2.0 * np.eye(3))
            pipe.update(Sample([5.0, 0.0, 9.8], 302 * DT_NS), np.full((3, 3), np.nan))
            pipe.update(Sample(AT_REST, 303 * DT_NS), np.eye(3))
            pipe.update(Sample([5.0, 0.0, 9.8], 304 * DT_NS), np.diag([1.0, 1.0, -1.0]))

        assert held is first
        assert len(cm.output) == 2

    def test_invalid_rotation_leaves_lowpass_untouched(self) -> None:
        """A rejected tick must not feed the preprocessor low-pass filter."""
        cfg = PipelineConfig.from_dict(
            {"orientation": {"source": "rotation_matrix"}, "filter": {"placement": "preprocessor"}}
        )
        held = _calibrated(cfg)
        clean = _calibrated(cfg)
        for pipe in (held, clean):
            pipe.update(Sample(AT_REST, 300 * DT_NS), np.eye(3))

        with self.assertLogs("inertial.pipeline", level="WARNING"):
            held.update(Sample([5.0, 0.0, 9.8], 301 * DT_NS), np.full((3, 3), np.nan))

        a = held.update(Sample([1.0, 0.0, 9.8], 302 * DT_NS), np.eye(3))
        b = clean.update(Sample([1.0, 0.0, 9.8], 302 * DT_NS), np.eye(3))

        np.testing.assert_array_equal(a.velocity, b.velocity)
        np.testing.assert_array_equal(a.position, b.position)
        np.testing.assert_array_equal(held.gravity_estimate, clean.gravity_estimate)

    def test_flat_matrix_accepted(self) -> None:
        pipe = self._pipeline()
        est = pipe.update(Sample(AT_REST, 300 * DT_NS), np.eye(3).ravel())
        assert pipe.last_estimate is est

    def test_world_frame_heading(self) -> None:
        """A yawed device walking along its own x axis moves along the yaw."""
        pipe = self._pipeline()
        R = np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
        ts = 300 * DT_NS
        pipe.update(Sample(AT_REST, ts), R)
        for k in range(1, 30):
            ts += DT_NS
            est = pipe.update(Sample([2.0 if k % 2 else 0.5, 0.0, 9.8], ts), R)

        assert np.isclose(est.orientation.yaw, np.pi / 2)
        assert np.isclose(pipe.orientation.yaw, np.pi / 2)
        assert pipe.position[1] > 0.0
        assert abs(pipe.position[0]) < 1e-12


class TestStepMode(unittest.TestCase):
    """Test suite for pedestrian step mode."""

    def test_two_steps_advance_along_heading(self) -> None:
        pipe = _calibrated(PipelineConfig.pedestrian())
        t0 = 300 * DT_NS
        pipe.update(Sample(AT_REST, t0), np.eye(3))

        steps = []
        for k in range(1, 151):
            accel = AT_REST + ([0.0, 0.0, 3.0] if k in (50, 100) else 0.0)
            est = pipe.update(Sample(accel, t0 + k * DT_NS), np.eye(3))
            if est.step is not None:
                steps.append(est)

        assert len(steps) == 2
        assert pipe.step_count == 2
        for est in steps:
            assert np.isclose(est.step.interval_s, 0.5)
            assert est.step.length_m >= 0.4 / 0.5 + 0.3
            assert np.array_equal(est.velocity, np.zeros(3))

        total = steps[0].step.length_m + steps[1].step.length_m
        np.testing.assert_allclose(pipe.position, [total, 0.0, 0.0], atol=1e-9)

    def test_no_steps_at_rest(self) -> None:
        pipe = _calibrated(PipelineConfig.pedestrian())
        for k in range(300):
            pipe.update(Sample(AT_REST, (300 + k) * DT_NS), np.eye(3))
        assert pipe.step_count == 0
        assert np.array_equal(pipe.position, np.zeros(3))


class TestSyntheticTrace(unittest.TestCase):
    """End-to-end run on a generated walk/stop trace."""

    def test_continuous_walk_stop(self) -> None:
        trace = walk_stop_trace(n_cycles=2)
        pipe = DeadReckoningPipeline()
        estimates = []
        for k, sample in enumerate(trace.samples):
            if not pipe.is_calibrated:
                pipe.calibrate(sample)
                continue
            estimates.append((k, pipe.update(sample)))

        for _, est in estimates:
            if est.motion_state == MotionState.STATIONARY:
                assert np.array_equal(est.velocity, np.zeros(3))

        mid_walk = int(round((3.0 + 2.0) * 100))
        states = dict(estimates)
        assert states[mid_walk].motion_state == MotionState.MOVING
        assert estimates[-1][1].motion_state == MotionState.STATIONARY
        assert np.all(np.isfinite(estimates[-1][1].position))

    def test_step_mode_counts_strides(self) -> None:
        trace = walk_stop_trace(n_cycles=2)
        pipe = DeadReckoningPipeline(PipelineConfig.pedestrian())
        for k, sample in enumerate(trace.samples):
            if not pipe.is_calibrated:
                pipe.calibrate(sample)
                continue
            pipe.update(sample, trace.rotations[k])

        assert pipe.step_count > 0
        assert pipe.position[0] > 0.0


if __name__ == "__main__":
    unittest.main()
