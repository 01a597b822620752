"""
Unit tests for inertial/sensors/gravity.py.

Tests cover:
    - WGS-84 latitude model for gravity magnitude
    - GravityTracker gating on the committed motion state
    - Low-pass and window-snapshot update modes

Run with: pytest tests/inertial/sensors/test_sensors_gravity.py -v
"""

import unittest

import numpy as np
import pytest

from inertial.sensors.gravity import GravityTracker, gravity_from_latitude, gravity_magnitude
from inertial.sensors.types import MotionState


class TestGravityFromLatitude(unittest.TestCase):
    """Test suite for the latitude gravity model."""

    def test_equator(self) -> None:
        assert np.isclose(gravity_from_latitude(0.0), 9.7803)

    def test_pole(self) -> None:
        assert np.isclose(gravity_from_latitude(np.pi / 2), 9.7803 * 1.0053024, atol=1e-9)

    def test_monotonic_in_latitude(self) -> None:
        lats = np.deg2rad(np.arange(0.0, 91.0, 10.0))
        g = [gravity_from_latitude(lat) for lat in lats]
        assert all(b > a for a, b in zip(g, g[1:]))

    def test_symmetric(self) -> None:
        assert np.isclose(gravity_from_latitude(0.7), gravity_from_latitude(-0.7))

    def test_range(self) -> None:
        for lat in np.linspace(-np.pi / 2, np.pi / 2, 19):
            assert 9.78 <= gravity_from_latitude(lat) <= 9.833


class TestGravityMagnitude(unittest.TestCase):
    """Test suite for gravity_magnitude."""

    def test_default_without_latitude(self) -> None:
        assert gravity_magnitude() == 9.8
        assert gravity_magnitude(None, default_g=9.81) == 9.81

    def test_with_latitude(self) -> None:
        assert gravity_magnitude(0.5) == gravity_from_latitude(0.5)


class TestGravityTracker(unittest.TestCase):
    """Test suite for GravityTracker."""

    def test_default_estimate(self) -> None:
        tracker = GravityTracker(gravity_mps2=9.81)
        assert not tracker.is_seeded
        np.testing.assert_array_equal(tracker.estimate, [0.0, 0.0, 9.81])

    def test_seed(self) -> None:
        tracker = GravityTracker()
        tracker.seed([0.1, 0.0, 9.7])
        assert tracker.is_seeded
        np.testing.assert_array_equal(tracker.estimate, [0.1, 0.0, 9.7])

    def test_frozen_while_moving(self) -> None:
        tracker = GravityTracker()
        tracker.seed([0.0, 0.0, 9.8])

        changed = tracker.update([5.0, 0.0, 9.8], MotionState.MOVING)

        assert not changed
        np.testing.assert_array_equal(tracker.estimate, [0.0, 0.0, 9.8])

    def test_lowpass_while_stationary(self) -> None:
        tracker = GravityTracker(alpha=0.98)
        tracker.seed([0.0, 0.0, 9.8])

        assert tracker.update([1.0, 0.0, 9.8], MotionState.STATIONARY)

        np.testing.assert_allclose(tracker.estimate, [0.02, 0.0, 9.8])

    def test_seeds_on_first_stationary_update(self) -> None:
        tracker = GravityTracker()
        assert tracker.update([0.0, 0.2, 9.8], MotionState.STATIONARY)
        np.testing.assert_array_equal(tracker.estimate, [0.0, 0.2, 9.8])

    def test_snapshot_mode(self) -> None:
        tracker = GravityTracker(lowpass=False)
        tracker.seed([0.0, 0.0, 9.8])

        assert tracker.update([3.0, 0.0, 9.8], MotionState.STATIONARY, window_mean=[0.1, 0.0, 9.79])
        np.testing.assert_array_equal(tracker.estimate, [0.1, 0.0, 9.79])

        assert not tracker.update([3.0, 0.0, 9.8], MotionState.STATIONARY)

    def test_estimate_is_a_copy(self) -> None:
        tracker = GravityTracker()
        tracker.seed([0.0, 0.0, 9.8])
        est = tracker.estimate
        est[2] = 0.0
        assert tracker.estimate[2] == 9.8

    def test_reset(self) -> None:
        tracker = GravityTracker()
        tracker.seed([1.0, 1.0, 1.0])
        tracker.reset()
        assert not tracker.is_seeded

    def test_invalid(self) -> None:
        with pytest.raises(ValueError, match="alpha"):
            GravityTracker(alpha=1.0)
        with pytest.raises(ValueError, match="shape"):
            GravityTracker().seed([0.0, 9.8])


if __name__ == "__main__":
    unittest.main()
