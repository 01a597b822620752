"""
Gravity magnitude model and the world-frame gravity tracker.

Two pieces live here:

    - The WGS-84 latitude model for the magnitude of gravity,

          g(φ) = 9.7803 · (1 + 0.0053024·sin²φ - 0.000005·sin²2φ)

      used to pick the reference g when the operating latitude is known
      (about 9.780 m/s² at the equator, 9.832 m/s² at the poles).

    - GravityTracker, the state-gated exponential filter that follows the
      gravity vector in the world frame. It may only adapt while the body is
      committed STATIONARY, so sustained linear acceleration never leaks into
      the gravity estimate.

The tracker either low-passes toward the current world-frame acceleration

    ĝ ← α·ĝ + (1 - α)·a_world

or, when smoothing already happened upstream in the Preprocessor, snapshots
the classifier window mean. Exactly one of the two is active per pipeline.
"""

from typing import Optional

import numpy as np

from inertial.sensors.types import MotionState


def gravity_from_latitude(lat_rad: float) -> float:
    """
    Gravity magnitude at sea level for a geodetic latitude (WGS-84).

    Args:
        lat_rad: Geodetic latitude in radians, in [-π/2, π/2].

    Returns:
        Gravity magnitude in m/s², roughly within [9.780, 9.833].

    Example:
        >>> round(gravity_from_latitude(0.0), 4)
        9.7803
    """
    sin_lat = np.sin(lat_rad)
    sin_2lat = np.sin(2.0 * lat_rad)
    return float(9.7803 * (1.0 + 0.0053024 * sin_lat * sin_lat - 0.000005 * sin_2lat * sin_2lat))


def gravity_magnitude(
    lat_rad: Optional[float] = None,
    default_g: float = 9.8,
) -> float:
    """
    Gravity magnitude, falling back to a fixed value without a latitude.

    Args:
        lat_rad: Geodetic latitude in radians, or None.
        default_g: Value returned when lat_rad is None. Units: m/s².

    Returns:
        gravity_from_latitude(lat_rad), or default_g.
    """
    if lat_rad is None:
        return float(default_g)
    return gravity_from_latitude(lat_rad)


class GravityTracker:
    """
    World-frame gravity estimate, adapted only while STATIONARY.

    Until seeded the estimate is (0, 0, g), the gravity vector of a level
    device with +z up.

    Attributes:
        alpha: Weight of the previous estimate in the low-pass update.
        lowpass: True to low-pass toward the current sample; False to
                 snapshot the classifier window mean instead.
        gravity_mps2: Magnitude used for the unseeded default.
    """

    def __init__(self, alpha: float = 0.98, lowpass: bool = True, gravity_mps2: float = 9.8):
        if not 0.0 <= alpha < 1.0:
            raise ValueError(f"alpha must be in [0, 1), got {alpha}")
        self.alpha = float(alpha)
        self.lowpass = lowpass
        self.gravity_mps2 = float(gravity_mps2)
        self.reset()

    def reset(self) -> None:
        self._estimate: Optional[np.ndarray] = None

    @property
    def is_seeded(self) -> bool:
        return self._estimate is not None

    @property
    def estimate(self) -> np.ndarray:
        if self._estimate is None:
            return np.array([0.0, 0.0, self.gravity_mps2])
        return self._estimate.copy()

    def seed(self, world_accel) -> None:
        """Initialize the estimate from the first world-frame acceleration."""
        world_accel = np.asarray(world_accel, dtype=np.float64)
        if world_accel.shape != (3,):
            raise ValueError(f"world_accel must have shape (3,), got {world_accel.shape}")
        self._estimate = world_accel.copy()

    def update(
        self,
        world_accel,
        state: MotionState,
        window_mean: Optional[np.ndarray] = None,
    ) -> bool:
        """
        Adapt the estimate if, and only if, the body is STATIONARY.

        Args:
            world_accel: Current world-frame acceleration, shape (3,).
            state: Committed MotionState for this tick.
            window_mean: Classifier window mean (snapshot mode only).

        Returns:
            True when the estimate changed on this call.
        """
        if state != MotionState.STATIONARY:
            return False

        if self._estimate is None:
            self.seed(world_accel)
            return True

        if self.lowpass:
            world_accel = np.asarray(world_accel, dtype=np.float64)
            self._estimate = self.alpha * self._estimate + (1.0 - self.alpha) * world_accel
            return True

        if window_mean is None:
            return False
        self._estimate = np.array(window_mean, dtype=np.float64)
        return True
