"""
Complementary-filter orientation estimation from accelerometer and gyroscope.

Roll and pitch are observable from the gravity direction measured by the
accelerometer:

    roll_acc  = atan2(a_y, a_z)
    pitch_acc = atan(-a_x / (sqrt(a_y² + a_z²) + ε))

but that estimate is noisy. Integrating the gyroscope is smooth but drifts.
The complementary filter blends both on every tick:

    angle = α·(angle + ω·dt) + (1 - α)·angle_acc        (roll, pitch)
    yaw   = yaw + ω_z·dt                                (no correction)

Yaw is not observable from the accelerometer, so it free-integrates from
the gyroscope and drifts without bound. Callers using yaw as a heading must
expect that drift.
"""

from typing import Optional

import numpy as np

from inertial.sensors.types import EulerAngles


def tilt_from_accel(accel, epsilon: float = 1e-6) -> tuple:
    """
    Roll and pitch implied by an accelerometer reading at rest.

    Args:
        accel: Specific force in body frame, shape (3,). Units: m/s².
        epsilon: Regularizer added to the pitch denominator so a reading
                 with a_y and a_z both near zero never divides by zero.

    Returns:
        (roll, pitch) in radians.
    """
    ax, ay, az = np.asarray(accel, dtype=np.float64)
    roll = float(np.arctan2(ay, az))
    pitch = float(np.arctan(-ax / (np.hypot(ay, az) + epsilon)))
    return roll, pitch


class OrientationEstimator:
    """
    Stateful complementary filter producing roll/pitch/yaw.

    The first call seeds roll and pitch from the accelerometer and sets
    yaw to zero. Later calls integrate the gyroscope over the elapsed time
    and blend roll/pitch toward the accelerometer tilt.

    Attributes:
        alpha: Weight of the gyro-integrated angle (0.98 trusts the gyro
               over short horizons, the accelerometer over long ones).
        epsilon: Tilt denominator guard.

    Example:
        >>> est = OrientationEstimator()
        >>> est.update([0.0, 0.0, 9.8], [0.0, 0.0, 0.0], 1_000_000)
        EulerAngles(roll=0.0, pitch=-0.0, yaw=0.0)
    """

    def __init__(self, alpha: float = 0.98, epsilon: float = 1e-6):
        if not 0.0 <= alpha <= 1.0:
            raise ValueError(f"alpha must be in [0, 1], got {alpha}")
        if epsilon <= 0.0:
            raise ValueError(f"epsilon must be positive, got {epsilon}")
        self.alpha = float(alpha)
        self.epsilon = float(epsilon)
        self.reset()

    def reset(self) -> None:
        self._roll = 0.0
        self._pitch = 0.0
        self._yaw = 0.0
        self._last_timestamp_ns: Optional[int] = None

    @property
    def is_initialized(self) -> bool:
        return self._last_timestamp_ns is not None

    @property
    def orientation(self) -> EulerAngles:
        return EulerAngles(self._roll, self._pitch, self._yaw)

    def orientation_degrees(self) -> EulerAngles:
        return self.orientation.degrees()

    def sync_clock(self, timestamp_ns: int) -> None:
        """Accept a timestamp without integrating (used across sensor gaps)."""
        if self._last_timestamp_ns is not None:
            self._last_timestamp_ns = int(timestamp_ns)

    def update(self, accel, gyro, timestamp_ns: int) -> EulerAngles:
        """
        Advance the filter by one reading.

        Args:
            accel: Bias-corrected accelerometer reading, shape (3,). Units: m/s².
            gyro: Bias-corrected gyroscope reading, shape (3,), or None.
                  Units: rad/s. Without a gyro reading the filter can only
                  be seeded; afterwards the clock advances and the latest
                  orientation is returned.
            timestamp_ns: Reading timestamp in nanoseconds.

        Returns:
            Current EulerAngles. A reading with dt <= 0 leaves the state
            untouched and returns the previous orientation.
        """
        if self._last_timestamp_ns is None:
            self._roll, self._pitch = tilt_from_accel(accel, self.epsilon)
            self._yaw = 0.0
            self._last_timestamp_ns = int(timestamp_ns)
            return self.orientation

        dt = (int(timestamp_ns) - self._last_timestamp_ns) * 1e-9
        if dt <= 0.0:
            return self.orientation
        self._last_timestamp_ns = int(timestamp_ns)

        if gyro is None:
            return self.orientation

        wx, wy, wz = np.asarray(gyro, dtype=np.float64)
        roll_gyro = self._roll + wx * dt
        pitch_gyro = self._pitch + wy * dt
        self._yaw = self._yaw + float(wz) * dt

        roll_acc, pitch_acc = tilt_from_accel(accel, self.epsilon)
        self._roll = float(self.alpha * roll_gyro + (1.0 - self.alpha) * roll_acc)
        self._pitch = float(self.alpha * pitch_gyro + (1.0 - self.alpha) * pitch_acc)

        return self.orientation
