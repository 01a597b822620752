"""
Data structures for the inertial dead-reckoning pipeline.

This module defines the shared data types used across all pipeline stages:
    - Raw sensor samples (body-frame acceleration, optional angular rate)
    - Orientation as roll/pitch/yaw Euler angles
    - Motion and tracking state enumerations
    - Calibration bias, step events and per-tick motion estimates
    - Mutable integrator state (velocity, position, clock)

Time Base Convention:
    All timestamps are monotonic integer nanoseconds. Durations derived from
    them (dt, step intervals) are float seconds.

Frame Conventions:
    - B: Body frame (device/sensor frame)
    - W: World frame (gravity along +z when the device lies flat, screen up)

Sensor packets and outputs are frozen dataclasses; the integrator state is
mutable because it is updated in place on every tick.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional

import numpy as np


class MotionState(Enum):
    """Committed motion classification of the body.

    Attributes:
        STATIONARY: Body at rest; velocity is forced to zero (ZUPT).
        MOVING: Body in motion (also the conservative default).
    """

    STATIONARY = "stationary"
    MOVING = "moving"


class TrackingStatus(Enum):
    """Lifecycle status reported to the host for status text.

    Attributes:
        CALIBRATING: Collecting stationary samples for the bias estimate.
        TRACKING: Calibrated and producing motion estimates.
        IDLE: Session stopped; no samples are processed.
    """

    CALIBRATING = "calibrating"
    TRACKING = "tracking"
    IDLE = "idle"

    @property
    def message(self) -> str:
        """Human-readable status line for notification/UI layers."""
        return _STATUS_MESSAGES[self]


_STATUS_MESSAGES = {
    TrackingStatus.CALIBRATING: "Calibrating... Hold Still!",
    TrackingStatus.TRACKING: "Tracking Active",
    TrackingStatus.IDLE: "Idle",
}


class OperatingMode(Enum):
    """Position propagation mode, selected at configuration time.

    Attributes:
        CONTINUOUS: Double integration of linear acceleration with ZUPT.
        STEP: Pedestrian step detection with step-length/heading updates.
    """

    CONTINUOUS = "continuous"
    STEP = "step"


class OrientationSource(Enum):
    """Where the body-to-world rotation comes from.

    Attributes:
        GYROSCOPE: Complementary filter over accelerometer + gyroscope.
        ROTATION_MATRIX: Pre-fused 3x3 matrix from a platform orientation sensor.
    """

    GYROSCOPE = "gyroscope"
    ROTATION_MATRIX = "rotation_matrix"


class CalibrationPolicy(Enum):
    """How the accelerometer bias is captured.

    Attributes:
        SINGLE_SHOT: First reading whose three axes are all non-zero.
        AVERAGED: Per-axis mean over a fixed number of readings.
    """

    SINGLE_SHOT = "single_shot"
    AVERAGED = "averaged"


class LowPassPlacement(Enum):
    """Location of the single low-pass stage in the pipeline.

    Attributes:
        PREPROCESSOR: Raw samples are smoothed after bias removal; the
                      gravity tracker snapshots the window mean instead.
        GRAVITY_TRACKER: Samples pass unsmoothed; gravity is low-passed.
    """

    PREPROCESSOR = "preprocessor"
    GRAVITY_TRACKER = "gravity_tracker"


def _as_vector3(value, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {arr.shape}")
    return arr


def _freeze(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, dtype=np.float64, copy=True)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True)
class Sample:
    """
    One timestamped inertial reading in the body frame B.

    Attributes:
        accel: Specific force in body frame B, shape (3,). Units: m/s².
               Includes gravity (about 9.8 m/s² magnitude at rest).
        gyro: Angular rate in body frame B, shape (3,), or None when the
              orientation comes from a rotation matrix. Units: rad/s.
        timestamp_ns: Monotonic timestamp in nanoseconds.

    Example:
        >>> s = Sample(accel=[0.0, 0.0, 9.8], gyro=[0.0, 0.0, 0.0],
        ...            timestamp_ns=1_000_000)
    """

    accel: np.ndarray
    timestamp_ns: int
    gyro: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        """Validate shapes and coerce arrays to float64."""
        object.__setattr__(self, "accel", _freeze(_as_vector3(self.accel, "Sample.accel")))
        if self.gyro is not None:
            object.__setattr__(self, "gyro", _freeze(_as_vector3(self.gyro, "Sample.gyro")))
        if int(self.timestamp_ns) < 0:
            raise ValueError(
                f"Sample.timestamp_ns must be non-negative, got {self.timestamp_ns}"
            )
        object.__setattr__(self, "timestamp_ns", int(self.timestamp_ns))


class EulerAngles(NamedTuple):
    """Roll/pitch/yaw orientation in radians (ZYX convention).

    Attributes:
        roll: Rotation about body x-axis.
        pitch: Rotation about body y-axis.
        yaw: Rotation about world z-axis (heading). Gyro-integrated only,
             so it drifts without bound.
    """

    roll: float
    pitch: float
    yaw: float

    def degrees(self) -> "EulerAngles":
        """Return the same orientation expressed in degrees."""
        return EulerAngles(*np.degrees([self.roll, self.pitch, self.yaw]).tolist())

    def as_matrix(self) -> np.ndarray:
        """Return the body-to-world rotation matrix for these angles."""
        from inertial.coords.rotations import euler_to_rotation_matrix

        return euler_to_rotation_matrix(self.roll, self.pitch, self.yaw)


@dataclass(frozen=True)
class CalibrationBias:
    """
    Accelerometer (and optional gyroscope) bias captured at rest.

    The captured accelerometer vector still contains gravity. The part that
    is actually removed from every later reading is the residual after
    taking gravity out along the captured direction:

        offset = a_cal - g * a_cal / ||a_cal||

    so a corrected reading of a still device keeps magnitude g, which the
    tilt estimate and the stillness classifier rely on.

    Attributes:
        accel: Captured accelerometer vector, shape (3,). Units: m/s².
        gyro: Captured gyroscope vector, shape (3,), or None. Units: rad/s.
              Removed in full (a still gyroscope should read zero).
        sample_count: Number of readings that contributed.
        gravity_mps2: Gravity magnitude used to build the offset.
    """

    accel: np.ndarray
    gyro: Optional[np.ndarray] = None
    sample_count: int = 1
    gravity_mps2: float = 9.8

    def __post_init__(self) -> None:
        """Validate shapes and make the arrays read-only."""
        object.__setattr__(
            self, "accel", _freeze(_as_vector3(self.accel, "CalibrationBias.accel"))
        )
        if self.gyro is not None:
            object.__setattr__(
                self, "gyro", _freeze(_as_vector3(self.gyro, "CalibrationBias.gyro"))
            )
        if self.sample_count < 1:
            raise ValueError(
                f"CalibrationBias.sample_count must be >= 1, got {self.sample_count}"
            )

    @property
    def accel_offset(self) -> np.ndarray:
        """Per-axis correction subtracted from accelerometer readings."""
        norm = np.linalg.norm(self.accel)
        if norm < 1e-9:
            return self.accel.copy()
        return self.accel - self.gravity_mps2 * self.accel / norm

    @property
    def gyro_offset(self) -> np.ndarray:
        """Per-axis correction subtracted from gyroscope readings."""
        if self.gyro is None:
            return np.zeros(3)
        return self.gyro.copy()


@dataclass(frozen=True)
class StepEvent:
    """
    A detected pedestrian step.

    Attributes:
        timestamp_ns: Time of the step peak.
        length_m: Estimated step length. Units: m.
        heading_rad: Heading (yaw) used to advance position. Units: rad.
        interval_s: Time since the previous step (cadence period). Units: s.
    """

    timestamp_ns: int
    length_m: float
    heading_rad: float
    interval_s: float


@dataclass
class IntegratorState:
    """
    Mutable dead-reckoning state owned by the Integrator.

    Attributes:
        velocity: World-frame velocity, shape (3,). Units: m/s.
        position: World-frame position, shape (3,). Units: m.
                  Accumulates for the whole session; only reset() clears it.
        last_timestamp_ns: Timestamp of the last accepted tick, or None
                           before the first tick.
    """

    velocity: np.ndarray
    position: np.ndarray
    last_timestamp_ns: Optional[int] = None

    @classmethod
    def zeros(cls) -> "IntegratorState":
        """Create the state at session start (origin, at rest)."""
        return cls(velocity=np.zeros(3), position=np.zeros(3))

    def copy(self) -> "IntegratorState":
        """Return an independent copy."""
        return IntegratorState(
            velocity=self.velocity.copy(),
            position=self.position.copy(),
            last_timestamp_ns=self.last_timestamp_ns,
        )


@dataclass(frozen=True)
class MotionEstimate:
    """
    Per-tick pipeline output handed to the host.

    Attributes:
        timestamp_ns: Timestamp of the sample that produced this estimate.
        velocity: World-frame velocity, shape (3,). Units: m/s.
        position: World-frame position, shape (3,). Units: m.
        motion_state: Committed motion state after this tick.
        total_variance: Summed per-axis variance of the classifier window,
                        or None when no classification ran on this tick.
        step: Step fired on this tick (step mode only), else None.
        orientation: Orientation used for the tick, if known.
    """

    timestamp_ns: int
    velocity: np.ndarray
    position: np.ndarray
    motion_state: MotionState
    total_variance: Optional[float] = None
    step: Optional[StepEvent] = None
    orientation: Optional[EulerAngles] = None

    @property
    def step_length(self) -> Optional[float]:
        """Length of the step fired on this tick, if any."""
        return None if self.step is None else self.step.length_m
