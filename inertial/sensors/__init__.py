"""
Sensor-level stages of the inertial dead-reckoning pipeline.

Modules:
    types: Samples, orientation, motion/tracking enums, bias, step and
           integrator state, per-tick estimates
    calibration: Stationary bias capture (single-shot or averaged)
    preprocess: Bias removal and first-order low-pass filtering
    orientation: Complementary-filter roll/pitch/yaw estimation
    constraints: Sliding-window stillness classifier with hysteresis (ZUPT)
    gravity: Latitude gravity model and the world-frame gravity tracker
    integrator: Velocity/position integration with ZUPT and gap handling
    pdr: Step detection, step-length model and step position update

Design principles:
    - Every stage is a small class owning its own state with a reset()
    - Sensor packets and outputs are frozen; integrator state is mutable
    - Data conditions never raise; construction errors raise ValueError
    - Frame conventions: B (body), W (world, +z opposite gravity)

Example:
    >>> from inertial.sensors import Calibrator, Preprocessor, OrientationEstimator
    >>> cal = Calibrator(sample_count=1)
    >>> bias = cal.add_sample([0.1, 0.0, 9.8])
    >>> pre = Preprocessor()
    >>> pre.apply_bias(bias)
    >>> accel, gyro = pre.process([0.1, 0.0, 9.8], [0.0, 0.0, 0.0])
    >>> OrientationEstimator().update(accel, gyro, 1_000_000)
"""

from inertial.sensors.types import (
    CalibrationBias,
    CalibrationPolicy,
    EulerAngles,
    IntegratorState,
    LowPassPlacement,
    MotionEstimate,
    MotionState,
    OperatingMode,
    OrientationSource,
    Sample,
    StepEvent,
    TrackingStatus,
)
from inertial.sensors.calibration import Calibrator
from inertial.sensors.preprocess import LowPassFilter, Preprocessor, lowpass_series
from inertial.sensors.orientation import OrientationEstimator, tilt_from_accel
from inertial.sensors.constraints import ClassifierResult, MotionClassifier, window_variance
from inertial.sensors.gravity import GravityTracker, gravity_from_latitude, gravity_magnitude
from inertial.sensors.integrator import (
    Integrator,
    TickKind,
    TickTiming,
    apply_deadband,
    damp_velocity,
    tick_timing,
)
from inertial.sensors.pdr import (
    StepDetector,
    detect_steps_offline,
    pdr_step_update,
    step_length_model,
)

__all__ = [
    # Data types
    "CalibrationBias",
    "CalibrationPolicy",
    "EulerAngles",
    "IntegratorState",
    "LowPassPlacement",
    "MotionEstimate",
    "MotionState",
    "OperatingMode",
    "OrientationSource",
    "Sample",
    "StepEvent",
    "TrackingStatus",
    # Calibration and preprocessing
    "Calibrator",
    "LowPassFilter",
    "Preprocessor",
    "lowpass_series",
    # Orientation
    "OrientationEstimator",
    "tilt_from_accel",
    # Stillness and gravity
    "ClassifierResult",
    "MotionClassifier",
    "window_variance",
    "GravityTracker",
    "gravity_from_latitude",
    "gravity_magnitude",
    # Integration
    "Integrator",
    "TickKind",
    "TickTiming",
    "apply_deadband",
    "damp_velocity",
    "tick_timing",
    # Pedestrian dead reckoning
    "StepDetector",
    "detect_steps_offline",
    "pdr_step_update",
    "step_length_model",
]
