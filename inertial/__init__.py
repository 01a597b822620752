"""Inertial dead reckoning from onboard accelerometer and gyroscope data.

This package estimates orientation, velocity and position of a moving body
without any external positioning reference:
- sensors: calibration, preprocessing, orientation, stillness detection,
  gravity tracking, integration with ZUPT, pedestrian step detection
- coords: rotation representations and body-to-world frame rotation
- sim: synthetic traces with ground truth
- pipeline / session: the per-sample pipeline and its host adapter
"""

from inertial.sensors.types import (
    MotionEstimate,
    MotionState,
    OperatingMode,
    OrientationSource,
    Sample,
    TrackingStatus,
)
from inertial.config import PipelineConfig, load_config
from inertial.pipeline import DeadReckoningPipeline
from inertial.session import PathTrace, SensorSession

__all__ = [
    "DeadReckoningPipeline",
    "MotionEstimate",
    "MotionState",
    "OperatingMode",
    "OrientationSource",
    "PathTrace",
    "PipelineConfig",
    "Sample",
    "SensorSession",
    "TrackingStatus",
    "load_config",
]

__version__ = "0.1.0"
