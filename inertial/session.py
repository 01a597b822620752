"""
In-memory host adapter around DeadReckoningPipeline.

A host process (a phone service, a log replayer, a test) delivers sensor
events of different types, interleaved and asynchronously. SensorSession
keeps the latest-known gyroscope and rotation readings, routes every
accelerometer event either into calibration or into tracking, and reports
back through plain callbacks:

    on_status(TrackingStatus)    on every status change
    on_estimate(MotionEstimate)  on every tracking tick

It also keeps a bounded trace of horizontal positions for path rendering.
No threads, I/O or UI live here.
"""

import logging
from collections import deque
from typing import Callable, Deque, List, Optional, Tuple

import numpy as np

from inertial.config import PipelineConfig
from inertial.coords.rotations import as_rotation_matrix, rotation_vector_to_matrix
from inertial.pipeline import DeadReckoningPipeline
from inertial.sensors.types import MotionEstimate, OrientationSource, Sample, TrackingStatus

logger = logging.getLogger(__name__)

EstimateCallback = Callable[[MotionEstimate], None]
StatusCallback = Callable[[TrackingStatus], None]


class PathTrace:
    """Bounded FIFO of (x, y) points; the oldest point is dropped first."""

    def __init__(self, capacity: int = 500):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = int(capacity)
        self._points: Deque[Tuple[float, float]] = deque(maxlen=self.capacity)

    def add(self, x: float, y: float) -> None:
        self._points.append((float(x), float(y)))

    def points(self) -> List[Tuple[float, float]]:
        return list(self._points)

    def as_array(self) -> np.ndarray:
        """Points as an array of shape (N, 2)."""
        if not self._points:
            return np.zeros((0, 2))
        return np.array(self._points)

    def clear(self) -> None:
        self._points.clear()

    def __len__(self) -> int:
        return len(self._points)


class SensorSession:
    """
    Session lifecycle and event routing for one pipeline.

    Attributes:
        pipeline: The DeadReckoningPipeline being driven.
        trace: PathTrace of horizontal positions.
        status: Current TrackingStatus (IDLE until start()).

    Example:
        >>> statuses = []
        >>> session = SensorSession(on_status=statuses.append)
        >>> session.start()
        >>> statuses[-1].message
        'Calibrating... Hold Still!'
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        on_estimate: Optional[EstimateCallback] = None,
        on_status: Optional[StatusCallback] = None,
        trace_capacity: int = 500,
    ):
        self.pipeline = DeadReckoningPipeline(config)
        self.trace = PathTrace(trace_capacity)
        self.on_estimate = on_estimate
        self.on_status = on_status
        self.status = TrackingStatus.IDLE
        self._latest_gyro: Optional[np.ndarray] = None
        self._latest_rotation: Optional[np.ndarray] = None

    @property
    def config(self) -> PipelineConfig:
        return self.pipeline.config

    @property
    def latest_rotation(self) -> Optional[np.ndarray]:
        return None if self._latest_rotation is None else self._latest_rotation.copy()

    def start(self) -> None:
        """Begin a fresh session: clear all state and start calibrating."""
        self._clear()
        logger.info("Session started, calibrating")
        self._set_status(TrackingStatus.CALIBRATING)

    def stop(self) -> None:
        """End the session: clear all state and go idle."""
        self._clear()
        logger.info("Session stopped")
        self._set_status(TrackingStatus.IDLE)

    def on_gyroscope(self, values, timestamp_ns: int) -> None:
        """Record the latest angular rate reading. Units: rad/s."""
        if self.status == TrackingStatus.IDLE:
            return
        self._latest_gyro = np.array(values[:3], dtype=np.float64)

    def on_rotation_matrix(self, matrix, timestamp_ns: int) -> None:
        """Record the latest body-to-world matrix, (3, 3) or row-major (9,)."""
        if self.status == TrackingStatus.IDLE:
            return
        self._latest_rotation = as_rotation_matrix(matrix).copy()

    def on_rotation_vector(self, values, timestamp_ns: int) -> None:
        """Record the latest platform rotation vector (x, y, z[, w])."""
        if self.status == TrackingStatus.IDLE:
            return
        self._latest_rotation = rotation_vector_to_matrix(values)

    def on_accelerometer(self, values, timestamp_ns: int) -> Optional[MotionEstimate]:
        """
        Route one accelerometer reading.

        While calibrating the reading is folded into the bias; afterwards it
        is combined with the latest gyro/rotation and run through the
        pipeline.

        Returns:
            The MotionEstimate for a tracking tick, else None.
        """
        if self.status == TrackingStatus.IDLE:
            return None

        sample = Sample(accel=values[:3], timestamp_ns=timestamp_ns, gyro=self._latest_gyro)

        if self.status == TrackingStatus.CALIBRATING:
            if self.pipeline.calibrate(sample) is not None:
                self._set_status(TrackingStatus.TRACKING)
            return None

        rotation = None
        if self.config.orientation.source == OrientationSource.ROTATION_MATRIX:
            if self._latest_rotation is None:
                return None
            rotation = self._latest_rotation

        estimate = self.pipeline.update(sample, rotation)
        self.trace.add(estimate.position[0], estimate.position[1])
        if self.on_estimate is not None:
            self.on_estimate(estimate)
        return estimate

    def _clear(self) -> None:
        self.pipeline.reset()
        self.trace.clear()
        self._latest_gyro = None
        self._latest_rotation = None

    def _set_status(self, status: TrackingStatus) -> None:
        if status == self.status:
            return
        self.status = status
        logger.debug("Status: %s", status.message)
        if self.on_status is not None:
            self.on_status(status)
