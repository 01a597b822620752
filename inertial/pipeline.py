"""
The dead-reckoning pipeline: one sample in, one motion estimate out.

Data flow per tick:

    raw sample
      -> Calibrator / Preprocessor        (bias removal, optional low-pass)
      -> OrientationEstimator or matrix   (body -> world rotation)
      -> rotate_to_world                  (world-frame acceleration)
      -> MotionClassifier <-> GravityTracker
      -> Integrator (continuous) or StepDetector + Integrator (step mode)
      -> MotionEstimate

The stillness classifier sees raw world-frame acceleration (gravity
included); gravity is removed only for integration and step detection.

Error policy: nothing in update() raises for data conditions.
    - Before calibration completes, preprocessing is a pass-through.
    - Stale ticks (dt <= 0) return the last estimate unchanged.
    - Gap ticks (dt >= gap threshold) accept the timestamp only.
    - A missing or invalid rotation matrix leaves all state untouched.
    - An under-filled classifier window reports MOVING.

The pipeline is single-threaded and synchronous; a second sample must not
be processed while a previous update() call is in flight.
"""

import logging
from typing import Iterable, Optional, Tuple, Union

import numpy as np

from inertial.config import PipelineConfig
from inertial.coords.rotations import (
    as_rotation_matrix,
    euler_to_rotation_matrix,
    is_rotation_matrix,
    rotation_matrix_to_euler,
)
from inertial.sensors.calibration import Calibrator
from inertial.sensors.constraints import MotionClassifier
from inertial.sensors.gravity import GravityTracker
from inertial.sensors.integrator import Integrator, TickKind
from inertial.sensors.orientation import OrientationEstimator
from inertial.sensors.pdr import StepDetector
from inertial.sensors.preprocess import Preprocessor
from inertial.sensors.types import (
    CalibrationBias,
    EulerAngles,
    LowPassPlacement,
    MotionEstimate,
    MotionState,
    OperatingMode,
    OrientationSource,
    Sample,
    TrackingStatus,
)

logger = logging.getLogger(__name__)


class DeadReckoningPipeline:
    """
    Inertial dead reckoning from calibrated body-frame samples.

    Attributes:
        config: PipelineConfig in effect (fixed for the pipeline's life).
        gravity_mps2: Reference gravity magnitude derived from the config.

    Example:
        >>> pipe = DeadReckoningPipeline(PipelineConfig.continuous())
        >>> for k in range(200):
        ...     _ = pipe.calibrate(Sample([0.0, 0.0, 9.8], k * 10_000_000, [0.0, 0.0, 0.0]))
        >>> est = pipe.update(Sample([0.0, 0.0, 9.8], 2_000_000_000, [0.0, 0.0, 0.0]))
        >>> est.motion_state
        <MotionState.MOVING: 'moving'>
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config if config is not None else PipelineConfig()
        self.gravity_mps2 = self.config.standard_gravity()

        cfg = self.config
        preprocessor_filters = cfg.filter.placement == LowPassPlacement.PREPROCESSOR

        self._calibrator = Calibrator(
            cfg.calibration.policy, cfg.calibration.sample_count, self.gravity_mps2
        )
        self._preprocessor = Preprocessor(cfg.filter.lowpass_alpha, filter_enabled=preprocessor_filters)
        self._orientation = OrientationEstimator(cfg.orientation.alpha, cfg.orientation.epsilon)
        self._classifier = MotionClassifier.from_config(cfg.classifier, self.gravity_mps2)
        self._gravity = GravityTracker(
            cfg.gravity.alpha, lowpass=not preprocessor_filters, gravity_mps2=self.gravity_mps2
        )
        self._integrator = Integrator.from_config(cfg.integrator)
        self._steps: Optional[StepDetector] = None
        if cfg.mode == OperatingMode.STEP:
            self._steps = StepDetector.from_config(cfg.step)

        self._last_estimate: Optional[MotionEstimate] = None
        self._last_orientation = EulerAngles(0.0, 0.0, 0.0)
        self._rotation_invalid = False

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def status(self) -> TrackingStatus:
        if self._calibrator.is_calibrated:
            return TrackingStatus.TRACKING
        return TrackingStatus.CALIBRATING

    @property
    def is_calibrated(self) -> bool:
        return self._calibrator.is_calibrated

    @property
    def bias(self) -> Optional[CalibrationBias]:
        return self._calibrator.bias

    @property
    def calibration_progress(self) -> Tuple[int, int]:
        return self._calibrator.progress

    @property
    def motion_state(self) -> MotionState:
        return self._classifier.state

    @property
    def orientation(self) -> EulerAngles:
        """Attitude used on the latest processed tick."""
        return self._last_orientation

    @property
    def gravity_estimate(self) -> np.ndarray:
        return self._gravity.estimate

    @property
    def velocity(self) -> np.ndarray:
        return self._integrator.state.velocity.copy()

    @property
    def position(self) -> np.ndarray:
        return self._integrator.state.position.copy()

    @property
    def step_count(self) -> int:
        return 0 if self._steps is None else self._steps.step_count

    @property
    def last_estimate(self) -> Optional[MotionEstimate]:
        return self._last_estimate

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def calibrate(
        self,
        sample_or_samples: Union[Sample, np.ndarray, Iterable[Sample]],
    ) -> Optional[CalibrationBias]:
        """
        Feed stationary readings to the calibrator.

        Returns:
            The CalibrationBias once calibration completes, otherwise None.
            From then on the Preprocessor removes that bias.
        """
        bias = self._calibrator.calibrate(sample_or_samples)
        if bias is not None and not self._preprocessor.is_calibrated:
            self._preprocessor.apply_bias(bias)
        return bias

    def reset(self) -> None:
        """Clear all state, including calibration."""
        self._calibrator.reset()
        self._preprocessor.reset()
        self._orientation.reset()
        self._classifier.reset()
        self._gravity.reset()
        self._integrator.reset()
        if self._steps is not None:
            self._steps.reset()
        self._last_estimate = None
        self._last_orientation = EulerAngles(0.0, 0.0, 0.0)
        self._rotation_invalid = False

    def update(self, sample: Sample, rotation=None) -> MotionEstimate:
        """
        Process one sample.

        Args:
            sample: Timestamped body-frame reading. Must carry a gyro
                    reading when the orientation source is the gyroscope.
            rotation: Latest-known body-to-world rotation matrix, shape
                      (3, 3) or row-major (9,). Used only when the
                      orientation source is ROTATION_MATRIX.

        Returns:
            MotionEstimate for this tick (the previous one for ticks that
            leave state unchanged).
        """
        timing = self._integrator.timing(sample.timestamp_ns)
        if timing.kind == TickKind.STALE:
            logger.debug("Dropping stale tick at %d ns (dt=%.3f s)", timing.timestamp_ns, timing.dt_s)
            return self._held_estimate(sample.timestamp_ns)

        if self.config.orientation.source == OrientationSource.ROTATION_MATRIX:
            R = self._resolve_rotation(rotation)
            if R is None:
                return self._held_estimate(sample.timestamp_ns)
            accel, gyro = self._preprocessor.process(sample.accel, sample.gyro)
            orientation = rotation_matrix_to_euler(R)
        else:
            accel, gyro = self._preprocessor.process(sample.accel, sample.gyro)
            if timing.kind == TickKind.GAP:
                self._orientation.sync_clock(timing.timestamp_ns)
                orientation = self._orientation.orientation
            else:
                orientation = self._orientation.update(accel, gyro, timing.timestamp_ns)
            R = euler_to_rotation_matrix(*orientation)

        self._last_orientation = orientation

        world_accel = R @ accel

        total_variance = None
        step_event = None

        if timing.kind == TickKind.GAP:
            logger.debug("Sensor gap of %.3f s, integration skipped", timing.dt_s)
            self._integrator.step(world_accel, self._gravity.estimate, self._classifier.state, timing)
        elif timing.kind == TickKind.FIRST:
            self._gravity.seed(world_accel)
            total_variance = self._classifier.update(world_accel, timing.timestamp_ns).total_variance
            if self._steps is not None:
                self._steps.anchor(timing.timestamp_ns)
            self._integrator.step(world_accel, self._gravity.estimate, self._classifier.state, timing)
        else:
            result = self._classifier.update(world_accel, timing.timestamp_ns)
            total_variance = result.total_variance
            state = result.state

            window_mean = None if self._gravity.lowpass else self._classifier.window_mean()
            self._gravity.update(world_accel, state, window_mean)
            gravity = self._gravity.estimate

            if self._steps is None:
                self._integrator.step(world_accel, gravity, state, timing)
            else:
                magnitude = float(np.linalg.norm(world_accel - gravity))
                step_event = self._steps.update(magnitude, timing.timestamp_ns, orientation.yaw)
                if step_event is not None:
                    self._integrator.apply_step(step_event.length_m, step_event.heading_rad, timing)
                else:
                    self._integrator.step(
                        world_accel,
                        gravity,
                        state,
                        timing,
                        speed_floor=self.config.step.velocity_zero_threshold,
                    )

        integ = self._integrator.state
        self._last_estimate = MotionEstimate(
            timestamp_ns=timing.timestamp_ns,
            velocity=integ.velocity.copy(),
            position=integ.position.copy(),
            motion_state=self._classifier.state,
            total_variance=total_variance,
            step=step_event,
            orientation=orientation,
        )
        return self._last_estimate

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_rotation(self, rotation) -> Optional[np.ndarray]:
        R = None
        if rotation is not None:
            try:
                R = as_rotation_matrix(rotation)
            except ValueError as err:
                logger.debug("Rejected rotation input: %s", err)
                R = None
        if R is not None and is_rotation_matrix(R, self.config.orientation.orthonormal_tolerance):
            self._rotation_invalid = False
            return R

        if not self._rotation_invalid:
            if rotation is None:
                logger.warning("No rotation matrix available yet; holding state")
            else:
                logger.warning("Rotation matrix is not orthonormal or not finite; holding state")
            self._rotation_invalid = True
        return None

    def _held_estimate(self, timestamp_ns: int) -> MotionEstimate:
        if self._last_estimate is not None:
            return self._last_estimate
        integ = self._integrator.state
        return MotionEstimate(
            timestamp_ns=int(timestamp_ns),
            velocity=integ.velocity.copy(),
            position=integ.position.copy(),
            motion_state=self._classifier.state,
        )
