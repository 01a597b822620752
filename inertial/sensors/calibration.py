"""
Stationary bias calibration for the accelerometer and gyroscope.

This module captures the sensor bias from readings taken while the device
is held still at session start. Two capture policies are supported:

    - SINGLE_SHOT: the first reading whose three accelerometer axes are all
      non-zero becomes the bias. Cheap, but sensitive to one noisy reading.
    - AVERAGED: exactly N readings are collected and the per-axis arithmetic
      mean becomes the bias (N = 200 by default).

The averaged mean is computed as a shifted mean: the first reading is kept
as a reference and only the deviations from it are summed. N identical
readings therefore reproduce that reading bit-for-bit, and no reading is
retained after it has been folded into the sums.

Once a bias is produced the calibrator is frozen: further readings are
ignored and the same CalibrationBias is returned until reset().
"""

import logging
from typing import Iterable, Optional, Tuple, Union

import numpy as np

from inertial.sensors.types import CalibrationBias, CalibrationPolicy, Sample

logger = logging.getLogger(__name__)


class Calibrator:
    """
    Collects stationary readings and produces a CalibrationBias.

    Attributes:
        policy: Capture policy (SINGLE_SHOT or AVERAGED).
        sample_count: Number of readings averaged (AVERAGED policy only).
        gravity_mps2: Gravity magnitude handed to the resulting bias.

    Example:
        >>> cal = Calibrator(CalibrationPolicy.AVERAGED, sample_count=3)
        >>> cal.add_sample([0.1, 0.0, 9.8]) is None
        True
        >>> cal.calibrate(np.array([[0.1, 0.0, 9.8], [0.1, 0.0, 9.8]])).accel
        array([0.1, 0. , 9.8])
    """

    def __init__(
        self,
        policy: CalibrationPolicy = CalibrationPolicy.AVERAGED,
        sample_count: int = 200,
        gravity_mps2: float = 9.8,
    ):
        if policy == CalibrationPolicy.AVERAGED and sample_count <= 0:
            raise ValueError(
                f"sample_count must be positive for averaged calibration, got {sample_count}"
            )
        self.policy = policy
        self.sample_count = int(sample_count)
        self.gravity_mps2 = float(gravity_mps2)
        self.reset()

    def reset(self) -> None:
        """Discard collected readings and any computed bias."""
        self._bias: Optional[CalibrationBias] = None
        self._collected = 0
        self._accel_ref: Optional[np.ndarray] = None
        self._gyro_ref: Optional[np.ndarray] = None
        self._accel_dev_sum = np.zeros(3)
        self._gyro_dev_sum = np.zeros(3)
        self._gyro_seen = 0

    @property
    def bias(self) -> Optional[CalibrationBias]:
        """The computed bias, or None while still collecting."""
        return self._bias

    @property
    def is_calibrated(self) -> bool:
        return self._bias is not None

    @property
    def progress(self) -> Tuple[int, int]:
        """(collected, required) readings."""
        required = 1 if self.policy == CalibrationPolicy.SINGLE_SHOT else self.sample_count
        return self._collected, required

    def add_sample(self, accel, gyro=None) -> Optional[CalibrationBias]:
        """
        Fold one stationary reading into the calibration.

        Args:
            accel: Accelerometer reading, shape (3,). Units: m/s².
            gyro: Optional gyroscope reading, shape (3,). Units: rad/s.

        Returns:
            The CalibrationBias once calibration completes, otherwise None.
        """
        if self._bias is not None:
            return self._bias

        accel = np.asarray(accel, dtype=np.float64)
        if accel.shape != (3,):
            raise ValueError(f"accel must have shape (3,), got {accel.shape}")
        if gyro is not None:
            gyro = np.asarray(gyro, dtype=np.float64)
            if gyro.shape != (3,):
                raise ValueError(f"gyro must have shape (3,), got {gyro.shape}")

        if self.policy == CalibrationPolicy.SINGLE_SHOT:
            if np.all(accel != 0.0):
                self._collected = 1
                self._finish(accel, gyro, 1)
            return self._bias

        if self._accel_ref is None:
            self._accel_ref = accel.copy()
        else:
            self._accel_dev_sum += accel - self._accel_ref

        if gyro is not None:
            if self._gyro_ref is None:
                self._gyro_ref = gyro.copy()
            else:
                self._gyro_dev_sum += gyro - self._gyro_ref
            self._gyro_seen += 1

        self._collected += 1
        if self._collected >= self.sample_count:
            accel_mean = self._accel_ref + self._accel_dev_sum / self._collected
            gyro_mean = None
            if self._gyro_ref is not None:
                gyro_mean = self._gyro_ref + self._gyro_dev_sum / self._gyro_seen
            self._finish(accel_mean, gyro_mean, self._collected)
        return self._bias

    def calibrate(
        self,
        sample_or_samples: Union[Sample, np.ndarray, Iterable[Sample]],
    ) -> Optional[CalibrationBias]:
        """
        Feed one reading or a batch of readings.

        Args:
            sample_or_samples: A Sample, an accel array of shape (3,) or
                (N, 3), or an iterable of Samples.

        Returns:
            The CalibrationBias once complete, otherwise None.
        """
        if isinstance(sample_or_samples, Sample):
            return self.add_sample(sample_or_samples.accel, sample_or_samples.gyro)

        if isinstance(sample_or_samples, np.ndarray) or (
            isinstance(sample_or_samples, (list, tuple))
            and sample_or_samples
            and not isinstance(sample_or_samples[0], Sample)
        ):
            arr = np.asarray(sample_or_samples, dtype=np.float64)
            if arr.shape == (3,):
                return self.add_sample(arr)
            if arr.ndim != 2 or arr.shape[1] != 3:
                raise ValueError(f"accel batch must have shape (N, 3), got {arr.shape}")
            for row in arr:
                if self.add_sample(row) is not None:
                    break
            return self._bias

        for sample in sample_or_samples:
            if self.add_sample(sample.accel, sample.gyro) is not None:
                break
        return self._bias

    def _finish(self, accel, gyro, count: int) -> None:
        self._bias = CalibrationBias(
            accel=accel,
            gyro=gyro,
            sample_count=count,
            gravity_mps2=self.gravity_mps2,
        )
        logger.info(
            "Calibration complete (%s, %d samples): accel bias %s",
            self.policy.value,
            count,
            np.array2string(self._bias.accel, precision=4),
        )
