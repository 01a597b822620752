"""
Sensor preprocessing: bias removal and first-order low-pass smoothing.

The Preprocessor is the first stage applied to every raw reading:

    a = ã - offset_a          (offset from CalibrationBias.accel_offset)
    ω = ω̃ - b_g               (gyro bias removed in full)

followed, when the pipeline places its single low-pass stage here, by the
first-order IIR filter

    y_n = α·x_n + (1 - α)·y_{n-1}

Before a bias has been applied the Preprocessor is a pass-through, so the
caller always receives a value (at reduced accuracy) during calibration.
"""

from typing import Optional, Tuple

import numpy as np
from scipy.signal import lfilter

from inertial.sensors.types import CalibrationBias


def _check_alpha(alpha: float) -> float:
    if not 0.0 < alpha <= 1.0:
        raise ValueError(f"alpha must be in (0, 1], got {alpha}")
    return float(alpha)


class LowPassFilter:
    """
    Streaming first-order low-pass filter over 3-vectors.

    The output is seeded with the first input, so a constant input passes
    through unchanged from the very first call.

    Attributes:
        alpha: Weight of the newest input (1.0 disables smoothing).
    """

    def __init__(self, alpha: float):
        self.alpha = _check_alpha(alpha)
        self._y: Optional[np.ndarray] = None

    @property
    def value(self) -> Optional[np.ndarray]:
        return None if self._y is None else self._y.copy()

    def update(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        if self._y is None:
            self._y = x.copy()
        else:
            self._y = self.alpha * x + (1.0 - self.alpha) * self._y
        return self._y.copy()

    def reset(self) -> None:
        self._y = None


def lowpass_series(x: np.ndarray, alpha: float) -> np.ndarray:
    """
    Apply the first-order low-pass filter to a whole series at once.

    Offline equivalent of feeding LowPassFilter one row at a time, using
    scipy.signal.lfilter with b = [α], a = [1, -(1 - α)] and the initial
    condition chosen so that y_0 = x_0.

    Args:
        x: Series of shape (N,) or (N, 3).
        alpha: Weight of the newest input, in (0, 1].

    Returns:
        Filtered series with the same shape as x.
    """
    alpha = _check_alpha(alpha)
    x = np.asarray(x, dtype=np.float64)
    if x.ndim not in (1, 2):
        raise ValueError(f"x must be 1D or 2D, got shape {x.shape}")
    if x.shape[0] == 0:
        return x.copy()

    b = [alpha]
    a = [1.0, -(1.0 - alpha)]
    zi = (1.0 - alpha) * x[0]
    if x.ndim == 2:
        zi = zi[np.newaxis, :]
    else:
        zi = np.atleast_1d(zi)
    y, _ = lfilter(b, a, x, axis=0, zi=zi)
    return y


class Preprocessor:
    """
    Bias removal plus an optional low-pass stage for accel and gyro.

    Attributes:
        alpha: Low-pass weight of the newest input.
        filter_enabled: True when this is the pipeline's low-pass stage.

    Example:
        >>> pre = Preprocessor(alpha=0.1, filter_enabled=False)
        >>> pre.apply_bias(CalibrationBias(accel=[0.2, 0.0, 9.8]))
        >>> a, _ = pre.process([0.2, 0.0, 9.8])
    """

    def __init__(self, alpha: float = 0.1, filter_enabled: bool = False):
        self.alpha = _check_alpha(alpha)
        self.filter_enabled = filter_enabled
        self._accel_lp = LowPassFilter(alpha)
        self._gyro_lp = LowPassFilter(alpha)
        self._bias: Optional[CalibrationBias] = None
        self._accel_offset = np.zeros(3)
        self._gyro_offset = np.zeros(3)

    @property
    def bias(self) -> Optional[CalibrationBias]:
        return self._bias

    @property
    def is_calibrated(self) -> bool:
        return self._bias is not None

    def apply_bias(self, bias: CalibrationBias) -> None:
        """Start correcting readings with the given bias."""
        self._bias = bias
        self._accel_offset = bias.accel_offset
        self._gyro_offset = bias.gyro_offset

    def process(self, accel, gyro=None) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """
        Correct one reading.

        Args:
            accel: Raw accelerometer reading, shape (3,). Units: m/s².
            gyro: Raw gyroscope reading, shape (3,), or None. Units: rad/s.

        Returns:
            (accel, gyro) after bias removal and optional smoothing; gyro is
            None when no gyroscope reading was given. Unchanged copies are
            returned before a bias has been applied.
        """
        accel = np.asarray(accel, dtype=np.float64)
        if accel.shape != (3,):
            raise ValueError(f"accel must have shape (3,), got {accel.shape}")
        if gyro is not None:
            gyro = np.asarray(gyro, dtype=np.float64)
            if gyro.shape != (3,):
                raise ValueError(f"gyro must have shape (3,), got {gyro.shape}")

        if self._bias is None:
            return accel.copy(), None if gyro is None else gyro.copy()

        accel = accel - self._accel_offset
        if gyro is not None:
            gyro = gyro - self._gyro_offset

        if self.filter_enabled:
            accel = self._accel_lp.update(accel)
            if gyro is not None:
                gyro = self._gyro_lp.update(gyro)

        return accel, gyro

    def reset(self) -> None:
        """Forget the bias and the filter state."""
        self._bias = None
        self._accel_offset = np.zeros(3)
        self._gyro_offset = np.zeros(3)
        self._accel_lp.reset()
        self._gyro_lp.reset()
