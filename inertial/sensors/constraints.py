"""
Stillness detection with hysteresis for zero-velocity updates (ZUPT).

The MotionClassifier keeps a fixed-capacity sliding window of world-frame
acceleration and, on every push, evaluates two checks:

    σ²_total = Σ_axis var(window_axis)           (Bessel-corrected, N - 1)
    Δ_g      = | ||mean(window)|| - g |

    potentially_stationary = (σ²_total < variance_threshold)
                             AND (Δ_g < magnitude_threshold)

Both checks are required: variance alone is fooled by constant-velocity
motion with near-zero jerk, magnitude alone by any attitude whose specific
force happens to sum to about g.

The committed MotionState changes through a single transition method with
asymmetric hysteresis: the raw flag must hold for a dwell (a count of
consecutive windows, or a wall-clock duration) before STATIONARY is
committed, while a single non-stationary (or not yet determined) frame
commits MOVING immediately and clears the dwell.
"""

import logging
from collections import deque
from typing import Deque, NamedTuple, Optional

import numpy as np

from inertial.sensors.types import MotionState

logger = logging.getLogger(__name__)


def window_variance(window) -> float:
    """
    Sum of the per-axis sample variances of a window.

    Args:
        window: Samples of shape (N, 3) (or (N,) for a scalar series).

    Returns:
        Σ var(axis) with N - 1 in the denominator; 0.0 when N <= 1.
        Deviations are taken from the first sample before averaging, so a
        window of identical samples has exactly zero variance.
    """
    w = np.asarray(window, dtype=np.float64)
    n = w.shape[0] if w.ndim > 0 else 0
    if n <= 1:
        return 0.0
    dev = w - w[0]
    return float(np.sum(np.var(dev, axis=0, ddof=1)))


class ClassifierResult(NamedTuple):
    """
    Per-push diagnostics of the MotionClassifier.

    Attributes:
        total_variance: Summed per-axis window variance. Units: (m/s²)².
        magnitude_deviation: | ||window mean|| - g |. Units: m/s².
        potentially_stationary: Raw (pre-hysteresis) stillness flag.
        window_filled: False while below the minimum window fill.
        state: Committed MotionState after this push.
    """

    total_variance: float
    magnitude_deviation: float
    potentially_stationary: bool
    window_filled: bool
    state: MotionState


class MotionClassifier:
    """
    Sliding-window STATIONARY/MOVING classifier with dwell hysteresis.

    Attributes:
        window_size: Window capacity (oldest sample evicted first).
        min_window_fill: Samples required before a decision is made.
        variance_threshold: Upper bound on σ²_total for stillness.
        magnitude_threshold: Upper bound on Δ_g for stillness.
        dwell_windows: Consecutive still frames needed to commit STATIONARY.
        dwell_seconds: When set, the dwell is a duration instead of a count.
        gravity_mps2: Reference gravity magnitude g.
    """

    def __init__(
        self,
        window_size: int = 15,
        variance_threshold: float = 0.01,
        magnitude_threshold: float = 0.5,
        dwell_windows: int = 15,
        dwell_seconds: Optional[float] = None,
        min_window_fill: Optional[int] = None,
        gravity_mps2: float = 9.8,
    ):
        if window_size < 2:
            raise ValueError(f"window_size must be >= 2, got {window_size}")
        if min_window_fill is None:
            min_window_fill = window_size
        if not 2 <= min_window_fill <= window_size:
            raise ValueError(
                f"min_window_fill must be in [2, {window_size}], got {min_window_fill}"
            )
        if dwell_windows < 1:
            raise ValueError(f"dwell_windows must be >= 1, got {dwell_windows}")
        if dwell_seconds is not None and dwell_seconds <= 0:
            raise ValueError(f"dwell_seconds must be positive, got {dwell_seconds}")

        self.window_size = int(window_size)
        self.min_window_fill = int(min_window_fill)
        self.variance_threshold = float(variance_threshold)
        self.magnitude_threshold = float(magnitude_threshold)
        self.dwell_windows = int(dwell_windows)
        self.dwell_seconds = dwell_seconds
        self.gravity_mps2 = float(gravity_mps2)

        self._window: Deque[np.ndarray] = deque(maxlen=self.window_size)
        self.reset()

    @classmethod
    def from_config(cls, config, gravity_mps2: float = 9.8) -> "MotionClassifier":
        """Build from a ClassifierConfig."""
        return cls(
            window_size=config.window_size,
            variance_threshold=config.variance_threshold,
            magnitude_threshold=config.magnitude_threshold,
            dwell_windows=config.dwell_windows,
            dwell_seconds=config.dwell_seconds,
            min_window_fill=config.min_window_fill,
            gravity_mps2=gravity_mps2,
        )

    def reset(self) -> None:
        self._window.clear()
        self._state = MotionState.MOVING
        self._dwell_count = 0
        self._dwell_start_ns: Optional[int] = None
        self._last_result: Optional[ClassifierResult] = None

    @property
    def state(self) -> MotionState:
        return self._state

    @property
    def last_result(self) -> Optional[ClassifierResult]:
        return self._last_result

    def __len__(self) -> int:
        return len(self._window)

    def window_mean(self) -> Optional[np.ndarray]:
        """Mean of the current window, or None when empty."""
        if not self._window:
            return None
        w = np.array(self._window)
        return w[0] + np.mean(w - w[0], axis=0)

    def update(self, world_accel, timestamp_ns: int) -> ClassifierResult:
        """
        Push one world-frame acceleration and re-evaluate the state.

        Args:
            world_accel: Acceleration in world frame (gravity included),
                         shape (3,). Units: m/s².
            timestamp_ns: Timestamp of the reading (used by duration dwell).

        Returns:
            ClassifierResult for this push.
        """
        self._window.append(np.array(world_accel, dtype=np.float64))

        total_variance = window_variance(np.array(self._window))
        magnitude_deviation = abs(float(np.linalg.norm(self.window_mean())) - self.gravity_mps2)
        window_filled = len(self._window) >= self.min_window_fill

        potentially_stationary = (
            window_filled
            and total_variance < self.variance_threshold
            and magnitude_deviation < self.magnitude_threshold
        )

        self._transition(potentially_stationary, int(timestamp_ns))

        self._last_result = ClassifierResult(
            total_variance=total_variance,
            magnitude_deviation=magnitude_deviation,
            potentially_stationary=potentially_stationary,
            window_filled=window_filled,
            state=self._state,
        )
        return self._last_result

    def _transition(self, potentially_stationary: bool, timestamp_ns: int) -> None:
        if not potentially_stationary:
            self._dwell_count = 0
            self._dwell_start_ns = None
            self._commit(MotionState.MOVING)
            return

        if self._state == MotionState.STATIONARY:
            return

        self._dwell_count += 1
        if self._dwell_start_ns is None:
            self._dwell_start_ns = timestamp_ns

        if self.dwell_seconds is not None:
            held = (timestamp_ns - self._dwell_start_ns) * 1e-9 >= self.dwell_seconds
        else:
            held = self._dwell_count >= self.dwell_windows

        if held:
            self._commit(MotionState.STATIONARY)

    def _commit(self, new_state: MotionState) -> None:
        if new_state != self._state:
            logger.debug("Motion state %s -> %s", self._state.value, new_state.value)
            self._state = new_state
