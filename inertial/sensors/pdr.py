"""
Pedestrian dead reckoning (PDR): step detection, step length, step update.

In step mode position is advanced one stride at a time instead of by
double integration:

    m_k      = ||a_world,k - ĝ||                     (gravity-removed magnitude)
    thr_k    = factor · mean(window incl. m_k)         (dynamic threshold)
    step     if m_k > thr_k and t_min < Δt_step < t_max
    L        = w_f · (1 / Δt_step) + w_v · var(window) + L_0
    p_xy     = p_xy + L · [cos ψ, sin ψ]

Step-interval gating rejects both jitter (another sample of the same peak,
Δt_step <= t_min) and stale comparisons (Δt_step >= t_max): a peak after a
long pause re-anchors the cadence instead of firing.

The window variance in the step-length model is the population variance
(divide by N) of the magnitude window.
"""

import logging
from collections import deque
from typing import Deque, Optional

import numpy as np
from scipy import signal

from inertial.sensors.types import StepEvent

logger = logging.getLogger(__name__)


def step_length_model(
    interval_s: float,
    variance: float,
    freq_weight: float = 0.4,
    var_weight: float = 0.2,
    baseline_m: float = 0.3,
) -> float:
    """
    Empirical step length from cadence and acceleration variance.

        L = freq_weight · (1 / interval) + var_weight · variance + baseline

    Args:
        interval_s: Time since the previous step. Units: s. Must be > 0.
        variance: Variance of the magnitude window. Units: (m/s²)².
        freq_weight: Weight of step frequency. Units: m·s.
        var_weight: Weight of the variance term. Units: m/(m/s²)².
        baseline_m: Constant stride offset. Units: m.

    Returns:
        Step length in meters.

    Example:
        >>> round(step_length_model(0.5, 0.0), 3)
        1.1
    """
    if interval_s <= 0:
        raise ValueError(f"interval_s must be positive, got {interval_s}")
    return float(freq_weight * (1.0 / interval_s) + var_weight * variance + baseline_m)


def pdr_step_update(p_prev_xy: np.ndarray, step_len: float, heading_rad: float) -> np.ndarray:
    """
    Advance a 2D position by one step along the heading.

    Heading 0 points along +x, π/2 along +y.

    Args:
        p_prev_xy: Previous horizontal position, shape (2,). Units: m.
        step_len: Step length. Units: m.
        heading_rad: Heading ψ. Units: rad.

    Returns:
        New horizontal position, shape (2,).
    """
    p_prev_xy = np.asarray(p_prev_xy, dtype=np.float64)
    if p_prev_xy.shape != (2,):
        raise ValueError(f"p_prev_xy must have shape (2,), got {p_prev_xy.shape}")
    if step_len < 0:
        raise ValueError(f"step_len must be non-negative, got {step_len}")
    return p_prev_xy + step_len * np.array([np.cos(heading_rad), np.sin(heading_rad)])


def detect_steps_offline(
    magnitudes: np.ndarray,
    dt: float,
    threshold_factor: float = 1.2,
    min_interval_s: float = 0.3,
    min_peak_magnitude: float = 0.0,
) -> np.ndarray:
    """
    Batch step detection on a recorded magnitude series.

    Uses scipy.signal.find_peaks with a fixed threshold of
    threshold_factor · mean(magnitudes) and a minimum peak spacing of
    min_interval_s. Useful to cross-check the streaming StepDetector on a
    recorded trace.

    Args:
        magnitudes: Gravity-removed acceleration magnitudes, shape (N,).
        dt: Sampling interval. Units: s.
        threshold_factor: Multiplier on the series mean.
        min_interval_s: Minimum time between peaks. Units: s.
        min_peak_magnitude: Absolute lower bound on the threshold.

    Returns:
        Indices of the detected step peaks.
    """
    magnitudes = np.asarray(magnitudes, dtype=np.float64)
    if magnitudes.ndim != 1:
        raise ValueError(f"magnitudes must be 1D, got shape {magnitudes.shape}")
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")
    if magnitudes.size == 0:
        return np.array([], dtype=int)

    height = max(threshold_factor * float(np.mean(magnitudes)), min_peak_magnitude)
    distance = max(1, int(round(min_interval_s / dt)))
    peaks, _ = signal.find_peaks(magnitudes, height=height, distance=distance)
    return peaks


class StepDetector:
    """
    Streaming dynamic-threshold step detector.

    Attributes:
        window_size: Capacity of the magnitude window.
        threshold_factor: Multiplier on the window mean.
        min_interval_s: Lower bound (exclusive) on the step interval.
        max_interval_s: Upper bound (exclusive) on the step interval.
        freq_weight, var_weight, baseline_m: Step-length model weights.
        min_peak_magnitude: Absolute floor on the dynamic threshold.
    """

    def __init__(
        self,
        window_size: int = 50,
        threshold_factor: float = 1.2,
        min_interval_s: float = 0.3,
        max_interval_s: float = 1.2,
        freq_weight: float = 0.4,
        var_weight: float = 0.2,
        baseline_m: float = 0.3,
        min_peak_magnitude: float = 0.0,
    ):
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        if not 0.0 <= min_interval_s < max_interval_s:
            raise ValueError(
                f"step interval bounds must satisfy 0 <= min < max, "
                f"got ({min_interval_s}, {max_interval_s})"
            )
        self.window_size = int(window_size)
        self.threshold_factor = float(threshold_factor)
        self.min_interval_s = float(min_interval_s)
        self.max_interval_s = float(max_interval_s)
        self.freq_weight = float(freq_weight)
        self.var_weight = float(var_weight)
        self.baseline_m = float(baseline_m)
        self.min_peak_magnitude = float(min_peak_magnitude)

        self._window: Deque[float] = deque(maxlen=self.window_size)
        self.reset()

    @classmethod
    def from_config(cls, config) -> "StepDetector":
        """Build from a StepConfig."""
        return cls(
            window_size=config.window_size,
            threshold_factor=config.threshold_factor,
            min_interval_s=config.min_interval_s,
            max_interval_s=config.max_interval_s,
            freq_weight=config.freq_weight,
            var_weight=config.var_weight,
            baseline_m=config.baseline_m,
            min_peak_magnitude=config.min_peak_magnitude,
        )

    def reset(self) -> None:
        self._window.clear()
        self._last_step_ns: Optional[int] = None
        self._step_count = 0

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def last_step_ns(self) -> Optional[int]:
        return self._last_step_ns

    def anchor(self, timestamp_ns: int) -> None:
        """Start the cadence clock (no-op once anchored)."""
        if self._last_step_ns is None:
            self._last_step_ns = int(timestamp_ns)

    def threshold(self) -> float:
        """Current dynamic threshold (window mean times factor, floored)."""
        if not self._window:
            return self.min_peak_magnitude
        return max(self.threshold_factor * float(np.mean(self._window)), self.min_peak_magnitude)

    def update(self, magnitude: float, timestamp_ns: int, heading_rad: float) -> Optional[StepEvent]:
        """
        Push one magnitude sample and report a step if one fires.

        Args:
            magnitude: Gravity-removed acceleration magnitude. Units: m/s².
            timestamp_ns: Sample timestamp.
            heading_rad: Current heading, stamped on a fired step.

        Returns:
            StepEvent when a step fires on this sample, else None.
        """
        timestamp_ns = int(timestamp_ns)
        self._window.append(float(magnitude))

        if magnitude <= self.threshold():
            return None

        if self._last_step_ns is None:
            self._last_step_ns = timestamp_ns
            return None

        interval = (timestamp_ns - self._last_step_ns) * 1e-9
        if interval >= self.max_interval_s:
            logger.debug("Peak after %.2f s pause, cadence re-anchored", interval)
            self._last_step_ns = timestamp_ns
            return None
        if interval <= self.min_interval_s:
            return None

        variance = float(np.var(self._window))
        length = step_length_model(
            interval, variance, self.freq_weight, self.var_weight, self.baseline_m
        )
        self._last_step_ns = timestamp_ns
        self._step_count += 1

        event = StepEvent(
            timestamp_ns=timestamp_ns,
            length_m=length,
            heading_rad=float(heading_rad),
            interval_s=interval,
        )
        logger.debug(
            "Step %d: length %.2f m, heading %.1f deg, interval %.2f s",
            self._step_count,
            length,
            np.degrees(heading_rad),
            interval,
        )
        return event
