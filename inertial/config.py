"""
Pipeline configuration.

All tunables of the dead-reckoning pipeline live in one nested, frozen
configuration object so that every historical variant (thresholds, alphas,
window sizes, optional damping, continuous vs. step mode) is a parameter
choice rather than a separate implementation.

Configuration Structure:
    PipelineConfig
        mode, gravity_mps2, latitude_deg
        calibration:  CalibrationConfig
        filter:       FilterConfig
        orientation:  OrientationConfig
        classifier:   ClassifierConfig
        gravity:      GravityConfig
        integrator:   IntegratorConfig
        step:         StepConfig

Invalid values raise ValueError at construction. Values that are legal but
unusual emit a UserWarning.

A YAML file mirroring this structure can be loaded with load_config():

    mode: step
    orientation:
      source: rotation_matrix
    step:
      threshold_factor: 1.3
"""

import warnings
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import yaml

from inertial.sensors.gravity import gravity_magnitude
from inertial.sensors.types import (
    CalibrationPolicy,
    LowPassPlacement,
    OperatingMode,
    OrientationSource,
)


def _coerce_enum(obj, name: str, enum_cls) -> None:
    value = getattr(obj, name)
    if isinstance(value, enum_cls):
        return
    try:
        object.__setattr__(obj, name, enum_cls(value))
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"{name} must be one of [{choices}], got {value!r}") from None


@dataclass(frozen=True)
class CalibrationConfig:
    """
    Bias capture settings.

    Attributes:
        policy: SINGLE_SHOT or AVERAGED.
        sample_count: Readings averaged under the AVERAGED policy.
    """

    policy: CalibrationPolicy = CalibrationPolicy.AVERAGED
    sample_count: int = 200

    def __post_init__(self) -> None:
        _coerce_enum(self, "policy", CalibrationPolicy)
        if self.policy == CalibrationPolicy.AVERAGED:
            if self.sample_count <= 0:
                raise ValueError(
                    f"sample_count must be positive for averaged calibration, "
                    f"got {self.sample_count}"
                )
            if self.sample_count < 10:
                warnings.warn(
                    f"sample_count={self.sample_count} is very small; the bias "
                    f"will be sensitive to single noisy readings",
                    UserWarning,
                )


@dataclass(frozen=True)
class FilterConfig:
    """
    The pipeline's single low-pass stage.

    Attributes:
        lowpass_alpha: Weight of the newest input in the Preprocessor
                       filter, in (0, 1].
        placement: Where the low-pass stage lives (PREPROCESSOR or
                   GRAVITY_TRACKER). Never both.
    """

    lowpass_alpha: float = 0.1
    placement: LowPassPlacement = LowPassPlacement.GRAVITY_TRACKER

    def __post_init__(self) -> None:
        _coerce_enum(self, "placement", LowPassPlacement)
        if not 0.0 < self.lowpass_alpha <= 1.0:
            raise ValueError(f"lowpass_alpha must be in (0, 1], got {self.lowpass_alpha}")


@dataclass(frozen=True)
class OrientationConfig:
    """
    Orientation source and complementary-filter settings.

    Attributes:
        source: GYROSCOPE (complementary filter) or ROTATION_MATRIX.
        alpha: Gyro weight of the complementary filter, in [0, 1].
        epsilon: Tilt denominator guard.
        orthonormal_tolerance: Tolerance used to reject invalid matrices.
    """

    source: OrientationSource = OrientationSource.GYROSCOPE
    alpha: float = 0.98
    epsilon: float = 1e-6
    orthonormal_tolerance: float = 1e-3

    def __post_init__(self) -> None:
        _coerce_enum(self, "source", OrientationSource)
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"alpha must be in [0, 1], got {self.alpha}")
        if self.epsilon <= 0:
            raise ValueError(f"epsilon must be positive, got {self.epsilon}")
        if self.orthonormal_tolerance <= 0:
            raise ValueError(
                f"orthonormal_tolerance must be positive, got {self.orthonormal_tolerance}"
            )
        if self.alpha < 0.5:
            warnings.warn(
                f"alpha={self.alpha} trusts the accelerometer over the gyroscope; "
                f"tilt will follow linear acceleration",
                UserWarning,
            )


@dataclass(frozen=True)
class ClassifierConfig:
    """
    Stillness classifier settings.

    Attributes:
        window_size: Sliding window capacity.
        min_window_fill: Samples before a decision (None = window_size).
        variance_threshold: Bound on summed window variance. Units: (m/s²)².
        magnitude_threshold: Bound on | ||mean|| - g |. Units: m/s².
        dwell_windows: Consecutive still frames to commit STATIONARY.
        dwell_seconds: Wall-clock dwell instead of a frame count.
    """

    window_size: int = 15
    min_window_fill: Optional[int] = None
    variance_threshold: float = 0.01
    magnitude_threshold: float = 0.5
    dwell_windows: int = 15
    dwell_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if self.window_size < 2:
            raise ValueError(f"window_size must be >= 2, got {self.window_size}")
        if self.min_window_fill is not None and not 2 <= self.min_window_fill <= self.window_size:
            raise ValueError(
                f"min_window_fill must be in [2, {self.window_size}], got {self.min_window_fill}"
            )
        if self.variance_threshold <= 0:
            raise ValueError(f"variance_threshold must be positive, got {self.variance_threshold}")
        if self.magnitude_threshold <= 0:
            raise ValueError(
                f"magnitude_threshold must be positive, got {self.magnitude_threshold}"
            )
        if self.dwell_windows < 1:
            raise ValueError(f"dwell_windows must be >= 1, got {self.dwell_windows}")
        if self.dwell_seconds is not None and self.dwell_seconds <= 0:
            raise ValueError(f"dwell_seconds must be positive, got {self.dwell_seconds}")
        if self.dwell_windows == 1 and self.dwell_seconds is None:
            warnings.warn(
                "dwell_windows=1 disables hysteresis; a single quiet frame commits STATIONARY",
                UserWarning,
            )


@dataclass(frozen=True)
class GravityConfig:
    """
    Attributes:
        alpha: Weight of the previous gravity estimate, in [0, 1).
    """

    alpha: float = 0.98

    def __post_init__(self) -> None:
        if not 0.0 <= self.alpha < 1.0:
            raise ValueError(f"alpha must be in [0, 1), got {self.alpha}")
        if self.alpha < 0.8:
            warnings.warn(
                f"gravity alpha={self.alpha} adapts quickly; residual motion "
                f"while stationary will leak into the gravity estimate",
                UserWarning,
            )


@dataclass(frozen=True)
class IntegratorConfig:
    """
    Attributes:
        noise_deadband: Per-axis deadband on linear acceleration. Units: m/s².
        velocity_damping: Damping coefficient in (0, 1], or None.
        gap_threshold_s: Elapsed time treated as a sensor gap. Units: s.
    """

    noise_deadband: float = 0.05
    velocity_damping: Optional[float] = None
    gap_threshold_s: float = 0.5

    def __post_init__(self) -> None:
        if self.noise_deadband < 0:
            raise ValueError(f"noise_deadband must be non-negative, got {self.noise_deadband}")
        if self.velocity_damping is not None and not 0.0 < self.velocity_damping <= 1.0:
            raise ValueError(f"velocity_damping must be in (0, 1], got {self.velocity_damping}")
        if self.gap_threshold_s <= 0:
            raise ValueError(f"gap_threshold_s must be positive, got {self.gap_threshold_s}")


@dataclass(frozen=True)
class StepConfig:
    """
    Pedestrian step-mode settings.

    Attributes:
        window_size: Capacity of the magnitude window.
        threshold_factor: Multiplier on the window mean.
        min_interval_s: Exclusive lower bound on step interval. Units: s.
        max_interval_s: Exclusive upper bound on step interval. Units: s.
        freq_weight: Step-length weight of step frequency.
        var_weight: Step-length weight of window variance.
        baseline_m: Constant step-length term. Units: m.
        velocity_zero_threshold: Speed below which velocity snaps to zero
                                 between steps. Units: m/s.
        min_peak_magnitude: Absolute floor on the dynamic threshold.
    """

    window_size: int = 50
    threshold_factor: float = 1.2
    min_interval_s: float = 0.3
    max_interval_s: float = 1.2
    freq_weight: float = 0.4
    var_weight: float = 0.2
    baseline_m: float = 0.3
    velocity_zero_threshold: float = 0.05
    min_peak_magnitude: float = 0.0

    def __post_init__(self) -> None:
        if self.window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {self.window_size}")
        if self.threshold_factor <= 0:
            raise ValueError(f"threshold_factor must be positive, got {self.threshold_factor}")
        if not 0.0 <= self.min_interval_s < self.max_interval_s:
            raise ValueError(
                f"min_interval_s must be in [0, max_interval_s), "
                f"got {self.min_interval_s} (max {self.max_interval_s})"
            )
        if self.velocity_zero_threshold < 0:
            raise ValueError(
                f"velocity_zero_threshold must be non-negative, got {self.velocity_zero_threshold}"
            )
        if self.min_peak_magnitude < 0:
            raise ValueError(
                f"min_peak_magnitude must be non-negative, got {self.min_peak_magnitude}"
            )
        if self.threshold_factor < 1.0:
            warnings.warn(
                f"threshold_factor={self.threshold_factor} < 1 places the threshold "
                f"below the window mean; most samples will qualify as peaks",
                UserWarning,
            )


_SECTIONS = {
    "calibration": CalibrationConfig,
    "filter": FilterConfig,
    "orientation": OrientationConfig,
    "classifier": ClassifierConfig,
    "gravity": GravityConfig,
    "integrator": IntegratorConfig,
    "step": StepConfig,
}

# Step threshold floor (m/s²) applied by the pedestrian preset.
_PEDESTRIAN_PEAK_FLOOR = 1.0


@dataclass(frozen=True)
class PipelineConfig:
    """
    Complete configuration of a DeadReckoningPipeline.

    Attributes:
        mode: CONTINUOUS (double integration) or STEP (pedestrian).
        gravity_mps2: Reference gravity magnitude. Units: m/s².
        latitude_deg: When set, gravity follows the WGS-84 latitude model.
        calibration, filter, orientation, classifier, gravity, integrator,
        step: Per-stage settings.

    Example:
        >>> cfg = PipelineConfig.pedestrian()
        >>> cfg.mode
        <OperatingMode.STEP: 'step'>
    """

    mode: OperatingMode = OperatingMode.CONTINUOUS
    gravity_mps2: float = 9.8
    latitude_deg: Optional[float] = None
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)
    orientation: OrientationConfig = field(default_factory=OrientationConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    gravity: GravityConfig = field(default_factory=GravityConfig)
    integrator: IntegratorConfig = field(default_factory=IntegratorConfig)
    step: StepConfig = field(default_factory=StepConfig)

    def __post_init__(self) -> None:
        _coerce_enum(self, "mode", OperatingMode)
        if self.gravity_mps2 <= 0:
            raise ValueError(f"gravity_mps2 must be positive, got {self.gravity_mps2}")
        if self.latitude_deg is not None and not -90.0 <= self.latitude_deg <= 90.0:
            raise ValueError(f"latitude_deg must be in [-90, 90], got {self.latitude_deg}")
        if not 9.0 <= self.gravity_mps2 <= 10.5:
            warnings.warn(
                f"gravity_mps2={self.gravity_mps2} is far from Earth gravity",
                UserWarning,
            )

    def standard_gravity(self) -> float:
        """Reference gravity magnitude g used by the classifier and bias."""
        lat_rad = None if self.latitude_deg is None else float(np.deg2rad(self.latitude_deg))
        return gravity_magnitude(lat_rad, default_g=self.gravity_mps2)

    @classmethod
    def continuous(cls, **overrides) -> "PipelineConfig":
        """Double integration with ZUPT, orientation from the gyroscope."""
        return cls(mode=OperatingMode.CONTINUOUS, **overrides)

    @classmethod
    def pedestrian(cls, **overrides) -> "PipelineConfig":
        """Step mode with orientation from a platform rotation matrix.

        The dynamic step threshold is floored at 1 m/s² so that sensor noise
        while standing still never qualifies as a step peak. A `step` override
        that leaves `min_peak_magnitude` at its default inherits the floor.
        """
        overrides.setdefault("orientation", OrientationConfig(source=OrientationSource.ROTATION_MATRIX))
        step = overrides.get("step", StepConfig())
        if step.min_peak_magnitude == StepConfig.min_peak_magnitude:
            step = replace(step, min_peak_magnitude=_PEDESTRIAN_PEAK_FLOOR)
        overrides["step"] = step
        return cls(mode=OperatingMode.STEP, **overrides)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PipelineConfig":
        """
        Build a configuration from a nested dict (e.g. parsed YAML).

        Missing keys keep their defaults. Unknown keys raise ValueError.
        """
        data = dict(data or {})
        top_level = {f.name for f in fields(cls)} - set(_SECTIONS)
        unknown = set(data) - top_level - set(_SECTIONS)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        kwargs: Dict[str, Any] = {k: data[k] for k in top_level if k in data}
        for name, section_cls in _SECTIONS.items():
            section = data.get(name)
            if section is None:
                continue
            if not isinstance(section, dict):
                raise ValueError(f"{name} must be a mapping, got {type(section).__name__}")
            allowed = {f.name for f in fields(section_cls)}
            bad = set(section) - allowed
            if bad:
                raise ValueError(f"Unknown keys in '{name}': {sorted(bad)}")
            kwargs[name] = section_cls(**section)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict (enums as their string values)."""
        return _plain(asdict(self))


def _plain(value):
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, Enum):
        return value.value
    return value


def load_config(config_path: Union[str, Path]) -> PipelineConfig:
    """
    Load a PipelineConfig from a YAML file.

    Args:
        config_path: Path to the YAML file.

    Returns:
        The validated PipelineConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is malformed.
        ValueError: If a key is unknown or a value is invalid.

    Example:
        >>> cfg = load_config("configs/default.yaml")
    """
    with open(config_path, "r") as f:
        data = yaml.safe_load(f)
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"{config_path}: top level must be a mapping")
    return PipelineConfig.from_dict(data)
