"""
Unit tests for inertial/config.py (pipeline configuration and YAML loading).

Run with: pytest tests/inertial/test_config.py -v
"""

import tempfile
import unittest
import warnings
from pathlib import Path

import numpy as np
import pytest

from inertial.config import (
    CalibrationConfig,
    ClassifierConfig,
    FilterConfig,
    GravityConfig,
    IntegratorConfig,
    OrientationConfig,
    PipelineConfig,
    StepConfig,
    load_config,
)
from inertial.sensors.types import (
    CalibrationPolicy,
    LowPassPlacement,
    OperatingMode,
    OrientationSource,
)

CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"


class TestDefaults(unittest.TestCase):
    """Test suite for default values."""

    def test_reference_defaults(self) -> None:
        cfg = PipelineConfig()

        assert cfg.mode == OperatingMode.CONTINUOUS
        assert cfg.gravity_mps2 == 9.8
        assert cfg.calibration.policy == CalibrationPolicy.AVERAGED
        assert cfg.calibration.sample_count == 200
        assert cfg.filter.lowpass_alpha == 0.1
        assert cfg.filter.placement == LowPassPlacement.GRAVITY_TRACKER
        assert cfg.orientation.source == OrientationSource.GYROSCOPE
        assert cfg.orientation.alpha == 0.98
        assert cfg.orientation.epsilon == 1e-6
        assert cfg.classifier.window_size == 15
        assert cfg.classifier.variance_threshold == 0.01
        assert cfg.classifier.magnitude_threshold == 0.5
        assert cfg.classifier.dwell_windows == 15
        assert cfg.gravity.alpha == 0.98
        assert cfg.integrator.noise_deadband == 0.05
        assert cfg.integrator.velocity_damping is None
        assert cfg.integrator.gap_threshold_s == 0.5
        assert cfg.step.window_size == 50
        assert cfg.step.threshold_factor == 1.2
        assert (cfg.step.min_interval_s, cfg.step.max_interval_s) == (0.3, 1.2)
        assert (cfg.step.freq_weight, cfg.step.var_weight, cfg.step.baseline_m) == (0.4, 0.2, 0.3)
        assert cfg.step.velocity_zero_threshold == 0.05

    def test_defaults_do_not_warn(self) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            PipelineConfig()
            PipelineConfig.pedestrian()

    def test_frozen(self) -> None:
        cfg = PipelineConfig()
        with pytest.raises(AttributeError):
            cfg.mode = OperatingMode.STEP


class TestPresets(unittest.TestCase):
    """Test suite for the preset constructors."""

    def test_continuous(self) -> None:
        cfg = PipelineConfig.continuous(gravity_mps2=9.81)
        assert cfg.mode == OperatingMode.CONTINUOUS
        assert cfg.gravity_mps2 == 9.81

    def test_pedestrian(self) -> None:
        cfg = PipelineConfig.pedestrian()
        assert cfg.mode == OperatingMode.STEP
        assert cfg.orientation.source == OrientationSource.ROTATION_MATRIX
        assert cfg.step.min_peak_magnitude == 1.0

    def test_pedestrian_override_keeps_floor(self) -> None:
        cfg = PipelineConfig.pedestrian(step=StepConfig(window_size=30, threshold_factor=1.5))
        assert cfg.step.window_size == 30
        assert cfg.step.threshold_factor == 1.5
        assert cfg.step.min_peak_magnitude == 1.0

    def test_pedestrian_explicit_floor(self) -> None:
        cfg = PipelineConfig.pedestrian(step=StepConfig(min_peak_magnitude=2.5))
        assert cfg.step.min_peak_magnitude == 2.5


class TestValidation(unittest.TestCase):
    """Test suite for construction-time validation."""

    def test_sample_count(self) -> None:
        with pytest.raises(ValueError, match="sample_count"):
            CalibrationConfig(sample_count=0)
        CalibrationConfig(policy=CalibrationPolicy.SINGLE_SHOT, sample_count=0)

    def test_small_sample_count_warns(self) -> None:
        with pytest.warns(UserWarning, match="sample_count"):
            CalibrationConfig(sample_count=5)

    def test_enum_strings(self) -> None:
        assert FilterConfig(placement="preprocessor").placement == LowPassPlacement.PREPROCESSOR
        with pytest.raises(ValueError, match="placement must be one of"):
            FilterConfig(placement="both")

    def test_filter_alpha(self) -> None:
        with pytest.raises(ValueError, match="lowpass_alpha"):
            FilterConfig(lowpass_alpha=0.0)

    def test_orientation(self) -> None:
        with pytest.raises(ValueError, match="alpha"):
            OrientationConfig(alpha=1.1)
        with pytest.warns(UserWarning, match="accelerometer"):
            OrientationConfig(alpha=0.3)

    def test_classifier(self) -> None:
        with pytest.raises(ValueError, match="window_size"):
            ClassifierConfig(window_size=1)
        with pytest.raises(ValueError, match="min_window_fill"):
            ClassifierConfig(window_size=10, min_window_fill=20)
        with pytest.raises(ValueError, match="variance_threshold"):
            ClassifierConfig(variance_threshold=0.0)
        with pytest.warns(UserWarning, match="hysteresis"):
            ClassifierConfig(dwell_windows=1)

    def test_gravity(self) -> None:
        with pytest.raises(ValueError, match="alpha"):
            GravityConfig(alpha=1.0)
        with pytest.warns(UserWarning, match="adapts quickly"):
            GravityConfig(alpha=0.5)

    def test_integrator(self) -> None:
        with pytest.raises(ValueError, match="velocity_damping"):
            IntegratorConfig(velocity_damping=1.5)
        with pytest.raises(ValueError, match="gap_threshold_s"):
            IntegratorConfig(gap_threshold_s=0.0)

    def test_step(self) -> None:
        with pytest.raises(ValueError, match="min_interval_s"):
            StepConfig(min_interval_s=1.5, max_interval_s=1.2)
        with pytest.warns(UserWarning, match="threshold_factor"):
            StepConfig(threshold_factor=0.8)

    def test_pipeline(self) -> None:
        with pytest.raises(ValueError, match="gravity_mps2"):
            PipelineConfig(gravity_mps2=0.0)
        with pytest.raises(ValueError, match="latitude_deg"):
            PipelineConfig(latitude_deg=95.0)
        with pytest.raises(ValueError, match="mode must be one of"):
            PipelineConfig(mode="hover")
        with pytest.warns(UserWarning, match="far from Earth gravity"):
            PipelineConfig(gravity_mps2=1.62)


class TestStandardGravity(unittest.TestCase):
    """Test suite for PipelineConfig.standard_gravity."""

    def test_fixed(self) -> None:
        assert PipelineConfig(gravity_mps2=9.81).standard_gravity() == 9.81

    def test_latitude(self) -> None:
        cfg = PipelineConfig(latitude_deg=0.0)
        assert np.isclose(cfg.standard_gravity(), 9.7803)


class TestDictAndYaml(unittest.TestCase):
    """Test suite for from_dict, to_dict and load_config."""

    def test_from_dict(self) -> None:
        cfg = PipelineConfig.from_dict({
            "mode": "step",
            "orientation": {"source": "rotation_matrix"},
            "step": {"threshold_factor": 1.3},
        })
        assert cfg.mode == OperatingMode.STEP
        assert cfg.orientation.source == OrientationSource.ROTATION_MATRIX
        assert cfg.step.threshold_factor == 1.3
        assert cfg.classifier == ClassifierConfig()

    def test_from_empty(self) -> None:
        assert PipelineConfig.from_dict(None) == PipelineConfig()
        assert PipelineConfig.from_dict({}) == PipelineConfig()

    def test_unknown_keys(self) -> None:
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            PipelineConfig.from_dict({"modee": "step"})
        with pytest.raises(ValueError, match="Unknown keys in 'step'"):
            PipelineConfig.from_dict({"step": {"treshold": 1.0}})
        with pytest.raises(ValueError, match="must be a mapping"):
            PipelineConfig.from_dict({"step": 3})

    def test_to_dict_round_trip(self) -> None:
        cfg = PipelineConfig.pedestrian(latitude_deg=22.3)
        d = cfg.to_dict()

        assert d["mode"] == "step"
        assert d["orientation"]["source"] == "rotation_matrix"
        assert PipelineConfig.from_dict(d) == cfg

    def test_default_yaml(self) -> None:
        assert load_config(CONFIG_DIR / "default.yaml") == PipelineConfig()

    def test_pedestrian_yaml(self) -> None:
        assert load_config(CONFIG_DIR / "pedestrian.yaml") == PipelineConfig.pedestrian()

    def test_yaml_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg.yaml"
            path.write_text("mode: step\nintegrator:\n  velocity_damping: 0.9\n")
            cfg = load_config(path)
        assert cfg.mode == OperatingMode.STEP
        assert cfg.integrator.velocity_damping == 0.9

    def test_yaml_not_a_mapping(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg.yaml"
            path.write_text("- 1\n- 2\n")
            with pytest.raises(ValueError, match="mapping"):
                load_config(path)

    def test_missing_file(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_config("does/not/exist.yaml")


if __name__ == "__main__":
    unittest.main()
