"""
Synthetic inertial traces with known ground truth.

Accelerometers measure specific force, not acceleration. For a body with
true world-frame acceleration a_W and body-to-world rotation R:

    f_B = Rᵀ · (a_W + [0, 0, g])

so a device lying still reads +g on its z axis. The generators below build
f_B from analytic motion profiles and return the matching rotation matrices,
true positions and a stance mask (True where the body is truly at rest).

walk_stop_trace() models a level walker:
    - forward speed ramps smoothly from 0 to a peak and back to 0 over
      each walking segment:  v(t) = V/2 · (1 - cos(2πt / T))
    - a small forward surge per stride:  a_s(t) = s · sin(2π f t)
    - a vertical heel-strike bump whose magnitude peaks once per step:
      a_z(t) = b · cos(π f t)
Walking segments span an even number of steps so every segment ends with
the body exactly at rest at its starting height.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from inertial.coords.rotations import euler_to_rotation_matrix
from inertial.sensors.types import Sample


@dataclass
class SyntheticTrace:
    """
    A generated trace with ground truth.

    Attributes:
        samples: Sensor samples (body-frame accel and gyro).
        rotations: Body-to-world matrices, shape (N, 3, 3).
        true_position: World-frame position, shape (N, 3). Units: m.
        stance_mask: True where the body is at rest, shape (N,).
        t: Sample times relative to the first sample, shape (N,). Units: s.
    """

    samples: List[Sample]
    rotations: np.ndarray
    true_position: np.ndarray
    stance_mask: np.ndarray
    t: np.ndarray

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def accel(self) -> np.ndarray:
        """Body-frame accelerometer readings, shape (N, 3)."""
        return np.array([s.accel for s in self.samples])

    @property
    def timestamps_ns(self) -> np.ndarray:
        return np.array([s.timestamp_ns for s in self.samples], dtype=np.int64)


def _timestamps(n: int, rate_hz: float, t0_ns: int) -> np.ndarray:
    return t0_ns + np.round(np.arange(n) * (1e9 / rate_hz)).astype(np.int64)


def _build_samples(
    f_body: np.ndarray,
    gyro: np.ndarray,
    stamps: np.ndarray,
    noise_std: float,
    gyro_noise_std: float,
    rng: Optional[np.random.Generator],
) -> List[Sample]:
    if noise_std > 0 or gyro_noise_std > 0:
        if rng is None:
            rng = np.random.default_rng()
        f_body = f_body + rng.normal(0.0, noise_std, f_body.shape)
        gyro = gyro + rng.normal(0.0, gyro_noise_std, gyro.shape)
    return [
        Sample(accel=f_body[k], timestamp_ns=int(stamps[k]), gyro=gyro[k])
        for k in range(len(stamps))
    ]


def stationary_trace(
    duration_s: float = 5.0,
    rate_hz: float = 100.0,
    g: float = 9.8,
    accel_bias: Optional[np.ndarray] = None,
    gyro_bias: Optional[np.ndarray] = None,
    roll: float = 0.0,
    pitch: float = 0.0,
    noise_std: float = 0.0,
    gyro_noise_std: float = 0.0,
    seed: Optional[int] = None,
    t0_ns: int = 1_000_000_000,
) -> SyntheticTrace:
    """
    A body held still at a fixed tilt.

    Args:
        duration_s: Trace length. Units: s.
        rate_hz: Sample rate. Units: Hz.
        g: Gravity magnitude. Units: m/s².
        accel_bias: Constant accelerometer bias, shape (3,).
        gyro_bias: Constant gyroscope bias, shape (3,).
        roll, pitch: Fixed tilt. Units: rad.
        noise_std: White accelerometer noise σ. Units: m/s².
        gyro_noise_std: White gyroscope noise σ. Units: rad/s.
        seed: Seed for numpy.random.default_rng.
        t0_ns: Timestamp of the first sample.

    Returns:
        SyntheticTrace with every sample in stance.
    """
    if duration_s <= 0:
        raise ValueError(f"duration_s must be positive, got {duration_s}")
    if rate_hz <= 0:
        raise ValueError(f"rate_hz must be positive, got {rate_hz}")

    n = int(round(duration_s * rate_hz))
    R = euler_to_rotation_matrix(roll, pitch, 0.0)
    f_b = R.T @ np.array([0.0, 0.0, g])
    if accel_bias is not None:
        f_b = f_b + np.asarray(accel_bias, dtype=np.float64)
    w_b = np.zeros(3) if gyro_bias is None else np.asarray(gyro_bias, dtype=np.float64)

    rng = None if seed is None else np.random.default_rng(seed)
    stamps = _timestamps(n, rate_hz, t0_ns)
    samples = _build_samples(
        np.tile(f_b, (n, 1)), np.tile(w_b, (n, 1)), stamps, noise_std, gyro_noise_std, rng
    )

    return SyntheticTrace(
        samples=samples,
        rotations=np.tile(R, (n, 1, 1)),
        true_position=np.zeros((n, 3)),
        stance_mask=np.ones(n, dtype=bool),
        t=np.arange(n) / rate_hz,
    )


def walk_stop_trace(
    n_cycles: int = 3,
    lead_still_s: float = 3.0,
    walk_s: float = 4.0,
    stop_s: float = 3.0,
    step_hz: float = 2.0,
    peak_speed_mps: float = 1.0,
    bump_mps2: float = 3.0,
    surge_mps2: float = 0.3,
    heading_rad: float = 0.0,
    rate_hz: float = 100.0,
    g: float = 9.8,
    noise_std: float = 0.0,
    gyro_noise_std: float = 0.0,
    seed: Optional[int] = None,
    t0_ns: int = 1_000_000_000,
) -> SyntheticTrace:
    """
    Alternating walk/stop cycles of a level pedestrian.

    Args:
        n_cycles: Number of walk + stop cycles after the leading rest.
        lead_still_s: Initial rest (calibration window). Units: s.
        walk_s: Walking segment length; walk_s · step_hz must be an even
                integer. Units: s.
        stop_s: Rest segment length. Units: s.
        step_hz: Step frequency. Units: Hz.
        peak_speed_mps: Peak forward speed of the walking ramp. Units: m/s.
        bump_mps2: Vertical heel-strike amplitude. Units: m/s².
        surge_mps2: Forward per-stride surge amplitude. Units: m/s².
        heading_rad: Constant walking heading (0 = +x). Units: rad.
        rate_hz, g, noise_std, gyro_noise_std, seed, t0_ns: As in
            stationary_trace().

    Returns:
        SyntheticTrace.

    Example:
        >>> trace = walk_stop_trace(n_cycles=1)
        >>> round(float(trace.true_position[-1, 0]), 2)
        2.1
    """
    steps_per_walk = walk_s * step_hz
    if abs(steps_per_walk - round(steps_per_walk)) > 1e-9 or int(round(steps_per_walk)) % 2:
        raise ValueError(
            f"walk_s * step_hz must be an even integer, got {steps_per_walk}"
        )
    if n_cycles < 1:
        raise ValueError(f"n_cycles must be >= 1, got {n_cycles}")

    cycle_s = walk_s + stop_s
    total_s = lead_still_s + n_cycles * cycle_s
    n = int(round(total_s * rate_hz))
    t = np.arange(n) / rate_hz

    w_ramp = 2.0 * np.pi / walk_s
    w_surge = 2.0 * np.pi * step_hz
    w_bump = np.pi * step_hz
    walk_distance = peak_speed_mps * walk_s / 2.0 + surge_mps2 * walk_s / w_surge

    a_fwd = np.zeros(n)
    a_up = np.zeros(n)
    x_fwd = np.zeros(n)
    z_up = np.zeros(n)
    stance = np.ones(n, dtype=bool)

    for k in range(n):
        tk = t[k] - lead_still_s
        if tk < 0:
            continue
        cycle = min(int(tk // cycle_s), n_cycles - 1)
        tau = tk - cycle * cycle_s
        done = cycle * walk_distance
        if tau < walk_s:
            stance[k] = False
            a_fwd[k] = (
                peak_speed_mps / 2.0 * w_ramp * np.sin(w_ramp * tau)
                + surge_mps2 * np.sin(w_surge * tau)
            )
            a_up[k] = bump_mps2 * np.cos(w_bump * tau)
            x_fwd[k] = (
                done
                + peak_speed_mps / 2.0 * (tau - np.sin(w_ramp * tau) / w_ramp)
                + surge_mps2 / w_surge * (tau - np.sin(w_surge * tau) / w_surge)
            )
            z_up[k] = bump_mps2 / w_bump ** 2 * (1.0 - np.cos(w_bump * tau))
        else:
            x_fwd[k] = done + walk_distance

    direction = np.array([np.cos(heading_rad), np.sin(heading_rad), 0.0])
    true_position = x_fwd[:, None] * direction + z_up[:, None] * np.array([0.0, 0.0, 1.0])
    a_world = a_fwd[:, None] * direction + a_up[:, None] * np.array([0.0, 0.0, 1.0])

    R = euler_to_rotation_matrix(0.0, 0.0, heading_rad)
    f_body = (a_world + np.array([0.0, 0.0, g])) @ R

    rng = None if seed is None else np.random.default_rng(seed)
    stamps = _timestamps(n, rate_hz, t0_ns)
    samples = _build_samples(f_body, np.zeros((n, 3)), stamps, noise_std, gyro_noise_std, rng)

    return SyntheticTrace(
        samples=samples,
        rotations=np.tile(R, (n, 1, 1)),
        true_position=true_position,
        stance_mask=stance,
        t=t,
    )
