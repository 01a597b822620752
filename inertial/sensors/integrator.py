"""
Velocity and position integration with zero-velocity updates.

Per accepted tick with elapsed time Δt the Integrator applies:

    STATIONARY:  v = 0                                   (ZUPT)
    MOVING:      a_lin = a_world - ĝ
                 a_lin[i] = 0  where |a_lin[i]| < deadband
                 v = v + a_lin·Δt
                 v = v · (1 - (1 - d)·Δt)                (optional damping d)
    always:      p = p + v·Δt

The ZUPT is the primary anti-drift mechanism: velocity is forced to exactly
zero on every STATIONARY tick. Position keeps accumulating for the whole
session (a no-op while stationary) and is only cleared by reset().

Tick timing is classified before any state is touched:

    FIRST  no previous timestamp; seeds the clock only
    STALE  Δt <= 0; out-of-order or duplicate, ignored entirely
    GAP    Δt >= gap threshold; timestamp accepted, nothing integrated
    VALID  normal integration
"""

from enum import Enum
from typing import NamedTuple, Optional

import numpy as np

from inertial.sensors.types import IntegratorState, MotionState


class TickKind(Enum):
    FIRST = "first"
    STALE = "stale"
    GAP = "gap"
    VALID = "valid"


class TickTiming(NamedTuple):
    """Classification of one tick's timestamp against the integrator clock.

    Attributes:
        kind: TickKind of the tick.
        dt_s: Elapsed time since the last accepted tick (0.0 for FIRST).
        timestamp_ns: The tick's timestamp.
    """

    kind: TickKind
    dt_s: float
    timestamp_ns: int


def tick_timing(
    last_timestamp_ns: Optional[int],
    timestamp_ns: int,
    gap_threshold_s: float = 0.5,
) -> TickTiming:
    """
    Classify a timestamp relative to the last accepted one.

    Example:
        >>> tick_timing(0, 600_000_000).kind
        <TickKind.GAP: 'gap'>
    """
    timestamp_ns = int(timestamp_ns)
    if last_timestamp_ns is None:
        return TickTiming(TickKind.FIRST, 0.0, timestamp_ns)
    dt = (timestamp_ns - last_timestamp_ns) * 1e-9
    if dt <= 0.0:
        return TickTiming(TickKind.STALE, dt, timestamp_ns)
    if dt >= gap_threshold_s:
        return TickTiming(TickKind.GAP, dt, timestamp_ns)
    return TickTiming(TickKind.VALID, dt, timestamp_ns)


def apply_deadband(a: np.ndarray, threshold: float) -> np.ndarray:
    """Zero every component with |a_i| < threshold."""
    a = np.asarray(a, dtype=np.float64)
    return np.where(np.abs(a) < threshold, 0.0, a)


def damp_velocity(v: np.ndarray, damping: float, dt: float) -> np.ndarray:
    """
    Exponential velocity damping: v · (1 - (1 - damping)·dt).

    damping = 1.0 leaves v untouched; smaller values bleed speed faster.
    The factor is clamped at zero so a long dt never reverses velocity.
    """
    factor = max(0.0, 1.0 - (1.0 - damping) * dt)
    return np.asarray(v, dtype=np.float64) * factor


class Integrator:
    """
    Owner of the dead-reckoning IntegratorState.

    Attributes:
        noise_deadband: Per-axis deadband on linear acceleration. Units: m/s².
        velocity_damping: Damping coefficient in (0, 1], or None to disable.
        gap_threshold_s: Elapsed time treated as a sensor gap. Units: s.

    Example:
        >>> integ = Integrator()
        >>> t0 = integ.timing(1_000_000_000)
        >>> _ = integ.step([0, 0, 9.8], [0, 0, 9.8], MotionState.MOVING, t0)
    """

    def __init__(
        self,
        noise_deadband: float = 0.05,
        velocity_damping: Optional[float] = None,
        gap_threshold_s: float = 0.5,
    ):
        if noise_deadband < 0:
            raise ValueError(f"noise_deadband must be non-negative, got {noise_deadband}")
        if velocity_damping is not None and not 0.0 < velocity_damping <= 1.0:
            raise ValueError(f"velocity_damping must be in (0, 1], got {velocity_damping}")
        if gap_threshold_s <= 0:
            raise ValueError(f"gap_threshold_s must be positive, got {gap_threshold_s}")
        self.noise_deadband = float(noise_deadband)
        self.velocity_damping = velocity_damping
        self.gap_threshold_s = float(gap_threshold_s)
        self._state = IntegratorState.zeros()

    @classmethod
    def from_config(cls, config) -> "Integrator":
        """Build from an IntegratorConfig."""
        return cls(
            noise_deadband=config.noise_deadband,
            velocity_damping=config.velocity_damping,
            gap_threshold_s=config.gap_threshold_s,
        )

    @property
    def state(self) -> IntegratorState:
        return self._state

    def reset(self) -> None:
        self._state = IntegratorState.zeros()

    def timing(self, timestamp_ns: int) -> TickTiming:
        """Classify a timestamp against the last accepted tick."""
        return tick_timing(self._state.last_timestamp_ns, timestamp_ns, self.gap_threshold_s)

    def step(
        self,
        world_accel,
        gravity,
        motion_state: MotionState,
        timing: TickTiming,
        speed_floor: Optional[float] = None,
    ) -> IntegratorState:
        """
        Advance velocity and position by one tick.

        Args:
            world_accel: World-frame acceleration including gravity, shape (3,).
            gravity: Current gravity estimate ĝ, shape (3,).
            motion_state: Committed MotionState for this tick.
            timing: Result of timing() for this tick's timestamp.
            speed_floor: When set, a speed below it after integration is
                         snapped to zero before position is advanced.

        Returns:
            The (mutated) IntegratorState.
        """
        state = self._state
        if timing.kind == TickKind.STALE:
            return state
        state.last_timestamp_ns = timing.timestamp_ns
        if timing.kind != TickKind.VALID:
            return state

        dt = timing.dt_s
        if motion_state == MotionState.STATIONARY:
            state.velocity = np.zeros(3)
        else:
            linear = np.asarray(world_accel, dtype=np.float64) - np.asarray(gravity, dtype=np.float64)
            linear = apply_deadband(linear, self.noise_deadband)
            state.velocity = state.velocity + linear * dt
            if self.velocity_damping is not None:
                state.velocity = damp_velocity(state.velocity, self.velocity_damping, dt)
            if speed_floor is not None:
                self.enforce_speed_floor(speed_floor)

        state.position = state.position + state.velocity * dt
        return state

    def apply_step(self, length_m: float, heading_rad: float, timing: TickTiming) -> IntegratorState:
        """
        Advance position by one pedestrian step and zero velocity.

        Position moves length_m along the heading in the horizontal plane;
        no velocity·Δt term is added on a step tick.
        """
        state = self._state
        state.position = state.position + np.array(
            [length_m * np.cos(heading_rad), length_m * np.sin(heading_rad), 0.0]
        )
        state.velocity = np.zeros(3)
        state.last_timestamp_ns = timing.timestamp_ns
        return state

    def enforce_speed_floor(self, threshold: float) -> bool:
        """Zero velocity when its magnitude is below threshold; True if zeroed."""
        if np.linalg.norm(self._state.velocity) < threshold:
            self._state.velocity = np.zeros(3)
            return True
        return False
