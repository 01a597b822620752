"""Rotation representations and body-to-world frame rotation.

This module provides the frame rotator used by the pipeline to express
body-frame acceleration in the world frame, plus the conversions between
the orientation representations it accepts:
- Rotation matrices (3x3 orthonormal matrices, SO(3)), row-major
- Euler angles (roll-pitch-yaw, ZYX convention)
- Quaternions / platform rotation vectors

Conventions:
- Euler angles: [roll, pitch, yaw] in radians (ZYX/3-2-1 convention)
  - Roll: rotation about x-axis (φ)
  - Pitch: rotation about y-axis (θ)
  - Yaw: rotation about z-axis (ψ)
- Quaternions: [qw, qx, qy, qz] where qw is the scalar part
- Rotation matrices map body to world: v_world = R @ v_body

All functions here are pure: no state, no side effects.
"""

from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

from inertial.sensors.types import EulerAngles


def euler_to_rotation_matrix(
    roll: float,
    pitch: float,
    yaw: float,
) -> NDArray[np.float64]:
    """Convert Euler angles to rotation matrix.

    Builds the combined matrix Rz(yaw) · Ry(pitch) · Rx(roll) in one step,
    which transforms vectors from body frame to world frame.

    Args:
        roll: Roll angle φ in radians (rotation about x-axis).
        pitch: Pitch angle θ in radians (rotation about y-axis).
        yaw: Yaw angle ψ in radians (rotation about z-axis).

    Returns:
        3x3 rotation matrix R such that v_world = R @ v_body.

    Example:
        >>> import numpy as np
        >>> R = euler_to_rotation_matrix(0.1, 0.2, 0.3)
        >>> print(f"Determinant (should be 1.0): {np.linalg.det(R):.6f}")
        Determinant (should be 1.0): 1.000000
    """
    cr = np.cos(roll)
    sr = np.sin(roll)
    cp = np.cos(pitch)
    sp = np.sin(pitch)
    cy = np.cos(yaw)
    sy = np.sin(yaw)

    # ZYX (3-2-1) Euler angle rotation matrix
    R = np.array(
        [
            [cp * cy, sr * sp * cy - cr * sy, cr * sp * cy + sr * sy],
            [cp * sy, sr * sp * sy + cr * cy, cr * sp * sy - sr * cy],
            [-sp, sr * cp, cr * cp],
        ],
        dtype=np.float64,
    )

    return R


def rotation_matrix_to_euler(R: NDArray[np.float64]) -> EulerAngles:
    """Convert rotation matrix to Euler angles.

    Extracts roll-pitch-yaw Euler angles (ZYX convention) from a 3x3
    rotation matrix. Handles gimbal lock when pitch is near ±90°.
    Used to recover the heading when orientation arrives pre-fused.

    Args:
        R: 3x3 rotation matrix (orthogonal matrix in SO(3)).

    Returns:
        EulerAngles(roll, pitch, yaw) in radians.

    Raises:
        ValueError: If R is not a 3x3 matrix.

    Example:
        >>> R = np.eye(3)  # Identity rotation
        >>> rotation_matrix_to_euler(R)
        EulerAngles(roll=0.0, pitch=-0.0, yaw=0.0)
    """
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {R.shape}")

    sin_pitch = -R[2, 0]

    if abs(sin_pitch) >= 1.0:
        # Gimbal lock: only yaw - roll is observable, roll set to zero
        pitch = float(np.copysign(np.pi / 2.0, sin_pitch))
        yaw = float(np.arctan2(-R[0, 1], R[1, 1]))
        roll = 0.0
    else:
        pitch = float(np.arcsin(sin_pitch))
        roll = float(np.arctan2(R[2, 1], R[2, 2]))
        yaw = float(np.arctan2(R[1, 0], R[0, 0]))

    return EulerAngles(roll, pitch, yaw)


def quat_to_rotation_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert quaternion to rotation matrix.

    Args:
        q: Unit quaternion as numpy array [qw, qx, qy, qz].

    Returns:
        3x3 rotation matrix R such that v_world = R @ v_body.

    Raises:
        ValueError: If q is not a 4-element array.
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    qw, qx, qy, qz = q

    R = np.array(
        [
            [
                1.0 - 2.0 * (qy * qy + qz * qz),
                2.0 * (qx * qy - qw * qz),
                2.0 * (qx * qz + qw * qy),
            ],
            [
                2.0 * (qx * qy + qw * qz),
                1.0 - 2.0 * (qx * qx + qz * qz),
                2.0 * (qy * qz - qw * qx),
            ],
            [
                2.0 * (qx * qz - qw * qy),
                2.0 * (qy * qz + qw * qx),
                1.0 - 2.0 * (qx * qx + qy * qy),
            ],
        ],
        dtype=np.float64,
    )

    return R


def rotation_vector_to_matrix(values: Sequence[float]) -> NDArray[np.float64]:
    """Convert a platform rotation-vector reading to a rotation matrix.

    Orientation sensors on phones report the vector part of the body-to-world
    unit quaternion (x, y, z), optionally followed by the scalar part w. When
    w is absent it is recovered as sqrt(1 - x² - y² - z²), clamped at zero.

    Args:
        values: Rotation vector [x, y, z] or [x, y, z, w] (extra trailing
                entries such as a heading accuracy estimate are ignored).

    Returns:
        3x3 body-to-world rotation matrix.

    Raises:
        ValueError: If fewer than 3 components are given.
    """
    values = np.asarray(values, dtype=np.float64).ravel()
    if values.size < 3:
        raise ValueError(f"Rotation vector needs at least 3 components, got {values.size}")

    qx, qy, qz = values[:3]
    if values.size >= 4:
        qw = values[3]
    else:
        qw = np.sqrt(max(0.0, 1.0 - (qx * qx + qy * qy + qz * qz)))

    return quat_to_rotation_matrix(np.array([qw, qx, qy, qz]))


def as_rotation_matrix(m: Union[Sequence[float], NDArray[np.float64]]) -> NDArray[np.float64]:
    """Coerce a (3, 3) matrix or a row-major (9,) array to a 3x3 matrix.

    Raises:
        ValueError: If the input has any other shape.
    """
    R = np.asarray(m, dtype=np.float64)
    if R.shape == (9,):
        return R.reshape(3, 3)
    if R.shape != (3, 3):
        raise ValueError(f"Rotation matrix must have shape (3, 3) or (9,), got {R.shape}")
    return R


def is_rotation_matrix(R: NDArray[np.float64], atol: float = 1e-3) -> bool:
    """Check that R is finite, orthonormal and right-handed (det = +1)."""
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3) or not np.all(np.isfinite(R)):
        return False
    if not np.allclose(R @ R.T, np.eye(3), atol=atol):
        return False
    return bool(np.isclose(np.linalg.det(R), 1.0, atol=atol))


def rotate_to_world(
    vector_b: NDArray[np.float64],
    orientation: Union[EulerAngles, NDArray[np.float64]],
) -> NDArray[np.float64]:
    """Rotate a body-frame vector into the world frame.

    Args:
        vector_b: Vector in body frame B, shape (3,).
        orientation: Either EulerAngles (roll, pitch, yaw) or a body-to-world
                     rotation matrix, shape (3, 3) or row-major (9,).

    Returns:
        The vector expressed in world frame W, shape (3,).

    Example:
        >>> rotate_to_world(np.array([0.0, 0.0, 9.8]), np.eye(3))
        array([0. , 0. , 9.8])
    """
    vector_b = np.asarray(vector_b, dtype=np.float64)
    if vector_b.shape != (3,):
        raise ValueError(f"vector_b must have shape (3,), got {vector_b.shape}")

    if isinstance(orientation, EulerAngles):
        R = euler_to_rotation_matrix(*orientation)
    else:
        R = as_rotation_matrix(orientation)

    return R @ vector_b
