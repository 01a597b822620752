"""Orientation representations and frame rotation.

This package provides the body-to-world frame rotator and the conversions
between the orientation representations the pipeline accepts:
- Euler angles (roll-pitch-yaw, ZYX convention) from the complementary filter
- Row-major 3x3 rotation matrices from platform orientation sensors
- Quaternions / rotation vectors
"""

from inertial.coords.rotations import (
    as_rotation_matrix,
    euler_to_rotation_matrix,
    is_rotation_matrix,
    quat_to_rotation_matrix,
    rotate_to_world,
    rotation_matrix_to_euler,
    rotation_vector_to_matrix,
)

__all__ = [
    "as_rotation_matrix",
    "euler_to_rotation_matrix",
    "is_rotation_matrix",
    "quat_to_rotation_matrix",
    "rotate_to_world",
    "rotation_matrix_to_euler",
    "rotation_vector_to_matrix",
]
