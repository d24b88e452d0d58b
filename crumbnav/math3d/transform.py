"""Rigid-transform helpers on 4x4 homogeneous matrices."""

from __future__ import annotations

import math

import numpy as np

from .quaternion import q_to_rotmat, yaw_to_q


def make_transform(rotation: np.ndarray, translation: np.ndarray) -> np.ndarray:
    m = np.eye(4, dtype=np.float64)
    m[:3, :3] = np.asarray(rotation, dtype=np.float64).reshape(3, 3)
    m[:3, 3] = np.asarray(translation, dtype=np.float64).reshape(3)
    return m


def invert_transform(m: np.ndarray) -> np.ndarray:
    m = np.asarray(m, dtype=np.float64)
    R = m[:3, :3]
    t = m[:3, 3]
    return make_transform(R.T, -R.T @ t)


def heading_of_rotation(R: np.ndarray) -> float:
    """Yaw about +y of a rotation matrix, read from its z axis.

    Falls back to the x axis when the z axis is (near) vertical.
    """
    R = np.asarray(R, dtype=np.float64)
    zx, zz = float(R[0, 2]), float(R[2, 2])
    if zx * zx + zz * zz > 1e-12:
        return math.atan2(zx, zz)
    return math.atan2(-float(R[2, 0]), float(R[0, 0]))


def level_y_rotation(R: np.ndarray) -> np.ndarray:
    """Rotation with the same heading as R and its y axis on true vertical."""
    return q_to_rotmat(yaw_to_q(heading_of_rotation(R)))


def level_y(m: np.ndarray) -> np.ndarray:
    """Level a 4x4 transform: drop pitch and roll, keep heading and translation."""
    m = np.asarray(m, dtype=np.float64)
    return make_transform(level_y_rotation(m[:3, :3]), m[:3, 3])
