"""Vector helpers for the horizontal (x, z) plane and headings."""

from __future__ import annotations

import math

import numpy as np

DEFAULT_AXIS = np.array([1.0, 0.0, 0.0], dtype=np.float64)


def normalize_or(v: np.ndarray, fallback: np.ndarray) -> np.ndarray:
    """Unit vector along v, or a copy of fallback when v is ~zero."""
    v = np.asarray(v, dtype=np.float64)
    n2 = float(np.dot(v, v))
    if n2 < 1e-12:
        return np.asarray(fallback, dtype=np.float64).copy()
    return v / math.sqrt(n2)


def horizontal(v: np.ndarray) -> np.ndarray:
    """Project onto the horizontal plane (drop the y component)."""
    return np.array([float(v[0]), 0.0, float(v[2])], dtype=np.float64)


def horizontal_distance(a: np.ndarray, b: np.ndarray) -> float:
    dx = float(a[0]) - float(b[0])
    dz = float(a[2]) - float(b[2])
    return math.sqrt(dx * dx + dz * dz)


def horizontal_normal(v: np.ndarray) -> np.ndarray:
    """v rotated 90 deg about the vertical axis, with the y part dropped.

    Equivalent to [[0, 0, 1], [0, 0, 0], [-1, 0, 0]] @ v.
    """
    return np.array([float(v[2]), 0.0, -float(v[0])], dtype=np.float64)


def angle_diff_rad(a: float, b: float) -> float:
    """Signed shortest difference a - b wrapped to [-pi, pi)."""
    return (a - b + math.pi) % (2.0 * math.pi) - math.pi


def heading_to_eus_yaw(heading_deg: float) -> float:
    """Compass heading (deg clockwise from north) to a yaw about +y in an
    east-up-south frame, in radians."""
    return math.radians(180.0 - heading_deg)
