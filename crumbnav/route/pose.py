"""Pose data structures for 6DoF tracking samples."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..math3d.quaternion import (
    q_conj,
    q_identity,
    q_mul,
    q_normalize,
    q_rotate_vec,
    q_to_euler_pitch_yaw_roll,
    q_to_rotmat,
    rotmat_to_q,
)
from ..math3d.transform import make_transform


@dataclass(frozen=True, slots=True, eq=False)
class Pose:
    """Rigid transform in a tracking frame.

    position:
      3D translation [x, y, z], meters.
    quaternion:
      Orientation quaternion [w, x, y, z], unit length.

    Poses are immutable; combine them with ``compose``/``inverse``.
    """

    position: np.ndarray
    quaternion: np.ndarray

    def __post_init__(self) -> None:
        p = np.array(self.position, dtype=np.float64).reshape(-1)
        q = np.array(self.quaternion, dtype=np.float64).reshape(-1)
        if p.size != 3 or q.size != 4:
            raise ValueError(
                f"pose expects 3 position and 4 quaternion values, got {p.size} and {q.size}"
            )
        if not np.isfinite(p).all() or not np.isfinite(q).all():
            raise ValueError("pose position/quaternion must be finite")
        q = q_normalize(q)
        p.setflags(write=False)
        q.setflags(write=False)
        object.__setattr__(self, "position", p)
        object.__setattr__(self, "quaternion", q)

    @classmethod
    def from_matrix(cls, m: np.ndarray) -> Pose:
        m = np.asarray(m, dtype=np.float64)
        if m.shape != (4, 4):
            raise ValueError(f"Expected 4x4 transform, got {m.shape}")
        return cls(position=m[:3, 3], quaternion=rotmat_to_q(m[:3, :3]))

    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])

    @property
    def z(self) -> float:
        return float(self.position[2])

    def euler_angles(self) -> tuple[float, float, float]:
        """(pitch, yaw, roll) in radians."""
        return q_to_euler_pitch_yaw_roll(self.quaternion)

    @property
    def yaw(self) -> float:
        return self.euler_angles()[1]

    def rotation_matrix(self) -> np.ndarray:
        return q_to_rotmat(self.quaternion)

    def matrix(self) -> np.ndarray:
        return make_transform(self.rotation_matrix(), self.position)

    def transform_point(self, p: np.ndarray) -> np.ndarray:
        return q_rotate_vec(self.quaternion, np.asarray(p, dtype=np.float64)) + self.position

    def compose(self, other: Pose) -> Pose:
        """self * other: apply other first, then self."""
        return Pose(
            position=self.transform_point(other.position),
            quaternion=q_mul(self.quaternion, other.quaternion),
        )

    def inverse(self) -> Pose:
        q_inv = q_conj(self.quaternion)
        return Pose(position=-q_rotate_vec(q_inv, self.position), quaternion=q_inv)

    def allclose(self, other: Pose, atol: float = 1e-9) -> bool:
        """Same transform within tolerance (q and -q are the same rotation)."""
        if not np.allclose(self.position, other.position, atol=atol):
            return False
        return abs(abs(float(np.dot(self.quaternion, other.quaternion))) - 1.0) <= atol

    def __repr__(self) -> str:
        p = self.position
        q = self.quaternion
        return (
            f"Pose(position=[{p[0]:.3f}, {p[1]:.3f}, {p[2]:.3f}], "
            f"quaternion=[{q[0]:.4f}, {q[1]:.4f}, {q[2]:.4f}, {q[3]:.4f}])"
        )


def identity_pose() -> Pose:
    return Pose(
        position=np.zeros(3, dtype=np.float64),
        quaternion=q_identity(),
    )


def pose_at(x: float, y: float, z: float, quaternion: np.ndarray | None = None) -> Pose:
    return Pose(
        position=np.array([x, y, z], dtype=np.float64),
        quaternion=q_identity() if quaternion is None else quaternion,
    )
