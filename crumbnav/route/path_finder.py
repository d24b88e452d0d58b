"""Crumb trail -> keypoint simplification.

A recorded route is a dense trail of poses ("crumbs"). Navigation only needs
the turns, so the trail is reduced with a 3D Ramer-Douglas-Peucker variant:
distance from the chord is measured in the plane spanned by a horizontal
normal and a second normal that picks up vertical changes (stairs).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

import numpy as np

from ..math3d.coords import DEFAULT_AXIS, horizontal, horizontal_normal, normalize_or
from .pose import Pose
from .sample import ReferenceSample

logger = logging.getLogger(__name__)

# Maximum half-width of the walked path in meters. Crumbs farther than this
# from the chord between two keypoints force another keypoint.
PATH_WIDTH = 0.3

_ZERO = np.zeros(3, dtype=np.float64)


@dataclass(frozen=True, slots=True, eq=False)
class Keypoint:
    """A turn on the route.

    index:
      Index of the source crumb in the trail.
    previous:
      Pose of the preceding keypoint, or None for the first one.
    """

    pose: Pose
    index: int
    previous: Optional[Pose] = None

    @property
    def position(self) -> np.ndarray:
        return self.pose.position

    @property
    def orientation(self) -> np.ndarray:
        """Horizontal unit vector pointing back toward the previous keypoint."""
        if self.previous is None:
            return DEFAULT_AXIS.copy()
        delta = horizontal(self.previous.position - self.pose.position)
        return normalize_or(delta, DEFAULT_AXIS)

    def corrected(self, correction: Pose) -> Keypoint:
        return Keypoint(
            pose=correction.compose(self.pose),
            index=self.index,
            previous=None if self.previous is None else correction.compose(self.previous),
        )


def _segment_basis(first: np.ndarray, last: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    d = last - first
    u_d = normalize_or(d, _ZERO)
    # Vertical chord: no horizontal normal, distance becomes horizontal offset.
    fallback = DEFAULT_AXIS if u_d.any() else _ZERO
    u_n = normalize_or(horizontal_normal(d), fallback)
    u_v = np.cross(u_d, u_n)
    return u_v, u_n


def _farthest_crumb(positions: np.ndarray, lo: int, hi: int) -> tuple[int, float]:
    """Index and distance of the crumb in [lo, hi] farthest from the chord.

    Ties resolve to the first occurrence.
    """
    first = positions[lo]
    u_v, u_n = _segment_basis(first, positions[hi])
    rel = positions[lo : hi + 1] - first
    a = rel @ u_v
    b = rel @ u_n
    dists = np.sqrt(a * a + b * b)
    k = int(np.argmax(dists))
    return lo + k, float(dists[k])


def _interior_indices(positions: np.ndarray, width: float) -> list[int]:
    """Split indices strictly between the endpoints, in trail order.

    Work-stack form of the recursive split; every split index falls strictly
    inside its segment, so sorting reproduces the recursive ordering.
    """
    found: list[int] = []
    stack = [(0, len(positions) - 1)]
    while stack:
        lo, hi = stack.pop()
        if hi - lo < 2:
            continue
        idx, dist = _farthest_crumb(positions, lo, hi)
        if dist > width and lo < idx < hi:
            found.append(idx)
            stack.append((idx, hi))
            stack.append((lo, idx))
    found.sort()
    return found


def _as_pose(crumb: Union[Pose, ReferenceSample]) -> Pose:
    if isinstance(crumb, ReferenceSample):
        return crumb.pose
    return crumb


def simplify(
    crumbs: Sequence[Union[Pose, ReferenceSample]],
    width: float = PATH_WIDTH,
) -> list[Keypoint]:
    """Reduce an ordered crumb trail to ordered keypoints.

    The first and last crumbs are always keypoints; interior keypoints are
    input crumbs, never interpolated.
    """
    if not math.isfinite(width) or width <= 0.0:
        raise ValueError(f"path width must be > 0, got {width}")
    poses = [_as_pose(c) for c in crumbs]
    if not poses:
        logger.warning("[ROUTE] simplify called with an empty crumb trail")
        return []

    positions = np.vstack([p.position for p in poses])
    indices = [0] + _interior_indices(positions, width) + [len(poses) - 1]

    keypoints: list[Keypoint] = []
    previous: Optional[Pose] = None
    for idx in indices:
        keypoints.append(Keypoint(pose=poses[idx], index=idx, previous=previous))
        previous = poses[idx]
    return keypoints


class PathFinder:
    """Computes keypoints for a crumb trail ordered in the direction of travel."""

    def __init__(
        self,
        crumbs: Iterable[Union[Pose, ReferenceSample]],
        width: float = PATH_WIDTH,
    ):
        self.crumbs = list(crumbs)
        self.width = float(width)

    @property
    def keypoints(self) -> list[Keypoint]:
        return simplify(self.crumbs, self.width)
