"""Keypoint check-off along a route."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from ..math3d.coords import horizontal_distance
from .path_finder import Keypoint
from .pose import Pose

logger = logging.getLogger(__name__)


class KeypointProgress:
    """Tracks the next keypoint the user still has to reach.

    Keypoint 0 is the start of the route and counts as reached.
    """

    def __init__(self, keypoints: Sequence[Keypoint], reached_radius: float = 0.5):
        if reached_radius <= 0.0:
            raise ValueError(f"reached radius must be > 0, got {reached_radius}")
        self.keypoints = list(keypoints)
        self.reached_radius = float(reached_radius)
        self.next_index = min(1, len(self.keypoints))

    @property
    def finished(self) -> bool:
        return self.next_index >= len(self.keypoints)

    @property
    def next_keypoint(self) -> Optional[Keypoint]:
        if self.finished:
            return None
        return self.keypoints[self.next_index]

    def distance_to_next(self, position: np.ndarray, correction: Pose) -> Optional[float]:
        kp = self.next_keypoint
        if kp is None:
            return None
        target = correction.transform_point(kp.position)
        return horizontal_distance(position, target)

    def update(self, position: np.ndarray, correction: Pose) -> Optional[int]:
        """Check off reached keypoints; return the last index reached, if any."""
        reached = None
        while not self.finished:
            dist = self.distance_to_next(position, correction)
            if dist is None or dist >= self.reached_radius:
                break
            reached = self.next_index
            logger.info("[ROUTE] keypoint %d/%d reached", reached, len(self.keypoints) - 1)
            self.next_index += 1
        return reached

    def reset(self) -> None:
        self.next_index = min(1, len(self.keypoints))
