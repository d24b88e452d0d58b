"""Geospatial alignment filter.

Derives a route-frame -> live-frame correction from geospatial anchors that
were created at accurately geolocated crumbs. Raw corrections are noisy at
the meter scale, so they pass through outlier gating, a low-pass on
translation and heading, a consistency count, and an emit deadband before a
correction is handed to the arbitrator.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional, Sequence

import numpy as np

from ..math3d.coords import angle_diff_rad
from ..math3d.quaternion import yaw_to_q
from ..route.pose import Pose
from ..route.sample import GeospatialPose, QualityThresholds, ReferenceSample
from .correction import correction_yaw, leveled_correction
from .events import LiveAnchor

logger = logging.getLogger(__name__)


class AlignmentFilter:
    """Gated low-pass estimate of the geospatial correction.

    ``consider`` is called once per tick and returns a correction only when
    a new, consistent, sufficiently different estimate is available.
    """

    def __init__(
        self,
        thresholds: QualityThresholds | None = None,
        live_thresholds: QualityThresholds | None = None,
        smoothing: float = 0.35,
        max_jump_m: float = 2.0,
        max_jump_deg: float = 15.0,
        min_consistent: int = 3,
        max_rejects: int = 5,
        deadband_m: float = 0.05,
        deadband_deg: float = 1.0,
        enabled: bool = True,
    ):
        self.thresholds = thresholds or QualityThresholds()
        self.live_thresholds = live_thresholds or self.thresholds
        self.smoothing = float(max(0.01, min(1.0, smoothing)))
        self.max_jump_m = float(max(0.0, max_jump_m))
        self.max_jump_rad = math.radians(max(0.0, max_jump_deg))
        self.min_consistent = max(1, int(min_consistent))
        self.max_rejects = max(1, int(max_rejects))
        self.deadband_m = float(max(0.0, deadband_m))
        self.deadband_rad = math.radians(max(0.0, deadband_deg))
        self.enabled = bool(enabled)

        self._samples: list[ReferenceSample] = []
        self.reset()

    def reset(self) -> None:
        self._est_t: np.ndarray | None = None
        self._est_yaw = 0.0
        self._consistent = 0
        self._rejects = 0
        self._last_t: np.ndarray | None = None
        self._last_yaw = 0.0
        self.last_raw: Optional[Pose] = None

    def set_reference_samples(self, samples: Iterable[ReferenceSample]) -> None:
        self._samples = list(samples)
        logger.info(
            "[GEO] %d reference samples, %d pass quality gates",
            len(self._samples),
            len(self.accurate_samples()),
        )

    def accurate_samples(self) -> list[ReferenceSample]:
        return [s for s in self._samples if s.passes_quality(self.thresholds)]

    def samples_needing_anchors(self) -> list[ReferenceSample]:
        return [s for s in self.accurate_samples() if s.anchor_id is None]

    def select_candidate(
        self,
        live_world_pose: Pose,
        candidates: Sequence[LiveAnchor],
    ) -> Optional[tuple[LiveAnchor, ReferenceSample]]:
        """Nearest valid live anchor whose recorded sample passes the gates."""
        by_id = {s.anchor_id: s for s in self.accurate_samples() if s.anchor_id is not None}
        best = None
        best_d = math.inf
        for anchor in candidates:
            if anchor.pose is None:
                continue
            sample = by_id.get(anchor.anchor_id)
            if sample is None:
                continue
            d = float(np.linalg.norm(anchor.pose.position - live_world_pose.position))
            if d < best_d:
                best = (anchor, sample)
                best_d = d
        return best

    def consider(
        self,
        live_geospatial_pose: Optional[GeospatialPose],
        live_world_pose: Pose,
        candidates: Sequence[LiveAnchor],
    ) -> Optional[Pose]:
        if live_geospatial_pose is None or not live_geospatial_pose.passes(self.live_thresholds):
            return None
        match = self.select_candidate(live_world_pose, candidates)
        if match is None:
            return None
        anchor, sample = match
        raw = leveled_correction(anchor.pose, sample.pose)
        self.last_raw = raw
        if not self.enabled:
            return raw
        return self._update(raw, live_geospatial_pose)

    def _seed(self, t: np.ndarray, yaw: float) -> None:
        self._est_t = t.copy()
        self._est_yaw = yaw
        self._consistent = 1
        self._rejects = 0

    def _update(self, raw: Pose, live: GeospatialPose) -> Optional[Pose]:
        t = np.asarray(raw.position, dtype=np.float64)
        yaw = correction_yaw(raw)

        if self._est_t is None:
            self._seed(t, yaw)
        else:
            jump_m = max(self.max_jump_m, 2.0 * live.horizontal_uncertainty)
            dt = float(np.linalg.norm(t - self._est_t))
            dyaw = abs(angle_diff_rad(yaw, self._est_yaw))
            if dt > jump_m or dyaw > self.max_jump_rad:
                self._rejects += 1
                logger.debug(
                    "[GEO] outlier rejected: jump=%.2fm yaw=%.1fdeg (%d in a row)",
                    dt,
                    math.degrees(dyaw),
                    self._rejects,
                )
                if self._rejects >= self.max_rejects:
                    logger.info("[GEO] %d consecutive outliers, re-seeding estimate", self._rejects)
                    self._seed(t, yaw)
                return None
            a = self.smoothing
            self._rejects = 0
            self._est_t = (1.0 - a) * self._est_t + a * t
            self._est_yaw = angle_diff_rad(self._est_yaw + a * angle_diff_rad(yaw, self._est_yaw), 0.0)
            self._consistent += 1

        if self._consistent < self.min_consistent:
            return None

        if self._last_t is not None:
            moved = float(np.linalg.norm(self._est_t - self._last_t))
            turned = abs(angle_diff_rad(self._est_yaw, self._last_yaw))
            if moved <= self.deadband_m and turned <= self.deadband_rad:
                return None

        self._last_t = self._est_t.copy()
        self._last_yaw = self._est_yaw
        return Pose(position=self._est_t, quaternion=yaw_to_q(self._est_yaw))
