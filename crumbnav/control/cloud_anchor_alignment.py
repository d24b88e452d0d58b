"""Alignment from resolved cloud anchors."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from ..route.pose import Pose
from .correction import leveled_correction

logger = logging.getLogger(__name__)


class CloudAnchorAligner:
    """Computes corrections from cloud anchors recorded with the route.

    Each ``set_recorded_anchors`` call starts a new resolution batch;
    resolutions for ids outside the current batch are stale and dropped.
    Only the most recently resolved anchor may refine the correction on
    later frames.
    """

    def __init__(self, max_anchors: int = 20):
        self.max_anchors = int(max_anchors)
        self._recorded: dict[str, Pose] = {}
        self._requested: set[str] = set()
        self.last_resolved_id: Optional[str] = None

    def set_recorded_anchors(self, anchors: Mapping[str, Pose]) -> list[str]:
        """Start a new batch; returns the anchor ids to request resolution for."""
        self._recorded = dict(anchors)
        self._requested = set(self._recorded)
        self.last_resolved_id = None
        if len(self._recorded) > self.max_anchors:
            logger.warning(
                "[CLOUD] too many cloud anchors (%d > %d), results may be unpredictable",
                len(self._recorded),
                self.max_anchors,
            )
        for anchor_id in sorted(self._requested):
            logger.debug("[CLOUD] requesting resolution of %s", anchor_id)
        return sorted(self._requested)

    def recorded_anchors(self) -> dict[str, Pose]:
        return dict(self._recorded)

    def on_resolved(self, anchor_id: str, live_pose: Pose) -> Optional[Pose]:
        if anchor_id not in self._requested:
            logger.debug("[CLOUD] ignoring stale resolution of %s", anchor_id)
            return None
        self.last_resolved_id = anchor_id
        logger.info("[CLOUD] anchor %s resolved", anchor_id)
        return leveled_correction(live_pose, self._recorded[anchor_id])

    def on_updated(self, anchor_id: str, live_pose: Optional[Pose]) -> Optional[Pose]:
        if live_pose is None or anchor_id != self.last_resolved_id:
            return None
        return leveled_correction(live_pose, self._recorded[anchor_id])

    def reset(self) -> list[str]:
        """Forget resolutions and re-request the current batch."""
        return self.set_recorded_anchors(self._recorded)
