"""Turns raw tracking-state reports into relocalization events.

Tracking subsystems report erratic sequences (for example
initializing -> normal -> not available -> initializing -> relocalizing), so
a relocalization only counts once a relocalizing episode is followed by
normal tracking.
"""

from __future__ import annotations

import enum
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class TrackingState(enum.Enum):
    NOT_AVAILABLE = "not_available"
    LIMITED = "limited"
    NORMAL = "normal"


class LimitedReason(enum.Enum):
    INITIALIZING = "initializing"
    RELOCALIZING = "relocalizing"
    EXCESSIVE_MOTION = "excessive_motion"
    INSUFFICIENT_FEATURES = "insufficient_features"


class TrackingStateMonitor:
    def __init__(self):
        self.was_relocalizing = False

    def update(self, state: TrackingState, reason: Optional[LimitedReason] = None) -> bool:
        """Return True when this report completes a relocalization."""
        if state is TrackingState.LIMITED:
            if reason is LimitedReason.RELOCALIZING:
                if not self.was_relocalizing:
                    logger.info("[TRACK] relocalizing")
                self.was_relocalizing = True
            elif reason in (LimitedReason.EXCESSIVE_MOTION, LimitedReason.INSUFFICIENT_FEATURES):
                logger.warning("[TRACK] tracking limited: %s", reason.value)
            return False

        if state is TrackingState.NORMAL and self.was_relocalizing:
            self.was_relocalizing = False
            logger.info("[TRACK] relocalization complete")
            return True
        return False

    def reset(self) -> None:
        self.was_relocalizing = False
