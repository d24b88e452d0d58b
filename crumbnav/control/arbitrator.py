"""Localization-state machine deciding which correction source wins.

Precedence, strongest first:
  world map   - relocalized against the recording session's own map
  cloud anchor - independently verified by the anchor service
  geospatial  - meter-scale, only used until something better arrives
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..route.pose import Pose, identity_pose

logger = logging.getLogger(__name__)


class LocalizationState(enum.Enum):
    NONE = "none"
    CLOUD_ANCHOR_ALIGNED = "cloud_anchor_aligned"
    WORLD_MAP_ALIGNED = "world_map_aligned"


class CorrectionSource(enum.Enum):
    RESET = "reset"
    GEOSPATIAL = "geospatial"
    CLOUD_ANCHOR = "cloud_anchor"
    WORLD_MAP = "world_map"


@dataclass(frozen=True, slots=True)
class CorrectionUpdate:
    """An accepted correction change.

    relative maps geometry placed with the previous correction onto the new
    one: relative = correction * previous^-1.
    """

    previous: Pose
    correction: Pose
    relative: Pose
    state: LocalizationState
    source: CorrectionSource


CorrectionListener = Callable[[CorrectionUpdate], None]


class AlignmentArbitrator:
    def __init__(self):
        self._state = LocalizationState.NONE
        self._correction = identity_pose()
        self._listeners: list[CorrectionListener] = []

    def current_correction(self) -> Pose:
        return self._correction

    def current_localization_state(self) -> LocalizationState:
        return self._state

    def add_listener(self, listener: CorrectionListener) -> None:
        self._listeners.append(listener)

    def _apply(self, correction: Pose, state: LocalizationState, source: CorrectionSource) -> None:
        previous = self._correction
        if state is not self._state:
            logger.info("[ALIGN] localization %s -> %s", self._state.value, state.value)
        self._state = state
        self._correction = correction
        update = CorrectionUpdate(
            previous=previous,
            correction=correction,
            relative=correction.compose(previous.inverse()),
            state=state,
            source=source,
        )
        for listener in self._listeners:
            listener(update)

    def propose_geospatial(self, correction: Pose) -> bool:
        """Apply a geospatial correction unless a stronger source is in force."""
        if self._state is not LocalizationState.NONE:
            logger.debug(
                "[ALIGN] geospatial correction not applied in state %s: %r",
                self._state.value,
                correction,
            )
            return False
        logger.info("[ALIGN] geospatial correction applied: %r", correction)
        self._apply(correction, LocalizationState.NONE, CorrectionSource.GEOSPATIAL)
        return True

    def propose_cloud_anchor(self, correction: Pose) -> bool:
        if self._state is LocalizationState.WORLD_MAP_ALIGNED:
            logger.debug("[ALIGN] cloud anchor correction deferred to world map: %r", correction)
            return False
        self._apply(
            correction, LocalizationState.CLOUD_ANCHOR_ALIGNED, CorrectionSource.CLOUD_ANCHOR
        )
        return True

    def relocalized(self, realignment: Optional[Pose] = None) -> None:
        """World-map relocalization: identity composed with the tracker's realignment."""
        correction = identity_pose()
        if realignment is not None:
            correction = correction.compose(realignment)
        self._apply(correction, LocalizationState.WORLD_MAP_ALIGNED, CorrectionSource.WORLD_MAP)

    def reset(self) -> None:
        if self._state is LocalizationState.NONE and self._correction.allclose(identity_pose()):
            return
        self._apply(identity_pose(), LocalizationState.NONE, CorrectionSource.RESET)
