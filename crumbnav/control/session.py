"""Navigation session: the per-tick alignment pipeline for one route."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..route.path_finder import PATH_WIDTH, Keypoint, PathFinder
from ..route.pose import Pose
from ..route.progress import KeypointProgress
from ..route.route import Route, RouteAnchorPoint
from ..route.sample import GeospatialPose, ReferenceSample
from .arbitrator import AlignmentArbitrator, CorrectionUpdate, LocalizationState
from .cloud_anchor_alignment import CloudAnchorAligner
from .events import (
    AnchorResolvedEvent,
    GeoAnchorCreatedEvent,
    LiveAnchor,
    LiveFrameEvent,
    RelocalizationEvent,
    ResetEvent,
    SessionEvent,
    TrackingStateEvent,
)
from .geospatial_filter import AlignmentFilter
from .tracking_monitor import LimitedReason, TrackingState, TrackingStateMonitor

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Read-only view of the session for displays."""

    route_name: str
    frames: int
    live_pose: Optional[Pose]
    geospatial: Optional[GeospatialPose]
    correction: Pose
    state: LocalizationState
    keypoints: tuple[Keypoint, ...]
    next_keypoint_index: int
    distance_to_next: Optional[float]
    finished: bool


class NavigationSession:
    """Owns the alignment state for one navigation run.

    All mutation happens on the thread that feeds events (one tick per live
    frame). Other threads may only read ``current_correction()`` /
    ``current_localization_state()`` / ``snapshot()``, which return
    immutable values.
    """

    def __init__(
        self,
        route: Route,
        alignment_filter: AlignmentFilter | None = None,
        cloud_aligner: CloudAnchorAligner | None = None,
        arbitrator: AlignmentArbitrator | None = None,
        tracking_monitor: TrackingStateMonitor | None = None,
        path_width: float = PATH_WIDTH,
        keypoint_radius: float = 0.5,
        reverse: bool = False,
    ):
        self.alignment_filter = alignment_filter or AlignmentFilter()
        self.cloud_aligner = cloud_aligner or CloudAnchorAligner()
        self.arbitrator = arbitrator or AlignmentArbitrator()
        self.tracking_monitor = tracking_monitor or TrackingStateMonitor()
        self.path_width = float(path_width)
        self.keypoint_radius = float(keypoint_radius)

        self.frames = 0
        self.last_world_pose: Optional[Pose] = None
        self.last_geospatial: Optional[GeospatialPose] = None
        self.pending_anchor_requests: list[str] = []
        self._aligned_keypoints: list[Keypoint] = []

        self.arbitrator.add_listener(self._on_correction)
        self.load_route(route, reverse=reverse)

    # Route --------------------------------------------------------------

    def load_route(self, route: Route, reverse: bool = False) -> None:
        self.route = route
        self.reverse = bool(reverse)
        crumbs = route.crumbs_for(self.reverse)
        self.crumbs = crumbs
        self.keypoints = PathFinder(crumbs, self.path_width).keypoints
        self.progress = KeypointProgress(self.keypoints, self.keypoint_radius)
        self.alignment_filter.set_reference_samples(crumbs)
        self.pending_anchor_requests = self.cloud_aligner.set_recorded_anchors(route.cloud_anchors)
        self._recompute_geometry()
        logger.info(
            "[ROUTE] loaded '%s': %d crumbs -> %d keypoints (width=%.2fm, reverse=%s)",
            route.name,
            len(crumbs),
            len(self.keypoints),
            self.path_width,
            self.reverse,
        )

    def _recompute_geometry(self) -> None:
        correction = self.arbitrator.current_correction()
        self._aligned_keypoints = [kp.corrected(correction) for kp in self.keypoints]

    def _on_correction(self, update: CorrectionUpdate) -> None:
        self._recompute_geometry()
        logger.debug(
            "[ALIGN] %s correction accepted, relative shift=%r", update.source.value, update.relative
        )

    def aligned_keypoints(self) -> list[Keypoint]:
        return list(self._aligned_keypoints)

    def aligned_cloud_anchors(self) -> dict[str, Pose]:
        correction = self.arbitrator.current_correction()
        return {
            anchor_id: correction.compose(pose)
            for anchor_id, pose in self.cloud_aligner.recorded_anchors().items()
        }

    def aligned_anchor_points(self) -> list[tuple[RouteAnchorPoint, Pose]]:
        correction = self.arbitrator.current_correction()
        return [(p, correction.compose(p.pose)) for p in self.route.anchor_points()]

    # Snapshots ----------------------------------------------------------

    def current_correction(self) -> Pose:
        return self.arbitrator.current_correction()

    def current_localization_state(self) -> LocalizationState:
        return self.arbitrator.current_localization_state()

    def snapshot(self) -> SessionSnapshot:
        correction = self.arbitrator.current_correction()
        distance = None
        if self.last_world_pose is not None:
            distance = self.progress.distance_to_next(self.last_world_pose.position, correction)
        return SessionSnapshot(
            route_name=self.route.name,
            frames=self.frames,
            live_pose=self.last_world_pose,
            geospatial=self.last_geospatial,
            correction=correction,
            state=self.arbitrator.current_localization_state(),
            keypoints=tuple(self._aligned_keypoints),
            next_keypoint_index=self.progress.next_index,
            distance_to_next=distance,
            finished=self.progress.finished,
        )

    # Inputs -------------------------------------------------------------

    def on_live_frame(
        self,
        live_world_pose: Pose,
        live_geospatial_pose: Optional[GeospatialPose] = None,
        geo_anchors: Sequence[LiveAnchor] = (),
        cloud_anchors: Sequence[LiveAnchor] = (),
    ) -> None:
        self.frames += 1
        self.last_world_pose = live_world_pose
        self.last_geospatial = live_geospatial_pose

        # The arbitrator decides whether these corrections are applied or only logged.
        for anchor in cloud_anchors:
            correction = self.cloud_aligner.on_updated(anchor.anchor_id, anchor.pose)
            if correction is not None:
                self.arbitrator.propose_cloud_anchor(correction)

        correction = self.alignment_filter.consider(
            live_geospatial_pose, live_world_pose, geo_anchors
        )
        if correction is not None:
            self.arbitrator.propose_geospatial(correction)

        self.progress.update(live_world_pose.position, self.arbitrator.current_correction())

    def geo_anchor_requests(self) -> list[tuple[int, ReferenceSample]]:
        """Accurate crumbs (travel-order index, sample) still waiting for a live geo anchor."""
        waiting = {id(s) for s in self.alignment_filter.samples_needing_anchors()}
        return [(i, s) for i, s in enumerate(self.crumbs) if id(s) in waiting]

    def bind_geo_anchor(self, crumb_index: int, anchor_id: str) -> bool:
        if not 0 <= crumb_index < len(self.crumbs):
            logger.warning("[GEO] geo anchor %s for unknown crumb %d", anchor_id, crumb_index)
            return False
        try:
            self.crumbs[crumb_index].bind_anchor(anchor_id)
        except ValueError:
            logger.warning("[GEO] crumb %d already bound, ignoring %s", crumb_index, anchor_id)
            return False
        return True

    def on_anchor_resolved(self, anchor_id: str, live_anchor_pose: Pose) -> None:
        correction = self.cloud_aligner.on_resolved(anchor_id, live_anchor_pose)
        if correction is not None:
            self.arbitrator.propose_cloud_anchor(correction)

    def on_tracking_state(
        self,
        state: TrackingState,
        reason: Optional[LimitedReason] = None,
        realignment: Optional[Pose] = None,
    ) -> None:
        if self.tracking_monitor.update(state, reason):
            self.on_relocalization(realignment)

    def on_relocalization(self, realignment_pose: Optional[Pose] = None) -> None:
        self.arbitrator.relocalized(realignment_pose)
        logger.info(
            "[ROUTE] relocalized, %d keypoints re-placed from the recorded map",
            len(self._aligned_keypoints),
        )

    def reset(self) -> None:
        self.arbitrator.reset()
        self.alignment_filter.reset()
        self.pending_anchor_requests = self.cloud_aligner.reset()
        self.tracking_monitor.reset()
        self.progress.reset()
        self._recompute_geometry()
        logger.info("[ROUTE] session reset")

    def handle(self, event: SessionEvent) -> None:
        if isinstance(event, LiveFrameEvent):
            self.on_live_frame(
                event.world_pose, event.geospatial, event.geo_anchors, event.cloud_anchors
            )
        elif isinstance(event, AnchorResolvedEvent):
            self.on_anchor_resolved(event.anchor_id, event.pose)
        elif isinstance(event, GeoAnchorCreatedEvent):
            self.bind_geo_anchor(event.crumb_index, event.anchor_id)
        elif isinstance(event, TrackingStateEvent):
            self.on_tracking_state(event.state, event.reason, event.realignment)
        elif isinstance(event, RelocalizationEvent):
            self.on_relocalization(event.realignment)
        elif isinstance(event, ResetEvent):
            self.reset()
        else:
            raise TypeError(f"Unsupported session event: {type(event).__name__}")
