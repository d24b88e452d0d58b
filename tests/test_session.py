import math

import numpy as np
import pytest

from crumbnav.control.arbitrator import LocalizationState
from crumbnav.control.controller import NavigationController
from crumbnav.control.display_provider import DisplayProvider
from crumbnav.control.events import (
    AnchorResolvedEvent,
    GeoAnchorCreatedEvent,
    LiveAnchor,
    LiveFrameEvent,
    ResetEvent,
    TrackingStateEvent,
)
from crumbnav.control.geospatial_filter import AlignmentFilter
from crumbnav.control.session import NavigationSession
from crumbnav.control.tracking_monitor import LimitedReason, TrackingState
from crumbnav.route.pose import identity_pose, pose_at
from crumbnav.route.route import Route, RouteAnchorPoint
from crumbnav.route.sample import GeoMetadata, ReferenceSample


def _geo():
    return GeoMetadata(
        latitude=42.36,
        longitude=-71.06,
        altitude=10.0,
        heading=0.0,
        horizontal_uncertainty=0.5,
        altitude_uncertainty=0.5,
        heading_uncertainty=2.0,
    )


def _route():
    leg1 = [(-2.0 + t, 0.0, t) for t in (0.0, 0.5, 1.0, 1.5, 2.0)]
    leg2 = [(t, 0.0, 2.0 - t) for t in (0.5, 1.0, 1.5, 2.0)]
    crumbs = [ReferenceSample(pose=pose_at(*p)) for p in leg1 + leg2]
    crumbs[0].geo = _geo()
    return Route(
        id="r1",
        name="corner",
        crumbs=crumbs,
        cloud_anchors={"c1": pose_at(0.0, 0.0, 2.0)},
        begin_anchor_point=RouteAnchorPoint(pose=pose_at(-2.0, 0.0, 0.0), information="door"),
    )


def _frame(x, z, **kwargs):
    return LiveFrameEvent(world_pose=pose_at(x, 0.0, z), **kwargs)


def test_session_builds_keypoints_and_requests_anchors():
    session = NavigationSession(_route())
    snap = session.snapshot()
    assert len(session.keypoints) == 3
    assert session.pending_anchor_requests == ["c1"]
    assert snap.state is LocalizationState.NONE
    assert snap.next_keypoint_index == 1
    assert snap.live_pose is None and snap.distance_to_next is None


def test_reverse_session_starts_at_route_end():
    route = _route()
    session = NavigationSession(route, reverse=True)
    assert session.keypoints[0].pose is route.crumbs[-1].pose
    assert session.keypoints[-1].pose is route.crumbs[0].pose


def test_live_frames_advance_progress():
    session = NavigationSession(_route())
    session.handle(_frame(0.1, 1.9))
    snap = session.snapshot()
    assert snap.frames == 1
    assert snap.next_keypoint_index == 2
    assert snap.distance_to_next == pytest.approx(math.hypot(1.9, 1.9))


def test_cloud_anchor_resolution_moves_route_geometry():
    session = NavigationSession(_route())
    session.handle(AnchorResolvedEvent(anchor_id="c1", pose=pose_at(0.0, 0.0, 3.0)))
    assert session.current_localization_state() is LocalizationState.CLOUD_ANCHOR_ALIGNED
    np.testing.assert_allclose(session.current_correction().position, [0.0, 0.0, 1.0], atol=1e-12)
    np.testing.assert_allclose(session.aligned_keypoints()[1].position, [0.0, 0.0, 3.0], atol=1e-12)
    np.testing.assert_allclose(session.aligned_cloud_anchors()["c1"].position, [0.0, 0.0, 3.0])
    (point, placed), = session.aligned_anchor_points()
    assert point.information == "door"
    np.testing.assert_allclose(placed.position, [-2.0, 0.0, 1.0], atol=1e-12)

    session.handle(_frame(0.0, 0.0, cloud_anchors=(LiveAnchor("c1", pose_at(0.0, 0.0, 3.5)),)))
    np.testing.assert_allclose(session.current_correction().position, [0.0, 0.0, 1.5], atol=1e-12)
    np.testing.assert_allclose(
        session.snapshot().keypoints[1].position, [0.0, 0.0, 3.5], atol=1e-12
    )


def test_relocalization_overrides_cloud_anchor():
    session = NavigationSession(_route())
    session.handle(AnchorResolvedEvent(anchor_id="c1", pose=pose_at(0.0, 0.0, 3.0)))
    session.handle(TrackingStateEvent(TrackingState.LIMITED, LimitedReason.RELOCALIZING))
    session.handle(TrackingStateEvent(TrackingState.NORMAL, realignment=pose_at(0.0, 0.0, 0.2)))
    assert session.current_localization_state() is LocalizationState.WORLD_MAP_ALIGNED
    before = session.current_correction()
    np.testing.assert_allclose(before.position, [0.0, 0.0, 0.2])

    session.handle(AnchorResolvedEvent(anchor_id="c1", pose=pose_at(5.0, 0.0, 5.0)))
    assert session.current_correction() is before


def test_geospatial_alignment_after_geo_anchor_binding():
    session = NavigationSession(_route(), alignment_filter=AlignmentFilter(min_consistent=1))
    requests = session.geo_anchor_requests()
    assert [i for i, _ in requests] == [0]

    session.handle(GeoAnchorCreatedEvent(crumb_index=0, anchor_id="g0"))
    assert session.geo_anchor_requests() == []

    session.handle(
        _frame(-2.0, 0.0, geospatial=_geo(), geo_anchors=(LiveAnchor("g0", pose_at(-2.0, 0.0, 1.0)),))
    )
    assert session.current_localization_state() is LocalizationState.NONE
    np.testing.assert_allclose(session.current_correction().position, [0.0, 0.0, 1.0], atol=1e-12)


def test_bind_geo_anchor_rejects_unknown_crumb_and_rebinding():
    session = NavigationSession(_route())
    assert not session.bind_geo_anchor(99, "g")
    assert session.bind_geo_anchor(0, "g0")
    assert session.bind_geo_anchor(0, "g0")
    assert not session.bind_geo_anchor(0, "other")


def test_reset_restores_initial_state():
    session = NavigationSession(_route())
    session.handle(AnchorResolvedEvent(anchor_id="c1", pose=pose_at(0.0, 0.0, 3.0)))
    session.handle(_frame(0.0, 3.0))
    session.handle(ResetEvent())
    assert session.current_localization_state() is LocalizationState.NONE
    assert session.current_correction().allclose(identity_pose())
    assert session.progress.next_index == 1
    assert session.pending_anchor_requests == ["c1"]
    assert session.cloud_aligner.last_resolved_id is None


def test_unsupported_event_raises():
    session = NavigationSession(_route())
    with pytest.raises(TypeError, match="Unsupported session event"):
        session.handle(object())


class _RecordingDisplay(DisplayProvider):
    def __init__(self):
        self.frames = []

    def update(self, frame):
        self.frames.append(frame)


def test_controller_throttles_display_updates():
    display = _RecordingDisplay()
    controller = NavigationController(NavigationSession(_route()), display, display_hz=1.0)
    controller.tick(_frame(-2.0, 0.0))
    controller.tick(_frame(-1.9, 0.1))
    assert len(display.frames) == 1
    controller.flush()
    assert len(display.frames) == 2
    assert display.frames[-1].frames == 2
    assert controller.events == 2
