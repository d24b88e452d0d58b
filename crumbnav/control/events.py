"""Session events and their JSON packet schema.

Every line of a replay file (and every UDP bridge packet) is one JSON
object with a "type" field:

  {"type": "frame", "t": 0.0,
   "pose": {"position": [x, y, z], "quaternion": [w, x, y, z]},
   "geospatial": {...GeoMetadata fields...} | null,
   "geo_anchors": [{"id": "g1", "pose": {...} | null}],
   "cloud_anchors": [{"id": "c1", "pose": {...}}]}
  {"type": "anchor_resolved", "id": "c1", "pose": {...}}
  {"type": "geo_anchor_created", "crumb_index": 12, "id": "g1"}
  {"type": "tracking", "state": "limited", "reason": "relocalizing"}
  {"type": "relocalized", "realignment": {...} | null}
  {"type": "reset"}

Malformed packets parse to None; they are never raised.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ..route.pose import Pose
from ..route.route_io import geo_from_dict, pose_from_dict
from ..route.sample import GeospatialPose
from .tracking_monitor import LimitedReason, TrackingState


@dataclass(frozen=True, slots=True)
class LiveAnchor:
    """A live anchor as seen this frame; pose is None while it has no valid transform."""

    anchor_id: str
    pose: Optional[Pose] = None


@dataclass(frozen=True, slots=True)
class LiveFrameEvent:
    world_pose: Pose
    geospatial: Optional[GeospatialPose] = None
    geo_anchors: tuple[LiveAnchor, ...] = field(default_factory=tuple)
    cloud_anchors: tuple[LiveAnchor, ...] = field(default_factory=tuple)
    t: Optional[float] = None


@dataclass(frozen=True, slots=True)
class AnchorResolvedEvent:
    anchor_id: str
    pose: Pose
    t: Optional[float] = None


@dataclass(frozen=True, slots=True)
class GeoAnchorCreatedEvent:
    """A live geospatial anchor was created for the crumb at crumb_index."""

    crumb_index: int
    anchor_id: str
    t: Optional[float] = None


@dataclass(frozen=True, slots=True)
class TrackingStateEvent:
    state: TrackingState
    reason: Optional[LimitedReason] = None
    realignment: Optional[Pose] = None
    t: Optional[float] = None


@dataclass(frozen=True, slots=True)
class RelocalizationEvent:
    realignment: Optional[Pose] = None
    t: Optional[float] = None


@dataclass(frozen=True, slots=True)
class ResetEvent:
    t: Optional[float] = None


SessionEvent = Union[
    LiveFrameEvent,
    AnchorResolvedEvent,
    GeoAnchorCreatedEvent,
    TrackingStateEvent,
    RelocalizationEvent,
    ResetEvent,
]


def _parse_time(payload: dict) -> Optional[float]:
    t = payload.get("t")
    if t is None:
        return None
    try:
        return float(t)
    except (TypeError, ValueError):
        return None


def _parse_live_anchors(raw: Any) -> Optional[tuple[LiveAnchor, ...]]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        return None
    anchors = []
    for item in raw:
        if not isinstance(item, dict) or item.get("id") is None:
            return None
        raw_pose = item.get("pose")
        pose = None if raw_pose is None else pose_from_dict(raw_pose)
        if raw_pose is not None and pose is None:
            return None
        anchors.append(LiveAnchor(anchor_id=str(item["id"]), pose=pose))
    return tuple(anchors)


def _parse_optional_pose(raw: Any) -> tuple[bool, Optional[Pose]]:
    if raw is None:
        return True, None
    pose = pose_from_dict(raw)
    return pose is not None, pose


def _parse_frame(payload: dict, t: Optional[float]) -> Optional[LiveFrameEvent]:
    pose = pose_from_dict(payload.get("pose"))
    if pose is None:
        return None
    geospatial = None
    if payload.get("geospatial") is not None:
        geospatial = geo_from_dict(payload["geospatial"])
        if geospatial is None:
            return None
    geo_anchors = _parse_live_anchors(payload.get("geo_anchors"))
    cloud_anchors = _parse_live_anchors(payload.get("cloud_anchors"))
    if geo_anchors is None or cloud_anchors is None:
        return None
    return LiveFrameEvent(
        world_pose=pose,
        geospatial=geospatial,
        geo_anchors=geo_anchors,
        cloud_anchors=cloud_anchors,
        t=t,
    )


def _parse_tracking(payload: dict, t: Optional[float]) -> Optional[TrackingStateEvent]:
    try:
        state = TrackingState(str(payload.get("state", "")).lower())
        raw_reason = payload.get("reason")
        reason = None if raw_reason is None else LimitedReason(str(raw_reason).lower())
    except ValueError:
        return None
    ok, realignment = _parse_optional_pose(payload.get("realignment"))
    if not ok:
        return None
    return TrackingStateEvent(state=state, reason=reason, realignment=realignment, t=t)


def parse_event_payload(payload: Any) -> Optional[SessionEvent]:
    if not isinstance(payload, dict):
        return None
    kind = payload.get("type")
    t = _parse_time(payload)

    if kind == "frame":
        return _parse_frame(payload, t)
    if kind == "anchor_resolved":
        pose = pose_from_dict(payload.get("pose"))
        if pose is None or payload.get("id") is None:
            return None
        return AnchorResolvedEvent(anchor_id=str(payload["id"]), pose=pose, t=t)
    if kind == "geo_anchor_created":
        index = payload.get("crumb_index")
        if payload.get("id") is None or isinstance(index, bool) or not isinstance(index, int):
            return None
        return GeoAnchorCreatedEvent(crumb_index=index, anchor_id=str(payload["id"]), t=t)
    if kind == "tracking":
        return _parse_tracking(payload, t)
    if kind == "relocalized":
        ok, realignment = _parse_optional_pose(payload.get("realignment"))
        if not ok:
            return None
        return RelocalizationEvent(realignment=realignment, t=t)
    if kind == "reset":
        return ResetEvent(t=t)
    return None


def parse_event_line(data: Union[bytes, str]) -> Optional[SessionEvent]:
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        payload = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return parse_event_payload(payload)
