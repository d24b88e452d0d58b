"""Route loading from JSON.

Expected document:
{
  "id": "r1",
  "name": "Front door to lab",
  "date_created": "2024-05-01T10:00:00",
  "crumbs": [
    {"pose": {"position": [x, y, z], "quaternion": [w, x, y, z]},
     "geo": {"latitude": .., "longitude": .., "altitude": .., "heading": ..,
             "horizontal_uncertainty": .., "altitude_uncertainty": ..,
             "heading_uncertainty": ..},
     "anchor_id": null}
  ],
  "cloud_anchors": {"<cloud id>": {"position": [...], "quaternion": [...]}},
  "begin_anchor_point": {"pose": {...}, "information": "...", "voice_note": null},
  "end_anchor_point": {...},
  "intermediate_anchor_points": [{...}]
}
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import numpy as np

from .pose import Pose
from .route import Route, RouteAnchorPoint
from .sample import GeoMetadata, ReferenceSample

_GEO_FIELDS = (
    "latitude",
    "longitude",
    "altitude",
    "heading",
    "horizontal_uncertainty",
    "altitude_uncertainty",
    "heading_uncertainty",
)


class RouteFormatError(ValueError):
    """Raised when a route document cannot be interpreted."""


def pose_from_dict(payload: Any) -> Optional[Pose]:
    """Pose from {"position": [...], "quaternion": [...]}, or None if malformed."""
    if not isinstance(payload, dict):
        return None
    position = payload.get("position")
    quaternion = payload.get("quaternion")
    if position is None or quaternion is None:
        return None
    try:
        p = np.asarray(position, dtype=np.float64).reshape(-1)
        q = np.asarray(quaternion, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError):
        return None
    if p.size != 3 or q.size != 4:
        return None
    if not np.isfinite(p).all() or not np.isfinite(q).all():
        return None
    return Pose(position=p, quaternion=q)


def pose_to_dict(pose: Pose) -> dict[str, list[float]]:
    return {
        "position": [float(v) for v in pose.position],
        "quaternion": [float(v) for v in pose.quaternion],
    }


def geo_from_dict(payload: Any) -> Optional[GeoMetadata]:
    """GeoMetadata from a dict, or None if fields are missing or invalid."""
    if not isinstance(payload, dict):
        return None
    try:
        values = {name: float(payload[name]) for name in _GEO_FIELDS}
        return GeoMetadata(**values)
    except (KeyError, TypeError, ValueError):
        return None


def _require_pose(payload: Any, where: str) -> Pose:
    pose = pose_from_dict(payload)
    if pose is None:
        raise RouteFormatError(f"invalid pose at {where}")
    return pose


def _anchor_point_from_dict(payload: Any, where: str) -> RouteAnchorPoint:
    if payload is None:
        return RouteAnchorPoint()
    if not isinstance(payload, dict):
        raise RouteFormatError(f"{where} must be an object")
    raw_pose = payload.get("pose")
    return RouteAnchorPoint(
        pose=None if raw_pose is None else _require_pose(raw_pose, f"{where}.pose"),
        information=payload.get("information"),
        voice_note=payload.get("voice_note"),
    )


def _crumb_from_dict(payload: Any, where: str) -> ReferenceSample:
    if not isinstance(payload, dict):
        raise RouteFormatError(f"{where} must be an object")
    pose = _require_pose(payload.get("pose"), f"{where}.pose")
    geo = None
    if payload.get("geo") is not None:
        geo = geo_from_dict(payload["geo"])
        if geo is None:
            raise RouteFormatError(f"invalid geospatial metadata at {where}.geo")
    anchor_id = payload.get("anchor_id")
    return ReferenceSample(
        pose=pose,
        geo=geo,
        anchor_id=None if anchor_id is None else str(anchor_id),
    )


def route_from_dict(data: Any) -> Route:
    if not isinstance(data, dict):
        raise RouteFormatError(f"route root must be an object, got {type(data).__name__}")
    for key in ("id", "crumbs"):
        if key not in data:
            raise RouteFormatError(f"route is missing required key '{key}'")
    raw_crumbs = data["crumbs"]
    if not isinstance(raw_crumbs, list) or not raw_crumbs:
        raise RouteFormatError("'crumbs' must be a non-empty list")

    crumbs = [_crumb_from_dict(c, f"crumbs[{i}]") for i, c in enumerate(raw_crumbs)]

    raw_anchors = data.get("cloud_anchors") or {}
    if not isinstance(raw_anchors, dict):
        raise RouteFormatError("'cloud_anchors' must be an object")
    cloud_anchors = {
        str(k): _require_pose(v, f"cloud_anchors[{k!r}]") for k, v in raw_anchors.items()
    }

    date_created = None
    if data.get("date_created"):
        try:
            date_created = datetime.fromisoformat(str(data["date_created"]))
        except ValueError as exc:
            raise RouteFormatError(f"invalid date_created: {data['date_created']!r}") from exc

    raw_intermediate = data.get("intermediate_anchor_points") or []
    if not isinstance(raw_intermediate, list):
        raise RouteFormatError("'intermediate_anchor_points' must be a list")

    return Route(
        id=str(data["id"]),
        name=str(data.get("name", data["id"])),
        crumbs=crumbs,
        cloud_anchors=cloud_anchors,
        date_created=date_created,
        begin_anchor_point=_anchor_point_from_dict(
            data.get("begin_anchor_point"), "begin_anchor_point"
        ),
        end_anchor_point=_anchor_point_from_dict(data.get("end_anchor_point"), "end_anchor_point"),
        intermediate_anchor_points=[
            _anchor_point_from_dict(p, f"intermediate_anchor_points[{i}]")
            for i, p in enumerate(raw_intermediate)
        ],
    )


def load_route(path: str) -> Route:
    p = Path(path)
    if not p.is_file():
        raise RouteFormatError(f"route file not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RouteFormatError(f"failed to read route file {p}: {exc}") from exc
    return route_from_dict(data)
