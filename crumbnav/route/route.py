"""Recorded route model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .pose import Pose
from .sample import ReferenceSample


@dataclass(slots=True)
class RouteAnchorPoint:
    """A named spot on the route (start, end, or a note along the way)."""

    pose: Optional[Pose] = None
    information: Optional[str] = None
    voice_note: Optional[str] = None


@dataclass(slots=True)
class Route:
    """Everything recorded for one route.

    crumbs are ordered start -> end; cloud_anchors maps a hosted anchor id to
    its pose in the recording frame.
    """

    id: str
    name: str
    crumbs: list[ReferenceSample]
    cloud_anchors: dict[str, Pose] = field(default_factory=dict)
    date_created: Optional[datetime] = None
    begin_anchor_point: RouteAnchorPoint = field(default_factory=RouteAnchorPoint)
    end_anchor_point: RouteAnchorPoint = field(default_factory=RouteAnchorPoint)
    intermediate_anchor_points: list[RouteAnchorPoint] = field(default_factory=list)

    def crumbs_for(self, reverse: bool = False) -> list[ReferenceSample]:
        """Crumbs in travel order (end -> start when reverse)."""
        return list(reversed(self.crumbs)) if reverse else list(self.crumbs)

    def anchor_points(self) -> list[RouteAnchorPoint]:
        points = [self.begin_anchor_point, *self.intermediate_anchor_points, self.end_anchor_point]
        return [p for p in points if p.pose is not None]
