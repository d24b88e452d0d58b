"""Recorded reference samples and geospatial metadata."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from ..math3d.coords import heading_to_eus_yaw
from ..math3d.quaternion import yaw_to_q
from .pose import Pose


@dataclass(frozen=True, slots=True)
class QualityThresholds:
    """Upper bounds (exclusive) for a geospatial fix to count as "excellent".

    heading_max is in degrees, the other two in meters.
    """

    heading_max: float = 10.0
    altitude_max: float = 1.5
    horizontal_max: float = 1.5


@dataclass(frozen=True, slots=True)
class GeoMetadata:
    latitude: float
    longitude: float
    altitude: float
    heading: float
    horizontal_uncertainty: float
    altitude_uncertainty: float
    heading_uncertainty: float

    def __post_init__(self) -> None:
        for name in ("horizontal_uncertainty", "altitude_uncertainty", "heading_uncertainty"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0.0:
                raise ValueError(f"{name} must be a non-negative finite number, got {value!r}")

    def passes(self, thresholds: QualityThresholds) -> bool:
        return (
            self.heading_uncertainty < thresholds.heading_max
            and self.altitude_uncertainty < thresholds.altitude_max
            and self.horizontal_uncertainty < thresholds.horizontal_max
        )


# A live geospatial fix carries the same fields as recorded metadata.
GeospatialPose = GeoMetadata


@dataclass(slots=True)
class ReferenceSample:
    """A recorded crumb: pose plus optional geospatial metadata.

    ``anchor_id`` links the sample to the live geospatial anchor created for
    it during navigation; it is bound once and never changed.
    """

    pose: Pose
    geo: Optional[GeoMetadata] = None
    anchor_id: Optional[str] = field(default=None)

    def bind_anchor(self, anchor_id: str) -> None:
        if self.anchor_id is not None:
            if self.anchor_id == anchor_id:
                return
            raise ValueError(
                f"sample already bound to anchor {self.anchor_id!r}, cannot rebind to {anchor_id!r}"
            )
        self.anchor_id = str(anchor_id)

    def passes_quality(self, thresholds: QualityThresholds) -> bool:
        return self.geo is not None and self.geo.passes(thresholds)

    def geo_anchor_orientation(self) -> np.ndarray:
        """East-up-south orientation for a geospatial anchor at this sample."""
        heading = 0.0 if self.geo is None else self.geo.heading
        return yaw_to_q(heading_to_eus_yaw(heading))
