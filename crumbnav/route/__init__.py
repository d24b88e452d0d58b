"""Recorded route model and keypoint computation."""

from .path_finder import PATH_WIDTH, Keypoint, PathFinder, simplify
from .pose import Pose, identity_pose
from .route import Route, RouteAnchorPoint
from .sample import GeoMetadata, GeospatialPose, QualityThresholds, ReferenceSample

__all__ = [
    "GeoMetadata",
    "GeospatialPose",
    "Keypoint",
    "PATH_WIDTH",
    "PathFinder",
    "Pose",
    "QualityThresholds",
    "ReferenceSample",
    "Route",
    "RouteAnchorPoint",
    "identity_pose",
    "simplify",
]
