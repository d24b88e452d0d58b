"""Correction transforms between the recorded route frame and the live frame."""

from __future__ import annotations

from ..math3d.transform import heading_of_rotation, invert_transform, level_y
from ..route.pose import Pose


def leveled_correction(live: Pose, recorded: Pose) -> Pose:
    """Correction mapping ``recorded`` onto ``live``, ignoring tilt.

    correction = level_y(live) * level_y(recorded)^-1, so the result is a
    heading rotation plus a translation.
    """
    m = level_y(live.matrix()) @ invert_transform(level_y(recorded.matrix()))
    return Pose.from_matrix(m)


def correction_yaw(correction: Pose) -> float:
    return heading_of_rotation(correction.rotation_matrix())
