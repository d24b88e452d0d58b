import numpy as np
import pytest

from crumbnav.route.path_finder import simplify
from crumbnav.route.pose import identity_pose, pose_at
from crumbnav.route.progress import KeypointProgress


def _keypoints():
    return simplify([pose_at(0.0, 0.0, 0.0), pose_at(2.0, 0.0, 2.0), pose_at(4.0, 0.0, 0.0)])


def test_start_keypoint_counts_as_reached():
    progress = KeypointProgress(_keypoints())
    assert progress.next_index == 1
    assert not progress.finished


def test_update_checks_off_keypoints_in_order():
    progress = KeypointProgress(_keypoints(), reached_radius=0.5)
    identity = identity_pose()
    assert progress.update(np.array([1.0, 0.0, 1.0]), identity) is None
    # Height is ignored.
    assert progress.update(np.array([2.2, 1.5, 1.9]), identity) == 1
    assert progress.next_index == 2
    assert progress.update(np.array([3.9, 0.0, 0.2]), identity) == 2
    assert progress.finished
    assert progress.next_keypoint is None
    assert progress.distance_to_next(np.zeros(3), identity) is None


def test_progress_uses_corrected_keypoints():
    progress = KeypointProgress(_keypoints())
    correction = pose_at(0.0, 0.0, 10.0)
    assert progress.update(np.array([2.0, 0.0, 2.0]), correction) is None
    assert progress.distance_to_next(np.array([2.0, 0.0, 2.0]), correction) == pytest.approx(10.0)
    assert progress.update(np.array([2.0, 0.0, 12.0]), correction) == 1


def test_reset_and_invalid_radius():
    progress = KeypointProgress(_keypoints())
    progress.update(np.array([2.0, 0.0, 2.0]), identity_pose())
    progress.reset()
    assert progress.next_index == 1
    with pytest.raises(ValueError, match="radius"):
        KeypointProgress(_keypoints(), reached_radius=0.0)


def test_empty_keypoints_are_finished():
    progress = KeypointProgress([])
    assert progress.finished
    assert progress.update(np.zeros(3), identity_pose()) is None
