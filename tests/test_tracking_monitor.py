import logging

from crumbnav.control.tracking_monitor import LimitedReason, TrackingState, TrackingStateMonitor


def test_normal_tracking_alone_is_not_a_relocalization():
    monitor = TrackingStateMonitor()
    assert not monitor.update(TrackingState.NORMAL)
    assert not monitor.update(TrackingState.NORMAL)


def test_relocalizing_then_normal_fires_once():
    monitor = TrackingStateMonitor()
    assert not monitor.update(TrackingState.LIMITED, LimitedReason.RELOCALIZING)
    assert monitor.update(TrackingState.NORMAL)
    assert not monitor.update(TrackingState.NORMAL)


def test_erratic_sequence_fires_only_after_relocalizing_episode():
    monitor = TrackingStateMonitor()
    sequence = [
        (TrackingState.LIMITED, LimitedReason.INITIALIZING),
        (TrackingState.NORMAL, None),
        (TrackingState.NOT_AVAILABLE, None),
        (TrackingState.LIMITED, LimitedReason.INITIALIZING),
        (TrackingState.LIMITED, LimitedReason.RELOCALIZING),
        (TrackingState.NOT_AVAILABLE, None),
        (TrackingState.NORMAL, None),
    ]
    fired = [monitor.update(state, reason) for state, reason in sequence]
    assert fired == [False, False, False, False, False, False, True]


def test_tracking_errors_are_logged(caplog):
    monitor = TrackingStateMonitor()
    with caplog.at_level(logging.WARNING):
        assert not monitor.update(TrackingState.LIMITED, LimitedReason.EXCESSIVE_MOTION)
    assert "excessive_motion" in caplog.text


def test_reset_disarms():
    monitor = TrackingStateMonitor()
    monitor.update(TrackingState.LIMITED, LimitedReason.RELOCALIZING)
    monitor.reset()
    assert vars(monitor) == {"was_relocalizing": False}
    assert not monitor.update(TrackingState.NORMAL)
