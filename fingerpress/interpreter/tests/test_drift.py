import pytest

from fingerpress.core.config import TrackingSafety
from fingerpress.core.types import HandSide
from fingerpress.interpreter.drift import DriftMonitor

L, R = HandSide.LEFT, HandSide.RIGHT


def monitor(baseline):
    m = DriftMonitor(TrackingSafety())
    m.set_baseline(baseline)
    return m


def test_drift_threshold_from_origin():
    m = monitor({L: (0.0, 0.0, 0.0)})
    assert m.check_drift({L: (0.20, 0.0, 0.0)}) is True
    assert m.check_drift({L: (0.10, 0.0, 0.0)}) is False


def test_any_hand_drifting_is_enough():
    m = monitor({L: (0.0, 0.0, 0.0), R: (0.5, 0.0, 0.0)})
    assert m.check_drift({L: (0.0, 0.0, 0.0), R: (0.5, 0.2, 0.0)}) is True


def test_resume_needs_tighter_radius():
    m = monitor({L: (0.0, 0.0, 0.0), R: (0.5, 0.0, 0.0)})
    assert m.resume_radius == pytest.approx(0.105)

    # 0.12 is inside the drift radius but not close enough to resume
    assert m.check_drift({L: (0.12, 0.0, 0.0), R: (0.5, 0.0, 0.0)}) is False
    assert m.check_resume({L: (0.12, 0.0, 0.0), R: (0.5, 0.0, 0.0)}) is False
    assert m.check_resume({L: (0.10, 0.0, 0.0), R: (0.5, 0.0, 0.0)}) is True


def test_resume_requires_every_monitored_hand():
    m = monitor({L: (0.0, 0.0, 0.0), R: (0.5, 0.0, 0.0)})
    assert m.check_resume({L: (0.0, 0.0, 0.0)}) is False


def test_missing_hand_does_not_count_as_drift():
    m = monitor({L: (1.0, 1.0, 1.0), R: (2.0, 1.0, 1.0)})
    assert m.check_drift({R: (2.01, 1.0, 1.0)}) is False
    assert m.distances({R: (2.0, 1.0, 1.3)}) == {R: pytest.approx(0.3)}


def test_unmonitored_hand_is_ignored():
    m = monitor({R: (0.5, 0.0, 0.0)})
    assert m.calibrated_sides() == (R,)
    assert m.check_drift({L: (9.0, 9.0, 9.0), R: (0.5, 0.0, 0.0)}) is False


def test_configurable_threshold():
    m = DriftMonitor(TrackingSafety(max_position_drift=0.05, resume_factor=0.5))
    m.set_baseline({L: (1.0, 0.0, 0.0)})
    assert m.check_drift({L: (1.06, 0.0, 0.0)}) is True
    assert m.check_resume({L: (1.03, 0.0, 0.0)}) is False
    assert m.check_resume({L: (1.02, 0.0, 0.0)}) is True
