import io
import json

import pytest

from fingerpress.core.types import EngineEvent, EventType, Finger, GestureEvent, HandSide
from fingerpress.sensor.synthetic import SyntheticHands
from fingerpress.tools.session_recorder import SessionRecorder


def lines(buf):
    return [json.loads(line) for line in buf.getvalue().splitlines()]


def test_one_line_per_visible_hand():
    buf = io.StringIO()
    hands = SyntheticHands()
    hands.visible[HandSide.RIGHT] = False
    rec = SessionRecorder(stream=buf)
    rec.log_frame(hands.frame(120))

    (row,) = lines(buf)
    assert row["t_ms"] == 120
    assert row["kind"] == "hand"
    assert row["side"] == "left"
    assert row["flexion"]["Thumb"] == pytest.approx(40.0, abs=1e-6)
    assert row["flexion"]["Index"] == pytest.approx(20.0, abs=1e-6)
    assert len(row["joints"]["Index"]) == 3


def test_events_are_flattened():
    buf = io.StringIO()
    rec = SessionRecorder(stream=buf)
    rec.on_event(EngineEvent(t_ms=5, type=EventType.COUNTDOWN_TICK, seconds=2))
    rec.on_event(EngineEvent(t_ms=9, type=EventType.GESTURE_DETECTED,
                             gesture=GestureEvent(side=HandSide.RIGHT, finger=Finger.RING)))

    tick, gesture = lines(buf)
    assert tick == {"t_ms": 5, "kind": "event", "type": "COUNTDOWN_TICK", "seconds": 2}
    assert gesture["gesture"] == {"side": "right", "finger": 3}


def test_closed_recorder_drops_writes(tmp_path):
    path = tmp_path / "s.jsonl"
    with SessionRecorder(path=path) as rec:
        rec.on_event(EngineEvent(t_ms=0, type=EventType.PAUSED))
    assert rec.closed
    rec.on_event(EngineEvent(t_ms=1, type=EventType.RESUMED))
    assert len(path.read_text().splitlines()) == 1
