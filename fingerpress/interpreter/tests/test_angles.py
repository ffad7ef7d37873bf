import logging

import pytest

from fingerpress.core.types import Bone, Finger, FingerGeometry, HandObservation, HandSide
from fingerpress.interpreter.angles import AngleExtractor, angle_between, joint_angles
from fingerpress.sensor.synthetic import make_finger, make_hand


def test_angle_between_basic_cases():
    assert angle_between((1.0, 0.0, 0.0), (1.0, 0.0, 0.0)) == pytest.approx(0.0)
    assert angle_between((1.0, 0.0, 0.0), (0.0, 2.0, 0.0)) == pytest.approx(90.0)
    assert angle_between((0.0, 0.0, 1.0), (0.0, 0.0, -3.0)) == pytest.approx(180.0)
    assert angle_between((0.0, 0.0, 0.0), (1.0, 0.0, 0.0)) == 0.0


def test_thumb_sums_three_joints_fingers_sum_two():
    ex = AngleExtractor()
    thumb = make_finger(Finger.THUMB, 90.0, (0.0, 0.0, 0.0))
    index = make_finger(Finger.INDEX, 90.0, (0.0, 0.0, 0.0))
    assert ex.finger_angle(thumb, Finger.THUMB) == pytest.approx(90.0, abs=1e-6)
    assert ex.finger_angle(index, Finger.INDEX) == pytest.approx(90.0, abs=1e-6)

    # the distal joint of a non-thumb finger is not part of its flexion
    j = joint_angles(index)
    assert j[0] + j[1] == pytest.approx(90.0, abs=1e-6)
    assert j[2] > 0.0


def test_extract_hand_matches_requested_angles():
    angles = (35.0, 20.0, 110.0, 25.0, 15.0)
    hand = make_hand(HandSide.RIGHT, angles)
    out = AngleExtractor().extract(hand)
    assert len(out) == 5
    for got, want in zip(out, angles):
        assert got == pytest.approx(want, abs=1e-6)


def test_missing_bone_counts_as_zero_and_warns_once(caplog):
    ex = AngleExtractor()
    full = make_finger(Finger.INDEX, 80.0, (0.0, 0.0, 0.0))
    broken = FingerGeometry(bones=full.bones[:2])  # intermediate + distal missing

    with caplog.at_level(logging.WARNING, logger="fingerpress.interpreter.angles"):
        a1 = ex.finger_angle(broken, Finger.INDEX)
        a2 = ex.finger_angle(broken, Finger.INDEX)

    # only the metacarpal->proximal joint survives
    assert a1 == pytest.approx(40.0, abs=1e-6)
    assert a2 == a1
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "Index" in warnings[0].getMessage()


def test_hand_with_missing_fingers_never_raises():
    hand = HandObservation(
        hand_id=1,
        side=HandSide.LEFT,
        palm_position=(0.0, 0.0, 0.0),
        fingers=(FingerGeometry(bones=(Bone(direction=(0.0, 0.0, 1.0)),)),),
    )
    assert AngleExtractor().extract(hand) == [0.0, 0.0, 0.0, 0.0, 0.0]
