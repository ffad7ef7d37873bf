from types import SimpleNamespace

import pytest

from fingerpress.core.types import Finger, HandSide
from fingerpress.interpreter.angles import AngleExtractor

pytest.importorskip("cv2")
pytest.importorskip("mediapipe")

from fingerpress.sensor import webcam_mp  # noqa: E402


def straight_hand():
    """21 landmarks: wrist at the origin, every finger pointing straight up +y."""
    pts = [SimpleNamespace(x=0.0, y=0.0, z=0.0)]
    for f in range(5):
        for j in range(1, 5):
            pts.append(SimpleNamespace(x=0.02 * f, y=0.03 * j, z=0.0))
    return pts


def test_landmarks_become_four_bones_per_finger():
    fingers = webcam_mp.landmarks_to_fingers(straight_hand())
    assert len(fingers) == 5
    assert all(len(f.bones) == 4 for f in fingers)
    index = fingers[Finger.INDEX]
    assert index.bones[0].prev_joint == (0.0, 0.0, 0.0)
    assert index.tip_position == pytest.approx((0.02, 0.12, 0.0))


def test_curled_landmarks_measure_flexion():
    lm = straight_hand()
    # bend the index 90 degrees at the PIP: intermediate + distal point along +z
    lm[7] = SimpleNamespace(x=0.02, y=0.06, z=0.03)
    lm[8] = SimpleNamespace(x=0.02, y=0.06, z=0.06)
    ex = AngleExtractor()
    straight = ex.finger_angle(webcam_mp.landmarks_to_fingers(straight_hand())[Finger.INDEX], Finger.INDEX)
    curled = ex.finger_angle(webcam_mp.landmarks_to_fingers(lm)[Finger.INDEX], Finger.INDEX)
    assert curled - straight == pytest.approx(90.0, abs=1e-6)


def test_handedness_labels():
    assert webcam_mp._side_from_label("Left") == HandSide.LEFT
    assert webcam_mp._side_from_label(" right ") == HandSide.RIGHT
    assert webcam_mp._side_from_label("") is None
