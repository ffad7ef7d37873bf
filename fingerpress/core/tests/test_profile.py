import math

import pytest

from fingerpress.core.profile import (
    ALL_PROFILE_KEYS, CalibrationProfile, ProfileFormatError, format_angles, profile_keys,
)
from fingerpress.core.types import HandSide

L, R = HandSide.LEFT, HandSide.RIGHT


def test_first_sample_seeds_then_smooths():
    p = CalibrationProfile(alpha=0.2)
    p.record_baseline_sample(L, [10.0, 20.0, 30.0, 40.0, 50.0], (1.0, 2.0, 3.0))
    assert p.baseline[L] == [10.0, 20.0, 30.0, 40.0, 50.0]
    assert p.baseline_position[L] == (1.0, 2.0, 3.0)

    p.record_baseline_sample(L, [20.0, 20.0, 30.0, 40.0, 50.0], (2.0, 2.0, 3.0))
    assert p.baseline[L][0] == pytest.approx(12.0)
    assert p.baseline_position[L] == pytest.approx((1.2, 2.0, 3.0))

    # the other hand is untouched
    assert p.baseline[R] == [0.0] * 5
    assert not p.has_baseline(R)
    assert p.has_baseline(L)


def test_pressed_sample_only_touches_one_finger():
    p = CalibrationProfile()
    p.record_pressed_sample(R, 2, 90.0)
    p.record_pressed_sample(R, 2, 100.0)
    assert p.pressed[R] == [0.0, 0.0, pytest.approx(92.0), 0.0, 0.0]


def test_separation():
    p = CalibrationProfile()
    p.record_baseline_sample(L, [40.0, 20.0, 20.0, 20.0, 20.0], (0.0, 0.1, 0.0))
    for i, a in enumerate([85.0, 100.0, 30.0, 95.0, 90.0]):
        p.record_pressed_sample(L, i, a)
    assert p.separation(L, 0) == pytest.approx(45.0)
    assert p.min_separation(L) == pytest.approx(10.0)


def test_clear_resets_everything():
    p = CalibrationProfile()
    p.record_baseline_sample(L, [1.0] * 5, (1.0, 1.0, 1.0))
    p.record_pressed_sample(L, 0, 50.0)
    p.clear()
    snap = p.snapshot().hand(L)
    assert snap.baseline == (0.0,) * 5
    assert snap.pressed == (0.0,) * 5
    assert snap.baseline_position == (0.0, 0.0, 0.0)


def test_keys_are_flat_and_complete():
    assert len(ALL_PROFILE_KEYS) == 52
    assert len(set(ALL_PROFILE_KEYS)) == 52
    left = profile_keys(L)
    assert left[0] == "Baseline_Left_0"
    assert "Pressed_Left_4" in left
    assert left[-3:] == ["BaselinePos_Left_X", "BaselinePos_Left_Y", "BaselinePos_Left_Z"]


def test_serialize_then_restore():
    p = CalibrationProfile()
    p.record_baseline_sample(L, [40.0, 21.0, 22.0, 23.0, 24.0], (-0.1, 0.2, 0.05))
    p.record_baseline_sample(R, [41.0, 25.0, 26.0, 27.0, 28.0], (0.1, 0.2, 0.05))
    for i in range(5):
        p.record_pressed_sample(L, i, 90.0 + i)
        p.record_pressed_sample(R, i, 100.0 + i)

    values = p.serialize()
    assert set(values) == set(ALL_PROFILE_KEYS)
    assert values["Pressed_Right_3"] == 103.0
    assert values["BaselinePos_Left_X"] == -0.1

    back = CalibrationProfile.deserialize(values)
    assert back.snapshot() == p.snapshot()


def test_deserialize_accepts_numeric_strings():
    values = {k: "1.5" for k in ALL_PROFILE_KEYS}
    p = CalibrationProfile.deserialize(values)
    assert p.baseline[R][4] == 1.5


@pytest.mark.parametrize("bad", ["abc", None, True, math.nan, math.inf])
def test_deserialize_rejects_bad_values(bad):
    values = {k: 1.0 for k in ALL_PROFILE_KEYS}
    values["Baseline_Right_1"] = bad
    with pytest.raises(ProfileFormatError, match="Baseline_Right_1"):
        CalibrationProfile.deserialize(values)


def test_deserialize_rejects_missing_keys():
    values = {k: 1.0 for k in ALL_PROFILE_KEYS}
    del values["BaselinePos_Left_Z"]
    with pytest.raises(ProfileFormatError, match="missing 1"):
        CalibrationProfile.deserialize(values)


def test_format_angles():
    assert format_angles([40.4, 20.0, 19.6, 0.0, 100.0]) == "T:40 I:20 M:20 R:0 P:100"
