from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple

from fingerpress.core.types import FINGER_COUNT, HAND_ORDER, ZERO3, HandSide, Vec3

SAVED_FLAG_KEY = "CalibrationSaved"


class ProfileFormatError(ValueError):
    """Serialized profile data is missing keys or holds non-numeric values."""


def _smooth(existing: float, sample: float, alpha: float) -> float:
    # first sample seeds the value so the average is not pulled toward zero
    if existing == 0:
        return float(sample)
    return existing * (1.0 - alpha) + float(sample) * alpha


def profile_keys(side: HandSide) -> List[str]:
    """The 26 flat keys stored for one hand."""
    s = side.label
    keys = [f"Baseline_{s}_{i}" for i in range(FINGER_COUNT)]
    keys += [f"Pressed_{s}_{i}" for i in range(FINGER_COUNT)]
    keys += [f"BaselinePos_{s}_{axis}" for axis in ("X", "Y", "Z")]
    return keys


ALL_PROFILE_KEYS: Tuple[str, ...] = tuple(k for side in HAND_ORDER for k in profile_keys(side))


@dataclass(frozen=True)
class HandSnapshot:
    baseline: Tuple[float, ...]
    pressed: Tuple[float, ...]
    baseline_position: Vec3


@dataclass(frozen=True)
class ProfileSnapshot:
    """Read-only copy of a CalibrationProfile handed to consumers."""
    hands: Tuple[Tuple[HandSide, HandSnapshot], ...]

    def hand(self, side: HandSide) -> HandSnapshot:
        for s, snap in self.hands:
            if s == side:
                return snap
        raise KeyError(side)


class CalibrationProfile:
    """
    Per-user calibration constants: for each hand a relaxed (baseline) and a
    flexed (pressed) flexion angle per finger, plus the palm position the
    hand rested at while the baseline was recorded.

    Values are populated by exponential smoothing. A zero entry means "not
    recorded yet".
    """

    def __init__(self, alpha: float = 0.2) -> None:
        self.alpha = float(alpha)
        self.baseline: Dict[HandSide, List[float]] = {}
        self.pressed: Dict[HandSide, List[float]] = {}
        self.baseline_position: Dict[HandSide, Vec3] = {}
        self.clear()

    def clear(self) -> None:
        for side in HAND_ORDER:
            self.baseline[side] = [0.0] * FINGER_COUNT
            self.pressed[side] = [0.0] * FINGER_COUNT
            self.baseline_position[side] = ZERO3

    def record_baseline_sample(self, side: HandSide, angles: Sequence[float], palm_position: Vec3) -> None:
        base = self.baseline[side]
        for i in range(FINGER_COUNT):
            base[i] = _smooth(base[i], angles[i], self.alpha)

        cur = self.baseline_position[side]
        if cur == ZERO3:
            self.baseline_position[side] = (float(palm_position[0]), float(palm_position[1]), float(palm_position[2]))
        else:
            a = self.alpha
            self.baseline_position[side] = (
                cur[0] + (palm_position[0] - cur[0]) * a,
                cur[1] + (palm_position[1] - cur[1]) * a,
                cur[2] + (palm_position[2] - cur[2]) * a,
            )

    def record_pressed_sample(self, side: HandSide, finger: int, angle: float) -> None:
        pressed = self.pressed[side]
        pressed[finger] = _smooth(pressed[finger], angle, self.alpha)

    def separation(self, side: HandSide, finger: int) -> float:
        return abs(self.pressed[side][finger] - self.baseline[side][finger])

    def min_separation(self, side: HandSide) -> float:
        return min(self.separation(side, i) for i in range(FINGER_COUNT))

    def has_baseline(self, side: HandSide) -> bool:
        return self.baseline_position[side] != ZERO3

    def snapshot(self) -> ProfileSnapshot:
        return ProfileSnapshot(hands=tuple(
            (side, HandSnapshot(
                baseline=tuple(self.baseline[side]),
                pressed=tuple(self.pressed[side]),
                baseline_position=self.baseline_position[side],
            ))
            for side in HAND_ORDER
        ))

    # ---- persistence -------------------------------------------------

    def serialize(self) -> Dict[str, float]:
        out: Dict[str, float] = {}
        for side in HAND_ORDER:
            s = side.label
            for i in range(FINGER_COUNT):
                out[f"Baseline_{s}_{i}"] = float(self.baseline[side][i])
                out[f"Pressed_{s}_{i}"] = float(self.pressed[side][i])
            pos = self.baseline_position[side]
            out[f"BaselinePos_{s}_X"] = float(pos[0])
            out[f"BaselinePos_{s}_Y"] = float(pos[1])
            out[f"BaselinePos_{s}_Z"] = float(pos[2])
        return out

    @classmethod
    def deserialize(cls, values: Mapping[str, object], alpha: float = 0.2) -> "CalibrationProfile":
        missing = [k for k in ALL_PROFILE_KEYS if k not in values]
        if missing:
            raise ProfileFormatError(f"missing {len(missing)} profile keys (first: {missing[0]})")

        nums: Dict[str, float] = {}
        for k in ALL_PROFILE_KEYS:
            raw = values[k]
            if isinstance(raw, bool):
                raise ProfileFormatError(f"{k}: expected a number, got bool")
            try:
                v = float(raw)  # type: ignore[arg-type]
            except (TypeError, ValueError):
                raise ProfileFormatError(f"{k}: expected a number, got {raw!r}") from None
            if not math.isfinite(v):
                raise ProfileFormatError(f"{k}: value is not finite")
            nums[k] = v

        prof = cls(alpha=alpha)
        for side in HAND_ORDER:
            s = side.label
            prof.baseline[side] = [nums[f"Baseline_{s}_{i}"] for i in range(FINGER_COUNT)]
            prof.pressed[side] = [nums[f"Pressed_{s}_{i}"] for i in range(FINGER_COUNT)]
            prof.baseline_position[side] = (
                nums[f"BaselinePos_{s}_X"],
                nums[f"BaselinePos_{s}_Y"],
                nums[f"BaselinePos_{s}_Z"],
            )
        return prof


def format_angles(angles: Sequence[float]) -> str:
    return "T:{:.0f} I:{:.0f} M:{:.0f} R:{:.0f} P:{:.0f}".format(*angles[:FINGER_COUNT])
