from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Set, Tuple

from fingerpress.core.types import (
    FINGER_COUNT, FINGER_NAMES, Bone, Finger, FingerGeometry, HandObservation, Vec3,
)

logger = logging.getLogger(__name__)

# Inter-bone joints summed into the flexion angle, as (bone, next bone).
# The thumb's press is an opposition movement, so all three joints count;
# for the other fingers MCP + PIP flexion dominates.
THUMB_JOINTS: Tuple[Tuple[int, int], ...] = ((0, 1), (1, 2), (2, 3))
FINGER_JOINTS: Tuple[Tuple[int, int], ...] = ((0, 1), (1, 2))


def _dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _length(v: Vec3) -> float:
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def angle_between(a: Vec3, b: Vec3) -> float:
    """Unsigned angle in degrees [0, 180]. Zero-length vectors give 0."""
    la = _length(a)
    lb = _length(b)
    if la <= 1e-9 or lb <= 1e-9:
        return 0.0
    cosine = _dot(a, b) / (la * lb)
    cosine = max(min(cosine, 1.0), -1.0)
    return math.degrees(math.acos(cosine))


def joints_for(finger: int) -> Tuple[Tuple[int, int], ...]:
    return THUMB_JOINTS if finger == Finger.THUMB else FINGER_JOINTS


def joint_angles(geometry: Optional[FingerGeometry]) -> List[Optional[float]]:
    """Angle at each of the three joints (None where a bone is missing)."""
    out: List[Optional[float]] = []
    for a, b in THUMB_JOINTS:
        ba = _bone(geometry, a)
        bb = _bone(geometry, b)
        if ba is None or bb is None:
            out.append(None)
        else:
            out.append(angle_between(ba.direction, bb.direction))
    return out


def _bone(geometry: Optional[FingerGeometry], idx: int) -> Optional[Bone]:
    if geometry is None:
        return None
    bones = geometry.bones
    if idx >= len(bones):
        return None
    bone = bones[idx]
    if bone is None or bone.direction is None:
        return None
    return bone


class AngleExtractor:
    """
    Turns one tracked hand into five flexion angles (degrees).

    Pure apart from logging: a missing bone or finger contributes 0 and is
    reported once per finger so a malformed stream does not flood the log.
    """

    def __init__(self) -> None:
        self._warned: Set[int] = set()

    def finger_angle(self, geometry: Optional[FingerGeometry], finger: int) -> float:
        total = 0.0
        for a, b in joints_for(finger):
            ba = _bone(geometry, a)
            bb = _bone(geometry, b)
            if ba is None or bb is None:
                self._warn_missing(finger)
                continue
            total += angle_between(ba.direction, bb.direction)
        return total

    def extract(self, hand: HandObservation) -> List[float]:
        fingers: Sequence[FingerGeometry] = hand.fingers or ()
        angles = []
        for i in range(FINGER_COUNT):
            geometry = fingers[i] if i < len(fingers) else None
            angles.append(self.finger_angle(geometry, i))
        return angles

    def _warn_missing(self, finger: int) -> None:
        if finger in self._warned:
            return
        self._warned.add(finger)
        logger.warning("missing bone data for %s; using 0 for that joint", FINGER_NAMES[finger])
