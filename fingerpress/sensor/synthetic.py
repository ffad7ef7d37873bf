from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple

from fingerpress.core.types import (
    FINGER_COUNT, Bone, Finger, FingerGeometry, HandFrame, HandObservation, HandSide, Vec3,
)

# Rough adult proportions (metres): metacarpal, proximal, intermediate, distal.
BONE_LENGTHS = (0.07, 0.045, 0.025, 0.02)
THUMB_BONE_LENGTHS = (0.045, 0.035, 0.03, 0.025)
KNUCKLE_SPACING = 0.02


def _direction(theta_deg: float) -> Vec3:
    # bones curl inside the y-z plane; theta 0 points straight along +z
    t = math.radians(theta_deg)
    return (0.0, -math.sin(t), math.cos(t))


def _joint_split(finger: int, flexion: float) -> Tuple[float, float, float]:
    if finger == Finger.THUMB:
        third = flexion / 3.0
        return (third, third, third)
    half = flexion / 2.0
    # distal joint follows the PIP loosely; it is not part of the flexion sum
    return (half, half, half * 0.6)


def make_finger(finger: int, flexion: float, base: Vec3) -> FingerGeometry:
    """A planar finger whose flexion angle (as AngleExtractor measures it) equals `flexion`."""
    lengths = THUMB_BONE_LENGTHS if finger == Finger.THUMB else BONE_LENGTHS
    j1, j2, j3 = _joint_split(finger, max(0.0, float(flexion)))
    thetas = (0.0, j1, j1 + j2, j1 + j2 + j3)

    bones = []
    joint = base
    for theta, length in zip(thetas, lengths):
        d = _direction(theta)
        nxt = (joint[0] + d[0] * length, joint[1] + d[1] * length, joint[2] + d[2] * length)
        bones.append(Bone(direction=d, prev_joint=joint, next_joint=nxt))
        joint = nxt
    return FingerGeometry(bones=tuple(bones))


def make_hand(side: HandSide, angles: Sequence[float], palm: Vec3 = (0.0, 0.0, 0.0),
              hand_id: int = 0, confidence: float = 1.0) -> HandObservation:
    mirror = -1.0 if side == HandSide.LEFT else 1.0
    fingers = []
    for i in range(FINGER_COUNT):
        x = palm[0] + mirror * (i - 2) * KNUCKLE_SPACING
        base = (x, palm[1], palm[2] - 0.05)
        fingers.append(make_finger(i, angles[i], base))
    return HandObservation(
        hand_id=hand_id or (1 if side == HandSide.LEFT else 2),
        side=side,
        palm_position=(float(palm[0]), float(palm[1]), float(palm[2])),
        fingers=tuple(fingers),
        confidence=confidence,
    )


def make_frame(t_ms: int, hands: Mapping[HandSide, Tuple[Sequence[float], Vec3]]) -> HandFrame:
    """hands: side -> (five flexion angles, palm position)."""
    obs = tuple(make_hand(side, angles, palm) for side, (angles, palm) in hands.items())
    return HandFrame(t_ms=t_ms, hands=obs)


REST_ANGLES = (40.0, 20.0, 20.0, 20.0, 20.0)
PRESS_GAIN = (45.0, 80.0, 80.0, 75.0, 70.0)
LEFT_PALM: Vec3 = (-0.12, 0.20, 0.0)
RIGHT_PALM: Vec3 = (0.12, 0.20, 0.0)


@dataclass
class SyntheticHands:
    """
    Two resting hands that can press one finger at a time.

    press(side, finger) bends that finger by PRESS_GAIN degrees; offsets
    move a palm away from its resting position (for drift scenarios).
    """
    rest: Tuple[float, ...] = REST_ANGLES
    gain: Tuple[float, ...] = PRESS_GAIN
    palms: Dict[HandSide, Vec3] = field(default_factory=lambda: {HandSide.LEFT: LEFT_PALM, HandSide.RIGHT: RIGHT_PALM})
    visible: Dict[HandSide, bool] = field(default_factory=lambda: {HandSide.LEFT: True, HandSide.RIGHT: True})
    pressed: Optional[Tuple[HandSide, int]] = None
    offsets: Dict[HandSide, Vec3] = field(default_factory=dict)

    def press(self, side: HandSide, finger: int) -> None:
        self.pressed = (side, int(finger))

    def release(self) -> None:
        self.pressed = None

    def angles(self, side: HandSide) -> Tuple[float, ...]:
        out = list(self.rest)
        if self.pressed is not None and self.pressed[0] == side:
            f = self.pressed[1]
            out[f] = self.rest[f] + self.gain[f]
        return tuple(out)

    def palm(self, side: HandSide) -> Vec3:
        base = self.palms[side]
        off = self.offsets.get(side, (0.0, 0.0, 0.0))
        return (base[0] + off[0], base[1] + off[1], base[2] + off[2])

    def frame(self, t_ms: int) -> HandFrame:
        hands = {
            side: (self.angles(side), self.palm(side))
            for side in (HandSide.LEFT, HandSide.RIGHT)
            if self.visible.get(side, True)
        }
        return make_frame(t_ms, hands)
