"""
FingerPress: CORE CONTRACTS

Shared data contracts between the tracking source, the calibration engine
and its consumers (UI, exercise drivers, recorders).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Optional, Tuple


# ============================================================
# Tracker → Engine (Hand tracking → Calibration / Detection)
# ============================================================

Vec3 = Tuple[float, float, float]

ZERO3: Vec3 = (0.0, 0.0, 0.0)


class HandSide(str, Enum):
    LEFT = "left"
    RIGHT = "right"

    @property
    def label(self) -> str:
        return "Left" if self is HandSide.LEFT else "Right"


HAND_ORDER: Tuple[HandSide, HandSide] = (HandSide.LEFT, HandSide.RIGHT)


class Finger(IntEnum):
    THUMB = 0
    INDEX = 1
    MIDDLE = 2
    RING = 3
    PINKY = 4


FINGER_NAMES = ("Thumb", "Index", "Middle", "Ring", "Pinky")
FINGER_COUNT = 5
BONES_PER_FINGER = 4


@dataclass(frozen=True)
class Bone:
    """One finger bone. Only `direction` is needed for flexion angles."""
    direction: Vec3
    prev_joint: Optional[Vec3] = None
    next_joint: Optional[Vec3] = None


@dataclass(frozen=True)
class FingerGeometry:
    """Metacarpal, proximal, intermediate, distal (in that order)."""
    bones: Tuple[Bone, ...]

    @property
    def tip_position(self) -> Optional[Vec3]:
        if not self.bones:
            return None
        return self.bones[-1].next_joint


@dataclass(frozen=True)
class HandObservation:
    """
    A single tracked hand for one frame.

    `palm_position` is the reference used for drift checks; its units are
    whatever the tracker reports (metres for a depth sensor, normalized
    camera coordinates for a webcam).
    """
    hand_id: int
    side: HandSide
    palm_position: Vec3
    fingers: Tuple[FingerGeometry, ...]
    confidence: float = 1.0


@dataclass(frozen=True)
class HandFrame:
    """A timestamped snapshot from the tracker."""
    t_ms: int
    hands: Tuple[HandObservation, ...]

    def hand(self, side: HandSide) -> Optional[HandObservation]:
        for h in self.hands:
            if h.side == side:
                return h
        return None

    def palm_positions(self) -> Dict[HandSide, Vec3]:
        out: Dict[HandSide, Vec3] = {}
        for h in self.hands:
            out.setdefault(h.side, h.palm_position)
        return out


# ============================================================
# Engine state + consumer-facing snapshots
# ============================================================

class EngineState(str, Enum):
    WAITING_FOR_CALIBRATION = "WAITING_FOR_CALIBRATION"
    PRE_COUNTDOWN = "PRE_COUNTDOWN"
    BASELINE_CAPTURE = "BASELINE_CAPTURE"
    PER_FINGER_CAPTURE = "PER_FINGER_CAPTURE"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


CALIBRATION_STATES = (
    EngineState.PRE_COUNTDOWN,
    EngineState.BASELINE_CAPTURE,
    EngineState.PER_FINGER_CAPTURE,
)


class PauseCause(str, Enum):
    HANDS_LOST = "HANDS_LOST"
    HANDS_DRIFTED = "HANDS_DRIFTED"


@dataclass(frozen=True)
class TargetSelector:
    """The (hand, finger) the current exercise expects."""
    side: HandSide = HandSide.LEFT
    finger: int = Finger.INDEX


# ============================================================
# Engine → Consumers (events)
# ============================================================

class EventType(str, Enum):
    COUNTDOWN_TICK = "COUNTDOWN_TICK"
    CALIBRATION_STATUS = "CALIBRATION_STATUS"
    CALIBRATION_PROGRESS = "CALIBRATION_PROGRESS"
    CALIBRATION_COMPLETE = "CALIBRATION_COMPLETE"
    GESTURE_DETECTED = "GESTURE_DETECTED"
    HANDS_LOST = "HANDS_LOST"
    HANDS_DRIFTED = "HANDS_DRIFTED"
    HANDS_RESTORED = "HANDS_RESTORED"
    PAUSED = "PAUSED"
    RESUMED = "RESUMED"


@dataclass(frozen=True)
class GestureEvent:
    side: HandSide
    finger: int


@dataclass(frozen=True)
class EngineEvent:
    """
    A single output event from the engine.

    At most ONE payload field is non-None depending on `type`:
    COUNTDOWN_TICK -> seconds, CALIBRATION_STATUS -> message,
    CALIBRATION_PROGRESS -> progress, GESTURE_DETECTED -> gesture.
    """
    t_ms: int
    type: EventType
    seconds: Optional[int] = None
    message: Optional[str] = None
    progress: Optional[float] = None
    gesture: Optional[GestureEvent] = None


def clamp01(x: float) -> float:
    if x < 0.0:
        return 0.0
    if x > 1.0:
        return 1.0
    return x


def finger_name(index: int) -> str:
    if 0 <= index < len(FINGER_NAMES):
        return FINGER_NAMES[index]
    return "Unknown"
