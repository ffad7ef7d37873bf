from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

import cv2
import mediapipe as mp

from fingerpress.core.types import (
    Bone, FingerGeometry, HandFrame, HandObservation, HandSide, Vec3,
)

# MediaPipe landmark chains, wrist first. Each consecutive pair is one bone:
# metacarpal, proximal, intermediate, distal.
FINGER_CHAINS: Tuple[Tuple[int, ...], ...] = (
    (0, 1, 2, 3, 4),      # thumb (CMC counts as its metacarpal end)
    (0, 5, 6, 7, 8),      # index
    (0, 9, 10, 11, 12),   # middle
    (0, 13, 14, 15, 16),  # ring
    (0, 17, 18, 19, 20),  # pinky
)
PALM_POINTS = (0, 5, 9, 13, 17)


def _xyz(lm) -> Vec3:
    return (float(lm.x), float(lm.y), float(lm.z))


def _sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def _palm_center(lm: Sequence[Any]) -> Vec3:
    n = float(len(PALM_POINTS))
    return (
        sum(lm[i].x for i in PALM_POINTS) / n,
        sum(lm[i].y for i in PALM_POINTS) / n,
        sum(lm[i].z for i in PALM_POINTS) / n,
    )


def landmarks_to_fingers(lm: Sequence[Any]) -> Tuple[FingerGeometry, ...]:
    """21 MediaPipe landmarks -> five fingers of four bones each."""
    fingers = []
    for chain in FINGER_CHAINS:
        bones = []
        for a, b in zip(chain, chain[1:]):
            pa = _xyz(lm[a])
            pb = _xyz(lm[b])
            bones.append(Bone(direction=_sub(pb, pa), prev_joint=pa, next_joint=pb))
        fingers.append(FingerGeometry(bones=tuple(bones)))
    return tuple(fingers)


def _side_from_label(label: str) -> Optional[HandSide]:
    label = (label or "").strip().lower()
    if label == "left":
        return HandSide.LEFT
    if label == "right":
        return HandSide.RIGHT
    return None


@dataclass
class WebcamMPSrc:
    """
    OpenCV capture + MediaPipe Hands producing HandFrames for two hands.

    Bone directions come from MediaPipe's metric world landmarks when
    available (angles are then independent of camera distance); palm
    positions stay in normalized image coordinates.
    """
    cam_index: int = 0
    mirror: bool = True
    min_detection_confidence: float = 0.6
    min_tracking_confidence: float = 0.6

    def __post_init__(self) -> None:
        self.cap = cv2.VideoCapture(self.cam_index)
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, 1280)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 720)

        self.mp_hands = mp.solutions.hands
        self.hands = self.mp_hands.Hands(
            static_image_mode=False,
            max_num_hands=2,
            model_complexity=1,
            min_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
        )
        self.mp_draw = mp.solutions.drawing_utils

    def read(self) -> Tuple[Optional[HandFrame], Optional[Any]]:
        ok, frame = self.cap.read()
        if not ok:
            return None, None

        if self.mirror:
            frame = cv2.flip(frame, 1)

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        res = self.hands.process(rgb)

        t_ms = int(time.time() * 1000)

        if not res.multi_hand_landmarks:
            return HandFrame(t_ms=t_ms, hands=()), frame

        world = getattr(res, "multi_hand_world_landmarks", None) or []
        handedness = res.multi_handedness or []

        observations = []
        seen = set()
        for i, hand_lms in enumerate(res.multi_hand_landmarks):
            if i >= len(handedness):
                continue
            cls = handedness[i].classification[0]
            side = _side_from_label(cls.label)
            # MediaPipe occasionally labels both hands the same; keep the first
            if side is None or side in seen:
                continue
            seen.add(side)

            lm = hand_lms.landmark
            geo_lm = world[i].landmark if i < len(world) else lm
            observations.append(HandObservation(
                hand_id=i,
                side=side,
                palm_position=_palm_center(lm),
                fingers=landmarks_to_fingers(geo_lm),
                confidence=float(cls.score),
            ))
            self.mp_draw.draw_landmarks(frame, hand_lms, self.mp_hands.HAND_CONNECTIONS)

        return HandFrame(t_ms=t_ms, hands=tuple(observations)), frame

    def close(self) -> None:
        try:
            self.hands.close()
        except Exception:
            pass
        try:
            self.cap.release()
        except Exception:
            pass
