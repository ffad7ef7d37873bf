"""
Finger-press classifier.

A finger is a press candidate when its live flexion angle is clearly closer
to the angle learned while pressing than to the learned resting angle:

    dist_to_pressed < dist_to_baseline * pressed_threshold_ratio

Among candidates the one with the largest margin
(dist_to_baseline - dist_to_pressed) wins; the scan runs thumb → pinky and
the first finger reaching the best margin keeps it.

Both learned angles are per user and per finger, so no global angle
threshold is involved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from fingerpress.core.types import FINGER_COUNT


@dataclass(frozen=True)
class FingerScore:
    finger: int
    dist_to_baseline: float
    dist_to_pressed: float
    candidate: bool

    @property
    def confidence(self) -> float:
        return self.dist_to_baseline - self.dist_to_pressed


def score_fingers(current: Sequence[float], baseline: Sequence[float], pressed: Sequence[float],
                  ratio: float = 0.6) -> List[FingerScore]:
    scores = []
    for i in range(FINGER_COUNT):
        d_base = abs(current[i] - baseline[i])
        d_pressed = abs(current[i] - pressed[i])
        scores.append(FingerScore(
            finger=i,
            dist_to_baseline=d_base,
            dist_to_pressed=d_pressed,
            candidate=d_pressed < d_base * ratio,
        ))
    return scores


def pick_winner(scores: Sequence[FingerScore]) -> Optional[int]:
    best: Optional[int] = None
    best_conf: Optional[float] = None
    for s in scores:
        if not s.candidate:
            continue
        if best_conf is None or s.confidence > best_conf:
            best_conf = s.confidence
            best = s.finger
    return best


def classify(current: Sequence[float], baseline: Sequence[float], pressed: Sequence[float],
             ratio: float = 0.6) -> Optional[int]:
    """Index of the pressed finger, or None when no finger is a candidate."""
    return pick_winner(score_fingers(current, baseline, pressed, ratio))


def describe(scores: Sequence[FingerScore]) -> str:
    flags = "".join("1" if s.candidate else "0" for s in scores)
    parts = " ".join(f"{'TIMRP'[s.finger]}:{s.dist_to_baseline:.0f}/{s.dist_to_pressed:.0f}" for s in scores)
    return f"pressed=[{flags}] {parts}"
