from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from fingerpress.core.events import Subscription
from fingerpress.core.types import (
    FINGER_COUNT, HAND_ORDER, EngineEvent, EngineState, EventType, HandSide, finger_name,
)
from fingerpress.interpreter.engine import GestureCalibrationEngine

logger = logging.getLogger(__name__)


@dataclass
class ExerciseResult:
    t_ms: int
    target: Tuple[HandSide, int]
    detected: Tuple[HandSide, int]

    @property
    def correct(self) -> bool:
        return self.target == self.detected


@dataclass
class ExerciseDriver:
    """
    Minimal exercise loop on top of the engine: picks a random target,
    records each detection as correct or wrong, and re-arms the engine with
    a new target after `rearm_ms`.
    """
    engine: GestureCalibrationEngine
    rearm_ms: int = 1000
    seed: Optional[int] = None

    results: List[ExerciseResult] = field(default_factory=list)
    _rng: random.Random = field(init=False, repr=False)
    _due_ms: Optional[int] = field(default=None, init=False)
    _sub: Optional[Subscription] = field(default=None, init=False, repr=False)
    _started: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)
        self._sub = self.engine.subscribe(EventType.GESTURE_DETECTED, self._on_gesture)

    @property
    def score(self) -> int:
        return sum(1 for r in self.results if r.correct)

    def next_target(self) -> Tuple[HandSide, int]:
        return self._rng.choice(HAND_ORDER), self._rng.randrange(FINGER_COUNT)

    def tick(self, t_ms: int) -> None:
        if self.engine.state != EngineState.ACTIVE:
            return
        if not self._started or (self._due_ms is not None and t_ms >= self._due_ms):
            side, finger = self.next_target()
            if self.engine.reset_exercise(side, finger):
                self._started = True
                self._due_ms = None
                print(f"[Exercise] press {side.label.upper()} {finger_name(finger).upper()}")

    def _on_gesture(self, ev: EngineEvent) -> None:
        if ev.gesture is None:
            return
        target = (self.engine.target.side, int(self.engine.target.finger))
        detected = (ev.gesture.side, int(ev.gesture.finger))
        result = ExerciseResult(t_ms=ev.t_ms, target=target, detected=detected)
        self.results.append(result)
        self._due_ms = ev.t_ms + self.rearm_ms
        verdict = "CORRECT" if result.correct else f"WRONG (wanted {finger_name(target[1])})"
        print(f"[Exercise] {detected[0].label} {finger_name(detected[1])}: {verdict}  score={self.score}")

    def close(self) -> None:
        if self._sub is not None:
            self._sub.close()
            self._sub = None
