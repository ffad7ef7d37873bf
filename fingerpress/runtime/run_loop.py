from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from fingerpress.core.config import QUICK_PRESET, Preset
from fingerpress.core.types import EngineEvent, EngineState, EventType, HandFrame
from fingerpress.interpreter.engine import GestureCalibrationEngine
from fingerpress.runtime.exercise import ExerciseDriver
from fingerpress.runtime.profile_store import ProfileStore
from fingerpress.sensor.synthetic import SyntheticHands
from fingerpress.tools.session_recorder import SessionRecorder


@dataclass
class FakeSource:
    """
    Deterministic fake hands to validate the engine wiring end to end:
    rests through countdown and baseline, presses whatever finger the
    calibration cursor asks for, then presses the exercise target (with an
    occasional wrong finger).
    """
    engine: GestureCalibrationEngine
    hands: SyntheticHands = field(default_factory=SyntheticHands)
    wrong_every: int = 4
    _presses: int = 0
    _press_until: Optional[int] = None

    def frame(self, t_ms: int) -> HandFrame:
        state = self.engine.state
        cursor = self.engine.capture_cursor
        if state == EngineState.PER_FINGER_CAPTURE and cursor is not None:
            self.hands.press(*cursor)
        elif state == EngineState.ACTIVE and self.engine.is_armed():
            if self._press_until is None:
                self._presses += 1
                target = self.engine.target
                finger = int(target.finger)
                if self.wrong_every and self._presses % self.wrong_every == 0:
                    finger = (finger + 1) % 5
                self.hands.press(target.side, finger)
                self._press_until = t_ms + 300
        else:
            self.hands.release()

        if self._press_until is not None and t_ms >= self._press_until:
            self.hands.release()
            self._press_until = None
        return self.hands.frame(t_ms)


def _print_event(ev: EngineEvent) -> None:
    if ev.type == EventType.CALIBRATION_STATUS:
        print("[Calibration]", ev.message.replace("\n", " "))
    elif ev.type == EventType.COUNTDOWN_TICK:
        print(f"[Calibration] {ev.seconds}...")
    elif ev.type in (EventType.PAUSED, EventType.RESUMED, EventType.CALIBRATION_COMPLETE):
        print(f"[Engine] {ev.type.value}")


def run(preset: Preset = QUICK_PRESET, exercises: int = 8, profile_path: Optional[Path] = None,
        record: bool = False, realtime: bool = False) -> int:
    store = ProfileStore(profile_path) if profile_path is not None else None
    engine = GestureCalibrationEngine(preset, store=store)
    driver = ExerciseDriver(engine, rearm_ms=500, seed=7)
    src = FakeSource(engine=engine)

    recorder = SessionRecorder() if record else None
    subs = [engine.bus.subscribe_all(_print_event)]
    if recorder is not None:
        subs.append(engine.bus.subscribe_all(recorder.on_event))
        print(f"[Session] writing {recorder.path}")

    print("[FingerPress] Headless demo (FAKE SOURCE).")
    t = 0
    engine.start_calibration()
    try:
        # hard stop so a stuck calibration cannot spin forever
        while len(driver.results) < exercises and t < 600_000:
            hf = src.frame(t)
            engine.update(hf)
            if recorder is not None:
                recorder.log_frame(hf)
            driver.tick(t)
            t += 16
            if realtime:
                time.sleep(0.016)
    except KeyboardInterrupt:
        print("\n[FingerPress] exiting")
    finally:
        for sub in subs:
            sub.close()
        driver.close()
        if recorder is not None:
            recorder.close()

    print(f"[FingerPress] score {driver.score}/{len(driver.results)}")
    return driver.score


if __name__ == "__main__":
    run()
