from __future__ import annotations

import time
from typing import List, Optional

import cv2

from fingerpress.core.config import DEFAULT_PRESET, Preset
from fingerpress.core.profile import format_angles
from fingerpress.core.types import EngineEvent, EngineState, EventType, finger_name
from fingerpress.interpreter.engine import GestureCalibrationEngine
from fingerpress.runtime.exercise import ExerciseDriver
from fingerpress.runtime.profile_store import ProfileStore
from fingerpress.sensor.webcam_mp import WebcamMPSrc
from fingerpress.tools.session_recorder import SessionRecorder


class _Overlay:
    """Keeps the latest status / countdown / progress for drawing."""

    def __init__(self) -> None:
        self.status: str = "Press C to calibrate, L to load saved calibration."
        self.countdown: Optional[int] = None
        self.progress: Optional[float] = None
        self.last_detection: Optional[str] = None

    def on_event(self, ev: EngineEvent) -> None:
        if ev.type == EventType.CALIBRATION_STATUS and ev.message:
            self.status = ev.message
        elif ev.type == EventType.COUNTDOWN_TICK:
            self.countdown = ev.seconds
        elif ev.type == EventType.CALIBRATION_PROGRESS:
            self.progress = ev.progress
        elif ev.type == EventType.GESTURE_DETECTED and ev.gesture is not None:
            self.last_detection = f"{ev.gesture.side.label} {finger_name(ev.gesture.finger)}"
        elif ev.type == EventType.CALIBRATION_COMPLETE:
            self.progress = None
            self.countdown = None

    def draw(self, img, engine: GestureCalibrationEngine) -> None:
        lines: List[str] = [f"STATE: {engine.state.value}"]
        lines += self.status.split("\n")
        if engine.state == EngineState.PRE_COUNTDOWN and self.countdown is not None:
            lines.append(f"{self.countdown}")
        if engine.state == EngineState.ACTIVE:
            t = engine.target
            lines.append(f"TARGET: {t.side.label} {finger_name(t.finger)}")
            live = engine.last_angles(t.side)
            if live is not None:
                lines.append(f"{t.side.label.upper()} {format_angles(live)}")
            if self.last_detection:
                lines.append(f"LAST: {self.last_detection}")
        try:
            cv2.rectangle(img, (10, 10), (700, 30 + 32 * len(lines)), (0, 0, 0), -1)
            for i, line in enumerate(lines):
                cv2.putText(img, line, (20, 40 + 32 * i),
                            cv2.FONT_HERSHEY_SIMPLEX, 0.8, (255, 255, 255), 2, cv2.LINE_AA)
            if self.progress is not None and engine.is_calibrating():
                w = int(660 * self.progress)
                y = 40 + 32 * len(lines)
                cv2.rectangle(img, (20, y), (680, y + 14), (80, 80, 80), 1)
                cv2.rectangle(img, (20, y), (20 + w, y + 14), (0, 200, 0), -1)
        except Exception:
            pass


def main(preset: Preset = DEFAULT_PRESET, cam_index: int = 0, record: bool = False) -> None:
    store = ProfileStore()
    engine = GestureCalibrationEngine(preset, store=store)
    driver = ExerciseDriver(engine)
    overlay = _Overlay()
    subs = [engine.bus.subscribe_all(overlay.on_event)]

    recorder = SessionRecorder() if record else None
    if recorder is not None:
        subs.append(engine.bus.subscribe_all(recorder.on_event))
        print(f"[Session] writing {recorder.path}")

    if engine.has_saved():
        print("[Calibration] saved calibration found (press L to load)")

    src = WebcamMPSrc(cam_index=cam_index, mirror=True)

    print("[FingerPress] Webcam runtime. C = calibrate, L = load, X = cancel, D = delete saved, ESC = quit.")
    try:
        while True:
            hf, dbg = src.read()
            if hf is not None:
                engine.update(hf)
                if recorder is not None:
                    recorder.log_frame(hf)
                driver.tick(hf.t_ms)

            if dbg is not None:
                overlay.draw(dbg, engine)
                cv2.imshow("FingerPress (Webcam)", dbg)
                key = cv2.waitKey(1) & 0xFF
                if key == 27:  # ESC
                    break
                if key in (ord('c'), ord('C')):
                    engine.start_calibration()
                elif key in (ord('l'), ord('L')):
                    if engine.load():
                        print("[Calibration] loaded saved calibration")
                    else:
                        print("[Calibration] nothing to load; press C to calibrate")
                elif key in (ord('x'), ord('X')):
                    engine.cancel_calibration()
                elif key in (ord('d'), ord('D')):
                    engine.clear_saved()
                    print("[Calibration] saved calibration deleted")

            time.sleep(0.005)
    finally:
        for sub in subs:
            sub.close()
        driver.close()
        if recorder is not None:
            recorder.close()
        src.close()
        cv2.destroyAllWindows()
        print(f"[FingerPress] score {driver.score}/{len(driver.results)}")


if __name__ == "__main__":
    main()
