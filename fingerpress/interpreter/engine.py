from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Tuple

from fingerpress.core.config import DEFAULT_PRESET, Preset
from fingerpress.core.events import EventBus, Listener, Subscription
from fingerpress.core.profile import CalibrationProfile, ProfileFormatError, ProfileSnapshot, format_angles
from fingerpress.core.types import (
    CALIBRATION_STATES, FINGER_COUNT, HAND_ORDER,
    EngineEvent, EngineState, EventType, Finger, GestureEvent, HandFrame,
    HandSide, PauseCause, TargetSelector, Vec3, clamp01, finger_name,
)
from fingerpress.interpreter.angles import AngleExtractor
from fingerpress.interpreter.classifier import describe, pick_winner, score_fingers
from fingerpress.interpreter.drift import DriftMonitor
from fingerpress.runtime.profile_store import ProfileStore

logger = logging.getLogger(__name__)

TOTAL_FINGERS = FINGER_COUNT * len(HAND_ORDER)

MSG_GET_READY = "Get Ready!\n\nPosition your hands flat above the sensor."
MSG_POSITION = "Position your hands flat above the sensor\nwith fingers extended"
MSG_HOLD_STEADY = "Hold steady..."
MSG_RECORDING = "Recording baseline..."
MSG_NO_HANDS_COUNTDOWN = "No hands detected! Please position your hands."
MSG_BASELINE_START = "Calibrating baseline... Hold still!"
MSG_NO_HANDS_BASELINE = "No hands detected!\nPlease keep both hands visible."
MSG_HANDS_LOST_CAPTURE = "Hands lost! Please return hands to sensor."
MSG_PAUSE_LOST = "Hands not detected!\n\nPlease return your hands to the sensor."
MSG_PAUSE_DRIFT = "Hands have drifted too far!\n\nPlease return to your baseline position."
MSG_RESUMED = "Welcome back! Continue playing."
MSG_COMPLETE = "Calibration complete!\n\nGame starting..."
MSG_LOADED = "Calibration loaded!"
MSG_CANCELLED = "Calibration cancelled."


def _press_prompt(done: int, side: HandSide, finger: int) -> str:
    return f"Finger {done + 1} of {TOTAL_FINGERS}\n\nPress {side.label.upper()} {finger_name(finger).upper()}"


class GestureCalibrationEngine:
    """
    Calibration + finger-press detection state machine.

    Driven once per tracker update via update(frame). Every event produced
    is returned to the caller and published on `bus`. All waits are elapsed
    time accumulated from HandFrame.t_ms, so the engine never blocks.
    """

    def __init__(self, preset: Preset = DEFAULT_PRESET, store: Optional[ProfileStore] = None,
                 bus: Optional[EventBus] = None) -> None:
        self.preset = preset
        self.store = store
        self.bus = bus if bus is not None else EventBus()

        self._profile = CalibrationProfile(alpha=preset.calibration.smoothing_alpha)
        self._extractor = AngleExtractor()
        self._drift = DriftMonitor(preset.tracking)

        self._state: EngineState = EngineState.WAITING_FOR_CALIBRATION
        self._calibrated = False
        self._target = TargetSelector()
        self._armed = True
        self._pause_cause: Optional[PauseCause] = None

        # clock
        self._last_t_ms: Optional[int] = None
        self._now_ms: int = 0
        self._phase_ms: float = 0.0
        self._last_seen: Dict[HandSide, Optional[int]] = {side: None for side in HAND_ORDER}

        # countdown
        self._last_countdown = -1

        # per-finger capture cursor
        self._cursor_side = HandSide.LEFT
        self._cursor_finger = 0
        self._fingers_done = 0
        self._hold_ms: float = 0.0

        self._last_angles: Dict[HandSide, Tuple[float, ...]] = {}
        self._out: List[EngineEvent] = []

    # ------------------------------------------------------------------
    # read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def target(self) -> TargetSelector:
        return self._target

    @property
    def pause_cause(self) -> Optional[PauseCause]:
        return self._pause_cause

    @property
    def capture_cursor(self) -> Optional[Tuple[HandSide, int]]:
        if self._state != EngineState.PER_FINGER_CAPTURE:
            return None
        return self._cursor_side, self._cursor_finger

    def is_calibrated(self) -> bool:
        return self._calibrated

    def is_paused(self) -> bool:
        return self._state == EngineState.PAUSED

    def is_calibrating(self) -> bool:
        return self._state in CALIBRATION_STATES

    def is_armed(self) -> bool:
        return self._armed

    def profile_snapshot(self) -> ProfileSnapshot:
        return self._profile.snapshot()

    def last_angles(self, side: HandSide) -> Optional[Tuple[float, ...]]:
        return self._last_angles.get(side)

    # ------------------------------------------------------------------
    # listeners
    # ------------------------------------------------------------------

    def subscribe(self, event_type: EventType, callback: Listener) -> Subscription:
        return self.bus.subscribe(event_type, callback)

    def subscription(self, event_type: Optional[EventType], callback: Listener):
        return self.bus.subscription(event_type, callback)

    # ------------------------------------------------------------------
    # commands
    # ------------------------------------------------------------------

    def start_calibration(self) -> List[EngineEvent]:
        self._out = []
        if self._state in CALIBRATION_STATES:
            logger.debug("start_calibration ignored: already in %s", self._state.value)
            return self._out

        if self._state in (EngineState.ACTIVE, EngineState.PAUSED):
            logger.info("recalibrating: leaving %s", self._state.value)
            self._set_state(EngineState.WAITING_FOR_CALIBRATION)

        self._calibrated = False
        self._armed = True
        self._pause_cause = None
        self._profile.clear()
        self._last_t_ms = None
        self._phase_ms = 0.0
        self._hold_ms = 0.0
        self._fingers_done = 0
        self._cursor_side = HandSide.LEFT
        self._cursor_finger = 0

        self._set_state(EngineState.PRE_COUNTDOWN)
        seconds = int(math.ceil(self.preset.calibration.countdown_ms / 1000.0))
        self._last_countdown = seconds
        logger.info("calibration started (%ds countdown)", seconds)
        self._status(MSG_GET_READY)
        self._emit(EventType.COUNTDOWN_TICK, seconds=seconds)
        return self._out

    def cancel_calibration(self) -> List[EngineEvent]:
        self._out = []
        if self._state not in CALIBRATION_STATES:
            return self._out
        logger.info("calibration cancelled in %s", self._state.value)
        self._profile.clear()
        self._calibrated = False
        self._hold_ms = 0.0
        self._phase_ms = 0.0
        self._set_state(EngineState.WAITING_FOR_CALIBRATION)
        self._status(MSG_CANCELLED)
        return self._out

    def reset_exercise(self, side: HandSide, finger: int) -> bool:
        """Set a new target and re-arm detection. Ignored unless ACTIVE."""
        if self._state != EngineState.ACTIVE:
            logger.debug("reset_exercise ignored in %s", self._state.value)
            return False
        try:
            side = HandSide(side)
            finger = int(finger)
        except (TypeError, ValueError):
            logger.warning("reset_exercise: invalid target %r %r", side, finger)
            return False
        if not 0 <= finger < FINGER_COUNT:
            logger.warning("reset_exercise: invalid finger index %r", finger)
            return False
        self._target = TargetSelector(side=side, finger=finger)
        self._armed = True
        logger.debug("new target: %s %s", self._target.side.label, finger_name(self._target.finger))
        return True

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    def save(self) -> Optional[Dict[str, float]]:
        if not self._calibrated:
            logger.warning("cannot save: not calibrated yet")
            return None
        values = self._profile.serialize()
        if self.store is not None:
            self.store.write(values)
            logger.info("calibration saved to %s", self.store.path)
        return values

    def load(self, serialized: Optional[Dict[str, object]] = None) -> bool:
        self._out = []
        if self._state in CALIBRATION_STATES:
            logger.warning("cannot load while calibrating (%s)", self._state.value)
            return False

        if serialized is None:
            if self.store is None:
                logger.warning("no profile store attached; nothing to load")
                return False
            serialized = self.store.read()
            if serialized is None:
                logger.warning("no saved calibration data found")
                return False

        try:
            profile = CalibrationProfile.deserialize(serialized, alpha=self.preset.calibration.smoothing_alpha)
        except ProfileFormatError as e:
            logger.warning("saved calibration is corrupt: %s", e)
            return False

        self._profile = profile
        self._calibrated = True
        self._pause_cause = None
        self._enter_active()
        logger.info("calibration loaded")
        self._status(MSG_LOADED)
        return True

    def has_saved(self) -> bool:
        return self.store is not None and self.store.has_saved()

    def clear_saved(self) -> None:
        if self.store is not None:
            self.store.clear()
            logger.info("saved calibration cleared")

    # ------------------------------------------------------------------
    # frame processing
    # ------------------------------------------------------------------

    def update(self, frame: HandFrame) -> List[EngineEvent]:
        self._out = []
        dt = self._advance_clock(frame.t_ms)
        for h in frame.hands:
            self._last_seen[h.side] = frame.t_ms

        if self._state == EngineState.PRE_COUNTDOWN:
            self._process_countdown(frame, dt)
        elif self._state == EngineState.BASELINE_CAPTURE:
            self._process_baseline(frame, dt)
        elif self._state == EngineState.PER_FINGER_CAPTURE:
            self._process_finger_capture(frame, dt)
        elif self._state == EngineState.ACTIVE:
            self._process_active(frame)
        elif self._state == EngineState.PAUSED:
            self._process_paused(frame)
        return self._out

    def _advance_clock(self, t_ms: int) -> float:
        dt = 0.0 if self._last_t_ms is None else float(max(0, t_ms - self._last_t_ms))
        self._last_t_ms = t_ms
        self._now_ms = t_ms
        return dt

    def _process_countdown(self, frame: HandFrame, dt: float) -> None:
        self._phase_ms += dt
        remaining_ms = self.preset.calibration.countdown_ms - self._phase_ms
        current = int(math.ceil(remaining_ms / 1000.0))

        if current != self._last_countdown and current > 0:
            self._last_countdown = current
            self._emit(EventType.COUNTDOWN_TICK, seconds=current)
            if current > 5:
                self._status(MSG_POSITION)
            elif current > 2:
                self._status(MSG_HOLD_STEADY)
            else:
                self._status(MSG_RECORDING)

        if not frame.hands and current <= 5:
            self._status(MSG_NO_HANDS_COUNTDOWN)

        if remaining_ms <= 0:
            self._phase_ms = 0.0
            self._set_state(EngineState.BASELINE_CAPTURE)
            self._status(MSG_BASELINE_START)

    def _process_baseline(self, frame: HandFrame, dt: float) -> None:
        hands = [frame.hand(side) for side in HAND_ORDER]
        if any(h is None for h in hands):
            self._status(MSG_NO_HANDS_BASELINE)
            return

        duration = self.preset.calibration.baseline_capture_ms
        self._phase_ms += dt
        for hand in hands:
            angles = self._extractor.extract(hand)
            self._last_angles[hand.side] = tuple(angles)
            self._profile.record_baseline_sample(hand.side, angles, hand.palm_position)

        self._emit(EventType.CALIBRATION_PROGRESS, progress=clamp01(self._phase_ms / duration))

        if self._phase_ms < duration:
            remaining = (duration - self._phase_ms) / 1000.0
            self._status(f"Recording baseline... {remaining:.1f}s\nKeep hands still!")
            return

        for side in HAND_ORDER:
            logger.info("baseline %s: %s", side.label, format_angles(self._profile.baseline[side]))

        self._cursor_side = HandSide.LEFT
        self._cursor_finger = 0
        self._fingers_done = 0
        self._hold_ms = 0.0
        self._set_state(EngineState.PER_FINGER_CAPTURE)
        self._status("Now press individual fingers\n\n"
                     f"Press {self._cursor_side.label.upper()} {finger_name(self._cursor_finger).upper()}")
        self._emit(EventType.CALIBRATION_PROGRESS, progress=0.0)

    def _process_finger_capture(self, frame: HandFrame, dt: float) -> None:
        side = self._cursor_side
        finger = self._cursor_finger

        if not frame.hands:
            self._hold_ms = 0.0
            self._status(MSG_HANDS_LOST_CAPTURE)
            return

        hand = frame.hand(side)
        if hand is None:
            self._hold_ms = 0.0
            self._status(f"{side.label} hand not detected!\nPlease show both hands.")
            return

        cal = self.preset.calibration
        angles = self._extractor.extract(hand)
        self._last_angles[side] = tuple(angles)
        current = angles[finger]
        delta = abs(current - self._profile.baseline[side][finger])

        if delta < cal.min_detection_threshold_deg:
            # the press must be held continuously
            self._hold_ms = 0.0
            self._status(_press_prompt(self._fingers_done, side, finger))
            return

        self._hold_ms += dt
        self._profile.record_pressed_sample(side, finger, current)

        if self._hold_ms < cal.finger_hold_ms:
            self._emit(EventType.CALIBRATION_PROGRESS, progress=clamp01(self._hold_ms / cal.finger_hold_ms))
            remaining = (cal.finger_hold_ms - self._hold_ms) / 1000.0
            self._status(f"Hold {side.label.upper()} {finger_name(finger).upper()}\n{remaining:.1f}s")
            return

        separation = self._profile.separation(side, finger)
        if separation < cal.min_detection_threshold_deg:
            # smoothed press too close to rest: keep holding
            logger.info("%s %s press not distinct yet (%.0f deg); holding",
                        side.label, finger_name(finger), separation)
            self._hold_ms = 0.0
            self._status(_press_prompt(self._fingers_done, side, finger))
            return

        logger.info("calibrated %s %s: baseline=%.0f pressed=%.0f delta=%.0f",
                    side.label, finger_name(finger),
                    self._profile.baseline[side][finger], self._profile.pressed[side][finger], separation)
        self._advance_cursor()

    def _advance_cursor(self) -> None:
        self._fingers_done += 1
        self._hold_ms = 0.0
        if self._cursor_finger < FINGER_COUNT - 1:
            self._cursor_finger += 1
        elif self._cursor_side == HandSide.LEFT:
            self._cursor_side = HandSide.RIGHT
            self._cursor_finger = 0
        else:
            self._finish_calibration()
            return

        self._status(_press_prompt(self._fingers_done, self._cursor_side, self._cursor_finger))
        self._emit(EventType.CALIBRATION_PROGRESS, progress=self._fingers_done / TOTAL_FINGERS)

    def _finish_calibration(self) -> None:
        self._calibrated = True
        self._enter_active()
        for side in HAND_ORDER:
            logger.info("baseline %s: %s", side.label, format_angles(self._profile.baseline[side]))
            logger.info("pressed  %s: %s", side.label, format_angles(self._profile.pressed[side]))
        logger.info("calibration complete (weakest press L %.0f deg, R %.0f deg; max drift %.3f)",
                    self._profile.min_separation(HandSide.LEFT), self._profile.min_separation(HandSide.RIGHT),
                    self._drift.max_position_drift)

        if self.store is not None:
            self.save()

        self._emit(EventType.CALIBRATION_PROGRESS, progress=1.0)
        self._status(MSG_COMPLETE)
        self._emit(EventType.CALIBRATION_COMPLETE)

    def _enter_active(self) -> None:
        self._drift.set_baseline({
            side: pos for side, pos in self._profile.baseline_position.items()
            if self._profile.has_baseline(side)
        })
        for side in HAND_ORDER:
            self._last_seen[side] = self._now_ms
        self._armed = True
        self._set_state(EngineState.ACTIVE)

    def _process_active(self, frame: HandFrame) -> None:
        timeout = self.preset.tracking.hand_lost_timeout_ms
        for side in self._drift.calibrated_sides() or HAND_ORDER:
            seen = self._last_seen.get(side)
            if seen is None or (self._now_ms - seen) > timeout:
                self._pause(PauseCause.HANDS_LOST)
                return

        if frame.hands and self._drift.check_drift(frame.palm_positions()):
            self._pause(PauseCause.HANDS_DRIFTED)
            return

        hand = frame.hand(self._target.side)
        if hand is None:
            return

        side = hand.side
        angles = self._extractor.extract(hand)
        self._last_angles[side] = tuple(angles)
        if not self._armed:
            return

        scores = score_fingers(angles, self._profile.baseline[side], self._profile.pressed[side],
                               self.preset.detection.pressed_threshold_ratio)
        winner = pick_winner(scores)
        if winner is None:
            return

        self._armed = False
        logger.debug("[%s] %s", side.label, describe(scores))
        logger.debug("detected %s %s (target %s)", side.label, finger_name(winner),
                     finger_name(self._target.finger))
        self._emit(EventType.GESTURE_DETECTED, gesture=GestureEvent(side=side, finger=Finger(winner)))

    def _process_paused(self, frame: HandFrame) -> None:
        if not frame.hands:
            return
        if not self._drift.check_resume(frame.palm_positions()):
            return

        self._pause_cause = None
        for side in HAND_ORDER:
            self._last_seen[side] = self._now_ms
        self._set_state(EngineState.ACTIVE)
        self._emit(EventType.RESUMED)
        self._emit(EventType.HANDS_RESTORED)
        self._status(MSG_RESUMED)

    def _pause(self, cause: PauseCause) -> None:
        if self._state == EngineState.PAUSED:
            return
        self._pause_cause = cause
        self._set_state(EngineState.PAUSED)
        reason = MSG_PAUSE_LOST if cause == PauseCause.HANDS_LOST else MSG_PAUSE_DRIFT
        logger.info("paused: %s", cause.value)
        self._emit(EventType.PAUSED)
        self._status(reason)
        self._emit(EventType.HANDS_LOST if cause == PauseCause.HANDS_LOST else EventType.HANDS_DRIFTED)

    # ------------------------------------------------------------------
    # target finger geometry (for highlighting in a UI)
    # ------------------------------------------------------------------

    def target_knuckle_position(self, frame: HandFrame) -> Optional[Vec3]:
        geometry = self._target_geometry(frame)
        if geometry is None or not geometry.bones:
            return None
        return geometry.bones[0].next_joint

    def target_tip_position(self, frame: HandFrame) -> Optional[Vec3]:
        geometry = self._target_geometry(frame)
        if geometry is None:
            return None
        return geometry.tip_position

    def _target_geometry(self, frame: HandFrame):
        hand = frame.hand(self._target.side)
        if hand is None or self._target.finger >= len(hand.fingers):
            return None
        return hand.fingers[self._target.finger]

    # ------------------------------------------------------------------

    def _set_state(self, state: EngineState) -> None:
        if state != self._state:
            logger.debug("state %s -> %s", self._state.value, state.value)
        self._state = state

    def _status(self, message: str) -> None:
        self._emit(EventType.CALIBRATION_STATUS, message=message)

    def _emit(self, event_type: EventType, **payload) -> None:
        ev = EngineEvent(t_ms=self._now_ms, type=event_type, **payload)
        self._out.append(ev)
        self.bus.publish(ev)
