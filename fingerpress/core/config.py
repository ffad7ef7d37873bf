"""
FingerPress: Defaults (Presets)

Timings are in milliseconds of tracker time (HandFrame.t_ms), angles in
degrees, drift in tracker length units.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PresetName(str, Enum):
    DEFAULT = "Default"
    QUICK = "Quick"
    STRICT = "Strict"


@dataclass(frozen=True)
class CalibrationTuning:
    min_detection_threshold_deg: float = 15.0  # angle change that counts as a press
    finger_hold_ms: int = 2000                 # continuous hold per finger
    baseline_capture_ms: int = 2000
    countdown_ms: int = 10000
    smoothing_alpha: float = 0.2               # weight of each new sample


@dataclass(frozen=True)
class DetectionTuning:
    # candidate if dist_to_pressed < dist_to_baseline * ratio
    pressed_threshold_ratio: float = 0.6


@dataclass(frozen=True)
class TrackingSafety:
    max_position_drift: float = 0.15
    resume_factor: float = 0.7       # resume needs drift <= max * factor
    hand_lost_timeout_ms: int = 1000


@dataclass(frozen=True)
class Preset:
    name: PresetName
    calibration: CalibrationTuning = CalibrationTuning()
    detection: DetectionTuning = DetectionTuning()
    tracking: TrackingSafety = TrackingSafety()


DEFAULT_PRESET = Preset(name=PresetName.DEFAULT)

QUICK_PRESET = Preset(
    name=PresetName.QUICK,
    calibration=CalibrationTuning(finger_hold_ms=1000, baseline_capture_ms=1000, countdown_ms=3000),
)

STRICT_PRESET = Preset(
    name=PresetName.STRICT,
    calibration=CalibrationTuning(min_detection_threshold_deg=20.0),
    detection=DetectionTuning(pressed_threshold_ratio=0.5),
    # Tighter box: small hand shifts already count as drift.
    tracking=TrackingSafety(max_position_drift=0.10, hand_lost_timeout_ms=800),
)

PRESETS = {
    PresetName.DEFAULT: DEFAULT_PRESET,
    PresetName.QUICK: QUICK_PRESET,
    PresetName.STRICT: STRICT_PRESET,
}
