from __future__ import annotations

import json
import time
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import IO, Optional

from fingerpress.core.types import FINGER_NAMES, EngineEvent, HandFrame
from fingerpress.interpreter.angles import AngleExtractor, joint_angles

"""
FingerPress Session Recorder
Writes JSONL logs to ~/.cache/fingerpress/sessions/session_<timestamp>.jsonl
One line = one hand in one frame (flexion + joint angles), or one engine event.
"""


def _ser(x):
    if x is None:
        return None
    if isinstance(x, Enum):
        return x.value
    if is_dataclass(x):
        return {k: _ser(v) for k, v in asdict(x).items()}
    if isinstance(x, dict):
        return {str(_ser(k)): _ser(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [_ser(v) for v in x]
    return x


def log_path() -> Path:
    outdir = Path.home() / ".cache" / "fingerpress" / "sessions"
    outdir.mkdir(parents=True, exist_ok=True)
    ts = time.strftime("%Y%m%d_%H%M%S")
    return outdir / f"session_{ts}.jsonl"


class SessionRecorder:
    """
    Append-only JSONL recorder. Pass `on_event` to EventBus.subscribe_all to
    log game events next to the per-frame hand data.
    """

    def __init__(self, path: Optional[Path] = None, stream: Optional[IO[str]] = None) -> None:
        self._extractor = AngleExtractor()
        self._owns = stream is None
        if stream is None:
            self.path: Optional[Path] = Path(path) if path is not None else log_path()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._f: Optional[IO[str]] = open(self.path, "a", buffering=1)
        else:
            self.path = None
            self._f = stream

    @property
    def closed(self) -> bool:
        return self._f is None

    def _write(self, rec: dict) -> None:
        if self._f is None:
            return
        self._f.write(json.dumps(rec) + "\n")

    def log_frame(self, frame: HandFrame) -> None:
        for hand in frame.hands:
            angles = self._extractor.extract(hand)
            joints = {}
            for i, name in enumerate(FINGER_NAMES):
                geometry = hand.fingers[i] if i < len(hand.fingers) else None
                joints[name] = joint_angles(geometry)
            self._write({
                "t_ms": int(frame.t_ms),
                "kind": "hand",
                "side": hand.side.value,
                "hand_id": hand.hand_id,
                "palm": list(hand.palm_position),
                "flexion": dict(zip(FINGER_NAMES, angles)),
                "joints": joints,
            })

    def on_event(self, event: EngineEvent) -> None:
        rec = {"t_ms": int(event.t_ms), "kind": "event", "type": event.type.value}
        for key in ("seconds", "message", "progress", "gesture"):
            value = getattr(event, key)
            if value is not None:
                rec[key] = _ser(value)
        self._write(rec)

    def close(self) -> None:
        if self._f is None:
            return
        if self._owns:
            self._f.close()
        self._f = None

    def __enter__(self) -> "SessionRecorder":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
