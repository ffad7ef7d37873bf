from __future__ import annotations

import argparse
import logging
from pathlib import Path

from fingerpress.core.config import PRESETS, PresetName


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fingerpress", description="Finger individuation trainer.")
    p.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING, ...")
    p.add_argument("--preset", default=None, choices=[name.value for name in PresetName],
                   help="tuning preset (Default; Quick when no command is given)")
    p.add_argument("--record", action="store_true", help="write a JSONL session log")
    sub = p.add_subparsers(dest="command")

    demo = sub.add_parser("demo", help="headless run with synthetic hands")
    demo.add_argument("--exercises", type=int, default=8)
    demo.add_argument("--profile", type=Path, default=None, help="profile JSON to save into")
    demo.add_argument("--realtime", action="store_true")

    cam = sub.add_parser("webcam", help="webcam + MediaPipe runtime")
    cam.add_argument("--camera", type=int, default=0)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.preset is not None:
        preset = PRESETS[PresetName(args.preset)]
    else:
        preset = PRESETS[PresetName.QUICK if args.command is None else PresetName.DEFAULT]

    if args.command == "webcam":
        # imported lazily: pulls in OpenCV + MediaPipe
        from fingerpress.runtime.run_webcam import main as run_webcam
        run_webcam(preset=preset, cam_index=args.camera, record=args.record)
        return 0

    from fingerpress.runtime.run_loop import run
    if args.command is None:
        run(preset=preset, record=args.record)
        return 0
    run(preset=preset, exercises=args.exercises, profile_path=args.profile,
        record=args.record, realtime=args.realtime)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
