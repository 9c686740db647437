# main.py
"""
Demo entry-point for the armor-vision detectors.

Runs one detector over a video file, image or camera index and shows the
overlay. Snipe mode can also drive the EKF tracker through the PnP solver.

Live-tuning
-----------
Pass ``--params some.json``; edits to that file are picked up on the next
frame (see ``armor_vision/params.py``).
"""
from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import cv2

from armor_vision.buff import BuffDetector
from armor_vision.common import Team
from armor_vision.config import (
    BlobParams,
    BuffConfig,
    OreCubeConfig,
    SnipeConfig,
    SolverConfig,
    TrackerConfig,
)
from armor_vision.guiding_light import GuidingLightDetector
from armor_vision.ore_cube import OreCubeDetector
from armor_vision.params import RuntimeParamWatcher
from armor_vision.snipe import SnipeDetector
from armor_vision.solver import ArmorPoseSolver
from armor_vision.tracker import ArmorTracker

logger = logging.getLogger("armor_vision.demo")

_CONFIGS = {
    "guiding": (GuidingLightDetector, BlobParams),
    "snipe": (SnipeDetector, SnipeConfig),
    "buff": (BuffDetector, BuffConfig),
    "orecube": (OreCubeDetector, OreCubeConfig),
}


# ────────────────────────────────────────────────────────────────────────────
#   L O G G I N G   (console + file)
# ────────────────────────────────────────────────────────────────────────────
def setup_logging(log_file: Path, debug: bool) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    fmt = logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(fmt)
    file_sink = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    file_sink.setFormatter(fmt)

    root = logging.getLogger()
    root.handlers[:] = [console, file_sink]
    root.setLevel(logging.DEBUG if debug else logging.INFO)


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Run an armor-vision detector on a video source.")
    ap.add_argument("detector", choices=sorted(_CONFIGS))
    ap.add_argument("--source", default="0", help="video/image path or camera index")
    ap.add_argument("--params", type=Path, default=None, help="JSON parameter file (hot-reloaded)")
    ap.add_argument("--enemy", choices=[t.value for t in Team], default=None)
    ap.add_argument("--verbose", type=int, default=2, help="overlay level 0-3")
    ap.add_argument("--track", action="store_true", help="snipe only: run the EKF tracker")
    ap.add_argument("--log-file", type=Path, default=Path("logs/vision.log"))
    ap.add_argument("--debug", action="store_true")
    return ap.parse_args(argv)


def _open_source(source: str) -> cv2.VideoCapture:
    return cv2.VideoCapture(int(source)) if source.isdigit() else cv2.VideoCapture(source)


# ────────────────────────────────────────────────────────────────────────────
#   M A I N
# ────────────────────────────────────────────────────────────────────────────
def main(argv: Optional[list] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.debug)
    logger.warning("***** Running %s demo. *****", args.detector)

    det_cls, cfg_cls = _CONFIGS[args.detector]
    watcher = RuntimeParamWatcher(args.params, cfg_cls) if args.params else None
    cfg = watcher.config if watcher else cfg_cls()
    if args.enemy and hasattr(cfg, "enemy_team"):
        cfg.enemy_team = args.enemy

    try:
        detector = det_cls(cfg)
    except (FileNotFoundError, RuntimeError) as exc:
        logger.error("[Demo] Could not build %s: %s", det_cls.__name__, exc)
        return 1

    tracker = solver = None
    if args.track and isinstance(detector, SnipeDetector):
        solver = ArmorPoseSolver(SolverConfig())
        tracker = ArmorTracker(TrackerConfig(), nominal_dt=1.0 / 60.0)

    cap = _open_source(args.source)
    if not cap.isOpened():
        logger.error("[Demo] Could not open source %s", args.source)
        return 1

    try:
        while True:
            ok, frame = cap.read()
            if not ok or frame is None:
                break
            ts = time.time()

            if watcher is not None:
                new_cfg = watcher.maybe_reload()
                if new_cfg is not None:
                    try:
                        detector.apply_config(new_cfg)
                    except (cv2.error, ValueError) as exc:
                        logger.error("[Runtime] Rejected parameters, keeping old ones: %s", exc)

            targets = detector.detect(frame)
            out = frame.copy()
            detector.visualize_result(out, args.verbose)

            if tracker is not None:
                obs = model = None
                if targets:
                    try:
                        obs = solver.observe(targets[0])
                        model = targets[0].model
                    except RuntimeError as exc:
                        logger.debug("[Demo] PnP failed: %s", exc)
                tracker.predict_and_update(obs, ts, model)
                rpt = tracker.get_report()
                if rpt is not None:
                    yaw, pitch, dist = rpt.aim
                    cv2.putText(
                        out,
                        f"ID:{rpt.track_id} yaw:{yaw:.3f} pitch:{pitch:.3f} d:{dist:.2f}m",
                        (10, 60),
                        cv2.FONT_HERSHEY_SIMPLEX,
                        0.6,
                        (0, 255, 255),
                        1,
                    )

            cv2.imshow("armor-vision", out)
            if (cv2.waitKey(1) & 0xFF) == ord("q"):
                break
    except KeyboardInterrupt:
        logger.info("[Demo] Stopped by user.")
    finally:
        if isinstance(detector, SnipeDetector):
            detector.close()
        cap.release()
        cv2.destroyAllWindows()
    logger.info("[Demo] Finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
