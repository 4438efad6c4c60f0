"""Console capture loop: camera -> face hint -> session -> logged readings.

Run with: `facepulse` (or `python run_app.py`)
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger("facepulse")


def setup_logging(logs_dir: Optional[Path] = None, level: int = logging.INFO) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if logs_dir is not None:
        logs_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(logs_dir / "app.log", encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Estimate heart rate from a webcam feed.")
    p.add_argument("--device", type=int, default=0, help="camera index")
    p.add_argument("--width", type=int, default=640)
    p.add_argument("--height", type=int, default=480)
    p.add_argument("--fps", type=int, default=30)
    p.add_argument("--window-sec", type=float, default=30.0, help="buffer length")
    p.add_argument("--min-sec", type=float, default=10.0, help="data needed before a reading")
    p.add_argument("--no-face-detector", action="store_true", help="use heuristic ROI only")
    p.add_argument("--logs", type=Path, default=None, help="directory for app.log")
    p.add_argument("--debug", action="store_true")
    return p


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.logs, logging.DEBUG if args.debug else logging.INFO)

    from .capture import Capture, CaptureConfig
    from .session import SessionConfig, SessionController

    detector = None
    if not args.no_face_detector:
        from .detector import CascadeFaceDetector

        detector = CascadeFaceDetector()

    cfg = SessionConfig(
        capacity=int(args.window_sec * args.fps),
        min_fill=int(args.min_sec * args.fps),
        sample_rate_hz=float(args.fps),
        estimate_sample_rate=True,
        analysis_every=args.fps,  # one reading per second
    )
    session = SessionController(cfg)
    cap_cfg = CaptureConfig(args.device, args.width, args.height, args.fps)

    logger.info("starting capture on device %d", args.device)
    with Capture(cap_cfg) as cap:
        session.start()
        try:
            while True:
                frame = cap.read()
                hint = detector.detect(frame.pixels) if detector is not None else None
                reading = session.on_frame(frame, hint)
                if reading is not None:
                    logger.info(
                        "bpm=%d conf=%.2f snr=%.2f quality=%s lighting=%s motion=%s",
                        reading.bpm,
                        reading.confidence,
                        reading.snr,
                        reading.quality.value,
                        session.lighting.value,
                        session.movement_detected,
                    )
                elif session.last_roi is None:
                    logger.debug("no ROI in frame")
                else:
                    logger.debug("buffering %.0f%%", 100.0 * session.buffer_progress())
        except KeyboardInterrupt:
            logger.info("interrupted")
        finally:
            session.stop()


if __name__ == "__main__":  # pragma: no cover
    main()
