"""
CLI to run smile tracking on an image or a video -> JSON.
"""
from __future__ import annotations
import argparse, json, logging, os

import cv2

from smiletrack.config import Settings
from smiletrack.pipeline import build_pipeline

logger = logging.getLogger(__name__)


def analyze_image(path: str, pipeline) -> dict:
    frame = cv2.imread(path)
    if frame is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    return pipeline.process(frame).model_dump()


def analyze_video(path: str, pipeline, every: int = 1) -> list[dict]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Video not found: {path}")
    cap = cv2.VideoCapture(path)
    if not cap.isOpened():
        raise RuntimeError(f"Could not open video: {path}")

    reports = []
    idx = 0
    try:
        while True:
            ok, frame = cap.read()
            if not ok:
                break
            if idx % max(1, every) == 0:
                rep = pipeline.process(frame).model_dump()
                rep["video_frame"] = idx
                reports.append(rep)
            idx += 1
    finally:
        cap.release()
    logger.debug(f"[cli] frames={idx} analyzed={len(reports)}")
    return reports


def main(argv: list[str] | None = None):
    p = argparse.ArgumentParser()
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--image", help="Path to input image")
    src.add_argument("--video", help="Path to input video")
    p.add_argument("--every", type=int, default=1, help="Analyze every Nth video frame")
    p.add_argument("--out", default="output/smiles.json", help="Path to output JSON")
    args = p.parse_args(argv)

    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))
    pipeline = build_pipeline(settings)

    if args.image:
        result = analyze_image(args.image, pipeline)
    else:
        result = analyze_video(args.video, pipeline, every=args.every)
    print(json.dumps(result, indent=2, ensure_ascii=False))

    # Also write to file
    out_dir = os.path.dirname(args.out)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(result, f, indent=2, ensure_ascii=False)
    print(f"✅ Analysis written to {args.out}")

if __name__ == "__main__":
    main()
