"""
Face detection (DeepFace) and 65-point landmark localization (MediaPipe FaceMesh).

Both libraries are imported lazily so that tests can inject fakes through
sys.modules and so the heavy stacks only load when a camera session starts.
"""
from __future__ import annotations
from typing import List, Optional, Tuple
import logging

import cv2
import numpy as np

from smiletrack.config import Settings
from smiletrack.errors import DetectorFailure
from smiletrack.landmarks import LANDMARK_INDICES
from smiletrack.models import FaceBox, Point

logger = logging.getLogger(__name__)


def box_from_pixels(x: int, y: int, w: int, h: int, frame_w: int, frame_h: int) -> FaceBox:
    """Pixel rectangle (top-left origin) -> normalized box (bottom-left origin)."""
    x = max(0, min(x, frame_w)); y = max(0, min(y, frame_h))
    w = max(0, min(w, frame_w - x)); h = max(0, min(h, frame_h - y))
    return FaceBox(
        x=x / float(frame_w),
        y=1.0 - (y + h) / float(frame_h),
        w=w / float(frame_w),
        h=h / float(frame_h),
    )


def box_to_pixels(box: FaceBox, frame_w: int, frame_h: int) -> Tuple[int, int, int, int]:
    """Normalized box (bottom-left origin) -> pixel rectangle (top-left origin)."""
    x = int(round(box.x * frame_w))
    y = int(round((1.0 - box.y - box.h) * frame_h))
    w = int(round(box.w * frame_w))
    h = int(round(box.h * frame_h))
    return x, y, w, h


class FaceDetector:
    """DeepFace detector returning normalized face boxes."""

    def __init__(self, settings: Settings):
        self.backend = settings.DETECTOR_BACKEND
        self.min_px = settings.MIN_FACE_PX
        self.min_conf = settings.MIN_DETECTION_CONFIDENCE

    def detect(self, frame: np.ndarray) -> List[FaceBox]:
        """
        Raises:
            DetectorFailure: DeepFace could not be imported or failed on this frame.
        """
        H, W = frame.shape[:2]
        try:
            from deepface import DeepFace
            dets = DeepFace.extract_faces(
                img_path=frame,
                detector_backend=self.backend,
                enforce_detection=False,
                align=False,
            )
        except Exception as e:
            raise DetectorFailure(f"face detection failed: {e}") from e

        boxes: List[FaceBox] = []
        for d in dets or []:
            fa = (d or {}).get("facial_area") or {}
            x, y = int(fa.get("x", 0)), int(fa.get("y", 0))
            w, h = int(fa.get("w", 0)), int(fa.get("h", 0))
            conf = d.get("confidence")
            conf = 1.0 if conf is None else float(conf)
            # enforce_detection=False yields the whole frame at confidence 0 when nothing is found
            if w < self.min_px or h < self.min_px or conf < self.min_conf:
                continue
            boxes.append(box_from_pixels(x, y, w, h, W, H))
        logger.debug(f"[detect] faces={len(boxes)} raw={len(dets or [])}")
        return boxes


class LandmarkLocalizer:
    """MediaPipe FaceMesh on the face crop, sampled down to the 65-point layout.

    Points are normalized within the face box with the origin at the bottom-left.
    """

    def __init__(self, min_detection_confidence: float = 0.5):
        import mediapipe as mp

        self._mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=True,
            max_num_faces=1,
            refine_landmarks=False,
            min_detection_confidence=min_detection_confidence,
        )
        logger.info("[landmarks] MediaPipe FaceMesh initialized")

    def locate(self, frame: np.ndarray, box: FaceBox) -> Optional[List[Point]]:
        """Return the landmark set for one face, or None if no mesh was found.

        A mesh with too few vertices yields a short set; the feature extractor
        rejects it and the face is skipped.
        """
        H, W = frame.shape[:2]
        x, y, w, h = box_to_pixels(box, W, H)
        chip = frame[y:y + h, x:x + w]
        if chip.size == 0:
            return None

        rgb = cv2.cvtColor(chip, cv2.COLOR_BGR2RGB)
        results = self._mesh.process(rgb)
        if not results.multi_face_landmarks:
            return None

        lm = results.multi_face_landmarks[0].landmark
        return [Point(x=lm[i].x, y=1.0 - lm[i].y) for i in LANDMARK_INDICES if i < len(lm)]

    def close(self) -> None:
        self._mesh.close()
