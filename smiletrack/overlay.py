"""Overlay projection & drawing helpers.

- DisplayConfig: explicit display orientation / mirroring (no ambient device state)
- project_point / project_box / project_landmarks: normalized detector space -> display pixels
- draw_overlays: draw face rectangles, landmark paths and the tally summary on a frame

Detector space is normalized with the origin at the bottom-left corner; landmark
points are additionally relative to their face box. Display space is pixels with
the origin at the top-left corner.
"""
from __future__ import annotations
from typing import List, Optional, Sequence, Tuple
import cv2
import numpy as np
from pydantic import BaseModel

from smiletrack.features import LANDMARK_COUNT
from smiletrack.landmarks import LANDMARK_REGIONS, REGION_SLICES
from smiletrack.models import DetectedFace, FaceBox, Point

_ROTATIONS = {
    "portrait": 0,
    "portrait_upside_down": 180,
    "landscape_left": 90,
    "landscape_right": -90,
}


class DisplayConfig(BaseModel):
    width: int
    height: int
    rotation: int = 0        # degrees clockwise: 0, 90, -90, 180
    mirrored: bool = False   # selfie-style horizontal flip

    @classmethod
    def for_camera(cls, width: int, height: int,
                   orientation: str = "portrait", front_facing: bool = True) -> "DisplayConfig":
        rot = _ROTATIONS.get(orientation)
        if rot is None:
            raise ValueError(f"Unknown orientation: {orientation}")
        return cls(width=width, height=height, rotation=rot, mirrored=front_facing)

    @classmethod
    def from_settings(cls, settings, width: int, height: int) -> "DisplayConfig":
        return cls.for_camera(width, height, settings.ORIENTATION, settings.CAMERA_FACING == "front")

    @classmethod
    def for_frame(cls, settings, frame: np.ndarray) -> "DisplayConfig":
        """Config sized for the frame as it will be shown (sides swap at +-90 degrees)."""
        h, w = frame.shape[:2]
        cfg = cls.from_settings(settings, w, h)
        if cfg.rotation % 180:
            cfg = cls(width=h, height=w, rotation=cfg.rotation, mirrored=cfg.mirrored)
        return cfg


def orient_frame(frame: np.ndarray, config: DisplayConfig) -> np.ndarray:
    """Mirror then rotate a raw frame the same way project_point maps coordinates."""
    out = cv2.flip(frame, 1) if config.mirrored else frame
    rot = config.rotation % 360
    if rot == 90:
        out = cv2.rotate(out, cv2.ROTATE_90_CLOCKWISE)
    elif rot == 180:
        out = cv2.rotate(out, cv2.ROTATE_180)
    elif rot == 270:
        out = cv2.rotate(out, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return out


def project_point(x: float, y: float, config: DisplayConfig) -> Tuple[float, float]:
    """Map one normalized bottom-left-origin point into display pixels."""
    u, v = float(x), 1.0 - float(y)
    if config.mirrored:
        u = 1.0 - u

    rot = config.rotation % 360
    if rot == 90:
        u, v = 1.0 - v, u
    elif rot == 180:
        u, v = 1.0 - u, 1.0 - v
    elif rot == 270:
        u, v = v, 1.0 - u
    elif rot != 0:
        raise ValueError(f"Unsupported rotation: {config.rotation}")

    return u * config.width, v * config.height


def project_box(box: FaceBox, config: DisplayConfig) -> Tuple[int, int, int, int]:
    """Project a face box; returns the (x0, y0, x1, y1) pixel rectangle."""
    corners = [
        project_point(box.x, box.y, config),
        project_point(box.x + box.w, box.y, config),
        project_point(box.x, box.y + box.h, config),
        project_point(box.x + box.w, box.y + box.h, config),
    ]
    xs = [c[0] for c in corners]
    ys = [c[1] for c in corners]
    return int(round(min(xs))), int(round(min(ys))), int(round(max(xs))), int(round(max(ys)))


def project_landmarks(box: FaceBox, landmarks: Sequence[Point],
                      config: DisplayConfig) -> List[Tuple[float, float]]:
    """Project face-relative landmark points into display pixels."""
    return [
        project_point(box.x + p.x * box.w, box.y + p.y * box.h, config)
        for p in landmarks
    ]


def draw_overlays(frame: np.ndarray,
                  faces: List[DetectedFace] | None = None,
                  summary: Optional[str] = None,
                  config: Optional[DisplayConfig] = None,
                  box_color: Tuple[int, int, int] = (0, 255, 0),
                  landmark_color: Tuple[int, int, int] = (0, 255, 255)) -> np.ndarray:
    """Draw face boxes, landmark paths and the summary line on a copy of the frame.

    Args:
        frame: BGR image
        faces: detected faces (normalized geometry)
        summary: tally text drawn in the top-left corner
        config: projection; defaults to the frame size, unrotated, unmirrored

    Returns:
        Annotated copy of the frame
    """
    out = frame.copy()
    h, w = out.shape[:2]
    if config is None:
        config = DisplayConfig(width=w, height=h)

    for face in faces or []:
        x0, y0, x1, y1 = project_box(face.box, config)
        # clamp to image bounds
        x0 = max(0, min(x0, w - 1)); y0 = max(0, min(y0, h - 1))
        x1 = max(0, min(x1, w - 1)); y1 = max(0, min(y1, h - 1))
        cv2.rectangle(out, (x0, y0), (x1, y1), box_color, 2)

        if not face.landmarks or len(face.landmarks) != LANDMARK_COUNT:
            continue
        pts = project_landmarks(face.box, face.landmarks, config)
        for region in LANDMARK_REGIONS:
            seg = pts[REGION_SLICES[region.name]]
            poly = np.array([[int(round(px)), int(round(py))] for px, py in seg], dtype=np.int32)
            cv2.polylines(out, [poly], region.closed, landmark_color, 1, cv2.LINE_AA)

    if summary:
        cv2.putText(out, summary, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 255), 2, cv2.LINE_AA)

    return out
