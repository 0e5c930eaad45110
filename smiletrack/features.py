"""
Landmark -> feature vector transform.

A face is described by 65 normalized landmark points; the classifiers consume
them flattened point by point as (x0, y0, x1, y1, ..., x64, y64).
"""
from __future__ import annotations
from typing import Sequence, Union
import numpy as np

from smiletrack.errors import MalformedInput
from smiletrack.models import Point

LANDMARK_COUNT = 65
FEATURE_LENGTH = 2 * LANDMARK_COUNT


def _xy(p) -> tuple[float, float]:
    if isinstance(p, Point):
        return float(p.x), float(p.y)
    if isinstance(p, dict):
        return float(p["x"]), float(p["y"])
    x, y = p
    return float(x), float(y)


def extract(landmarks: Union[Sequence, np.ndarray]) -> np.ndarray:
    """Flatten exactly 65 landmark points into a read-only float64 vector of 130 values.

    Points may be Point models, {"x","y"} dicts, (x, y) pairs or an (N, 2) array.
    No scaling is applied; the localizer already normalized the coordinates.

    Raises:
        MalformedInput: when the set does not hold exactly 65 points.
    """
    if landmarks is None:
        raise MalformedInput("no landmarks")
    if isinstance(landmarks, np.ndarray):
        arr = np.asarray(landmarks, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] != 2:
            raise MalformedInput(f"expected an (N, 2) array, got shape {arr.shape}")
    else:
        try:
            arr = np.array([_xy(p) for p in landmarks], dtype=np.float64).reshape(-1, 2)
        except (TypeError, ValueError, KeyError) as e:
            raise MalformedInput(f"unreadable landmark point: {e}") from e

    if arr.shape[0] != LANDMARK_COUNT:
        raise MalformedInput(f"expected {LANDMARK_COUNT} landmarks, got {arr.shape[0]}")

    vec = arr.reshape(-1).copy()
    vec.setflags(write=False)
    return vec
