"""
Layout of the 65-point landmark set.

Each region lists the MediaPipe FaceMesh vertices it is sampled from. The
order of regions, and of points within a region, is the order of the
feature vector the classifiers were trained on.
"""
from __future__ import annotations
from typing import Dict, List, NamedTuple


class LandmarkRegion(NamedTuple):
    name: str
    mesh_indices: tuple
    closed: bool


LANDMARK_REGIONS: List[LandmarkRegion] = [
    LandmarkRegion("face_contour", (234, 93, 132, 58, 172, 152, 397, 288, 361, 323, 454), False),
    LandmarkRegion("left_eyebrow", (336, 296, 334, 293), False),
    LandmarkRegion("right_eyebrow", (70, 63, 105, 107), False),
    LandmarkRegion("nose_crest", (168, 6, 197, 195), False),
    LandmarkRegion("median_line", (10, 151, 9, 8), False),
    LandmarkRegion("left_eye", (362, 385, 387, 263, 373, 380), True),
    LandmarkRegion("right_eye", (33, 160, 158, 133, 153, 144), True),
    LandmarkRegion("outer_lips", (61, 40, 37, 0, 267, 270, 291, 321, 314, 17, 84, 91), True),
    LandmarkRegion("inner_lips", (78, 81, 13, 311, 308, 402, 14, 178), True),
    LandmarkRegion("nose", (48, 64, 2, 294, 278, 4), True),
]

LANDMARK_INDICES: List[int] = [i for r in LANDMARK_REGIONS for i in r.mesh_indices]


def _region_slices() -> Dict[str, slice]:
    out: Dict[str, slice] = {}
    start = 0
    for r in LANDMARK_REGIONS:
        out[r.name] = slice(start, start + len(r.mesh_indices))
        start += len(r.mesh_indices)
    return out


REGION_SLICES: Dict[str, slice] = _region_slices()
