"""
Pydantic data models shared by the pipeline, the live loop and the API.
"""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Literal


class Point(BaseModel):
    """Normalized 2D point, origin at the bottom-left corner."""
    x: float
    y: float


# exactly 65 points for a usable face; anything else is skipped
LandmarkSet = List[Point]


class FaceBox(BaseModel):
    """Normalized face bounding box in frame space (bottom-left origin)."""
    x: float
    y: float
    w: float
    h: float


class DetectedFace(BaseModel):
    box: FaceBox
    landmarks: Optional[List[Point]] = None


class ClassificationResult(BaseModel):
    backend: str
    smiling: bool


class BackendTally(BaseModel):
    smiling: int = 0
    total: int = 0

    @property
    def not_smiling(self) -> int:
        return self.total - self.smiling


class FrameTally(BaseModel):
    counts: Dict[str, BackendTally] = Field(default_factory=dict)

    def get(self, backend: str) -> BackendTally:
        return self.counts.get(backend, BackendTally())

    @property
    def faces(self) -> int:
        return max((t.total for t in self.counts.values()), default=0)


class FrameReport(BaseModel):
    frame_index: int
    status: Literal["ok", "no_faces", "detector_failure"]
    tally: FrameTally = Field(default_factory=FrameTally)
    faces: List[DetectedFace] = Field(default_factory=list)
    summary: str = ""



# live model


class LiveStatus(BaseModel):
    running: bool
    started_at: float | None = None
    admitted: int = 0
    dropped: int = 0
    last_report: FrameReport | None = None
