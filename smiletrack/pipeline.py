# smiletrack/pipeline.py
from __future__ import annotations
from typing import Callable, List, Optional, Sequence
import logging
import threading

import numpy as np

from smiletrack.aggregate import TallyBoard, aggregate, format_tally
from smiletrack.classifiers import ClassifierAdapter
from smiletrack.errors import ClassifierUnavailable, DetectorFailure, MalformedInput
from smiletrack.features import extract
from smiletrack.models import ClassificationResult, DetectedFace, FrameReport

logger = logging.getLogger(__name__)

ReportSink = Callable[[FrameReport], None]


class FramePipeline:
    """
    One frame in, one FrameReport out:
    detector -> landmark localizer -> feature extractor -> every classifier -> tally.

    Per-face failures (localizer errors, bad landmarks, a classifier error) skip that face or that
    (face, classifier) pair; a detector failure skips the frame and leaves the
    previous tally on the board.
    """

    def __init__(self, detector, localizer, backends: Sequence[ClassifierAdapter],
                 sink: Optional[ReportSink] = None, board: Optional[TallyBoard] = None):
        self.detector = detector
        self.localizer = localizer
        self.backends: List[ClassifierAdapter] = list(backends)
        self.sink = sink
        self.board = board or TallyBoard()
        self._frame_index = 0
        self._index_lock = threading.Lock()

    @property
    def backend_names(self) -> List[str]:
        return [b.name for b in self.backends]

    def _next_index(self) -> int:
        with self._index_lock:
            idx = self._frame_index
            self._frame_index += 1
            return idx

    def process(self, frame: np.ndarray) -> FrameReport:
        idx = self._next_index()
        try:
            boxes = self.detector.detect(frame)
        except DetectorFailure:
            logger.exception(f"[pipeline] frame={idx} detector failed; keeping previous tally")
            report = FrameReport(
                frame_index=idx,
                status="detector_failure",
                tally=self.board.current or aggregate([], self.backend_names),
                summary=format_tally(self.board.current),
            )
            self._emit(report)
            return report

        faces: List[DetectedFace] = []
        results: List[ClassificationResult] = []
        for box in boxes:
            try:
                landmarks = self.localizer.locate(frame, box)
            except Exception:
                logger.exception(f"[pipeline] frame={idx} landmark localization failed; face skipped")
                faces.append(DetectedFace(box=box, landmarks=None))
                continue
            faces.append(DetectedFace(box=box, landmarks=landmarks))
            try:
                features = extract(landmarks)
            except MalformedInput as e:
                logger.debug(f"[pipeline] frame={idx} skipping face: {e}")
                continue
            results.extend(self._classify(idx, features))

        tally = aggregate(results, self.backend_names)
        self.board.publish(tally)
        report = FrameReport(
            frame_index=idx,
            status="ok" if boxes else "no_faces",
            tally=tally,
            faces=faces,
            summary=format_tally(tally),
        )
        logger.debug(f"[pipeline] frame={idx} faces={len(boxes)} summary={report.summary!r}")
        self._emit(report)
        return report

    def _classify(self, idx: int, features: np.ndarray) -> List[ClassificationResult]:
        out: List[ClassificationResult] = []
        # every backend sees every face; one failing does not stop the others
        for backend in self.backends:
            try:
                smiling = backend.predict(features)
            except ClassifierUnavailable as e:
                logger.warning(f"[pipeline] frame={idx} {e}; face skipped for {backend.name}")
                continue
            out.append(ClassificationResult(backend=backend.name, smiling=smiling))
        return out

    def _emit(self, report: FrameReport) -> None:
        if self.sink is not None:
            self.sink(report)


def build_pipeline(settings, sink: Optional[ReportSink] = None,
                   backends: Optional[Sequence[ClassifierAdapter]] = None) -> FramePipeline:
    """Wire the DeepFace detector, FaceMesh localizer and both ONNX classifiers.

    Every call gets its own localizer and TallyBoard. Pass already loaded
    backends to share the ONNX sessions (their run() is thread-safe).
    Raises ModelArtifactMissing before any camera work if a model file is absent.
    """
    from smiletrack.classifiers import load_backends
    from smiletrack.detection import FaceDetector, LandmarkLocalizer

    if backends is None:
        backends = load_backends(settings)
    return FramePipeline(FaceDetector(settings), LandmarkLocalizer(), backends, sink=sink)
