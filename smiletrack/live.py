# smiletrack/live.py
"""
Live (real-time) smile tracking.

Threads:
- capture (producer): reads camera frames in order and offers each to the
  FrameDispatcher; frames arriving while an analysis is in flight are dropped
- dispatcher worker: runs FramePipeline.process on the admitted frame
- UI: the single thread allowed to touch display state; completions are
  posted to it through a UiQueue

This module also provides a live overlay window (run_live_overlay) that draws:
- Face rectangle(s)
- Landmark paths (65-point layout)
- Tally summary per classifier
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from typing import Any, Callable, Optional

import cv2

# Prevent OpenMP oversubscription on CPU
os.environ.setdefault("OMP_NUM_THREADS", "1")
os.environ.setdefault("MKL_NUM_THREADS", "1")

from smiletrack.aggregate import format_tally
from smiletrack.config import Settings
from smiletrack.dispatcher import FrameDispatcher
from smiletrack.models import FrameReport, LiveStatus
from smiletrack.overlay import DisplayConfig, draw_overlays, orient_frame
from smiletrack.pipeline import FramePipeline, build_pipeline

logger = logging.getLogger(__name__)

WINDOW_NAME = "Smile Tracker (q to quit)"


# -----------------------------------------------------------------------------
# UI serialization
# -----------------------------------------------------------------------------
class UiQueue:
    """Callables to run on the UI thread, in post order.

    The owner either calls drain() from its own loop (the OpenCV window case,
    where the main thread is the UI thread) or hands run_forever() a thread.
    """
    def __init__(self):
        self._q: "queue.Queue[Optional[tuple]]" = queue.Queue()

    def post(self, fn: Callable[..., Any], *args) -> None:
        self._q.put((fn, args))

    def drain(self) -> int:
        n = 0
        while True:
            try:
                item = self._q.get_nowait()
            except queue.Empty:
                return n
            if item is None:
                continue
            self._call(item)
            n += 1

    def run_forever(self) -> None:
        while True:
            item = self._q.get()
            if item is None:
                return
            self._call(item)

    def close(self) -> None:
        self._q.put(None)

    @staticmethod
    def _call(item) -> None:
        fn, args = item
        try:
            fn(*args)
        except Exception:
            logger.exception("[ui] display update failed")


# -----------------------------------------------------------------------------
# LiveAnalyzer: background capture + analysis producing rolling snapshots (no window)
# -----------------------------------------------------------------------------
class LiveAnalyzer:
    """Streams camera frames through the pipeline and keeps the latest report."""
    def __init__(self, settings: Settings, pipeline: Optional[FramePipeline] = None):
        self.s = settings
        self._pipeline = pipeline
        self.dispatcher = FrameDispatcher()
        self.ui = UiQueue()
        self._run = False
        self._capture_thread: Optional[threading.Thread] = None
        self._ui_thread: Optional[threading.Thread] = None
        self._last_report: Optional[FrameReport] = None
        self._started_at: Optional[float] = None

    # ---- lifecycle ----
    def start(self):
        if self._run:
            return
        if self._pipeline is None:
            # model artifacts are checked here, before any frame is streamed
            self._pipeline = build_pipeline(self.s)
        self._run = True
        self._started_at = time.time()
        self.ui = UiQueue()
        self._ui_thread = threading.Thread(target=self.ui.run_forever, name="ui", daemon=True)
        self._capture_thread = threading.Thread(target=self._capture_loop, name="capture", daemon=True)
        self._ui_thread.start()
        self._capture_thread.start()
        logger.info(f"[live] started camera={self.s.CAMERA_INDEX}")

    def stop(self, timeout: float = 2.0):
        if not self._run:
            return
        self._run = False
        if self._capture_thread is not None:
            self._capture_thread.join(timeout)
        self.dispatcher.wait_idle(timeout)
        self.ui.close()
        if self._ui_thread is not None:
            self._ui_thread.join(timeout)
        logger.info(f"[live] stopped admitted={self.dispatcher.admitted} dropped={self.dispatcher.dropped}")

    @property
    def running(self) -> bool:
        return self._run

    def status(self) -> LiveStatus:
        return LiveStatus(
            running=self._run,
            started_at=self._started_at,
            admitted=self.dispatcher.admitted,
            dropped=self.dispatcher.dropped,
            last_report=self._last_report,
        )

    # ---- loops ----
    def _capture_loop(self):
        cap = cv2.VideoCapture(self.s.CAMERA_INDEX)
        if not cap.isOpened():
            logger.error(f"[live] could not open camera index {self.s.CAMERA_INDEX}")
            self._run = False
            return
        try:
            while self._run:
                ok, frame = cap.read()
                if not ok:
                    time.sleep(0.1)
                    continue
                self.dispatcher.submit(frame, self._pipeline.process, self._on_complete)
        finally:
            cap.release()

    def _on_complete(self, report: Optional[FrameReport], error: Optional[BaseException]):
        # runs on the dispatcher worker; hand display state to the UI thread
        if report is not None:
            self.ui.post(self._set_report, report)

    def _set_report(self, report: FrameReport):
        self._last_report = report


# -----------------------------------------------------------------------------
# Live camera overlay (OpenCV window; the calling thread is the UI thread)
# -----------------------------------------------------------------------------
def run_live_overlay(settings: Settings, camera_index: Optional[int] = None,
                     pipeline: Optional[FramePipeline] = None) -> None:
    """
    Open webcam, track faces and smiles, draw rectangles + landmarks + tally.

    Analysis runs on a worker behind the FrameDispatcher, so the preview keeps
    the camera frame rate while the overlay shows the latest finished frame.
    Press 'q' to quit.
    """
    cam_idx = settings.CAMERA_INDEX if camera_index is None else camera_index
    cap = cv2.VideoCapture(cam_idx)
    if not cap.isOpened():
        raise RuntimeError(f"Could not open camera index {cam_idx}")

    if pipeline is None:
        try:
            pipeline = build_pipeline(settings)
        except Exception:
            cap.release()
            raise

    dispatcher = FrameDispatcher()
    ui = UiQueue()
    latest: dict = {"report": None}

    def _on_complete(report, error):
        if report is not None:
            ui.post(latest.__setitem__, "report", report)

    config: Optional[DisplayConfig] = None
    try:
        while True:
            ok, frame = cap.read()
            if not ok:
                break

            dispatcher.submit(frame, pipeline.process, _on_complete)
            ui.drain()

            if config is None:
                config = DisplayConfig.for_frame(settings, frame)
            report: Optional[FrameReport] = latest["report"]
            shown = orient_frame(frame, config)
            annotated = draw_overlays(
                shown,
                report.faces if report else [],
                format_tally(report.tally if report else None, plain=True),
                config,
            )
            cv2.imshow(WINDOW_NAME, annotated)

            if (cv2.waitKey(1) & 0xFF) == ord("q"):
                break
    finally:
        dispatcher.wait_idle(timeout=2.0)
        cap.release()
        cv2.destroyAllWindows()
        logger.info(f"[live] overlay closed admitted={dispatcher.admitted} dropped={dispatcher.dropped}")
