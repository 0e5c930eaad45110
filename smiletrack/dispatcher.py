"""
Single-slot admission control for frame inference.

At most one frame per capture stream is being analyzed at any time. A frame
that arrives while the slot is taken is dropped, never queued: the next camera
frame is a full substitute, so the pipeline can never fall behind the camera.
"""
from __future__ import annotations
from enum import Enum
from typing import Any, Callable, Optional
import logging
import threading

logger = logging.getLogger(__name__)


class DispatcherState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"


# on_complete(result, error): exactly one of the two is set
CompletionHandler = Callable[[Any, Optional[BaseException]], None]


class FrameDispatcher:
    """Idle/Busy state machine guarding one in-flight inference."""

    def __init__(self, run_inline: bool = False, name: str = "frame-dispatcher"):
        self.run_inline = run_inline
        self.name = name
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._busy = False
        self.admitted = 0
        self.dropped = 0

    @property
    def state(self) -> DispatcherState:
        with self._lock:
            return DispatcherState.BUSY if self._busy else DispatcherState.IDLE

    def try_acquire(self) -> bool:
        """Atomic test-and-set of the in-flight slot."""
        with self._lock:
            if self._busy:
                self.dropped += 1
                return False
            self._busy = True
            self.admitted += 1
            self._idle.clear()
            return True

    def release(self) -> None:
        with self._lock:
            self._busy = False
            self._idle.set()

    def submit(self, frame: Any, work: Callable[[Any], Any],
               on_complete: Optional[CompletionHandler] = None) -> bool:
        """Run work(frame) if the slot is free; return False if the frame was dropped."""
        if not self.try_acquire():
            logger.debug(f"[dispatch] busy; dropped frame (dropped={self.dropped})")
            return False

        if self.run_inline:
            self._run(frame, work, on_complete)
        else:
            t = threading.Thread(target=self._run, args=(frame, work, on_complete),
                                 name=self.name, daemon=True)
            try:
                t.start()
            except Exception:
                logger.exception("[dispatch] could not start worker; slot released")
                self.release()
                raise
        return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        return self._idle.wait(timeout)

    def _run(self, frame, work, on_complete) -> None:
        result, error = None, None
        try:
            result = work(frame)
        except Exception as e:
            error = e
            logger.exception("[dispatch] frame work failed; frame skipped")
        try:
            if on_complete is not None:
                on_complete(result, error)
        except Exception:
            logger.exception("[dispatch] completion handler failed")
        finally:
            self.release()
