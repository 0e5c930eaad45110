"""
Per-frame tally of classification results.
"""
from __future__ import annotations
from typing import Dict, Iterable, Optional
import threading

from smiletrack.models import BackendTally, ClassificationResult, FrameTally

NO_FACES_TEXT = "Find Faces"


def aggregate(results: Iterable[ClassificationResult], backends: Iterable[str] = ()) -> FrameTally:
    """Count smiling vs total per backend for one frame.

    Backends listed in `backends` always get an entry, 0/0 when no face was
    classified. Input order does not matter.
    """
    counts: Dict[str, BackendTally] = {b: BackendTally() for b in backends}
    for r in results:
        t = counts.setdefault(r.backend, BackendTally())
        t.total += 1
        if r.smiling:
            t.smiling += 1
    return FrameTally(counts=counts)


def format_tally(tally: Optional[FrameTally], plain: bool = False) -> str:
    """Render the tally as the one-line display summary.

    plain=True swaps the emoji for words (OpenCV's Hershey fonts are ASCII only).
    """
    if tally is None or tally.faces == 0:
        return NO_FACES_TEXT
    yes, no = ("smile", "neutral") if plain else ("😃", "😐")
    parts = [
        f"{name}: {t.smiling} {yes} {t.not_smiling} {no}"
        for name, t in sorted(tally.counts.items())
    ]
    return "   ".join(parts)


class TallyBoard:
    """Latest tally for display. publish() replaces, never merges."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tally: Optional[FrameTally] = None

    def publish(self, tally: FrameTally) -> None:
        with self._lock:
            self._tally = tally

    @property
    def current(self) -> Optional[FrameTally]:
        with self._lock:
            return self._tally
