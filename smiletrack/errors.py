"""
Error kinds raised by the smile tracking pipeline.

Only ModelArtifactMissing is fatal; everything else is a per-face or
per-frame skip.
"""


class SmileTrackError(Exception):
    """Base class for pipeline errors."""


class MalformedInput(SmileTrackError, ValueError):
    """Landmark set or feature vector has the wrong number of values."""


class ClassifierUnavailable(SmileTrackError):
    """A classifier backend could not produce a label."""

    def __init__(self, backend: str, reason: str = ""):
        self.backend = backend
        self.reason = reason
        msg = f"classifier '{backend}' unavailable"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class DetectorFailure(SmileTrackError):
    """The upstream face detector reported an error for a frame."""


class ModelArtifactMissing(SmileTrackError, FileNotFoundError):
    """A model file required at startup does not exist."""
