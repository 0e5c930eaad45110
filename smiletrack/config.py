"""
Configuration for the smile tracking pipeline.
"""
from pydantic import BaseModel
import os

_ORIENTATIONS = ("portrait", "portrait_upside_down", "landscape_left", "landscape_right")


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    DEVICE: str = (os.getenv("DEVICE", "cpu") or "cpu")

    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    CAMERA_FACING: str = os.getenv("CAMERA_FACING", "front")
    ORIENTATION: str = os.getenv("ORIENTATION", "portrait")

    DETECTOR_BACKEND: str = os.getenv("DETECTOR_BACKEND", "opencv")
    MIN_FACE_PX: int = int(os.getenv("MIN_FACE_PX", "40"))
    MIN_DETECTION_CONFIDENCE: float = float(os.getenv("MIN_DETECTION_CONFIDENCE", "0.5"))

    SMILE_CNN_MODEL: str = os.getenv("SMILE_CNN_MODEL", "models/smile_cnn.onnx")
    SMILE_NET_MODEL: str = os.getenv("SMILE_NET_MODEL", "models/smile_net.onnx")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize DEVICE: strip comments/extra words, lower-case, validate
        dev = (self.DEVICE or "cpu").strip().split()[0].lower()
        if dev not in ("cpu", "cuda"):
            dev = "cpu"
        object.__setattr__(self, "DEVICE", dev)

        facing = (self.CAMERA_FACING or "front").strip().lower()
        if facing not in ("front", "back"):
            facing = "front"
        object.__setattr__(self, "CAMERA_FACING", facing)

        orient = (self.ORIENTATION or "portrait").strip().lower()
        if orient not in _ORIENTATIONS:
            orient = "portrait"
        object.__setattr__(self, "ORIENTATION", orient)

        object.__setattr__(self, "LOG_LEVEL", (self.LOG_LEVEL or "INFO").strip().upper())
