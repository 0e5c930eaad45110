"""
Smile classifier backends.

Two pre-trained ONNX models are wrapped behind one predict(features) -> bool
contract:

- TensorBackend ("CNN"): one (1, 130) tensor input, scalar probability output.
  Smiling iff probability > 0.5.
- FlatParamBackend ("NET"): 130 named scalar inputs _1 .. _130, discrete
  0/1 label output.

Any failure inside a backend surfaces as ClassifierUnavailable so the caller can
skip that face instead of stopping the stream.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional
import logging
import os

import numpy as np

from smiletrack.config import Settings
from smiletrack.errors import ClassifierUnavailable, ModelArtifactMissing
from smiletrack.features import FEATURE_LENGTH

logger = logging.getLogger(__name__)

SMILE_PROBABILITY_THRESHOLD = 0.5
FLAT_INPUT_NAMES = [f"_{i}" for i in range(1, FEATURE_LENGTH + 1)]


def _providers(device: str) -> List[str]:
    if device == "cuda":
        return ["CUDAExecutionProvider", "CPUExecutionProvider"]
    return ["CPUExecutionProvider"]


def _dtype_for(input_meta) -> type:
    t = str(getattr(input_meta, "type", "") or "")
    return np.float64 if "double" in t else np.float32


def load_session(model_path: str, device: str = "cpu"):
    """Open an ONNX Runtime session for a model artifact.

    Raises ModelArtifactMissing when the file does not exist; this is the one
    error that should stop the application before streaming starts.
    """
    if not os.path.exists(model_path):
        raise ModelArtifactMissing(f"Model not found: {model_path}")

    # Lazy import keeps onnxruntime off the import path of tests using fake sessions
    import onnxruntime as ort

    opts = ort.SessionOptions()
    opts.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    session = ort.InferenceSession(model_path, sess_options=opts, providers=_providers(device))
    logger.info(f"[classifier] loaded {model_path} provider={session.get_providers()[0]}")
    return session


class ClassifierAdapter(ABC):
    """Common predict() contract over heterogeneous model calling conventions."""

    def __init__(self, session, name: str):
        self.session = session
        self.name = name

    def predict(self, features) -> bool:
        """Return True when the face is classified as smiling."""
        vec = self._check(features)
        try:
            return self._invoke(vec)
        except ClassifierUnavailable:
            raise
        except Exception as e:
            raise ClassifierUnavailable(self.name, str(e)) from e

    def _check(self, features) -> np.ndarray:
        if self.session is None:
            raise ClassifierUnavailable(self.name, "model not loaded")
        try:
            vec = np.asarray(features, dtype=np.float64).reshape(-1)
        except (TypeError, ValueError) as e:
            raise ClassifierUnavailable(self.name, f"unreadable features: {e}") from e
        if vec.shape[0] != FEATURE_LENGTH:
            raise ClassifierUnavailable(self.name, f"expected {FEATURE_LENGTH} features, got {vec.shape[0]}")
        return vec

    @abstractmethod
    def _invoke(self, vec: np.ndarray) -> bool:
        ...


class TensorBackend(ClassifierAdapter):
    """Dense network taking the features as a single 1x130 tensor."""

    def __init__(self, session, name: str = "CNN"):
        super().__init__(session, name)

    def probability(self, features) -> float:
        vec = self._check(features)
        try:
            return self._probability(vec)
        except ClassifierUnavailable:
            raise
        except Exception as e:
            raise ClassifierUnavailable(self.name, str(e)) from e

    def _probability(self, vec: np.ndarray) -> float:
        inputs = self.session.get_inputs()
        if len(inputs) != 1:
            raise ClassifierUnavailable(self.name, f"expected a single tensor input, model declares {len(inputs)}")
        tensor = vec.astype(_dtype_for(inputs[0])).reshape(1, FEATURE_LENGTH)
        out = self.session.run(None, {inputs[0].name: tensor})
        flat = np.asarray(out[0], dtype=np.float64).reshape(-1) if out else np.empty(0)
        if flat.size == 0:
            raise ClassifierUnavailable(self.name, "empty model output")
        p = float(flat[0])
        if not np.isfinite(p):
            raise ClassifierUnavailable(self.name, f"non-finite probability {p}")
        return p

    def _invoke(self, vec: np.ndarray) -> bool:
        p = self._probability(vec)
        logger.debug(f"[classifier] {self.name} p={p:.4f}")
        return p > SMILE_PROBABILITY_THRESHOLD


class FlatParamBackend(ClassifierAdapter):
    """Model taking each of the 130 features as its own named scalar input."""

    def __init__(self, session, name: str = "NET"):
        super().__init__(session, name)

    def _invoke(self, vec: np.ndarray) -> bool:
        inputs = self.session.get_inputs()
        declared = {i.name for i in inputs}
        if declared != set(FLAT_INPUT_NAMES):
            raise ClassifierUnavailable(
                self.name, f"expected inputs _1.._{FEATURE_LENGTH}, model declares {len(declared)} inputs"
            )
        dtype = _dtype_for(inputs[0])
        feed = {n: np.array([[v]], dtype=dtype) for n, v in zip(FLAT_INPUT_NAMES, vec)}
        out = self.session.run(None, feed)
        flat = np.asarray(out[0]).reshape(-1) if out else np.empty(0)
        if flat.size == 0:
            raise ClassifierUnavailable(self.name, "empty model output")
        # checked before int() so a fractional score is not truncated to 0
        if flat[0] not in (0, 1):
            raise ClassifierUnavailable(self.name, f"unexpected label {flat[0]!r}")
        label = int(flat[0])
        logger.debug(f"[classifier] {self.name} label={label}")
        return label == 1


def load_backends(settings: Settings, device: Optional[str] = None) -> List[ClassifierAdapter]:
    """Load both smile classifiers from the configured model paths."""
    dev = device or settings.DEVICE
    cnn = TensorBackend(load_session(settings.SMILE_CNN_MODEL, dev), name="CNN")
    net = FlatParamBackend(load_session(settings.SMILE_NET_MODEL, dev), name="NET")
    return [cnn, net]
