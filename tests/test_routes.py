import cv2
import numpy as np
from fastapi.testclient import TestClient

from api.main import app
import api.routes as routes
from smiletrack.aggregate import aggregate
from smiletrack.classifiers import FlatParamBackend, TensorBackend
from smiletrack.errors import DetectorFailure, ModelArtifactMissing
from smiletrack.models import ClassificationResult, FaceBox, FrameReport, LiveStatus
from smiletrack.pipeline import FramePipeline


class FakePipeline:
    def process(self, frame):
        tally = aggregate([ClassificationResult(backend="CNN", smiling=True),
                           ClassificationResult(backend="NET", smiling=False)])
        return FrameReport(frame_index=0, status="ok", tally=tally, summary="CNN: 1 😃 0 😐   NET: 0 😃 1 😐")


class FakeAnalyzer:
    def __init__(self, settings, pipeline=None):
        self.pipeline = pipeline
        self.running = False
    def start(self):
        self.running = True
    def stop(self):
        self.running = False
    def status(self):
        return LiveStatus(running=self.running, admitted=3, dropped=7)


def _png():
    ok, buf = cv2.imencode(".png", np.zeros((16, 16, 3), dtype=np.uint8))
    return buf.tobytes()


def test_health():
    client = TestClient(app)
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_analyze_image(monkeypatch):
    monkeypatch.setattr(routes, "_pipeline", FakePipeline())
    client = TestClient(app)
    r = client.post("/analyze/image", files={"file": ("face.png", _png(), "image/png")})
    assert r.status_code == 200
    j = r.json()
    assert j["status"] == "ok"
    assert j["tally"]["counts"]["CNN"] == {"smiling": 1, "total": 1}
    assert j["tally"]["counts"]["NET"] == {"smiling": 0, "total": 1}


def test_analyze_image_rejects_garbage(monkeypatch):
    monkeypatch.setattr(routes, "_pipeline", FakePipeline())
    client = TestClient(app)
    r = client.post("/analyze/image", files={"file": ("x.png", b"not an image", "image/png")})
    assert r.status_code == 400


def test_analyze_image_without_models(monkeypatch):
    def missing():
        raise ModelArtifactMissing("Model not found: models/smile_cnn.onnx")
    monkeypatch.setattr(routes, "get_pipeline", missing)
    client = TestClient(app)
    r = client.post("/analyze/image", files={"file": ("face.png", _png(), "image/png")})
    assert r.status_code == 503


def test_live_start_status_stop(monkeypatch):
    monkeypatch.setattr(routes, "_pipeline", FakePipeline())
    monkeypatch.setattr(routes, "get_live_pipeline", FakePipeline)
    monkeypatch.setattr(routes, "LiveAnalyzer", FakeAnalyzer)
    monkeypatch.setitem(routes.live_session, "analyzer", None)
    client = TestClient(app)

    assert client.get("/live/status").json() == {"running": False}
    assert client.post("/live/stop").json()["status"] == "not_running"

    assert client.post("/live/start").json()["status"] == "started"
    assert client.post("/live/start").json()["status"] == "already_running"

    body = client.get("/live/status").json()
    assert body["running"] is True
    assert body["dropped"] == 7

    assert client.post("/live/stop").json()["status"] == "stopped"
    assert client.get("/live/status").json()["running"] is False


class BoxDetector:
    def __init__(self, fail=False):
        self.fail = fail
    def detect(self, frame):
        if self.fail:
            raise DetectorFailure("camera glitch")
        return [FaceBox(x=0.2, y=0.2, w=0.4, h=0.4)]


class SameLandmarks:
    def __init__(self, landmarks):
        self.landmarks = landmarks
    def locate(self, frame, box):
        return self.landmarks


def test_live_stream_does_not_share_upload_state(monkeypatch, landmarks65, tensor_session, flat_session):
    backends = [TensorBackend(tensor_session(prob=0.9)), FlatParamBackend(flat_session(label=1))]
    upload_pipeline = FramePipeline(BoxDetector(), SameLandmarks(landmarks65), backends)
    monkeypatch.setattr(routes, "_pipeline", upload_pipeline)
    monkeypatch.setattr(routes, "build_pipeline",
                        lambda s, sink=None, backends=None: FramePipeline(
                            BoxDetector(fail=True), SameLandmarks(landmarks65), backends, sink=sink))
    monkeypatch.setattr(routes, "LiveAnalyzer", FakeAnalyzer)
    monkeypatch.setitem(routes.live_session, "analyzer", None)
    client = TestClient(app)

    r = client.post("/analyze/image", files={"file": ("face.png", _png(), "image/png")})
    assert r.json()["tally"]["counts"]["CNN"] == {"smiling": 1, "total": 1}
    assert client.post("/live/start").json()["status"] == "started"

    live_pipeline = routes.live_session["analyzer"].pipeline
    assert live_pipeline is not upload_pipeline
    assert live_pipeline.board is not upload_pipeline.board
    assert live_pipeline.localizer is not upload_pipeline.localizer
    assert all(a is b for a, b in zip(live_pipeline.backends, backends))

    rep = live_pipeline.process(np.zeros((32, 32, 3), dtype=np.uint8))
    assert rep.status == "detector_failure"
    assert rep.tally.get("CNN").total == 0
    assert rep.summary == "Find Faces"
