"""
REST endpoints for smile tracking.
"""
from fastapi import APIRouter, UploadFile, File, HTTPException
from fastapi.responses import JSONResponse
import logging

import cv2
import numpy as np

from smiletrack.config import Settings
from smiletrack.errors import ModelArtifactMissing
from smiletrack.live import LiveAnalyzer
from smiletrack.pipeline import FramePipeline, build_pipeline

router = APIRouter()
settings = Settings()
logger = logging.getLogger(__name__)

_pipeline: FramePipeline | None = None
live_session: dict = {"analyzer": None}


def get_pipeline() -> FramePipeline:
    """Build the shared pipeline on first use (model files are loaded once)."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline(settings)
    return _pipeline


def get_live_pipeline() -> FramePipeline:
    """A pipeline for one live stream.

    It has its own detector, FaceMesh and TallyBoard, so uploads never touch the
    stream's tally or its graph. Only the loaded classifiers are shared.
    """
    return build_pipeline(settings, backends=get_pipeline().backends)


@router.post("/analyze/image")
async def analyze_image(file: UploadFile = File(...)):
    """
    Detect faces in one uploaded image and classify each as smiling or not.

    Args:
        file: Uploaded image (any format OpenCV can decode).

    Returns:
        JSONResponse: FrameReport payload (tally per classifier, faces, summary).
    """
    logger.debug(f"[api] /analyze/image filename={file.filename}")
    try:
        data = await file.read()
        frame = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    except Exception as e:
        logger.exception("[api] upload read failed")
        raise HTTPException(status_code=400, detail=f"Upload failed: {e}")
    if frame is None:
        raise HTTPException(status_code=400, detail="Could not decode image")

    try:
        report = get_pipeline().process(frame)
        logger.debug(f"[api] analyze_image status={report.status}")
        return JSONResponse(report.model_dump())
    except ModelArtifactMissing as e:
        logger.exception("[api] model artifact missing")
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("[api] analyze_image failed")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/live/start")
async def live_start():
    analyzer = live_session["analyzer"]
    if analyzer is not None and analyzer.running:
        return {"status": "already_running"}
    try:
        analyzer = LiveAnalyzer(settings, pipeline=get_live_pipeline())
        analyzer.start()
    except ModelArtifactMissing as e:
        logger.exception("[api] live start failed: model artifact missing")
        raise HTTPException(status_code=503, detail=str(e))
    live_session["analyzer"] = analyzer
    return {"status": "started"}


@router.get("/live/status")
async def live_status():
    analyzer = live_session["analyzer"]
    if analyzer is None:
        return {"running": False}
    return analyzer.status().model_dump()


@router.post("/live/stop")
async def live_stop():
    analyzer = live_session["analyzer"]
    if analyzer is None or not analyzer.running:
        return {"status": "not_running"}
    analyzer.stop()
    return {"status": "stopped"}
