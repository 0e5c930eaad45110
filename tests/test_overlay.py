import numpy as np
import pytest

from smiletrack.config import Settings
from smiletrack.models import DetectedFace, FaceBox, Point
from smiletrack.overlay import (DisplayConfig, draw_overlays, orient_frame, project_box,
                                project_landmarks, project_point)


def test_project_point_unrotated():
    cfg = DisplayConfig(width=200, height=100)
    assert project_point(0, 0, cfg) == (0, 100)
    assert project_point(1, 1, cfg) == (200, 0)


def test_project_point_mirrored():
    cfg = DisplayConfig(width=200, height=100, mirrored=True)
    assert project_point(0, 0, cfg) == (200, 100)


@pytest.mark.parametrize("rotation, expected", [(180, (200, 0)), (90, (0, 0)), (-90, (200, 100))])
def test_project_point_rotations(rotation, expected):
    cfg = DisplayConfig(width=200, height=100, rotation=rotation)
    assert project_point(0, 0, cfg) == expected


def test_unsupported_rotation():
    with pytest.raises(ValueError):
        project_point(0.5, 0.5, DisplayConfig(width=10, height=10, rotation=45))


def test_for_camera_orientation_table():
    assert DisplayConfig.for_camera(10, 10, "landscape_left").rotation == 90
    assert DisplayConfig.for_camera(10, 10, "landscape_right").rotation == -90
    assert DisplayConfig.for_camera(10, 10, "portrait_upside_down").rotation == 180
    back = DisplayConfig.for_camera(10, 10, "portrait", front_facing=False)
    assert back.rotation == 0 and back.mirrored is False
    with pytest.raises(ValueError):
        DisplayConfig.for_camera(10, 10, "sideways")


def test_project_box():
    cfg = DisplayConfig(width=200, height=100)
    assert project_box(FaceBox(x=0.25, y=0.5, w=0.5, h=0.25), cfg) == (50, 25, 150, 50)


def test_project_landmarks_are_face_relative():
    cfg = DisplayConfig(width=200, height=100)
    box = FaceBox(x=0.5, y=0.0, w=0.5, h=0.5)
    pts = project_landmarks(box, [Point(x=0, y=0), Point(x=1, y=1)], cfg)
    assert pts == [(100, 100), (200, 50)]


def test_for_frame_swaps_sides_when_rotated():
    frame = np.zeros((100, 200, 3), dtype=np.uint8)
    cfg = DisplayConfig.for_frame(Settings(ORIENTATION="landscape_left", CAMERA_FACING="back"), frame)
    assert (cfg.width, cfg.height, cfg.rotation, cfg.mirrored) == (100, 200, 90, False)
    assert orient_frame(frame, cfg).shape == (200, 100, 3)


def test_orient_frame_mirrors():
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    frame[0, 0] = 255
    out = orient_frame(frame, DisplayConfig(width=4, height=4, mirrored=True))
    assert out[0, 3, 0] == 255 and out[0, 0, 0] == 0


def test_draw_overlays(landmarks65):
    frame = np.zeros((60, 80, 3), dtype=np.uint8)
    faces = [
        DetectedFace(box=FaceBox(x=0.2, y=0.2, w=0.5, h=0.5), landmarks=landmarks65),
        DetectedFace(box=FaceBox(x=0.1, y=0.1, w=0.2, h=0.2), landmarks=None),
    ]
    out = draw_overlays(frame, faces, "CNN: 1 smile 0 neutral")
    assert out.shape == frame.shape
    assert out.any()
    assert not frame.any()
    assert draw_overlays(frame, [], None).shape == frame.shape
