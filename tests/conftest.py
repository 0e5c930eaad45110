import numpy as np
import pytest

from smiletrack.models import Point


class FakeInput:
    def __init__(self, name, type="tensor(float)"):
        self.name = name
        self.type = type


class FakeTensorSession:
    """Stands in for an onnxruntime session with one (1, 130) input."""
    def __init__(self, prob=0.73, fail=False):
        self.prob = prob
        self.fail = fail
        self.feeds = []

    def get_inputs(self):
        return [FakeInput("input1")]

    def run(self, output_names, feed):
        self.feeds.append(feed)
        if self.fail:
            raise RuntimeError("backend exploded")
        return [np.array([[self.prob]], dtype=np.float64)]


class FakeFlatSession:
    """Stands in for an onnxruntime session with 130 named scalar inputs."""
    def __init__(self, label=0, fail=False, n_inputs=130):
        self.label = label
        self.fail = fail
        self.n_inputs = n_inputs
        self.feeds = []

    def get_inputs(self):
        return [FakeInput(f"_{i}", "tensor(double)") for i in range(1, self.n_inputs + 1)]

    def run(self, output_names, feed):
        self.feeds.append(feed)
        if self.fail:
            raise RuntimeError("backend exploded")
        return [np.array([self.label]), [{0: 0.5, 1: 0.5}]]


@pytest.fixture
def tensor_session():
    return FakeTensorSession


@pytest.fixture
def flat_session():
    return FakeFlatSession


@pytest.fixture
def landmarks65():
    return [Point(x=i / 100.0, y=(i + 1) / 200.0) for i in range(65)]


@pytest.fixture
def frame():
    return np.zeros((120, 160, 3), dtype=np.uint8)
