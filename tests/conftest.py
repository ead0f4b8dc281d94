"""Shared test fixtures for overlaysdk."""

import numpy as np
import pytest
from loguru import logger
from pathlib import Path

from overlaysdk.bitmap import Bitmap
from overlaysdk.geometry import Viewport
from overlaysdk.measure import MeasurementStateMachine
from overlaysdk.snap import SnapEngine
from overlaysdk.store import MemoryStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def square_rgba(size=80, lo=20, hi=60, ink=0):
    """White page with a filled ink square covering [lo, hi) on both axes."""
    arr = np.full((size, size, 4), 255, dtype=np.uint8)
    arr[lo:hi, lo:hi, :3] = ink
    return arr


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop sinks a test may have added (e.g. via setup_logging) so they don't outlive it."""
    yield
    logger.remove()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def white_bitmap():
    return Bitmap.blank(100, 100)


@pytest.fixture
def square_bitmap():
    return Bitmap(square_rgba())


@pytest.fixture
def page_viewport():
    """400x300 page at scale 1, no rotation."""
    return Viewport.for_page(400, 300)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def machine(page_viewport, store, clock):
    return MeasurementStateMachine(page_viewport, snap=SnapEngine(clock=clock), store=store)


@pytest.fixture
def project_root():
    return Path(__file__).parent.parent
