"""Snap-point detection and pointer snapping.

- detect_interest_points(bitmap, origin, params) -> List[InterestPoint]
- detect_near(canvas, center, radius, params)
- SnapEngine: throttled detection + snap target resolution
"""

from .detector import (
    PointKind,
    InterestPoint,
    DetectorParams,
    detect_interest_points,
    detect_near,
)
from .engine import SnapEngine, SnapParams, DetectionRequest

__all__ = [
    "PointKind",
    "InterestPoint",
    "DetectorParams",
    "detect_interest_points",
    "detect_near",
    "SnapEngine",
    "SnapParams",
    "DetectionRequest",
]
