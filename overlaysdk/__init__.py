"""
overlaysdk: geometry and vision core of a document measurement overlay.

- geometry: canonical <-> screen transform for a zoomed/rotated page
- snap:     interest-point detection and pointer snapping
- measure:  ruler state machine with calibration
- compare:  two-page structural diff
- render:   cancellable async page rendering slots
- annotate: drawing kinds (freehand, lines, frames, text areas, callouts, pins, text markup)
"""

from .errors import OverlayError, ViewportError, CalibrationError, BitmapError, DrawingError
from .bitmap import Bitmap, as_bitmap
from .geometry import Point, Viewport, to_screen, to_canonical
from .snap import detect_interest_points, SnapEngine
from .measure import MeasurementStateMachine, CalibrationProfile, format_distance
from .compare import composite, ComparisonSession
from .log import setup_logging

__version__ = "0.1.0"

__all__ = [
    "OverlayError",
    "ViewportError",
    "CalibrationError",
    "BitmapError",
    "DrawingError",
    "Bitmap",
    "as_bitmap",
    "Point",
    "Viewport",
    "to_screen",
    "to_canonical",
    "detect_interest_points",
    "SnapEngine",
    "MeasurementStateMachine",
    "CalibrationProfile",
    "format_distance",
    "composite",
    "ComparisonSession",
    "setup_logging",
]
