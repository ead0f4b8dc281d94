# overlaysdk/errors.py
"""Exception types raised by overlaysdk."""


class OverlayError(Exception):
    """Base class for every error raised by the SDK."""


class ViewportError(OverlayError, ValueError):
    """Malformed viewport (non-positive scale or a rotation that is not a right angle)."""


class CalibrationError(OverlayError, ValueError):
    """Rejected calibration input. ``str(err)`` is meant to be shown to the user."""


class BitmapError(OverlayError, ValueError):
    """Pixel buffer with an unsupported shape or dtype."""


class DrawingError(OverlayError, ValueError):
    """Unknown drawing kind or a malformed serialized drawing."""
