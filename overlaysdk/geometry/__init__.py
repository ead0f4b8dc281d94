"""Coordinate mapping between canonical page space and the on-screen canvas."""

from .coords import (
    Point,
    BoundingBox,
    Viewport,
    RIGHT_ANGLES,
    normalize_rotation,
    to_screen,
    to_canonical,
    canonical_bounds,
    clamp_canonical,
    distance,
    angle_deg,
)

__all__ = [
    "Point",
    "BoundingBox",
    "Viewport",
    "RIGHT_ANGLES",
    "normalize_rotation",
    "to_screen",
    "to_canonical",
    "canonical_bounds",
    "clamp_canonical",
    "distance",
    "angle_deg",
]
