# overlaysdk/geometry/coords.py
"""Canonical <-> screen mapping for a scaled, right-angle-rotated page canvas.

Canonical coordinates are page pixels at scale 1, rotation 0. Screen
coordinates are canvas-local pixels of the current render. The rendered canvas
swaps its aspect for 90/270 degrees, so ``Viewport.pixel_width/height`` always
describe the canvas as it is on screen.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from ..errors import ViewportError

RIGHT_ANGLES = (0, 90, 180, 270)


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


def normalize_rotation(rotation_deg: float) -> int:
    """Map any multiple of 90 onto {0, 90, 180, 270}; anything else is a programmer error."""
    try:
        r = float(rotation_deg)
    except (TypeError, ValueError):
        raise ViewportError(f"rotation must be a number, got {rotation_deg!r}") from None
    if not math.isfinite(r) or r != int(r):
        raise ViewportError(f"rotation must be a right angle, got {rotation_deg!r}")
    r_int = int(r) % 360
    if r_int not in RIGHT_ANGLES:
        raise ViewportError(f"rotation must be a right angle, got {rotation_deg!r}")
    return r_int


@dataclass(frozen=True)
class Viewport:
    """Current rendering frame. Validated on construction; rotation stored normalized."""

    scale: float
    rotation_deg: int = 0
    pixel_width: float = 0.0
    pixel_height: float = 0.0

    def __post_init__(self):
        try:
            s = float(self.scale)
            w = float(self.pixel_width)
            h = float(self.pixel_height)
        except (TypeError, ValueError):
            raise ViewportError(
                f"scale and canvas size must be numbers, got {self.scale!r}, "
                f"{self.pixel_width!r}x{self.pixel_height!r}"
            ) from None
        if not math.isfinite(s) or s <= 0:
            raise ViewportError(f"scale must be > 0, got {self.scale!r}")
        if not (math.isfinite(w) and math.isfinite(h)) or w < 0 or h < 0:
            raise ViewportError(f"canvas size must be finite and non-negative, got {w}x{h}")
        object.__setattr__(self, "scale", s)
        object.__setattr__(self, "pixel_width", w)
        object.__setattr__(self, "pixel_height", h)
        object.__setattr__(self, "rotation_deg", normalize_rotation(self.rotation_deg))

    @classmethod
    def for_page(cls, page_width: float, page_height: float, scale: float = 1.0,
                 rotation_deg: int = 0) -> "Viewport":
        """Viewport for a page of canonical size ``page_width x page_height``."""
        rot = normalize_rotation(rotation_deg)
        w, h = page_width * scale, page_height * scale
        if rot in (90, 270):
            w, h = h, w
        return cls(scale=scale, rotation_deg=rot, pixel_width=w, pixel_height=h)

    @property
    def swaps_axes(self) -> bool:
        return self.rotation_deg in (90, 270)


def to_screen(p: Point, v: Viewport) -> Point:
    sx = p.x * v.scale
    sy = p.y * v.scale
    W, H = v.pixel_width, v.pixel_height
    r = v.rotation_deg
    if r == 90:
        return Point(W - sy, sx)
    if r == 180:
        return Point(W - sx, H - sy)
    if r == 270:
        return Point(sy, H - sx)
    return Point(sx, sy)


def to_canonical(p: Point, v: Viewport) -> Point:
    W, H = v.pixel_width, v.pixel_height
    r = v.rotation_deg
    if r == 90:
        ux, uy = p.y, W - p.x
    elif r == 180:
        ux, uy = W - p.x, H - p.y
    elif r == 270:
        ux, uy = H - p.y, p.x
    else:
        ux, uy = p.x, p.y
    return Point(ux / v.scale, uy / v.scale)


def canonical_bounds(v: Viewport) -> Tuple[float, float]:
    """Page size (width, height) at scale 1 implied by the viewport's canvas."""
    w, h = v.pixel_width, v.pixel_height
    if v.swaps_axes:
        w, h = h, w
    return w / v.scale, h / v.scale


def clamp_canonical(p: Point, v: Viewport) -> Point:
    """Clamp into the page. A viewport without a canvas size leaves ``p`` untouched."""
    w, h = canonical_bounds(v)
    if w <= 0 or h <= 0:
        return p
    return Point(min(max(p.x, 0.0), w), min(max(p.y, 0.0), h))


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def angle_deg(a: Point, b: Point) -> float:
    """Direction a->b in degrees, [0, 360), y axis pointing down."""
    ang = math.degrees(math.atan2(b.y - a.y, b.x - a.x))
    if ang < 0.0:
        ang += 360.0
    if ang >= 360.0:
        ang -= 360.0
    return ang


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in canonical coordinates (y grows downward)."""

    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def around(cls, points, pad_x: float = 0.0, pad_y: float = 0.0) -> "BoundingBox":
        pts = list(points)
        if not pts:
            raise ValueError("bounding box of no points")
        xs = [p.x for p in pts]
        ys = [p.y for p in pts]
        return cls(min(xs) - pad_x, min(ys) - pad_y, max(xs) + pad_x, max(ys) + pad_y)

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(min(self.left, other.left), min(self.top, other.top),
                           max(self.right, other.right), max(self.bottom, other.bottom))

    def to_dict(self):
        return {"left": self.left, "top": self.top, "right": self.right, "bottom": self.bottom}
