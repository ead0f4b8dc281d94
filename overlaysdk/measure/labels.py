# overlaysdk/measure/labels.py
"""Where ruler distance labels go on screen, and hit-testing them."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from .. import defaults as D
from ..geometry import BoundingBox, Point, Viewport, to_screen
from .schema import Ruler

# label box estimate used for bounding boxes (text height + padding, widest "999.9 mm")
LABEL_TEXT_HEIGHT = 20.0
LABEL_PADDING = 6.0
LABEL_MAX_WIDTH = 80.0


@dataclass(frozen=True)
class LabelPlacement:
    center: Point         # screen space
    angle_deg: float      # text rotation, kept within [-90, 90] so it never reads upside down


def place_label(start: Point, end: Point, offset: float = D.LABEL_OFFSET_PX) -> LabelPlacement:
    """Label centred on the segment midpoint, ``offset`` px above the line."""
    text_angle = math.degrees(math.atan2(end.y - start.y, end.x - start.x))
    if text_angle > 90 or text_angle < -90:
        text_angle += 180
    if text_angle > 180:
        text_angle -= 360
    cx = (start.x + end.x) / 2.0
    cy = (start.y + end.y) / 2.0
    a = math.radians(text_angle)
    return LabelPlacement(Point(cx + math.sin(a) * offset, cy - math.cos(a) * offset), text_angle)


def label_for_ruler(ruler: Ruler, viewport: Viewport, offset: float = D.LABEL_OFFSET_PX) -> LabelPlacement:
    return place_label(to_screen(ruler.start, viewport), to_screen(ruler.end, viewport), offset)


def hit_label(placement: LabelPlacement, pos: Point,
              half_width: float = D.LABEL_HIT_HALF_WIDTH,
              half_height: float = D.LABEL_HIT_HALF_HEIGHT) -> bool:
    """Point-in-rotated-rectangle test against the label box."""
    a = math.radians(placement.angle_deg)
    dx = pos.x - placement.center.x
    dy = pos.y - placement.center.y
    u = dx * math.cos(a) + dy * math.sin(a)
    v = -dx * math.sin(a) + dy * math.cos(a)
    return abs(u) <= half_width and abs(v) <= half_height


def rulers_bounding_box(rulers: Iterable[Ruler], offset: float = D.LABEL_OFFSET_PX) -> BoundingBox:
    """Canonical box covering every ruler plus room for its label."""
    pts = []
    for r in rulers:
        pts.extend((r.start, r.end))
    pad_y = offset + (LABEL_TEXT_HEIGHT + LABEL_PADDING) / 2.0
    pad_x = LABEL_MAX_WIDTH / 2.0 + LABEL_PADDING
    return BoundingBox.around(pts, pad_x=pad_x, pad_y=pad_y)
