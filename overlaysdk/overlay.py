# overlaysdk/overlay.py
"""OpenCV drawing of the measurement overlay onto BGR frames."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

import cv2
import numpy as np

from .annotate import Drawing, ExtensionLine, Pin, TextArea, TextHighlight, screen_shapes, shape_styles
from .compare import parse_color
from .geometry import Point, Viewport, to_screen
from .measure import Draft, MeasurementStateMachine, Ruler, format_distance, CalibrationProfile
from .measure.labels import place_label
from .snap import InterestPoint

BGR = Tuple[int, int, int]

RULER_COLOR: BGR = (0, 0, 255)
DRAFT_COLOR: BGR = (0, 160, 255)
MARKER_COLOR: BGR = (255, 255, 255)
SNAP_COLOR: BGR = (0, 200, 0)
SNAP_TARGET_COLOR: BGR = (0, 255, 255)
LABEL_BG: BGR = (255, 255, 255)


def _ip(p: Point) -> Tuple[int, int]:
    return int(round(p.x)), int(round(p.y))


def _bgr(color) -> BGR:
    r, g, b = parse_color(color)
    return b, g, r


def _put_label(img: np.ndarray, text: str, center: Point, color: BGR):
    font, scale, thick = cv2.FONT_HERSHEY_SIMPLEX, 0.45, 1
    (tw, th), base = cv2.getTextSize(text, font, scale, thick)
    x = int(center.x - tw / 2)
    y = int(center.y + th / 2)
    cv2.rectangle(img, (x - 3, y - th - 3), (x + tw + 3, y + base), LABEL_BG, -1)
    cv2.putText(img, text, (x, y), font, scale, color, thick, cv2.LINE_AA)


def draw_ruler(img: np.ndarray, start: Point, end: Point, label: str,
               color: BGR = RULER_COLOR, marker_radius: int = 5) -> np.ndarray:
    """Ruler between two *screen* points with endpoint markers and its distance label."""
    cv2.line(img, _ip(start), _ip(end), color, 2, cv2.LINE_AA)
    for p in (start, end):
        cv2.circle(img, _ip(p), marker_radius, MARKER_COLOR, -1, cv2.LINE_AA)
        cv2.circle(img, _ip(p), marker_radius, color, 1, cv2.LINE_AA)
    _put_label(img, label, place_label(start, end).center, color)
    return img


def draw_rulers(img: np.ndarray, rulers: Iterable[Ruler], viewport: Viewport,
                calibration: CalibrationProfile, color: BGR = RULER_COLOR) -> np.ndarray:
    for r in rulers:
        draw_ruler(img, to_screen(r.start, viewport), to_screen(r.end, viewport),
                   format_distance(r.distance_px, calibration), color)
    return img


def draw_draft(img: np.ndarray, draft: Optional[Draft], viewport: Viewport,
               calibration: CalibrationProfile) -> np.ndarray:
    if draft is None:
        return img
    return draw_ruler(img, to_screen(draft.start, viewport), to_screen(draft.end, viewport),
                      format_distance(draft.distance_px, calibration), DRAFT_COLOR, marker_radius=4)


def draw_snap_points(img: np.ndarray, points: Sequence[InterestPoint],
                     highlighted: Optional[InterestPoint] = None,
                     snap_target: Optional[InterestPoint] = None) -> np.ndarray:
    for p in points:
        cv2.circle(img, _ip(p.position), 3, SNAP_COLOR, 1, cv2.LINE_AA)
    if highlighted is not None:
        cv2.circle(img, _ip(highlighted.position), 6, SNAP_COLOR, 2, cv2.LINE_AA)
    if snap_target is not None:
        x, y = _ip(snap_target.position)
        cv2.drawMarker(img, (x, y), SNAP_TARGET_COLOR, cv2.MARKER_CROSS, 14, 2, cv2.LINE_AA)
    return img


def _put_text_block(img: np.ndarray, text: str, origin: Tuple[int, int], max_width: int,
                    color: BGR, font_scale: float):
    """Word-wrapped text starting at ``origin`` (top-left); explicit newlines kept."""
    font, thick = cv2.FONT_HERSHEY_SIMPLEX, 1
    (_, th), base = cv2.getTextSize("Ag", font, font_scale, thick)
    x, y = origin
    y += th
    for paragraph in text.split("\n"):
        line = ""
        for word in paragraph.split(" "):
            trial = f"{line} {word}".strip()
            if line and cv2.getTextSize(trial, font, font_scale, thick)[0][0] > max_width:
                cv2.putText(img, line, (x, y), font, font_scale, color, thick, cv2.LINE_AA)
                y += th + base
                line = word
            else:
                line = trial
        cv2.putText(img, line, (x, y), font, font_scale, color, thick, cv2.LINE_AA)
        y += th + base


def draw_drawing(img: np.ndarray, d: Drawing, viewport: Viewport) -> np.ndarray:
    shapes = screen_shapes(d, viewport)
    styles = shape_styles(d)
    if isinstance(d, Pin):
        (pts, _), = shapes
        cv2.drawMarker(img, _ip(pts[0]), _bgr(d.color), cv2.MARKER_TRIANGLE_DOWN, 16, 2, cv2.LINE_AA)
        return img
    if isinstance(d, TextHighlight):
        layer = img.copy()
        color = _bgr(d.style.stroke_color)
        for pts, _ in shapes:
            cv2.fillPoly(layer, [np.array([_ip(p) for p in pts], np.int32)], color)
        a = float(np.clip(d.style.opacity, 0.0, 1.0))
        cv2.addWeighted(layer, a, img, 1.0 - a, 0, dst=img)
        return img
    if isinstance(d, ExtensionLine):
        (pts, _), = shapes
        target, bend, tail = (_ip(p) for p in pts)
        color = _bgr(d.color)
        if bend != target:
            cv2.arrowedLine(img, bend, target, color, 2, cv2.LINE_AA, tipLength=0.2)
        else:
            cv2.circle(img, target, 4, color, -1, cv2.LINE_AA)
        cv2.line(img, bend, tail, color, 2, cv2.LINE_AA)
        if d.text:
            # text sits on the tail, above the line
            mid = Point((bend[0] + tail[0]) / 2.0, (bend[1] + tail[1]) / 2.0 - 10 * viewport.scale)
            _put_label(img, d.text, mid, color)
        return img
    for (pts, closed), style in zip(shapes, styles):
        if len(pts) < 2:
            continue
        width = max(1, int(round(style.stroke_width * viewport.scale)))
        cv2.polylines(img, [np.array([_ip(p) for p in pts], np.int32)], closed,
                      _bgr(style.stroke_color), width, cv2.LINE_AA)
    if isinstance(d, TextArea) and d.text:
        (pts, _), = shapes
        xs = [p.x for p in pts]
        ys = [p.y for p in pts]
        pad = int(round(5 * viewport.scale))
        width = int(max(xs) - min(xs)) - 2 * pad
        _put_text_block(img, d.text, (int(min(xs)) + pad, int(min(ys)) + pad), max(1, width),
                        _bgr(d.style.stroke_color), 0.035 * d.effective_font_size * viewport.scale)
    return img


def render_overlay(img_bgr: np.ndarray, machine: MeasurementStateMachine,
                   drawings: Iterable[Drawing] = (), show_snap: bool = True) -> np.ndarray:
    """Copy of ``img_bgr`` with drawings, rulers, the draft and snap feedback on top."""
    out = img_bgr.copy()
    vp = machine.viewport
    for d in drawings:
        draw_drawing(out, d, vp)
    draw_rulers(out, machine.get_rulers(), vp, machine.calibration)
    draw_draft(out, machine.get_draft(), vp, machine.calibration)
    if show_snap and machine.tool_active:
        snap = machine.snap
        draw_snap_points(out, snap.points, snap.highlighted_point, snap.snap_point)
    return out
