# overlaysdk/annotate/drawings.py
"""
Annotation drawings, stored canonical (scale 1, rotation 0).

One dataclass per kind, tagged by ``kind``. Screen projection, stroke styles,
bounding box and (de)serialization dispatch on that tag through ``_KINDS``
instead of per-kind methods, so adding a kind means adding one table entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple, Union

from ..errors import DrawingError
from ..geometry import BoundingBox, Point, Viewport, to_screen

DrawingKind = Literal[
    "freehand",            # one or more pen strokes
    "line",                # straight segments
    "rectangle",           # two opposite corners
    "draw_area",           # framed region
    "text_area",           # framed region with wrapped text
    "extension_line",      # callout arrow with a text tail
    "pin",                 # single marker position
    "text_underline",      # segments under text lines
    "text_strikethrough",  # segments through text lines
    "text_highlight",      # filled boxes over text
]

PIN_RADIUS = 12.0

# callout geometry, canonical px
CALLOUT_PIN_SIZE = 12.0
CALLOUT_TAIL_FACTOR = 5.0
CALLOUT_TEXT_PADDING = 6.0
CALLOUT_TEXT_HEIGHT = 16.0
CALLOUT_CHAR_WIDTH = 8.0
CALLOUT_BOX_PADDING = 20.0

TEXT_AREA_FONT_SIZE = 14.0


@dataclass
class DrawingStyle:
    stroke_color: str = "#ff0000"
    stroke_width: float = 2.0
    opacity: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {"stroke_color": self.stroke_color, "stroke_width": self.stroke_width, "opacity": self.opacity}

    @classmethod
    def from_dict(cls, d: Dict[str, Any] | None) -> "DrawingStyle":
        d = d or {}
        return cls(str(d.get("stroke_color", "#ff0000")),
                   float(d.get("stroke_width", 2.0)),
                   float(d.get("opacity", 1.0)))


@dataclass
class Segment:
    start: Point
    end: Point


@dataclass
class Rect:
    x: float
    y: float
    width: float
    height: float

    def corners(self) -> List[Point]:
        return [Point(self.x, self.y), Point(self.x + self.width, self.y),
                Point(self.x + self.width, self.y + self.height), Point(self.x, self.y + self.height)]


@dataclass
class Freehand:
    """Pen strokes; ``path_styles[i]`` overrides ``style`` for path ``i``."""
    id: str
    page: int
    paths: List[List[Point]]
    style: DrawingStyle = field(default_factory=DrawingStyle)
    path_styles: Optional[List[DrawingStyle]] = None
    kind: DrawingKind = field(default="freehand", init=False)


@dataclass
class Line:
    """Straight segments; ``line_styles[i]`` overrides ``style`` for segment ``i``."""
    id: str
    page: int
    lines: List[Segment]
    style: DrawingStyle = field(default_factory=DrawingStyle)
    line_styles: Optional[List[DrawingStyle]] = None
    kind: DrawingKind = field(default="line", init=False)


@dataclass
class Rectangle:
    id: str
    page: int
    start: Point
    end: Point
    style: DrawingStyle = field(default_factory=DrawingStyle)
    kind: DrawingKind = field(default="rectangle", init=False)


@dataclass
class DrawArea:
    id: str
    page: int
    start: Point
    end: Point
    style: DrawingStyle = field(default_factory=DrawingStyle)
    kind: DrawingKind = field(default="draw_area", init=False)


@dataclass
class TextArea:
    id: str
    page: int
    start: Point
    end: Point
    text: str
    style: DrawingStyle = field(default_factory=DrawingStyle)
    font_size: Optional[float] = None
    kind: DrawingKind = field(default="text_area", init=False)

    @property
    def effective_font_size(self) -> float:
        return self.font_size or TEXT_AREA_FONT_SIZE


@dataclass
class ExtensionLine:
    """
    Callout: an arrow from ``bend_point`` to ``position`` plus a horizontal tail
    carrying ``text``. Without a bend point the arrow collapses onto the target.
    """
    id: str
    page: int
    position: Point
    text: str = ""
    color: str = "#ff0000"
    bend_point: Optional[Point] = None
    kind: DrawingKind = field(default="extension_line", init=False)

    @property
    def bend(self) -> Point:
        return self.bend_point if self.bend_point is not None else self.position

    def tail_end(self) -> Point:
        """End of the text tail; it points away from the arrow and grows with the text."""
        bend = self.bend
        length = CALLOUT_PIN_SIZE * CALLOUT_TAIL_FACTOR
        if self.text:
            length = max(length, len(self.text) * CALLOUT_CHAR_WIDTH + 2 * CALLOUT_TEXT_PADDING)
        direction = -1.0 if self.position.x - bend.x > 0 else 1.0
        return Point(bend.x + direction * length, bend.y)

    def text_anchor_y(self) -> float:
        return self.bend.y - CALLOUT_PIN_SIZE * 0.8


@dataclass
class Pin:
    id: str
    page: int
    position: Point
    color: str = "#ff0000"
    kind: DrawingKind = field(default="pin", init=False)


@dataclass
class TextLines:
    """Underline or strikethrough; ``kind`` picks which."""
    id: str
    page: int
    kind: DrawingKind
    lines: List[Segment]
    style: DrawingStyle = field(default_factory=DrawingStyle)
    text: Optional[str] = None

    def __post_init__(self):
        if self.kind not in ("text_underline", "text_strikethrough"):
            raise DrawingError(f"TextLines cannot be of kind {self.kind!r}")


@dataclass
class TextHighlight:
    id: str
    page: int
    rects: List[Rect]
    style: DrawingStyle = field(default_factory=lambda: DrawingStyle("#ffff00", 0.0, 0.4))
    text: Optional[str] = None
    kind: DrawingKind = field(default="text_highlight", init=False)


Drawing = Union[Freehand, Line, Rectangle, DrawArea, TextArea, ExtensionLine, Pin, TextLines, TextHighlight]

# a screen shape: polyline points + closed flag
Shape = Tuple[List[Point], bool]


def _override(styles: Optional[List[DrawingStyle]], i: int, default: DrawingStyle) -> DrawingStyle:
    if styles and i < len(styles) and styles[i] is not None:
        return styles[i]
    return default


# ---------- per-kind geometry ----------
def _rect_corners(a: Point, b: Point) -> List[Point]:
    return [Point(a.x, a.y), Point(b.x, a.y), Point(b.x, b.y), Point(a.x, b.y)]


def _shapes_freehand(d: Freehand) -> List[Shape]:
    return [(list(p), False) for p in d.paths if p]


def _styles_freehand(d: Freehand) -> List[DrawingStyle]:
    return [_override(d.path_styles, i, d.style) for i, p in enumerate(d.paths) if p]


def _shapes_segments(d) -> List[Shape]:
    return [([s.start, s.end], False) for s in d.lines]


def _styles_line(d: Line) -> List[DrawingStyle]:
    return [_override(d.line_styles, i, d.style) for i in range(len(d.lines))]


def _shapes_frame(d) -> List[Shape]:
    return [(_rect_corners(d.start, d.end), True)]


def _shapes_callout(d: ExtensionLine) -> List[Shape]:
    return [([d.position, d.bend, d.tail_end()], False)]


def _shapes_pin(d: Pin) -> List[Shape]:
    return [([d.position], False)]


def _shapes_highlight(d: TextHighlight) -> List[Shape]:
    return [(r.corners(), True) for r in d.rects]


def _style_single(d) -> List[DrawingStyle]:
    return [d.style] * len(_ops(d.kind).shapes(d))


def _style_colored(d) -> List[DrawingStyle]:
    return [DrawingStyle(d.color)]


# ---------- per-kind bounding boxes ----------
def _points(d) -> List[Point]:
    pts = [p for pts, _ in _ops(d.kind).shapes(d) for p in pts]
    if not pts:
        raise DrawingError(f"drawing {d.id} has no geometry")
    return pts


def _box_stroked(d) -> BoundingBox:
    """Padded by half the widest stroke in use."""
    styles = _ops(d.kind).styles(d)
    w = max((s.stroke_width for s in styles), default=0.0) / 2.0
    return BoundingBox.around(_points(d), pad_x=w, pad_y=w)


def _box_pin(d: Pin) -> BoundingBox:
    return BoundingBox.around(_points(d), pad_x=PIN_RADIUS, pad_y=PIN_RADIUS)


def _box_highlight(d: TextHighlight) -> BoundingBox:
    return BoundingBox.around(_points(d))


def _box_callout(d: ExtensionLine) -> BoundingBox:
    """Arrow, tail and the text band above the tail, padded and kept on the page."""
    pts = _points(d)
    text_y = d.text_anchor_y()
    half = CALLOUT_TEXT_HEIGHT / 2.0
    pad = CALLOUT_BOX_PADDING
    xs = [p.x for p in pts]
    ys = [p.y for p in pts] + [text_y - half, text_y + half]
    return BoundingBox(max(0.0, min(xs) - pad), max(0.0, min(ys) - pad), max(xs) + pad, max(ys) + pad)


# ---------- per-kind serialization ----------
def _pt(p: Point) -> Dict[str, float]:
    return {"x": p.x, "y": p.y}


def _unpt(d: Dict[str, Any]) -> Point:
    return Point(float(d["x"]), float(d["y"]))


def _dump_styles(styles: Optional[List[DrawingStyle]]):
    return None if styles is None else [s.to_dict() for s in styles]


def _load_styles(raw) -> Optional[List[DrawingStyle]]:
    return None if raw is None else [DrawingStyle.from_dict(s) for s in raw]


def _dump_segments(lines: List[Segment]) -> List[Dict[str, Any]]:
    return [{"start": _pt(s.start), "end": _pt(s.end)} for s in lines]


def _load_segments(raw) -> List[Segment]:
    return [Segment(_unpt(s["start"]), _unpt(s["end"])) for s in raw]


def _dump_freehand(d: Freehand) -> Dict[str, Any]:
    return {"paths": [[_pt(p) for p in path] for path in d.paths], "style": d.style.to_dict(),
            "path_styles": _dump_styles(d.path_styles)}


def _load_freehand(d: Dict[str, Any]) -> Freehand:
    return Freehand(str(d["id"]), int(d.get("page", 1)),
                    [[_unpt(p) for p in path] for path in d["paths"]],
                    DrawingStyle.from_dict(d.get("style")),
                    _load_styles(d.get("path_styles")))


def _dump_line(d: Line) -> Dict[str, Any]:
    return {"lines": _dump_segments(d.lines), "style": d.style.to_dict(),
            "line_styles": _dump_styles(d.line_styles)}


def _load_line(d: Dict[str, Any]) -> Line:
    return Line(str(d["id"]), int(d.get("page", 1)), _load_segments(d["lines"]),
                DrawingStyle.from_dict(d.get("style")), _load_styles(d.get("line_styles")))


def _dump_frame(d) -> Dict[str, Any]:
    return {"start": _pt(d.start), "end": _pt(d.end), "style": d.style.to_dict()}


def _load_rectangle(d: Dict[str, Any]) -> Rectangle:
    return Rectangle(str(d["id"]), int(d.get("page", 1)), _unpt(d["start"]), _unpt(d["end"]),
                     DrawingStyle.from_dict(d.get("style")))


def _load_draw_area(d: Dict[str, Any]) -> DrawArea:
    return DrawArea(str(d["id"]), int(d.get("page", 1)), _unpt(d["start"]), _unpt(d["end"]),
                    DrawingStyle.from_dict(d.get("style")))


def _dump_text_area(d: TextArea) -> Dict[str, Any]:
    out = _dump_frame(d)
    out.update({"text": d.text, "font_size": d.font_size})
    return out


def _load_text_area(d: Dict[str, Any]) -> TextArea:
    size = d.get("font_size")
    return TextArea(str(d["id"]), int(d.get("page", 1)), _unpt(d["start"]), _unpt(d["end"]),
                    str(d.get("text", "")), DrawingStyle.from_dict(d.get("style")),
                    None if size is None else float(size))


def _dump_callout(d: ExtensionLine) -> Dict[str, Any]:
    return {"position": _pt(d.position), "text": d.text, "color": d.color,
            "bend_point": None if d.bend_point is None else _pt(d.bend_point)}


def _load_callout(d: Dict[str, Any]) -> ExtensionLine:
    bend = d.get("bend_point")
    return ExtensionLine(str(d["id"]), int(d.get("page", 1)), _unpt(d["position"]),
                         str(d.get("text", "")), str(d.get("color", "#ff0000")),
                         None if bend is None else _unpt(bend))


def _dump_pin(d: Pin) -> Dict[str, Any]:
    return {"position": _pt(d.position), "color": d.color}


def _load_pin(d: Dict[str, Any]) -> Pin:
    return Pin(str(d["id"]), int(d.get("page", 1)), _unpt(d["position"]), str(d.get("color", "#ff0000")))


def _dump_text_lines(d: TextLines) -> Dict[str, Any]:
    return {"lines": _dump_segments(d.lines), "style": d.style.to_dict(), "text": d.text}


def _load_text_lines(d: Dict[str, Any]) -> TextLines:
    return TextLines(str(d["id"]), int(d.get("page", 1)), d["type"], _load_segments(d["lines"]),
                     DrawingStyle.from_dict(d.get("style")), d.get("text"))


def _dump_highlight(d: TextHighlight) -> Dict[str, Any]:
    return {"rects": [{"x": r.x, "y": r.y, "width": r.width, "height": r.height} for r in d.rects],
            "style": d.style.to_dict(), "text": d.text}


def _load_highlight(d: Dict[str, Any]) -> TextHighlight:
    hl = TextHighlight(str(d["id"]), int(d.get("page", 1)),
                       [Rect(float(r["x"]), float(r["y"]), float(r["width"]), float(r["height"]))
                        for r in d["rects"]],
                       text=d.get("text"))
    if d.get("style"):
        hl.style = DrawingStyle.from_dict(d["style"])
    return hl


@dataclass(frozen=True)
class _KindOps:
    shapes: Callable[[Any], List[Shape]]
    styles: Callable[[Any], List[DrawingStyle]]
    box: Callable[[Any], BoundingBox]
    dump: Callable[[Any], Dict[str, Any]]
    load: Callable[[Dict[str, Any]], Any]


_KINDS: Dict[str, _KindOps] = {
    "freehand": _KindOps(_shapes_freehand, _styles_freehand, _box_stroked, _dump_freehand, _load_freehand),
    "line": _KindOps(_shapes_segments, _styles_line, _box_stroked, _dump_line, _load_line),
    "rectangle": _KindOps(_shapes_frame, _style_single, _box_stroked, _dump_frame, _load_rectangle),
    "draw_area": _KindOps(_shapes_frame, _style_single, _box_stroked, _dump_frame, _load_draw_area),
    "text_area": _KindOps(_shapes_frame, _style_single, _box_stroked, _dump_text_area, _load_text_area),
    "extension_line": _KindOps(_shapes_callout, _style_colored, _box_callout, _dump_callout, _load_callout),
    "pin": _KindOps(_shapes_pin, _style_colored, _box_pin, _dump_pin, _load_pin),
    "text_underline": _KindOps(_shapes_segments, _style_single, _box_stroked, _dump_text_lines, _load_text_lines),
    "text_strikethrough": _KindOps(_shapes_segments, _style_single, _box_stroked, _dump_text_lines,
                                   _load_text_lines),
    "text_highlight": _KindOps(_shapes_highlight, _style_single, _box_highlight, _dump_highlight, _load_highlight),
}


def _ops(kind: str) -> _KindOps:
    try:
        return _KINDS[kind]
    except KeyError:
        raise DrawingError(f"unknown drawing kind {kind!r}") from None


# ---------- public dispatch ----------
def canonical_shapes(d: Drawing) -> List[Shape]:
    return _ops(d.kind).shapes(d)


def shape_styles(d: Drawing) -> List[DrawingStyle]:
    """Effective style of each shape of ``d``, aligned with :func:`canonical_shapes`."""
    return _ops(d.kind).styles(d)


def screen_shapes(d: Drawing, viewport: Viewport) -> List[Shape]:
    """Project every shape of ``d`` to screen space for ``viewport``."""
    return [([to_screen(p, viewport) for p in pts], closed) for pts, closed in canonical_shapes(d)]


def bounding_box(d: Drawing) -> BoundingBox:
    """Canonical box around everything the drawing paints."""
    return _ops(d.kind).box(d)


def drawing_to_dict(d: Drawing) -> Dict[str, Any]:
    out = {"id": d.id, "type": d.kind, "page": d.page}
    out.update(_ops(d.kind).dump(d))
    out["bounding_box"] = bounding_box(d).to_dict() if canonical_shapes(d) else None
    return out


def drawing_from_dict(d: Dict[str, Any]) -> Drawing:
    if "type" not in d:
        raise DrawingError("serialized drawing has no 'type'")
    ops = _ops(d["type"])
    try:
        return ops.load(d)
    except DrawingError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise DrawingError(f"malformed {d['type']} drawing: {e}") from e
