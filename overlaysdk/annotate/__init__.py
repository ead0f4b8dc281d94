from .drawings import (
    DrawingKind,
    DrawingStyle,
    Segment,
    Rect,
    Freehand,
    Line,
    Rectangle,
    DrawArea,
    TextArea,
    ExtensionLine,
    Pin,
    TextLines,
    TextHighlight,
    Drawing,
    canonical_shapes,
    shape_styles,
    screen_shapes,
    bounding_box,
    drawing_to_dict,
    drawing_from_dict,
)

__all__ = [
    "DrawingKind",
    "DrawingStyle",
    "Segment",
    "Rect",
    "Freehand",
    "Line",
    "Rectangle",
    "DrawArea",
    "TextArea",
    "ExtensionLine",
    "Pin",
    "TextLines",
    "TextHighlight",
    "Drawing",
    "canonical_shapes",
    "shape_styles",
    "screen_shapes",
    "bounding_box",
    "drawing_to_dict",
    "drawing_from_dict",
]
