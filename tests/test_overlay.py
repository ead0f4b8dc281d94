"""Tests for OpenCV overlay drawing."""

import numpy as np

from overlaysdk.annotate import (
    DrawArea, DrawingStyle, ExtensionLine, Freehand, Line, Pin, Rect, Rectangle, Segment, TextArea, TextHighlight,
)
from overlaysdk.geometry import Point
from overlaysdk.measure import PointerDown, PointerMove, PointerUp
from overlaysdk.overlay import draw_drawing, draw_snap_points, render_overlay
from overlaysdk.snap import InterestPoint, PointKind


def white(h=300, w=400):
    return np.full((h, w, 3), 255, dtype=np.uint8)


class TestRenderOverlay:
    def test_input_is_not_modified(self, machine):
        img = white()
        machine.dispatch(PointerDown(Point(10, 50)))
        machine.dispatch(PointerUp(Point(210, 50)))
        out = render_overlay(img, machine)
        assert np.all(img == 255)
        assert out.shape == img.shape
        # ruler line in red (BGR)
        b, g, r = out[50, 110]
        assert r > 200 and g < 80 and b < 80

    def test_draft_is_drawn(self, machine):
        machine.dispatch(PointerDown(Point(10, 150)))
        machine.dispatch(PointerMove(Point(210, 150)))
        out = render_overlay(white(), machine)
        assert not np.all(out[150, 60:160] == 255)

    def test_empty_overlay(self, machine):
        assert np.array_equal(render_overlay(white(), machine), white())


class TestDrawingKinds:
    def test_each_kind_draws(self, page_viewport):
        drawings = [
            Freehand("f", 1, [[Point(10, 10), Point(100, 100)]], DrawingStyle("#00ff00", 3)),
            Line("l", 1, [Segment(Point(10, 10), Point(200, 10))]),
            Rectangle("r", 1, Point(150, 20), Point(250, 80)),
            DrawArea("a", 1, Point(20, 150), Point(120, 250)),
            TextArea("t", 1, Point(20, 150), Point(220, 250), "hello world, wrapped onto lines"),
            ExtensionLine("e", 1, Point(100, 100), "note", "#0000ff", Point(150, 60)),
            Pin("p", 1, Point(300, 200), "#0000ff"),
            TextHighlight("h", 1, [Rect(20, 200, 100, 20)]),
        ]
        for d in drawings:
            img = white()
            draw_drawing(img, d, page_viewport)
            assert not np.all(img == 255), d.kind

    def test_line_styles_color_each_segment(self, page_viewport):
        img = white()
        d = Line("l", 1, [Segment(Point(10, 20), Point(200, 20)), Segment(Point(10, 60), Point(200, 60))],
                 DrawingStyle("#ff0000", 3), line_styles=[DrawingStyle("#00ff00", 3)])
        draw_drawing(img, d, page_viewport)
        b, g, r = img[20, 100]
        assert g > 200 and r < 80 and b < 80
        b, g, r = img[60, 100]
        assert r > 200 and g < 80 and b < 80

    def test_text_area_writes_inside_frame(self, page_viewport):
        img = white()
        draw_drawing(img, TextArea("t", 1, Point(20, 150), Point(220, 250), "hello"), page_viewport)
        assert not np.all(img[160:200, 30:100] == 255)

    def test_highlight_is_translucent(self, page_viewport):
        img = white()
        draw_drawing(img, TextHighlight("h", 1, [Rect(20, 200, 100, 20)]), page_viewport)
        b, g, r = img[210, 70]
        assert r == 255 and g == 255 and 0 < b < 255

    def test_snap_points(self):
        img = white()
        pts = [InterestPoint(50, 50, PointKind.CORNER, 1.0), InterestPoint(100, 50, PointKind.LINE_END, 0.5)]
        draw_snap_points(img, pts, pts[0], pts[0])
        assert not np.all(img == 255)
