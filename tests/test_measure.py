"""Tests for the ruler state machine, calibration and label geometry."""

import numpy as np
import pytest

from overlaysdk.errors import CalibrationError
from overlaysdk.bitmap import Bitmap
from overlaysdk.geometry import Point, Viewport, to_canonical, to_screen
from overlaysdk.interaction import InteractionMode
from overlaysdk.measure import (
    Cancel, CancelCalibration, CancelReason, CalibrationProfile, ClearRulers, DeleteRuler,
    DoubleClick, Endpoint, MachineState, MeasurementStateMachine, Modifier, OpenCalibration,
    Phase, PointerDown, PointerEvent, PointerMove, PointerUp, ResetCalibration, SetCanvas, SetToolActive,
    SetViewport, SubmitCalibration, calibrate, format_distance, hit_label, parse_magnitude,
    place_label,
)


def draw(m, a, b):
    m.dispatch(PointerDown(Point(*a)))
    m.dispatch(PointerMove(Point(*b)))
    m.dispatch(PointerUp(Point(*b)))


class TestDrawing:
    def test_short_drag_makes_no_ruler(self, machine):
        draw(machine, (10, 10), (29, 10))
        assert machine.get_rulers() == []
        assert machine.state is MachineState.IDLE

    def test_plain_click_makes_no_ruler(self, machine):
        machine.dispatch(PointerDown(Point(50, 50)))
        machine.dispatch(PointerUp(Point(50, 50)))
        assert machine.get_rulers() == []

    def test_commit(self, machine):
        draw(machine, (10, 10), (110, 10))
        rulers = machine.get_rulers()
        assert len(rulers) == 1
        assert rulers[0].start == Point(10, 10)
        assert rulers[0].end == Point(110, 10)
        assert rulers[0].distance_px == pytest.approx(100)
        assert rulers[0].angle_deg == pytest.approx(0)
        assert machine.get_draft() is None

    def test_draft_follows_pointer(self, machine):
        machine.dispatch(PointerDown(Point(10, 10)))
        machine.dispatch(PointerMove(Point(10, 70)))
        draft = machine.get_draft()
        assert machine.state is MachineState.DRAWING
        assert draft.end == Point(10, 70)
        assert draft.distance_px == pytest.approx(60)
        assert draft.angle_deg == pytest.approx(90)

    def test_rulers_stored_canonical(self, machine):
        machine.dispatch(SetViewport(Viewport.for_page(400, 300, 2.0)))
        draw(machine, (20, 20), (220, 20))
        r = machine.get_rulers()[0]
        assert (r.start, r.end) == (Point(10, 10), Point(110, 10))
        assert r.distance_px == pytest.approx(100)

    def test_commit_is_clamped_to_page(self, machine):
        draw(machine, (390, 10), (500, 10))
        assert machine.get_rulers()[0].end == Point(400, 10)

    def test_handle_pointer(self, machine):
        machine.handle_pointer(PointerEvent(Point(0, 0), Phase.DOWN))
        machine.handle_pointer(PointerEvent(Point(0, 50), Phase.MOVE))
        machine.handle_pointer(PointerEvent(Point(0, 50), Phase.UP))
        assert len(machine.get_rulers()) == 1

    def test_get_rulers_returns_copies(self, machine):
        draw(machine, (10, 10), (110, 10))
        machine.get_rulers()[0].set_endpoint(Endpoint.END, Point(0, 0))
        assert machine.get_rulers()[0].end == Point(110, 10)


class TestEndpointDrag:
    def test_drag_end(self, machine):
        draw(machine, (10, 50), (210, 50))
        machine.dispatch(PointerDown(Point(212, 52)))
        assert machine.state is MachineState.DRAGGING_ENDPOINT
        assert machine.drag.which is Endpoint.END
        machine.dispatch(PointerMove(Point(250, 80)))
        machine.dispatch(PointerUp(Point(250, 80)))
        r = machine.get_rulers()[0]
        assert r.end == Point(250, 80)
        assert r.distance_px == pytest.approx((240 ** 2 + 30 ** 2) ** 0.5)
        assert machine.state is MachineState.IDLE

    def test_drag_is_clamped(self, machine):
        draw(machine, (10, 50), (210, 50))
        machine.dispatch(PointerDown(Point(10, 50)))
        machine.dispatch(PointerMove(Point(-100, 1000)))
        machine.dispatch(PointerUp(Point(-100, 1000)))
        assert machine.get_rulers()[0].start == Point(0, 300)

    def test_click_on_marker_keeps_ruler(self, machine):
        draw(machine, (10, 50), (210, 50))
        machine.dispatch(PointerDown(Point(205, 55)))
        machine.dispatch(PointerUp(Point(205, 55)))
        assert machine.get_rulers()[0].end == Point(210, 50)

    def test_cancel_restores_endpoint(self, machine):
        draw(machine, (10, 50), (210, 50))
        machine.dispatch(PointerDown(Point(210, 50)))
        machine.dispatch(PointerMove(Point(300, 200)))
        assert machine.dispatch(Cancel(CancelReason.ESCAPE))
        r = machine.get_rulers()[0]
        assert r.end == Point(210, 50)
        assert r.distance_px == pytest.approx(200)
        assert machine.state is MachineState.IDLE
        assert not machine.lock.is_locked


class TestCancelAndLock:
    @pytest.mark.parametrize("reason", list(CancelReason))
    def test_cancel_clears_draft(self, machine, reason):
        machine.dispatch(PointerDown(Point(10, 10)))
        machine.dispatch(PointerMove(Point(100, 10)))
        machine.dispatch(Cancel(reason))
        assert machine.get_draft() is None
        assert machine.state is MachineState.IDLE
        assert not machine.lock.is_locked

    def test_cancel_when_idle_is_noop(self, machine):
        assert not machine.dispatch(Cancel())

    def test_lock_held_during_gesture(self, machine):
        machine.dispatch(PointerDown(Point(10, 10)))
        assert machine.lock.mode is InteractionMode.RULER_DRAW
        assert machine.lock.owner is machine
        machine.dispatch(PointerUp(Point(100, 10)))
        assert not machine.lock.is_locked

    def test_busy_lock_blocks_new_gesture(self, machine):
        slider = object()
        assert machine.lock.acquire(InteractionMode.SLIDER_DRAG, slider)
        assert not machine.dispatch(PointerDown(Point(10, 10)))
        assert machine.state is MachineState.IDLE
        assert machine.lock.owner is slider

    def test_deactivating_tool_cancels(self, machine):
        machine.dispatch(PointerDown(Point(10, 10)))
        machine.dispatch(SetToolActive(False))
        assert machine.state is MachineState.IDLE
        assert not machine.lock.is_locked
        assert not machine.dispatch(PointerDown(Point(10, 10)))


class TestDoubleClick:
    def test_on_marker_deletes_ruler(self, machine):
        draw(machine, (10, 50), (210, 50))
        draw(machine, (10, 150), (210, 150))
        machine.dispatch(DoubleClick(Point(10, 150)))
        rulers = machine.get_rulers()
        assert len(rulers) == 1 and rulers[0].start == Point(10, 50)

    def test_elsewhere_discards_draft_only(self, machine):
        draw(machine, (10, 50), (210, 50))
        machine.dispatch(PointerDown(Point(300, 250)))
        machine.dispatch(DoubleClick(Point(300, 250)))
        assert machine.get_draft() is None
        assert len(machine.get_rulers()) == 1

    def test_elsewhere_with_modifier_clears_all(self, machine):
        draw(machine, (10, 50), (210, 50))
        draw(machine, (10, 150), (210, 150))
        machine.dispatch(DoubleClick(Point(300, 250), Modifier.SHIFT))
        assert machine.get_rulers() == []

    def test_on_label_opens_calibration(self, machine):
        draw(machine, (10, 50), (210, 50))
        r = machine.get_rulers()[0]
        center = machine.label_placement(r).center
        machine.dispatch(DoubleClick(center))
        assert machine.dialog is not None
        assert machine.dialog.ruler_id == r.id
        assert len(machine.get_rulers()) == 1


class TestCalibrationFlow:
    def _calibrate(self, machine, text, unit=None):
        r = machine.get_rulers()[0]
        machine.dispatch(OpenCalibration(r.id))
        machine.dispatch(SubmitCalibration(text, unit))
        return r

    def test_arithmetic(self, machine):
        draw(machine, (10, 50), (210, 50))
        r = self._calibrate(machine, "10", "cm")
        assert machine.calibration.is_calibrated
        assert machine.calibration.pixels_per_unit == pytest.approx(20)
        assert machine.label_for(r) == "10.0 cm"
        assert machine.dialog is None

    def test_uncalibrated_label(self, machine):
        draw(machine, (10, 50), (210, 50))
        assert machine.label_for(machine.get_rulers()[0]) == "200 px"

    @pytest.mark.parametrize("text, message", [
        ("abc", "Enter a numeric value for the length."),
        ("-5", "Length must be greater than zero."),
        ("0", "Length must be greater than zero."),
    ])
    def test_invalid_input_keeps_dialog_open(self, machine, text, message):
        draw(machine, (10, 50), (210, 50))
        self._calibrate(machine, text, "cm")
        assert machine.dialog is not None
        assert machine.dialog.error == message
        assert machine.calibration == CalibrationProfile()

    def test_cancel_leaves_profile(self, machine):
        draw(machine, (10, 50), (210, 50))
        self._calibrate(machine, "10", "cm")
        machine.dispatch(OpenCalibration(machine.get_rulers()[0].id))
        machine.dispatch(CancelCalibration())
        assert machine.dialog is None
        assert machine.calibration.pixels_per_unit == pytest.approx(20)

    def test_reset(self, machine):
        draw(machine, (10, 50), (210, 50))
        self._calibrate(machine, "10", "cm")
        machine.dispatch(ResetCalibration())
        assert not machine.calibration.is_calibrated
        assert machine.label_for(machine.get_rulers()[0]) == "200 px"

    def test_default_unit(self, machine):
        draw(machine, (10, 50), (210, 50))
        self._calibrate(machine, "4")
        assert machine.calibration.unit_label == "units"


class TestPersistence:
    def test_restore_on_session_start(self, machine, store, page_viewport):
        draw(machine, (10, 50), (210, 50))
        r = machine.get_rulers()[0]
        machine.dispatch(OpenCalibration(r.id))
        machine.dispatch(SubmitCalibration("50", "mm"))

        again = MeasurementStateMachine(page_viewport, store=store)
        assert [x.id for x in again.get_rulers()] == [r.id]
        assert again.get_rulers()[0].distance_px == pytest.approx(200)
        assert again.calibration.unit_label == "mm"
        assert again.calibration.pixels_per_unit == pytest.approx(4)

    def test_every_mutation_is_saved(self, machine, store):
        draw(machine, (10, 50), (210, 50))
        assert len(store.load("measure.rulers")) == 1
        machine.dispatch(DeleteRuler(machine.get_rulers()[0].id))
        assert store.load("measure.rulers") == []

    def test_malformed_entries_are_skipped(self, store, page_viewport):
        store.save("measure.rulers", [{"id": "a"}, {"id": "b", "start": {"x": 0, "y": 0}, "end": {"x": 3, "y": 4}}])
        m = MeasurementStateMachine(page_viewport, store=store)
        assert [r.id for r in m.get_rulers()] == ["b"]
        assert m.get_rulers()[0].distance_px == pytest.approx(5)


def ink_canvas(width, height, lo=100, hi=200):
    """White screen canvas with a filled ink square over [lo, hi) on both axes."""
    arr = np.full((height, width, 4), 255, dtype=np.uint8)
    arr[lo:hi, lo:hi, :3] = 0
    return Bitmap(arr)


def _near(p, x, y, tol=3):
    return abs(p.x - x) <= tol and abs(p.y - y) <= tol


class TestSnapCommit:
    def test_draft_end_snaps_to_target(self, machine):
        machine.dispatch(SetCanvas(ink_canvas(400, 300)))
        machine.dispatch(PointerDown(Point(10, 10)))
        machine.dispatch(PointerMove(Point(104, 104)))
        target = machine.snap.snap_point
        assert target is not None and _near(target.position, 100, 100)
        machine.dispatch(PointerUp(Point(104, 104)))

        r = machine.get_rulers()[0]
        assert r.start == Point(10, 10)
        assert r.end == to_canonical(target.position, machine.viewport)
        assert r.end != Point(104, 104)

    def test_dragged_endpoint_snaps_to_target(self, machine):
        draw(machine, (10, 50), (300, 50))
        machine.dispatch(SetCanvas(ink_canvas(400, 300)))
        machine.dispatch(PointerDown(Point(300, 50)))
        machine.dispatch(PointerMove(Point(104, 104)))
        target = machine.snap.snap_point
        assert target is not None
        machine.dispatch(PointerUp(Point(104, 104)))

        r = machine.get_rulers()[0]
        assert r.start == Point(10, 50)
        assert r.end == to_canonical(target.position, machine.viewport)

    def test_no_target_commits_pointer(self, machine):
        machine.dispatch(SetCanvas(ink_canvas(400, 300)))
        draw(machine, (10, 250), (300, 250))
        assert machine.snap.snap_point is None
        assert machine.get_rulers()[0].end == Point(300, 250)


class TestRotatedViewport:
    """Page 400x300 at scale 2 turned 270 degrees: a 600x800 canvas."""

    @pytest.fixture
    def turned(self, machine):
        machine.dispatch(SetViewport(Viewport.for_page(400, 300, 2.0, 270)))
        return machine

    def test_commit_is_canonical(self, turned):
        draw(turned, (100, 700), (100, 500))
        r = turned.get_rulers()[0]
        assert (r.start, r.end) == (Point(50, 50), Point(150, 50))
        assert r.distance_px == pytest.approx(100)
        assert r.angle_deg == pytest.approx(0)

    def test_endpoint_hit_uses_screen_projection(self, turned):
        draw(turned, (100, 700), (100, 500))
        turned.dispatch(PointerDown(Point(103, 503)))
        assert turned.state is MachineState.DRAGGING_ENDPOINT
        assert turned.drag.which is Endpoint.END
        turned.dispatch(PointerMove(Point(200, 300)))
        turned.dispatch(PointerUp(Point(200, 300)))
        assert turned.get_rulers()[0].end == Point(250, 100)

    def test_drag_snaps_through_rotation(self, turned):
        draw(turned, (100, 700), (100, 500))
        turned.dispatch(SetCanvas(ink_canvas(600, 800)))
        turned.dispatch(PointerDown(Point(100, 500)))
        turned.dispatch(PointerMove(Point(104, 104)))
        target = turned.snap.snap_point
        assert target is not None and _near(target.position, 100, 100)
        turned.dispatch(PointerUp(Point(104, 104)))

        end = turned.get_rulers()[0].end
        assert end == to_canonical(target.position, turned.viewport)
        projected = to_screen(end, turned.viewport)
        assert (projected.x, projected.y) == pytest.approx((target.x, target.y))


class TestHover:
    def test_hover_reports_only_snap_changes(self, machine):
        assert not machine.dispatch(PointerMove(Point(300, 250)))
        machine.dispatch(SetCanvas(ink_canvas(400, 300)))
        # first detection highlights the square's corner
        assert machine.dispatch(PointerMove(Point(104, 104)))
        # throttled, same target
        assert not machine.dispatch(PointerMove(Point(106, 106)))
        # target out of reach
        assert machine.dispatch(PointerMove(Point(300, 250)))
        assert machine.snap.snap_point is None


class TestMisc:
    def test_viewport_bumps_generation(self, machine):
        assert machine.dispatch(SetViewport(Viewport.for_page(400, 300, 1.5)))
        assert machine.generation == 1
        assert machine.snap.generation == 1
        assert not machine.dispatch(SetViewport(Viewport.for_page(400, 300, 1.5)))

    def test_listeners(self, machine):
        seen = []
        machine.add_listener(seen.append)
        draw(machine, (10, 50), (210, 50))
        machine.dispatch(ClearRulers())
        assert isinstance(seen[0], PointerDown)
        assert isinstance(seen[-1], ClearRulers)

    def test_unknown_action(self, machine):
        with pytest.raises(TypeError):
            machine.dispatch("not an action")

    def test_bounding_box_includes_label_room(self, machine):
        assert machine.bounding_box() is None
        draw(machine, (10, 50), (210, 50))
        box = machine.bounding_box()
        assert box.left < 10 and box.right > 210
        assert box.top < 50 - 15 and box.bottom > 50


class TestCalibrationHelpers:
    def test_parse_magnitude(self):
        assert parse_magnitude(" 2.5 ") == 2.5
        assert parse_magnitude("1,5") == 1.5
        assert parse_magnitude(3) == 3.0
        for bad in ("", "x", "nan", "-1", 0):
            with pytest.raises(CalibrationError):
                parse_magnitude(bad)

    def test_calibrate(self):
        p = calibrate(200, 10, "cm")
        assert p == CalibrationProfile(True, 20.0, "cm")
        with pytest.raises(CalibrationError):
            calibrate(0, 10, "cm")

    def test_format_distance(self):
        assert format_distance(100.5, CalibrationProfile()) == "101 px"
        assert format_distance(99.4, CalibrationProfile()) == "99 px"
        assert format_distance(75, CalibrationProfile(True, 2.0, "in")) == "37.5 in"

    def test_profile_round_trip_and_bad_data(self):
        p = CalibrationProfile(True, 12.5, "mm")
        assert CalibrationProfile.from_dict(p.to_dict()) == p
        assert CalibrationProfile.from_dict({"is_calibrated": True, "pixels_per_unit": -1}) == CalibrationProfile()
        assert CalibrationProfile.from_dict(None) == CalibrationProfile()


class TestLabels:
    def test_label_sits_above_horizontal_line(self):
        lp = place_label(Point(0, 100), Point(100, 100))
        assert lp.angle_deg == pytest.approx(0)
        assert (lp.center.x, lp.center.y) == pytest.approx((50, 85))

    def test_label_never_upside_down(self):
        lp = place_label(Point(100, 100), Point(0, 100))
        assert lp.angle_deg == pytest.approx(0)
        assert (lp.center.x, lp.center.y) == pytest.approx((50, 85))

    def test_vertical_label(self):
        lp = place_label(Point(0, 0), Point(0, 100))
        assert lp.angle_deg == pytest.approx(90)
        assert (lp.center.x, lp.center.y) == pytest.approx((15, 50))

    def test_hit_label(self):
        lp = place_label(Point(0, 100), Point(100, 100))
        assert hit_label(lp, Point(50, 85))
        assert hit_label(lp, Point(85, 90))
        assert not hit_label(lp, Point(50, 100))
        assert not hit_label(lp, Point(95, 85))
