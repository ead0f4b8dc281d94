# overlaysdk/measure/machine.py
"""
Ruler tool state machine.

All mutations go through :meth:`MeasurementStateMachine.dispatch` with one of
the action dataclasses below; the UI layer only translates its native events
into actions and reads back ``get_rulers()`` / ``get_draft()`` for painting.

Rulers are stored canonical (scale 1, rotation 0). Every comparison with the
pointer first projects the stored points to screen space for the current
viewport.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from loguru import logger

from .. import defaults as D
from ..bitmap import Bitmap
from ..geometry import BoundingBox, Point, Viewport, clamp_canonical, distance, to_canonical, to_screen
from ..interaction import InteractionLock, InteractionMode
from ..snap import SnapEngine
from ..store import PersistenceStore
from .calibration import CalibrationDialog, CalibrationProfile, format_distance
from .labels import LabelPlacement, hit_label, label_for_ruler, rulers_bounding_box
from .schema import Draft, DragState, Endpoint, MachineState, Modifier, Phase, PointerEvent, Ruler


@dataclass
class MeasureParams:
    marker_hit_radius: float = D.MARKER_HIT_RADIUS
    min_ruler_px: float = D.MIN_RULER_PX
    label_offset_px: float = D.LABEL_OFFSET_PX
    label_hit_half_width: float = D.LABEL_HIT_HALF_WIDTH
    label_hit_half_height: float = D.LABEL_HIT_HALF_HEIGHT

    @classmethod
    def from_config(cls, cfg: Dict[str, Any] | None) -> "MeasureParams":
        return D.params_from_config(cls, cfg)


class CancelReason(str, Enum):
    ESCAPE = "escape"
    POINTER_LEAVE = "pointer_leave"
    POINTER_CANCEL = "pointer_cancel"
    WINDOW_BLUR = "window_blur"
    TOOL_DEACTIVATED = "tool_deactivated"


# ---------- actions ----------
@dataclass(frozen=True)
class PointerDown:
    position: Point
    modifiers: Modifier = Modifier.NONE


@dataclass(frozen=True)
class PointerMove:
    position: Point


@dataclass(frozen=True)
class PointerUp:
    position: Point


@dataclass(frozen=True)
class DoubleClick:
    position: Point
    modifiers: Modifier = Modifier.NONE


@dataclass(frozen=True)
class Cancel:
    reason: CancelReason = CancelReason.ESCAPE


@dataclass(frozen=True)
class SetViewport:
    viewport: Viewport


@dataclass(frozen=True)
class SetCanvas:
    """Rendered page bitmap (screen pixels) used for snapping; None disables snapping."""
    canvas: Optional[Bitmap]


@dataclass(frozen=True)
class SetToolActive:
    active: bool


@dataclass(frozen=True)
class DeleteRuler:
    ruler_id: str


@dataclass(frozen=True)
class ClearRulers:
    pass


@dataclass(frozen=True)
class OpenCalibration:
    ruler_id: str


@dataclass(frozen=True)
class SubmitCalibration:
    text: Any
    unit_label: Optional[str] = None


@dataclass(frozen=True)
class CancelCalibration:
    pass


@dataclass(frozen=True)
class ResetCalibration:
    pass


Action = Union[
    PointerDown, PointerMove, PointerUp, DoubleClick, Cancel, SetViewport, SetCanvas,
    SetToolActive, DeleteRuler, ClearRulers, OpenCalibration, SubmitCalibration,
    CancelCalibration, ResetCalibration,
]


class MeasurementStateMachine:
    def __init__(self, viewport: Viewport,
                 params: MeasureParams | None = None,
                 snap: SnapEngine | None = None,
                 store: PersistenceStore | None = None,
                 lock: InteractionLock | None = None,
                 namespace: str = "measure",
                 tool_active: bool = True):
        self.params = params or MeasureParams()
        self.snap = snap or SnapEngine()
        self.store = store
        self.lock = lock or InteractionLock()
        self.namespace = namespace
        self.viewport = viewport
        self.generation = self.snap.generation
        self.canvas: Optional[Bitmap] = None
        self.tool_active = tool_active

        self.state = MachineState.IDLE
        self._rulers: List[Ruler] = []
        self._draft: Optional[Draft] = None
        self._drag: Optional[DragState] = None
        self.calibration = CalibrationProfile()
        self.dialog: Optional[CalibrationDialog] = None
        self._listeners: List[Callable[[Action], None]] = []

        self._handlers: Dict[type, Callable[[Any], bool]] = {
            PointerDown: self._on_down,
            PointerMove: self._on_move,
            PointerUp: self._on_up,
            DoubleClick: self._on_double_click,
            Cancel: self._on_cancel,
            SetViewport: self._on_viewport,
            SetCanvas: self._on_canvas,
            SetToolActive: self._on_tool_active,
            DeleteRuler: self._on_delete,
            ClearRulers: self._on_clear,
            OpenCalibration: self._on_open_calibration,
            SubmitCalibration: self._on_submit_calibration,
            CancelCalibration: self._on_cancel_calibration,
            ResetCalibration: self._on_reset_calibration,
        }

        if self.store is not None:
            self.restore()

    # ---------- public API ----------
    def dispatch(self, action: Action) -> bool:
        """Apply one action. Returns True when anything observable changed."""
        handler = self._handlers.get(type(action))
        if handler is None:
            raise TypeError(f"unknown action {action!r}")
        changed = handler(action)
        if changed:
            for cb in self._listeners:
                cb(action)
        return changed

    def handle_pointer(self, event: PointerEvent) -> bool:
        if event.phase is Phase.DOWN:
            return self.dispatch(PointerDown(event.position, event.modifiers))
        if event.phase is Phase.MOVE:
            return self.dispatch(PointerMove(event.position))
        return self.dispatch(PointerUp(event.position))

    def add_listener(self, callback: Callable[[Action], None]) -> None:
        self._listeners.append(callback)

    def get_rulers(self) -> List[Ruler]:
        return [replace(r) for r in self._rulers]

    def get_draft(self) -> Optional[Draft]:
        return self._draft

    @property
    def drag(self) -> Optional[DragState]:
        return self._drag

    def label_for(self, ruler: Ruler) -> str:
        return format_distance(ruler.distance_px, self.calibration)

    def label_placement(self, ruler: Ruler) -> LabelPlacement:
        return label_for_ruler(ruler, self.viewport, self.params.label_offset_px)

    def bounding_box(self) -> Optional[BoundingBox]:
        if not self._rulers:
            return None
        return rulers_bounding_box(self._rulers, self.params.label_offset_px)

    # ---------- persistence ----------
    @property
    def _rulers_key(self) -> str:
        return f"{self.namespace}.rulers"

    @property
    def _calibration_key(self) -> str:
        return f"{self.namespace}.calibration"

    def restore(self) -> None:
        """Load rulers and calibration from the store (session start)."""
        if self.store is None:
            return
        rulers: List[Ruler] = []
        for d in self.store.load(self._rulers_key) or []:
            try:
                rulers.append(Ruler.from_dict(d))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed stored ruler {d!r}: {e}")
        self._rulers = rulers
        self.calibration = CalibrationProfile.from_dict(self.store.load(self._calibration_key))
        logger.info(f"Restored {len(rulers)} ruler(s), calibrated={self.calibration.is_calibrated}")

    def _persist_rulers(self) -> None:
        if self.store is not None:
            self.store.save(self._rulers_key, [r.to_dict() for r in self._rulers])

    def _persist_calibration(self) -> None:
        if self.store is not None:
            self.store.save(self._calibration_key, self.calibration.to_dict())

    # ---------- hit testing (screen space) ----------
    def _hit_endpoint(self, pos: Point) -> Optional[Tuple[Ruler, Endpoint]]:
        best: Optional[Tuple[Ruler, Endpoint]] = None
        best_d = self.params.marker_hit_radius
        for r in self._rulers:
            for which in (Endpoint.START, Endpoint.END):
                d = distance(to_screen(r.endpoint(which), self.viewport), pos)
                if d <= best_d:
                    best, best_d = (r, which), d
        return best

    def _hit_label(self, pos: Point) -> Optional[Ruler]:
        for r in reversed(self._rulers):
            if hit_label(self.label_placement(r), pos,
                         self.params.label_hit_half_width, self.params.label_hit_half_height):
                return r
        return None

    def _find(self, ruler_id: str) -> Optional[Ruler]:
        for r in self._rulers:
            if r.id == ruler_id:
                return r
        return None

    # ---------- pointer handlers ----------
    def _on_down(self, a: PointerDown) -> bool:
        if not self.tool_active or self.state is not MachineState.IDLE:
            return False
        hit = self._hit_endpoint(a.position)
        if hit is not None:
            ruler, which = hit
            if not self.lock.acquire(InteractionMode.RULER_DRAG, self):
                return False
            self._drag = DragState(ruler.id, which, ruler.endpoint(which))
            self.state = MachineState.DRAGGING_ENDPOINT
            logger.debug(f"measure: drag {which.value} of {ruler.id}")
            return True
        if not self.lock.acquire(InteractionMode.RULER_DRAW, self):
            return False
        start = to_canonical(a.position, self.viewport)
        self._draft = Draft.between(start, start)
        self.state = MachineState.DRAWING
        return True

    def _on_move(self, a: PointerMove) -> bool:
        if not self.tool_active:
            return False
        before = (self.snap.highlighted_point, self.snap.snap_point)
        self.snap.update(a.position, self.canvas)
        if self.state is MachineState.DRAWING and self._draft is not None:
            self._draft = Draft.between(self._draft.start, to_canonical(a.position, self.viewport))
            return True
        if self.state is MachineState.DRAGGING_ENDPOINT and self._drag is not None:
            ruler = self._find(self._drag.ruler_id)
            if ruler is None:
                self._end_gesture()
                return True
            live = to_canonical(a.position, self.viewport)
            self._drag = replace(self._drag, live=live)
            ruler.set_endpoint(self._drag.which, live)
            return True
        # hover: only the snap feedback can change
        return (self.snap.highlighted_point, self.snap.snap_point) != before

    def _on_up(self, a: PointerUp) -> bool:
        if self.state is MachineState.DRAWING and self._draft is not None:
            start = self._draft.start
            moved = distance(to_screen(start, self.viewport), a.position)
            if moved > self.params.min_ruler_px:
                end = self.snap.resolve(a.position, self.viewport)
                ruler = Ruler(uuid.uuid4().hex,
                              clamp_canonical(start, self.viewport),
                              clamp_canonical(end, self.viewport))
                self._rulers.append(ruler)
                self._persist_rulers()
                logger.info(f"measure: ruler {ruler.id} {ruler.distance_px:.1f}px")
            else:
                logger.debug(f"measure: discarded draft ({moved:.1f}px)")
            self._end_gesture()
            return True
        if self.state is MachineState.DRAGGING_ENDPOINT and self._drag is not None:
            drag = self._drag
            ruler = self._find(drag.ruler_id)
            if ruler is not None and drag.live is not None:
                if self.snap.snap_point is not None:
                    final = self.snap.resolve(a.position, self.viewport)
                else:
                    final = drag.live
                ruler.set_endpoint(drag.which, clamp_canonical(final, self.viewport))
                self._persist_rulers()
            self._end_gesture()
            return True
        return False

    def _on_double_click(self, a: DoubleClick) -> bool:
        if not self.tool_active:
            return False
        hit = self._hit_endpoint(a.position)
        if hit is not None:
            self._cancel_gesture()
            return self._on_delete(DeleteRuler(hit[0].id))
        labelled = self._hit_label(a.position)
        if labelled is not None:
            self._cancel_gesture()
            return self._on_open_calibration(OpenCalibration(labelled.id))
        if a.modifiers:
            self._cancel_gesture()
            return self._on_clear(ClearRulers())
        return self._cancel_gesture()

    def _on_cancel(self, a: Cancel) -> bool:
        changed = self._cancel_gesture()
        if changed:
            logger.debug(f"measure: gesture cancelled ({a.reason.value})")
        return changed

    def _cancel_gesture(self) -> bool:
        if self.state is MachineState.IDLE:
            return False
        if self._drag is not None:
            ruler = self._find(self._drag.ruler_id)
            if ruler is not None:
                ruler.set_endpoint(self._drag.which, self._drag.original)
        self._end_gesture()
        return True

    def _end_gesture(self) -> None:
        self._draft = None
        self._drag = None
        self.state = MachineState.IDLE
        self.lock.release(self)

    # ---------- environment ----------
    def _on_viewport(self, a: SetViewport) -> bool:
        if a.viewport == self.viewport:
            return False
        self.viewport = a.viewport
        self.generation += 1
        self.snap.set_generation(self.generation)
        self.canvas = None
        return True

    def _on_canvas(self, a: SetCanvas) -> bool:
        self.canvas = a.canvas
        return False

    def _on_tool_active(self, a: SetToolActive) -> bool:
        if a.active == self.tool_active:
            return False
        if not a.active:
            self._cancel_gesture()
            self.snap.reset()
            self.dialog = None
        self.tool_active = a.active
        return True

    # ---------- ruler list ----------
    def _on_delete(self, a: DeleteRuler) -> bool:
        ruler = self._find(a.ruler_id)
        if ruler is None:
            return False
        if self._drag is not None and self._drag.ruler_id == a.ruler_id:
            self._end_gesture()
        self._rulers.remove(ruler)
        if self.dialog is not None and self.dialog.ruler_id == a.ruler_id:
            self.dialog = None
        self._persist_rulers()
        logger.info(f"measure: deleted ruler {a.ruler_id}")
        return True

    def _on_clear(self, a: ClearRulers) -> bool:
        if not self._rulers:
            return False
        self._cancel_gesture()
        self._rulers = []
        self.dialog = None
        self._persist_rulers()
        logger.info("measure: cleared all rulers")
        return True

    # ---------- calibration ----------
    def _on_open_calibration(self, a: OpenCalibration) -> bool:
        ruler = self._find(a.ruler_id)
        if ruler is None:
            return False
        self.dialog = CalibrationDialog(ruler.id, ruler.distance_px, self.calibration)
        return True

    def _on_submit_calibration(self, a: SubmitCalibration) -> bool:
        if self.dialog is None:
            return False
        profile = self.dialog.submit(a.text, a.unit_label)
        if profile is None:
            # error message is on the dialog, which stays open
            return True
        self.calibration = profile
        self.dialog = None
        self._persist_calibration()
        logger.info(f"measure: calibrated {profile.pixels_per_unit:.4f} px/{profile.unit_label}")
        return True

    def _on_cancel_calibration(self, a: CancelCalibration) -> bool:
        if self.dialog is None:
            return False
        self.dialog = None
        return True

    def _on_reset_calibration(self, a: ResetCalibration) -> bool:
        if not self.calibration.is_calibrated:
            return False
        self.calibration = CalibrationProfile()
        self._persist_calibration()
        return True
