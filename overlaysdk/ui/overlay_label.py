# overlaysdk/ui/overlay_label.py
"""QLabel that shows one rendered page with the ruler overlay on top."""

from typing import Iterable, List, Optional

import numpy as np
import cv2
from PyQt5 import QtCore, QtGui, QtWidgets

from ..annotate import Drawing
from ..bitmap import Bitmap
from ..geometry import Point
from ..measure import (
    Cancel, CancelReason, DoubleClick, MeasurementStateMachine, Modifier, Phase,
    PointerEvent, PointerMove, SetCanvas, SetToolActive, SubmitCalibration, CancelCalibration,
)
from ..overlay import render_overlay

_QT_MODIFIERS = (
    (QtCore.Qt.ShiftModifier, Modifier.SHIFT),
    (QtCore.Qt.ControlModifier, Modifier.CTRL),
    (QtCore.Qt.AltModifier, Modifier.ALT),
    (QtCore.Qt.MetaModifier, Modifier.META),
)


def qt_modifiers(mods) -> Modifier:
    out = Modifier.NONE
    for qt_flag, flag in _QT_MODIFIERS:
        if int(mods) & int(qt_flag):
            out |= flag
    return out


def bgr_to_qimage(img: np.ndarray) -> QtGui.QImage:
    rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    h, w = rgb.shape[:2]
    return QtGui.QImage(rgb.data, w, h, rgb.strides[0], QtGui.QImage.Format_RGB888).copy()


class OverlayLabel(QtWidgets.QLabel):
    rulersChanged = QtCore.pyqtSignal(object)        # list[Ruler]
    calibrationRequested = QtCore.pyqtSignal(str)    # ruler id of a newly opened calibration dialog

    def __init__(self, machine: MeasurementStateMachine, parent=None):
        super().__init__(parent)
        self.setScaledContents(False)
        self.setMouseTracking(True)
        self.setFocusPolicy(QtCore.Qt.StrongFocus)
        self.setAlignment(QtCore.Qt.AlignLeft | QtCore.Qt.AlignTop)

        self.machine = machine
        self._page_bgr: Optional[np.ndarray] = None
        self._drawings: List[Drawing] = []
        self._dialog = machine.dialog
        machine.add_listener(self._on_action)

    # ---------- public API ----------
    def set_page(self, page_bgr: np.ndarray):
        """Page rendered at the machine's current viewport (canvas pixels)."""
        self._page_bgr = page_bgr
        self.machine.dispatch(SetCanvas(Bitmap.from_bgr(page_bgr)))
        self.refresh()

    def set_drawings(self, drawings: Iterable[Drawing]):
        self._drawings = list(drawings)
        self.refresh()

    def set_tool_active(self, active: bool):
        self.machine.dispatch(SetToolActive(active))
        self.refresh()

    def submit_calibration(self, text: str, unit: str = "") -> Optional[str]:
        """Returns the validation message when the input was rejected."""
        self.machine.dispatch(SubmitCalibration(text, unit))
        dialog = self.machine.dialog
        self.refresh()
        return dialog.error if dialog is not None else None

    def cancel_calibration(self):
        self.machine.dispatch(CancelCalibration())

    def refresh(self):
        if self._page_bgr is None:
            return
        out = render_overlay(self._page_bgr, self.machine, self._drawings)
        self.setPixmap(QtGui.QPixmap.fromImage(bgr_to_qimage(out)))

    # ---------- events ----------
    def _pointer(self, ev: QtGui.QMouseEvent, phase: Phase):
        pos = Point(float(ev.pos().x()), float(ev.pos().y()))
        if self.machine.handle_pointer(PointerEvent(pos, phase, qt_modifiers(ev.modifiers()))):
            self.refresh()

    def mousePressEvent(self, ev: QtGui.QMouseEvent):
        if ev.button() == QtCore.Qt.LeftButton:
            self._pointer(ev, Phase.DOWN)
        super().mousePressEvent(ev)

    def mouseMoveEvent(self, ev: QtGui.QMouseEvent):
        self._pointer(ev, Phase.MOVE)
        super().mouseMoveEvent(ev)

    def mouseReleaseEvent(self, ev: QtGui.QMouseEvent):
        if ev.button() == QtCore.Qt.LeftButton:
            self._pointer(ev, Phase.UP)
        super().mouseReleaseEvent(ev)

    def mouseDoubleClickEvent(self, ev: QtGui.QMouseEvent):
        if ev.button() == QtCore.Qt.LeftButton:
            pos = Point(float(ev.pos().x()), float(ev.pos().y()))
            if self.machine.dispatch(DoubleClick(pos, qt_modifiers(ev.modifiers()))):
                self.refresh()
        super().mouseDoubleClickEvent(ev)

    def keyPressEvent(self, ev: QtGui.QKeyEvent):
        if ev.key() == QtCore.Qt.Key_Escape:
            self._cancel(CancelReason.ESCAPE)
        super().keyPressEvent(ev)

    def leaveEvent(self, ev: QtCore.QEvent):
        self._cancel(CancelReason.POINTER_LEAVE)
        super().leaveEvent(ev)

    def focusOutEvent(self, ev: QtGui.QFocusEvent):
        self._cancel(CancelReason.WINDOW_BLUR)
        super().focusOutEvent(ev)

    # ---------- helpers ----------
    def _cancel(self, reason: CancelReason):
        if self.machine.dispatch(Cancel(reason)):
            self.refresh()

    def _on_action(self, action):
        dialog = self.machine.dialog
        if dialog is not self._dialog:
            self._dialog = dialog
            if dialog is not None:
                self.calibrationRequested.emit(dialog.ruler_id)
        if not isinstance(action, PointerMove):
            self.rulersChanged.emit(self.machine.get_rulers())
