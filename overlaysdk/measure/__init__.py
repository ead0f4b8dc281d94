"""
Ruler measurement: state machine, calibration and label geometry.

- MeasurementStateMachine.dispatch(action) -> bool
- get_rulers() / get_draft() for painting
- format_distance(px, profile) for label text
"""

from .schema import Phase, Modifier, PointerEvent, Endpoint, MachineState, Ruler, Draft, DragState
from .calibration import CalibrationProfile, CalibrationDialog, parse_magnitude, calibrate, format_distance
from .labels import LabelPlacement, place_label, label_for_ruler, hit_label, rulers_bounding_box
from .machine import (
    MeasureParams, CancelReason, MeasurementStateMachine,
    PointerDown, PointerMove, PointerUp, DoubleClick, Cancel, SetViewport, SetCanvas,
    SetToolActive, DeleteRuler, ClearRulers, OpenCalibration, SubmitCalibration,
    CancelCalibration, ResetCalibration,
)

__all__ = [
    "Phase", "Modifier", "PointerEvent", "Endpoint", "MachineState", "Ruler", "Draft", "DragState",
    "CalibrationProfile", "CalibrationDialog", "parse_magnitude", "calibrate", "format_distance",
    "LabelPlacement", "place_label", "label_for_ruler", "hit_label", "rulers_bounding_box",
    "MeasureParams", "CancelReason", "MeasurementStateMachine",
    "PointerDown", "PointerMove", "PointerUp", "DoubleClick", "Cancel", "SetViewport", "SetCanvas",
    "SetToolActive", "DeleteRuler", "ClearRulers", "OpenCalibration", "SubmitCalibration",
    "CancelCalibration", "ResetCalibration",
]
