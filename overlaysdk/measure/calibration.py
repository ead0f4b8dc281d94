# overlaysdk/measure/calibration.py
"""Pixel -> real-world unit calibration for ruler labels.

The user double-clicks a ruler's distance label, types the real length of that
ruler (and optionally a unit), and from then on every ruler label is shown in
that unit. Invalid input keeps the dialog open and leaves the active profile
untouched.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from loguru import logger

from .. import defaults as D
from ..errors import CalibrationError

DEFAULT_CALIBRATED_UNIT = "units"


@dataclass(frozen=True)
class CalibrationProfile:
    is_calibrated: bool = False
    pixels_per_unit: float = 1.0
    unit_label: str = D.DEFAULT_UNIT_LABEL

    def __post_init__(self):
        if self.is_calibrated and not (self.pixels_per_unit > 0 and math.isfinite(self.pixels_per_unit)):
            raise CalibrationError(f"pixels_per_unit must be > 0, got {self.pixels_per_unit!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_calibrated": self.is_calibrated,
            "pixels_per_unit": self.pixels_per_unit,
            "unit_label": self.unit_label,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any] | None) -> "CalibrationProfile":
        if not d:
            return cls()
        try:
            return cls(
                is_calibrated=bool(d.get("is_calibrated", False)),
                pixels_per_unit=float(d.get("pixels_per_unit", 1.0)),
                unit_label=str(d.get("unit_label", D.DEFAULT_UNIT_LABEL)),
            )
        except (CalibrationError, TypeError, ValueError) as e:
            logger.warning(f"Discarding invalid stored calibration {d!r}: {e}")
            return cls()


def parse_magnitude(text: Any) -> float:
    """User-entered real-world length -> positive float, else CalibrationError with a message for the user."""
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        value = float(text)
    else:
        s = str(text if text is not None else "").strip().replace(",", ".")
        if not s:
            raise CalibrationError("Enter the real-world length of the ruler.")
        try:
            value = float(s)
        except ValueError:
            raise CalibrationError("Enter a numeric value for the length.") from None
    if not math.isfinite(value):
        raise CalibrationError("Enter a numeric value for the length.")
    if value <= 0:
        raise CalibrationError("Length must be greater than zero.")
    return value


def calibrate(distance_px: float, magnitude: float, unit_label: str | None = None) -> CalibrationProfile:
    """Profile such that a ruler of ``distance_px`` reads ``magnitude`` units."""
    if not distance_px > 0:
        raise CalibrationError("Draw a ruler longer than zero before calibrating.")
    if not magnitude > 0:
        raise CalibrationError("Length must be greater than zero.")
    unit = (unit_label or "").strip() or DEFAULT_CALIBRATED_UNIT
    return CalibrationProfile(True, distance_px / magnitude, unit)


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def format_distance(distance_px: float, profile: CalibrationProfile) -> str:
    if profile.is_calibrated:
        return f"{distance_px / profile.pixels_per_unit:.1f} {profile.unit_label}"
    return f"{_round_half_up(distance_px)} px"


class CalibrationDialog:
    """State of an open calibration prompt for one ruler."""

    def __init__(self, ruler_id: str, distance_px: float, current: CalibrationProfile):
        self.ruler_id = ruler_id
        self.distance_px = float(distance_px)
        self.error: Optional[str] = None
        # prefill with the ruler's current reading
        if current.is_calibrated:
            self.text = f"{distance_px / current.pixels_per_unit:.1f}"
            self.unit_label = current.unit_label
        else:
            self.text = str(_round_half_up(distance_px))
            self.unit_label = ""

    def submit(self, text: Any, unit_label: str | None = None) -> Optional[CalibrationProfile]:
        """Validated profile, or None with ``error`` set (dialog stays open)."""
        self.text = "" if text is None else str(text)
        if unit_label is not None:
            self.unit_label = unit_label
        try:
            magnitude = parse_magnitude(text)
            profile = calibrate(self.distance_px, magnitude, self.unit_label)
        except CalibrationError as e:
            self.error = str(e)
            logger.info(f"Calibration rejected for ruler {self.ruler_id}: {self.error}")
            return None
        self.error = None
        return profile
