# overlaysdk/measure/schema.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Any, Dict, Optional

from ..geometry import Point, distance, angle_deg


class Phase(str, Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"


class Modifier(IntFlag):
    NONE = 0
    SHIFT = 1
    CTRL = 2
    ALT = 4
    META = 8


@dataclass(frozen=True)
class PointerEvent:
    position: Point            # canvas-local screen pixels
    phase: Phase
    modifiers: Modifier = Modifier.NONE


class Endpoint(str, Enum):
    START = "start"
    END = "end"


class MachineState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    DRAGGING_ENDPOINT = "dragging_endpoint"


@dataclass
class Ruler:
    """Committed measurement. Endpoints are canonical; distance/angle derive from them."""
    id: str
    start: Point
    end: Point
    distance_px: float = 0.0
    angle_deg: float = 0.0

    def __post_init__(self):
        self.recompute()

    def recompute(self) -> None:
        self.distance_px = distance(self.start, self.end)
        self.angle_deg = angle_deg(self.start, self.end)

    def endpoint(self, which: Endpoint) -> Point:
        return self.start if which is Endpoint.START else self.end

    def set_endpoint(self, which: Endpoint, p: Point) -> None:
        if which is Endpoint.START:
            self.start = p
        else:
            self.end = p
        self.recompute()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start": {"x": self.start.x, "y": self.start.y},
            "end": {"x": self.end.x, "y": self.end.y},
            "distance_px": self.distance_px,
            "angle_deg": self.angle_deg,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Ruler":
        # distance/angle are re-derived, never trusted from storage
        return cls(
            id=str(d["id"]),
            start=Point(float(d["start"]["x"]), float(d["start"]["y"])),
            end=Point(float(d["end"]["x"]), float(d["end"]["y"])),
        )


@dataclass(frozen=True)
class Draft:
    """In-progress ruler (canonical)."""
    start: Point
    end: Point
    distance_px: float
    angle_deg: float

    @classmethod
    def between(cls, start: Point, end: Point) -> "Draft":
        return cls(start, end, distance(start, end), angle_deg(start, end))


@dataclass(frozen=True)
class DragState:
    ruler_id: str
    which: Endpoint
    original: Point            # restored on cancel
    live: Optional[Point] = None
