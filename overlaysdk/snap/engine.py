# overlaysdk/snap/engine.py
"""Pointer-stream throttling and snap-target resolution."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from .. import defaults as D
from ..bitmap import Bitmap
from ..geometry import Point, Viewport, to_canonical
from .detector import DetectorParams, InterestPoint, detect_near


@dataclass
class SnapParams:
    detection_radius: int = D.SNAP_DETECTION_RADIUS
    max_snap_radius: float = D.MAX_SNAP_RADIUS
    min_move_px: float = D.MIN_MOVE_PX
    min_interval_s: float = D.MIN_INTERVAL_S

    @classmethod
    def from_config(cls, cfg: Dict[str, Any] | None) -> "SnapParams":
        return D.params_from_config(cls, cfg)


@dataclass(frozen=True)
class DetectionRequest:
    request_id: int
    generation: int
    position: Point
    issued_at: float


@dataclass
class SnapState:
    points: List[InterestPoint] = field(default_factory=list)
    highlighted: Optional[int] = None      # index into points
    snap_target: Optional[int] = None      # index into points
    snap_distance: Optional[float] = None


class SnapEngine:
    """
    Turns pointer moves into a stable "best anchor".

    A detection runs only when the pointer moved at least ``min_move_px`` since
    the last detection *and* ``min_interval_s`` elapsed. Detection can be split
    into :meth:`begin` / :meth:`complete` when it runs off the event loop; a
    completed result is applied only if it belongs to the newest request and the
    current viewport generation.
    """

    def __init__(self, params: SnapParams | None = None,
                 detector_params: DetectorParams | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self.params = params or SnapParams()
        self.detector_params = detector_params or DetectorParams()
        self._clock = clock
        self._last_pos: Optional[Point] = None
        self._last_time: Optional[float] = None
        self._next_id = 0
        self._latest_issued: Optional[int] = None
        self._generation = 0
        self.state = SnapState()

    # ---------- viewport generation ----------
    @property
    def generation(self) -> int:
        return self._generation

    def set_generation(self, generation: int) -> None:
        """New viewport: drop everything detected against the old one."""
        if generation != self._generation:
            self._generation = generation
            self.reset()

    # ---------- throttles ----------
    def should_detect(self, pos: Point, now: Optional[float] = None) -> bool:
        if self._last_pos is None or self._last_time is None:
            return True
        now = self._clock() if now is None else now
        moved = math.hypot(pos.x - self._last_pos.x, pos.y - self._last_pos.y)
        return moved >= self.params.min_move_px and (now - self._last_time) >= self.params.min_interval_s

    # ---------- detection ----------
    def begin(self, pos: Point, now: Optional[float] = None) -> DetectionRequest:
        now = self._clock() if now is None else now
        self._next_id += 1
        self._latest_issued = self._next_id
        self._last_pos = pos
        self._last_time = now
        return DetectionRequest(self._next_id, self._generation, pos, now)

    def complete(self, request: DetectionRequest, points: List[InterestPoint],
                 pointer: Optional[Point] = None) -> bool:
        """Apply a finished detection. Returns False when the result is stale."""
        if request.request_id != self._latest_issued or request.generation != self._generation:
            logger.debug(
                f"snap: dropping stale detection #{request.request_id} "
                f"(latest #{self._latest_issued}, gen {request.generation}/{self._generation})"
            )
            return False
        self.state.points = list(points)
        self.evaluate(pointer or request.position)
        return True

    def update(self, pointer: Point, canvas: Optional[Bitmap], now: Optional[float] = None) -> bool:
        """Synchronous path: detect if the throttles allow, then re-evaluate. Returns True if detection ran."""
        ran = False
        if canvas is not None and self.should_detect(pointer, now):
            req = self.begin(pointer, now)
            pts = detect_near(canvas, pointer, self.params.detection_radius, self.detector_params)
            ran = self.complete(req, pts, pointer)
        else:
            self.evaluate(pointer)
        return ran

    def evaluate(self, pointer: Point) -> Optional[InterestPoint]:
        """Highlight the closest point; it becomes the snap target inside ``max_snap_radius``."""
        st = self.state
        if not st.points:
            st.highlighted = st.snap_target = None
            st.snap_distance = None
            return None
        dists = [math.hypot(p.x - pointer.x, p.y - pointer.y) for p in st.points]
        best = min(range(len(dists)), key=lambda i: (dists[i], i))
        st.highlighted = best
        if dists[best] <= self.params.max_snap_radius:
            st.snap_target = best
            st.snap_distance = dists[best]
        else:
            st.snap_target = None
            st.snap_distance = None
        return self.snap_point

    # ---------- results ----------
    @property
    def points(self) -> List[InterestPoint]:
        return list(self.state.points)

    @property
    def highlighted_point(self) -> Optional[InterestPoint]:
        i = self.state.highlighted
        return None if i is None else self.state.points[i]

    @property
    def snap_point(self) -> Optional[InterestPoint]:
        i = self.state.snap_target
        return None if i is None else self.state.points[i]

    def resolve(self, pointer: Point, viewport: Viewport) -> Point:
        """Canonical coordinate to commit for a pointer release."""
        target = self.snap_point
        if target is not None:
            return to_canonical(target.position, viewport)
        return to_canonical(pointer, viewport)

    def reset(self) -> None:
        """Forget points and throttle history; pending requests become stale."""
        self.state = SnapState()
        self._last_pos = None
        self._last_time = None
        self._latest_issued = None
