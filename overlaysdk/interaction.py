# overlaysdk/interaction.py
"""Shared interaction mode for the viewer.

While a ruler endpoint (or a slider, or a drawing stroke) is being dragged,
unrelated gesture handlers such as drag-to-scroll or pinch-zoom must stay out
of the way. The owner acquires the lock at gesture start and must release it
on every exit path; ``scoped`` does both for code that fits in one block.
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, List, Optional

from loguru import logger


class InteractionMode(str, Enum):
    NONE = "none"
    RULER_DRAW = "ruler_draw"
    RULER_DRAG = "ruler_drag"
    SLIDER_DRAG = "slider_drag"
    FREEHAND = "freehand"


class InteractionLock:
    def __init__(self):
        self._mode = InteractionMode.NONE
        self._owner: Optional[object] = None
        self._listeners: List[Callable[[InteractionMode], None]] = []

    @property
    def mode(self) -> InteractionMode:
        return self._mode

    @property
    def owner(self) -> Optional[object]:
        return self._owner

    @property
    def is_locked(self) -> bool:
        return self._mode is not InteractionMode.NONE

    def acquire(self, mode: InteractionMode, owner: object) -> bool:
        """Take the lock; re-acquiring by the current owner just switches mode."""
        if self.is_locked and self._owner is not owner:
            logger.debug(f"interaction: {mode.value} refused, held by {self._mode.value}")
            return False
        changed = mode is not self._mode
        self._mode, self._owner = mode, owner
        if changed:
            self._notify()
        return True

    def release(self, owner: object) -> bool:
        if self._owner is not owner:
            return False
        self._mode, self._owner = InteractionMode.NONE, None
        self._notify()
        return True

    def allows(self, mode: InteractionMode) -> bool:
        """True if a handler for ``mode`` may run right now."""
        return self._mode is InteractionMode.NONE or self._mode is mode

    @contextmanager
    def scoped(self, mode: InteractionMode, owner: object) -> Iterator[bool]:
        acquired = self.acquire(mode, owner)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(owner)

    def add_listener(self, callback: Callable[[InteractionMode], None]) -> None:
        self._listeners.append(callback)

    def _notify(self) -> None:
        for cb in self._listeners:
            cb(self._mode)
