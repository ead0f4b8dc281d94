# overlaysdk/compare/session.py
from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

from loguru import logger

from .. import defaults as D
from ..bitmap import Bitmap
from ..geometry import Viewport
from ..render import RenderSlot
from .compositor import COMPARISON_COLOR, PRIMARY_COLOR, Color, composite


class ComparisonSession:
    """
    Keeps a diff bitmap in sync with two render slots.

    The diff is only computed once both pages are rendered at the same
    viewport. With ``comparison=None`` (single-page mode) it runs as soon as the
    primary page is ready, treating the other side as blank.
    """

    def __init__(self, primary: RenderSlot, comparison: Optional[RenderSlot] = None,
                 primary_color: Color = PRIMARY_COLOR,
                 comparison_color: Color = COMPARISON_COLOR,
                 overlap_color: Color = D.OVERLAP_COLOR,
                 whiteness_threshold: int = D.WHITENESS_THRESHOLD):
        self.primary = primary
        self.comparison = comparison
        self.primary_color = primary_color
        self.comparison_color = comparison_color
        self.overlap_color = overlap_color
        self.whiteness_threshold = whiteness_threshold
        self.result: Optional[Bitmap] = None
        self._listeners: List[Callable[[Bitmap], None]] = []
        primary.on_rendered(self._slot_rendered)
        if comparison is not None:
            comparison.on_rendered(self._slot_rendered)

    @property
    def single_page(self) -> bool:
        return self.comparison is None

    def add_listener(self, callback: Callable[[Bitmap], None]) -> None:
        self._listeners.append(callback)

    def ready(self) -> bool:
        if not self.primary.rendered:
            return False
        if self.comparison is None:
            return True
        return self.comparison.rendered and self.comparison.viewport == self.primary.viewport

    def try_composite(self) -> Optional[Bitmap]:
        """Composite if both sides are ready; otherwise keep deferring and return None."""
        if not self.ready():
            logger.debug("compare: waiting for both pages")
            return None
        other = self.comparison.bitmap if self.comparison is not None else None
        self.result = composite(self.primary.bitmap, other,
                                self.primary_color, self.comparison_color,
                                self.overlap_color, self.whiteness_threshold)
        for cb in self._listeners:
            cb(self.result)
        return self.result

    def request(self, viewport: Viewport) -> None:
        """Re-render both pages at ``viewport``; the diff follows when both land."""
        self.result = None
        self.primary.request(viewport)
        if self.comparison is not None:
            self.comparison.request(viewport)

    async def refresh(self, viewport: Viewport) -> Optional[Bitmap]:
        self.request(viewport)
        slots = [self.primary] + ([self.comparison] if self.comparison is not None else [])
        await asyncio.gather(*(s.wait() for s in slots))
        return self.result

    def _slot_rendered(self, slot: RenderSlot) -> None:
        self.try_composite()
