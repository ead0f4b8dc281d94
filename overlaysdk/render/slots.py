# overlaysdk/render/slots.py
"""Cancellable asynchronous page rendering.

A :class:`RenderSlot` owns the bitmap for one page at the current viewport.
Requesting a new viewport cancels the in-flight render, so a bitmap rendered
for an old scale/rotation never lands in the slot.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional, Protocol

from loguru import logger

from ..bitmap import Bitmap, as_bitmap
from ..geometry import Viewport


class PageRenderer(Protocol):
    async def render_page(self, page: Any, viewport: Viewport) -> Bitmap: ...


class RenderSlot:
    def __init__(self, renderer: PageRenderer, page: Any, name: str = "page"):
        self.renderer = renderer
        self.page = page
        self.name = name
        self.generation = 0
        self.viewport: Optional[Viewport] = None
        self.bitmap: Optional[Bitmap] = None
        self.rendered = False
        self._task: Optional[asyncio.Task] = None
        self._callbacks: List[Callable[["RenderSlot"], None]] = []

    def on_rendered(self, callback: Callable[["RenderSlot"], None]) -> None:
        self._callbacks.append(callback)

    def request(self, viewport: Viewport) -> asyncio.Task:
        """Start rendering at ``viewport``; must be called from a running event loop."""
        self.cancel()
        self.generation += 1
        self.viewport = viewport
        self.bitmap = None
        self.rendered = False
        self._task = asyncio.get_running_loop().create_task(self._run(self.generation, viewport))
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            logger.debug(f"{self.name}: cancelling render gen {self.generation}")
            self._task.cancel()

    async def wait(self) -> Optional[Bitmap]:
        """Wait for the current render; None if it was cancelled or superseded."""
        task = self._task
        if task is None:
            return self.bitmap
        await asyncio.wait({task})
        if task.cancelled():
            return None
        task.result()
        return self.bitmap if task is self._task else None

    async def _run(self, generation: int, viewport: Viewport) -> Optional[Bitmap]:
        bmp = await self.renderer.render_page(self.page, viewport)
        if generation != self.generation:
            logger.debug(f"{self.name}: dropping stale render gen {generation}")
            return None
        self.bitmap = as_bitmap(bmp)
        self.rendered = True
        logger.debug(f"{self.name}: rendered {self.bitmap!r} gen {generation}")
        for cb in self._callbacks:
            cb(self)
        return self.bitmap
