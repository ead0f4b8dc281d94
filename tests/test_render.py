"""Tests for cancellable page rendering and the comparison session."""

import asyncio

from overlaysdk.bitmap import Bitmap
from overlaysdk.compare import ComparisonSession
from overlaysdk.geometry import Viewport
from overlaysdk.render import RenderSlot


class FakeRenderer:
    """Renders a flat page of one gray level after ``delay`` seconds."""

    def __init__(self, value=10, delay=0.0):
        self.value = value
        self.delay = delay
        self.calls = []

    async def render_page(self, page, viewport):
        self.calls.append(viewport)
        await asyncio.sleep(self.delay)
        v = self.value
        return Bitmap.blank(int(viewport.pixel_width), int(viewport.pixel_height), (v, v, v, 255))


V1 = Viewport.for_page(20, 10, 1.0)
V2 = Viewport.for_page(20, 10, 2.0)


class TestRenderSlot:
    def test_render(self):
        async def scenario():
            slot = RenderSlot(FakeRenderer(), page=1)
            slot.request(V1)
            return slot, await slot.wait()

        slot, bmp = asyncio.run(scenario())
        assert slot.rendered
        assert (bmp.width, bmp.height) == (20, 10)

    def test_new_viewport_cancels_stale_render(self):
        async def scenario():
            slot = RenderSlot(FakeRenderer(delay=0.05), page=1)
            first = slot.request(V1)
            await asyncio.sleep(0)
            slot.request(V2)
            bmp = await slot.wait()
            return slot, first, bmp

        slot, first, bmp = asyncio.run(scenario())
        assert first.cancelled()
        assert (bmp.width, bmp.height) == (40, 20)
        assert slot.viewport == V2

    def test_cancel_is_silent(self):
        async def scenario():
            slot = RenderSlot(FakeRenderer(delay=0.05), page=1)
            slot.request(V1)
            await asyncio.sleep(0)
            slot.cancel()
            return slot, await slot.wait()

        slot, bmp = asyncio.run(scenario())
        assert bmp is None
        assert not slot.rendered
        assert slot.bitmap is None

    def test_callbacks(self):
        seen = []

        async def scenario():
            slot = RenderSlot(FakeRenderer(), page=1)
            slot.on_rendered(seen.append)
            slot.request(V1)
            await slot.wait()
            return slot

        slot = asyncio.run(scenario())
        assert seen == [slot]


class TestComparisonSession:
    def test_defers_until_both_rendered(self):
        async def scenario():
            primary = RenderSlot(FakeRenderer(value=10), page=1, name="primary")
            comparison = RenderSlot(FakeRenderer(value=255, delay=0.05), page=2, name="comparison")
            session = ComparisonSession(primary, comparison, (255, 0, 0), (0, 0, 255))
            session.request(V1)
            await primary.wait()
            early = session.try_composite()
            await comparison.wait()
            return early, session.result

        early, result = asyncio.run(scenario())
        assert early is None
        assert result is not None
        assert result.get_pixel(0, 0) == (255, 0, 0, 255)

    def test_single_page_mode(self):
        async def scenario():
            session = ComparisonSession(RenderSlot(FakeRenderer(value=10), page=1))
            return session, await session.refresh(V1)

        session, result = asyncio.run(scenario())
        assert session.single_page
        assert result is not None and (result.width, result.height) == (20, 10)

    def test_cancelled_side_keeps_deferring(self):
        async def scenario():
            primary = RenderSlot(FakeRenderer(value=10), page=1)
            comparison = RenderSlot(FakeRenderer(value=10, delay=0.05), page=2)
            session = ComparisonSession(primary, comparison)
            session.request(V1)
            await asyncio.sleep(0)
            comparison.cancel()
            await primary.wait()
            await comparison.wait()
            return session

        session = asyncio.run(scenario())
        assert not session.ready()
        assert session.result is None
        assert session.try_composite() is None
