from .slots import PageRenderer, RenderSlot

__all__ = ["PageRenderer", "RenderSlot"]
