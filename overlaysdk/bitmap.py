# overlaysdk/bitmap.py
"""Minimal pixel-read capability shared by the detector and the compositor.

Backed by an ``(H, W, 4)`` uint8 RGBA numpy array. Reading pixels straight from
a rendering engine is the caller's job; these constructors cover the common
in-memory sources (numpy, OpenCV BGR frames, PIL images).
"""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from .errors import BitmapError

RGBA = Tuple[int, int, int, int]

# out-of-bounds reads behave like blank, fully transparent paper
OUTSIDE_PIXEL: RGBA = (255, 255, 255, 0)


class Bitmap:
    def __init__(self, rgba: np.ndarray):
        arr = np.asarray(rgba)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise BitmapError(f"expected (H, W, 4) RGBA array, got shape {arr.shape}")
        if arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255).astype(np.uint8)
        self._rgba = np.ascontiguousarray(arr)

    # ---------- constructors ----------
    @classmethod
    def from_array(cls, arr: np.ndarray) -> "Bitmap":
        """Gray (H,W), RGB (H,W,3) or RGBA (H,W,4) array; missing alpha becomes opaque."""
        a = np.asarray(arr)
        if a.ndim == 2:
            a = np.repeat(a[:, :, None], 3, axis=2)
        if a.ndim != 3 or a.shape[2] not in (3, 4):
            raise BitmapError(f"unsupported array shape {a.shape}")
        a = np.clip(a, 0, 255).astype(np.uint8)
        if a.shape[2] == 3:
            alpha = np.full(a.shape[:2] + (1,), 255, dtype=np.uint8)
            a = np.concatenate([a, alpha], axis=2)
        return cls(a)

    @classmethod
    def from_bgr(cls, img: np.ndarray) -> "Bitmap":
        """OpenCV frame (gray, BGR or BGRA)."""
        if img.ndim == 2:
            return cls(cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA))
        if img.shape[2] == 4:
            return cls(cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA))
        return cls(cv2.cvtColor(img, cv2.COLOR_BGR2RGBA))

    @classmethod
    def from_image(cls, image) -> "Bitmap":
        """PIL image in any mode."""
        return cls(np.asarray(image.convert("RGBA")))

    @classmethod
    def blank(cls, width: int, height: int, value: RGBA = (255, 255, 255, 255)) -> "Bitmap":
        arr = np.empty((int(height), int(width), 4), dtype=np.uint8)
        arr[:, :] = value
        return cls(arr)

    # ---------- capability ----------
    @property
    def width(self) -> int:
        return int(self._rgba.shape[1])

    @property
    def height(self) -> int:
        return int(self._rgba.shape[0])

    @property
    def rgba(self) -> np.ndarray:
        """Underlying array; treat as read-only."""
        return self._rgba

    def get_pixel(self, x: int, y: int) -> RGBA:
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            return OUTSIDE_PIXEL
        r, g, b, a = self._rgba[y, x]
        return int(r), int(g), int(b), int(a)

    def window(self, cx: float, cy: float, radius: int) -> Tuple["Bitmap", int, int]:
        """Crop a ``2*radius`` square around (cx, cy), clipped to the bitmap.

        Returns (bitmap, x0, y0) where (x0, y0) is the crop origin in this
        bitmap's coordinates.
        """
        r = max(1, int(radius))
        x0 = max(0, int(round(cx)) - r)
        y0 = max(0, int(round(cy)) - r)
        x1 = min(self.width, int(round(cx)) + r)
        y1 = min(self.height, int(round(cy)) + r)
        if x1 <= x0 or y1 <= y0:
            return Bitmap(np.zeros((0, 0, 4), dtype=np.uint8)), x0, y0
        return Bitmap(self._rgba[y0:y1, x0:x1]), x0, y0

    def to_bgra(self) -> np.ndarray:
        return cv2.cvtColor(self._rgba, cv2.COLOR_RGBA2BGRA)

    def to_image(self):
        from PIL import Image

        return Image.fromarray(self._rgba)

    def __repr__(self) -> str:
        return f"Bitmap({self.width}x{self.height})"


def as_bitmap(source) -> Bitmap:
    """Accept a Bitmap, an array, or any object exposing width/height/get_pixel."""
    if isinstance(source, Bitmap):
        return source
    if isinstance(source, np.ndarray):
        return Bitmap.from_array(source)
    if hasattr(source, "get_pixel") and hasattr(source, "width") and hasattr(source, "height"):
        w, h = int(source.width), int(source.height)
        arr = np.empty((h, w, 4), dtype=np.uint8)
        for y in range(h):
            for x in range(w):
                arr[y, x] = source.get_pixel(x, y)
        return Bitmap(arr)
    raise BitmapError(f"cannot read pixels from {type(source).__name__}")
