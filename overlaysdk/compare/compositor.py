# overlaysdk/compare/compositor.py
"""Two-page structural diff.

Each source pixel is either blank paper (R, G and B all above the whiteness
threshold) or ink. Output per pixel over the union of both extents:

    both ink        -> overlap color,    alpha = max(primary, comparison)
    primary only    -> primary color,    alpha = primary
    comparison only -> comparison color, alpha = comparison
    both blank      -> alpha 0

Pixels outside a source read as blank with alpha 0.
"""

from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np
from loguru import logger

from .. import defaults as D
from ..bitmap import OUTSIDE_PIXEL, Bitmap, as_bitmap

RGB = Tuple[int, int, int]
Color = Union[str, Sequence[int]]

PRIMARY_COLOR: RGB = (255, 0, 0)
COMPARISON_COLOR: RGB = (0, 0, 255)


def parse_color(color: Color) -> RGB:
    """'#rrggbb' / 'rrggbb' / (r, g, b) -> (r, g, b)."""
    if isinstance(color, str):
        s = color.strip().lstrip("#")
        if len(s) != 6:
            raise ValueError(f"invalid color {color!r}")
        try:
            return int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16)
        except ValueError:
            raise ValueError(f"invalid color {color!r}") from None
    rgb = tuple(int(c) for c in color)
    if len(rgb) != 3 or any(c < 0 or c > 255 for c in rgb):
        raise ValueError(f"invalid color {color!r}")
    return rgb


def _extend(rgba: np.ndarray, h: int, w: int) -> np.ndarray:
    if rgba.shape[0] == h and rgba.shape[1] == w:
        return rgba
    out = np.empty((h, w, 4), dtype=np.uint8)
    out[:, :] = OUTSIDE_PIXEL
    out[: rgba.shape[0], : rgba.shape[1]] = rgba
    return out


def ink_mask(rgba: np.ndarray, whiteness_threshold: int = D.WHITENESS_THRESHOLD) -> np.ndarray:
    return ~np.all(rgba[..., :3] > whiteness_threshold, axis=2)


def composite(primary, comparison=None,
              primary_color: Color = PRIMARY_COLOR,
              comparison_color: Color = COMPARISON_COLOR,
              overlap_color: Color = D.OVERLAP_COLOR,
              whiteness_threshold: int = D.WHITENESS_THRESHOLD) -> Bitmap:
    """Diff ``primary`` against ``comparison``; ``comparison=None`` means an all-blank page."""
    a = as_bitmap(primary).rgba
    b = as_bitmap(comparison).rgba if comparison is not None else np.zeros((0, 0, 4), dtype=np.uint8)
    h = max(a.shape[0], b.shape[0])
    w = max(a.shape[1], b.shape[1])
    a = _extend(a, h, w)
    b = _extend(b, h, w)

    ink_a = ink_mask(a, whiteness_threshold)
    ink_b = ink_mask(b, whiteness_threshold)
    both = ink_a & ink_b
    only_a = ink_a & ~ink_b
    only_b = ink_b & ~ink_a

    out = np.zeros((h, w, 4), dtype=np.uint8)
    out[..., :3] = 255
    out[both, :3] = parse_color(overlap_color)
    out[both, 3] = np.maximum(a[..., 3], b[..., 3])[both]
    out[only_a, :3] = parse_color(primary_color)
    out[only_a, 3] = a[..., 3][only_a]
    out[only_b, :3] = parse_color(comparison_color)
    out[only_b, 3] = b[..., 3][only_b]

    logger.debug(
        f"composite {w}x{h}: overlap={int(both.sum())} primary={int(only_a.sum())} "
        f"comparison={int(only_b.sum())}"
    )
    return Bitmap(out)
