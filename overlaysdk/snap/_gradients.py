# overlaysdk/snap/_gradients.py
from __future__ import annotations
from typing import Tuple
import math
import numpy as np
import cv2


def luminance(rgba: np.ndarray) -> np.ndarray:
    """Per-pixel mean of R, G, B as float32 (alpha ignored)."""
    return rgba[:, :, :3].astype(np.float32).mean(axis=2)


def blank_fraction(rgba: np.ndarray, whiteness: float, step: int) -> float:
    """Share of grid samples whose R, G and B all exceed ``whiteness``."""
    grid = rgba[::step, ::step, :3]
    if grid.size == 0:
        return 1.0
    white = np.all(grid > whiteness, axis=2)
    return float(white.mean())


def adaptive_threshold(gray: np.ndarray, step: int, mean_w: float, std_w: float,
                       lo: float, hi: float) -> float:
    """clamp(mean*mean_w + std*std_w, lo, hi) over a sub-sampled window."""
    s = gray[::step, ::step].astype(np.float64)
    if s.size == 0:
        return float(hi)
    mean = float(s.mean())
    std = float(s.std())
    return float(min(hi, max(lo, mean * mean_w + std * std_w)))


def sobel_samples(gray: np.ndarray, step: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    3x3 Sobel gradients evaluated on a grid with the given step.

    Samples start at ``step`` and stop ``step`` short of each border so every
    kernel tap is inside the window.

    Returns:
        xs, ys : int arrays of sample coordinates (window-local)
        mag    : gradient magnitude
        ang    : gradient direction in radians, (-pi, pi], y axis pointing down
    """
    h, w = gray.shape[:2]
    empty = np.zeros(0, dtype=np.float64)
    if h < 2 * step + 1 or w < 2 * step + 1:
        return empty.astype(int), empty.astype(int), empty, empty

    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3, borderType=cv2.BORDER_REPLICATE)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3, borderType=cv2.BORDER_REPLICATE)

    ys_axis = np.arange(step, h - step, step)
    xs_axis = np.arange(step, w - step, step)
    yy, xx = np.meshgrid(ys_axis, xs_axis, indexing="ij")
    sx = gx[yy, xx].astype(np.float64).ravel()
    sy = gy[yy, xx].astype(np.float64).ravel()
    mag = np.hypot(sx, sy)
    ang = np.arctan2(sy, sx)
    return xx.ravel(), yy.ravel(), mag, ang


def direction_bucket(ang: np.ndarray) -> np.ndarray:
    """Quantize directions into 8 buckets of 45 degrees (0 = +x, 2 = +y)."""
    return np.mod(np.round(ang / (math.pi / 4.0)).astype(int), 8)


def angle_diff(a: float, b: float) -> float:
    """Smallest absolute difference between two angles in radians, [0, pi]."""
    d = abs(a - b) % (2.0 * math.pi)
    return min(d, 2.0 * math.pi - d)


def circular_mean(angles) -> float:
    s = sum(math.sin(a) for a in angles)
    c = sum(math.cos(a) for a in angles)
    return math.atan2(s, c)
