# overlaysdk/snap/detector.py
"""Interest-point (snap point) detection on a small RGBA window.

Looks for the places a user wants a measurement to land on a drawing: corners,
line intersections and line ends. The window is expected to be small (at most
about 100x100 px) since this runs on every throttled pointer move.

Pipeline:
  1. luminance = mean(R, G, B)
  2. blank-paper early exit on a coarse grid
  3. Sobel gradients on a sampling grid, kept above an adaptive threshold
  4. line ends from same-direction segments
  5. corners / intersections from direction clusters around strong samples
  6. priority + confidence ranking with greedy spatial de-duplication
  7. top K
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .. import defaults as D
from ..bitmap import Bitmap, as_bitmap
from ..geometry import Point
from ._gradients import (
    luminance,
    blank_fraction,
    adaptive_threshold,
    sobel_samples,
    direction_bucket,
    angle_diff,
    circular_mean,
)


class PointKind(str, Enum):
    INTERSECTION = "intersection"
    CORNER = "corner"
    LINE_END = "line_end"


KIND_PRIORITY = {
    PointKind.INTERSECTION: 3,
    PointKind.CORNER: 2,
    PointKind.LINE_END: 1,
}


@dataclass(frozen=True)
class InterestPoint:
    x: float                            # screen space
    y: float
    kind: PointKind
    confidence: float
    direction: Optional[float] = None   # degrees; line direction for line ends

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)


@dataclass
class DetectorParams:
    whiteness_threshold: float = D.WHITENESS_THRESHOLD
    blank_fraction: float = D.BLANK_FRACTION
    blank_sample_step: int = D.BLANK_SAMPLE_STEP
    scan_step: int = D.SCAN_STEP
    stats_sample_step: int = D.STATS_SAMPLE_STEP
    threshold_mean_weight: float = D.THRESHOLD_MEAN_WEIGHT
    threshold_std_weight: float = D.THRESHOLD_STD_WEIGHT
    threshold_min: float = D.THRESHOLD_MIN
    threshold_max: float = D.THRESHOLD_MAX
    strong_edge_floor: float = D.STRONG_EDGE_FLOOR
    min_strong_samples: int = D.MIN_STRONG_SAMPLES
    corner_radius: float = D.CORNER_RADIUS_PX
    corner_magnitude_factor: float = D.CORNER_MAGNITUDE_FACTOR
    neighbor_magnitude_factor: float = D.NEIGHBOR_MAGNITUDE_FACTOR
    corner_min_neighbors: int = D.CORNER_MIN_NEIGHBORS
    cluster_tolerance_deg: float = D.CLUSTER_TOLERANCE_DEG
    opposite_tolerance_deg: float = D.OPPOSITE_TOLERANCE_DEG
    cluster_min_size: int = D.CLUSTER_MIN_SIZE
    corner_min_angle_deg: float = D.CORNER_MIN_ANGLE_DEG
    corner_confidence_gain: float = D.CORNER_CONFIDENCE_GAIN
    intersection_boost: float = D.INTERSECTION_BOOST
    segment_link_px: float = D.SEGMENT_LINK_PX
    segment_min_samples: int = D.SEGMENT_MIN_SAMPLES
    endpoint_reach_px: float = D.ENDPOINT_REACH_PX
    endpoint_max_outward: int = D.ENDPOINT_MAX_OUTWARD
    min_separation: float = D.MIN_SEPARATION_PX
    max_points: int = D.MAX_POINTS

    @classmethod
    def from_config(cls, cfg: Dict[str, Any] | None) -> "DetectorParams":
        return D.params_from_config(cls, cfg)


# (x, y, kind, confidence, direction) in window-local coordinates
_Candidate = Tuple[float, float, PointKind, float, Optional[float]]


def _link_segments(xs: np.ndarray, ys: np.ndarray, link: float) -> List[np.ndarray]:
    """Connected components of samples closer than ``link``; deterministic order."""
    n = xs.size
    if n == 0:
        return []
    d = np.hypot(xs[:, None] - xs[None, :], ys[:, None] - ys[None, :])
    adj = d <= link
    seen = np.zeros(n, dtype=bool)
    out: List[np.ndarray] = []
    for start in range(n):
        if seen[start]:
            continue
        seen[start] = True
        stack = [start]
        comp = []
        while stack:
            i = stack.pop()
            comp.append(i)
            for j in np.flatnonzero(adj[i] & ~seen):
                seen[j] = True
                stack.append(int(j))
        out.append(np.array(sorted(comp), dtype=int))
    return out


def _line_ends(xs, ys, mag, ang, p: DetectorParams) -> List[_Candidate]:
    out: List[_Candidate] = []
    buckets = direction_bucket(ang)
    for b in range(8):
        idx = np.flatnonzero(buckets == b)
        if idx.size < p.segment_min_samples:
            continue
        theta = b * math.pi / 4.0
        # edge tangent is perpendicular to the gradient
        tx, ty = -math.sin(theta), math.cos(theta)
        bx, by = xs[idx], ys[idx]
        for seg in _link_segments(bx, by, p.segment_link_px):
            if seg.size < p.segment_min_samples:
                continue
            proj = bx[seg] * tx + by[seg] * ty
            order = np.argsort(proj, kind="stable")
            for local, outward in ((seg[order[0]], -1.0), (seg[order[-1]], 1.0)):
                ex, ey = bx[local], by[local]
                dx, dy = bx - ex, by - ey
                dist = np.hypot(dx, dy)
                ahead = (dx * tx + dy * ty) * outward
                beyond = (dist > 0) & (dist <= p.endpoint_reach_px) & (ahead > 0.5)
                if int(beyond.sum()) > p.endpoint_max_outward:
                    continue
                direction = math.degrees(math.atan2(ty * outward, tx * outward)) % 360.0
                out.append((float(ex), float(ey), PointKind.LINE_END,
                            float(mag[idx[local]]), direction))
    return out


def _cluster_directions(angles: Sequence[float], tol: float) -> List[List[float]]:
    """Greedy clustering: join the first cluster whose circular mean is within ``tol``."""
    clusters: List[List[float]] = []
    sums: List[List[float]] = []   # running [sin, cos] per cluster
    for a in angles:
        for k, cl in enumerate(clusters):
            mean = math.atan2(sums[k][0], sums[k][1])
            if angle_diff(a, mean) < tol:
                cl.append(a)
                sums[k][0] += math.sin(a)
                sums[k][1] += math.cos(a)
                break
        else:
            clusters.append([a])
            sums.append([math.sin(a), math.cos(a)])
    return clusters


def _corners(xs, ys, mag, ang, threshold: float, p: DetectorParams) -> List[_Candidate]:
    out: List[_Candidate] = []
    tol = math.radians(p.cluster_tolerance_deg)
    min_angle = math.radians(p.corner_min_angle_deg)
    # clusters further apart than this are the two sides of one stroke
    stroke_sides = math.pi - math.radians(p.opposite_tolerance_deg)
    neighbor_ok = mag > threshold * p.neighbor_magnitude_factor
    for i in np.flatnonzero(mag >= threshold * p.corner_magnitude_factor):
        d = np.hypot(xs - xs[i], ys - ys[i])
        near = (d <= p.corner_radius) & neighbor_ok
        near[i] = False
        n_idx = np.flatnonzero(near)
        if n_idx.size < p.corner_min_neighbors:
            continue

        clusters = _cluster_directions([float(a) for a in ang[n_idx]], tol)
        significant = [c for c in clusters if len(c) >= p.cluster_min_size]
        if len(significant) < 2:
            continue
        means = [circular_mean(c) for c in significant]
        turns = [(j, k, angle_diff(means[j], means[k]))
                 for j, k in combinations(range(len(means)), 2)
                 if angle_diff(means[j], means[k]) <= stroke_sides]
        if not turns:
            continue
        spread = max(t[2] for t in turns)
        if spread <= min_angle:
            continue

        confidence = float(mag[i]) * (1.0 + spread / math.pi) * p.corner_confidence_gain
        turning = {j for j, _, _ in turns} | {k for _, k, _ in turns}
        if len(turning) >= 3:
            out.append((float(xs[i]), float(ys[i]), PointKind.INTERSECTION,
                        confidence * p.intersection_boost, None))
        else:
            out.append((float(xs[i]), float(ys[i]), PointKind.CORNER, confidence, None))
    return out


def _rank_and_dedupe(cands: List[_Candidate], p: DetectorParams) -> List[_Candidate]:
    ranked = sorted(cands, key=lambda c: (-KIND_PRIORITY[c[2]], -c[3], c[1], c[0]))
    kept: List[_Candidate] = []
    for c in ranked:
        if len(kept) >= p.max_points:
            break
        if any(math.hypot(c[0] - k[0], c[1] - k[1]) < p.min_separation for k in kept):
            continue
        kept.append(c)
    return kept


def detect_interest_points(bitmap, origin: Tuple[float, float] = (0.0, 0.0),
                           params: DetectorParams | None = None) -> List[InterestPoint]:
    """
    Find up to ``params.max_points`` snap candidates in ``bitmap``.

    Args:
        bitmap: Bitmap (or numpy array / pixel source) of the sampled window
        origin: screen position of the window's top-left pixel; added to results
        params: thresholds, defaults from ``overlaysdk.defaults``

    Returns:
        InterestPoints in screen space, intersections first, then corners, then
        line ends, each group by descending confidence. Empty for blank paper or
        when the window holds too few strong edges.
    """
    p = params or DetectorParams()
    bmp = as_bitmap(bitmap)
    rgba = bmp.rgba
    if rgba.size == 0:
        return []

    if blank_fraction(rgba, p.whiteness_threshold, p.blank_sample_step) > p.blank_fraction:
        return []

    gray = luminance(rgba)
    threshold = adaptive_threshold(
        gray, p.stats_sample_step, p.threshold_mean_weight, p.threshold_std_weight,
        p.threshold_min, p.threshold_max,
    )
    threshold = max(threshold, p.strong_edge_floor)

    xs, ys, mag, ang = sobel_samples(gray, p.scan_step)
    strong = mag > threshold
    n_strong = int(strong.sum())
    if n_strong < p.min_strong_samples:
        return []

    xs = xs[strong].astype(np.float64)
    ys = ys[strong].astype(np.float64)
    mag, ang = mag[strong], ang[strong]

    cands = _line_ends(xs, ys, mag, ang, p) + _corners(xs, ys, mag, ang, threshold, p)
    kept = _rank_and_dedupe(cands, p)

    ox, oy = float(origin[0]), float(origin[1])
    result = [InterestPoint(x + ox, y + oy, kind, conf, direction)
              for (x, y, kind, conf, direction) in kept]
    logger.debug(
        f"detector: {bmp.width}x{bmp.height} thr={threshold:.1f} strong={n_strong} "
        f"candidates={len(cands)} kept={len(result)}"
    )
    return result


def detect_near(canvas: Bitmap, center: Point, radius: int = D.SNAP_DETECTION_RADIUS,
                params: DetectorParams | None = None) -> List[InterestPoint]:
    """Run the detector on a square window of ``canvas`` centred on ``center``."""
    r = max(1, min(int(radius), D.SNAP_MAX_WINDOW_RADIUS))
    win, x0, y0 = canvas.window(center.x, center.y, r)
    return detect_interest_points(win, origin=(x0, y0), params=params)
