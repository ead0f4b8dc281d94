# overlaysdk/defaults.py
"""Tuning constants and config-file loading.

The numeric thresholds below were tuned by hand against rendered blueprint and
document pages. They are kept as named constants so callers can override any of
them through the ``from_config`` constructors of the parameter dataclasses, or
through a JSON file read by :func:`load_config`:

    {
      "detector": {"whiteness_threshold": 235, "max_points": 8},
      "snap": {"max_snap_radius": 50},
      "measure": {"min_ruler_px": 12},
      "compare": {"whiteness_threshold": 245}
    }
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Type, TypeVar

from loguru import logger

from .store import load_json

# ---- Blank-paper / ink classification ----
WHITENESS_THRESHOLD = 240      # all of R,G,B above this -> blank paper
BLANK_FRACTION = 0.9           # window counts as blank above this share of white samples
BLANK_SAMPLE_STEP = 6

# ---- Gradient sampling ----
SCAN_STEP = 2
STATS_SAMPLE_STEP = 3
THRESHOLD_MEAN_WEIGHT = 0.3
THRESHOLD_STD_WEIGHT = 0.5
THRESHOLD_MIN = 20.0
THRESHOLD_MAX = 80.0
STRONG_EDGE_FLOOR = 50.0
MIN_STRONG_SAMPLES = 15

# ---- Corners / intersections ----
CORNER_RADIUS_PX = 12.0
CORNER_MAGNITUDE_FACTOR = 1.3
NEIGHBOR_MAGNITUDE_FACTOR = 0.8
CORNER_MIN_NEIGHBORS = 4
CLUSTER_TOLERANCE_DEG = 30.0
OPPOSITE_TOLERANCE_DEG = 30.0   # within this of 180 deg: both sides of one stroke
CLUSTER_MIN_SIZE = 3
CORNER_MIN_ANGLE_DEG = 45.0
CORNER_CONFIDENCE_GAIN = 1.5
INTERSECTION_BOOST = 1.3

# ---- Line ends ----
SEGMENT_LINK_PX = 3.0
SEGMENT_MIN_SAMPLES = 3
ENDPOINT_REACH_PX = 6.0
ENDPOINT_MAX_OUTWARD = 1

# ---- Result shaping ----
MIN_SEPARATION_PX = 10.0
MAX_POINTS = 5

# ---- Snapping ----
SNAP_DETECTION_RADIUS = 30     # half-size of the sampled window
SNAP_MAX_WINDOW_RADIUS = 50    # keeps windows <= 100x100
MAX_SNAP_RADIUS = 35.0
MIN_MOVE_PX = 5.0
MIN_INTERVAL_S = 0.05

# ---- Ruler tool ----
MARKER_HIT_RADIUS = 15.0
MIN_RULER_PX = 20.0
LABEL_OFFSET_PX = 15.0
LABEL_HIT_HALF_WIDTH = 40.0
LABEL_HIT_HALF_HEIGHT = 13.0
DEFAULT_UNIT_LABEL = "px"

# ---- Comparison ----
OVERLAP_COLOR = (0, 0, 0)


T = TypeVar("T")


def params_from_config(cls: Type[T], cfg: Dict[str, Any] | None) -> T:
    """Build a parameter dataclass from a dict, ignoring unknown keys."""
    if not cfg:
        return cls()
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(cfg) - known)
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {unknown}")
    return cls(**{k: v for k, v in cfg.items() if k in known})


def load_config(path: str | Path) -> Dict[str, Dict[str, Any]]:
    """Read a grouped JSON config file. Missing file -> empty config."""
    data = load_json(path)
    if data is None:
        logger.info(f"No config at {path}, using defaults.")
        return {}
    groups = {k: v for k, v in data.items() if isinstance(v, dict)}
    logger.info(f"Configuration loaded from {path} (groups: {sorted(groups)})")
    return groups
