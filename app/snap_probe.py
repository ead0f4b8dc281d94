#!/usr/bin/env python3
"""Print (and optionally draw) the snap points around one pixel of an image."""

import argparse
import json
import sys

import cv2

from overlaysdk import Bitmap, setup_logging
from overlaysdk.defaults import SNAP_DETECTION_RADIUS, load_config
from overlaysdk.geometry import Point
from overlaysdk.overlay import draw_snap_points
from overlaysdk.snap import DetectorParams, SnapEngine, SnapParams


def main(argv=None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--image", required=True)
    ap.add_argument("--x", type=float, required=True)
    ap.add_argument("--y", type=float, required=True)
    ap.add_argument("--radius", type=int, default=SNAP_DETECTION_RADIUS, help="Half-size of the sampled window.")
    ap.add_argument("--config", default="", help="JSON config with 'detector' / 'snap' groups.")
    ap.add_argument("--out", default="", help="Write a visualization here.")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)

    setup_logging(args.log_level)
    cfg = load_config(args.config) if args.config else {}

    img = cv2.imread(args.image, cv2.IMREAD_COLOR)
    if img is None:
        sys.exit(f"[ERROR] Could not read {args.image}")

    snap_params = SnapParams.from_config(cfg.get("snap"))
    snap_params.detection_radius = args.radius
    engine = SnapEngine(snap_params, DetectorParams.from_config(cfg.get("detector")))
    pointer = Point(args.x, args.y)
    engine.update(pointer, Bitmap.from_bgr(img))

    target = engine.snap_point
    report = {
        "pointer": [pointer.x, pointer.y],
        "points": [
            {"x": p.x, "y": p.y, "kind": p.kind.value, "confidence": round(p.confidence, 3)}
            for p in engine.points
        ],
        "snap_target": None if target is None else [target.x, target.y],
    }
    print(json.dumps(report, indent=2))

    if args.out:
        vis = img.copy()
        cv2.circle(vis, (int(pointer.x), int(pointer.y)), args.radius, (200, 200, 200), 1, cv2.LINE_AA)
        draw_snap_points(vis, engine.points, engine.highlighted_point, target)
        if not cv2.imwrite(args.out, vis):
            sys.exit(f"[ERROR] Could not write {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
