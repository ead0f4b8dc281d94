#!/usr/bin/env python3
"""Write the structural diff of two rendered pages."""

import argparse
import json
import sys

import cv2
import numpy as np

from overlaysdk import Bitmap, composite, setup_logging
from overlaysdk.compare import COMPARISON_COLOR, PRIMARY_COLOR, parse_color
from overlaysdk.defaults import WHITENESS_THRESHOLD, load_config


def _read(path: str) -> Bitmap:
    img = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if img is None:
        sys.exit(f"[ERROR] Could not read {path}")
    return Bitmap.from_bgr(img)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--primary", required=True)
    ap.add_argument("--comparison", default="", help="Omit for single-page mode.")
    ap.add_argument("--out", required=True, help="Output PNG (with alpha).")
    ap.add_argument("--primary-color", default="#{:02x}{:02x}{:02x}".format(*PRIMARY_COLOR))
    ap.add_argument("--comparison-color", default="#{:02x}{:02x}{:02x}".format(*COMPARISON_COLOR))
    ap.add_argument("--config", default="", help="JSON config; the 'compare' group is used.")
    ap.add_argument("--show", action="store_true", help="Show the result in a window.")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)

    setup_logging(args.log_level)
    cfg = load_config(args.config).get("compare", {}) if args.config else {}

    primary = _read(args.primary)
    comparison = _read(args.comparison) if args.comparison else None
    try:
        result = composite(
            primary,
            comparison,
            parse_color(args.primary_color),
            parse_color(args.comparison_color),
            whiteness_threshold=int(cfg.get("whiteness_threshold", WHITENESS_THRESHOLD)),
        )
    except ValueError as e:
        sys.exit(f"[ERROR] {e}")

    bgra = result.to_bgra()
    if not cv2.imwrite(args.out, bgra):
        sys.exit(f"[ERROR] Could not write {args.out}")

    visible = result.rgba[..., 3] > 0
    summary = {
        "width": result.width,
        "height": result.height,
        "changed_pixels": int(np.count_nonzero(visible)),
        "out": args.out,
    }
    print(json.dumps(summary, indent=2))

    if args.show:
        cv2.imshow("Diff", bgra)
        print("[INFO] press any key to close")
        cv2.waitKey(0)
        cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    sys.exit(main())
