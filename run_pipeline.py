#!/usr/bin/env python3
"""
run_pipeline.py – Licence Plate Perspective Rectification Pipeline

Loads configuration from configs/default.yaml (or a user-specified file),
detects plate corners (or uses the corners listed in the config) for every
image, rectifies each plate to an upright rectangle and writes the results
and optional figures to the results directory.

Usage
-----
    python run_pipeline.py
    python run_pipeline.py --config configs/default.yaml
    python run_pipeline.py --images front_left rear
    python run_pipeline.py --no-figures --workers 4
"""

import argparse
import logging
import os
import sys
import time

# Ensure the project root is on the Python path when invoked directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from plate_rectify.config import load_config
from plate_rectify.core.errors import ConfigError, DegenerateQuadError
from plate_rectify.pipeline import detect, rectify_plate
from plate_rectify.utils.image_io import (
    ensure_output_dirs,
    load_raster,
    resize_max_width,
    save_raster,
)
from plate_rectify.utils.visualization import save_detected_corners, save_rectified


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def banner(text: str) -> None:
    width = 60
    print("\n" + "─" * width)
    print(f"  {text}")
    print("─" * width)


# ──────────────────────────────────────────────────────────────────────────────
# Per-image pipeline
# ──────────────────────────────────────────────────────────────────────────────

def run_image(job, cfg, results_dir: str, figures: bool) -> dict:
    """Rectify a single image and return summary metrics."""
    banner(f"Image: {job.name}")

    metrics = {
        "image": job.name,
        "source": "–",
        "corners": "config" if job.corners is not None else "detected",
        "output": None,
        "sampled": None,
    }

    # ── 1. Load image ─────────────────────────────────────────────────────────
    try:
        raster = load_raster(job.path)
    except OSError as exc:
        print(f"  Rectification skipped – unreadable image ({exc})")
        return metrics
    natural_w = raster.width
    if cfg.io.max_width is not None:
        raster = resize_max_width(raster, cfg.io.max_width)
    metrics["source"] = f"{raster.width}×{raster.height}"
    print(f"  Loaded image  {raster.width}×{raster.height}")

    # ── 2. Corners ────────────────────────────────────────────────────────────
    if job.corners is not None:
        # Configured corners refer to the full-resolution image
        scale = raster.width / natural_w
        corners = job.corners.scaled(scale, scale)
        print("  Stage 1 – Using configured corners")
    else:
        print("  Stage 1 – Corner detection (Sobel + convex hull)")
        corners = detect(raster, cfg.detection)
    for label, p in zip(("TL", "TR", "BL", "BR"), corners):
        print(f"    {label}: ({p.x:.1f}, {p.y:.1f})")
    if figures:
        save_detected_corners(raster, corners, job.name, results_dir)

    # ── 3. Rectification ──────────────────────────────────────────────────────
    print("  Stage 2 – Homography + rectification")
    try:
        result = rectify_plate(raster, corners, options=cfg.rectify)
    except DegenerateQuadError as exc:
        print(f"  Rectification skipped – degenerate corners ({exc})")
        return metrics

    out_path = os.path.join(results_dir, job.name, "rectified.png")
    save_raster(result.raster, out_path)
    print(f"    Output {result.width}×{result.height}, "
          f"{100 * result.sampled_fraction:.1f}% of pixels sampled")
    print(f"  Saved plate → {out_path}")
    if figures:
        save_rectified(raster, result, job.name, results_dir)

    metrics["output"] = f"{result.width}×{result.height}"
    metrics["sampled"] = result.sampled_fraction
    return metrics


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def parse_args():
    p = argparse.ArgumentParser(
        description="Licence plate perspective rectification pipeline"
    )
    p.add_argument(
        "--config", default="configs/default.yaml",
        help="Path to YAML configuration file (default: configs/default.yaml)",
    )
    p.add_argument(
        "--images", nargs="*", default=None,
        help="Subset of image names to process (default: all images in config)",
    )
    p.add_argument(
        "--no-figures", action="store_true",
        help="Skip saving corner and rectification figures",
    )
    p.add_argument(
        "--workers", type=int, default=None,
        help="Rectification threads (overrides rectify.workers)",
    )
    p.add_argument(
        "--verbose", action="store_true",
        help="Enable debug logging",
    )
    return p.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s - %(levelname)s - %(message)s")

    # Load configuration
    if not os.path.exists(args.config):
        print(f"[ERROR] Config file not found: {args.config}")
        sys.exit(1)
    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        print(f"[ERROR] {exc}")
        sys.exit(1)

    if args.workers is not None:
        if args.workers < 1:
            print("[ERROR] --workers must be >= 1")
            sys.exit(1)
        cfg.rectify.workers = args.workers

    results_dir = cfg.results_dir
    images = cfg.images

    # Optionally restrict to a subset of images
    if args.images:
        images = [job for job in images if job.name in args.images]
        if not images:
            print(f"[ERROR] No matching images found for: {args.images}")
            sys.exit(1)

    # Validate that image files exist
    for job in images:
        if not os.path.exists(job.path):
            print(f"[ERROR] Image not found: {job.path}")
            sys.exit(1)

    # Create output directories
    ensure_output_dirs([job.name for job in images], base=results_dir)

    figures = not args.no_figures

    banner("Licence Plate Rectification Pipeline")
    print(f"  Config  : {args.config}")
    print(f"  Images  : {[job.name for job in images]}")
    print(f"  Figures : {'enabled' if figures else 'disabled'}")
    print(f"  Workers : {cfg.rectify.workers}")
    print(f"  Output  : {results_dir}/")

    t0 = time.time()
    all_metrics = []

    for job in images:
        metrics = run_image(job, cfg, results_dir, figures)
        all_metrics.append(metrics)

    # ── Summary table ──────────────────────────────────────────────────────
    banner("Results Summary")
    header = f"{'Image':<14} {'Source':>11} {'Corners':>9} {'Output':>11} {'Sampled':>8}"
    print(header)
    print("─" * len(header))
    for m in all_metrics:
        out = m["output"] or "–"
        sampled = f"{100 * m['sampled']:.1f}%" if m["sampled"] is not None else "–"
        print(f"{m['image']:<14} {m['source']:>11} {m['corners']:>9} "
              f"{out:>11} {sampled:>8}")

    elapsed = time.time() - t0
    print(f"\nPipeline complete in {elapsed:.1f}s")
    print(f"Results saved to: {os.path.abspath(results_dir)}/")


if __name__ == "__main__":
    main()
