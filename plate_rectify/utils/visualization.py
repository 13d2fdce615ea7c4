"""
Visualization utilities for the plate rectification pipeline.

All functions save figures to disk rather than displaying them interactively,
making the module suitable for headless execution.
"""

import os

import matplotlib
matplotlib.use("Agg")          # non-interactive backend
import matplotlib.pyplot as plt

from plate_rectify.core.raster import Corners, PixelBuffer
from plate_rectify.warping.rectify import RectifyResult


# ---------------------------------------------------------------------------
# Step 1 – Corner detection
# ---------------------------------------------------------------------------

def save_detected_corners(raster: PixelBuffer, corners: Corners,
                          name: str, out_dir: str) -> str:
    """Save the source image with the plate quadrilateral outlined."""
    quad = corners.as_array()
    closed = list(quad) + [quad[0]]

    fig, ax = plt.subplots(figsize=(10, 10 * raster.height / max(raster.width, 1)))
    ax.imshow(raster.data)
    ax.plot([p[0] for p in closed], [p[1] for p in closed], "g-", linewidth=2)

    kw = dict(color="yellow", fontsize=9, weight="bold",
              bbox=dict(boxstyle="round,pad=0.3", facecolor="black", alpha=0.5))
    for label, p in zip(("TL", "TR", "BL", "BR"), corners):
        ax.plot(p.x, p.y, "ro", markersize=6)
        ax.text(p.x + 4, p.y - 4, label, **kw)

    ax.set_title(f"{name} – plate corners  {raster.width}×{raster.height}")
    ax.axis("off")
    plt.tight_layout()
    path = os.path.join(out_dir, name, "step1_corners.jpg")
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


# ---------------------------------------------------------------------------
# Step 2 – Rectification
# ---------------------------------------------------------------------------

def save_rectified(source: PixelBuffer, result: RectifyResult,
                   name: str, out_dir: str) -> str:
    """Save a side-by-side figure of the source and the rectified plate."""
    fig, axes = plt.subplots(1, 2, figsize=(16, 6))

    axes[0].imshow(source.data)
    if result.corners is not None:
        quad = result.corners.as_array()
        closed = list(quad) + [quad[0]]
        axes[0].plot([p[0] for p in closed], [p[1] for p in closed], "g-", linewidth=2)
    axes[0].set_title(f"{name} – source"); axes[0].axis("off")

    axes[1].imshow(result.raster.data)
    axes[1].set_title(f"Rectified {result.width}×{result.height}  |  "
                      f"{100 * result.sampled_fraction:.1f}% sampled")
    axes[1].axis("off")

    plt.tight_layout()
    path = os.path.join(out_dir, name, "step2_rectified.jpg")
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path
