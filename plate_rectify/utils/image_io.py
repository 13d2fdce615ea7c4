"""
Image I/O helpers.

Thin wrappers around PIL for loading photographs into RGBA pixel buffers,
saving rectified plates, downscaling oversized photos and managing output
directories.
"""

import os

import numpy as np
from PIL import Image

from plate_rectify.core.raster import PixelBuffer

MAX_WIDTH = 1200


def load_raster(path: str) -> PixelBuffer:
    """Load an image file as an RGBA pixel buffer."""
    with Image.open(path) as img:
        return PixelBuffer(np.array(img.convert("RGBA")))


def save_raster(raster: PixelBuffer, path: str) -> None:
    """Write *raster* to *path*; formats without alpha (JPEG) drop it."""
    img = Image.fromarray(raster.data)
    ext = os.path.splitext(path)[1].lower()
    if ext in (".jpg", ".jpeg"):
        img = img.convert("RGB")
    img.save(path)


def resize_max_width(raster: PixelBuffer, max_width: int = MAX_WIDTH) -> PixelBuffer:
    """Downscale *raster* to at most *max_width* pixels wide, keeping aspect.

    Images already narrow enough are returned unchanged.
    """
    if raster.width <= max_width:
        return raster
    scale = max_width / raster.width
    height = max(1, int(round(raster.height * scale)))
    img = Image.fromarray(raster.data)
    resized = img.resize((max_width, height), Image.BILINEAR)
    return PixelBuffer(np.array(resized))


def ensure_output_dirs(names: list, base: str = "results") -> None:
    """Create one output subdirectory per image name under *base*."""
    for name in names:
        os.makedirs(os.path.join(base, name), exist_ok=True)
