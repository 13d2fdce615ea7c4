"""
Sobel gradient map for plate corner detection.

The RGBA raster is reduced to luma, then correlated with the 3x3 Sobel
kernels to obtain the horizontal and vertical gradient.  Gradient magnitude
and direction are returned per pixel; the outermost ring of pixels has no
full neighbourhood and is left at zero.
"""

import logging
from typing import NamedTuple

import numpy as np
from scipy.ndimage import correlate

from plate_rectify.core.raster import PixelBuffer

logger = logging.getLogger(__name__)

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

SOBEL_X = np.array([[-1, 0, 1],
                    [-2, 0, 2],
                    [-1, 0, 1]], dtype=float)
SOBEL_Y = SOBEL_X.T.copy()


class EdgeMap(NamedTuple):
    magnitude: np.ndarray
    direction: np.ndarray


def to_luma(raster: PixelBuffer) -> np.ndarray:
    """Return the H x W float64 luma (0.299R + 0.587G + 0.114B) of *raster*."""
    return raster.data[:, :, :3].astype(float) @ LUMA_WEIGHTS


def build_edge_map(raster: PixelBuffer) -> EdgeMap:
    """Compute the Sobel gradient magnitude and direction of *raster*.

    Parameters
    ----------
    raster : PixelBuffer
        RGBA source image.

    Returns
    -------
    EdgeMap
        ``magnitude`` and ``direction`` (radians, ``atan2(gy, gx)``) as
        H x W float64 arrays.  Border pixels are zero in both.
    """
    height, width = raster.height, raster.width
    magnitude = np.zeros((height, width))
    direction = np.zeros((height, width))

    if width < 3 or height < 3:
        logger.debug("Raster %dx%d has no interior pixels", width, height)
        return EdgeMap(magnitude, direction)

    luma = to_luma(raster)
    gx = correlate(luma, SOBEL_X, mode="nearest")
    gy = correlate(luma, SOBEL_Y, mode="nearest")

    # Only interior pixels have a full 3x3 neighbourhood
    inner = (slice(1, -1), slice(1, -1))
    magnitude[inner] = np.hypot(gx[inner], gy[inner])
    direction[inner] = np.arctan2(gy[inner], gx[inner])
    return EdgeMap(magnitude, direction)
