"""
Plate rectification via inverse warping and bilinear interpolation.

Given the inverse homography (destination -> source), every output pixel
is mapped back into the source image and sampled from its four nearest
neighbours.  Output pixels that land outside the source are set to a fill
colour, and the fraction of sampled pixels is reported so callers can spot
badly placed corners.

Rows are processed in bands.  Bands are independent, so they can run on a
thread pool or be interleaved with other work through ``iter_rectify_rows``.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import numpy as np

from plate_rectify.core.raster import CHANNELS, Corners, PixelBuffer

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)
BOUNDS_TOLERANCE = 1e-6
MIN_SAMPLED_FRACTION = 0.5
DEFAULT_CHUNK_ROWS = 64


@dataclass
class RectifyResult:
    raster: PixelBuffer
    sampled_fraction: float
    homography: Optional[np.ndarray] = None
    corners: Optional[Corners] = None

    @property
    def width(self) -> int:
        return self.raster.width

    @property
    def height(self) -> int:
        return self.raster.height


def _warp_band(src: np.ndarray, H: np.ndarray, width: int,
               row_start: int, row_stop: int, fill: np.ndarray) -> tuple:
    """Warp destination rows ``[row_start, row_stop)``.

    Returns the band as a ``(rows, width, 4)`` uint8 array and the number
    of pixels that were sampled from the source.
    """
    src_h, src_w = src.shape[:2]
    ys, xs = np.mgrid[row_start:row_stop, 0:width].astype(float)

    w = H[2, 0] * xs + H[2, 1] * ys + H[2, 2]
    nonzero_w = np.abs(w) > 1e-12
    w = np.where(nonzero_w, w, 1.0)
    sx = (H[0, 0] * xs + H[0, 1] * ys + H[0, 2]) / w
    sy = (H[1, 0] * xs + H[1, 1] * ys + H[1, 2]) / w

    inside = (nonzero_w &
              (sx >= -BOUNDS_TOLERANCE) & (sx <= src_w - 1 + BOUNDS_TOLERANCE) &
              (sy >= -BOUNDS_TOLERANCE) & (sy <= src_h - 1 + BOUNDS_TOLERANCE))

    band = np.empty((row_stop - row_start, width, CHANNELS), dtype=np.uint8)
    band[:] = fill

    x_in = np.clip(sx[inside], 0, src_w - 1)
    y_in = np.clip(sy[inside], 0, src_h - 1)
    x0 = np.floor(x_in).astype(int)
    y0 = np.floor(y_in).astype(int)
    # On the last row/column the far neighbour has zero weight
    x1 = np.minimum(x0 + 1, src_w - 1)
    y1 = np.minimum(y0 + 1, src_h - 1)
    dx = (x_in - x0)[:, np.newaxis]
    dy = (y_in - y0)[:, np.newaxis]

    value = (
        src[y0, x0] * (1 - dx) * (1 - dy) +
        src[y0, x1] *      dx  * (1 - dy) +
        src[y1, x0] * (1 - dx) *      dy  +
        src[y1, x1] *      dx  *      dy
    )
    band[inside] = np.clip(np.floor(value + 0.5), 0, 255).astype(np.uint8)
    return band, int(np.count_nonzero(inside))


def _check_args(width: int, height: int, chunk_rows: int) -> None:
    if width < 1 or height < 1:
        raise ValueError(f"target size must be at least 1x1, got {width}x{height}")
    if chunk_rows < 1:
        raise ValueError(f"chunk_rows must be >= 1, got {chunk_rows}")


def _bands(height: int, chunk_rows: int):
    for row_start in range(0, height, chunk_rows):
        yield row_start, min(row_start + chunk_rows, height)


def _band_writer(source: PixelBuffer, H: np.ndarray, out: np.ndarray, fill):
    """Return ``write(row_start, row_stop) -> sampled`` warping into *out*."""
    width = out.shape[1]
    src = source.data.astype(float)
    fill = np.asarray(fill, dtype=np.uint8)

    def write(row_start, row_stop):
        band, sampled = _warp_band(src, H, width, row_start, row_stop, fill)
        out[row_start:row_stop] = band
        return sampled

    return write


def iter_rectify_rows(source: PixelBuffer, H: np.ndarray, out: np.ndarray,
                      chunk_rows: int = DEFAULT_CHUNK_ROWS, fill=TRANSPARENT):
    """Rectify into *out* one band of rows at a time.

    Parameters
    ----------
    source : PixelBuffer
        Image to sample from.
    H : np.ndarray
        3 x 3 inverse homography (destination -> source).
    out : np.ndarray
        ``(height, width, 4)`` uint8 destination array, written in place.
    chunk_rows : int
        Rows per band.
    fill : sequence of 4 ints
        RGBA value for pixels that map outside *source*.

    Yields
    ------
    (row_start, row_stop, sampled) : tuple of int
        The band just written and how many of its pixels were sampled.
    """
    height, width = out.shape[:2]
    _check_args(width, height, chunk_rows)
    write = _band_writer(source, H, out, fill)
    for row_start, row_stop in _bands(height, chunk_rows):
        yield row_start, row_stop, write(row_start, row_stop)


def rectify(source: PixelBuffer, H: np.ndarray, width: int, height: int, *,
            workers: int = 1, chunk_rows: int = DEFAULT_CHUNK_ROWS,
            fill=TRANSPARENT,
            min_sampled_fraction: float = MIN_SAMPLED_FRACTION) -> RectifyResult:
    """Warp *source* into an upright *width* x *height* raster.

    Parameters
    ----------
    source : PixelBuffer
        RGBA source image.
    H : np.ndarray
        3 x 3 inverse homography mapping destination pixels to source pixels.
    width, height : int
        Destination size, each at least 1.
    workers : int
        Number of threads; bands are distributed across them when > 1.
    chunk_rows : int
        Rows per band, at least 1.
    fill : sequence of 4 ints
        RGBA value for destination pixels that map outside the source.
        Defaults to fully transparent black.
    min_sampled_fraction : float
        A warning is logged when fewer pixels than this were sampled.

    Returns
    -------
    RectifyResult
        The rectified raster and the fraction of pixels sampled from
        the source.

    Raises
    ------
    ValueError
        If the target size or *chunk_rows* is below 1.
    """
    _check_args(width, height, chunk_rows)
    out = np.empty((height, width, CHANNELS), dtype=np.uint8)

    if workers > 1:
        write = _band_writer(source, H, out, fill)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            sampled = sum(pool.map(lambda band: write(*band), _bands(height, chunk_rows)))
    else:
        sampled = sum(n for _, _, n in iter_rectify_rows(source, H, out, chunk_rows, fill))

    fraction = sampled / float(width * height)
    if fraction < min_sampled_fraction:
        logger.warning("Only %.1f%% of %dx%d output pixels sampled from the source; "
                       "corners are probably misplaced", 100 * fraction, width, height)
    else:
        logger.debug("Sampled %.1f%% of %dx%d output pixels", 100 * fraction, width, height)

    return RectifyResult(raster=PixelBuffer(out), sampled_fraction=fraction, homography=H)
