"""
Plate corner estimation.

Reduces the convex hull of strong-edge pixels to four corner estimates by
scoring every hull vertex along the four diagonal directions.  When the
image has too few edges, or the hull is too small, a fixed-margin default
rectangle is used instead.

Each role is scored independently, so on near-triangular hulls one vertex
can win two roles.  Callers that need a distinct vertex per role should
let the user adjust the result.
"""

import logging

import numpy as np

from plate_rectify.core.errors import InsufficientEdgesError
from plate_rectify.core.raster import Corners, PixelBuffer, Point
from plate_rectify.detectors.edge_points import (
    DEFAULT_THRESHOLD,
    MIN_EDGE_POINTS,
    extract_edge_points,
)
from plate_rectify.detectors.sobel import build_edge_map
from plate_rectify.geometry.hull import MAX_HULL_POINTS, convex_hull, subsample_points

logger = logging.getLogger(__name__)

DEFAULT_MARGIN = 0.05


def default_corners(width: float, height: float, margin: float = DEFAULT_MARGIN) -> Corners:
    """Axis-aligned rectangle inset by *margin* (a fraction) on every side."""
    lo_x, hi_x = width * margin, width * (1 - margin)
    lo_y, hi_y = height * margin, height * (1 - margin)
    return Corners(
        top_left=Point(lo_x, lo_y),
        top_right=Point(hi_x, lo_y),
        bottom_left=Point(lo_x, hi_y),
        bottom_right=Point(hi_x, hi_y),
    )


def estimate_quad_corners(hull: np.ndarray, width: int, height: int,
                          margin: float = DEFAULT_MARGIN) -> Corners:
    """Pick the four plate corners from convex hull vertices.

    Parameters
    ----------
    hull : np.ndarray
        M x 2 array of ``(x, y)`` hull vertices.
    width, height : int
        Image size, used for the default rectangle.
    margin : float
        Inset of the default rectangle.

    Returns
    -------
    Corners
        Vertices minimising ``x + y`` (top-left), ``y - x`` (top-right),
        ``x - y`` (bottom-left) and ``-(x + y)`` (bottom-right).  The first
        vertex wins ties.
    """
    hull = np.asarray(hull, dtype=float).reshape(-1, 2)
    if len(hull) < 4:
        return default_corners(width, height, margin)

    x, y = hull[:, 0], hull[:, 1]
    # np.argmin returns the first minimum, matching a strict "<" scan
    tl = hull[np.argmin(x + y)]
    tr = hull[np.argmin(y - x)]
    bl = hull[np.argmin(x - y)]
    br = hull[np.argmin(-(x + y))]

    return Corners(
        top_left=Point(float(tl[0]), float(tl[1])),
        top_right=Point(float(tr[0]), float(tr[1])),
        bottom_left=Point(float(bl[0]), float(bl[1])),
        bottom_right=Point(float(br[0]), float(br[1])),
    )


def detect_plate_corners(raster: PixelBuffer, threshold: float = DEFAULT_THRESHOLD,
                         min_points: int = MIN_EDGE_POINTS,
                         max_points: int = MAX_HULL_POINTS,
                         margin: float = DEFAULT_MARGIN) -> Corners:
    """Estimate plate corners in *raster* from its edges.

    Parameters
    ----------
    raster : PixelBuffer
        Source image.
    threshold : float
        Edge threshold as a fraction of the strongest gradient.
    min_points : int
        Minimum number of edge points needed to attempt hull fitting.
    max_points : int
        Edge points are thinned to this many before the hull is built.
    margin : float
        Inset of the default rectangle.

    Returns
    -------
    Corners
        Estimated corners, or the default margin rectangle when the image
        has too few strong edges.
    """
    width, height = raster.width, raster.height
    edge_map = build_edge_map(raster)

    try:
        points = extract_edge_points(edge_map.magnitude, threshold=threshold,
                                     min_points=min_points)
    except InsufficientEdgesError as exc:
        logger.info("Using default corners for %dx%d image: %s", width, height, exc)
        return default_corners(width, height, margin)

    sampled = subsample_points(points, max_points)
    hull = convex_hull(sampled)
    logger.debug("Edge points: %d, sampled: %d, hull vertices: %d",
                 len(points), len(sampled), len(hull))
    return estimate_quad_corners(hull, width, height, margin)
