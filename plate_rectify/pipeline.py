"""
End-to-end plate rectification: detect (or accept) corners, derive the
target size, solve the inverse homography and warp.
"""

import logging
from typing import Optional

from plate_rectify.config import DetectionConfig, RectifyConfig
from plate_rectify.core.raster import Corners, PixelBuffer
from plate_rectify.geometry.corners import detect_plate_corners
from plate_rectify.geometry.homography import compute_inverse_homography, target_size
from plate_rectify.warping.rectify import RectifyResult, rectify

logger = logging.getLogger(__name__)


def detect(raster: PixelBuffer, detection: Optional[DetectionConfig] = None) -> Corners:
    """Run automatic corner detection with the given tuning constants."""
    detection = detection or DetectionConfig()
    return detect_plate_corners(
        raster,
        threshold=detection.edge_threshold,
        min_points=detection.min_edge_points,
        max_points=detection.max_hull_points,
        margin=detection.default_margin,
    )


def rectify_plate(raster: PixelBuffer, corners: Optional[Corners] = None,
                  detection: Optional[DetectionConfig] = None,
                  options: Optional[RectifyConfig] = None) -> RectifyResult:
    """Rectify the plate in *raster*.

    Parameters
    ----------
    raster : PixelBuffer
        Source photograph.
    corners : Corners, optional
        Caller-supplied corners (e.g. adjusted by the user).  Detected
        automatically when omitted.
    detection : DetectionConfig, optional
        Detection tuning constants.
    options : RectifyConfig, optional
        Warping options.

    Returns
    -------
    RectifyResult
        Rectified raster with the corners and homography used.

    Raises
    ------
    DegenerateQuadError
        If the corners are collinear or span a zero-sized target.
    """
    options = options or RectifyConfig()
    if corners is None:
        corners = detect(raster, detection)
        logger.debug("Detected corners %s", corners)

    width, height = target_size(corners)
    H = compute_inverse_homography(corners, width, height)
    result = rectify(raster, H, width, height,
                     workers=options.workers,
                     chunk_rows=options.chunk_rows,
                     fill=options.fill,
                     min_sampled_fraction=options.min_sampled_fraction)
    result.corners = corners
    return result
