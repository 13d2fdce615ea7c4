"""
Strong-edge point extraction.

Keeps pixels whose gradient magnitude exceeds a fraction of the strongest
gradient in the image.
"""

import numpy as np

from plate_rectify.core.errors import InsufficientEdgesError

DEFAULT_THRESHOLD = 0.3
MIN_EDGE_POINTS = 10


def extract_edge_points(magnitude: np.ndarray, threshold: float = DEFAULT_THRESHOLD,
                        min_points: int = MIN_EDGE_POINTS) -> np.ndarray:
    """Threshold a gradient magnitude map into edge pixel coordinates.

    Parameters
    ----------
    magnitude : np.ndarray
        H x W gradient magnitude map.
    threshold : float
        Fraction of ``max(magnitude)`` a pixel must strictly exceed.
    min_points : int
        Minimum number of surviving pixels.

    Returns
    -------
    np.ndarray
        N x 2 int array of ``(x, y)`` coordinates in row-major scan order.

    Raises
    ------
    InsufficientEdgesError
        When fewer than *min_points* pixels pass the threshold.
    """
    cutoff = threshold * float(np.max(magnitude)) if magnitude.size else 0.0
    ys, xs = np.nonzero(magnitude > cutoff)
    if len(xs) < min_points:
        raise InsufficientEdgesError(len(xs), min_points)
    return np.column_stack([xs, ys]).astype(int)
