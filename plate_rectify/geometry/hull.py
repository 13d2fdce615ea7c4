"""
Convex hull of edge points via Graham scan.

The anchor is the lowest point on screen (largest y, leftmost on ties); the
remaining points are swept in order of polar angle around it, discarding any
hull point that would make a non-left turn.
"""

import math

import numpy as np

MAX_HULL_POINTS = 1000


def subsample_points(points: np.ndarray, max_points: int = MAX_HULL_POINTS) -> np.ndarray:
    """Deterministically thin *points* to at most *max_points*.

    Keeps every ``ceil(N / max_points)``-th point in original order, so the
    same input always yields the same hull.
    """
    n = len(points)
    if n <= max_points:
        return points
    step = math.ceil(n / max_points)
    return points[::step]


def _cross(o, a, b) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(points: np.ndarray) -> np.ndarray:
    """Compute the convex hull of a 2-D point set.

    Parameters
    ----------
    points : np.ndarray
        N x 2 array of ``(x, y)`` coordinates, in any order.

    Returns
    -------
    np.ndarray
        M x 2 float array of hull vertices, starting at the anchor and
        proceeding in sweep order.  Inputs with fewer than three points are
        returned unchanged.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(pts) < 3:
        return pts

    # Anchor: largest y, smallest x among ties
    anchor_idx = np.lexsort((pts[:, 0], -pts[:, 1]))[0]
    anchor = pts[anchor_idx]
    rest = np.delete(pts, anchor_idx, axis=0)
    rest = rest[np.any(rest != anchor, axis=1)]

    dx = rest[:, 0] - anchor[0]
    dy = rest[:, 1] - anchor[1]
    angles = np.arctan2(dy, dx)
    dist = dx * dx + dy * dy
    # lexsort sorts by the last key first: angle, then nearer points first
    order = np.lexsort((dist, angles))

    hull = [anchor]
    for p in rest[order]:
        while len(hull) > 1 and _cross(hull[-2], hull[-1], p) <= 0:
            hull.pop()
        hull.append(p)

    return np.array(hull)
