"""
Inverse homography estimation for plate rectification.

A planar homography (projective transformation) can represent the
perspective foreshortening of a plate photographed at an angle.  Here the
3x3 matrix maps the upright destination rectangle back onto the skewed
source quadrilateral, so every output pixel can look up where it comes
from.  With ``h8`` fixed to 1, the four corner correspondences give an
8 x 8 linear system solved by Gaussian elimination with partial pivoting.
"""

import itertools
import logging

import numpy as np

from plate_rectify.core.errors import DegenerateQuadError
from plate_rectify.core.raster import Corners

logger = logging.getLogger(__name__)

PIVOT_EPS = 1e-10
COLLINEAR_EPS = 1e-9


def edge_lengths(corners: Corners):
    """Return the (top, bottom, left, right) edge lengths of *corners*."""
    tl, tr, bl, br = (np.asarray(p, dtype=float) for p in corners)
    top = float(np.linalg.norm(tr - tl))
    bottom = float(np.linalg.norm(br - bl))
    left = float(np.linalg.norm(bl - tl))
    right = float(np.linalg.norm(br - tr))
    return top, bottom, left, right


def target_size(corners: Corners):
    """Derive the rectified (width, height) from the longest opposite edges.

    Raises
    ------
    DegenerateQuadError
        If either derived dimension rounds to zero.
    """
    top, bottom, left, right = edge_lengths(corners)
    width = int(round(max(top, bottom)))
    height = int(round(max(left, right)))
    if width < 1 or height < 1:
        raise DegenerateQuadError(f"corners span a {width}x{height} target")
    return width, height


def check_corners(corners: Corners) -> None:
    """Raise DegenerateQuadError if any three corners are collinear."""
    pts = corners.as_array()
    if not np.all(np.isfinite(pts)):
        raise DegenerateQuadError("corner coordinates must be finite")

    span = float(np.max(np.ptp(pts, axis=0)))
    tolerance = COLLINEAR_EPS * max(1.0, span) ** 2
    for i, j, k in itertools.combinations(range(4), 3):
        a, b, c = pts[i], pts[j], pts[k]
        cross = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
        if abs(cross) <= tolerance:
            raise DegenerateQuadError(
                f"corners {corners} contain three collinear points")


def solve_linear_system(A: np.ndarray, b: np.ndarray, eps: float = PIVOT_EPS) -> np.ndarray:
    """Solve ``A x = b`` by Gaussian elimination with partial pivoting.

    Parameters
    ----------
    A : np.ndarray
        N x N coefficient matrix.  Not modified.
    b : np.ndarray
        Length-N right-hand side.  Not modified.
    eps : float
        Pivots with magnitude at or below ``eps * max(|A|)`` are treated as
        zero.

    Returns
    -------
    np.ndarray
        Length-N solution vector.

    Raises
    ------
    DegenerateQuadError
        If the system is singular or nearly so.
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    n = len(b)
    aug = np.hstack([A, b.reshape(n, 1)])
    tolerance = eps * max(float(np.max(np.abs(A))), 1.0)

    # Forward elimination
    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(aug[col:, col])))
        if abs(aug[pivot_row, col]) <= tolerance:
            raise DegenerateQuadError(
                f"singular system: pivot {aug[pivot_row, col]:.3g} in column {col}")
        if pivot_row != col:
            aug[[col, pivot_row]] = aug[[pivot_row, col]]

        factors = aug[col + 1:, col] / aug[col, col]
        aug[col + 1:, col:] -= factors[:, np.newaxis] * aug[col, col:]

    # Back substitution
    x = np.zeros(n)
    for row in range(n - 1, -1, -1):
        x[row] = (aug[row, n] - np.dot(aug[row, row + 1:n], x[row + 1:])) / aug[row, row]
    return x


def compute_inverse_homography(corners: Corners, width: int, height: int) -> np.ndarray:
    """Estimate the homography mapping the destination rectangle onto *corners*.

    Parameters
    ----------
    corners : Corners
        Source quadrilateral.
    width, height : int
        Destination rectangle size.  Its corners ``(0, 0)``, ``(W, 0)``,
        ``(W, H)`` and ``(0, H)`` map to TL, TR, BR and BL respectively.

    Returns
    -------
    H : np.ndarray
        3 x 3 matrix (normalised so ``H[2, 2] == 1``) such that
        ``src ≈ H @ [x, y, 1]`` in homogeneous coordinates.

    Raises
    ------
    DegenerateQuadError
        If the corners are collinear or the system is singular.
    """
    check_corners(corners)

    dst = [(0.0, 0.0), (float(width), 0.0), (float(width), float(height)), (0.0, float(height))]
    src = corners.as_array()

    A = []
    b = []
    for (dx, dy), (sx, sy) in zip(dst, src):
        A.append([dx, dy, 1, 0,  0,  0, -sx * dx, -sx * dy])
        A.append([0,  0,  0, dx, dy, 1, -sy * dx, -sy * dy])
        b.extend([sx, sy])

    h = solve_linear_system(np.array(A, dtype=float), np.array(b, dtype=float))
    H = np.append(h, 1.0).reshape(3, 3)
    logger.debug("Inverse homography for %dx%d target:\n%s", width, height, H)
    return H


def apply_homography(H: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a homography to a set of ``(x, y)`` coordinates.

    Parameters
    ----------
    H : np.ndarray
        3 x 3 homography matrix.
    points : np.ndarray
        N x 2 array of ``(x, y)`` coordinates.

    Returns
    -------
    np.ndarray
        N x 2 array of transformed ``(x, y)`` coordinates.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    homog = np.hstack([pts, np.ones((len(pts), 1))])

    transformed = homog @ H.T
    return transformed[:, :2] / transformed[:, 2:3]
