import numpy as np
import pytest

from plate_rectify.core.errors import InsufficientEdgesError
from plate_rectify.detectors.edge_points import extract_edge_points


def test_points_above_fraction_of_max_in_scan_order():
    mag = np.zeros((6, 6))
    mag[1, 4] = 10.0
    mag[2, 1] = 3.0      # exactly 0.3 * max, not strictly greater
    mag[3, 2] = 3.5
    mag[5, 0] = 9.0
    pts = extract_edge_points(mag, threshold=0.3, min_points=1)
    np.testing.assert_array_equal(pts, [[4, 1], [2, 3], [0, 5]])
    assert pts.dtype.kind == "i"


def test_too_few_points_raise():
    mag = np.zeros((20, 20))
    mag[5, 5:14] = 1.0      # 9 points
    with pytest.raises(InsufficientEdgesError) as info:
        extract_edge_points(mag)
    assert info.value.found == 9
    assert info.value.required == 10


def test_flat_map_has_no_edges():
    with pytest.raises(InsufficientEdgesError):
        extract_edge_points(np.zeros((10, 10)))


def test_ten_points_is_enough():
    mag = np.zeros((20, 20))
    mag[5, 5:15] = 1.0
    assert len(extract_edge_points(mag)) == 10
