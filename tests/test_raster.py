import numpy as np
import pytest

from plate_rectify.core.errors import InvalidRasterError
from plate_rectify.core.raster import Corners, PixelBuffer, Point


def _corners():
    return Corners(top_left=Point(10, 20), top_right=Point(110, 20),
                   bottom_left=Point(10, 70), bottom_right=Point(110, 70))


def test_from_array_rgb_adds_opaque_alpha():
    rgb = np.zeros((5, 7, 3), np.uint8)
    rgb[..., 0] = 9
    buf = PixelBuffer.from_array(rgb)
    assert (buf.width, buf.height, buf.channels, buf.stride) == (7, 5, 4, 28)
    assert np.all(buf.data[..., 3] == 255)
    assert np.all(buf.data[..., 0] == 9)


def test_from_array_gray_replicates_channels():
    gray = np.arange(12, dtype=np.uint8).reshape(3, 4)
    buf = PixelBuffer.from_array(gray)
    for c in range(3):
        np.testing.assert_array_equal(buf.data[..., c], gray)


@pytest.mark.parametrize("arr", [
    np.zeros((4, 4, 2), np.uint8),
    np.zeros((4, 4, 4), np.float32),
    np.zeros((0, 4, 4), np.uint8),
])
def test_invalid_arrays_rejected(arr):
    with pytest.raises(InvalidRasterError):
        PixelBuffer.from_array(arr)


def test_from_bytes_checks_length():
    raw = bytes(range(24))
    buf = PixelBuffer.from_bytes(3, 2, raw)
    assert buf.to_bytes() == raw
    with pytest.raises(InvalidRasterError):
        PixelBuffer.from_bytes(3, 3, raw)


def test_blank_is_transparent_black():
    buf = PixelBuffer.blank(4, 2)
    assert buf.data.shape == (2, 4, 4)
    assert not buf.data.any()


def test_corners_scaled():
    scaled = _corners().scaled(2.0, 0.5)
    assert scaled.top_left == Point(20, 10)
    assert scaled.bottom_right == Point(220, 35)


def test_corners_array_round_trip_order():
    c = _corners()
    arr = c.as_array()
    np.testing.assert_array_equal(arr, [[10, 20], [110, 20], [110, 70], [10, 70]])
    assert Corners.from_array(arr) == c


def test_corners_area():
    assert _corners().area() == pytest.approx(100 * 50)
