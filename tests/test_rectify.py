import logging

import numpy as np
import pytest

from plate_rectify.core.raster import Corners, PixelBuffer, Point
from plate_rectify.geometry.homography import compute_inverse_homography, target_size
from plate_rectify.warping.rectify import iter_rectify_rows, rectify

SKEWED = Corners(top_left=Point(20, 10), top_right=Point(180, 10),
                 bottom_left=Point(0, 90), bottom_right=Point(200, 90))


def _rectify(source, corners, **kwargs):
    width, height = target_size(corners)
    H = compute_inverse_homography(corners, width, height)
    return rectify(source, H, width, height, **kwargs)


def test_identity_corners_reproduce_input(noise_raster):
    w, h = noise_raster.width, noise_raster.height
    corners = Corners(Point(0, 0), Point(w, 0), Point(0, h), Point(w, h))
    result = _rectify(noise_raster, corners)
    assert (result.width, result.height) == (w, h)
    np.testing.assert_array_equal(result.raster.data, noise_raster.data)
    assert result.sampled_fraction == 1.0


def test_skewed_plate_samples_expected_rows(gradient_raster):
    result = _rectify(gradient_raster, SKEWED)
    # top 160, bottom 200, sides sqrt(20^2 + 80^2) ~ 82.5
    assert (result.width, result.height) == (200, 82)

    rows = result.raster.data[:, :, 0].astype(float) / 2     # R encodes 2 * row
    np.testing.assert_allclose(rows[0], 10, atol=0.5)
    np.testing.assert_allclose(rows[-1], 90, atol=2)
    # Source rows increase monotonically down the output
    assert np.all(np.diff(rows[:, result.width // 2]) >= 0)
    assert result.sampled_fraction > 0.99


def test_skewed_plate_top_row_spans_top_edge(gradient_raster):
    result = _rectify(gradient_raster, SKEWED)
    cols = result.raster.data[0, :, 1].astype(float)         # G encodes column
    assert cols[0] == pytest.approx(20, abs=1)
    assert cols[-1] == pytest.approx(179, abs=1)


def test_pixels_outside_source_get_fill(noise_raster, caplog):
    corners = Corners(Point(100, 100), Point(200, 100), Point(100, 150), Point(200, 150))
    with caplog.at_level(logging.WARNING, logger="plate_rectify.warping.rectify"):
        result = _rectify(noise_raster, corners, fill=(1, 2, 3, 4))
    assert result.sampled_fraction == 0.0
    assert np.all(result.raster.data == np.array([1, 2, 3, 4], np.uint8))
    assert "corners are probably misplaced" in caplog.text


def test_default_fill_is_transparent_black(noise_raster):
    corners = Corners(Point(-50, 0), Point(50, 0), Point(-50, 30), Point(50, 30))
    result = _rectify(noise_raster, corners)
    assert result.sampled_fraction == pytest.approx(0.4)
    assert not result.raster.data[:, :50].any()
    assert not result.raster.data[:, 90:].any()
    np.testing.assert_array_equal(result.raster.data[:, 50:90], noise_raster.data)


def test_partial_coverage_fraction(gradient_raster):
    corners = Corners(Point(-100, 0), Point(100, 0), Point(-100, 99), Point(100, 99))
    result = _rectify(gradient_raster, corners)
    assert result.sampled_fraction == pytest.approx(0.5, abs=0.02)


def test_threaded_and_chunked_runs_match(gradient_raster):
    width, height = target_size(SKEWED)
    H = compute_inverse_homography(SKEWED, width, height)
    serial = rectify(gradient_raster, H, width, height)
    threaded = rectify(gradient_raster, H, width, height, workers=3, chunk_rows=7)
    single_rows = rectify(gradient_raster, H, width, height, chunk_rows=1)
    np.testing.assert_array_equal(serial.raster.data, threaded.raster.data)
    np.testing.assert_array_equal(serial.raster.data, single_rows.raster.data)
    assert serial.sampled_fraction == threaded.sampled_fraction


def test_iter_rectify_rows_yields_bands(gradient_raster):
    width, height = target_size(SKEWED)
    H = compute_inverse_homography(SKEWED, width, height)
    out = np.zeros((height, width, 4), np.uint8)
    bands = [(start, stop) for start, stop, _ in
             iter_rectify_rows(gradient_raster, H, out, chunk_rows=30)]
    assert bands == [(0, 30), (30, 60), (60, 82)]
    np.testing.assert_array_equal(out, rectify(gradient_raster, H, width, height).raster.data)


def test_bilinear_blend_of_neighbours():
    src = np.zeros((2, 2, 4), np.uint8)
    src[0, 1] = 100
    src[1, 0] = 200
    src[1, 1] = 40
    H = np.array([[1.0, 0, 0.5], [0, 1.0, 0.5], [0, 0, 1.0]])   # sample at (0.5, 0.5)
    result = rectify(PixelBuffer(src), H, 1, 1)
    assert result.raster.data[0, 0, 0] == 85     # (0 + 100 + 200 + 40) / 4


@pytest.mark.parametrize("width, height, chunk_rows", [(0, 10, 8), (10, 0, 8), (10, 10, 0)])
def test_invalid_target_or_chunk_rejected(noise_raster, width, height, chunk_rows):
    with pytest.raises(ValueError):
        rectify(noise_raster, np.eye(3), width, height, chunk_rows=chunk_rows)


def test_iter_rectify_rows_rejects_zero_chunk(noise_raster):
    out = np.zeros((5, 5, 4), np.uint8)
    with pytest.raises(ValueError):
        list(iter_rectify_rows(noise_raster, np.eye(3), out, chunk_rows=0))


@pytest.mark.parametrize("workers, chunk_rows", [(2, 1), (4, 13), (8, 500)])
def test_threaded_bands_cover_every_row(gradient_raster, workers, chunk_rows):
    width, height = target_size(SKEWED)
    H = compute_inverse_homography(SKEWED, width, height)
    serial = rectify(gradient_raster, H, width, height, fill=(7, 7, 7, 7))
    threaded = rectify(gradient_raster, H, width, height, workers=workers,
                       chunk_rows=chunk_rows, fill=(7, 7, 7, 7))
    np.testing.assert_array_equal(serial.raster.data, threaded.raster.data)
    assert serial.sampled_fraction == threaded.sampled_fraction
