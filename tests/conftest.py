"""
Shared fixtures.  All images are generated on the fly, so no test assets
are required.
"""
import numpy as np
import pytest
from skimage.draw import polygon

from plate_rectify.core.raster import PixelBuffer


def make_quad_image(quad_xy, width=200, height=120, fg=230, bg=30) -> PixelBuffer:
    """Dark frame with a bright filled quadrilateral (x, y vertices)."""
    img = np.full((height, width, 3), bg, np.uint8)
    xs = [p[0] for p in quad_xy]
    ys = [p[1] for p in quad_xy]
    rr, cc = polygon(ys, xs, shape=(height, width))
    img[rr, cc] = fg
    return PixelBuffer.from_array(img)


@pytest.fixture
def quad_image():
    return make_quad_image


@pytest.fixture
def rng():
    return np.random.default_rng(7)


@pytest.fixture
def noise_raster(rng) -> PixelBuffer:
    return PixelBuffer(rng.integers(0, 256, size=(30, 40, 4), dtype=np.uint8))


@pytest.fixture
def gradient_raster() -> PixelBuffer:
    """200 x 100 image with R = 2*row and G = column, fully opaque."""
    ys, xs = np.mgrid[0:100, 0:200]
    img = np.zeros((100, 200, 4), np.uint8)
    img[:, :, 0] = 2 * ys
    img[:, :, 1] = xs
    img[:, :, 3] = 255
    return PixelBuffer(img)
