"""
Portable raster and coordinate types shared across the pipeline.

Every stage consumes and produces a ``PixelBuffer``: an 8-bit RGBA image held
as a row-major ``(height, width, 4)`` numpy array.  Coordinates are ``(x, y)``
with the origin at the top-left corner and y pointing down.
"""

from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from plate_rectify.core.errors import InvalidRasterError

CHANNELS = 4


class Point(NamedTuple):
    x: float
    y: float


class Corners(NamedTuple):
    """Four plate corners in source-image coordinates."""

    top_left: Point
    top_right: Point
    bottom_left: Point
    bottom_right: Point

    def scaled(self, sx: float, sy: float) -> "Corners":
        """Return the corners with x multiplied by *sx* and y by *sy*.

        Used to move corners between a displayed (resized) image and the
        natural-resolution image they were picked on.
        """
        return Corners(*(Point(p.x * sx, p.y * sy) for p in self))

    def as_array(self) -> np.ndarray:
        """4 x 2 float array in clockwise order: TL, TR, BR, BL."""
        return np.array([self.top_left, self.top_right,
                         self.bottom_right, self.bottom_left], dtype=float)

    @classmethod
    def from_array(cls, arr) -> "Corners":
        pts = np.asarray(arr, dtype=float).reshape(4, 2)
        tl, tr, br, bl = (Point(float(x), float(y)) for x, y in pts)
        return cls(top_left=tl, top_right=tr, bottom_left=bl, bottom_right=br)

    def area(self) -> float:
        """Shoelace area of the TL, TR, BR, BL polygon."""
        pts = self.as_array()
        x, y = pts[:, 0], pts[:, 1]
        return 0.5 * abs(float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))))


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """An 8-bit RGBA raster.

    Parameters
    ----------
    data : np.ndarray
        ``(height, width, 4)`` uint8 array, row-major.
    """

    data: np.ndarray

    def __post_init__(self):
        data = self.data
        if not isinstance(data, np.ndarray) or data.dtype != np.uint8:
            raise InvalidRasterError("pixel data must be a uint8 numpy array")
        if data.ndim != 3 or data.shape[2] != CHANNELS:
            raise InvalidRasterError(
                f"pixel data must be shaped (height, width, 4), got {data.shape}")
        if data.shape[0] < 1 or data.shape[1] < 1:
            raise InvalidRasterError("raster must be at least 1x1")

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def channels(self) -> int:
        return CHANNELS

    @property
    def stride(self) -> int:
        return self.width * CHANNELS

    @classmethod
    def blank(cls, width: int, height: int) -> "PixelBuffer":
        if width < 1 or height < 1:
            raise InvalidRasterError(f"invalid raster size {width}x{height}")
        return cls(np.zeros((height, width, CHANNELS), dtype=np.uint8))

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "PixelBuffer":
        """Build a buffer from a gray, RGB or RGBA uint8 array.

        Gray values are replicated into R, G and B; a missing alpha channel
        is filled with 255 (opaque).
        """
        arr = np.asarray(arr)
        if arr.dtype != np.uint8:
            raise InvalidRasterError(f"expected uint8 pixels, got {arr.dtype}")
        if arr.ndim == 2:
            arr = np.repeat(arr[:, :, np.newaxis], 3, axis=2)
        if arr.ndim != 3 or arr.shape[2] not in (3, CHANNELS):
            raise InvalidRasterError(f"unsupported pixel array shape {arr.shape}")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)
        return cls(np.ascontiguousarray(arr))

    @classmethod
    def from_bytes(cls, width: int, height: int, raw: bytes) -> "PixelBuffer":
        expected = width * height * CHANNELS
        if width < 1 or height < 1 or len(raw) != expected:
            raise InvalidRasterError(
                f"expected {expected} bytes for {width}x{height} RGBA, got {len(raw)}")
        data = np.frombuffer(raw, dtype=np.uint8).reshape(height, width, CHANNELS)
        return cls(data.copy())

    def to_bytes(self) -> bytes:
        return self.data.tobytes()
