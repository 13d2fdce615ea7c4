"""
Error taxonomy for plate rectification.

Insufficient edges is recoverable (detection falls back to a default
rectangle); a degenerate quadrilateral is not and always reaches the caller.
"""


class RectificationError(Exception):
    """Base class for every error raised by the rectification engine."""


class InsufficientEdgesError(RectificationError):
    """Too few strong-edge pixels survived thresholding to fit a hull."""

    def __init__(self, found: int, required: int):
        super().__init__(f"only {found} edge points found, {required} required")
        self.found = found
        self.required = required


class DegenerateQuadError(RectificationError, ValueError):
    """Corners are collinear, duplicated, zero-area or non-finite."""


class InvalidRasterError(RectificationError, ValueError):
    """A pixel buffer has an unsupported shape, dtype or byte count."""


class ConfigError(RectificationError, ValueError):
    """A configuration file is unreadable or holds out-of-range values."""
