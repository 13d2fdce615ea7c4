"""
YAML configuration for the rectification pipeline.

Missing sections and keys fall back to the library defaults, so an empty
file is a valid configuration.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import yaml

from plate_rectify.core.errors import ConfigError
from plate_rectify.core.raster import Corners
from plate_rectify.detectors.edge_points import DEFAULT_THRESHOLD, MIN_EDGE_POINTS
from plate_rectify.geometry.corners import DEFAULT_MARGIN
from plate_rectify.geometry.hull import MAX_HULL_POINTS
from plate_rectify.warping.rectify import DEFAULT_CHUNK_ROWS, MIN_SAMPLED_FRACTION, TRANSPARENT


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_int(value, key: str) -> None:
    if not _is_int(value):
        raise ConfigError(f"{key} must be an integer, got {value!r}")


def _require_number(value, key: str) -> None:
    if not _is_number(value):
        raise ConfigError(f"{key} must be a number, got {value!r}")


@dataclass
class DetectionConfig:
    edge_threshold: float = DEFAULT_THRESHOLD
    min_edge_points: int = MIN_EDGE_POINTS
    max_hull_points: int = MAX_HULL_POINTS
    default_margin: float = DEFAULT_MARGIN

    def validate(self) -> None:
        _require_number(self.edge_threshold, "detection.edge_threshold")
        _require_int(self.min_edge_points, "detection.min_edge_points")
        _require_int(self.max_hull_points, "detection.max_hull_points")
        _require_number(self.default_margin, "detection.default_margin")
        if not 0 < self.edge_threshold < 1:
            raise ConfigError(f"detection.edge_threshold must be in (0, 1), got {self.edge_threshold}")
        if self.min_edge_points < 1:
            raise ConfigError("detection.min_edge_points must be >= 1")
        if self.max_hull_points < 3:
            raise ConfigError("detection.max_hull_points must be >= 3")
        if not 0 <= self.default_margin < 0.5:
            raise ConfigError(f"detection.default_margin must be in [0, 0.5), got {self.default_margin}")


@dataclass
class RectifyConfig:
    workers: int = 1
    chunk_rows: int = DEFAULT_CHUNK_ROWS
    min_sampled_fraction: float = MIN_SAMPLED_FRACTION
    fill: tuple = TRANSPARENT

    def validate(self) -> None:
        _require_int(self.workers, "rectify.workers")
        _require_int(self.chunk_rows, "rectify.chunk_rows")
        _require_number(self.min_sampled_fraction, "rectify.min_sampled_fraction")
        if self.workers < 1:
            raise ConfigError("rectify.workers must be >= 1")
        if self.chunk_rows < 1:
            raise ConfigError("rectify.chunk_rows must be >= 1")
        if not 0 <= self.min_sampled_fraction <= 1:
            raise ConfigError("rectify.min_sampled_fraction must be in [0, 1]")
        if (not isinstance(self.fill, tuple) or len(self.fill) != 4 or
                not all(_is_int(c) and 0 <= c <= 255 for c in self.fill)):
            raise ConfigError(f"rectify.fill must be four ints in 0..255, got {self.fill!r}")


@dataclass
class IOConfig:
    max_width: Optional[int] = 1200

    def validate(self) -> None:
        if self.max_width is None:
            return
        _require_int(self.max_width, "io.max_width")
        if self.max_width < 1:
            raise ConfigError("io.max_width must be >= 1 or null")


@dataclass
class ImageJob:
    name: str
    path: str
    corners: Optional[Corners] = None


@dataclass
class PipelineConfig:
    results_dir: str = "results"
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    rectify: RectifyConfig = field(default_factory=RectifyConfig)
    io: IOConfig = field(default_factory=IOConfig)
    images: List[ImageJob] = field(default_factory=list)


def _section(cls, raw, name):
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    unknown = set(raw) - set(cls.__dataclass_fields__)
    if unknown:
        raise ConfigError(f"unknown keys in '{name}': {sorted(unknown)}")
    try:
        section = cls(**raw)
    except TypeError as exc:
        raise ConfigError(f"invalid '{name}' section: {exc}") from exc
    try:
        section.validate()
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid '{name}' section: {exc}") from exc
    return section


def _parse_corners(raw, name) -> Corners:
    """Corners are listed as [[x, y], ...] in TL, TR, BL, BR order."""
    try:
        (tl, tr, bl, br) = [(float(x), float(y)) for x, y in raw]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"image '{name}': corners must be four [x, y] pairs") from exc
    return Corners.from_array([tl, tr, br, bl])


def _parse_image(raw) -> ImageJob:
    if not isinstance(raw, dict) or "name" not in raw or "path" not in raw:
        raise ConfigError(f"image entries need 'name' and 'path', got {raw!r}")
    corners = raw.get("corners")
    if corners is not None:
        corners = _parse_corners(corners, raw["name"])
    return ImageJob(name=str(raw["name"]), path=str(raw["path"]), corners=corners)


def parse_config(raw: dict) -> PipelineConfig:
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError("configuration root must be a mapping")

    rectify_raw = raw.get("rectify")
    if isinstance(rectify_raw, dict) and isinstance(rectify_raw.get("fill"), list):
        rectify_raw = dict(rectify_raw, fill=tuple(rectify_raw["fill"]))

    return PipelineConfig(
        results_dir=str(raw.get("results_dir", "results")),
        detection=_section(DetectionConfig, raw.get("detection"), "detection"),
        rectify=_section(RectifyConfig, rectify_raw, "rectify"),
        io=_section(IOConfig, raw.get("io"), "io"),
        images=[_parse_image(item) for item in raw.get("images") or []],
    )


def load_config(path: str) -> PipelineConfig:
    try:
        with open(path, "r") as fh:
            raw = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    return parse_config(raw)
