"""Projections between geographic coordinates and the planar map surface."""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from .models import Point


@dataclass(frozen=True, slots=True)
class BoundingBox:
    min_lon: float
    max_lon: float
    min_lat: float
    max_lat: float

    def __post_init__(self) -> None:
        if not self.max_lon > self.min_lon:
            raise ValueError("Bounding box max_lon must be greater than min_lon")
        if not self.max_lat > self.min_lat:
            raise ValueError("Bounding box max_lat must be greater than min_lat")

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


@dataclass(frozen=True, slots=True)
class Viewport:
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if not self.width > 0 or not self.height > 0:
            raise ValueError("Viewport width and height must be positive")
        if not all(math.isfinite(v) for v in (self.x, self.y, self.width, self.height)):
            raise ValueError("Viewport values must be finite")

    @classmethod
    def from_view_box(cls, raw: str) -> Viewport:
        parts = raw.replace(",", " ").split()
        if len(parts) != 4:
            raise ValueError(f"Invalid viewBox '{raw}'")
        x, y, width, height = (float(part) for part in parts)
        return cls(x=x, y=y, width=width, height=height)

    def to_view_box(self) -> str:
        return f"{_fmt(self.x)} {_fmt(self.y)} {_fmt(self.width)} {_fmt(self.height)}"

    def zoomed_out(self, factor: float) -> Viewport:
        """Grow the viewport around its center by `factor`."""
        if factor <= 0:
            raise ValueError("Zoom factor must be positive")
        new_w = self.width * factor
        new_h = self.height * factor
        return Viewport(
            x=self.x - (new_w - self.width) / 2,
            y=self.y - (new_h - self.height) / 2,
            width=new_w,
            height=new_h,
        )


# Approximate lon/lat box of Turkey that the province base map spans.
TURKEY_BOUNDS = BoundingBox(min_lon=26.0, max_lon=44.8, min_lat=35.8, max_lat=42.1)


class Projection:
    """Linear (equirectangular) mapping from a lon/lat box onto a viewport.

    Coordinates outside the box are projected outside the viewport; large
    coverage rings legitimately spill past the box edges.
    """

    def __init__(self, bounds: BoundingBox, viewport: Viewport) -> None:
        self.bounds = bounds
        self.viewport = viewport

    def to_planar(self, lat: float, lon: float) -> Point:
        b = self.bounds
        vp = self.viewport
        x = vp.x + (lon - b.min_lon) / (b.max_lon - b.min_lon) * vp.width
        y = vp.y + (b.max_lat - lat) / (b.max_lat - b.min_lat) * vp.height
        return (x, y)

    def to_geo(self, x: float, y: float) -> Point:
        b = self.bounds
        vp = self.viewport
        lon = b.min_lon + (x - vp.x) / vp.width * (b.max_lon - b.min_lon)
        lat = b.max_lat - (y - vp.y) / vp.height * (b.max_lat - b.min_lat)
        return (lat, lon)

    def __call__(self, lat: float, lon: float) -> Point:
        return self.to_planar(lat, lon)


class WebMercatorProjection:
    """Global Web Mercator (EPSG:3857) with the same contract as `Projection`."""

    def to_planar(self, lat: float, lon: float) -> Point:
        x, y = _forward_transformer().transform(float(lon), float(lat))
        return (float(x), float(y))

    def to_geo(self, x: float, y: float) -> Point:
        lon, lat = _inverse_transformer().transform(float(x), float(y))
        return (float(lat), float(lon))

    def __call__(self, lat: float, lon: float) -> Point:
        return self.to_planar(lat, lon)


def _fmt(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


@lru_cache(maxsize=1)
def _forward_transformer() -> Any:
    return _require_pyproj_transformer().from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


@lru_cache(maxsize=1)
def _inverse_transformer() -> Any:
    return _require_pyproj_transformer().from_crs("EPSG:3857", "EPSG:4326", always_xy=True)


def _require_pyproj_transformer() -> Any:
    try:
        from pyproj import Transformer
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pyproj is required for Web Mercator projection") from exc
    return Transformer
