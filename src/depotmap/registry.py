"""Region registry: id -> Region with derived centroids and depot anchors."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from shapely.geometry import LineString
from shapely.geometry import Point as ShapelyPoint
from shapely.ops import unary_union

from .basemap import RawRegion
from .models import BBox, Point, Region, SplitAnchor
from .names import PAINT_STRATEGIES, normalize_id, resolve_region

_LOGGER = logging.getLogger("depotmap.registry")

_NO_OFFSETS: Mapping[str, Point] = MappingProxyType({})
_NO_SPLITS: Mapping[str, tuple[SplitAnchor, ...]] = MappingProxyType({})


def region_bounds(raw: RawRegion) -> BBox:
    """Bounding box of the union of every subpath of one region."""
    parts = []
    for points in raw.subpaths:
        if len(points) >= 2:
            parts.append(LineString(points))
        elif points:
            parts.append(ShapelyPoint(points[0]))
    if not parts:
        raise ValueError(f"Region '{raw.id}' has no geometry")
    minx, miny, maxx, maxy = unary_union(parts).bounds
    return (float(minx), float(miny), float(maxx), float(maxy))


class RegionRegistry(Mapping[str, Region]):
    """Read-only mapping of lowercase region id to Region."""

    def __init__(
        self,
        regions: Iterable[Region],
        split_anchors: Mapping[str, tuple[SplitAnchor, ...]] = _NO_SPLITS,
    ) -> None:
        by_id: dict[str, Region] = {}
        for region in regions:
            if region.id in by_id:
                raise ValueError(f"Duplicate region id '{region.id}'")
            by_id[region.id] = region
        self._regions = by_id
        self._split_anchors = dict(split_anchors)
        self._split_by_depot: dict[str, tuple[str, SplitAnchor]] = {}
        for region_id, anchors in self._split_anchors.items():
            for anchor in anchors:
                self._split_by_depot[anchor.depot_id] = (region_id, anchor)

    def __getitem__(self, region_id: str) -> Region:
        return self._regions[region_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._regions)

    def __len__(self) -> int:
        return len(self._regions)

    @property
    def split_regions(self) -> tuple[str, ...]:
        return tuple(self._split_anchors)

    def split_anchors_for(self, region_id: str) -> tuple[SplitAnchor, ...]:
        return self._split_anchors.get(normalize_id(region_id), ())

    def split_position(self, anchor: SplitAnchor, region_id: str) -> Point | None:
        region = self._regions.get(normalize_id(region_id))
        if region is None:
            return None
        return anchor.position(region.bbox)

    def resolve(self, identifier: str) -> Region | None:
        match = resolve_region(identifier, self._regions, PAINT_STRATEGIES)
        return None if match is None else match[0]

    def anchor_for(self, depot_id: str) -> Point | None:
        """Planar ring/dot anchor for a depot, or None when it cannot be placed."""
        split = self._split_by_depot.get(depot_id.strip())
        if split is not None:
            region_id, anchor = split
            position = self.split_position(anchor, region_id)
            if position is None:
                _LOGGER.warning("Split depot '%s' needs region '%s', which is not loaded.", depot_id, region_id)
            return position
        region = self.resolve(depot_id)
        if region is None:
            _LOGGER.warning("No region for depot '%s'; anchor unavailable.", depot_id)
            return None
        return region.anchor

    def label_for(self, depot_id: str) -> str:
        if depot_id.strip() in self._split_by_depot:
            return depot_id.strip()
        region = self.resolve(depot_id)
        return depot_id if region is None else region.display_name


def build_registry(
    raw_regions: Iterable[RawRegion],
    *,
    anchor_offsets: Mapping[str, Point] = _NO_OFFSETS,
    split_anchors: Mapping[str, tuple[SplitAnchor, ...]] = _NO_SPLITS,
) -> RegionRegistry:
    """Derive centroids (bounding-box centers) once per region."""
    regions: list[Region] = []
    for raw in raw_regions:
        bbox = region_bounds(raw)
        centroid = ((bbox[0] + bbox[2]) / 2.0, (bbox[1] + bbox[3]) / 2.0)
        regions.append(
            Region(
                id=normalize_id(raw.id),
                display_name=raw.display_name,
                centroid=centroid,
                bbox=bbox,
                anchor_override=anchor_offsets.get(normalize_id(raw.id)),
            )
        )
    registry = RegionRegistry(regions, split_anchors=split_anchors)
    for region_id in registry.split_regions:
        if region_id not in registry:
            _LOGGER.warning("Split region '%s' is not present in the base map.", region_id)
    _LOGGER.info("Registry built with %d regions", len(registry))
    return registry
