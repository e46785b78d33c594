"""Domain models shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping

Point = tuple[float, float]
BBox = tuple[float, float, float, float]


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _require_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Expected numeric value for '{field_name}'")
    return float(value)


@dataclass(frozen=True, slots=True)
class Region:
    """One drawable province group from the base map."""

    id: str
    display_name: str
    centroid: Point
    bbox: BBox
    anchor_override: Point | None = None

    @property
    def anchor(self) -> Point:
        if self.anchor_override is None:
            return self.centroid
        return (self.centroid[0] + self.anchor_override[0], self.centroid[1] + self.anchor_override[1])


@dataclass(frozen=True, slots=True)
class SplitAnchor:
    """Synthetic depot placed at a fractional position inside a region's bbox."""

    depot_id: str
    tag: str
    fx: float
    fy: float

    @classmethod
    def from_mapping(cls, depot_id: str, data: Mapping[str, Any]) -> SplitAnchor:
        fx = _require_number(data.get("fx"), f"{depot_id}.fx")
        fy = _require_number(data.get("fy"), f"{depot_id}.fy")
        if not 0.0 <= fx <= 1.0 or not 0.0 <= fy <= 1.0:
            raise ValueError(f"Split anchor fractions for '{depot_id}' must be within [0, 1]")
        return cls(
            depot_id=_require_str(depot_id, "split anchor id"),
            tag=_require_str(data.get("tag"), f"{depot_id}.tag"),
            fx=fx,
            fy=fy,
        )

    def position(self, bbox: BBox) -> Point:
        x0, y0, x1, y1 = bbox
        return (x0 + (x1 - x0) * self.fx, y0 + (y1 - y0) * self.fy)


@dataclass(frozen=True, slots=True)
class DepotCoord:
    """Depot location in geographic coordinates."""

    depot_id: str
    lat: float
    lon: float

    @classmethod
    def from_mapping(cls, depot_id: str, data: Mapping[str, Any]) -> DepotCoord:
        lat = _require_number(data.get("lat"), f"{depot_id}.lat")
        lon = _require_number(data.get("lon"), f"{depot_id}.lon")
        if lon < -180.0 or lon > 180.0:
            raise ValueError(f"{depot_id}.lon must be between -180 and 180")
        if lat < -90.0 or lat > 90.0:
            raise ValueError(f"{depot_id}.lat must be between -90 and 90")
        return cls(depot_id=_require_str(depot_id, "depot id"), lat=lat, lon=lon)


@dataclass(frozen=True, slots=True)
class CityAttribute:
    """One persisted per-city value, keyed by display name."""

    region_key: str
    value: Any


@dataclass(frozen=True, slots=True)
class CoverageRing:
    depot_id: str
    label: str
    color_index: int
    color: str
    radius_km: float
    center: Point
    anchor: Point
    polygon: tuple[Point, ...]


class DepotSelection:
    """Depots showing a coverage ring.

    Equality is by membership. Iteration follows insertion order, which is
    what positional palette assignment reads.
    """

    __slots__ = ("_ids",)

    def __init__(self, depot_ids: Iterable[str] = ()) -> None:
        self._ids: dict[str, None] = {}
        for depot_id in depot_ids:
            self.add(depot_id)

    def add(self, depot_id: str) -> None:
        self._ids.setdefault(_require_str(depot_id, "depot id"), None)

    def index_of(self, depot_id: str) -> int | None:
        for idx, current in enumerate(self._ids):
            if current == depot_id:
                return idx
        return None

    def ordered(self) -> tuple[str, ...]:
        return tuple(self._ids)

    def __contains__(self, depot_id: object) -> bool:
        return depot_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DepotSelection):
            return NotImplemented
        return set(self._ids) == set(other._ids)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"DepotSelection({list(self._ids)!r})"
