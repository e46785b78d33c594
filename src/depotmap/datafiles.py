"""Loading of the static YAML tables under `data/`."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from .models import DepotCoord, Point, SplitAnchor
from .names import normalize_id

_HEX_COLOR_RE = re.compile(r"^#(?:[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})$")

_EMPTY: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class ReferencePalette:
    default: str
    colors: Mapping[str, str] = field(default_factory=lambda: _EMPTY)

    def color_for(self, region_id: str) -> str:
        return self.colors.get(normalize_id(region_id), self.default)


@dataclass(frozen=True, slots=True)
class DepotTable:
    coords: Mapping[str, DepotCoord]
    default_radius_overrides_km: Mapping[str, float]

    @property
    def depot_ids(self) -> tuple[str, ...]:
        return tuple(self.coords)


@dataclass(frozen=True, slots=True)
class AnchorTable:
    offsets: Mapping[str, Point]
    split_anchors: Mapping[str, tuple[SplitAnchor, ...]]


def _read_yaml_mapping(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, dict):
        raise ValueError(f"Expected mapping in {path}")
    return raw


def _key(value: Any, path: Path, what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{what} key must be a non-empty string in {path}")
    return value.strip()


def load_provinces(path: Path) -> Mapping[str, str]:
    """Province id -> display name, in file order."""
    raw = _read_yaml_mapping(path)
    items = raw.get("provinces")
    if not isinstance(items, list) or not items:
        raise ValueError(f"Expected non-empty 'provinces' list in {path}")
    out: dict[str, str] = {}
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"provinces[{idx}] must be a mapping in {path}")
        province_id = normalize_id(_key(item.get("id"), path, f"provinces[{idx}].id"))
        name = _key(item.get("name"), path, f"provinces[{idx}].name")
        if province_id in out:
            raise ValueError(f"Duplicate province id '{province_id}' in {path}")
        out[province_id] = name
    return MappingProxyType(out)


def load_reference_colors(path: Path) -> ReferencePalette:
    raw = _read_yaml_mapping(path)
    default = raw.get("default", "#d1d5db")
    if not isinstance(default, str) or not _HEX_COLOR_RE.match(default):
        raise ValueError(f"Invalid default color in {path}")
    colors_raw = raw.get("colors") or {}
    if not isinstance(colors_raw, dict):
        raise ValueError(f"Expected 'colors' mapping in {path}")
    colors: dict[str, str] = {}
    for key, value in colors_raw.items():
        region_id = normalize_id(_key(key, path, "Reference color"))
        if not isinstance(value, str) or not _HEX_COLOR_RE.match(value.strip()):
            raise ValueError(f"Invalid color for '{region_id}' in {path}")
        colors[region_id] = value.strip()
    return ReferencePalette(default=default, colors=MappingProxyType(colors))


def load_depots(path: Path) -> DepotTable:
    raw = _read_yaml_mapping(path)
    depots_raw = raw.get("depots")
    if not isinstance(depots_raw, dict) or not depots_raw:
        raise ValueError(f"Expected non-empty 'depots' mapping in {path}")
    coords: dict[str, DepotCoord] = {}
    for key, value in depots_raw.items():
        depot_id = _key(key, path, "Depot")
        if not isinstance(value, dict):
            raise ValueError(f"Depot '{depot_id}' must be a mapping in {path}")
        coords[depot_id] = DepotCoord.from_mapping(depot_id, value)

    overrides_raw = raw.get("default_radius_overrides_km") or {}
    if not isinstance(overrides_raw, dict):
        raise ValueError(f"Expected 'default_radius_overrides_km' mapping in {path}")
    overrides: dict[str, float] = {}
    for key, value in overrides_raw.items():
        depot_id = _key(key, path, "Radius override")
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValueError(f"Radius override for '{depot_id}' must be a positive number in {path}")
        overrides[depot_id] = float(value)
    return DepotTable(coords=MappingProxyType(coords), default_radius_overrides_km=MappingProxyType(overrides))


def load_anchor_table(path: Path) -> AnchorTable:
    raw = _read_yaml_mapping(path)
    offsets_raw = raw.get("offsets") or {}
    if not isinstance(offsets_raw, dict):
        raise ValueError(f"Expected 'offsets' mapping in {path}")
    offsets: dict[str, Point] = {}
    for key, value in offsets_raw.items():
        region_id = normalize_id(_key(key, path, "Anchor offset"))
        if (
            not isinstance(value, list)
            or len(value) != 2
            or any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in value)
        ):
            raise ValueError(f"Anchor offset for '{region_id}' must be [dx, dy] in {path}")
        offsets[region_id] = (float(value[0]), float(value[1]))

    splits_raw = raw.get("split_anchors") or {}
    if not isinstance(splits_raw, dict):
        raise ValueError(f"Expected 'split_anchors' mapping in {path}")
    splits: dict[str, tuple[SplitAnchor, ...]] = {}
    for key, value in splits_raw.items():
        region_id = normalize_id(_key(key, path, "Split region"))
        if not isinstance(value, dict) or not value:
            raise ValueError(f"Split anchors for '{region_id}' must be a non-empty mapping in {path}")
        splits[region_id] = tuple(
            SplitAnchor.from_mapping(depot_id, spec) for depot_id, spec in value.items()
        )
    return AnchorTable(offsets=MappingProxyType(offsets), split_anchors=MappingProxyType(splits))
