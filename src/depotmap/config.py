"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .projection import BoundingBox

_HEX_COLOR_RE = re.compile(r"^#(?:[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})$")


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"Expected string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _positive_float(value: Any, field_name: str) -> float:
    out = _float(value, field_name)
    if out <= 0:
        raise ValueError(f"{field_name} must be > 0")
    return out


def _color(value: Any, field_name: str) -> str:
    raw = _str(value, field_name)
    if not _HEX_COLOR_RE.match(raw):
        raise ValueError(f"Expected hex color for '{field_name}', got '{raw}'")
    return raw


def _color_list(value: Any, field_name: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not value:
        raise ValueError(f"Expected non-empty list for '{field_name}'")
    return tuple(_color(item, f"{field_name}[{idx}]") for idx, item in enumerate(value))


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


def _source_from_cfg(value: Any, field_name: str, root_dir: Path) -> str:
    raw = _str(value, field_name)
    if raw.startswith(("http://", "https://")):
        return raw
    return str(_path_from_cfg(raw, field_name, root_dir))


@dataclass(frozen=True, slots=True)
class PathsConfig:
    base_map: str
    provinces: Path
    reference_colors: Path
    depots: Path
    anchor_overrides: Path
    output_dir: Path
    logs_dir: Path

    @property
    def required_input_files(self) -> tuple[Path, ...]:
        return (self.provinces, self.reference_colors, self.depots, self.anchor_overrides)

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.output_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            base_map=_source_from_cfg(raw.get("base_map"), "paths.base_map", root_dir),
            provinces=_path_from_cfg(raw.get("provinces"), "paths.provinces", root_dir),
            reference_colors=_path_from_cfg(
                raw.get("reference_colors"), "paths.reference_colors", root_dir
            ),
            depots=_path_from_cfg(raw.get("depots"), "paths.depots", root_dir),
            anchor_overrides=_path_from_cfg(
                raw.get("anchor_overrides"), "paths.anchor_overrides", root_dir
            ),
            output_dir=_path_from_cfg(raw.get("output_dir"), "paths.output_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class ProjectionConfig:
    bounds: BoundingBox
    zoom_out: float
    container_id: str
    name_attribute: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectionConfig:
        bounds_raw = _mapping(raw.get("bounds"), "projection.bounds")
        bounds = BoundingBox(
            min_lon=_float(bounds_raw.get("min_lon"), "projection.bounds.min_lon"),
            max_lon=_float(bounds_raw.get("max_lon"), "projection.bounds.max_lon"),
            min_lat=_float(bounds_raw.get("min_lat"), "projection.bounds.min_lat"),
            max_lat=_float(bounds_raw.get("max_lat"), "projection.bounds.max_lat"),
        )
        return cls(
            bounds=bounds,
            zoom_out=_positive_float(raw.get("zoom_out", 1.0), "projection.zoom_out"),
            container_id=_str(raw.get("container_id", "turkiye"), "projection.container_id"),
            name_attribute=_str(raw.get("name_attribute", "data-iladi"), "projection.name_attribute"),
        )


_FIXED_RING_CONSTANTS = ("road_distance_factor", "earth_radius_km")


@dataclass(frozen=True, slots=True)
class CoverageConfig:
    default_radius_km: float
    bearing_step_deg: float
    fill_alpha: float
    palette: tuple[str, ...]
    split_region: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> CoverageConfig:
        fill_alpha = _float(raw.get("fill_alpha", 0.15), "coverage.fill_alpha")
        if not 0.0 <= fill_alpha <= 1.0:
            raise ValueError("coverage.fill_alpha must be within [0, 1]")
        for fixed in _FIXED_RING_CONSTANTS:
            if fixed in raw:
                raise ValueError(f"coverage.{fixed} is a fixed constant and cannot be configured")
        return cls(
            default_radius_km=_positive_float(raw.get("default_radius_km"), "coverage.default_radius_km"),
            bearing_step_deg=_positive_float(raw.get("bearing_step_deg"), "coverage.bearing_step_deg"),
            fill_alpha=fill_alpha,
            palette=_color_list(raw.get("palette"), "coverage.palette"),
            split_region=_str(raw.get("split_region"), "coverage.split_region").lower(),
        )


@dataclass(frozen=True, slots=True)
class StyleConfig:
    neutral_fill: str
    region_stroke: str
    region_stroke_width: float
    label_color: str
    split_label_color: str
    label_halo: str
    font_size: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> StyleConfig:
        return cls(
            neutral_fill=_color(raw.get("neutral_fill"), "style.neutral_fill"),
            region_stroke=_color(raw.get("region_stroke"), "style.region_stroke"),
            region_stroke_width=_positive_float(raw.get("region_stroke_width"), "style.region_stroke_width"),
            label_color=_color(raw.get("label_color"), "style.label_color"),
            split_label_color=_color(raw.get("split_label_color"), "style.split_label_color"),
            label_halo=_str(raw.get("label_halo"), "style.label_halo"),
            font_size=_int(raw.get("font_size"), "style.font_size"),
        )


@dataclass(frozen=True, slots=True)
class StoreTablesConfig:
    counts: str
    colors: str
    radii: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> StoreTablesConfig:
        return cls(
            counts=_str(raw.get("counts"), "store.tables.counts"),
            colors=_str(raw.get("colors"), "store.tables.colors"),
            radii=_str(raw.get("radii"), "store.tables.radii"),
        )


@dataclass(frozen=True, slots=True)
class StoreConfig:
    url: str
    anon_key: str
    url_env: str
    key_env: str
    request_timeout_s: float
    debounce_s: float
    tables: StoreTablesConfig

    @property
    def configured(self) -> bool:
        return bool(self.url and self.anon_key)

    def resolved(self) -> StoreConfig:
        """Copy with URL and key taken from the environment where set."""
        return StoreConfig(
            url=os.environ.get(self.url_env, self.url).strip(),
            anon_key=os.environ.get(self.key_env, self.anon_key).strip(),
            url_env=self.url_env,
            key_env=self.key_env,
            request_timeout_s=self.request_timeout_s,
            debounce_s=self.debounce_s,
            tables=self.tables,
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> StoreConfig:
        debounce_s = _float(raw.get("debounce_s", 0.3), "store.debounce_s")
        if debounce_s < 0:
            raise ValueError("store.debounce_s must be >= 0")
        return cls(
            url=_optional_str(raw.get("url"), "store.url"),
            anon_key=_optional_str(raw.get("anon_key"), "store.anon_key"),
            url_env=_str(raw.get("url_env", "SUPABASE_URL"), "store.url_env"),
            key_env=_str(raw.get("key_env", "SUPABASE_ANON_KEY"), "store.key_env"),
            request_timeout_s=_positive_float(raw.get("request_timeout_s", 15), "store.request_timeout_s"),
            debounce_s=debounce_s,
            tables=StoreTablesConfig.from_mapping(_mapping(raw.get("tables"), "store.tables")),
        )


@dataclass(frozen=True, slots=True)
class ExportConfig:
    page_width_pt: float
    page_height_pt: float
    margin_pt: float
    scale: float
    background: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ExportConfig:
        page = _mapping(raw.get("page"), "export.page")
        width = _positive_float(page.get("width_pt"), "export.page.width_pt")
        height = _positive_float(page.get("height_pt"), "export.page.height_pt")
        margin = _float(raw.get("margin_pt"), "export.margin_pt")
        if margin < 0 or 2 * margin >= min(width, height):
            raise ValueError("export.margin_pt must be >= 0 and leave a printable area")
        return cls(
            page_width_pt=width,
            page_height_pt=height,
            margin_pt=margin,
            scale=_positive_float(raw.get("scale"), "export.scale"),
            background=_color(raw.get("background"), "export.background"),
        )


@dataclass(frozen=True, slots=True)
class WorldConfig:
    width_px: int
    height_px: int
    dpi: int
    basemap: str
    padding_ratio: float
    show_labels: bool

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> WorldConfig:
        show_labels = raw.get("show_labels", True)
        if not isinstance(show_labels, bool):
            raise ValueError("Expected bool for 'world.show_labels'")
        return cls(
            width_px=_int(raw.get("width_px"), "world.width_px"),
            height_px=_int(raw.get("height_px"), "world.height_px"),
            dpi=_int(raw.get("dpi"), "world.dpi"),
            basemap=_str(raw.get("basemap"), "world.basemap"),
            padding_ratio=_float(raw.get("padding_ratio", 0.1), "world.padding_ratio"),
            show_labels=show_labels,
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    paths: PathsConfig
    projection: ProjectionConfig
    coverage: CoverageConfig
    style: StyleConfig
    store: StoreConfig
    export: ExportConfig
    world: WorldConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            projection=ProjectionConfig.from_mapping(_mapping(raw.get("projection"), "projection")),
            coverage=CoverageConfig.from_mapping(_mapping(raw.get("coverage"), "coverage")),
            style=StyleConfig.from_mapping(_mapping(raw.get("style"), "style")),
            store=StoreConfig.from_mapping(_mapping(raw.get("store"), "store")).resolved(),
            export=ExportConfig.from_mapping(_mapping(raw.get("export"), "export")),
            world=WorldConfig.from_mapping(_mapping(raw.get("world"), "world")),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
