"""Validation layer for config, data tables and the base map."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from .basemap import BaseMapRepository
from .config import AppConfig
from .datafiles import (
    AnchorTable,
    DepotTable,
    load_anchor_table,
    load_depots,
    load_provinces,
    load_reference_colors,
)
from .errors import GeometrySourceUnavailable
from .names import fold_name
from .util import format_code_list

EXPECTED_PROVINCES = 81


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Top-level input and schema validator."""

    def __init__(self, cfg: AppConfig) -> None:
        self.cfg = cfg

    def run(self, *, check_base_map: bool = True, strict: bool = False) -> ValidationReport:
        report = ValidationReport()
        self._validate_config_paths(report)
        provinces = self._validate_provinces(report)
        self._validate_reference_colors(report, provinces)
        anchors = self._validate_anchor_table(report, provinces)
        self._validate_depots(report, provinces, anchors)
        if check_base_map:
            self._validate_base_map(report, provinces, strict=strict)
        self._validate_store(report)
        return report

    def _validate_config_paths(self, report: ValidationReport) -> None:
        for path in self.cfg.paths.required_input_files:
            if not path.exists():
                report.add_error(f"Missing required input file: {path}")

    def _validate_provinces(self, report: ValidationReport) -> Mapping[str, str]:
        path = self.cfg.paths.provinces
        if not path.exists():
            return {}
        try:
            provinces = load_provinces(path)
        except Exception as exc:
            report.add_error(f"Failed parsing provinces file '{path}': {exc}")
            return {}
        report.add_info(f"Loaded {len(provinces)} provinces from {path}")
        if len(provinces) != EXPECTED_PROVINCES:
            report.add_warning(f"Expected {EXPECTED_PROVINCES} provinces but found {len(provinces)}.")
        folded: dict[str, str] = {}
        for province_id, name in provinces.items():
            key = fold_name(name)
            if key in folded:
                report.add_error(f"Province names fold to the same key: {folded[key]}, {province_id}")
            folded[key] = province_id
        return provinces

    def _validate_reference_colors(self, report: ValidationReport, provinces: Mapping[str, str]) -> None:
        path = self.cfg.paths.reference_colors
        if not path.exists():
            return
        try:
            reference = load_reference_colors(path)
        except Exception as exc:
            report.add_error(f"Failed parsing reference colors: {exc}")
            return
        report.add_info(f"Loaded {len(reference.colors)} reference colors (default {reference.default})")
        unknown = sorted(set(reference.colors) - set(provinces)) if provinces else []
        if unknown:
            report.add_warning(f"Reference colors for unknown provinces: {format_code_list(unknown)}")
        uncovered = sorted(set(provinces) - set(reference.colors))
        if uncovered:
            report.add_info(f"Provinces using the default color: {format_code_list(uncovered)}")

    def _validate_anchor_table(self, report: ValidationReport, provinces: Mapping[str, str]) -> AnchorTable | None:
        path = self.cfg.paths.anchor_overrides
        if not path.exists():
            return None
        try:
            anchors = load_anchor_table(path)
        except Exception as exc:
            report.add_error(f"Failed parsing anchor overrides: {exc}")
            return None
        report.add_info(
            f"Loaded {len(anchors.offsets)} anchor offsets and "
            f"{sum(len(v) for v in anchors.split_anchors.values())} split anchors"
        )
        if provinces:
            unknown = sorted((set(anchors.offsets) | set(anchors.split_anchors)) - set(provinces))
            if unknown:
                report.add_warning(f"Anchor entries for unknown provinces: {format_code_list(unknown)}")
        split_region = self.cfg.coverage.split_region
        if split_region not in anchors.split_anchors:
            report.add_warning(f"No split anchors configured for split region '{split_region}'")
        return anchors

    def _validate_depots(
        self,
        report: ValidationReport,
        provinces: Mapping[str, str],
        anchors: AnchorTable | None,
    ) -> DepotTable | None:
        path = self.cfg.paths.depots
        if not path.exists():
            return None
        try:
            depots = load_depots(path)
        except Exception as exc:
            report.add_error(f"Failed parsing depots file '{path}': {exc}")
            return None
        report.add_info(f"Loaded {len(depots.coords)} depots")
        synthetic = set()
        if anchors is not None:
            synthetic = {a.depot_id for items in anchors.split_anchors.values() for a in items}
        unplaced = sorted(
            depot_id for depot_id in depots.coords if depot_id not in synthetic and depot_id not in provinces
        )
        if provinces and unplaced:
            report.add_warning(f"Depots matching no province or split anchor: {format_code_list(unplaced)}")
        bounds = self.cfg.projection.bounds
        outside = sorted(d for d, c in depots.coords.items() if not bounds.contains(c.lat, c.lon))
        if outside:
            report.add_warning(f"Depots outside the projection bounds: {format_code_list(outside)}")
        unknown_overrides = sorted(set(depots.default_radius_overrides_km) - set(depots.coords))
        if unknown_overrides:
            report.add_warning(f"Radius overrides for unknown depots: {format_code_list(unknown_overrides)}")
        return depots

    def _validate_base_map(self, report: ValidationReport, provinces: Mapping[str, str], *, strict: bool) -> None:
        source = self.cfg.paths.base_map
        is_url = source.startswith(("http://", "https://"))
        if not is_url and not Path(source).exists():
            msg = f"Base map not found: {source}"
            if strict:
                report.add_error(msg)
            else:
                report.add_warning(msg)
            return
        repo = BaseMapRepository(
            source,
            container_id=self.cfg.projection.container_id,
            name_attribute=self.cfg.projection.name_attribute,
        )
        try:
            document = repo.load()
        except GeometrySourceUnavailable as exc:
            report.add_error(str(exc))
            return
        region_ids = {region.id for region in document.regions}
        report.add_info(f"Base map has {len(region_ids)} region groups")
        if provinces:
            missing = sorted(set(provinces) - region_ids)
            extra = sorted(region_ids - set(provinces))
            if missing:
                report.add_warning(f"Provinces missing from base map: {format_code_list(missing)}")
            if extra:
                report.add_warning(f"Base map groups not in province list: {format_code_list(extra)}")

    def _validate_store(self, report: ValidationReport) -> None:
        store = self.cfg.store
        if store.configured:
            report.add_info(f"Attribute store configured at {store.url}")
        else:
            report.add_warning(
                f"Attribute store not configured; set {store.url_env} and {store.key_env} "
                "to enable counts, colors and radii."
            )


def format_report_lines(report: ValidationReport) -> Iterable[str]:
    for info in report.infos:
        yield f"[INFO] {info}"
    for warning in report.warnings:
        yield f"[WARN] {warning}"
    for error in report.errors:
        yield f"[ERROR] {error}"
    if report.ok:
        yield "[OK] Validation completed with no errors."
