"""Province map pipeline: base map -> registry -> paint, labels and rings."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from .basemap import BaseMapDocument, BaseMapRepository
from .config import AppConfig
from .coverage import CoverageOrchestrator, DrawPlan, RingParameters
from .datafiles import (
    AnchorTable,
    DepotTable,
    ReferencePalette,
    load_anchor_table,
    load_depots,
    load_provinces,
    load_reference_colors,
)
from .errors import DepotMapError, GeometrySourceUnavailable
from .export import export_pdf, export_png
from .labels import render_labels
from .models import DepotSelection
from .paint import PaintEngine, PaintReport
from .projection import Projection
from .registry import RegionRegistry, build_registry
from .surface import LABELS_LAYER_ID, MapSurface
from .world import WorldMapRenderer, WorldRenderReport, WorldRenderRequest

_LOGGER = logging.getLogger("depotmap.render")


@dataclass(frozen=True, slots=True)
class MapData:
    provinces: Mapping[str, str]
    reference: ReferencePalette
    depots: DepotTable
    anchors: AnchorTable


@dataclass(frozen=True, slots=True)
class StoreSnapshot:
    counts: Mapping[str, Any] = field(default_factory=dict)
    colors: Mapping[str, str] = field(default_factory=dict)
    radii: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RenderReport:
    outputs: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def load_map_data(cfg: AppConfig) -> MapData:
    return MapData(
        provinces=load_provinces(cfg.paths.provinces),
        reference=load_reference_colors(cfg.paths.reference_colors),
        depots=load_depots(cfg.paths.depots),
        anchors=load_anchor_table(cfg.paths.anchor_overrides),
    )


def ring_parameters(cfg: AppConfig) -> RingParameters:
    return RingParameters(
        bearing_step_deg=cfg.coverage.bearing_step_deg,
        fill_alpha=cfg.coverage.fill_alpha,
    )


class TurkeyMap:
    """One loaded province map with its registry, projection and drawing engines."""

    def __init__(self, cfg: AppConfig, document: BaseMapDocument, data: MapData) -> None:
        self.cfg = cfg
        self.data = data
        self.surface = MapSurface(document)
        viewport = self.surface.zoom_out(cfg.projection.zoom_out)
        self.projection = Projection(cfg.projection.bounds, viewport)
        self.registry: RegionRegistry = build_registry(
            document.regions,
            anchor_offsets=data.anchors.offsets,
            split_anchors=data.anchors.split_anchors,
        )
        self.paint = PaintEngine(
            self.surface,
            self.registry,
            neutral_fill=cfg.style.neutral_fill,
            stroke=cfg.style.region_stroke,
            stroke_width=cfg.style.region_stroke_width,
        )
        self.orchestrator = CoverageOrchestrator(
            palette=cfg.coverage.palette,
            default_overrides=data.depots.default_radius_overrides_km,
            params=ring_parameters(cfg),
        )
        self.orchestrator.load_geometry(self.registry, self.projection)
        _LOGGER.info("Province map ready: %d regions, viewBox %s", len(self.registry), viewport.to_view_box())

    @classmethod
    def load(
        cls,
        cfg: AppConfig,
        data: MapData,
        *,
        cancel_event: threading.Event | None = None,
        session: Any | None = None,
    ) -> TurkeyMap:
        repo = BaseMapRepository(
            cfg.paths.base_map,
            container_id=cfg.projection.container_id,
            name_attribute=cfg.projection.name_attribute,
            session=session,
        )
        document = repo.load(cancel_event=cancel_event)
        try:
            return cls(cfg, document, data)
        except ValueError as exc:
            raise GeometrySourceUnavailable(f"Base map {cfg.paths.base_map} is unusable: {exc}") from exc

    def apply_colors(self, stored: Mapping[str, str]) -> PaintReport:
        """Stored colors when any exist, the reference palette otherwise."""
        if not stored:
            return self.paint.reset(self.data.reference)
        self.paint.paint_all_default()
        return self.paint.apply_colors(stored)

    def redraw(
        self,
        selection: DepotSelection,
        radius_km: float,
        snapshot: StoreSnapshot,
        *,
        show_labels: bool = True,
    ) -> DrawPlan:
        plan = self.orchestrator.refresh(self.surface, selection, radius_km, snapshot.radii)
        if not show_labels:
            self.surface.clear_layer(LABELS_LAYER_ID)
            return plan
        layer = render_labels(
            self.registry,
            snapshot.counts,
            selection.ordered(),
            split_region=self.cfg.coverage.split_region,
            label_color=self.cfg.style.label_color,
            split_label_color=self.cfg.style.split_label_color,
            font_size=self.cfg.style.font_size,
            halo=self.cfg.style.label_halo,
        )
        layer.draw(self.surface)
        return plan


def default_selection(data: MapData, depot_ids: Sequence[str] = ()) -> DepotSelection:
    return DepotSelection(depot_ids or data.depots.depot_ids)


def run_render_turkey(
    cfg: AppConfig,
    *,
    snapshot: StoreSnapshot,
    depot_ids: Sequence[str] = (),
    radius_km: float | None = None,
    output_path: Path | None = None,
    png: bool = False,
    pdf: bool = False,
    show_labels: bool = True,
) -> RenderReport:
    report = RenderReport()
    try:
        data = load_map_data(cfg)
    except (OSError, ValueError) as exc:
        report.add_error(f"Failed loading data tables: {exc}")
        return report
    try:
        turkey = TurkeyMap.load(cfg, data)
    except DepotMapError as exc:
        report.add_error(str(exc))
        return report

    paint_report = turkey.apply_colors(snapshot.colors)
    if paint_report.unresolved:
        report.add_warning(f"Colors for unknown regions skipped: {', '.join(paint_report.unresolved)}")

    selection = default_selection(data, depot_ids)
    radius = cfg.coverage.default_radius_km if radius_km is None else radius_km
    plan = turkey.redraw(selection, radius, snapshot, show_labels=show_labels)
    if plan.skipped:
        report.add_warning(f"Depots without an anchor skipped: {', '.join(plan.skipped)}")

    svg_path = output_path or cfg.paths.output_dir / "turkey.svg"
    report.outputs.append(turkey.surface.write(svg_path))
    try:
        if png:
            report.outputs.append(export_png(turkey.surface, svg_path.with_suffix(".png"), cfg.export))
        if pdf:
            report.outputs.append(export_pdf(turkey.surface, svg_path.with_suffix(".pdf"), cfg.export))
    except (RuntimeError, OSError, ValueError) as exc:
        report.add_error(f"Export failed: {exc}")

    report.summary = {
        "regions": len(turkey.registry),
        "regions_painted": len(paint_report.painted),
        "rings_drawn": len(plan.rings),
        "depots_skipped": len(plan.skipped),
    }
    report.add_info(
        f"Province map rendered: regions={len(turkey.registry)}, rings={len(plan.rings)}, "
        f"outputs={', '.join(str(p) for p in report.outputs)}"
    )
    return report


def run_render_world(
    cfg: AppConfig,
    *,
    snapshot: StoreSnapshot,
    depot_ids: Sequence[str] = (),
    radius_km: float | None = None,
    output_path: Path | None = None,
) -> WorldRenderReport:
    try:
        data = load_map_data(cfg)
    except (OSError, ValueError) as exc:
        report = WorldRenderReport(output_path=output_path)
        report.add_error(f"Failed loading data tables: {exc}")
        return report
    renderer = WorldMapRenderer(cfg.world, palette=cfg.coverage.palette, params=ring_parameters(cfg))
    req = WorldRenderRequest(
        depots=data.depots.coords,
        selection=default_selection(data, depot_ids),
        radius_km=cfg.coverage.default_radius_km if radius_km is None else radius_km,
        output_path=output_path or cfg.paths.output_dir / "world.png",
        radius_overrides=snapshot.radii,
        default_overrides=data.depots.default_radius_overrides_km,
        counts=snapshot.counts,
        display_names=data.provinces,
    )
    return renderer.render(req)


def format_render_lines(report: RenderReport) -> Sequence[str]:
    lines: list[str] = []
    for msg in report.infos:
        lines.append(f"[INFO] {msg}")
    for msg in report.warnings:
        lines.append(f"[WARN] {msg}")
    for msg in report.errors:
        lines.append(f"[ERROR] {msg}")
    if report.ok:
        lines.append("[OK] Map rendering completed with no errors.")
    return lines
