"""World-view rendering: depot rings on a Web Mercator basemap (matplotlib)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Sequence

from .config import WorldConfig
from .coverage import RING_PALETTE, RingParameters, resolve_radius, ring_color
from .geodesic import build_ring
from .models import DepotCoord, DepotSelection, Point
from .names import fold_name
from .projection import WebMercatorProjection

_LOGGER = logging.getLogger("depotmap.world")

_BACKGROUND_WHITE = "white"


@dataclass(frozen=True, slots=True)
class WorldRing:
    depot_id: str
    label: str
    color: str
    radius_km: float
    center: Point
    polygon: tuple[Point, ...]
    count: Any | None = None


@dataclass(frozen=True, slots=True)
class WorldRenderRequest:
    depots: Mapping[str, DepotCoord]
    selection: DepotSelection
    radius_km: float
    output_path: Path
    radius_overrides: Mapping[str, Any] = field(default_factory=dict)
    default_overrides: Mapping[str, float] = field(default_factory=dict)
    counts: Mapping[str, Any] = field(default_factory=dict)
    display_names: Mapping[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class WorldRenderReport:
    output_path: Path | None = None
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


def human_label(depot_id: str, display_names: Mapping[str, str]) -> str:
    if depot_id in display_names:
        return display_names[depot_id]
    return depot_id[:1].upper() + depot_id[1:]


def plan_world_rings(
    req: WorldRenderRequest,
    *,
    palette: Sequence[str] = RING_PALETTE,
    params: RingParameters = RingParameters(),
    projection: Any | None = None,
) -> tuple[list[WorldRing], list[str]]:
    """Rings in Web Mercator metres for every selected depot with a known location."""
    projection = projection or WebMercatorProjection()
    rings: list[WorldRing] = []
    missing: list[str] = []
    for depot_id in req.selection.ordered():
        coord = req.depots.get(depot_id)
        if coord is None:
            missing.append(depot_id)
            continue
        label = human_label(depot_id, req.display_names)
        radius = resolve_radius(depot_id, req.radius_km, req.radius_overrides, req.default_overrides, label=label)
        polygon = build_ring(coord.lat, coord.lon, radius, projection, params.bearing_step_deg)
        rings.append(
            WorldRing(
                depot_id=depot_id,
                label=label,
                color=ring_color(req.selection, depot_id, palette),
                radius_km=radius,
                center=projection.to_planar(coord.lat, coord.lon),
                polygon=polygon,
                count=_lookup_count(req.counts, depot_id, label),
            )
        )
    return rings, missing


class WorldMapRenderer:
    """Deterministic renderer for the world-view PNG."""

    def __init__(
        self,
        cfg: WorldConfig,
        *,
        palette: Sequence[str] = RING_PALETTE,
        params: RingParameters = RingParameters(),
    ) -> None:
        self.cfg = cfg
        self.palette = tuple(palette)
        self.params = params
        self._basemap_source = _resolve_basemap_source(cfg.basemap)
        self._basemap_failure: str | None = None

    def render(self, req: WorldRenderRequest) -> WorldRenderReport:
        report = WorldRenderReport(output_path=req.output_path)
        rings, missing = plan_world_rings(req, palette=self.palette, params=self.params)
        if missing:
            report.add_warning("Depots without coordinates skipped: " + ", ".join(missing))
        if not rings:
            report.add_error("No selected depot has coordinates; nothing to render.")
            return report

        plt = _require_matplotlib()
        dpi = self.cfg.dpi
        fig, ax = plt.subplots(figsize=(self.cfg.width_px / dpi, self.cfg.height_px / dpi), dpi=dpi)
        fig.subplots_adjust(left=0.0, right=1.0, bottom=0.0, top=1.0)
        try:
            x0, x1, y0, y1 = _fit_extent_aspect(
                _rings_extent(rings, self.cfg.padding_ratio),
                self.cfg.width_px / self.cfg.height_px,
            )
            ax.set_xlim(x0, x1)
            ax.set_ylim(y0, y1)
            ax.set_axis_off()
            fig.patch.set_facecolor("white")
            ax.set_facecolor("white")
            self._draw_basemap(ax=ax)
            for ring in rings:
                self._draw_ring(ax=ax, ring=ring)
            req.output_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(req.output_path, dpi=dpi, format="png")
        finally:
            plt.close(fig)

        if self._basemap_failure:
            report.add_warning(self._basemap_failure)
        report.summary = {"rings_drawn": len(rings), "depots_skipped": len(missing)}
        report.add_info(f"World map written to {req.output_path} ({len(rings)} rings)")
        return report

    def _draw_ring(self, *, ax: Any, ring: WorldRing) -> None:
        if ring.polygon:
            xs = [p[0] for p in ring.polygon]
            ys = [p[1] for p in ring.polygon]
            ax.fill(xs, ys, color=ring.color, alpha=self.params.fill_alpha, linewidth=0, zorder=2)
            ax.plot(xs, ys, color=ring.color, linewidth=2.0, solid_capstyle="round", solid_joinstyle="round", zorder=3)
        ax.scatter(
            [ring.center[0]],
            [ring.center[1]],
            s=60,
            c=ring.color,
            edgecolors="white",
            linewidths=2.0,
            zorder=4,
        )
        if not self.cfg.show_labels:
            return
        text = ring.label if ring.count is None else f"{ring.label}\n{ring.count}"
        ax.annotate(
            text,
            xy=ring.center,
            xytext=(0, 8),
            textcoords="offset points",
            ha="center",
            va="bottom",
            fontsize=7,
            fontweight="semibold",
            color="#111111",
            zorder=5,
            bbox={"boxstyle": "round,pad=0.2", "fc": (1, 1, 1, 0.8), "ec": "none"},
        )

    def _draw_basemap(self, *, ax: Any) -> None:
        if self._basemap_source is None or self._basemap_failure is not None:
            return
        contextily = _require_contextily()
        x0, x1 = ax.get_xlim()
        y0, y1 = ax.get_ylim()
        try:
            image, extent = contextily.bounds2img(
                x0,
                y0,
                x1,
                y1,
                zoom="auto",
                source=self._basemap_source,
                ll=False,
                use_cache=True,
                max_retries=1,
            )
            ax.imshow(image, extent=extent, interpolation="bilinear", zorder=-8)
            ax.set_xlim(x0, x1)
            ax.set_ylim(y0, y1)
        except Exception as exc:
            self._basemap_failure = f"Basemap loading failed; rendered on white: {exc}"
            _LOGGER.warning(self._basemap_failure)


def format_world_lines(report: WorldRenderReport) -> Sequence[str]:
    lines: list[str] = []
    for msg in report.infos:
        lines.append(f"[INFO] {msg}")
    for msg in report.warnings:
        lines.append(f"[WARN] {msg}")
    for msg in report.errors:
        lines.append(f"[ERROR] {msg}")
    if report.ok:
        lines.append("[OK] World map rendering completed with no errors.")
    return lines


def _lookup_count(counts: Mapping[str, Any], depot_id: str, label: str) -> Any | None:
    for key in (depot_id, label):
        if key in counts:
            return counts[key]
    wanted = {fold_name(depot_id), fold_name(label)}
    for key, value in counts.items():
        if fold_name(str(key)) in wanted:
            return value
    return None


def _rings_extent(rings: Sequence[WorldRing], padding_ratio: float) -> tuple[float, float, float, float]:
    xs: list[float] = []
    ys: list[float] = []
    for ring in rings:
        xs.append(ring.center[0])
        ys.append(ring.center[1])
        xs.extend(p[0] for p in ring.polygon)
        ys.extend(p[1] for p in ring.polygon)
    x0, x1, y0, y1 = min(xs), max(xs), min(ys), max(ys)
    pad = max(x1 - x0, y1 - y0, 1000.0) * max(padding_ratio, 0.0)
    return (x0 - pad, x1 + pad, y0 - pad, y1 + pad)


def _fit_extent_aspect(
    extent: tuple[float, float, float, float],
    target_ratio: float,
) -> tuple[float, float, float, float]:
    x0, x1, y0, y1 = extent
    width = max(x1 - x0, 1.0)
    height = max(y1 - y0, 1.0)
    cx = (x0 + x1) / 2
    cy = (y0 + y1) / 2
    if width / height < target_ratio:
        width = height * target_ratio
    else:
        height = width / target_ratio
    return (cx - width / 2, cx + width / 2, cy - height / 2, cy + height / 2)


def _resolve_basemap_source(name: str) -> Any | None:
    if name.casefold() == _BACKGROUND_WHITE:
        return None
    providers = _require_xyzservices_providers()
    try:
        return providers.query_name(name)
    except ValueError:
        _LOGGER.warning("Unknown basemap provider '%s'; using CartoDB.PositronNoLabels", name)
        return providers.CartoDB.PositronNoLabels


def _require_matplotlib() -> Any:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return plt


@lru_cache(maxsize=1)
def _require_contextily() -> Any:
    try:
        import contextily as ctx
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("contextily is required for real basemap rendering") from exc
    return ctx


@lru_cache(maxsize=1)
def _require_xyzservices_providers() -> Any:
    try:
        from xyzservices import providers
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("xyzservices is required for basemap source definitions") from exc
    return providers
