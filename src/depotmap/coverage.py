"""Coverage ring planning and drawing for selected depots."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from .geodesic import (
    DEFAULT_BEARING_STEP_DEG,
    build_ring,
    ring_path_data,
)
from .models import CoverageRing, DepotSelection
from .names import fold_name
from .projection import Projection
from .registry import RegionRegistry
from .surface import RINGS_LAYER_ID, MapSurface, add_element
from .util import to_rgba

_LOGGER = logging.getLogger("depotmap.coverage")

RING_PALETTE: tuple[str, ...] = (
    "#ef4444", "#0ea5e9", "#22c55e", "#a855f7", "#f59e0b",
    "#e11d48", "#06b6d4", "#84cc16", "#f97316", "#8b5cf6",
    "#10b981", "#d946ef", "#eab308", "#14b8a6", "#fb7185",
    "#65a30d", "#1f2937", "#64748b",
)
RING_FILL_ALPHA = 0.15
DOT_RADIUS = 6

_NO_OVERRIDES: Mapping[str, float] = MappingProxyType({})


class CoverageState(enum.Enum):
    IDLE = "idle"
    GEOMETRY_LOADED = "geometry_loaded"
    RINGS_COMPUTED = "rings_computed"
    PAINTED = "painted"


@dataclass(frozen=True, slots=True)
class RingParameters:
    bearing_step_deg: float = DEFAULT_BEARING_STEP_DEG
    fill_alpha: float = RING_FILL_ALPHA


@dataclass(frozen=True, slots=True)
class DrawPlan:
    rings: tuple[CoverageRing, ...]
    skipped: tuple[str, ...] = ()

    @property
    def depot_ids(self) -> tuple[str, ...]:
        return tuple(ring.depot_id for ring in self.rings)

    def ring_for(self, depot_id: str) -> CoverageRing | None:
        for ring in self.rings:
            if ring.depot_id == depot_id:
                return ring
        return None


def ring_color(selection: DepotSelection, depot_id: str, palette: Sequence[str] = RING_PALETTE) -> str:
    """Palette entry at the depot's position in the selection (index 0 when absent)."""
    if not palette:
        raise ValueError("Ring palette must not be empty")
    idx = selection.index_of(depot_id)
    return palette[(idx if idx is not None else 0) % len(palette)]


def resolve_radius(
    depot_id: str,
    radius_km: float,
    radius_overrides: Mapping[str, Any] = _NO_OVERRIDES,
    default_overrides: Mapping[str, float] = _NO_OVERRIDES,
    *,
    label: str | None = None,
) -> float:
    """Per-depot override, then built-in default override, then the global radius."""
    for table in (radius_overrides, default_overrides):
        value = _lookup_radius(table, depot_id, label)
        if value is not None:
            return value
    return float(radius_km)


def _lookup_radius(table: Mapping[str, Any], depot_id: str, label: str | None) -> float | None:
    if not table:
        return None
    candidates = [depot_id] if label is None or label == depot_id else [depot_id, label]
    for key in candidates:
        value = table.get(key)
        if _is_radius(value):
            return float(value)
    folded = {fold_name(str(key)): value for key, value in table.items()}
    for key in candidates:
        value = folded.get(fold_name(key))
        if _is_radius(value):
            return float(value)
    return None


def _is_radius(value: Any) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and value > 0


def build_plan(
    registry: RegionRegistry,
    projection: Projection,
    selection: DepotSelection,
    radius_km: float,
    radius_overrides: Mapping[str, Any] = _NO_OVERRIDES,
    *,
    palette: Sequence[str] = RING_PALETTE,
    default_overrides: Mapping[str, float] = _NO_OVERRIDES,
    params: RingParameters = RingParameters(),
) -> DrawPlan:
    """Derive every ring for the current selection; recomputed wholesale on each change."""
    if not palette:
        raise ValueError("Ring palette must not be empty")
    rings: list[CoverageRing] = []
    skipped: list[str] = []
    for idx, depot_id in enumerate(selection.ordered()):
        anchor = registry.anchor_for(depot_id)
        if anchor is None:
            skipped.append(depot_id)
            continue
        label = registry.label_for(depot_id)
        radius = resolve_radius(depot_id, radius_km, radius_overrides, default_overrides, label=label)
        lat, lon = projection.to_geo(*anchor)
        polygon = build_ring(lat, lon, radius, projection, params.bearing_step_deg)
        rings.append(
            CoverageRing(
                depot_id=depot_id,
                label=label,
                color_index=idx % len(palette),
                color=palette[idx % len(palette)],
                radius_km=radius,
                center=(lat, lon),
                anchor=anchor,
                polygon=polygon,
            )
        )
    if skipped:
        _LOGGER.warning("Skipped depots without an anchor: %s", ", ".join(skipped))
    return DrawPlan(rings=tuple(rings), skipped=tuple(skipped))


def draw_plan(plan: DrawPlan, surface: MapSurface, *, fill_alpha: float = RING_FILL_ALPHA) -> int:
    """Replace the rings layer: fill, outline, then dot for each ring."""
    layer = surface.clear_layer(RINGS_LAYER_ID)
    for ring in plan.rings:
        group = add_element(layer, "g", {"class": "coverage-ring", "aria-label": ring.label})
        add_element(group, "title", {}, ring.label)
        path_data = ring_path_data(ring.polygon)
        if path_data:
            add_element(group, "path", {"d": path_data, "fill": to_rgba(ring.color, fill_alpha)})
            add_element(
                group,
                "path",
                {
                    "d": path_data,
                    "fill": "none",
                    "stroke": ring.color,
                    "stroke-width": "2",
                    "stroke-linecap": "round",
                    "stroke-linejoin": "round",
                },
            )
        add_element(
            group,
            "circle",
            {
                "cx": f"{ring.anchor[0]:.2f}",
                "cy": f"{ring.anchor[1]:.2f}",
                "r": str(DOT_RADIUS),
                "fill": ring.color,
                "stroke": "#fff",
                "stroke-width": "3",
            },
        )
    return len(plan.rings)


class CoverageOrchestrator:
    """Runs the Idle -> GeometryLoaded -> RingsComputed -> Painted pass."""

    def __init__(
        self,
        *,
        palette: Sequence[str] = RING_PALETTE,
        default_overrides: Mapping[str, float] = _NO_OVERRIDES,
        params: RingParameters = RingParameters(),
    ) -> None:
        if not palette:
            raise ValueError("Ring palette must not be empty")
        self.palette = tuple(palette)
        self.default_overrides = MappingProxyType(dict(default_overrides))
        self.params = params
        self.registry: RegionRegistry | None = None
        self.projection: Projection | None = None
        self.plan: DrawPlan | None = None
        self.state = CoverageState.IDLE

    def load_geometry(self, registry: RegionRegistry, projection: Projection) -> None:
        self.registry = registry
        self.projection = projection
        self.plan = None
        self.state = CoverageState.GEOMETRY_LOADED

    def build_plan(
        self,
        selection: DepotSelection,
        radius_km: float,
        radius_overrides: Mapping[str, Any] = _NO_OVERRIDES,
    ) -> DrawPlan:
        if self.registry is None or self.projection is None:
            raise RuntimeError("Geometry must be loaded before rings can be computed")
        self.plan = build_plan(
            self.registry,
            self.projection,
            selection,
            radius_km,
            radius_overrides,
            palette=self.palette,
            default_overrides=self.default_overrides,
            params=self.params,
        )
        self.state = CoverageState.RINGS_COMPUTED
        return self.plan

    def draw(self, surface: MapSurface, plan: DrawPlan | None = None) -> int:
        plan = plan or self.plan
        if plan is None:
            raise RuntimeError("No draw plan computed")
        drawn = draw_plan(plan, surface, fill_alpha=self.params.fill_alpha)
        self.state = CoverageState.PAINTED
        return drawn

    def refresh(
        self,
        surface: MapSurface,
        selection: DepotSelection,
        radius_km: float,
        radius_overrides: Mapping[str, Any] = _NO_OVERRIDES,
    ) -> DrawPlan:
        """Recompute and redraw after any change to selection, radii or geometry."""
        plan = self.build_plan(selection, radius_km, radius_overrides)
        self.draw(surface, plan)
        return plan
