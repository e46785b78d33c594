from __future__ import annotations

import pytest

from depotmap.basemap import local_name
from depotmap.coverage import (
    RING_PALETTE,
    CoverageOrchestrator,
    CoverageState,
    build_plan,
    draw_plan,
    resolve_radius,
    ring_color,
)
from depotmap.models import DepotSelection
from depotmap.projection import Projection
from depotmap.registry import RegionRegistry
from depotmap.surface import RINGS_LAYER_ID, MapSurface


def test_palette_follows_selection_order(registry: RegionRegistry, projection: Projection) -> None:
    plan = build_plan(registry, projection, DepotSelection(["ankara", "izmir"]), 150.0)
    assert plan.ring_for("ankara").color == RING_PALETTE[0]
    assert plan.ring_for("izmir").color == RING_PALETTE[1]

    flipped = build_plan(registry, projection, DepotSelection(["izmir", "ankara"]), 150.0)
    assert flipped.ring_for("ankara").color == RING_PALETTE[1]
    assert flipped.ring_for("izmir").color == RING_PALETTE[0]


def test_palette_wraps_around(registry: RegionRegistry, projection: Projection) -> None:
    palette = ("#111111", "#222222")
    plan = build_plan(
        registry,
        projection,
        DepotSelection(["ankara", "izmir", "agri"]),
        150.0,
        palette=palette,
    )
    assert [ring.color_index for ring in plan.rings] == [0, 1, 0]
    assert plan.ring_for("agri").color == "#111111"


def test_ring_color_for_unselected_depot() -> None:
    assert ring_color(DepotSelection(["ankara"]), "izmir") == RING_PALETTE[0]
    with pytest.raises(ValueError):
        ring_color(DepotSelection(), "izmir", ())


def test_ring_geometry(registry: RegionRegistry, projection: Projection) -> None:
    plan = build_plan(registry, projection, DepotSelection(["ankara"]), 150.0)
    ring = plan.ring_for("ankara")
    assert ring.anchor == pytest.approx((475.0, 245.0))
    assert ring.center == pytest.approx(projection.to_geo(475.0, 245.0))
    assert ring.label == "Ankara"
    assert len(ring.polygon) == 121
    assert ring.polygon[0] == ring.polygon[-1]


def test_split_depots_get_rings(registry: RegionRegistry, projection: Projection) -> None:
    plan = build_plan(registry, projection, DepotSelection(["İstanbul - AVR", "İstanbul - AND"]), 150.0)
    assert plan.depot_ids == ("İstanbul - AVR", "İstanbul - AND")
    assert plan.ring_for("İstanbul - AVR").anchor == pytest.approx((115.0, 145.0))


def test_unresolvable_depot_is_skipped(registry: RegionRegistry, projection: Projection) -> None:
    plan = build_plan(registry, projection, DepotSelection(["atlantis", "ankara"]), 150.0)
    assert plan.skipped == ("atlantis",)
    assert plan.depot_ids == ("ankara",)
    assert plan.ring_for("ankara").color_index == 1


def test_empty_palette_rejected(registry: RegionRegistry, projection: Projection) -> None:
    with pytest.raises(ValueError):
        build_plan(registry, projection, DepotSelection(["ankara"]), 150.0, palette=())
    with pytest.raises(ValueError):
        CoverageOrchestrator(palette=())


def test_radius_precedence() -> None:
    defaults = {"erzurum": 250.0, "İstanbul - AVR": 100.0}
    assert resolve_radius("erzurum", 150.0, {}, defaults) == 250.0
    assert resolve_radius("erzurum", 150.0, {"erzurum": 90}, defaults) == 90.0
    assert resolve_radius("ankara", 150.0, {}, defaults) == 150.0
    assert resolve_radius("istanbul - avr", 150.0, {}, defaults) == 100.0


def test_radius_lookup_by_label_and_folded_key() -> None:
    assert resolve_radius("agri", 150.0, {"Ağrı": 80}, label="Ağrı") == 80.0
    assert resolve_radius("agri", 150.0, {"AGRI": 70}, label="Ağrı") == 70.0


@pytest.mark.parametrize("bad", [0, -10, "200", True, None])
def test_invalid_overrides_are_ignored(bad: object) -> None:
    assert resolve_radius("ankara", 150.0, {"ankara": bad}) == 150.0


def test_overrides_reach_the_plan(registry: RegionRegistry, projection: Projection) -> None:
    plan = build_plan(
        registry,
        projection,
        DepotSelection(["ankara", "izmir"]),
        150.0,
        {"Ankara": 300},
        default_overrides={"izmir": 50.0},
    )
    assert plan.ring_for("ankara").radius_km == 300.0
    assert plan.ring_for("izmir").radius_km == 50.0


def test_draw_order_fill_outline_dot(
    registry: RegionRegistry,
    projection: Projection,
    surface: MapSurface,
) -> None:
    plan = build_plan(registry, projection, DepotSelection(["ankara"]), 150.0)
    assert draw_plan(plan, surface) == 1
    (group,) = list(surface.layer(RINGS_LAYER_ID))
    assert group.get("class") == "coverage-ring"
    assert group.get("aria-label") == "Ankara"
    children = list(group)
    assert [local_name(child.tag) for child in children] == ["title", "path", "path", "circle"]
    fill, outline, dot = children[1:]
    assert fill.get("fill") == "rgba(239, 68, 68, 0.15)"
    assert fill.get("d").startswith("M ") and fill.get("d").endswith(" Z")
    assert outline.get("fill") == "none"
    assert outline.get("stroke") == "#ef4444"
    assert outline.get("stroke-width") == "2"
    assert outline.get("stroke-linecap") == "round"
    assert dot.get("r") == "6"
    assert dot.get("stroke") == "#fff"
    assert dot.get("stroke-width") == "3"
    assert (dot.get("cx"), dot.get("cy")) == ("475.00", "245.00")


def test_zero_radius_draws_only_the_dot(
    registry: RegionRegistry,
    projection: Projection,
    surface: MapSurface,
) -> None:
    zero = build_plan(registry, projection, DepotSelection(["ankara"]), 0.0)
    draw_plan(zero, surface)
    (group,) = list(surface.layer(RINGS_LAYER_ID))
    assert [local_name(child.tag) for child in group] == ["title", "circle"]


def test_orchestrator_state_machine(
    registry: RegionRegistry,
    projection: Projection,
    surface: MapSurface,
) -> None:
    orchestrator = CoverageOrchestrator()
    assert orchestrator.state is CoverageState.IDLE
    with pytest.raises(RuntimeError):
        orchestrator.build_plan(DepotSelection(["ankara"]), 150.0)

    orchestrator.load_geometry(registry, projection)
    assert orchestrator.state is CoverageState.GEOMETRY_LOADED
    orchestrator.build_plan(DepotSelection(["ankara"]), 150.0)
    assert orchestrator.state is CoverageState.RINGS_COMPUTED
    orchestrator.draw(surface)
    assert orchestrator.state is CoverageState.PAINTED


def test_refresh_replaces_previous_rings(
    registry: RegionRegistry,
    projection: Projection,
    surface: MapSurface,
) -> None:
    orchestrator = CoverageOrchestrator()
    orchestrator.load_geometry(registry, projection)
    orchestrator.refresh(surface, DepotSelection(["ankara", "izmir", "agri"]), 150.0)
    assert len(list(surface.layer(RINGS_LAYER_ID))) == 3
    plan = orchestrator.refresh(surface, DepotSelection(["izmir"]), 150.0)
    assert plan.depot_ids == ("izmir",)
    assert len(list(surface.layer(RINGS_LAYER_ID))) == 1
