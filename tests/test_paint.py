from __future__ import annotations

from pathlib import Path

from depotmap.basemap import BaseMapRepository
from depotmap.datafiles import ReferencePalette
from depotmap.paint import PaintEngine
from depotmap.registry import RegionRegistry, build_registry
from depotmap.surface import MapSurface


def _fills(surface: MapSurface, region_id: str) -> list[str | None]:
    return [path.get("fill") for path in surface.region_paths(region_id)]


def _engine(base_map_path: Path) -> PaintEngine:
    document = BaseMapRepository(base_map_path).load()
    return PaintEngine(MapSurface(document), build_registry(document.regions))


def test_apply_color_styles_every_path(surface: MapSurface, registry: RegionRegistry) -> None:
    engine = PaintEngine(surface, registry)
    assert engine.apply_color("izmir", "#ff0000")
    paths = surface.region_paths("izmir")
    assert len(paths) == 2
    for path in paths:
        assert path.get("fill") == "#ff0000"
        assert path.get("stroke") == "#111"
        assert path.get("stroke-width") == "0.7"


def test_resolution_by_id_or_display_name(surface: MapSurface, registry: RegionRegistry) -> None:
    engine = PaintEngine(surface, registry)
    assert engine.apply_color("Istanbul", "#111111")
    assert _fills(surface, "istanbul") == ["#111111"]
    assert engine.apply_color("İstanbul", "#222222")
    assert _fills(surface, "istanbul") == ["#222222"]
    assert engine.apply_color("Ağrı", "#333333")
    assert _fills(surface, "agri") == ["#333333"]


def test_unresolved_identifier_is_a_noop(surface: MapSurface, registry: RegionRegistry) -> None:
    engine = PaintEngine(surface, registry)
    before = surface.to_string()
    assert engine.apply_color("Atlantis", "#ff0000") is False
    assert surface.to_string() == before


def test_apply_colors_continues_past_failures(surface: MapSurface, registry: RegionRegistry) -> None:
    engine = PaintEngine(surface, registry)
    report = engine.apply_colors({"Atlantis": "#000000", "Ankara": "#22c55e", "izmir": "#0ea5e9"})
    assert report.painted == ["Ankara", "izmir"]
    assert report.unresolved == ["Atlantis"]
    assert not report.ok
    assert _fills(surface, "ankara") == ["#22c55e"]


def test_paint_all_default(surface: MapSurface, registry: RegionRegistry) -> None:
    engine = PaintEngine(surface, registry, neutral_fill="#e5e7eb")
    assert engine.paint_all_default() == 5
    assert {path.get("fill") for path in surface.all_region_paths()} == {"#e5e7eb"}


def test_painting_is_deterministic(base_map_path: Path) -> None:
    outputs = []
    for _ in range(2):
        engine = _engine(base_map_path)
        engine.paint_all_default()
        engine.apply_colors({"ankara": "#22c55e", "Ağrı": "#a855f7"})
        outputs.append(engine.surface.to_string())
    assert outputs[0] == outputs[1]


def test_reset_applies_reference_and_is_idempotent(surface: MapSurface, registry: RegionRegistry) -> None:
    engine = PaintEngine(surface, registry)
    reference = ReferencePalette(default="#d1d5db", colors={"ankara": "#22c55e"})
    engine.apply_color("istanbul", "#ff0000")

    report = engine.reset(reference)
    first = surface.to_string()
    assert report.ok
    assert _fills(surface, "ankara") == ["#22c55e"]
    assert _fills(surface, "istanbul") == ["#d1d5db"]

    engine.reset(reference)
    assert surface.to_string() == first
