from __future__ import annotations

from pathlib import Path

import pytest

from conftest import REPO_ROOT
from depotmap.datafiles import load_anchor_table, load_depots, load_provinces, load_reference_colors
from depotmap.names import fold_name

DATA = REPO_ROOT / "data"


def test_provinces_table() -> None:
    provinces = load_provinces(DATA / "provinces.yaml")
    assert len(provinces) == 81
    assert provinces["agri"] == "Ağrı"
    assert provinces["istanbul"] == "İstanbul"
    assert len({fold_name(name) for name in provinces.values()}) == 81


def test_reference_colors_cover_provinces() -> None:
    provinces = load_provinces(DATA / "provinces.yaml")
    reference = load_reference_colors(DATA / "reference_colors.yaml")
    assert reference.default == "#d1d5db"
    assert set(reference.colors) <= set(provinces)
    assert reference.color_for("antalya") == "#d1d5db"
    assert reference.color_for("Istanbul") == "#f59e0b"


def test_depots_table() -> None:
    provinces = load_provinces(DATA / "provinces.yaml")
    anchors = load_anchor_table(DATA / "anchor_overrides.yaml")
    depots = load_depots(DATA / "depots.yaml")
    assert len(depots.coords) == 17
    assert depots.depot_ids[:2] == ("İstanbul - AND", "İstanbul - AVR")
    assert depots.default_radius_overrides_km["erzurum"] == 250.0
    synthetic = {a.depot_id for items in anchors.split_anchors.values() for a in items}
    assert set(depots.coords) - synthetic <= set(provinces)


def test_anchor_table() -> None:
    anchors = load_anchor_table(DATA / "anchor_overrides.yaml")
    assert anchors.offsets["izmir"] == (0.0, 25.0)
    assert anchors.offsets["konya"] == (0.0, 0.0)
    avr, and_ = anchors.split_anchors["istanbul"]
    assert (avr.tag, avr.fx, avr.fy) == ("AVR", 0.15, 0.45)
    assert (and_.tag, and_.fx, and_.fy) == ("AND", 0.73, 0.85)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "table.yaml"
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    ("loader", "text"),
    [
        (load_provinces, "provinces:\n  - {id: bolu, name: Bolu}\n  - {id: BOLU, name: Bolu}\n"),
        (load_provinces, "provinces: []\n"),
        (load_reference_colors, "default: '#d1d5db'\ncolors: {bolu: red}\n"),
        (load_depots, "depots: {bolu: {lat: 95, lon: 31.6}}\n"),
        (load_depots, "depots: {bolu: {lat: 40.7, lon: 31.6}}\ndefault_radius_overrides_km: {bolu: -5}\n"),
        (load_anchor_table, "offsets: {bolu: [1]}\n"),
        (load_anchor_table, "split_anchors: {istanbul: {X: {tag: X, fx: 1.5, fy: 0.5}}}\n"),
        (load_anchor_table, "- not a mapping\n"),
    ],
)
def test_malformed_tables_rejected(tmp_path: Path, loader, text: str) -> None:
    with pytest.raises(ValueError):
        loader(_write(tmp_path, text))


def test_missing_table(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_depots(tmp_path / "absent.yaml")
