"""Shared fixtures: a small synthetic base map, config files and a fake HTTP session."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import requests
import yaml

from depotmap.basemap import BaseMapDocument, BaseMapRepository
from depotmap.config import StoreConfig, StoreTablesConfig
from depotmap.models import SplitAnchor
from depotmap.projection import TURKEY_BOUNDS, Projection, Viewport
from depotmap.registry import RegionRegistry, build_registry
from depotmap.surface import MapSurface

REPO_ROOT = Path(__file__).resolve().parents[1]

SVG_TEXT = """<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 1000 618">
  <g id="turkiye">
    <g id="istanbul" data-iladi="İstanbul">
      <path d="M 100 100 L 200 100 L 200 200 L 100 200 Z"/>
    </g>
    <g id="ankara" data-iladi="Ankara">
      <path d="M 400 200 L 500 200 L 500 300 L 400 300 Z"/>
    </g>
    <g id="izmir" data-iladi="İzmir">
      <path d="M 50 350 L 150 350 L 150 450 Z"/>
      <path d="M 20 380 L 40 380 L 40 400 Z"/>
    </g>
    <g id="agri" data-iladi="Ağrı">
      <path d="M 800 150 L 900 150 L 900 250 L 800 250 Z"/>
    </g>
  </g>
</svg>
"""

STORE_URL = "https://example.supabase.co"

SPLIT_ANCHORS = {
    "istanbul": (
        SplitAnchor(depot_id="İstanbul - AVR", tag="AVR", fx=0.15, fy=0.45),
        SplitAnchor(depot_id="İstanbul - AND", tag="AND", fx=0.73, fy=0.85),
    )
}


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = [] if payload is None else payload
        self.text = text

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error", response=self)  # type: ignore[arg-type]

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Records requests and replays queued responses (or raises queued exceptions)."""

    def __init__(self, responses: list[Any] | None = None) -> None:
        self.headers: dict[str, str] = {}
        self.calls: list[dict[str, Any]] = []
        self.responses = list(responses or [])

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        return self._next()

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self.request("GET", url, **kwargs)

    def _next(self) -> FakeResponse:
        if not self.responses:
            return FakeResponse()
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def svg_text() -> str:
    return SVG_TEXT


@pytest.fixture
def base_map_path(tmp_path: Path) -> Path:
    path = tmp_path / "turkey.svg"
    path.write_text(SVG_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def document(base_map_path: Path) -> BaseMapDocument:
    return BaseMapRepository(base_map_path).load()


@pytest.fixture
def registry(document: BaseMapDocument) -> RegionRegistry:
    return build_registry(
        document.regions,
        anchor_offsets={"ankara": (25.0, -5.0)},
        split_anchors=SPLIT_ANCHORS,
    )


@pytest.fixture
def surface(document: BaseMapDocument) -> MapSurface:
    return MapSurface(document)


@pytest.fixture
def projection() -> Projection:
    return Projection(TURKEY_BOUNDS, Viewport(0.0, 0.0, 1000.0, 618.0))


@pytest.fixture
def store_cfg() -> StoreConfig:
    return StoreConfig(
        url=STORE_URL,
        anon_key="anon-key",
        url_env="DEPOTMAP_TEST_URL",
        key_env="DEPOTMAP_TEST_KEY",
        request_timeout_s=5.0,
        debounce_s=0.0,
        tables=StoreTablesConfig(counts="city_store_counts", colors="city_colors", radii="city_radii"),
    )


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


def _write_yaml(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False), encoding="utf-8")


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Repo config pointed at a four-province data set under tmp_path."""
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)

    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "turkey.svg").write_text(SVG_TEXT, encoding="utf-8")
    _write_yaml(
        data_dir / "provinces.yaml",
        {
            "provinces": [
                {"id": "istanbul", "name": "İstanbul"},
                {"id": "ankara", "name": "Ankara"},
                {"id": "izmir", "name": "İzmir"},
                {"id": "agri", "name": "Ağrı"},
            ]
        },
    )
    _write_yaml(
        data_dir / "reference_colors.yaml",
        {"default": "#d1d5db", "colors": {"istanbul": "#f59e0b", "ankara": "#22c55e", "izmir": "#0ea5e9"}},
    )
    _write_yaml(
        data_dir / "depots.yaml",
        {
            "default_radius_overrides_km": {"İstanbul - AVR": 100, "İstanbul - AND": 100},
            "depots": {
                "İstanbul - AND": {"lat": 40.883510, "lon": 29.368118},
                "İstanbul - AVR": {"lat": 41.077869, "lon": 28.642136},
                "ankara": {"lat": 40.047175, "lon": 32.619897},
                "izmir": {"lat": 38.388079, "lon": 27.236087},
            },
        },
    )
    _write_yaml(
        data_dir / "anchor_overrides.yaml",
        {
            "offsets": {"ankara": [25, -5], "izmir": [0, 25]},
            "split_anchors": {
                "istanbul": {
                    "İstanbul - AVR": {"tag": "AVR", "fx": 0.15, "fy": 0.45},
                    "İstanbul - AND": {"tag": "AND", "fx": 0.73, "fy": 0.85},
                }
            },
        },
    )

    raw = yaml.safe_load((REPO_ROOT / "config.yaml").read_text(encoding="utf-8"))
    raw["paths"] = {
        "base_map": "data/turkey.svg",
        "provinces": "data/provinces.yaml",
        "reference_colors": "data/reference_colors.yaml",
        "depots": "data/depots.yaml",
        "anchor_overrides": "data/anchor_overrides.yaml",
        "output_dir": "build",
        "logs_dir": "build/logs",
    }
    raw["world"]["basemap"] = "white"
    cfg_path = tmp_path / "config.yaml"
    _write_yaml(cfg_path, raw)
    return cfg_path
