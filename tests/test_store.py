from __future__ import annotations

import dataclasses

import pytest
import requests

from conftest import STORE_URL, FakeResponse, FakeSession
from depotmap.config import StoreConfig
from depotmap.datafiles import ReferencePalette
from depotmap.models import CityAttribute
from depotmap.store import COLORS, COUNTS, RADII, AttributeStore

PROVINCES = {"ankara": "Ankara", "izmir": "İzmir"}


def test_session_headers(store_cfg: StoreConfig, fake_session: FakeSession) -> None:
    AttributeStore(store_cfg, session=fake_session)
    assert fake_session.headers["apikey"] == "anon-key"
    assert fake_session.headers["Authorization"] == "Bearer anon-key"


def test_read_all_maps_display_name_to_value(store_cfg: StoreConfig) -> None:
    session = FakeSession(
        [
            FakeResponse(
                payload=[
                    {"city_id": "ankara", "city_name": "Ankara", "store_count": 12},
                    {"city_name": "İzmir", "store_count": 3},
                    {"city_id": "agri", "city_name": None, "store_count": 1},
                    "garbage",
                ]
            )
        ]
    )
    store = AttributeStore(store_cfg, session=session)
    assert store.read_all(COUNTS) == {"Ankara": 12, "İzmir": 3, "agri": 1}
    (call,) = session.calls
    assert call["method"] == "GET"
    assert call["url"] == f"{STORE_URL}/rest/v1/city_store_counts"
    assert call["params"]["select"] == "city_id,city_name,store_count"
    assert call["timeout"] == 5.0


def test_read_attributes_keeps_store_order(store_cfg: StoreConfig) -> None:
    session = FakeSession(
        [
            FakeResponse(
                payload=[
                    {"city_id": "izmir", "city_name": "İzmir", "color": "#0ea5e9"},
                    {"city_id": "ankara", "city_name": "Ankara", "color": "#22c55e"},
                    {"city_id": None, "city_name": "", "color": "#000000"},
                ]
            )
        ]
    )
    attributes = AttributeStore(store_cfg, session=session).read_attributes(COLORS)
    assert attributes == [
        CityAttribute(region_key="İzmir", value="#0ea5e9"),
        CityAttribute(region_key="Ankara", value="#22c55e"),
    ]


@pytest.mark.parametrize(
    "failure",
    [
        FakeResponse(status_code=500),
        FakeResponse(payload=ValueError("not json")),
        FakeResponse(payload={"message": "not a list"}),
        requests.ConnectionError("offline"),
    ],
)
def test_read_failures_yield_empty_mapping(store_cfg: StoreConfig, failure: object) -> None:
    store = AttributeStore(store_cfg, session=FakeSession([failure]))
    assert store.read_all(COLORS) == {}


def test_upsert_posts_merge_duplicates(store_cfg: StoreConfig, fake_session: FakeSession) -> None:
    store = AttributeStore(store_cfg, session=fake_session, city_ids={"Ankara": "ankara"})
    assert store.upsert(RADII, "Ankara", 250.0)
    (call,) = fake_session.calls
    assert call["method"] == "POST"
    assert call["url"] == f"{STORE_URL}/rest/v1/city_radii"
    assert call["params"] == {"on_conflict": "city_name"}
    assert call["headers"]["Prefer"] == "resolution=merge-duplicates,return=minimal"
    assert call["json"] == [{"city_name": "Ankara", "radius_km": 250.0, "city_id": "ankara"}]


def test_upsert_failure_returns_false(store_cfg: StoreConfig) -> None:
    store = AttributeStore(store_cfg, session=FakeSession([FakeResponse(status_code=409)]))
    assert store.upsert(COLORS, "Ankara", "#22c55e") is False


def test_upsert_many_empty_is_a_noop(store_cfg: StoreConfig, fake_session: FakeSession) -> None:
    assert AttributeStore(store_cfg, session=fake_session).upsert_many(COUNTS, {})
    assert fake_session.calls == []


def test_unconfigured_store_never_calls_out(store_cfg: StoreConfig, fake_session: FakeSession) -> None:
    cfg = dataclasses.replace(store_cfg, url="", anon_key="")
    store = AttributeStore(cfg, session=fake_session)
    assert not store.configured
    assert store.read_all(COUNTS) == {}
    assert store.upsert(COUNTS, "Ankara", 1) is False
    assert fake_session.calls == []
    assert "apikey" not in fake_session.headers


def test_delete_all_and_clear(store_cfg: StoreConfig, fake_session: FakeSession) -> None:
    store = AttributeStore(store_cfg, session=fake_session)
    assert store.clear_all_data()
    assert [(c["method"], c["url"].rsplit("/", 1)[-1]) for c in fake_session.calls] == [
        ("DELETE", "city_store_counts"),
        ("DELETE", "city_colors"),
    ]
    assert fake_session.calls[0]["params"] == {"id": "neq.0"}


def test_clear_reports_partial_failure(store_cfg: StoreConfig) -> None:
    session = FakeSession([FakeResponse(status_code=500), FakeResponse()])
    assert AttributeStore(store_cfg, session=session).clear_all_data() is False
    assert len(session.calls) == 2


def test_initialize_database_seeds_only_empty_collections(store_cfg: StoreConfig) -> None:
    session = FakeSession(
        [
            FakeResponse(payload=[]),
            FakeResponse(),
            FakeResponse(payload=[{"city_name": "Ankara", "color": "#ffffff"}]),
        ]
    )
    store = AttributeStore(store_cfg, session=session)
    reference = ReferencePalette(default="#d1d5db", colors={"ankara": "#22c55e"})
    assert store.initialize_database(PROVINCES, reference)

    assert [c["method"] for c in session.calls] == ["GET", "POST", "GET"]
    assert session.calls[0]["params"]["limit"] == "1"
    assert session.calls[1]["json"] == [
        {"city_name": "Ankara", "store_count": 0, "city_id": "ankara"},
        {"city_name": "İzmir", "store_count": 0, "city_id": "izmir"},
    ]


def test_initialize_database_stops_on_read_failure(store_cfg: StoreConfig) -> None:
    session = FakeSession([FakeResponse(status_code=503)])
    store = AttributeStore(store_cfg, session=session)
    assert store.initialize_database(PROVINCES, ReferencePalette(default="#d1d5db")) is False
    assert len(session.calls) == 1


def test_unknown_collection(store_cfg: StoreConfig, fake_session: FakeSession) -> None:
    with pytest.raises(ValueError):
        AttributeStore(store_cfg, session=fake_session).read_all("flags")
