"""Hosted attribute store (Supabase/PostgREST) for per-city counts, colors and radii."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

import requests

from .config import StoreConfig
from .datafiles import ReferencePalette
from .errors import PersistenceFailure
from .models import CityAttribute

_LOGGER = logging.getLogger("depotmap.store")

COUNTS = "counts"
COLORS = "colors"
RADII = "radii"


@dataclass(frozen=True, slots=True)
class CollectionSpec:
    name: str
    table: str
    value_column: str
    key_column: str = "city_name"
    id_column: str = "city_id"


def collections_from_config(cfg: StoreConfig) -> Mapping[str, CollectionSpec]:
    return MappingProxyType(
        {
            COUNTS: CollectionSpec(COUNTS, cfg.tables.counts, "store_count"),
            COLORS: CollectionSpec(COLORS, cfg.tables.colors, "color"),
            RADII: CollectionSpec(RADII, cfg.tables.radii, "radius_km"),
        }
    )


class AttributeStore:
    """Narrow get/set contract over three keyed collections.

    Every failure is logged as a PersistenceFailure and reported as an empty
    mapping (reads) or False (writes). Nothing is retried.
    """

    def __init__(
        self,
        cfg: StoreConfig,
        *,
        session: Any | None = None,
        city_ids: Mapping[str, str] | None = None,
    ) -> None:
        self.cfg = cfg
        self.collections = collections_from_config(cfg)
        self._city_ids = dict(city_ids or {})
        self._session = session or requests.Session()
        if cfg.configured:
            self._session.headers.update(
                {
                    "apikey": cfg.anon_key,
                    "Authorization": f"Bearer {cfg.anon_key}",
                    "Content-Type": "application/json",
                }
            )

    @property
    def configured(self) -> bool:
        return self.cfg.configured

    def read_attributes(self, collection: str) -> list[CityAttribute]:
        """Rows of one collection in store order; empty on any failure."""
        try:
            rows = self._select(collection)
        except PersistenceFailure as exc:
            _LOGGER.error("%s", exc)
            return []
        spec = self._spec(collection)
        out: list[CityAttribute] = []
        for row in rows:
            key = row.get(spec.key_column) or row.get(spec.id_column)
            if key:
                out.append(CityAttribute(region_key=str(key), value=row.get(spec.value_column)))
        _LOGGER.debug("Read %d rows from %s", len(out), spec.table)
        return out

    def read_all(self, collection: str) -> dict[str, Any]:
        """Mapping of display name -> value; empty on any failure."""
        return {attr.region_key: attr.value for attr in self.read_attributes(collection)}

    def upsert(self, collection: str, key: str, value: Any) -> bool:
        return self.upsert_many(collection, {key: value})

    def upsert_many(self, collection: str, values: Mapping[str, Any]) -> bool:
        if not values:
            return True
        spec = self._spec(collection)
        rows = [self._row(spec, CityAttribute(key, value)) for key, value in values.items()]
        try:
            self._request(
                "POST",
                spec,
                params={"on_conflict": spec.key_column},
                json=rows,
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
                operation="upsert",
            )
        except PersistenceFailure as exc:
            _LOGGER.error("%s", exc)
            return False
        _LOGGER.info("Upserted %d rows into %s", len(rows), spec.table)
        return True

    def delete_all(self, collection: str) -> bool:
        spec = self._spec(collection)
        try:
            self._request("DELETE", spec, params={"id": "neq.0"}, operation="delete_all")
        except PersistenceFailure as exc:
            _LOGGER.error("%s", exc)
            return False
        _LOGGER.info("Cleared %s", spec.table)
        return True

    def clear_all_data(self) -> bool:
        """Delete counts and colors; radii are left untouched."""
        counts_ok = self.delete_all(COUNTS)
        colors_ok = self.delete_all(COLORS)
        return counts_ok and colors_ok

    def initialize_database(self, provinces: Mapping[str, str], reference: ReferencePalette) -> bool:
        """Seed empty count/color collections for every province (count 0, reference color)."""
        seeds = {
            COUNTS: {name: 0 for name in provinces.values()},
            COLORS: {name: reference.color_for(province_id) for province_id, name in provinces.items()},
        }
        self._city_ids.update({name: province_id for province_id, name in provinces.items()})
        for collection, values in seeds.items():
            try:
                existing = self._select(collection, limit=1)
            except PersistenceFailure as exc:
                _LOGGER.error("%s", exc)
                return False
            if existing:
                _LOGGER.info("%s already populated; not seeding.", self._spec(collection).table)
                continue
            if not self.upsert_many(collection, values):
                return False
        return True

    def _spec(self, collection: str) -> CollectionSpec:
        try:
            return self.collections[collection]
        except KeyError:
            raise ValueError(f"Unknown collection '{collection}'") from None

    def _row(self, spec: CollectionSpec, attribute: CityAttribute) -> dict[str, Any]:
        row: dict[str, Any] = {spec.key_column: attribute.region_key, spec.value_column: attribute.value}
        city_id = self._city_ids.get(attribute.region_key)
        if city_id:
            row[spec.id_column] = city_id
        return row

    def _select(self, collection: str, *, limit: int | None = None) -> list[dict[str, Any]]:
        spec = self._spec(collection)
        params = {
            "select": f"{spec.id_column},{spec.key_column},{spec.value_column}",
            "order": spec.id_column,
        }
        if limit is not None:
            params["limit"] = str(limit)
        response = self._request("GET", spec, params=params, operation="read_all")
        try:
            rows = response.json()
        except ValueError as exc:
            raise PersistenceFailure("read_all", spec.table, f"invalid JSON: {exc}") from exc
        if not isinstance(rows, list):
            raise PersistenceFailure("read_all", spec.table, "expected a JSON array")
        return [row for row in rows if isinstance(row, dict)]

    def _request(
        self,
        method: str,
        spec: CollectionSpec,
        *,
        operation: str,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> requests.Response:
        if not self.configured:
            raise PersistenceFailure(operation, spec.table, "store URL/key not configured")
        url = f"{self.cfg.url.rstrip('/')}/rest/v1/{spec.table}"
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.cfg.request_timeout_s,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise PersistenceFailure(operation, spec.table, str(exc)) from exc
        return response
