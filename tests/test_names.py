from __future__ import annotations

import pytest

from depotmap.models import Region
from depotmap.names import (
    ATTRIBUTE_STRATEGIES,
    ResolverStrategy,
    fold_name,
    lookup_attribute,
    names_match,
    normalize_id,
    resolve_region,
)


def _region(region_id: str, name: str) -> Region:
    return Region(id=region_id, display_name=name, centroid=(0.0, 0.0), bbox=(0.0, 0.0, 0.0, 0.0))


@pytest.fixture
def regions() -> dict[str, Region]:
    return {
        "istanbul": _region("istanbul", "İstanbul"),
        "agri": _region("agri", "Ağrı"),
        "sanliurfa": _region("sanliurfa", "Şanlıurfa"),
    }


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Ağrı", "agri"),
        ("İstanbul", "istanbul"),
        ("Şanlıurfa", "sanliurfa"),
        ("  Çanakkale ", "canakkale"),
        ("İstanbul - AVR", "istanbulavr"),
    ],
)
def test_fold_name(raw: str, expected: str) -> None:
    assert fold_name(raw) == expected


def test_names_match_and_normalize() -> None:
    assert names_match("Çorum", "corum")
    assert not names_match("Ankara", "Antalya")
    assert normalize_id("  Ankara ") == "ankara"


@pytest.mark.parametrize("identifier", ["Istanbul", "istanbul", "ISTANBUL"])
def test_exact_id_wins(regions: dict[str, Region], identifier: str) -> None:
    match = resolve_region(identifier, regions)
    assert match is not None
    assert match[0].id == "istanbul"
    assert match[1] is ResolverStrategy.EXACT_ID


def test_display_name_fallback(regions: dict[str, Region]) -> None:
    match = resolve_region("İstanbul", regions)
    assert match is not None
    assert match[0].id == "istanbul"
    assert match[1] is ResolverStrategy.DISPLAY_NAME


def test_unmatched_or_blank_identifier(regions: dict[str, Region]) -> None:
    assert resolve_region("Ankara", regions) is None
    assert resolve_region("   ", regions) is None
    # Folding is not part of the paint chain.
    assert resolve_region("AĞRI", regions) is None


def test_folded_strategy_when_requested(regions: dict[str, Region]) -> None:
    match = resolve_region("AĞRI", regions, ATTRIBUTE_STRATEGIES)
    assert match is not None
    assert match[0].id == "agri"
    assert match[1] is ResolverStrategy.FOLDED_NAME


@pytest.mark.parametrize(
    ("values", "expected"),
    [
        ({"agri": 3}, 3),
        ({"Ağrı": 5}, 5),
        ({"ağrı": 2}, 2),
        ({"AGRI": 7}, 7),
        ({"Ankara": 1}, None),
        ({}, None),
    ],
)
def test_lookup_attribute_chain(regions: dict[str, Region], values: dict[str, int], expected: int | None) -> None:
    assert lookup_attribute(regions["agri"], values) == expected


def test_lookup_attribute_prefers_exact_id(regions: dict[str, Region]) -> None:
    assert lookup_attribute(regions["agri"], {"AGRI": 1, "Ağrı": 2, "agri": 3}) == 3
