"""Region name normalization and ordered resolver strategies."""

from __future__ import annotations

import enum
import unicodedata
from typing import Any, Iterable, Mapping, Sequence

from .models import Region

# Dotless i has no NFKD decomposition.
_FOLD_TRANSLATION = str.maketrans({"ı": "i"})


class ResolverStrategy(enum.Enum):
    EXACT_ID = "exact_id"
    DISPLAY_NAME = "display_name"
    LOWERCASE_NAME = "lowercase_name"
    FOLDED_NAME = "folded_name"


PAINT_STRATEGIES: tuple[ResolverStrategy, ...] = (
    ResolverStrategy.EXACT_ID,
    ResolverStrategy.DISPLAY_NAME,
)
ATTRIBUTE_STRATEGIES: tuple[ResolverStrategy, ...] = (
    ResolverStrategy.EXACT_ID,
    ResolverStrategy.DISPLAY_NAME,
    ResolverStrategy.LOWERCASE_NAME,
    ResolverStrategy.FOLDED_NAME,
)


def normalize_id(value: str) -> str:
    return value.strip().lower()


def fold_name(value: str) -> str:
    """Diacritic-insensitive, case-insensitive comparison key."""
    translated = value.translate(_FOLD_TRANSLATION)
    decomposed = unicodedata.normalize("NFKD", translated)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return "".join(ch for ch in without_marks.casefold() if ch.isalnum())


def names_match(left: str, right: str) -> bool:
    return fold_name(left) == fold_name(right)


def resolve_region(
    identifier: str,
    regions: Mapping[str, Region],
    strategies: Sequence[ResolverStrategy] = PAINT_STRATEGIES,
) -> tuple[Region, ResolverStrategy] | None:
    """Try each strategy in order; first match wins."""
    if not identifier or not identifier.strip():
        return None
    for strategy in strategies:
        region = _match_region(strategy, identifier, regions)
        if region is not None:
            return (region, strategy)
    return None


def _match_region(
    strategy: ResolverStrategy,
    identifier: str,
    regions: Mapping[str, Region],
) -> Region | None:
    if strategy is ResolverStrategy.EXACT_ID:
        return regions.get(normalize_id(identifier))
    if strategy is ResolverStrategy.DISPLAY_NAME:
        target = identifier.strip().casefold()
        return _first(region for region in regions.values() if region.display_name.casefold() == target)
    if strategy is ResolverStrategy.LOWERCASE_NAME:
        target = identifier.strip().lower()
        return _first(region for region in regions.values() if region.display_name.lower() == target)
    if strategy is ResolverStrategy.FOLDED_NAME:
        target = fold_name(identifier)
        return _first(
            region
            for region in regions.values()
            if fold_name(region.display_name) == target or fold_name(region.id) == target
        )
    raise ValueError(f"Unknown resolver strategy: {strategy}")


def lookup_attribute(
    region: Region,
    values: Mapping[str, Any],
    strategies: Sequence[ResolverStrategy] = ATTRIBUTE_STRATEGIES,
) -> Any | None:
    """Find a persisted value for a region whose store key is its display name."""
    folded_index: dict[str, Any] | None = None
    for strategy in strategies:
        if strategy is ResolverStrategy.EXACT_ID:
            key = region.id
        elif strategy is ResolverStrategy.DISPLAY_NAME:
            key = region.display_name
        elif strategy is ResolverStrategy.LOWERCASE_NAME:
            key = region.display_name.lower()
        elif strategy is ResolverStrategy.FOLDED_NAME:
            if folded_index is None:
                folded_index = {fold_name(str(k)): v for k, v in values.items()}
            folded = fold_name(region.display_name)
            if folded in folded_index:
                return folded_index[folded]
            continue
        else:
            raise ValueError(f"Unknown resolver strategy: {strategy}")
        if key in values:
            return values[key]
    return None


def _first(items: Iterable[Region]) -> Region | None:
    for item in items:
        return item
    return None
