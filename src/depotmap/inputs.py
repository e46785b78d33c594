"""Validation of user-entered radius, count and color values."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Callable, TypeVar

from .errors import InvalidNumericInput

_LOGGER = logging.getLogger("depotmap.inputs")

MIN_RADIUS_KM = 10.0
MAX_RADIUS_KM = 600.0
_HEX_RE = re.compile(r"^#?([0-9A-Fa-f]{6})$")

T = TypeVar("T")


def _to_float(raw: Any, what: str) -> float:
    if isinstance(raw, bool):
        raise InvalidNumericInput(f"{what} must be a number, got {raw!r}")
    try:
        value = float(str(raw).strip()) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError):
        raise InvalidNumericInput(f"{what} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise InvalidNumericInput(f"{what} must be finite, got {raw!r}")
    return value


def parse_radius(raw: Any, *, minimum: float = MIN_RADIUS_KM, maximum: float = MAX_RADIUS_KM) -> float:
    value = _to_float(raw, "Radius")
    if not minimum <= value <= maximum:
        raise InvalidNumericInput(f"Radius must be within {minimum:g}..{maximum:g} km, got {value:g}")
    return value


def parse_count(raw: Any) -> int:
    value = _to_float(raw, "Store count")
    if value < 0 or not value.is_integer():
        raise InvalidNumericInput(f"Store count must be a non-negative integer, got {raw!r}")
    return int(value)


def parse_color(raw: Any) -> str:
    """Normalize `rrggbb` / `#rrggbb` to lowercase `#rrggbb`."""
    match = _HEX_RE.match(str(raw).strip()) if raw is not None else None
    if match is None:
        raise InvalidNumericInput(f"Color must be a 6-digit hex value, got {raw!r}")
    return f"#{match.group(1).lower()}"


def accept(raw: Any, previous: T, parser: Callable[[Any], T]) -> T:
    """Parsed value, or `previous` when the input is rejected."""
    try:
        return parser(raw)
    except InvalidNumericInput as exc:
        _LOGGER.warning("Input rejected, keeping %r: %s", previous, exc)
        return previous


def accept_radius(raw: Any, previous: float) -> float:
    return accept(raw, previous, parse_radius)


def accept_count(raw: Any, previous: int) -> int:
    return accept(raw, previous, parse_count)


def accept_color(raw: Any, previous: str) -> str:
    return accept(raw, previous, parse_color)
