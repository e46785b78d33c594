"""Province name/count labels and the split-region depot count labels."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .names import fold_name, lookup_attribute
from .registry import RegionRegistry
from .surface import LABELS_LAYER_ID, MapSurface, add_element

_LOGGER = logging.getLogger("depotmap.labels")

NAME_OFFSET_Y = -10.0
COUNT_OFFSET_Y = 6.0
SPLIT_OFFSET_Y = -14.0
SPLIT_PREFIX = "İST"
FONT_FAMILY = (
    "ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial, "
    "'Apple Color Emoji', 'Segoe UI Emoji'"
)


@dataclass(frozen=True, slots=True)
class TextLabel:
    x: float
    y: float
    text: str
    kind: str
    font_weight: str
    baseline: str
    fill: str
    region_id: str
    selected: bool = False


@dataclass(slots=True)
class LabelLayer:
    labels: list[TextLabel] = field(default_factory=list)
    font_size: int = 9
    halo: str = "rgba(255,255,255,0.8)"

    def by_kind(self, kind: str) -> list[TextLabel]:
        return [label for label in self.labels if label.kind == kind]

    def draw(self, surface: MapSurface) -> int:
        """Replace the contents of the labels layer; returns the label count."""
        layer = surface.clear_layer(LABELS_LAYER_ID)
        for label in self.labels:
            attrs = {
                "x": _num(label.x),
                "y": _num(label.y),
                "text-anchor": "middle",
                "dominant-baseline": label.baseline,
                "font-size": str(self.font_size),
                "font-weight": label.font_weight,
                "fill": label.fill,
                "paint-order": "stroke",
                "stroke": self.halo,
                "stroke-width": "2",
                "class": f"label-{label.kind}",
            }
            if label.kind == "name":
                attrs["font-family"] = FONT_FAMILY
            if label.selected:
                attrs["data-selected"] = "true"
            add_element(layer, "text", attrs, label.text)
        return len(self.labels)


def render_labels(
    registry: RegionRegistry,
    counts: Mapping[str, Any],
    selection: Iterable[str] = (),
    *,
    split_region: str = "istanbul",
    label_color: str = "#111",
    split_label_color: str = "#000000",
    font_size: int = 9,
    halo: str = "rgba(255,255,255,0.8)",
) -> LabelLayer:
    """Build labels for every region; selected depots' regions are flagged."""
    selected = tuple(selection)
    selected_ids = {region.id for region in map(registry.resolve, selected) if region is not None}
    layer = LabelLayer(font_size=font_size, halo=halo)

    for region in registry.values():
        if region.id == split_region:
            continue
        cx, cy = region.centroid
        is_selected = region.id in selected_ids
        layer.labels.append(
            TextLabel(
                x=cx,
                y=cy + NAME_OFFSET_Y,
                text=region.display_name,
                kind="name",
                font_weight="500",
                baseline="central",
                fill=label_color,
                region_id=region.id,
                selected=is_selected,
            )
        )
        count = _as_count(lookup_attribute(region, counts))
        if count is None:
            continue
        layer.labels.append(
            TextLabel(
                x=cx,
                y=cy + COUNT_OFFSET_Y,
                text=count,
                kind="count",
                font_weight="600",
                baseline="hanging",
                fill=label_color,
                region_id=region.id,
                selected=is_selected,
            )
        )

    for anchor in registry.split_anchors_for(split_region):
        position = registry.split_position(anchor, split_region)
        if position is None:
            continue
        count = _as_count(_lookup_depot_count(anchor.depot_id, counts))
        if count is None:
            continue
        layer.labels.append(
            TextLabel(
                x=position[0],
                y=position[1] + SPLIT_OFFSET_Y,
                text=f"{SPLIT_PREFIX} - {anchor.tag} {count}",
                kind="split",
                font_weight="600",
                baseline="central",
                fill=split_label_color,
                region_id=split_region,
                selected=anchor.depot_id in selected,
            )
        )

    _LOGGER.debug("Rendered %d labels", len(layer.labels))
    return layer


def _lookup_depot_count(depot_id: str, counts: Mapping[str, Any]) -> Any | None:
    if depot_id in counts:
        return counts[depot_id]
    target = fold_name(depot_id)
    for key, value in counts.items():
        if fold_name(str(key)) == target:
            return value
    return None


def _as_count(value: Any) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def _num(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text
