"""Region fill painting on the map surface."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Mapping

from .datafiles import ReferencePalette
from .errors import RegionResolutionFailure
from .names import PAINT_STRATEGIES, resolve_region
from .registry import RegionRegistry
from .surface import MapSurface

_LOGGER = logging.getLogger("depotmap.paint")

NEUTRAL_FILL = "#e5e7eb"
REGION_STROKE = "#111"
REGION_STROKE_WIDTH = 0.7


@dataclass(slots=True)
class PaintReport:
    painted: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.unresolved


class PaintEngine:
    def __init__(
        self,
        surface: MapSurface,
        registry: RegionRegistry,
        *,
        neutral_fill: str = NEUTRAL_FILL,
        stroke: str = REGION_STROKE,
        stroke_width: float = REGION_STROKE_WIDTH,
    ) -> None:
        self.surface = surface
        self.registry = registry
        self.neutral_fill = neutral_fill
        self.stroke = stroke
        self.stroke_width = stroke_width

    def apply_color(self, identifier: str, color: str) -> bool:
        """Fill every path of the matching region; False (logged) when nothing matches."""
        match = resolve_region(identifier, self.registry, PAINT_STRATEGIES)
        if match is None:
            _LOGGER.warning("%s; color %s not applied.", RegionResolutionFailure(identifier), color)
            return False
        region, strategy = match
        paths = self.surface.region_paths(region.id)
        if not paths:
            _LOGGER.warning("Region '%s' has no paths on the surface.", region.id)
            return False
        for path in paths:
            self._style_path(path, color)
        _LOGGER.debug("Painted '%s' (%s) via %s", region.id, color, strategy.value)
        return True

    def apply_colors(self, colors: Mapping[str, str]) -> PaintReport:
        report = PaintReport()
        for identifier, color in colors.items():
            if self.apply_color(identifier, color):
                report.painted.append(identifier)
            else:
                report.unresolved.append(identifier)
        return report

    def paint_all_default(self) -> int:
        paths = self.surface.all_region_paths()
        for path in paths:
            self._style_path(path, self.neutral_fill)
        return len(paths)

    def reset(self, reference: ReferencePalette) -> PaintReport:
        """Neutral fill everywhere, then the reference palette for each region."""
        self.paint_all_default()
        return self.apply_colors({region_id: reference.color_for(region_id) for region_id in self.registry})

    def _style_path(self, path: ET.Element, color: str) -> None:
        path.set("fill", color)
        path.set("stroke", self.stroke)
        path.set("stroke-width", f"{self.stroke_width:g}")
