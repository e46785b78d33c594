"""Mutable SVG drawing surface built on the loaded base map document."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Mapping

from .basemap import BaseMapDocument, local_name, svg_tag
from .projection import Viewport

_LOGGER = logging.getLogger("depotmap.surface")

RINGS_LAYER_ID = "rings-layer"
LABELS_LAYER_ID = "labels-layer"
DEFAULT_VIEW_BOX = "0 0 1000 618"


class MapSurface:
    """Province groups, overlay layers and the viewBox of one SVG document."""

    def __init__(self, document: BaseMapDocument) -> None:
        self.root = document.root
        self._groups: dict[str, ET.Element] = {}
        container = None
        for element in self.root.iter():
            if element.get("id") == document.container_id:
                container = element
                break
        if container is not None:
            for group in container:
                group_id = group.get("id")
                if local_name(group.tag) == "g" and group_id:
                    self._groups.setdefault(group_id.strip().lower(), group)
        if self.root.get("viewBox") is None:
            self.root.set("viewBox", DEFAULT_VIEW_BOX)

    @property
    def view_box(self) -> Viewport:
        return Viewport.from_view_box(self.root.get("viewBox", DEFAULT_VIEW_BOX))

    @view_box.setter
    def view_box(self, viewport: Viewport) -> None:
        self.root.set("viewBox", viewport.to_view_box())

    def zoom_out(self, factor: float) -> Viewport:
        """Enlarge the viewBox around its center and return the new viewport."""
        zoomed = self.view_box.zoomed_out(factor)
        self.view_box = zoomed
        _LOGGER.debug("viewBox zoomed out by %.2f to %s", factor, zoomed.to_view_box())
        return zoomed

    @property
    def region_ids(self) -> tuple[str, ...]:
        return tuple(self._groups)

    def region_group(self, region_id: str) -> ET.Element | None:
        return self._groups.get(region_id.strip().lower())

    def region_paths(self, region_id: str) -> list[ET.Element]:
        group = self.region_group(region_id)
        if group is None:
            return []
        return list(group.iter(svg_tag("path")))

    def all_region_paths(self) -> list[ET.Element]:
        out: list[ET.Element] = []
        for group in self._groups.values():
            out.extend(group.iter(svg_tag("path")))
        return out

    def layer(self, layer_id: str) -> ET.Element:
        """Top-level overlay group; created on first use, drawn above the map."""
        for child in self.root:
            if local_name(child.tag) == "g" and child.get("id") == layer_id:
                return child
        group = ET.SubElement(self.root, svg_tag("g"), {"id": layer_id})
        return group

    def clear_layer(self, layer_id: str) -> ET.Element:
        group = self.layer(layer_id)
        for child in list(group):
            group.remove(child)
        return group

    def to_string(self) -> str:
        return ET.tostring(self.root, encoding="unicode")

    def write(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_string(), encoding="utf-8")
        _LOGGER.info("Wrote SVG surface: %s", path)
        return path


def add_element(
    parent: ET.Element,
    tag: str,
    attrs: Mapping[str, str],
    text: str | None = None,
) -> ET.Element:
    element = ET.SubElement(parent, svg_tag(tag), dict(attrs))
    if text is not None:
        element.text = text
    return element
