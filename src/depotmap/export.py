"""Rasterized PNG and single-page PDF export of the map surface."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from PIL import Image

from .config import ExportConfig
from .surface import MapSurface
from .util import hex_to_rgb

_LOGGER = logging.getLogger("depotmap.export")

POINTS_PER_INCH = 72.0


@dataclass(frozen=True, slots=True)
class PagePlacement:
    x: float
    y: float
    width: float
    height: float


def compute_page_placement(
    image_width: float,
    image_height: float,
    page_width: float,
    page_height: float,
    margin: float,
) -> PagePlacement:
    """Largest aspect-preserving box inside the margins, centered on the page."""
    if image_width <= 0 or image_height <= 0:
        raise ValueError("Image dimensions must be positive")
    max_w = page_width - margin * 2
    max_h = page_height - margin * 2
    if max_w <= 0 or max_h <= 0:
        raise ValueError("Margins leave no printable area")
    ratio = min(max_w / image_width, max_h / image_height)
    width = image_width * ratio
    height = image_height * ratio
    return PagePlacement(
        x=(page_width - width) / 2,
        y=(page_height - height) / 2,
        width=width,
        height=height,
    )


def rasterize_svg(svg_text: str, *, scale: float = 2.0, background: str = "#ffffff") -> Image.Image:
    """Render SVG markup to an RGB image flattened onto `background`."""
    cairosvg = _require_cairosvg()
    png_bytes = cairosvg.svg2png(bytestring=svg_text.encode("utf-8"), scale=scale)
    with Image.open(io.BytesIO(png_bytes)) as image:
        rgba = image.convert("RGBA")
    canvas = Image.new("RGBA", rgba.size, (*hex_to_rgb(background), 255))
    canvas.paste(rgba, (0, 0), rgba)
    return canvas.convert("RGB")


def export_png(surface: MapSurface, output_path: Path, cfg: ExportConfig) -> Path:
    image = rasterize_svg(surface.to_string(), scale=cfg.scale, background=cfg.background)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(output_path, format="PNG")
    _LOGGER.info("Wrote PNG export: %s (%dx%d)", output_path, image.width, image.height)
    return output_path


def export_pdf(surface: MapSurface, output_path: Path, cfg: ExportConfig) -> Path:
    """One landscape page; the map is maximized within the margins."""
    image = rasterize_svg(surface.to_string(), scale=cfg.scale, background=cfg.background)
    dpi = POINTS_PER_INCH * cfg.scale
    px_per_pt = dpi / POINTS_PER_INCH
    page_w = max(int(round(cfg.page_width_pt * px_per_pt)), 1)
    page_h = max(int(round(cfg.page_height_pt * px_per_pt)), 1)

    placement = compute_page_placement(
        image.width,
        image.height,
        cfg.page_width_pt,
        cfg.page_height_pt,
        cfg.margin_pt,
    )
    draw_w = max(int(round(placement.width * px_per_pt)), 1)
    draw_h = max(int(round(placement.height * px_per_pt)), 1)
    resampling = getattr(getattr(Image, "Resampling", Image), "LANCZOS")
    resized = image.resize((draw_w, draw_h), resample=resampling)

    page = Image.new("RGB", (page_w, page_h), hex_to_rgb(cfg.background))
    page.paste(resized, (int(round(placement.x * px_per_pt)), int(round(placement.y * px_per_pt))))

    output_path.parent.mkdir(parents=True, exist_ok=True)
    page.save(output_path, format="PDF", resolution=dpi)
    _LOGGER.info("Wrote PDF export: %s", output_path)
    return output_path


@lru_cache(maxsize=1)
def _require_cairosvg() -> Any:
    try:
        import cairosvg  # type: ignore[import-untyped]
    except (ImportError, OSError) as exc:  # pragma: no cover
        raise RuntimeError("cairosvg (with the cairo library) is required for raster export") from exc
    return cairosvg
