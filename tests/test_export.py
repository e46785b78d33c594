from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from depotmap.config import ExportConfig
from depotmap.export import compute_page_placement, export_pdf, export_png, rasterize_svg
from depotmap.surface import MapSurface

A3_LANDSCAPE = (1190.55, 841.89)


def _require_cairosvg() -> None:
    try:
        import cairosvg  # noqa: F401
    except (ImportError, OSError) as exc:
        pytest.skip(f"cairosvg unavailable: {exc}")


@pytest.fixture
def export_cfg() -> ExportConfig:
    return ExportConfig(
        page_width_pt=A3_LANDSCAPE[0],
        page_height_pt=A3_LANDSCAPE[1],
        margin_pt=24.0,
        scale=1.0,
        background="#ffffff",
    )


def test_wide_image_fills_printable_width() -> None:
    placement = compute_page_placement(1000, 500, *A3_LANDSCAPE, 24.0)
    assert placement.width == pytest.approx(1142.55)
    assert placement.height == pytest.approx(571.275)
    assert placement.x == pytest.approx(24.0)
    assert placement.y == pytest.approx((841.89 - 571.275) / 2)


def test_tall_image_fills_printable_height() -> None:
    placement = compute_page_placement(500, 1000, *A3_LANDSCAPE, 24.0)
    assert placement.height == pytest.approx(793.89)
    assert placement.y == pytest.approx(24.0)
    assert placement.x == pytest.approx((1190.55 - placement.width) / 2)
    assert placement.width / placement.height == pytest.approx(0.5)


def test_invalid_placement_inputs() -> None:
    with pytest.raises(ValueError):
        compute_page_placement(0, 100, *A3_LANDSCAPE, 24.0)
    with pytest.raises(ValueError):
        compute_page_placement(100, 100, 40.0, 40.0, 20.0)


def test_rasterize_flattens_onto_background() -> None:
    _require_cairosvg()
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10">'
        '<rect x="0" y="0" width="5" height="10" fill="#ff0000"/></svg>'
    )
    image = rasterize_svg(svg, scale=2.0, background="#ffffff")
    assert image.mode == "RGB"
    assert image.size == (20, 20)
    assert image.getpixel((1, 10)) == (255, 0, 0)
    assert image.getpixel((18, 10)) == (255, 255, 255)


def test_png_and_pdf_export(surface: MapSurface, export_cfg: ExportConfig, tmp_path: Path) -> None:
    _require_cairosvg()
    surface.root.set("width", "500")
    surface.root.set("height", "309")
    png_path = export_png(surface, tmp_path / "out" / "turkey.png", export_cfg)
    with Image.open(png_path) as image:
        assert image.format == "PNG"
        assert image.size == (500, 309)

    pdf_path = export_pdf(surface, tmp_path / "out" / "turkey.pdf", export_cfg)
    assert pdf_path.read_bytes().startswith(b"%PDF")
