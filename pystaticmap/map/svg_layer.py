"""
Vector overlay rasterization.

Features are serialized to SVG documents positioned in canvas pixels and
rasterized with CairoSVG. Rasterization is CPU bound, so
``compose_svg_layers`` is meant to run in a worker process or thread.

Overlay layers are stacked in a fixed order: lines (including polygons
and multipolygons), circles, custom figures, text.
"""

from dataclasses import dataclass
from html import escape
from io import BytesIO
from typing import Callable, Dict, List, Sequence
import logging
import math
import time

import cairosvg
from PIL import Image

from pystaticmap.exceptions import RasterizationError
from pystaticmap.features import Circle, CustomFigure, MultiPolygon, Polyline, Text
from pystaticmap.gis.projection import coords_to_pixels, lat_to_y, lon_to_x, meter_to_pixel, to_pixel

logger = logging.getLogger(__name__)

RENDER_CHUNK_SIZE = 1000

LAYER_ORDER = ('lines', 'circles', 'custom', 'text')


@dataclass(frozen=True)
class MapOptions:
    """Render-scoped placement parameters shared by all overlay features."""

    width: int
    height: int
    zoom: int
    center_x: float
    center_y: float
    tile_size: int = 256

    def x_to_px(self, x: float) -> int:
        return to_pixel(x, self.center_x, self.tile_size, self.width)

    def y_to_px(self, y: float) -> int:
        return to_pixel(y, self.center_y, self.tile_size, self.height)

    def lonlat_to_px(self, coord) -> tuple:
        return (
            self.x_to_px(lon_to_x(coord[0], self.zoom)),
            self.y_to_px(lat_to_y(coord[1], self.zoom)),
        )

    def coords_to_px(self, coords):
        return coords_to_pixels(
            coords, self.zoom, self.center_x, self.center_y,
            self.tile_size, self.width, self.height,
        )


def _attr(value) -> str:
    return escape(str(value), quote=True)


def _points(pixels) -> str:
    return ' '.join(f"{x},{y}" for x, y in pixels.tolist())


def line_to_svg(line: Polyline, options: MapOptions) -> str:
    """Open ``polyline`` or closed ``polygon`` element."""
    tag = 'polyline' if line.type == 'polyline' else 'polygon'
    return (
        f'<{tag} style="fill-rule: inherit;" '
        f'points="{_points(options.coords_to_px(line.coords))}" '
        f'stroke="{_attr(line.color)}" '
        f'fill="{_attr(line.fill or "none")}" '
        f'stroke-width="{_attr(line.width)}"/>'
    )


def multipolygon_to_svg(multipolygon: MultiPolygon, options: MapOptions) -> str:
    """All rings as subpaths of one ``path``; holes come from the even-odd rule."""
    subpaths = []
    for ring in multipolygon.coords:
        pixels = options.coords_to_px(ring).tolist()
        start, rest = pixels[0], pixels[1:]
        parts = [f"M {start[0]} {start[1]}"] + [f"L {x} {y}" for x, y in rest] + ['Z']
        subpaths.append(' '.join(parts))
    return (
        f'<path d="{" ".join(subpaths)}" style="fill-rule: evenodd;" '
        f'stroke="{_attr(multipolygon.color)}" '
        f'fill="{_attr(multipolygon.fill or "none")}" '
        f'stroke-width="{_attr(multipolygon.width)}"/>'
    )


def circle_to_svg(circle: Circle, options: MapOptions) -> str:
    """Circle whose pixel radius is measured at its own latitude."""
    radius = meter_to_pixel(circle.radius, options.zoom, circle.coord[1])
    x, y = options.lonlat_to_px(circle.coord)
    return (
        f'<circle cx="{x}" cy="{y}" r="{radius}" style="fill-rule: inherit;" '
        f'stroke="{_attr(circle.color)}" '
        f'fill="{_attr(circle.fill or "none")}" '
        f'stroke-width="{_attr(circle.width)}"/>'
    )


def custom_to_svg(custom: CustomFigure, options: MapOptions) -> str:
    """
    Nested ``svg`` holding the figure's path in a 500x500 view box.

    The figure and its anchor offset are scaled by ``zoom / 4``.
    """
    scale = options.zoom / 4
    x, y = options.lonlat_to_px(custom.coord)
    x -= math.floor(custom.offset_x * scale)
    y -= math.floor(custom.offset_y * scale)
    return (
        f'<svg width="{math.floor(custom.width * scale)}" '
        f'height="{math.floor(custom.height * scale)}" '
        f'viewBox="0 0 500 500" x="{x}" y="{y}">'
        f'<path d="{_attr(custom.path)}" style="fill-rule: inherit;" '
        f'stroke="{_attr(custom.color)}" '
        f'fill="{_attr(custom.fill or "none")}" '
        f'stroke-width="{_attr(custom.stroke_width)}"/>'
        f'</svg>'
    )


def text_to_svg(text: Text, options: MapOptions) -> str:
    x, y = options.lonlat_to_px(text.coord)
    return (
        f'<text x="{x - text.offset_x}" y="{y - text.offset_y}" '
        f'style="fill-rule: inherit; font-family: {_attr(text.font)};" '
        f'font-size="{_attr(text.size)}pt" '
        f'stroke="{_attr(text.color)}" '
        f'fill="{_attr(text.fill or "none")}" '
        f'stroke-width="{_attr(text.width)}" '
        f'text-anchor="{_attr(text.anchor)}">{escape(text.text, quote=False)}</text>'
    )


def _line_or_multipolygon(feature, options: MapOptions) -> str:
    if isinstance(feature, MultiPolygon):
        return multipolygon_to_svg(feature, options)
    return line_to_svg(feature, options)


_HANDLERS: Dict[str, Callable] = {
    'lines': _line_or_multipolygon,
    'circles': circle_to_svg,
    'custom': custom_to_svg,
    'text': text_to_svg,
}


def draw_svg(
    features: Sequence,
    kind: str,
    options: MapOptions,
    chunk_size: int = RENDER_CHUNK_SIZE,
) -> List[str]:
    """
    Serialize one class of features to canvas-sized SVG documents.

    Args:
        features: Features in drawing order
        kind: One of ``LAYER_ORDER``
        options: Placement parameters of the render
        chunk_size: Maximum features per document

    Returns:
        SVG documents, empty when there is nothing to draw
    """
    if kind not in _HANDLERS:
        raise ValueError(f"Unknown feature layer '{kind}'")
    if not features:
        return []

    handler = _HANDLERS[kind]
    t1 = time.perf_counter()
    documents = []
    for i in range(0, len(features), chunk_size):
        body = '\n'.join(handler(f, options) for f in features[i:i + chunk_size])
        documents.append(
            f'<svg width="{options.width}px" height="{options.height}px" '
            f'version="1.1" xmlns="http://www.w3.org/2000/svg">\n{body}\n</svg>'
        )
    logger.debug(
        "Finish drawing %s. %d features in %d documents. Take %.1f ms",
        kind, len(features), len(documents), (time.perf_counter() - t1) * 1000,
    )
    return documents


def rasterize_svg(document: str, width: int, height: int) -> 'Image.Image':
    png = cairosvg.svg2png(
        bytestring=document.encode('utf-8'),
        output_width=width,
        output_height=height,
    )
    return Image.open(BytesIO(png)).convert('RGBA')


def compose_svg_layers(layers: Sequence[Sequence[str]], width: int, height: int) -> bytes:
    """
    Rasterize and stack overlay layers.

    This is the unit of work submitted to the worker pool; arguments and
    result are plain picklable values.

    Args:
        layers: Per feature class, the SVG documents produced by ``draw_svg``,
            bottom layer first
        width: Canvas width
        height: Canvas height

    Returns:
        PNG encoded RGBA overlay

    Raises:
        RasterizationError: If any document cannot be rasterized
    """
    t1 = time.perf_counter()
    overlay = Image.new('RGBA', (width, height), (0, 0, 0, 0))
    for documents in layers:
        for document in documents:
            try:
                part = rasterize_svg(document, width, height)
            except Exception as e:
                raise RasterizationError(f"Cannot rasterize overlay: {e}") from e
            overlay.alpha_composite(part)

    out = BytesIO()
    overlay.save(out, format='PNG')
    logger.debug("Finish compose SVG layer. Take %.1f ms.", (time.perf_counter() - t1) * 1000)
    return out.getvalue()
