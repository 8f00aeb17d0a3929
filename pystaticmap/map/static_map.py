"""
Static map session.

A ``StaticMap`` collects features through its ``add_*`` methods and turns
them into a single raster with ``render``:

1. resolve the extent of all features and the highest zoom that fits it
2. plan the grid of tiles covering the canvas
3. fetch tiles (bounded concurrency, disk cache) while the vector overlay
   is rasterized in a worker
4. assemble the base layer and composite the overlay on top

Example:
    >>> smap = StaticMap(width=600, height=400)
    >>> smap.add_line(coords=[(13.37, 52.51), (13.41, 52.52)], color='#0000FFBB')
    >>> smap.add_marker(coord=(13.4, 52.5), width=32, height=32)
    >>> image = smap.render()
    >>> image.save('berlin.png')
"""

from concurrent.futures import BrokenExecutor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from io import BytesIO
from typing import Callable, Dict, List, Optional, Sequence
import logging
import math

import requests
from PIL import Image

from pystaticmap.exceptions import ConfigurationError, RasterizationError
from pystaticmap.features import Bound, Circle, CustomFigure, IconMarker, MultiPolygon, Polyline, Text
from pystaticmap.gis.projection import lat_to_y, lon_to_x, x_to_lon, y_to_lat
from . import events
from .events import MapEvents
from .image import MapImage
from .raster_map_servers import DEFAULT_TILE_REQUEST_LIMIT, RasterTileServer, TilePlan
from .svg_layer import MapOptions, compose_svg_layers, draw_svg

logger = logging.getLogger(__name__)

DEFAULT_TILE_URL = 'https://tile.openstreetmap.org/{z}/{x}/{y}.png'
DEFAULT_MIN_ZOOM = 1
DEFAULT_MAX_ZOOM = 17

OFFLOAD_MODES = ('process', 'thread')


class StaticMap:
    """
    Builder and renderer for one static map.

    Attributes:
        width (int): Canvas width in pixels
        height (int): Canvas height in pixels
        padding (tuple): Pixels kept free on each side when fitting the zoom
        zoom_range (dict): ``{'min': int, 'max': int}``
        server (RasterTileServer): Tile source of the base layer
        events (MapEvents): Render milestone observers
        zoom (int): Zoom of the last render
        center_x, center_y (float): Tile fraction of the canvas center of the last render
    """

    def __init__(
        self,
        width: Optional[int] = None,
        height: Optional[int] = None,
        padding_x: int = 0,
        padding_y: int = 0,
        tile_url: Optional[str] = DEFAULT_TILE_URL,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        tile_size: Optional[int] = None,
        tile_subdomains: Optional[Sequence[str]] = None,
        tile_request_timeout: Optional[float] = None,
        tile_request_header: Optional[Dict[str, str]] = None,
        tile_request_limit: Optional[int] = DEFAULT_TILE_REQUEST_LIMIT,
        tiles_cache_dir: Optional[str] = None,
        reverse_y: bool = False,
        zoom_range: Optional[Dict[str, int]] = None,
        max_zoom: Optional[int] = None,
        quality: int = 100,
        offload: str = 'process',
        on_progress: Optional[Callable] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Create a map session.

        Args:
            width: Canvas width in pixels (required before rendering)
            height: Canvas height in pixels (required before rendering)
            padding_x: Horizontal padding excluded from zoom fitting
            padding_y: Vertical padding excluded from zoom fitting
            tile_url: Tile URL template, ``None`` to render without base layer.
                Ignored when ``provider`` is given.
            provider: Registered tile provider, see
                ``RasterTileServer.get_available_providers()``
            api_key: API key for providers that require one
            tile_size: Tile size in pixels (default: provider's, else 256)
            tile_subdomains: Values substituted at random for ``{s}``
            tile_request_timeout: Per tile request timeout in seconds
            tile_request_header: Extra HTTP headers for tile requests
            tile_request_limit: Maximum simultaneous tile requests, 0 for no limit
            tiles_cache_dir: Root of the on-disk tile cache
            reverse_y: Flip the tile y axis (TMS)
            zoom_range: ``{'min': ..., 'max': ...}``, default 1..17
            max_zoom: Shortcut for ``zoom_range['max']``
            quality: Default JPEG/WEBP encoder quality
            offload: Run overlay rasterization in a worker ``'process'`` or ``'thread'``
            on_progress: Callback subscribed to render milestones
            session: requests session used for tile downloads
        """
        if offload not in OFFLOAD_MODES:
            raise ConfigurationError(f"Unknown offload mode '{offload}'. Use one of: {', '.join(OFFLOAD_MODES)}")

        self.width = width
        self.height = height
        self.padding = (padding_x or 0, padding_y or 0)
        self.quality = quality
        self.offload = offload

        self.server = RasterTileServer(
            provider=provider,
            url_template=None if provider else tile_url,
            api_key=api_key,
            tile_size=tile_size,
            subdomains=tile_subdomains,
            reverse_y=reverse_y,
            tiles_cache_dir=tiles_cache_dir,
            tile_request_timeout=tile_request_timeout,
            tile_request_header=tile_request_header,
            tile_request_limit=tile_request_limit,
            session=session,
        )
        self.tile_size = self.server.tile_size

        zoom_range = zoom_range or {}
        self.zoom_range = {
            'min': zoom_range.get('min') or DEFAULT_MIN_ZOOM,
            'max': max_zoom or zoom_range.get('max') or DEFAULT_MAX_ZOOM,
        }
        if self.zoom_range['min'] > self.zoom_range['max']:
            raise ConfigurationError(f"Invalid zoom range {self.zoom_range}")

        self.events = MapEvents()
        if on_progress is not None:
            self.events.subscribe(on_progress)

        # features, in drawing order per type
        self.markers: List[IconMarker] = []
        self.customfigures: List[CustomFigure] = []
        self.lines: List[Polyline] = []
        self.multipolygons: List[MultiPolygon] = []
        self.circles: List[Circle] = []
        self.text: List[Text] = []
        self.bounds: List[Bound] = []

        # set when the map is rendered
        self.center: Optional[Sequence[float]] = None
        self.center_x = 0.0
        self.center_y = 0.0
        self.zoom = 0
        self.image: Optional[MapImage] = None

    # --- Features ---

    @staticmethod
    def _build(feature_cls, feature, options):
        if feature is not None:
            if options:
                raise TypeError('Pass either a feature object or its options, not both')
            if not isinstance(feature, feature_cls):
                raise TypeError(f"Expected {feature_cls.__name__}, got {type(feature).__name__}")
            return feature
        return feature_cls(**options)

    def add_line(self, line: Optional[Polyline] = None, **options) -> Polyline:
        line = self._build(Polyline, line, options)
        self.lines.append(line)
        return line

    def add_polygon(self, polygon: Optional[Polyline] = None, **options) -> Polyline:
        """Add a closed polygon; shares the drawing order of lines."""
        if polygon is None:
            options.setdefault('type', 'polygon')
        polygon = self._build(Polyline, polygon, options)
        self.lines.append(polygon)
        return polygon

    def add_marker(self, marker: Optional[IconMarker] = None, **options) -> IconMarker:
        marker = self._build(IconMarker, marker, options)
        self.markers.append(marker)
        return marker

    def add_custom(self, custom: Optional[CustomFigure] = None, **options) -> CustomFigure:
        custom = self._build(CustomFigure, custom, options)
        self.customfigures.append(custom)
        return custom

    def add_multi_polygon(self, multipolygon: Optional[MultiPolygon] = None, **options) -> MultiPolygon:
        multipolygon = self._build(MultiPolygon, multipolygon, options)
        self.multipolygons.append(multipolygon)
        return multipolygon

    def add_circle(self, circle: Optional[Circle] = None, **options) -> Circle:
        circle = self._build(Circle, circle, options)
        self.circles.append(circle)
        return circle

    def add_bound(self, bound: Optional[Bound] = None, **options) -> Bound:
        bound = self._build(Bound, bound, options)
        self.bounds.append(bound)
        return bound

    def add_text(self, text: Optional[Text] = None, **options) -> Text:
        text = self._build(Text, text, options)
        self.text.append(text)
        return text

    # --- Rendering ---

    def render(self, center: Optional[Sequence[float]] = None, zoom: Optional[int] = None) -> MapImage:
        """
        Render the map with all features added so far.

        Args:
            center: ``(lon, lat)`` of the map center, or a bounding box
                ``(min_lon, min_lat, max_lon, max_lat)`` the map must include.
                Default: center of all features.
            zoom: Zoom level, clamped to ``zoom_range``. Default: the highest
                zoom at which all features fit the canvas.

        Returns:
            MapImage holding the composited raster

        Raises:
            ConfigurationError: Canvas size missing, or nothing to center on
            RasterizationError: The overlay could not be rasterized
            CompositionError: The layers could not be merged
        """
        self._validate(center, zoom)
        self.center = center

        if zoom is None:
            zoom = self.calculate_zoom()
        self.zoom = max(self.zoom_range['min'], min(self.zoom_range['max'], int(zoom)))

        if center is not None and len(center) == 2:
            self.center_x = lon_to_x(center[0], self.zoom)
            self.center_y = lat_to_y(center[1], self.zoom)
        else:
            extent = self.determine_extent(self.zoom)
            self.center_x = lon_to_x((extent[0] + extent[2]) / 2, self.zoom)
            self.center_y = lat_to_y((extent[1] + extent[3]) / 2, self.zoom)

        self.events.emit(events.ZOOM_RESOLVED, zoom=self.zoom, center_x=self.center_x, center_y=self.center_y)

        map_options = self.map_options()
        layers = self.draw_features(map_options)
        plans = self.plan_tiles()

        image = MapImage(self.width, self.height, quality=self.quality)
        with self._executor() as executor:
            overlay_future = None
            if any(layers):
                overlay_future = executor.submit(compose_svg_layers, layers, self.width, self.height)

            tiles = self.server.fetch_tiles(plans)
            image.draw(tiles)
            self.events.emit(
                events.BASE_LAYER_READY,
                tiles=len(plans),
                failed=sum(1 for t in tiles if not t.success),
            )

            overlay = self._await_overlay(overlay_future)
            self.events.emit(events.OVERLAY_READY)

        image.compose(overlay)
        self.events.emit(events.COMPOSITED, width=self.width, height=self.height)
        self.image = image
        return image

    def _validate(self, center, zoom) -> None:
        for name, value in (('width', self.width), ('height', self.height)):
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(f"Map {name} must be a positive number of pixels, got {value!r}")

        if center is not None and len(center) not in (2, 4):
            raise ConfigurationError(
                f"center must be (lon, lat) or (min_lon, min_lat, max_lon, max_lat), got {center!r}"
            )

        has_bbox = center is not None and len(center) == 4
        if not (self._has_extent_features() or has_bbox or (center is not None and zoom is not None)):
            raise ConfigurationError('Cannot render empty map: Add center and zoom, or lines, markers, polygons.')

    def _has_extent_features(self) -> bool:
        return bool(self.bounds or self.lines or self.multipolygons or self.circles or self.markers)

    def determine_extent(self, zoom: Optional[int] = None) -> List[float]:
        """
        Common extent of all current map features.

        Merges, in order, the bounding box passed as ``center`` to
        ``render``, bounds, lines and polygons, multipolygons, circles and
        markers. When ``zoom`` is given the markers' pixel footprint is
        converted to geographic padding at that zoom.

        Returns:
            ``[min_lon, min_lat, max_lon, max_lat]``
        """
        extents = []

        if self.center is not None and len(self.center) >= 4:
            extents.append(list(self.center[:4]))

        extents.extend(bound.extent() for bound in self.bounds)
        extents.extend(line.extent() for line in self.lines)
        extents.extend(multipolygon.extent() for multipolygon in self.multipolygons)
        extents.extend(circle.extent() for circle in self.circles)

        for marker in self.markers:
            lon, lat = marker.coord
            if not zoom:
                extents.append([lon, lat, lon, lat])
                continue

            # consider dimension of marker
            e_px = marker.extent_px()
            x = lon_to_x(lon, zoom)
            y = lat_to_y(lat, zoom)
            extents.append([
                x_to_lon(x - e_px[0] / self.tile_size, zoom),
                y_to_lat(y + e_px[1] / self.tile_size, zoom),
                x_to_lon(x + e_px[2] / self.tile_size, zoom),
                y_to_lat(y - e_px[3] / self.tile_size, zoom),
            ])

        if not extents:
            raise ConfigurationError('Cannot determine extent: the map has no features')

        return [
            min(e[0] for e in extents),
            min(e[1] for e in extents),
            max(e[2] for e in extents),
            max(e[3] for e in extents),
        ]

    def calculate_zoom(self) -> int:
        """
        Highest zoom at which the extent fits the canvas minus padding.

        Zooms are tried from max down to min and the first fit wins; the
        extent is recomputed per zoom because marker footprints depend on
        it. Falls back to the minimum zoom.
        """
        for z in range(self.zoom_range['max'], self.zoom_range['min'] - 1, -1):
            extent = self.determine_extent(z)
            width = (lon_to_x(extent[2], z) - lon_to_x(extent[0], z)) * self.tile_size
            if width > (self.width - (self.padding[0] * 2)):
                continue

            height = (lat_to_y(extent[1], z) - lat_to_y(extent[3], z)) * self.tile_size
            if height > (self.height - (self.padding[1] * 2)):
                continue

            return z
        return self.zoom_range['min']

    def map_options(self) -> MapOptions:
        return MapOptions(
            width=self.width,
            height=self.height,
            zoom=self.zoom,
            center_x=self.center_x,
            center_y=self.center_y,
            tile_size=self.tile_size,
        )

    def x_to_px(self, x: float) -> int:
        """Transform a tile fraction to a pixel column on the canvas."""
        return self.map_options().x_to_px(x)

    def y_to_px(self, y: float) -> int:
        """Transform a tile fraction to a pixel row on the canvas."""
        return self.map_options().y_to_px(y)

    def plan_tiles(self) -> List[TilePlan]:
        """
        Tiles covering the canvas at the resolved zoom and center.

        Tile indices are wrapped around the antimeridian (and poles) for the
        remote lookup only; the pixel box and the cache key use the
        unwrapped indices.
        """
        if not self.server.get_url_template():
            return []

        options = self.map_options()
        half_w = 0.5 * self.width / self.tile_size
        half_h = 0.5 * self.height / self.tile_size
        x_min = math.floor(self.center_x - half_w)
        y_min = math.floor(self.center_y - half_h)
        x_max = math.ceil(self.center_x + half_w)
        y_max = math.ceil(self.center_y + half_h)

        max_tile = 2 ** self.zoom
        plans = []
        for x in range(x_min, x_max):
            for y in range(y_min, y_max):
                # x and y may have crossed the date line
                tile_x = (x + max_tile) % max_tile
                tile_y = (y + max_tile) % max_tile
                if self.server.reverse_y:
                    tile_y = max_tile - 1 - tile_y

                plans.append(TilePlan(
                    url=self.server.build_tile_url(self.zoom, tile_x, tile_y),
                    cache_key=self.server.cache_key(self.zoom, x, y),
                    box=(
                        options.x_to_px(x),
                        options.y_to_px(y),
                        options.x_to_px(x + 1),
                        options.y_to_px(y + 1),
                    ),
                ))
        return plans

    def draw_features(self, map_options: MapOptions) -> List[List[str]]:
        """SVG documents per overlay layer: lines, circles, custom, text."""
        return [
            draw_svg(tuple(self.lines) + tuple(self.multipolygons), 'lines', map_options),
            draw_svg(tuple(self.circles), 'circles', map_options),
            draw_svg(tuple(self.customfigures), 'custom', map_options),
            draw_svg(tuple(self.text), 'text', map_options),
        ]

    def _executor(self):
        if self.offload == 'thread':
            return ThreadPoolExecutor(max_workers=1, thread_name_prefix='pystaticmap-svg')
        return ProcessPoolExecutor(max_workers=1)

    @staticmethod
    def _await_overlay(future: Optional[Future]) -> Optional['Image.Image']:
        if future is None:
            return None
        try:
            png = future.result()
        except BrokenExecutor as e:
            raise RasterizationError(f"Overlay worker died: {e}") from e
        return Image.open(BytesIO(png)).convert('RGBA')
