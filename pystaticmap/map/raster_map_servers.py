"""
Raster Tile Server Module

This module downloads the raster tiles that make up the base layer of a
static map. Tiles are read from a permanent on-disk cache first and fetched
over HTTP only on a cache miss.

Main Class:
    RasterTileServer: tile URL templating, caching and bounded concurrent fetch

Example:
    >>> server = RasterTileServer('OSM.Standard', tile_request_limit=2)
    >>> results = server.fetch_tiles(plans)
    >>> bodies = [r.body for r in results if r.success]
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Tuple, Optional, Dict, Sequence
from urllib.parse import urlparse
import logging
import os
import tempfile
import time

import requests

from pystaticmap.exceptions import CacheWriteError, TileFetchError
from .base_tile_server import BaseTileServer

logger = logging.getLogger(__name__)

# https://operations.osmfoundation.org/policies/tiles/#technical-usage-requirements
DEFAULT_TILE_REQUEST_LIMIT = 2

Box = Tuple[int, int, int, int]


@dataclass(frozen=True)
class TilePlan:
    """One tile of the grid: where to fetch it, how to cache it, where to draw it."""

    url: str
    cache_key: str
    box: Box


@dataclass(frozen=True)
class TileResult:
    """Outcome of fetching one planned tile."""

    success: bool
    box: Box
    url: str
    body: Optional[bytes] = None
    error: Optional[Exception] = None


def default_cache_dir() -> str:
    """Tile cache directory, ``$PYSTATICMAP_TILES_DIR`` or ``~/.cache/pystaticmap/tiles``."""
    return os.environ.get('PYSTATICMAP_TILES_DIR') or os.path.join(
        os.path.expanduser('~'), '.cache', 'pystaticmap', 'tiles'
    )


class RasterTileServer(BaseTileServer):
    """
    Tile server client with a permanent disk cache.

    Attributes:
        provider (Optional[str]): Registered provider name, if any
        tile_size (int): Tile size in pixels
        api_key (Optional[str]): API key for providers that require it
        tiles_cache_dir (str): Root of the tile cache
        tile_request_limit (int): Maximum simultaneous requests, 0 for no limit

    Example:
        >>> server = RasterTileServer(url_template='https://tile.openstreetmap.org/{z}/{x}/{y}.png')
        >>> result = server.fetch_tile(plan)
        >>> result.success
        True
    """

    # Provider registry with configuration for each tile server
    _PROVIDERS = {
        'OSM.Standard': {
            'url_template': 'https://tile.openstreetmap.org/{z}/{x}/{y}.png',
            'tile_size': 256,
            'requires_api_key': False,
            'description': 'OpenStreetMap Standard tiles',
            'min_zoom': 0,
            'max_zoom': 19,
            'attribution': '© OpenStreetMap contributors',
            'license_url': 'https://www.openstreetmap.org/copyright',
        },
        'Carto.Positron': {
            'url_template': 'https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}@2x.png',
            'subdomains': ['a', 'b', 'c', 'd'],
            'tile_size': 512,
            'requires_api_key': False,
            'description': 'Carto Positron (light basemap)',
            'min_zoom': 0,
            'max_zoom': 20,
            'attribution': '© CARTO, © OpenStreetMap contributors',
            'license_url': 'https://carto.com/legal/',
        },
        'Thunderforest.Landscape': {
            'url_template': 'https://tile.thunderforest.com/landscape/{z}/{x}/{y}.png?apikey={api_key}',
            'tile_size': 256,
            'requires_api_key': True,
            'api_env': 'THUNDERFOREST_API_KEY',
            'description': 'Thunderforest landscape map, needs an API key',
            'min_zoom': 0,
            'max_zoom': 22,
            'attribution': 'Maps © Thunderforest, Data © OpenStreetMap contributors',
            'license_url': 'https://www.thunderforest.com/terms/',
        },
        'Bing.Aerial': {
            'url_template': 'https://ecn.t{s}.tiles.virtualearth.net/tiles/a{quadkey}.jpeg?g=1',
            'subdomains': ['0', '1', '2', '3'],
            'tile_size': 256,
            'requires_api_key': False,
            'description': 'Bing aerial imagery (quadkey addressed)',
            'min_zoom': 1,
            'max_zoom': 19,
            'attribution': '© Microsoft',
            'license_url': 'https://www.microsoft.com/en-us/maps/product/terms',
        },
    }

    def __init__(
        self,
        provider: Optional[str] = None,
        url_template: Optional[str] = None,
        api_key: Optional[str] = None,
        tile_size: Optional[int] = None,
        subdomains: Optional[Sequence[str]] = None,
        reverse_y: bool = False,
        tiles_cache_dir: Optional[str] = None,
        tile_request_timeout: Optional[float] = None,
        tile_request_header: Optional[Dict[str, str]] = None,
        tile_request_limit: Optional[int] = DEFAULT_TILE_REQUEST_LIMIT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize a RasterTileServer instance.

        Args:
            provider: Registered provider name (e.g., 'OSM.Standard')
            url_template: Raw tile URL template, overrides the provider's
            api_key: Optional API key for providers that require authentication.
                    Falls back to environment variable if not provided.
            tile_size: Tile size in pixels (default: provider's, else 256)
            subdomains: Values substituted at random for ``{s}``
            reverse_y: Flip the y axis for TMS style tile schemes
            tiles_cache_dir: Root directory of the tile cache
            tile_request_timeout: Per request timeout in seconds
            tile_request_header: Extra HTTP headers sent with each request
            tile_request_limit: Maximum simultaneous requests, 0/None for no limit
            session: requests session to use (default: a new one)

        Raises:
            ValueError: If provider name is not recognized
        """
        super().__init__(provider, url_template, api_key, tile_size, subdomains, reverse_y)

        self.tiles_cache_dir = tiles_cache_dir or default_cache_dir()
        self.tile_request_timeout = tile_request_timeout
        self.tile_request_header = dict(tile_request_header or {})
        self.tile_request_limit = int(tile_request_limit) if tile_request_limit else 0
        self.session = session if session is not None else requests.Session()
        self.cache_ext = self._cache_extension(self.get_url_template())

    # --- Cache ---

    def cache_key(self, z: int, x: int, y: int) -> str:
        """Cache key of a tile, from its unwrapped grid indices."""
        return f"{self.tile_size}/{z}_{x}_{y}"

    def cache_path(self, cache_key: str) -> str:
        return os.path.join(self.tiles_cache_dir, f"{cache_key}.{self.cache_ext}")

    def read_cache(self, cache_key: str) -> Optional[bytes]:
        """Return the cached tile body, or ``None`` on a miss."""
        try:
            with open(self.cache_path(cache_key), 'rb') as f:
                return f.read()
        except OSError:
            return None

    def write_cache(self, cache_key: str, body: bytes) -> None:
        """
        Store a tile body in the cache.

        The file is written next to its destination and renamed into place,
        so readers never see a partially written tile.

        Raises:
            CacheWriteError: If the tile cannot be written
        """
        path = self.cache_path(cache_key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(path), suffix='.part')
            try:
                with os.fdopen(fd, 'wb') as f:
                    f.write(body)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise CacheWriteError(f"Cannot write tile cache {path}: {e}") from e

    # --- Fetching ---

    def fetch_tile(self, plan: TilePlan) -> TileResult:
        """
        Resolve a planned tile to image bytes.

        The cache is consulted first; cached tiles never expire. On a miss
        the tile is downloaded and stored. This method does not raise: any
        network or validation problem is returned as a failed result.

        Args:
            plan: Tile to fetch

        Returns:
            TileResult carrying either the body or the error
        """
        cached = self.read_cache(plan.cache_key)
        if cached is not None:
            return TileResult(success=True, box=plan.box, url=plan.url, body=cached)

        try:
            body = self._download(plan.url)
        except (requests.RequestException, TileFetchError) as e:
            logger.warning("Tile %s failed: %s", plan.url, e)
            return TileResult(success=False, box=plan.box, url=plan.url, error=e)

        try:
            self.write_cache(plan.cache_key, body)
        except CacheWriteError as e:
            logger.debug("Ignoring cache write failure: %s", e)

        return TileResult(success=True, box=plan.box, url=plan.url, body=body)

    def fetch_tiles(self, plans: Sequence[TilePlan]) -> List[TileResult]:
        """
        Fetch all planned tiles with bounded concurrency.

        With a positive ``tile_request_limit`` the plans are split into
        consecutive chunks of that size. Tiles inside a chunk are fetched
        concurrently and the next chunk starts only once every tile of the
        previous one has settled. Without a limit all tiles are fetched at
        once.

        Returns:
            One TileResult per plan, in no particular order
        """
        plans = list(plans)
        if not plans:
            return []

        logger.debug("Start downloading %d tiles", len(plans))
        t1 = time.perf_counter()

        limit = self.tile_request_limit
        results = []
        if limit:
            with ThreadPoolExecutor(max_workers=limit) as executor:
                for i in range(0, len(plans), limit):
                    chunk = plans[i:i + limit]
                    futures = [executor.submit(self.fetch_tile, plan) for plan in chunk]
                    results.extend(f.result() for f in futures)
        else:
            with ThreadPoolExecutor(max_workers=len(plans)) as executor:
                results = list(executor.map(self.fetch_tile, plans))

        logger.debug("Finish downloading tiles. Take %.1f ms", (time.perf_counter() - t1) * 1000)
        return results

    def _download(self, url: str) -> bytes:
        response = self.session.get(
            url,
            headers=self.tile_request_header,
            timeout=self.tile_request_timeout,
        )
        if not 200 <= response.status_code < 300:
            raise TileFetchError(f"Failed to fetch tile: HTTP {response.status_code} - {url}")

        content_type = response.headers.get('content-type', '')
        if not content_type.startswith('image/'):
            raise TileFetchError(f"Tile server responded with wrong data ({content_type or 'no content type'}) - {url}")
        return response.content

    @staticmethod
    def _cache_extension(url_template: Optional[str]) -> str:
        """File extension of cached tiles, taken from the URL template's path."""
        if not url_template:
            return 'png'
        ext = os.path.splitext(urlparse(url_template).path)[1].lstrip('.')
        if not ext or not ext.isalnum():
            return 'png'
        return ext.lower()
