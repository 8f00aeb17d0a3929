"""pystaticmap: static map images from tile servers and vector features."""

from pystaticmap.map import StaticMap, RasterTileServer, MapImage
from pystaticmap.exceptions import (
    StaticMapError,
    ConfigurationError,
    TileFetchError,
    CacheWriteError,
    RasterizationError,
    CompositionError,
)

__version__ = '0.1.0'

__all__ = [
    'StaticMap',
    'RasterTileServer',
    'MapImage',
    'StaticMapError',
    'ConfigurationError',
    'TileFetchError',
    'CacheWriteError',
    'RasterizationError',
    'CompositionError',
]
