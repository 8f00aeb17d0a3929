"""
pystaticmap map module

Renders static map images from raster tile servers and vector features.

Main Components:
- StaticMap: feature builder and render pipeline
- RasterTileServer: tile URL templating, disk cache and bounded tile fetching
- MapImage: base layer assembly, composition and encoding
"""

from pystaticmap.map.raster_map_servers import RasterTileServer, TilePlan, TileResult
from pystaticmap.map.image import MapImage
from pystaticmap.map.events import MapEvents
from pystaticmap.map.static_map import StaticMap

__all__ = ['StaticMap', 'RasterTileServer', 'TilePlan', 'TileResult', 'MapImage', 'MapEvents']
