"""Geographic helpers for slippy-map tile pyramids."""

from pystaticmap.gis.projection import (
    lon_to_x,
    lat_to_y,
    x_to_lon,
    y_to_lat,
    meter_to_pixel,
    tile_xy_to_quad_key,
    quad_key_to_tile_xy,
    to_pixel,
)

__all__ = [
    'lon_to_x',
    'lat_to_y',
    'x_to_lon',
    'y_to_lat',
    'meter_to_pixel',
    'tile_xy_to_quad_key',
    'quad_key_to_tile_xy',
    'to_pixel',
]
