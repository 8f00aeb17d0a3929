"""Web Mercator projection utilities.

All positions are expressed in three spaces:

- geographic: longitude/latitude in degrees
- tile fraction: fractional tile index at a zoom level, ``[0, 2**zoom)``
- pixel: integer position on the output canvas

The functions here are pure and stateless.
"""
from typing import Sequence, Tuple
import math
import numpy as np

# Ground resolution of one pixel at zoom 0 on the equator, in meters
METERS_PER_PIXEL_Z0 = 156543.03392

# Latitude where the Web Mercator square ends; beyond it y diverges
MAX_LATITUDE = 85.0511287798


def lon_to_x(lon: float, zoom: int) -> float:
    """Convert longitude to a fractional tile x index."""
    if not (-180 <= lon <= 180):
        lon = (lon + 180) % 360 - 180
    return ((lon + 180.0) / 360.0) * (2 ** zoom)


def lat_to_y(lat: float, zoom: int) -> float:
    """
    Convert latitude to a fractional tile y index.

    Latitudes beyond the Web Mercator limit are clamped to it, so the poles
    map to the top and bottom edge of the tile pyramid.
    """
    if not (-90 <= lat <= 90):
        lat = (lat + 90) % 180 - 90
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    lat_rad = math.radians(lat)
    return (
        (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi)
        / 2.0
        * (2 ** zoom)
    )


def x_to_lon(x: float, zoom: int) -> float:
    """Convert a fractional tile x index back to longitude."""
    return x / (2 ** zoom) * 360.0 - 180.0


def y_to_lat(y: float, zoom: int) -> float:
    """Convert a fractional tile y index back to latitude."""
    n = math.pi - 2.0 * math.pi * y / (2 ** zoom)
    return math.degrees(math.atan(math.sinh(n)))


def meter_to_pixel(meters: float, zoom: int, lat: float) -> float:
    """
    Convert a ground distance to a pixel length.

    Args:
        meters: Distance on the ground
        zoom: Zoom level
        lat: Latitude where the distance is measured (Mercator scale
            grows with ``1 / cos(lat)``)

    Returns:
        Length in pixels of a 256px tile pyramid
    """
    meters_per_pixel = METERS_PER_PIXEL_Z0 * math.cos(math.radians(lat)) / (2 ** zoom)
    return meters / meters_per_pixel


def tile_xy_to_quad_key(x: int, y: int, zoom: int) -> str:
    """
    Build a Bing Maps style quadkey for a tile.

    Example:
        >>> tile_xy_to_quad_key(2, 1, 3)
        '021'
    """
    digits = []
    for i in range(zoom, 0, -1):
        digit = 0
        mask = 1 << (i - 1)
        if x & mask:
            digit += 1
        if y & mask:
            digit += 2
        digits.append(str(digit))
    return ''.join(digits)


def quad_key_to_tile_xy(quad_key: str) -> Tuple[int, int, int]:
    """
    Decode a quadkey into ``(x, y, zoom)``.

    Raises:
        ValueError: If the quadkey contains a digit outside 0-3
    """
    x = y = 0
    zoom = len(quad_key)
    for i in range(zoom, 0, -1):
        mask = 1 << (i - 1)
        digit = quad_key[zoom - i]
        if digit == '0':
            continue
        if digit == '1':
            x |= mask
        elif digit == '2':
            y |= mask
        elif digit == '3':
            x |= mask
            y |= mask
        else:
            raise ValueError(f"Invalid quadkey digit '{digit}' in '{quad_key}'")
    return x, y, zoom


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def to_pixel(fraction: float, center: float, tile_size: int, dimension: int) -> int:
    """
    Place a tile fraction on the canvas.

    Every pixel position in a render goes through this function so that
    adjacent tiles and overlay geometry share the same rounding.

    Args:
        fraction: Tile fraction to place (x or y)
        center: Tile fraction of the canvas center on the same axis
        tile_size: Tile size in pixels
        dimension: Canvas width (for x) or height (for y)
    """
    return round_half_away((fraction - center) * tile_size + dimension / 2)


def coords_to_pixels(
    coords: Sequence[Sequence[float]],
    zoom: int,
    center_x: float,
    center_y: float,
    tile_size: int,
    width: int,
    height: int,
) -> np.ndarray:
    """
    Project a list of ``(lon, lat)`` pairs to integer canvas pixels.

    Vectorised counterpart of ``to_pixel(lon_to_x(...))`` using the same
    round-half-away-from-zero rule.

    Returns:
        Array of shape ``(n, 2)`` with dtype int64
    """
    arr = np.asarray(coords, dtype=float).reshape(-1, 2)
    lons = arr[:, 0]
    lats = arr[:, 1]
    lons = np.where((lons < -180) | (lons > 180), (lons + 180) % 360 - 180, lons)
    lats = np.where((lats < -90) | (lats > 90), (lats + 90) % 180 - 90, lats)
    lats = np.clip(lats, -MAX_LATITUDE, MAX_LATITUDE)

    n = 2.0 ** zoom
    xs = (lons + 180.0) / 360.0 * n
    lat_rad = np.radians(lats)
    ys = (1.0 - np.log(np.tan(lat_rad) + 1.0 / np.cos(lat_rad)) / np.pi) / 2.0 * n

    px = (xs - center_x) * tile_size + width / 2
    py = (ys - center_y) * tile_size + height / 2
    px = np.sign(px) * np.floor(np.abs(px) + 0.5)
    py = np.sign(py) * np.floor(np.abs(py) + 0.5)
    return np.column_stack([px, py]).astype(np.int64)
