"""Coordinate validation shared by all features."""
from typing import List, Sequence, Tuple

Coordinate = Tuple[float, float]


def as_coord(value: Sequence[float], name: str = 'coord') -> Coordinate:
    """Return ``value`` as a ``(lon, lat)`` tuple of floats."""
    if value is None or len(value) != 2:
        raise ValueError(f"'{name}' must be a (longitude, latitude) pair, got {value!r}")
    return float(value[0]), float(value[1])


def as_coords(values: Sequence[Sequence[float]], name: str = 'coords') -> Tuple[Coordinate, ...]:
    if not values:
        raise ValueError(f"'{name}' must contain at least one coordinate")
    return tuple(as_coord(v, name) for v in values)


def coords_extent(coords: Sequence[Coordinate]) -> List[float]:
    """Bounding box ``[min_lon, min_lat, max_lon, max_lat]`` of coordinates."""
    lons = [c[0] for c in coords]
    lats = [c[1] for c in coords]
    return [min(lons), min(lats), max(lons), max(lats)]
