from dataclasses import dataclass
from typing import List, Optional
import math

from pystaticmap.features._coords import Coordinate, as_coord

EARTH_RADIUS = 6378137.0


@dataclass(frozen=True)
class Circle:
    """
    A circle with a ground radius.

    Attributes:
        coord: Center ``(lon, lat)``
        radius: Radius in meters
        color: Stroke color
        fill: Fill color, ``None`` for an outline only
        width: Stroke width in pixels
    """

    coord: Coordinate
    radius: float
    color: str = '#000000BB'
    fill: Optional[str] = '#AA0000BB'
    width: float = 3

    def __post_init__(self):
        object.__setattr__(self, 'coord', as_coord(self.coord))
        if self.radius is None or float(self.radius) < 0:
            raise ValueError(f"'radius' must be a non-negative distance in meters, got {self.radius!r}")
        object.__setattr__(self, 'radius', float(self.radius))

    def extent(self) -> List[float]:
        lon, lat = self.coord
        dlat = math.degrees(self.radius / EARTH_RADIUS)
        dlon = dlat / max(math.cos(math.radians(lat)), 1e-12)
        return [lon - dlon, max(lat - dlat, -90.0), lon + dlon, min(lat + dlat, 90.0)]
