from dataclasses import dataclass
from typing import List, Tuple

from pystaticmap.features._coords import Coordinate, as_coords, coords_extent


@dataclass(frozen=True)
class Bound:
    """Invisible set of points the map must include."""

    coords: Tuple[Coordinate, ...]

    def __post_init__(self):
        object.__setattr__(self, 'coords', as_coords(self.coords))

    def extent(self) -> List[float]:
        return coords_extent(self.coords)
