from dataclasses import dataclass
from typing import List, Optional, Tuple

from pystaticmap.features._coords import Coordinate, as_coords, coords_extent


@dataclass(frozen=True)
class MultiPolygon:
    """
    A set of closed rings drawn as a single shape.

    Holes are produced by the even-odd fill rule, so inner rings only need
    to lie inside their outer ring.
    """

    coords: Tuple[Tuple[Coordinate, ...], ...]
    color: str = '#000000BB'
    fill: Optional[str] = None
    width: float = 3

    def __post_init__(self):
        if not self.coords:
            raise ValueError("'coords' must contain at least one ring")
        object.__setattr__(self, 'coords', tuple(as_coords(ring) for ring in self.coords))

    def extent(self) -> List[float]:
        return coords_extent([c for ring in self.coords for c in ring])
