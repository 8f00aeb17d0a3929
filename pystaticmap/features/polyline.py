from dataclasses import dataclass
from typing import List, Optional, Tuple

from pystaticmap.features._coords import Coordinate, as_coords, coords_extent

LINE_TYPES = ('polyline', 'polygon')


@dataclass(frozen=True)
class Polyline:
    """
    An open line or a closed polygon.

    Attributes:
        coords: Ordered vertices ``(lon, lat)``
        color: Stroke color
        fill: Fill color, ``None`` for no fill
        width: Stroke width in pixels
        type: ``'polyline'`` (open) or ``'polygon'`` (closed)
    """

    coords: Tuple[Coordinate, ...]
    color: str = '#000000BB'
    fill: Optional[str] = None
    width: float = 3
    type: str = 'polyline'

    def __post_init__(self):
        object.__setattr__(self, 'coords', as_coords(self.coords))
        if self.type not in LINE_TYPES:
            raise ValueError(f"Unknown line type '{self.type}'. Use one of: {', '.join(LINE_TYPES)}")

    def extent(self) -> List[float]:
        return coords_extent(self.coords)
