from dataclasses import dataclass
from typing import List, Tuple

from pystaticmap.features._coords import Coordinate, as_coord

ANCHORS = ('start', 'middle', 'end')


@dataclass(frozen=True)
class Text:
    """A text label anchored at a coordinate."""

    coord: Coordinate
    text: str
    size: float = 12
    font: str = 'Arial'
    color: str = '#000000BB'
    fill: str = '#000000'
    width: float = 1
    anchor: str = 'start'
    offset_x: float = 0
    offset_y: float = 0

    def __post_init__(self):
        object.__setattr__(self, 'coord', as_coord(self.coord))
        if not self.text:
            raise ValueError("'text' must not be empty")
        if self.anchor not in ANCHORS:
            raise ValueError(f"Unknown anchor '{self.anchor}'. Use one of: {', '.join(ANCHORS)}")

    @property
    def offset(self) -> Tuple[float, float]:
        return self.offset_x, self.offset_y

    def extent(self) -> List[float]:
        lon, lat = self.coord
        return [lon, lat, lon, lat]
