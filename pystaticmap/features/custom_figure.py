from dataclasses import dataclass
from typing import List, Optional, Tuple

from pystaticmap.features._coords import Coordinate, as_coord


@dataclass(frozen=True)
class CustomFigure:
    """
    A path marker defined by SVG path data in a 500x500 view box.

    The figure is scaled with the zoom level when drawn, see
    ``pystaticmap.map.svg_layer.custom_to_svg``.
    """

    coord: Coordinate
    width: float
    height: float
    path: str = ''
    color: str = '#000000BB'
    fill: Optional[str] = '#AA0000BB'
    stroke_width: float = 1
    offset_x: Optional[float] = None
    offset_y: Optional[float] = None

    def __post_init__(self):
        if not (self.width and self.height):
            raise ValueError('Please specify width and height of the custom figure.')
        object.__setattr__(self, 'coord', as_coord(self.coord))
        object.__setattr__(self, 'width', float(self.width))
        object.__setattr__(self, 'height', float(self.height))
        if self.offset_x is None:
            object.__setattr__(self, 'offset_x', self.width / 2)
        if self.offset_y is None:
            object.__setattr__(self, 'offset_y', self.height)

    @property
    def offset(self) -> Tuple[float, float]:
        return self.offset_x, self.offset_y

    def extent(self) -> List[float]:
        lon, lat = self.coord
        return [lon, lat, lon, lat]

    def extent_px(self) -> List[float]:
        """Pixels the unscaled figure reaches left, below, right and above the anchor."""
        return [
            self.offset_x,
            self.height - self.offset_y,
            self.width - self.offset_x,
            self.offset_y,
        ]
