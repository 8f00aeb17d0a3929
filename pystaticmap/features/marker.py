from dataclasses import dataclass
from typing import List, Optional

from pystaticmap.features._coords import Coordinate, as_coord


@dataclass(frozen=True)
class IconMarker:
    """
    A point marker with a pixel footprint.

    The icon itself is not loaded; the marker only takes part in extent and
    zoom calculation through its footprint around the anchor point.

    Attributes:
        coord: Anchor position ``(lon, lat)``
        width: Icon width in pixels
        height: Icon height in pixels
        img: Optional icon path or URL, kept for callers
        offset_x: Anchor offset from the icon's left edge (default ``width / 2``)
        offset_y: Anchor offset from the icon's top edge (default ``height``)
    """

    coord: Coordinate
    width: float
    height: float
    img: Optional[str] = None
    offset_x: Optional[float] = None
    offset_y: Optional[float] = None

    def __post_init__(self):
        if not (self.width and self.height):
            raise ValueError('Please specify width and height of the marker image.')
        object.__setattr__(self, 'coord', as_coord(self.coord))
        object.__setattr__(self, 'width', float(self.width))
        object.__setattr__(self, 'height', float(self.height))
        if self.offset_x is None:
            object.__setattr__(self, 'offset_x', self.width / 2)
        if self.offset_y is None:
            object.__setattr__(self, 'offset_y', self.height)

    def extent(self) -> List[float]:
        lon, lat = self.coord
        return [lon, lat, lon, lat]

    def extent_px(self) -> List[float]:
        """Pixels the icon reaches left, below, right and above the anchor."""
        return [
            self.offset_x,
            self.height - self.offset_y,
            self.width - self.offset_x,
            self.offset_y,
        ]
