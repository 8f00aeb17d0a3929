"""
Map features that can be drawn on top of the tile mosaic.

Features are immutable value objects. They validate their options on
construction and expose ``extent()`` in geographic space.
"""

from pystaticmap.features.marker import IconMarker
from pystaticmap.features.polyline import Polyline
from pystaticmap.features.multipolygon import MultiPolygon
from pystaticmap.features.circle import Circle
from pystaticmap.features.custom_figure import CustomFigure
from pystaticmap.features.text import Text
from pystaticmap.features.bound import Bound

__all__ = [
    'IconMarker',
    'Polyline',
    'MultiPolygon',
    'Circle',
    'CustomFigure',
    'Text',
    'Bound',
]
