"""Layer 1: Objects - Immutable data representations.

This layer contains only data structures. No I/O libraries, no geopandas,
no shapely, no pyproj. Only standard library + numpy + pandas.
"""

from zonesmith.objects.intersection import IntersectionMatrix
from zonesmith.objects.pointset import PointSet
from zonesmith.objects.polygonset import PolygonSet, close_ring

__all__ = [
    "IntersectionMatrix",
    "PointSet",
    "PolygonSet",
    "close_ring",
]
