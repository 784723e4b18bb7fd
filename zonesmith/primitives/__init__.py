"""Layer 2: Primitives - Algorithm interfaces and pure operations.

This layer holds the point-in-polygon engine, the keyed table engine and CRS
helpers. It can import numpy, pandas, numba and pyproj. No file I/O.
"""

from zonesmith.primitives.crs import (
    ensure_same_crs,
    get_epsg_code,
    reproject,
    same_crs,
    standardize_crs,
    transform_coordinates,
)
from zonesmith.primitives.geometry import (
    bounding_box,
    locate_point,
    point_in_polygon,
    signed_area,
    validate_polygons,
    validate_ring,
)
from zonesmith.primitives.intersection import (
    assign,
    assignments_from_matrix,
    clip,
    intersects,
)
from zonesmith.primitives.tables import (
    group_aggregate,
    left_join,
    reconcile_key,
    unmatched_keys,
)

__all__ = [
    "assign",
    "assignments_from_matrix",
    "bounding_box",
    "clip",
    "ensure_same_crs",
    "get_epsg_code",
    "group_aggregate",
    "intersects",
    "left_join",
    "locate_point",
    "point_in_polygon",
    "reconcile_key",
    "reproject",
    "same_crs",
    "signed_area",
    "standardize_crs",
    "transform_coordinates",
    "unmatched_keys",
    "validate_polygons",
    "validate_ring",
]
