"""ZoneSmith: point-in-polygon spatial joins and keyed attribute joins.

Layered like its sibling toolkits:

- objects: immutable PointSet / PolygonSet / IntersectionMatrix
- primitives: containment engine, table engine, CRS helpers
- tasks: spatial and attribute join policies
- workflows: file loading and the zone enrichment pipeline
"""

from zonesmith.objects import IntersectionMatrix, PointSet, PolygonSet
from zonesmith.primitives import (
    assign,
    clip,
    group_aggregate,
    intersects,
    left_join,
    reconcile_key,
    reproject,
    unmatched_keys,
)
from zonesmith.tasks import AttributeJoinTask, SpatialJoinTask
from zonesmith.utils.errors import (
    AggregationTypeError,
    AmbiguousJoinError,
    ConfigurationError,
    GeometryError,
    KeyMismatchError,
    ZoneSmithError,
)

__version__ = "0.1.0"

__all__ = [
    "AggregationTypeError",
    "AmbiguousJoinError",
    "AttributeJoinTask",
    "ConfigurationError",
    "GeometryError",
    "IntersectionMatrix",
    "KeyMismatchError",
    "PointSet",
    "PolygonSet",
    "SpatialJoinTask",
    "ZoneSmithError",
    "assign",
    "clip",
    "group_aggregate",
    "intersects",
    "left_join",
    "reconcile_key",
    "reproject",
    "unmatched_keys",
]
