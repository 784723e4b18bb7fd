"""Planar point-in-polygon predicates and ring validation.

Layer 2: Primitives - Pure operations.

Containment uses the crossing-number (even-odd) rule over every ring of a
polygon, so holes and multipart polygons need no special casing. A point that
lies exactly on an edge or vertex is reported as a boundary point; callers pick
whether boundary points count as inside. Boundary detection is exact (a zero
cross product plus a segment-extent check), which makes vertex and edge cases
deterministic.

The inner loops are compiled with Numba.
"""

import logging
from typing import Literal, Sequence

import numpy as np
from numba import njit

from zonesmith.objects.polygonset import PolygonSet, close_ring
from zonesmith.utils.errors import GeometryError, raise_parameter_error

logger = logging.getLogger(__name__)

BoundaryPolicy = Literal["inside", "outside"]
BOUNDARY_POLICIES = ("inside", "outside")

OUTSIDE = 0
INSIDE = 1
BOUNDARY = 2

_LOCATION_NAMES = {OUTSIDE: "outside", INSIDE: "inside", BOUNDARY: "boundary"}


@njit(cache=True)
def _locate_in_rings(x, y, coords, ring_offsets, first_ring, last_ring):
    """Classify (x, y) against rings[first_ring:last_ring] of a packed polygon."""
    crossings = 0
    for r in range(first_ring, last_ring):
        for k in range(ring_offsets[r], ring_offsets[r + 1] - 1):
            x1 = coords[k, 0]
            y1 = coords[k, 1]
            x2 = coords[k + 1, 0]
            y2 = coords[k + 1, 1]

            cross = (x2 - x1) * (y - y1) - (y2 - y1) * (x - x1)
            if cross == 0.0:
                if min(x1, x2) <= x <= max(x1, x2) and min(y1, y2) <= y <= max(y1, y2):
                    return BOUNDARY

            # Half-open rule: an edge counts when it straddles the ray's y
            if (y1 > y) != (y2 > y):
                x_cross = x1 + (y - y1) * (x2 - x1) / (y2 - y1)
                if x < x_cross:
                    crossings += 1

    if crossings % 2 == 1:
        return INSIDE
    return OUTSIDE


@njit(cache=True)
def _orientation(ax, ay, bx, by, cx, cy):
    value = (bx - ax) * (cy - ay) - (by - ay) * (cx - ax)
    if value > 0.0:
        return 1
    if value < 0.0:
        return -1
    return 0


@njit(cache=True)
def _collinear_overlap(ax, ay, bx, by, cx, cy, dx, dy):
    """Length of the shared stretch of two collinear segments (0 if disjoint)."""
    if abs(bx - ax) >= abs(by - ay):
        lo = max(min(ax, bx), min(cx, dx))
        hi = min(max(ax, bx), max(cx, dx))
    else:
        lo = max(min(ay, by), min(cy, dy))
        hi = min(max(ay, by), max(cy, dy))
    return max(hi - lo, 0.0)


@njit(cache=True)
def _first_crossing_edge(ring):
    """Index of the first edge crossed or overlapped by a later edge, or -1.

    Two edges fail when they cross properly, or when they are collinear and
    share a stretch of positive length (a ring doubling back on itself).
    Touching vertices are tolerated.
    """
    n_edges = ring.shape[0] - 1
    for a in range(n_edges):
        ax = ring[a, 0]
        ay = ring[a, 1]
        bx = ring[a + 1, 0]
        by = ring[a + 1, 1]
        for b in range(a + 1, n_edges):
            cx = ring[b, 0]
            cy = ring[b, 1]
            dx = ring[b + 1, 0]
            dy = ring[b + 1, 1]

            if max(ax, bx) < min(cx, dx) or max(cx, dx) < min(ax, bx):
                continue
            if max(ay, by) < min(cy, dy) or max(cy, dy) < min(ay, by):
                continue

            o1 = _orientation(ax, ay, bx, by, cx, cy)
            o2 = _orientation(ax, ay, bx, by, dx, dy)
            o3 = _orientation(cx, cy, dx, dy, ax, ay)
            o4 = _orientation(cx, cy, dx, dy, bx, by)
            if o1 * o2 < 0 and o3 * o4 < 0:
                return a
            if o1 == 0 and o2 == 0:
                if _collinear_overlap(ax, ay, bx, by, cx, cy, dx, dy) > 0.0:
                    return a
    return -1


def check_boundary_policy(boundary: str) -> None:
    """Raise ParameterError unless ``boundary`` is a known policy."""
    if boundary not in BOUNDARY_POLICIES:
        raise_parameter_error(
            "boundary",
            boundary,
            valid_values=list(BOUNDARY_POLICIES),
            suggestion="Use 'inside' to count boundary points as contained.",
        )


def pack_polygons(
    polygons: PolygonSet,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Flatten a PolygonSet into contiguous arrays for the compiled kernels.

    Args:
        polygons: PolygonSet to pack.

    Returns:
        Tuple of (coords, ring_offsets, polygon_offsets, bboxes):
            - coords: All ring vertices stacked, shape (V, 2).
            - ring_offsets: Start of each ring in ``coords`` plus a final end
              offset, shape (R + 1,).
            - polygon_offsets: Start of each polygon in ``ring_offsets`` plus
              a final end offset, shape (m + 1,).
            - bboxes: Per-polygon (min_x, min_y, max_x, max_y), shape (m, 4).
    """
    rings = [ring for polygon in polygons.rings for ring in polygon]
    ring_sizes = [len(ring) for ring in rings]
    rings_per_polygon = [len(polygon) for polygon in polygons.rings]

    if rings:
        coords = np.ascontiguousarray(np.vstack(rings), dtype=np.float64)
    else:
        coords = np.zeros((0, 2), dtype=np.float64)

    ring_offsets = np.zeros(len(rings) + 1, dtype=np.int64)
    ring_offsets[1:] = np.cumsum(ring_sizes)
    polygon_offsets = np.zeros(len(polygons) + 1, dtype=np.int64)
    polygon_offsets[1:] = np.cumsum(rings_per_polygon)

    bboxes = np.zeros((len(polygons), 4), dtype=np.float64)
    for i, polygon in enumerate(polygons.rings):
        bboxes[i] = bounding_box(polygon)

    return coords, ring_offsets, polygon_offsets, bboxes


def bounding_box(rings: Sequence[np.ndarray]) -> tuple[float, float, float, float]:
    """Bounding box of a polygon's rings as (min_x, min_y, max_x, max_y)."""
    stacked = np.vstack([np.asarray(ring, dtype=np.float64) for ring in rings])
    mins = stacked.min(axis=0)
    maxs = stacked.max(axis=0)
    return float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1])


def signed_area(ring: np.ndarray) -> float:
    """Shoelace signed area of a ring (positive when counter-clockwise)."""
    ring = close_ring(ring)
    x = ring[:, 0]
    y = ring[:, 1]
    return float(0.5 * np.sum(x[:-1] * y[1:] - x[1:] * y[:-1]))


def validate_ring(
    ring: np.ndarray,
    polygon_index: int | None = None,
    ring_index: int | None = None,
) -> np.ndarray:
    """Check that a ring bounds a well-defined area.

    Args:
        ring: Vertex array (k, 2), open or closed.
        polygon_index: Polygon index used in error messages.
        ring_index: Ring index used in error messages.

    Returns:
        The closed ring with repeated consecutive vertices removed.

    Raises:
        GeometryError: If the ring has fewer than 3 distinct vertices, has
            zero area, or has two edges that cross each other.
    """
    where = ""
    if polygon_index is not None:
        where = f" (polygon {polygon_index}, ring {ring_index})"

    closed = close_ring(ring)
    step = np.diff(closed, axis=0)
    keep = np.concatenate([[True], np.any(step != 0.0, axis=1)])
    cleaned = closed[keep]
    if not np.array_equal(cleaned[0], cleaned[-1]):
        cleaned = np.vstack([cleaned, cleaned[:1]])

    n_distinct = len(np.unique(cleaned[:-1], axis=0))
    if n_distinct < 3:
        raise GeometryError(
            f"Degenerate ring{where}: {n_distinct} distinct vertices, need at least 3",
            details={"polygon": polygon_index, "ring": ring_index},
        )
    if signed_area(cleaned) == 0.0:
        raise GeometryError(
            f"Degenerate ring{where}: vertices are collinear (zero area)",
            details={"polygon": polygon_index, "ring": ring_index},
        )

    edge = _first_crossing_edge(np.ascontiguousarray(cleaned))
    if edge >= 0:
        raise GeometryError(
            f"Self-intersecting ring{where}: edge {edge} crosses or overlaps a later edge",
            suggestion="Repair the geometry (e.g. shapely.make_valid) before intersecting.",
            details={"polygon": polygon_index, "ring": ring_index, "edge": int(edge)},
        )
    return cleaned


def validate_polygons(polygons: PolygonSet) -> None:
    """Validate every ring of every polygon; raise GeometryError on the first bad one."""
    for i, polygon in enumerate(polygons.rings):
        for r, ring in enumerate(polygon):
            validate_ring(ring, polygon_index=i, ring_index=r)
    logger.debug(f"Validated {polygons.n_vertices:,} vertices in {len(polygons)} polygons")


def locate_point(point: Sequence[float], rings: Sequence[np.ndarray]) -> str:
    """Classify a point against one polygon.

    Args:
        point: (x, y) coordinate.
        rings: Polygon rings; first is the outer boundary.

    Returns:
        'inside', 'outside', or 'boundary'.

    Example:
        >>> square = np.array([[0, 0], [1, 0], [1, 1], [0, 1]])
        >>> locate_point((0.5, 0.5), [square])
        'inside'
        >>> locate_point((1.0, 1.0), [square])
        'boundary'
    """
    closed = [close_ring(ring) for ring in rings]
    coords = np.ascontiguousarray(np.vstack(closed), dtype=np.float64)
    ring_offsets = np.zeros(len(closed) + 1, dtype=np.int64)
    ring_offsets[1:] = np.cumsum([len(ring) for ring in closed])

    x, y = float(point[0]), float(point[1])
    state = _locate_in_rings(x, y, coords, ring_offsets, 0, len(closed))
    return _LOCATION_NAMES[int(state)]


def point_in_polygon(
    point: Sequence[float],
    rings: Sequence[np.ndarray],
    boundary: BoundaryPolicy = "inside",
) -> bool:
    """Return True if ``point`` is contained in the polygon given by ``rings``.

    Args:
        point: (x, y) coordinate.
        rings: Polygon rings; first is the outer boundary.
        boundary: Whether boundary points count as 'inside' (default) or 'outside'.
    """
    check_boundary_policy(boundary)
    location = locate_point(point, rings)
    if location == "boundary":
        return boundary == "inside"
    return location == "inside"
