"""Coordinate Reference System (CRS) handling.

Provides CRS comparison for the intersection engine and a thin reprojection
adapter around pyproj. The engine itself never reprojects; callers align
datasets with ``reproject`` first.
"""

from __future__ import annotations

import logging
from typing import Any, Union

import numpy as np
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError

from zonesmith.objects.pointset import PointSet
from zonesmith.objects.polygonset import PolygonSet
from zonesmith.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

Geometry = Union[PointSet, PolygonSet]


def standardize_crs(crs: Any) -> CRS | None:
    """Return a pyproj CRS for ``crs`` (None stays None).

    Args:
        crs: EPSG code (int or 'EPSG:27700'), WKT, Proj4 string, or CRS object.
    """
    if crs is None:
        return None
    try:
        return CRS.from_user_input(crs)
    except CRSError as e:
        raise ConfigurationError(
            f"Unrecognized coordinate reference system: {crs!r}",
            details={"crs": crs},
        ) from e


def get_epsg_code(crs: Any) -> int | None:
    """Return the EPSG code of ``crs`` if one can be identified."""
    crs_obj = standardize_crs(crs)
    if crs_obj is None:
        return None
    return crs_obj.to_epsg()


def same_crs(a: Any, b: Any) -> bool:
    """Return True if two CRS specifications denote the same system.

    Two undefined CRSs compare equal; a defined and an undefined one do not.
    """
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    return standardize_crs(a) == standardize_crs(b)


def ensure_same_crs(a: Geometry, b: Geometry) -> None:
    """Raise ConfigurationError unless two geometry collections share a CRS.

    Args:
        a: First PointSet or PolygonSet.
        b: Second PointSet or PolygonSet.

    Raises:
        ConfigurationError: If the CRSs differ or only one is defined.
    """
    if same_crs(a.crs, b.crs):
        return
    if a.crs is None or b.crs is None:
        message = (
            f"Coordinate reference system missing on one input "
            f"({a.crs!r} vs {b.crs!r})"
        )
    else:
        message = f"Coordinate reference systems differ ({a.crs!r} vs {b.crs!r})"
    raise ConfigurationError(
        message,
        suggestion="Reproject one input with zonesmith.primitives.crs.reproject first.",
        details={"crs_a": a.crs, "crs_b": b.crs},
    )


def transform_coordinates(
    coordinates: np.ndarray,
    source_crs: Any,
    target_crs: Any,
) -> np.ndarray:
    """Transform (x, y) coordinates between CRSs.

    Args:
        coordinates: Input coordinates [N, 2].
        source_crs: Source CRS (EPSG code, CRS object, or string).
        target_crs: Target CRS (EPSG code, CRS object, or string).

    Returns:
        Transformed coordinates [N, 2].

    Examples:
        >>> coords = np.array([[-0.1276, 51.5072]])
        >>> # WGS84 longitude/latitude to British National Grid
        >>> bng = transform_coordinates(coords, 'EPSG:4326', 'EPSG:27700')
    """
    coordinates = np.asarray(coordinates, dtype=np.float64)
    if coordinates.ndim != 2 or coordinates.shape[1] != 2:
        raise ValueError(f"coordinates must have shape (n, 2), got {coordinates.shape}")
    if len(coordinates) == 0:
        return coordinates.copy()

    transformer = Transformer.from_crs(
        standardize_crs(source_crs), standardize_crs(target_crs), always_xy=True
    )
    x_new, y_new = transformer.transform(coordinates[:, 0], coordinates[:, 1])
    return np.column_stack([x_new, y_new])


def reproject(geometry: Geometry, target_crs: Any) -> Geometry:
    """Return a copy of ``geometry`` expressed in ``target_crs``.

    Args:
        geometry: PointSet or PolygonSet with a defined CRS.
        target_crs: Target CRS.

    Returns:
        New object of the same type; attributes are carried over unchanged.

    Raises:
        ConfigurationError: If ``geometry`` has no CRS.
    """
    if geometry.crs is None:
        raise ConfigurationError(
            "Cannot reproject geometry without a coordinate reference system",
            suggestion="Set crs when constructing the PointSet/PolygonSet.",
        )
    if same_crs(geometry.crs, target_crs):
        return geometry

    if isinstance(geometry, PointSet):
        coords = transform_coordinates(geometry.coordinates, geometry.crs, target_crs)
        logger.info(f"Reprojected {len(geometry)} points from {geometry.crs} to {target_crs}")
        return PointSet(coordinates=coords, attributes=geometry.attributes, crs=target_crs)

    rings = [ring for polygon in geometry.rings for ring in polygon]
    if rings:
        stacked = transform_coordinates(np.vstack(rings), geometry.crs, target_crs)
    else:
        stacked = np.zeros((0, 2))

    polygons = []
    start = 0
    for polygon in geometry.rings:
        parts = []
        for ring in polygon:
            parts.append(stacked[start : start + len(ring)])
            start += len(ring)
        polygons.append(parts)

    logger.info(
        f"Reprojected {len(geometry)} polygons from {geometry.crs} to {target_crs}"
    )
    return PolygonSet(rings=polygons, attributes=geometry.attributes, crs=target_crs)
