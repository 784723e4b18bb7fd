"""File loaders for vector layers and delimited tables.

Layer 4: Workflows - I/O operations.

Vector files are read with geopandas (optional dependency) and converted to
PointSet / PolygonSet. Tables are read with pandas.
"""

import logging
from pathlib import Path
from typing import Any, Literal, Optional, Union

import numpy as np
import pandas as pd

from zonesmith.objects.pointset import PointSet
from zonesmith.objects.polygonset import PolygonSet
from zonesmith.utils.errors import raise_validation_error
from zonesmith.utils.optional_imports import optional_import, require

GEOPANDAS_AVAILABLE, gpd_read_file = optional_import("geopandas", "read_file")

logger = logging.getLogger(__name__)

GeometryKind = Literal["auto", "points", "polygons"]

_POINT_TYPES = {"Point"}
_POLYGON_TYPES = {"Polygon", "MultiPolygon"}


def _polygon_rings(geometry: Any) -> list[np.ndarray]:
    """Rings of a shapely Polygon/MultiPolygon; exterior first for each part."""
    parts = geometry.geoms if geometry.geom_type == "MultiPolygon" else [geometry]
    rings = []
    for part in parts:
        rings.append(np.asarray(part.exterior.coords, dtype=np.float64)[:, :2])
        for interior in part.interiors:
            rings.append(np.asarray(interior.coords, dtype=np.float64)[:, :2])
    return rings


def geodataframe_to_geometry(
    gdf: Any,
    kind: GeometryKind = "auto",
) -> Union[PointSet, PolygonSet]:
    """Convert a GeoDataFrame into a PointSet or PolygonSet.

    Args:
        gdf: GeoDataFrame of Point, or of Polygon/MultiPolygon geometries.
        kind: Expected kind; 'auto' infers it from the geometry types.

    Returns:
        PointSet or PolygonSet with the non-geometry columns as attributes
        and the layer's CRS.
    """
    geometry = gdf.geometry
    if geometry.isna().any() or geometry.is_empty.any():
        raise_validation_error(
            "Layer contains null or empty geometries",
            suggestion="Drop them first, e.g. gdf[~gdf.geometry.is_empty].",
        )

    geom_types = set(geometry.geom_type.unique())
    attributes = pd.DataFrame(gdf.drop(columns=geometry.name))
    crs = gdf.crs

    if kind == "auto":
        if geom_types <= _POINT_TYPES:
            kind = "points"
        elif geom_types <= _POLYGON_TYPES:
            kind = "polygons"

    if kind == "points" and geom_types <= _POINT_TYPES:
        coords = np.column_stack([geometry.x.to_numpy(), geometry.y.to_numpy()])
        return PointSet(coordinates=coords, attributes=attributes, crs=crs)
    if kind == "polygons" and geom_types <= _POLYGON_TYPES:
        rings = [_polygon_rings(geom) for geom in geometry]
        return PolygonSet(rings=rings, attributes=attributes, crs=crs)

    raise_validation_error(
        f"Unsupported geometry types for kind='{kind}'",
        expected="Point, or Polygon/MultiPolygon",
        received=", ".join(sorted(geom_types)),
    )


def read_vector(
    path: Union[str, Path],
    layer: Optional[str] = None,
    kind: GeometryKind = "auto",
) -> Union[PointSet, PolygonSet]:
    """Read a vector file (shapefile, GeoPackage, GeoJSON, ...).

    Args:
        path: File path.
        layer: Optional layer name for multi-layer sources.
        kind: 'points', 'polygons', or 'auto'.

    Returns:
        PointSet or PolygonSet.

    Example:
        >>> from zonesmith.workflows.io import read_vector
        >>> boroughs = read_vector("data/london_sport.shp")
        >>> print(boroughs)
    """
    require(GEOPANDAS_AVAILABLE, "geopandas", optional_group="io")

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Vector file not found: {path}")

    kwargs = {"layer": layer} if layer is not None else {}
    gdf = gpd_read_file(path, **kwargs)
    result = geodataframe_to_geometry(gdf, kind=kind)
    logger.info(f"Read {len(result)} feature(s) from {path.name}: {result}")
    return result


def read_table(
    path: Union[str, Path],
    encoding: str = "utf-8",
    **kwargs: Any,
) -> pd.DataFrame:
    """Read a delimited text file into a DataFrame.

    Args:
        path: File path.
        encoding: Character encoding (e.g. 'latin1' for legacy exports).
        **kwargs: Passed to ``pandas.read_csv`` (sep, usecols, dtype, ...).

    Returns:
        DataFrame.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table file not found: {path}")

    frame = pd.read_csv(path, encoding=encoding, **kwargs)
    logger.info(f"Read {len(frame)} row(s), {len(frame.columns)} column(s) from {path.name}")
    return frame
