"""Polygon collection object.

Layer 1: Objects - Immutable data representations.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd


def close_ring(ring: np.ndarray) -> np.ndarray:
    """Return ``ring`` as a float array whose last vertex repeats the first.

    Args:
        ring: Vertex array of shape (k, 2), open or closed.

    Returns:
        Closed ring of shape (k, 2) or (k + 1, 2).
    """
    ring = np.asarray(ring, dtype=np.float64)
    if ring.ndim != 2 or ring.shape[1] != 2:
        raise ValueError(f"ring must have shape (k, 2), got {ring.shape}")
    if len(ring) == 0:
        raise ValueError("ring must contain at least one vertex")
    if not np.array_equal(ring[0], ring[-1]):
        ring = np.vstack([ring, ring[:1]])
    return ring


@dataclass(frozen=True)
class PolygonSet:
    """Ordered collection of polygons with an optional attribute table.

    Each polygon is a list of rings. The first ring is the outer boundary;
    any further rings are holes or additional parts of a multipart polygon
    (interior is resolved with the even-odd rule). Rings are stored closed.

    Attributes:
        rings: List of polygons, each a list of (k, 2) vertex arrays.
        attributes: Optional DataFrame with one row per polygon.
        crs: Optional coordinate reference system.
    """

    rings: list
    attributes: Optional[pd.DataFrame] = None
    crs: Optional[Any] = None

    def __post_init__(self) -> None:
        """Validate PolygonSet parameters."""
        polygons = []
        for i, polygon in enumerate(self.rings):
            if isinstance(polygon, np.ndarray) and polygon.ndim == 2:
                # Single ring passed without the list wrapper
                polygon = [polygon]
            if len(polygon) == 0:
                raise ValueError(f"polygon {i} has no rings")
            closed = []
            for ring in polygon:
                ring = close_ring(ring)
                if not np.all(np.isfinite(ring)):
                    raise ValueError(f"polygon {i} has non-finite coordinates")
                closed.append(ring)
            polygons.append(closed)
        object.__setattr__(self, "rings", polygons)

        if self.attributes is not None:
            if not isinstance(self.attributes, pd.DataFrame):
                raise ValueError(
                    f"attributes must be pandas DataFrame, got {type(self.attributes)}"
                )
            if len(self.attributes) != len(polygons):
                raise ValueError(
                    f"attributes has {len(self.attributes)} rows but there are "
                    f"{len(polygons)} polygons"
                )
            object.__setattr__(
                self, "attributes", self.attributes.reset_index(drop=True)
            )

    def subset(self, indices: Sequence[int]) -> "PolygonSet":
        """Return the polygons at ``indices`` (in the given order)."""
        idx = [int(i) for i in indices]
        attributes = None
        if self.attributes is not None:
            attributes = self.attributes.iloc[idx].reset_index(drop=True)
        return PolygonSet(
            rings=[self.rings[i] for i in idx], attributes=attributes, crs=self.crs
        )

    def column(self, name: str) -> pd.Series:
        """Return attribute column ``name``."""
        if self.attributes is None or name not in self.attributes.columns:
            available = [] if self.attributes is None else list(self.attributes.columns)
            raise ValueError(
                f"Attribute column '{name}' not found. Available columns: {available}"
            )
        return self.attributes[name]

    @property
    def n_vertices(self) -> int:
        """Total number of stored vertices (closing vertices included)."""
        return int(sum(len(ring) for polygon in self.rings for ring in polygon))

    def __len__(self) -> int:
        return len(self.rings)

    def __repr__(self) -> str:
        """String representation."""
        crs_str = f", crs={self.crs}" if self.crs is not None else ""
        return (
            f"PolygonSet(n_polygons={len(self)}, n_vertices={self.n_vertices}{crs_str})"
        )
