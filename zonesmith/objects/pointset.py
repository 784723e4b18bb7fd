"""Point collection object.

Layer 1: Objects - Immutable data representations.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class PointSet:
    """Ordered collection of planar points with an optional attribute table.

    The position of a point in ``coordinates`` is its stable index; row ``i``
    of ``attributes`` describes point ``i``.

    Attributes:
        coordinates: Array of shape (n, 2) holding x, y.
        attributes: Optional DataFrame with one row per point.
        crs: Optional coordinate reference system (EPSG code, WKT, or any
            value ``pyproj.CRS.from_user_input`` accepts).
    """

    coordinates: np.ndarray
    attributes: Optional[pd.DataFrame] = None
    crs: Optional[Any] = None

    def __post_init__(self) -> None:
        """Validate PointSet parameters."""
        coords = np.asarray(self.coordinates, dtype=np.float64)
        if coords.size == 0:
            coords = coords.reshape(0, 2)

        if coords.ndim != 2 or coords.shape[1] != 2:
            raise ValueError(
                f"coordinates must have shape (n, 2), got {coords.shape}"
            )
        if not np.all(np.isfinite(coords)):
            raise ValueError("coordinates must be finite (no NaN or inf)")
        object.__setattr__(self, "coordinates", coords)

        if self.attributes is not None:
            if not isinstance(self.attributes, pd.DataFrame):
                raise ValueError(
                    f"attributes must be pandas DataFrame, got {type(self.attributes)}"
                )
            if len(self.attributes) != len(coords):
                raise ValueError(
                    f"attributes has {len(self.attributes)} rows but there are "
                    f"{len(coords)} points"
                )
            object.__setattr__(
                self, "attributes", self.attributes.reset_index(drop=True)
            )

    @classmethod
    def from_dataframe(
        cls,
        frame: pd.DataFrame,
        x: str = "x",
        y: str = "y",
        crs: Optional[Any] = None,
    ) -> "PointSet":
        """Build a PointSet from coordinate columns of a DataFrame.

        The coordinate columns stay in the attribute table.

        Args:
            frame: Table with one row per point.
            x: Name of the x (easting / longitude) column.
            y: Name of the y (northing / latitude) column.
            crs: CRS of the coordinate columns.

        Returns:
            PointSet with ``frame`` as attributes.
        """
        missing = [c for c in (x, y) if c not in frame.columns]
        if missing:
            raise ValueError(
                f"Coordinate columns {missing} not found in DataFrame. "
                f"Available columns: {list(frame.columns)}"
            )
        coords = frame[[x, y]].to_numpy(dtype=np.float64)
        return cls(coordinates=coords, attributes=frame, crs=crs)

    def subset(self, indices: Sequence[int]) -> "PointSet":
        """Return the points at ``indices`` (in the given order)."""
        idx = np.asarray(indices, dtype=np.int64)
        attributes = None
        if self.attributes is not None:
            attributes = self.attributes.iloc[idx].reset_index(drop=True)
        return PointSet(
            coordinates=self.coordinates[idx], attributes=attributes, crs=self.crs
        )

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Bounding box as (min_x, min_y, max_x, max_y)."""
        if len(self) == 0:
            raise ValueError("Empty PointSet has no bounds")
        mins = self.coordinates.min(axis=0)
        maxs = self.coordinates.max(axis=0)
        return float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1])

    def __len__(self) -> int:
        return len(self.coordinates)

    def __repr__(self) -> str:
        """String representation."""
        crs_str = f", crs={self.crs}" if self.crs is not None else ""
        n_cols = 0 if self.attributes is None else len(self.attributes.columns)
        return f"PointSet(n_points={len(self)}, n_attributes={n_cols}{crs_str})"
