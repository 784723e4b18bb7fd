"""Point/polygon intersection matrix.

Layer 1: Objects - Immutable data representations.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class IntersectionMatrix:
    """Boolean containment relation between polygons and points.

    ``matrix[i, j]`` is True when point ``j`` lies in polygon ``i`` under the
    recorded boundary policy.

    Attributes:
        matrix: Boolean array of shape (n_polygons, n_points).
        boundary: Boundary policy used to build the matrix ('inside' or 'outside').
    """

    matrix: np.ndarray
    boundary: str = "inside"

    def __post_init__(self) -> None:
        """Validate IntersectionMatrix parameters."""
        matrix = np.asarray(self.matrix, dtype=bool)
        if matrix.ndim != 2:
            raise ValueError(
                f"matrix must be 2D (n_polygons, n_points), got shape {matrix.shape}"
            )
        object.__setattr__(self, "matrix", matrix)

    @property
    def n_polygons(self) -> int:
        return self.matrix.shape[0]

    @property
    def n_points(self) -> int:
        return self.matrix.shape[1]

    def hit_counts(self) -> np.ndarray:
        """Number of containing polygons for each point."""
        return self.matrix.sum(axis=0).astype(np.int64)

    def contained(self) -> np.ndarray:
        """Boolean mask of points contained in at least one polygon."""
        return self.matrix.any(axis=0)

    def polygons_for_point(self, point_index: int) -> list[int]:
        """Ascending polygon indices containing point ``point_index``."""
        return np.flatnonzero(self.matrix[:, point_index]).tolist()

    def points_in_polygon(self, polygon_index: int) -> list[int]:
        """Ascending point indices inside polygon ``polygon_index``."""
        return np.flatnonzero(self.matrix[polygon_index]).tolist()

    def __repr__(self) -> str:
        """String representation."""
        n_inside = int(self.contained().sum())
        return (
            f"IntersectionMatrix(n_polygons={self.n_polygons}, "
            f"n_points={self.n_points}, points_inside={n_inside}, "
            f"boundary='{self.boundary}')"
        )
