"""Spatial join task: point-to-polygon assignment and per-polygon counts.

Layer 3: Tasks - User intent translation.
"""

import logging
from typing import Literal

import numpy as np
import pandas as pd

from zonesmith.objects.intersection import IntersectionMatrix
from zonesmith.objects.pointset import PointSet
from zonesmith.objects.polygonset import PolygonSet
from zonesmith.primitives.geometry import BoundaryPolicy, check_boundary_policy
from zonesmith.primitives.intersection import (
    assignments_from_matrix,
    intersects,
)
from zonesmith.primitives.tables import group_aggregate, left_join
from zonesmith.utils.errors import (
    AmbiguousJoinError,
    raise_parameter_error,
    raise_validation_error,
)

logger = logging.getLogger(__name__)

MultiMatchPolicy = Literal["first", "all", "raise"]
MULTI_MATCH_POLICIES = ("first", "all", "raise")


class SpatialJoinTask:
    """Task for assigning points to the polygons that contain them.

    Wraps the intersection engine with a resolution policy for points that
    fall in more than one polygon (shared boundaries or overlaps).

    Example:
        >>> task = SpatialJoinTask(multi_match="first")
        >>> counts = task.count_points(stations, boroughs, key="name")
        >>> counts.head()
    """

    def __init__(
        self,
        boundary: BoundaryPolicy = "inside",
        multi_match: MultiMatchPolicy = "first",
        prefilter: bool = True,
        parallel: bool = False,
        validate: bool = True,
    ):
        """Initialize SpatialJoinTask.

        Args:
            boundary: Whether boundary points count as 'inside' (default) or
                'outside'.
            multi_match: Policy for points in several polygons: 'first' keeps
                the lowest polygon index (default), 'all' keeps every match,
                'raise' raises AmbiguousJoinError.
            prefilter: Use the bounding-box pre-filter.
            parallel: Run the containment kernel on several threads.
            validate: Validate polygon rings before intersecting.
        """
        check_boundary_policy(boundary)
        if multi_match not in MULTI_MATCH_POLICIES:
            raise_parameter_error(
                "multi_match", multi_match, valid_values=list(MULTI_MATCH_POLICIES)
            )
        self.boundary = boundary
        self.multi_match = multi_match
        self.prefilter = prefilter
        self.parallel = parallel
        self.validate = validate

    def intersects(self, points: PointSet, polygons: PolygonSet) -> IntersectionMatrix:
        """Containment matrix using this task's options."""
        return intersects(
            points,
            polygons,
            boundary=self.boundary,
            prefilter=self.prefilter,
            parallel=self.parallel,
            validate=self.validate,
        )

    def resolve(self, matrix: IntersectionMatrix) -> dict[int, list[int]]:
        """Apply the multi-match policy to an intersection matrix.

        Args:
            matrix: Result of ``intersects``.

        Returns:
            Dict of point index -> polygon indices (at most one unless
            multi_match='all').

        Raises:
            AmbiguousJoinError: If multi_match='raise' and a point falls in
                several polygons.
        """
        mapping = assignments_from_matrix(matrix)
        multi = [j for j, polygons in mapping.items() if len(polygons) > 1]
        if not multi:
            return mapping

        if self.multi_match == "raise":
            raise AmbiguousJoinError(
                f"{len(multi)} point(s) fall in more than one polygon "
                f"(first: point {multi[0]} in polygons {mapping[multi[0]]})",
                suggestion="Use multi_match='first' or 'all', or boundary='outside'.",
                details={"points": multi},
            )

        logger.warning(
            f"{len(multi)} point(s) fall in more than one polygon; "
            f"multi_match='{self.multi_match}'"
        )
        if self.multi_match == "first":
            for j in multi:
                mapping[j] = mapping[j][:1]
        return mapping

    def assign(self, points: PointSet, polygons: PolygonSet) -> dict[int, list[int]]:
        """Map every point index to its containing polygon index(es)."""
        return self.resolve(self.intersects(points, polygons))

    def clip(self, points: PointSet, polygons: PolygonSet) -> PointSet:
        """Keep points that fall in at least one polygon, in input order."""
        matrix = self.intersects(points, polygons)
        keep = np.flatnonzero(matrix.contained())
        logger.info(f"Clipped points: kept {len(keep):,} of {len(points):,}")
        return points.subset(keep)

    def join(self, points: PointSet, polygons: PolygonSet, key: str) -> pd.DataFrame:
        """Attach the containing polygon's ``key`` value to each point.

        Args:
            points: Points to label.
            polygons: Polygons with a ``key`` attribute column.
            key: Polygon attribute to copy onto points.

        Returns:
            Point attribute table (or an empty frame) plus the ``key`` column,
            null for points outside every polygon. Under multi_match='all' a
            point in several polygons produces one row per polygon.
        """
        keys = self._polygon_keys(polygons, key)
        mapping = self.assign(points, polygons)

        point_rows: list[int] = []
        labels: list = []
        for j in range(len(points)):
            matched = mapping[j] or [None]
            for i in matched:
                point_rows.append(j)
                labels.append(None if i is None else keys.iloc[i])

        if points.attributes is not None:
            base = points.attributes.iloc[point_rows].reset_index(drop=True)
        else:
            base = pd.DataFrame(index=range(len(point_rows)))
        column = key if key not in base.columns else f"{key}_polygon"
        result = base.assign(**{column: pd.Series(labels, dtype=object)})
        result.insert(0, "point_index", point_rows)
        return result

    def count_points(
        self,
        points: PointSet,
        polygons: PolygonSet,
        key: str,
        output_column: str = "count",
    ) -> pd.DataFrame:
        """Count the points in each polygon.

        Points are assigned, grouped by the polygon key and counted, and the
        counts are joined back onto the full list of polygon keys so polygons
        without points report 0.

        Args:
            points: Points to count.
            polygons: Polygons with a unique ``key`` attribute.
            key: Polygon key column.
            output_column: Name of the count column.

        Returns:
            DataFrame [key, output_column] with one row per polygon, in
            polygon order, integer counts.
        """
        return self.counts_from_assignments(
            self.assign(points, polygons), polygons, key, output_column=output_column
        )

    def counts_from_assignments(
        self,
        mapping: dict[int, list[int]],
        polygons: PolygonSet,
        key: str,
        output_column: str = "count",
    ) -> pd.DataFrame:
        """Per-polygon counts from an existing point -> polygons mapping.

        See ``count_points``; use this when the assignment is already known.
        """
        keys = self._polygon_keys(polygons, key)
        if keys.duplicated().any():
            raise_validation_error(
                f"Polygon key '{key}' must be unique to count points per polygon",
                received=f"duplicates {keys[keys.duplicated()].tolist()[:10]}",
            )

        assigned = [keys.iloc[i] for matched in mapping.values() for i in matched]
        assigned_table = pd.DataFrame({key: pd.Series(assigned, dtype=object)})

        counts = group_aggregate(
            assigned_table, key, value_column=None, fn="count", output_column=output_column
        )
        result = left_join(
            pd.DataFrame({key: keys.to_numpy()}),
            counts,
            key=key,
            check_keys="right",
            fill_value=0,
        )
        result[output_column] = result[output_column].astype(np.int64)

        n_outside = sum(1 for matched in mapping.values() if not matched)
        logger.info(
            f"Counted {int(result[output_column].sum()):,} point(s) in "
            f"{len(result)} polygon(s); {n_outside:,} outside all polygons"
        )
        return result

    @staticmethod
    def _polygon_keys(polygons: PolygonSet, key: str) -> pd.Series:
        keys = polygons.column(key)
        return keys.reset_index(drop=True)
