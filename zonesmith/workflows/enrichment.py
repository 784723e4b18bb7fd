"""Zone enrichment workflow.

Combines the spatial and attribute joins into one pipeline:

1. Align CRSs (optional, only when a target CRS is configured)
2. Clip points to the zones
3. Count points per zone
4. Inspect unmatched table keys
5. Reconcile, aggregate and join the table by zone name

Each stage logs what it did so intermediate results can be checked before the
next step runs. Any error aborts the remaining stages.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Union

import numpy as np
import pandas as pd

from zonesmith.config import EnrichmentConfig, EnrichmentOptions, load_config
from zonesmith.objects.pointset import PointSet
from zonesmith.objects.polygonset import PolygonSet
from zonesmith.primitives.crs import reproject
from zonesmith.primitives.tables import left_join
from zonesmith.tasks.attributejointask import AttributeJoinTask
from zonesmith.tasks.spatialjointask import SpatialJoinTask
from zonesmith.utils.errors import raise_validation_error
from zonesmith.workflows.io import read_table, read_vector

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentResult:
    """Results from the zone enrichment workflow.

    Attributes:
        zones: Zone attribute table with counts and table columns appended.
        clipped_points: Points inside at least one zone (None without points).
        counts: Per-zone point counts (None without points).
        unmatched_keys: Table labels with no zone before relabelling.
        multi_match_count: Points that fell in more than one zone.
    """

    zones: pd.DataFrame
    clipped_points: Optional[PointSet] = None
    counts: Optional[pd.DataFrame] = None
    unmatched_keys: list = field(default_factory=list)
    multi_match_count: int = 0

    def __repr__(self) -> str:
        """String representation."""
        n_points = "-" if self.clipped_points is None else len(self.clipped_points)
        return (
            f"EnrichmentResult(n_zones={len(self.zones)}, "
            f"n_clipped_points={n_points}, "
            f"n_unmatched_keys={len(self.unmatched_keys)})"
        )


class ZoneEnrichmentWorkflow:
    """Enrich a zone attribute table with point counts and an external table.

    Example:
        >>> from zonesmith.workflows.enrichment import ZoneEnrichmentWorkflow
        >>>
        >>> workflow = ZoneEnrichmentWorkflow()
        >>> result = workflow.run(
        ...     boroughs,
        ...     key="name",
        ...     points=stations,
        ...     table=crime,
        ...     table_key="Borough",
        ...     value_column="CrimeCount",
        ...     relabel={"Corp of London": "City of London"},
        ... )
        >>> result.zones.head()
    """

    def __init__(self, options: Optional[EnrichmentOptions] = None):
        """Initialize ZoneEnrichmentWorkflow.

        Args:
            options: Engine options; defaults to EnrichmentOptions().
        """
        self.options = options or EnrichmentOptions()
        self.spatial_task = SpatialJoinTask(
            boundary=self.options.boundary,
            multi_match=self.options.multi_match,
            prefilter=self.options.prefilter,
            parallel=self.options.parallel,
            validate=self.options.validate,
        )

    def run(
        self,
        zones: PolygonSet,
        key: str,
        points: Optional[PointSet] = None,
        table: Optional[pd.DataFrame] = None,
        table_key: Optional[str] = None,
        value_column: Optional[str] = None,
        fn: str = "sum",
        relabel: Optional[Mapping] = None,
    ) -> EnrichmentResult:
        """Run the enrichment pipeline.

        Args:
            zones: Zone polygons with a unique ``key`` attribute.
            key: Zone name column.
            points: Optional points to clip and count per zone.
            table: Optional external table keyed by zone name.
            table_key: Key column of ``table`` (defaults to ``key``).
            value_column: Table column to aggregate per key before joining.
            fn: Aggregation function for ``value_column``.
            relabel: Old label -> zone name corrections for ``table``.

        Returns:
            EnrichmentResult.
        """
        if zones.attributes is None:
            raise_validation_error("Zones need an attribute table with the key column")
        zones.column(key)

        target_crs = self.options.target_crs
        if target_crs is not None:
            zones = reproject(zones, target_crs)
            if points is not None:
                points = reproject(points, target_crs)

        enriched = zones.attributes.copy()
        result = EnrichmentResult(zones=enriched)

        if points is not None:
            matrix = self.spatial_task.intersects(points, zones)
            contained = matrix.contained()
            result.clipped_points = points.subset(np.flatnonzero(contained))
            result.multi_match_count = int((matrix.hit_counts() > 1).sum())
            logger.info(
                f"Stage clip: {len(result.clipped_points):,} of {len(points):,} "
                f"point(s) inside {len(zones)} zone(s)"
            )

            mapping = self.spatial_task.resolve(matrix)
            result.counts = self.spatial_task.counts_from_assignments(
                mapping, zones, key, output_column=self.options.count_column
            )
            enriched = left_join(enriched, result.counts, key=key, check_keys="both")
            logger.info(
                f"Stage count: {int(result.counts[self.options.count_column].sum()):,} "
                f"point(s) assigned to zones"
            )

        if table is not None:
            attribute_task = AttributeJoinTask(
                key=key,
                relabel=relabel,
                value_column=value_column,
                fn=fn,
            )
            result.unmatched_keys = attribute_task.inspect(
                table, enriched, table_key=table_key
            )
            logger.info(
                f"Stage inspect: {len(result.unmatched_keys)} unmatched key(s) "
                f"before relabelling"
            )
            enriched = attribute_task.run(enriched, table, table_key=table_key)
            logger.info(f"Stage join: joined table onto {len(enriched)} zone(s)")

        result.zones = enriched
        return result

    @classmethod
    def from_config(cls, config: EnrichmentConfig) -> "ZoneEnrichmentWorkflow":
        """Create a workflow from a loaded configuration."""
        return cls(options=config.options)


def run_from_config(config: Union[str, Path, EnrichmentConfig]) -> EnrichmentResult:
    """Load the files named in a configuration and run the workflow.

    Args:
        config: YAML path or EnrichmentConfig.

    Returns:
        EnrichmentResult.
    """
    if not isinstance(config, EnrichmentConfig):
        config = load_config(config)

    zones = read_vector(config.zones.path, layer=config.zones.layer, kind="polygons")
    points = None
    if config.points is not None:
        points = read_vector(config.points.path, layer=config.points.layer, kind="points")

    table = None
    table_options = config.table
    if table_options is not None:
        table = read_table(table_options.path, encoding=table_options.encoding)

    workflow = ZoneEnrichmentWorkflow.from_config(config)
    return workflow.run(
        zones,
        key=config.zones.key,
        points=points,
        table=table,
        table_key=table_options.key if table_options else None,
        value_column=table_options.value_column if table_options else None,
        fn=table_options.fn if table_options else "sum",
        relabel=table_options.relabel if table_options else None,
    )
