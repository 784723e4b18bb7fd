"""Attribute join task: reconcile, aggregate and join an external table by key.

Layer 3: Tasks - User intent translation.
"""

import logging
from typing import Mapping, Optional, Union

import pandas as pd

from zonesmith.objects.polygonset import PolygonSet
from zonesmith.primitives.tables import (
    AGGREGATE_FUNCTIONS,
    DUPLICATE_POLICIES,
    KEY_CHECKS,
    AggregateFn,
    DuplicatePolicy,
    KeyCheck,
    group_aggregate,
    left_join,
    reconcile_key,
    unmatched_keys,
)
from zonesmith.utils.errors import raise_parameter_error, raise_validation_error

logger = logging.getLogger(__name__)

TargetTable = Union[PolygonSet, pd.DataFrame]


def _target_frame(target: TargetTable) -> pd.DataFrame:
    if isinstance(target, PolygonSet):
        if target.attributes is None:
            raise_validation_error("PolygonSet has no attribute table to join onto")
        return target.attributes
    return target


class AttributeJoinTask:
    """Task for joining an external table onto polygon attributes by name.

    Runs the steps in a fixed order: relabel mismatched keys, optionally
    aggregate the table to one row per key, then left-join it onto the
    target. ``inspect`` exposes the unmatched labels so callers can check
    them between steps.

    Example:
        >>> task = AttributeJoinTask(
        ...     key="name",
        ...     relabel={"Corp of London": "City of London"},
        ...     value_column="CrimeCount",
        ... )
        >>> task.inspect(crime, boroughs, table_key="Borough")
        ['Corp of London']
        >>> enriched = task.run(boroughs, crime, table_key="Borough")
    """

    def __init__(
        self,
        key: str,
        relabel: Optional[Mapping] = None,
        value_column: Optional[str] = None,
        fn: AggregateFn = "sum",
        on_duplicate: DuplicatePolicy = "raise",
        check_keys: KeyCheck = "right",
    ):
        """Initialize AttributeJoinTask.

        Args:
            key: Key column of the target (polygon) table.
            relabel: Old label -> new label corrections for the source table.
            value_column: If set, aggregate this column per key before joining.
            fn: Aggregation function ('sum', 'count', 'mean').
            on_duplicate: Duplicate-key policy passed to ``left_join``.
            check_keys: Key coverage check passed to ``left_join``.
        """
        if fn not in AGGREGATE_FUNCTIONS:
            raise_parameter_error("fn", fn, valid_values=list(AGGREGATE_FUNCTIONS))
        if on_duplicate not in DUPLICATE_POLICIES:
            raise_parameter_error(
                "on_duplicate", on_duplicate, valid_values=list(DUPLICATE_POLICIES)
            )
        if check_keys not in KEY_CHECKS:
            raise_parameter_error("check_keys", check_keys, valid_values=list(KEY_CHECKS))
        self.key = key
        self.relabel = dict(relabel or {})
        self.value_column = value_column
        self.fn = fn
        self.on_duplicate = on_duplicate
        self.check_keys = check_keys

    def inspect(
        self,
        table: pd.DataFrame,
        target: TargetTable,
        table_key: Optional[str] = None,
    ) -> list:
        """Labels of ``table`` with no counterpart in the target's key column."""
        target_frame = _target_frame(target)
        unmatched = unmatched_keys(table, table_key or self.key, target_frame[self.key])
        if unmatched:
            logger.warning(f"{len(unmatched)} unmatched key(s): {unmatched}")
        else:
            logger.info("All table keys match the target")
        return unmatched

    def prepare(
        self,
        table: pd.DataFrame,
        target: TargetTable,
        table_key: Optional[str] = None,
    ) -> pd.DataFrame:
        """Relabel and aggregate ``table``; return it ready to join.

        Aggregation runs when ``value_column`` is set or fn is 'count'.
        """
        table_key = table_key or self.key
        target_frame = _target_frame(target)

        if self.relabel:
            reference = target_frame[self.key] if self.check_keys != "none" else None
            table = reconcile_key(table, table_key, self.relabel, reference_keys=reference)

        if self.value_column is not None or self.fn == "count":
            table = group_aggregate(table, table_key, self.value_column, fn=self.fn)
        return table

    def run(
        self,
        target: TargetTable,
        table: pd.DataFrame,
        table_key: Optional[str] = None,
    ) -> pd.DataFrame:
        """Relabel, aggregate and left-join ``table`` onto ``target``.

        Args:
            target: Polygon attribute table (or PolygonSet).
            table: External table keyed by name.
            table_key: Key column of ``table`` if it differs from ``key``.

        Returns:
            Target attributes with the table's columns appended.

        Raises:
            KeyMismatchError: If labels remain unmatched after relabelling.
            AmbiguousJoinError: If the prepared table still repeats keys.
        """
        table_key = table_key or self.key
        prepared = self.prepare(table, target, table_key=table_key)
        return left_join(
            _target_frame(target),
            prepared,
            key=self.key,
            right_key=table_key,
            on_duplicate=self.on_duplicate,
            check_keys=self.check_keys,
        )
