"""Keyed table operations: key reconciliation, left join, grouped aggregation.

Layer 2: Primitives - Pure operations.

Relations are pandas DataFrames. Every function returns a new frame, keeps
input row order, and never mutates its arguments.
"""

import logging
from typing import Any, Hashable, Iterable, Literal, Mapping, Optional

import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from zonesmith.utils.errors import (
    AggregationTypeError,
    AmbiguousJoinError,
    KeyMismatchError,
    raise_parameter_error,
    raise_validation_error,
)

logger = logging.getLogger(__name__)

DuplicatePolicy = Literal["raise", "first", "fanout"]
KeyCheck = Literal["right", "both", "none"]
AggregateFn = Literal["sum", "count", "mean"]

DUPLICATE_POLICIES = ("raise", "first", "fanout")
KEY_CHECKS = ("right", "both", "none")
AGGREGATE_FUNCTIONS = ("sum", "count", "mean")

_MERGE_INDICATOR = "_zonesmith_merge"


def _require_columns(relation: pd.DataFrame, columns: Iterable[str], name: str) -> None:
    missing = [c for c in columns if c not in relation.columns]
    if missing:
        raise_validation_error(
            f"Column(s) {missing} not found in {name}",
            expected=f"one of {list(relation.columns)}",
        )


def unmatched_keys(
    relation: pd.DataFrame,
    column: str,
    reference_keys: Iterable[Hashable],
) -> list:
    """Distinct labels of ``relation[column]`` absent from ``reference_keys``.

    This is the inspection step to run before a join: an empty result means
    every label has a counterpart.

    Args:
        relation: Table to inspect.
        column: Key column in ``relation``.
        reference_keys: Key domain of the other relation.

    Returns:
        Unmatched labels in first-seen order.

    Example:
        >>> crime = pd.DataFrame({"Borough": ["Camden", "Corp of London"]})
        >>> unmatched_keys(crime, "Borough", ["Camden", "City of London"])
        ['Corp of London']
    """
    _require_columns(relation, [column], "relation")
    reference = set(pd.unique(pd.Series(list(reference_keys), dtype=object)))
    labels = pd.unique(relation[column].astype(object))
    return [label for label in labels if label not in reference]


def reconcile_key(
    relation: pd.DataFrame,
    column: str,
    mapping: Mapping[Any, Any],
    reference_keys: Optional[Iterable[Hashable]] = None,
) -> pd.DataFrame:
    """Rewrite mismatched key labels before a join.

    Args:
        relation: Table whose key labels need correcting.
        column: Key column to rewrite.
        mapping: Old label -> new label. Labels not listed are untouched.
        reference_keys: Optional key domain of the relation this one will be
            joined against. When given, every label must exist in it after
            the rewrite.

    Returns:
        Copy of ``relation`` with the labels rewritten. Categorical columns
        stay categorical.

    Raises:
        KeyMismatchError: If ``reference_keys`` is given and some labels are
            still unmatched after the rewrite.

    Example:
        >>> crime = pd.DataFrame({"Borough": ["Corp of London"], "n": [3]})
        >>> fixed = reconcile_key(
        ...     crime, "Borough", {"Corp of London": "City of London"}
        ... )
        >>> fixed["Borough"].tolist()
        ['City of London']
    """
    _require_columns(relation, [column], "relation")

    original = relation[column]
    present = set(pd.unique(original.astype(object)))
    unused = [old for old in mapping if old not in present]
    if unused:
        logger.warning(f"Relabel entries matched no rows in '{column}': {unused}")

    rewritten = original.astype(object).map(lambda label: mapping.get(label, label))
    if isinstance(original.dtype, pd.CategoricalDtype):
        rewritten = rewritten.astype("category")

    result = relation.copy()
    result[column] = rewritten

    n_changed = int(original.astype(object).isin(list(mapping)).sum())
    logger.info(f"Reconciled {n_changed} row(s) in key column '{column}'")

    if reference_keys is not None:
        remaining = unmatched_keys(result, column, reference_keys)
        if remaining:
            raise KeyMismatchError(
                f"{len(remaining)} key(s) in '{column}' have no counterpart after "
                f"reconciliation: {remaining}",
                suggestion="Add the missing labels to the relabel mapping.",
                details={"unmatched": remaining, "column": column},
            )
    return result


def left_join(
    left: pd.DataFrame,
    right: pd.DataFrame,
    key: str,
    on_duplicate: DuplicatePolicy = "raise",
    check_keys: KeyCheck = "right",
    fill_value: Any = None,
    right_key: Optional[str] = None,
) -> pd.DataFrame:
    """Append the non-key columns of matching ``right`` rows to ``left``.

    Output has one row per left row in left order (more only under
    ``on_duplicate='fanout'``). Unmatched left rows get nulls, or
    ``fill_value`` when given; nulls carried by matched right rows are kept.
    A null key never matches, even another null. Name clashes in non-key
    columns get a ``_right`` suffix.

    Args:
        left: Target relation (e.g. polygon attributes).
        right: Source relation.
        key: Key column in ``left`` (and in ``right`` unless ``right_key``).
        on_duplicate: What to do when ``right`` repeats a key: 'raise'
            (default), 'first' (first match wins), or 'fanout' (one output
            row per match).
        check_keys: 'right' (default) requires every right key to exist in
            ``left``; 'both' also requires every left key to be matched;
            'none' skips the check.
        fill_value: Value for joined columns of unmatched left rows.
        right_key: Key column name in ``right`` if it differs from ``key``.

    Returns:
        Joined relation.

    Raises:
        AmbiguousJoinError: Duplicate right keys under on_duplicate='raise'.
        KeyMismatchError: Unmatched keys under the chosen ``check_keys``.
    """
    if on_duplicate not in DUPLICATE_POLICIES:
        raise_parameter_error("on_duplicate", on_duplicate, list(DUPLICATE_POLICIES))
    if check_keys not in KEY_CHECKS:
        raise_parameter_error("check_keys", check_keys, list(KEY_CHECKS))

    right_key = right_key or key
    _require_columns(left, [key], "left relation")
    _require_columns(right, [right_key], "right relation")

    right = right.copy()
    if right_key != key:
        if key in right.columns:
            right = right.drop(columns=[key])
        right = right.rename(columns={right_key: key})

    duplicated = right[key].duplicated(keep="first")
    if duplicated.any():
        duplicate_keys = pd.unique(right.loc[duplicated, key].astype(object)).tolist()
        if on_duplicate == "raise":
            raise AmbiguousJoinError(
                f"Right relation has {len(duplicate_keys)} duplicated key(s) in "
                f"'{key}': {duplicate_keys[:10]}",
                suggestion="Aggregate the right relation first (group_aggregate) "
                "or pass on_duplicate='first'.",
                details={"duplicates": duplicate_keys},
            )
        if on_duplicate == "first":
            logger.warning(
                f"Keeping first match for {len(duplicate_keys)} duplicated key(s)"
            )
            right = right.loc[~duplicated].copy()

    if check_keys != "none":
        left_domain = pd.unique(left[key].astype(object))
        unmatched = unmatched_keys(right, key, left_domain)
        if check_keys == "both":
            right_domain = pd.unique(right[key].astype(object))
            unmatched += [k for k in unmatched_keys(left, key, right_domain) if k not in unmatched]
        if unmatched:
            raise KeyMismatchError(
                f"{len(unmatched)} key(s) in '{key}' have no counterpart: {unmatched}",
                suggestion="Fix the labels with reconcile_key before joining.",
                details={"unmatched": unmatched, "column": key},
            )

    joined_columns = [c for c in right.columns if c != key]
    renamed = {c: f"{c}_right" for c in joined_columns if c in left.columns}
    right = right.rename(columns=renamed)
    joined_columns = [renamed.get(c, c) for c in joined_columns]

    # Null keys never match, on either side
    right = right.loc[right[key].notna()].copy()
    right[key] = right[key].astype(object)
    result = left.assign(**{key: left[key].astype(object)}).merge(
        right, on=key, how="left", sort=False, indicator=_MERGE_INDICATOR
    )
    # Restore the caller's key dtype (categoricals are widened for the merge)
    result[key] = result[key].astype(left[key].dtype)

    unmatched_rows = (result.pop(_MERGE_INDICATOR) == "left_only").to_numpy()
    if fill_value is not None and joined_columns and unmatched_rows.any():
        filled = result.loc[unmatched_rows, joined_columns].fillna(fill_value)
        result.loc[unmatched_rows, joined_columns] = filled
        result[joined_columns] = result[joined_columns].infer_objects()

    n_matched = int((~unmatched_rows).sum())
    logger.info(
        f"Left join on '{key}': {n_matched} of {len(result)} row(s) matched, "
        f"{len(joined_columns)} column(s) appended"
    )
    return result.reset_index(drop=True)


def group_aggregate(
    relation: pd.DataFrame,
    group_by: str,
    value_column: Optional[str] = None,
    fn: AggregateFn = "sum",
    output_column: Optional[str] = None,
) -> pd.DataFrame:
    """Reduce ``value_column`` within each distinct ``group_by`` value.

    Groups appear in first-seen order; null keys form their own group.

    Args:
        relation: Table to aggregate.
        group_by: Categorical key column.
        value_column: Column to reduce. Optional for fn='count'.
        fn: 'sum' (nulls skipped), 'count' (rows per group), or 'mean'.
        output_column: Name of the result column. Defaults to
            ``value_column``, or 'count' when counting without one.

    Returns:
        DataFrame with columns [group_by, output_column], one row per key.

    Raises:
        ParameterError: If the output column would clash with ``group_by``.
        AggregationTypeError: If fn is 'sum' or 'mean' and the value column
            is not numeric.

    Example:
        >>> crime = pd.DataFrame(
        ...     {"Borough": ["A", "B", "A"], "CrimeCount": [2, 5, 3]}
        ... )
        >>> group_aggregate(crime, "Borough", "CrimeCount", fn="sum")
          Borough  CrimeCount
        0       A           5
        1       B           5
    """
    if fn not in AGGREGATE_FUNCTIONS:
        raise_parameter_error("fn", fn, list(AGGREGATE_FUNCTIONS))
    if value_column is None and fn != "count":
        raise_parameter_error(
            "value_column", value_column, constraint=f"required when fn='{fn}'"
        )

    columns = [group_by] + ([value_column] if value_column is not None else [])
    _require_columns(relation, columns, "relation")
    output_column = output_column or value_column or "count"
    if output_column == group_by:
        raise_parameter_error(
            "output_column",
            output_column,
            constraint=f"must differ from the group_by column '{group_by}'",
            suggestion="Pass a distinct output_column, e.g. output_column='total'.",
        )

    if fn in ("sum", "mean"):
        values = relation[value_column]
        if not is_numeric_dtype(values) or (fn == "mean" and is_bool_dtype(values)):
            raise AggregationTypeError(
                f"Cannot {fn} non-numeric column '{value_column}' "
                f"(dtype {values.dtype})",
                suggestion="Convert the column with pd.to_numeric first.",
            )

    grouped = relation.groupby(group_by, sort=False, dropna=False, observed=True)
    if fn == "count":
        reduced = grouped.size()
    elif fn == "sum":
        reduced = grouped[value_column].sum()
    else:
        reduced = grouped[value_column].mean()

    result = reduced.rename(output_column).reset_index()
    logger.debug(
        f"Aggregated {len(relation)} row(s) into {len(result)} group(s) "
        f"by '{group_by}' ({fn})"
    )
    return result
