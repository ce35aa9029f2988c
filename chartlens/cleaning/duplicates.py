import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ..cells import is_missing, normalize_categorical
from ..exceptions import AnalysisError, ConfigurationError
from ..schemas import (
    AnalysisFailure,
    DuplicateGroup,
    DuplicateReport,
    DuplicateRow,
    DuplicateStatistics,
    KeepStrategy,
)
from ..table import Table
from .base import BaseApplier, BaseCalculator, fit_apply, resolve_columns

logger = logging.getLogger(__name__)

RowKey = Tuple[str, ...]


def row_keys(table: Table, columns: Sequence[str]) -> List[RowKey]:
    """Trimmed, case-sensitive labels of ``columns`` per row; missing cells key as ""."""
    idx = [table.column_index(c) for c in columns]
    return [tuple(normalize_categorical(row[i]) or "" for i in idx) for row in table.rows]


def group_rows(keys: Sequence[RowKey]) -> Dict[RowKey, List[int]]:
    """Row indices per key, keys ordered by first occurrence."""
    groups: Dict[RowKey, List[int]] = {}
    for i, key in enumerate(keys):
        groups.setdefault(key, []).append(i)
    return groups


def detect_duplicates(
    table: Table,
    columns: Optional[Sequence[str]] = None,
) -> Union[DuplicateReport, AnalysisFailure]:
    """
    Group rows by exact equality over ``columns`` (all columns when omitted).

    Every row falls in exactly one group; only groups with more than one row are
    reported. ``duplicate_rows`` and ``duplicate_count`` both count the extra copies
    beyond the first of each group, so removing duplicates drops that many rows.
    """
    try:
        columns = resolve_columns(table, columns)
    except AnalysisError as e:
        return e.to_failure()

    groups = group_rows(row_keys(table, columns))
    duplicate_groups = [
        DuplicateGroup(
            key=list(key),
            rows=[DuplicateRow(index=i, values=dict(zip(table.headers, table.rows[i]))) for i in indices],
            count=len(indices),
        )
        for key, indices in groups.items()
        if len(indices) > 1
    ]

    total = table.row_count
    unique = len(groups)
    statistics = DuplicateStatistics(
        total_rows=total,
        unique_rows=unique,
        duplicate_rows=total - unique,
        duplicate_groups_count=len(duplicate_groups),
        duplicate_count=total - unique,
    )
    logger.debug(
        "Duplicate scan over %s: %d groups, %d extra rows",
        columns, statistics.duplicate_groups_count, statistics.duplicate_rows,
    )
    return DuplicateReport(columns=columns, groups=duplicate_groups, statistics=statistics)


class DeduplicateCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'subset': [...], 'keep': 'first'|'last'|'fewest_missing'}
        subset = resolve_columns(table, config.get("subset"))
        try:
            keep = KeepStrategy(config.get("keep", KeepStrategy.FIRST))
        except ValueError:
            raise ConfigurationError(
                f"Unknown keep strategy '{config.get('keep')}'.",
                {"allowed": [k.value for k in KeepStrategy]},
            ) from None

        return {"subset": subset, "keep": keep.value}


class DeduplicateApplier(BaseApplier):
    def apply(self, table: Table, params: Dict[str, Any]) -> Table:
        subset = params["subset"]
        keep = KeepStrategy(params.get("keep", KeepStrategy.FIRST))
        keys = row_keys(table, subset)

        if keep in (KeepStrategy.FIRST, KeepStrategy.LAST):
            key_frame = pd.DataFrame(keys, columns=subset)
            mask = ~key_frame.duplicated(keep=keep.value)
            survivors = [i for i, keep_row in enumerate(mask.tolist()) if keep_row]
        else:
            missing_counts = [sum(1 for v in row if is_missing(v)) for row in table.rows]
            survivors = sorted(
                # min() keeps the earliest index on ties
                min(indices, key=lambda i: missing_counts[i])
                for indices in group_rows(keys).values()
            )

        removed = table.row_count - len(survivors)
        logger.info("Removed %d duplicate rows (keep=%s)", removed, keep.value)
        return table.with_rows(table.rows[i] for i in survivors)


def remove_duplicates(
    table: Table,
    columns: Optional[Sequence[str]] = None,
    keep: Union[KeepStrategy, str] = KeepStrategy.FIRST,
) -> Union[Table, AnalysisFailure]:
    """Drop all but one row of each duplicate group; survivors keep their relative order."""
    try:
        return fit_apply(
            DeduplicateCalculator(),
            DeduplicateApplier(),
            table,
            {"subset": columns, "keep": keep},
        )
    except AnalysisError as e:
        logger.info("Duplicate removal failed: %s", e.message)
        return e.to_failure()
