import logging
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from ..cells import canonical_number, is_missing, normalize_column
from ..exceptions import AnalysisError, ConfigurationError, InsufficientDataError
from ..schemas import AnalysisFailure, MissingStrategy, MissingValueSummary
from ..statistics.descriptive import mean, median, mode, to_numeric_array
from ..table import CellValue, Table
from .base import BaseApplier, BaseCalculator, fit_apply, require_column

logger = logging.getLogger(__name__)


def summarize_missing(table: Table) -> List[MissingValueSummary]:
    """Missing-cell count per column, in header order."""
    total = table.row_count
    summaries = []
    for name in table.headers:
        missing = sum(1 for v in table.column(name) if is_missing(v))
        summaries.append(
            MissingValueSummary(
                column=name,
                missing_count=missing,
                total_count=total,
                missing_percentage=(missing / total * 100) if total else 0.0,
            )
        )
    return summaries


def _most_frequent_label(values: List[CellValue]) -> Optional[str]:
    labels = [c.label for c in normalize_column(values) if not c.is_empty]
    if not labels:
        return None
    # idxmax picks the first label among ties, in order of appearance
    return pd.Series(labels, dtype=object).value_counts(sort=False).idxmax()


class MissingValueCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'column': 'age', 'strategy': 'fill_median', 'custom_value': None}
        column = require_column(table, config.get("column"))
        try:
            strategy = MissingStrategy(config.get("strategy"))
        except ValueError:
            raise ConfigurationError(
                f"Unknown missing-value strategy '{config.get('strategy')}'.",
                {"allowed": [s.value for s in MissingStrategy]},
            ) from None

        if strategy == MissingStrategy.REMOVE_ROWS:
            return {"column": column, "strategy": strategy.value}

        values = table.column(column)
        xs = to_numeric_array(values)
        fill_value: CellValue = None
        if strategy == MissingStrategy.FILL_MEAN:
            fill_value = mean(xs)
        elif strategy == MissingStrategy.FILL_MEDIAN:
            fill_value = median(xs)
        elif strategy == MissingStrategy.FILL_MODE:
            modes = mode(xs)
            # Text columns fall back to their most frequent label
            fill_value = modes[0] if modes else _most_frequent_label(values)
        else:
            fill_value = config.get("custom_value")
            if fill_value is None:
                raise ConfigurationError("A custom fill value is required for 'fill_custom'.")
            return {"column": column, "strategy": strategy.value, "fill_value": fill_value}

        if fill_value is None:
            raise InsufficientDataError(
                f"Cannot compute a fill value for column '{column}': no usable values.",
                {"column": column, "strategy": strategy.value},
            )
        if isinstance(fill_value, float):
            fill_value = canonical_number(fill_value)
        return {"column": column, "strategy": strategy.value, "fill_value": fill_value}


class MissingValueApplier(BaseApplier):
    def apply(self, table: Table, params: Dict[str, Any]) -> Table:
        column = params["column"]
        idx = table.column_index(column)

        if params["strategy"] == MissingStrategy.REMOVE_ROWS.value:
            kept = [row for row in table.rows if not is_missing(row[idx])]
            logger.info("Removed %d rows missing '%s'", table.row_count - len(kept), column)
            return table.with_rows(kept)

        fill_value = params["fill_value"]
        filled = [fill_value if is_missing(v) else v for v in table.column(column)]
        return table.with_column(column, filled)


def handle_missing_values(
    table: Table,
    column: str,
    strategy: Union[MissingStrategy, str],
    custom_value: CellValue = None,
) -> Union[Table, AnalysisFailure]:
    """Drop rows missing ``column`` or fill its missing cells with a statistic or a custom value."""
    try:
        return fit_apply(
            MissingValueCalculator(),
            MissingValueApplier(),
            table,
            {"column": column, "strategy": strategy, "custom_value": custom_value},
        )
    except AnalysisError as e:
        logger.info("Missing-value handling failed for %s: %s", column, e.message)
        return e.to_failure()
