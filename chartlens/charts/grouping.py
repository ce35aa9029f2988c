"""Axis validation, X-axis grouping and truncation shared by the chart builders."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ..cells import Cell, Number, canonical_number, normalize_column
from ..config import EngineSettings
from ..exceptions import CardinalityLimitError, ConfigurationError, InsufficientDataError
from ..profiling.classifier import analyze_cells
from ..schemas import AxisConfig, ColumnAnalysis
from ..table import Table

logger = logging.getLogger(__name__)

XKey = Union[str, Number]


@dataclass
class AxisData:
    x_column: str
    y_column: str
    x_cells: List[Cell]
    y_cells: List[Cell]
    y_analysis: ColumnAnalysis


@dataclass
class XGroups:
    """
    Plotting frame plus the X keys in display order.

    ``frame`` has one row per kept data row with columns ``x`` (the group key),
    ``y_label`` (trimmed Y label, None when missing) and ``y_number`` (NaN unless
    the Y cell is numeric).
    """

    frame: pd.DataFrame
    keys: List[XKey]
    numeric: bool = True

    @property
    def index(self) -> pd.Index:
        # object dtype keeps int keys from being compared as floats
        return pd.Index(self.keys, dtype=object)


def require_column(table: Table, column: Optional[str], role: str) -> str:
    if not table.has_column(column):
        raise ConfigurationError(f"{role} column '{column}' not found.", {"column": column})
    return column


def validate_axes(table: Table, axes: AxisConfig, chart_label: str, settings: EngineSettings) -> AxisData:
    """Check both axes are selected, distinct and exist, then classify the Y column."""
    if not axes.x_axis_column or not axes.y_axis_column:
        raise ConfigurationError(f"X and Y axes must be selected for {chart_label}.")
    if axes.x_axis_column == axes.y_axis_column:
        raise ConfigurationError(
            "X and Y axes cannot be the same column.", {"column": axes.x_axis_column}
        )

    x_column = require_column(table, axes.x_axis_column, "X-axis")
    y_column = require_column(table, axes.y_axis_column, "Y-axis")

    y_cells = normalize_column(table.column(y_column))
    y_analysis = analyze_cells(y_cells, y_column, settings)
    if y_analysis.is_empty:
        raise InsufficientDataError(
            f"Y-axis column '{y_column}' contains no valid data.", {"column": y_column}
        )

    return AxisData(
        x_column=x_column,
        y_column=y_column,
        x_cells=normalize_column(table.column(x_column)),
        y_cells=y_cells,
        y_analysis=y_analysis,
    )


def group_by_x(axis: AxisData, headers: Sequence[str]) -> XGroups:
    """
    Build the plotting frame keyed by X value.

    The column keys numerically only when every non-missing cell is a number;
    a single text cell switches the whole column to trimmed string keys. Rows
    with a missing X are dropped, as are string keys equal to a header name
    (header rows repeated inside the data).
    """
    present = [(x, y) for x, y in zip(axis.x_cells, axis.y_cells) if not x.is_empty]
    numeric = all(x.is_number for x, _ in present)
    header_names = set(headers)

    keys, labels, numbers = [], [], []
    for x, y in present:
        if numeric:
            key: XKey = canonical_number(x.number)
        elif x.label in header_names:
            continue
        else:
            key = x.label
        keys.append(key)
        labels.append(y.label)
        numbers.append(y.number)

    if not keys:
        raise InsufficientDataError(
            f"X-axis column '{axis.x_column}' contains no valid data.", {"column": axis.x_column}
        )

    frame = pd.DataFrame({
        "x": pd.Series(keys, dtype=object),
        "y_label": pd.Series(labels, dtype=object),
        "y_number": pd.Series(numbers, dtype=float),
    })

    unique = frame["x"].unique().tolist()
    if numeric:
        ordered = sorted(unique)
    else:
        ordered = sorted(unique, key=lambda k: (str(k).casefold(), str(k)))
    return XGroups(frame=frame, keys=ordered, numeric=numeric)


def stack_categories(analysis: ColumnAnalysis, limit: int, chart_label: str, x_key: str) -> List[str]:
    """Sorted Y categories for a stacked layout; too many is a hard error, not a truncation."""
    categories = sorted(analysis.unique_value_list)
    if len(categories) > limit:
        logger.warning(
            "Rejecting %s: '%s' has %d categories (limit %d)",
            chart_label, analysis.column, len(categories), limit,
        )
        raise CardinalityLimitError(
            f"Y-axis column '{analysis.column}' has too many categories ({len(categories)}) "
            f"for {chart_label}. Maximum allowed is {limit}.",
            count=len(categories),
            limit=limit,
            details={"column": analysis.column},
        )
    if x_key in categories:
        raise ConfigurationError(
            f"Y-axis category '{x_key}' collides with the X-axis key of {chart_label}.",
            {"column": analysis.column, "category": x_key},
        )
    return categories


def count_categories(groups: XGroups, categories: Sequence[str]) -> pd.DataFrame:
    """Per-X counts of each Y category, rows in key order and columns in category order."""
    labelled = groups.frame.dropna(subset=["y_label"])
    if labelled.empty:
        counts = pd.DataFrame()
    else:
        counts = pd.crosstab(labelled["x"], labelled["y_label"])
    return counts.reindex(index=groups.index, columns=list(categories), fill_value=0).astype(int)


def aggregate_y(groups: XGroups, how: str) -> List[Any]:
    """``count`` of Y labels, or ``mean``/``sum`` of numeric Y, per X key in key order."""
    column = "y_label" if how == "count" else "y_number"
    result = groups.frame.groupby("x", sort=False)[column].agg(how).reindex(groups.index)
    return [None if pd.isna(v) else v for v in result.tolist()]


def truncate(records: List[Dict[str, Any]], limit: int, chart_label: str) -> Tuple[List[Dict[str, Any]], bool]:
    """Prefix cut to ``limit`` records."""
    if len(records) <= limit:
        return records, False
    logger.warning("%s data truncated from %d to %d points.", chart_label, len(records), limit)
    return records[:limit], True
