"""
Per-chart-type builders.

Each builder takes a table, an axis selection and the engine settings, and
returns a ``ChartSeries``. Invalid selections and unusable data raise an
``AnalysisError`` subclass; ``shape_chart`` turns those into failure values.
"""

import logging
from typing import Any, Dict, List

import pandas as pd

from ..cells import Cell, canonical_number, normalize_column
from ..config import EngineSettings
from ..exceptions import ConfigurationError, InsufficientDataError
from ..schemas import AxisConfig, ChartLayout, ChartSeries, ChartType
from ..table import Table
from .grouping import (
    AxisData,
    XGroups,
    aggregate_y,
    count_categories,
    group_by_x,
    require_column,
    stack_categories,
    truncate,
    validate_axes,
)

logger = logging.getLogger(__name__)


def _is_stacked(axis: AxisData) -> bool:
    return axis.y_analysis.is_categorical and axis.y_analysis.unique_values > 1


def _unsuitable_y(axis: AxisData, chart_label: str) -> ConfigurationError:
    return ConfigurationError(
        f"Y-axis column '{axis.y_column}' is neither numeric nor categorical enough for {chart_label}.",
        {"column": axis.y_column},
    )


def _stacked_records(groups: XGroups, categories: List[str], x_key: str) -> List[Dict[str, Any]]:
    counts = count_categories(groups, categories)
    records = []
    for key, row in zip(groups.keys, counts.to_numpy().tolist()):
        record: Dict[str, Any] = {x_key: key}
        record.update(zip(categories, row))
        records.append(record)
    return records


def _ranked_frequencies(labels: List[str]) -> pd.Series:
    """Label counts, most frequent first; ties keep first-appearance order."""
    counts = pd.Series(labels, dtype=object).value_counts(sort=False)
    return counts.sort_values(ascending=False, kind="stable")


def build_bar_chart(table: Table, axes: AxisConfig, settings: EngineSettings) -> ChartSeries:
    axis = validate_axes(table, axes, "bar charts", settings)
    groups = group_by_x(axis, table.headers)

    if _is_stacked(axis):
        categories = stack_categories(axis.y_analysis, settings.MAX_BAR_CATEGORIES, "a bar chart", "name")
        records = _stacked_records(groups, categories, "name")
        layout, numeric_y_key = ChartLayout.STACKED, None
    elif axis.y_analysis.is_numeric:
        # Simple layout counts non-missing Y cells per X group
        counts = aggregate_y(groups, "count")
        records = [{"name": key, "count": n} for key, n in zip(groups.keys, counts)]
        categories, layout, numeric_y_key = None, ChartLayout.SIMPLE, "count"
    else:
        raise _unsuitable_y(axis, "a bar chart")

    total = len(records)
    records, truncated = truncate(records, settings.MAX_DATA_POINTS, "Bar chart")
    return ChartSeries(
        chart_type=ChartType.BAR,
        processed_data=records,
        layout=layout,
        categories=categories,
        numeric_y_key=numeric_y_key,
        x_key="name",
        is_truncated=truncated,
        total_records=total,
    )


def _build_trend(
    table: Table,
    axes: AxisConfig,
    settings: EngineSettings,
    chart_type: ChartType,
) -> ChartSeries:
    """Line and area charts share everything but the aggregate and the category cap."""
    if chart_type == ChartType.LINE:
        chart_label, cap, cap_label = "line charts", settings.MAX_TREND_CATEGORIES, "a trend line chart"
    else:
        chart_label, cap, cap_label = "area charts", settings.MAX_STACK_CATEGORIES, "a stacked area chart"

    axis = validate_axes(table, axes, chart_label, settings)
    groups = group_by_x(axis, table.headers)
    x_key = axis.x_column

    if _is_stacked(axis):
        categories = stack_categories(axis.y_analysis, cap, cap_label, x_key)
        records = _stacked_records(groups, categories, x_key)
        layout, numeric_y_key = ChartLayout.STACKED, None
    elif axis.y_analysis.is_numeric:
        # An empty line group has no mean; an empty area group sums to 0.0
        values = aggregate_y(groups, "mean" if chart_type == ChartType.LINE else "sum")
        records = [{x_key: key, axis.y_column: value} for key, value in zip(groups.keys, values)]
        categories, layout, numeric_y_key = None, ChartLayout.SIMPLE, axis.y_column
    else:
        raise _unsuitable_y(axis, f"a {chart_type.value} chart")

    total = len(records)
    records, truncated = truncate(records, settings.MAX_DATA_POINTS, f"{chart_type.value.capitalize()} chart")
    return ChartSeries(
        chart_type=chart_type,
        processed_data=records,
        layout=layout,
        categories=categories,
        numeric_y_key=numeric_y_key,
        x_key=x_key,
        is_truncated=truncated,
        total_records=total,
    )


def build_line_chart(table: Table, axes: AxisConfig, settings: EngineSettings) -> ChartSeries:
    return _build_trend(table, axes, settings, ChartType.LINE)


def build_area_chart(table: Table, axes: AxisConfig, settings: EngineSettings) -> ChartSeries:
    return _build_trend(table, axes, settings, ChartType.AREA)


def build_pie_chart(table: Table, axes: AxisConfig, settings: EngineSettings) -> ChartSeries:
    """Value frequencies of one column; the long tail collapses into a single "Other" slice."""
    if not axes.value_column:
        raise ConfigurationError("A column must be selected for pie charts.")
    column = require_column(table, axes.value_column, "Selected")

    header_names = set(table.headers)
    labels = [
        c.label for c in normalize_column(table.column(column))
        if not c.is_empty and c.label not in header_names
    ]
    if not labels:
        raise InsufficientDataError(f"Selected column '{column}' contains no valid data.", {"column": column})

    ranked = [(name, int(count)) for name, count in _ranked_frequencies(labels).items()]
    total = len(ranked)
    truncated = False
    if len(ranked) > settings.MAX_PIE_SLICES:
        keep = settings.MAX_PIE_SLICES - 1
        other = sum(count for _, count in ranked[keep:])
        logger.warning(
            "Pie chart for '%s' has %d unique values; grouping the smallest %d into '%s'",
            column, len(ranked), len(ranked) - keep, settings.OTHER_SLICE_LABEL,
        )
        records = [{"name": name, "value": count} for name, count in ranked[:keep]]
        records.append({"name": settings.OTHER_SLICE_LABEL, "value": other})
        truncated = True
    else:
        records = [{"name": name, "value": count} for name, count in ranked]

    return ChartSeries(
        chart_type=ChartType.PIE,
        processed_data=records,
        numeric_y_key="value",
        x_key="name",
        is_truncated=truncated,
        total_records=total,
    )


def _check_scatter_column(cells: List[Cell], column: str, role: str, min_ratio: float) -> None:
    present = [c for c in cells if not c.is_empty]
    if not present:
        raise InsufficientDataError(
            f"{role} column '{column}' is not suitable for a scatter chart: the column is empty.",
            {"column": column},
        )
    ratio = sum(1 for c in present if c.is_number) / len(present)
    if ratio < min_ratio:
        raise InsufficientDataError(
            f"{role} column '{column}' is not suitable for a scatter chart: numeric share too low "
            f"({ratio * 100:.1f}% < {min_ratio * 100:g}%).",
            {"column": column, "numeric_ratio": ratio, "required_ratio": min_ratio},
        )


def build_scatter_chart(table: Table, axes: AxisConfig, settings: EngineSettings) -> ChartSeries:
    if not axes.x_axis_column or not axes.y_axis_column:
        raise ConfigurationError("X and Y axes must be selected for scatter charts.")
    if axes.x_axis_column == axes.y_axis_column:
        raise ConfigurationError(
            "X and Y axes cannot be the same column.", {"column": axes.x_axis_column}
        )
    x_column = require_column(table, axes.x_axis_column, "X-axis")
    y_column = require_column(table, axes.y_axis_column, "Y-axis")

    x_cells = normalize_column(table.column(x_column))
    y_cells = normalize_column(table.column(y_column))
    _check_scatter_column(x_cells, x_column, "X-axis", settings.SCATTER_MIN_NUMERIC_RATIO)
    _check_scatter_column(y_cells, y_column, "Y-axis", settings.SCATTER_MIN_NUMERIC_RATIO)

    records = [
        {x_column: canonical_number(x.number), y_column: canonical_number(y.number)}
        for x, y in zip(x_cells, y_cells)
        if x.number is not None and y.number is not None
    ]
    if not records:
        raise InsufficientDataError(
            f"No rows have numeric values in both '{x_column}' and '{y_column}'.",
            {"x_column": x_column, "y_column": y_column},
        )

    total = len(records)
    records, truncated = truncate(records, settings.MAX_DATA_POINTS, "Scatter chart")
    return ChartSeries(
        chart_type=ChartType.SCATTER,
        processed_data=records,
        numeric_y_key=y_column,
        x_key=x_column,
        is_truncated=truncated,
        total_records=total,
    )


def build_radar_chart(table: Table, axes: AxisConfig, settings: EngineSettings) -> ChartSeries:
    """Frequency of each distinct value in one column, most frequent first."""
    column = axes.value_column or axes.x_axis_column
    if not column:
        raise ConfigurationError("A column must be selected for radar charts.")
    column = require_column(table, column, "Selected")

    labels = [c.label for c in normalize_column(table.column(column)) if not c.is_empty]
    if not labels:
        raise InsufficientDataError(
            f"Column '{column}' contains no valid data or all values are empty.", {"column": column}
        )

    ranked = _ranked_frequencies(labels)
    records = [{"subject": label, "value": int(count)} for label, count in ranked.items()]
    total = len(records)
    records, point_cut = truncate(records, settings.MAX_DATA_POINTS, "Radar chart")
    records, category_cut = truncate(records, settings.MAX_RADAR_CATEGORIES, "Radar chart")

    return ChartSeries(
        chart_type=ChartType.RADAR,
        processed_data=records,
        numeric_y_key="value",
        x_key="subject",
        is_truncated=point_cut or category_cut,
        total_records=total,
    )
