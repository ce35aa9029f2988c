import pytest

from chartlens.charts import CHART_BUILDERS, shape_chart
from chartlens.config import EngineSettings
from chartlens.schemas import (
    AnalysisFailure,
    AxisConfig,
    ChartLayout,
    ChartSeries,
    ChartType,
    FailureKind,
)
from chartlens.table import Table


@pytest.fixture
def measures() -> Table:
    """40 rows over four string groups; Y is numeric with enough distinct values to stay non-categorical."""
    rows = [[["a", "b", "c", "d"][i % 4], i if i % 5 else None] for i in range(40)]
    return Table(["group", "value"], rows)


def _expected_by_group(table: Table):
    grouped = {}
    for group, value in table.rows:
        grouped.setdefault(group, [])
        if value is not None:
            grouped[group].append(value)
    return grouped


# ===========================================================================
# BAR
# ===========================================================================

class TestBarChart:
    def test_stacked_counts_per_category(self, sales_table, settings):
        series = shape_chart(sales_table, "bar", {"xAxisColumn": "year", "yAxisColumn": "region"}, settings)
        assert isinstance(series, ChartSeries)
        assert series.layout == ChartLayout.STACKED
        assert series.categories == ["North", "South"]
        assert series.processed_data == [
            {"name": 2020, "North": 1, "South": 1},
            {"name": 2021, "North": 1, "South": 1},
            {"name": 2022, "North": 2, "South": 0},
        ]
        assert series.is_truncated is False

    def test_numeric_y_counts_sum_to_non_missing(self, measures, settings):
        series = shape_chart(measures, ChartType.BAR, AxisConfig(x_axis_column="group", y_axis_column="value"), settings)
        assert series.layout == ChartLayout.SIMPLE
        assert series.numeric_y_key == "count"
        non_missing = sum(1 for v in measures.column("value") if v is not None)
        assert sum(r["count"] for r in series.processed_data) == non_missing
        assert [r["name"] for r in series.processed_data] == ["a", "b", "c", "d"]

    def test_too_many_categories_is_an_error(self, settings):
        table = Table(["x", "y"], [["g", f"c{i % 11}"] for i in range(30)])
        failure = shape_chart(table, "bar", {"xAxisColumn": "x", "yAxisColumn": "y"}, settings)
        assert isinstance(failure, AnalysisFailure)
        assert failure.kind == FailureKind.CARDINALITY_LIMIT
        assert failure.details["count"] == 11
        assert failure.details["limit"] == 10
        assert "(11)" in failure.message

    def test_truncates_to_max_points(self):
        custom = EngineSettings(_env_file=None, MAX_DATA_POINTS=5)
        table = Table(["x", "y"], [[i, i * 1.5] for i in range(40)])
        series = shape_chart(table, "bar", {"xAxisColumn": "x", "yAxisColumn": "y"}, custom)
        assert len(series.processed_data) == 5
        assert series.is_truncated is True
        assert series.total_records == 40
        assert [r["name"] for r in series.processed_data] == [0, 1, 2, 3, 4]

    def test_missing_axis_selection(self, sales_table, settings):
        failure = shape_chart(sales_table, "bar", {"xAxisColumn": "year"}, settings)
        assert failure.kind == FailureKind.CONFIGURATION
        assert failure.message == "X and Y axes must be selected for bar charts."

    def test_distinct_error_per_missing_axis(self, sales_table, settings):
        x_fail = shape_chart(sales_table, "bar", {"xAxisColumn": "zzz", "yAxisColumn": "region"}, settings)
        y_fail = shape_chart(sales_table, "bar", {"xAxisColumn": "year", "yAxisColumn": "zzz"}, settings)
        assert x_fail.message == "X-axis column 'zzz' not found."
        assert y_fail.message == "Y-axis column 'zzz' not found."

    def test_empty_y(self, settings):
        table = Table(["x", "y"], [["a", None], ["b", "n/a"]])
        failure = shape_chart(table, "bar", {"xAxisColumn": "x", "yAxisColumn": "y"}, settings)
        assert failure.kind == FailureKind.INSUFFICIENT_DATA

    def test_category_named_like_x_key_is_rejected(self, settings):
        table = Table(["g", "y"], [["a", "name"], ["a", "other"], ["b", "name"]])
        failure = shape_chart(table, "bar", {"xAxisColumn": "g", "yAxisColumn": "y"}, settings)
        assert isinstance(failure, AnalysisFailure)
        assert failure.kind == FailureKind.CONFIGURATION
        assert failure.details["category"] == "name"

    def test_single_text_value_y_is_rejected(self, settings):
        table = Table(["x", "y"], [["a", "same"], ["b", "same"]])
        failure = shape_chart(table, "bar", {"xAxisColumn": "x", "yAxisColumn": "y"}, settings)
        assert failure.kind == FailureKind.CONFIGURATION


class TestXGrouping:
    def test_one_text_cell_switches_to_string_keys(self, settings):
        table = Table(["x", "y"], [[10, "p"], ["two", "q"], [3, "p"]])
        series = shape_chart(table, "bar", {"xAxisColumn": "x", "yAxisColumn": "y"}, settings)
        assert [r["name"] for r in series.processed_data] == ["10", "3", "two"]

    def test_numeric_keys_sort_numerically(self, settings):
        table = Table(["x", "y"], [[10, "p"], ["9", "q"], [100, "p"]])
        series = shape_chart(table, "bar", {"xAxisColumn": "x", "yAxisColumn": "y"}, settings)
        assert [r["name"] for r in series.processed_data] == [9, 10, 100]
        assert all(isinstance(r["name"], int) for r in series.processed_data)

    def test_string_keys_sort_case_insensitively(self, settings):
        table = Table(["x", "y"], [["beta", "p"], ["Alpha", "q"], ["gamma", "p"]])
        series = shape_chart(table, "bar", {"xAxisColumn": "x", "yAxisColumn": "y"}, settings)
        assert [r["name"] for r in series.processed_data] == ["Alpha", "beta", "gamma"]

    def test_repeated_header_rows_are_skipped(self, settings):
        table = Table(["x", "y"], [["a", "p"], ["x", "y"], ["b", "q"]])
        series = shape_chart(table, "bar", {"xAxisColumn": "x", "yAxisColumn": "y"}, settings)
        assert [r["name"] for r in series.processed_data] == ["a", "b"]


# ===========================================================================
# LINE / AREA
# ===========================================================================

class TestTrendCharts:
    def test_line_means(self, measures, settings):
        series = shape_chart(measures, "line", {"xAxisColumn": "group", "yAxisColumn": "value"}, settings)
        expected = _expected_by_group(measures)
        assert series.x_key == "group"
        assert series.numeric_y_key == "value"
        for record in series.processed_data:
            values = expected[record["group"]]
            assert record["value"] == pytest.approx(sum(values) / len(values))

    def test_area_sums(self, measures, settings):
        series = shape_chart(measures, "area", {"xAxisColumn": "group", "yAxisColumn": "value"}, settings)
        expected = _expected_by_group(measures)
        for record in series.processed_data:
            assert record["value"] == pytest.approx(sum(expected[record["group"]]))

    def test_group_without_numbers(self, settings):
        rows = [["a", i] for i in range(20)] + [["b", "n/a"]]
        table = Table(["g", "v"], rows)
        line = shape_chart(table, "line", {"xAxisColumn": "g", "yAxisColumn": "v"}, settings)
        area = shape_chart(table, "area", {"xAxisColumn": "g", "yAxisColumn": "v"}, settings)
        assert line.processed_data[1] == {"g": "b", "v": None}
        assert area.processed_data[1] == {"g": "b", "v": 0.0}

    def test_stacked_line_keys_records_by_x_column(self, sales_table, settings):
        series = shape_chart(sales_table, "line", {"xAxisColumn": "year", "yAxisColumn": "region"}, settings)
        assert series.layout == ChartLayout.STACKED
        assert series.processed_data[0] == {"year": 2020, "North": 1, "South": 1}

    def test_stacked_category_named_like_x_column_is_rejected(self, settings):
        table = Table(["g", "y"], [["a", "g"], ["b", "h"], ["a", "h"]])
        failure = shape_chart(table, "line", {"xAxisColumn": "g", "yAxisColumn": "y"}, settings)
        assert failure.kind == FailureKind.CONFIGURATION

    def test_stacked_area_cap(self):
        custom = EngineSettings(_env_file=None, MAX_STACK_CATEGORIES=1)
        table = Table(["x", "y"], [["a", "p"], ["b", "q"], ["a", "q"]])
        failure = shape_chart(table, "area", {"xAxisColumn": "x", "yAxisColumn": "y"}, custom)
        assert failure.kind == FailureKind.CARDINALITY_LIMIT
        assert "stacked area chart" in failure.message


# ===========================================================================
# PIE
# ===========================================================================

class TestPieChart:
    def test_long_tail_collapses_into_other(self, settings):
        values = [f"v{i}" for i in range(1, 21) for _ in range(i)]
        table = Table(["fruit"], [[v] for v in values])
        series = shape_chart(table, "pie", {"valueColumn": "fruit"}, settings)
        names = [r["name"] for r in series.processed_data]
        assert len(series.processed_data) == settings.MAX_PIE_SLICES
        assert names[:-1] == [f"v{i}" for i in range(20, 6, -1)]
        assert series.processed_data[-1] == {"name": "Other", "value": 1 + 2 + 3 + 4 + 5 + 6}
        assert series.is_truncated is True
        assert series.total_records == 20

    def test_small_pie_sorted_by_frequency(self, settings):
        table = Table(["fruit"], [["apple"], ["pear"], ["pear"], [None]])
        series = shape_chart(table, "pie", {"valueColumn": "fruit"}, settings)
        assert series.processed_data == [{"name": "pear", "value": 2}, {"name": "apple", "value": 1}]
        assert series.is_truncated is False

    def test_ties_keep_first_appearance_order(self, settings):
        table = Table(["fruit"], [["kiwi"], ["apple"], ["apple"], ["kiwi"], ["fig"]])
        series = shape_chart(table, "pie", {"valueColumn": "fruit"}, settings)
        assert [r["name"] for r in series.processed_data] == ["kiwi", "apple", "fig"]
        assert all(type(r["value"]) is int for r in series.processed_data)

    def test_header_values_are_ignored(self, settings):
        table = Table(["fruit"], [["fruit"], ["apple"]])
        series = shape_chart(table, "pie", {"valueColumn": "fruit"}, settings)
        assert series.processed_data == [{"name": "apple", "value": 1}]

    def test_requires_value_column(self, settings):
        failure = shape_chart(Table(["a"], [[1]]), "pie", {}, settings)
        assert failure.message == "A column must be selected for pie charts."

    def test_empty_column(self, settings):
        failure = shape_chart(Table(["a"], [[None]]), "pie", {"valueColumn": "a"}, settings)
        assert failure.kind == FailureKind.INSUFFICIENT_DATA


# ===========================================================================
# SCATTER
# ===========================================================================

class TestScatterChart:
    def test_partially_numeric_columns(self, settings):
        table = Table(
            ["x", "y"],
            [[1, 2], [2, "a"], [3, 6], [4, "b"], [5, 10], [6, "c"], [7, 14], [8, "d"], [9, "e"], ["bad", 20]],
        )
        series = shape_chart(table, "scatter", {"xAxisColumn": "x", "yAxisColumn": "y"}, settings)
        assert isinstance(series, ChartSeries)
        assert series.processed_data == [
            {"x": 1, "y": 2},
            {"x": 3, "y": 6},
            {"x": 5, "y": 10},
            {"x": 7, "y": 14},
        ]
        assert series.x_key == "x"
        assert series.numeric_y_key == "y"

    def test_numeric_share_gate(self, settings):
        table = Table(["x", "y"], [[i, "text" if i else 1] for i in range(10)])
        failure = shape_chart(table, "scatter", {"xAxisColumn": "x", "yAxisColumn": "y"}, settings)
        assert failure.kind == FailureKind.INSUFFICIENT_DATA
        assert "10.0%" in failure.message

    def test_same_column(self, settings):
        table = Table(["x"], [[1]])
        failure = shape_chart(table, "scatter", {"xAxisColumn": "x", "yAxisColumn": "x"}, settings)
        assert failure.message == "X and Y axes cannot be the same column."

    def test_no_overlapping_numeric_rows(self, settings):
        table = Table(["x", "y"], [[1, "a"], [2, "b"], ["c", 3], ["d", 4]])
        failure = shape_chart(table, "scatter", {"xAxisColumn": "x", "yAxisColumn": "y"}, settings)
        assert failure.kind == FailureKind.INSUFFICIENT_DATA

    def test_truncation(self):
        custom = EngineSettings(_env_file=None, MAX_DATA_POINTS=3)
        table = Table(["x", "y"], [[i, i] for i in range(10)])
        series = shape_chart(table, "scatter", {"xAxisColumn": "x", "yAxisColumn": "y"}, custom)
        assert len(series.processed_data) == 3
        assert series.is_truncated is True


# ===========================================================================
# RADAR
# ===========================================================================

class TestRadarChart:
    def test_caps_categories(self, settings):
        values = [f"s{i}" for i in range(1, 16) for _ in range(i)]
        table = Table(["skill"], [[v] for v in values])
        series = shape_chart(table, "radar", {"xAxisColumn": "skill"}, settings)
        assert len(series.processed_data) == 12
        assert series.processed_data[0] == {"subject": "s15", "value": 15}
        assert series.is_truncated is True
        assert series.x_key == "subject"

    def test_value_column_also_accepted(self, settings):
        table = Table(["skill"], [["a"], ["b"], ["a"], ["N/A"]])
        series = shape_chart(table, "radar", {"valueColumn": "skill"}, settings)
        assert series.processed_data == [{"subject": "a", "value": 2}, {"subject": "b", "value": 1}]
        assert series.is_truncated is False

    def test_empty(self, settings):
        failure = shape_chart(Table(["skill"], [[""]]), "radar", {"xAxisColumn": "skill"}, settings)
        assert failure.kind == FailureKind.INSUFFICIENT_DATA


# ===========================================================================
# DISPATCH
# ===========================================================================

class TestShapeChart:
    def test_every_chart_type_has_a_builder(self):
        assert set(CHART_BUILDERS) == set(ChartType)

    def test_unknown_chart_type(self, sales_table, settings):
        failure = shape_chart(sales_table, "donut", {}, settings)
        assert failure.kind == FailureKind.CONFIGURATION

    def test_snake_case_mapping_accepted(self, sales_table, settings):
        series = shape_chart(sales_table, "bar", {"x_axis_column": "year", "y_axis_column": "region"}, settings)
        assert isinstance(series, ChartSeries)

    def test_idempotent(self, sales_table, settings):
        config = {"xAxisColumn": "year", "yAxisColumn": "region"}
        first = shape_chart(sales_table, "line", config, settings)
        second = shape_chart(sales_table, "line", config, settings)
        assert first.model_dump() == second.model_dump()

    def test_camel_case_payload(self, sales_table, settings):
        payload = shape_chart(sales_table, "bar", {"xAxisColumn": "year", "yAxisColumn": "region"}, settings)
        payload = payload.model_dump(by_alias=True)
        assert {"chartType", "processedData", "isTruncated", "numericYKey", "xKey"} <= set(payload)

    @pytest.mark.parametrize("chart_type", ["bar", "line", "area"])
    def test_same_column_on_both_axes(self, sales_table, settings, chart_type):
        failure = shape_chart(sales_table, chart_type, {"xAxisColumn": "amount", "yAxisColumn": "amount"}, settings)
        assert isinstance(failure, AnalysisFailure)
        assert failure.message == "X and Y axes cannot be the same column."

    def test_malformed_axis_payload(self, sales_table, settings):
        failure = shape_chart(sales_table, "bar", {"xAxisColumn": 5, "yAxisColumn": "region"}, settings)
        assert isinstance(failure, AnalysisFailure)
        assert failure.kind == FailureKind.CONFIGURATION
        assert failure.message == "Invalid axis configuration."
        assert failure.details["errors"]
