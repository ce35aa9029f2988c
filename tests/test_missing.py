import pytest

from chartlens.cleaning import handle_missing_values, summarize_missing
from chartlens.schemas import AnalysisFailure, FailureKind
from chartlens.table import Table


@pytest.fixture
def gappy_table() -> Table:
    return Table(
        ["age", "city"],
        [[20, "Paris"], [None, "Rome"], [30, None], ["n/a", "Paris"], [40, ""], [30, "Paris"]],
    )


class TestSummarizeMissing:
    def test_counts(self, gappy_table: Table):
        summary = {s.column: s for s in summarize_missing(gappy_table)}
        assert summary["age"].missing_count == 2
        assert summary["city"].missing_count == 2
        assert summary["age"].missing_percentage == pytest.approx(100 * 2 / 6)

    def test_empty_table(self):
        summary = summarize_missing(Table(["a"]))
        assert summary[0].missing_percentage == 0.0


class TestHandleMissingValues:
    def test_remove_rows(self, gappy_table: Table):
        result = handle_missing_values(gappy_table, "age", "remove_rows")
        assert result.row_count == 4
        assert result.column("age") == [20, 30, 40, 30]

    def test_fill_mean(self, gappy_table: Table):
        result = handle_missing_values(gappy_table, "age", "fill_mean")
        assert result.column("age") == [20, 30, 30, 30, 40, 30]

    def test_fill_median_fraction(self):
        table = Table(["v"], [[1], [2], [None], [4], [5]])
        assert handle_missing_values(table, "v", "fill_median").column("v")[2] == 3

    def test_fill_mean_non_integral(self):
        table = Table(["v"], [[1], [2], [None]])
        assert handle_missing_values(table, "v", "fill_mean").column("v")[2] == pytest.approx(1.5)

    def test_fill_mode_numeric(self, gappy_table: Table):
        result = handle_missing_values(gappy_table, "age", "fill_mode")
        assert result.column("age")[1] == 30

    def test_fill_mode_text_column(self, gappy_table: Table):
        result = handle_missing_values(gappy_table, "city", "fill_mode")
        assert result.column("city") == ["Paris", "Rome", "Paris", "Paris", "Paris", "Paris"]

    def test_fill_custom(self, gappy_table: Table):
        result = handle_missing_values(gappy_table, "city", "fill_custom", "Unknown")
        assert result.column("city")[2] == "Unknown"
        assert result.column("city")[4] == "Unknown"

    def test_fill_custom_requires_value(self, gappy_table: Table):
        failure = handle_missing_values(gappy_table, "city", "fill_custom")
        assert isinstance(failure, AnalysisFailure)
        assert failure.kind == FailureKind.CONFIGURATION

    def test_fill_mean_on_text_column(self, gappy_table: Table):
        failure = handle_missing_values(gappy_table, "city", "fill_mean")
        assert failure.kind == FailureKind.INSUFFICIENT_DATA

    def test_unknown_strategy(self, gappy_table: Table):
        failure = handle_missing_values(gappy_table, "age", "guess")
        assert failure.kind == FailureKind.CONFIGURATION

    def test_input_untouched(self, gappy_table: Table):
        handle_missing_values(gappy_table, "age", "fill_mean")
        assert gappy_table.column("age")[1] is None
