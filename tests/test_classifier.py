import pytest

from chartlens.config import EngineSettings
from chartlens.profiling import analyze_column, analyze_table, categorical_threshold
from chartlens.schemas import VisualizationVerdict
from chartlens.table import Table


class TestAnalyzeColumn:
    def test_identical_values_are_not_visualizable(self, settings):
        result = analyze_column(["a"] * 10, "c", settings)
        assert result.unique_values == 1
        assert result.is_valid_for_visualization is False
        assert result.verdict == VisualizationVerdict.SINGLE_VALUE

    def test_sequential_ids_are_rejected(self, settings):
        result = analyze_column(list(range(1, 51)), "id", settings)
        assert result.is_numeric is True
        assert result.unique_values == result.total_values == 50
        assert result.is_valid_for_visualization is False
        assert result.verdict == VisualizationVerdict.HIGH_CARDINALITY

    def test_empty_column(self, settings):
        result = analyze_column([None, "", "n/a"], "blank", settings)
        assert result.is_empty is True
        assert result.total_values == 0
        assert result.unique_values == 0
        assert result.is_valid_for_visualization is False
        assert result.verdict == VisualizationVerdict.EMPTY

    def test_frequencies_are_trimmed_and_case_sensitive(self, settings):
        result = analyze_column([" A", "A", "a", None], "c", settings)
        assert result.frequencies == {"A": 2, "a": 1}
        assert result.total_values == 3
        assert result.unique_value_list == ["A", "a"]

    def test_low_cardinality_numeric_is_categorical(self, settings):
        result = analyze_column([1, 2, 3, 1, 2, 3, 1, 2], "rating", settings)
        assert result.is_numeric is True
        assert result.is_categorical is True
        assert result.is_valid_for_visualization is True

    def test_high_cardinality_numeric_is_not_categorical(self, settings):
        values = [i % 40 for i in range(200)]
        result = analyze_column(values, "measure", settings)
        assert result.is_numeric is True
        assert result.is_categorical is False

    def test_one_text_cell_makes_column_non_numeric(self, settings):
        result = analyze_column([1, 2, "three"], "mixed", settings)
        assert result.is_numeric is False
        assert result.is_categorical is True

    def test_numeric_strings_and_numbers_share_labels(self, settings):
        result = analyze_column(["1", 1.0, 1], "c", settings)
        assert result.frequencies == {"1": 3}

    def test_camel_case_serialization(self, settings):
        payload = analyze_column(["x", "y", "x"], "c", settings).model_dump(by_alias=True)
        assert payload["uniqueValues"] == 2
        assert payload["isValidForVisualization"] is True
        assert payload["totalValues"] == 3


class TestCategoricalThreshold:
    def test_floor_applies_to_small_columns(self, settings):
        assert categorical_threshold(50, settings) == 15

    def test_ratio_applies_to_large_columns(self, settings):
        assert categorical_threshold(1000, settings) == pytest.approx(100)

    def test_tunable(self):
        custom = EngineSettings(_env_file=None, CATEGORICAL_MIN_UNIQUE=3)
        assert categorical_threshold(10, custom) == 3


class TestAnalyzeTable:
    def test_results_follow_header_order(self, sales_table, settings):
        result = analyze_table(sales_table, settings)
        assert list(result) == list(sales_table.headers)
        assert result["region"].frequencies == {"North": 4, "South": 3}

    def test_thread_pool_gives_same_result(self, sales_table):
        serial = analyze_table(sales_table, EngineSettings(_env_file=None, ANALYSIS_WORKERS=1))
        parallel = analyze_table(sales_table, EngineSettings(_env_file=None, ANALYSIS_WORKERS=4))
        assert list(parallel) == list(serial)
        assert {k: v.model_dump() for k, v in parallel.items()} == {k: v.model_dump() for k, v in serial.items()}

    def test_idempotent(self, sales_table, settings):
        first = analyze_table(sales_table, settings)
        second = analyze_table(sales_table, settings)
        assert {k: v.model_dump() for k, v in first.items()} == {k: v.model_dump() for k, v in second.items()}

    def test_table_with_no_rows(self, settings):
        result = analyze_table(Table(["a", "b"]), settings)
        assert all(r.is_empty for r in result.values())
