"""chartlens: column profiling, chart shaping and statistics for tabular data."""

from .cells import normalize_categorical, normalize_cell, normalize_column, normalize_numeric
from .charts import shape_chart
from .cleaning import (
    detect_duplicates,
    detect_outliers,
    handle_missing_values,
    remove_duplicates,
    summarize_missing,
    transform_columns,
    treat_outliers,
)
from .config import EngineSettings, get_settings, setup_logging
from .exceptions import AnalysisError, CardinalityLimitError, ConfigurationError, InsufficientDataError
from .profiling import analyze_column, analyze_table
from .schemas import AnalysisFailure, AxisConfig, ChartSeries, ChartType, ColumnAnalysis
from .statistics import describe, describe_column, fit_regression, infer_column
from .table import Table

__version__ = "0.1.0"

__all__ = [
    "Table",
    "EngineSettings",
    "get_settings",
    "setup_logging",
    "normalize_numeric",
    "normalize_categorical",
    "normalize_cell",
    "normalize_column",
    "analyze_column",
    "analyze_table",
    "shape_chart",
    "describe",
    "describe_column",
    "infer_column",
    "fit_regression",
    "detect_outliers",
    "treat_outliers",
    "detect_duplicates",
    "remove_duplicates",
    "summarize_missing",
    "handle_missing_values",
    "transform_columns",
    "AnalysisError",
    "ConfigurationError",
    "InsufficientDataError",
    "CardinalityLimitError",
    "AnalysisFailure",
    "AxisConfig",
    "ChartSeries",
    "ChartType",
    "ColumnAnalysis",
]
