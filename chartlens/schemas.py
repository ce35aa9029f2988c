from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .table import CellValue


class EngineModel(BaseModel):
    """Base for result values: snake_case attributes, camelCase when dumped by alias."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Failures ---

class FailureKind(str, Enum):
    ANALYSIS = "analysis"
    CONFIGURATION = "configuration"
    INSUFFICIENT_DATA = "insufficient_data"
    CARDINALITY_LIMIT = "cardinality_limit"


class AnalysisFailure(EngineModel):
    kind: FailureKind
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


# --- Column classification ---

class VisualizationVerdict(str, Enum):
    VALID = "valid"
    EMPTY = "empty"
    SINGLE_VALUE = "single_value"
    HIGH_CARDINALITY = "high_cardinality"


class ColumnAnalysis(EngineModel):
    column: str
    is_empty: bool
    unique_values: int = 0
    total_values: int = 0
    is_numeric: bool = False
    is_categorical: bool = False
    is_valid_for_visualization: bool = False
    verdict: VisualizationVerdict = VisualizationVerdict.EMPTY
    frequencies: Dict[str, int] = Field(default_factory=dict)
    unique_value_list: List[str] = Field(default_factory=list)


# --- Charts ---

class ChartType(str, Enum):
    BAR = "bar"
    LINE = "line"
    AREA = "area"
    PIE = "pie"
    SCATTER = "scatter"
    RADAR = "radar"


class ChartLayout(str, Enum):
    SIMPLE = "simple"
    STACKED = "stacked"


class AxisConfig(EngineModel):
    x_axis_column: Optional[str] = None
    y_axis_column: Optional[str] = None
    value_column: Optional[str] = None


class ChartSeries(EngineModel):
    chart_type: ChartType
    processed_data: List[Dict[str, Any]] = Field(default_factory=list)
    layout: ChartLayout = ChartLayout.SIMPLE
    categories: Optional[List[str]] = None
    numeric_y_key: Optional[str] = None
    x_key: str = "name"
    is_truncated: bool = False
    total_records: int = 0  # record count before truncation


# --- Descriptive statistics ---

class BasicStats(EngineModel):
    count: int = 0
    min: Optional[float] = None
    max: Optional[float] = None


class CentralTendency(EngineModel):
    mean: Optional[float] = None
    median: Optional[float] = None
    mode: List[Union[int, float]] = Field(default_factory=list)
    geometric_mean: Optional[float] = None
    harmonic_mean: Optional[float] = None


class Dispersion(EngineModel):
    variance: Optional[float] = None
    standard_deviation: Optional[float] = None
    range: Optional[float] = None
    interquartile_range: Optional[float] = None
    coefficient_of_variation: Optional[float] = None
    mean_absolute_deviation: Optional[float] = None
    coefficient_of_dispersion: Optional[float] = None
    gini_coefficient: Optional[float] = None


class DistributionShape(EngineModel):
    skewness: Optional[float] = None
    pearson_skewness: Optional[float] = None
    quartile_skewness: Optional[float] = None
    kurtosis: Optional[float] = None  # excess
    raw_kurtosis: Optional[float] = None


class DescriptiveSummary(EngineModel):
    column: Optional[str] = None
    basic: BasicStats = Field(default_factory=BasicStats)
    central_tendency: CentralTendency = Field(default_factory=CentralTendency)
    dispersion: Dispersion = Field(default_factory=Dispersion)
    shape: DistributionShape = Field(default_factory=DistributionShape)


# --- Inferential statistics ---

class ParameterEstimate(EngineModel):
    point_estimate: float
    standard_deviation: float
    standard_error: float
    margin_of_error: float
    confidence_level: float
    ci_lower: float
    ci_upper: float
    sample_size: int


class NormalityTestResult(EngineModel):
    test: str = "jarque_bera"
    statistic: float
    p_value: float
    is_normal: bool
    skewness: float
    kurtosis: float
    sample_size: int


class TTestResult(EngineModel):
    sample_mean: float
    hypothesized_mean: float
    standard_error: float
    t_statistic: float
    degrees_of_freedom: int
    p_value: float
    is_significant: bool
    sample_size: int


class InferentialReport(EngineModel):
    column: str
    sample_size: int
    estimate: Optional[ParameterEstimate] = None
    normality: Optional[NormalityTestResult] = None
    t_test: Optional[TTestResult] = None
    notes: List[str] = Field(default_factory=list)


# --- Regression ---

class RegressionModel(str, Enum):
    LINEAR = "linear"
    MULTIPLE = "multiple"
    LOGISTIC = "logistic"
    POWER = "power"
    EXPONENTIAL = "exponential"


class RegressionResult(EngineModel):
    model: RegressionModel
    equation: str
    r2: float
    adjusted_r2: Optional[float] = None
    standard_error: Optional[float] = None
    observations: int
    coefficients: List[float]
    slope: Optional[float] = None
    intercept: Optional[float] = None
    residuals: Optional[List[float]] = None
    predicted_values: Optional[List[float]] = None
    accuracy: Optional[float] = None  # logistic only
    r2_space: str = "original"  # "log" when fitted on transformed axes


# --- Outliers ---

class OutlierMethod(str, Enum):
    ZSCORE = "zscore"
    IQR = "iqr"
    PERCENTILE = "percentile"


class OutlierAction(str, Enum):
    REMOVE = "remove"
    CAP = "cap"


class QuantileMethod(str, Enum):
    """How IQR and percentile bounds pick a quantile from the sorted values."""

    LINEAR = "linear"
    FLOOR_INDEX = "floor_index"


class OutlierReport(EngineModel):
    column: Optional[str] = None
    method: OutlierMethod
    threshold: float
    lower_bound: float
    upper_bound: float
    outlier_count: int
    total_count: int
    method_details: Dict[str, float] = Field(default_factory=dict)
    outlier_indices: List[int] = Field(default_factory=list)


# --- Duplicates ---

class KeepStrategy(str, Enum):
    FIRST = "first"
    LAST = "last"
    FEWEST_MISSING = "fewest_missing"


class DuplicateRow(EngineModel):
    index: int
    values: Dict[str, CellValue]


class DuplicateGroup(EngineModel):
    key: List[str]
    rows: List[DuplicateRow]
    count: int


class DuplicateStatistics(EngineModel):
    total_rows: int
    unique_rows: int
    duplicate_rows: int
    duplicate_groups_count: int
    duplicate_count: int


class DuplicateReport(EngineModel):
    columns: List[str]
    groups: List[DuplicateGroup] = Field(default_factory=list)
    statistics: DuplicateStatistics


# --- Missing values and transforms ---

class MissingStrategy(str, Enum):
    REMOVE_ROWS = "remove_rows"
    FILL_MEAN = "fill_mean"
    FILL_MEDIAN = "fill_median"
    FILL_MODE = "fill_mode"
    FILL_CUSTOM = "fill_custom"


class MissingValueSummary(EngineModel):
    column: str
    missing_count: int
    total_count: int
    missing_percentage: float


class TransformType(str, Enum):
    NUMERIC = "numeric"
    TEXT = "text"
    CATEGORICAL = "categorical"
