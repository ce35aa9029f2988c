"""
Descriptive statistics over a numeric sequence.

Every function accepts raw cells or numbers; values are passed through the cell
normalizer and anything that is not a finite number is dropped. Functions return
``None`` when the statistic is not computable for the given data (too few values,
zero denominator) instead of a fabricated number.
"""

import logging
import math
from typing import Iterable, List, Optional, Union

import numpy as np
import pandas as pd
from scipy import stats

from ..cells import canonical_number, normalize_column, numeric_values
from ..config import EngineSettings, resolve_settings
from ..exceptions import AnalysisError, ConfigurationError, InsufficientDataError
from ..schemas import (
    AnalysisFailure,
    BasicStats,
    CentralTendency,
    DescriptiveSummary,
    Dispersion,
    DistributionShape,
)
from ..table import CellValue, Table

logger = logging.getLogger(__name__)

Values = Iterable[Union[CellValue, float]]


def to_numeric_array(values: Values) -> np.ndarray:
    if isinstance(values, np.ndarray) and np.issubdtype(values.dtype, np.number):
        xs = values.astype(float)
        return xs[np.isfinite(xs)]
    return np.asarray(numeric_values(normalize_column(values)), dtype=float)


def finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


# --- Basic ---

def count(values: Values) -> int:
    return int(to_numeric_array(values).size)


def minimum(values: Values) -> Optional[float]:
    xs = to_numeric_array(values)
    return float(xs.min()) if xs.size else None


def maximum(values: Values) -> Optional[float]:
    xs = to_numeric_array(values)
    return float(xs.max()) if xs.size else None


# --- Central tendency ---

def mean(values: Values) -> Optional[float]:
    xs = to_numeric_array(values)
    return finite_or_none(xs.mean()) if xs.size else None


def median(values: Values) -> Optional[float]:
    """Middle value; the average of the two middle values for even counts."""
    xs = to_numeric_array(values)
    return finite_or_none(np.median(xs)) if xs.size else None


def mode(values: Values) -> List[Union[int, float]]:
    """All values tied at the highest frequency, ascending. Empty when there are no values."""
    xs = to_numeric_array(values)
    if not xs.size:
        return []
    counts = pd.Series(xs).value_counts()
    return sorted(canonical_number(float(v)) for v in counts[counts == counts.max()].index)


def geometric_mean(values: Values) -> Optional[float]:
    """Geometric mean of the strictly positive values."""
    xs = to_numeric_array(values)
    positive = xs[xs > 0]
    if not positive.size:
        return None
    return finite_or_none(stats.gmean(positive))


def harmonic_mean(values: Values) -> Optional[float]:
    """Harmonic mean of the non-zero values."""
    xs = to_numeric_array(values)
    nonzero = xs[xs != 0]
    if not nonzero.size:
        return None
    reciprocal_sum = float(np.sum(1.0 / nonzero))
    if reciprocal_sum == 0:
        return None
    return finite_or_none(nonzero.size / reciprocal_sum)


# --- Dispersion ---

def variance(values: Values) -> Optional[float]:
    """Population variance (divides by n). Needs at least two values."""
    xs = to_numeric_array(values)
    if xs.size < 2:
        return None
    return finite_or_none(np.var(xs, ddof=0))


def standard_deviation(values: Values) -> Optional[float]:
    """Population standard deviation. Needs at least two values."""
    xs = to_numeric_array(values)
    if xs.size < 2:
        return None
    return finite_or_none(np.std(xs, ddof=0))


def value_range(values: Values) -> Optional[float]:
    xs = to_numeric_array(values)
    if not xs.size:
        return None
    return finite_or_none(xs.max() - xs.min())


def quartiles(values: Values) -> Optional[List[float]]:
    """Q1, Q2, Q3 with linear interpolation between order statistics."""
    xs = to_numeric_array(values)
    if not xs.size:
        return None
    qs = np.quantile(xs, [0.25, 0.5, 0.75])
    if not np.all(np.isfinite(qs)):
        return None
    return [float(q) for q in qs]


def interquartile_range(values: Values) -> Optional[float]:
    xs = to_numeric_array(values)
    if xs.size < 4:
        return None
    qs = quartiles(xs)
    if qs is None:
        return None
    return finite_or_none(qs[2] - qs[0])


def mean_absolute_deviation(values: Values) -> Optional[float]:
    """Mean absolute deviation around the mean."""
    xs = to_numeric_array(values)
    if not xs.size:
        return None
    return finite_or_none(np.mean(np.abs(xs - xs.mean())))


def coefficient_of_variation(values: Values) -> Optional[float]:
    xs = to_numeric_array(values)
    if xs.size < 2:
        return None
    mu = xs.mean()
    if mu == 0:
        return None
    return finite_or_none(np.std(xs, ddof=0) / mu)


def coefficient_of_dispersion(values: Values) -> Optional[float]:
    """Variance-to-mean ratio."""
    xs = to_numeric_array(values)
    if xs.size < 2:
        return None
    mu = xs.mean()
    if mu == 0:
        return None
    return finite_or_none(np.var(xs, ddof=0) / mu)


def gini_coefficient(values: Values) -> Optional[float]:
    xs = to_numeric_array(values)
    n = xs.size
    if n < 2:
        return None
    total = xs.sum()
    if total == 0:
        return None
    ordered = np.sort(xs)
    weights = 2 * np.arange(1, n + 1) - n - 1
    return finite_or_none(np.sum(weights * ordered) / (n * total))


# --- Distribution shape ---

def _shape_ready(xs: np.ndarray, settings: EngineSettings) -> bool:
    return xs.size >= settings.SHAPE_MIN_SAMPLES and np.std(xs) > 0


def skewness(values: Values, settings: Optional[EngineSettings] = None) -> Optional[float]:
    """Bias-corrected sample skewness. Not computable below the shape minimum or for constant data."""
    settings = resolve_settings(settings)
    xs = to_numeric_array(values)
    if not _shape_ready(xs, settings):
        return None
    return finite_or_none(stats.skew(xs, bias=False))


def kurtosis(values: Values, settings: Optional[EngineSettings] = None) -> Optional[float]:
    """Bias-corrected sample excess kurtosis (normal distribution is 0)."""
    settings = resolve_settings(settings)
    xs = to_numeric_array(values)
    if not _shape_ready(xs, settings):
        return None
    return finite_or_none(stats.kurtosis(xs, fisher=True, bias=False))


def raw_kurtosis(values: Values, settings: Optional[EngineSettings] = None) -> Optional[float]:
    """Pearson kurtosis (normal distribution is 3)."""
    excess = kurtosis(values, settings)
    return None if excess is None else excess + 3.0


def pearson_skewness(values: Values) -> Optional[float]:
    """Pearson's second coefficient: 3 * (mean - median) / std."""
    xs = to_numeric_array(values)
    if xs.size < 3:
        return None
    sd = np.std(xs, ddof=0)
    if sd == 0:
        return None
    return finite_or_none(3 * (xs.mean() - np.median(xs)) / sd)


def quartile_skewness(values: Values) -> Optional[float]:
    """Bowley skewness: (Q3 - 2*Q2 + Q1) / (Q3 - Q1)."""
    xs = to_numeric_array(values)
    if xs.size < 4:
        return None
    qs = quartiles(xs)
    if qs is None or qs[2] == qs[0]:
        return None
    q1, q2, q3 = qs
    return finite_or_none((q3 - 2 * q2 + q1) / (q3 - q1))


# --- Summary ---

def describe(values: Values, column: Optional[str] = None, settings: Optional[EngineSettings] = None) -> DescriptiveSummary:
    settings = resolve_settings(settings)
    xs = to_numeric_array(values)

    excess = kurtosis(xs, settings)
    return DescriptiveSummary(
        column=column,
        basic=BasicStats(count=int(xs.size), min=minimum(xs), max=maximum(xs)),
        central_tendency=CentralTendency(
            mean=mean(xs),
            median=median(xs),
            mode=mode(xs),
            geometric_mean=geometric_mean(xs),
            harmonic_mean=harmonic_mean(xs),
        ),
        dispersion=Dispersion(
            variance=variance(xs),
            standard_deviation=standard_deviation(xs),
            range=value_range(xs),
            interquartile_range=interquartile_range(xs),
            coefficient_of_variation=coefficient_of_variation(xs),
            mean_absolute_deviation=mean_absolute_deviation(xs),
            coefficient_of_dispersion=coefficient_of_dispersion(xs),
            gini_coefficient=gini_coefficient(xs),
        ),
        shape=DistributionShape(
            skewness=skewness(xs, settings),
            pearson_skewness=pearson_skewness(xs),
            quartile_skewness=quartile_skewness(xs),
            kurtosis=excess,
            raw_kurtosis=None if excess is None else excess + 3.0,
        ),
    )


def describe_column(
    table: Table,
    column: str,
    settings: Optional[EngineSettings] = None,
) -> Union[DescriptiveSummary, AnalysisFailure]:
    """Summarize the numeric cells of one column."""
    try:
        if not table.has_column(column):
            raise ConfigurationError(f"Column '{column}' not found.", {"column": column})
        xs = to_numeric_array(table.column(column))
        if not xs.size:
            raise InsufficientDataError(
                f"Column '{column}' contains no numeric values.", {"column": column}
            )
        return describe(xs, column=column, settings=settings)
    except AnalysisError as e:
        logger.info("Descriptive summary failed for %s: %s", column, e.message)
        return e.to_failure()
