import logging
import math
from typing import Optional, Union

import numpy as np
from scipy import stats

from ..config import EngineSettings, resolve_settings
from ..exceptions import AnalysisError, ConfigurationError, InsufficientDataError
from ..schemas import (
    AnalysisFailure,
    InferentialReport,
    NormalityTestResult,
    ParameterEstimate,
    TTestResult,
)
from ..table import Table
from .descriptive import Values, kurtosis, skewness, to_numeric_array

logger = logging.getLogger(__name__)


def _z_confidence_level(z: float) -> float:
    return float(2 * stats.norm.cdf(z) - 1)


def estimate_mean(values: Values, settings: Optional[EngineSettings] = None) -> Optional[ParameterEstimate]:
    """
    Point estimate and confidence interval for the mean.

    The interval is mean +/- z * std / sqrt(n) with the population standard deviation
    and a fixed z (1.96 by default). This is the normal approximation; small samples
    would call for a t critical value instead.
    """
    settings = resolve_settings(settings)
    xs = to_numeric_array(values)
    n = int(xs.size)
    if n < 2:
        return None

    mu = float(xs.mean())
    sd = float(np.std(xs, ddof=0))
    se = sd / math.sqrt(n)
    margin = settings.CONFIDENCE_Z * se
    return ParameterEstimate(
        point_estimate=mu,
        standard_deviation=sd,
        standard_error=se,
        margin_of_error=margin,
        confidence_level=round(_z_confidence_level(settings.CONFIDENCE_Z), 4),
        ci_lower=mu - margin,
        ci_upper=mu + margin,
        sample_size=n,
    )


def jarque_bera(values: Values, settings: Optional[EngineSettings] = None) -> Optional[NormalityTestResult]:
    """
    Jarque-Bera normality test: JB = n/6 * (S^2 + K^2/4).

    S and K are the sample skewness and excess kurtosis. The p-value is the
    chi-square (df=2) survival function. Needs at least NORMALITY_MIN_SAMPLES values.
    """
    settings = resolve_settings(settings)
    xs = to_numeric_array(values)
    n = int(xs.size)
    if n < settings.NORMALITY_MIN_SAMPLES:
        return None

    s = skewness(xs, settings)
    k = kurtosis(xs, settings)
    if s is None or k is None:
        return None

    statistic = n / 6.0 * (s ** 2 + (k ** 2) / 4.0)
    p_value = float(stats.chi2.sf(statistic, df=2))
    return NormalityTestResult(
        statistic=statistic,
        p_value=p_value,
        is_normal=p_value >= settings.SIGNIFICANCE_LEVEL,
        skewness=s,
        kurtosis=k,
        sample_size=n,
    )


def one_sample_t_test(
    values: Values,
    hypothesized_mean: float = 0.0,
    settings: Optional[EngineSettings] = None,
) -> Optional[TTestResult]:
    """Two-tailed one-sample t-test against ``hypothesized_mean``."""
    settings = resolve_settings(settings)
    xs = to_numeric_array(values)
    n = int(xs.size)
    if n < 2:
        return None

    mu = float(xs.mean())
    se = float(np.std(xs, ddof=1)) / math.sqrt(n)
    if se == 0:
        return None

    t_stat = (mu - hypothesized_mean) / se
    df = n - 1
    p_value = float(2 * stats.t.sf(abs(t_stat), df))
    return TTestResult(
        sample_mean=mu,
        hypothesized_mean=hypothesized_mean,
        standard_error=se,
        t_statistic=t_stat,
        degrees_of_freedom=df,
        p_value=p_value,
        is_significant=p_value < settings.SIGNIFICANCE_LEVEL,
        sample_size=n,
    )


def infer_column(
    table: Table,
    column: str,
    hypothesized_mean: float = 0.0,
    settings: Optional[EngineSettings] = None,
) -> Union[InferentialReport, AnalysisFailure]:
    """Run estimation, normality and t-test on one column's numeric cells."""
    settings = resolve_settings(settings)
    try:
        if not table.has_column(column):
            raise ConfigurationError(f"Column '{column}' not found.", {"column": column})
        xs = to_numeric_array(table.column(column))
        n = int(xs.size)
        if n < 2:
            raise InsufficientDataError(
                f"Column '{column}' needs at least 2 numeric values, found {n}.",
                {"column": column, "count": n, "required": 2},
            )
    except AnalysisError as e:
        logger.info("Inferential analysis failed for %s: %s", column, e.message)
        return e.to_failure()

    report = InferentialReport(column=column, sample_size=n)
    report.estimate = estimate_mean(xs, settings)

    report.normality = jarque_bera(xs, settings)
    if report.normality is None:
        if n < settings.NORMALITY_MIN_SAMPLES:
            report.notes.append(
                f"Normality test needs at least {settings.NORMALITY_MIN_SAMPLES} values."
            )
        else:
            report.notes.append("Normality test is not computable for constant data.")

    report.t_test = one_sample_t_test(xs, hypothesized_mean, settings)
    if report.t_test is None:
        report.notes.append("t-test is not computable for constant data.")

    return report
