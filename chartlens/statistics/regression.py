"""
Regression engine.

Closed-form simple linear regression, multiple linear regression through the
normal equations, logistic regression by batch gradient descent, and power /
exponential models fitted on log-transformed axes. Each fit returns a
``RegressionResult`` or ``None`` when the data cannot support the model.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.special import expit

from ..cells import normalize_column
from ..config import EngineSettings, resolve_settings
from ..exceptions import AnalysisError, ConfigurationError, InsufficientDataError
from ..schemas import AnalysisFailure, RegressionModel, RegressionResult
from ..table import CellValue, Table

logger = logging.getLogger(__name__)

# Probabilities are clipped away from 0 and 1 before taking logs
_LOG_EPSILON = 1e-15


@dataclass
class _LinearFit:
    slope: float
    intercept: float
    predictions: np.ndarray
    residuals: np.ndarray
    r2: float
    rss: float
    n: int


def _is_finite(*values: float) -> bool:
    return all(v is not None and math.isfinite(v) for v in values)


def _fmt(value: float) -> str:
    return f"{value:.4f}"


def _signed(value: float) -> str:
    return f"- {_fmt(abs(value))}" if value < 0 else f"+ {_fmt(value)}"


def pair_numeric(x_values: Sequence[CellValue], y_values: Sequence[CellValue]) -> Tuple[np.ndarray, np.ndarray]:
    """Keep only positions where both cells are finite numbers."""
    xs, ys = [], []
    for x_cell, y_cell in zip(normalize_column(x_values), normalize_column(y_values)):
        if x_cell.number is not None and y_cell.number is not None:
            xs.append(x_cell.number)
            ys.append(y_cell.number)
    return np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)


def _least_squares_line(xs: np.ndarray, ys: np.ndarray) -> Optional[_LinearFit]:
    n = int(xs.size)
    if n < 2:
        return None

    dx = xs - xs.mean()
    denominator = float(np.sum(dx ** 2))
    if denominator == 0:
        return None

    slope = float(np.sum(dx * (ys - ys.mean())) / denominator)
    intercept = float(ys.mean() - slope * xs.mean())
    predictions = intercept + slope * xs
    residuals = ys - predictions

    rss = float(np.sum(residuals ** 2))
    tss = float(np.sum((ys - ys.mean()) ** 2))
    if tss == 0:
        return None

    r2 = 1.0 - rss / tss
    if not _is_finite(slope, intercept, r2):
        return None
    return _LinearFit(slope, intercept, predictions, residuals, r2, rss, n)


def _adjusted_r2(r2: float, n: int, predictors: int) -> Optional[float]:
    dof = n - predictors - 1
    if dof <= 0:
        return None
    return 1.0 - (1.0 - r2) * (n - 1) / dof


def _standard_error(rss: float, n: int, predictors: int) -> Optional[float]:
    dof = n - predictors - 1
    if dof <= 0:
        return None
    return math.sqrt(rss / dof)


def simple_linear_regression(
    x_values: Sequence[CellValue],
    y_values: Sequence[CellValue],
) -> Optional[RegressionResult]:
    xs, ys = pair_numeric(x_values, y_values)
    fit = _least_squares_line(xs, ys)
    if fit is None:
        return None

    return RegressionResult(
        model=RegressionModel.LINEAR,
        equation=f"y = {_fmt(fit.slope)}x {_signed(fit.intercept)}",
        r2=fit.r2,
        adjusted_r2=_adjusted_r2(fit.r2, fit.n, 1),
        standard_error=_standard_error(fit.rss, fit.n, 1),
        observations=fit.n,
        coefficients=[fit.intercept, fit.slope],
        slope=fit.slope,
        intercept=fit.intercept,
        residuals=fit.residuals.tolist(),
        predicted_values=fit.predictions.tolist(),
    )


def solve_linear_system(
    a: np.ndarray,
    b: np.ndarray,
    tolerance: float = 1e-10,
) -> Optional[np.ndarray]:
    """
    Solve ``a @ x = b`` by Gaussian elimination with partial pivoting.

    Returns ``None`` when a pivot's magnitude falls below ``tolerance``.
    """
    n = b.size
    augmented = np.column_stack([a.astype(float), b.astype(float)])

    for col in range(n):
        pivot = col + int(np.argmax(np.abs(augmented[col:, col])))
        if abs(augmented[pivot, col]) < tolerance:
            return None
        if pivot != col:
            augmented[[col, pivot]] = augmented[[pivot, col]]
        for row in range(col + 1, n):
            factor = augmented[row, col] / augmented[col, col]
            augmented[row, col:] -= factor * augmented[col, col:]

    solution = np.zeros(n)
    for i in range(n - 1, -1, -1):
        solution[i] = (augmented[i, n] - augmented[i, i + 1:n] @ solution[i + 1:]) / augmented[i, i]
    return solution


def multiple_linear_regression(
    y_values: Sequence[CellValue],
    x_columns: Sequence[Sequence[CellValue]],
    settings: Optional[EngineSettings] = None,
) -> Optional[RegressionResult]:
    """
    Ordinary least squares with an intercept, solving (X'X) b = X'y.

    Rows are used only when y and every predictor are numeric. Returns ``None``
    with fewer than ``predictors + 1`` rows or a singular system.
    """
    settings = resolve_settings(settings)
    p = len(x_columns)
    if p == 0:
        return None

    y_cells = normalize_column(y_values)
    x_cells = [normalize_column(col) for col in x_columns]

    ys: List[float] = []
    rows: List[List[float]] = []
    for i, y_cell in enumerate(y_cells):
        if y_cell.number is None:
            continue
        row = []
        for col in x_cells:
            cell = col[i] if i < len(col) else None
            if cell is None or cell.number is None:
                break
            row.append(cell.number)
        else:
            ys.append(y_cell.number)
            rows.append(row)

    n = len(ys)
    if n < p + 1:
        return None

    y = np.asarray(ys)
    design = np.column_stack([np.ones(n), np.asarray(rows)])
    beta = solve_linear_system(design.T @ design, design.T @ y, settings.SINGULAR_PIVOT_TOLERANCE)
    if beta is None:
        logger.info("Normal equations are singular for %d predictors over %d rows", p, n)
        return None

    predictions = design @ beta
    residuals = y - predictions
    rss = float(np.sum(residuals ** 2))
    tss = float(np.sum((y - y.mean()) ** 2))
    if tss == 0 or not np.all(np.isfinite(beta)):
        return None
    r2 = 1.0 - rss / tss

    equation = f"y = {_fmt(beta[0])}" + "".join(
        f" {_signed(coef)}x{i}" for i, coef in enumerate(beta[1:], start=1)
    )
    return RegressionResult(
        model=RegressionModel.MULTIPLE,
        equation=equation,
        r2=r2,
        adjusted_r2=_adjusted_r2(r2, n, p),
        standard_error=_standard_error(rss, n, p),
        observations=n,
        coefficients=beta.tolist(),
        intercept=float(beta[0]),
        residuals=residuals.tolist(),
        predicted_values=predictions.tolist(),
    )


def logistic_regression(
    x_values: Sequence[CellValue],
    y_values: Sequence[CellValue],
    settings: Optional[EngineSettings] = None,
) -> Optional[RegressionResult]:
    """
    Single-predictor logistic regression fitted by batch gradient descent.

    Fit quality is McFadden's pseudo-R2 against the intercept-only model. The
    standard error reported is the binomial standard error of the accuracy.
    """
    settings = resolve_settings(settings)
    xs, ys = pair_numeric(x_values, y_values)
    n = int(xs.size)
    if n < 2 or not np.all((ys == 0) | (ys == 1)):
        return None

    y_mean = float(ys.mean())
    if y_mean in (0.0, 1.0):
        # A single observed class leaves the null model undefined
        return None

    b0, b1 = 0.0, 0.0
    lr = settings.LOGISTIC_LEARNING_RATE
    for _ in range(settings.LOGISTIC_ITERATIONS):
        error = expit(b0 + b1 * xs) - ys
        b0 -= lr * float(error.sum()) / n
        b1 -= lr * float((error * xs).sum()) / n

    probabilities = expit(b0 + b1 * xs)
    clipped = np.clip(probabilities, _LOG_EPSILON, 1 - _LOG_EPSILON)
    ll_full = float(np.sum(ys * np.log(clipped) + (1 - ys) * np.log(1 - clipped)))
    ll_null = n * (y_mean * math.log(y_mean) + (1 - y_mean) * math.log(1 - y_mean))
    pseudo_r2 = 1.0 - ll_full / ll_null

    accuracy = float(np.mean((probabilities >= 0.5) == (ys == 1)))
    if not _is_finite(b0, b1, pseudo_r2):
        return None

    return RegressionResult(
        model=RegressionModel.LOGISTIC,
        equation=f"logit(p) = {_fmt(b0)} {_signed(b1)}x",
        r2=pseudo_r2,
        adjusted_r2=pseudo_r2,
        standard_error=math.sqrt((1 - accuracy) * accuracy / n),
        observations=n,
        coefficients=[b0, b1],
        slope=b1,
        intercept=b0,
        residuals=(ys - probabilities).tolist(),
        predicted_values=probabilities.tolist(),
        accuracy=accuracy,
    )


def power_regression(
    x_values: Sequence[CellValue],
    y_values: Sequence[CellValue],
) -> Optional[RegressionResult]:
    """
    y = a * x^b, fitted as ln(y) = ln(a) + b*ln(x) on rows with x > 0 and y > 0.

    R2 is measured on the log-log fit; residuals and predictions are on the original scale.
    """
    xs, ys = pair_numeric(x_values, y_values)
    mask = (xs > 0) & (ys > 0)
    xs, ys = xs[mask], ys[mask]
    fit = _least_squares_line(np.log(xs), np.log(ys))
    if fit is None:
        return None

    a = math.exp(fit.intercept)
    b = fit.slope
    predictions = a * np.power(xs, b)
    return _log_linear_result(RegressionModel.POWER, f"y = {_fmt(a)} × x^{_fmt(b)}", a, b, fit, ys, predictions)


def exponential_regression(
    x_values: Sequence[CellValue],
    y_values: Sequence[CellValue],
) -> Optional[RegressionResult]:
    """
    y = a * e^(b*x), fitted as ln(y) = ln(a) + b*x on rows with y > 0.

    R2 is measured on the semi-log fit; residuals and predictions are on the original scale.
    """
    xs, ys = pair_numeric(x_values, y_values)
    mask = ys > 0
    xs, ys = xs[mask], ys[mask]
    fit = _least_squares_line(xs, np.log(ys))
    if fit is None:
        return None

    a = math.exp(fit.intercept)
    b = fit.slope
    predictions = a * np.exp(b * xs)
    return _log_linear_result(RegressionModel.EXPONENTIAL, f"y = {_fmt(a)} × e^({_fmt(b)}x)", a, b, fit, ys, predictions)


def _log_linear_result(
    model: RegressionModel,
    equation: str,
    a: float,
    b: float,
    fit: _LinearFit,
    ys: np.ndarray,
    predictions: np.ndarray,
) -> Optional[RegressionResult]:
    if not _is_finite(a, b) or not np.all(np.isfinite(predictions)):
        return None

    residuals = ys - predictions
    rss = float(np.sum(residuals ** 2))
    return RegressionResult(
        model=model,
        equation=equation,
        r2=fit.r2,
        adjusted_r2=_adjusted_r2(fit.r2, fit.n, 1),
        standard_error=_standard_error(rss, fit.n, 1),
        observations=fit.n,
        coefficients=[a, b],
        residuals=residuals.tolist(),
        predicted_values=predictions.tolist(),
        r2_space="log",
    )


SINGLE_PREDICTOR_MODELS: Dict[RegressionModel, Callable[..., Optional[RegressionResult]]] = {
    RegressionModel.LINEAR: simple_linear_regression,
    RegressionModel.POWER: power_regression,
    RegressionModel.EXPONENTIAL: exponential_regression,
}


def fit_regression(
    table: Table,
    model: Union[RegressionModel, str],
    dependent: str,
    independents: Sequence[str],
    settings: Optional[EngineSettings] = None,
) -> Union[RegressionResult, AnalysisFailure]:
    """Resolve columns from ``table`` and fit ``model``."""
    settings = resolve_settings(settings)
    try:
        try:
            model = RegressionModel(model)
        except ValueError:
            raise ConfigurationError(
                f"Unknown regression model '{model}'.",
                {"allowed": [m.value for m in RegressionModel]},
            ) from None

        independents = list(independents)
        if not dependent or not independents:
            raise ConfigurationError("A dependent column and at least one independent column must be selected.")
        for name in [dependent] + independents:
            if not table.has_column(name):
                raise ConfigurationError(f"Column '{name}' not found.", {"column": name})
        if dependent in independents:
            raise ConfigurationError(
                f"Column '{dependent}' cannot be both dependent and independent.",
                {"column": dependent},
            )
        if model != RegressionModel.MULTIPLE and len(independents) != 1:
            raise ConfigurationError(
                f"{model.value.capitalize()} regression takes exactly one independent column.",
                {"independents": independents},
            )

        y_values = table.column(dependent)
        if model == RegressionModel.MULTIPLE:
            result = multiple_linear_regression(
                y_values, [table.column(name) for name in independents], settings
            )
        elif model == RegressionModel.LOGISTIC:
            result = logistic_regression(table.column(independents[0]), y_values, settings)
        else:
            result = SINGLE_PREDICTOR_MODELS[model](table.column(independents[0]), y_values)

        if result is None:
            raise InsufficientDataError(
                f"Could not fit a {model.value} regression: not enough valid rows, "
                "invalid values for this model, or a singular system.",
                {"model": model.value, "dependent": dependent, "independents": independents},
            )
        return result
    except AnalysisError as e:
        logger.info("Regression failed: %s", e.message)
        return e.to_failure()
