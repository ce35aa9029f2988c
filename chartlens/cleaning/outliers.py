"""Outlier detection (z-score, IQR, percentile) and treatment (remove or cap)."""

import logging
from typing import Any, Dict, List, Optional, Union

import numpy as np

from ..cells import canonical_number, normalize_column
from ..exceptions import AnalysisError, ConfigurationError, InsufficientDataError
from ..schemas import AnalysisFailure, OutlierAction, OutlierMethod, OutlierReport, QuantileMethod
from ..table import Table
from .base import BaseApplier, BaseCalculator, fit_apply, require_column

logger = logging.getLogger(__name__)

OUTLIER_METHODS: Dict[OutlierMethod, Dict[str, Any]] = {
    OutlierMethod.ZSCORE: {
        "label": "Z-score",
        "description": "Flag values whose distance from the mean exceeds threshold standard deviations.",
        "default_threshold": 3.0,
        "parameter_help": "Absolute z-score above which a value is an outlier (common range 2.0-4.0).",
    },
    OutlierMethod.IQR: {
        "label": "IQR",
        "description": "Flag values outside Q1 - k*IQR and Q3 + k*IQR.",
        "default_threshold": 1.5,
        "parameter_help": "Whisker multiplier k applied to the IQR (1.5 aligns with Tukey boxplots).",
    },
    OutlierMethod.PERCENTILE: {
        "label": "Percentile",
        "description": "Flag values below the p-th or above the (100-p)-th percentile.",
        "default_threshold": 5.0,
        "parameter_help": "Tail percentage p trimmed on each side (0-50).",
    },
}


def _resolve_method(method: Union[OutlierMethod, str]) -> OutlierMethod:
    try:
        return OutlierMethod(method)
    except ValueError:
        raise ConfigurationError(
            f"Unknown outlier method '{method}'.",
            {"allowed": [m.value for m in OutlierMethod]},
        ) from None


def _quantiles(values: np.ndarray, probs: List[float], quantile_method: QuantileMethod) -> List[float]:
    """
    Quantiles of ``values`` at ``probs`` (0-1).

    ``LINEAR`` interpolates between order statistics. ``FLOOR_INDEX`` takes the
    sorted value at ``floor(n * p)``, clamped to the last index.
    """
    if quantile_method == QuantileMethod.LINEAR:
        return [float(q) for q in np.quantile(values, probs)]
    ordered = np.sort(values)
    last = ordered.size - 1
    return [float(ordered[min(int(np.floor(ordered.size * p)), last)]) for p in probs]


def compute_outlier_bounds(
    values: np.ndarray,
    method: Union[OutlierMethod, str],
    threshold: Optional[float] = None,
    quantile_method: Union[QuantileMethod, str] = QuantileMethod.LINEAR,
) -> Dict[str, Any]:
    """
    Compute lower/upper bounds over finite numeric values.

    ``quantile_method`` only affects the IQR and percentile methods.

    Returns ``{"lower", "upper", "threshold", "details"}``. Raises
    ``ConfigurationError`` for bad parameters and ``InsufficientDataError``
    when there are no values.
    """
    method = _resolve_method(method)
    try:
        quantile_method = QuantileMethod(quantile_method)
    except ValueError:
        raise ConfigurationError(
            f"Unknown quantile method '{quantile_method}'.",
            {"allowed": [m.value for m in QuantileMethod]},
        ) from None
    if threshold is None:
        threshold = OUTLIER_METHODS[method]["default_threshold"]
    threshold = float(threshold)
    if not np.isfinite(threshold) or threshold < 0:
        raise ConfigurationError("Outlier threshold must be a non-negative number.", {"threshold": threshold})
    if method == OutlierMethod.PERCENTILE and threshold > 50:
        raise ConfigurationError("Percentile threshold must be between 0 and 50.", {"threshold": threshold})

    values = np.asarray(values, dtype=float)
    if not values.size:
        raise InsufficientDataError("No numeric values to analyze for outliers.")

    if method == OutlierMethod.ZSCORE:
        mean = float(values.mean())
        std = float(values.std(ddof=0))
        lower, upper = mean - threshold * std, mean + threshold * std
        details = {"mean": mean, "stdDev": std}
    elif method == OutlierMethod.IQR:
        q1, q3 = _quantiles(values, [0.25, 0.75], quantile_method)
        iqr = q3 - q1
        lower, upper = q1 - threshold * iqr, q3 + threshold * iqr
        details = {"q1": q1, "q3": q3, "iqr": iqr}
    else:
        lower, upper = _quantiles(values, [threshold / 100, (100 - threshold) / 100], quantile_method)
        details = {
            "lowerPercentile": threshold,
            "upperPercentile": 100 - threshold,
            "lowerValue": lower,
            "upperValue": upper,
        }

    return {"lower": lower, "upper": upper, "threshold": threshold, "details": details}


class OutlierCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'column': 'price', 'method': 'iqr', 'threshold': 1.5, 'action': 'cap'}
        column = require_column(table, config.get("column"))
        method = _resolve_method(config.get("method", OutlierMethod.ZSCORE))

        cells = normalize_column(table.column(column))
        indices = [i for i, c in enumerate(cells) if c.number is not None]
        values = np.asarray([cells[i].number for i in indices], dtype=float)
        if not values.size:
            raise InsufficientDataError(
                f"Column '{column}' contains no numeric values.", {"column": column}
            )

        bounds = compute_outlier_bounds(
            values, method, config.get("threshold"), config.get("quantile_method", QuantileMethod.LINEAR)
        )
        lower, upper = bounds["lower"], bounds["upper"]
        flagged = [idx for idx, v in zip(indices, values) if v < lower or v > upper]

        return {
            "column": column,
            "method": method.value,
            "threshold": bounds["threshold"],
            "lower_bound": lower,
            "upper_bound": upper,
            "method_details": bounds["details"],
            "total_count": int(values.size),
            "outlier_indices": flagged,
            "action": config.get("action", OutlierAction.REMOVE.value),
        }


class OutlierApplier(BaseApplier):
    def apply(self, table: Table, params: Dict[str, Any]) -> Table:
        if not params:
            return table

        action = OutlierAction(params.get("action", OutlierAction.REMOVE))
        if action == OutlierAction.REMOVE:
            flagged = set(params.get("outlier_indices", []))
            kept = [row for i, row in enumerate(table.rows) if i not in flagged]
            logger.info("Removed %d outlier rows from '%s'", len(table.rows) - len(kept), params["column"])
            return table.with_rows(kept)

        lower, upper = params["lower_bound"], params["upper_bound"]
        column = params["column"]
        capped: List[Any] = []
        for raw, cell in zip(table.column(column), normalize_column(table.column(column))):
            if cell.number is not None and (cell.number < lower or cell.number > upper):
                capped.append(canonical_number(min(max(cell.number, lower), upper)))
            else:
                capped.append(raw)
        return table.with_column(column, capped)


def detect_outliers(
    table: Table,
    column: str,
    method: Union[OutlierMethod, str] = OutlierMethod.ZSCORE,
    threshold: Optional[float] = None,
    quantile_method: Union[QuantileMethod, str] = QuantileMethod.LINEAR,
) -> Union[OutlierReport, AnalysisFailure]:
    """Detect outliers in one column. Non-numeric and missing cells are excluded, never read as zero."""
    try:
        params = OutlierCalculator().fit(
            table,
            {"column": column, "method": method, "threshold": threshold, "quantile_method": quantile_method},
        )
    except AnalysisError as e:
        logger.info("Outlier detection failed for %s: %s", column, e.message)
        return e.to_failure()

    return OutlierReport(
        column=params["column"],
        method=params["method"],
        threshold=params["threshold"],
        lower_bound=params["lower_bound"],
        upper_bound=params["upper_bound"],
        outlier_count=len(params["outlier_indices"]),
        total_count=params["total_count"],
        method_details=params["method_details"],
        outlier_indices=params["outlier_indices"],
    )


def treat_outliers(
    table: Table,
    column: str,
    method: Union[OutlierMethod, str] = OutlierMethod.ZSCORE,
    threshold: Optional[float] = None,
    action: Union[OutlierAction, str] = OutlierAction.REMOVE,
    quantile_method: Union[QuantileMethod, str] = QuantileMethod.LINEAR,
) -> Union[Table, AnalysisFailure]:
    """Remove rows holding outliers, or cap outlying values at the computed bounds."""
    try:
        try:
            action = OutlierAction(action)
        except ValueError:
            raise ConfigurationError(
                f"Unknown outlier action '{action}'.",
                {"allowed": [a.value for a in OutlierAction]},
            ) from None

        return fit_apply(
            OutlierCalculator(),
            OutlierApplier(),
            table,
            {
                "column": column,
                "method": method,
                "threshold": threshold,
                "action": action.value,
                "quantile_method": quantile_method,
            },
        )
    except AnalysisError as e:
        logger.info("Outlier treatment failed for %s: %s", column, e.message)
        return e.to_failure()
