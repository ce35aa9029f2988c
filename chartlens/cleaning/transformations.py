"""Column transformations: numeric rescaling, text edits and categorical encoding."""

import logging
import math
import re
from typing import Any, Callable, Dict, List, Sequence, Union

import numpy as np
import pandas as pd

from ..cells import canonical_number, normalize_column
from ..exceptions import AnalysisError, ConfigurationError
from ..schemas import AnalysisFailure, TransformType
from ..table import Table
from .base import BaseApplier, BaseCalculator, require_column

logger = logging.getLogger(__name__)

NUMERIC_OPERATIONS = ("normalize", "scale", "log", "square_root")
TEXT_OPERATIONS = ("lowercase", "uppercase", "trim", "prefix", "suffix", "regex")
CATEGORICAL_OPERATIONS = ("one_hot", "label")


# --- Numeric ---

class NumericTransformCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'column': 'price', 'operation': 'scale', 'min_value': 0, 'max_value': 1}
        column = require_column(table, config.get("column"))
        operation = config["operation"]
        xs = np.asarray(
            [c.number for c in normalize_column(table.column(column)) if c.number is not None],
            dtype=float,
        )
        params: Dict[str, Any] = {"column": column, "operation": operation}

        if operation == "normalize":
            params["mean"] = float(xs.mean()) if xs.size else None
            params["std"] = float(xs.std(ddof=0)) if xs.size else None
        elif operation == "scale":
            params["data_min"] = float(xs.min()) if xs.size else None
            params["data_max"] = float(xs.max()) if xs.size else None
            params["min_value"] = float(config.get("min_value", 0.0))
            params["max_value"] = float(config.get("max_value", 1.0))
        return params


class NumericTransformApplier(BaseApplier):
    def apply(self, table: Table, params: Dict[str, Any]) -> Table:
        column = params["column"]
        operation = params["operation"]
        fn = self._build(params)
        if fn is None:
            logger.info("Skipping %s on '%s': column has no spread", operation, column)
            return table

        out = []
        for raw, cell in zip(table.column(column), normalize_column(table.column(column))):
            result = fn(cell.number) if cell.number is not None else None
            out.append(canonical_number(result) if result is not None else raw)
        return table.with_column(column, out)

    @staticmethod
    def _build(params: Dict[str, Any]) -> Union[Callable[[float], Any], None]:
        operation = params["operation"]
        if operation == "normalize":
            mean, std = params["mean"], params["std"]
            if not std:
                return None
            return lambda x: (x - mean) / std
        if operation == "scale":
            lo, hi = params["data_min"], params["data_max"]
            if lo is None or hi == lo:
                return None
            new_lo, new_hi = params["min_value"], params["max_value"]
            return lambda x: (x - lo) / (hi - lo) * (new_hi - new_lo) + new_lo
        if operation == "log":
            return lambda x: math.log(x) if x > 0 else None
        return lambda x: math.sqrt(x) if x >= 0 else None


# --- Text ---

def _text_transform(table: Table, column: str, operation: str, options: Dict[str, Any]) -> Table:
    series = pd.Series(table.column(column), dtype=object)
    is_text = pd.Series([isinstance(v, str) for v in series], index=series.index, dtype=bool)

    if operation in ("prefix", "suffix"):
        text = str(options.get("text", ""))
        present = series.notna()
        as_text = series[present].map(_display)
        series[present] = text + as_text if operation == "prefix" else as_text + text
        return table.with_column(column, series.tolist())

    text_values = series[is_text].astype(str)
    if operation == "lowercase":
        series[is_text] = text_values.str.lower()
    elif operation == "uppercase":
        series[is_text] = text_values.str.upper()
    elif operation == "trim":
        series[is_text] = text_values.str.strip()
    else:
        pattern = options.get("pattern")
        if not pattern:
            raise ConfigurationError("A regex pattern is required for 'regex'.")
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise ConfigurationError(f"Invalid regex pattern '{pattern}': {e}", {"pattern": pattern}) from None
        series[is_text] = text_values.str.replace(compiled, str(options.get("replacement", "")), regex=True)
    return table.with_column(column, series.tolist())


def _display(value: Any) -> str:
    if isinstance(value, float):
        return str(canonical_number(value))
    return str(value)


# --- Categorical ---

def _categorical_transform(table: Table, column: str, operation: str, options: Dict[str, Any]) -> Table:
    labels = [c.label for c in normalize_column(table.column(column))]
    distinct = list(dict.fromkeys(label for label in labels if label is not None))

    if operation == "label":
        codes = {label: i for i, label in enumerate(distinct)}
        encoded_name = f"{column}_encoded"
        _ensure_new_column(table, encoded_name)
        return table.with_column(encoded_name, ["" if label is None else str(codes[label]) for label in labels])

    for value in distinct:
        name = f"{column}_{value}"
        _ensure_new_column(table, name)
        table = table.with_column(name, ["1" if label == value else "0" for label in labels])
    return table


def _ensure_new_column(table: Table, name: str) -> None:
    if table.has_column(name):
        raise ConfigurationError(f"Column '{name}' already exists.", {"column": name})


TRANSFORM_OPERATIONS: Dict[TransformType, Sequence[str]] = {
    TransformType.NUMERIC: NUMERIC_OPERATIONS,
    TransformType.TEXT: TEXT_OPERATIONS,
    TransformType.CATEGORICAL: CATEGORICAL_OPERATIONS,
}


def transform_columns(
    table: Table,
    columns: Sequence[str],
    transform_type: Union[TransformType, str],
    operation: str,
    **options: Any,
) -> Union[Table, AnalysisFailure]:
    """
    Apply one transformation to each of ``columns`` in order and return the new table.

    Options: ``min_value``/``max_value`` for scale, ``text`` for prefix/suffix,
    ``pattern``/``replacement`` for regex.
    """
    try:
        try:
            transform_type = TransformType(transform_type)
        except ValueError:
            raise ConfigurationError(
                f"Unknown transform type '{transform_type}'.",
                {"allowed": [t.value for t in TransformType]},
            ) from None
        allowed: List[str] = list(TRANSFORM_OPERATIONS[transform_type])
        if operation not in allowed:
            raise ConfigurationError(
                f"Unknown {transform_type.value} operation '{operation}'.", {"allowed": allowed}
            )
        if not columns:
            raise ConfigurationError("At least one column must be selected.")
        for column in columns:
            require_column(table, column)

        for column in columns:
            if transform_type == TransformType.NUMERIC:
                params = NumericTransformCalculator().fit(table, {"column": column, "operation": operation, **options})
                table = NumericTransformApplier().apply(table, params)
            elif transform_type == TransformType.TEXT:
                table = _text_transform(table, column, operation, options)
            else:
                table = _categorical_transform(table, column, operation, options)
        return table
    except AnalysisError as e:
        logger.info("Transform %s/%s failed: %s", transform_type, operation, e.message)
        return e.to_failure()
