"""
Cell normalization.

Raw cells arrive as strings, numbers, booleans or ``None``. ``normalize_cell``
turns each one into a ``Cell`` of kind NUMBER, TEXT or EMPTY exactly once, and
everything downstream works from those values instead of re-parsing raw input.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Union

import numpy as np

from .table import CellValue

# Tokens treated as missing after trimming and lower-casing
MISSING_TOKENS = frozenset(
    {"", "n/a", "na", "null", "undefined", "-", "nan", "#n/a", "#null", "#value!"}
)

# Plain decimal or scientific notation; no hex, underscores or "inf"
_NUMERIC_PATTERN = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")

Number = Union[int, float]


class CellKind(str, Enum):
    NUMBER = "number"
    TEXT = "text"
    EMPTY = "empty"


@dataclass(frozen=True)
class Cell:
    """A normalized cell. ``label`` is the trimmed display form used as a category key."""

    kind: CellKind
    raw: CellValue
    label: Optional[str] = None
    number: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.kind == CellKind.EMPTY

    @property
    def is_number(self) -> bool:
        return self.kind == CellKind.NUMBER


def format_number(value: float) -> str:
    """Render a number the way it reads in a spreadsheet: ``2.0`` -> ``"2"``."""
    canonical = canonical_number(value)
    if isinstance(canonical, int):
        return str(canonical)
    return repr(canonical)


def canonical_number(value: float) -> Number:
    """Collapse integral floats to ``int`` so chart keys read ``3`` rather than ``3.0``."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if math.isfinite(value) and value.is_integer() and abs(value) < 2**53:
        return int(value)
    return value


def is_missing(raw: CellValue) -> bool:
    if raw is None:
        return True
    if isinstance(raw, float) and math.isnan(raw):
        return True
    if isinstance(raw, str):
        return raw.strip().lower() in MISSING_TOKENS
    return False


def _parse_number(raw: CellValue) -> Optional[float]:
    if isinstance(raw, bool):
        return float(raw)
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None
    if isinstance(raw, str):
        text = raw.strip()
        if not _NUMERIC_PATTERN.match(text):
            return None
        value = float(text)
        # Overflowing literals like "1e999" are not usable numbers
        return value if math.isfinite(value) else None
    return None


def normalize_cell(raw: CellValue) -> Cell:
    if isinstance(raw, np.generic):
        raw = raw.item()
    if is_missing(raw):
        return Cell(CellKind.EMPTY, raw)

    if isinstance(raw, str):
        label = raw.strip()
    elif isinstance(raw, bool):
        label = "true" if raw else "false"
    elif isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            return Cell(CellKind.EMPTY, raw)
        label = format_number(raw)
    else:
        label = str(raw).strip()

    number = _parse_number(raw)
    if number is not None:
        return Cell(CellKind.NUMBER, raw, label=label, number=number)
    return Cell(CellKind.TEXT, raw, label=label)


def normalize_column(values: Iterable[CellValue]) -> List[Cell]:
    return [normalize_cell(v) for v in values]


def normalize_numeric(raw: CellValue) -> Optional[float]:
    """
    Return the finite numeric value of a cell, or ``None`` when it is missing or not numeric.

    Strings must be plain decimal or scientific notation after trimming. Hex
    (``"0x1A"``), binary and octal literals, digit separators (``"1_000"``) and
    ``"inf"`` are text, as are literals that overflow to infinity.
    """
    return normalize_cell(raw).number


def normalize_categorical(raw: CellValue) -> Optional[str]:
    """Return the trimmed, case-preserved label of a cell, or ``None`` when it is missing."""
    return normalize_cell(raw).label


def numeric_values(cells: Iterable[Cell]) -> List[float]:
    return [c.number for c in cells if c.number is not None]
