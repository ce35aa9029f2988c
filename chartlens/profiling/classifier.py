import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from ..cells import Cell, normalize_column
from ..config import EngineSettings, resolve_settings
from ..schemas import ColumnAnalysis, VisualizationVerdict
from ..table import CellValue, Table

logger = logging.getLogger(__name__)


def categorical_threshold(total: int, settings: Optional[EngineSettings] = None) -> float:
    """
    Unique-count ceiling under which an all-numeric column still counts as categorical.

    ``max(15, 10% of N)`` keeps small integer codes such as ratings categorical
    while letting ID-like numeric columns fall through to numeric handling.
    """
    settings = resolve_settings(settings)
    return max(settings.CATEGORICAL_MIN_UNIQUE, settings.CATEGORICAL_UNIQUE_RATIO * total)


def analyze_cells(
    cells: Sequence[Cell],
    column: str,
    settings: Optional[EngineSettings] = None,
) -> ColumnAnalysis:
    """Classify an already-normalized column."""
    settings = resolve_settings(settings)
    present = [c for c in cells if not c.is_empty]

    if not present:
        return ColumnAnalysis(column=column, is_empty=True, verdict=VisualizationVerdict.EMPTY)

    # value_counts without sorting keeps first-appearance order, so unique_value_list is stable
    counts = pd.Series([c.label for c in present], dtype=object).value_counts(sort=False)
    frequencies = {label: int(n) for label, n in counts.items()}
    total = len(present)
    unique = len(frequencies)
    is_numeric = all(c.is_number for c in present)
    is_categorical = (not is_numeric) or unique <= categorical_threshold(total, settings)

    if unique <= 1:
        verdict = VisualizationVerdict.SINGLE_VALUE
    elif unique >= settings.VISUALIZATION_MAX_UNIQUE_RATIO * total:
        verdict = VisualizationVerdict.HIGH_CARDINALITY
    else:
        verdict = VisualizationVerdict.VALID

    return ColumnAnalysis(
        column=column,
        is_empty=False,
        unique_values=unique,
        total_values=total,
        is_numeric=is_numeric,
        is_categorical=is_categorical,
        is_valid_for_visualization=verdict == VisualizationVerdict.VALID,
        verdict=verdict,
        frequencies=frequencies,
        unique_value_list=list(frequencies),
    )


def analyze_column(
    values: Iterable[CellValue],
    column: str,
    settings: Optional[EngineSettings] = None,
) -> ColumnAnalysis:
    """
    Classify a column of raw cells by cardinality and numeric character.

    Missing cells (``None``, NaN, sentinel tokens) are dropped first. Frequencies are
    keyed by the trimmed, case-sensitive label of each remaining cell.
    """
    return analyze_cells(normalize_column(values), column, settings)


def analyze_table(table: Table, settings: Optional[EngineSettings] = None) -> Dict[str, ColumnAnalysis]:
    """
    Classify every column of ``table``. Result order follows ``table.headers``.

    With ``ANALYSIS_WORKERS > 1`` columns are classified on a thread pool;
    ``executor.map`` yields results in submission order, not completion order.
    """
    settings = resolve_settings(settings)
    headers: List[str] = list(table.headers)

    def _classify(name: str) -> ColumnAnalysis:
        return analyze_column(table.column(name), name, settings)

    if settings.ANALYSIS_WORKERS > 1 and len(headers) > 1:
        logger.debug("Classifying %d columns on %d workers", len(headers), settings.ANALYSIS_WORKERS)
        with ThreadPoolExecutor(max_workers=settings.ANALYSIS_WORKERS) as executor:
            results = list(executor.map(_classify, headers))
    else:
        results = [_classify(name) for name in headers]

    return dict(zip(headers, results))
