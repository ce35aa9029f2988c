from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

CellValue = Union[str, int, float, bool, None]


@dataclass(frozen=True)
class Table:
    """
    Immutable tabular input: ordered unique headers and rows aligned to them.

    Rows are stored as tuples. Every row holds exactly ``len(headers)`` cells;
    missing values are ``None`` or one of the sentinel tokens, never a short row.
    """

    headers: Tuple[str, ...]
    rows: Tuple[Tuple[CellValue, ...], ...]

    def __init__(self, headers: Sequence[str], rows: Iterable[Sequence[CellValue]] = ()):
        headers = tuple(str(h) for h in headers)
        if len(set(headers)) != len(headers):
            dupes = sorted(h for h, n in Counter(headers).items() if n > 1)
            raise ValueError(f"Duplicate column names: {dupes}")

        frozen_rows = []
        for i, row in enumerate(rows):
            row = tuple(row)
            if len(row) != len(headers):
                raise ValueError(
                    f"Row {i} has {len(row)} cells but the table has {len(headers)} columns"
                )
            frozen_rows.append(row)

        object.__setattr__(self, "headers", headers)
        object.__setattr__(self, "rows", tuple(frozen_rows))

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, CellValue]],
        headers: Optional[Sequence[str]] = None,
    ) -> "Table":
        """
        Build a table from dict rows. Keys absent from a record become ``None``.
        Headers default to key order of first appearance across records.
        """
        records = list(records)
        if headers is None:
            ordered: Dict[str, None] = {}
            for record in records:
                for key in record:
                    ordered.setdefault(key, None)
            headers = list(ordered)
        return cls(headers, [[record.get(h) for h in headers] for record in records])

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "Table":
        """Convert a DataFrame, mapping NaN/NaT to ``None`` and numpy scalars to Python ones."""
        frame = df.astype(object).where(pd.notna(df), None)
        rows = [[_to_python(v) for v in row] for row in frame.itertuples(index=False, name=None)]
        return cls([str(c) for c in df.columns], rows)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.rows), columns=list(self.headers), dtype=object)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def has_column(self, name: str) -> bool:
        return name in self.headers

    def column_index(self, name: str) -> int:
        try:
            return self.headers.index(name)
        except ValueError:
            raise KeyError(name) from None

    def column(self, name: str) -> List[CellValue]:
        idx = self.column_index(name)
        return [row[idx] for row in self.rows]

    def records(self) -> List[Dict[str, CellValue]]:
        return [dict(zip(self.headers, row)) for row in self.rows]

    def with_rows(self, rows: Iterable[Sequence[CellValue]]) -> "Table":
        return Table(self.headers, rows)

    def with_column(self, name: str, values: Sequence[CellValue]) -> "Table":
        """Return a copy with ``name`` replaced, or appended when it does not exist yet."""
        if len(values) != len(self.rows):
            raise ValueError(f"Column '{name}' has {len(values)} values for {len(self.rows)} rows")
        if name in self.headers:
            idx = self.headers.index(name)
            rows = [row[:idx] + (value,) + row[idx + 1:] for row, value in zip(self.rows, values)]
            return Table(self.headers, rows)
        return Table(self.headers + (name,), [row + (value,) for row, value in zip(self.rows, values)])


def _to_python(value: Any) -> CellValue:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
