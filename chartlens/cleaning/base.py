from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from ..exceptions import ConfigurationError
from ..table import Table


class BaseCalculator(ABC):
    @abstractmethod
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Calculates parameters from the table.
        Returns a dictionary of fitted parameters (serializable).
        """
        pass


class BaseApplier(ABC):
    @abstractmethod
    def apply(self, table: Table, params: Dict[str, Any]) -> Table:
        """
        Applies the operation using fitted parameters and returns a new table.
        """
        pass


def fit_apply(calculator: BaseCalculator, applier: BaseApplier, table: Table, config: Dict[str, Any]) -> Table:
    return applier.apply(table, calculator.fit(table, config))


def require_column(table: Table, column: Optional[str]) -> str:
    if not column:
        raise ConfigurationError("A column must be selected.")
    if not table.has_column(column):
        raise ConfigurationError(f"Column '{column}' not found.", {"column": column})
    return column


def resolve_columns(table: Table, columns: Optional[Sequence[str]]) -> List[str]:
    """``None`` or empty selects every column; unknown names are a configuration error."""
    if not columns:
        return list(table.headers)
    missing = [c for c in columns if not table.has_column(c)]
    if missing:
        raise ConfigurationError(f"Columns not found: {', '.join(missing)}", {"columns": missing})
    # Preserve caller order, drop repeats
    return list(dict.fromkeys(columns))
