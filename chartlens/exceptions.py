from typing import Any, Dict, Optional

from .schemas import AnalysisFailure, FailureKind


class AnalysisError(Exception):
    """Base exception for analysis errors."""

    kind = FailureKind.ANALYSIS

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_failure(self) -> AnalysisFailure:
        return AnalysisFailure(kind=self.kind, message=self.message, details=self.details)


class ConfigurationError(AnalysisError):
    """Missing, unknown or conflicting column/method selection."""

    kind = FailureKind.CONFIGURATION


class InsufficientDataError(AnalysisError):
    """Not enough usable values for the requested computation."""

    kind = FailureKind.INSUFFICIENT_DATA


class CardinalityLimitError(AnalysisError):
    """Too many distinct categories for the requested chart layout."""

    kind = FailureKind.CARDINALITY_LIMIT

    def __init__(
        self,
        message: str,
        count: int,
        limit: int,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.count = count
        self.limit = limit
        merged = {"count": count, "limit": limit}
        merged.update(details or {})
        super().__init__(message, merged)
