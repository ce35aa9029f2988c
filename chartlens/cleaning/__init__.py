from .duplicates import detect_duplicates, remove_duplicates
from .missing import handle_missing_values, summarize_missing
from .outliers import OUTLIER_METHODS, compute_outlier_bounds, detect_outliers, treat_outliers
from .transformations import transform_columns

__all__ = [
    "detect_duplicates",
    "remove_duplicates",
    "handle_missing_values",
    "summarize_missing",
    "OUTLIER_METHODS",
    "compute_outlier_bounds",
    "detect_outliers",
    "treat_outliers",
    "transform_columns",
]
