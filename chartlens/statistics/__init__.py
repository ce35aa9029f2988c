from .descriptive import describe, describe_column
from .inferential import estimate_mean, infer_column, jarque_bera, one_sample_t_test
from .regression import (
    exponential_regression,
    fit_regression,
    logistic_regression,
    multiple_linear_regression,
    power_regression,
    simple_linear_regression,
)

__all__ = [
    "describe",
    "describe_column",
    "estimate_mean",
    "infer_column",
    "jarque_bera",
    "one_sample_t_test",
    "simple_linear_regression",
    "multiple_linear_regression",
    "logistic_regression",
    "power_regression",
    "exponential_regression",
    "fit_regression",
]
