"""Pytest fixtures for engine tests."""

import numpy as np
import pandas as pd
import pytest

from chartlens.config import EngineSettings
from chartlens.table import Table


@pytest.fixture
def settings() -> EngineSettings:
    """Default settings, isolated from any CHARTLENS_* variables in the environment."""
    return EngineSettings(_env_file=None)


@pytest.fixture
def sales_table() -> Table:
    """Small mixed table: numeric X, categorical Y, numeric amounts, some gaps."""
    return Table(
        ["year", "region", "amount", "note"],
        [
            [2021, "North", 10, "ok"],
            [2020, "South", 20, None],
            ["2020", "North", "30", "ok"],
            [2021, "South", None, "n/a"],
            [2022, "North", 50, "late"],
            [None, "South", 60, "ok"],
            [2022, " North ", 70.0, ""],
        ],
    )


@pytest.fixture
def numeric_frame() -> pd.DataFrame:
    """Reproducible random frame with a few NaN."""
    np.random.seed(42)
    n_samples = 100
    data = pd.DataFrame({
        "feature1": np.random.normal(0, 1, n_samples),
        "feature2": np.random.normal(2, 1, n_samples),
        "category": np.random.choice(["A", "B", "C"], n_samples),
        "target": np.random.normal(10, 2, n_samples),
    })
    data.loc[0:5, "feature1"] = np.nan
    return data


@pytest.fixture
def outlier_table() -> Table:
    return Table(["value", "label"], [[v, f"r{i}"] for i, v in enumerate([10, 12, 11, 13, 12, 100])])


@pytest.fixture
def duplicate_table() -> Table:
    return Table.from_records([
        {"a": 1, "b": "x"},
        {"a": 1, "b": "x"},
        {"a": 2, "b": "y"},
    ])
