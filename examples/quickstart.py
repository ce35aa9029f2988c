"""
chartlens Quickstart Example.

This script demonstrates how to:
1. Profile every column of a table.
2. Shape chart-ready series.
3. Run descriptive statistics and a regression.
4. Clean the table before charting.
"""

import numpy as np
import pandas as pd

from chartlens import (
    Table,
    analyze_table,
    describe_column,
    detect_outliers,
    fit_regression,
    shape_chart,
    treat_outliers,
)
from chartlens.schemas import AnalysisFailure


def create_dummy_data():
    """Create a dummy dataset for demonstration."""
    np.random.seed(42)
    n = 200
    df = pd.DataFrame(
        {
            "age": np.random.randint(18, 80, n),
            "income": np.random.normal(50000, 15000, n),
            "city": np.random.choice(["New York", "London", "Paris"], n),
            "is_customer": np.random.choice([0, 1], n),
        }
    )
    # Add some missing values and a spike
    df.loc[0:10, "income"] = np.nan
    df.loc[11, "income"] = 500000
    return df


def main():
    print("1. Creating dummy data...")
    table = Table.from_frame(create_dummy_data())
    print(f"   Rows: {table.row_count}, columns: {list(table.headers)}")

    print("\n2. Profiling columns...")
    for name, analysis in analyze_table(table).items():
        print(
            f"   {name}: unique={analysis.unique_values} numeric={analysis.is_numeric} "
            f"categorical={analysis.is_categorical} verdict={analysis.verdict.value}"
        )

    print("\n3. Shaping a stacked bar chart (age vs city)...")
    series = shape_chart(table, "bar", {"xAxisColumn": "age", "yAxisColumn": "city"})
    if isinstance(series, AnalysisFailure):
        print(f"   Failed: {series.message}")
    else:
        print(f"   {len(series.processed_data)} records, categories={series.categories}")

    print("\n4. Describing income...")
    summary = describe_column(table, "income")
    print(f"   mean={summary.central_tendency.mean:.2f} std={summary.dispersion.standard_deviation:.2f}")

    print("\n5. Outliers in income (IQR)...")
    report = detect_outliers(table, "income", "iqr", 1.5)
    print(f"   {report.outlier_count} outliers outside [{report.lower_bound:.0f}, {report.upper_bound:.0f}]")
    cleaned = treat_outliers(table, "income", "iqr", 1.5, action="cap")

    print("\n6. Linear regression of income on age...")
    result = fit_regression(cleaned, "linear", "income", ["age"])
    if isinstance(result, AnalysisFailure):
        print(f"   Failed: {result.message}")
    else:
        print(f"   {result.equation} (R2={result.r2:.4f})")


if __name__ == "__main__":
    main()
