from .classifier import analyze_cells, analyze_column, analyze_table, categorical_threshold

__all__ = ["analyze_cells", "analyze_column", "analyze_table", "categorical_threshold"]
