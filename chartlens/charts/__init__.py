from .builders import (
    build_area_chart,
    build_bar_chart,
    build_line_chart,
    build_pie_chart,
    build_radar_chart,
    build_scatter_chart,
)
from .shaper import CHART_BUILDERS, shape_chart

__all__ = [
    "CHART_BUILDERS",
    "shape_chart",
    "build_bar_chart",
    "build_line_chart",
    "build_area_chart",
    "build_pie_chart",
    "build_scatter_chart",
    "build_radar_chart",
]
