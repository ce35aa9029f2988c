import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from ..config import EngineSettings, resolve_settings
from ..exceptions import AnalysisError, ConfigurationError
from ..schemas import AnalysisFailure, AxisConfig, ChartSeries, ChartType
from ..table import Table
from .builders import (
    build_area_chart,
    build_bar_chart,
    build_line_chart,
    build_pie_chart,
    build_radar_chart,
    build_scatter_chart,
)

logger = logging.getLogger(__name__)

ChartBuilder = Callable[[Table, AxisConfig, EngineSettings], ChartSeries]

CHART_BUILDERS: Dict[ChartType, ChartBuilder] = {
    ChartType.BAR: build_bar_chart,
    ChartType.LINE: build_line_chart,
    ChartType.AREA: build_area_chart,
    ChartType.PIE: build_pie_chart,
    ChartType.SCATTER: build_scatter_chart,
    ChartType.RADAR: build_radar_chart,
}


def shape_chart(
    table: Table,
    chart_type: Union[ChartType, str],
    axis_config: Union[AxisConfig, Mapping[str, Any], None] = None,
    settings: Optional[EngineSettings] = None,
) -> Union[ChartSeries, AnalysisFailure]:
    """
    Turn table rows into a chart-ready series.

    ``axis_config`` may be an ``AxisConfig`` or a plain mapping using either the
    snake_case or the camelCase field names (``xAxisColumn``, ``yAxisColumn``,
    ``valueColumn``). Bad selections and unusable data come back as an
    ``AnalysisFailure`` carrying the reason; nothing is raised for them.
    """
    settings = resolve_settings(settings)
    try:
        try:
            chart_type = ChartType(chart_type)
        except ValueError:
            raise ConfigurationError(
                f"Unsupported chart type '{chart_type}'.",
                {"allowed": [t.value for t in ChartType]},
            ) from None

        if axis_config is None:
            axes = AxisConfig()
        elif isinstance(axis_config, AxisConfig):
            axes = axis_config
        else:
            try:
                axes = AxisConfig.model_validate(dict(axis_config))
            except ValidationError as e:
                raise ConfigurationError(
                    "Invalid axis configuration.",
                    {"errors": [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]},
                ) from None

        logger.debug("Shaping %s chart with %s", chart_type.value, axes.model_dump(by_alias=True))
        return CHART_BUILDERS[chart_type](table, axes, settings)
    except AnalysisError as e:
        logger.info("Chart shaping failed: %s", e.message)
        return e.to_failure()
