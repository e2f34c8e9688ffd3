from timechart.api import chart, headless_chart
from timechart.chart import CursorListener, TimeChart
from timechart.config import ChartStyle, load_chart_style
from timechart.errors import ChartStateError, InvalidArgumentError, PlotDataError, SeriesIndexError
from timechart.labels import DEFAULT_DISPLAY_MODES, DisplayMode, LabelFormatter
from timechart.plan import AxisLabel, RenderPlan, SeriesPath
from timechart.scales import Viewport, YBounds
from timechart.series import NO_DATA_TAG, DataPoint, Series, SeriesStyle
from timechart.text_metrics import FixedTextMetrics, PillowTextMetrics

__all__ = [
    "AxisLabel",
    "ChartStateError",
    "ChartStyle",
    "CursorListener",
    "DEFAULT_DISPLAY_MODES",
    "DataPoint",
    "DisplayMode",
    "FixedTextMetrics",
    "InvalidArgumentError",
    "LabelFormatter",
    "NO_DATA_TAG",
    "PillowTextMetrics",
    "PlotDataError",
    "RenderPlan",
    "Series",
    "SeriesIndexError",
    "SeriesPath",
    "SeriesStyle",
    "TimeChart",
    "Viewport",
    "YBounds",
    "chart",
    "headless_chart",
    "load_chart_style",
]
