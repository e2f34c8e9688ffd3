from __future__ import annotations

from pathlib import Path
from typing import Any

from timechart.chart import TimeChart
from timechart.config import ChartStyle, load_chart_style
from timechart.series import Series, SeriesStyle
from timechart.text_metrics import FixedTextMetrics, TextMetrics


def chart(
    points: Any = None,
    *,
    x: Any = None,
    y: Any = None,
    data: Any = None,
    title: str = "",
    description: str | None = None,
    style: ChartStyle | None = None,
    style_path: str | Path | None = None,
    series_style: SeriesStyle | None = None,
    text_metrics: TextMetrics | None = None,
    scalable: bool = False,
) -> TimeChart:
    if style is not None and style_path is not None:
        raise ValueError("pass either style or style_path, not both")
    if style_path is not None:
        style = load_chart_style(style_path)
    out = TimeChart(title, style=style, text_metrics=text_metrics)
    if points is not None or y is not None:
        out.add_series(Series(points, x=x, y=y, data=data, description=description, style=series_style))
    if scalable:
        out.set_scalable(True)
    return out


def headless_chart(points: Any = None, **kwargs: Any) -> TimeChart:
    """Chart measuring text with fixed glyph metrics, for use without fonts."""
    kwargs.setdefault("text_metrics", FixedTextMetrics())
    return chart(points, **kwargs)
