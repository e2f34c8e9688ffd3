from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from timechart.config import GridStyle
from timechart.labels import DisplayMode
from timechart.scales import DataLimits
from timechart.series import SeriesStyle


@dataclass(frozen=True)
class AxisLabel:
    anchor: float
    text: str
    position_px: float


@dataclass(frozen=True)
class SeriesPath:
    description: str | None
    style: SeriesStyle
    px: np.ndarray
    py: np.ndarray


@dataclass(frozen=True)
class RenderPlan:
    """Everything a renderer needs to draw one frame, in surface pixels."""

    width: int
    height: int
    title: str
    plot_rect: tuple[float, float, float, float]
    limits: DataLimits
    display_mode: DisplayMode | None
    horizontal_labels: tuple[AxisLabel, ...]
    vertical_labels: tuple[AxisLabel, ...]
    series: tuple[SeriesPath, ...]
    cursor_px: float
    grid_style: GridStyle
    horizontal_labels_visible: bool
    vertical_labels_visible: bool
    label_height_px: int
    horizontal_label_width_px: int
