from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
import tomllib
from typing import Any, Literal


GridStyle = Literal["both", "horizontal", "vertical"]

_GRID_STYLES = ("both", "horizontal", "vertical")


@dataclass(frozen=True)
class ChartStyle:
    text_size_px: float = 14.0
    font_family: str = "DejaVu Sans"
    font_path: str | None = None
    num_vertical_labels: int = 0
    vertical_labels_width: int = 0
    border_px: float = 20.0
    label_pitch_factor: float = 3.0
    hide_delay_s: float = 0.5
    vertical_debounce_s: float = 0.0
    timezone: str = "UTC"
    grid_style: GridStyle = "both"

    def __post_init__(self) -> None:
        if self.text_size_px <= 0:
            raise ValueError("text_size_px must be > 0")
        if self.num_vertical_labels < 0:
            raise ValueError("num_vertical_labels must be >= 0")
        if self.vertical_labels_width < 0:
            raise ValueError("vertical_labels_width must be >= 0")
        if self.border_px < 0:
            raise ValueError("border_px must be >= 0")
        if self.label_pitch_factor <= 0:
            raise ValueError("label_pitch_factor must be > 0")
        if self.hide_delay_s < 0 or self.vertical_debounce_s < 0:
            raise ValueError("delays must be >= 0")
        if self.grid_style not in _GRID_STYLES:
            raise ValueError(f"grid_style must be one of {_GRID_STYLES}")


def load_chart_style(path: str | Path) -> ChartStyle:
    """Read the ``[chart]`` table of a TOML file into a ChartStyle."""
    style_path = Path(path)
    if not style_path.exists():
        raise FileNotFoundError(f"chart style not found: {style_path}")
    with style_path.open("rb") as f:
        raw = tomllib.load(f)
    table = raw.get("chart", {})
    if not isinstance(table, dict):
        raise ValueError("[chart] must be a table")
    return chart_style_from_mapping(table)


def chart_style_from_mapping(values: dict[str, Any]) -> ChartStyle:
    known = {f.name for f in fields(ChartStyle)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"unknown chart style keys: {', '.join(unknown)}")
    return ChartStyle(**values)
