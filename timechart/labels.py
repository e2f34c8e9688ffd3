from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timezone, tzinfo
import logging
import math
from typing import Protocol, Sequence

from timechart.civil import CalendarField, add_field, floor_to_field, from_millis, snap_forward, to_millis
from timechart.scales import format_number, normalize_degenerate_range


LOGGER = logging.getLogger(__name__)

ONE_SECOND = 1000
ONE_MINUTE = ONE_SECOND * 60
ONE_HOUR = ONE_MINUTE * 60
ONE_DAY = ONE_HOUR * 24

LEVEL_MINUTE = 0
LEVEL_HOUR = 1
LEVEL_DAY = 2
LEVEL_MONTH = 3
LEVEL_YEAR = 4

MAX_HORIZONTAL_LABELS = 10_000


@dataclass(frozen=True)
class DisplayMode:
    """Time bucket used to place and format horizontal labels.

    ``threshold_span`` is exclusive: a mode is eligible while the visible span is
    strictly below it.
    """

    name: str
    calendar_field: CalendarField
    field_interval: int
    level_rank: int
    format_pattern: str
    threshold_span: float

    def __post_init__(self) -> None:
        if self.field_interval <= 0:
            raise ValueError("field_interval must be > 0")
        if self.threshold_span <= 0:
            raise ValueError("threshold_span must be > 0")

    def format(self, timestamp_ms: int, tz: tzinfo = timezone.utc) -> str:
        return from_millis(timestamp_ms, tz).strftime(self.format_pattern)


MINUTE = DisplayMode("MINUTE", CalendarField.MINUTE, 1, LEVEL_MINUTE, "%H:%M", 10 * ONE_MINUTE)
QUARTER_HOUR = DisplayMode("QUARTER_HOUR", CalendarField.MINUTE, 15, LEVEL_MINUTE, "%H:%M", 3 * ONE_HOUR)
HOUR = DisplayMode("HOUR", CalendarField.HOUR, 1, LEVEL_HOUR, "%Hh", 12 * ONE_HOUR)
QUARTER_DAY = DisplayMode("QUARTER_DAY", CalendarField.HOUR, 6, LEVEL_HOUR, "%Hh", 3 * ONE_DAY)
DAY = DisplayMode("DAY", CalendarField.DAY, 1, LEVEL_DAY, "%d/%m", 10 * ONE_DAY)
WEEK = DisplayMode("WEEK", CalendarField.DAY, 7, LEVEL_DAY, "%d/%m", 70 * ONE_DAY)
MONTH = DisplayMode("MONTH", CalendarField.MONTH, 1, LEVEL_MONTH, "%b", 365 * ONE_DAY)
QUARTER = DisplayMode("QUARTER", CalendarField.MONTH, 3, LEVEL_MONTH, "%m/%y", 3 * 365 * ONE_DAY)
YEAR = DisplayMode("YEAR", CalendarField.YEAR, 1, LEVEL_YEAR, "%Y", math.inf)

DEFAULT_DISPLAY_MODES: tuple[DisplayMode, ...] = (
    MINUTE,
    QUARTER_HOUR,
    HOUR,
    QUARTER_DAY,
    DAY,
    WEEK,
    MONTH,
    QUARTER,
    YEAR,
)


class LabelFormatter(Protocol):
    def format_label(self, diff: float, is_x: bool) -> DisplayMode | None:
        """Return the mode to format with, or None for default numeric labels."""
        ...


@dataclass(frozen=True)
class HorizontalLabelSet:
    mode: DisplayMode | None
    labels: dict[int, str] = field(default_factory=dict)


@dataclass(frozen=True)
class VerticalLabelSet:
    labels: dict[int, str] = field(default_factory=dict)
    values: tuple[float, ...] = ()
    interval: float | None = None


def select_display_mode(diff: float, modes: Sequence[DisplayMode] = DEFAULT_DISPLAY_MODES) -> DisplayMode:
    if not modes:
        raise ValueError("modes must not be empty")
    ordered = sorted(modes, key=lambda mode: mode.threshold_span)
    for mode in ordered:
        if mode.threshold_span > diff:
            return mode
    return ordered[-1]


def resolve_x_modes(
    diff: float,
    *,
    modes: Sequence[DisplayMode] = DEFAULT_DISPLAY_MODES,
    formatter: LabelFormatter | None = None,
) -> tuple[DisplayMode, DisplayMode | None]:
    """Bucketing mode and text mode for a span; a None text mode means numeric labels."""
    bucket_mode = select_display_mode(diff, modes)
    if formatter is None:
        return bucket_mode, bucket_mode
    custom = formatter.format_label(diff, True)
    if custom is None:
        return bucket_mode, None
    return custom, custom


def format_x_value(stamp: int, mode: DisplayMode | None, diff: float, tz: tzinfo = timezone.utc) -> str:
    if mode is None:
        return format_number(float(stamp), interval=float(max(diff, 1)))
    return mode.format(stamp, tz)


def generate_horizontal_labels(
    min_x: int,
    max_x: int,
    *,
    modes: Sequence[DisplayMode] = DEFAULT_DISPLAY_MODES,
    formatter: LabelFormatter | None = None,
    tz: tzinfo = timezone.utc,
    has_data: bool = True,
) -> HorizontalLabelSet:
    """Calendar-aligned labels strictly inside ``(min_x, max_x)``.

    The selected mode is returned with the labels so callers can compare it against
    the previous generation instead of keeping it as shared state.
    """
    diff = max_x - min_x
    bucket_mode, text_mode = resolve_x_modes(diff, modes=modes, formatter=formatter)

    if not has_data:
        return HorizontalLabelSet(mode=bucket_mode)
    if diff <= 0:
        return HorizontalLabelSet(mode=bucket_mode, labels={min_x: format_x_value(min_x, text_mode, diff, tz)})

    start = floor_to_field(from_millis(min_x, tz), bucket_mode.calendar_field)
    current = snap_forward(start, bucket_mode.calendar_field, bucket_mode.field_interval)
    labels: dict[int, str] = {}
    while (stamp := to_millis(current)) < max_x:
        if len(labels) >= MAX_HORIZONTAL_LABELS:
            LOGGER.warning(
                "horizontal labels truncated at %d for mode %s over span %d ms",
                MAX_HORIZONTAL_LABELS,
                bucket_mode.name,
                diff,
            )
            break
        labels[stamp] = format_x_value(stamp, text_mode, diff, tz)
        current = add_field(current, bucket_mode.calendar_field, bucket_mode.field_interval)
    return HorizontalLabelSet(mode=bucket_mode, labels=labels)


def vertical_step_count(
    plot_height_px: float,
    label_height_px: float,
    *,
    num_labels: int = 0,
    pitch_factor: float = 3.0,
) -> int:
    """Number of equal steps between the vertical labels (labels = steps + 1)."""
    if num_labels > 0:
        return num_labels - 1
    height = plot_height_px if plot_height_px > 0 else 1.0
    pitch = max(1.0, label_height_px) * pitch_factor
    steps = int(height / pitch)
    if steps == 0:
        LOGGER.warning("plot height %.1fpx is smaller than the label pitch %.1fpx; no vertical labels shown", height, pitch)
    return steps


def generate_vertical_labels(
    min_y: float,
    max_y: float,
    steps: int,
    *,
    interval: float | None = None,
    formatter: LabelFormatter | None = None,
    tz: tzinfo = timezone.utc,
    has_data: bool = True,
) -> VerticalLabelSet:
    """Labels for ``steps + 1`` evenly spaced values; slot 0 holds the largest value."""
    if not has_data:
        return VerticalLabelSet()
    steps = max(0, int(steps))
    min_y, max_y = normalize_degenerate_range(min_y, max_y)
    if interval is None or interval <= 0:
        interval = (max_y - min_y) / steps if steps > 0 else max_y - min_y
    text_mode = formatter.format_label(max_y - min_y, False) if formatter is not None else None

    labels: dict[int, str] = {}
    values: list[float] = []
    for i in range(steps + 1):
        value = min_y + interval * i
        values.append(value)
        if text_mode is not None:
            labels[steps - i] = text_mode.format(int(round(value)), tz)
        else:
            labels[steps - i] = format_number(value, interval=interval)
    return VerticalLabelSet(labels=labels, values=tuple(values), interval=interval)
