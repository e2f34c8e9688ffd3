from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Protocol, Sequence

import numpy as np

from timechart.civil import resolve_timezone
from timechart.config import ChartStyle
from timechart.errors import ChartStateError, InvalidArgumentError, SeriesIndexError
from timechart.gestures import GestureController, pan_viewport, pinch_viewport
from timechart.interpolate import value_at_fraction, value_at_x
from timechart.invalidation import DeferredRegeneration, LabelCache
from timechart.labels import (
    DEFAULT_DISPLAY_MODES,
    DisplayMode,
    HorizontalLabelSet,
    LabelFormatter,
    VerticalLabelSet,
    format_x_value,
    generate_horizontal_labels,
    generate_vertical_labels,
    resolve_x_modes,
    vertical_step_count,
)
from timechart.plan import AxisLabel, RenderPlan, SeriesPath
from timechart.scales import (
    DataLimits,
    Viewport,
    YBounds,
    build_transform,
    data_x_range,
    format_number,
    map_to_pixels,
    resolve_y_range,
    visible_x_range,
)
from timechart.series import NO_DATA_TAG, Series
from timechart.text_metrics import PillowTextMetrics, TextMetrics
from timechart.windowing import windowed_values


LOGGER = logging.getLogger(__name__)

PROBE_FRACTION = 0.783


class CursorListener(Protocol):
    def on_value(self, description: str | None, fraction: float, y: float) -> None:
        ...

    def on_clear(self) -> None:
        ...


class TimeChart:
    """Zoomable time-series line chart core.

    Owns the series list, the viewport, manual Y bounds and the label caches. All
    methods except ``Series`` mutation are meant for the render thread; series changes
    coming from a producer thread are recorded and applied on the next ``poll``/``frame``.
    """

    def __init__(
        self,
        title: str = "",
        *,
        style: ChartStyle | None = None,
        text_metrics: TextMetrics | None = None,
        display_modes: Sequence[DisplayMode] = DEFAULT_DISPLAY_MODES,
        label_formatter: LabelFormatter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not display_modes:
            raise InvalidArgumentError("display_modes must not be empty")
        self.title = title
        self._style = style or ChartStyle()
        self._tz = resolve_timezone(self._style.timezone)
        self._text_metrics = text_metrics or PillowTextMetrics(
            font_family=self._style.font_family,
            font_path=self._style.font_path,
        )
        self._modes = tuple(display_modes)
        self._formatter = label_formatter
        self._clock = clock

        self._series: list[Series] = []
        self._viewport = Viewport()
        self._y_bounds = YBounds()
        self._manual_steps: int | None = None
        self._gestures = GestureController(self)

        self._cache = LabelCache()
        self._display_mode: DisplayMode | None = None
        self._horizontal_regen = DeferredRegeneration(self._style.hide_delay_s)
        self._vertical_regen = DeferredRegeneration(self._style.vertical_debounce_s)
        self._can_show_horizontal = True
        self._can_show_vertical = True
        self._show_horizontal = True
        self._show_vertical = True

        self._cursor = 0.0
        self._cursor_listener: CursorListener | None = None
        self._plot_size: tuple[float, float] = (0.0, 0.0)

        self._series_changed = threading.Event()
        self._scroll_requested = threading.Event()
        self._redraw = threading.Event()

    def add_series(self, series: Series) -> Series:
        if not isinstance(series, Series):
            raise InvalidArgumentError("add_series expects a Series")
        series.attach(self)
        self._series.append(series)
        self.redraw_all()
        return series

    def remove_series(self, target: Series | int) -> Series | None:
        if isinstance(target, Series):
            if target not in self._series:
                return None
            removed = target
            self._series.remove(target)
        else:
            removed = self._series.pop(self._index(target))
        removed.detach(self)
        self.redraw_all()
        return removed

    def remove_all_series(self) -> None:
        for series in self._series:
            series.detach(self)
        self._series.clear()
        self.redraw_all()

    @property
    def series_count(self) -> int:
        return len(self._series)

    def get_series(self, index: int) -> Series:
        return self._series[self._index(index)]

    def on_series_changed(self, series: Series, *, scroll_to_end: bool = False) -> None:
        # May run on a producer thread; the render thread picks the flags up in poll().
        if scroll_to_end:
            self._scroll_requested.set()
        self._series_changed.set()
        self._redraw.set()

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    def set_viewport(self, start: int, size: int) -> None:
        self._viewport = Viewport(start=int(start), size=int(size))
        self._cache.clear_labels()
        self.request_redraw()

    def clear_viewport(self) -> None:
        self.set_viewport(0, 0)

    def scroll_to_end(self) -> None:
        if not self._gestures.scrollable:
            raise ChartStateError("scroll_to_end requires a scrollable chart")
        _, max_x = data_x_range(self._series)
        self._viewport = Viewport(start=max_x - self._viewport.size, size=self._viewport.size)
        self._cache.clear_labels()
        self.request_redraw()

    def get_visible_x_range(self, ignore_viewport: bool = False) -> tuple[int, int]:
        return visible_x_range(self._series, self._viewport, ignore_viewport=ignore_viewport)

    def get_visible_y_range(self) -> tuple[float, float]:
        windows = [windowed_values(series, self._viewport)[1] for series in self._series]
        return resolve_y_range(self._y_bounds, windows)

    def windowed_values(self, index: int) -> tuple[np.ndarray, np.ndarray]:
        return windowed_values(self.get_series(index), self._viewport)

    @property
    def y_bounds(self) -> YBounds:
        return self._y_bounds

    def set_manual_y_bounds(self, min_y: float, max_y: float, interval: float) -> None:
        if interval <= 0:
            raise InvalidArgumentError("interval must be > 0")
        if max_y < min_y:
            raise InvalidArgumentError("max_y must be >= min_y")
        self._y_bounds = YBounds(manual_min=float(min_y), manual_max=float(max_y), interval=float(interval))
        self._manual_steps = max(0, int((max_y - min_y + interval) / interval) - 1)
        self._invalidate_vertical_now()

    def set_manual_y_max(self, value: float) -> None:
        self._y_bounds = YBounds(
            manual_min=self._y_bounds.manual_min,
            manual_max=float(value),
            interval=self._y_bounds.interval,
        )
        self._invalidate_vertical_now()

    def set_manual_y_min(self, value: float) -> None:
        self._y_bounds = YBounds(
            manual_min=float(value),
            manual_max=self._y_bounds.manual_max,
            interval=self._y_bounds.interval,
        )
        self._invalidate_vertical_now()

    def clear_manual_y_bounds(self) -> None:
        self._y_bounds = YBounds()
        self._manual_steps = None
        self._invalidate_vertical_now()

    @property
    def display_mode(self) -> DisplayMode | None:
        return self._display_mode

    def horizontal_label_set(self) -> HorizontalLabelSet:
        if self._cache.horizontal is None:
            min_x, max_x = self.get_visible_x_range()
            label_set = generate_horizontal_labels(
                min_x,
                max_x,
                modes=self._modes,
                formatter=self._formatter,
                tz=self._tz,
                has_data=self._has_data(),
            )
            if label_set.mode != self._display_mode:
                LOGGER.debug(
                    "display mode %s -> %s",
                    self._display_mode.name if self._display_mode else None,
                    label_set.mode.name if label_set.mode else None,
                )
                self._display_mode = label_set.mode
                self._cache.horizontal_label_width_px = None
            self._cache.horizontal = label_set
        return self._cache.horizontal

    def get_horizontal_labels(self) -> dict[int, str]:
        return dict(self.horizontal_label_set().labels)

    def vertical_label_set(self, plot_height_px: float | None = None) -> VerticalLabelSet:
        if self._cache.vertical is None:
            if plot_height_px is None:
                plot_height_px = self._plot_size[1]
            steps = self._vertical_steps(plot_height_px)
            min_y, max_y = self.get_visible_y_range()
            interval = self._y_bounds.interval if self._manual_steps is not None and self._y_bounds.is_manual else None
            self._cache.vertical = generate_vertical_labels(
                min_y,
                max_y,
                steps,
                interval=interval,
                formatter=self._formatter,
                tz=self._tz,
                has_data=self._has_data(),
            )
            LOGGER.debug("vertical labels regenerated: %d steps over [%g, %g]", steps, min_y, max_y)
        return self._cache.vertical

    def get_vertical_labels(self, plot_height_px: float | None = None) -> dict[int, str]:
        return dict(self.vertical_label_set(plot_height_px).labels)

    def set_label_formatter(self, formatter: LabelFormatter | None) -> None:
        self._formatter = formatter
        self.redraw_all()

    @property
    def style(self) -> ChartStyle:
        return self._style

    def set_style(self, style: ChartStyle) -> None:
        self._style = style
        self._tz = resolve_timezone(style.timezone)
        self._horizontal_regen = DeferredRegeneration(style.hide_delay_s)
        self._vertical_regen = DeferredRegeneration(style.vertical_debounce_s)
        self._can_show_horizontal = True
        self._can_show_vertical = True
        self.redraw_all()

    def show_horizontal_labels(self, show: bool) -> None:
        self._show_horizontal = bool(show)
        self.request_redraw()

    def show_vertical_labels(self, show: bool) -> None:
        self._show_vertical = bool(show)
        self.request_redraw()

    @property
    def horizontal_labels_visible(self) -> bool:
        return self._show_horizontal and self._can_show_horizontal

    @property
    def vertical_labels_visible(self) -> bool:
        return self._show_vertical and self._can_show_vertical

    @property
    def gestures(self) -> GestureController:
        return self._gestures

    @property
    def scrollable(self) -> bool:
        return self._gestures.scrollable

    def set_scrollable(self, scrollable: bool) -> None:
        self._gestures.scrollable = bool(scrollable)

    def set_scalable(self, scalable: bool) -> None:
        self._gestures.set_scalable(scalable)

    def set_disable_touch(self, disable: bool) -> None:
        self._gestures.disable_touch = bool(disable)

    def on_pan_delta(self, pixels: float, plot_width_px: float, *, now: float | None = None) -> None:
        viewport = pan_viewport(self._viewport, pixels, plot_width_px, data_x_range(self._series))
        if viewport == self._viewport:
            return
        self._viewport = viewport
        self._invalidate_after_gesture(self._now(now))

    def on_pinch(self, scale_factor: float, plot_width_px: float, *, now: float | None = None) -> None:
        if plot_width_px <= 0:
            raise InvalidArgumentError("plot_width_px must be > 0")
        viewport = pinch_viewport(self._viewport, scale_factor, data_x_range(self._series))
        if viewport == self._viewport:
            return
        self._viewport = viewport
        self._invalidate_after_gesture(self._now(now))

    @property
    def cursor(self) -> float:
        return self._cursor

    def set_cursor(self, fraction: float) -> None:
        if not 0.0 <= fraction <= 1.0:
            raise InvalidArgumentError("cursor fraction must be within [0, 1]")
        self._cursor = float(fraction)
        self.request_redraw()

    def set_cursor_listener(self, listener: CursorListener | None) -> None:
        self._cursor_listener = listener

    def value_at_fraction(self, index: int, fraction: float) -> float:
        xs, ys = self.windowed_values(index)
        min_x, max_x = self.get_visible_x_range()
        return value_at_fraction(
            xs,
            ys,
            min_x=min_x,
            max_x=max_x,
            plot_width_px=self._plot_size[0],
            fraction=fraction,
        )

    def value_at_x(self, index: int, x: float) -> float:
        with self.get_series(index).read() as (xs, ys):
            return value_at_x(xs, ys, x)

    def request_redraw(self) -> None:
        self._redraw.set()

    @property
    def needs_redraw(self) -> bool:
        return self._redraw.is_set()

    def take_redraw_request(self) -> bool:
        requested = self._redraw.is_set()
        self._redraw.clear()
        return requested

    def redraw_all(self) -> None:
        self._cache.invalidate()
        self.request_redraw()

    def poll(self, now: float | None = None) -> bool:
        """Apply pending series changes and run due label regenerations.

        Returns True when anything visible changed.
        """
        now = self._now(now)
        changed = False
        if self._scroll_requested.is_set():
            self._scroll_requested.clear()
            self._series_changed.clear()
            if self._gestures.scrollable:
                self.scroll_to_end()
            self.redraw_all()
            changed = True
        elif self._series_changed.is_set():
            self._series_changed.clear()
            self.redraw_all()
            changed = True

        if self._vertical_regen.take_due(now) is not None:
            self._can_show_vertical = True
            changed = True
        if self._horizontal_regen.take_due(now) is not None:
            self._emit_cursor_values()
            self._can_show_horizontal = True
            changed = True
        if changed:
            self.request_redraw()
        return changed

    def frame(self, width_px: int, height_px: int, now: float | None = None) -> RenderPlan:
        if width_px <= 0 or height_px <= 0:
            raise InvalidArgumentError("frame width/height must be > 0")
        self.poll(now)
        self._ensure_text_metrics()
        label_height = self._cache.label_height_px or 1
        border = self._style.border_px + label_height
        if self._style.vertical_labels_width:
            gutter = float(self._style.vertical_labels_width)
        else:
            gutter = float(self._cache.vertical_label_width_px or 0) + self._style.border_px
        plot_w = max(1.0, width_px - gutter)
        plot_h = max(1.0, height_px - 2 * border)
        self._plot_size = (plot_w, plot_h)

        min_x, max_x = self.get_visible_x_range()
        min_y, max_y = self.get_visible_y_range()
        limits = DataLimits(xmin=float(min_x), xmax=float(max_x), ymin=min_y, ymax=max_y)
        transform = build_transform(limits, plot_w, plot_h)

        paths: list[SeriesPath] = []
        for series in self._series:
            xs, ys = windowed_values(series, self._viewport)
            px, py = map_to_pixels(xs, ys, transform, plot_h)
            paths.append(SeriesPath(description=series.description, style=series.style, px=px + gutter, py=py + border))

        horizontal: tuple[AxisLabel, ...] = ()
        if self.horizontal_labels_visible:
            horizontal = tuple(
                AxisLabel(anchor=float(stamp), text=text, position_px=gutter + stamp * transform.sx + transform.tx)
                for stamp, text in self.horizontal_label_set().labels.items()
            )
            # A display mode change drops the cached label width.
            self._ensure_text_metrics()

        vertical: tuple[AxisLabel, ...] = ()
        if self.vertical_labels_visible:
            vertical_set = self.vertical_label_set(plot_h)
            steps = len(vertical_set.values) - 1
            vertical = tuple(
                AxisLabel(
                    anchor=vertical_set.values[steps - slot],
                    text=text,
                    position_px=border + (plot_h * slot / steps if steps > 0 else 0.0),
                )
                for slot, text in sorted(vertical_set.labels.items())
            )

        self._redraw.clear()
        return RenderPlan(
            width=int(width_px),
            height=int(height_px),
            title=self.title,
            plot_rect=(gutter, border, plot_w, plot_h),
            limits=limits,
            display_mode=self._display_mode,
            horizontal_labels=horizontal,
            vertical_labels=vertical,
            series=tuple(paths),
            cursor_px=gutter + self._cursor * plot_w,
            grid_style=self._style.grid_style,
            horizontal_labels_visible=self.horizontal_labels_visible,
            vertical_labels_visible=self.vertical_labels_visible,
            label_height_px=int(label_height),
            horizontal_label_width_px=int(self._cache.horizontal_label_width_px or 0),
        )

    def _index(self, index: int) -> int:
        count = len(self._series)
        if not isinstance(index, (int, np.integer)) or not 0 <= int(index) < count:
            raise SeriesIndexError(f"series index {index!r} out of range for {count} series")
        return int(index)

    def _has_data(self) -> bool:
        return any(len(series) > 0 for series in self._series)

    def _now(self, now: float | None) -> float:
        return self._clock() if now is None else float(now)

    def _vertical_steps(self, plot_height_px: float) -> int:
        if self._manual_steps is not None and self._y_bounds.is_manual:
            return self._manual_steps
        self._ensure_text_metrics()
        return vertical_step_count(
            plot_height_px,
            self._cache.label_height_px or 1,
            num_labels=self._style.num_vertical_labels,
            pitch_factor=self._style.label_pitch_factor,
        )

    def _invalidate_vertical_now(self) -> None:
        self._cache.vertical = None
        self._cache.vertical_label_width_px = None
        self.request_redraw()

    def _invalidate_after_gesture(self, now: float) -> None:
        self._cache.horizontal = None
        self._can_show_horizontal = False
        if self._cursor_listener is not None:
            self._cursor_listener.on_clear()
        self._horizontal_regen.request(now)
        if not self._y_bounds.is_manual:
            self._cache.vertical = None
            self._can_show_vertical = False
            self._vertical_regen.request(now)
        self.request_redraw()

    def _emit_cursor_values(self) -> None:
        if self._cursor_listener is None:
            return
        for index, series in enumerate(self._series):
            if series.description == NO_DATA_TAG:
                continue
            self._cursor_listener.on_value(series.description, self._cursor, self.value_at_fraction(index, self._cursor))

    def _ensure_text_metrics(self) -> None:
        cache = self._cache
        if (
            cache.label_height_px is not None
            and cache.horizontal_label_width_px is not None
            and cache.vertical_label_width_px is not None
        ):
            return
        size = self._style.text_size_px
        min_y, max_y = self.get_visible_y_range()
        y_probe = self._format_y_probe(min_y + (max_y - min_y) * PROBE_FRACTION, max_y - min_y)
        y_width, y_height = self._text_metrics.measure(y_probe, font_size_px=size)
        if cache.label_height_px is None:
            cache.label_height_px = max(1, int(y_height))
        if cache.vertical_label_width_px is None:
            cache.vertical_label_width_px = int(y_width)
        if cache.horizontal_label_width_px is None:
            min_x, max_x = self.get_visible_x_range()
            diff = max_x - min_x
            _, text_mode = resolve_x_modes(diff, modes=self._modes, formatter=self._formatter)
            x_probe = format_x_value(int(min_x + diff * PROBE_FRACTION), text_mode, diff, self._tz)
            cache.horizontal_label_width_px = int(self._text_metrics.measure(x_probe, font_size_px=size)[0])

    def _format_y_probe(self, value: float, diff: float) -> str:
        if self._formatter is not None:
            mode = self._formatter.format_label(diff, False)
            if mode is not None:
                return mode.format(int(round(value)), self._tz)
        interval = self._y_bounds.interval if self._y_bounds.interval else diff
        return format_number(value, interval=interval)
