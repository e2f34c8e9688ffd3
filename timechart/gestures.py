from __future__ import annotations

import logging
from typing import Literal, Protocol

from timechart.errors import InvalidArgumentError
from timechart.scales import Viewport


LOGGER = logging.getLogger(__name__)

GesturePhase = Literal["idle", "panning", "pinching"]


def pan_viewport(
    viewport: Viewport,
    dx_px: float,
    plot_width_px: float,
    data_range: tuple[int, int],
) -> Viewport:
    """Shift the window by a horizontal drag of ``dx_px``; dragging right reveals earlier data."""
    if plot_width_px <= 0:
        raise InvalidArgumentError("plot_width_px must be > 0")
    if viewport.show_all:
        return viewport
    dt = dx_px * viewport.size / plot_width_px
    start = int(viewport.start - dt)
    return Viewport(start=clamp_start(start, viewport.size, data_range=data_range), size=viewport.size)


def clamp_start(start: int, size: int, *, data_range: tuple[int, int]) -> int:
    min_x, max_x = data_range
    if start + size > max_x:
        start = max_x - size
    if start < min_x:
        start = min_x
    return start


def pinch_viewport(viewport: Viewport, scale_factor: float, data_range: tuple[int, int]) -> Viewport:
    """Zoom around the window centre; ``scale_factor > 1`` zooms in.

    The result always lies within ``data_range``. When the requested window cannot be
    shifted back inside, the full data range is shown instead.
    """
    if scale_factor <= 0:
        raise InvalidArgumentError("scale_factor must be > 0")
    min_x, max_x = data_range
    span = max_x - min_x
    if span <= 0:
        LOGGER.warning("pinch ignored: data range [%d, %d] has no extent", min_x, max_x)
        return viewport

    if viewport.show_all:
        start, size = min_x, span
    else:
        start, size = viewport.start, viewport.size
    center = start + size // 2
    size = max(1, int(size / scale_factor))
    start = center - size // 2

    if start < min_x:
        start = min_x
    overlap = start + size - max_x
    if overlap > 0:
        if start - overlap >= min_x:
            start -= overlap
        else:
            start = min_x
            size = span
    return Viewport(start=start, size=size)


class GestureTarget(Protocol):
    def on_pan_delta(self, pixels: float, plot_width_px: float) -> None:
        ...

    def on_pinch(self, scale_factor: float, plot_width_px: float) -> None:
        ...


class GestureController:
    """Touch-phase state machine: idle -> panning -> idle, with pinch taking over."""

    def __init__(self, target: GestureTarget) -> None:
        self._target = target
        self._phase: GesturePhase = "idle"
        self._last_x: float | None = None
        self.scrollable = False
        self.scalable = False
        self.disable_touch = False

    @property
    def phase(self) -> GesturePhase:
        return self._phase

    def set_scalable(self, scalable: bool) -> None:
        self.scalable = bool(scalable)
        if self.scalable:
            self.scrollable = True

    def touch_down(self, x: float) -> bool:
        if not self._accepts_touch() or self._phase == "pinching":
            return False
        self._phase = "panning"
        self._last_x = float(x)
        return True

    def touch_move(self, x: float, plot_width_px: float) -> bool:
        if not self._accepts_touch() or self._phase != "panning":
            return False
        if self._last_x is not None:
            self._target.on_pan_delta(float(x) - self._last_x, plot_width_px)
        self._last_x = float(x)
        return True

    def touch_up(self) -> bool:
        if not self._accepts_touch():
            return False
        if self._phase == "panning":
            self._phase = "idle"
        self._last_x = None
        return True

    def touch_cancel(self) -> bool:
        return self.touch_up()

    def pinch_begin(self) -> bool:
        if not self._accepts_touch() or not self.scalable:
            return False
        self._phase = "pinching"
        self._last_x = None
        return True

    def pinch(self, scale_factor: float, plot_width_px: float) -> bool:
        if self._phase != "pinching":
            return False
        self._target.on_pinch(scale_factor, plot_width_px)
        return True

    def pinch_end(self) -> bool:
        if self._phase != "pinching":
            return False
        self._phase = "idle"
        self._last_x = None
        return True

    def _accepts_touch(self) -> bool:
        return self.scrollable and not self.disable_touch
