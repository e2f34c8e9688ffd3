from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Iterable

import numpy as np

from timechart.errors import InvalidArgumentError
from timechart.series import Series


DEGENERATE_PAD_RATIO = 0.05


@dataclass(frozen=True)
class Viewport:
    """Visible x window in epoch milliseconds; ``size == 0`` shows all data."""

    start: int = 0
    size: int = 0

    def __post_init__(self) -> None:
        if self.size < 0:
            raise InvalidArgumentError("viewport size must be >= 0")

    @property
    def show_all(self) -> bool:
        return self.size == 0

    @property
    def end(self) -> int:
        return self.start + self.size


@dataclass(frozen=True)
class YBounds:
    manual_min: float | None = None
    manual_max: float | None = None
    interval: float | None = None

    @property
    def is_manual(self) -> bool:
        return self.manual_min is not None and self.manual_max is not None


@dataclass(frozen=True)
class DataLimits:
    xmin: float
    xmax: float
    ymin: float
    ymax: float


@dataclass(frozen=True)
class PlotTransform:
    sx: float
    tx: float
    sy: float
    ty: float


def data_x_range(series: Iterable[Series]) -> tuple[int, int]:
    """Global x range over every series; relies on each series being sorted."""
    lowest: int | None = None
    highest: int | None = None
    for item in series:
        bounds = item.x_bounds()
        if bounds is None:
            continue
        first, last = bounds
        lowest = first if lowest is None else min(lowest, first)
        highest = last if highest is None else max(highest, last)
    if lowest is None or highest is None:
        return (0, 0)
    return (lowest, highest)


def visible_x_range(
    series: Iterable[Series],
    viewport: Viewport,
    *,
    ignore_viewport: bool = False,
) -> tuple[int, int]:
    if not ignore_viewport and not viewport.show_all:
        return (viewport.start, viewport.end)
    return data_x_range(series)


def scan_y_range(windows: Iterable[np.ndarray]) -> tuple[float, float]:
    """True min/max over already-windowed y arrays; ``(0.0, 0.0)`` when nothing is visible."""
    lowest: float | None = None
    highest: float | None = None
    for ys in windows:
        if ys.size == 0:
            continue
        lo = float(np.min(ys))
        hi = float(np.max(ys))
        lowest = lo if lowest is None else min(lowest, lo)
        highest = hi if highest is None else max(highest, hi)
    if lowest is None or highest is None:
        return (0.0, 0.0)
    return (lowest, highest)


def resolve_y_range(bounds: YBounds, windows: Iterable[np.ndarray]) -> tuple[float, float]:
    """Manual bounds win per side; the other side is scanned from visible points."""
    if bounds.manual_min is not None and bounds.manual_max is not None:
        vmin, vmax = bounds.manual_min, bounds.manual_max
    else:
        scanned_min, scanned_max = scan_y_range(windows)
        vmin = bounds.manual_min if bounds.manual_min is not None else scanned_min
        vmax = bounds.manual_max if bounds.manual_max is not None else scanned_max
    # Equal manual bounds are widened like scanned ones.
    return normalize_degenerate_range(vmin, vmax)


def normalize_degenerate_range(vmin: float, vmax: float) -> tuple[float, float]:
    if vmin != vmax:
        return (vmin, vmax)
    if vmax == 0:
        return (0.0, 1.0)
    return (vmin * (1.0 - DEGENERATE_PAD_RATIO), vmax * (1.0 + DEGENERATE_PAD_RATIO))


def build_transform(limits: DataLimits, width: float, height: float) -> PlotTransform:
    if width <= 0 or height <= 0:
        raise InvalidArgumentError("plot width/height must be > 0")
    # A single-point x range still needs a finite scale.
    x_span = limits.xmax - limits.xmin
    if x_span <= 0:
        x_span = 1.0
    y_span = limits.ymax - limits.ymin
    if y_span <= 0:
        y_span = 1.0
    sx = width / x_span
    tx = -limits.xmin * sx
    sy = height / y_span
    ty = -limits.ymin * sy
    return PlotTransform(sx=sx, tx=tx, sy=sy, ty=ty)


def map_to_pixels(
    x: np.ndarray,
    y: np.ndarray,
    transform: PlotTransform,
    height: float,
) -> tuple[np.ndarray, np.ndarray]:
    px = x.astype(np.float64, copy=False) * transform.sx + transform.tx
    py = y.astype(np.float64, copy=False) * transform.sy + transform.ty
    return px, height - py


def fraction_digits_for_interval(interval: float | None) -> int:
    if interval is None or not np.isfinite(interval) or interval < 0.1:
        return 2
    if interval < 1:
        return 1
    return 0


def format_number(value: float, *, interval: float | None = None) -> str:
    if not np.isfinite(value):
        return str(value)
    decimals = fraction_digits_for_interval(interval)
    d = Decimal(str(value))
    quant = Decimal("1").scaleb(-decimals)
    try:
        q = d.quantize(quant, rounding=ROUND_HALF_EVEN)
    except InvalidOperation:
        q = d
    out = format(q, ",f")
    # Fraction digits are a maximum, not a minimum.
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    if out == "-0":
        out = "0"
    return out
