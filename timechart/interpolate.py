from __future__ import annotations

import numpy as np


def value_at_fraction(
    xs: np.ndarray,
    ys: np.ndarray,
    *,
    min_x: int,
    max_x: int,
    plot_width_px: float,
    fraction: float,
) -> float:
    """Y of the point nearest (in pixels) to a cursor at ``fraction`` of the plot width.

    The cursor picks between the last point left of it and the first point right of it,
    whichever pixel column is closer; ties go to the left point. No value blending.
    """
    if xs.size == 0:
        return 0.0
    diff = max_x - min_x
    if diff <= 0:
        return float(ys[0])
    width = plot_width_px if plot_width_px > 0 else 1.0
    screen = float(fraction) * width
    px = width * (xs.astype(np.float64) - float(min_x)) / float(diff)
    idx = int(np.searchsorted(px, screen, side="right"))
    if idx >= px.size:
        return float(ys[-1])
    last_px = float(px[idx - 1]) if idx > 0 else 0.0
    span = float(px[idx]) - last_px
    ratio = (screen - last_px) / span if span > 0 else 0.0
    if ratio > 0.5:
        return float(ys[idx])
    return float(ys[max(0, idx - 1)])


def value_at_x(xs: np.ndarray, ys: np.ndarray, x: float) -> float:
    """Linear interpolation at ``x``.

    The right anchor is the first point with a larger x; the left anchor walks back to
    the nearest earlier point with a different y. Returns 0.0 past the last point.
    """
    if xs.size == 0:
        return 0.0
    idx = int(np.searchsorted(xs, x, side="right"))
    if idx >= xs.size:
        # TODO: decide between extrapolating and raising once callers stop relying on 0.0.
        return 0.0
    if idx == 0:
        return float(ys[0])
    x2 = float(xs[idx])
    y2 = float(ys[idx])
    j = idx - 1
    while j > 0 and float(ys[j]) == y2:
        j -= 1
    x1 = float(xs[j])
    y1 = float(ys[j])
    slope = (y2 - y1) / (x2 - x1)
    intercept = y2 - slope * x2
    return slope * float(x) + intercept
