from __future__ import annotations

import numpy as np

from timechart.scales import Viewport
from timechart.series import Series


def windowed_values(series: Series, viewport: Viewport) -> tuple[np.ndarray, np.ndarray]:
    """Points of ``series`` needed to draw ``viewport``, padded by one point per side.

    Holds the series lock only for the slice; the returned arrays are read-only views.
    """
    with series.read() as (xs, ys):
        return window_arrays(xs, ys, viewport)


def window_arrays(xs: np.ndarray, ys: np.ndarray, viewport: Viewport) -> tuple[np.ndarray, np.ndarray]:
    if viewport.show_all:
        return xs, ys
    lo = int(np.searchsorted(xs, viewport.start, side="left"))
    hi = int(np.searchsorted(xs, viewport.end, side="right"))
    # Keep the neighbours just outside the window so edge segments reach the border.
    lo = max(0, lo - 1)
    hi = min(int(xs.size), hi + 1)
    return xs[lo:hi], ys[lo:hi]
