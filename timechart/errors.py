from __future__ import annotations


class PlotDataError(ValueError):
    """Series input could not be coerced into ordered time/value points."""


class InvalidArgumentError(ValueError):
    pass


class SeriesIndexError(IndexError):
    pass


class ChartStateError(RuntimeError):
    pass
