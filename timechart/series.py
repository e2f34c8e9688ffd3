from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import threading
from typing import Any, Iterator, Protocol

import numpy as np

from timechart.adapters import normalize_points
from timechart.errors import InvalidArgumentError


NO_DATA_TAG = "GRAPH_NO_DATA_TAG"


@dataclass(frozen=True)
class DataPoint:
    x: int
    y: float


@dataclass(frozen=True)
class SeriesStyle:
    color: tuple[int, int, int, int] = (0, 119, 204, 255)
    thickness: int = 3
    draw_data_points: bool = False
    data_point_radius: float = 10.0
    draw_background: bool = False
    background_color: tuple[int, int, int, int] = (20, 40, 60, 128)

    def __post_init__(self) -> None:
        if self.thickness <= 0:
            raise InvalidArgumentError("thickness must be > 0")
        if self.data_point_radius < 0:
            raise InvalidArgumentError("data_point_radius must be >= 0")


class SeriesObserver(Protocol):
    def on_series_changed(self, series: "Series", *, scroll_to_end: bool = False) -> None:
        ...


class Series:
    """Named, x-ordered sequence of points guarded by its own lock.

    Point arrays are replaced rather than mutated, so a reader that obtained them
    through ``read()`` keeps a consistent snapshot after the lock is released.
    """

    def __init__(
        self,
        points: Any = None,
        *,
        x: Any = None,
        y: Any = None,
        data: Any = None,
        description: str | None = None,
        style: SeriesStyle | None = None,
    ) -> None:
        if points is None and x is None and y is None:
            x_ms = np.empty(0, dtype=np.int64)
            y_vals = np.empty(0, dtype=np.float64)
        else:
            x_ms, y_vals = normalize_points(points, x=x, y=y, data=data)
        self.description = description
        self.style = style or SeriesStyle()
        self._lock = threading.Lock()
        self._observers: list[SeriesObserver] = []
        self._x, self._y = _freeze(x_ms, y_vals)

    def __len__(self) -> int:
        with self._lock:
            return int(self._x.size)

    def __repr__(self) -> str:
        return f"Series(description={self.description!r}, points={len(self)})"

    @contextmanager
    def read(self) -> Iterator[tuple[np.ndarray, np.ndarray]]:
        with self._lock:
            yield self._x, self._y

    def points(self) -> list[DataPoint]:
        with self.read() as (xs, ys):
            return [DataPoint(x=int(px), y=float(py)) for px, py in zip(xs.tolist(), ys.tolist())]

    def x_bounds(self) -> tuple[int, int] | None:
        with self.read() as (xs, _):
            if xs.size == 0:
                return None
            return (int(xs[0]), int(xs[-1]))

    def append(
        self,
        x: int,
        y: float,
        *,
        scroll_to_end: bool = False,
        max_points: int | None = None,
    ) -> None:
        if max_points is not None and max_points <= 0:
            raise InvalidArgumentError("max_points must be > 0")
        x_ms = int(x)
        with self._lock:
            if self._x.size and x_ms < int(self._x[-1]):
                raise InvalidArgumentError(
                    f"appended x {x_ms} is lower than last x {int(self._x[-1])}; series must stay sorted"
                )
            new_x = np.append(self._x, np.int64(x_ms))
            new_y = np.append(self._y, np.float64(y))
            if max_points is not None and new_x.size > max_points:
                new_x = new_x[-max_points:]
                new_y = new_y[-max_points:]
            self._x, self._y = _freeze(new_x, new_y)
        self._notify(scroll_to_end=scroll_to_end)

    def append_data(
        self,
        points: Any = None,
        *,
        x: Any = None,
        y: Any = None,
        data: Any = None,
        scroll_to_end: bool = False,
        max_points: int | None = None,
    ) -> None:
        if max_points is not None and max_points <= 0:
            raise InvalidArgumentError("max_points must be > 0")
        x_ms, y_vals = normalize_points(points, x=x, y=y, data=data)
        if x_ms.size == 0:
            return
        with self._lock:
            if self._x.size and int(x_ms[0]) < int(self._x[-1]):
                raise InvalidArgumentError(
                    f"appended x {int(x_ms[0])} is lower than last x {int(self._x[-1])}; series must stay sorted"
                )
            new_x = np.concatenate([self._x, x_ms])
            new_y = np.concatenate([self._y, y_vals])
            if max_points is not None and new_x.size > max_points:
                new_x = new_x[-max_points:]
                new_y = new_y[-max_points:]
            self._x, self._y = _freeze(new_x, new_y)
        self._notify(scroll_to_end=scroll_to_end)

    def reset_data(self, points: Any = None, *, x: Any = None, y: Any = None, data: Any = None) -> None:
        if points is None and x is None and y is None:
            x_ms = np.empty(0, dtype=np.int64)
            y_vals = np.empty(0, dtype=np.float64)
        else:
            x_ms, y_vals = normalize_points(points, x=x, y=y, data=data)
        with self._lock:
            self._x, self._y = _freeze(x_ms, y_vals)
        self._notify()

    def attach(self, observer: SeriesObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def detach(self, observer: SeriesObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, *, scroll_to_end: bool = False) -> None:
        for observer in list(self._observers):
            observer.on_series_changed(self, scroll_to_end=scroll_to_end)


def _freeze(x_ms: np.ndarray, y_vals: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    x_ms = np.ascontiguousarray(x_ms, dtype=np.int64)
    y_vals = np.ascontiguousarray(y_vals, dtype=np.float64)
    x_ms.flags.writeable = False
    y_vals.flags.writeable = False
    return x_ms, y_vals
