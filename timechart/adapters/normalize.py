from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import numpy as np

from timechart.errors import PlotDataError


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


def normalize_points(
    points: Any = None,
    *,
    x: Any = None,
    y: Any = None,
    data: Any = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Coerce chart input into ``(x_ms int64, y float64)`` arrays sorted ascending by x.

    ``points`` may be a sequence of ``(x, y)`` pairs (or objects with ``x``/``y``
    attributes), an ``(N, 2)`` array, or a pandas Series whose index supplies x.
    Alternatively pass ``x`` and ``y`` separately, optionally as column names of ``data``.
    Non-finite points are dropped. Empty input yields empty arrays.
    """
    if points is not None:
        if x is not None or y is not None:
            raise PlotDataError("pass either points or x/y, not both")
        x_raw, y_raw = _split_points(points)
    else:
        if y is None:
            raise PlotDataError("y input is required")
        y_raw = _resolve_input(y, data=data)
        if x is None:
            if pd is not None and isinstance(y_raw, pd.Series):
                x_raw = y_raw.index
            else:
                raise PlotDataError("x input is required for time series")
        else:
            x_raw = _resolve_input(x, data=data)

    x_arr = _coerce_time_axis(x_raw)
    y_arr = _coerce_1d_numeric(y_raw, label="y")
    if x_arr.shape != y_arr.shape:
        raise PlotDataError(f"x and y length mismatch: {x_arr.size} != {y_arr.size}")

    mask = np.isfinite(x_arr) & np.isfinite(y_arr)
    x_arr = x_arr[mask]
    y_arr = y_arr[mask]
    order = np.argsort(x_arr, kind="stable")
    x_ms = np.rint(x_arr[order]).astype(np.int64)
    return x_ms, y_arr[order].astype(np.float64, copy=False)


def _split_points(points: Any) -> tuple[Any, Any]:
    if pd is not None and isinstance(points, pd.Series):
        return points.index, points
    if pd is not None and isinstance(points, pd.DataFrame):
        numeric_cols = [c for c in points.columns if _is_numeric_dtype(points[c])]
        if len(numeric_cols) != 1:
            raise PlotDataError("DataFrame input must contain exactly one numeric column")
        return points.index, points[numeric_cols[0]]
    if isinstance(points, np.ndarray):
        if points.ndim != 2 or points.shape[1] != 2:
            raise PlotDataError("points array must have shape (N, 2)")
        return points[:, 0], points[:, 1]
    if torch is not None and isinstance(points, torch.Tensor):
        if points.ndim != 2 or points.shape[1] != 2:
            raise PlotDataError("points tensor must have shape (N, 2)")
        return points[:, 0], points[:, 1]
    if isinstance(points, Sequence) and not isinstance(points, (str, bytes, bytearray)):
        xs: list[Any] = []
        ys: list[Any] = []
        for i, item in enumerate(points):
            if hasattr(item, "x") and hasattr(item, "y"):
                xs.append(item.x)
                ys.append(item.y)
                continue
            try:
                px, py = item
            except (TypeError, ValueError) as exc:
                raise PlotDataError(f"point at index {i} is not an (x, y) pair: {item!r}") from exc
            xs.append(px)
            ys.append(py)
        return xs, ys
    raise PlotDataError(f"unsupported points input type: {type(points)!r}")


def _resolve_input(value: Any, *, data: Any) -> Any:
    if data is None:
        return value
    if pd is None:
        raise PlotDataError("pandas is required when using `data=`")
    if not isinstance(data, pd.DataFrame):
        raise PlotDataError("`data` must be a pandas DataFrame")
    if isinstance(value, str):
        if value not in data.columns:
            raise PlotDataError(f"column not found: {value}")
        return data[value]
    return value


def _is_numeric_dtype(series: Any) -> bool:
    if pd is None:
        return False
    try:
        return bool(pd.api.types.is_numeric_dtype(series))
    except Exception:
        return False


def _coerce_time_axis(value: Any) -> np.ndarray:
    if pd is not None and isinstance(value, (pd.Index, pd.Series)):
        if pd.api.types.is_datetime64_any_dtype(value.dtype):
            stamps = pd.DatetimeIndex(value)
            if stamps.tz is not None:
                stamps = stamps.tz_convert("UTC").tz_localize(None)
            return _datetime64_to_ms(stamps.to_numpy())
        return _coerce_ndarray(value.to_numpy(), label="x")
    if isinstance(value, np.ndarray) and value.dtype.kind == "M":
        return _datetime64_to_ms(value)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        if any(isinstance(v, datetime) for v in value):
            return np.asarray([_datetime_to_ms(v) for v in value], dtype=np.float64)
    return _coerce_1d_numeric(value, label="x")


def _datetime64_to_ms(arr: np.ndarray) -> np.ndarray:
    ms = arr.astype("datetime64[ms]")
    out = ms.astype(np.int64).astype(np.float64)
    out[np.isnat(ms)] = np.nan
    return out


def _datetime_to_ms(value: Any) -> float:
    if value is None:
        return float("nan")
    if isinstance(value, datetime):
        # Naive datetimes are UTC, matching the datetime64 path.
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return float(round(value.timestamp() * 1000.0))
    return float(value)


def _coerce_1d_numeric(value: Any, *, label: str) -> np.ndarray:
    if torch is not None and isinstance(value, torch.Tensor):
        tensor = value.detach()
        if tensor.ndim != 1:
            raise PlotDataError(f"{label} must be 1-D")
        if tensor.is_cuda:
            tensor = tensor.cpu()
        return tensor.to(torch.float64).numpy()

    if pd is not None and isinstance(value, (pd.Series, pd.Index)):
        if value.ndim != 1:
            raise PlotDataError(f"{label} must be 1-D")
        return _coerce_ndarray(value.to_numpy(), label=label)

    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            raise PlotDataError(f"{label} must be 1-D")
        return _coerce_ndarray(value, label=label)

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return _coerce_ndarray(np.asarray(list(value), dtype=object), label=label)

    raise PlotDataError(f"unsupported {label} input type: {type(value)!r}")


def _coerce_ndarray(arr: np.ndarray, *, label: str) -> np.ndarray:
    if arr.dtype.kind in {"i", "u", "f", "b"}:
        return arr.astype(np.float64, copy=False)

    out = np.empty(arr.shape[0], dtype=np.float64)
    for i, raw in enumerate(arr.tolist()):
        if raw is None:
            out[i] = np.nan
            continue
        if isinstance(raw, Decimal):
            out[i] = float(raw)
            continue
        try:
            out[i] = float(raw)
        except Exception as exc:  # pragma: no cover
            raise PlotDataError(f"{label} contains non-numeric value at index {i}: {raw!r}") from exc
    return out
