from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone, tzinfo
from enum import IntEnum
from zoneinfo import ZoneInfo


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


class CalendarField(IntEnum):
    """Calendar fields ordered from finest to coarsest."""

    MILLISECOND = 0
    SECOND = 1
    MINUTE = 2
    HOUR = 3
    DAY = 4
    MONTH = 5
    YEAR = 6

    @property
    def coarser(self) -> "CalendarField | None":
        if self is CalendarField.YEAR:
            return None
        return CalendarField(self.value + 1)


_FIXED_UNITS = {
    CalendarField.MILLISECOND: timedelta(milliseconds=1),
    CalendarField.SECOND: timedelta(seconds=1),
    CalendarField.MINUTE: timedelta(minutes=1),
    CalendarField.HOUR: timedelta(hours=1),
}


def resolve_timezone(tz: str | tzinfo | None) -> tzinfo:
    if tz is None:
        return timezone.utc
    if isinstance(tz, tzinfo):
        return tz
    if tz.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(tz)


def from_millis(ms: int, tz: tzinfo) -> datetime:
    return (_EPOCH + timedelta(milliseconds=int(ms))).astimezone(tz)


def to_millis(dt: datetime) -> int:
    return (dt - _EPOCH) // _ONE_MS


def field_value(dt: datetime, field: CalendarField) -> int:
    if field is CalendarField.MILLISECOND:
        return dt.microsecond // 1000
    if field is CalendarField.SECOND:
        return dt.second
    if field is CalendarField.MINUTE:
        return dt.minute
    if field is CalendarField.HOUR:
        return dt.hour
    if field is CalendarField.DAY:
        return dt.day
    if field is CalendarField.MONTH:
        return dt.month
    return dt.year


def field_minimum(field: CalendarField) -> int:
    if field in (CalendarField.DAY, CalendarField.MONTH, CalendarField.YEAR):
        return 1
    return 0


def field_maximum(dt: datetime, field: CalendarField) -> int:
    if field is CalendarField.MILLISECOND:
        return 999
    if field in (CalendarField.SECOND, CalendarField.MINUTE):
        return 59
    if field is CalendarField.HOUR:
        return 23
    if field is CalendarField.DAY:
        return last_day_of_month(dt.year, dt.month)
    if field is CalendarField.MONTH:
        return 12
    return 9999


def last_day_of_month(year: int, month: int) -> int:
    return int(calendar.monthrange(int(year), int(month))[1])


def set_field(dt: datetime, field: CalendarField, value: int) -> datetime:
    lo = field_minimum(field)
    hi = field_maximum(dt, field)
    if value < lo or value > hi:
        raise ValueError(f"{field.name.lower()} value out of range: {value}")
    if field is CalendarField.MILLISECOND:
        return dt.replace(microsecond=value * 1000)
    if field is CalendarField.SECOND:
        return dt.replace(second=value)
    if field is CalendarField.MINUTE:
        return dt.replace(minute=value)
    if field is CalendarField.HOUR:
        return dt.replace(hour=value)
    if field is CalendarField.DAY:
        return dt.replace(day=value)
    if field is CalendarField.MONTH:
        return dt.replace(month=value, day=min(dt.day, last_day_of_month(dt.year, value)))
    return dt.replace(year=value, day=min(dt.day, last_day_of_month(value, dt.month)))


def floor_to_field(dt: datetime, field: CalendarField) -> datetime:
    """Reset every field finer than ``field`` to its minimum value."""
    out = dt
    for finer in CalendarField:
        if finer >= field:
            break
        out = set_field(out, finer, field_minimum(finer))
    return out


def add_field(dt: datetime, field: CalendarField, amount: int) -> datetime:
    """Calendar arithmetic with carry: sub-day units are absolute, day and up are wall-clock."""
    if amount == 0:
        return dt
    if field in _FIXED_UNITS:
        shifted = dt.astimezone(timezone.utc) + _FIXED_UNITS[field] * amount
        return shifted.astimezone(dt.tzinfo)
    if field is CalendarField.DAY:
        return dt + timedelta(days=amount)
    months = amount if field is CalendarField.MONTH else amount * 12
    return add_months(dt, months)


def add_months(dt: datetime, months: int) -> datetime:
    if months == 0:
        return dt
    total = (dt.year * 12) + (dt.month - 1) + int(months)
    year = total // 12
    month = (total % 12) + 1
    day = min(dt.day, last_day_of_month(year, month))
    return dt.replace(year=year, month=month, day=day)


def snap_forward(dt: datetime, field: CalendarField, interval: int) -> datetime:
    """Move ``dt`` to the next ``field`` value on the interval grid, carrying when needed.

    Grid values are ``minimum + k * interval``; the chosen value is strictly greater
    than the current one. When the grid is exhausted the field resets to its minimum
    and the next coarser field advances by one.
    """
    if interval <= 0:
        raise ValueError("interval must be > 0")
    lo = field_minimum(field)
    hi = field_maximum(dt, field)
    current = field_value(dt, field)
    candidate = lo + ((current - lo) // interval + 1) * interval
    if candidate <= hi:
        return set_field(dt, field, candidate)
    coarser = field.coarser
    if coarser is None:
        raise OverflowError(f"cannot advance {field.name.lower()} beyond {hi}")
    return add_field(set_field(dt, field, lo), coarser, 1)
