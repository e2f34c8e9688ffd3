from __future__ import annotations

from datetime import datetime, timezone, tzinfo
import math
import unittest
from zoneinfo import ZoneInfoNotFoundError

import numpy as np

from timechart.civil import CalendarField, from_millis, resolve_timezone, to_millis
from timechart.labels import (
    DAY,
    DEFAULT_DISPLAY_MODES,
    HOUR,
    LEVEL_HOUR,
    MINUTE,
    ONE_DAY,
    ONE_HOUR,
    ONE_MINUTE,
    QUARTER_DAY,
    QUARTER_HOUR,
    WEEK,
    YEAR,
    DisplayMode,
    generate_horizontal_labels,
    generate_vertical_labels,
    select_display_mode,
    vertical_step_count,
)
from timechart.scales import format_number


def ms(*args: int) -> int:
    return to_millis(datetime(*args, tzinfo=timezone.utc))


class _NumericFormatter:
    def format_label(self, diff: float, is_x: bool) -> DisplayMode | None:
        return None


class _ClockFormatter:
    mode = DisplayMode("CLOCK", CalendarField.HOUR, 1, LEVEL_HOUR, "%H:%M", 12 * ONE_HOUR)

    def format_label(self, diff: float, is_x: bool) -> DisplayMode | None:
        return self.mode if is_x else None


FIXED_STEP_MS = {
    MINUTE: ONE_MINUTE,
    QUARTER_HOUR: 15 * ONE_MINUTE,
    HOUR: ONE_HOUR,
    QUARTER_DAY: 6 * ONE_HOUR,
    DAY: ONE_DAY,
}


class DisplayModeSelectionTests(unittest.TestCase):
    def test_threshold_is_exclusive(self) -> None:
        self.assertIs(select_display_mode(DAY.threshold_span - 1), DAY)
        self.assertIs(select_display_mode(DAY.threshold_span), WEEK)

    def test_finest_mode_for_short_spans(self) -> None:
        self.assertIs(select_display_mode(0), MINUTE)
        self.assertIs(select_display_mode(5 * ONE_MINUTE), MINUTE)

    def test_coarsest_mode_is_the_fallback(self) -> None:
        self.assertIs(select_display_mode(500 * 365 * ONE_DAY), YEAR)
        self.assertIs(select_display_mode(5 * ONE_DAY, modes=(MINUTE, HOUR)), HOUR)

    def test_modes_need_not_be_ordered(self) -> None:
        self.assertIs(select_display_mode(2 * ONE_HOUR, modes=tuple(reversed(DEFAULT_DISPLAY_MODES))), QUARTER_HOUR)

    def test_display_mode_validation(self) -> None:
        with self.assertRaises(ValueError):
            DisplayMode("BAD", CalendarField.DAY, 0, 2, "%d", ONE_DAY)


class HorizontalLabelTests(unittest.TestCase):
    def test_hour_labels_are_aligned_and_inside_span(self) -> None:
        start = ms(2024, 1, 1, 10, 30)
        out = generate_horizontal_labels(start, start + 5 * ONE_HOUR)
        self.assertIs(out.mode, HOUR)
        self.assertEqual(list(out.labels.values()), ["11h", "12h", "13h", "14h", "15h"])
        self.assertEqual(list(out.labels), sorted(out.labels))
        self.assertEqual(next(iter(out.labels)), ms(2024, 1, 1, 11))

    def test_day_labels_cross_month_end(self) -> None:
        start = ms(2024, 2, 27, 12)
        out = generate_horizontal_labels(start, start + 4 * ONE_DAY)
        self.assertIs(out.mode, DAY)
        self.assertEqual(list(out.labels.values()), ["28/02", "29/02", "01/03", "02/03"])

    def test_quarter_day_labels_carry_past_midnight(self) -> None:
        start = ms(2024, 1, 1, 22)
        out = generate_horizontal_labels(start, start + ONE_DAY)
        self.assertIs(out.mode, QUARTER_DAY)
        self.assertEqual(next(iter(out.labels)), ms(2024, 1, 2, 0))
        self.assertEqual(list(out.labels.values()), ["00h", "06h", "12h", "18h"])

    def test_zero_span_yields_single_label(self) -> None:
        start = ms(2024, 1, 1, 10)
        out = generate_horizontal_labels(start, start)
        self.assertEqual(list(out.labels), [start])
        self.assertLessEqual(len(generate_horizontal_labels(start, start - 10).labels), 1)

    def test_no_data_yields_empty_set(self) -> None:
        out = generate_horizontal_labels(0, 10 * ONE_DAY, has_data=False)
        self.assertEqual(out.labels, {})
        self.assertIsNotNone(out.mode)

    def test_formatter_without_mode_falls_back_to_numbers(self) -> None:
        start = ms(2024, 1, 1, 10, 30)
        diff = 5 * ONE_HOUR
        out = generate_horizontal_labels(start, start + diff, formatter=_NumericFormatter())
        self.assertIs(out.mode, HOUR)
        for stamp, text in out.labels.items():
            self.assertEqual(text, format_number(float(stamp), interval=float(diff)))

    def test_formatter_mode_drives_bucket_and_text(self) -> None:
        start = ms(2024, 1, 1, 10, 30)
        out = generate_horizontal_labels(start, start + 3 * ONE_HOUR, formatter=_ClockFormatter())
        self.assertIs(out.mode, _ClockFormatter.mode)
        self.assertEqual(list(out.labels.values()), ["11:00", "12:00", "13:00"])

    def test_label_count_is_bounded_by_span(self) -> None:
        rng = np.random.default_rng(11)
        for _ in range(200):
            start = int(rng.integers(ms(2000, 1, 1), ms(2030, 1, 1)))
            diff = int(rng.integers(1, DAY.threshold_span))
            out = generate_horizontal_labels(start, start + diff)
            step = FIXED_STEP_MS[out.mode]
            self.assertLessEqual(len(out.labels), math.ceil(diff / step) + 1)
            stamps = list(out.labels)
            self.assertEqual(stamps, sorted(stamps))
            for stamp in stamps:
                self.assertGreater(stamp, start)
                self.assertLess(stamp, start + diff)



class LocalTimeLabelTests(unittest.TestCase):
    def setUp(self) -> None:
        try:
            self.tz: tzinfo = resolve_timezone("Europe/Paris")
        except ZoneInfoNotFoundError:
            self.skipTest("IANA time zone data is not installed")

    def test_day_labels_stay_at_local_midnight_across_dst(self) -> None:
        start = to_millis(datetime(2024, 3, 29, 12, tzinfo=self.tz))
        end = to_millis(datetime(2024, 4, 2, 12, tzinfo=self.tz))
        out = generate_horizontal_labels(start, end, tz=self.tz)
        self.assertIs(out.mode, DAY)
        self.assertEqual(list(out.labels.values()), ["30/03", "31/03", "01/04", "02/04"])
        for stamp in out.labels:
            local = from_millis(stamp, self.tz)
            self.assertEqual((local.hour, local.minute), (0, 0))
        stamps = list(out.labels)
        gaps = [b - a for a, b in zip(stamps, stamps[1:])]
        self.assertEqual(gaps, [ONE_DAY, ONE_DAY - ONE_HOUR, ONE_DAY])

    def test_hour_labels_skip_the_spring_forward_gap(self) -> None:
        start = to_millis(datetime(2024, 3, 31, 0, 30, tzinfo=self.tz))
        out = generate_horizontal_labels(start, start + 4 * ONE_HOUR, tz=self.tz)
        self.assertIs(out.mode, HOUR)
        self.assertEqual(list(out.labels.values()), ["01h", "03h", "04h", "05h"])
        stamps = list(out.labels)
        self.assertEqual([b - a for a, b in zip(stamps, stamps[1:])], [ONE_HOUR] * 3)


class VerticalLabelTests(unittest.TestCase):
    def test_n_steps_give_n_plus_one_descending_slots(self) -> None:
        out = generate_vertical_labels(0.0, 10.0, 5)
        self.assertEqual(len(out.labels), 6)
        self.assertEqual(out.labels[0], "10")
        self.assertEqual(out.labels[5], "0")
        self.assertEqual([out.labels[slot] for slot in range(6)], ["10", "8", "6", "4", "2", "0"])
        self.assertEqual(out.values, (0.0, 2.0, 4.0, 6.0, 8.0, 10.0))
        self.assertEqual(out.interval, 2.0)

    def test_degenerate_range_is_widened_first(self) -> None:
        out = generate_vertical_labels(0.0, 0.0, 2)
        self.assertEqual([out.labels[slot] for slot in range(3)], ["1", "0.5", "0"])

    def test_manual_interval(self) -> None:
        out = generate_vertical_labels(0.0, 100.0, 4, interval=25.0)
        self.assertEqual([out.labels[slot] for slot in range(5)], ["100", "75", "50", "25", "0"])

    def test_zero_steps_gives_single_label(self) -> None:
        out = generate_vertical_labels(3.0, 7.0, 0)
        self.assertEqual(out.labels, {0: "3"})

    def test_no_data_yields_empty_set(self) -> None:
        self.assertEqual(generate_vertical_labels(0.0, 1.0, 4, has_data=False).labels, {})

    def test_step_count_from_plot_height(self) -> None:
        self.assertEqual(vertical_step_count(300.0, 20.0), 5)
        self.assertEqual(vertical_step_count(300.0, 20.0, num_labels=4), 3)
        self.assertEqual(vertical_step_count(300.0, 20.0, pitch_factor=1.5), 10)

    def test_step_count_warns_when_no_room(self) -> None:
        with self.assertLogs("timechart.labels", level="WARNING"):
            self.assertEqual(vertical_step_count(10.0, 20.0), 0)
        with self.assertLogs("timechart.labels", level="WARNING"):
            self.assertEqual(vertical_step_count(-5.0, 20.0), 0)


if __name__ == "__main__":
    unittest.main()
