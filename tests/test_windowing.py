from __future__ import annotations

import unittest

import numpy as np

from timechart.scales import Viewport
from timechart.series import Series
from timechart.windowing import window_arrays, windowed_values


class WindowingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.series = Series(x=list(range(0, 100, 10)), y=[float(i) for i in range(10)])

    def test_show_all_is_identity(self) -> None:
        xs, ys = windowed_values(self.series, Viewport())
        with self.series.read() as (full_x, full_y):
            self.assertIs(xs, full_x)
            self.assertIs(ys, full_y)

    def test_window_keeps_one_point_past_each_edge(self) -> None:
        xs, _ = windowed_values(self.series, Viewport(start=25, size=30))
        self.assertEqual(xs.tolist(), [20, 30, 40, 50, 60])

    def test_window_on_exact_points(self) -> None:
        xs, _ = windowed_values(self.series, Viewport(start=20, size=20))
        self.assertEqual(xs.tolist(), [10, 20, 30, 40, 50])

    def test_window_at_data_edges_has_no_padding_to_add(self) -> None:
        xs, _ = windowed_values(self.series, Viewport(start=0, size=15))
        self.assertEqual(xs.tolist(), [0, 10, 20])
        xs, _ = windowed_values(self.series, Viewport(start=80, size=50))
        self.assertEqual(xs.tolist(), [70, 80, 90])

    def test_window_before_all_data(self) -> None:
        xs, _ = windowed_values(self.series, Viewport(start=-100, size=50))
        self.assertEqual(xs.tolist(), [0])

    def test_empty_series(self) -> None:
        xs, ys = windowed_values(Series(), Viewport(start=0, size=10))
        self.assertEqual(xs.size, 0)
        self.assertEqual(ys.size, 0)

    def test_window_is_contiguous_with_bounded_padding(self) -> None:
        rng = np.random.default_rng(7)
        for _ in range(50):
            xs = np.unique(rng.integers(0, 10_000, size=int(rng.integers(1, 80)))).astype(np.int64)
            ys = rng.normal(size=xs.size)
            start = int(rng.integers(-500, 10_500))
            size = int(rng.integers(1, 3_000))
            viewport = Viewport(start=start, size=size)
            wx, wy = window_arrays(xs, ys, viewport)

            self.assertEqual(wx.size, wy.size)
            inside = xs[(xs >= start) & (xs <= viewport.end)]
            self.assertTrue(set(inside.tolist()) <= set(wx.tolist()))
            self.assertLessEqual(int(np.count_nonzero(wx < start)), 1)
            self.assertLessEqual(int(np.count_nonzero(wx > viewport.end)), 1)
            if wx.size:
                lo = int(np.searchsorted(xs, wx[0], side="left"))
                self.assertTrue(np.array_equal(xs[lo : lo + wx.size], wx))


if __name__ == "__main__":
    unittest.main()
