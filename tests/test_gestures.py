from __future__ import annotations

import unittest

import numpy as np

from timechart.errors import InvalidArgumentError
from timechart.gestures import GestureController, clamp_start, pan_viewport, pinch_viewport
from timechart.scales import Viewport


DATA = (0, 1000)


class _Target:
    def __init__(self) -> None:
        self.pans: list[tuple[float, float]] = []
        self.pinches: list[tuple[float, float]] = []

    def on_pan_delta(self, pixels: float, plot_width_px: float) -> None:
        self.pans.append((pixels, plot_width_px))

    def on_pinch(self, scale_factor: float, plot_width_px: float) -> None:
        self.pinches.append((scale_factor, plot_width_px))


class PanTests(unittest.TestCase):
    def test_pan_converts_pixels_to_time(self) -> None:
        out = pan_viewport(Viewport(start=500, size=100), 50, 200, DATA)
        self.assertEqual(out, Viewport(start=475, size=100))

    def test_pan_clamps_to_min_x(self) -> None:
        out = pan_viewport(Viewport(start=10, size=100), 100, 200, DATA)
        self.assertEqual(out, Viewport(start=0, size=100))

    def test_pan_clamps_to_max_x(self) -> None:
        out = pan_viewport(Viewport(start=850, size=100), -200, 200, DATA)
        self.assertEqual(out, Viewport(start=900, size=100))

    def test_pan_in_show_all_mode_is_a_no_op(self) -> None:
        self.assertEqual(pan_viewport(Viewport(), 50, 200, DATA), Viewport())

    def test_pan_rejects_empty_plot(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            pan_viewport(Viewport(start=0, size=100), 10, 0, DATA)

    def test_clamp_prefers_min_x_when_window_exceeds_data(self) -> None:
        self.assertEqual(clamp_start(50, 2000, data_range=DATA), 0)

    def test_every_pan_step_stays_inside_data(self) -> None:
        rng = np.random.default_rng(3)
        viewport = Viewport(start=400, size=200)
        for dx in rng.uniform(-400, 400, size=100):
            viewport = pan_viewport(viewport, float(dx), 300, DATA)
            self.assertGreaterEqual(viewport.start, DATA[0])
            self.assertLessEqual(viewport.end, DATA[1])


class PinchTests(unittest.TestCase):
    def test_first_pinch_seeds_from_data_range(self) -> None:
        self.assertEqual(pinch_viewport(Viewport(), 2.0, DATA), Viewport(start=250, size=500))

    def test_zoom_out_shifts_left_on_overrun(self) -> None:
        self.assertEqual(pinch_viewport(Viewport(start=800, size=200), 0.5, DATA), Viewport(start=600, size=400))

    def test_zoom_out_past_data_shows_full_range(self) -> None:
        self.assertEqual(pinch_viewport(Viewport(start=250, size=500), 0.1, DATA), Viewport(start=0, size=1000))

    def test_zoom_in_keeps_center(self) -> None:
        out = pinch_viewport(Viewport(start=200, size=400), 4.0, DATA)
        self.assertEqual(out, Viewport(start=350, size=100))

    def test_pinch_rejects_non_positive_factor(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            pinch_viewport(Viewport(), 0.0, DATA)

    def test_pinch_without_data_extent_is_ignored(self) -> None:
        with self.assertLogs("timechart.gestures", level="WARNING"):
            self.assertEqual(pinch_viewport(Viewport(), 2.0, (5, 5)), Viewport())

    def test_clamp_invariant_holds_for_pinch_sequences(self) -> None:
        rng = np.random.default_rng(5)
        for _ in range(20):
            viewport = Viewport()
            for factor in rng.uniform(0.2, 4.0, size=30):
                viewport = pinch_viewport(viewport, float(factor), DATA)
                self.assertGreaterEqual(viewport.start, DATA[0])
                self.assertLessEqual(viewport.end, DATA[1])
                self.assertGreaterEqual(viewport.size, 1)


class GestureControllerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.target = _Target()
        self.controller = GestureController(self.target)

    def test_touch_ignored_unless_scrollable(self) -> None:
        self.assertFalse(self.controller.touch_down(10))
        self.assertEqual(self.controller.phase, "idle")

    def test_pan_phase_emits_deltas(self) -> None:
        self.controller.scrollable = True
        self.assertTrue(self.controller.touch_down(100))
        self.assertEqual(self.controller.phase, "panning")
        self.controller.touch_move(130, 200)
        self.controller.touch_move(120, 200)
        self.controller.touch_up()
        self.assertEqual(self.target.pans, [(30.0, 200), (-10.0, 200)])
        self.assertEqual(self.controller.phase, "idle")

    def test_disable_touch_blocks_gestures(self) -> None:
        self.controller.set_scalable(True)
        self.controller.disable_touch = True
        self.assertFalse(self.controller.touch_down(0))
        self.assertFalse(self.controller.pinch_begin())

    def test_scalable_implies_scrollable(self) -> None:
        self.controller.set_scalable(True)
        self.assertTrue(self.controller.scrollable)

    def test_pinch_intercepts_pan(self) -> None:
        self.controller.set_scalable(True)
        self.controller.touch_down(100)
        self.assertTrue(self.controller.pinch_begin())
        self.assertEqual(self.controller.phase, "pinching")
        self.assertFalse(self.controller.touch_move(150, 200))
        self.assertTrue(self.controller.pinch(2.0, 200))
        self.assertTrue(self.controller.pinch_end())
        self.assertEqual(self.target.pans, [])
        self.assertEqual(self.target.pinches, [(2.0, 200)])
        self.assertEqual(self.controller.phase, "idle")

    def test_pinch_needs_scalable(self) -> None:
        self.controller.scrollable = True
        self.assertFalse(self.controller.pinch_begin())
        self.assertFalse(self.controller.pinch(2.0, 200))


if __name__ == "__main__":
    unittest.main()
