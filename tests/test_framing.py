import unittest
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from smartzoom import config as cfg
from smartzoom.framing import (
    REST_TARGET,
    HysteresisGate,
    Landmark,
    Measurement,
    bounding_box,
    exceeds_deadband,
    extract_measurement,
)


def square_hand(cx, cy, size):
    half = size / 2
    return [
        Landmark(cx - half, cy - half),
        Landmark(cx + half, cy - half),
        Landmark(cx, cy),
        Landmark(cx + half, cy + half),
    ]


class TestMeasurementExtractor(unittest.TestCase):
    def test_no_hands(self):
        self.assertIsNone(extract_measurement([]))

    def test_centered_hand(self):
        """size 0.25 with padding 2 fills half the view -> 2x, no pan."""
        m = extract_measurement([square_hand(0.5, 0.5, 0.25)], padding=2.0)
        self.assertEqual(m.zoom, 2.0)
        self.assertEqual((m.x, m.y), (0.0, 0.0))

    def test_pan_recenters_subject(self):
        m = extract_measurement([square_hand(0.8, 0.3, 0.25)])
        self.assertAlmostEqual(m.x, -0.3)
        self.assertAlmostEqual(m.y, 0.2)

    def test_box_spans_all_hands(self):
        left = square_hand(0.2, 0.5, 0.1)
        right = square_hand(0.8, 0.5, 0.1)
        box = bounding_box([left, right])
        self.assertAlmostEqual(box.min_x, 0.15)
        self.assertAlmostEqual(box.max_x, 0.85)
        self.assertAlmostEqual(box.center[0], 0.5)
        self.assertAlmostEqual(box.size, 0.7)

    def test_larger_padding_means_less_zoom(self):
        hand = [square_hand(0.5, 0.5, 0.15)]
        tight = extract_measurement(hand, padding=2.0)
        loose = extract_measurement(hand, padding=3.0)
        self.assertLess(loose.zoom, tight.zoom)

    def test_zoom_clamped_to_range(self):
        big = extract_measurement([square_hand(0.5, 0.5, 0.9)])
        self.assertEqual(big.zoom, cfg.MIN_ZOOM)
        small = extract_measurement([square_hand(0.5, 0.5, 0.01)])
        self.assertEqual(small.zoom, cfg.MAX_ZOOM)

    def test_zero_size_box_falls_back_to_max_zoom(self):
        m = extract_measurement([[Landmark(0.4, 0.6)]])
        self.assertEqual(m.zoom, cfg.MAX_ZOOM)
        self.assertAlmostEqual(m.x, 0.1)
        self.assertAlmostEqual(m.y, -0.1)

    def test_empty_hand_is_skipped(self):
        hand = square_hand(0.5, 0.5, 0.25)
        self.assertEqual(extract_measurement([[], hand]), extract_measurement([hand]))
        self.assertIsNone(extract_measurement([[], []]))

    def test_non_finite_points_are_skipped(self):
        hand = square_hand(0.5, 0.5, 0.25) + [Landmark(float("nan"), 0.9)]
        m = extract_measurement([hand])
        self.assertEqual(m.zoom, 2.0)
        self.assertIsNone(extract_measurement([[Landmark(float("inf"), 0.5)]]))


class TestHysteresisGate(unittest.TestCase):
    def setUp(self):
        self.gate = HysteresisGate(zoom_threshold=0.1, pan_threshold=0.025)

    def test_starts_at_rest(self):
        self.assertEqual(self.gate.committed, REST_TARGET)

    def test_small_change_is_ignored(self):
        before = self.gate.committed
        committed = self.gate.offer(Measurement(0.01, 0.01, 1.05))
        self.assertFalse(committed)
        self.assertIs(self.gate.committed, before)

    def test_pan_change_replaces_target(self):
        candidate = Measurement(0.03, 0.0, 1.0)
        self.assertTrue(self.gate.offer(candidate))
        self.assertIs(self.gate.committed, candidate)

    def test_zoom_change_replaces_target(self):
        candidate = Measurement(0.0, 0.0, 1.2)
        self.assertTrue(self.gate.offer(candidate))
        self.assertIs(self.gate.committed, candidate)

    def test_force_rest_ignores_thresholds(self):
        self.gate.offer(Measurement(0.2, 0.1, 2.0))
        self.gate.force_rest()
        self.assertEqual(self.gate.committed, Measurement(0.0, 0.0, 1.0))

    def test_exceeds_deadband_is_strict(self):
        base = Measurement(0.0, 0.0, 1.0)
        self.assertFalse(exceeds_deadband(base, Measurement(0.0, 0.0, 1.0), 0.1, 0.025))
        self.assertTrue(exceeds_deadband(base, Measurement(0.0, 0.02, 1.5), 0.1, 0.025))


if __name__ == '__main__':
    unittest.main()
