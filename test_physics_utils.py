import math
import unittest
import numpy as np
from physics_utils import (
    TWO_PI, OrreryError, InvalidOrbitalElements, AnomalyComputationError, DegenerateOrbitError,
    is_real_number, is_finite_number, all_finite, normalize_angle, normalize_degrees,
)

class TestNumberChecks(unittest.TestCase):

    def test_real_numbers(self):
        self.assertTrue(is_real_number(1))
        self.assertTrue(is_real_number(1.5))
        self.assertTrue(is_real_number(np.float64(2.0)))
        self.assertFalse(is_real_number("1.0"))
        self.assertFalse(is_real_number(None))

    def test_bools_are_not_numbers(self):
        self.assertFalse(is_real_number(True))
        self.assertFalse(is_finite_number(False))
        self.assertFalse(is_finite_number(np.bool_(True)))

    def test_finite_numbers(self):
        self.assertTrue(is_finite_number(0.0))
        self.assertFalse(is_finite_number(float('nan')))
        self.assertFalse(is_finite_number(float('inf')))
        self.assertFalse(is_finite_number(float('-inf')))

    def test_all_finite(self):
        self.assertTrue(all_finite([1.0, 2.0, 3.0]))
        self.assertTrue(all_finite(np.zeros((4, 3))))
        self.assertFalse(all_finite([1.0, float('nan')]))
        self.assertFalse(all_finite(np.array([[0.0, np.inf, 0.0]])))
        self.assertTrue(all_finite(5.0))

class TestNormalizeAngle(unittest.TestCase):

    def test_in_range_unchanged(self):
        self.assertAlmostEqual(normalize_angle(1.0), 1.0)
        self.assertEqual(normalize_angle(0.0), 0.0)

    def test_negative_wraps(self):
        self.assertAlmostEqual(normalize_angle(-math.pi / 2), 3 * math.pi / 2)

    def test_large_wraps(self):
        self.assertAlmostEqual(normalize_angle(5 * math.pi), math.pi)
        self.assertAlmostEqual(normalize_angle(TWO_PI), 0.0)

    def test_result_strictly_below_two_pi(self):
        for angle in (-1e-18, -1e-300, TWO_PI, 1000 * TWO_PI, -TWO_PI):
            wrapped = normalize_angle(angle)
            self.assertGreaterEqual(wrapped, 0.0)
            self.assertLess(wrapped, TWO_PI)

    def test_non_finite_passthrough(self):
        self.assertTrue(math.isnan(normalize_angle(float('nan'))))
        self.assertTrue(math.isinf(normalize_angle(float('inf'))))

    def test_normalize_degrees(self):
        self.assertEqual(normalize_degrees(-30.0), 330.0)
        self.assertEqual(normalize_degrees(45.0), 45.0)

class TestErrorTaxonomy(unittest.TestCase):

    def test_hierarchy(self):
        for error_cls in (InvalidOrbitalElements, AnomalyComputationError, DegenerateOrbitError):
            self.assertTrue(issubclass(error_cls, OrreryError))
        self.assertFalse(issubclass(InvalidOrbitalElements, AnomalyComputationError))

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
