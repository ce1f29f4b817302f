import math
import unittest
from config import config
from orbital_elements import (
    OrbitalElements, validate_orbital_elements, elements_from_record,
    TIME_SYSTEM_JD, TIME_SYSTEM_MJD,
)
from physics_utils import InvalidOrbitalElements

MARS_RECORD = {'a': 1.523679, 'e': 0.0934, 'inc': 1.85, 'node': 49.558, 'peri': 286.502, 'ma': 19.412}

class TestValidateOrbitalElements(unittest.TestCase):

    def test_valid_record_passes(self):
        sanitized = validate_orbital_elements(MARS_RECORD)
        self.assertEqual(sanitized['a'], 1.523679)
        self.assertIsInstance(sanitized['e'], float)

    def test_input_not_mutated(self):
        record = dict(MARS_RECORD, e=1.5)
        validate_orbital_elements(record)
        self.assertEqual(record['e'], 1.5)

    def test_negative_semi_major_axis_rejected(self):
        with self.assertRaises(InvalidOrbitalElements):
            validate_orbital_elements(dict(MARS_RECORD, a=-5))
        with self.assertRaises(InvalidOrbitalElements):
            validate_orbital_elements(dict(MARS_RECORD, a=0))

    def test_non_finite_rejected(self):
        for field_name in ('a', 'e', 'inc', 'node', 'peri'):
            for bad in (float('nan'), float('inf'), "1.0", None, True):
                with self.subTest(field=field_name, value=bad):
                    with self.assertRaises(InvalidOrbitalElements):
                        validate_orbital_elements(dict(MARS_RECORD, **{field_name: bad}))

    def test_missing_required_field(self):
        record = dict(MARS_RECORD)
        del record['peri']
        with self.assertRaises(InvalidOrbitalElements):
            validate_orbital_elements(record)

    def test_optional_mean_anomaly(self):
        record = dict(MARS_RECORD)
        del record['ma']
        self.assertNotIn('ma', validate_orbital_elements(record))
        self.assertNotIn('ma', validate_orbital_elements(dict(record, ma=None)))
        with self.assertRaises(InvalidOrbitalElements):
            validate_orbital_elements(dict(record, ma=float('nan')))

    def test_eccentricity_clamped(self):
        with self.assertLogs(level='WARNING'):
            sanitized = validate_orbital_elements(dict(MARS_RECORD, e=1.2))
        self.assertEqual(sanitized['e'], config.Orbit.ECCENTRICITY_CLAMP)

    def test_negative_eccentricity_rejected(self):
        with self.assertRaises(InvalidOrbitalElements):
            validate_orbital_elements(dict(MARS_RECORD, e=-0.1))

    def test_non_positive_period_rejected(self):
        with self.assertRaises(InvalidOrbitalElements):
            validate_orbital_elements(dict(MARS_RECORD, period=0))

    def test_not_a_mapping(self):
        with self.assertRaises(InvalidOrbitalElements):
            validate_orbital_elements([1, 2, 3])

    def test_long_names_accepted(self):
        record = {
            'semi_major_axis_au': 1.0, 'eccentricity': 0.1, 'inclination_deg': 0.0,
            'longitude_of_ascending_node_deg': 0.0, 'argument_of_perihelion_deg': 0.0,
            'mean_anomaly_at_epoch_deg': 10.0,
        }
        sanitized = validate_orbital_elements(record)
        self.assertEqual(sanitized['a'], 1.0)
        self.assertEqual(sanitized['ma'], 10.0)

    def test_extra_keys_carried(self):
        sanitized = validate_orbital_elements(dict(MARS_RECORD, full_name='Mars'))
        self.assertEqual(sanitized['full_name'], 'Mars')

class TestElementsFromRecord(unittest.TestCase):

    def test_degrees_converted_once(self):
        elements = elements_from_record(MARS_RECORD)
        self.assertIsInstance(elements, OrbitalElements)
        self.assertAlmostEqual(elements.inclination, math.radians(1.85))
        self.assertAlmostEqual(elements.mean_anomaly_at_epoch, math.radians(19.412))
        self.assertTrue(elements.is_propagated)

    def test_default_epochs(self):
        self.assertEqual(elements_from_record(MARS_RECORD).epoch, config.Orbit.DEFAULT_EPOCH_JD)
        mjd = elements_from_record(MARS_RECORD, time_system=TIME_SYSTEM_MJD)
        self.assertEqual(mjd.epoch, config.Orbit.DEFAULT_EPOCH_MJD)
        self.assertEqual(mjd.time_system, TIME_SYSTEM_MJD)

    def test_unknown_time_system(self):
        with self.assertRaises(InvalidOrbitalElements):
            elements_from_record(MARS_RECORD, time_system='tdb')

    def test_curve_only_elements(self):
        record = dict(MARS_RECORD)
        del record['ma']
        self.assertFalse(elements_from_record(record).is_propagated)

    def test_propagated_orbit_requires_mean_anomaly(self):
        record = dict(MARS_RECORD)
        del record['ma']
        with self.assertRaises(InvalidOrbitalElements):
            elements_from_record(record, propagated=True)
        self.assertTrue(elements_from_record(MARS_RECORD, propagated=True).is_propagated)

    def test_curve_only_drops_mean_anomaly(self):
        elements = elements_from_record(MARS_RECORD, propagated=False)
        self.assertFalse(elements.is_propagated)
        self.assertIsNone(elements.mean_anomaly_at_epoch)

    def test_elements_are_frozen(self):
        elements = elements_from_record(MARS_RECORD)
        with self.assertRaises(AttributeError):
            elements.eccentricity = 0.5
        self.assertEqual(record['epoch'], 2460000.5)

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
