import math
import unittest
from meteor_showers import MeteorShower, is_in_stream_range
from orbital_elements import OrbitalElements
from solarsystem import CelestialBody, KIND_SHOWER_STREAM, KIND_SHOWER_PARENT

def make_stream(name, begin=None, end=None):
    metadata = {}
    if begin is not None:
        metadata['true_anomaly_begin'] = begin
    if end is not None:
        metadata['true_anomaly_end'] = end
    elements = OrbitalElements(2.0, 0.7, 0.1, 0.2, 0.3)
    return CelestialBody(name, KIND_SHOWER_STREAM, elements, metadata=metadata)

class TestStreamRange(unittest.TestCase):

    def test_simple_range(self):
        self.assertTrue(is_in_stream_range(45.0, 30.0, 60.0))
        self.assertTrue(is_in_stream_range(30.0, 30.0, 60.0))
        self.assertFalse(is_in_stream_range(61.0, 30.0, 60.0))

    def test_wrapped_range(self):
        self.assertTrue(is_in_stream_range(350.0, 340.0, 10.0))
        self.assertTrue(is_in_stream_range(5.0, 340.0, 10.0))
        self.assertFalse(is_in_stream_range(180.0, 340.0, 10.0))

    def test_negative_angles_shifted(self):
        # -20..20 becomes 340..20
        self.assertTrue(is_in_stream_range(350.0, -20.0, 20.0))
        self.assertTrue(is_in_stream_range(-5.0, -20.0, 20.0))
        self.assertFalse(is_in_stream_range(90.0, -20.0, 20.0))

class TestShowerVisibility(unittest.TestCase):

    def test_update_visibility(self):
        inside = make_stream('inside', 80.0, 100.0)
        outside = make_stream('outside', 200.0, 220.0)
        no_range = make_stream('no range')
        shower = MeteorShower('Test', 'TST', [inside, outside, no_range])
        visible = shower.update_visibility(math.radians(90.0))
        self.assertEqual(visible, 2)
        self.assertTrue(inside.visible)
        self.assertFalse(outside.visible)
        self.assertTrue(no_range.visible)

        shower.update_visibility(math.radians(210.0))
        self.assertFalse(inside.visible)
        self.assertTrue(outside.visible)

    def test_non_finite_bounds_keep_state(self):
        stream = make_stream('nan', float('nan'), 20.0)
        stream.visible = False
        MeteorShower('Test', 'TST', [stream]).update_visibility(0.1)
        self.assertFalse(stream.visible)

    def test_non_finite_earth_anomaly(self):
        stream = make_stream('s', 0.0, 10.0)
        with self.assertLogs(level='WARNING'):
            MeteorShower('Test', 'TST', [stream]).update_visibility(float('nan'))
        self.assertTrue(stream.visible)

    def test_bodies_and_parent_name(self):
        stream = make_stream('s', 0.0, 10.0)
        shower = MeteorShower('Test', 'TST', [stream])
        self.assertEqual(shower.parent_name, 'Unknown')
        parent = CelestialBody('Parent', KIND_SHOWER_PARENT, OrbitalElements(1.3, 0.9, 0.4, 4.6, 5.6, 0.0))
        shower.parent = parent
        self.assertEqual(shower.bodies(), [parent, stream])
        self.assertEqual(shower.parent_name, 'Parent')

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
