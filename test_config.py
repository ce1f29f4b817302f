import unittest
from config import config, SimulationConfig, ConfigurationError, SECONDS_PER_DAY

class TestConfigValidation(unittest.TestCase):

    def test_default_config_is_valid(self):
        config.validate()
        self.assertEqual(config.Time.SPEED_TABLE[config.Time.REAL_TIME_FORWARD_INDEX], 1 / SECONDS_PER_DAY)
        self.assertEqual(config.Time.SPEED_TABLE[config.Time.DEFAULT_SPEED_INDEX], 1.0)

    def test_unordered_speed_table(self):
        class BadConfig(SimulationConfig):
            class Time(SimulationConfig.Time):
                SPEED_TABLE = list(reversed(SimulationConfig.Time.SPEED_TABLE))
        with self.assertRaises(ConfigurationError):
            BadConfig()

    def test_speed_index_out_of_range(self):
        class BadConfig(SimulationConfig):
            class Time(SimulationConfig.Time):
                DEFAULT_SPEED_INDEX = 99
        with self.assertRaises(ConfigurationError):
            BadConfig()

    def test_eccentricity_clamp_bounds(self):
        class BadConfig(SimulationConfig):
            class Orbit(SimulationConfig.Orbit):
                ECCENTRICITY_CLAMP = 1.0
        with self.assertRaises(ConfigurationError):
            BadConfig()

    def test_earth_required(self):
        class BadConfig(SimulationConfig):
            class SolarSystem(SimulationConfig.SolarSystem):
                EARTH_NAME = 'Terra'
        with self.assertRaises(ConfigurationError):
            BadConfig()

    def test_zoom_bounds(self):
        class BadConfig(SimulationConfig):
            class Visualization(SimulationConfig.Visualization):
                MIN_ZOOM = 2.0
        with self.assertRaises(ConfigurationError):
            BadConfig()

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
