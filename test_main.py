import argparse
import json
import os
import shutil
import tempfile
import unittest
from unittest import mock
from config import J2000_JD
from main import OrrerySimulation, parse_catalog_arg, main

class TestCatalogArgument(unittest.TestCase):

    def test_valid(self):
        self.assertEqual(parse_catalog_arg('neo=data/neos.json'), ('neo', 'data/neos.json'))

    def test_invalid(self):
        for value in ('neos.json', 'comet=x.json', 'planet=x.json', 'shower_stream=x.json', 'neo='):
            with self.assertRaises(argparse.ArgumentTypeError):
                parse_catalog_arg(value)

class TestHeadlessRun(unittest.TestCase):

    def test_runs_requested_frames(self):
        simulation = OrrerySimulation(render=False, start_jd=J2000_JD)
        self.assertIsNone(simulation.visualization)
        self.assertEqual(simulation.run(max_frames=3), 3)
        self.assertGreaterEqual(simulation.environment.clock.julian_date, J2000_JD)
        simulation.shutdown()
        self.assertTrue(simulation.environment.torn_down)

    def test_shutdown_waits_for_loaders(self):
        temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, temp_dir)
        path = os.path.join(temp_dir, 'neos.json')
        with open(path, 'w', encoding='utf-8') as f:
            json.dump({'Rock': {'orbitParams': {'a': 1.2, 'e': 0.1, 'inc': 1.0, 'node': 2.0, 'peri': 3.0, 'ma': 4.0}}}, f)
        simulation = OrrerySimulation(render=False, start_jd=J2000_JD)
        simulation.load_catalogs([('neo', path)])
        workers = list(simulation.loaders)
        simulation.shutdown()
        self.assertEqual(simulation.loaders, [])
        for worker in workers:
            self.assertFalse(worker.is_alive())

    def test_memory_warning(self):
        simulation = OrrerySimulation(render=False, start_jd=J2000_JD)
        with mock.patch('main.config.Monitoring.MEMORY_USAGE_WARN_MB', 0):
            with self.assertLogs(level='WARNING'):
                simulation.check_memory()
        simulation.shutdown()

    def test_main_exit_code(self):
        self.assertEqual(main(['--headless', '--frames', '2', '--start-jd', str(J2000_JD)]), 0)

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
