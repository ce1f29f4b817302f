import os
import unittest
import numpy as np

os.environ.setdefault('SDL_VIDEODRIVER', 'dummy')

import pygame
from config import config, J2000_JD
from environment import OrreryEnvironment
from meteor_showers import MeteorShower
from simulation_clock import SimulationClock
from solarsystem import KIND_SHOWER_PARENT, KIND_SHOWER_STREAM
from visualization import Visualization

class TestVisualization(unittest.TestCase):

    def setUp(self):
        self.environment = OrreryEnvironment(clock=SimulationClock(julian_date=J2000_JD))
        self.visualization = Visualization()
        if not self.visualization.visualization_enabled:
            self.skipTest("No pygame display available.")

    def tearDown(self):
        self.visualization.close()

    def test_world_to_screen(self):
        center = (config.Visualization.SCREEN_WIDTH_PX // 2, config.Visualization.SCREEN_HEIGHT_PX // 2)
        self.assertEqual(self.visualization.world_to_screen(np.zeros(3)), center)
        x, y = self.visualization.world_to_screen(np.array([1.0, 1.0, 0.0]))
        self.assertEqual(x - center[0], int(config.Visualization.PIXELS_PER_AU))
        # screen y grows downward
        self.assertLess(y, center[1])

    def test_zoom_is_clamped(self):
        for _ in range(100):
            self.visualization.zoom_by(2.0)
        self.assertEqual(self.visualization.zoom_level, config.Visualization.MAX_ZOOM)

    def test_keys_issue_clock_commands(self):
        index = self.environment.clock.speed_index
        pygame.event.post(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_RIGHT))
        pygame.event.post(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_SPACE))
        self.assertTrue(self.visualization.handle_events(self.environment))
        self.assertEqual(self.environment.clock.speed_index, index + 1)
        self.assertTrue(self.environment.clock.paused)

    def test_quit(self):
        pygame.event.post(pygame.event.Event(pygame.QUIT))
        self.assertFalse(self.visualization.handle_events(self.environment))

    def test_render_and_hud(self):
        self.visualization.render(self.environment)
        lines = self.visualization.hud_lines(self.environment, self.environment.visible_bodies())
        self.assertEqual(lines[0], '2000-01-01 12:00 UTC')
        self.assertEqual(lines[1], self.environment.clock.label())

    def test_hud_counts_shower_orbits(self):
        stream_record = {'a': 2.0, 'e': 0.5, 'inc': 0.0, 'node': 0.0, 'peri': 0.0}
        stream = self.environment.create_body('Stream', KIND_SHOWER_STREAM, stream_record)
        parent = self.environment.create_body('Parent', KIND_SHOWER_PARENT, dict(stream_record, ma=0.0))
        self.environment.add_shower(MeteorShower('Test shower', 'TST', [stream], parent))
        lines = self.visualization.hud_lines(self.environment, self.environment.visible_bodies())
        self.assertEqual(lines[-1], 'Showers: 1 (2 orbits)')

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
