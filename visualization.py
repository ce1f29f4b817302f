# visualization.py
import pygame
import numpy as np
import logging
from typing import Dict, List, Optional, Tuple

from config import config, ConfigurationError
from environment import OrreryEnvironment
from simulation_clock import ClockCommand
from solarsystem import CelestialBody, KIND_NEO, KIND_SHOWER_PARENT, KIND_SHOWER_STREAM

# Keyboard bindings for the time controls
KEY_COMMANDS: Dict[int, ClockCommand] = {
    pygame.K_RIGHT: ClockCommand.STEP_FASTER,
    pygame.K_LEFT: ClockCommand.STEP_SLOWER,
    pygame.K_n: ClockCommand.JUMP_TO_NOW,
    pygame.K_f: ClockCommand.FORWARD,
    pygame.K_b: ClockCommand.BACKWARD,
    pygame.K_SPACE: ClockCommand.TOGGLE_PAUSE,
}

class Visualization:
    """Top-down pygame viewer for the orrery.

    Draws the Sun at the origin, every visible body's static orbit curve, each
    propagated body at its current position, and a small HUD with the
    simulated date, the speed label and body counts. The ecliptic x/y plane is
    projected straight onto the screen (z is dropped); screen y grows
    downward, so world +y is flipped.

    The viewer never mutates simulation state directly. Time controls are
    translated into `ClockCommand`s and handed to
    `OrreryEnvironment.apply_clock_command()`.

    Attributes:
        screen (Optional[pygame.Surface]): The display surface, or `None` when
            the display could not be created.
        visualization_enabled (bool): `False` when pygame could not open a
            window; rendering is then skipped entirely.
        clock (Optional[pygame.time.Clock]): Frame limiter.
        font / small_font (Optional[pygame.font.Font]): HUD and label fonts.
        colors (Dict[str, Tuple[int, int, int]]): `config.Visualization.COLORS`.
        zoom_level (float): Multiplier on `config.Visualization.PIXELS_PER_AU`.
        camera_offset (np.ndarray): World (x, y) in AU at the screen centre.
        show_labels (bool): Draw planet names (toggled with `L`).
    """
    def __init__(self):
        """Initializes pygame, the window and fonts.

        Raises:
            ConfigurationError: If the visualization section of the config is
                unusable (missing colours or non-positive screen size).
        """
        self.screen: Optional[pygame.Surface] = None
        self.visualization_enabled = False
        self.clock: Optional[pygame.time.Clock] = None
        self.font = None
        self.small_font = None
        self.zoom_level = 1.0
        self.camera_offset = np.zeros(2, dtype=np.float64)
        self.show_labels = True

        try:
            if config.Visualization.SCREEN_WIDTH_PX <= 0 or config.Visualization.SCREEN_HEIGHT_PX <= 0:
                raise ConfigurationError("Visualization screen dimensions must be positive.")
            self.colors = dict(config.Visualization.COLORS)
            for required in ('background', 'sun', 'ui_text'):
                if required not in self.colors:
                    raise ConfigurationError(f"Visualization.COLORS is missing '{required}'.")

            try:
                pygame.init()
                self.screen = pygame.display.set_mode(
                    (config.Visualization.SCREEN_WIDTH_PX, config.Visualization.SCREEN_HEIGHT_PX))
                pygame.display.set_caption("Orrery")
                self.clock = pygame.time.Clock()
                self.font = pygame.font.Font(None, 24)
                self.small_font = pygame.font.Font(None, 16)
                self.visualization_enabled = True
                logging.info("Visualization initialized successfully.")
            except pygame.error as e_pygame:
                logging.error(f"Pygame initialization failed: {e_pygame}. Visualization disabled.", exc_info=True)
                self.screen = None
                self.visualization_enabled = False
        except ConfigurationError as e_config:
            logging.critical(f"Visualization configuration error: {e_config}", exc_info=True)
            raise

    @property
    def pixels_per_au(self) -> float:
        return config.Visualization.PIXELS_PER_AU * self.zoom_level

    def world_to_screen(self, world_pos: np.ndarray) -> Tuple[int, int]:
        """Projects a heliocentric position (AU) onto the screen.

        Args:
            world_pos (np.ndarray): Position with at least x and y components.

        Returns:
            Tuple[int, int]: Pixel coordinates. Falls back to the screen centre
            for malformed input.
        """
        center_x = config.Visualization.SCREEN_WIDTH_PX / 2
        center_y = config.Visualization.SCREEN_HEIGHT_PX / 2
        try:
            x = (world_pos[0] - self.camera_offset[0]) * self.pixels_per_au
            y = (world_pos[1] - self.camera_offset[1]) * self.pixels_per_au
            if not (np.isfinite(x) and np.isfinite(y)):
                raise ValueError(f"non-finite position {world_pos}")
            return (int(center_x + x), int(center_y - y))
        except (TypeError, ValueError, IndexError) as e_transform:
            logging.error(f"Error in world_to_screen (world_pos: {world_pos}, zoom: {self.zoom_level}): {e_transform}")
            return (int(center_x), int(center_y))

    def curve_to_screen(self, curve: np.ndarray) -> List[Tuple[int, int]]:
        """Vectorized `world_to_screen` for an (N, 3) orbit curve."""
        center = np.array([config.Visualization.SCREEN_WIDTH_PX / 2, config.Visualization.SCREEN_HEIGHT_PX / 2])
        relative = (curve[:, :2] - self.camera_offset) * self.pixels_per_au
        relative[:, 1] *= -1.0
        points = (relative + center).astype(int)
        return [tuple(point) for point in points]

    def orbit_color(self, body: CelestialBody) -> Tuple[int, int, int]:
        if body.kind == KIND_SHOWER_STREAM:
            return self.colors.get('shower_orbit' if body.visible else 'shower_orbit_hidden', (93, 92, 210))
        if body.kind == KIND_SHOWER_PARENT:
            return self.colors.get('parent_orbit', (2, 0, 185))
        if body.kind == KIND_NEO:
            return self.colors.get('neo_orbit', (205, 0, 0))
        return self.colors.get('planet_orbit', (70, 70, 90))

    def render(self, environment: OrreryEnvironment):
        """Draws one frame: background, Sun, orbit curves, bodies and the HUD.

        Args:
            environment (OrreryEnvironment): Source of bodies and the clock.
        """
        if not self.visualization_enabled or self.screen is None:
            return

        try:
            self.screen.fill(self.colors['background'])
            bodies = environment.visible_bodies()

            self._draw_orbits(bodies)
            pygame.draw.circle(self.screen, self.colors['sun'], self.world_to_screen(np.zeros(2)),
                               max(3, int(0.05 * self.pixels_per_au)))
            self._draw_bodies(bodies)
            self._draw_hud(environment, bodies)

            pygame.display.flip()
            if self.clock:
                self.clock.tick(config.Visualization.FPS)
        except pygame.error as e_pygame_render:
            logging.error(f"Pygame error during render: {e_pygame_render}. Attempting to continue.", exc_info=True)

    def _draw_orbits(self, bodies: List[CelestialBody]):
        for body in bodies:
            if body.orbit_curve is None:
                continue
            points = self.curve_to_screen(body.orbit_curve)
            if len(points) > 1:
                pygame.draw.lines(self.screen, self.orbit_color(body), True, points, 1)

    def _draw_bodies(self, bodies: List[CelestialBody]):
        for body in bodies:
            # Streams are orbit curves only
            if body.kind == KIND_SHOWER_STREAM:
                continue
            screen_pos = self.world_to_screen(body.position)
            color = tuple(body.render_params.get('color', self.colors.get('neo', (255, 255, 255))))
            radius = int(body.render_params.get('radius_px', config.Visualization.NEO_RADIUS_PX))
            pygame.draw.circle(self.screen, color, screen_pos, max(1, radius))

            if self.show_labels and body.kind != KIND_NEO and self.small_font:
                try:
                    text_surface = self.small_font.render(body.name, True, self.colors['ui_text'])
                    text_rect = text_surface.get_rect(center=(screen_pos[0], screen_pos[1] - radius - 8))
                    self.screen.blit(text_surface, text_rect)
                except pygame.error as e_font_render:
                    logging.error(f"Pygame font error rendering label for {body.name}: {e_font_render}")

    def hud_lines(self, environment: OrreryEnvironment, bodies: List[CelestialBody]) -> List[str]:
        """Text shown in the top-left corner."""
        clock = environment.clock
        try:
            date_text = clock.current_datetime().strftime('%Y-%m-%d %H:%M UTC')
        except ValueError:
            date_text = f"JD {clock.julian_date:.2f}"
        lines = [date_text, clock.label(), f"Bodies: {len(bodies)} / {len(environment.bodies)}"]
        showers = environment.visible_showers()
        if showers:
            orbit_count = sum(len(shower.bodies()) for shower in showers)
            lines.append(f"Showers: {len(showers)} ({orbit_count} orbits)")
        return lines

    def _draw_hud(self, environment: OrreryEnvironment, bodies: List[CelestialBody]):
        if not self.font:
            return
        y = 10
        for line in self.hud_lines(environment, bodies):
            self.screen.blit(self.font.render(line, True, self.colors['ui_text']), (10, y))
            y += 22

    def zoom_by(self, factor: float):
        self.zoom_level = float(np.clip(self.zoom_level * factor,
                                        config.Visualization.MIN_ZOOM, config.Visualization.MAX_ZOOM))

    def handle_events(self, environment: OrreryEnvironment) -> bool:
        """Processes the pygame event queue.

        -   Window close or `ESC` stops the loop.
        -   `+`/`=`/`-` and the mouse wheel zoom (clamped to the configured range).
        -   `L` toggles planet labels.
        -   Time keys (`KEY_COMMANDS`) become clock commands on the environment.

        Returns:
            bool: `False` when the user asked to quit.
        """
        if not self.visualization_enabled:
            return True

        try:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    logging.info("QUIT event received via Pygame window. Signaling shutdown.")
                    return False

                if event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        logging.info("Escape pressed. Signaling shutdown.")
                        return False
                    if event.key in (pygame.K_PLUS, pygame.K_EQUALS):
                        self.zoom_by(1.2)
                    elif event.key == pygame.K_MINUS:
                        self.zoom_by(1 / 1.2)
                    elif event.key == pygame.K_l:
                        self.show_labels = not self.show_labels
                    elif event.key in KEY_COMMANDS:
                        environment.apply_clock_command(KEY_COMMANDS[event.key])

                if event.type == pygame.MOUSEBUTTONDOWN:
                    if event.button == 4:
                        self.zoom_by(1.1)
                    elif event.button == 5:
                        self.zoom_by(1 / 1.1)
            return True
        except pygame.error as e_pygame_event:
            logging.error(f"Pygame error during event handling: {e_pygame_event}. Attempting to continue.", exc_info=True)
            return True

    def close(self):
        if self.visualization_enabled:
            pygame.quit()
            self.visualization_enabled = False
            self.screen = None
