# config.py
import math
import logging

# Configure basic logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(module)s - %(message)s')

# Fundamental constants (used across different config sections)
SECONDS_PER_DAY = 86400.0
MILLISECONDS_PER_SECOND = 1000.0

# Time axis constants
UNIX_EPOCH_JD = 2440587.5  # Julian Date of 1970-01-01T00:00:00 UTC
MJD_OFFSET = 2400000.5  # JD - MJD
J2000_JD = 2451545.0  # Julian Date of the J2000.0 epoch

class ConfigurationError(Exception):
    """Custom exception for orrery configuration errors.

    Raised by `SimulationConfig.validate()` and by components that read the
    configuration when settings are invalid, inconsistent, or missing.

    Attributes:
        message (str): A human-readable explanation of the configuration error.
                       This is the first argument passed to the exception constructor.
    """
    pass

class SimulationConfig:
    """Centralized, hierarchical configuration for the orrery.

    Parameters live in nested static classes (`SimulationConfig.Time`,
    `SimulationConfig.Orbit`, `SimulationConfig.SolarSystem`, ...). An instance
    named `config` is created at the end of this module, making it available
    everywhere via `from config import config`.

    `__init__` derives dependent values and runs `validate()`, which raises a
    `ConfigurationError` for any inconsistent setting before the simulation
    starts.

    Example Usage:
        >>> from config import config
        >>> config.Time.SPEED_TABLE[config.Time.DEFAULT_SPEED_INDEX]
        1
        >>> config.Orbit.CURVE_POINTS
        192
    """

    # --- Time Configuration ---
    class Time:
        """Simulation clock settings.

        Attributes:
            SPEED_TABLE (List[float]): Ordered, signed speed multipliers in simulated
                days per real second. Stepping faster/slower moves one entry and
                clamps at both ends.
            DEFAULT_SPEED_INDEX (int): Speed index at startup (1 day/second).
            REAL_TIME_FORWARD_INDEX (int): Entry used by "now" and "forward" (1 s/s).
            REAL_TIME_BACKWARD_INDEX (int): Entry used by "backward" (-1 s/s).
            MIN_FRAME_INTERVAL_MS (float): Frame floor; ticks shorter than this are
                ignored (60 Hz cap).
        """
        SPEED_TABLE = [
            -365, -30, -7, -1,
            -1 / 24, -1 / 1440, -1 / SECONDS_PER_DAY,
            1 / SECONDS_PER_DAY, 1 / 1440, 1 / 24,
            1, 7, 30, 365,
        ]
        DEFAULT_SPEED_INDEX = 10
        REAL_TIME_FORWARD_INDEX = 7
        REAL_TIME_BACKWARD_INDEX = 6
        MIN_FRAME_INTERVAL_MS = MILLISECONDS_PER_SECOND / 60.0

    # --- Orbit Configuration ---
    class Orbit:
        """Numerical settings for Kepler propagation.

        Attributes:
            CURVE_POINTS (int): Samples per static orbit polyline. A quality/performance
                tradeoff, not physically meaningful.
            KEPLER_TOLERANCE_RAD (float): Newton step size below which the eccentric
                anomaly is considered converged.
            KEPLER_MAX_ITERATIONS (int): Hard cap on Newton iterations.
            HIGH_ECCENTRICITY_START (float): Above this eccentricity the solver starts
                from E = pi instead of M + e*sin(M).
            ECCENTRICITY_CLAMP (float): Value substituted for e >= 1. Parabolic and
                hyperbolic bodies are drawn as very eccentric ellipses; this is a known
                approximation of the visualization, not physics.
            GAUSSIAN_GRAVITATIONAL_CONSTANT (float): k in rad/day, so that the
                heliocentric period is P = 2*pi/k * a**1.5 days with a in AU.
            DEFAULT_EPOCH_JD (float): Epoch assumed for JD-based records without one.
            DEFAULT_EPOCH_MJD (float): Epoch assumed for MJD-based records without one.
        """
        CURVE_POINTS = 192
        KEPLER_TOLERANCE_RAD = 1e-10
        KEPLER_MAX_ITERATIONS = 30
        HIGH_ECCENTRICITY_START = 0.8
        ECCENTRICITY_CLAMP = 0.999
        GAUSSIAN_GRAVITATIONAL_CONSTANT = 0.01720209895
        DEFAULT_EPOCH_JD = J2000_JD
        DEFAULT_EPOCH_MJD = J2000_JD - MJD_OFFSET

    # --- Solar System Configuration ---
    class SolarSystem:
        """Built-in planet catalogue used when no catalogue files are given.

        Attributes:
            PLANET_DATA (Dict[str, Dict]): Body name -> record in the same shape as the
                JSON catalogues: `orbitParams` in AU and degrees (epoch J2000.0, JD) and
                `renderParams` for the renderer.
        """
        PLANET_DATA = {
            'Mercury': {
                'orbitParams': {'a': 0.387098, 'e': 0.205630, 'inc': 7.005, 'node': 48.331,
                                'peri': 29.124, 'ma': 174.794, 'epoch': J2000_JD},
                'renderParams': {'color': (169, 169, 169), 'radius_px': 3, 'is_dwarf': False},
            },
            'Venus': {
                'orbitParams': {'a': 0.723332, 'e': 0.006772, 'inc': 3.39458, 'node': 76.680,
                                'peri': 54.884, 'ma': 50.447, 'epoch': J2000_JD},
                'renderParams': {'color': (255, 198, 73), 'radius_px': 5, 'is_dwarf': False},
            },
            'Earth': {
                'orbitParams': {'a': 1.00000261, 'e': 0.01671123, 'inc': 0.00005, 'node': -11.26064,
                                'peri': 114.20783, 'ma': 357.51716, 'epoch': J2000_JD},
                'renderParams': {'color': (100, 149, 237), 'radius_px': 5, 'is_dwarf': False},
            },
            'Mars': {
                'orbitParams': {'a': 1.523679, 'e': 0.09340, 'inc': 1.850, 'node': 49.558,
                                'peri': 286.502, 'ma': 19.412, 'epoch': J2000_JD},
                'renderParams': {'color': (193, 68, 14), 'radius_px': 4, 'is_dwarf': False},
            },
            'Jupiter': {
                'orbitParams': {'a': 5.2044, 'e': 0.0489, 'inc': 1.303, 'node': 100.464,
                                'peri': 273.867, 'ma': 20.020, 'epoch': J2000_JD},
                'renderParams': {'color': (200, 160, 120), 'radius_px': 9, 'is_dwarf': False},
            },
            'Saturn': {
                'orbitParams': {'a': 9.5826, 'e': 0.0565, 'inc': 2.485, 'node': 113.665,
                                'peri': 339.392, 'ma': 317.020, 'epoch': J2000_JD},
                'renderParams': {'color': (234, 214, 184), 'radius_px': 8, 'is_dwarf': False},
            },
            'Uranus': {
                'orbitParams': {'a': 19.2184, 'e': 0.0457, 'inc': 0.772, 'node': 74.006,
                                'peri': 96.999, 'ma': 142.2386, 'epoch': J2000_JD},
                'renderParams': {'color': (155, 221, 221), 'radius_px': 7, 'is_dwarf': False},
            },
            'Neptune': {
                'orbitParams': {'a': 30.110, 'e': 0.0113, 'inc': 1.770, 'node': 131.783,
                                'peri': 276.336, 'ma': 256.228, 'epoch': J2000_JD},
                'renderParams': {'color': (63, 81, 181), 'radius_px': 7, 'is_dwarf': False},
            },
            'Pluto': {
                'orbitParams': {'a': 39.482, 'e': 0.2488, 'inc': 17.16, 'node': 110.299,
                                'peri': 113.834, 'ma': 14.53, 'epoch': J2000_JD},
                'renderParams': {'color': (210, 190, 170), 'radius_px': 3, 'is_dwarf': True},
            },
        }
        EARTH_NAME = 'Earth'

    # --- Catalog Configuration ---
    class Catalog:
        """Limits applied while loading orbital-element catalogues.

        Attributes:
            MAX_BODIES_PER_KIND (int): Upper bound on bodies of one kind taken from a
                single catalogue file.
            MAX_SHOWERS (int): Upper bound on distinct meteor showers.
        """
        MAX_BODIES_PER_KIND = 999
        MAX_SHOWERS = 999

    # --- Visualization Configuration ---
    class Visualization:
        """Settings for the pygame viewer.

        Attributes:
            SCREEN_WIDTH_PX (int): Window width in pixels.
            SCREEN_HEIGHT_PX (int): Window height in pixels.
            FPS (int): Target frame rate of the viewer loop.
            PIXELS_PER_AU (float): Scale at zoom 1.0.
            MIN_ZOOM (float): Lower zoom clamp.
            MAX_ZOOM (float): Upper zoom clamp.
            NEO_RADIUS_PX (int): Marker size for small bodies.
            COLORS (Dict[str, Tuple[int, int, int]]): Named RGB colours.
        """
        SCREEN_WIDTH_PX = 1400
        SCREEN_HEIGHT_PX = 900
        FPS = 60
        PIXELS_PER_AU = 120.0
        MIN_ZOOM = 0.02
        MAX_ZOOM = 50.0
        NEO_RADIUS_PX = 2
        COLORS = {
            'background': (5, 5, 20),
            'sun': (255, 220, 80),
            'planet_orbit': (70, 70, 90),
            'neo': (255, 255, 255),
            'neo_orbit': (205, 0, 0),
            'shower_orbit': (93, 92, 210),
            'shower_orbit_hidden': (75, 0, 150),
            'parent_orbit': (2, 0, 185),
            'ui_text': (220, 220, 220),
        }

    # --- Monitoring Configuration ---
    class Monitoring:
        """System resource monitoring.

        Attributes:
            MEMORY_USAGE_WARN_MB (int): Resident memory above which a warning is logged.
            MEMORY_CHECK_INTERVAL_FRAMES (int): How often (in frames) memory is checked.
        """
        MEMORY_USAGE_WARN_MB = 1024
        MEMORY_CHECK_INTERVAL_FRAMES = 600

    # --- Debug Configuration ---
    class Debug:
        """Debug toggles and logging verbosity.

        Attributes:
            DEBUG_MODE (bool): Master toggle for debug output.
            KEPLER_SOLVER (bool): Log solver iterations that fail to converge at DEBUG.
            BODY_CREATION (bool): Log each created body at DEBUG.
            LOG_TICK_INTERVAL_FRAMES (int): Frequency of the periodic clock log line.
        """
        DEBUG_MODE = False
        KEPLER_SOLVER = False
        BODY_CREATION = True
        LOG_TICK_INTERVAL_FRAMES = 600

    def __init__(self):
        """Initializes the `SimulationConfig` instance and validates it.

        Raises:
            ConfigurationError: If `self.validate()` detects any issue.
        """
        self.SECONDS_PER_DAY = SECONDS_PER_DAY
        self.UNIX_EPOCH_JD = UNIX_EPOCH_JD
        self.MJD_OFFSET = MJD_OFFSET
        self.J2000_JD = J2000_JD
        self.validate()

    def validate(self):
        """Checks the configuration for consistency.

        -   **Time**: the speed table is ordered, finite, has no zero entry, and
            every index points into it; the real-time entries are +/- one second
            per second; the frame floor is positive.
        -   **Orbit**: curve resolution, solver tolerance and iteration cap are
            positive; the eccentricity clamp lies in (0, 1).
        -   **SolarSystem**: every built-in record has `orbitParams` and the Earth
            record used for meteor-shower visibility exists.
        -   **Catalog / Visualization / Monitoring**: limits and sizes are positive.

        Raises:
            ConfigurationError: If any setting is invalid.
        """
        speeds = self.Time.SPEED_TABLE
        if not speeds:
            raise ConfigurationError("Time.SPEED_TABLE must not be empty.")
        if not all(isinstance(s, (int, float)) and math.isfinite(s) and s != 0 for s in speeds):
            raise ConfigurationError("Time.SPEED_TABLE entries must be finite and non-zero.")
        if any(b <= a for a, b in zip(speeds, speeds[1:])):
            raise ConfigurationError("Time.SPEED_TABLE must be strictly increasing.")
        for name in ("DEFAULT_SPEED_INDEX", "REAL_TIME_FORWARD_INDEX", "REAL_TIME_BACKWARD_INDEX"):
            index = getattr(self.Time, name)
            if not (0 <= index < len(speeds)):
                raise ConfigurationError(f"Time.{name} ({index}) is outside SPEED_TABLE (size {len(speeds)}).")
        if not math.isclose(speeds[self.Time.REAL_TIME_FORWARD_INDEX], 1 / SECONDS_PER_DAY):
            raise ConfigurationError("Time.REAL_TIME_FORWARD_INDEX must select one second per second.")
        if not math.isclose(speeds[self.Time.REAL_TIME_BACKWARD_INDEX], -1 / SECONDS_PER_DAY):
            raise ConfigurationError("Time.REAL_TIME_BACKWARD_INDEX must select minus one second per second.")
        if self.Time.MIN_FRAME_INTERVAL_MS <= 0:
            raise ConfigurationError("Time.MIN_FRAME_INTERVAL_MS must be positive.")

        if self.Orbit.CURVE_POINTS < 3:
            raise ConfigurationError("Orbit.CURVE_POINTS must be at least 3.")
        if self.Orbit.KEPLER_TOLERANCE_RAD <= 0:
            raise ConfigurationError("Orbit.KEPLER_TOLERANCE_RAD must be positive.")
        if self.Orbit.KEPLER_MAX_ITERATIONS <= 0:
            raise ConfigurationError("Orbit.KEPLER_MAX_ITERATIONS must be positive.")
        if not (0.0 < self.Orbit.ECCENTRICITY_CLAMP < 1.0):
            raise ConfigurationError(f"Orbit.ECCENTRICITY_CLAMP ({self.Orbit.ECCENTRICITY_CLAMP}) must lie in (0, 1).")
        if self.Orbit.GAUSSIAN_GRAVITATIONAL_CONSTANT <= 0:
            raise ConfigurationError("Orbit.GAUSSIAN_GRAVITATIONAL_CONSTANT must be positive.")

        for name, data in self.SolarSystem.PLANET_DATA.items():
            if 'orbitParams' not in data:
                raise ConfigurationError(f"Built-in body '{name}' has no orbitParams.")
        if self.SolarSystem.EARTH_NAME not in self.SolarSystem.PLANET_DATA:
            raise ConfigurationError(
                f"SolarSystem.EARTH_NAME '{self.SolarSystem.EARTH_NAME}' is missing from PLANET_DATA."
            )

        if self.Catalog.MAX_BODIES_PER_KIND <= 0 or self.Catalog.MAX_SHOWERS <= 0:
            raise ConfigurationError("Catalog limits must be positive.")

        if self.Visualization.SCREEN_WIDTH_PX <= 0 or self.Visualization.SCREEN_HEIGHT_PX <= 0:
            raise ConfigurationError("Visualization screen dimensions (SCREEN_WIDTH_PX, SCREEN_HEIGHT_PX) must be positive.")
        if self.Visualization.FPS <= 0:
            raise ConfigurationError("Visualization.FPS must be positive.")
        if self.Visualization.PIXELS_PER_AU <= 0:
            raise ConfigurationError("Visualization.PIXELS_PER_AU must be positive.")
        if not (0 < self.Visualization.MIN_ZOOM <= 1.0 <= self.Visualization.MAX_ZOOM):
            raise ConfigurationError("Visualization zoom bounds must satisfy 0 < MIN_ZOOM <= 1 <= MAX_ZOOM.")

        if self.Monitoring.MEMORY_CHECK_INTERVAL_FRAMES <= 0:
            raise ConfigurationError("Monitoring.MEMORY_CHECK_INTERVAL_FRAMES must be positive.")
        if self.Debug.LOG_TICK_INTERVAL_FRAMES <= 0:
            raise ConfigurationError("Debug.LOG_TICK_INTERVAL_FRAMES must be positive.")

        logging.info("Configuration validated successfully.")


# --- Instantiate the configuration ---
# This makes the config object available for import and runs validation.
# e.g., from config import config
try:
    config = SimulationConfig()
except ConfigurationError as e:
    logging.error(f"FATAL CONFIGURATION ERROR: {e}", exc_info=True)
    raise
