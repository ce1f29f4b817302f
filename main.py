# main.py
import time
import os
import io
import psutil # For memory monitoring
import logging
import cProfile
import pstats
import argparse
from typing import List, Optional, Sequence, Tuple

from config import config, ConfigurationError
from catalog import start_background_load, start_background_shower_load
from environment import OrreryEnvironment
from simulation_clock import SimulationClock
from solarsystem import BODY_KINDS, KIND_PLANET, KIND_SHOWER_STREAM

LOADER_JOIN_TIMEOUT_S = 2.0

class OrrerySimulation:
    """Runs the orrery frame loop.

    Wires the `OrreryEnvironment` to an optional pygame `Visualization`,
    starts background catalogue loads, and drives `environment.tick()` from a
    wall clock (pygame ticks when rendering, `time.monotonic()` when headless).

    Attributes:
        environment (OrreryEnvironment): Owner of the clock and bodies.
        visualization (Optional[Visualization]): The viewer, or `None` when headless.
        running (bool): Cleared by the viewer (window closed) or on a fatal frame error.
        frames_run (int): Number of loop iterations executed.
        loaders (List[threading.Thread]): Background catalogue workers.
        process (psutil.Process): Used for periodic memory checks.
    """
    def __init__(self, render: bool = True, start_jd: Optional[float] = None):
        """Creates the environment and, when `render` is set, the viewer.

        Raises:
            ConfigurationError: If the configuration prevents start-up.
        """
        try:
            self.environment = OrreryEnvironment(clock=SimulationClock(julian_date=start_jd, start_ms=self._now_ms()))
            self.visualization = None
            if render:
                # Imported lazily so headless runs never open a display
                from visualization import Visualization
                self.visualization = Visualization()
        except ConfigurationError as e:
            logging.critical(f"Failed to initialize OrrerySimulation due to ConfigurationError: {e}", exc_info=True)
            raise
        self.running = True
        self.frames_run = 0
        self.loaders = []
        self.process = psutil.Process(os.getpid())
        logging.info("OrrerySimulation initialized successfully.")

    @staticmethod
    def _now_ms() -> float:
        return time.monotonic() * 1000.0

    def load_catalogs(self, catalogs: Sequence[Tuple[str, str]], showers: Optional[Tuple[str, str]] = None,
                      limit: Optional[int] = None):
        """Starts one background load per `(kind, path)` pair, plus the shower pair if given."""
        for kind, path in catalogs:
            self.loaders.append(start_background_load(self.environment, path, kind, limit))
        if showers:
            streams_path, parents_path = showers
            self.loaders.append(start_background_shower_load(self.environment, streams_path, parents_path))

    def check_memory(self):
        try:
            memory_mb = self.process.memory_info().rss / (1024 * 1024)
            if memory_mb > config.Monitoring.MEMORY_USAGE_WARN_MB:
                logging.warning(f"High memory usage: {memory_mb:.2f} MB at frame {self.frames_run}")
            elif config.Debug.DEBUG_MODE:
                logging.debug(f"Memory usage: {memory_mb:.2f} MB at frame {self.frames_run}")
        except psutil.Error as e_psutil:
            logging.error(f"Could not retrieve memory usage: {e_psutil}", exc_info=True)

    def run(self, max_frames: Optional[int] = None) -> int:
        """Runs frames until the window closes or `max_frames` is reached.

        Each frame handles input, ticks the environment with the wall-clock time
        since the last consumed tick, and renders. Headless runs sleep one
        frame interval between iterations.

        Returns:
            int: Number of frames executed.
        """
        frame_interval_s = 1.0 / config.Visualization.FPS
        logging.info(f"Starting orrery loop (max_frames={max_frames}, render={self.visualization is not None}).")
        while self.running and (max_frames is None or self.frames_run < max_frames):
            try:
                if self.visualization is not None and not self.visualization.handle_events(self.environment):
                    self.running = False
                    logging.info("Simulation stopped by user (visualization window closed).")
                    break

                now_ms = self._now_ms()
                self.environment.tick(self.environment.clock.elapsed_ms(now_ms), now_ms)

                if self.visualization is not None:
                    # Frame pacing comes from the viewer's pygame clock
                    self.visualization.render(self.environment)
                else:
                    time.sleep(frame_interval_s)

                self.frames_run += 1
                if self.frames_run % config.Monitoring.MEMORY_CHECK_INTERVAL_FRAMES == 0:
                    self.check_memory()
            except Exception as e_frame:
                logging.critical(f"Unhandled error in frame {self.frames_run}: {e_frame}", exc_info=True)
                self.running = False
        return self.frames_run

    def shutdown(self, join_timeout_s: float = LOADER_JOIN_TIMEOUT_S):
        """Tears down the environment (discarding in-flight loads), waits briefly for
        the loader threads, and closes the viewer."""
        self.environment.teardown()
        for loader in self.loaders:
            loader.join(timeout=join_timeout_s)
            if loader.is_alive():
                logging.warning(f"Catalogue loader {loader.name} still running after {join_timeout_s}s; its result will be discarded.")
        self.loaders = []
        if self.visualization is not None:
            self.visualization.close()
        logging.info(f"OrrerySimulation shut down after {self.frames_run} frames.")

def parse_catalog_arg(value: str) -> Tuple[str, str]:
    """Parses `KIND=PATH` for `--catalog`."""
    kind, sep, path = value.partition('=')
    if not sep or not path:
        raise argparse.ArgumentTypeError(f"expected KIND=PATH, got '{value}'")
    if kind == KIND_SHOWER_STREAM:
        raise argparse.ArgumentTypeError("meteoroid streams are loaded with --showers")
    if kind not in BODY_KINDS or kind == KIND_PLANET:
        raise argparse.ArgumentTypeError(f"unsupported catalogue kind '{kind}'")
    return kind, path

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the heliocentric orrery.")
    parser.add_argument("--catalog", action="append", type=parse_catalog_arg, default=[], metavar="KIND=PATH",
                        help="Load a JSON body catalogue in the background (kind: neo, dwarf_planet, shower_parent). Repeatable.")
    parser.add_argument("--showers", nargs=2, metavar=("STREAMS", "PARENTS"),
                        help="Load meteor-shower stream and parent-body catalogues.")
    parser.add_argument("--limit", type=int, default=None, help="Maximum bodies per catalogue.")
    parser.add_argument("--start-jd", type=float, default=None, help="Start at this Julian Date instead of now.")
    parser.add_argument("--headless", action="store_true", help="Run without opening a window.")
    parser.add_argument("--frames", type=int, default=None, help="Stop after this many frames.")
    parser.add_argument("--profile", action="store_true",
                        help="Enable profiling. Statistics will be saved to 'simulation_profile.prof'.")
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    """Entry point. Returns a process exit code."""
    args = build_parser().parse_args(argv)

    profiler = None
    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        logging.info("cProfile profiling enabled. Output will be saved to simulation_profile.prof upon completion.")

    simulation = None
    exit_code = 0
    try:
        simulation = OrrerySimulation(render=not args.headless, start_jd=args.start_jd)
        simulation.load_catalogs(args.catalog, args.showers, args.limit)
        simulation.run(args.frames)
    except ConfigurationError as e_config_main:
        logging.critical(f"Orrery could not be initialized or run due to a ConfigurationError: {e_config_main}", exc_info=True)
        exit_code = 2
    except Exception as e_main:
        logging.critical(f"An unexpected critical error occurred in the main execution block: {e_main}", exc_info=True)
        exit_code = 1
    finally:
        if simulation is not None:
            simulation.shutdown()
        if profiler:
            profiler.disable()
            stats_file = "simulation_profile.prof"
            try:
                profiler.dump_stats(stats_file)
                summary = io.StringIO()
                pstats.Stats(profiler, stream=summary).sort_stats('cumulative').print_stats(20)
                logging.info(f"Profiling data saved to {stats_file}\n{summary.getvalue()}")
            except OSError as e_profile_dump:
                logging.error(f"Failed to save profiling data to {stats_file}: {e_profile_dump}", exc_info=True)
        logging.info("Orrery terminated.")
    return exit_code

if __name__ == "__main__":
    raise SystemExit(main())
