# environment.py
import math
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from config import config
from orbital_elements import elements_from_record, TIME_SYSTEM_JD, TIME_SYSTEM_MJD
from physics_utils import InvalidOrbitalElements, AnomalyComputationError, is_finite_number
from simulation_clock import SimulationClock, ClockCommand, jd_to_mjd
from solarsystem import (
    CelestialBody, OrbitalMechanics,
    KIND_PLANET, KIND_DWARF_PLANET, KIND_NEO, KIND_SHOWER_PARENT, KIND_SHOWER_STREAM,
)
from meteor_showers import MeteorShower

# NEOs come with MJD epochs, everything else with JD epochs
TIME_SYSTEM_BY_KIND = {
    KIND_PLANET: TIME_SYSTEM_JD,
    KIND_DWARF_PLANET: TIME_SYSTEM_JD,
    KIND_NEO: TIME_SYSTEM_MJD,
    KIND_SHOWER_PARENT: TIME_SYSTEM_JD,
    KIND_SHOWER_STREAM: TIME_SYSTEM_JD,
}

# Streams are drawn as orbit curves only
CURVE_ONLY_KINDS = (KIND_SHOWER_STREAM,)

TYPE_PLANET = 'Planet'
TYPE_DWARF_PLANET = 'Dwarf planet'
TYPE_NEO = 'NEO'
TYPE_SHOWER = 'Shower'

TYPE_BY_KIND = {
    KIND_PLANET: TYPE_PLANET,
    KIND_DWARF_PLANET: TYPE_DWARF_PLANET,
    KIND_NEO: TYPE_NEO,
    KIND_SHOWER_PARENT: TYPE_SHOWER,
    KIND_SHOWER_STREAM: TYPE_SHOWER,
}

RISK_KEY = 'PS max' # Palermo scale, maximum over all potential impacts
DIAMETER_KEY = 'diameter'

def _default_shown_types() -> Dict[str, bool]:
    return {TYPE_PLANET: True, TYPE_DWARF_PLANET: True, TYPE_NEO: True, TYPE_SHOWER: True}

def _in_range(value: Any, bounds: Tuple[float, float]) -> bool:
    # Missing or non-numeric metadata never excludes a body
    if not is_finite_number(value):
        return True
    return bounds[0] <= value <= bounds[1]

@dataclass
class BodyFilter:
    """Decides which tracked bodies are handed to the renderer.

    Planets and dwarf planets pass on their type toggle alone. NEOs that carry
    a Palermo-scale risk must also fall inside the risk, diameter, semi-major
    axis and eccentricity ranges. Shower parents and streams share the
    'Shower' toggle.
    """
    shown_types: Dict[str, bool] = field(default_factory=_default_shown_types)
    risk_range: Tuple[float, float] = (-99.0, 99.0)
    size_range: Tuple[float, float] = (0.0, 9999.0) # km
    a_range: Tuple[float, float] = (0.0, 100.0) # AU
    e_range: Tuple[float, float] = (0.0, 1.0)

    def set_type_shown(self, type_label: str, shown: bool):
        if type_label not in self.shown_types:
            raise ValueError(f"Unknown body type '{type_label}'. Expected one of {list(self.shown_types)}.")
        self.shown_types[type_label] = shown

    def passes(self, body: CelestialBody) -> bool:
        if not self.shown_types.get(TYPE_BY_KIND[body.kind], False):
            return False
        if body.kind != KIND_NEO or RISK_KEY not in body.metadata:
            return True
        return (_in_range(body.metadata.get(RISK_KEY), self.risk_range)
                and _in_range(body.metadata.get(DIAMETER_KEY), self.size_range)
                and _in_range(body.elements.semi_major_axis, self.a_range)
                and _in_range(body.elements.eccentricity, self.e_range))

class OrreryEnvironment:
    """Owns the simulation clock and the tracked bodies, and advances them frame by frame.

    This is the single owner of mutable simulation state. Rendering code reads
    `visible_bodies()` and the clock; control code changes time only through
    `apply_clock_command()`. Bodies are created through `add_body()` (or
    delivered in bulk by a catalogue load via `complete_load()`), which
    validates the elements, memoizes the transform basis, and generates the
    static orbit curve once.

    Per-body failures never stop a frame:
    -   Invalid elements: the body is skipped and never tracked.
    -   Degenerate orbit curve: the body is tracked without a curve.
    -   Anomaly failure during a tick: that body keeps its previous position.

    Background loads capture a load token from `begin_load()`. `reset()` and
    `teardown()` invalidate outstanding tokens, so a late delivery is discarded
    without touching the body set.

    Attributes:
        clock (SimulationClock): Simulated time and speed.
        orbital_mechanics (OrbitalMechanics): Kepler propagation helper.
        body_filter (BodyFilter): Active filter for `visible_bodies()`.
        bodies (Dict[str, CelestialBody]): Tracked bodies by name, in insertion order.
        showers (Dict[str, MeteorShower]): Meteor showers by IAU code.
        frame_count (int): Number of ticks that advanced the simulation.
        torn_down (bool): Set by `teardown()`; the environment ignores further ticks.
    """
    def __init__(self, clock: Optional[SimulationClock] = None,
                 orbital_mechanics: Optional[OrbitalMechanics] = None,
                 body_filter: Optional[BodyFilter] = None,
                 load_builtin_planets: bool = True):
        """Initializes the environment.

        Args:
            clock: Simulation clock; defaults to one starting at the wall clock.
            orbital_mechanics: Propagation helper; defaults to the configured solver.
            body_filter: Initial filter; defaults to showing everything.
            load_builtin_planets: Populate planets and Pluto from
                `config.SolarSystem.PLANET_DATA`.
        """
        self.clock = clock if clock is not None else SimulationClock()
        self.orbital_mechanics = orbital_mechanics if orbital_mechanics is not None else OrbitalMechanics()
        self.body_filter = body_filter if body_filter is not None else BodyFilter()
        self.bodies: Dict[str, CelestialBody] = {}
        self.showers: Dict[str, MeteorShower] = {}
        self.frame_count = 0
        self.torn_down = False
        self._load_generation = 0
        self._lock = threading.Lock()

        if load_builtin_planets:
            self.load_builtin_planets()

        logging.info(f"OrreryEnvironment initialized with {len(self.bodies)} bodies at JD {self.clock.julian_date:.5f}.")

    # --- Body creation ---

    def create_body(self, name: str, kind: str, orbit_params: Mapping[str, Any],
                    metadata: Optional[Mapping[str, Any]] = None,
                    render_params: Optional[Mapping[str, Any]] = None) -> CelestialBody:
        """Builds a fully prepared body without tracking it.

        The elements are validated and converted, the orbit curve is generated
        (dropped if degenerate), and the body is placed at its position for the
        current clock time. Every kind except meteoroid streams needs a mean
        anomaly; streams are curve-only and any mean anomaly they carry is
        ignored. Curve-only bodies, or bodies whose anomaly cannot be computed
        yet, are placed at periapsis.

        Raises:
            InvalidOrbitalElements: If the record cannot describe an orbit.
            ValueError: If `kind` is unknown.
        """
        if kind not in TIME_SYSTEM_BY_KIND:
            raise ValueError(f"Unknown body kind '{kind}' for {name}.")
        time_system = TIME_SYSTEM_BY_KIND[kind]
        elements = elements_from_record(orbit_params, time_system, propagated=kind not in CURVE_ONLY_KINDS)
        body = CelestialBody(
            name=name, kind=kind, elements=elements,
            metadata=dict(metadata or {}), render_params=dict(render_params or {}),
        )
        body.refresh_orbit_curve(self.orbital_mechanics)

        placed = False
        if body.is_propagated:
            try:
                body.propagate_to(self.orbital_mechanics, self.clock.time_in(time_system))
                placed = True
            except AnomalyComputationError as e:
                logging.warning(f"Initial position of {name} unavailable ({e}); placing it at periapsis.")
        if not placed:
            body.place_at_true_anomaly(self.orbital_mechanics, 0.0)

        if config.Debug.BODY_CREATION:
            logging.debug(f"Created {kind} {name}: a={elements.semi_major_axis:.4f} AU, e={elements.eccentricity:.4f}, "
                          f"pos={body.position.tolist()}")
        return body

    def add_body(self, name: str, kind: str, orbit_params: Mapping[str, Any],
                 metadata: Optional[Mapping[str, Any]] = None,
                 render_params: Optional[Mapping[str, Any]] = None) -> Optional[CelestialBody]:
        """Creates and tracks a body. Returns None (and logs) if the record is rejected."""
        try:
            body = self.create_body(name, kind, orbit_params, metadata, render_params)
        except InvalidOrbitalElements as e:
            logging.warning(f"Skipping {kind} '{name}' due to invalid orbital elements: {e}")
            return None
        return body if self.track_body(body) else None

    def track_body(self, body: CelestialBody) -> bool:
        """Adds an already prepared body. Duplicate names are rejected."""
        with self._lock:
            return self._track_locked(body)

    def _track_locked(self, body: CelestialBody) -> bool:
        if self.torn_down:
            logging.warning(f"Environment is torn down; not tracking '{body.name}'.")
            return False
        if body.name in self.bodies:
            logging.warning(f"A body named '{body.name}' is already tracked; skipping duplicate.")
            return False
        self.bodies[body.name] = body
        return True

    def remove_body(self, name: str) -> bool:
        """Stops tracking a body (and drops it from its meteor shower, if any)."""
        with self._lock:
            body = self.bodies.pop(name, None)
            if body is None:
                return False
            for shower in self.showers.values():
                if body in shower.streams:
                    shower.streams.remove(body)
                if shower.parent is body:
                    shower.parent = None
            logging.debug(f"Removed body '{name}'.")
            return True

    def get_body(self, name: str) -> Optional[CelestialBody]:
        return self.bodies.get(name)

    def load_builtin_planets(self) -> int:
        """Adds the planets and dwarf planets of `config.SolarSystem.PLANET_DATA`."""
        added = 0
        for planet_name, planet_data in config.SolarSystem.PLANET_DATA.items():
            render_params = planet_data.get('renderParams', {})
            kind = KIND_DWARF_PLANET if render_params.get('is_dwarf') else KIND_PLANET
            if self.add_body(planet_name, kind, planet_data['orbitParams'],
                             planet_data.get('extraParams'), render_params) is not None:
                added += 1
        logging.info(f"Loaded {added} built-in planets.")
        return added

    def add_shower(self, shower: MeteorShower) -> MeteorShower:
        """Tracks a shower's bodies and merges it with a known shower of the same code."""
        with self._lock:
            return self._add_shower_locked(shower)

    def _add_shower_locked(self, shower: MeteorShower) -> MeteorShower:
        existing = self.showers.get(shower.code)
        if existing is None:
            existing = MeteorShower(name=shower.name, code=shower.code)
            self.showers[shower.code] = existing
        for stream in shower.streams:
            if self._track_locked(stream):
                existing.streams.append(stream)
        if shower.parent is not None and existing.parent is None and self._track_locked(shower.parent):
            existing.parent = shower.parent
        return existing

    # --- Background loads ---

    def begin_load(self) -> int:
        """Returns a token identifying the current body set for a background load."""
        with self._lock:
            return self._load_generation

    def complete_load(self, token: int, bodies: Iterable[CelestialBody] = (),
                      showers: Iterable[MeteorShower] = ()) -> bool:
        """Applies the results of a background load.

        Args:
            token: Value returned by `begin_load()` when the load started.
            bodies: Prepared bodies to track.
            showers: Prepared showers to track.

        Returns:
            bool: False if the delivery was discarded because the environment was
                  torn down or reset after the load started.
        """
        with self._lock:
            if self.torn_down or token != self._load_generation:
                logging.info(f"Discarding stale catalogue load (token {token}, current {self._load_generation}, "
                             f"torn down: {self.torn_down}).")
                return False
            added = sum(1 for body in bodies if self._track_locked(body))
            for shower in showers:
                self._add_shower_locked(shower)
        logging.info(f"Catalogue load applied: {added} bodies, {len(self.showers)} showers tracked.")
        return True

    def reset(self, load_builtin_planets: bool = True):
        """Drops all bodies and invalidates in-flight loads."""
        with self._lock:
            self._load_generation += 1
            self.bodies.clear()
            self.showers.clear()
        if load_builtin_planets:
            self.load_builtin_planets()

    def teardown(self):
        """Stops the simulation. Later ticks are no-ops and late loads are discarded."""
        with self._lock:
            self.torn_down = True
            self._load_generation += 1
            self.bodies.clear()
            self.showers.clear()
        logging.info(f"OrreryEnvironment torn down after {self.frame_count} frames.")

    # --- Frame loop ---

    def apply_clock_command(self, command: ClockCommand):
        if self.torn_down:
            return
        self.clock.apply(command)

    def tick(self, delta_ms: float, now_ms: Optional[float] = None) -> bool:
        """Advances the clock and every tracked body by one frame.

        Args:
            delta_ms: Wall-clock milliseconds since the last consumed tick.
            now_ms: Timestamp of this frame (see `SimulationClock.tick`).

        Returns:
            bool: True if simulated time advanced and bodies were updated.
        """
        if self.torn_down:
            return False
        if self.clock.tick(delta_ms, now_ms) is None:
            return False

        self.frame_count += 1
        self.refresh_positions()
        return True

    def refresh_positions(self) -> int:
        """Moves every propagated body to the current clock time.

        The clock is read once, so all bodies see the same time value.

        Returns:
            int: Number of bodies whose position could not be updated.
        """
        julian_date = self.clock.julian_date
        times = {TIME_SYSTEM_JD: julian_date, TIME_SYSTEM_MJD: jd_to_mjd(julian_date)}
        with self._lock:
            bodies = list(self.bodies.values())
            showers = list(self.showers.values())

        failures = 0
        for body in bodies:
            if not body.is_propagated:
                continue
            try:
                body.propagate_to(self.orbital_mechanics, times[body.elements.time_system])
            except AnomalyComputationError as e:
                failures += 1
                logging.warning(f"Keeping previous position of {body.name}: {e}")

        if showers and self.body_filter.shown_types.get(TYPE_SHOWER, False):
            self._update_shower_visibility(showers)
        return failures

    def _update_shower_visibility(self, showers: List[MeteorShower]):
        earth = self.bodies.get(config.SolarSystem.EARTH_NAME)
        if earth is None or earth.true_anomaly is None or not math.isfinite(earth.true_anomaly):
            return
        for shower in showers:
            shower.update_visibility(earth.true_anomaly)

    # --- Renderer interface ---

    def visible_bodies(self) -> List[CelestialBody]:
        """Bodies that pass the active filter, in insertion order."""
        with self._lock:
            bodies = list(self.bodies.values())
        return [body for body in bodies if self.body_filter.passes(body)]

    def visible_showers(self) -> List[MeteorShower]:
        if not self.body_filter.shown_types.get(TYPE_SHOWER, False):
            return []
        with self._lock:
            return list(self.showers.values())

    def set_filter(self, body_filter: BodyFilter):
        self.body_filter = body_filter
