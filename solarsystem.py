# solarsystem.py
import math
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from config import config # Import the global config instance
from orbital_elements import OrbitalElements
from physics_utils import (
    TWO_PI, AnomalyComputationError, DegenerateOrbitError,
    all_finite, is_finite_number, normalize_angle,
)

KIND_PLANET = "planet"
KIND_DWARF_PLANET = "dwarf_planet"
KIND_NEO = "neo"
KIND_SHOWER_PARENT = "shower_parent"
KIND_SHOWER_STREAM = "shower_stream"
BODY_KINDS = (KIND_PLANET, KIND_DWARF_PLANET, KIND_NEO, KIND_SHOWER_PARENT, KIND_SHOWER_STREAM)

ORIGIN = np.zeros(3, dtype=np.float64)
ORIGIN.setflags(write=False)

def build_transform_basis(inclination: float, longitude_of_node: float, argument_of_periapsis: float) -> np.ndarray:
    """
    Builds the rotation that maps orbital-plane coordinates into ecliptic world space.

    The orbital plane has the focus at the origin and periapsis on +x. The
    returned matrix is applied as `basis @ (x', y', 0)`.

    Args:
        inclination (float): I, in radians.
        longitude_of_node (float): Ω, in radians.
        argument_of_periapsis (float): ω, in radians.

    Returns:
        np.ndarray: Read-only 3x3 float64 matrix. Identical inputs give bit-identical results.
    """
    cos_i, sin_i = math.cos(inclination), math.sin(inclination)
    cos_node, sin_node = math.cos(longitude_of_node), math.sin(longitude_of_node)
    cos_w, sin_w = math.cos(argument_of_periapsis), math.sin(argument_of_periapsis)

    basis = np.array([
        [cos_w * cos_node - cos_i * sin_w * sin_node,
         -cos_node * sin_w - cos_i * cos_w * sin_node,
         sin_i * sin_node],
        [cos_w * sin_node + cos_i * cos_node * sin_w,
         -sin_w * sin_node + cos_i * cos_w * cos_node,
         -sin_i * cos_node],
        [sin_i * sin_w,
         sin_i * cos_w,
         cos_i],
    ], dtype=np.float64)
    basis.setflags(write=False)
    return basis

class OrbitalMechanics:
    """Two-body Kepler propagation: time -> true anomaly -> heliocentric position."""

    def __init__(self, tolerance: Optional[float] = None, max_iterations: Optional[int] = None):
        self.tolerance = config.Orbit.KEPLER_TOLERANCE_RAD if tolerance is None else tolerance
        self.max_iterations = config.Orbit.KEPLER_MAX_ITERATIONS if max_iterations is None else max_iterations

    def orbital_period_days(self, elements: OrbitalElements) -> float:
        """Explicit period if the record carries one, otherwise Kepler's third law around the Sun."""
        if elements.period_days is not None:
            return elements.period_days
        k = config.Orbit.GAUSSIAN_GRAVITATIONAL_CONSTANT
        return TWO_PI / k * elements.semi_major_axis ** 1.5

    def mean_anomaly_at(self, elements: OrbitalElements, t: float) -> float:
        """
        Mean anomaly at time `t`, normalized to [0, 2*pi).

        Args:
            elements: Propagated elements (must carry a mean anomaly).
            t (float): Time in the elements' time system (JD or MJD).

        Raises:
            AnomalyComputationError: If `t` is not finite, the elements have no mean
                anomaly, or the result is not finite.
        """
        if not is_finite_number(t):
            raise AnomalyComputationError(f"Time value is not finite: {t!r}")
        if not elements.is_propagated:
            raise AnomalyComputationError("Elements carry no mean anomaly; the orbit is curve-only.")

        mean_motion = TWO_PI / self.orbital_period_days(elements)
        mean_anomaly = elements.mean_anomaly_at_epoch + mean_motion * (t - elements.epoch)
        if not math.isfinite(mean_anomaly):
            raise AnomalyComputationError(f"Mean anomaly is not finite at t={t}.")
        return normalize_angle(mean_anomaly)

    def solve_kepler_equation(self, M_rad: float, e: float) -> float:
        """
        Solves Kepler's Equation M = E - e * sin(E) for eccentric anomaly E using Newton-Raphson.

        Starts from E = M + e*sin(M), or from pi for high eccentricities where that
        guess overshoots. Stops once the Newton step drops below the tolerance; after
        `max_iterations` the best estimate is returned with a warning.

        Args:
            M_rad: Mean anomaly in radians.
            e: Eccentricity (0 <= e < 1).

        Returns:
            Eccentric anomaly E in radians, normalized to [0, 2*pi).

        Raises:
            AnomalyComputationError: If an input is not finite, e is outside [0, 1),
                or the iteration produced a non-finite value.
        """
        if not (is_finite_number(M_rad) and is_finite_number(e)):
            raise AnomalyComputationError(f"Non-finite Kepler solver input: M={M_rad!r}, e={e!r}")
        if not (0 <= e < 1):
            raise AnomalyComputationError(f"Eccentricity e={e} is out of bounds [0, 1) for Kepler's equation solver.")
        if e == 0:
            return normalize_angle(M_rad)

        E_rad = M_rad + e * math.sin(M_rad)
        if e > config.Orbit.HIGH_ECCENTRICITY_START:
            E_rad = math.pi

        for _ in range(self.max_iterations):
            f_E = E_rad - e * math.sin(E_rad) - M_rad
            f_prime_E = 1 - e * math.cos(E_rad) # >= 1 - e > 0
            delta_E = f_E / f_prime_E
            E_rad -= delta_E
            if abs(delta_E) < self.tolerance:
                break
        else:
            if config.Debug.KEPLER_SOLVER:
                logging.debug(f"Kepler solver residual for M={M_rad}, e={e}: {E_rad - e * math.sin(E_rad) - M_rad}")
            logging.warning(
                f"Kepler's equation solver did not converge after {self.max_iterations} iterations "
                f"for M={M_rad}, e={e}. Using last estimate E={E_rad}."
            )

        if not math.isfinite(E_rad):
            raise AnomalyComputationError(f"Eccentric anomaly is not finite for M={M_rad}, e={e}.")
        return normalize_angle(E_rad)

    def true_anomaly_from_eccentric(self, E_rad: float, e: float) -> float:
        """True anomaly from eccentric anomaly (half-angle form), normalized to [0, 2*pi)."""
        nu_rad = 2.0 * math.atan2(math.sqrt(1 + e) * math.sin(E_rad / 2),
                                  math.sqrt(1 - e) * math.cos(E_rad / 2))
        if not math.isfinite(nu_rad):
            raise AnomalyComputationError(f"True anomaly is not finite for E={E_rad}, e={e}.")
        return normalize_angle(nu_rad)

    def true_anomaly_at(self, elements: OrbitalElements, t: float) -> float:
        """
        Runs the full anomaly pipeline for one body and one time value.

        Args:
            elements: The body's elements.
            t (float): Time in the same convention as `elements.epoch`.

        Returns:
            float: True anomaly in [0, 2*pi).

        Raises:
            AnomalyComputationError: Recoverable; the caller keeps the previous position.
        """
        M_rad = self.mean_anomaly_at(elements, t)
        E_rad = self.solve_kepler_equation(M_rad, elements.eccentricity)
        return self.true_anomaly_from_eccentric(E_rad, elements.eccentricity)

    def resolve_position(self, a: float, e: float, nu_rad: float, basis: np.ndarray) -> np.ndarray:
        """
        Computes the heliocentric position for a true anomaly.

        Args:
            a: Semi-major axis in AU.
            e: Eccentricity.
            nu_rad: True anomaly in radians.
            basis: 3x3 transform basis of the orbit.

        Returns:
            np.ndarray: Position [x, y, z] in AU. Any non-finite input or result gives
                        the origin, so a bad body can never poison the scene.
        """
        basis = np.asarray(basis, dtype=np.float64)
        if not (is_finite_number(a) and is_finite_number(e) and is_finite_number(nu_rad)) \
                or basis.shape != (3, 3) or not all_finite(basis):
            logging.warning(f"Non-finite position input (a={a!r}, e={e!r}, nu={nu_rad!r}); using origin.")
            return ORIGIN.copy()

        r = a * (1 - e ** 2) / (1 + e * math.cos(nu_rad))
        plane = np.array([r * math.cos(nu_rad), r * math.sin(nu_rad), 0.0], dtype=np.float64)
        position = basis @ plane
        if not all_finite(position):
            logging.warning(f"Non-finite position for a={a}, e={e}, nu={nu_rad}; using origin.")
            return ORIGIN.copy()
        return position

    def generate_orbit_curve(self, a: float, e: float, basis: np.ndarray, points: Optional[int] = None) -> np.ndarray:
        """
        Samples the full orbit ellipse at uniformly spaced true anomalies.

        The endpoint 2*pi is excluded; the polyline is closed by the renderer.

        Args:
            a: Semi-major axis in AU.
            e: Eccentricity.
            basis: 3x3 transform basis of the orbit.
            points: Number of samples (defaults to `config.Orbit.CURVE_POINTS`).

        Returns:
            np.ndarray: Read-only (points, 3) array of positions in AU.

        Raises:
            DegenerateOrbitError: If any sample is not finite. No partial curve is returned.
        """
        points = config.Orbit.CURVE_POINTS if points is None else points
        if not (is_finite_number(a) and is_finite_number(e)):
            raise DegenerateOrbitError(f"Cannot sample orbit with a={a!r}, e={e!r}.")

        nu = np.linspace(0.0, TWO_PI, points, endpoint=False)
        with np.errstate(all='ignore'):
            r = a * (1 - e ** 2) / (1 + e * np.cos(nu))
            plane = np.column_stack((r * np.cos(nu), r * np.sin(nu), np.zeros_like(nu)))
            curve = plane @ np.asarray(basis, dtype=np.float64).T

        if not all_finite(curve):
            raise DegenerateOrbitError(f"Orbit curve for a={a}, e={e} contains non-finite samples.")
        curve.setflags(write=False)
        return curve

@dataclass
class CelestialBody:
    name: str
    kind: str
    elements: OrbitalElements

    # Non-orbital fields from the catalogue (render hints, risk metrics, stream ranges)
    metadata: Dict[str, Any] = field(default_factory=dict)

    # Memoized once per set of elements, never on read
    transform_basis: np.ndarray = field(init=False, repr=False)

    # Current heliocentric position in AU; no history is kept
    position: np.ndarray = field(default_factory=lambda: ORIGIN.copy())
    true_anomaly: Optional[float] = None

    # Static polyline, or None if the orbit was degenerate
    orbit_curve: Optional[np.ndarray] = field(default=None, repr=False)

    render_params: Dict[str, Any] = field(default_factory=dict, repr=False)
    # Meteor-shower streams are dimmed while Earth is outside their range
    visible: bool = True

    def __post_init__(self):
        if self.kind not in BODY_KINDS:
            raise ValueError(f"Unknown body kind '{self.kind}' for {self.name}.")
        self.transform_basis = self._build_basis(self.elements)

    @staticmethod
    def _build_basis(elements: OrbitalElements) -> np.ndarray:
        return build_transform_basis(elements.inclination,
                                     elements.longitude_of_ascending_node,
                                     elements.argument_of_periapsis)

    @property
    def is_propagated(self) -> bool:
        return self.elements.is_propagated

    def replace_elements(self, elements: OrbitalElements, orbital_mechanics: Optional[OrbitalMechanics] = None):
        """Swaps in new elements and rebuilds everything derived from them."""
        self.elements = elements
        self.transform_basis = self._build_basis(elements)
        self.true_anomaly = None
        self.orbit_curve = None
        if orbital_mechanics is not None:
            self.refresh_orbit_curve(orbital_mechanics)

    def refresh_orbit_curve(self, orbital_mechanics: OrbitalMechanics) -> bool:
        """Generates the static orbit curve. Returns False (and drops the curve) if it is degenerate."""
        try:
            self.orbit_curve = orbital_mechanics.generate_orbit_curve(
                self.elements.semi_major_axis, self.elements.eccentricity, self.transform_basis
            )
            return True
        except DegenerateOrbitError as e:
            logging.warning(f"Skipping orbit curve for {self.name}: {e}")
            self.orbit_curve = None
            return False

    def propagate_to(self, orbital_mechanics: OrbitalMechanics, t: float):
        """
        Moves the body to its position at time `t`.

        Raises:
            AnomalyComputationError: The position is left unchanged.
        """
        nu_rad = orbital_mechanics.true_anomaly_at(self.elements, t)
        self.true_anomaly = nu_rad
        self.position = orbital_mechanics.resolve_position(
            self.elements.semi_major_axis, self.elements.eccentricity, nu_rad, self.transform_basis
        )

    def place_at_true_anomaly(self, orbital_mechanics: OrbitalMechanics, nu_rad: float):
        self.true_anomaly = nu_rad
        self.position = orbital_mechanics.resolve_position(
            self.elements.semi_major_axis, self.elements.eccentricity, nu_rad, self.transform_basis
        )

    @property
    def distance_au(self) -> float:
        return float(np.linalg.norm(self.position))
