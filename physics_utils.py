# physics_utils.py

import math
import numbers

import numpy as np

TWO_PI = 2.0 * math.pi

class OrreryError(Exception):
    """Base class for per-body orbital-mechanics failures.

    None of these are fatal to the simulation: the worst outcome is a single
    missing or stale body.
    """
    pass

class InvalidOrbitalElements(OrreryError):
    """Raised when an element record cannot describe a renderable orbit.

    The body is skipped entirely; no zeroed elements are substituted.
    """
    pass

class AnomalyComputationError(OrreryError):
    """Raised when the true anomaly cannot be computed for a given time.

    Recoverable: the caller keeps the body's previous position for this tick.
    """
    pass

class DegenerateOrbitError(OrreryError):
    """Raised when a sampled orbit curve contains non-finite points.

    The static curve for that orbit is dropped as a whole.
    """
    pass

def is_real_number(value) -> bool:
    """True for int/float/numpy scalars, False for bools and everything else."""
    return isinstance(value, numbers.Real) and not isinstance(value, (bool, np.bool_))

def is_finite_number(value) -> bool:
    """
    Checks that a value is a real number and neither NaN nor infinite.

    Args:
        value: Any object.

    Returns:
        bool: True if the value can safely enter trigonometric code.
    """
    return is_real_number(value) and math.isfinite(value)

def all_finite(values) -> bool:
    """True if every entry of a scalar, sequence or array is finite."""
    array = np.asarray(values, dtype=np.float64)
    return bool(np.all(np.isfinite(array)))

def normalize_angle(angle_rad: float) -> float:
    """
    Wraps an angle into [0, 2*pi).

    Args:
        angle_rad (float): Angle in radians, any sign or magnitude.

    Returns:
        float: Equivalent angle in [0, 2*pi). Non-finite input is returned unchanged
               so callers can detect it.
    """
    if not math.isfinite(angle_rad):
        return angle_rad
    wrapped = math.fmod(angle_rad, TWO_PI)
    if wrapped < 0.0:
        wrapped += TWO_PI
    # fmod of a tiny negative value can round back up to exactly 2*pi
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped

def normalize_degrees(angle_deg: float) -> float:
    """Wraps a negative angle in degrees by one turn; used for stream ranges."""
    return angle_deg + 360.0 if angle_deg < 0 else angle_deg
