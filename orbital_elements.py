# orbital_elements.py
import math
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from config import config
from physics_utils import InvalidOrbitalElements, is_finite_number

TIME_SYSTEM_JD = "jd"
TIME_SYSTEM_MJD = "mjd"
TIME_SYSTEMS = (TIME_SYSTEM_JD, TIME_SYSTEM_MJD)

REQUIRED_FIELDS = ("a", "e", "inc", "node", "peri")
OPTIONAL_FIELDS = ("ma", "epoch", "period")

# Long field names (as used by the built-in planet table) -> catalogue short names
FIELD_ALIASES = {
    "semi_major_axis_au": "a",
    "eccentricity": "e",
    "inclination_deg": "inc",
    "longitude_of_ascending_node_deg": "node",
    "argument_of_perihelion_deg": "peri",
    "mean_anomaly_at_epoch_deg": "ma",
    "epoch_jd": "epoch",
    "period_days": "period",
}

@dataclass(frozen=True)
class OrbitalElements:
    """Validated heliocentric orbital elements. Angles are in radians.

    Instances are immutable; a body that needs different elements gets a new
    instance, never a partially converted one.
    """
    semi_major_axis: float  # AU
    eccentricity: float  # [0, 1)
    inclination: float  # rad
    longitude_of_ascending_node: float  # rad
    argument_of_periapsis: float  # rad
    mean_anomaly_at_epoch: Optional[float] = None  # rad; None for curve-only orbits
    epoch: float = config.Orbit.DEFAULT_EPOCH_JD
    time_system: str = TIME_SYSTEM_JD
    period_days: Optional[float] = None

    @property
    def is_propagated(self) -> bool:
        """Whether the elements place a body on the orbit (they carry a mean anomaly)."""
        return self.mean_anomaly_at_epoch is not None

def _canonical_fields(record: Mapping[str, Any]) -> Dict[str, Any]:
    canonical: Dict[str, Any] = {}
    for key, value in record.items():
        canonical[FIELD_ALIASES.get(key, key)] = value
    return canonical

def validate_orbital_elements(record: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Sanitizes a raw orbital-element record.

    The record uses the catalogue field names (`a`, `e`, `inc`, `node`, `peri`
    and optionally `ma`, `epoch`, `period`) with angles in degrees; the long
    names from `orbital_elements.FIELD_ALIASES` are accepted as well.

    Args:
        record: Mapping of element names to values. Not modified.

    Returns:
        Dict[str, Any]: A new dict with canonical field names and float values.
        Extra, non-orbital keys are carried over untouched.

    Raises:
        InvalidOrbitalElements: If the record is not a mapping, a required field is
            missing, non-numeric, NaN or infinite, an optional field is present but
            not finite, the semi-major axis is not positive, the eccentricity is
            negative, or an explicit period is not positive.
    """
    if not isinstance(record, Mapping):
        raise InvalidOrbitalElements(f"Orbital element record must be a mapping, got {type(record).__name__}.")

    sanitized = _canonical_fields(record)

    for field_name in REQUIRED_FIELDS:
        if field_name not in sanitized:
            raise InvalidOrbitalElements(f"Missing required orbital element '{field_name}'.")
        value = sanitized[field_name]
        if not is_finite_number(value):
            raise InvalidOrbitalElements(f"Invalid {field_name} value: {value!r}")
        sanitized[field_name] = float(value)

    for field_name in OPTIONAL_FIELDS:
        value = sanitized.get(field_name)
        if value is None:
            sanitized.pop(field_name, None)
            continue
        if not is_finite_number(value):
            raise InvalidOrbitalElements(f"Invalid {field_name} value: {value!r}")
        sanitized[field_name] = float(value)

    if sanitized["a"] <= 0:
        raise InvalidOrbitalElements(f"Semi-major axis must be positive: {sanitized['a']}")
    if sanitized["e"] < 0:
        raise InvalidOrbitalElements(f"Eccentricity must not be negative: {sanitized['e']}")
    if sanitized["e"] >= 1:
        # Parabolic/hyperbolic orbits are drawn as very eccentric ellipses.
        logging.warning(
            f"Eccentricity {sanitized['e']} >= 1; clamping to {config.Orbit.ECCENTRICITY_CLAMP}."
        )
        sanitized["e"] = config.Orbit.ECCENTRICITY_CLAMP
    if "period" in sanitized and sanitized["period"] <= 0:
        raise InvalidOrbitalElements(f"Orbital period must be positive: {sanitized['period']}")

    return sanitized

def elements_from_record(record: Mapping[str, Any], time_system: str = TIME_SYSTEM_JD,
                         propagated: Optional[bool] = None) -> OrbitalElements:
    """
    Validates a degree-valued record and converts it to `OrbitalElements`.

    This is the only place where degrees become radians.

    Args:
        record: Raw element record (see `validate_orbital_elements`).
        time_system: "jd" or "mjd"; the convention of the record's epoch and of
            the times the body will be propagated to.
        propagated: True requires a mean anomaly, False drops any mean anomaly
            (curve-only orbits), None keeps whatever the record carries.

    Returns:
        OrbitalElements: Immutable, radian-valued elements.

    Raises:
        InvalidOrbitalElements: If validation fails, `time_system` is unknown, or a
            propagated orbit has no mean anomaly.
    """
    if time_system not in TIME_SYSTEMS:
        raise InvalidOrbitalElements(f"Unknown time system '{time_system}'; expected one of {TIME_SYSTEMS}.")

    sanitized = validate_orbital_elements(record)

    default_epoch = config.Orbit.DEFAULT_EPOCH_JD if time_system == TIME_SYSTEM_JD else config.Orbit.DEFAULT_EPOCH_MJD
    mean_anomaly_deg = sanitized.get("ma")
    if propagated and mean_anomaly_deg is None:
        raise InvalidOrbitalElements("Mean anomaly (ma) is required for a propagated orbit.")
    if propagated is False:
        mean_anomaly_deg = None

    return OrbitalElements(
        semi_major_axis=sanitized["a"],
        eccentricity=sanitized["e"],
        inclination=math.radians(sanitized["inc"]),
        longitude_of_ascending_node=math.radians(sanitized["node"]),
        argument_of_periapsis=math.radians(sanitized["peri"]),
        mean_anomaly_at_epoch=math.radians(mean_anomaly_deg) if mean_anomaly_deg is not None else None,
        epoch=sanitized.get("epoch", default_epoch),
        time_system=time_system,
        period_days=sanitized.get("period"),
    )
