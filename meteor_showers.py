# meteor_showers.py
import math
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from physics_utils import is_finite_number, normalize_degrees
from solarsystem import CelestialBody

STREAM_BEGIN_KEY = "true_anomaly_begin"
STREAM_END_KEY = "true_anomaly_end"

def is_in_stream_range(earth_deg: float, begin_deg: float, end_deg: float) -> bool:
    """
    Checks whether Earth's true anomaly lies inside a stream's anomaly range.

    Negative angles are shifted up by one turn. A range whose end is below its
    begin wraps through 0/360 degrees.
    """
    earth_deg = normalize_degrees(earth_deg)
    begin_deg = normalize_degrees(begin_deg)
    end_deg = normalize_degrees(end_deg)

    if end_deg < begin_deg:
        return begin_deg <= earth_deg <= 360.0 or 0.0 <= earth_deg <= end_deg
    return begin_deg <= earth_deg <= end_deg

@dataclass
class MeteorShower:
    """Meteoroid streams sharing an IAU shower code, plus the parent body if known."""
    name: str
    code: str
    streams: List[CelestialBody] = field(default_factory=list)
    parent: Optional[CelestialBody] = None

    @property
    def parent_name(self) -> str:
        return self.parent.name if self.parent is not None else "Unknown"

    def bodies(self) -> List[CelestialBody]:
        """Parent first (if any), then the streams."""
        return ([self.parent] if self.parent is not None else []) + list(self.streams)

    def update_visibility(self, earth_true_anomaly_rad: float) -> int:
        """
        Marks each stream visible while Earth is inside its true-anomaly range.

        Streams without finite range bounds keep their current state.

        Returns:
            int: Number of visible streams after the update.
        """
        if not math.isfinite(earth_true_anomaly_rad):
            logging.warning(f"Non-finite Earth true anomaly; shower {self.code} visibility unchanged.")
            return sum(1 for stream in self.streams if stream.visible)

        earth_deg = math.degrees(earth_true_anomaly_rad)
        for stream in self.streams:
            begin = stream.metadata.get(STREAM_BEGIN_KEY)
            end = stream.metadata.get(STREAM_END_KEY)
            if not (is_finite_number(begin) and is_finite_number(end)):
                continue
            stream.visible = is_in_stream_range(earth_deg, begin, end)
        return sum(1 for stream in self.streams if stream.visible)
