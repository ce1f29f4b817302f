# simulation_clock.py
import math
import time
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Sequence

from config import config, UNIX_EPOCH_JD, MJD_OFFSET, SECONDS_PER_DAY, MILLISECONDS_PER_SECOND

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

class ClockCommand(Enum):
    """The only ways the outside world may change the clock."""
    STEP_FASTER = "fastforward"
    STEP_SLOWER = "fastbackward"
    JUMP_TO_NOW = "now"
    FORWARD = "forward"
    BACKWARD = "backward"
    TOGGLE_PAUSE = "pause"

def julian_date_now(unix_seconds: Optional[float] = None) -> float:
    """Julian Date for a Unix timestamp (defaults to the wall clock)."""
    if unix_seconds is None:
        unix_seconds = time.time()
    return unix_seconds / SECONDS_PER_DAY + UNIX_EPOCH_JD

def jd_to_mjd(jd: float) -> float:
    return jd - MJD_OFFSET

def mjd_to_jd(mjd: float) -> float:
    return mjd + MJD_OFFSET

def mjd_to_datetime(mjd: float) -> datetime:
    """
    Converts a Modified Julian Date to an aware UTC datetime.

    Raises:
        ValueError: If `mjd` is not finite or falls outside the datetime range.
    """
    if not math.isfinite(mjd):
        raise ValueError(f"Cannot convert non-finite MJD {mjd!r} to a date.")
    try:
        return UNIX_EPOCH + timedelta(days=mjd_to_jd(mjd) - UNIX_EPOCH_JD)
    except OverflowError as e:
        raise ValueError(f"MJD {mjd} is outside the representable date range.") from e

def speed_label(speed_index: int, speed_table: Optional[Sequence[float]] = None) -> str:
    """Human-readable speed, e.g. 'Speed: Real-time' or 'Speed: 7.00 days/second'."""
    speed_table = config.Time.SPEED_TABLE if speed_table is None else speed_table
    if speed_index == config.Time.DEFAULT_SPEED_INDEX:
        return "Speed: 1 day/second"
    if speed_index == config.Time.REAL_TIME_FORWARD_INDEX:
        return "Speed: Real-time"
    return f"Speed: {_to_precision(speed_table[speed_index], 3)} days/second"

def _to_precision(value: float, digits: int) -> str:
    # Fixed notation with `digits` significant digits, exponent form for very small/large values
    if value == 0:
        return f"{0:.{digits - 1}f}"
    exponent = math.floor(math.log10(abs(value)))
    if exponent < -6 or exponent >= digits:
        return f"{value:.{digits - 1}e}"
    return f"{value:.{max(digits - 1 - exponent, 0)}f}"

class SimulationClock:
    """
    Simulated time (Julian Date) advanced in discrete, signed speed steps.

    The clock is owned by one driver (`OrreryEnvironment`); everything else
    reads it, and UI code changes it only through `apply()`.

    Attributes:
        julian_date (float): Current simulated time.
        speed_index (int): Index into the speed table (days per real second).
        paused (bool): When set, ticks consume their timestamp but do not advance time.
        last_tick_ms (float): Wall-clock timestamp of the last consumed tick.
    """

    def __init__(self, julian_date: Optional[float] = None, speed_index: Optional[int] = None,
                 start_ms: float = 0.0, speed_table: Optional[Sequence[float]] = None):
        self.speed_table = list(config.Time.SPEED_TABLE if speed_table is None else speed_table)
        self.julian_date = julian_date_now() if julian_date is None else float(julian_date)
        self.speed_index = config.Time.DEFAULT_SPEED_INDEX if speed_index is None else speed_index
        if not (0 <= self.speed_index < len(self.speed_table)):
            raise ValueError(f"Speed index {self.speed_index} is outside the speed table.")
        self.paused = False
        self.last_tick_ms = start_ms
        self.tick_count = 0

    @property
    def speed(self) -> float:
        """Current multiplier in simulated days per real second."""
        return self.speed_table[self.speed_index]

    @property
    def modified_julian_date(self) -> float:
        return jd_to_mjd(self.julian_date)

    def time_in(self, time_system: str) -> float:
        """Current time in the given convention ("jd" or "mjd")."""
        return self.modified_julian_date if time_system == "mjd" else self.julian_date

    def current_datetime(self) -> datetime:
        return mjd_to_datetime(self.modified_julian_date)

    def label(self) -> str:
        if self.paused:
            return "Speed: Paused"
        return speed_label(self.speed_index, self.speed_table)

    def elapsed_ms(self, now_ms: float) -> float:
        """Wall-clock milliseconds since the last consumed tick."""
        return now_ms - self.last_tick_ms

    def tick(self, delta_ms: float, now_ms: Optional[float] = None) -> Optional[float]:
        """
        Advances simulated time by one frame.

        Args:
            delta_ms (float): Wall-clock time since the last consumed tick.
            now_ms (Optional[float]): Timestamp of this frame. Recorded as
                `last_tick_ms` once the frame passes the frame floor.

        Returns:
            Optional[float]: The new Julian Date, or None if the frame was skipped
            (below the frame floor, paused, or a non-finite time step).
        """
        if delta_ms < config.Time.MIN_FRAME_INTERVAL_MS:
            return None

        if now_ms is not None:
            self.last_tick_ms = now_ms
        if self.paused:
            return None

        delta_days = delta_ms * self.speed / MILLISECONDS_PER_SECOND
        if not math.isfinite(delta_days):
            logging.warning(f"Invalid time delta ({delta_ms!r} ms at speed {self.speed!r}); skipping frame.")
            return None
        new_julian_date = self.julian_date + delta_days
        if not math.isfinite(new_julian_date):
            logging.warning(f"Julian Date would become non-finite ({new_julian_date}); skipping frame.")
            return None

        self.julian_date = new_julian_date
        self.tick_count += 1
        if self.tick_count % config.Debug.LOG_TICK_INTERVAL_FRAMES == 0:
            logging.debug(f"Clock tick {self.tick_count}: JD={self.julian_date:.5f}, {self.label()}")
        return self.julian_date

    # --- Commands ---

    def step_faster(self):
        if self.speed_index < len(self.speed_table) - 1:
            self.speed_index += 1

    def step_slower(self):
        if self.speed_index > 0:
            self.speed_index -= 1

    def forward(self):
        self.speed_index = config.Time.REAL_TIME_FORWARD_INDEX

    def backward(self):
        self.speed_index = config.Time.REAL_TIME_BACKWARD_INDEX

    def jump_to_now(self, julian_date: Optional[float] = None):
        """Resets time to the wall clock at real-time forward speed and resumes."""
        now_jd = julian_date_now() if julian_date is None else julian_date
        if math.isfinite(now_jd):
            self.julian_date = now_jd
        else:
            logging.warning(f"Ignoring non-finite 'now' Julian Date {now_jd!r}.")
        self.speed_index = config.Time.REAL_TIME_FORWARD_INDEX
        self.paused = False

    def toggle_pause(self):
        self.paused = not self.paused

    def apply(self, command: ClockCommand):
        """Dispatches a clock command. Unknown values raise ValueError."""
        command = ClockCommand(command)
        if command is ClockCommand.STEP_FASTER:
            self.step_faster()
        elif command is ClockCommand.STEP_SLOWER:
            self.step_slower()
        elif command is ClockCommand.JUMP_TO_NOW:
            self.jump_to_now()
        elif command is ClockCommand.FORWARD:
            self.forward()
        elif command is ClockCommand.BACKWARD:
            self.backward()
        elif command is ClockCommand.TOGGLE_PAUSE:
            self.toggle_pause()
        logging.debug(f"Clock command {command.value}: {self.label()}")
