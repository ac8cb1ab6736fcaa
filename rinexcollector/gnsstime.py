"""Conversions between time scales and GPS week/time-of-week representations.

Only fixed offsets are supported: every time scale here is tied to GPS time by
a constant number of seconds (see ``constants.LEAP_SECONDS`` for UTC).
"""

from datetime import timedelta
from enum import Enum

from .constants import GPS_EPOCH, LEAP_SECONDS, SECONDS_PER_WEEK, WEEK_NUMBER_ROLLOVER
from .types import Epoch


class TimeScale(Enum):
    GPST = "GPST"
    GST = "GST"
    BDT = "BDT"
    QZSST = "QZSST"
    UTC = "UTC"
    TAI = "TAI"

    @property
    def rinex_code(self) -> str:
        """The identifier used in the "TIME OF FIRST OBS" header line."""

        return _RINEX_CODES[self]


# The offset of each time scale from GPS time, in seconds, i.e. a GPS time of
# ``t`` corresponds to ``t + offset`` in that time scale.
_OFFSETS_FROM_GPST: dict[TimeScale, int] = {
    TimeScale.GPST: 0,
    # Galileo system time is steered to GPS time (its week numbering differs
    # but that's irrelevant once a time is expressed as a date).
    TimeScale.GST: 0,
    TimeScale.QZSST: 0,
    # BeiDou time started on January 1, 2006 when GPS time was 14 s ahead of UTC.
    TimeScale.BDT: -14,
    TimeScale.TAI: 19,
    TimeScale.UTC: -LEAP_SECONDS,
}

_RINEX_CODES: dict[TimeScale, str] = {
    TimeScale.GPST: "GPS",
    TimeScale.GST: "GAL",
    TimeScale.BDT: "BDT",
    TimeScale.QZSST: "QZS",
    TimeScale.UTC: "UTC",
    TimeScale.TAI: "TAI",
}


def to_timescale(epoch: Epoch, source: TimeScale, target: TimeScale) -> Epoch:
    """Converts an epoch expressed in ``source`` to the same instant in ``target``."""

    offset = _OFFSETS_FROM_GPST[target] - _OFFSETS_FROM_GPST[source]
    return epoch + timedelta(seconds=offset)


def from_week_and_time_of_week(week: int, time_of_week: float) -> Epoch:
    """Converts a full (not rolled over) GPS week and time of week, in seconds,
    to a GPS time epoch."""

    return GPS_EPOCH + timedelta(weeks=week, seconds=time_of_week)


def resolve_week(week_number_mod_1024: int, reference_week: int | None) -> int | None:
    """Resolves a broadcast (10 bit) GPS week number into a full week number.

    ``reference_week`` is the receiver's current full week number. The result is
    the full week congruent to the broadcast week that's closest to it.

    Returns ``None`` if there's no reference or it's exactly half a rollover
    period away from both candidates, i.e. the week can't be resolved.
    """

    if reference_week is None:
        return None

    behind = (reference_week - week_number_mod_1024) % WEEK_NUMBER_ROLLOVER
    if behind == WEEK_NUMBER_ROLLOVER // 2:
        return None

    candidate = reference_week - behind
    if behind > WEEK_NUMBER_ROLLOVER // 2:
        candidate += WEEK_NUMBER_ROLLOVER

    return candidate


def wrap_time_delta(t: float) -> float:
    """Accounts for week crossovers by wrapping time deltas.

    ``t`` is the difference between two GPS time of week values, e.g.
    ``t_1 - t_2``. If the difference has a large magnitude that suggests
    one value was at the end of a week and the other at the start. We
    wrap the difference to accurately represent the time between them.
    """

    if t > SECONDS_PER_WEEK / 2:
        return t - SECONDS_PER_WEEK
    elif t < -SECONDS_PER_WEEK / 2:
        return t + SECONDS_PER_WEEK
    else:
        return t
