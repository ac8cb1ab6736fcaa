from datetime import datetime, timedelta

from .constants import GPS_EPOCH


class InvariantError(Exception):
    """An exception raised when an invariant condition is violated."""

    pass


def invariant(condition: bool, message: str = "") -> None:
    """Checks an invariant condition.

    This is similar to the built-in ``assert`` keyword, but remains present even
    if the code is run with the ``-O`` option and ``__debug__`` is ``False``.
    """
    if not condition:
        raise InvariantError(message)


def round_datetime(value: datetime, period: timedelta) -> datetime:
    """Rounds ``value`` to the nearest integer multiple of ``period``.

    Multiples are counted from the GPS zero time-point, which is a midnight, so
    any period that evenly divides a day produces midnight-aligned results.
    """

    period_us = _to_microseconds(period)
    invariant(period_us > 0, f"Invalid rounding period: {period}")

    offset_us = _to_microseconds(value - GPS_EPOCH)
    rounded_us = (offset_us + period_us // 2) // period_us * period_us
    return GPS_EPOCH + timedelta(microseconds=rounded_us)


def floor_datetime(value: datetime, period: timedelta) -> datetime:
    """Rounds ``value`` down to an integer multiple of ``period``.

    See ``round_datetime`` for how multiples are counted.
    """

    period_us = _to_microseconds(period)
    invariant(period_us > 0, f"Invalid rounding period: {period}")

    offset_us = _to_microseconds(value - GPS_EPOCH)
    return GPS_EPOCH + timedelta(microseconds=offset_us // period_us * period_us)


def _to_microseconds(delta: timedelta) -> int:
    # Integer arithmetic avoids float rounding errors for large offsets.
    return delta // timedelta(microseconds=1)
