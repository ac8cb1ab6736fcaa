"""Observable codes.

An observable code identifies what a value in an observation record is, e.g.
"C1C" is the pseudorange measured on the L1 C/A signal. Revision 2 files use the
two character form ("C1"), later revisions add the tracking code ("C1C").
"""

from .config import Config
from .types import Band, Constellation, Measurement

# The tracking code appended to revision 3+ observable codes for each band.
#
# u-blox receivers report the civil signal on each band so these are the only
# attributes we ever produce.
_TRACKING_CODES: dict[Band, str] = {
    Band.L1: "C",
    Band.L2: "C",
    Band.L5: "C",
}

# The order in which observables are written within a band.
_MEASUREMENT_ORDER: list[Measurement] = [
    Measurement.PSEUDORANGE,
    Measurement.CARRIER_PHASE,
    Measurement.DOPPLER,
    Measurement.SIGNAL_STRENGTH,
]

_BAND_ORDER: list[Band] = [Band.L1, Band.L2, Band.L5]

_CODES: dict[tuple[Band, Measurement, int], str] = {
    (band, measurement, major): (
        f"{measurement.value}{band.value}"
        if major == 2
        else f"{measurement.value}{band.value}{_TRACKING_CODES[band]}"
    )
    for band in Band
    for measurement in Measurement
    for major in (2, 3, 4)
}


def observable_code(band: Band, measurement: Measurement, major: int) -> str:
    """Returns the observable code for a measurement on a band.

    E.g. the pseudorange on L1 is "C1" in revision 2 and "C1C" in revision 3.
    """

    return _CODES[(band, measurement, major)]


def enabled_observables(config: Config) -> list[tuple[Band, Measurement]]:
    """Returns the (band, measurement) pairs that are collected, in the order
    they appear in observation records."""

    return [
        (band, measurement)
        for band in _BAND_ORDER
        if band in config.bands
        for measurement in _MEASUREMENT_ORDER
        if measurement in config.measurements
    ]


def header_observables(config: Config) -> dict[Constellation, list[str]]:
    """Returns the observable codes declared in an observation file's header for
    each enabled constellation.

    Every constellation declares the same codes since they're selected by band
    and measurement, not per constellation.
    """

    codes = [
        observable_code(band, measurement, config.revision)
        for band, measurement in enabled_observables(config)
    ]

    return {
        constellation: list(codes)
        for constellation in Constellation
        if constellation in config.constellations
    }


def signal_strength_indicator(cno: float) -> int:
    """Maps a carrier-to-noise density ratio, in dB-Hz, to a RINEX signal
    strength indicator (1 through 9)."""

    return min(max(int(cno // 6), 1), 9)
