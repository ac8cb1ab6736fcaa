from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

# An instant at which the receiver reports measurements.
#
# Epochs are naive ``datetime``s. The time scale they're expressed in isn't part
# of the value: decoded times are converted to the configured working time scale
# at the ingestion boundary, so everything downstream of it (the collectors and
# the file sessions) only ever compares epochs from a single time scale.
#
# The exception is the ephemeris reference times (toc/toe) which are expressed
# in the satellite's own time scale, as the RINEX format expects.
Epoch = datetime


class Constellation(Enum):
    """A satellite system.

    The values are the single letter identifiers used by RINEX.
    """

    GPS = "G"
    GALILEO = "E"
    BEIDOU = "C"
    QZSS = "J"
    GLONASS = "R"
    SBAS = "S"
    IRNSS = "I"


@dataclass(frozen=True)
class Satellite:
    """A satellite, identified by its constellation and PRN number."""

    constellation: Constellation
    prn: int

    def __str__(self) -> str:
        # E.g. "G05", as used in RINEX records.
        return f"{self.constellation.value}{self.prn:02d}"


class Band(Enum):
    """A frequency band.

    The values are the band digits used by RINEX observable codes, e.g. the "1"
    in "C1C". Each constellation's closest equivalent is mapped onto these three
    bands when packets are decoded.
    """

    L1 = "1"
    L2 = "2"
    L5 = "5"


class Measurement(Enum):
    """A measurement type.

    The values are the letters used by RINEX observable codes, e.g. the "C" in
    "C1C".
    """

    PSEUDORANGE = "C"
    CARRIER_PHASE = "L"
    DOPPLER = "D"
    SIGNAL_STRENGTH = "S"
