"""This module contains the values the collectors hand to the file encoder:
headers, which describe a whole file, and records, which are appended to it."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .gnsstime import TimeScale
from .observables import observable_code
from .types import Band, Constellation, Epoch, Measurement, Satellite

# Loss of lock indicator bits.
#
# Bit 0 means lock was lost between the previous and current observation, bit 1
# means the half cycle ambiguity hasn't been resolved.
LLI_LOSS_OF_LOCK = 0b01
LLI_HALF_CYCLE_AMBIGUITY = 0b10


@dataclass(frozen=True, kw_only=True)
class SignalObservation:
    """One measurement of one signal from one satellite.

    There's no timestamp, the epoch is implied by the record it belongs to.
    """

    satellite: Satellite
    band: Band
    measurement: Measurement
    value: float

    # A combination of the ``LLI_*`` bits, if any are set.
    lli: int | None = None

    # The RINEX signal strength indicator, 1 through 9.
    ssi: int | None = None

    def code(self, major: int) -> str:
        """Returns the observable code of this observation in a revision."""

        return observable_code(self.band, self.measurement, major)


@dataclass(frozen=True)
class ClockObservation:
    # The receiver clock offset, in seconds.
    bias: float


@dataclass(kw_only=True)
class ObservationRecord:
    """Everything observed at an epoch."""

    epoch: Epoch

    # Observations keyed by satellite then observable code. Satellites are in
    # the order they were first observed.
    observations: dict[Satellite, dict[str, SignalObservation]] = field(
        default_factory=dict
    )

    clock: ClockObservation | None = None


@dataclass(frozen=True, kw_only=True)
class ObservationHeader:
    revision: int
    program: str
    run_by: str

    # When the file was created.
    date: datetime

    marker_name: str
    observer: str
    agency: str

    receiver_model: str
    receiver_firmware: str

    # The observable codes present in records, per constellation.
    observables: dict[Constellation, list[str]]

    # The epoch of the first record and the time scale every epoch is in.
    time_of_first_observation: Epoch
    timescale: TimeScale

    interval: timedelta


@dataclass(frozen=True, kw_only=True)
class NavigationHeader:
    revision: int
    program: str
    run_by: str
    date: datetime
    agency: str

    # The constellations ephemerides are written for.
    constellations: frozenset[Constellation]
