"""This module contains the packets produced by the receiver protocol decoder.

Packets are the decoder's view of the data: receiver specific identifiers and
units, no interpretation. ``Ingestion`` turns them into messages for the
collectors.
"""

from dataclasses import dataclass, field

from .types import Band, Satellite


@dataclass(frozen=True, kw_only=True)
class RawMeasurement:
    """One satellite signal's measurements at a measurement epoch."""

    satellite: Satellite
    band: Band

    # In meters.
    pseudorange: float

    # In cycles.
    carrier_phase: float

    # In Hz.
    doppler: float

    # Carrier-to-noise density ratio, in dB-Hz.
    cno: float

    # How long the carrier phase has been tracked without interruption, in ms.
    # 0 means lock was lost since the last measurement.
    lock_time: int

    pseudorange_valid: bool
    carrier_phase_valid: bool

    # Whether the carrier phase's half cycle ambiguity has been resolved.
    half_cycle_resolved: bool


@dataclass(frozen=True, kw_only=True)
class RawMeasurementPacket:
    """A receiver measurement epoch (UBX-RXM-RAWX)."""

    # The full GPS week number.
    week: int

    # The measurement time of week in receiver (GPS) time, in seconds.
    time_of_week: float

    # Whether the receiver's clock was reset, i.e. every carrier phase may have
    # jumped.
    clock_reset: bool

    measurements: list[RawMeasurement] = field(default_factory=list)


@dataclass(frozen=True, kw_only=True)
class ClockPacket:
    """The receiver clock solution (UBX-NAV-CLOCK)."""

    # The GPS time of week of the solution, in seconds.
    time_of_week: float

    # In nanoseconds.
    bias: float


@dataclass(frozen=True, kw_only=True)
class SubframePacket:
    """A broadcast navigation message subframe (UBX-RXM-SFRBX)."""

    satellite: Satellite

    # The subframe's words, as transmitted. For GPS these are ten 30 bit words
    # right aligned in 32 bit integers.
    words: list[int]


@dataclass(frozen=True, kw_only=True)
class EndOfEpochPacket:
    """Marks the end of a navigation epoch (UBX-NAV-EOE)."""

    # The GPS time of week of the epoch that ended, in seconds.
    time_of_week: float


@dataclass(frozen=True, kw_only=True)
class VersionPacket:
    """The receiver's firmware and hardware versions (UBX-MON-VER)."""

    software: str
    hardware: str
    extensions: list[str] = field(default_factory=list)


Packet = (
    RawMeasurementPacket
    | ClockPacket
    | SubframePacket
    | EndOfEpochPacket
    | VersionPacket
)
