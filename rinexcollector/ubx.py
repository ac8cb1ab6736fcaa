"""Decodes the u-blox UBX protocol into packets.

Parsing the binary protocol is left to ``pyubx2``. This module selects the
messages that feed the collectors and maps their fields, which use u-blox
identifiers and units, onto ``packets``. It also builds the messages that set a
receiver up to produce them.
"""

import logging
from datetime import timedelta
from typing import BinaryIO, Iterator

from pyubx2 import (
    POLL,
    SET,
    UBX_PROTOCOL,
    UBXMessage,
    UBXMessageError,
    UBXParseError,
    UBXReader,
    UBXStreamError,
    UBXTypeError,
)

from .config import Config
from .gnsstime import TimeScale
from .packets import (
    ClockPacket,
    EndOfEpochPacket,
    Packet,
    RawMeasurement,
    RawMeasurementPacket,
    SubframePacket,
    VersionPacket,
)
from .types import Band, Constellation, Satellite

logger = logging.getLogger(__name__)

# u-blox GNSS identifiers.
_CONSTELLATIONS: dict[int, Constellation] = {
    0: Constellation.GPS,
    1: Constellation.SBAS,
    2: Constellation.GALILEO,
    3: Constellation.BEIDOU,
    5: Constellation.QZSS,
    6: Constellation.GLONASS,
    7: Constellation.IRNSS,
}

# u-blox signal identifiers, per GNSS, mapped onto the closest band.
#
# Signals without an equivalent (e.g. Galileo E5b or BeiDou B2I) are ignored.
_BANDS: dict[tuple[Constellation, int], Band] = {
    (Constellation.GPS, 0): Band.L1,
    (Constellation.GPS, 3): Band.L2,
    (Constellation.GPS, 4): Band.L2,
    (Constellation.GPS, 6): Band.L5,
    (Constellation.GPS, 7): Band.L5,
    (Constellation.SBAS, 0): Band.L1,
    (Constellation.GALILEO, 0): Band.L1,
    (Constellation.GALILEO, 1): Band.L1,
    (Constellation.GALILEO, 3): Band.L5,
    (Constellation.GALILEO, 4): Band.L5,
    (Constellation.BEIDOU, 0): Band.L1,
    (Constellation.BEIDOU, 1): Band.L1,
    (Constellation.BEIDOU, 5): Band.L1,
    (Constellation.BEIDOU, 7): Band.L5,
    (Constellation.QZSS, 0): Band.L1,
    (Constellation.QZSS, 1): Band.L1,
    (Constellation.QZSS, 4): Band.L2,
    (Constellation.QZSS, 5): Band.L2,
    (Constellation.QZSS, 8): Band.L5,
    (Constellation.QZSS, 9): Band.L5,
    (Constellation.GLONASS, 0): Band.L1,
    (Constellation.GLONASS, 2): Band.L2,
    (Constellation.IRNSS, 0): Band.L5,
}

# GLONASS satellites whose slot number isn't known yet are reported with this
# ID.
_UNKNOWN_GLONASS_SLOT = 255


class UbxDecoder:
    """Reads UBX messages from a byte stream and converts them into packets.

    ``stream`` is typically a ``serial.Serial`` with a read timeout, but any
    binary file-like object works. If ``follow`` is ``True`` an empty read is
    treated as a timeout and reading continues, otherwise it's the end of the
    stream.
    """

    def __init__(self, stream: BinaryIO, follow: bool = True) -> None:
        self._follow = follow
        self._reader = UBXReader(stream, protfilter=UBX_PROTOCOL)

    def packets(self) -> Iterator[Packet | None]:
        """Yields packets as they're decoded.

        ``None`` is yielded when a read times out so callers get a chance to
        check for shutdown while the receiver is silent.
        """

        while True:
            try:
                raw, parsed = self._reader.read()
            except (UBXMessageError, UBXParseError, UBXStreamError, UBXTypeError) as e:
                logger.warning(f"Skipping malformed UBX message: {e}")
                continue

            if raw is None:
                if not self._follow:
                    return

                yield None
                continue

            if isinstance(parsed, UBXMessage):
                packet = to_packet(parsed)
                if packet is not None:
                    yield packet


def to_packet(message: UBXMessage) -> Packet | None:
    """Converts a parsed UBX message into a packet.

    Returns ``None`` for messages the collectors don't use.
    """

    match message.identity:
        case "RXM-RAWX":
            return _to_raw_measurement_packet(message)

        case "NAV-CLOCK":
            return ClockPacket(
                time_of_week=message.iTOW / 1000,
                bias=float(message.clkB),
            )

        case "RXM-SFRBX":
            return _to_subframe_packet(message)

        case "NAV-EOE":
            return EndOfEpochPacket(time_of_week=message.iTOW / 1000)

        case "MON-VER":
            return VersionPacket(
                software=_to_text(message.swVersion),
                hardware=_to_text(message.hwVersion),
                extensions=[
                    _to_text(getattr(message, f"extension_{i:02d}"))
                    for i in range(1, _count_group(message, "extension") + 1)
                ],
            )

        case _:
            return None


def to_satellite(gnss_id: int, sv_id: int) -> Satellite | None:
    """Converts u-blox GNSS and satellite IDs into a ``Satellite``.

    Returns ``None`` if the satellite can't be identified.
    """

    constellation = _CONSTELLATIONS.get(gnss_id)
    if constellation is None:
        return None

    match constellation:
        case Constellation.SBAS:
            # SBAS PRNs are 120 through 158, RINEX drops the hundreds.
            return Satellite(constellation, sv_id - 100)

        case Constellation.GLONASS if sv_id == _UNKNOWN_GLONASS_SLOT:
            return None

        case _:
            return Satellite(constellation, sv_id)


# The class and ID of the UBX messages each collector consumes.
_OBSERVATION_MESSAGES: list[tuple[int, int]] = [
    (0x02, 0x15),  # RXM-RAWX
    (0x01, 0x22),  # NAV-CLOCK
    (0x01, 0x61),  # NAV-EOE
]
_NAVIGATION_MESSAGES: list[tuple[int, int]] = [
    (0x02, 0x13),  # RXM-SFRBX
]

# CFG-RATE time references, i.e. the time scale measurements are aligned to.
_TIME_REFERENCES: dict[TimeScale, int] = {
    TimeScale.UTC: 0,
    TimeScale.GPST: 1,
    TimeScale.QZSST: 1,
    TimeScale.BDT: 3,
    TimeScale.GST: 4,
}

# CFG-RATE's measurement rate is an unsigned 16 bit number of milliseconds.
_MAX_MEASUREMENT_RATE_MS = 0xFFFF

# The measurement rate used when the sampling period can't be configured
# directly. The observation collector keeps the epochs on the sampling grid.
_FALLBACK_MEASUREMENT_RATE_MS = 1000


def configuration_messages(config: Config) -> list[UBXMessage]:
    """Returns the messages that prepare a receiver for ``config``.

    These set the measurement rate, enable the messages the enabled collectors
    consume on the UART and USB ports, and poll the receiver's version for the
    observation file header.
    """

    rate = config.sampling_period // timedelta(milliseconds=1)
    time_reference = _TIME_REFERENCES.get(config.timescale)

    # Whole second periods are only aligned to the sampling grid if the
    # receiver measures in the time scale epochs are written in.
    if rate >= 1000 and (rate > _MAX_MEASUREMENT_RATE_MS or time_reference is None):
        rate = _FALLBACK_MEASUREMENT_RATE_MS

    if time_reference is None:
        time_reference = _TIME_REFERENCES[TimeScale.GPST]

    messages = [
        UBXMessage(
            "CFG", "CFG-RATE", SET, measRate=rate, navRate=1, timeRef=time_reference
        )
    ]

    enabled: list[tuple[int, int]] = []
    if config.observations:
        enabled += _OBSERVATION_MESSAGES
    if config.navigation:
        enabled += _NAVIGATION_MESSAGES

    for msg_class, msg_id in enabled:
        messages.append(
            UBXMessage(
                "CFG",
                "CFG-MSG",
                SET,
                msgClass=msg_class,
                msgID=msg_id,
                rateUART1=1,
                rateUSB=1,
            )
        )

    messages.append(UBXMessage("MON", "MON-VER", POLL))
    return messages


def configure_receiver(stream: BinaryIO, config: Config) -> None:
    """Writes the messages returned by ``configuration_messages`` to ``stream``.

    Acknowledgements aren't waited for, they're skipped by ``UbxDecoder``.
    """

    for message in configuration_messages(config):
        logger.debug(f"Sending {message.identity}")
        stream.write(message.serialize())

    stream.flush()
    logger.info("Configured the receiver")


def _to_raw_measurement_packet(message: UBXMessage) -> RawMeasurementPacket:
    measurements: list[RawMeasurement] = []

    for i in range(1, message.numMeas + 1):
        suffix = f"_{i:02d}"

        satellite = to_satellite(
            getattr(message, "gnssId" + suffix), getattr(message, "svId" + suffix)
        )
        if satellite is None:
            continue

        band = _BANDS.get(
            (satellite.constellation, getattr(message, "sigId" + suffix))
        )
        if band is None:
            continue

        measurements.append(
            RawMeasurement(
                satellite=satellite,
                band=band,
                pseudorange=float(getattr(message, "prMes" + suffix)),
                carrier_phase=float(getattr(message, "cpMes" + suffix)),
                doppler=float(getattr(message, "doMes" + suffix)),
                cno=float(getattr(message, "cno" + suffix)),
                lock_time=int(getattr(message, "locktime" + suffix)),
                pseudorange_valid=bool(getattr(message, "prValid" + suffix)),
                carrier_phase_valid=bool(getattr(message, "cpValid" + suffix)),
                half_cycle_resolved=bool(getattr(message, "halfCyc" + suffix)),
            )
        )

    return RawMeasurementPacket(
        week=message.week,
        time_of_week=float(message.rcvTow),
        clock_reset=bool(message.clkReset),
        measurements=measurements,
    )


def _to_subframe_packet(message: UBXMessage) -> SubframePacket | None:
    satellite = to_satellite(message.gnssId, message.svId)
    if satellite is None:
        return None

    return SubframePacket(
        satellite=satellite,
        words=[
            int(getattr(message, f"dwrd_{i:02d}"))
            for i in range(1, message.numWords + 1)
        ],
    )


def _count_group(message: UBXMessage, name: str) -> int:
    count = 0
    while hasattr(message, f"{name}_{count + 1:02d}"):
        count += 1
    return count


def _to_text(value: bytes | str) -> str:
    # Character fields are NUL padded.
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="replace")
    return value.strip("\x00 ")
