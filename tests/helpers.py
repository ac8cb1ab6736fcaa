"""Builders shared by the tests."""

import threading
from datetime import datetime
from typing import Any, Callable, TextIO

from rinexcollector.channel import Channel
from rinexcollector.config import Config
from rinexcollector.records import SignalObservation
from rinexcollector.types import Band, Constellation, Measurement, Satellite

G05 = Satellite(Constellation.GPS, 5)
G07 = Satellite(Constellation.GPS, 7)
E11 = Satellite(Constellation.GALILEO, 11)
J02 = Satellite(Constellation.QZSS, 2)

# GPS week 2086 started on 2019-12-29, so 2020-01-01T00:00:00 is 3 days in.
WEEK_2086 = 2086
JAN_1_2020_TOW = 3 * 86400


class FakeEncoder:
    """Records what it's asked to format and writes one line per call.

    ``fail_header`` and ``fail_record`` decide whether a call fails.
    """

    def __init__(
        self,
        fail_header: Callable[[Any], bool] = lambda header: False,
        fail_record: Callable[[Any], bool] = lambda record: False,
    ) -> None:
        self.headers: list[Any] = []
        self.records: list[Any] = []
        self._fail_header = fail_header
        self._fail_record = fail_record

    def format_header(self, header: Any, sink: TextIO) -> None:
        if self._fail_header(header):
            raise ValueError("header failure")
        self.headers.append(header)
        sink.write("HEADER\n")

    def format_record(self, record: Any, header: Any, sink: TextIO) -> None:
        if self._fail_record(record):
            raise ValueError("record failure")
        self.records.append(record)
        sink.write("RECORD\n")


def make_config(**options: Any) -> Config:
    return Config(**options)


def observation(
    satellite: Satellite = G05,
    measurement: Measurement = Measurement.PSEUDORANGE,
    value: float = 20000000.0,
    band: Band = Band.L1,
) -> SignalObservation:
    return SignalObservation(
        satellite=satellite, band=band, measurement=measurement, value=value
    )


def run_collector(collector_class, config: Config, encoder: Any, messages: list) -> Any:
    """Runs a collector on the current thread until it has handled
    ``messages`` and shut down."""

    channel: Channel = Channel(max(len(messages), 1))
    for message in messages:
        channel.send(message)

    shutdown = threading.Event()
    shutdown.set()

    collector = collector_class(config, channel, encoder, shutdown)
    collector.run()
    return collector


def at(hour: int = 0, minute: int = 0, second: float = 0) -> datetime:
    """Returns a time on 2020-01-01."""

    whole = int(second)
    return datetime(
        2020, 1, 1, hour, minute, whole, round((second - whole) * 1_000_000)
    )


# GPS LNAV subframes


def pack_words(fields: list[tuple[int, int]]) -> list[int]:
    """Packs ``(value, bit_count)`` fields into ten 30 bit words, as sent by
    the receiver. Parity bits are left as zeros."""

    data = 0
    bit_count = 0
    for value, count in fields:
        data = (data << count) | (value & ((1 << count) - 1))
        bit_count += count

    assert bit_count == 240, bit_count

    return [((data >> (240 - 24 * (i + 1))) & 0xFFFFFF) << 6 for i in range(10)]


def tlm_and_how(tow_count: int, subframe_id: int) -> list[tuple[int, int]]:
    return [
        (0b10001011, 8),
        (0, 14),
        (0, 1),
        (0, 1),
        (tow_count, 17),
        (0, 1),
        (0, 1),
        (subframe_id, 3),
        (0, 2),
    ]


def subframe_1_words(
    *,
    tow_count: int,
    week: int = WEEK_2086 % 1024,
    iodc: int = 0x2A,
    toc: int = JAN_1_2020_TOW,
    ura_index: int = 0,
    health: int = 0,
    t_gd: int = 0,
    a_f2: int = 0,
    a_f1: int = 0,
    a_f0: int = 0,
) -> list[int]:
    """Subframe 1 words. ``toc`` is in seconds, other values are raw."""

    return pack_words(
        tlm_and_how(tow_count, 1)
        + [
            (week, 10),
            (0, 2),
            (ura_index, 4),
            (health, 6),
            (iodc >> 8, 2),
            (0, 1),
            (0, 87),
            (t_gd, 8),
            (iodc & 0xFF, 8),
            (toc // 16, 16),
            (a_f2, 8),
            (a_f1, 16),
            (a_f0, 22),
            (0, 2),
        ]
    )


def subframe_2_words(
    *,
    tow_count: int,
    iode: int = 0x2A,
    toe: int = JAN_1_2020_TOW,
    m_0: int = 0,
    e: int = 0,
    sqrt_a: int = 0,
    fit_interval_flag: int = 0,
) -> list[int]:
    """Subframe 2 words. ``toe`` is in seconds, other values are raw."""

    return pack_words(
        tlm_and_how(tow_count, 2)
        + [
            (iode, 8),
            (0, 16),
            (0, 16),
            (m_0, 32),
            (0, 16),
            (e, 32),
            (0, 16),
            (sqrt_a, 32),
            (toe // 16, 16),
            (fit_interval_flag, 1),
            (0, 5),
            (0, 2),
        ]
    )


def subframe_3_words(
    *, tow_count: int, iode: int = 0x2A, i_0: int = 0, omega: int = 0
) -> list[int]:
    """Subframe 3 words, with raw values."""

    return pack_words(
        tlm_and_how(tow_count, 3)
        + [
            (0, 16),
            (0, 32),
            (0, 16),
            (i_0, 32),
            (0, 16),
            (omega, 32),
            (0, 24),
            (iode, 8),
            (0, 14),
            (0, 2),
        ]
    )


def tow_count(time_of_week: int) -> int:
    """The HOW TOW count of a subframe whose transmission ends at
    ``time_of_week``."""

    return time_of_week // 6
