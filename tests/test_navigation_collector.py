from datetime import datetime, timedelta
from pathlib import Path

from helpers import (
    E11,
    G05,
    J02,
    JAN_1_2020_TOW,
    WEEK_2086,
    FakeEncoder,
    make_config,
    run_collector,
    subframe_1_words,
    subframe_2_words,
    subframe_3_words,
    tow_count,
)

from rinexcollector.ephemeris import EphemerisMessage
from rinexcollector.messages import SubframeMessage
from rinexcollector.navigation_collector import NavigationCollector
from rinexcollector.records import NavigationHeader
from rinexcollector.subframe_decoder import decode_subframe
from rinexcollector.types import Constellation, Satellite


def _broadcast(
    satellite: Satellite = G05,
    *,
    iode: int = 0x2A,
    toc: int = JAN_1_2020_TOW,
    receiver_week: int | None = WEEK_2086,
) -> list[SubframeMessage]:
    """Subframes 1 to 3 of an ephemeris, transmitted at its time of clock."""

    words = [
        subframe_1_words(tow_count=tow_count(toc + 6), iodc=iode, toc=toc),
        subframe_2_words(tow_count=tow_count(toc + 12), iode=iode, toe=toc),
        subframe_3_words(tow_count=tow_count(toc + 18), iode=iode),
    ]

    return [
        SubframeMessage(
            satellite=satellite,
            subframe=decode_subframe(w),
            receiver_week=receiver_week,
        )
        for w in words
    ]


def _collect(config, messages, encoder=None) -> FakeEncoder:
    if encoder is None:
        encoder = FakeEncoder()
    run_collector(NavigationCollector, config, encoder, messages)
    return encoder


def test_complete_ephemerides_are_written(tmp_path: Path) -> None:
    config = make_config(prefix=tmp_path, navigation=True)

    encoder = _collect(config, _broadcast())

    [ephemeris] = encoder.records
    assert isinstance(ephemeris, EphemerisMessage)
    assert ephemeris.satellite == G05
    assert ephemeris.toc == datetime(2020, 1, 1)

    [header] = encoder.headers
    assert isinstance(header, NavigationHeader)
    assert header.constellations == {Constellation.GPS}

    assert (tmp_path / "UBX001.20N").read_text() == "HEADER\nRECORD\n"


def test_rebroadcasts_are_written_once(tmp_path: Path) -> None:
    config = make_config(prefix=tmp_path, navigation=True)

    encoder = _collect(config, _broadcast() + _broadcast() + _broadcast())

    assert len(encoder.records) == 1


def test_minimum_republish_interval(tmp_path: Path) -> None:
    config = make_config(prefix=tmp_path, navigation=True)

    encoder = _collect(
        config,
        _broadcast(iode=1)
        + _broadcast(iode=2, toc=JAN_1_2020_TOW + 3600)
        + _broadcast(iode=3, toc=JAN_1_2020_TOW + 7200),
    )

    assert [e.iode for e in encoder.records] == [1, 3]


def test_republishing_every_new_ephemeris(tmp_path: Path) -> None:
    config = make_config(
        prefix=tmp_path, navigation=True, min_republish_interval=timedelta(0)
    )

    encoder = _collect(
        config,
        _broadcast(iode=1)
        + _broadcast(iode=1)
        + _broadcast(iode=2, toc=JAN_1_2020_TOW + 3600),
    )

    assert [e.iode for e in encoder.records] == [1, 2]


def test_ephemerides_wait_for_the_receiver_week(tmp_path: Path) -> None:
    config = make_config(prefix=tmp_path, navigation=True)

    encoder = _collect(
        config, _broadcast(receiver_week=None) + _broadcast()[:1]
    )

    # Completed by subframe 1 once the receiver week is known.
    assert len(encoder.records) == 1


def test_other_constellations_are_ignored(tmp_path: Path) -> None:
    config = make_config(
        prefix=tmp_path,
        navigation=True,
        constellations=frozenset({Constellation.GPS, Constellation.GALILEO}),
    )

    encoder = _collect(config, _broadcast(E11))

    assert encoder.records == []
    assert list(tmp_path.iterdir()) == []


def test_mixed_navigation_files(tmp_path: Path) -> None:
    config = make_config(
        prefix=tmp_path,
        navigation=True,
        constellations=frozenset({Constellation.GPS, Constellation.QZSS}),
    )

    encoder = _collect(config, _broadcast(G05) + _broadcast(J02))

    assert [e.satellite for e in encoder.records] == [G05, J02]
    assert [path.name for path in tmp_path.iterdir()] == ["UBX001.20P"]


def test_failed_ephemerides_are_retried(tmp_path: Path) -> None:
    config = make_config(prefix=tmp_path, navigation=True)
    failures = iter([True])
    encoder = FakeEncoder(fail_record=lambda record: next(failures, False))

    encoder = _collect(config, _broadcast() + _broadcast() + _broadcast(), encoder)

    assert len(encoder.records) == 1
    # Published by the second broadcast, the third has the same time of clock.
    assert encoder.records[0].toc == datetime(2020, 1, 1)


def test_header_failure_is_retried_with_the_next_ephemeris(tmp_path: Path) -> None:
    config = make_config(prefix=tmp_path, navigation=True)
    failures = iter([True])
    encoder = FakeEncoder(fail_header=lambda header: next(failures, False))

    encoder = _collect(config, _broadcast() + _broadcast()[:1], encoder)

    assert len(encoder.headers) == 1
    assert len(encoder.records) == 1
