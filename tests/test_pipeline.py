import gzip
from pathlib import Path

import hatanaka
from helpers import (
    G05,
    JAN_1_2020_TOW,
    WEEK_2086,
    make_config,
    subframe_1_words,
    subframe_2_words,
    subframe_3_words,
    tow_count,
)

from rinexcollector.config import FilenameStyle
from rinexcollector.navigation_collector import NavigationCollector
from rinexcollector.observation_collector import ObservationCollector
from rinexcollector.packets import (
    ClockPacket,
    EndOfEpochPacket,
    Packet,
    RawMeasurement,
    RawMeasurementPacket,
    SubframePacket,
    VersionPacket,
)
from rinexcollector.pipeline import Pipeline
from rinexcollector.types import Band, Constellation


def _epoch(time_of_week: float) -> list[Packet | None]:
    return [
        RawMeasurementPacket(
            week=WEEK_2086,
            time_of_week=time_of_week,
            clock_reset=False,
            measurements=[
                RawMeasurement(
                    satellite=G05,
                    band=Band.L1,
                    pseudorange=20000000.0,
                    carrier_phase=105000000.0,
                    doppler=-1200.0,
                    cno=42.0,
                    lock_time=5000,
                    pseudorange_valid=True,
                    carrier_phase_valid=True,
                    half_cycle_resolved=True,
                )
            ],
        ),
        None,
        ClockPacket(time_of_week=time_of_week, bias=1000.0),
        EndOfEpochPacket(time_of_week=time_of_week),
    ]


def _capture() -> list[Packet | None]:
    subframes: list[Packet | None] = [
        SubframePacket(satellite=G05, words=words)
        for words in [
            subframe_1_words(tow_count=tow_count(JAN_1_2020_TOW + 6)),
            subframe_2_words(tow_count=tow_count(JAN_1_2020_TOW + 12)),
            subframe_3_words(tow_count=tow_count(JAN_1_2020_TOW + 18)),
        ]
    ]

    return (
        [VersionPacket(software="1.00", hardware="0019", extensions=["MOD=ZED-F9P"])]
        + _epoch(JAN_1_2020_TOW)
        + subframes
        + _epoch(JAN_1_2020_TOW + 30)
    )


def test_collects_observation_and_navigation_files(tmp_path: Path) -> None:
    pipeline = Pipeline(make_config(prefix=tmp_path, navigation=True))

    pipeline.run(_capture())

    assert pipeline.shutdown.is_set()
    assert sorted(path.name for path in tmp_path.iterdir()) == [
        "UBX001.20N",
        "UBX001.20O",
    ]

    observations = (tmp_path / "UBX001.20O").read_text().splitlines()
    assert any("ZED-F9P" in line for line in observations)
    assert [line for line in observations if line.startswith(">")] == [
        "> 2020 01 01 00 00  0.0000000  0  1       0.000001000000",
        "> 2020 01 01 00 00 30.0000000  0  1       0.000001000000",
    ]
    assert observations.count("G05  20000000.000 7 105000000.000 7     -1200.000 7") == 2

    navigation = (tmp_path / "UBX001.20N").read_text().splitlines()
    assert navigation[-8].startswith("G05 2020 01 01 00 00 00")


def test_compressed_long_filenames(tmp_path: Path) -> None:
    config = make_config(
        prefix=tmp_path,
        compression=True,
        filename_style=FilenameStyle.LONG,
        country_code="FRA",
    )

    Pipeline(config).run(_capture())

    [path] = tmp_path.iterdir()
    assert path.name == "UBXFRA_R_20200010000_01D_30S_MO.rnx.gz"
    with gzip.open(path, "rt") as f:
        assert f.readline().startswith("     3.04           OBSERVATION DATA")


def test_only_enabled_collectors_run(tmp_path: Path) -> None:
    observations_only = Pipeline(make_config(prefix=tmp_path))
    navigation_only = Pipeline(
        make_config(prefix=tmp_path, observations=False, navigation=True)
    )

    assert [type(c) for c in observations_only.collectors] == [ObservationCollector]
    assert [type(c) for c in navigation_only.collectors] == [NavigationCollector]


def test_navigation_needs_gps_or_qzss(tmp_path: Path) -> None:
    config = make_config(
        prefix=tmp_path,
        navigation=True,
        constellations=frozenset({Constellation.GALILEO}),
    )

    pipeline = Pipeline(config)

    assert [type(c) for c in pipeline.collectors] == [ObservationCollector]


def test_crinex_observation_files(tmp_path: Path) -> None:
    config = make_config(prefix=tmp_path, crinex=True, navigation=True)

    Pipeline(config).run(_capture())

    assert sorted(path.name for path in tmp_path.iterdir()) == [
        "UBX001.20D",
        "UBX001.20N",
    ]

    crinex = (tmp_path / "UBX001.20D").read_bytes()
    assert b"CRINEX VERS   / TYPE" in crinex

    observations = hatanaka.decompress(crinex).decode().splitlines()
    epochs = [line for line in observations if line.startswith(">")]
    assert [line[:35] for line in epochs] == [
        "> 2020 01 01 00 00  0.0000000  0  1",
        "> 2020 01 01 00 00 30.0000000  0  1",
    ]
