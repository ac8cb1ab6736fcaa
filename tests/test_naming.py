from datetime import datetime, timedelta
from pathlib import Path

import pytest
from helpers import at, make_config

from rinexcollector.config import FilenameStyle, SnapshotPeriod
from rinexcollector.naming import (
    FileKind,
    interval_code,
    long_navigation_letter,
    output_path,
    rinex_path,
    short_navigation_letter,
    uses_crinex,
    window_end,
    window_start,
)
from rinexcollector.types import Constellation

GPS = [Constellation.GPS]


def test_long_observation_filename() -> None:
    config = make_config(country_code="FRA", filename_style=FilenameStyle.LONG)

    path = output_path(FileKind.OBSERVATION, at(12, 34, 56), config, GPS)

    assert path == Path("UBXFRA_R_20200010000_01D_30S_MO.rnx")


def test_long_navigation_filename() -> None:
    config = make_config(country_code="fra", filename_style=FilenameStyle.LONG)

    path = output_path(FileKind.NAVIGATION, at(), config, GPS)

    assert path == Path("UBXFRA_R_20200010000_01D_GN.rnx")


def test_short_filenames() -> None:
    config = make_config()

    assert output_path(FileKind.OBSERVATION, at(), config, GPS) == Path("UBX001.20O")
    assert output_path(FileKind.NAVIGATION, at(), config, GPS) == Path("UBX001.20N")


def test_compressed_filenames_end_with_gz() -> None:
    short = make_config(compression=True)
    long = make_config(compression=True, filename_style=FilenameStyle.LONG)

    assert output_path(FileKind.OBSERVATION, at(), short, GPS).name == "UBX001.20O.gz"
    assert output_path(FileKind.OBSERVATION, at(), long, GPS).name.endswith(
        "_MO.rnx.gz"
    )


def test_prefix_is_the_parent_directory(tmp_path: Path) -> None:
    config = make_config(prefix=tmp_path)

    assert output_path(FileKind.OBSERVATION, at(), config, GPS) == (
        tmp_path / "UBX001.20O"
    )


def test_sub_daily_short_filenames_have_a_session_letter() -> None:
    hourly = make_config(snapshot_period=SnapshotPeriod.HOURLY)
    half_day = make_config(snapshot_period=SnapshotPeriod.HALF_DAY)

    assert output_path(FileKind.OBSERVATION, at(0, 59), hourly, GPS).name == (
        "UBX001a.20O"
    )
    assert output_path(FileKind.OBSERVATION, at(23, 1), hourly, GPS).name == (
        "UBX001x.20O"
    )
    assert output_path(FileKind.OBSERVATION, at(13), half_day, GPS).name == (
        "UBX001m.20O"
    )


def test_long_filenames_use_the_window_start() -> None:
    config = make_config(
        snapshot_period=SnapshotPeriod.HOURLY,
        filename_style=FilenameStyle.LONG,
        sampling_period=timedelta(seconds=1),
    )

    path = output_path(FileKind.OBSERVATION, at(13, 20, 5), config, GPS)

    assert path.name == "UBXXXX_R_20200011300_01H_01S_MO.rnx"


def test_filenames_use_the_day_of_year() -> None:
    config = make_config()
    epoch = datetime(2021, 12, 31, 6)

    assert output_path(FileKind.OBSERVATION, epoch, config, GPS).name == (
        "UBX365.21O"
    )


def test_navigation_letters() -> None:
    assert short_navigation_letter([Constellation.QZSS]) == "Q"
    assert short_navigation_letter([Constellation.GALILEO]) == "L"
    assert short_navigation_letter([Constellation.GPS, Constellation.QZSS]) == "P"

    assert long_navigation_letter([Constellation.QZSS]) == "J"
    assert long_navigation_letter([Constellation.GPS, Constellation.QZSS]) == "M"


@pytest.mark.parametrize(
    "period, code",
    [
        (timedelta(milliseconds=50), "20Z"),
        (timedelta(seconds=1), "01S"),
        (timedelta(seconds=30), "30S"),
        (timedelta(minutes=5), "05M"),
        (timedelta(hours=1), "01H"),
        (timedelta(days=1), "01D"),
    ],
)
def test_interval_code(period: timedelta, code: str) -> None:
    assert interval_code(period) == code


def test_windows_are_aligned_to_midnight() -> None:
    epoch = at(13, 20, 5)

    assert window_start(epoch, SnapshotPeriod.HOURLY) == at(13)
    assert window_end(epoch, SnapshotPeriod.HOURLY) == at(14)
    assert window_start(epoch, SnapshotPeriod.HALF_DAY) == at(12)
    assert window_start(epoch, SnapshotPeriod.DAILY) == at()
    assert window_end(epoch, SnapshotPeriod.DAILY) == datetime(2020, 1, 2)


def test_crinex_filenames() -> None:
    short = make_config(crinex=True)
    long = make_config(
        crinex=True, filename_style=FilenameStyle.LONG, country_code="FRA"
    )
    compressed = make_config(crinex=True, compression=True)

    assert output_path(FileKind.OBSERVATION, at(), short, GPS).name == "UBX001.20D"
    assert output_path(FileKind.OBSERVATION, at(), long, GPS).name == (
        "UBXFRA_R_20200010000_01D_30S_MO.crx"
    )
    assert output_path(FileKind.OBSERVATION, at(), compressed, GPS).name == (
        "UBX001.20D.gz"
    )

    # Navigation files aren't Hatanaka compressed.
    assert output_path(FileKind.NAVIGATION, at(), short, GPS).name == "UBX001.20N"
    assert not uses_crinex(FileKind.NAVIGATION, short)


def test_crinex_files_are_converted_from_plain_rinex(tmp_path: Path) -> None:
    config = make_config(crinex=True, compression=True, prefix=tmp_path)

    assert uses_crinex(FileKind.OBSERVATION, config)
    assert rinex_path(FileKind.OBSERVATION, at(), config, GPS) == (
        tmp_path / "UBX001.20O"
    )
