import argparse
from datetime import timedelta
from pathlib import Path

import pytest
from pyubx2 import GET, UBXMessage

from rinexcollector.__main__ import _enum_set, build_parser, main
from rinexcollector.config import FilenameStyle, SnapshotPeriod
from rinexcollector.gnsstime import TimeScale
from rinexcollector.types import Constellation


def test_parse_options() -> None:
    args = build_parser().parse_args(
        [
            "-p",
            "/dev/ttyACM0",
            "-c",
            "gps,galileo",
            "--timescale",
            "utc",
            "-s",
            "0.5",
            "--snapshot",
            "hourly",
            "--long",
            "--nav",
            "--republish-interval",
            "1.5",
        ]
    )

    assert args.port == "/dev/ttyACM0"
    assert args.constellations == {Constellation.GPS, Constellation.GALILEO}
    assert args.timescale == TimeScale.UTC
    assert args.sampling == timedelta(milliseconds=500)
    assert args.snapshot == SnapshotPeriod.HOURLY
    assert args.filename_style == FilenameStyle.LONG
    assert args.navigation
    assert args.observations is None
    assert args.republish_interval == timedelta(minutes=90)


def test_enum_set_rejects_unknown_names() -> None:
    parse = _enum_set(Constellation)

    with pytest.raises(argparse.ArgumentTypeError):
        parse("gps,galaxy")


def test_invalid_configuration(tmp_path: Path) -> None:
    capture = tmp_path / "capture.ubx"
    capture.write_bytes(b"")

    assert main(["-f", str(capture), "--name", "not-a-name"]) == 1


def test_replays_a_capture(tmp_path: Path) -> None:
    capture = tmp_path / "capture.ubx"
    capture.write_bytes(UBXMessage("NAV", "NAV-EOE", GET, iTOW=1000).serialize())
    output = tmp_path / "rinex"

    assert main(["-f", str(capture), "--prefix", str(output), "--nav"]) == 0

    # An end of epoch marker alone doesn't produce any files.
    assert not output.exists()


def test_missing_capture(tmp_path: Path) -> None:
    assert main(["-f", str(tmp_path / "missing.ubx")]) == 1


def test_receiver_and_crinex_options() -> None:
    defaults = build_parser().parse_args(["-p", "/dev/ttyACM0"])
    args = build_parser().parse_args(["-p", "/dev/ttyACM0", "--crx", "--no-configure"])

    assert defaults.configure
    assert defaults.crinex is None
    assert not args.configure
    assert args.crinex
