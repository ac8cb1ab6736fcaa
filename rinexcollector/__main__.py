import argparse
import logging
import sys
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, TypeVar

import serial

from .config import Config, ConfigurationError, FilenameStyle, SnapshotPeriod
from .gnsstime import TimeScale
from .pipeline import Pipeline
from .types import Band, Constellation, Measurement
from .ubx import UbxDecoder, configure_receiver

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

# The serial port read timeout, in seconds. Bounds how long shutdown can take
# while the receiver is silent.
_SERIAL_TIMEOUT = 1.0


def _enum_set(enum: type[E]) -> Callable[[str], frozenset[E]]:
    """Returns an argparse type that parses comma separated enum member names,
    e.g. "gps,galileo"."""

    def parse(value: str) -> frozenset[E]:
        members: set[E] = set()
        for name in value.split(","):
            try:
                members.add(enum[name.strip().upper()])
            except KeyError:
                choices = ", ".join(m.name.lower() for m in enum)
                raise argparse.ArgumentTypeError(
                    f"invalid choice: {name!r} (choose from {choices})"
                )
        return frozenset(members)

    return parse


def _seconds(value: str) -> timedelta:
    try:
        return timedelta(seconds=float(value))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")


def _timescale(value: str) -> TimeScale:
    try:
        return TimeScale(value.upper())
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid time scale: {value!r}")


def _hours(value: str) -> timedelta:
    try:
        return timedelta(hours=float(value))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rinexcollector",
        description="Collects RINEX observation and navigation files from a"
        " u-blox receiver.",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("-p", "--port", help="serial port, e.g. /dev/ttyACM0")
    source.add_argument("-f", "--file", type=Path, help="replay a UBX capture")
    parser.add_argument("-b", "--baud", type=int, default=115200)
    parser.add_argument(
        "--no-configure",
        dest="configure",
        action="store_false",
        help="don't set the receiver's measurement rate and message output",
    )

    selection = parser.add_argument_group("data selection")
    selection.add_argument(
        "-c", "--constellations", type=_enum_set(Constellation), help="e.g. gps,galileo"
    )
    selection.add_argument("--bands", type=_enum_set(Band), help="e.g. l1,l2")
    selection.add_argument(
        "--measurements",
        type=_enum_set(Measurement),
        help="e.g. pseudorange,carrier_phase,doppler,signal_strength",
    )
    selection.add_argument(
        "--timescale",
        type=_timescale,
        help="one of " + ", ".join(t.value.lower() for t in TimeScale),
    )
    selection.add_argument(
        "-s", "--sampling", type=_seconds, help="sampling period, in seconds"
    )
    selection.add_argument(
        "--no-obs",
        dest="observations",
        action="store_false",
        default=None,
        help="don't collect observation files",
    )
    selection.add_argument(
        "--nav",
        dest="navigation",
        action="store_true",
        default=None,
        help="collect navigation files",
    )
    selection.add_argument(
        "--republish-interval",
        type=_hours,
        help="minimum time between two ephemerides of a satellite, in hours",
    )

    output = parser.add_argument_group("output")
    output.add_argument("-r", "--revision", type=int, choices=[2, 3, 4])
    output.add_argument(
        "--snapshot",
        type=SnapshotPeriod,
        choices=list(SnapshotPeriod),
        metavar="{hourly,half-day,daily}",
    )
    output.add_argument(
        "--gzip", dest="compression", action="store_true", default=None
    )
    output.add_argument(
        "--crx",
        dest="crinex",
        action="store_true",
        default=None,
        help="Hatanaka compress observation files (CRINEX)",
    )
    output.add_argument(
        "--long",
        dest="filename_style",
        action="store_const",
        const=FilenameStyle.LONG,
        help="use long (RINEX 3) filenames",
    )
    output.add_argument("--name", dest="station_name", help="station name")
    output.add_argument("--country", dest="country_code", help="3 letter country code")
    output.add_argument("--agency")
    output.add_argument("--operator")
    output.add_argument("--prefix", type=Path, help="output directory")

    parser.add_argument("--channel-capacity", type=int)
    parser.add_argument("-v", "--verbose", action="store_true")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(message)s",
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    try:
        config = Config.from_options(
            constellations=args.constellations,
            bands=args.bands,
            measurements=args.measurements,
            timescale=args.timescale,
            sampling_period=args.sampling,
            revision=args.revision,
            snapshot_period=args.snapshot,
            compression=args.compression,
            crinex=args.crinex,
            filename_style=args.filename_style,
            station_name=args.station_name,
            country_code=args.country_code,
            agency=args.agency,
            operator=args.operator,
            prefix=args.prefix,
            observations=args.observations,
            navigation=args.navigation,
            min_republish_interval=args.republish_interval,
            channel_capacity=args.channel_capacity,
        )
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    pipeline = Pipeline(config)

    try:
        if args.file is not None:
            with open(args.file, "rb") as stream:
                pipeline.run(UbxDecoder(stream, follow=False).packets())
        else:
            with serial.Serial(args.port, args.baud, timeout=_SERIAL_TIMEOUT) as port:
                if args.configure:
                    configure_receiver(port, config)
                pipeline.run(UbxDecoder(port).packets())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except (OSError, serial.SerialException) as e:
        logger.error(f"Unable to read from the receiver: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
