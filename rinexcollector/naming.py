"""Output file naming and the rotation grid.

Output files are started on a fixed grid: midnight, then every snapshot period
thereafter. A file's name is derived from the start of the grid window it
covers, so the name of every file produced by a run can be predicted from the
epochs it contains.

Two naming conventions are supported:

- short (RINEX 2 style): ``UBX001.20O``, or ``UBX001a.20O`` for sub-daily files;
- long (RINEX 3 style): ``UBXFRA_R_20200010000_01D_30S_MO.rnx``.

Hatanaka compressed observation files use the ``D`` type letter or the
``.crx`` extension instead.
"""

import string
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Iterable

from .config import Config, FilenameStyle, SnapshotPeriod
from .constants import ONE_DAY
from .types import Constellation, Epoch
from .utils import floor_datetime, invariant


class FileKind(Enum):
    OBSERVATION = "observation"
    NAVIGATION = "navigation"


# The file type letter used by short navigation filenames for each
# constellation. Mixed navigation files use ``_MIXED_SHORT_LETTER``.
_SHORT_NAVIGATION_LETTERS: dict[Constellation, str] = {
    Constellation.GPS: "N",
    Constellation.GLONASS: "G",
    Constellation.GALILEO: "L",
    Constellation.QZSS: "Q",
    Constellation.BEIDOU: "C",
    Constellation.SBAS: "H",
    Constellation.IRNSS: "I",
}

_MIXED_SHORT_LETTER = "P"
_MIXED_LONG_LETTER = "M"

_PERIOD_CODES: dict[SnapshotPeriod, str] = {
    SnapshotPeriod.HOURLY: "01H",
    SnapshotPeriod.HALF_DAY: "12H",
    SnapshotPeriod.DAILY: "01D",
}


def window_start(epoch: Epoch, period: SnapshotPeriod) -> Epoch:
    """Returns the start of the rotation grid window containing ``epoch``."""

    return floor_datetime(epoch, period.duration)


def window_end(epoch: Epoch, period: SnapshotPeriod) -> Epoch:
    """Returns the end (exclusive) of the rotation grid window containing
    ``epoch``, i.e. the next rotation boundary."""

    return window_start(epoch, period) + period.duration


def output_path(
    kind: FileKind,
    epoch: Epoch,
    config: Config,
    constellations: Iterable[Constellation],
) -> Path:
    """Returns the path of the file covering the grid window containing
    ``epoch``.

    ``constellations`` are the constellations the file contains. They only
    affect navigation filenames.
    """

    return _path(
        kind,
        epoch,
        config,
        frozenset(constellations),
        crinex=uses_crinex(kind, config),
        compression=config.compression,
    )


def rinex_path(
    kind: FileKind,
    epoch: Epoch,
    config: Config,
    constellations: Iterable[Constellation],
) -> Path:
    """Returns the path of the plain RINEX file a CRINEX file is converted
    from, once its session is over."""

    return _path(
        kind, epoch, config, frozenset(constellations), crinex=False, compression=False
    )


def uses_crinex(kind: FileKind, config: Config) -> bool:
    """Whether files of ``kind`` are Hatanaka compressed."""

    return config.crinex and kind == FileKind.OBSERVATION


def _path(
    kind: FileKind,
    epoch: Epoch,
    config: Config,
    constellations: frozenset[Constellation],
    *,
    crinex: bool,
    compression: bool,
) -> Path:
    start = window_start(epoch, config.snapshot_period)

    match config.filename_style:
        case FilenameStyle.SHORT:
            name = _short_filename(kind, start, config, constellations, crinex)

        case FilenameStyle.LONG:
            name = _long_filename(kind, start, config, constellations, crinex)

    if compression:
        name += ".gz"

    if config.prefix is None:
        return Path(name)
    else:
        return config.prefix / name


def _short_filename(
    kind: FileKind,
    start: Epoch,
    config: Config,
    constellations: frozenset[Constellation],
    crinex: bool,
) -> str:
    day_of_year = start.timetuple().tm_yday

    # Daily files don't have a session letter, sub-daily files are identified by
    # the hour they start at ("a" for 00h, ..., "x" for 23h).
    if config.snapshot_period == SnapshotPeriod.DAILY:
        session = ""
    else:
        session = string.ascii_lowercase[start.hour]

    match kind:
        case FileKind.OBSERVATION:
            type_letter = "D" if crinex else "O"

        case FileKind.NAVIGATION:
            type_letter = short_navigation_letter(constellations)

    return (
        f"{config.station_name}{day_of_year:03d}{session}"
        f".{start.year % 100:02d}{type_letter}"
    )


def _long_filename(
    kind: FileKind,
    start: Epoch,
    config: Config,
    constellations: frozenset[Constellation],
    crinex: bool,
) -> str:
    day_of_year = start.timetuple().tm_yday
    period = _PERIOD_CODES[config.snapshot_period]

    name = (
        f"{config.station_name}{config.country_code}_R_"
        f"{start.year:04d}{day_of_year:03d}{start.hour:02d}{start.minute:02d}"
        f"_{period}"
    )

    match kind:
        case FileKind.OBSERVATION:
            # Observation files are always declared as mixed, regardless of how
            # many constellations are enabled.
            name += f"_{interval_code(config.sampling_period)}_MO"

        case FileKind.NAVIGATION:
            name += f"_{long_navigation_letter(constellations)}N"

    return name + (".crx" if crinex else ".rnx")


def short_navigation_letter(constellations: Iterable[Constellation]) -> str:
    """Returns the file type letter of a short navigation filename."""

    constellation_set = frozenset(constellations)
    if len(constellation_set) != 1:
        return _MIXED_SHORT_LETTER

    [constellation] = constellation_set
    return _SHORT_NAVIGATION_LETTERS.get(constellation, _MIXED_SHORT_LETTER)


def long_navigation_letter(constellations: Iterable[Constellation]) -> str:
    """Returns the constellation letter of a long navigation filename."""

    constellation_set = frozenset(constellations)
    if len(constellation_set) != 1:
        return _MIXED_LONG_LETTER

    [constellation] = constellation_set
    return constellation.value


def interval_code(sampling_period: timedelta) -> str:
    """Returns the 3 character data frequency code of a long filename.

    E.g. ``30S`` for 30 seconds, ``05M`` for 5 minutes, and ``20Z`` for 20 Hz.
    """

    invariant(sampling_period > timedelta(0), f"Invalid period: {sampling_period}")

    seconds = sampling_period.total_seconds()

    if seconds < 1:
        return f"{round(1 / seconds):02d}Z"
    elif seconds < 60:
        return f"{round(seconds):02d}S"
    elif seconds < 60 * 60:
        return f"{round(seconds / 60):02d}M"
    elif sampling_period < ONE_DAY:
        return f"{round(seconds / 3600):02d}H"
    else:
        return f"{round(seconds / 86400):02d}D"
