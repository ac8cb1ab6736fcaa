"""This module contains the collection configuration and the default values its
options take when they aren't specified.

A ``Config`` is constructed once at startup and is immutable afterwards. Each
collector receives it at construction time, so there's no process-wide mutable
state for them to share.
"""

from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import ONE_DAY
from .gnsstime import TimeScale
from .types import Band, Constellation, Measurement

# Sampling

# The interval between observation epochs.
#
# 30 s is the standard "low rate" RINEX interval used by most archives.
DEFAULT_SAMPLING_PERIOD: timedelta = timedelta(seconds=30)

# The shortest sampling period the receiver can be configured with. u-blox
# receivers are limited to 20 Hz measurement rates in practice.
MIN_SAMPLING_PERIOD: timedelta = timedelta(milliseconds=50)

# Navigation

# The minimum time between two publications of a satellite's ephemeris.
#
# Satellites rebroadcast the same ephemeris every 30 s and GPS ephemerides are
# typically updated every two hours, so publishing more often than that would
# only repeat the same record.
DEFAULT_MIN_REPUBLISH_INTERVAL: timedelta = timedelta(hours=2)

# Message passing

# The capacity of each collector's channel.
#
# Observations and subframes are sent with back-pressure (the ingestion loop
# blocks when a channel is full) so this only needs to absorb short stalls, e.g.
# while a collector opens a new file.
DEFAULT_CHANNEL_CAPACITY: int = 16

# Naming

# Used when the station name or country code aren't specified.
DEFAULT_STATION_NAME = "UBX"
DEFAULT_COUNTRY_CODE = "XXX"


class ConfigurationError(Exception):
    """Indicates that the configuration is invalid and collection can't start."""

    pass


class SnapshotPeriod(Enum):
    """How often a new output file is started."""

    HOURLY = "hourly"
    HALF_DAY = "half-day"
    DAILY = "daily"

    @property
    def duration(self) -> timedelta:
        return _SNAPSHOT_DURATIONS[self]


_SNAPSHOT_DURATIONS: dict[SnapshotPeriod, timedelta] = {
    SnapshotPeriod.HOURLY: timedelta(hours=1),
    SnapshotPeriod.HALF_DAY: timedelta(hours=12),
    SnapshotPeriod.DAILY: ONE_DAY,
}


class FilenameStyle(Enum):
    # E.g. "UBX001.20O".
    SHORT = "short"

    # E.g. "UBXFRA_R_20200010000_01D_30S_MO.rnx".
    LONG = "long"


class Config(BaseModel):
    """The collection configuration."""

    model_config = ConfigDict(frozen=True)

    # Which satellite systems to collect.
    constellations: frozenset[Constellation] = frozenset({Constellation.GPS})

    # Which frequency bands to collect observations on.
    bands: frozenset[Band] = frozenset({Band.L1})

    # Which measurements to collect on each band.
    measurements: frozenset[Measurement] = frozenset(
        {Measurement.PSEUDORANGE, Measurement.CARRIER_PHASE, Measurement.DOPPLER}
    )

    # The time scale observation epochs are expressed in.
    timescale: TimeScale = TimeScale.GPST

    sampling_period: timedelta = DEFAULT_SAMPLING_PERIOD

    # The RINEX major revision to produce.
    revision: Literal[2, 3, 4] = 3

    snapshot_period: SnapshotPeriod = SnapshotPeriod.DAILY

    # Whether output files are gzip compressed.
    compression: bool = False

    # Whether observation files are Hatanaka compressed (CRINEX). Navigation
    # files are unaffected.
    crinex: bool = False

    filename_style: FilenameStyle = FilenameStyle.SHORT

    # Usually named after the geodetic marker or the receiver model.
    station_name: str = DEFAULT_STATION_NAME

    # A 3 letter country code, only used by long filenames.
    country_code: str = DEFAULT_COUNTRY_CODE

    agency: str | None = None
    operator: str | None = None

    # A directory output files are written to.
    prefix: Path | None = None

    # Whether to collect observation and navigation files, respectively.
    observations: bool = True
    navigation: bool = False

    min_republish_interval: timedelta = DEFAULT_MIN_REPUBLISH_INTERVAL

    channel_capacity: int = Field(default=DEFAULT_CHANNEL_CAPACITY, ge=1)

    @field_validator("constellations", "bands", "measurements")
    @classmethod
    def _validate_selection(cls, value: frozenset) -> frozenset:
        if not value:
            raise ValueError("at least one value must be selected")
        return value

    @field_validator("sampling_period")
    @classmethod
    def _validate_sampling_period(cls, value: timedelta) -> timedelta:
        if value < MIN_SAMPLING_PERIOD:
            raise ValueError(f"sampling period is limited to {MIN_SAMPLING_PERIOD}")
        return value

    @field_validator("min_republish_interval")
    @classmethod
    def _validate_min_republish_interval(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("minimum republish interval can't be negative")
        return value

    @field_validator("station_name")
    @classmethod
    def _validate_station_name(cls, value: str) -> str:
        if not (1 <= len(value) <= 9 and value.isalnum() and value.isascii()):
            raise ValueError(f"invalid station name: {value!r}")
        return value

    @field_validator("country_code")
    @classmethod
    def _validate_country_code(cls, value: str) -> str:
        if not (len(value) == 3 and value.isalpha() and value.isascii()):
            raise ValueError(f"invalid country code: {value!r}")
        return value.upper()

    @field_validator("agency", "operator")
    @classmethod
    def _validate_header_text(cls, value: str | None) -> str | None:
        # Written as is in the "OBSERVER / AGENCY" header line.
        if value is not None and not (value.isascii() and value.isprintable()):
            raise ValueError(f"must be printable ASCII: {value!r}")
        return value

    @classmethod
    def from_options(cls, **options: Any) -> "Config":
        """Builds a ``Config``, raising a ``ConfigurationError`` if it's invalid.

        Options that are ``None`` take their default value.
        """

        try:
            return cls(**{k: v for k, v in options.items() if v is not None})
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e
