"""Writes RINEX observation and navigation files.

Only the header lines and records produced by the collectors are supported:
observation files in revisions 2, 3 and 4, and GPS/QZSS LNAV navigation files.
Every header line has its label in columns 61-80.
"""

from datetime import datetime
from typing import TextIO

from .constants import LEAP_SECONDS, RINEX_VERSIONS
from .ephemeris import EphemerisMessage
from .records import NavigationHeader, ObservationHeader, ObservationRecord
from .types import Constellation, Satellite

_MIXED = "M"

_SYSTEM_NAMES: dict[str, str] = {
    Constellation.GPS.value: "GPS",
    Constellation.GLONASS.value: "GLONASS",
    Constellation.GALILEO.value: "GALILEO",
    Constellation.BEIDOU.value: "BEIDOU",
    Constellation.QZSS.value: "QZSS",
    Constellation.SBAS.value: "SBAS",
    Constellation.IRNSS.value: "IRNSS",
    _MIXED: "MIXED",
}

# The largest magnitude an F14.3 field can hold.
_MAX_OBSERVATION_VALUE = 9999999999.999

# Revision 2 observation records list at most this many satellites and
# observations per line.
_V2_SATELLITES_PER_LINE = 12
_V2_OBSERVATIONS_PER_LINE = 5

# Revision 3+ "SYS / # / OBS TYPES" lines list at most this many codes.
_V3_CODES_PER_LINE = 13

# Revision 2 "# / TYPES OF OBSERV" lines list at most this many codes.
_V2_CODES_PER_LINE = 9


class RinexFormatError(ValueError):
    """Indicates that a value can't be represented in a RINEX file."""

    pass


class RinexEncoder:
    """Serializes headers and records as RINEX text.

    Each header or record is formatted completely before it's written, so a
    failure never leaves a partial record in the file.
    """

    def format_header(
        self, header: ObservationHeader | NavigationHeader, sink: TextIO
    ) -> None:
        match header:
            case ObservationHeader():
                lines = _observation_header(header)

            case NavigationHeader():
                lines = _navigation_header(header)

            case _:
                raise RinexFormatError(f"Unsupported header: {header!r}")

        sink.write("".join(line + "\n" for line in lines))

    def format_record(
        self,
        record: ObservationRecord | EphemerisMessage,
        header: ObservationHeader | NavigationHeader,
        sink: TextIO,
    ) -> None:
        match record, header:
            case ObservationRecord(), ObservationHeader():
                if header.revision == 2:
                    lines = _v2_observation_record(record, header)
                else:
                    lines = _v3_observation_record(record, header)

            case EphemerisMessage(), NavigationHeader():
                lines = _ephemeris_record(record, header.revision)

            case _:
                raise RinexFormatError(
                    f"Unsupported record for header: {type(record).__name__}"
                )

        sink.write("".join(line + "\n" for line in lines))


# Headers


def _header_line(content: str, label: str) -> str:
    if len(content) > 60:
        raise RinexFormatError(f"Header line too long: {content!r}")
    return f"{content:<60}{label:<20}".rstrip()


def _system_letter(constellations: frozenset[Constellation]) -> str:
    if len(constellations) == 1:
        [constellation] = constellations
        return constellation.value
    return _MIXED


def _program_line(program: str, run_by: str, date: datetime) -> str:
    return _header_line(
        f"{program[:20]:<20}{run_by[:20]:<20}{date:%Y%m%d %H%M%S} UTC",
        "PGM / RUN BY / DATE",
    )


def _observation_header(header: ObservationHeader) -> list[str]:
    version = RINEX_VERSIONS[header.revision]
    system = _system_letter(frozenset(header.observables))
    if header.revision == 2:
        system_field = f"{system} ({_SYSTEM_NAMES[system]})"
    else:
        system_field = system

    lines = [
        _header_line(
            f"{version:9.2f}{'':11}{'OBSERVATION DATA':<20}{system_field:<20}",
            "RINEX VERSION / TYPE",
        ),
        _program_line(header.program, header.run_by, header.date),
        _header_line(header.marker_name[:60], "MARKER NAME"),
    ]

    if header.revision > 2:
        lines.append(_header_line("NON_GEODETIC", "MARKER TYPE"))

    lines += [
        _header_line(
            f"{header.observer[:20]:<20}{header.agency[:40]:<40}", "OBSERVER / AGENCY"
        ),
        _header_line(
            f"{'':<20}{header.receiver_model[:20]:<20}{header.receiver_firmware[:20]:<20}",
            "REC # / TYPE / VERS",
        ),
        _header_line(f"{'':<20}{'':<20}", "ANT # / TYPE"),
        _header_line(f"{0.0:14.4f}{0.0:14.4f}{0.0:14.4f}", "APPROX POSITION XYZ"),
        _header_line(f"{0.0:14.4f}{0.0:14.4f}{0.0:14.4f}", "ANTENNA: DELTA H/E/N"),
    ]

    if header.revision == 2:
        lines.append(_header_line(f"{1:6d}{1:6d}", "WAVELENGTH FACT L1/2"))
        lines += _v2_observable_lines(header)
    else:
        lines += _v3_observable_lines(header)

    lines.append(
        _header_line(f"{header.interval.total_seconds():10.3f}", "INTERVAL")
    )

    t = header.time_of_first_observation
    seconds = t.second + t.microsecond / 1e6
    lines.append(
        _header_line(
            f"{t.year:6d}{t.month:6d}{t.day:6d}{t.hour:6d}{t.minute:6d}"
            f"{seconds:13.7f}{'':5}{header.timescale.rinex_code:>3}",
            "TIME OF FIRST OBS",
        )
    )

    if header.revision > 2:
        for constellation in header.observables:
            lines.append(_header_line(constellation.value, "SYS / PHASE SHIFT"))

        if Constellation.GLONASS in header.observables:
            lines.append(_header_line(f"{0:3d}", "GLONASS SLOT / FRQ #"))
            lines.append(_header_line("", "GLONASS COD/PHS/BIS"))

    lines.append(_header_line("", "END OF HEADER"))
    return lines


def _v2_observable_lines(header: ObservationHeader) -> list[str]:
    # Revision 2 files declare one list of observables for every system.
    codes: list[str] = []
    for constellation_codes in header.observables.values():
        for code in constellation_codes:
            if code not in codes:
                codes.append(code)

    lines: list[str] = []
    for i in range(0, max(len(codes), 1), _V2_CODES_PER_LINE):
        chunk = "".join(f"{code:>6}" for code in codes[i : i + _V2_CODES_PER_LINE])
        count = f"{len(codes):6d}" if i == 0 else f"{'':6}"
        lines.append(_header_line(count + chunk, "# / TYPES OF OBSERV"))
    return lines


def _v3_observable_lines(header: ObservationHeader) -> list[str]:
    lines: list[str] = []
    for constellation, codes in header.observables.items():
        for i in range(0, max(len(codes), 1), _V3_CODES_PER_LINE):
            chunk = "".join(f" {code:>3}" for code in codes[i : i + _V3_CODES_PER_LINE])
            prefix = f"{constellation.value}  {len(codes):3d}" if i == 0 else f"{'':6}"
            lines.append(_header_line(prefix + chunk, "SYS / # / OBS TYPES"))
    return lines


def _navigation_header(header: NavigationHeader) -> list[str]:
    version = RINEX_VERSIONS[header.revision]

    if header.revision == 2:
        type_field = f"{'N: GPS NAV DATA':<40}"
    else:
        system = _system_letter(header.constellations)
        type_field = (
            f"{'N: GNSS NAV DATA':<20}{system + ': ' + _SYSTEM_NAMES[system]:<20}"
        )

    return [
        _header_line(f"{version:9.2f}{'':11}{type_field}", "RINEX VERSION / TYPE"),
        _program_line(header.program, header.run_by, header.date),
        _header_line(f"{LEAP_SECONDS:6d}", "LEAP SECONDS"),
        _header_line("", "END OF HEADER"),
    ]


# Observation records


def _observation_field(value: float, lli: int | None, ssi: int | None) -> str:
    if abs(value) > _MAX_OBSERVATION_VALUE:
        raise RinexFormatError(f"Observation value out of range: {value}")

    return (
        f"{value:14.3f}"
        f"{'' if lli is None else lli:>1}"
        f"{'' if ssi is None else ssi:>1}"
    )


def _observation_values(
    record: ObservationRecord, codes: list[str], satellite: Satellite
) -> list[str]:
    observations = record.observations[satellite]
    fields: list[str] = []
    for code in codes:
        observation = observations.get(code)
        if observation is None:
            fields.append(f"{'':16}")
        else:
            fields.append(
                _observation_field(observation.value, observation.lli, observation.ssi)
            )
    return fields


def _v3_observation_record(
    record: ObservationRecord, header: ObservationHeader
) -> list[str]:
    t = record.epoch
    seconds = t.second + t.microsecond / 1e6
    satellites = [
        s for s in record.observations if s.constellation in header.observables
    ]

    line = (
        f"> {t.year:4d} {t.month:02d} {t.day:02d} {t.hour:02d} {t.minute:02d}"
        f"{seconds:11.7f}  0{len(satellites):3d}"
    )
    if record.clock is not None:
        line += f"{'':6}{record.clock.bias:15.12f}"

    lines = [line]
    for satellite in satellites:
        codes = header.observables[satellite.constellation]
        values = _observation_values(record, codes, satellite)
        lines.append((str(satellite) + "".join(values)).rstrip())
    return lines


def _v2_observation_record(
    record: ObservationRecord, header: ObservationHeader
) -> list[str]:
    t = record.epoch
    seconds = t.second + t.microsecond / 1e6
    satellites = [
        s for s in record.observations if s.constellation in header.observables
    ]

    codes: list[str] = []
    for constellation_codes in header.observables.values():
        for code in constellation_codes:
            if code not in codes:
                codes.append(code)

    epoch = (
        f" {t.year % 100:02d} {t.month:2d} {t.day:2d} {t.hour:2d} {t.minute:2d}"
        f"{seconds:11.7f}  0{len(satellites):3d}"
    )

    lines: list[str] = []
    for i in range(0, max(len(satellites), 1), _V2_SATELLITES_PER_LINE):
        chunk = "".join(
            str(s) for s in satellites[i : i + _V2_SATELLITES_PER_LINE]
        )
        if i == 0:
            line = f"{epoch}{chunk:<36}"
            if record.clock is not None:
                line += f"{record.clock.bias:12.9f}"
        else:
            line = f"{'':32}{chunk}"
        lines.append(line.rstrip())

    for satellite in satellites:
        values = _observation_values(record, codes, satellite)
        for i in range(0, len(values), _V2_OBSERVATIONS_PER_LINE):
            lines.append("".join(values[i : i + _V2_OBSERVATIONS_PER_LINE]).rstrip())
    return lines


# Navigation records


def _d19(value: float, revision: int) -> str:
    text = f"{value:19.12E}"
    # Revision 2 keeps the Fortran D exponent.
    return text.replace("E", "D") if revision == 2 else text


def _ephemeris_record(ephemeris: EphemerisMessage, revision: int) -> list[str]:
    satellite = ephemeris.satellite
    t = ephemeris.toc

    if revision == 2:
        if satellite.constellation != Constellation.GPS:
            raise RinexFormatError(f"Revision 2 files can't contain {satellite}")

        seconds = t.second + t.microsecond / 1e6
        first = (
            f"{satellite.prn:2d} {t.year % 100:02d} {t.month:2d} {t.day:2d}"
            f" {t.hour:2d} {t.minute:2d}{seconds:5.1f}"
        )
        indent = " " * 3
    else:
        first = (
            f"{satellite} {t.year:4d} {t.month:02d} {t.day:02d}"
            f" {t.hour:02d} {t.minute:02d} {t.second:02d}"
        )
        indent = " " * 4

    orbits = [
        [ephemeris.iode, ephemeris.c_rs, ephemeris.delta_n, ephemeris.m_0],
        [ephemeris.c_uc, ephemeris.e, ephemeris.c_us, ephemeris.sqrt_a],
        [ephemeris.t_oe, ephemeris.c_ic, ephemeris.omega_0, ephemeris.c_is],
        [ephemeris.i_0, ephemeris.c_rc, ephemeris.omega, ephemeris.omega_dot],
        [
            ephemeris.i_dot,
            ephemeris.codes_on_l2_channel,
            ephemeris.week,
            int(ephemeris.l2_p_data_flag),
        ],
        [ephemeris.accuracy, ephemeris.sv_health, ephemeris.t_gd, ephemeris.iodc],
        [ephemeris.transmission_time, ephemeris.fit_interval],
    ]

    lines: list[str] = []
    if revision >= 4:
        lines.append(f"> EPH {satellite} {ephemeris.message_type}")

    lines.append(
        first
        + _d19(ephemeris.a_f0, revision)
        + _d19(ephemeris.a_f1, revision)
        + _d19(ephemeris.a_f2, revision)
    )
    for orbit in orbits:
        lines.append(
            indent + "".join(_d19(float(value), revision) for value in orbit)
        )
    return lines
