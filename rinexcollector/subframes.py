from dataclasses import dataclass
from typing import Literal

SubframeId = Literal[1, 2, 3, 4, 5]


@dataclass(frozen=True)
class Telemetry:
    """The telemetry (TLM) word that starts every subframe (IS-GPS-200
    20.3.3.1)."""

    integrity_status_flag: bool


@dataclass(frozen=True)
class Handover:
    """The handover word (HOW), the second word of every subframe (IS-GPS-200
    20.3.3.2)."""

    # Truncated time of week of the start of the following subframe, in units
    # of 6 s (one subframe).
    tow_count: int

    alert_flag: bool
    anti_spoof_flag: bool
    subframe_id: SubframeId

    @property
    def time_of_week(self) -> int:
        """``tow_count`` in seconds."""

        return self.tow_count * 6


@dataclass(frozen=True)
class Subframe:
    telemetry: Telemetry
    handover: Handover


@dataclass(frozen=True)
class Subframe1(Subframe):
    """Clock correction and satellite health (IS-GPS-200 20.3.3.3).

    Angles are still in semi-circles here, ``ephemeris.to_ephemeris`` converts
    them to radians.
    """

    # Only the 10 LSBs of the week are broadcast, see ``gnsstime.resolve_week``.
    week_number_mod_1024: int

    # RINEX "codes on L2".
    codes_on_l2_channel: int

    # Index into ``constants.URA_METERS``.
    ura_index: int

    # 6 bits, 0 when all navigation data is good.
    sv_health: int

    # 10 bits. The low 8 bits match the IODE of the same upload.
    issue_of_data_clock: int

    l2_p_data_flag: bool

    # Group delay, s.
    t_gd: float

    # Clock reference time (toc), s of week.
    t_oc: float

    # Clock polynomial: s/s², s/s and s.
    a_f2: float
    a_f1: float
    a_f0: float


@dataclass(frozen=True)
class Subframe2(Subframe):
    """Ephemeris, part 1 (IS-GPS-200 20.3.3.4)."""

    issue_of_data_ephemeris: int

    # Orbit radius sine correction, m.
    c_rs: float

    # semi-circles/s
    delta_n: float

    # semi-circles
    m_0: float

    # Argument of latitude corrections, rad.
    c_uc: float
    e: float
    c_us: float

    # √m
    sqrt_a: float

    # Ephemeris reference time (toe), s of week.
    t_oe: float

    # Set when the curve fit interval exceeds 4 hours.
    fit_interval_flag: bool

    age_of_data_offset: int


@dataclass(frozen=True)
class Subframe3(Subframe):
    """Ephemeris, part 2 (IS-GPS-200 20.3.3.4)."""

    # Inclination cosine correction, rad.
    c_ic: float

    # semi-circles
    omega_0: float

    # Inclination sine correction, rad.
    c_is: float

    # semi-circles
    i_0: float

    # Orbit radius cosine correction, m.
    c_rc: float

    # Argument of perigee, semi-circles.
    omega: float

    # semi-circles/s
    omega_dot: float

    issue_of_data_ephemeris: int

    # semi-circles/s
    i_dot: float


@dataclass(frozen=True)
class Subframe4(Subframe):
    """Almanac, ionosphere and UTC pages (IS-GPS-200 20.3.3.5).

    Their contents aren't decoded, navigation files only hold ephemerides.
    """


@dataclass(frozen=True)
class Subframe5(Subframe):
    """Almanac pages (IS-GPS-200 20.3.3.5)."""
