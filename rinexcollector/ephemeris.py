from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .constants import SECONDS_PER_WEEK, URA_METERS
from .gnsstime import from_week_and_time_of_week, resolve_week, wrap_time_delta
from .subframes import Subframe, Subframe1, Subframe2, Subframe3, Subframe4, Subframe5
from .types import Epoch, Satellite
from .utils import InvariantError

logger = logging.getLogger(__name__)

# The navigation message type written for GPS and QZSS L1 C/A ephemerides.
LNAV = "LNAV"


def is_complete(
    subframe_1: Subframe1 | None,
    subframe_2: Subframe2 | None,
    subframe_3: Subframe3 | None,
) -> bool:
    """Returns whether three subframes belong to the same ephemeris.

    They do if subframes 2 and 3 have the same IODE and it's equal to the 8 LSBs
    of subframe 1's IODC. See section 20.3.3.4.1 of IS-GPS-200.
    """

    if subframe_1 is None or subframe_2 is None or subframe_3 is None:
        return False

    iode = subframe_2.issue_of_data_ephemeris
    return (
        subframe_3.issue_of_data_ephemeris == iode
        and subframe_1.issue_of_data_clock & 0xFF == iode
    )


@dataclass
class NavigationSubframeSet:
    """The latest ephemeris subframes received from a satellite.

    Each subframe replaces the previous one with the same ID, so the set only
    becomes complete once all three are from the same issue of data.
    """

    subframe_1: Subframe1 | None = None
    subframe_2: Subframe2 | None = None
    subframe_3: Subframe3 | None = None

    # The time of clock of the last ephemeris published for the satellite.
    last_published: Epoch | None = None

    def handle_subframe(self, subframe: Subframe) -> None:
        match subframe:
            case Subframe1():
                self.subframe_1 = subframe

            case Subframe2():
                self.subframe_2 = subframe

            case Subframe3():
                self.subframe_3 = subframe

            case Subframe4() | Subframe5():
                # We don't need subframes 4 or 5.
                pass

            case _:
                raise InvariantError(f"Unexpected subframe: {subframe}")

    def is_complete(self) -> bool:
        return is_complete(self.subframe_1, self.subframe_2, self.subframe_3)

    def to_ephemeris(
        self, satellite: Satellite, receiver_week: int | None
    ) -> EphemerisMessage | None:
        """Attempts to construct an ``EphemerisMessage``.

        Returns ``None`` if the subframes aren't complete or the week they were
        broadcast in can't be determined.
        """

        if (
            self.subframe_1 is None
            or self.subframe_2 is None
            or self.subframe_3 is None
            or not self.is_complete()
        ):
            return None

        week = resolve_week(self.subframe_1.week_number_mod_1024, receiver_week)
        if week is None:
            logger.debug(f"[{satellite}] Unable to resolve week number")
            return None

        sf1 = self.subframe_1
        sf2 = self.subframe_2
        sf3 = self.subframe_3

        # The HOW contains the time at the start of the next subframe, so
        # subframe 1 started being transmitted 6 s earlier.
        transmission_time = (sf1.handover.time_of_week - 6) % SECONDS_PER_WEEK

        # The reference times may be in the week after (or before) the one
        # subframe 1 was transmitted in.
        transmitted_at = week * SECONDS_PER_WEEK + transmission_time
        toc = transmitted_at + wrap_time_delta(sf1.t_oc - transmission_time)
        toe = transmitted_at + wrap_time_delta(sf2.t_oe - transmission_time)
        toe_week = int(toe // SECONDS_PER_WEEK)

        # Multiplications by pi are converting semi-circles to radians.
        return EphemerisMessage(
            satellite=satellite,
            toc=from_week_and_time_of_week(0, toc),
            a_f0=sf1.a_f0,
            a_f1=sf1.a_f1,
            a_f2=sf1.a_f2,
            iode=sf2.issue_of_data_ephemeris,
            c_rs=sf2.c_rs,
            delta_n=sf2.delta_n * np.pi,
            m_0=sf2.m_0 * np.pi,
            c_uc=sf2.c_uc,
            e=sf2.e,
            c_us=sf2.c_us,
            sqrt_a=sf2.sqrt_a,
            t_oe=toe - toe_week * SECONDS_PER_WEEK,
            c_ic=sf3.c_ic,
            omega_0=sf3.omega_0 * np.pi,
            c_is=sf3.c_is,
            i_0=sf3.i_0 * np.pi,
            c_rc=sf3.c_rc,
            omega=sf3.omega * np.pi,
            omega_dot=sf3.omega_dot * np.pi,
            i_dot=sf3.i_dot * np.pi,
            codes_on_l2_channel=sf1.codes_on_l2_channel,
            week=toe_week,
            l2_p_data_flag=sf1.l2_p_data_flag,
            accuracy=URA_METERS[sf1.ura_index],
            sv_health=sf1.sv_health,
            t_gd=sf1.t_gd,
            iodc=sf1.issue_of_data_clock,
            transmission_time=transmitted_at - toe_week * SECONDS_PER_WEEK,
            fit_interval=fit_interval_hours(
                sf2.fit_interval_flag, sf1.issue_of_data_clock
            ),
        )


@dataclass(frozen=True, kw_only=True)
class EphemerisMessage:
    """A satellite's broadcast orbit and clock parameters, valid at ``toc``.

    Angles are in radians and times of week refer to ``week``, as written in
    navigation files.
    """

    satellite: Satellite

    # The time of clock, in the satellite's time scale.
    toc: Epoch

    a_f0: float  # seconds
    a_f1: float  # seconds/second
    a_f2: float  # seconds/second^2
    iode: int
    c_rs: float  # meters
    delta_n: float  # radians/second
    m_0: float  # radians
    c_uc: float  # radians
    e: float  # dimensionless
    c_us: float  # radians
    sqrt_a: float  # √meters
    t_oe: float  # seconds of ``week``
    c_ic: float  # radians
    omega_0: float  # radians
    c_is: float  # radians
    i_0: float  # radians
    c_rc: float  # meters
    omega: float  # radians
    omega_dot: float  # radians/second
    i_dot: float  # radians/second
    codes_on_l2_channel: int

    # The full (not rolled over) GPS week number ``t_oe`` belongs to.
    week: int

    l2_p_data_flag: bool
    accuracy: float  # meters
    sv_health: int
    t_gd: float  # seconds
    iodc: int

    # When subframe 1 started being transmitted, in seconds of ``week``. May be
    # negative if it was transmitted in the previous week.
    transmission_time: float

    fit_interval: float  # hours

    message_type: str = LNAV

    @property
    def semi_major_axis(self) -> float:
        """In meters."""

        return self.sqrt_a**2

    @property
    def key(self) -> tuple[Satellite, Epoch, str]:
        return (self.satellite, self.toc, self.message_type)


def fit_interval_hours(fit_interval_flag: bool, iodc: int) -> float:
    """Returns the curve fit interval in hours.

    See table 20-XII of IS-GPS-200.
    """

    if not fit_interval_flag:
        return 4
    elif 240 <= iodc <= 247:
        return 8
    elif 248 <= iodc <= 255 or iodc == 496:
        return 14
    elif 497 <= iodc <= 503 or 1021 <= iodc <= 1023:
        return 26
    else:
        return 6
