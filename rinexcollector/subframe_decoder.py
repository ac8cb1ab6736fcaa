from typing import cast

from .constants import DATA_BITS_PER_WORD, TLM_PREAMBLE, WORDS_PER_SUBFRAME
from .subframes import (
    Handover,
    Subframe,
    Subframe1,
    Subframe2,
    Subframe3,
    Subframe4,
    Subframe5,
    SubframeId,
    Telemetry,
)
from .utils import InvariantError

_BITS_PER_SUBFRAME = WORDS_PER_SUBFRAME * DATA_BITS_PER_WORD


class SubframeLayoutError(Exception):
    """Indicates that a subframe's words don't form a valid GPS LNAV subframe."""

    pass


def decode_subframe(words: list[int]) -> Subframe:
    """Decodes a GPS LNAV subframe from the ten 30 bit words it was sent in.

    The receiver has already checked parity and undone the transmitted data bit
    inversion, so each word's 24 data bits are used as is. Raises a
    ``SubframeLayoutError`` if the words can't be a subframe.
    """

    if len(words) != WORDS_PER_SUBFRAME:
        raise SubframeLayoutError(
            f"Expected {WORDS_PER_SUBFRAME} words, got: {len(words)}"
        )

    return _SubframeDecoder(words).decode()


class _SubframeDecoder:
    """Implements the decoding logic.

    Decoding requires a cursor, and it's easier to create and discard an
    instance of this class for each subframe than to reset it appropriately.
    """

    def __init__(self, words: list[int]) -> None:
        self._cursor = 0

        # The subframe's 240 data bits as a single integer, MSB first.
        self._data = 0
        for word in words:
            self._data = (self._data << DATA_BITS_PER_WORD) | (
                (word >> 6) & 0xFFFFFF
            )

    def decode(self) -> Subframe:
        telemetry = self._decode_telemetry()
        handover = self._decode_handover()

        match handover.subframe_id:
            case 1:
                return self._decode_subframe_1(telemetry, handover)

            case 2:
                return self._decode_subframe_2(telemetry, handover)

            case 3:
                return self._decode_subframe_3(telemetry, handover)

            case 4:
                return Subframe4(telemetry, handover)

            case 5:
                return Subframe5(telemetry, handover)

            case _:
                raise InvariantError(f"Invalid subframe ID: {handover.subframe_id}")

    def _decode_telemetry(self) -> Telemetry:
        preamble = self._get_int(8)
        if preamble != TLM_PREAMBLE:
            raise SubframeLayoutError(f"Invalid TLM preamble: {preamble:#04x}")

        # The TLM message is only meaningful to authorized users.
        self._skip_bits(14)

        integrity_status_flag = self._get_bool()

        # Reserved
        self._skip_bits(1)

        return Telemetry(integrity_status_flag)

    def _decode_handover(self) -> Handover:
        tow_count = self._get_int(17)
        alert_flag = self._get_bool()
        anti_spoof_flag = self._get_bool()

        subframe_id = self._get_int(3)
        if subframe_id not in (1, 2, 3, 4, 5):
            raise SubframeLayoutError(f"Invalid subframe ID: {subframe_id}")

        # The last two bits solve for parity.
        self._skip_bits(2)

        return Handover(
            tow_count, alert_flag, anti_spoof_flag, cast(SubframeId, subframe_id)
        )

    def _decode_subframe_1(self, telemetry: Telemetry, handover: Handover) -> Subframe1:
        week_number_mod_1024 = self._get_int(10)
        codes_on_l2_channel = self._get_int(2)
        ura_index = self._get_int(4)
        sv_health = self._get_int(6)
        issue_of_data_clock_msbs = self._get_int(2)
        l2_p_data_flag = self._get_bool()

        # Reserved
        self._skip_bits(87)

        t_gd = self._get_float(8, -31, True)
        issue_of_data_clock_lsbs = self._get_int(8)
        t_oc = self._get_float(16, 4, False)
        a_f2 = self._get_float(8, -55, True)
        a_f1 = self._get_float(16, -43, True)
        a_f0 = self._get_float(22, -31, True)

        return Subframe1(
            telemetry,
            handover,
            week_number_mod_1024=week_number_mod_1024,
            codes_on_l2_channel=codes_on_l2_channel,
            ura_index=ura_index,
            sv_health=sv_health,
            issue_of_data_clock=(issue_of_data_clock_msbs << 8)
            | issue_of_data_clock_lsbs,
            l2_p_data_flag=l2_p_data_flag,
            t_gd=t_gd,
            t_oc=t_oc,
            a_f2=a_f2,
            a_f1=a_f1,
            a_f0=a_f0,
        )

    def _decode_subframe_2(self, telemetry: Telemetry, handover: Handover) -> Subframe2:
        return Subframe2(
            telemetry,
            handover,
            issue_of_data_ephemeris=self._get_int(8),
            c_rs=self._get_float(16, -5, True),
            delta_n=self._get_float(16, -43, True),
            m_0=self._get_float(32, -31, True),
            c_uc=self._get_float(16, -29, True),
            e=self._get_float(32, -33, False),
            c_us=self._get_float(16, -29, True),
            sqrt_a=self._get_float(32, -19, False),
            t_oe=self._get_float(16, 4, False),
            fit_interval_flag=self._get_bool(),
            age_of_data_offset=self._get_int(5),
        )

    def _decode_subframe_3(self, telemetry: Telemetry, handover: Handover) -> Subframe3:
        return Subframe3(
            telemetry,
            handover,
            c_ic=self._get_float(16, -29, True),
            omega_0=self._get_float(32, -31, True),
            c_is=self._get_float(16, -29, True),
            i_0=self._get_float(32, -31, True),
            c_rc=self._get_float(16, -5, True),
            omega=self._get_float(32, -31, True),
            omega_dot=self._get_float(24, -43, True),
            issue_of_data_ephemeris=self._get_int(8),
            i_dot=self._get_float(14, -43, True),
        )

    def _get_bool(self) -> bool:
        return self._get_int(1) == 1

    def _get_float(
        self, bit_count: int, scale_factor_exponent: int, twos_complement: bool
    ) -> float:
        """Reads ``bit_count`` bits as an integer, optionally interprets it in
        two's complement representation, multiplies it by 2 to the power of
        ``scale_factor_exponent``, and returns the result as a ``float``.
        """

        number = self._get_int(bit_count)

        if twos_complement and number & (1 << (bit_count - 1)):
            number -= 1 << bit_count

        return float(number * 2.0**scale_factor_exponent)

    def _get_int(self, bit_count: int) -> int:
        if self._cursor + bit_count > _BITS_PER_SUBFRAME:
            raise SubframeLayoutError("Can't read past end of subframe")

        shift = _BITS_PER_SUBFRAME - self._cursor - bit_count
        self._cursor += bit_count
        return (self._data >> shift) & ((1 << bit_count) - 1)

    def _skip_bits(self, bit_count: int) -> None:
        self._get_int(bit_count)
