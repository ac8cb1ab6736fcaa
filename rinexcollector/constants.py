"""This module contains commonly used values whose definitions shouldn't change,
either because they're defined by a standard (e.g. ``SECONDS_PER_WEEK``) or
because they identify this program in the files it produces."""

from datetime import datetime, timedelta

# Time

# Section 3.3.4 of IS-GPS-200.
SECONDS_PER_WEEK: int = 60 * 60 * 24 * 7  # 604,800

# The GPS zero time-point: midnight on the morning of January 6, 1980.
GPS_EPOCH = datetime(1980, 1, 6)

# The number of leap seconds between GPS time and UTC.
#
# GPS doesn't track leap seconds, but UTC does. 18 leap seconds have occurred
# since the GPS zero time-point and leap seconds are expected to be abandoned by
# 2035, so this is hard coded rather than tracked.
LEAP_SECONDS: int = 18

# Only the 10 least significant bits of the GPS week number are broadcast, so it
# rolls over every 1024 weeks. See section 6.2.4 of IS-GPS-200.
WEEK_NUMBER_ROLLOVER: int = 1024

ONE_DAY = timedelta(days=1)

# Navigation message

# A GPS subframe is 10 words long. Each word is 30 bits, of which the first 24
# are data bits and the remaining 6 are parity bits.
WORDS_PER_SUBFRAME: int = 10
DATA_BITS_PER_WORD: int = 24

# The fixed TLM word preamble.
TLM_PREAMBLE: int = 0b10001011

# The nominal user range accuracy (URA) in meters for each URA index.
#
# See section 20.3.3.3.1.3 of IS-GPS-200. Index 15 means no accuracy prediction
# is available and is mapped to the largest value, as RINEX producers usually do.
URA_METERS: list[float] = [
    2.4,
    3.4,
    4.85,
    6.85,
    9.65,
    13.65,
    24.0,
    48.0,
    96.0,
    192.0,
    384.0,
    768.0,
    1536.0,
    3072.0,
    6144.0,
    6144.0,
]

# Output files

# Identifies this program in the "PGM / RUN BY / DATE" header line.
PROGRAM_NAME = "rinexcollector"

# The format revision written for each supported major revision number.
RINEX_VERSIONS: dict[int, float] = {2: 2.11, 3: 3.04, 4: 4.01}
