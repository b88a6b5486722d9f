"""Sequential reader for the primitive field types of an IBF record."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo

from .errors import DecodeError, ErrorKind

logger = logging.getLogger(__name__)

# day, month, year (LE), seconds, minutes, hours
DATE_FMT = "<BBHBBB"
DATE_SIZE = struct.calcsize(DATE_FMT)  # 7

VERSION_FMT = "<BBB"
VERSION_SIZE = struct.calcsize(VERSION_FMT)  # 3

_INT8 = struct.Struct("<b")
_UINT8 = struct.Struct("<B")
_UINT16_LE = struct.Struct("<H")
_UINT16_BE = struct.Struct(">H")
_INT16_LE = struct.Struct("<h")
_INT16_BE = struct.Struct(">h")
_UINT32_LE = struct.Struct("<I")
_UINT32_BE = struct.Struct(">I")
_INT32_LE = struct.Struct("<i")
_INT32_BE = struct.Struct(">i")


@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class ByteCursor:
    """Offset-tracked reader over an immutable byte buffer.

    Every read advances the offset by the width of the field.  Reading
    past the end of the buffer raises DecodeError(OUT_OF_BOUNDS) and
    leaves the offset where it was.
    """

    def __init__(self, data: bytes, tz: tzinfo | None = None):
        self._data = bytes(data)
        self._offset = 0
        self.tz = tz

    @property
    def offset(self) -> int:
        return self._offset

    def remaining(self) -> int:
        """Number of bytes not yet consumed."""
        return len(self._data) - self._offset

    def _require(self, n: int) -> None:
        if n > self.remaining():
            raise DecodeError(
                ErrorKind.OUT_OF_BOUNDS,
                f"need {n} bytes at offset {self._offset}, "
                f"{self.remaining()} left")

    def skip(self, n: int) -> None:
        """Advance past *n* reserved bytes."""
        self._require(n)
        self._offset += n

    def _unpack(self, st: struct.Struct) -> int:
        self._require(st.size)
        value = st.unpack_from(self._data, self._offset)[0]
        self._offset += st.size
        return value

    def int8(self) -> int:
        return self._unpack(_INT8)

    def uint8(self) -> int:
        return self._unpack(_UINT8)

    def uint16_le(self) -> int:
        return self._unpack(_UINT16_LE)

    def uint16_be(self) -> int:
        return self._unpack(_UINT16_BE)

    def int16_le(self) -> int:
        return self._unpack(_INT16_LE)

    def int16_be(self) -> int:
        return self._unpack(_INT16_BE)

    def uint32_le(self) -> int:
        return self._unpack(_UINT32_LE)

    def uint32_be(self) -> int:
        return self._unpack(_UINT32_BE)

    def int32_le(self) -> int:
        return self._unpack(_INT32_LE)

    def int32_be(self) -> int:
        return self._unpack(_INT32_BE)

    def next_date(self) -> datetime | None:
        """Read a 7-byte device date, or None if fewer than 7 bytes remain.

        The device writes local time, so the result is naive unless the
        cursor was given a tzinfo.  Out-of-range fields roll over into
        the neighbouring unit (day 0 is the last day of the previous
        month, hour 24 is midnight of the next day).  Year 0, as in the
        all-zero date of an erased record, still consumes its 7 bytes
        and yields None.
        """
        if self.remaining() < DATE_SIZE:
            return None

        day, month, year, seconds, minutes, hours = struct.unpack_from(
            DATE_FMT, self._data, self._offset)
        self._offset += DATE_SIZE

        if year == 0:
            return None

        # month is 1-based on the wire; 0 and 13+ carry into the year
        y, m = divmod(year * 12 + month - 1, 12)
        try:
            return datetime(y, m + 1, 1, tzinfo=self.tz) + timedelta(
                days=day - 1, hours=hours, minutes=minutes, seconds=seconds)
        except (ValueError, OverflowError):
            logger.debug("invalid date %04d-%02d-%02d %02d:%02d:%02d",
                         year, month, day, hours, minutes, seconds)
            return None

    def next_version(self) -> Version | None:
        """Read major.minor.patch, or None if fewer than 3 bytes remain."""
        if self.remaining() < VERSION_SIZE:
            return None
        major, minor, patch = struct.unpack_from(
            VERSION_FMT, self._data, self._offset)
        self._offset += VERSION_SIZE
        return Version(major, minor, patch)

    def next_string(self, width: int) -> str:
        """Read a null-terminated latin-1 string from a fixed-width field.

        The terminator scan is not limited to *width*; it runs to the end
        of the buffer.  The offset always advances by exactly *width*.
        """
        self._require(width)
        end = self._data.find(b"\x00", self._offset)
        if end < 0:
            end = len(self._data)
        text = self._data[self._offset:end].decode("latin-1")
        self._offset += width
        return text
