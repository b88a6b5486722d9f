"""Tests for ByteCursor primitive reads.

Run from the repo root:
    python3 tests/test_cursor.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "python"))

import struct
from datetime import datetime, timezone

from ibflog.cursor import ByteCursor, Version
from ibflog.errors import DecodeError, ErrorKind


def test_numeric_reads():
    """Mixed-endian reads advance by their width."""
    print("test_numeric_reads...", end="")

    data = (struct.pack("<b", -2) + struct.pack(">H", 0x1234)
            + struct.pack("<H", 0x1234) + struct.pack(">h", -300)
            + struct.pack("<h", -300) + struct.pack(">I", 0xDEADBEEF)
            + struct.pack("<I", 0xDEADBEEF) + struct.pack(">i", -70000)
            + struct.pack("<i", -70000) + b"\xff")
    cur = ByteCursor(data)

    assert cur.int8() == -2
    assert cur.uint16_be() == 0x1234
    assert cur.uint16_le() == 0x1234
    assert cur.int16_be() == -300
    assert cur.int16_le() == -300
    assert cur.uint32_be() == 0xDEADBEEF
    assert cur.uint32_le() == 0xDEADBEEF
    assert cur.int32_be() == -70000
    assert cur.int32_le() == -70000
    assert cur.offset == len(data) - 1
    assert cur.uint8() == 255
    assert cur.remaining() == 0

    print(" OK")


def test_read_past_end():
    """Reads past the end raise OUT_OF_BOUNDS and leave the offset alone."""
    print("test_read_past_end...", end="")

    cur = ByteCursor(b"\x01\x02\x03")
    cur.skip(2)
    for read in (cur.uint16_le, cur.uint32_be, lambda: cur.skip(2)):
        try:
            read()
        except DecodeError as e:
            assert e.kind is ErrorKind.OUT_OF_BOUNDS
            assert not e.fatal
        else:
            raise AssertionError("expected DecodeError")
    assert cur.offset == 2
    assert cur.uint8() == 3

    print(" OK")


def test_next_date():
    """Date fields are day, month, year LE, seconds, minutes, hours."""
    print("test_next_date...", end="")

    raw = struct.pack("<BBHBBB", 15, 6, 2023, 30, 45, 10)
    cur = ByteCursor(raw + b"\x99")
    assert cur.next_date() == datetime(2023, 6, 15, 10, 45, 30)
    assert cur.remaining() == 1

    print(" OK")


def test_next_date_short():
    """Fewer than 7 bytes yields None without consuming anything."""
    print("test_next_date_short...", end="")

    cur = ByteCursor(b"\x0f\x06\xe7\x07\x1e\x2d")
    assert cur.next_date() is None
    assert cur.remaining() == 6

    print(" OK")


def test_next_date_invalid_and_tz():
    """An all-zero date is skipped as None; tz makes dates aware."""
    print("test_next_date_invalid_and_tz...", end="")

    cur = ByteCursor(bytes(7) + struct.pack("<BBHBBB", 1, 1, 2020, 0, 0, 12),
                     tz=timezone.utc)
    assert cur.next_date() is None
    assert cur.offset == 7
    when = cur.next_date()
    assert when == datetime(2020, 1, 1, 12, tzinfo=timezone.utc)
    assert when.tzinfo is timezone.utc

    print(" OK")


def test_next_date_rollover():
    """Out-of-range fields carry into the next unit instead of failing."""
    print("test_next_date_rollover...", end="")

    def date(day, month, year, s=0, m=0, h=0):
        return ByteCursor(struct.pack("<BBHBBB", day, month, year, s, m, h)).next_date()

    assert date(15, 6, 2023, h=24) == datetime(2023, 6, 16, 0, 0, 0)
    assert date(0, 3, 2024) == datetime(2024, 2, 29)
    assert date(1, 0, 2023) == datetime(2022, 12, 1)
    assert date(1, 13, 2023) == datetime(2024, 1, 1)
    assert date(31, 4, 2023, s=60, m=59, h=23) == datetime(2023, 5, 2, 0, 0, 0)
    assert date(1, 1, 0, h=5) is None

    print(" OK")


def test_next_version():
    print("test_next_version...", end="")

    cur = ByteCursor(b"\x02\x07\xff\x01\x02")
    v = cur.next_version()
    assert v == Version(2, 7, 255)
    assert str(v) == "2.7.255"
    assert cur.next_version() is None
    assert cur.remaining() == 2

    print(" OK")


def test_next_string_fixed_width():
    """The cursor always advances by the field width."""
    print("test_next_string_fixed_width...", end="")

    field = b"hello\x00" + b"garbage!" + bytes(10)
    assert len(field) == 24
    cur = ByteCursor(field + b"next\x00" + bytes(19))

    assert cur.next_string(24) == "hello"
    assert cur.offset == 24
    assert cur.next_string(24) == "next"
    assert cur.remaining() == 0

    print(" OK")


def test_next_string_unterminated():
    """The terminator scan may run past the field; latin-1 decoding."""
    print("test_next_string_unterminated...", end="")

    cur = ByteCursor(b"ab\xe9d" + b"ef\x00gh")
    assert cur.next_string(4) == "ab\xe9def"
    assert cur.offset == 4

    cur = ByteCursor(b"abcd")
    assert cur.next_string(4) == "abcd"

    print(" OK")


if __name__ == "__main__":
    print("ibflog cursor tests")
    print("===================\n")

    test_numeric_reads()
    test_read_past_end()
    test_next_date()
    test_next_date_short()
    test_next_date_invalid_and_tz()
    test_next_date_rollover()
    test_next_version()
    test_next_string_fixed_width()
    test_next_string_unterminated()

    print("\nAll tests passed.")
