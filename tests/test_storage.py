"""Tests for IBF file reading and the command-line tool.

Run from the repo root:
    python3 tests/test_storage.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "python"))

import contextlib
import io
import json
import struct
import tempfile

from ibflog.cli import main
from ibflog.errors import DecodeError, ErrorKind
from ibflog.records import HistoryType
from ibflog.storage import LogReader

DATE = struct.pack("<BBHBBB", 2, 3, 2018, 0, 15, 8)


def make_frame(payload):
    return (struct.pack(">H", len(payload) + 2) + payload
            + struct.pack(">H", sum(payload) & 0xFFFF))


def history_frame(subtype, body=b"", index=0):
    payload = (struct.pack(">biHH", 0x03, index, 0, 0) + DATE + b"\x00"
               + struct.pack("<I", 60) + struct.pack("<IHxx", subtype, 0) + body)
    return make_frame(payload)


def write_test_file(data):
    """Write *data* to a temporary .ibf file and return its path."""
    with tempfile.NamedTemporaryFile(suffix=".ibf", delete=False) as f:
        f.write(data)
        return f.name


def sample_log():
    profile = [make_frame(b"profile-%d" % i) for i in range(2)]
    log = [
        history_frame(HistoryType.BOLUS, struct.pack("<IHHH", 150, 0, 65535, 30), index=10),
        history_frame(HistoryType.SUSPEND, index=11),
        history_frame(0x0003, index=12),
    ]
    return b"".join(profile + log) + b"\x00\x40\x01"


def test_reader_records():
    """Leading frames are skipped, records decode in order."""
    print("test_reader_records...", end="")

    path = write_test_file(sample_log())
    try:
        with LogReader(path, skip=2) as reader:
            results = list(reader.records())
            assert len(results) == 3
            assert results[0].record.payload.units == 1.5
            assert results[0].record.payload.extended
            assert results[1].record.kind == "SUSPEND"
            assert results[2].error.kind is ErrorKind.UNKNOWN_HISTORY_TYPE

            frames = list(reader.frames())
            assert len(frames) == 5
            assert frames[0].payload == b"profile-0"
            assert reader.trailing == 3
    finally:
        os.unlink(path)

    print(" OK")


def test_reader_checksum_failure():
    """frames() raises the fatal framing error."""
    print("test_reader_checksum_failure...", end="")

    bad = bytearray(history_frame(HistoryType.SUSPEND))
    bad[4] ^= 0xFF
    path = write_test_file(history_frame(HistoryType.RESUME) + bytes(bad))
    try:
        with LogReader(path) as reader:
            frames = []
            try:
                for frame in reader.frames():
                    frames.append(frame)
            except DecodeError as e:
                assert e.kind is ErrorKind.CHECKSUM_MISMATCH
            else:
                raise AssertionError("expected DecodeError")
            assert len(frames) == 1
    finally:
        os.unlink(path)

    print(" OK")


def test_reader_empty_file():
    print("test_reader_empty_file...", end="")

    path = write_test_file(b"")
    try:
        reader = LogReader(path)
        try:
            reader.open()
        except ValueError:
            pass
        else:
            raise AssertionError("expected ValueError")
        try:
            reader.data
        except RuntimeError:
            pass
        else:
            raise AssertionError("expected RuntimeError")
    finally:
        os.unlink(path)

    print(" OK")


def test_cli_dump_json():
    """dump --json prints one object per record and errors to stderr."""
    print("test_cli_dump_json...", end="")

    path = write_test_file(sample_log())
    try:
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            status = main(["dump", path, "--skip", "2", "--json"])
        assert status == 0

        lines = out.getvalue().splitlines()
        assert len(lines) == 2
        bolus = json.loads(lines[0])
        assert bolus["kind"] == "BOLUS"
        assert bolus["log_type"] == "HISTORY"
        assert bolus["log_index"] == 10
        assert bolus["timestamp"] == "2018-03-02T08:15:00"
        assert bolus["error"] == "NO_ERR"
        assert bolus["flags"] == []
        assert bolus["extended"] is True
        assert json.loads(lines[1])["kind"] == "SUSPEND"
        assert "unknown history log record type" in err.getvalue()
    finally:
        os.unlink(path)

    print(" OK")


def test_cli_dump_fatal():
    """A checksum failure stops the dump with status 1."""
    print("test_cli_dump_fatal...", end="")

    path = write_test_file(history_frame(HistoryType.RESUME)
                           + make_frame(b"\x01\x02")[:-1] + b"\x00")
    try:
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            status = main(["dump", path, "--skip", "0"])
        assert status == 1
        assert "RESUME" in out.getvalue()
        assert "checksum mismatch" in err.getvalue()
    finally:
        os.unlink(path)

    print(" OK")


def test_cli_dump_zero_padding():
    """A zero-filled file tail is not an error."""
    print("test_cli_dump_zero_padding...", end="")

    path = write_test_file(history_frame(HistoryType.RESUME) + bytes(512))
    try:
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            status = main(["dump", path, "--skip", "0"])
        assert status == 0
        assert "RESUME" in out.getvalue()
        assert err.getvalue() == ""

        with LogReader(path) as reader:
            assert len(list(reader.frames())) == 1
            assert reader.trailing == 512
    finally:
        os.unlink(path)

    print(" OK")


def test_cli_alarms():
    print("test_cli_alarms...", end="")

    out = io.StringIO()
    with contextlib.redirect_stdout(out):
        assert main(["alarms"]) == 0
    lines = out.getvalue().splitlines()
    assert len(lines) == 31
    assert any("HAZ_PUMP_VOL" in line and "stops=yes" in line for line in lines)

    print(" OK")


if __name__ == "__main__":
    print("ibflog storage tests")
    print("====================\n")

    test_reader_records()
    test_reader_checksum_failure()
    test_reader_empty_file()
    test_cli_dump_json()
    test_cli_dump_fatal()
    test_cli_dump_zero_padding()
    test_cli_alarms()

    print("\nAll tests passed.")
