"""Length-prefixed, checksummed framing of the IBF record stream.

Frame layout:
  [record_size: uint16 BE]
  [payload: record_size - 2 bytes]
  [checksum: uint16 BE]

record_size counts the length prefix itself, so one frame occupies
record_size + 2 bytes.  The checksum is the plain sum of the payload
bytes.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Iterator

import numpy as np

from .errors import DecodeError, ErrorKind

logger = logging.getLogger(__name__)

LENGTH_FMT = ">H"
LENGTH_SIZE = struct.calcsize(LENGTH_FMT)  # 2
CHECKSUM_FMT = ">H"
CHECKSUM_SIZE = struct.calcsize(CHECKSUM_FMT)  # 2

MIN_FRAME_SIZE = LENGTH_SIZE + CHECKSUM_SIZE  # 4

# Accumulator dtypes for the payload byte sum.  32 matches the PDM
# tooling (signed 32-bit sum compared untruncated against the 16-bit
# field); 16 truncates the sum to the width of the field.
_CHECKSUM_DTYPES = {
    16: np.uint16,
    32: np.int32,
}


@dataclass(frozen=True)
class RawFrame:
    payload: bytes
    record_size: int
    checksum: int

    def __len__(self) -> int:
        return len(self.payload)


@dataclass
class FrameResult:
    """Outcome of one read_frame() call.

    frame is None with error None when the buffer does not yet hold a
    complete frame; remaining is then the untouched input.
    """
    frame: RawFrame | None
    remaining: bytes | memoryview
    error: DecodeError | None = None


def payload_checksum(payload: bytes, bits: int = 32) -> int:
    """Sum the payload bytes in a wrapping accumulator of *bits* width."""
    try:
        dtype = _CHECKSUM_DTYPES[bits]
    except KeyError:
        raise ValueError(f"unsupported checksum width: {bits}") from None
    data = np.frombuffer(payload, dtype=np.uint8)
    return int(data.sum(dtype=dtype))


def read_frame_at(buffer: bytes | bytearray, offset: int,
                  checksum_bits: int = 32
                  ) -> tuple[RawFrame | None, DecodeError | None, int]:
    """Frame the record starting at *offset* without copying the rest.

    Returns (frame, error, end) where end is the offset just past the
    frame, or *offset* itself when no frame was taken.  A zero length
    prefix followed only by zero bytes is padding at the end of the
    stream and reads as "no complete frame".
    """
    available = len(buffer) - offset
    if available < MIN_FRAME_SIZE:
        return None, None, offset

    record_size = struct.unpack_from(LENGTH_FMT, buffer, offset)[0]
    if available < record_size + CHECKSUM_SIZE:
        return None, None, offset

    if record_size < MIN_FRAME_SIZE:
        if record_size == 0 and not any(buffer[offset + LENGTH_SIZE:]):
            logger.debug("%d bytes of zero padding at end of stream", available)
            return None, None, offset
        logger.warning("frame length %d overlaps its own header", record_size)
        return None, DecodeError(
            ErrorKind.BAD_FRAME_LENGTH, f"record_size={record_size}"), offset

    payload = bytes(buffer[offset + LENGTH_SIZE:offset + record_size])
    expected = struct.unpack_from(CHECKSUM_FMT, buffer, offset + record_size)[0]
    actual = payload_checksum(payload, checksum_bits)

    if actual != expected:
        logger.warning("checksum mismatch: expected %d, got %d (record_size=%d)",
                       expected, actual, record_size)
        return None, DecodeError(
            ErrorKind.CHECKSUM_MISMATCH,
            f"expected={expected}, actual={actual}, "
            f"record_size={record_size}, bytes={payload.hex()}"), offset

    return (RawFrame(payload, record_size, expected), None,
            offset + record_size + CHECKSUM_SIZE)


def read_frame(buffer: bytes, checksum_bits: int = 32) -> FrameResult:
    """Slice one frame off the front of *buffer*."""
    frame, error, end = read_frame_at(buffer, 0, checksum_bits)
    if frame is None:
        return FrameResult(None, buffer, error)
    return FrameResult(frame, buffer[end:])


def iter_frames(buffer: bytes, checksum_bits: int = 32) -> Iterator[FrameResult]:
    """Yield successive frames from an in-memory buffer.

    Stops when no complete frame remains.  A fatal framing error is
    yielded as the last result.  remaining is a memoryview into
    *buffer*, so walking a large buffer never copies its tail.
    """
    view = memoryview(buffer)
    offset = 0
    while True:
        frame, error, offset = read_frame_at(buffer, offset, checksum_bits)
        if frame is None:
            if error is not None:
                yield FrameResult(None, view[offset:], error)
            return
        yield FrameResult(frame, view[offset:])
