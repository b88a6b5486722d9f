"""Decode error taxonomy."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    CHECKSUM_MISMATCH = "checksum mismatch"
    BAD_FRAME_LENGTH = "bad frame length"
    INSUFFICIENT_DATA = "insufficient data"
    UNKNOWN_LOG_TYPE = "unknown log record type"
    UNKNOWN_HISTORY_TYPE = "unknown history log record type"
    OUT_OF_BOUNDS = "read past end of record"
    INTERNAL = "internal error"

    @property
    def fatal(self) -> bool:
        """True if the stream cannot be trusted past this error."""
        return self in _FATAL


_FATAL = frozenset({
    ErrorKind.CHECKSUM_MISMATCH,
    ErrorKind.BAD_FRAME_LENGTH,
    ErrorKind.INTERNAL,
})


class DecodeError(Exception):
    """A framing or decoding failure.

    Returned as a value from read_frame() / decode_record(); raised only
    from inside the cursor and from RecordResult.unwrap().
    """

    def __init__(self, kind: ErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        msg = kind.value
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)

    @property
    def fatal(self) -> bool:
        return self.kind.fatal
