"""Reading IBF export files.

An IBF file is a plain sequence of frames.  PDM exports start with
file header and profile records; those are framed and checksummed like
any other record but are not log records, so callers pass skip= to
step over them.  They are never interpreted.
"""

from __future__ import annotations

import logging
from datetime import tzinfo
from pathlib import Path
from typing import Iterator

from .decoder import RecordResult, iter_records
from .framing import RawFrame, iter_frames, read_frame_at

logger = logging.getLogger(__name__)


class LogReader:
    """Reads a whole IBF file into memory and decodes it in stream order."""

    def __init__(self, path: str | Path, skip: int = 0,
                 tz: tzinfo | None = None, checksum_bits: int = 32):
        self._path = Path(path)
        self.skip = skip
        self.tz = tz
        self.checksum_bits = checksum_bits
        self._data: bytes | None = None

    def open(self) -> bytes:
        """Load the file contents."""
        data = self._path.read_bytes()
        if not data:
            raise ValueError(f"Empty file: {self._path}")
        self._data = data
        logger.debug("loaded %d bytes from %s", len(data), self._path)
        return data

    @property
    def data(self) -> bytes:
        if self._data is None:
            raise RuntimeError("Call open() first")
        return self._data

    def frames(self) -> Iterator[RawFrame]:
        """Iterate framed payloads, header/profile frames included.

        Raises the DecodeError of a fatal framing failure.
        """
        for result in iter_frames(self.data, self.checksum_bits):
            if result.error is not None:
                raise result.error
            assert result.frame is not None
            yield result.frame

    def records(self) -> Iterator[RecordResult]:
        """Iterate decode results for every frame after the first *skip*."""
        yield from iter_records(self.data, skip=self.skip, tz=self.tz,
                                checksum_bits=self.checksum_bits)

    @property
    def trailing(self) -> int:
        """Bytes left over after the last complete frame."""
        data = self.data
        offset = 0
        while True:
            frame, _, end = read_frame_at(data, offset, self.checksum_bits)
            if frame is None:
                return len(data) - offset
            offset = end

    def close(self) -> None:
        self._data = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc):
        self.close()
