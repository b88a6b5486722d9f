#!/usr/bin/env python3
"""Decode an IBF export in small chunks and print bolus records.

Header and profile records at the start of the file are reported as
decode errors.

Usage:
    python examples/stream_file.py path/to/export.ibf
"""

import sys

from ibflog.decoder import LogDecoder
from ibflog.records import Bolus

CHUNK_SIZE = 512

decoder = LogDecoder()

with open(sys.argv[1], "rb") as f:
    while True:
        data = f.read(CHUNK_SIZE)
        if not data:
            break
        for result in decoder.feed(data):
            if result.error is not None:
                print(f"error: {result.error}", file=sys.stderr)
                continue
            rec = result.record
            if isinstance(rec.payload, Bolus):
                kind = "extended" if rec.payload.extended else "normal"
                print(f"{rec.header.timestamp} bolus {rec.payload.units:.2f}U ({kind})")
        if decoder.error is not None:
            sys.exit(1)

print(f"{decoder.frames_read} frames, {decoder.buffered} bytes left over")
