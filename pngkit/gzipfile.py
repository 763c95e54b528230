"""Write a file as a gzip member with a raw deflate body."""

from __future__ import annotations

import struct
import sys
import zlib
from collections.abc import Sequence
from pathlib import Path

# ID1, ID2, CM=deflate, FLG=0, MTIME=0, XFL=2 (slow compression), OS=255 (unknown)
_HEADER = bytes((31, 139, 8, 0, 0, 0, 0, 0, 2, 255))


def gzip_compress(data: bytes) -> bytes:
    """Compress data into a single gzip member."""
    data = bytes(data)
    compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
    body = compressor.compress(data) + compressor.flush()
    footer = struct.pack("<II", zlib.crc32(data) & 0xFFFFFFFF, len(data) & 0xFFFFFFFF)
    return _HEADER + body + footer


def main(argv: Sequence[str] | None = None) -> int:
    """Compress the named file to the same name with .gz appended."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Please provide input filename (output is input with .gz)")
        return 0
    infile = args[0]
    try:
        data = Path(infile).read_bytes()
    except OSError as exc:
        print(f"failed to load file {infile}: {exc}")
        return 1
    Path(infile + ".gz").write_bytes(gzip_compress(data))
    return 0


if __name__ == "__main__":
    sys.exit(main())