"""Low-level PNG helpers: header parsing, chunk listing and editing, filter types."""

from __future__ import annotations

import struct
import zlib
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

SIGNATURE = b"\x89PNG\r\n\x1a\n"

_CHANNELS = {0: 1, 2: 3, 3: 1, 4: 2, 6: 4}
_ALLOWED_DEPTHS = {
    0: (1, 2, 4, 8, 16),
    2: (8, 16),
    3: (1, 2, 4, 8),
    4: (8, 16),
    6: (8, 16),
}

# Adam7 passes: x start, y start, x delta, y delta
_ADAM7 = (
    (0, 0, 8, 8),
    (4, 0, 8, 8),
    (0, 4, 4, 8),
    (2, 0, 4, 4),
    (0, 2, 2, 4),
    (1, 0, 2, 2),
    (0, 1, 1, 2),
)


class PngFormatError(ValueError):
    """Raised when PNG data is malformed or cannot be handled."""


@dataclass(frozen=True)
class PngHeader:
    """The fields of a PNG IHDR chunk."""

    width: int
    height: int
    bitdepth: int
    colortype: int
    compression_method: int
    filter_method: int
    interlace_method: int

    @property
    def channels(self) -> int:
        return _CHANNELS[self.colortype]

    @property
    def bits_per_pixel(self) -> int:
        return self.channels * self.bitdepth


@dataclass(frozen=True)
class Chunk:
    """A chunk as found in a PNG file, with its raw bytes and file offset."""

    name: str
    raw: bytes
    offset: int

    @property
    def length(self) -> int:
        """The data length declared in the chunk."""
        return struct.unpack(">I", self.raw[:4])[0]

    @property
    def data(self) -> bytes:
        return self.raw[8 : 8 + self.length]

    @property
    def crc(self) -> int | None:
        """The stored CRC, or None if the chunk is truncated."""
        start = 8 + self.length
        if len(self.raw) < start + 4:
            return None
        return struct.unpack(">I", self.raw[start : start + 4])[0]

    @property
    def end(self) -> int:
        return self.offset + len(self.raw)


def read_header(png: bytes) -> PngHeader:
    """Parse and validate the signature and IHDR chunk of a PNG."""
    png = bytes(png)
    if len(png) < 33:
        raise PngFormatError("data too small to contain a PNG header")
    if png[:8] != SIGNATURE:
        raise PngFormatError("missing PNG signature")
    if png[12:16] != b"IHDR":
        raise PngFormatError("first chunk is not IHDR")
    width, height = struct.unpack(">II", png[16:24])
    bitdepth, colortype, compression, filtering, interlace = png[24:29]
    if width == 0 or height == 0:
        raise PngFormatError("image width or height is zero")
    if colortype not in _ALLOWED_DEPTHS:
        raise PngFormatError(f"invalid color type {colortype}")
    if bitdepth not in _ALLOWED_DEPTHS[colortype]:
        raise PngFormatError(f"invalid bit depth {bitdepth} for color type {colortype}")
    if compression != 0:
        raise PngFormatError("unsupported compression method")
    if filtering != 0:
        raise PngFormatError("unsupported filter method")
    if interlace > 1:
        raise PngFormatError("unsupported interlace method")
    (stored_crc,) = struct.unpack(">I", png[29:33])
    if stored_crc != zlib.crc32(png[12:29]):
        raise PngFormatError("IHDR CRC mismatch")
    return PngHeader(width, height, bitdepth, colortype, compression, filtering, interlace)


def raw_size(width: int, height: int, colortype: int, bitdepth: int) -> int:
    """Number of bytes of unfiltered pixel data for an image of this format."""
    try:
        channels = _CHANNELS[colortype]
    except KeyError:
        raise ValueError(f"invalid color type {colortype}") from None
    bpp = channels * bitdepth
    return (width * height * bpp + 7) // 8


def _next_offset(png: bytes, offset: int) -> int:
    available = len(png) - offset
    if available < 12:
        return len(png)
    total = struct.unpack(">I", png[offset : offset + 4])[0] + 12
    if total > available:
        return len(png)
    return offset + total


def iter_chunks(png: bytes) -> Iterator[Chunk]:
    """Yield the chunks after the signature, in file order."""
    png = bytes(png)
    offset = 8
    end = len(png)
    while offset < end and end - offset >= 8:
        name_bytes = png[offset + 4 : offset + 8]
        if b"\0" in name_bytes:
            raise PngFormatError("invalid chunk name; probably not a PNG")
        following = _next_offset(png, offset)
        yield Chunk(name_bytes.decode("latin-1"), png[offset:following], offset)
        offset = following


def chunk_info(png: bytes) -> list[tuple[str, int]]:
    """Names and declared data lengths of all chunks in the file."""
    return [(chunk.name, chunk.length) for chunk in iter_chunks(png)]


def get_chunks(png: bytes) -> tuple[list[Chunk], list[Chunk], list[Chunk]]:
    """Split the non-critical chunks by location.

    Location 0 lies between IHDR and PLTE, 1 between PLTE and IDAT,
    2 between IDAT and IEND. Anything after IEND is ignored.
    """
    groups: tuple[list[Chunk], list[Chunk], list[Chunk]] = ([], [], [])
    location = 0
    size = len(png)
    for chunk in iter_chunks(png):
        if chunk.name == "IHDR":
            location = 0
        elif chunk.name == "PLTE":
            location = 1
        elif chunk.name == "IDAT":
            location = 2
        elif chunk.name == "IEND":
            break
        else:
            if chunk.end >= size:
                raise PngFormatError(f"chunk {chunk.name} extends past the end of the data")
            groups[location].append(chunk)
    return groups


def _chunk_bytes(item: bytes | Chunk) -> bytes:
    return item.raw if isinstance(item, Chunk) else bytes(item)


def insert_chunks(png: bytes, chunks: Sequence[Iterable[bytes | Chunk]]) -> bytes:
    """Return a copy of png with fully encoded chunks inserted.

    chunks holds three sequences: index 0 goes between IHDR and PLTE,
    1 between PLTE and IDAT, 2 between IDAT and IEND; each is appended
    at the end of its location.
    """
    png = bytes(png)
    if len(chunks) != 3:
        raise ValueError("chunks must hold exactly three locations")
    l0 = l1 = l2 = 0
    for chunk in iter_chunks(png):
        if chunk.name == "PLTE":
            l0 = l0 or chunk.offset
        elif chunk.name == "IDAT":
            l0 = l0 or chunk.offset
            l1 = l1 or chunk.offset
        elif chunk.name == "IEND":
            l2 = l2 or chunk.offset
    if not l1:
        raise PngFormatError("no IDAT chunk found")
    if not l2:
        raise PngFormatError("no IEND chunk found")
    parts = [png[:l0]]
    parts.extend(_chunk_bytes(c) for c in chunks[0])
    parts.append(png[l0:l1])
    parts.extend(_chunk_bytes(c) for c in chunks[1])
    parts.append(png[l1:l2])
    parts.extend(_chunk_bytes(c) for c in chunks[2])
    parts.append(png[l2:])
    return b"".join(parts)


def make_chunk(name: str | bytes, data: bytes) -> bytes:
    """Encode a chunk: length, name, data and CRC."""
    name_bytes = name.encode("ascii") if isinstance(name, str) else bytes(name)
    if len(name_bytes) != 4:
        raise ValueError("chunk name must be exactly four bytes")
    data = bytes(data)
    return (
        struct.pack(">I", len(data))
        + name_bytes
        + data
        + struct.pack(">I", zlib.crc32(name_bytes + data))
    )


def _idat_stream(png: bytes) -> bytes:
    zdata = bytearray()
    end = len(png)
    try:
        for chunk in iter_chunks(png):
            if chunk.name == "IDAT":
                if chunk.offset + chunk.length + 12 > end:
                    raise PngFormatError("corrupt IDAT chunk length")
                zdata += chunk.data
    except PngFormatError as exc:
        if "chunk name" not in str(exc):
            raise
    return bytes(zdata)


def filter_types_interlaced(png: bytes) -> list[list[int]]:
    """Filter type of each scanline, per Adam7 pass.

    A non-interlaced image gives a single list; an interlaced one gives
    seven, one per pass, empty for passes that hold no pixels.
    """
    png = bytes(png)
    header = read_header(png)
    try:
        data = zlib.decompress(_idat_stream(png))
    except zlib.error as exc:
        raise PngFormatError(f"cannot decompress image data: {exc}") from exc

    w, h = header.width, header.height
    if header.interlace_method == 0:
        linebytes = 1 + raw_size(w, 1, header.colortype, header.bitdepth)
        return [list(data[::linebytes])]

    passes: list[list[int]] = [[] for _ in _ADAM7]
    pos = 0
    for values, (ix, iy, dx, dy) in zip(passes, _ADAM7):
        if ix >= w or iy >= h:
            continue
        w2 = (w - ix + dx - 1) // dx
        h2 = (h - iy + dy - 1) // dy
        linebytes = 1 + raw_size(w2, 1, header.colortype, header.bitdepth)
        for _ in range(h2):
            if pos >= len(data):
                raise PngFormatError("image data too short for interlaced passes")
            values.append(data[pos])
            pos += linebytes
    return passes


_COLUMN0 = (0, 6, 4, 6, 2, 6, 4, 6)
_COLUMN1 = (5, 6, 5, 6, 5, 6, 5, 6)
_SHIFT0 = (3, 1, 2, 1, 3, 1, 2, 1)
_SHIFT1 = (1, 1, 1, 1, 1, 1, 1, 1)


def filter_types(png: bytes) -> list[int]:
    """One filter type per scanline.

    For interlaced images the values come from Adam7 passes 6 and 7,
    alternating, which correspond most closely to the real scanlines.
    """
    passes = filter_types_interlaced(png)
    if len(passes) == 1:
        return passes[0]
    header = read_header(png)
    column = _COLUMN1 if header.width > 1 else _COLUMN0
    shift = _SHIFT1 if header.width > 1 else _SHIFT0
    return [passes[column[i & 7]][i >> shift[i & 7]] for i in range(header.height)]


def palette_value(data: bytes, i: int, bits: int) -> int:
    """Value of the i-th pixel in packed 1, 2, 4 or 8-bit data; 0 for other depths."""
    if bits == 8:
        return data[i]
    if bits == 4:
        return (data[i // 2] >> ((i % 2) * 4)) & 15
    if bits == 2:
        return (data[i // 4] >> ((i % 4) * 2)) & 3
    if bits == 1:
        return (data[i // 8] >> (i % 8)) & 1
    return 0