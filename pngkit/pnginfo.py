"""Console report about a PNG file: header, chunks, filter types and a preview."""

from __future__ import annotations

import struct
import sys
import zlib
from collections.abc import Iterator, Sequence
from pathlib import Path

from pngkit.chunks import (
    PngFormatError,
    PngHeader,
    filter_types_interlaced,
    iter_chunks,
    raw_size,
    read_header,
)

_ADAM7 = (
    (0, 0, 8, 8),
    (4, 0, 8, 8),
    (0, 4, 4, 8),
    (2, 0, 4, 4),
    (0, 2, 2, 4),
    (1, 0, 2, 2),
    (0, 1, 1, 2),
)


def describe_header(header: PngHeader) -> str:
    """Lines describing the IHDR fields of a PNG."""
    lines = [
        f"Compression method: {header.compression_method}",
        f"Filter method: {header.filter_method}",
        f"Interlace method: {header.interlace_method}",
        f"Color type: {header.colortype}",
        f"Bit depth: {header.bitdepth}",
        f"Bits per pixel: {header.bits_per_pixel}",
        f"Channels per pixel: {header.channels}",
        f"Is greyscale type: {int(header.colortype in (0, 4))}",
    ]
    return "\n".join(lines)


def chunk_summary(png: bytes) -> str:
    """Chunk names with their lengths; consecutive chunks of one type share a line."""
    parts = ["Chunks:\n type: length(s)"]
    last = None
    for chunk in iter_chunks(png):
        if chunk.name != last:
            parts.append(f"\n {chunk.name}: ")
            last = chunk.name
        parts.append(f"{chunk.length}, ")
    return "".join(parts)


def describe_filter_types(png: bytes) -> str:
    """The filter type of each scanline of a non-interlaced PNG."""
    header = read_header(png)
    if header.interlace_method == 1:
        return "showing filtertypes for interlaced PNG not supported by this example"
    (values,) = filter_types_interlaced(png)
    return "Filter types: " + "".join(f"{v} " for v in values)


def _symbol(r: int, g: int, b: int, a: int) -> str:
    lightness = ((r + g + b) // 3) * a // 255
    low = min(r, g, b)
    high = max(r, g, b)
    letter = "i"
    if high - low > 32:
        if lightness >= (low + high) // 2:
            letter = "c" if low == r else ("m" if low == g else "y")
        else:
            letter = "r" if high == r else ("g" if high == g else "b")
    if lightness > 224:
        return "@"
    if lightness > 128:
        return letter.upper()
    if lightness > 32:
        return letter
    if lightness > 16:
        return "."
    return " "


def ascii_art(image: bytes, width: int, height: int) -> str:
    """A small text preview of RGBA pixels; empty for an empty image."""
    if width <= 0 or height <= 0:
        return ""
    w2 = min(48, width)
    h2 = height * w2 // width
    h2 = h2 * 2 // 3  # terminal characters are taller than wide
    h2 = min(h2, w2 * 2)

    border = "+" + "-" * w2 + "+"
    lines = ["ASCII Art Preview: ", border]
    for y in range(h2):
        y2 = y * height // h2
        row = []
        for x in range(w2):
            x2 = x * width // w2
            base = (y2 * width + x2) * 4
            r, g, b, a = image[base : base + 4]
            row.append(_symbol(r, g, b, a))
        lines.append("|" + "".join(row) + "|")
    lines.append(border)
    return "\n".join(lines) + "\n"


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    return b if pb <= pc else c


def _unfilter(data: bytes, pos: int, rows: int, stride: int, bpp: int) -> tuple[list[bytes], int]:
    prev = bytes(stride)
    result = []
    for _ in range(rows):
        if pos + 1 + stride > len(data):
            raise PngFormatError("image data too short")
        ftype = data[pos]
        line = bytearray(data[pos + 1 : pos + 1 + stride])
        pos += 1 + stride
        if ftype == 1:
            for i in range(bpp, stride):
                line[i] = (line[i] + line[i - bpp]) & 255
        elif ftype == 2:
            line = bytearray((x + p) & 255 for x, p in zip(line, prev))
        elif ftype == 3:
            for i in range(stride):
                left = line[i - bpp] if i >= bpp else 0
                line[i] = (line[i] + (left + prev[i]) // 2) & 255
        elif ftype == 4:
            for i in range(stride):
                left = line[i - bpp] if i >= bpp else 0
                corner = prev[i - bpp] if i >= bpp else 0
                line[i] = (line[i] + _paeth(left, prev[i], corner)) & 255
        elif ftype != 0:
            raise PngFormatError(f"invalid filter type {ftype}")
        result.append(bytes(line))
        prev = line
    return result, pos


def _samples(row: bytes, count: int, bitdepth: int) -> list[int]:
    if bitdepth == 8:
        return list(row[:count])
    if bitdepth == 16:
        return list(struct.unpack(f">{count}H", row[: 2 * count]))
    per_byte = 8 // bitdepth
    mask = (1 << bitdepth) - 1
    return [
        (row[i // per_byte] >> (8 - bitdepth * (i % per_byte + 1))) & mask
        for i in range(count)
    ]


def _row_rgba(
    row: bytes, count: int, header: PngHeader, palette: bytes, trns: bytes | None
) -> Iterator[tuple[int, int, int, int]]:
    ct, bd = header.colortype, header.bitdepth
    samples = _samples(row, count * header.channels, bd)
    maxval = (1 << bd) - 1

    def eight(v: int) -> int:
        return v >> 8 if bd == 16 else v * 255 // maxval

    if ct == 3:
        alphas = trns or b""
        for index in samples:
            if 3 * index + 3 > len(palette):
                raise PngFormatError("palette index out of range")
            r, g, b = palette[3 * index : 3 * index + 3]
            yield r, g, b, alphas[index] if index < len(alphas) else 255
    elif ct == 0:
        key = struct.unpack(">H", trns[:2])[0] if trns and len(trns) >= 2 else None
        for v in samples:
            g = eight(v)
            yield g, g, g, 0 if v == key else 255
    elif ct == 2:
        key3 = struct.unpack(">3H", trns[:6]) if trns and len(trns) >= 6 else None
        for rgb in zip(*[iter(samples)] * 3):
            yield eight(rgb[0]), eight(rgb[1]), eight(rgb[2]), 0 if rgb == key3 else 255
    elif ct == 4:
        for v, a in zip(*[iter(samples)] * 2):
            g = eight(v)
            yield g, g, g, eight(a)
    else:
        for r, g, b, a in zip(*[iter(samples)] * 4):
            yield eight(r), eight(g), eight(b), eight(a)


def _decode_rgba(png: bytes, ignore_checksums: bool = False) -> tuple[PngHeader, bytes]:
    header = read_header(png)
    palette = b""
    trns = None
    idat = bytearray()
    for chunk in iter_chunks(png):
        if chunk.name == "PLTE":
            palette = chunk.data
        elif chunk.name == "tRNS":
            trns = chunk.data
        elif chunk.name == "IDAT":
            idat += chunk.data
        elif chunk.name == "IEND":
            break
    if not idat:
        raise PngFormatError("no image data")
    if header.colortype == 3 and not palette:
        raise PngFormatError("palette image without PLTE chunk")
    try:
        if ignore_checksums:
            data = zlib.decompressobj(-15).decompress(bytes(idat[2:]))
        else:
            data = zlib.decompress(bytes(idat))
    except zlib.error as exc:
        raise PngFormatError(f"cannot decompress image data: {exc}") from exc

    w, h = header.width, header.height
    bpp = max(1, header.bits_per_pixel // 8)
    out = bytearray(w * h * 4)
    passes = _ADAM7 if header.interlace_method == 1 else ((0, 0, 1, 1),)
    pos = 0
    for ix, iy, dx, dy in passes:
        if ix >= w or iy >= h:
            continue
        pw = (w - ix + dx - 1) // dx
        ph = (h - iy + dy - 1) // dy
        stride = raw_size(pw, 1, header.colortype, header.bitdepth)
        rows, pos = _unfilter(data, pos, ph, stride, bpp)
        for py, row in enumerate(rows):
            y = iy + py * dy
            for px, rgba in enumerate(_row_rgba(row, pw, header, palette, trns)):
                base = (y * w + ix + px * dx) * 4
                out[base : base + 4] = bytes(rgba)
    return header, bytes(out)


def _describe_ancillary(header: PngHeader, png: bytes) -> list[str]:
    palette = b""
    trns = None
    texts: list[tuple[str, str]] = []
    itexts: list[tuple[str, str, str, str]] = []
    time = None
    phys = None
    for chunk in iter_chunks(png):
        data = chunk.data
        if chunk.name == "PLTE":
            palette = data
        elif chunk.name == "tRNS":
            trns = data
        elif chunk.name == "tEXt":
            key, _, text = data.partition(b"\0")
            texts.append((key.decode("latin-1"), text.decode("latin-1")))
        elif chunk.name == "zTXt":
            key, _, rest = data.partition(b"\0")
            try:
                text = zlib.decompress(rest[1:]).decode("latin-1")
            except zlib.error:
                text = ""
            texts.append((key.decode("latin-1"), text))
        elif chunk.name == "iTXt":
            key, _, rest = data.partition(b"\0")
            compressed = rest[:1] == b"\x01"
            lang, _, rest = rest[2:].partition(b"\0")
            transkey, _, body = rest.partition(b"\0")
            if compressed:
                try:
                    body = zlib.decompress(body)
                except zlib.error:
                    body = b""
            itexts.append(
                (
                    key.decode("latin-1"),
                    lang.decode("latin-1"),
                    transkey.decode("utf-8", "replace"),
                    body.decode("utf-8", "replace"),
                )
            )
        elif chunk.name == "tIME" and len(data) >= 7:
            time = struct.unpack(">HBBBBB", data[:7])
        elif chunk.name == "pHYs" and len(data) >= 9:
            phys = struct.unpack(">IIB", data[:9])

    key = None
    if trns is not None and header.colortype == 0 and len(trns) >= 2:
        (v,) = struct.unpack(">H", trns[:2])
        key = (v, v, v)
    elif trns is not None and header.colortype == 2 and len(trns) >= 6:
        key = struct.unpack(">3H", trns[:6])
    palette_alpha = header.colortype == 3 and trns is not None and any(a < 255 for a in trns)
    can_have_alpha = key is not None or header.colortype in (4, 6) or palette_alpha

    lines = [
        f"Can have alpha: {int(can_have_alpha)}",
        f"Palette size: {len(palette) // 3}",
        f"Has color key: {int(key is not None)}",
    ]
    if key is not None:
        lines += [f"Color key r: {key[0]}", f"Color key g: {key[1]}", f"Color key b: {key[2]}"]
    lines.append(f"Texts: {len(texts)}")
    for k, text in texts:
        lines += [f"Text: {k}: {text}", ""]
    lines.append(f"International texts: {len(itexts)}")
    for k, lang, transkey, text in itexts:
        lines += [f"Text: {k}, {lang}, {transkey}: {text}", ""]
    lines.append(f"Time defined: {int(time is not None)}")
    if time is not None:
        for name, value in zip(("year", "month", "day", "hour", "minute", "second"), time):
            lines.append(f"{name}: {value}")
    lines.append(f"Physics defined: {int(phys is not None)}")
    if phys is not None:
        lines += [
            f"physics X: {phys[0]}",
            f"physics Y: {phys[1]}",
            f"physics unit: {phys[2]}",
        ]
    return lines


def main(argv: Sequence[str] | None = None) -> int:
    """Print information about a PNG file given on the command line."""
    args = sys.argv[1:] if argv is None else list(argv)
    ignore_checksums = False
    filename = ""
    for arg in args:
        if arg == "--ignore_checksums":
            ignore_checksums = True
        else:
            filename = arg
    if not filename:
        print("Please provide a filename to preview")
        return 0

    try:
        buffer = Path(filename).read_bytes()
    except OSError as exc:
        print(f"decoder error: {exc}")
        return 0
    try:
        header, image = _decode_rgba(buffer, ignore_checksums)
    except PngFormatError as exc:
        print(f"decoder error: {exc}")
        return 0

    w, h = header.width, header.height
    print(f"Filesize: {len(buffer)} ({len(buffer) // 1024}K)")
    print(f"Width: {w}")
    print(f"Height: {h}")
    print(f"Num pixels: {w * h}")
    if w > 0 and h > 0:
        r, g, b, a = image[:4]
        print(f"Top left pixel color: r: {r} g: {g} b: {b} a: {a}")

    print(describe_header(header))
    for line in _describe_ancillary(header, buffer):
        print(line)
    print()

    print()
    try:
        print(chunk_summary(buffer))
    except PngFormatError:
        print("this is probably not a PNG")
    print()

    try:
        print(describe_filter_types(buffer))
    except PngFormatError as exc:
        print(f"filter type error: {exc}")
    print()

    art = ascii_art(image, w, h)
    if art:
        print()
        print(art, end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())