"""Conversion between uncompressed 24/32-bit BMP files and raw pixel buffers."""

from __future__ import annotations

import struct

_MIN_HEADER = 54


class BmpError(ValueError):
    """Raised when BMP data is malformed or of an unsupported kind."""


def _padded(rowbytes: int) -> int:
    return (rowbytes + 3) // 4 * 4


def decode_bmp(bmp: bytes) -> tuple[bytes, int, int]:
    """Decode an uncompressed 24 or 32-bit BMP.

    Returns the pixels as RGBA (four bytes per pixel, top row first), the
    width and the height. Images without alpha get an opaque alpha channel.
    """
    bmp = bytes(bmp)
    if len(bmp) < _MIN_HEADER:
        raise BmpError("data too small to contain a BMP header")
    if bmp[:2] != b"BM":
        raise BmpError("missing BM marker; not a BMP file")
    pixeloffset = bmp[10] + 256 * bmp[11]
    width = bmp[18] + 256 * bmp[19]
    height = bmp[22] + 256 * bmp[23]
    if bmp[28] not in (24, 32):
        raise BmpError("only 24-bit and 32-bit BMP files are supported")
    channels = bmp[28] // 8

    scanline = _padded(width * channels)
    if len(bmp) < scanline * height + pixeloffset:
        raise BmpError("BMP file too small to contain all pixels")

    image = bytearray()
    for y in range(height):
        start = pixeloffset + (height - y - 1) * scanline
        row = bmp[start : start + width * channels]
        out = bytearray(4 * width)
        out[0::4] = row[2::channels]
        out[1::4] = row[1::channels]
        out[2::4] = row[0::channels]
        out[3::4] = row[3::channels] if channels == 4 else b"\xff" * width
        image += out
    return bytes(image), width, height


def encode_bmp(image: bytes, width: int, height: int) -> bytes:
    """Encode RGB pixels (three bytes per pixel, top row first) as a 24-bit BMP."""
    image = bytes(image)
    if width < 0 or height < 0:
        raise ValueError("width and height must not be negative")
    rowbytes = 3 * width
    if len(image) < rowbytes * height:
        raise ValueError("image buffer too small for the given size")

    stride = _padded(rowbytes)
    padding = b"\0" * (stride - rowbytes)
    body = bytearray()
    for y in range(height - 1, -1, -1):
        row = image[rowbytes * y : rowbytes * (y + 1)]
        bgr = bytearray(rowbytes)
        bgr[0::3] = row[2::3]
        bgr[1::3] = row[1::3]
        bgr[2::3] = row[0::3]
        body += bgr + padding

    size = _MIN_HEADER + len(body)
    file_header = struct.pack("<2sIHHI", b"BM", size, 0, 0, _MIN_HEADER)
    info_header = struct.pack("<IiiHHIIiiII", 40, width, height, 1, 24, 0, 0, 0, 0, 0, 0)
    return file_header + info_header + bytes(body)