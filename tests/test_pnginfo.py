import struct
import zlib

import pytest

from pngkit.chunks import SIGNATURE, PngFormatError, make_chunk, read_header
from pngkit.pnginfo import (
    ascii_art,
    chunk_summary,
    describe_filter_types,
    describe_header,
    main,
)


def _png(width, height, rows, colortype=6, bitdepth=8, interlace=0, extra=(), split=False):
    ihdr = struct.pack(">IIBBBBB", width, height, bitdepth, colortype, 0, 0, interlace)
    z = zlib.compress(b"".join(rows))
    parts = [z[: len(z) // 2], z[len(z) // 2 :]] if split else [z]
    return (
        SIGNATURE
        + make_chunk("IHDR", ihdr)
        + b"".join(extra)
        + b"".join(make_chunk("IDAT", p) for p in parts)
        + make_chunk("IEND", b"")
    )


def _rgba_rows(pixel_rows):
    return [b"\0" + b"".join(bytes(p) for p in row) for row in pixel_rows]


def test_describe_header_fields():
    png = _png(2, 1, _rgba_rows([[(0, 0, 0, 255), (0, 0, 0, 255)]]))
    text = describe_header(read_header(png))
    assert "Color type: 6" in text.splitlines()
    assert "Bit depth: 8" in text.splitlines()
    assert "Channels per pixel: 4" in text.splitlines()
    assert "Is greyscale type: 0" in text.splitlines()


def test_describe_header_grey():
    png = _png(8, 1, [b"\0\x80"], colortype=0, bitdepth=1)
    lines = describe_header(read_header(png)).splitlines()
    assert "Is greyscale type: 1" in lines
    assert "Bits per pixel: 1" in lines


def test_chunk_summary_groups_consecutive_chunks():
    rows = _rgba_rows([[(i, i, i, 255) for i in range(5)]] * 5)
    png = _png(5, 5, rows, split=True)
    z = zlib.compress(b"".join(rows))
    a, b = len(z) // 2, len(z) - len(z) // 2
    text = chunk_summary(png)
    assert text.startswith("Chunks:\n type: length(s)")
    assert "\n IHDR: 13, " in text
    assert f"\n IDAT: {a}, {b}, " in text
    assert text.endswith("\n IEND: 0, ")


def test_chunk_summary_rejects_garbage():
    with pytest.raises(PngFormatError):
        chunk_summary(SIGNATURE + b"\0\0\0\0\0\0\0\0\0\0\0\0")


def test_describe_filter_types():
    rows = [b"\0" + bytes(4), b"\x02" + bytes(4), b"\x01" + bytes(4)]
    png = _png(1, 3, rows)
    assert describe_filter_types(png) == "Filter types: 0 2 1 "


def test_describe_filter_types_interlaced():
    png = _png(1, 1, [b"\0" + bytes(4)], interlace=1)
    assert "not supported" in describe_filter_types(png)


def test_describe_filter_types_bad_data():
    ihdr = struct.pack(">IIBBBBB", 1, 1, 8, 6, 0, 0, 0)
    png = SIGNATURE + make_chunk("IHDR", ihdr) + make_chunk("IDAT", b"garbage") + make_chunk("IEND", b"")
    with pytest.raises(PngFormatError):
        describe_filter_types(png)


def test_ascii_art_white():
    image = bytes([255, 255, 255, 255] * 4)
    art = ascii_art(image, 2, 2).splitlines()
    assert art[0] == "ASCII Art Preview: "
    assert art[1] == art[-1] == "+--+"
    assert art[2:-1] == ["|@@|"]


def test_ascii_art_black_is_blank():
    image = bytes([0, 0, 0, 255] * 9)
    rows = ascii_art(image, 3, 3).splitlines()[2:-1]
    assert rows and all(row == "|   |" for row in rows)


def test_ascii_art_width_limited():
    image = bytes([255, 255, 255, 255] * (100 * 3))
    lines = ascii_art(image, 100, 3).splitlines()
    assert all(len(line) == 48 + 2 for line in lines[1:])


def test_ascii_art_empty():
    assert ascii_art(b"", 0, 0) == ""


def test_main_without_file(capsys):
    assert main([]) == 0
    assert "Please provide a filename to preview" in capsys.readouterr().out


def test_main_missing_file(tmp_path, capsys):
    main([str(tmp_path / "missing.png")])
    assert "decoder error" in capsys.readouterr().out


def test_main_reports_rgba(tmp_path, capsys):
    path = tmp_path / "image.png"
    png = _png(2, 2, _rgba_rows([[(10, 20, 30, 40), (0, 0, 0, 255)], [(1, 2, 3, 4), (5, 6, 7, 8)]]))
    path.write_bytes(png)
    assert main([str(path)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert "Width: 2" in out
    assert "Height: 2" in out
    assert "Num pixels: 4" in out
    assert "Top left pixel color: r: 10 g: 20 b: 30 a: 40" in out
    assert f"Filesize: {len(png)} (0K)" in out
    assert "Filter types: 0 0 " in out


def test_main_palette(tmp_path, capsys):
    plte = make_chunk("PLTE", bytes([9, 8, 7, 200, 100, 50]))
    trns = make_chunk("tRNS", bytes([128]))
    path = tmp_path / "pal.png"
    path.write_bytes(_png(2, 1, [b"\0\x01\x00"], colortype=3, extra=(plte, trns)))
    main([str(path)])
    out = capsys.readouterr().out.splitlines()
    assert "Top left pixel color: r: 200 g: 100 b: 50 a: 255" in out
    assert "Palette size: 2" in out
    assert "Can have alpha: 1" in out


def test_main_one_bit_grey(tmp_path, capsys):
    path = tmp_path / "grey.png"
    path.write_bytes(_png(8, 1, [b"\0\x80"], colortype=0, bitdepth=1))
    main([str(path)])
    out = capsys.readouterr().out.splitlines()
    assert "Top left pixel color: r: 255 g: 255 b: 255 a: 255" in out
    assert "Has color key: 0" in out


def test_main_text_chunk(tmp_path, capsys):
    text = make_chunk("tEXt", b"Title\0hello")
    path = tmp_path / "text.png"
    path.write_bytes(_png(1, 1, _rgba_rows([[(1, 1, 1, 255)]]), extra=(text,)))
    main([str(path)])
    out = capsys.readouterr().out.splitlines()
    assert "Texts: 1" in out
    assert "Text: Title: hello" in out


def _art_section(output):
    return output[output.index("ASCII Art Preview"):]


def test_filtered_rows_decode_like_unfiltered(tmp_path, capsys):
    pixels = [
        (255, 255, 255, 255),
        (0, 0, 0, 255),
        (255, 0, 0, 255),
        (0, 255, 0, 255),
        (0, 0, 255, 255),
        (200, 200, 200, 255),
    ]
    plain = [b"\0" + bytes(p) for p in pixels]
    up = [b"\0" + bytes(pixels[0])]
    for prev, cur in zip(pixels, pixels[1:]):
        up.append(b"\x02" + bytes((c - p) & 255 for c, p in zip(cur, prev)))

    plain_path = tmp_path / "plain.png"
    up_path = tmp_path / "up.png"
    plain_path.write_bytes(_png(1, 6, plain))
    up_path.write_bytes(_png(1, 6, up))

    main([str(plain_path)])
    plain_out = capsys.readouterr().out
    main([str(up_path)])
    up_out = capsys.readouterr().out
    assert _art_section(plain_out) == _art_section(up_out)
    assert "Filter types: 0 2 2 2 2 2 " in up_out


def test_sub_filter_decodes(tmp_path, capsys):
    row = [(10, 20, 30, 40), (15, 25, 35, 45)]
    sub = b"\x01" + bytes(row[0]) + bytes((b - a) & 255 for a, b in zip(row[0], row[1]))
    path = tmp_path / "sub.png"
    path.write_bytes(_png(2, 1, [sub]))
    main([str(path)])
    out = capsys.readouterr().out.splitlines()
    assert "Top left pixel color: r: 10 g: 20 b: 30 a: 40" in out
    assert "Filter types: 1 " in out