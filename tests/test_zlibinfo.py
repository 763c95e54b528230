import struct
import zlib

import pytest

from pngkit.chunks import SIGNATURE, make_chunk
from pngkit.zlibinfo import (
    ZlibBlockInfo,
    ZlibExtractError,
    extract_zlib_info,
    inflate_with_info,
)


def _sample(n=3000):
    return bytes((i * 7 + (i // 13) * 3) % 251 for i in range(n)) + b"abcabcabc" * 200


def _png(zdata, split=1):
    ihdr = make_chunk("IHDR", struct.pack(">IIBBBBB", 4, 4, 8, 2, 0, 0, 0))
    step = max(1, (len(zdata) + split - 1) // split)
    idats = b"".join(make_chunk("IDAT", zdata[i : i + step]) for i in range(0, len(zdata), step))
    extra = make_chunk("tEXt", b"key\0value")
    return SIGNATURE + ihdr + extra + idats + make_chunk("IEND", b"")


def _check_huffman_block(block: ZlibBlockInfo):
    assert block.lz77_lcode[-1] == 256
    n = len(block.lz77_lcode)
    for values in (block.lz77_dcode, block.lz77_lbits, block.lz77_dbits,
                   block.lz77_lvalue, block.lz77_dvalue):
        assert len(values) == n
    assert block.numlit == sum(1 for c in block.lz77_lcode if c < 256)
    assert block.numlen == sum(1 for c in block.lz77_lcode if 257 <= c <= 285)
    assert block.numlit + sum(block.lz77_lvalue) == block.uncompressedbytes
    for code, dist in zip(block.lz77_lcode, block.lz77_dvalue):
        if code > 256:
            assert dist >= 1


def test_dynamic_round_trip():
    data = _sample()
    out, blocks = inflate_with_info(zlib.compress(data, 9))
    assert out == data
    assert sum(b.uncompressedbytes for b in blocks) == len(data)
    assert any(b.btype == 2 for b in blocks)
    for block in blocks:
        if block.btype == 2:
            assert len(block.clcl) == 19
            assert len(block.litlenlengths) == 288
            assert len(block.distlengths) == 32
            assert block.treebits > 0
            assert block.litlenlengths[256] > 0
            assert 0 <= block.hlit <= 29 and 0 <= block.hdist <= 31
        if block.btype in (1, 2):
            _check_huffman_block(block)


def test_fixed_block():
    data = _sample(500)
    comp = zlib.compressobj(9, zlib.DEFLATED, 15, 9, zlib.Z_FIXED)
    zdata = comp.compress(data) + comp.flush()
    out, blocks = inflate_with_info(zdata)
    assert out == data
    assert [b.btype for b in blocks] == [1]
    assert blocks[0].litlenlengths == []
    assert blocks[0].treebits == 0
    _check_huffman_block(blocks[0])


def test_stored_blocks():
    data = bytes(range(256)) * 300
    out, blocks = inflate_with_info(zlib.compress(data, 0))
    assert out == data
    assert len(blocks) >= 2
    assert all(b.btype == 0 for b in blocks)
    assert sum(b.uncompressedbytes for b in blocks) == len(data)
    assert all(b.lz77_lcode == [] for b in blocks)


def test_compressed_bits_cover_stream():
    data = _sample()
    zdata = zlib.compress(data, 9)
    _, blocks = inflate_with_info(zdata)
    total = sum(b.compressedbits for b in blocks)
    # deflate stream lies between the 2-byte header and the 4-byte checksum
    assert (len(zdata) - 6) * 8 - 7 <= total <= (len(zdata) - 6) * 8


@pytest.mark.parametrize(
    "zdata, code",
    [
        (b"", 53),
        (b"\x78", 53),
        (b"\x78\x00", 24),
        (b"\x77\x09\x00\x00", 25),
        (b"\x78\xbb\x00\x00", 26),
        (b"\x78\x01\x07\x00\x00\x00", 20),
        (b"\x78\x01\x01\x05\x00\x00\x00abcdefgh", 21),
    ],
)
def test_errors(zdata, code):
    with pytest.raises(ZlibExtractError) as info:
        inflate_with_info(zdata)
    assert info.value.code == code


def test_truncated_stream_keeps_blocks():
    zdata = zlib.compress(_sample(), 9)
    with pytest.raises(ZlibExtractError) as info:
        inflate_with_info(zdata[: len(zdata) // 2])
    assert len(info.value.blocks) >= 1
    assert info.value.blocks[0].btype == 2


def test_extract_from_png_matches_stream():
    zdata = zlib.compress(_sample(), 9)
    _, expected = inflate_with_info(zdata)
    assert extract_zlib_info(_png(zdata)) == expected
    assert extract_zlib_info(_png(zdata, split=4)) == expected


def test_extract_png_errors():
    zdata = zlib.compress(b"\0" * 64)
    png = _png(zdata)
    with pytest.raises(ZlibExtractError) as info:
        extract_zlib_info(b"")
    assert info.value.code == 48
    with pytest.raises(ZlibExtractError) as info:
        extract_zlib_info(png[:20])
    assert info.value.code == 27
    with pytest.raises(ZlibExtractError) as info:
        extract_zlib_info(b"X" + png[1:])
    assert info.value.code == 28
    with pytest.raises(ZlibExtractError) as info:
        extract_zlib_info(png[:-12])
    assert info.value.code in (30, 35)