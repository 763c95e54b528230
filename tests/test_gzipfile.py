import gzip
import struct
import zlib

import pytest

from pngkit.gzipfile import gzip_compress, main


@pytest.mark.parametrize("data", [b"", b"hello world", bytes(range(256)) * 100])
def test_round_trip(data):
    assert gzip.decompress(gzip_compress(data)) == data


def test_header_bytes():
    assert gzip_compress(b"abc")[:10] == b"\x1f\x8b\x08\x00\x00\x00\x00\x00\x02\xff"


def test_footer_holds_crc_and_size():
    data = b"some data to compress " * 50
    out = gzip_compress(data)
    crc, size = struct.unpack("<II", out[-8:])
    assert crc == zlib.crc32(data)
    assert size == len(data)


def test_main_writes_gz_file(tmp_path):
    source = tmp_path / "input.txt"
    data = b"line of text\n" * 40
    source.write_bytes(data)
    assert main([str(source)]) == 0
    target = tmp_path / "input.txt.gz"
    assert gzip.decompress(target.read_bytes()) == data


def test_main_without_arguments(capsys):
    assert main([]) == 0
    assert "Please provide input filename" in capsys.readouterr().out


def test_main_missing_file(tmp_path):
    assert main([str(tmp_path / "missing.bin")]) == 1
    assert not (tmp_path / "missing.bin.gz").exists()