"""Zlib decompression of PNG image data that records how each deflate block was encoded."""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass, field

_LENBASE = (3, 4, 5, 6, 7, 8, 9, 10, 11, 13, 15, 17, 19, 23, 27, 31, 35, 43, 51, 59,
            67, 83, 99, 115, 131, 163, 195, 227, 258)
_LENEXTRA = (0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 2, 2, 2, 2, 3, 3, 3, 3,
             4, 4, 4, 4, 5, 5, 5, 5, 0)
_DISTBASE = (1, 2, 3, 4, 5, 7, 9, 13, 17, 25, 33, 49, 65, 97, 129, 193, 257, 385, 513, 769,
             1025, 1537, 2049, 3073, 4097, 6145, 8193, 12289, 16385, 24577)
_DISTEXTRA = (0, 0, 0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6, 7, 7, 8, 8,
              9, 9, 10, 10, 11, 11, 12, 12, 13, 13)
# order in which code length code lengths are stored
_CLCL = (16, 17, 18, 0, 8, 7, 9, 6, 10, 5, 11, 4, 12, 3, 13, 2, 14, 1, 15)

_MESSAGES = {
    10: "end of input reached without end code",
    11: "invalid Huffman code: outside the code tree",
    13: "repeat code exceeds the number of code lengths",
    14: "zero repeat exceeds the number of code lengths",
    15: "long zero repeat exceeds the number of code lengths",
    16: "invalid code length code",
    18: "invalid distance code",
    20: "invalid block type 3",
    21: "NLEN is not the one's complement of LEN",
    23: "stored block reads past the end of the input",
    24: "invalid FCHECK in zlib header",
    25: "unsupported compression method or window size",
    26: "preset dictionary is not allowed",
    27: "data too small to contain a PNG header",
    28: "missing PNG signature",
    29: "first chunk is not IHDR",
    30: "input too small to contain the next chunk",
    35: "chunk extends past the end of the input",
    48: "input is empty",
    49: "dynamic tree header reads past the end of the input",
    50: "code length repeat reads past the end of the input",
    51: "length or distance extra bits read past the end of the input",
    52: "read past the end of the input or back-reference before the start",
    53: "zlib data too small",
    54: "repeat of previous code length without a previous length",
    55: "invalid Huffman code lengths",
    63: "chunk length too large",
    64: "end code has zero length",
}


class ZlibExtractError(ValueError):
    """Raised when PNG or zlib data cannot be decoded.

    code is the numeric error kind; blocks holds the information gathered
    about the blocks read before the failure.
    """

    def __init__(self, code: int, blocks: list[ZlibBlockInfo] | None = None) -> None:
        super().__init__(f"extract error {code}: {_MESSAGES.get(code, 'unknown error')}")
        self.code = code
        self.blocks: list[ZlibBlockInfo] = blocks if blocks is not None else []


@dataclass
class ZlibBlockInfo:
    """How one deflate block was encoded.

    The tree fields are filled only for dynamic blocks (btype 2), the LZ77
    fields for Huffman blocks (btype 1 or 2). The lz77_* lists all have the
    length of lz77_lcode; their entries are meaningful only where lz77_lcode
    holds a length code. treecodes holds the code length codes, with the
    repeat count following each 17 or 18.
    """

    btype: int = 0
    compressedbits: int = 0
    uncompressedbytes: int = 0
    treebits: int = 0
    hlit: int = 0
    hdist: int = 0
    hclen: int = 0
    clcl: list[int] = field(default_factory=list)
    treecodes: list[int] = field(default_factory=list)
    litlenlengths: list[int] = field(default_factory=list)
    distlengths: list[int] = field(default_factory=list)
    lz77_lcode: list[int] = field(default_factory=list)
    lz77_dcode: list[int] = field(default_factory=list)
    lz77_lbits: list[int] = field(default_factory=list)
    lz77_dbits: list[int] = field(default_factory=list)
    lz77_lvalue: list[int] = field(default_factory=list)
    lz77_dvalue: list[int] = field(default_factory=list)
    numlit: int = 0
    numlen: int = 0


class _BitReader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    @property
    def byte_pos(self) -> int:
        return self.pos >> 3

    def read_bit(self) -> int:
        index = self.pos >> 3
        if index >= len(self.data):
            raise ZlibExtractError(10)
        bit = (self.data[index] >> (self.pos & 7)) & 1
        self.pos += 1
        return bit

    def read_bits(self, count: int) -> int:
        return sum(self.read_bit() << i for i in range(count))


class _HuffmanTree:
    _EMPTY = -1

    def __init__(self, lengths: Sequence[int], maxbitlen: int) -> None:
        numcodes = len(lengths)
        blcount = [0] * (maxbitlen + 1)
        for length in lengths:
            blcount[length] += 1
        blcount[0] = 0
        nextcode = [0] * (maxbitlen + 1)
        for bits in range(1, maxbitlen + 1):
            nextcode[bits] = (nextcode[bits - 1] + blcount[bits - 1]) << 1
        codes = [0] * numcodes
        for n, length in enumerate(lengths):
            if length:
                codes[n] = nextcode[length]
                nextcode[length] += 1

        tree = [self._EMPTY] * (numcodes * 2)
        treepos = 0
        filled = 0
        for n, length in enumerate(lengths):
            for i in range(length):
                bit = (codes[n] >> (length - i - 1)) & 1
                if treepos > numcodes - 2:
                    raise ZlibExtractError(55)
                slot = 2 * treepos + bit
                if tree[slot] == self._EMPTY:
                    if i + 1 == length:
                        tree[slot] = n
                        treepos = 0
                    else:
                        filled += 1
                        tree[slot] = filled + numcodes
                        treepos = filled
                else:
                    if tree[slot] < numcodes:
                        raise ZlibExtractError(55)
                    treepos = tree[slot] - numcodes
        self.numcodes = numcodes
        self.tree = tree

    def decode_symbol(self, reader: _BitReader) -> int:
        treepos = 0
        while True:
            bit = reader.read_bit()
            if treepos >= self.numcodes:
                raise ZlibExtractError(11)
            result = self.tree[2 * treepos + bit]
            if result == self._EMPTY:
                raise ZlibExtractError(11)
            if result < self.numcodes:
                return result
            treepos = result - self.numcodes


def _fixed_trees() -> tuple[_HuffmanTree, _HuffmanTree]:
    lengths = [8] * 144 + [9] * 112 + [7] * 24 + [8] * 8
    return _HuffmanTree(lengths, 15), _HuffmanTree([5] * 32, 15)


class _Inflater:
    def __init__(self, data: bytes) -> None:
        self.reader = _BitReader(data)
        self.size = len(data)
        self.out = bytearray()
        self.blocks: list[ZlibBlockInfo] = []

    def run(self) -> bytes:
        try:
            final = 0
            while not final:
                self._block()
                final = self._final
        except ZlibExtractError as exc:
            exc.blocks = self.blocks
            raise
        return bytes(self.out)

    def _block(self) -> None:
        reader = self.reader
        if reader.byte_pos >= self.size:
            raise ZlibExtractError(52)
        start_out = len(self.out)
        start_bits = reader.pos
        self._final = reader.read_bit()
        btype = reader.read_bit()
        btype += 2 * reader.read_bit()
        block = ZlibBlockInfo(btype=btype)
        self.blocks.append(block)
        if btype == 3:
            raise ZlibExtractError(20)
        try:
            if btype == 0:
                self._stored()
            else:
                self._huffman(block)
        finally:
            block.compressedbits = reader.pos - start_bits
            block.uncompressedbytes = len(self.out) - start_out

    def _stored(self) -> None:
        reader = self.reader
        p = (reader.pos + 7) // 8
        if p >= self.size - 4:
            raise ZlibExtractError(52)
        length, nlength = struct.unpack("<HH", reader.data[p : p + 4])
        p += 4
        if length + nlength != 65535:
            raise ZlibExtractError(21)
        if p + length > self.size:
            raise ZlibExtractError(23)
        self.out += reader.data[p : p + length]
        reader.pos = (p + length) * 8

    def _dynamic_trees(self, block: ZlibBlockInfo) -> tuple[_HuffmanTree, _HuffmanTree]:
        reader = self.reader
        start_bits = reader.pos
        if reader.byte_pos >= self.size - 2:
            raise ZlibExtractError(49)
        hlit = reader.read_bits(5) + 257
        hdist = reader.read_bits(5) + 1
        hclen = reader.read_bits(4) + 4
        block.hlit = hlit - 257
        block.hdist = hdist - 1
        block.hclen = hclen - 4

        codelengthcode = [0] * 19
        for i, symbol in enumerate(_CLCL):
            codelengthcode[symbol] = reader.read_bits(3) if i < hclen else 0
        block.clcl.extend(codelengthcode)
        cltree = _HuffmanTree(codelengthcode, 7)

        total = hlit + hdist
        lengths: list[int] = []
        while len(lengths) < total:
            code = cltree.decode_symbol(reader)
            block.treecodes.append(code)
            if code <= 15:
                lengths.append(code)
                continue
            if code > 18:
                raise ZlibExtractError(16)
            if reader.byte_pos >= self.size:
                raise ZlibExtractError(50)
            if code == 16:
                if not lengths:
                    raise ZlibExtractError(54)
                repeat, value, overflow = 3 + reader.read_bits(2), lengths[-1], 13
            elif code == 17:
                repeat, value, overflow = 3 + reader.read_bits(3), 0, 14
                block.treecodes.append(repeat)
            else:
                repeat, value, overflow = 11 + reader.read_bits(7), 0, 15
                block.treecodes.append(repeat)
            for _ in range(repeat):
                if len(lengths) >= total:
                    raise ZlibExtractError(overflow)
                lengths.append(value)

        bitlen = lengths[:hlit] + [0] * (288 - hlit)
        bitlen_d = lengths[hlit:] + [0] * (32 - hdist)
        if bitlen[256] == 0:
            raise ZlibExtractError(64)
        tree = _HuffmanTree(bitlen, 15)
        tree_d = _HuffmanTree(bitlen_d, 15)
        block.treebits = reader.pos - start_bits
        block.litlenlengths.extend(bitlen)
        block.distlengths.extend(bitlen_d)
        return tree, tree_d

    def _huffman(self, block: ZlibBlockInfo) -> None:
        reader = self.reader
        if block.btype == 1:
            tree, tree_d = _fixed_trees()
        else:
            tree, tree_d = self._dynamic_trees(block)
        out = self.out
        numlit = numlen = 0
        while True:
            code = tree.decode_symbol(reader)
            block.lz77_lcode.append(code)
            block.lz77_dcode.append(0)
            block.lz77_lbits.append(0)
            block.lz77_dbits.append(0)
            block.lz77_lvalue.append(0)
            block.lz77_dvalue.append(0)
            if code == 256:
                break
            if code <= 255:
                out.append(code)
                numlit += 1
            elif code <= 285:
                length = _LENBASE[code - 257]
                extra = _LENEXTRA[code - 257]
                if reader.byte_pos >= self.size:
                    raise ZlibExtractError(51)
                length += reader.read_bits(extra)
                code_d = tree_d.decode_symbol(reader)
                if code_d > 29:
                    raise ZlibExtractError(18)
                dist = _DISTBASE[code_d]
                extra_d = _DISTEXTRA[code_d]
                if reader.byte_pos >= self.size:
                    raise ZlibExtractError(51)
                dist += reader.read_bits(extra_d)
                start = len(out)
                if dist > start:
                    raise ZlibExtractError(52)
                back = start - dist
                for _ in range(length):
                    out.append(out[back])
                    back += 1
                    if back >= start:
                        back = start - dist
                numlen += 1
                block.lz77_dcode[-1] = code_d
                block.lz77_lbits[-1] = extra
                block.lz77_dbits[-1] = extra_d
                block.lz77_lvalue[-1] = length
                block.lz77_dvalue[-1] = dist
        block.numlit = numlit
        block.numlen = numlen


def inflate_with_info(zdata: bytes) -> tuple[bytes, list[ZlibBlockInfo]]:
    """Decompress a zlib stream, returning the data and per-block information.

    The Adler-32 checksum is not verified.
    """
    zdata = bytes(zdata)
    if len(zdata) < 2:
        raise ZlibExtractError(53)
    if (zdata[0] * 256 + zdata[1]) % 31 != 0:
        raise ZlibExtractError(24)
    method = zdata[0] & 15
    cinfo = (zdata[0] >> 4) & 15
    fdict = (zdata[1] >> 5) & 1
    if method != 8 or cinfo > 7:
        raise ZlibExtractError(25)
    if fdict:
        raise ZlibExtractError(26)
    inflater = _Inflater(zdata[2:])
    return inflater.run(), inflater.blocks


def extract_zlib_info(png: bytes) -> list[ZlibBlockInfo]:
    """Information about every deflate block of the image data of a PNG."""
    png = bytes(png)
    size = len(png)
    if size == 0:
        raise ZlibExtractError(48)
    if size < 29:
        raise ZlibExtractError(27)
    if png[:8] != b"\x89PNG\r\n\x1a\n":
        raise ZlibExtractError(28)
    if png[12:16] != b"IHDR":
        raise ZlibExtractError(29)

    pos = 33
    idat = bytearray()
    while True:
        if pos + 8 >= size:
            raise ZlibExtractError(30)
        (length,) = struct.unpack(">I", png[pos : pos + 4])
        pos += 4
        if length > 2147483647:
            raise ZlibExtractError(63)
        if pos + length >= size:
            raise ZlibExtractError(35)
        name = png[pos : pos + 4]
        pos += 4
        if name == b"IDAT":
            idat += png[pos : pos + length]
            pos += length
        elif name == b"IEND":
            break
        else:
            pos += length
        pos += 4  # CRC, not checked

    _, blocks = inflate_with_info(bytes(idat))
    return blocks