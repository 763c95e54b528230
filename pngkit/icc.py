"""Parsing of the ICC profile subset needed for PNG colour conversion, and tone curves."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum

FLT_MAX = 3.40282346638528859811704183484516925e38

_GRAY = 0x47524159  # "GRAY"
_RGB = 0x52474220  # "RGB "
_MAX_LUT = 16777216


class IccError(ValueError):
    """Raised when an ICC profile is corrupt or uses an unknown curve type."""


class CurveType(IntEnum):
    """Kinds of tone reproduction curve; the parametric ones match ICC types 1-4."""

    LINEAR = 0
    LUT = 1
    GAMMA = 2
    PARAMETRIC_1 = 3
    PARAMETRIC_2 = 4
    PARAMETRIC_3 = 5
    PARAMETRIC_4 = 6


def _div(n: float, d: float) -> float:
    """Floating point division that yields infinity or NaN instead of raising."""
    if d != 0:
        return n / d
    if n == 0 or n != n:
        return math.nan
    return math.copysign(math.inf, n) * math.copysign(1.0, d)


def powf(x: float, y: float) -> float:
    """x raised to y, about 5-6 significant digits, following IEEE pow special cases."""
    if x == 1 or y == 0:
        return 1.0
    if y == 1:
        return x
    if not (x > 0 and x <= FLT_MAX and y == y and -FLT_MAX <= y <= FLT_MAX):
        if x != x or y != y:
            return x + y
        i = 0
        if x > 0:
            if x > FLT_MAX:  # +infinity
                if y <= 0:
                    return 1.0 if y == 0 else 0.0
                return x
        else:
            if not (y < -1073741824.0 or y > 1073741824.0):
                i = int(y)
                if i != y:
                    if x < -FLT_MAX:
                        return 0.0 if y < 0 else math.inf
                    if x == 0:
                        return math.inf if y < 0 else 0.0
                    return math.nan
                if i & 1:
                    if x == 0:
                        return math.copysign(math.inf, x) if y < 0 else x
                    return -powf(-x, y)
            if x == 0:
                return math.inf if y <= 0 else 0.0
            if x < -FLT_MAX:  # -infinity
                if y <= 0:
                    return 1.0 if y == 0 else 0.0
                return -math.inf if i & 1 else math.inf
            x = -x
            if x == 1:
                return 1.0
        if y < -FLT_MAX or y > FLT_MAX:
            if (x < 1) != (y > 0):
                return -y if y < 0 else y
            return 0.0

    l = x
    j = 0.0
    while l < 1.0 / 65536:
        j -= 16
        l *= 65536.0
    while l > 65536:
        j += 16
        l *= 1.0 / 65536
    while l < 1:
        j -= 1
        l *= 2.0
    while l > 2:
        j += 1
        l *= 0.5
    # polynomial approximation of log2 on 1..2
    t0 = -0.393118410458557 + l * (-0.0883639468229365 + l * (0.466142650227994 + l * 0.0153397331014276))
    t1 = 0.0907447971403586 + l * (0.388892024755479 + l * 0.137228280305862)
    l = t0 / t1 + j

    l *= y  # exp2(y * log2(x))

    if l <= -128.0 or l >= 128.0:
        return math.inf if (x > 1) == (y > 0) else 0.0
    i = int(l)
    l -= i
    # polynomial approximation of exp2 on -1..1
    t0 = 1.0 + l * (0.41777833582744256 + l * (0.0728482595347711 + l * 0.005635023478609625))
    t1 = 1.0 + l * (-0.27537016151408167 + l * 0.023501446055084033)
    while i <= -31:
        t0 *= 1.0 / 2147483648.0
        i += 31
    while i >= 31:
        t0 *= 2147483648.0
        i -= 31
    if i < 0:
        return t0 / (t1 * (1 << -i))
    return t0 * (1 << i) / t1


@dataclass
class IccCurve:
    """A tone reproduction curve: linear, lookup table, gamma or parametric."""

    kind: CurveType = CurveType.LINEAR
    lut: tuple[float, ...] = ()
    gamma: float = 0.0
    a: float = 0.0
    b: float = 0.0
    c: float = 0.0
    d: float = 0.0
    e: float = 0.0
    f: float = 0.0

    def forward(self, x: float) -> float:
        """Encoded (nonlinear) value to linear; values outside 0..1 are not clipped."""
        kind = self.kind
        if kind == CurveType.LINEAR:
            return x
        if kind == CurveType.LUT:
            lut = self.lut
            if not lut:
                return 0.0
            if x < 0 or not math.isfinite(x):
                return x
            n = len(lut)
            scaled = x * (n - 1)
            index = int(scaled)
            if index >= n:
                return x
            v0 = lut[index]
            v1 = lut[index + 1] if index + 1 < n else 1.0
            fraction = scaled - index
            return v0 * (1 - fraction) + v1 * fraction
        if kind == CurveType.GAMMA:
            return powf(x, self.gamma) if x > 0 else x
        if kind == CurveType.PARAMETRIC_1:
            if x < 0:
                return x
            if x >= _div(-self.b, self.a):
                return powf(self.a * x + self.b, self.gamma) + self.c
            return 0.0
        if kind == CurveType.PARAMETRIC_2:
            if x < 0:
                return x
            if x >= _div(-self.b, self.a):
                return powf(self.a * x + self.b, self.gamma) + self.c
            return self.c
        if kind == CurveType.PARAMETRIC_3:
            if x >= self.d:
                return powf(self.a * x + self.b, self.gamma)
            return self.c * x
        if kind == CurveType.PARAMETRIC_4:
            if x >= self.d:
                return powf(self.a * x + self.b, self.gamma) + self.c
            return self.c * x + self.f
        return 0.0

    def backward(self, x: float) -> float:
        """Linear value to encoded (nonlinear); values outside 0..1 are not clipped."""
        kind = self.kind
        if kind == CurveType.LINEAR:
            return x
        if kind == CurveType.LUT:
            if x <= 0 or x >= 1:
                return x
            lut = self.lut
            n = len(lut)
            if n < 2:
                return lut[0] if lut else 0.0
            lo, hi = 0, n - 1
            if lut[hi] <= x:
                # beyond the last table entry, interpolate towards 1.0 at position n-1
                v0, v1 = lut[hi], 1.0
                if v0 == v1:
                    return 1.0
                return min(1.0, 1.0 + 0.0 * (x - v0))
            while hi - lo > 1:
                mid = (lo + hi) // 2
                if lut[mid] > x:
                    hi = mid
                else:
                    lo = mid
            v0, v1 = lut[lo], lut[hi]
            if v0 == v1:
                return lo / (n - 1)
            fraction = (x - v0) / (v1 - v0)
            return (lo + fraction) / (n - 1)
        if kind == CurveType.GAMMA:
            return powf(x, _div(1.0, self.gamma)) if x > 0 else x
        inv_gamma = _div(1.0, self.gamma)
        if kind == CurveType.PARAMETRIC_1:
            if x < 0:
                return x
            if x > 0:
                return _div(powf(x, inv_gamma) - self.b, self.a)
            return _div(-self.b, self.a)
        if kind == CurveType.PARAMETRIC_2:
            if x < 0:
                return x
            if x > self.c:
                return _div(powf(x - self.c, inv_gamma) - self.b, self.a)
            return _div(-self.b, self.a)
        if kind == CurveType.PARAMETRIC_3:
            if x > self.c * self.d:
                return _div(powf(x, inv_gamma) - self.b, self.a)
            return _div(x, self.c)
        if kind == CurveType.PARAMETRIC_4:
            if x > self.c * self.d + self.f:
                return _div(powf(x - self.c, inv_gamma) - self.b, self.a)
            return _div(x - self.f, self.c)
        return 0.0


def _zero3() -> tuple[float, float, float]:
    return (0.0, 0.0, 0.0)


@dataclass
class IccProfile:
    """The values of an ICC profile that matter for converting RGB or gray to XYZ.

    inputspace is 0 for colour models PNG does not support, 1 for gray, 2 for RGB.
    """

    inputspace: int = 0
    version_major: int = 0
    version_minor: int = 0
    version_bugfix: int = 0
    illuminant: tuple[float, float, float] = field(default_factory=_zero3)
    has_chad: bool = False
    chad: tuple[float, ...] = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0)
    has_whitepoint: bool = False
    white: tuple[float, float, float] = field(default_factory=_zero3)
    has_chromaticity: bool = False
    red: tuple[float, float, float] = field(default_factory=_zero3)
    green: tuple[float, float, float] = field(default_factory=_zero3)
    blue: tuple[float, float, float] = field(default_factory=_zero3)
    has_trc: bool = False
    trc: list[IccCurve] = field(default_factory=lambda: [IccCurve(), IccCurve(), IccCurve()])

    def is_supported(self) -> bool:
        """Whether the profile holds everything needed to use it for conversion."""
        if self.inputspace == 0:
            return False
        if self.inputspace == 2 and not self.has_chromaticity:
            return False
        return self.has_whitepoint and self.has_trc


class _Reader:
    """Bounds-checked big-endian reads; a read past the end gives 0 but still advances."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.size = len(data)

    def u16(self, pos: int) -> tuple[int, int]:
        pos += 2
        if pos > self.size:
            return 0, pos
        return int.from_bytes(self.data[pos - 2 : pos], "big"), pos

    def u32(self, pos: int) -> tuple[int, int]:
        pos += 4
        if pos > self.size:
            return 0, pos
        return int.from_bytes(self.data[pos - 4 : pos], "big"), pos

    def fixed(self, pos: int) -> tuple[float, int]:
        pos += 4
        if pos > self.size:
            return 0.0, pos
        return int.from_bytes(self.data[pos - 4 : pos], "big", signed=True) / 65536.0, pos

    def fixed_n(self, pos: int, count: int) -> tuple[tuple[float, ...], int]:
        values = []
        for _ in range(count):
            value, pos = self.fixed(pos)
            values.append(value)
        return tuple(values), pos

    def is_word(self, pos: int, word: bytes) -> bool:
        return pos + 4 <= self.size and self.data[pos : pos + 4] == word


def parse_icc(data: bytes) -> IccProfile:
    """Parse the subset of an ICC profile (v2 or v4) needed to map RGB or gray to XYZ."""
    data = bytes(data)
    size = len(data)
    if size < 132:
        raise IccError("too small to be a valid ICC profile")
    reader = _Reader(data)
    icc = IccProfile()

    version, pos = reader.u32(8)
    if pos >= size:
        raise IccError("truncated ICC header")
    icc.version_major = (version >> 24) & 255
    icc.version_minor = (version >> 20) & 15
    icc.version_bugfix = (version >> 16) & 15

    inputspace, pos = reader.u32(16)
    if pos >= size:
        raise IccError("truncated ICC header")
    icc.inputspace = {_GRAY: 1, _RGB: 2}.get(inputspace, 0)

    illuminant, _ = reader.fixed_n(68, 3)
    icc.illuminant = illuminant  # type: ignore[assignment]

    numtags, pos = reader.u32(128)
    if pos >= size:
        raise IccError("truncated ICC tag table")

    for _ in range(numtags):
        namepos = pos
        pos += 4
        offset, pos = reader.u32(pos)
        tagsize, pos = reader.u32(pos)
        if pos >= size or offset >= size:
            raise IccError("ICC tag table extends past the end")
        if offset + tagsize > size:
            raise IccError("ICC tag data extends past the end")
        if tagsize < 8:
            raise IccError("ICC tag too small")

        name = data[namepos : namepos + 4]
        if name in (b"wtpt", b"rXYZ", b"gXYZ", b"bXYZ"):
            xyz, offset = reader.fixed_n(offset + 8, 3)
            if name == b"wtpt":
                icc.white = xyz  # type: ignore[assignment]
                icc.has_whitepoint = True
            else:
                setattr(icc, {b"rXYZ": "red", b"gXYZ": "green", b"bXYZ": "blue"}[name], xyz)
                icc.has_chromaticity = True
        elif name == b"chad":
            icc.chad, offset = reader.fixed_n(offset + 8, 9)
            icc.has_chad = True
        elif name in (b"rTRC", b"gTRC", b"bTRC", b"kTRC"):
            channel = {b"b": 2, b"g": 1}.get(name[:1], 0)  # 'k' and 'r' share channel 0
            trc = icc.trc[channel]
            if reader.is_word(offset, b"curv"):
                icc.has_trc = True
                count, offset = reader.u32(offset + 8)
                if count == 0:
                    trc.kind = CurveType.LINEAR
                elif count == 1:
                    trc.kind = CurveType.GAMMA
                    value, offset = reader.u16(offset)
                    trc.gamma = value / 256.0
                else:
                    trc.kind = CurveType.LUT
                    if offset + count * 2 > size or count > _MAX_LUT:
                        raise IccError("ICC curve table extends past the end")
                    values = []
                    for _ in range(count):
                        value, offset = reader.u16(offset)
                        values.append(value * (1.0 / 65535.0))
                    trc.lut = tuple(values)
            if reader.is_word(offset, b"para"):
                icc.has_trc = True
                ptype, offset = reader.u16(offset + 8)
                offset += 2
                if ptype > 4:
                    raise IccError(f"unknown parametric curve type {ptype}")
                trc.kind = CurveType(ptype + 2)
                trc.gamma, offset = reader.fixed(offset)
                if ptype >= 1:
                    trc.a, offset = reader.fixed(offset)
                    trc.b, offset = reader.fixed(offset)
                if ptype >= 2:
                    trc.c, offset = reader.fixed(offset)
                if ptype >= 3:
                    trc.d, offset = reader.fixed(offset)
                if ptype == 4:
                    trc.e, offset = reader.fixed(offset)
                    trc.f, offset = reader.fixed(offset)
        if offset > size:
            raise IccError("ICC tag parse went past the end")

    return icc