"""Chromaticity matrices, whitepoint adaptation and comparison of PNG colour models."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

Matrix = tuple[float, float, float, float, float, float, float, float, float]
Vector = tuple[float, float, float]

# cHRM values of sRGB, each multiplied by 100000:
# white x, white y, red x, red y, green x, green y, blue x, blue y
SRGB_CHRM = (31270, 32900, 64000, 33000, 30000, 60000, 15000, 6000)

_BRADFORD = (
    0.8951, 0.2664, -0.1614,
    -0.7502, 1.7135, 0.0367,
    0.0389, -0.0685, 1.0296,
)
_BRADFORD_INV = (
    0.9869929, -0.1470543, 0.1599627,
    0.4323053, 0.5183603, 0.0492912,
    -0.0085287, 0.0400428, 0.9684867,
)
_VONKRIES = (
    0.40024, 0.70760, -0.08081,
    -0.22630, 1.16532, 0.04570,
    0.00000, 0.00000, 0.91822,
)
_VONKRIES_INV = (
    1.8599364, -1.1293816, 0.2198974,
    0.3611914, 0.6388125, -0.0000064,
    0.0000000, 0.0000000, 1.0890636,
)


class ColorError(ValueError):
    """Raised when a colour model cannot be turned into a usable matrix."""


@dataclass(frozen=True)
class ColorInfo:
    """The colorimetry chunks of a PNG.

    gamma is the gAMA value (gamma times 100000), chrm the eight cHRM values
    (times 100000, in the order of SRGB_CHRM), srgb_intent the rendering
    intent of an sRGB chunk and iccp_profile the raw ICC profile of an iCCP
    chunk. None means the chunk is absent.
    """

    gamma: int | None = None
    chrm: tuple[int, int, int, int, int, int, int, int] | None = None
    srgb_intent: int | None = None
    iccp_profile: bytes | None = None

    def __post_init__(self) -> None:
        if self.chrm is not None:
            if len(self.chrm) != 8:
                raise ValueError("chrm must hold exactly eight values")
            object.__setattr__(self, "chrm", tuple(int(v) for v in self.chrm))
        if self.iccp_profile is not None:
            object.__setattr__(self, "iccp_profile", bytes(self.iccp_profile))


def _check_matrix(m: Sequence[float]) -> None:
    if len(m) != 9:
        raise ValueError("a 3x3 matrix needs exactly nine values")


def mul_matrix(m: Sequence[float], x: float, y: float, z: float) -> Vector:
    """Multiply the row-major 3x3 matrix m with the column vector (x, y, z)."""
    _check_matrix(m)
    return (
        x * m[0] + y * m[1] + z * m[2],
        x * m[3] + y * m[4] + z * m[5],
        x * m[6] + y * m[7] + z * m[8],
    )


def mul_matrix_matrix(a: Sequence[float], b: Sequence[float]) -> Matrix:
    """The matrix product a times b of two row-major 3x3 matrices."""
    _check_matrix(a)
    _check_matrix(b)
    columns = [mul_matrix(a, b[c], b[c + 3], b[c + 6]) for c in range(3)]
    return tuple(columns[c][r] for r in range(3) for c in range(3))  # type: ignore[return-value]


def invert_matrix(m: Sequence[float]) -> Matrix:
    """Inverse of a row-major 3x3 matrix; ColorError if it is (nearly) singular."""
    _check_matrix(m)
    e0 = m[4] * m[8] - m[5] * m[7]
    e3 = m[5] * m[6] - m[3] * m[8]
    e6 = m[3] * m[7] - m[4] * m[6]
    det = m[0] * e0 + m[1] * e3 + m[2] * e6
    if det == 0:
        raise ColorError("matrix is not invertible")
    d = 1.0 / det
    if abs(d) > 1e15:
        raise ColorError("matrix is not invertible")
    return (
        e0 * d,
        (m[2] * m[7] - m[1] * m[8]) * d,
        (m[1] * m[5] - m[2] * m[4]) * d,
        e3 * d,
        (m[0] * m[8] - m[2] * m[6]) * d,
        (m[3] * m[2] - m[0] * m[5]) * d,
        e6 * d,
        (m[6] * m[1] - m[0] * m[7]) * d,
        (m[0] * m[4] - m[3] * m[1]) * d,
    )


def chrm_matrix_xyz(
    white: Sequence[float],
    red: Sequence[float],
    green: Sequence[float],
    blue: Sequence[float],
) -> Matrix:
    """Linear RGB to XYZ matrix from whitepoint and primaries given in XYZ."""
    rx, ry, rz = red
    gx, gy, gz = green
    bx, by, bz = blue
    t = invert_matrix((rx, gx, bx, ry, gy, by, rz, gz, bz))
    rs, gs, bs = mul_matrix(t, *white)
    return (
        rs * rx, gs * gx, bs * bx,
        rs * ry, gs * gy, bs * by,
        rs * rz, gs * gz, bs * bz,
    )


def _xy_to_xyz(x: float, y: float) -> Vector:
    return (x / y, 1.0, (1 - x - y) / y)


def chrm_matrix_xy(
    wx: float, wy: float, rx: float, ry: float, gx: float, gy: float, bx: float, by: float
) -> Matrix:
    """Linear RGB to XYZ matrix from whitepoint and primaries given as xy chromaticities."""
    if wy == 0 or ry == 0 or gy == 0 or by == 0:
        raise ColorError("chromaticity y value is zero")
    return chrm_matrix_xyz(
        _xy_to_xyz(wx, wy), _xy_to_xyz(rx, ry), _xy_to_xyz(gx, gy), _xy_to_xyz(bx, by)
    )


def adaptation_matrix(kind: int, white0: Sequence[float], white1: Sequence[float]) -> Matrix:
    """Matrix adapting XYZ colours from whitepoint white0 to white1.

    kind 0 is plain XYZ scaling, 1 Bradford, anything else von Kries.
    """
    wx0, wy0, wz0 = white0
    wx1, wy1, wz1 = white1
    if kind == 0:
        if wx0 == 0 or wy0 == 0 or wz0 == 0:
            raise ColorError("source whitepoint has a zero component")
        return (wx1 / wx0, 0.0, 0.0, 0.0, wy1 / wy0, 0.0, 0.0, 0.0, wz1 / wz0)
    cat, inv = (_BRADFORD, _BRADFORD_INV) if kind == 1 else (_VONKRIES, _VONKRIES_INV)
    cone0 = mul_matrix(cat, wx0, wy0, wz0)
    cone1 = mul_matrix(cat, wx1, wy1, wz1)
    if 0 in cone0:
        raise ColorError("source whitepoint gives a zero cone response")
    scale = [c1 / c0 for c0, c1 in zip(cone0, cone1)]
    scaled = tuple(scale[i // 3] * cat[i] for i in range(9))
    return mul_matrix_matrix(inv, scaled)


def is_srgb(info: ColorInfo | None) -> bool:
    """Whether the colorimetry chunks describe PNG's default sRGB model.

    An ICC profile never counts as sRGB here, and neither does a gAMA chunk
    without an sRGB chunk, since gAMA cannot express sRGB's two-part curve.
    """
    if info is None:
        return True
    if info.iccp_profile is not None:
        return False
    if info.srgb_intent is not None:
        return True
    if info.gamma is not None:
        return False
    if info.chrm is not None and info.chrm != SRGB_CHRM:
        return False
    return True


def models_equal(a: ColorInfo | None, b: ColorInfo | None) -> bool:
    """Whether two colour models are the same; None stands for default sRGB."""
    if is_srgb(a) != is_srgb(b):
        return False
    a = a if a is not None else ColorInfo()
    b = b if b is not None else ColorInfo()

    if (a.iccp_profile is None) != (b.iccp_profile is None):
        return False
    if a.iccp_profile is not None:
        # an ICC profile overrides gAMA and cHRM
        return a.iccp_profile == b.iccp_profile

    if (a.srgb_intent is None) != (b.srgb_intent is None):
        return False
    if a.srgb_intent is not None:
        # sRGB overrides gAMA and cHRM; the intent does not affect conversion
        return True

    if a.gamma != b.gamma:
        return False
    return a.chrm == b.chrm