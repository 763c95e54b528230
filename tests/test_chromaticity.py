import pytest

from pngkit.chromaticity import (
    ColorError,
    ColorInfo,
    adaptation_matrix,
    chrm_matrix_xy,
    chrm_matrix_xyz,
    invert_matrix,
    is_srgb,
    models_equal,
    mul_matrix,
    mul_matrix_matrix,
)

IDENTITY = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0)
SAMPLE = (2.0, 1.0, 0.5, 0.3, 3.0, 0.2, 0.1, 0.4, 1.5)
SRGB_CHRM = (31270, 32900, 64000, 33000, 30000, 60000, 15000, 6000)


def _approx(values, expected, tol=1e-6):
    assert len(values) == len(expected)
    for v, e in zip(values, expected):
        assert v == pytest.approx(e, abs=tol)


def test_mul_matrix_identity():
    assert mul_matrix(IDENTITY, 0.25, 0.5, 0.75) == (0.25, 0.5, 0.75)


def test_mul_matrix_rows():
    m = (1, 2, 3, 4, 5, 6, 7, 8, 9)
    assert mul_matrix(m, 1, 0, 0) == (1, 4, 7)


def test_mul_matrix_matrix_identity():
    _approx(mul_matrix_matrix(IDENTITY, SAMPLE), SAMPLE)
    _approx(mul_matrix_matrix(SAMPLE, IDENTITY), SAMPLE)


def test_mul_matrix_matrix_is_composition():
    ab = mul_matrix_matrix(SAMPLE, invert_matrix(SAMPLE))
    _approx(ab, IDENTITY, 1e-9)
    v = (0.3, 0.6, 0.9)
    composed = mul_matrix(mul_matrix_matrix(SAMPLE, SAMPLE), *v)
    stepwise = mul_matrix(SAMPLE, *mul_matrix(SAMPLE, *v))
    _approx(composed, stepwise, 1e-12)


def test_invert_round_trip():
    _approx(invert_matrix(invert_matrix(SAMPLE)), SAMPLE, 1e-9)


def test_invert_singular_raises():
    with pytest.raises(ColorError):
        invert_matrix((1, 2, 3, 2, 4, 6, 0, 0, 1))


def test_wrong_matrix_size_raises():
    with pytest.raises(ValueError):
        mul_matrix((1, 2, 3), 1, 2, 3)


def test_chrm_matrix_xy_srgb_matches_standard():
    m = chrm_matrix_xy(0.3127, 0.3290, 0.64, 0.33, 0.30, 0.60, 0.15, 0.06)
    expected = (
        0.4124564, 0.3575761, 0.1804375,
        0.2126729, 0.7151522, 0.0721750,
        0.0193339, 0.1191920, 0.9503041,
    )
    _approx(m, expected, 1e-3)


def test_chrm_matrix_maps_white_to_whitepoint():
    white = (0.95, 1.0, 1.09)
    m = chrm_matrix_xyz(white, (0.64, 0.33, 0.03), (0.3, 0.6, 0.1), (0.15, 0.06, 0.79))
    _approx(mul_matrix(m, 1.0, 1.0, 1.0), white, 1e-9)


def test_chrm_matrix_xy_zero_y_raises():
    with pytest.raises(ColorError):
        chrm_matrix_xy(0.3127, 0.0, 0.64, 0.33, 0.30, 0.60, 0.15, 0.06)


def test_chrm_matrix_xyz_degenerate_primaries_raise():
    with pytest.raises(ColorError):
        chrm_matrix_xyz((1, 1, 1), (1, 0, 0), (1, 0, 0), (0, 0, 1))


@pytest.mark.parametrize("kind", [0, 1, 2])
def test_adaptation_same_white_is_identity(kind):
    white = (0.9642, 1.0, 0.8249)
    _approx(adaptation_matrix(kind, white, white), IDENTITY, 1e-5)


@pytest.mark.parametrize("kind", [0, 1, 2])
def test_adaptation_maps_white0_to_white1(kind):
    w0 = (0.9642, 1.0, 0.8249)
    w1 = (0.9504559270516716, 1.0, 1.0890577507598784)
    m = adaptation_matrix(kind, w0, w1)
    _approx(mul_matrix(m, *w0), w1, 1e-4)


def test_adaptation_zero_white_raises():
    with pytest.raises(ColorError):
        adaptation_matrix(0, (0.0, 1.0, 1.0), (1.0, 1.0, 1.0))


def test_is_srgb_cases():
    assert is_srgb(None)
    assert is_srgb(ColorInfo())
    assert is_srgb(ColorInfo(srgb_intent=0, gamma=45455))
    assert not is_srgb(ColorInfo(gamma=45455))
    assert not is_srgb(ColorInfo(srgb_intent=0, iccp_profile=b"abc"))
    assert is_srgb(ColorInfo(chrm=SRGB_CHRM))
    assert not is_srgb(ColorInfo(chrm=(31270, 32900, 64000, 33000, 21000, 71000, 15000, 6000)))


def test_colorinfo_rejects_bad_chrm():
    with pytest.raises(ValueError):
        ColorInfo(chrm=(1, 2, 3))


def test_models_equal_defaults():
    assert models_equal(None, None)
    assert models_equal(None, ColorInfo())
    assert models_equal(ColorInfo(chrm=SRGB_CHRM), ColorInfo(chrm=SRGB_CHRM))


def test_models_equal_srgb_vs_gamma():
    assert not models_equal(ColorInfo(), ColorInfo(gamma=45455))


def test_models_equal_gamma_values():
    assert models_equal(ColorInfo(gamma=45455), ColorInfo(gamma=45455))
    assert not models_equal(ColorInfo(gamma=45455), ColorInfo(gamma=100000))


def test_models_equal_icc():
    assert models_equal(ColorInfo(iccp_profile=b"xyz"), ColorInfo(iccp_profile=b"xyz", gamma=1))
    assert not models_equal(ColorInfo(iccp_profile=b"xyz"), ColorInfo(iccp_profile=b"xyw"))
    assert not models_equal(ColorInfo(iccp_profile=b"xyz"), ColorInfo(gamma=45455))


def test_models_equal_srgb_chunk_ignores_intent():
    assert models_equal(ColorInfo(srgb_intent=0), ColorInfo(srgb_intent=3, gamma=10))
    assert not models_equal(ColorInfo(srgb_intent=0), None)


def test_models_equal_chrm_differs():
    other = (31270, 32900, 64000, 33000, 21000, 71000, 15000, 6000)
    assert not models_equal(ColorInfo(gamma=45455, chrm=SRGB_CHRM), ColorInfo(gamma=45455, chrm=other))
    assert models_equal(ColorInfo(gamma=45455, chrm=other), ColorInfo(gamma=45455, chrm=other))