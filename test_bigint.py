import pytest

import bigint
from errors import FormatError


def test_hex_is_canonical():
    assert bigint.to_hex(0) == "0"
    assert bigint.to_hex(255) == "ff"
    assert bigint.from_hex("00FF") == 255
    assert bigint.to_hex(bigint.from_hex("000abc")) == "abc"


@pytest.mark.parametrize("bad", ["", "0x10", "12g", " 1"])
def test_from_hex_rejects_malformed(bad):
    with pytest.raises(FormatError):
        bigint.from_hex(bad)


def test_to_hex_rejects_negative():
    with pytest.raises(ValueError):
        bigint.to_hex(-1)


def test_byte_conversions():
    assert bigint.byte_length(0) == 1
    assert bigint.byte_length(255) == 1
    assert bigint.byte_length(256) == 2
    assert bigint.to_bytes(1, 4) == b"\x00\x00\x00\x01"
    assert bigint.from_bytes(b"\x01\x00") == 256


@pytest.mark.parametrize(
    "base, exponent, modulus",
    [
        (4, 13, 497),
        (2, 10, 1000),
        (123456789, 987654321, 1000000007),
        (2 ** 200 + 7, 2 ** 100 + 3, 2 ** 127 - 1),
        (0, 5, 7),
    ],
)
def test_mod_pow_matches_builtin(base, exponent, modulus):
    assert bigint.mod_pow(base, exponent, modulus) == pow(base, exponent, modulus)


def test_mod_pow_edge_cases():
    assert bigint.mod_pow(12345, 678, 1) == 0
    assert bigint.mod_pow(12345, 0, 7) == 1
    assert bigint.mod_pow(0, 0, 1) == 0
    with pytest.raises(ValueError):
        bigint.mod_pow(2, 3, 0)


def test_mod_inverse():
    assert bigint.mod_inverse(3, 11) == 4
    assert (17 * bigint.mod_inverse(17, 3120)) % 3120 == 1
    with pytest.raises(ValueError):
        bigint.mod_inverse(6, 9)


def test_gcd_lcm_egcd():
    assert bigint.gcd(12, 18) == 6
    assert bigint.lcm(4, 6) == 12
    g, x, y = bigint.egcd(240, 46)
    assert g == 2 and 240 * x + 46 * y == 2
