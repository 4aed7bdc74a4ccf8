"""
Big unsigned integer helpers for the RSA engine.

Python's ``int`` already stores arbitrary-precision values; this module adds
the canonical hex/bytes conversions and the number-theory routines RSA
needs (square-and-multiply exponentiation, extended Euclid).
"""

from __future__ import annotations

import string
from typing import Optional, Tuple

from errors import FormatError

_HEX_DIGITS = frozenset(string.hexdigits)


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


def from_hex(text: str) -> int:
    """Parse a non-empty hex string (either case, no prefix) into an int."""
    if not isinstance(text, str) or not text:
        raise FormatError("Hex number must be a non-empty string.")
    if any(ch not in _HEX_DIGITS for ch in text):
        raise FormatError(f"Invalid hex number {text!r}.")
    return int(text, 16)


def to_hex(value: int) -> str:
    """Canonical lowercase hex: no leading zeros, ``"0"`` for zero."""
    if value < 0:
        raise ValueError("Only non-negative integers are supported.")
    return format(value, "x")


def byte_length(value: int) -> int:
    """Number of bytes needed to hold *value* (1 for zero)."""
    return max(1, (value.bit_length() + 7) // 8)


def from_bytes(data: bytes) -> int:
    return int.from_bytes(data, "big")


def to_bytes(value: int, length: Optional[int] = None) -> bytes:
    """Big-endian encoding, minimal unless a fixed *length* is requested."""
    if length is None:
        length = byte_length(value)
    return value.to_bytes(length, "big")


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


def mod_pow(base: int, exponent: int, modulus: int) -> int:
    """
    Compute ``base ** exponent % modulus`` by binary square-and-multiply.

    ``modulus == 1`` gives 0 and ``exponent == 0`` gives ``1 % modulus``.
    """
    if modulus < 1:
        raise ValueError("Modulus must be positive.")
    if exponent < 0:
        raise ValueError("Exponent must be non-negative.")
    if modulus == 1:
        return 0

    result = 1
    base %= modulus
    while exponent:
        if exponent & 1:
            result = (result * base) % modulus
        base = (base * base) % modulus
        exponent >>= 1
    return result


def gcd(a: int, b: int) -> int:
    while b:
        a, b = b, a % b
    return abs(a)


def lcm(a: int, b: int) -> int:
    if a == 0 or b == 0:
        return 0
    return abs(a * b) // gcd(a, b)


def egcd(a: int, b: int) -> Tuple[int, int, int]:
    """Return ``(g, x, y)`` with ``a*x + b*y == g == gcd(a, b)``."""
    old_r, r = a, b
    old_x, x = 1, 0
    old_y, y = 0, 1
    while r:
        q = old_r // r
        old_r, r = r, old_r - q * r
        old_x, x = x, old_x - q * x
        old_y, y = y, old_y - q * y
    return old_r, old_x, old_y


def mod_inverse(a: int, m: int) -> int:
    """Return ``a⁻¹ mod m``; ``ValueError`` when ``gcd(a, m) != 1``."""
    if m < 1:
        raise ValueError("Modulus must be positive.")
    g, x, _ = egcd(a % m, m)
    if g != 1:
        raise ValueError(f"{a} has no inverse modulo {m} (gcd={g}).")
    return x % m
