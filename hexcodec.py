"""Bytes <-> hexadecimal text."""

from __future__ import annotations

import binascii
import string

from errors import FormatError

_HEX_DIGITS = frozenset(string.hexdigits)


def encode(data: bytes) -> str:
    """Encode *data* as lowercase hex, two characters per byte."""
    return bytes(data).hex()


def decode(text: str) -> bytes:
    """
    Decode a hex string into bytes.

    Raises
    ------
    FormatError
        If *text* has odd length or contains a non-hex character.
    """
    if not isinstance(text, str):
        raise FormatError("Hex input must be a string.")
    if len(text) % 2:
        raise FormatError(f"Hex string has odd length ({len(text)}).")
    bad = next((ch for ch in text if ch not in _HEX_DIGITS), None)
    if bad is not None:
        raise FormatError(f"Invalid hex character {bad!r}.")
    try:
        return binascii.unhexlify(text)
    except binascii.Error as exc:
        raise FormatError("Invalid hex string.") from exc
