"""
GOST 28147-89 Engine
====================

64-bit block cipher with a 256-bit key, used in cipher-feedback mode
(CFB-64, "gamma with feedback") so that any plaintext length is encrypted
without padding and the ciphertext is exactly as long as the plaintext.

Pinned parameters
-----------------
- S-box: id-tc26-gost-28147-param-Z (the table also used by GOST R 34.12 "Magma")
- Key words K1..K8 are read big-endian from the 32-byte key
- Schedule: K1..K8, K1..K8, K1..K8, K8..K1 (decryption uses the reverse)
- Round: ``g(x, k) = rotl11(S((x + k) mod 2**32))``
- Block: big-endian, high word first

File format
-----------
::

    IV (8 bytes) || ciphertext (same length as plaintext)
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Sequence, Tuple

from errors import FormatError, IvLengthError, KeyLengthError
from fileio import PathLike, atomic_output, open_source, read_chunks, read_exact

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

KEY_SIZE: int = 32
BLOCK_SIZE: int = 8
IV_SIZE: int = BLOCK_SIZE
ROUNDS: int = 32
DEFAULT_CHUNK: int = 64 * 1024  # multiple of BLOCK_SIZE

MASK32: int = 0xFFFFFFFF

# SBOX[i] substitutes the i-th nibble counted from the least significant end.
SBOX: Tuple[Tuple[int, ...], ...] = (
    (12, 4, 6, 2, 10, 5, 11, 9, 14, 8, 13, 7, 0, 3, 15, 1),
    (6, 8, 2, 3, 9, 10, 5, 12, 1, 14, 4, 7, 11, 13, 0, 15),
    (11, 3, 5, 8, 2, 15, 10, 13, 14, 1, 7, 4, 12, 9, 6, 0),
    (12, 8, 2, 1, 13, 4, 15, 6, 7, 0, 10, 5, 3, 14, 9, 11),
    (7, 15, 5, 10, 8, 1, 6, 13, 0, 9, 3, 14, 11, 4, 2, 12),
    (5, 13, 15, 6, 9, 2, 12, 10, 11, 7, 8, 1, 4, 3, 14, 0),
    (8, 14, 2, 5, 6, 9, 1, 12, 15, 4, 11, 0, 13, 10, 3, 7),
    (1, 7, 14, 13, 0, 5, 8, 3, 4, 15, 10, 6, 9, 12, 11, 2),
)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_key(key: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)):
        raise KeyLengthError("GOST key must be bytes.")
    if len(key) != KEY_SIZE:
        raise KeyLengthError(f"GOST key must be exactly {KEY_SIZE} bytes (got {len(key)}).")


def _validate_iv(iv: bytes) -> None:
    if not isinstance(iv, (bytes, bytearray)):
        raise IvLengthError("GOST IV must be bytes.")
    if len(iv) != IV_SIZE:
        raise IvLengthError(f"GOST IV must be exactly {IV_SIZE} bytes (got {len(iv)}).")


# ---------------------------------------------------------------------------
# Block cipher
# ---------------------------------------------------------------------------


def generate_key() -> bytes:
    """Cryptographically secure random 256-bit key."""
    return os.urandom(KEY_SIZE)


def generate_iv() -> bytes:
    """Cryptographically secure random 64-bit IV."""
    return os.urandom(IV_SIZE)


def key_schedule(key: bytes) -> List[int]:
    """Expand a 32-byte key into the 32 round keys."""
    _validate_key(key)
    words = [int.from_bytes(key[i : i + 4], "big") for i in range(0, KEY_SIZE, 4)]
    return words * 3 + words[::-1]


def _substitute(x: int) -> int:
    y = 0
    for i in reversed(range(8)):
        y = (y << 4) | SBOX[i][(x >> (4 * i)) & 0xF]
    return y


def _g(x: int, k: int) -> int:
    y = _substitute((x + k) & MASK32)
    return ((y << 11) | (y >> 21)) & MASK32


def _crypt(block: int, round_keys: Sequence[int]) -> int:
    n1, n2 = block >> 32, block & MASK32
    for k in round_keys[:-1]:
        n1, n2 = n2, n1 ^ _g(n2, k)
    n1 ^= _g(n2, round_keys[-1])
    return (n1 << 32) | n2


def encrypt_block(block: bytes, key: bytes) -> bytes:
    """Encrypt one 8-byte block (no chaining)."""
    if len(block) != BLOCK_SIZE:
        raise FormatError(f"GOST block must be {BLOCK_SIZE} bytes.")
    out = _crypt(int.from_bytes(block, "big"), key_schedule(key))
    return out.to_bytes(BLOCK_SIZE, "big")


def decrypt_block(block: bytes, key: bytes) -> bytes:
    """Inverse of :func:`encrypt_block`."""
    if len(block) != BLOCK_SIZE:
        raise FormatError(f"GOST block must be {BLOCK_SIZE} bytes.")
    out = _crypt(int.from_bytes(block, "big"), key_schedule(key)[::-1])
    return out.to_bytes(BLOCK_SIZE, "big")


# ---------------------------------------------------------------------------
# CFB-64 stream mode
# ---------------------------------------------------------------------------


class GostCfb:
    """
    Stateful CFB-64 transform.

    ``gamma = E(register)``; the output is the input XOR the leading bytes
    of ``gamma``; the register then takes the ciphertext block.  Feed data
    through :meth:`update`; every call except the last must be a multiple
    of :data:`BLOCK_SIZE` bytes.
    """

    def __init__(self, key: bytes, iv: bytes, decrypt: bool = False):
        _validate_key(key)
        _validate_iv(iv)
        self._round_keys = key_schedule(key)
        self._register = int.from_bytes(iv, "big")
        self._decrypt = decrypt
        self._done = False

    def update(self, data: bytes) -> bytes:
        if self._done and data:
            raise ValueError("A partial block already ended this stream.")
        out = bytearray()
        for i in range(0, len(data), BLOCK_SIZE):
            chunk = data[i : i + BLOCK_SIZE]
            size = len(chunk)
            gamma = _crypt(self._register, self._round_keys) >> (8 * (BLOCK_SIZE - size))
            value = int.from_bytes(chunk, "big")
            result = value ^ gamma
            out += result.to_bytes(size, "big")
            if size < BLOCK_SIZE:
                self._done = True
            else:
                self._register = value if self._decrypt else result
        return bytes(out)


def encrypt(
    plaintext: bytes,
    key: bytes,
    iv: Optional[bytes] = None,
) -> Tuple[bytes, bytes]:
    """
    Encrypt *plaintext* of any length.

    Returns ``(iv, ciphertext)``; a random IV is generated when none is
    given, and the IV actually used is always returned.
    """
    _validate_key(key)
    if iv is None:
        iv = generate_iv()
    _validate_iv(iv)
    return bytes(iv), GostCfb(key, iv).update(plaintext)


def decrypt(ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
    _validate_key(key)
    _validate_iv(iv)
    return GostCfb(key, iv, decrypt=True).update(ciphertext)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def encrypt_file(
    input_path: PathLike,
    output_path: PathLike,
    key: bytes,
    iv: Optional[bytes] = None,
    *,
    chunk_size: int = DEFAULT_CHUNK,
) -> bytes:
    """
    Stream-encrypt a file; the IV is written as the first 8 bytes.

    Returns the IV used.
    """
    _validate_key(key)
    if iv is None:
        iv = generate_iv()
    _validate_iv(iv)
    _validate_chunk(chunk_size)
    cfb = GostCfb(key, iv)
    with open_source(input_path) as fin, atomic_output(output_path) as fout:
        fout.write(iv)
        for chunk in read_chunks(fin, chunk_size):
            fout.write(cfb.update(chunk))
    logger.debug("GOST-encrypted %s -> %s", input_path, output_path)
    return bytes(iv)


def decrypt_file(
    input_path: PathLike,
    output_path: PathLike,
    key: bytes,
    *,
    chunk_size: int = DEFAULT_CHUNK,
) -> None:
    """Decrypt a file produced by :func:`encrypt_file`."""
    _validate_key(key)
    _validate_chunk(chunk_size)
    with open_source(input_path) as fin, atomic_output(output_path) as fout:
        iv = read_exact(fin, IV_SIZE)
        if len(iv) != IV_SIZE:
            raise FormatError("File too short: missing the 8-byte IV prefix.")
        cfb = GostCfb(key, iv, decrypt=True)
        for chunk in read_chunks(fin, chunk_size):
            fout.write(cfb.update(chunk))
    logger.debug("GOST-decrypted %s -> %s", input_path, output_path)


def _validate_chunk(chunk_size: int) -> None:
    if chunk_size <= 0 or chunk_size % BLOCK_SIZE:
        raise ValueError(f"chunk_size must be a positive multiple of {BLOCK_SIZE}.")
