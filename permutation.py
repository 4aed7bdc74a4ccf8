"""
Block permutation (transposition) cipher.

The key is a string of decimal digits holding every value ``0..N-1``
exactly once, e.g. ``"201"`` for ``N = 3``.  Data is padded PKCS#7-style to a
multiple of ``N`` (always 1..N pad bytes) and, inside every block, output
position ``i`` takes the byte at position ``key[i]``.
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

from errors import DecryptionError, FormatError, InvalidKeyError
from fileio import PathLike, atomic_output, mark_last, open_source, read_chunks

logger = logging.getLogger(__name__)

MIN_BLOCK: int = 2
CHUNK_BLOCKS: int = 4096  # blocks per file read


def parse_key(key: str) -> Tuple[int, ...]:
    """
    Validate a digit-permutation key and return it as a tuple of ints.

    Raises
    ------
    InvalidKeyError
        If the key is shorter than two digits, contains a non-digit, or is
        not a permutation of ``0..N-1``.
    """
    if not isinstance(key, str):
        raise InvalidKeyError("Permutation key must be a string of digits.")
    if len(key) < MIN_BLOCK:
        raise InvalidKeyError(f"Permutation key must have at least {MIN_BLOCK} digits.")
    if not all(ch in "0123456789" for ch in key):
        raise InvalidKeyError(f"Permutation key {key!r} must contain only digits.")
    perm = tuple(int(ch) for ch in key)
    if sorted(perm) != list(range(len(perm))):
        raise InvalidKeyError(
            f"Permutation key {key!r} must use each digit 0..{len(perm) - 1} exactly once."
        )
    return perm


def invert(perm: Sequence[int]) -> Tuple[int, ...]:
    inverse = [0] * len(perm)
    for i, target in enumerate(perm):
        inverse[target] = i
    return tuple(inverse)


def _pad(data: bytes, size: int) -> bytes:
    pad_len = size - len(data) % size
    return data + bytes([pad_len]) * pad_len


def _unpad(data: bytes, size: int) -> bytes:
    pad_len = data[-1] if data else 0
    if not 1 <= pad_len <= size or data[-pad_len:] != bytes([pad_len]) * pad_len:
        raise DecryptionError("Permutation decryption failed: invalid padding (wrong key?).")
    return data[:-pad_len]


def _scatter(data: bytes, perm: Sequence[int]) -> bytes:
    """Inverse of :func:`_gather`."""
    size = len(perm)
    out = bytearray(len(data))
    for start in range(0, len(data), size):
        for i, target in enumerate(perm):
            out[start + target] = data[start + i]
    return bytes(out)


def _gather(data: bytes, perm: Sequence[int]) -> bytes:
    """Output byte ``i`` of every block is input byte ``perm[i]``."""
    size = len(perm)
    out = bytearray(len(data))
    for start in range(0, len(data), size):
        for i, target in enumerate(perm):
            out[start + i] = data[start + target]
    return bytes(out)


def encrypt(plaintext: bytes, key: str) -> bytes:
    perm = parse_key(key)
    return _gather(_pad(plaintext, len(perm)), perm)


def decrypt(ciphertext: bytes, key: str) -> bytes:
    """
    Invert :func:`encrypt`.

    Raises
    ------
    FormatError
        If the ciphertext is empty or not a multiple of the key length.
    DecryptionError
        If the recovered padding is invalid.
    """
    perm = parse_key(key)
    size = len(perm)
    if not ciphertext or len(ciphertext) % size:
        raise FormatError(
            f"Ciphertext length {len(ciphertext)} is not a positive multiple of {size}."
        )
    return _unpad(_scatter(ciphertext, perm), size)


def encrypt_file(input_path: PathLike, output_path: PathLike, key: str) -> None:
    perm = parse_key(key)
    size = len(perm)
    with open_source(input_path) as fin, atomic_output(output_path) as fout:
        wrote_last = False
        for chunk, is_last in mark_last(read_chunks(fin, size * CHUNK_BLOCKS)):
            if is_last:
                chunk = _pad(chunk, size)
                wrote_last = True
            fout.write(_gather(chunk, perm))
        if not wrote_last:
            fout.write(_gather(_pad(b"", size), perm))
    logger.debug("Permutation-encrypted %s -> %s", input_path, output_path)


def decrypt_file(input_path: PathLike, output_path: PathLike, key: str) -> None:
    perm = parse_key(key)
    size = len(perm)
    with open_source(input_path) as fin, atomic_output(output_path) as fout:
        seen = False
        for chunk, is_last in mark_last(read_chunks(fin, size * CHUNK_BLOCKS)):
            seen = True
            if len(chunk) % size:
                raise FormatError(f"Ciphertext file length is not a multiple of {size}.")
            data = _scatter(chunk, perm)
            fout.write(_unpad(data, size) if is_last else data)
        if not seen:
            raise FormatError("Ciphertext file is empty.")
    logger.debug("Permutation-decrypted %s -> %s", input_path, output_path)
