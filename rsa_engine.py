"""
RSA Engine
==========

Textbook RSA over arbitrary-length data:

- Key generation with Miller-Rabin probable primes (``secrets`` randomness)
- Square-and-multiply encryption / decryption (see :mod:`bigint`)
- Block-split framing so any plaintext length round-trips exactly
- PEM import/export of key pairs through the ``cryptography`` library

Block format
------------
Let ``k`` be the byte length of the modulus ``n``.  Plaintext is cut into
chunks of at most ``k - 2`` bytes and each chunk is framed as::

    0x01 || chunk          (integer m < 256**(k-1) <= n)

Every ciphertext block is ``m**e mod n`` written as exactly ``k`` big-endian
bytes, so the ciphertext is block-aligned.  On decryption the ``0x01``
marker is checked, which catches most mismatched keys and foreign data.
A modulus below 65536 (``k < 3``) cannot carry a framed byte.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Optional, Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPrivateKey,
    RSAPublicKey,
)

import bigint
from errors import (
    DecryptionError,
    EncodingError,
    FormatError,
    InvalidKeyError,
    KeyGenError,
)
from fileio import PathLike, atomic_output, open_source, read_chunks

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

RSA_MIN_BITS: int = 32          # two 16-bit primes
DEFAULT_KEY_BITS: int = 512     # demo size
PUBLIC_EXPONENT: int = 65537
MILLER_RABIN_ROUNDS: int = 25
FRAME_MARKER: int = 0x01

_SMALL_PRIMES: Tuple[int, ...] = tuple(
    p for p in range(2, 256) if all(p % d for d in range(2, int(p ** 0.5) + 1))
)


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RSAKeyPair:
    """Modulus ``n``, public exponent ``e`` and private exponent ``d``."""

    n: int
    e: int
    d: int

    @property
    def n_hex(self) -> str:
        return bigint.to_hex(self.n)

    @property
    def e_hex(self) -> str:
        return bigint.to_hex(self.e)

    @property
    def d_hex(self) -> str:
        return bigint.to_hex(self.d)

    @property
    def bits(self) -> int:
        return self.n.bit_length()

    @classmethod
    def from_hex(cls, n_hex: str, e_hex: str, d_hex: str) -> "RSAKeyPair":
        return cls(bigint.from_hex(n_hex), bigint.from_hex(e_hex), bigint.from_hex(d_hex))


# ---------------------------------------------------------------------------
# Primes & key generation
# ---------------------------------------------------------------------------


def is_probable_prime(n: int, rounds: int = MILLER_RABIN_ROUNDS) -> bool:
    """Trial division by small primes, then *rounds* of Miller-Rabin."""
    if n < 2:
        return False
    for p in _SMALL_PRIMES:
        if n == p:
            return True
        if n % p == 0:
            return False

    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1

    for _ in range(rounds):
        a = 2 + secrets.randbelow(n - 3)
        x = bigint.mod_pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = (x * x) % n
            if x == n - 1:
                break
        else:
            return False
    return True


def generate_prime(bits: int) -> int:
    """
    Random probable prime of exactly *bits* bits.

    The two top bits are forced on so that a product of two such primes
    has the full combined bit length.
    """
    if bits < 3:
        raise KeyGenError("Prime bit length must be at least 3.")
    top = 0b11 << (bits - 2)
    while True:
        candidate = secrets.randbits(bits) | top | 1
        if is_probable_prime(candidate):
            return candidate


def generate_keypair(bits: int = DEFAULT_KEY_BITS) -> RSAKeyPair:
    """
    Generate an RSA key pair whose modulus has *bits* bits.

    Raises
    ------
    KeyGenError
        If *bits* is below :data:`RSA_MIN_BITS` or no usable exponent exists.
    """
    if not isinstance(bits, int) or isinstance(bits, bool):
        raise KeyGenError("RSA key size must be an integer.")
    if bits < RSA_MIN_BITS:
        raise KeyGenError(f"RSA key size must be at least {RSA_MIN_BITS} bits (got {bits}).")

    p_bits = bits // 2
    q_bits = bits - p_bits
    p = generate_prime(p_bits)
    q = generate_prime(q_bits)
    attempts = 1
    while q == p:
        q = generate_prime(q_bits)
        attempts += 1
    logger.debug("Found RSA primes of %d/%d bits after %d attempt(s)", p_bits, q_bits, attempts)

    n = p * q
    lam = bigint.lcm(p - 1, q - 1)
    e = _choose_exponent(lam)
    try:
        d = bigint.mod_inverse(e, lam)
    except ValueError as exc:
        raise KeyGenError("Could not invert the public exponent.") from exc
    return RSAKeyPair(n, e, d)


def _choose_exponent(lam: int) -> int:
    if PUBLIC_EXPONENT < lam and bigint.gcd(PUBLIC_EXPONENT, lam) == 1:
        return PUBLIC_EXPONENT
    e = 3
    while e < lam and bigint.gcd(e, lam) != 1:
        e += 2
    if e >= lam:
        raise KeyGenError("Failed to find a public exponent coprime to lambda(n).")
    return e


# ---------------------------------------------------------------------------
# Block transform
# ---------------------------------------------------------------------------


def encrypt_block(m: int, n: int, e: int) -> int:
    """``m**e mod n``; the message integer must be below the modulus."""
    if m >= n:
        raise EncodingError("Plaintext integer is too large for the key modulus.")
    return bigint.mod_pow(m, e, n)


def decrypt_block(c: int, n: int, d: int) -> int:
    if c >= n:
        raise DecryptionError("Ciphertext integer is too large for the key modulus.")
    return bigint.mod_pow(c, d, n)


def _block_sizes(n: int) -> Tuple[int, int]:
    """Return ``(plaintext_chunk, ciphertext_block)`` sizes in bytes."""
    if n < 2:
        raise InvalidKeyError("RSA modulus must be greater than 1.")
    k = bigint.byte_length(n)
    if k < 3:
        raise EncodingError(
            f"RSA modulus {bigint.to_hex(n)} is too small to encrypt any data."
        )
    return k - 2, k


def _check_exponent(exponent: int) -> None:
    if exponent < 1:
        raise InvalidKeyError("RSA exponent must be positive.")


def _seal(chunk: bytes, n: int, e: int, k: int) -> bytes:
    m = bigint.from_bytes(bytes([FRAME_MARKER]) + chunk)
    return bigint.to_bytes(encrypt_block(m, n, e), k)


def _open(block: bytes, n: int, d: int, chunk_size: int) -> bytes:
    m = decrypt_block(bigint.from_bytes(block), n, d)
    framed = bigint.to_bytes(m)
    if framed[0] != FRAME_MARKER or not 2 <= len(framed) <= chunk_size + 1:
        raise DecryptionError("RSA decryption failed: wrong key or corrupted data.")
    return framed[1:]


def encrypt(plaintext: bytes, n: int, e: int) -> bytes:
    """Encrypt *plaintext* of any length; output is ``k``-byte aligned."""
    chunk_size, k = _block_sizes(n)
    _check_exponent(e)
    return b"".join(
        _seal(plaintext[i : i + chunk_size], n, e, k)
        for i in range(0, len(plaintext), chunk_size)
    )


def decrypt(ciphertext: bytes, n: int, d: int) -> bytes:
    """
    Decrypt data produced by :func:`encrypt`.

    Raises
    ------
    FormatError
        If the ciphertext is not a whole number of blocks.
    DecryptionError
        If a block is not below ``n`` or its frame marker is wrong.
    """
    chunk_size, k = _block_sizes(n)
    _check_exponent(d)
    if len(ciphertext) % k:
        raise FormatError(
            f"RSA ciphertext length {len(ciphertext)} is not a multiple of {k} bytes."
        )
    return b"".join(
        _open(ciphertext[i : i + k], n, d, chunk_size)
        for i in range(0, len(ciphertext), k)
    )


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def encrypt_file(input_path: PathLike, output_path: PathLike, n: int, e: int) -> None:
    chunk_size, k = _block_sizes(n)
    _check_exponent(e)
    with open_source(input_path) as fin, atomic_output(output_path) as fout:
        for chunk in read_chunks(fin, chunk_size):
            fout.write(_seal(chunk, n, e, k))


def decrypt_file(input_path: PathLike, output_path: PathLike, n: int, d: int) -> None:
    chunk_size, k = _block_sizes(n)
    _check_exponent(d)
    with open_source(input_path) as fin, atomic_output(output_path) as fout:
        for block in read_chunks(fin, k):
            if len(block) != k:
                raise FormatError("Truncated RSA ciphertext block.")
            fout.write(_open(block, n, d, chunk_size))


# ---------------------------------------------------------------------------
# PEM serialization
# ---------------------------------------------------------------------------


def export_public_pem(n: int, e: int) -> bytes:
    """Serialize ``(n, e)`` as a SubjectPublicKeyInfo PEM."""
    try:
        key = rsa.RSAPublicNumbers(e, n).public_key()
    except ValueError as exc:
        raise InvalidKeyError(f"Invalid RSA public key: {exc}") from exc
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def export_private_pem(
    n: int,
    e: int,
    d: int,
    passphrase: Optional[str] = None,
) -> bytes:
    """
    Serialize a key pair as PKCS8 PEM.

    The primes are recovered from ``(n, e, d)``.  With a *passphrase* the
    PEM is encrypted by the ``cryptography`` library's best available
    scheme.
    """
    try:
        p, q = rsa.rsa_recover_prime_factors(n, e, d)
        numbers = rsa.RSAPrivateNumbers(
            p=p,
            q=q,
            d=d,
            dmp1=rsa.rsa_crt_dmp1(d, p),
            dmq1=rsa.rsa_crt_dmq1(d, q),
            iqmp=rsa.rsa_crt_iqmp(p, q),
            public_numbers=rsa.RSAPublicNumbers(e, n),
        )
        key = numbers.private_key()
    except ValueError as exc:
        raise InvalidKeyError(f"Invalid RSA key pair: {exc}") from exc

    enc: serialization.KeySerializationEncryption
    if passphrase:
        enc = serialization.BestAvailableEncryption(passphrase.encode("utf-8"))
    else:
        enc = serialization.NoEncryption()
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=enc,
    )


def import_public_pem(pem: bytes) -> Tuple[int, int]:
    """Load a PEM public key and return ``(n, e)``."""
    try:
        key = serialization.load_pem_public_key(pem)
    except (ValueError, TypeError) as exc:
        raise InvalidKeyError("Malformed PEM public key.") from exc
    if not isinstance(key, RSAPublicKey):
        raise InvalidKeyError("PEM does not contain an RSA public key.")
    numbers = key.public_numbers()
    return numbers.n, numbers.e


def import_private_pem(pem: bytes, passphrase: Optional[str] = None) -> RSAKeyPair:
    """Load a (possibly encrypted) PEM private key."""
    pwd = passphrase.encode("utf-8") if passphrase else None
    try:
        key = serialization.load_pem_private_key(pem, password=pwd)
    except (ValueError, TypeError) as exc:
        raise InvalidKeyError("Malformed PEM private key or wrong passphrase.") from exc
    if not isinstance(key, RSAPrivateKey):
        raise InvalidKeyError("PEM does not contain an RSA private key.")
    numbers = key.private_numbers()
    return RSAKeyPair(numbers.public_numbers.n, numbers.public_numbers.e, numbers.d)
