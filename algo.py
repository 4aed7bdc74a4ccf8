"""
cipherdesk Encryption/Decryption Facade
=======================================

Single entry point used by the desktop screens.  Requests are routed to
one of the engines by :class:`Algorithm`:

- ``RSA``          textbook RSA, block-split (see :mod:`rsa_engine`)
- ``GOST``         GOST 28147-89 in CFB-64 mode (see :mod:`gost`)
- ``PERMUTATION``  digit-keyed block transposition (see :mod:`permutation`)
- ``IDENTITY``     byte shift by one; a no-crypto baseline for demos

Keys travel as hex strings (RSA ``n``/``e``/``d``, GOST key and IV) or, for
the permutation cipher, as a digit string.  Failures are raised as the
exception types in :mod:`errors`; nothing here formats messages for display.

Text formats
------------
::

    RSA / PERMUTATION / IDENTITY   ciphertext_hex
    GOST                           iv_hex:ciphertext_hex

File formats
------------
::

    RSA          k-byte ciphertext blocks (k = byte length of n)
    GOST         IV (8 bytes) || ciphertext
    PERMUTATION  N-byte permuted blocks, PKCS#7-padded
    IDENTITY     shifted bytes
"""

from __future__ import annotations

import enum
from typing import Optional, Tuple, Union

import bigint
import gost
import hexcodec
import permutation
import rsa_engine
from errors import (  # noqa: F401  re-exported for callers
    CryptoError,
    DecryptionError,
    EncodingError,
    EncryptionError,
    FormatError,
    InvalidKeyError,
    IoError,
    IvLengthError,
    KeyGenError,
    KeyLengthError,
)
from fileio import PathLike, atomic_output, open_source, read_chunks
from rsa_engine import RSAKeyPair

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

GOST_SEPARATOR: str = ":"
DEFAULT_RSA_BITS: int = rsa_engine.DEFAULT_KEY_BITS
IDENTITY_CHUNK: int = 64 * 1024

_SHIFT_UP = bytes((i + 1) % 256 for i in range(256))
_SHIFT_DOWN = bytes((i - 1) % 256 for i in range(256))


class Algorithm(str, enum.Enum):
    RSA = "rsa"
    GOST = "gost"
    PERMUTATION = "permutation"
    IDENTITY = "identity"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return None


# ---------------------------------------------------------------------------
# Parsing helpers (module-private)
# ---------------------------------------------------------------------------


def _rsa_numbers(n_hex: str, exp_hex: str) -> Tuple[int, int]:
    return bigint.from_hex(n_hex.strip()), bigint.from_hex(exp_hex.strip())


def _gost_key(key_hex: str) -> bytes:
    text = key_hex.strip()
    if len(text) != gost.KEY_SIZE * 2:
        raise KeyLengthError(
            f"GOST key must be {gost.KEY_SIZE * 2} hex characters (got {len(text)})."
        )
    return hexcodec.decode(text)


def _gost_iv(iv_hex: str) -> bytes:
    text = iv_hex.strip()
    if len(text) != gost.IV_SIZE * 2:
        raise IvLengthError(
            f"GOST IV must be {gost.IV_SIZE * 2} hex characters (got {len(text)})."
        )
    return hexcodec.decode(text)


def _to_text(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecryptionError(
            "Decrypted data is not valid UTF-8 text: wrong key or corrupted data."
        ) from exc


def _algorithm(tag: Union[Algorithm, str]) -> Algorithm:
    try:
        return Algorithm(tag)
    except ValueError as exc:
        raise FormatError(f"Unknown algorithm {tag!r}.") from exc


def _require(keys: dict, name: str) -> str:
    value = keys.get(name)
    if value is None:
        raise InvalidKeyError(f"Missing key material: {name}.")
    return value


# ---------------------------------------------------------------------------
# CryptoFacade
# ---------------------------------------------------------------------------


class CryptoFacade:
    """
    Caller-facing operations.

    All public methods are **static** and stateless; the class is a
    namespace, mirrored by the module-level functions below.
    """

    # ------------------------------------------------------------------
    # RSA
    # ------------------------------------------------------------------

    @staticmethod
    def rsa_generate_keypair(bits: int = DEFAULT_RSA_BITS) -> RSAKeyPair:
        """Generate a key pair; use ``.n_hex``, ``.e_hex``, ``.d_hex``."""
        return rsa_engine.generate_keypair(bits)

    @staticmethod
    def rsa_encrypt_text(plaintext: str, n_hex: str, e_hex: str) -> str:
        n, e = _rsa_numbers(n_hex, e_hex)
        return hexcodec.encode(rsa_engine.encrypt(plaintext.encode("utf-8"), n, e))

    @staticmethod
    def rsa_decrypt_text(ciphertext_hex: str, n_hex: str, d_hex: str) -> str:
        n, d = _rsa_numbers(n_hex, d_hex)
        data = hexcodec.decode(ciphertext_hex.strip())
        return _to_text(rsa_engine.decrypt(data, n, d))

    @staticmethod
    def rsa_encrypt_file(
        input_path: PathLike, output_path: PathLike, n_hex: str, e_hex: str
    ) -> None:
        n, e = _rsa_numbers(n_hex, e_hex)
        rsa_engine.encrypt_file(input_path, output_path, n, e)

    @staticmethod
    def rsa_decrypt_file(
        input_path: PathLike, output_path: PathLike, n_hex: str, d_hex: str
    ) -> None:
        n, d = _rsa_numbers(n_hex, d_hex)
        rsa_engine.decrypt_file(input_path, output_path, n, d)

    @staticmethod
    def rsa_export_public_key(n_hex: str, e_hex: str) -> bytes:
        """Serialize a public key to PEM."""
        return rsa_engine.export_public_pem(*_rsa_numbers(n_hex, e_hex))

    @staticmethod
    def rsa_export_private_key(
        n_hex: str,
        e_hex: str,
        d_hex: str,
        passphrase: Optional[str] = None,
    ) -> bytes:
        """Serialize a key pair to PKCS8 PEM, encrypted when *passphrase* is set."""
        n, e = _rsa_numbers(n_hex, e_hex)
        return rsa_engine.export_private_pem(n, e, bigint.from_hex(d_hex.strip()), passphrase)

    @staticmethod
    def rsa_import_public_key(pem: bytes) -> Tuple[str, str]:
        """Return ``(n_hex, e_hex)`` from a PEM public key."""
        n, e = rsa_engine.import_public_pem(pem)
        return bigint.to_hex(n), bigint.to_hex(e)

    @staticmethod
    def rsa_import_private_key(pem: bytes, passphrase: Optional[str] = None) -> RSAKeyPair:
        return rsa_engine.import_private_pem(pem, passphrase)

    # ------------------------------------------------------------------
    # GOST 28147-89
    # ------------------------------------------------------------------

    @staticmethod
    def gost_generate_key_hex() -> str:
        return hexcodec.encode(gost.generate_key())

    @staticmethod
    def gost_generate_iv_hex() -> str:
        return hexcodec.encode(gost.generate_iv())

    @staticmethod
    def gost_encrypt_text(plaintext: str, key_hex: str, iv_hex: Optional[str] = None) -> str:
        """
        Encrypt text and return ``"iv_hex:ciphertext_hex"``.

        A random IV is generated when *iv_hex* is empty or ``None``.
        """
        key = _gost_key(key_hex)
        iv = _gost_iv(iv_hex) if iv_hex and iv_hex.strip() else None
        used_iv, ct = gost.encrypt(plaintext.encode("utf-8"), key, iv)
        return f"{hexcodec.encode(used_iv)}{GOST_SEPARATOR}{hexcodec.encode(ct)}"

    @staticmethod
    def gost_decrypt_text(envelope: str, key_hex: str) -> str:
        """
        Decrypt an ``"iv_hex:ciphertext_hex"`` envelope.

        Raises
        ------
        FormatError
            If the separator or the IV is missing.
        """
        key = _gost_key(key_hex)
        iv_hex, sep, ct_hex = envelope.strip().partition(GOST_SEPARATOR)
        if not sep or not iv_hex:
            raise FormatError("GOST ciphertext must look like 'iv_hex:ciphertext_hex'.")
        iv = _gost_iv(iv_hex)
        return _to_text(gost.decrypt(hexcodec.decode(ct_hex.strip()), key, iv))

    @staticmethod
    def gost_encrypt_file(
        input_path: PathLike,
        output_path: PathLike,
        key_hex: str,
        iv_hex: Optional[str] = None,
    ) -> str:
        """Encrypt a file (IV written as its first 8 bytes); returns the IV hex."""
        key = _gost_key(key_hex)
        iv = _gost_iv(iv_hex) if iv_hex and iv_hex.strip() else None
        return hexcodec.encode(gost.encrypt_file(input_path, output_path, key, iv))

    @staticmethod
    def gost_decrypt_file(input_path: PathLike, output_path: PathLike, key_hex: str) -> None:
        gost.decrypt_file(input_path, output_path, _gost_key(key_hex))

    # ------------------------------------------------------------------
    # Permutation cipher
    # ------------------------------------------------------------------

    @staticmethod
    def permutation_encrypt_text(plaintext: str, key: str) -> str:
        return hexcodec.encode(permutation.encrypt(plaintext.encode("utf-8"), key))

    @staticmethod
    def permutation_decrypt_text(ciphertext_hex: str, key: str) -> str:
        permutation.parse_key(key)
        data = hexcodec.decode(ciphertext_hex.strip())
        return _to_text(permutation.decrypt(data, key))

    @staticmethod
    def permutation_encrypt_file(input_path: PathLike, output_path: PathLike, key: str) -> None:
        permutation.encrypt_file(input_path, output_path, key)

    @staticmethod
    def permutation_decrypt_file(input_path: PathLike, output_path: PathLike, key: str) -> None:
        permutation.decrypt_file(input_path, output_path, key)

    # ------------------------------------------------------------------
    # Identity (demo shift)
    # ------------------------------------------------------------------

    @staticmethod
    def identity_encrypt_text(plaintext: str) -> str:
        return hexcodec.encode(plaintext.encode("utf-8").translate(_SHIFT_UP))

    @staticmethod
    def identity_decrypt_text(ciphertext_hex: str) -> str:
        data = hexcodec.decode(ciphertext_hex.strip())
        return _to_text(data.translate(_SHIFT_DOWN))

    @staticmethod
    def identity_encrypt_file(input_path: PathLike, output_path: PathLike) -> None:
        _shift_file(input_path, output_path, _SHIFT_UP)

    @staticmethod
    def identity_decrypt_file(input_path: PathLike, output_path: PathLike) -> None:
        _shift_file(input_path, output_path, _SHIFT_DOWN)

    # ------------------------------------------------------------------
    # Dispatch by algorithm
    # ------------------------------------------------------------------

    @staticmethod
    def encrypt_text(algorithm: Union[Algorithm, str], plaintext: str, **keys: str) -> str:
        """
        Encrypt text with the selected *algorithm*.

        Key material is passed by name: ``n_hex``/``e_hex`` (RSA),
        ``key_hex`` and optional ``iv_hex`` (GOST), ``key`` (PERMUTATION).
        """
        algorithm = _algorithm(algorithm)
        if algorithm is Algorithm.RSA:
            return CryptoFacade.rsa_encrypt_text(
                plaintext, _require(keys, "n_hex"), _require(keys, "e_hex")
            )
        if algorithm is Algorithm.GOST:
            return CryptoFacade.gost_encrypt_text(
                plaintext, _require(keys, "key_hex"), keys.get("iv_hex")
            )
        if algorithm is Algorithm.PERMUTATION:
            return CryptoFacade.permutation_encrypt_text(plaintext, _require(keys, "key"))
        return CryptoFacade.identity_encrypt_text(plaintext)

    @staticmethod
    def decrypt_text(algorithm: Union[Algorithm, str], ciphertext: str, **keys: str) -> str:
        algorithm = _algorithm(algorithm)
        if algorithm is Algorithm.RSA:
            return CryptoFacade.rsa_decrypt_text(
                ciphertext, _require(keys, "n_hex"), _require(keys, "d_hex")
            )
        if algorithm is Algorithm.GOST:
            return CryptoFacade.gost_decrypt_text(ciphertext, _require(keys, "key_hex"))
        if algorithm is Algorithm.PERMUTATION:
            return CryptoFacade.permutation_decrypt_text(ciphertext, _require(keys, "key"))
        return CryptoFacade.identity_decrypt_text(ciphertext)

    @staticmethod
    def encrypt_file(
        algorithm: Union[Algorithm, str],
        input_path: PathLike,
        output_path: PathLike,
        **keys: str,
    ) -> None:
        algorithm = _algorithm(algorithm)
        if algorithm is Algorithm.RSA:
            CryptoFacade.rsa_encrypt_file(
                input_path, output_path, _require(keys, "n_hex"), _require(keys, "e_hex")
            )
        elif algorithm is Algorithm.GOST:
            CryptoFacade.gost_encrypt_file(
                input_path, output_path, _require(keys, "key_hex"), keys.get("iv_hex")
            )
        elif algorithm is Algorithm.PERMUTATION:
            CryptoFacade.permutation_encrypt_file(input_path, output_path, _require(keys, "key"))
        else:
            CryptoFacade.identity_encrypt_file(input_path, output_path)

    @staticmethod
    def decrypt_file(
        algorithm: Union[Algorithm, str],
        input_path: PathLike,
        output_path: PathLike,
        **keys: str,
    ) -> None:
        algorithm = _algorithm(algorithm)
        if algorithm is Algorithm.RSA:
            CryptoFacade.rsa_decrypt_file(
                input_path, output_path, _require(keys, "n_hex"), _require(keys, "d_hex")
            )
        elif algorithm is Algorithm.GOST:
            CryptoFacade.gost_decrypt_file(input_path, output_path, _require(keys, "key_hex"))
        elif algorithm is Algorithm.PERMUTATION:
            CryptoFacade.permutation_decrypt_file(input_path, output_path, _require(keys, "key"))
        else:
            CryptoFacade.identity_decrypt_file(input_path, output_path)


def _shift_file(input_path: PathLike, output_path: PathLike, table: bytes) -> None:
    with open_source(input_path) as fin, atomic_output(output_path) as fout:
        for chunk in read_chunks(fin, IDENTITY_CHUNK):
            fout.write(chunk.translate(table))


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------

_facade = CryptoFacade

rsa_generate_keypair = _facade.rsa_generate_keypair
rsa_encrypt_text = _facade.rsa_encrypt_text
rsa_decrypt_text = _facade.rsa_decrypt_text
rsa_encrypt_file = _facade.rsa_encrypt_file
rsa_decrypt_file = _facade.rsa_decrypt_file
rsa_export_public_key = _facade.rsa_export_public_key
rsa_export_private_key = _facade.rsa_export_private_key
rsa_import_public_key = _facade.rsa_import_public_key
rsa_import_private_key = _facade.rsa_import_private_key

gost_generate_key_hex = _facade.gost_generate_key_hex
gost_generate_iv_hex = _facade.gost_generate_iv_hex
gost_encrypt_text = _facade.gost_encrypt_text
gost_decrypt_text = _facade.gost_decrypt_text
gost_encrypt_file = _facade.gost_encrypt_file
gost_decrypt_file = _facade.gost_decrypt_file

permutation_encrypt_text = _facade.permutation_encrypt_text
permutation_decrypt_text = _facade.permutation_decrypt_text
permutation_encrypt_file = _facade.permutation_encrypt_file
permutation_decrypt_file = _facade.permutation_decrypt_file

identity_encrypt_text = _facade.identity_encrypt_text
identity_decrypt_text = _facade.identity_decrypt_text
identity_encrypt_file = _facade.identity_encrypt_file
identity_decrypt_file = _facade.identity_decrypt_file

encrypt_text = _facade.encrypt_text
decrypt_text = _facade.decrypt_text
encrypt_file = _facade.encrypt_file
decrypt_file = _facade.decrypt_file


# ---------------------------------------------------------------------------
# Self-test (run with: python algo.py)
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import sys

    failures = 0

    def _check(name: str, fn) -> None:
        global failures
        try:
            fn()
            print(f"  [PASS] {name}")
        except Exception as exc:
            print(f"  [FAIL] {name}: {exc}")
            failures += 1

    def _rsa_roundtrip() -> None:
        kp = rsa_generate_keypair(512)
        ct = rsa_encrypt_text("Hello RSA", kp.n_hex, kp.e_hex)
        assert rsa_decrypt_text(ct, kp.n_hex, kp.d_hex) == "Hello RSA"

    def _gost_roundtrip() -> None:
        key = gost_generate_key_hex()
        env = gost_encrypt_text("Hello GOST", key)
        assert gost_decrypt_text(env, key) == "Hello GOST"

    def _permutation_roundtrip() -> None:
        ct = permutation_encrypt_text("Hello permutation", "3021")
        assert permutation_decrypt_text(ct, "3021") == "Hello permutation"

    print("cipherdesk self-test")
    _check("RSA text round-trip", _rsa_roundtrip)
    _check("GOST text round-trip", _gost_roundtrip)
    _check("Permutation text round-trip", _permutation_roundtrip)
    sys.exit(1 if failures else 0)
