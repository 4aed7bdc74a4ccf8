"""
Exception hierarchy shared by every cipherdesk engine.

Callers branch on the exception type; the message is for display only.
"""

from __future__ import annotations


class CryptoError(Exception):
    """Base exception for all cipherdesk errors."""


class InvalidKeyError(CryptoError):
    """Key is malformed, not a valid permutation, or otherwise unusable."""


class KeyLengthError(InvalidKeyError):
    """Symmetric key has the wrong number of bytes."""


class IvLengthError(InvalidKeyError):
    """Initialization vector has the wrong number of bytes."""


class FormatError(CryptoError):
    """Hex text or ciphertext envelope cannot be parsed."""


class KeyGenError(CryptoError):
    """Key generation was asked for an unusable size or hit degenerate primes."""


class EncryptionError(CryptoError):
    """Plaintext cannot be encrypted under the given key."""


class EncodingError(EncryptionError):
    """Plaintext integer does not fit below the RSA modulus."""


class DecryptionError(CryptoError):
    """Wrong key, corrupted ciphertext, or ciphertext not produced by this engine."""


class IoError(CryptoError):
    """Reading the source or writing the destination file failed."""
