"""
cipherdesk Background Workers
=============================

QThread-based workers that run blocking engine calls (RSA key generation,
text and file transforms) off the GUI thread.

Each worker emits ``finished`` with its result, or ``error(kind, message)``
where *kind* is the engine exception class name so the screen can choose
how to present the failure.  ``run()`` is synchronous and can be called
directly when no thread is wanted.
"""

from __future__ import annotations

import time
from typing import Dict, Optional

from PySide6.QtCore import QThread, Signal

import algo


def _error_kind(exc: Exception) -> str:
    return type(exc).__name__


# ---------------------------------------------------------------------------
# Key generation
# ---------------------------------------------------------------------------


class KeyGenWorker(QThread):
    """Generate an RSA key pair in a background thread."""

    finished = Signal(object)   # algo.RSAKeyPair
    error = Signal(str, str)    # (error kind, message)

    def __init__(self, bits: int = algo.DEFAULT_RSA_BITS, parent=None):
        super().__init__(parent)
        self._bits = bits

    def run(self) -> None:
        try:
            result = algo.rsa_generate_keypair(self._bits)
            self.finished.emit(result)
        except Exception as exc:
            self.error.emit(_error_kind(exc), str(exc))


# ---------------------------------------------------------------------------
# Text Workers
# ---------------------------------------------------------------------------


class TextEncryptWorker(QThread):
    """Encrypt text in a background thread."""

    finished = Signal(str)      # ciphertext hex / GOST envelope
    error = Signal(str, str)

    def __init__(
        self,
        algorithm: algo.Algorithm,
        plaintext: str,
        keys: Optional[Dict[str, str]] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._algorithm = algorithm
        self._plaintext = plaintext
        self._keys = dict(keys or {})

    def run(self) -> None:
        try:
            result = algo.encrypt_text(self._algorithm, self._plaintext, **self._keys)
            self.finished.emit(result)
        except Exception as exc:
            self.error.emit(_error_kind(exc), str(exc))


class TextDecryptWorker(QThread):
    """Decrypt text in a background thread."""

    finished = Signal(str)      # plaintext
    error = Signal(str, str)

    def __init__(
        self,
        algorithm: algo.Algorithm,
        ciphertext: str,
        keys: Optional[Dict[str, str]] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._algorithm = algorithm
        self._ciphertext = ciphertext
        self._keys = dict(keys or {})

    def run(self) -> None:
        try:
            result = algo.decrypt_text(self._algorithm, self._ciphertext, **self._keys)
            self.finished.emit(result)
        except Exception as exc:
            self.error.emit(_error_kind(exc), str(exc))


# ---------------------------------------------------------------------------
# File Workers
# ---------------------------------------------------------------------------


class _FileWorker(QThread):
    finished = Signal(str, float)   # (output_path, elapsed_sec)
    error = Signal(str, str)

    def __init__(
        self,
        algorithm: algo.Algorithm,
        input_path: str,
        output_path: str,
        keys: Optional[Dict[str, str]] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._algorithm = algorithm
        self._input_path = input_path
        self._output_path = output_path
        self._keys = dict(keys or {})

    def _transform(self) -> None:
        raise NotImplementedError

    def run(self) -> None:
        t0 = time.perf_counter()
        try:
            self._transform()
            self.finished.emit(self._output_path, time.perf_counter() - t0)
        except Exception as exc:
            self.error.emit(_error_kind(exc), str(exc))


class FileEncryptWorker(_FileWorker):
    """Encrypt a file in a background thread."""

    def _transform(self) -> None:
        algo.encrypt_file(self._algorithm, self._input_path, self._output_path, **self._keys)


class FileDecryptWorker(_FileWorker):
    """Decrypt a file in a background thread."""

    def _transform(self) -> None:
        algo.decrypt_file(self._algorithm, self._input_path, self._output_path, **self._keys)
