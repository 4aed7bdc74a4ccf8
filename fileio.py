"""
File plumbing shared by the streaming engines.

Destinations are written all-or-nothing: data goes to a temporary file in
the destination directory and is moved over the real path only once the
whole transform succeeded.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Tuple, TypeVar, Union

from errors import IoError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
T = TypeVar("T")


@contextmanager
def open_source(path: PathLike) -> Iterator[BinaryIO]:
    """Open *path* for binary reading, turning ``OSError`` into ``IoError``."""
    path = Path(path)
    try:
        fin = open(path, "rb")
    except OSError as exc:
        raise IoError(f"Cannot open input file {path}: {exc}") from exc
    with fin:
        try:
            yield fin
        except OSError as exc:
            raise IoError(f"Error reading {path}: {exc}") from exc


@contextmanager
def atomic_output(path: PathLike) -> Iterator[BinaryIO]:
    """
    Yield a binary file handle whose contents replace *path* on success.

    On any exception the scratch file is deleted and *path* is left as it
    was. ``OSError`` is re-raised as ``IoError``.
    """
    path = Path(path)
    directory = path.parent
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".part", dir=directory
        )
    except OSError as exc:
        raise IoError(f"Cannot create output in {directory}: {exc}") from exc

    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fout:
            yield fout
        os.chmod(tmp, _target_mode(path))
        os.replace(tmp, path)
    except OSError as exc:
        _discard(tmp)
        raise IoError(f"Error writing {path}: {exc}") from exc
    except BaseException:
        _discard(tmp)
        raise
    logger.debug("Wrote %s", path)


def _target_mode(path: Path) -> int:
    """Mode of the existing destination, else what a plain ``open()`` would give."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def _discard(tmp: Path) -> None:
    try:
        tmp.unlink()
    except FileNotFoundError:
        pass


def read_exact(fin: BinaryIO, size: int) -> bytes:
    """
    Read up to *size* bytes, short only at end of file.

    Read failures are raised as ``IoError`` naming the source file.
    """
    chunk = b""
    while len(chunk) < size:
        try:
            more = fin.read(size - len(chunk))
        except OSError as exc:
            name = getattr(fin, "name", "input")
            raise IoError(f"Error reading {name}: {exc}") from exc
        if not more:
            break
        chunk += more
    return chunk


def read_chunks(fin: BinaryIO, size: int) -> Iterator[bytes]:
    """Yield chunks of exactly *size* bytes; only the last may be shorter."""
    while True:
        chunk = read_exact(fin, size)
        if not chunk:
            return
        yield chunk


def mark_last(items: Iterable[T]) -> Iterator[Tuple[T, bool]]:
    """Yield ``(item, is_last)`` pairs."""
    it = iter(items)
    try:
        prev = next(it)
    except StopIteration:
        return
    for item in it:
        yield prev, False
        prev = item
    yield prev, True
