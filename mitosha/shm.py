"""Named shared memory segments guarded by a named counting semaphore."""

from __future__ import annotations

import errno
import fcntl
import mmap
import os
import struct
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

_SHM_DIR = Path("/dev/shm") if Path("/dev/shm").is_dir() else Path(tempfile.gettempdir())
_COUNTER = struct.Struct("=Q")
_POLL_INTERVAL = 0.001


class SharedMemoryError(OSError):
    """Raised when a shared segment or its semaphore cannot be used."""


def _check_name(name: str) -> None:
    if not name or "/" in name:
        raise SharedMemoryError(errno.EINVAL, f"invalid shared memory name: {name!r}")


def _segment_path(name: str) -> Path:
    return _SHM_DIR / name


def _semaphore_path(name: str) -> Path:
    return _SHM_DIR / f"msem.{name}"


class _NamedSemaphore:
    """A counting semaphore whose value lives in a file shared by processes."""

    def __init__(self, path: Path, create: bool) -> None:
        flags = os.O_RDWR | (os.O_CREAT if create else 0)
        self._fd: Optional[int] = os.open(path, flags, 0o666)
        try:
            with self._guard():
                self._read()
        except OSError:
            self.close()
            raise

    @contextmanager
    def _guard(self) -> Iterator[int]:
        if self._fd is None:
            raise SharedMemoryError(errno.EINVAL, "semaphore is closed")
        fcntl.flock(self._fd, fcntl.LOCK_EX)
        try:
            yield self._fd
        finally:
            fcntl.flock(self._fd, fcntl.LOCK_UN)

    def _read(self) -> int:
        data = os.pread(self._fd, _COUNTER.size, 0)
        if len(data) < _COUNTER.size:
            self._write(1)
            return 1
        return _COUNTER.unpack(data)[0]

    def _write(self, value: int) -> None:
        os.pwrite(self._fd, _COUNTER.pack(value), 0)

    def try_acquire(self) -> bool:
        with self._guard():
            value = self._read()
            if value == 0:
                return False
            self._write(value - 1)
            return True

    def acquire(self) -> None:
        while not self.try_acquire():
            time.sleep(_POLL_INTERVAL)

    def release(self) -> None:
        with self._guard():
            self._write(self._read() + 1)

    def release_force(self) -> None:
        with self._guard():
            if self._read() == 0:
                self._write(1)

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None


def unlink(name: str) -> None:
    """Remove the named segment and its semaphore; missing ones are ignored."""
    for path in (_semaphore_path(name), _segment_path(name)):
        try:
            path.unlink()
        except FileNotFoundError:
            pass


class SharedSegment:
    """A mapped named shared memory segment with a cross-process lock."""

    def __init__(self, name: str, fd: int, mapping: mmap.mmap, semaphore: _NamedSemaphore) -> None:
        self._name = name
        self._fd: Optional[int] = fd
        self._mapping: Optional[mmap.mmap] = mapping
        self._semaphore: Optional[_NamedSemaphore] = semaphore

    @classmethod
    def create(cls, name: str, size: int) -> SharedSegment:
        """Create or reuse the named segment, resized to ``size`` bytes."""
        return cls._attach(name, size)

    @classmethod
    def open(cls, name: str) -> SharedSegment:
        """Open an existing named segment with its current size."""
        return cls._attach(name, None)

    @classmethod
    def _attach(cls, name: str, size: Optional[int]) -> SharedSegment:
        _check_name(name)
        create = size is not None
        if create and size <= 0:
            raise SharedMemoryError(errno.EINVAL, f"invalid segment size: {size}")

        semaphore: Optional[_NamedSemaphore] = None
        fd: Optional[int] = None
        try:
            semaphore = _NamedSemaphore(_semaphore_path(name), create)
            flags = os.O_RDWR | (os.O_CREAT if create else 0)
            fd = os.open(_segment_path(name), flags, 0o666)
            if create:
                os.ftruncate(fd, size)
                length = size
            else:
                length = os.fstat(fd).st_size
                if length == 0:
                    raise SharedMemoryError(errno.EINVAL, f"segment {name!r} is empty")
            mapping = mmap.mmap(fd, length)
        except OSError as exc:
            if fd is not None:
                os.close(fd)
            if semaphore is not None:
                semaphore.close()
            if isinstance(exc, SharedMemoryError):
                raise
            raise SharedMemoryError(exc.errno, f"shared memory {name!r}: {exc.strerror}") from exc
        return cls(name, fd, mapping, semaphore)

    def close(self) -> None:
        """Unmap the segment and release its handles; the name stays."""
        if self._mapping is not None:
            self._mapping.close()
            self._mapping = None
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        if self._semaphore is not None:
            self._semaphore.close()
            self._semaphore = None

    def __enter__(self) -> SharedSegment:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def name(self) -> str:
        """The name the segment was created or opened with."""
        return self._name

    def _live_semaphore(self) -> _NamedSemaphore:
        if self._semaphore is None:
            raise SharedMemoryError(errno.EINVAL, "segment is closed")
        return self._semaphore

    def trylock(self) -> bool:
        """Take the lock without waiting; return whether it was taken."""
        return self._live_semaphore().try_acquire()

    def lock(self) -> None:
        """Take the lock, waiting until it is free."""
        self._live_semaphore().acquire()

    def unlock(self) -> None:
        """Release the lock once."""
        self._live_semaphore().release()

    def unlock_force(self) -> None:
        """Make the lock available if nobody can currently take it."""
        self._live_semaphore().release_force()

    @property
    def buffer(self) -> mmap.mmap:
        """The mapped memory, writable and shared with other handles."""
        if self._mapping is None:
            raise SharedMemoryError(errno.EINVAL, "segment is closed")
        return self._mapping

    @property
    def size(self) -> int:
        """Current size of the underlying segment, or 0 if unavailable."""
        if self._fd is None:
            return 0
        try:
            return os.fstat(self._fd).st_size
        except OSError:
            return 0