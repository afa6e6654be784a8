#!/usr/bin/env python3
"""
Merger Storage Module

This module defines how the merger core reaches bytes: sized readable
sources for the inputs and pending, discardable outputs for everything it
writes. The codec itself only ever sees SizedSource objects and binary
streams; where those bytes actually live is the storage backend's business.

Storage Features:
- SizedSource wrappers for filesystem paths and in-memory bytes
- Pending outputs written to a temporary file next to the final location
- Atomic commit (os.replace) on success, deletion on failure or cancel
- Input validation mapping filesystem errors onto the error taxonomy

Author: Merger Development Team
Version: 3.0.0
"""

import io
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from .errors import ErrorKind, MergerError

logger = logging.getLogger(__name__)


# ============================================================================
# Sized Sources
# ============================================================================

@dataclass
class SizedSource:
    """
    A readable byte source whose length is known before reading.

    Attributes:
        name: Display name of the source (basename for files)
        size: Total number of bytes the source yields
        opener: Zero-argument callable returning a fresh seekable binary stream
        location: Path or identifier the source was opened from, if any
    """

    name: str
    size: int
    opener: Callable[[], BinaryIO]
    location: Optional[str] = None

    def open(self) -> BinaryIO:
        try:
            return self.opener()
        except OSError as e:
            raise MergerError.from_os_error(e, f"Opening {self.name}") from e

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "data.bin") -> 'SizedSource':
        """Wrap an in-memory byte string."""
        payload = bytes(data)
        return cls(name=name, size=len(payload), opener=lambda: io.BytesIO(payload))

    @classmethod
    def from_path(cls, path: str) -> 'SizedSource':
        """
        Wrap a file on disk, validating that it can be read.

        Raises:
            MergerError: NOT_FOUND when the path does not exist, UNREADABLE
                         for directories or files that cannot be opened.
        """
        file_path = Path(path)
        try:
            stat = file_path.stat()
        except OSError as e:
            raise MergerError.from_os_error(e, f"Accessing {path}") from e

        if file_path.is_dir():
            raise MergerError(ErrorKind.UNREADABLE, f"Cannot process a directory: {path}", {'path': str(path)})

        try:
            with file_path.open('rb'):
                pass
        except OSError as e:
            raise MergerError.from_os_error(e, f"Opening {path}") from e

        return cls(
            name=file_path.name,
            size=stat.st_size,
            opener=lambda: file_path.open('rb'),
            location=str(file_path),
        )


# ============================================================================
# Pending Outputs
# ============================================================================

class PendingOutput(ABC):
    """An output being written; becomes visible only after commit()."""

    def __init__(self, name: str):
        self.name = name
        self.committed = False
        self.discarded = False

    @property
    @abstractmethod
    def stream(self) -> BinaryIO:
        """Writable binary stream for the output's content."""

    @abstractmethod
    def commit(self) -> str:
        """Publish the output and return its final location."""

    @abstractmethod
    def discard(self) -> None:
        """Drop everything written so far; never raises."""

    def __enter__(self) -> 'PendingOutput':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.committed:
            self.discard()


class _TempFileOutput(PendingOutput):
    """Writes to a hidden temporary file in the target directory."""

    def __init__(self, name: str, final_path: Path, overwrite: bool):
        super().__init__(name)
        self.final_path = final_path
        self.overwrite = overwrite
        fd, temp_name = tempfile.mkstemp(prefix=".merge_", suffix=".tmp", dir=str(final_path.parent))
        self.temp_path = Path(temp_name)
        self._stream = os.fdopen(fd, 'w+b')

    @property
    def stream(self) -> BinaryIO:
        return self._stream

    def commit(self) -> str:
        if self.committed:
            return str(self.final_path)
        if self.final_path.exists() and not self.overwrite:
            self.discard()
            raise MergerError(
                ErrorKind.OUTPUT_EXISTS,
                f"Output already exists: {self.final_path}",
                {'path': str(self.final_path)},
            )
        try:
            self._stream.flush()
            os.fsync(self._stream.fileno())
            self._stream.close()
            os.replace(self.temp_path, self.final_path)
        except OSError as e:
            self.discard()
            raise MergerError.from_os_error(e, f"Saving {self.final_path}") from e
        self.committed = True
        logger.debug(f"Committed output {self.final_path}")
        return str(self.final_path)

    def discard(self) -> None:
        if self.committed or self.discarded:
            return
        self.discarded = True
        try:
            self._stream.close()
        except OSError as e:
            logger.warning(f"Closing temporary output {self.temp_path} failed: {e}")
        try:
            self.temp_path.unlink()
            logger.debug(f"Discarded temporary output {self.temp_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Could not delete temporary output {self.temp_path}: {e}")


# ============================================================================
# Storage Backend Interface
# ============================================================================

class IStorageBackend(ABC):
    """Abstract interface for the storage collaborator."""

    @abstractmethod
    def open_read(self, identifier: str) -> SizedSource:
        """Open an input for reading."""
        pass

    @abstractmethod
    def create_write(self, name: str) -> PendingOutput:
        """Create a pending output called `name`."""
        pass

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Whether an output called `name` already exists."""
        pass

    def basename(self, identifier: str) -> str:
        return Path(identifier).name

    def size(self, identifier: str) -> int:
        return self.open_read(identifier).size


class LocalFileStorage(IStorageBackend):
    """
    Local filesystem storage.

    Inputs are read from arbitrary paths; outputs are created inside
    `output_dir` through temporary files that are renamed into place on
    commit.
    """

    def __init__(self, output_dir: str = ".", overwrite: bool = False):
        """
        Initialize local filesystem storage.

        Args:
            output_dir: Directory receiving committed outputs (created on demand)
            overwrite: Replace existing outputs instead of failing OUTPUT_EXISTS
        """
        self._output_dir = Path(output_dir)
        self._overwrite = overwrite
        self._lock = threading.Lock()

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def open_read(self, identifier: str) -> SizedSource:
        return SizedSource.from_path(identifier)

    def output_path(self, name: str) -> Path:
        return self._output_dir / name

    def exists(self, name: str) -> bool:
        return self.output_path(name).exists()

    def create_write(self, name: str) -> PendingOutput:
        with self._lock:
            try:
                self._output_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise MergerError.from_os_error(e, f"Creating output directory {self._output_dir}") from e

            final_path = self.output_path(name)
            if final_path.exists() and not self._overwrite:
                raise MergerError(
                    ErrorKind.OUTPUT_EXISTS,
                    f"Output already exists: {final_path}",
                    {'path': str(final_path)},
                )
            try:
                return _TempFileOutput(name, final_path, self._overwrite)
            except OSError as e:
                raise MergerError.from_os_error(e, f"Creating {final_path}") from e
