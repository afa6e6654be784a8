"""
Bounded-memory stream copying.

StreamingTransfer moves an exact number of bytes from a readable stream to a
writable stream through one reusable buffer, so memory use stays at the
buffer size no matter how large the payload is. Both encode strategies and
the streaming decode go through it.

Cancellation is cooperative: the token is checked before every buffer fill
and a cancelled copy raises MergerError(CANCELLED). Whoever owns the sink is
responsible for discarding what was already written.
"""

import logging
import threading
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional

from .errors import ErrorKind, MergerError

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 1024 * 1024  # 1 MiB


@dataclass(frozen=True)
class ProgressEvent:
    """
    A progress notification delivered to the invocation layer.

    Attributes:
        fraction: Overall completion in [0.0, 1.0]
        phase: Short label of the current step
        bytes_done: Cumulative bytes processed so far
    """

    fraction: float
    phase: str
    bytes_done: int


ProgressCallback = Callable[[ProgressEvent], None]


class CancellationToken:
    """Thread-safe cancellation flag shared between a caller and an operation."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise MergerError(ErrorKind.CANCELLED, "Operation cancelled by caller")


class StreamingTransfer:
    """
    Copies streams of known length through a fixed-size buffer.

    Example:
        >>> transfer = StreamingTransfer(buffer_size=64 * 1024)
        >>> with open("video.mp4", "rb") as src, open("out.bin", "wb") as dst:
        ...     transfer.copy(src, dst, os.path.getsize("video.mp4"))
    """

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE):
        if buffer_size <= 0:
            raise MergerError(
                ErrorKind.CONFIG_INVALID,
                f"Buffer size must be positive: {buffer_size}",
            )
        self.buffer_size = buffer_size

    def copy(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        length: int,
        on_progress: Optional[Callable[[int], None]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> int:
        """
        Copy exactly `length` bytes from `source` to `sink`.

        Args:
            source: Readable binary stream positioned at the first byte to copy.
            sink: Writable binary stream.
            length: Number of bytes to copy.
            on_progress: Called with the cumulative byte count after each fill.
            cancel_token: Checked before each buffer fill.

        Returns:
            Number of bytes copied (always `length`).

        Raises:
            MergerError: CANCELLED when the token fires, IO_FAILURE when the
                         source ends early or a read/write fails.
        """
        buffer = bytearray(min(self.buffer_size, max(length, 1)))
        view = memoryview(buffer)
        copied = 0

        while copied < length:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            wanted = min(len(buffer), length - copied)
            try:
                read = source.readinto(view[:wanted])
            except OSError as e:
                raise MergerError.from_os_error(e, "Read") from e

            if not read:
                raise MergerError(
                    ErrorKind.IO_FAILURE,
                    f"Unexpected end of stream after {copied} of {length} bytes",
                    {'copied': copied, 'expected': length},
                )

            try:
                sink.write(view[:read])
            except OSError as e:
                raise MergerError.from_os_error(e, "Write") from e

            copied += read
            if on_progress is not None:
                on_progress(copied)

        logger.debug(f"Transferred {copied} bytes with a {len(buffer)} byte buffer")
        return copied

    def read_exact(self, source: BinaryIO, length: int) -> bytes:
        """Read exactly `length` bytes, raising IO_FAILURE on a short read."""
        try:
            data = source.read(length)
        except OSError as e:
            raise MergerError.from_os_error(e, "Read") from e
        if len(data) != length:
            raise MergerError(
                ErrorKind.IO_FAILURE,
                f"Short read: expected {length} bytes, got {len(data)}",
                {'copied': len(data), 'expected': length},
            )
        return data
