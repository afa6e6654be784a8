#!/usr/bin/env python3
"""
MERGEDv3 Format Codec

This module implements the three operations of the container format:
encode (merge a carrier and an attachment), decode (split a container back
into both components) and detect (cheap advisory magic check).

================================================================================
MODULE ARCHITECTURE
================================================================================

1. Result Types:
   - ContainerSummary: what encode produced
   - _ProgressReporter: clamps and forwards ProgressEvent notifications

2. FormatCodec:
   - encode(): memory or streaming assembly of carrier + attachment + trailer
   - decode(): fixed-offset trailer parsing, validation, extraction
   - inspect(): trailer parsing and validation only
   - detect(): trailing magic comparison, never raises

================================================================================
DECODE VALIDATION ORDER
================================================================================

Given a container of total size S:

    1. bytes[S-8, S) must equal MAGIC                   -> FORMAT_MISMATCH
    2. attachment size = uint64 LE bytes[S-16, S-8)
    3. carrier size = uint64 LE bytes[S-24, S-16)
    4. both sizes > 0 and their sum < S                 -> SIZE_INVALID
    5. metadata start = carrier size + attachment size
    6. name length in [1, 255]                          -> NAME_LENGTH_INVALID
    7. name is valid UTF-8                              -> ENCODING_INVALID
    8. V + A + 4 + L + 24 == S                          -> STRUCTURE_MISMATCH
    9. name has no separators or control characters     -> ENCODING_INVALID

Only fixed-size reads at computed offsets are performed, so locating the
metadata costs the same for a 200 byte container and a 200 GB one.

Author: Merger Development Team
Version: 3.0.0
"""

import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional, Tuple

from .diagnostics import DebugInfo, DiagnosticsSink, null_diagnostics
from .errors import ErrorKind, MergerError, OperationResult, OutputDescriptor, OutputRole
from .format import (
    FIXED_TAIL_LENGTH,
    MAGIC,
    MAGIC_LENGTH,
    MAX_NAME_LENGTH,
    MAX_UINT64,
    MIN_CONTAINER_SIZE,
    MIN_NAME_LENGTH,
    NAME_LENGTH_SIZE,
    SIZE_FIELD_LENGTH,
    Trailer,
    container_size,
    format_file_size,
    unpack_name_length,
    unpack_size,
)
from .naming import carrier_output_name, merged_output_name
from .sanitizer import FilenameSanitizer, NamePolicy, contains_unsafe_characters
from .storage import SizedSource
from .strategy import (
    DEFAULT_MEMORY_HEADROOM,
    DEFAULT_STREAMING_THRESHOLD,
    ProcessingStrategy,
    select_strategy,
)
from .transfer import (
    DEFAULT_BUFFER_SIZE,
    CancellationToken,
    ProgressCallback,
    ProgressEvent,
    StreamingTransfer,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SECTION 1: RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class ContainerSummary:
    """
    Description of a container produced by encode.

    Attributes:
        carrier_size: Bytes of carrier data at the start of the container
        attachment_size: Bytes of attachment data following the carrier
        name: Sanitized attachment name stored in the trailer
        name_length: UTF-8 length of `name`
        trailer_size: Bytes of metadata after the attachment
        total_size: Total container size
        strategy: Strategy that produced the container
    """

    carrier_size: int
    attachment_size: int
    name: str
    name_length: int
    trailer_size: int
    total_size: int
    strategy: ProcessingStrategy


class _ProgressReporter:
    """Turns raw progress into ProgressEvent calls, clamped to [0, 1]."""

    def __init__(self, callback: Optional[ProgressCallback]):
        self._callback = callback

    def __call__(self, fraction: float, phase: str, bytes_done: int) -> None:
        if self._callback is None:
            return
        self._callback(ProgressEvent(min(max(fraction, 0.0), 1.0), phase, bytes_done))

    def span(self, start: float, width: float, total: int, phase: str, offset: int = 0):
        """Callback for StreamingTransfer mapping copied bytes into [start, start+width]."""
        def on_progress(copied: int) -> None:
            share = copied / total if total else 1.0
            self(start + share * width, phase, offset + copied)
        return on_progress


# =============================================================================
# SECTION 2: FORMAT CODEC
# =============================================================================

class FormatCodec:
    """
    Encoder, decoder and detector for MERGEDv3 containers.

    The codec is stateless between calls: every operation is a function of
    its arguments, so one instance may serve concurrent operations on
    distinct containers.

    Example:
        >>> codec = FormatCodec()
        >>> sink = io.BytesIO()
        >>> result = codec.encode(
        ...     SizedSource.from_bytes(b"\\xaa" * 100, "video.mp4"),
        ...     SizedSource.from_bytes(b"\\xbb" * 50),
        ...     "secret.txt",
        ...     sink,
        ... )
        >>> result.summary.total_size
        188
        >>> codec.detect(SizedSource.from_bytes(sink.getvalue()))
        True
    """

    def __init__(
        self,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        streaming_threshold: int = DEFAULT_STREAMING_THRESHOLD,
        memory_headroom: float = DEFAULT_MEMORY_HEADROOM,
        sanitizer: Optional[FilenameSanitizer] = None,
    ):
        self.transfer = StreamingTransfer(buffer_size)
        self.streaming_threshold = streaming_threshold
        self.memory_headroom = memory_headroom
        self.sanitizer = sanitizer or FilenameSanitizer()

    def _select(self, total_size: int, preference: ProcessingStrategy) -> ProcessingStrategy:
        return select_strategy(
            total_size,
            preference,
            threshold=self.streaming_threshold,
            headroom=self.memory_headroom,
        )

    # -------------------------------------------------------------------------
    # Encode
    # -------------------------------------------------------------------------

    def encode(
        self,
        carrier: SizedSource,
        attachment: SizedSource,
        attachment_name: str,
        sink: BinaryIO,
        progress: Optional[ProgressCallback] = None,
        strategy: ProcessingStrategy = ProcessingStrategy.AUTO,
        cancel_token: Optional[CancellationToken] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
        name_policy: NamePolicy = NamePolicy.STRICT,
    ) -> OperationResult:
        """
        Merge `carrier` and `attachment` into a container written to `sink`.

        Nothing is written before the sizes and the name have been validated.
        If the operation fails after writing started and `sink` is seekable,
        the sink is truncated back to where it started.

        Args:
            carrier: Outer file, copied verbatim to the start of the container.
            attachment: Hidden payload, copied verbatim after the carrier.
            attachment_name: Name to store in the trailer (sanitized first).
            sink: Writable binary stream receiving the container.
            progress: Receives ProgressEvent notifications (0.0 first, 1.0 last).
            strategy: MEMORY, STREAMING or AUTO.
            cancel_token: Cooperative cancellation flag.
            diagnostics: Receives verbose step-by-step lines.
            name_policy: STRICT fails on empty/over-long names, LENIENT
                         substitutes the fallback name and truncates.

        Returns:
            OperationResult with `summary` set to a ContainerSummary on success.
        """
        diag = diagnostics or null_diagnostics
        report = _ProgressReporter(progress)
        sink_start = _tell(sink)
        written = False

        try:
            self._validate_component(carrier, "Carrier")
            self._validate_component(attachment, "Attachment")

            name = self.sanitizer.sanitize(attachment_name, name_policy)
            trailer = Trailer(name.encode('utf-8'), carrier.size, attachment.size)
            total = trailer.container_size
            chosen = self._select(carrier.size + attachment.size, strategy)

            diag(f"Encoding with {chosen.value} strategy")
            diag(f"  carrier: {carrier.size} bytes")
            diag(f"  attachment: {attachment.size} bytes")
            diag(f"  name: {attachment_name!r} -> {name!r} ({trailer.name_length} bytes)")
            diag(f"  trailer: {trailer.size} bytes")
            diag(f"  total: {total} bytes")

            report(0.0, "Starting merge", 0)
            written = True
            if chosen is ProcessingStrategy.MEMORY:
                self._encode_memory(carrier, attachment, trailer, sink, report, cancel_token)
            else:
                self._encode_streaming(carrier, attachment, trailer, sink, report, cancel_token)
            _flush(sink)

            report(1.0, "Merge complete", total)
            diag("Container written successfully")
            logger.info(f"Encoded container of {total} bytes ({chosen.value}), attachment {name!r}")

            summary = ContainerSummary(
                carrier_size=carrier.size,
                attachment_size=attachment.size,
                name=name,
                name_length=trailer.name_length,
                trailer_size=trailer.size,
                total_size=total,
                strategy=chosen,
            )
            return OperationResult(
                success=True,
                message=f"Merged {format_file_size(total)} container with attachment {name!r}",
                outputs=[OutputDescriptor(name=merged_output_name(carrier.name), size=total, role=OutputRole.CONTAINER)],
                summary=summary,
            )

        except MergerError as e:
            if written:
                _rollback(sink, sink_start)
            diag(f"Encode failed: {e.message}")
            logger.error(f"Encode failed: {e}")
            return OperationResult.failure(e)
        except OSError as e:
            if written:
                _rollback(sink, sink_start)
            error = MergerError.from_os_error(e, "Encode")
            diag(f"Encode failed: {error.message}")
            logger.error(f"Encode failed: {error}")
            return OperationResult.failure(error)

    def _validate_component(self, source: SizedSource, label: str) -> None:
        if source.size <= 0:
            raise MergerError(
                ErrorKind.SIZE_INVALID,
                f"{label} is empty: {source.name}",
                {'size': source.size},
            )
        if source.size > MAX_UINT64:
            raise MergerError(
                ErrorKind.SIZE_INVALID,
                f"{label} exceeds the 64-bit size limit: {source.name}",
                {'size': source.size},
            )

    def _encode_memory(
        self,
        carrier: SizedSource,
        attachment: SizedSource,
        trailer: Trailer,
        sink: BinaryIO,
        report: _ProgressReporter,
        cancel_token: Optional[CancellationToken],
    ) -> None:
        """Assemble the whole container in memory, then write it in one call."""
        buffer = bytearray()

        report(0.1, "Reading carrier", 0)
        with carrier.open() as src:
            buffer += self.transfer.read_exact(src, carrier.size)
        _check(cancel_token)

        report(0.4, "Reading attachment", carrier.size)
        with attachment.open() as src:
            buffer += self.transfer.read_exact(src, attachment.size)
        _check(cancel_token)

        report(0.7, "Building trailer", carrier.size + attachment.size)
        buffer += trailer.to_bytes()

        report(0.9, "Writing container", len(buffer))
        sink.write(buffer)

    def _encode_streaming(
        self,
        carrier: SizedSource,
        attachment: SizedSource,
        trailer: Trailer,
        sink: BinaryIO,
        report: _ProgressReporter,
        cancel_token: Optional[CancellationToken],
    ) -> None:
        """Copy each component straight into the sink through the transfer buffer."""
        total = trailer.container_size
        carrier_share = carrier.size / total
        attachment_share = attachment.size / total

        with carrier.open() as src:
            self.transfer.copy(
                src, sink, carrier.size,
                on_progress=report.span(0.0, carrier_share, carrier.size, "Copying carrier"),
                cancel_token=cancel_token,
            )

        with attachment.open() as src:
            self.transfer.copy(
                src, sink, attachment.size,
                on_progress=report.span(
                    carrier_share, attachment_share, attachment.size,
                    "Copying attachment", offset=carrier.size,
                ),
                cancel_token=cancel_token,
            )

        _check(cancel_token)
        report(carrier_share + attachment_share, "Writing trailer", carrier.size + attachment.size)
        sink.write(trailer.to_bytes())

    # -------------------------------------------------------------------------
    # Decode
    # -------------------------------------------------------------------------

    def decode(
        self,
        container: SizedSource,
        carrier_sink: Optional[BinaryIO] = None,
        attachment_sink: Optional[BinaryIO] = None,
        progress: Optional[ProgressCallback] = None,
        strategy: ProcessingStrategy = ProcessingStrategy.AUTO,
        cancel_token: Optional[CancellationToken] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
        carrier_name: Optional[str] = None,
    ) -> OperationResult:
        """
        Split a container into its carrier and attachment.

        When both sinks are given the components are written to them; when
        they are omitted the components are returned in `carrier_data` and
        `attachment_data` of the result.

        Args:
            container: Seekable container source of known size.
            carrier_sink: Receives the carrier bytes.
            attachment_sink: Receives the attachment bytes.
            progress: Receives ProgressEvent notifications.
            strategy: MEMORY reads the payload region in one call, STREAMING
                      copies it through the transfer buffer.
            cancel_token: Cooperative cancellation flag.
            diagnostics: Receives verbose step-by-step lines.
            carrier_name: Name for the carrier descriptor; derived from the
                          container name when omitted.

        Returns:
            OperationResult with a carrier and an attachment OutputDescriptor
            and the DebugInfo gathered while parsing.
        """
        diag = diagnostics or null_diagnostics
        report = _ProgressReporter(progress)
        debug = DebugInfo(file_size=container.size)
        in_memory = carrier_sink is None or attachment_sink is None
        carrier_out = io.BytesIO() if carrier_sink is None else carrier_sink
        attachment_out = io.BytesIO() if attachment_sink is None else attachment_sink
        starts = (_tell(carrier_out), _tell(attachment_out))

        try:
            report(0.0, "Validating container", 0)
            with container.open() as stream:
                trailer, name = self._read_trailer(stream, container.size, debug, diag)
                payload = trailer.carrier_size + trailer.attachment_size
                chosen = self._select(payload, strategy)
                diag(f"Extracting with {chosen.value} strategy")

                stream.seek(0)
                if chosen is ProcessingStrategy.MEMORY:
                    self._decode_memory(stream, trailer, carrier_out, attachment_out, report, cancel_token)
                else:
                    self._decode_streaming(stream, trailer, carrier_out, attachment_out, report, cancel_token)
            _flush(carrier_out)
            _flush(attachment_out)

            report(1.0, "Split complete", payload)
            diag("Container split successfully")
            logger.info(
                f"Decoded container of {container.size} bytes: carrier {trailer.carrier_size} bytes, "
                f"attachment {name!r} {trailer.attachment_size} bytes"
            )

            outputs = [
                OutputDescriptor(
                    name=carrier_name or carrier_output_name(container.name),
                    size=trailer.carrier_size,
                    role=OutputRole.CARRIER,
                ),
                OutputDescriptor(name=name, size=trailer.attachment_size, role=OutputRole.ATTACHMENT),
            ]
            result = OperationResult(
                success=True,
                message=f"Recovered carrier ({format_file_size(trailer.carrier_size)}) "
                        f"and attachment {name!r} ({format_file_size(trailer.attachment_size)})",
                outputs=outputs,
                debug_info=debug,
            )
            if in_memory:
                result.carrier_data = carrier_out.getvalue() if carrier_sink is None else None
                result.attachment_data = attachment_out.getvalue() if attachment_sink is None else None
            return result

        except MergerError as e:
            _rollback(carrier_out, starts[0])
            _rollback(attachment_out, starts[1])
            if debug.validation_error is None:
                debug.validation_error = e.message
            diag(f"Decode failed: {e.message}")
            logger.error(f"Decode failed: {e}")
            return OperationResult.failure(e, debug_info=debug)
        except OSError as e:
            _rollback(carrier_out, starts[0])
            _rollback(attachment_out, starts[1])
            error = MergerError.from_os_error(e, "Decode")
            debug.validation_error = error.message
            diag(f"Decode failed: {error.message}")
            logger.error(f"Decode failed: {error}")
            return OperationResult.failure(error, debug_info=debug)

    def parse(
        self,
        container: SizedSource,
        diagnostics: Optional[DiagnosticsSink] = None,
    ) -> Tuple[Trailer, str, DebugInfo]:
        """
        Parse and validate the trailer of `container`.

        Returns:
            Tuple of (trailer, attachment name, debug info).

        Raises:
            MergerError: The first failed validation step.
        """
        debug = DebugInfo(file_size=container.size)
        try:
            with container.open() as stream:
                trailer, name = self._read_trailer(stream, container.size, debug, diagnostics or null_diagnostics)
        except OSError as e:
            raise MergerError.from_os_error(e, f"Reading {container.name}") from e
        return trailer, name, debug

    def inspect(self, container: SizedSource, diagnostics: Optional[DiagnosticsSink] = None) -> DebugInfo:
        """
        Parse and validate the trailer without extracting anything.

        Returns:
            DebugInfo; `validation_error` is None when the container is valid.
        """
        debug = DebugInfo(file_size=container.size)
        try:
            with container.open() as stream:
                self._read_trailer(stream, container.size, debug, diagnostics or null_diagnostics)
        except MergerError as e:
            debug.validation_error = e.message
        except OSError as e:
            debug.validation_error = f"Read failed: {e}"
        return debug

    def _read_trailer(
        self,
        stream: BinaryIO,
        size: int,
        debug: DebugInfo,
        diag: DiagnosticsSink,
    ) -> Tuple[Trailer, str]:
        """Locate, parse and validate the trailer using fixed offsets only."""
        diag(f"Container size: {size} bytes")

        # 1. magic
        if size < MAGIC_LENGTH:
            raise self._invalid(debug, ErrorKind.FORMAT_MISMATCH, f"File too small to be a container: {size} bytes")
        magic_pos = size - MAGIC_LENGTH
        debug.positions['magic'] = magic_pos
        debug.magic = _read_at(stream, magic_pos, MAGIC_LENGTH)
        diag(f"Magic bytes at {magic_pos}: {debug.magic!r}")
        if debug.magic != MAGIC:
            raise self._invalid(
                debug, ErrorKind.FORMAT_MISMATCH,
                f"Not a MERGEDv3 container: expected magic {MAGIC!r}, found {debug.magic!r}",
            )
        if size < FIXED_TAIL_LENGTH:
            raise self._invalid(
                debug, ErrorKind.STRUCTURE_MISMATCH,
                f"Container truncated: {size} bytes cannot hold the size fields",
            )

        # 2-3. sizes
        attachment_pos = magic_pos - SIZE_FIELD_LENGTH
        carrier_pos = attachment_pos - SIZE_FIELD_LENGTH
        debug.positions['attachment_size'] = attachment_pos
        debug.positions['carrier_size'] = carrier_pos
        attachment_size = unpack_size(_read_at(stream, attachment_pos, SIZE_FIELD_LENGTH))
        carrier_size = unpack_size(_read_at(stream, carrier_pos, SIZE_FIELD_LENGTH))
        debug.attachment_size = attachment_size
        debug.carrier_size = carrier_size
        diag(f"Attachment size: {attachment_size} bytes")
        diag(f"Carrier size: {carrier_size} bytes")

        # 4. size sanity
        if carrier_size == 0 or attachment_size == 0:
            raise self._invalid(
                debug, ErrorKind.SIZE_INVALID,
                f"Invalid component size: carrier={carrier_size}, attachment={attachment_size}",
            )
        if carrier_size + attachment_size >= size:
            raise self._invalid(
                debug, ErrorKind.SIZE_INVALID,
                f"Component sizes exceed the file size: {carrier_size} + {attachment_size} >= {size}",
            )

        # 5-6. name length
        metadata_start = carrier_size + attachment_size
        debug.positions['name_length'] = metadata_start
        length_bytes = _read_at(stream, metadata_start, NAME_LENGTH_SIZE)
        if len(length_bytes) != NAME_LENGTH_SIZE:
            raise self._invalid(
                debug, ErrorKind.STRUCTURE_MISMATCH,
                f"Name length field at {metadata_start} runs past the end of the file",
            )
        name_length = unpack_name_length(length_bytes)
        debug.name_length = name_length
        diag(f"Name length at {metadata_start}: {name_length}")
        if not MIN_NAME_LENGTH <= name_length <= MAX_NAME_LENGTH:
            raise self._invalid(debug, ErrorKind.NAME_LENGTH_INVALID, f"Invalid name length: {name_length}")

        # 7. name
        name_pos = metadata_start + NAME_LENGTH_SIZE
        debug.positions['name'] = name_pos
        name_bytes = _read_at(stream, name_pos, name_length)
        if len(name_bytes) != name_length:
            raise self._invalid(
                debug, ErrorKind.STRUCTURE_MISMATCH,
                f"Name at {name_pos} runs past the end of the file",
            )
        try:
            name = name_bytes.decode('utf-8')
        except UnicodeDecodeError:
            raise self._invalid(debug, ErrorKind.ENCODING_INVALID, "Attachment name is not valid UTF-8") from None
        debug.name = name
        diag(f"Name: {name!r}")

        # 8. global structure
        expected = container_size(carrier_size, attachment_size, name_length)
        if expected != size:
            raise self._invalid(
                debug, ErrorKind.STRUCTURE_MISMATCH,
                f"Structure validation failed: expected {expected} bytes, actual {size} bytes",
            )

        # 9. name safety
        if contains_unsafe_characters(name):
            raise self._invalid(
                debug, ErrorKind.ENCODING_INVALID,
                f"Attachment name contains path separators or control characters: {name!r}",
            )

        diag("Structure validation passed")
        return Trailer(name_bytes, carrier_size, attachment_size), name

    @staticmethod
    def _invalid(debug: DebugInfo, kind: ErrorKind, message: str) -> MergerError:
        debug.validation_error = message
        return MergerError(kind, message, {'file_size': debug.file_size})

    def _decode_memory(
        self,
        stream: BinaryIO,
        trailer: Trailer,
        carrier_sink: BinaryIO,
        attachment_sink: BinaryIO,
        report: _ProgressReporter,
        cancel_token: Optional[CancellationToken],
    ) -> None:
        payload = trailer.carrier_size + trailer.attachment_size

        report(0.2, "Reading container", 0)
        data = self.transfer.read_exact(stream, payload)
        _check(cancel_token)

        view = memoryview(data)
        report(0.5, "Extracting carrier", 0)
        carrier_sink.write(view[:trailer.carrier_size])
        _check(cancel_token)

        report(0.7, "Extracting attachment", trailer.carrier_size)
        attachment_sink.write(view[trailer.carrier_size:])

    def _decode_streaming(
        self,
        stream: BinaryIO,
        trailer: Trailer,
        carrier_sink: BinaryIO,
        attachment_sink: BinaryIO,
        report: _ProgressReporter,
        cancel_token: Optional[CancellationToken],
    ) -> None:
        payload = trailer.carrier_size + trailer.attachment_size
        carrier_share = trailer.carrier_size / payload

        self.transfer.copy(
            stream, carrier_sink, trailer.carrier_size,
            on_progress=report.span(0.0, carrier_share, trailer.carrier_size, "Extracting carrier"),
            cancel_token=cancel_token,
        )
        self.transfer.copy(
            stream, attachment_sink, trailer.attachment_size,
            on_progress=report.span(
                carrier_share, 1.0 - carrier_share, trailer.attachment_size,
                "Extracting attachment", offset=trailer.carrier_size,
            ),
            cancel_token=cancel_token,
        )

    # -------------------------------------------------------------------------
    # Detect
    # -------------------------------------------------------------------------

    def detect(self, container: SizedSource, diagnostics: Optional[DiagnosticsSink] = None) -> bool:
        """
        Advisory check: does `container` end with the MERGEDv3 magic?

        Only the final 8 bytes are read. Files below the minimum container
        size, unreadable files and any other error all answer False.
        """
        diag = diagnostics or null_diagnostics
        try:
            if container.size < MIN_CONTAINER_SIZE:
                diag(f"File too small for a container: {container.size} bytes")
                return False
            with container.open() as stream:
                magic = _read_at(stream, container.size - MAGIC_LENGTH, MAGIC_LENGTH)
        except (MergerError, OSError) as e:
            diag(f"Detection failed: {e}")
            logger.debug(f"Detection of {container.name} failed: {e}")
            return False

        found = magic == MAGIC
        diag(f"Magic bytes: {magic!r} -> {'container' if found else 'ordinary file'}")
        return found


# =============================================================================
# SECTION 3: STREAM HELPERS
# =============================================================================

def _read_at(stream: BinaryIO, offset: int, length: int) -> bytes:
    """Read up to `length` bytes at absolute `offset` (short at end of file)."""
    stream.seek(offset)
    return stream.read(length)


def _check(cancel_token: Optional[CancellationToken]) -> None:
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()


def _tell(stream: BinaryIO) -> Optional[int]:
    try:
        if stream.seekable():
            return stream.tell()
    except (AttributeError, OSError):
        return None
    return None


def _flush(stream: BinaryIO) -> None:
    flush = getattr(stream, 'flush', None)
    if flush is not None:
        flush()


def _rollback(stream: BinaryIO, start: Optional[int]) -> None:
    """Truncate a seekable sink back to `start`, discarding a partial write."""
    if start is None:
        return
    try:
        stream.seek(start)
        stream.truncate()
    except (OSError, ValueError) as e:
        logger.warning(f"Could not discard partial output: {e}")
