#!/usr/bin/env python3
"""
Merged File Processor

File-level merge and split operations built on FormatCodec. This is the
layer the CLI and any other front end talk to: it validates input paths,
chooses output names the same way the other MERGEDv3 tools do, writes every
output through a pending temporary file and either commits it atomically or
deletes it, so a failed or cancelled operation never leaves a file behind.

Output naming:
    merge:  movie.mp4          -> movie_merged_v3.mp4
    split:  movie_merged_v3.mp4 -> movie.mp4 + <name stored in the trailer>

Author: Merger Development Team
Version: 3.0.0
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional

from .codec import FormatCodec
from .config import MergerConfig
from .diagnostics import DebugInfo, DiagnosticsSink
from .errors import ErrorKind, MergerError, OperationResult, OutputDescriptor, OutputRole
from .naming import carrier_output_name, merged_output_name
from .sanitizer import FilenameSanitizer, NamePolicy
from .storage import LocalFileStorage, PendingOutput, SizedSource
from .transfer import CancellationToken, ProgressCallback, ProgressEvent

logger = logging.getLogger(__name__)

# Share of the progress range given to the codec; the rest covers saving
_CODEC_PROGRESS_SHARE = 0.95


def _scaled_progress(progress: Optional[ProgressCallback]) -> Optional[ProgressCallback]:
    if progress is None:
        return None

    def forward(event: ProgressEvent) -> None:
        progress(ProgressEvent(event.fraction * _CODEC_PROGRESS_SHARE, event.phase, event.bytes_done))
    return forward


class MergedFileProcessor:
    """
    Merge and split MERGEDv3 containers on the local filesystem.

    Example:
        >>> processor = MergedFileProcessor()
        >>> result = processor.merge_files("movie.mp4", "notes.pdf")
        >>> result.outputs[0].location
        'movie_merged_v3.mp4'
        >>> result = processor.split_file("movie_merged_v3.mp4", "restored")
        >>> [output.name for output in result.outputs]
        ['movie.mp4', 'notes.pdf']
    """

    def __init__(self, config: Optional[MergerConfig] = None):
        self.config = config or MergerConfig.default()
        self.codec = FormatCodec(
            buffer_size=self.config.buffer_size,
            streaming_threshold=self.config.streaming_threshold,
            memory_headroom=self.config.memory_headroom,
        )

    # -------------------------------------------------------------------------
    # Merge
    # -------------------------------------------------------------------------

    def merge_files(
        self,
        carrier_path: str,
        attachment_path: str,
        output_path: Optional[str] = None,
        attachment_name: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
    ) -> OperationResult:
        """
        Hide `attachment_path` inside `carrier_path`.

        Args:
            carrier_path: Carrier file (typically a video).
            attachment_path: File to hide.
            output_path: Container path; defaults to
                         ``<carrier stem>_merged_v3<ext>`` next to the carrier.
            attachment_name: Name stored in the trailer; defaults to the
                             attachment's file name.
            progress: Receives ProgressEvent notifications.
            cancel_token: Cooperative cancellation flag.
            diagnostics: Receives verbose step-by-step lines.

        Returns:
            OperationResult whose single output is the committed container.
        """
        try:
            carrier = SizedSource.from_path(carrier_path)
            attachment = SizedSource.from_path(attachment_path)

            if output_path is None:
                target = Path(carrier_path).parent / merged_output_name(carrier.name, self.config.merged_suffix)
            else:
                target = Path(output_path)
            if target.resolve() in (Path(carrier_path).resolve(), Path(attachment_path).resolve()):
                raise MergerError(
                    ErrorKind.OUTPUT_EXISTS,
                    f"Output would overwrite an input file: {target}",
                    {'path': str(target)},
                )

            storage = LocalFileStorage(str(target.parent), overwrite=self.config.overwrite)
            if attachment_name is not None:
                # Explicit names are rejected, never truncated or replaced
                name, name_policy = attachment_name, NamePolicy.STRICT
            else:
                name, name_policy = attachment.name, self.config.name_policy
            logger.info(f"Merging {carrier.location} + {attachment.location} -> {target}")

            with storage.create_write(target.name) as pending:
                result = self.codec.encode(
                    carrier,
                    attachment,
                    name,
                    pending.stream,
                    progress=_scaled_progress(progress),
                    strategy=self.config.strategy,
                    cancel_token=cancel_token,
                    diagnostics=diagnostics,
                    name_policy=name_policy,
                )
                if not result.success:
                    return result
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                location = pending.commit()

            result.outputs = [
                OutputDescriptor(
                    name=target.name,
                    size=result.summary.total_size,
                    role=OutputRole.CONTAINER,
                    location=location,
                )
            ]
            if progress is not None:
                progress(ProgressEvent(1.0, "Saved", result.summary.total_size))
            return result

        except MergerError as e:
            logger.error(f"Merge failed: {e}")
            return OperationResult.failure(e)
        except OSError as e:
            error = MergerError.from_os_error(e, "Merge")
            logger.error(f"Merge failed: {error}")
            return OperationResult.failure(error)

    # -------------------------------------------------------------------------
    # Split
    # -------------------------------------------------------------------------

    def split_file(
        self,
        container_path: str,
        output_dir: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
    ) -> OperationResult:
        """
        Recover the carrier and the attachment from `container_path`.

        Both outputs are written to `output_dir` (default: the configured
        output directory). Either both are committed or neither is.

        Returns:
            OperationResult with a carrier and an attachment output.
        """
        pending: List[PendingOutput] = []
        committed: List[str] = []
        debug: Optional[DebugInfo] = None
        container: Optional[SizedSource] = None

        try:
            container = SizedSource.from_path(container_path)
            trailer, name, debug = self.codec.parse(container)

            # Leading dots and reserved characters never reach the output directory
            output_name = FilenameSanitizer().sanitize(name)
            if output_name != name:
                logger.warning(f"Stored attachment name {name!r} saved as {output_name!r}")

            carrier_name = carrier_output_name(
                container.name,
                (self.config.merged_suffix, "_merged"),
                self.config.default_video_extension,
            )
            if carrier_name == output_name:
                stem, ext = os.path.splitext(carrier_name)
                carrier_name = f"{stem}_carrier{ext}"

            storage = LocalFileStorage(output_dir or self.config.output_dir, overwrite=self.config.overwrite)
            logger.info(f"Splitting {container.location} into {storage.output_dir}")
            carrier_out = storage.create_write(carrier_name)
            pending.append(carrier_out)
            attachment_out = storage.create_write(output_name)
            pending.append(attachment_out)

            result = self.codec.decode(
                container,
                carrier_sink=carrier_out.stream,
                attachment_sink=attachment_out.stream,
                progress=_scaled_progress(progress),
                strategy=self.config.strategy,
                cancel_token=cancel_token,
                diagnostics=diagnostics,
                carrier_name=carrier_name,
            )
            if not result.success:
                return result
            result.outputs[1].name = output_name
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            for output, descriptor in zip(pending, result.outputs):
                descriptor.location = output.commit()
                committed.append(descriptor.location)

            if progress is not None:
                progress(ProgressEvent(1.0, "Saved", trailer.carrier_size + trailer.attachment_size))
            return result

        except MergerError as e:
            for location in committed:
                _remove_quietly(location)
            if debug is None and container is not None:
                debug = self.codec.inspect(container, diagnostics)
            logger.error(f"Split failed: {e}")
            return OperationResult.failure(e, debug_info=debug)
        except OSError as e:
            for location in committed:
                _remove_quietly(location)
            error = MergerError.from_os_error(e, "Split")
            logger.error(f"Split failed: {error}")
            return OperationResult.failure(error, debug_info=debug)
        finally:
            for output in pending:
                if not output.committed:
                    output.discard()

    # -------------------------------------------------------------------------
    # Detection and inspection
    # -------------------------------------------------------------------------

    def detect_file(self, path: str, diagnostics: Optional[DiagnosticsSink] = None) -> bool:
        """True when `path` looks like a MERGEDv3 container. Never raises."""
        try:
            source = SizedSource.from_path(path)
        except MergerError as e:
            logger.debug(f"Detection of {path} failed: {e}")
            return False
        return self.codec.detect(source, diagnostics)

    def suggest_operation(self, path: str) -> str:
        """``"split"`` for containers, ``"merge"`` for anything else."""
        return "split" if self.detect_file(path) else "merge"

    def inspect_file(self, path: str, diagnostics: Optional[DiagnosticsSink] = None) -> DebugInfo:
        """Trailer details of `path` without extracting anything."""
        try:
            source = SizedSource.from_path(path)
        except MergerError as e:
            return DebugInfo(file_size=0, validation_error=e.message)
        return self.codec.inspect(source, diagnostics)

    # -------------------------------------------------------------------------
    # Async wrappers
    # -------------------------------------------------------------------------

    async def merge_files_async(self, *args, **kwargs) -> OperationResult:
        """merge_files() on a worker thread; progress still fires synchronously there."""
        return await asyncio.to_thread(self.merge_files, *args, **kwargs)

    async def split_file_async(self, *args, **kwargs) -> OperationResult:
        """split_file() on a worker thread."""
        return await asyncio.to_thread(self.split_file, *args, **kwargs)


def _remove_quietly(location: str) -> None:
    try:
        os.remove(location)
        logger.debug(f"Removed partially committed output {location}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Could not remove {location}: {e}")
