# Merger Core Module
# MERGEDv3 container toolkit: hide a file inside a carrier file and recover it
#
# This package provides the main interfaces for:
# - The MERGEDv3 wire format (format)
# - Encoding, decoding and detecting containers (codec)
# - Bounded-memory stream copying with progress and cancellation (transfer)
# - Attachment name sanitisation (sanitizer)
# - Memory vs streaming strategy selection (strategy)
# - File-level merge/split with atomic output handling (processor)
#
# Version: 3.0.0

from .codec import ContainerSummary, FormatCodec
from .config import MergerConfig
from .diagnostics import CollectingDiagnostics, DebugInfo, LoggingDiagnostics
from .errors import ErrorKind, MergerError, OperationResult, OutputDescriptor, OutputRole
from .format import MAGIC, MIN_CONTAINER_SIZE, Trailer
from .processor import MergedFileProcessor
from .sanitizer import FilenameSanitizer, NamePolicy
from .storage import IStorageBackend, LocalFileStorage, PendingOutput, SizedSource
from .strategy import ProcessingStrategy, select_strategy
from .transfer import CancellationToken, ProgressEvent, StreamingTransfer

__all__ = [
    # Codec
    'FormatCodec',
    'ContainerSummary',
    'Trailer',
    'MAGIC',
    'MIN_CONTAINER_SIZE',
    # Results and errors
    'ErrorKind',
    'MergerError',
    'OperationResult',
    'OutputDescriptor',
    'OutputRole',
    # Building blocks
    'FilenameSanitizer',
    'NamePolicy',
    'StreamingTransfer',
    'CancellationToken',
    'ProgressEvent',
    'ProcessingStrategy',
    'select_strategy',
    # Storage and files
    'SizedSource',
    'IStorageBackend',
    'LocalFileStorage',
    'PendingOutput',
    'MergedFileProcessor',
    # Configuration and diagnostics
    'MergerConfig',
    'DebugInfo',
    'LoggingDiagnostics',
    'CollectingDiagnostics',
]

__version__ = "3.0.0"
