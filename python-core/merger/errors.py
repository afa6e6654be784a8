"""
Merger Error Taxonomy and Operation Results.

Every failure inside the merger core is raised as a MergerError carrying an
ErrorKind, a human readable message and an optional details dictionary. The
public operations (FormatCodec, MergedFileProcessor) catch it at their
boundary and hand back an OperationResult instead, so callers always receive
a structured outcome.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(Enum):
    """Failure categories shared by every merger operation."""

    NOT_FOUND = "not_found"
    UNREADABLE = "unreadable"
    NAME_EMPTY = "name_empty"
    NAME_TOO_LONG = "name_too_long"
    FORMAT_MISMATCH = "format_mismatch"
    SIZE_INVALID = "size_invalid"
    NAME_LENGTH_INVALID = "name_length_invalid"
    STRUCTURE_MISMATCH = "structure_mismatch"
    ENCODING_INVALID = "encoding_invalid"
    IO_FAILURE = "io_failure"
    CANCELLED = "cancelled"
    OUTPUT_EXISTS = "output_exists"
    CONFIG_INVALID = "config_invalid"


class MergerError(Exception):
    """Exception raised for container encode/decode errors."""

    def __init__(self, kind: ErrorKind, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"MergerError: {self.message} (Kind: {self.kind.value})"

    @classmethod
    def from_os_error(cls, error: OSError, action: str) -> 'MergerError':
        """Map an OSError raised while performing `action` onto the taxonomy."""
        if isinstance(error, FileNotFoundError):
            kind = ErrorKind.NOT_FOUND
        elif isinstance(error, (PermissionError, IsADirectoryError)):
            kind = ErrorKind.UNREADABLE
        else:
            kind = ErrorKind.IO_FAILURE
        return cls(kind, f"{action} failed: {error}", {'errno': error.errno})


class OutputRole(Enum):
    """Which component of a container an output holds."""

    CARRIER = "carrier"
    ATTACHMENT = "attachment"
    CONTAINER = "container"


@dataclass
class OutputDescriptor:
    """
    Description of one file produced by an operation.

    Attributes:
        name: File name of the output
        size: Size of the output in bytes
        role: Whether the output is the carrier, the attachment or a container
        location: Path or storage identifier, None for in-memory outputs
    """

    name: str
    size: int
    role: OutputRole
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'size': self.size,
            'role': self.role.value,
            'location': self.location,
        }


@dataclass
class OperationResult:
    """
    Terminal result of an encode, decode or file-level operation.

    On success `error` is None and `outputs` lists the produced files. On
    failure `error` names the ErrorKind and `error_detail` carries the
    technical detail (the error details as key=value pairs).

    The optional payload fields are filled depending on the operation:
    `summary` by encode, `carrier_data`/`attachment_data` by an in-memory
    decode and `debug_info` by decode and inspect.
    """

    success: bool
    message: str
    outputs: List[OutputDescriptor] = field(default_factory=list)
    error: Optional[ErrorKind] = None
    error_detail: Optional[str] = None
    summary: Optional[Any] = None
    debug_info: Optional[Any] = None
    carrier_data: Optional[bytes] = field(default=None, repr=False)
    attachment_data: Optional[bytes] = field(default=None, repr=False)

    @classmethod
    def failure(cls, error: MergerError, debug_info: Optional[Any] = None) -> 'OperationResult':
        detail = None
        if error.details:
            detail = ", ".join(f"{key}={value}" for key, value in sorted(error.details.items()))
        return cls(
            success=False,
            message=error.message,
            error=error.kind,
            error_detail=detail,
            debug_info=debug_info,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a JSON-serializable dictionary (payload bytes excluded)."""
        return {
            'success': self.success,
            'message': self.message,
            'outputs': [output.to_dict() for output in self.outputs],
            'error': self.error.value if self.error else None,
            'error_detail': self.error_detail,
        }
