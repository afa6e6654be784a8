"""
Per-call diagnostics.

Verbose tracing of a codec call goes to a diagnostics sink handed to that
call, never to process-wide state. A sink is any callable accepting one
string; LoggingDiagnostics forwards to a logger at DEBUG level and
CollectingDiagnostics keeps the lines in memory (useful for the CLI
``--dev`` mode and for tests).
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .format import format_file_size

DiagnosticsSink = Callable[[str], None]


def null_diagnostics(message: str) -> None:
    """Sink that drops every message."""


class LoggingDiagnostics:
    """Forwards diagnostics lines to a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.DEBUG):
        self.logger = logger or logging.getLogger("merger.diagnostics")
        self.level = level

    def __call__(self, message: str) -> None:
        self.logger.log(self.level, message)


class CollectingDiagnostics:
    """Keeps every diagnostics line in `lines`."""

    def __init__(self):
        self.lines: List[str] = []

    def __call__(self, message: str) -> None:
        self.lines.append(message)


@dataclass
class DebugInfo:
    """
    What decode learned about a container, successful or not.

    Attributes:
        file_size: Total size of the inspected file
        magic: The trailing 8 bytes as read
        carrier_size: Parsed carrier size field
        attachment_size: Parsed attachment size field
        name_length: Parsed name length field
        name: Decoded attachment name
        positions: Absolute offset of each field that was read
        validation_error: Message of the first failed check, if any
    """

    file_size: int
    magic: bytes = b""
    carrier_size: int = 0
    attachment_size: int = 0
    name_length: int = 0
    name: str = ""
    positions: Dict[str, int] = field(default_factory=dict)
    validation_error: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.validation_error is None

    def render(self) -> List[str]:
        """Human readable lines describing the inspected trailer."""
        lines = [
            f"File size: {self.file_size} bytes ({format_file_size(self.file_size)})",
            f"Magic bytes: {self.magic!r}",
        ]
        if self.attachment_size:
            lines.append(f"Attachment size: {self.attachment_size} bytes ({format_file_size(self.attachment_size)})")
        if self.carrier_size:
            lines.append(f"Carrier size: {self.carrier_size} bytes ({format_file_size(self.carrier_size)})")
        if self.name_length:
            lines.append(f"Name length: {self.name_length}")
        if self.name:
            lines.append(f"Name: {self.name!r}")
        for key, position in sorted(self.positions.items(), key=lambda item: item[1]):
            lines.append(f"  {key}: offset {position}")
        if self.validation_error:
            lines.append(f"Validation error: {self.validation_error}")
        return lines
