"""
Attachment name sanitisation.

The attachment name travels inside the container trailer, so it must be a
bounded, valid UTF-8 byte string with no directory components or characters
that are illegal on common filesystems. FilenameSanitizer applies the
normalisation steps in a fixed order:

    1. keep only the final path segment (``/`` and ``\\`` both count)
    2. replace control characters and ``< > : " / \\ | ? *`` with ``_``
    3. strip leading dots
    4. fall back to ``unknown_file.bin`` when nothing is left
    5. truncate to 255 UTF-8 bytes without splitting a character

Steps 4 and 5 depend on the NamePolicy. LENIENT (names derived automatically
from file names) applies them; STRICT (names typed by a caller) reports
NAME_EMPTY / NAME_TOO_LONG instead.
"""

import logging
import ntpath
import posixpath
import re
from enum import Enum

from .errors import ErrorKind, MergerError
from .format import MAX_NAME_LENGTH

logger = logging.getLogger(__name__)

FALLBACK_NAME = "unknown_file.bin"

_ILLEGAL_CHARACTERS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_UNSAFE_CHARACTERS = re.compile(r'[/\\\x00-\x1f]')


class NamePolicy(Enum):
    """How the sanitizer reacts to empty or over-long names."""

    STRICT = "strict"
    LENIENT = "lenient"


def truncate_utf8(text: str, max_bytes: int) -> str:
    """
    Cut `text` so that its UTF-8 encoding is at most `max_bytes` long.

    The cut always lands on a character boundary.

    Example:
        >>> truncate_utf8("日本語", 7)
        '日本'
    """
    encoded = text.encode('utf-8')
    if len(encoded) <= max_bytes:
        return text
    # errors='ignore' drops the partial multi-byte sequence at the cut
    return encoded[:max_bytes].decode('utf-8', errors='ignore')


def contains_unsafe_characters(name: str) -> bool:
    """True when `name` holds a path separator or a control character."""
    return _UNSAFE_CHARACTERS.search(name) is not None


class FilenameSanitizer:
    """
    Normalizes arbitrary attachment names into trailer-safe names.

    Example:
        >>> sanitizer = FilenameSanitizer()
        >>> sanitizer.sanitize("../secret:plan?.txt")
        'secret_plan_.txt'
        >>> sanitizer.sanitize("")
        'unknown_file.bin'
    """

    def __init__(self, max_bytes: int = MAX_NAME_LENGTH, fallback: str = FALLBACK_NAME):
        self.max_bytes = max_bytes
        self.fallback = fallback

    def clean(self, name: str) -> str:
        """Apply steps 1-3 (basename, character replacement, leading dots)."""
        stripped = name.rstrip("/\\")
        basename = posixpath.basename(ntpath.basename(stripped))
        replaced = _ILLEGAL_CHARACTERS.sub("_", basename)
        return replaced.lstrip(".")

    def sanitize(self, name: str, policy: NamePolicy = NamePolicy.LENIENT) -> str:
        """
        Sanitize `name` for embedding in a trailer.

        Args:
            name: Caller supplied name, possibly a full path.
            policy: LENIENT substitutes the fallback and truncates, STRICT
                    raises instead.

        Returns:
            The sanitized name, 1-255 UTF-8 bytes long.

        Raises:
            MergerError: NAME_EMPTY or NAME_TOO_LONG under the STRICT policy.
        """
        cleaned = self.clean(name or "")

        if not cleaned:
            if policy is NamePolicy.STRICT:
                raise MergerError(
                    ErrorKind.NAME_EMPTY,
                    "Attachment name is empty after sanitization",
                    {'original': name},
                )
            logger.warning(f"Attachment name {name!r} is empty after sanitization, using {self.fallback!r}")
            cleaned = self.fallback

        encoded_length = len(cleaned.encode('utf-8'))
        if encoded_length > self.max_bytes:
            if policy is NamePolicy.STRICT:
                raise MergerError(
                    ErrorKind.NAME_TOO_LONG,
                    f"Attachment name is too long: {encoded_length} > {self.max_bytes} bytes",
                    {'length': encoded_length, 'limit': self.max_bytes},
                )
            cleaned = truncate_utf8(cleaned, self.max_bytes)
            logger.warning(f"Attachment name truncated from {encoded_length} to {len(cleaned.encode('utf-8'))} bytes")

        if cleaned != name:
            logger.debug(f"Attachment name sanitized: {name!r} -> {cleaned!r}")
        return cleaned
