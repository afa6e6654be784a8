"""Configuration for merge and split operations."""

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict

from .errors import ErrorKind, MergerError
from .naming import DEFAULT_VIDEO_EXTENSION, MERGED_SUFFIX
from .sanitizer import NamePolicy
from .strategy import DEFAULT_MEMORY_HEADROOM, DEFAULT_STREAMING_THRESHOLD, ProcessingStrategy
from .transfer import DEFAULT_BUFFER_SIZE

logger = logging.getLogger(__name__)


@dataclass
class MergerConfig:
    """
    Settings consumed by MergedFileProcessor and the CLI.

    Attributes:
        buffer_size: StreamingTransfer buffer size in bytes
        streaming_threshold: Combined size at which AUTO switches to streaming
        memory_headroom: Free-memory multiple AUTO requires before buffering
        strategy: Preferred processing strategy
        name_policy: How attachment names derived from files are sanitized
        merged_suffix: Suffix appended to the carrier stem for containers
        default_video_extension: Extension for recovered carriers without one
        output_dir: Directory receiving split outputs
        overwrite: Replace existing outputs instead of failing
    """

    buffer_size: int
    streaming_threshold: int
    memory_headroom: float
    strategy: ProcessingStrategy
    name_policy: NamePolicy
    merged_suffix: str
    default_video_extension: str
    output_dir: str
    overwrite: bool

    @classmethod
    def default(cls) -> 'MergerConfig':
        """Get default configuration."""
        return cls(
            buffer_size=DEFAULT_BUFFER_SIZE,
            streaming_threshold=DEFAULT_STREAMING_THRESHOLD,
            memory_headroom=DEFAULT_MEMORY_HEADROOM,
            strategy=ProcessingStrategy.AUTO,
            name_policy=NamePolicy.LENIENT,
            merged_suffix=MERGED_SUFFIX,
            default_video_extension=DEFAULT_VIDEO_EXTENSION,
            output_dir="extracted_v3",
            overwrite=False,
        )

    def __post_init__(self):
        if self.buffer_size <= 0:
            raise MergerError(ErrorKind.CONFIG_INVALID, f"buffer_size must be positive: {self.buffer_size}")
        if self.streaming_threshold < 0:
            raise MergerError(
                ErrorKind.CONFIG_INVALID,
                f"streaming_threshold must not be negative: {self.streaming_threshold}",
            )
        if self.memory_headroom < 1.0:
            raise MergerError(
                ErrorKind.CONFIG_INVALID,
                f"memory_headroom must be at least 1.0: {self.memory_headroom}",
            )
        if self.default_video_extension and not self.default_video_extension.startswith("."):
            raise MergerError(
                ErrorKind.CONFIG_INVALID,
                f"default_video_extension must start with '.': {self.default_video_extension}",
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        data = asdict(self)
        data['strategy'] = self.strategy.value
        data['name_policy'] = self.name_policy.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MergerConfig':
        """
        Create configuration from a dictionary, filling gaps with defaults.

        Raises:
            MergerError: CONFIG_INVALID for unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise MergerError(
                ErrorKind.CONFIG_INVALID,
                f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            )

        merged = cls.default().to_dict()
        merged.update(data)
        try:
            merged['strategy'] = ProcessingStrategy(merged['strategy'])
            merged['name_policy'] = NamePolicy(merged['name_policy'])
            merged['buffer_size'] = int(merged['buffer_size'])
            merged['streaming_threshold'] = int(merged['streaming_threshold'])
            merged['memory_headroom'] = float(merged['memory_headroom'])
        except (TypeError, ValueError) as e:
            raise MergerError(ErrorKind.CONFIG_INVALID, f"Invalid configuration value: {e}") from e
        if not isinstance(merged['overwrite'], bool):
            raise MergerError(
                ErrorKind.CONFIG_INVALID,
                f"overwrite must be true or false: {merged['overwrite']!r}",
            )
        return cls(**merged)

    @classmethod
    def load(cls, path: str) -> 'MergerConfig':
        """Load configuration from a JSON file."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except OSError as e:
            raise MergerError.from_os_error(e, f"Reading configuration {path}") from e
        except json.JSONDecodeError as e:
            raise MergerError(ErrorKind.CONFIG_INVALID, f"Configuration {path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MergerError(ErrorKind.CONFIG_INVALID, f"Configuration {path} must be a JSON object")
        logger.debug(f"Loaded configuration from {path}")
        return cls.from_dict(data)

    def save(self, path: str) -> None:
        """Write configuration to a JSON file."""
        Path(path).write_text(json.dumps(self.to_dict(), indent=2), encoding='utf-8')
