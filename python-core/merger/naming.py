"""Output file naming shared by the CLI and the file processor."""

from pathlib import PurePath
from typing import Sequence

MERGED_SUFFIX = "_merged_v3"
LEGACY_SUFFIXES = ("_merged_v3", "_merged")
DEFAULT_VIDEO_EXTENSION = ".mp4"


def merged_output_name(carrier_name: str, suffix: str = MERGED_SUFFIX) -> str:
    """
    Default container name for a carrier: ``movie.mp4`` -> ``movie_merged_v3.mp4``.
    """
    path = PurePath(carrier_name)
    return f"{path.stem}{suffix}{path.suffix}"


def carrier_output_name(
    container_name: str,
    suffixes: Sequence[str] = LEGACY_SUFFIXES,
    default_extension: str = DEFAULT_VIDEO_EXTENSION,
) -> str:
    """
    Name of the carrier recovered from a container.

    The merge suffix is removed from the stem and the container's extension
    is kept, falling back to `default_extension` when there is none.

    Example:
        >>> carrier_output_name("movie_merged_v3.mkv")
        'movie.mkv'
        >>> carrier_output_name("blob")
        'blob.mp4'
    """
    path = PurePath(container_name)
    stem = path.stem
    for suffix in suffixes:
        if stem.endswith(suffix) and len(stem) > len(suffix):
            stem = stem[:-len(suffix)]
            break
    return f"{stem}{path.suffix or default_extension}"
