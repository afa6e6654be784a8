"""
Processing strategy selection.

MEMORY assembles the whole container (or reads the whole container on
decode) in one addressable buffer: fewer I/O calls, memory proportional to
the input. STREAMING pushes every component through StreamingTransfer:
memory bounded by the buffer size. Both produce identical bytes.

AUTO picks MEMORY only for inputs under the threshold (1 GiB by default)
that also fit in the memory currently available on the machine.
"""

import logging
from enum import Enum

import psutil

logger = logging.getLogger(__name__)

DEFAULT_STREAMING_THRESHOLD = 1024 * 1024 * 1024  # 1 GiB
DEFAULT_MEMORY_HEADROOM = 2.0


class ProcessingStrategy(Enum):
    """Execution strategy preference for encode and decode."""

    AUTO = "auto"
    MEMORY = "memory"
    STREAMING = "stream"


def available_memory() -> int:
    """Bytes of memory currently available to new allocations."""
    return psutil.virtual_memory().available


def select_strategy(
    total_size: int,
    preference: ProcessingStrategy = ProcessingStrategy.AUTO,
    threshold: int = DEFAULT_STREAMING_THRESHOLD,
    headroom: float = DEFAULT_MEMORY_HEADROOM,
) -> ProcessingStrategy:
    """
    Resolve a strategy preference into MEMORY or STREAMING.

    Args:
        total_size: Combined size of the data the operation will hold.
        preference: Caller preference; MEMORY and STREAMING are honoured as-is.
        threshold: Sizes at or above this always stream under AUTO.
        headroom: Multiple of `total_size` that must be available in RAM
                  for AUTO to pick MEMORY.

    Returns:
        ProcessingStrategy.MEMORY or ProcessingStrategy.STREAMING.
    """
    if preference is not ProcessingStrategy.AUTO:
        return preference

    if total_size >= threshold:
        logger.debug(f"Streaming selected: {total_size} bytes >= threshold {threshold}")
        return ProcessingStrategy.STREAMING

    free = available_memory()
    if total_size * headroom > free:
        logger.info(f"Streaming selected: {total_size} bytes would not fit in {free} bytes of free memory")
        return ProcessingStrategy.STREAMING

    return ProcessingStrategy.MEMORY
