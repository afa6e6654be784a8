"""
Unit Tests for Processing Strategy Selection

This module tests how AUTO resolves into MEMORY or STREAMING based on
the size threshold and the memory currently available.
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'python-core'))

GIB = 1024 ** 3


class TestSelectStrategy:
    """Test cases for select_strategy."""

    @pytest.fixture
    def plenty_of_memory(self, monkeypatch):
        """Pretend 64 GiB are available."""
        from merger import strategy
        monkeypatch.setattr(strategy, 'available_memory', lambda: 64 * GIB)

    @pytest.fixture
    def little_memory(self, monkeypatch):
        """Pretend only 100 MiB are available."""
        from merger import strategy
        monkeypatch.setattr(strategy, 'available_memory', lambda: 100 * 1024 ** 2)

    def test_explicit_preferences_honoured(self, little_memory):
        """Test that MEMORY and STREAMING are never overridden."""
        from merger.strategy import ProcessingStrategy, select_strategy
        assert select_strategy(10 * GIB, ProcessingStrategy.MEMORY) is ProcessingStrategy.MEMORY
        assert select_strategy(10, ProcessingStrategy.STREAMING) is ProcessingStrategy.STREAMING

    def test_small_input_uses_memory(self, plenty_of_memory):
        """Test AUTO for small inputs."""
        from merger.strategy import ProcessingStrategy, select_strategy
        assert select_strategy(10 * 1024 ** 2) is ProcessingStrategy.MEMORY

    def test_threshold_switches_to_streaming(self, plenty_of_memory):
        """Test AUTO at and above the 1 GiB threshold."""
        from merger.strategy import ProcessingStrategy, select_strategy
        assert select_strategy(GIB - 1) is ProcessingStrategy.MEMORY
        assert select_strategy(GIB) is ProcessingStrategy.STREAMING
        assert select_strategy(5 * GIB) is ProcessingStrategy.STREAMING

    def test_low_memory_switches_to_streaming(self, little_memory):
        """Test AUTO when the input would not fit twice in free memory."""
        from merger.strategy import ProcessingStrategy, select_strategy
        assert select_strategy(40 * 1024 ** 2) is ProcessingStrategy.MEMORY
        assert select_strategy(60 * 1024 ** 2) is ProcessingStrategy.STREAMING

    def test_custom_threshold(self, plenty_of_memory):
        """Test a configured threshold."""
        from merger.strategy import ProcessingStrategy, select_strategy
        assert select_strategy(100, threshold=100) is ProcessingStrategy.STREAMING
        assert select_strategy(99, threshold=100) is ProcessingStrategy.MEMORY

    def test_real_memory_probe(self):
        """Test that psutil reports a positive amount of memory."""
        from merger.strategy import available_memory
        assert available_memory() > 0

    def test_enum_values(self):
        """Test the values used by the CLI and configuration files."""
        from merger.strategy import ProcessingStrategy
        assert ProcessingStrategy("auto") is ProcessingStrategy.AUTO
        assert ProcessingStrategy("memory") is ProcessingStrategy.MEMORY
        assert ProcessingStrategy("stream") is ProcessingStrategy.STREAMING
