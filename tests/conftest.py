# Merger Test Configuration
# This file contains test settings and fixtures

import pytest
import sys
import os

# Add python-core to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'python-core'))

# Test fixtures and configuration
pytest_plugins = ['pytest_asyncio']


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return os.path.dirname(os.path.dirname(__file__))


@pytest.fixture(scope="session")
def python_cli_path(project_root):
    """Return path to python-cli directory."""
    return os.path.join(project_root, 'python-cli')


@pytest.fixture(scope="session")
def golden_dir(project_root):
    """Return path to the golden container fixtures."""
    return os.path.join(project_root, 'tests', 'golden')


@pytest.fixture
def temp_directory(tmp_path):
    """Provide a temporary directory for test operations."""
    return tmp_path


@pytest.fixture
def sample_carrier(temp_directory):
    """Provide a small fake video to hide things in."""
    carrier_file = temp_directory / "video.mp4"
    carrier_file.write_bytes(b'\xaa' * 100)
    return carrier_file


@pytest.fixture
def sample_attachment(temp_directory):
    """Provide a small attachment file."""
    attachment_file = temp_directory / "secret.txt"
    attachment_file.write_bytes(b'\xbb' * 50)
    return attachment_file


@pytest.fixture
def sample_binary_data(temp_directory):
    """Provide sample binary data for testing."""
    binary_file = temp_directory / "sample.bin"
    binary_file.write_bytes(b'\x00\x01\x02\x03\x04\x05\xff\xfe\xfd')
    return binary_file
