"""
Shared pytest fixtures for store tests.
"""

import os
import tempfile

import pytest

from logkv.engine.store import Store


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def log_path(temp_dir):
    """Provide a path for the log file."""
    return os.path.join(temp_dir, "t.log")


@pytest.fixture
def store(log_path):
    """Provide an open Store that is closed after the test."""
    s = Store.open(log_path)
    yield s
    s.close()


@pytest.fixture
def sample_items():
    """Provide sample key-value pairs for testing."""
    return [
        (b"key1", b"value1"),
        (b"key2", b"value2"),
        (b"key3", b"value3"),
    ]
