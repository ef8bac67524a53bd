"""
Pytest configuration and fixtures for relmap tests.
"""

import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine


@pytest.fixture
def temp_db():
    """Create a temporary database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def engine(temp_db):
    """SQLite engine over a fresh database file."""
    eng = create_engine(f"sqlite:///{temp_db}")
    yield eng
    eng.dispose()
