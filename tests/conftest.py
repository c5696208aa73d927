"""
Pytest configuration and fixtures for test isolation.

This module provides the fake database fixtures shared by the archive tests
and resets process-wide state between tests.
"""

import logging
import os
import sys
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

import archive.engine
from archive.engine import DbEngine
from tests.fixtures import FakeDatabase, make_engine, patch_connect


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """
    Reset environment variables and cached settings between tests.
    """
    original_env = dict(os.environ)

    yield

    os.environ.clear()
    os.environ.update(original_env)

    import config

    config.get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """
    Reset logging configuration between tests.
    """
    original_level = logging.getLogger().level
    original_handlers = logging.getLogger().handlers[:]

    yield

    logging.getLogger().setLevel(original_level)
    logging.getLogger().handlers = original_handlers


@pytest.fixture(autouse=True)
def reset_engine_singleton() -> Generator[None, None, None]:
    """Forget the process-wide engine created by ``get_engine()``."""
    yield
    archive.engine._engine = None


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def connect(database: FakeDatabase):
    """Patch ``asyncpg.connect`` so every connection opens on ``database``."""
    with patch_connect(database) as mock_connect:
        yield mock_connect


@pytest_asyncio.fixture
async def engine(database: FakeDatabase, connect) -> AsyncGenerator[DbEngine, None]:
    """An initialized engine backed by the fake database."""
    engine = make_engine()
    assert await engine.init()
    yield engine
    await engine.close()
