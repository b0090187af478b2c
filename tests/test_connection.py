"""
Tests for engine lifecycle in database.connection.

Run with: pytest tests/test_connection.py -v
"""

import pytest

from database.connection import close_db, get_engine, get_session_factory
from shared.config import get_settings


@pytest.fixture
def sqlite_settings(monkeypatch):
    """Point DATABASE_URL at an in-memory SQLite database."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    get_settings.cache_clear()
    get_engine.cache_clear()
    get_session_factory.cache_clear()
    yield
    get_engine.cache_clear()
    get_session_factory.cache_clear()
    get_settings.cache_clear()


async def test_close_db_without_engine_creates_none(sqlite_settings):
    await close_db()
    assert get_engine.cache_info().currsize == 0


async def test_close_db_disposes_created_engine(sqlite_settings):
    engine = get_engine()
    get_session_factory()

    await close_db()

    assert get_engine.cache_info().currsize == 0
    assert get_session_factory.cache_info().currsize == 0
    assert get_engine() is not engine
