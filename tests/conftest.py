"""
Pytest configuration and shared fixtures for all tests.

This file is automatically loaded by pytest and provides:
- In-memory store fixtures with a small library schema
- Fixture collections matching that schema
- An aiosqlite-backed session factory for SQLAlchemyStore tests
"""

import logging
from pathlib import Path
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from database.models import Base
from database.seeds.context import SeedRun
from database.seeds.fixture_store import FixtureStore
from database.store.memory import InMemoryStore


SAMPLE_FIXTURES_DIR = Path(__file__).resolve().parent.parent / "fixtures"


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def setup_logging():
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Reduce noise from third-party loggers
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# =============================================================================
# SCHEMA AND FIXTURE DATA
# =============================================================================

def association(alias: str, kind: str, target: str, required: bool) -> dict:
    return {"alias": alias, "kind": kind, "target_model": target, "required": required}


LIBRARY_SCHEMAS = {
    "author": [],
    "book": [
        association("author", "to-one", "author", True),
        association("editor", "to-one", "author", False),
    ],
    "shelf": [
        association("books", "to-many", "book", True),
    ],
    "tag": [],
    "post": [
        association("author", "to-one", "author", False),
        association("tags", "to-many", "tag", False),
    ],
}


def library_fixtures() -> dict[str, list[dict]]:
    return {
        "author": [{"name": "A"}, {"name": "B"}, {"name": "C"}],
        "book": [
            {"title": "X", "author": 1, "editor": 3},
            {"title": "Y", "author": 2},
        ],
        "shelf": [{"label": "favourites", "books": [2, 1]}],
        "tag": [{"name": "t1"}, {"name": "t2"}],
        "post": [
            {"title": "P", "tags": [1, 2], "author": 2},
            {"title": "Q", "tags": [2]},
        ],
    }


@pytest.fixture
def memory_store() -> InMemoryStore:
    """Empty in-memory store with the library schema."""
    return InMemoryStore(LIBRARY_SCHEMAS)


@pytest.fixture
def library_data() -> dict[str, list[dict]]:
    """Raw library fixture collections, free to modify per test."""
    return library_fixtures()


@pytest.fixture
def fixtures(library_data) -> FixtureStore:
    """Library fixture collections."""
    return FixtureStore(library_data)


@pytest.fixture
def seed_run(fixtures) -> SeedRun:
    """Fresh run context over the library fixtures."""
    return SeedRun(fixtures)


@pytest.fixture
def sample_fixtures_dir() -> Path:
    """The fixtures/ directory shipped for the demo models."""
    return SAMPLE_FIXTURES_DIR


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
async def sqlite_session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory on a private in-memory SQLite database with the demo models."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


# =============================================================================
# MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that run against a SQL database"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
