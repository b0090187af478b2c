"""
Barrels - Database module.

This module contains connection utilities, the store capability
implementations and the fixture seeding engine.
"""

from database.connection import (
    close_db,
    get_engine,
    get_session_factory,
    init_db,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_db",
]
