"""
Store capabilities consumed by the seeding engine.
"""

from database.store.base import (
    AssociationKind,
    AssociationSchema,
    InsertResult,
    ModelSchema,
    StoreCapability,
)
from database.store.memory import InMemoryStore
from database.store.sql import SQLAlchemyStore

__all__ = [
    "AssociationKind",
    "AssociationSchema",
    "InsertResult",
    "ModelSchema",
    "StoreCapability",
    "InMemoryStore",
    "SQLAlchemyStore",
]
