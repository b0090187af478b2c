"""
Tests for building association registries from store schemas.

Run with: pytest tests/test_registry.py -v
"""

from unittest.mock import AsyncMock

import pytest

from database.seeds.registry import build_registry
from database.store.base import AssociationKind
from database.store.memory import InMemoryStore
from shared.errors import StoreError


async def test_registry_keyed_by_alias(memory_store):
    registry = await build_registry(memory_store, "book")

    assert set(registry) == {"author", "editor"}
    assert registry["author"].kind is AssociationKind.TO_ONE
    assert registry["author"].target_model == "author"
    assert registry["author"].required is True
    assert registry["editor"].required is False


async def test_registry_to_many(memory_store):
    registry = await build_registry(memory_store, "post")
    assert registry["tags"].is_to_many
    assert not registry["author"].is_to_many


async def test_model_without_associations(memory_store):
    assert await build_registry(memory_store, "author") == {}


async def test_registry_is_rebuilt_from_live_schema():
    store = InMemoryStore({"author": [], "book": []})
    assert await build_registry(store, "book") == {}

    store.get_schema = AsyncMock(return_value={"associations": [
        {"alias": "author", "kind": "to-one", "target_model": "author", "required": True},
    ]})
    assert set(await build_registry(store, "book")) == {"author"}


async def test_schema_errors_propagate(memory_store):
    memory_store.get_schema = AsyncMock(side_effect=StoreError("schema unavailable", model="book"))
    with pytest.raises(StoreError, match="schema unavailable"):
        await build_registry(memory_store, "book")


async def test_malformed_schema_is_store_error(memory_store):
    memory_store.get_schema = AsyncMock(return_value={"associations": [
        {"alias": "author", "kind": "one-to-some", "target_model": "author"},
    ]})
    with pytest.raises(StoreError, match="Malformed association") as exc_info:
        await build_registry(memory_store, "book")
    assert exc_info.value.model == "book"
