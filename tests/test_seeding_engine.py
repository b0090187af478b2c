"""
Tests for the insertion pass - clearing, required associations, identity map.

Run with: pytest tests/test_seeding_engine.py -v
"""

from unittest.mock import AsyncMock

import pytest

from database.seeds.common import ModelState
from database.seeds.context import SeedRun
from database.seeds.fixture_store import FixtureStore
from database.seeds.seeders import SeedingEngine
from database.store.base import InsertResult
from database.store.memory import InMemoryStore
from shared.config import ErrorPolicy
from shared.errors import (
    DependencyError,
    ErrorCategory,
    OrderingError,
    OutOfBoundsError,
    StoreError,
    ValidationError,
)


def make_engine(store, run, policy=ErrorPolicy.ABORT) -> SeedingEngine:
    return SeedingEngine(store, run, policy)


# =============================================================================
# Required associations
# =============================================================================

async def test_author_book_end_to_end(memory_store, seed_run):
    await make_engine(memory_store, seed_run).seed(["author", "book"])

    authors = seed_run.identity_map["author"]
    books = memory_store.records("book")

    assert len(authors) == 3
    assert books[0]["author"] == authors[0]
    assert books[1]["author"] == authors[1]
    assert seed_run.state("author") is ModelState.INSERTED
    assert seed_run.state("book") is ModelState.INSERTED


async def test_identity_maps_are_complete_and_distinct(memory_store, seed_run, library_data):
    await make_engine(memory_store, seed_run).seed(["author", "book", "shelf", "tag", "post"])

    for model, collection in library_data.items():
        identifiers = seed_run.identity_map[model]
        assert len(identifiers) == len(collection)
        assert all(identifier is not None for identifier in identifiers)
        assert len(set(identifiers)) == len(identifiers)


async def test_identity_map_follows_insertion_order(memory_store, seed_run):
    await make_engine(memory_store, seed_run).seed(["author"])

    stored_ids = [record["id"] for record in memory_store.records("author")]
    assert list(seed_run.identity_map["author"]) == stored_ids


async def test_required_to_many_resolved_at_insert(memory_store, seed_run):
    await make_engine(memory_store, seed_run).seed(["author", "book", "shelf"])

    books = seed_run.identity_map["book"]
    shelf = memory_store.records("shelf")[0]
    assert shelf["books"] == [books[1], books[0]]


async def test_optional_associations_left_out_of_insert_payload(memory_store, seed_run):
    memory_store.insert = AsyncMock(wraps=memory_store.insert)

    await make_engine(memory_store, seed_run).seed(["author", "book", "tag", "post"])

    payloads = {
        (call.args[0], call.args[1].get("title")): call.args[1]
        for call in memory_store.insert.await_args_list
    }
    assert "editor" not in payloads[("book", "X")]
    assert "tags" not in payloads[("post", "P")]
    assert "author" not in payloads[("post", "P")]


async def test_fixture_collection_is_not_mutated(memory_store, seed_run, fixtures):
    await make_engine(memory_store, seed_run).seed(["author", "book"])
    assert fixtures.collection("book")[0] == {"title": "X", "author": 1, "editor": 3}


async def test_null_required_reference_is_passed_to_store(memory_store, library_data):
    library_data["book"][0]["author"] = None
    run = SeedRun(FixtureStore(library_data))

    with pytest.raises(StoreError, match="Required association 'author' is missing") as exc_info:
        await make_engine(memory_store, run).seed(["author", "book"])
    assert exc_info.value.position == 1


# =============================================================================
# Ordering and bounds
# =============================================================================

async def test_dependency_listed_after_dependent_is_ordering_error(memory_store, seed_run):
    memory_store.insert = AsyncMock(wraps=memory_store.insert)
    memory_store.truncate = AsyncMock(wraps=memory_store.truncate)

    with pytest.raises(OrderingError) as exc_info:
        await make_engine(memory_store, seed_run).seed(["book", "author"])

    error = exc_info.value
    assert error.model == "book"
    assert error.position == 1
    assert error.alias == "author"
    assert error.context["target_model"] == "author"
    memory_store.insert.assert_not_awaited()
    memory_store.truncate.assert_not_awaited()
    assert "book" not in seed_run.identity_map
    assert seed_run.state("book") is ModelState.FAILED


async def test_ordering_error_leaves_existing_records_untouched(memory_store, fixtures):
    first_run = SeedRun(fixtures)
    await make_engine(memory_store, first_run).seed(["author", "book"])
    before = memory_store.records("book")

    second_run = SeedRun(fixtures)
    with pytest.raises(OrderingError):
        await make_engine(memory_store, second_run).seed(["book"])

    assert memory_store.records("book") == before


async def test_ordering_error_is_fatal_under_continue_policy(memory_store, seed_run):
    with pytest.raises(OrderingError):
        await make_engine(memory_store, seed_run, ErrorPolicy.CONTINUE).seed(["book", "author"])
    assert seed_run.state("author") is ModelState.PENDING


async def test_out_of_bounds_reference(memory_store, library_data):
    library_data["book"][1]["author"] = 9
    run = SeedRun(FixtureStore(library_data))

    with pytest.raises(OutOfBoundsError) as exc_info:
        await make_engine(memory_store, run, ErrorPolicy.CONTINUE).seed(["author", "book"])

    error = exc_info.value
    assert (error.model, error.position, error.alias) == ("book", 2, "author")
    assert error.context["reference"] == 9
    assert memory_store.records("book") == []
    assert run.report.errors[0].error_category is ErrorCategory.OUT_OF_BOUNDS_ERROR


# =============================================================================
# Failed dependencies
# =============================================================================

async def test_failed_required_target_fails_dependent_under_continue(memory_store, library_data):
    library_data["author"] = []
    run = SeedRun(FixtureStore(library_data))

    await make_engine(memory_store, run, ErrorPolicy.CONTINUE).seed(["author", "book", "tag"])

    assert run.state("author") is ModelState.FAILED
    assert run.state("book") is ModelState.FAILED
    assert run.state("tag") is ModelState.INSERTED

    error = run.report.errors[1]
    assert error.error_category is ErrorCategory.DEPENDENCY_ERROR
    assert (error.model, error.position, error.alias) == ("book", 1, "author")
    assert error.context["target_model"] == "author"
    assert error.context["target_state"] == "failed"


async def test_failed_required_target_raises_dependency_error_under_abort(memory_store, library_data):
    library_data["author"] = []
    run = SeedRun(FixtureStore(library_data))
    memory_store.truncate = AsyncMock(wraps=memory_store.truncate)

    with pytest.raises(DependencyError, match="Target model 'author' failed") as exc_info:
        await make_engine(memory_store, run).seed(["author", "book"])

    assert not isinstance(exc_info.value, OrderingError)
    memory_store.truncate.assert_not_awaited()


async def test_skipped_required_target_is_dependency_error(library_data):
    store = InMemoryStore({
        "book": [{"alias": "author", "kind": "to-one", "target_model": "author", "required": True}],
    })
    run = SeedRun(FixtureStore(library_data))

    await make_engine(store, run, ErrorPolicy.CONTINUE).seed(["author", "book"])

    assert run.state("author") is ModelState.SKIPPED
    assert run.state("book") is ModelState.FAILED
    assert run.report.errors[0].context["target_state"] == "skipped"


# =============================================================================
# Validation
# =============================================================================

async def test_empty_collection_fails_only_that_model(memory_store, library_data):
    library_data["tag"] = []
    run = SeedRun(FixtureStore(library_data))

    await make_engine(memory_store, run, ErrorPolicy.CONTINUE).seed(["author", "tag", "book"])

    assert run.state("tag") is ModelState.FAILED
    assert run.state("author") is ModelState.INSERTED
    assert run.state("book") is ModelState.INSERTED
    assert "tag" not in run.identity_map
    assert [e.error_category for e in run.report.errors] == [ErrorCategory.VALIDATION_ERROR]
    assert run.report.errors[0].model == "tag"


async def test_missing_collection_fails_only_that_model_under_abort(memory_store, library_data):
    del library_data["tag"]
    run = SeedRun(FixtureStore(library_data))

    await make_engine(memory_store, run, ErrorPolicy.ABORT).seed(["author", "tag", "book"])

    assert run.state("tag") is ModelState.FAILED
    assert run.state("book") is ModelState.INSERTED
    assert run.report.failed_models() == ["tag"]


async def test_invalid_collection_aborts_when_requested(memory_store, library_data):
    library_data["tag"] = []
    run = SeedRun(FixtureStore(library_data))
    engine = SeedingEngine(memory_store, run, ErrorPolicy.CONTINUE, abort_on_invalid_collection=True)

    with pytest.raises(ValidationError) as exc_info:
        await engine.seed(["author", "tag", "book"])

    assert exc_info.value.model == "tag"
    assert "author" in run.identity_map
    assert run.state("book") is ModelState.PENDING


async def test_malformed_required_reference(memory_store, library_data):
    library_data["book"][0]["author"] = "1"
    run = SeedRun(FixtureStore(library_data))

    with pytest.raises(ValidationError) as exc_info:
        await make_engine(memory_store, run).seed(["author", "book"])
    assert (exc_info.value.position, exc_info.value.alias) == (1, "author")


# =============================================================================
# Store failures
# =============================================================================

async def test_truncate_failure_is_fatal_under_continue_policy(memory_store, seed_run):
    memory_store.truncate = AsyncMock(side_effect=StoreError("disk full"))

    with pytest.raises(StoreError, match="disk full") as exc_info:
        await make_engine(memory_store, seed_run, ErrorPolicy.CONTINUE).seed(["author", "book"])

    assert exc_info.value.model == "author"
    assert seed_run.state("author") is ModelState.FAILED
    assert seed_run.state("book") is ModelState.PENDING


def failing_insert(store, model: str, title: str):
    original_insert = store.insert

    async def insert(target_model, record):
        if target_model == model and record.get("title") == title:
            raise StoreError("constraint violated")
        return await original_insert(target_model, record)

    return insert


async def test_insert_failure_halts_model_and_continues(memory_store, seed_run):
    memory_store.insert = failing_insert(memory_store, "book", "Y")

    await make_engine(memory_store, seed_run, ErrorPolicy.CONTINUE).seed(["author", "book", "tag"])

    assert seed_run.state("book") is ModelState.FAILED
    assert "book" not in seed_run.identity_map
    assert seed_run.state("tag") is ModelState.INSERTED
    assert len(memory_store.records("book")) == 1

    error = seed_run.report.errors[0]
    assert (error.model, error.position) == ("book", 2)
    assert error.log_ref.startswith("err_")


async def test_insert_failure_raises_under_abort(memory_store, seed_run):
    memory_store.insert = failing_insert(memory_store, "book", "X")

    with pytest.raises(StoreError) as exc_info:
        await make_engine(memory_store, seed_run).seed(["author", "book", "tag"])

    assert (exc_info.value.model, exc_info.value.position) == ("book", 1)
    assert seed_run.state("tag") is ModelState.PENDING


async def test_duplicate_identifier_from_store(memory_store, seed_run):
    memory_store.insert = AsyncMock(return_value=InsertResult({}, "same-id"))

    with pytest.raises(StoreError, match="twice") as exc_info:
        await make_engine(memory_store, seed_run).seed(["author"])

    assert exc_info.value.position == 2
    assert "author" not in seed_run.identity_map


# =============================================================================
# Model selection
# =============================================================================

async def test_unknown_model_is_skipped(memory_store):
    run = SeedRun(FixtureStore({"ghost": [{"name": "boo"}], "tag": [{"name": "t"}]}))

    await make_engine(memory_store, run).seed(["ghost", "tag"])

    assert run.state("ghost") is ModelState.SKIPPED
    assert run.state("tag") is ModelState.INSERTED
    assert run.report.errors == []


async def test_reseeding_clears_previous_records(memory_store, fixtures):
    for _ in range(2):
        run = SeedRun(fixtures)
        await make_engine(memory_store, run).seed(["author", "book"])

    assert len(memory_store.records("author")) == 3
    assert len(memory_store.records("book")) == 2
