"""
In-memory store capability.

Dict-backed store with declared schemas. Identifiers are random UUID
strings, so fixture code can never rely on insertion order producing
predictable keys. Required to-one associations are enforced at insert
time the same way a non-nullable foreign key would be.
"""

import copy
import logging
import uuid
from typing import Any

from database.store.base import AssociationKind, AssociationSchema, InsertResult, ModelSchema
from shared.errors import StoreError

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Store capability backed by plain dictionaries.

    Args:
        schemas: model name -> list of association declarations
            ({"alias", "kind", "target_model", "required"}).
            Models without associations map to an empty list.
    """

    def __init__(self, schemas: dict[str, list[AssociationSchema]]):
        self._schemas = {
            model.lower(): [dict(assoc) for assoc in associations]
            for model, associations in schemas.items()
        }
        self._records: dict[str, dict[str, dict[str, Any]]] = {
            model: {} for model in self._schemas
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _table(self, model: str) -> dict[str, dict[str, Any]]:
        if model not in self._records:
            raise StoreError(f"Unknown model '{model}'", model=model)
        return self._records[model]

    def _association(self, model: str, alias: str) -> AssociationSchema:
        for assoc in self._schemas[model]:
            if assoc["alias"] == alias:
                return assoc
        raise StoreError(
            f"'{alias}' is not an association of '{model}'", model=model, alias=alias
        )

    def _check_reference(self, model: str, assoc: AssociationSchema, value: Any) -> None:
        target = assoc["target_model"]
        targets = self._table(target)
        ids = value if assoc["kind"] == AssociationKind.TO_MANY.value else [value]
        for target_id in ids:
            if target_id not in targets:
                raise StoreError(
                    f"No {target} record with id {target_id!r}",
                    model=model,
                    alias=assoc["alias"],
                )

    def records(self, model: str) -> list[dict[str, Any]]:
        """All persisted records of a model, in insertion order."""
        return [copy.deepcopy(record) for record in self._table(model).values()]

    # ------------------------------------------------------------------
    # StoreCapability
    # ------------------------------------------------------------------

    def has_model(self, model: str) -> bool:
        return model in self._schemas

    async def truncate(self, model: str) -> None:
        self._table(model).clear()

    async def get_schema(self, model: str) -> ModelSchema:
        self._table(model)
        return {"associations": copy.deepcopy(self._schemas[model])}

    async def insert(self, model: str, record: dict[str, Any]) -> InsertResult:
        table = self._table(model)
        stored = copy.deepcopy(record)

        for assoc in self._schemas[model]:
            alias = assoc["alias"]
            value = stored.get(alias)
            if value is None:
                if assoc["required"] and assoc["kind"] == AssociationKind.TO_ONE.value:
                    raise StoreError(
                        f"Required association '{alias}' is missing",
                        model=model,
                        alias=alias,
                    )
                continue
            self._check_reference(model, assoc, value)
            if assoc["kind"] == AssociationKind.TO_MANY.value:
                stored[alias] = list(value)

        record_id = uuid.uuid4().hex
        stored["id"] = record_id
        table[record_id] = stored
        return InsertResult(record=copy.deepcopy(stored), assigned_id=record_id)

    async def fetch_by_id(self, model: str, record_id: Any) -> dict[str, Any]:
        table = self._table(model)
        if record_id not in table:
            raise StoreError(f"No {model} record with id {record_id!r}", model=model)
        return copy.deepcopy(table[record_id])

    async def update(self, model: str, record_id: Any, record: dict[str, Any]) -> None:
        table = self._table(model)
        if record_id not in table:
            raise StoreError(f"No {model} record with id {record_id!r}", model=model)

        changes = {key: value for key, value in record.items() if key != "id"}
        for alias, value in changes.items():
            if value is None:
                continue
            for assoc in self._schemas[model]:
                if assoc["alias"] == alias:
                    self._check_reference(model, assoc, value)
        table[record_id].update(copy.deepcopy(changes))

    async def attach(self, model: str, record_id: Any, alias: str, target_id: Any) -> None:
        table = self._table(model)
        if record_id not in table:
            raise StoreError(f"No {model} record with id {record_id!r}", model=model)

        assoc = self._association(model, alias)
        if assoc["kind"] != AssociationKind.TO_MANY.value:
            raise StoreError(
                f"Cannot attach to to-one association '{alias}'", model=model, alias=alias
            )
        self._check_reference(model, assoc, [target_id])

        current = table[record_id].get(alias)
        if not isinstance(current, list):
            current = []
            table[record_id][alias] = current
        if target_id not in current:
            current.append(target_id)
