"""
Store capability contract.

The seeding engine never talks to a database directly; it drives any
object implementing StoreCapability. All failures must be raised as
shared.errors.StoreError.
"""

from enum import Enum
from typing import Any, NamedTuple, Protocol, TypedDict, runtime_checkable


class AssociationKind(str, Enum):
    """Cardinality of an association field."""

    TO_ONE = "to-one"
    TO_MANY = "to-many"


class AssociationSchema(TypedDict):
    """One association as declared by the store schema."""
    alias: str
    kind: str  # AssociationKind value
    target_model: str
    required: bool


class ModelSchema(TypedDict):
    """Schema information the seeding engine consumes for a model."""
    associations: list[AssociationSchema]


class InsertResult(NamedTuple):
    """Outcome of a successful insert."""
    record: dict[str, Any]
    assigned_id: Any


@runtime_checkable
class StoreCapability(Protocol):
    """Operations the seeding engine needs from a backing store."""

    def has_model(self, model: str) -> bool:
        """Whether the store knows the model at all."""
        ...

    async def truncate(self, model: str) -> None:
        """Delete every record of the model."""
        ...

    async def get_schema(self, model: str) -> ModelSchema:
        """Declared associations of the model."""
        ...

    async def insert(self, model: str, record: dict[str, Any]) -> InsertResult:
        """Insert one record and return the store-assigned identifier."""
        ...

    async def fetch_by_id(self, model: str, record_id: Any) -> dict[str, Any]:
        """Load a persisted record; missing records are a StoreError."""
        ...

    async def update(self, model: str, record_id: Any, record: dict[str, Any]) -> None:
        """Persist field values on an existing record."""
        ...

    async def attach(self, model: str, record_id: Any, alias: str, target_id: Any) -> None:
        """Add one target to a to-many association (additive)."""
        ...
