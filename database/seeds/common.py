"""
Barrels Seeding - Common Types.

Association descriptors, per-model lifecycle states and the run report.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from database.store.base import AssociationKind
from shared.errors import SeedErrorRecord


# =============================================================================
# Type Definitions
# =============================================================================

class ModelState(str, Enum):
    """Lifecycle of one model within a seeding run.

    PENDING -> CLEARED -> INSERTING -> INSERTED -> RESOLVING -> RESOLVED
    Any step may end in FAILED; models unknown to the store are SKIPPED.
    """

    PENDING = "pending"
    CLEARED = "cleared"
    INSERTING = "inserting"
    INSERTED = "inserted"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"
    SKIPPED = "skipped"


class AssociationDescriptor(BaseModel):
    """How one association field of a model is resolved."""

    model_config = ConfigDict(frozen=True)

    alias: str
    kind: AssociationKind
    target_model: str
    required: bool = False

    @property
    def is_to_many(self) -> bool:
        return self.kind is AssociationKind.TO_MANY


# alias -> descriptor, for one model
AssociationRegistry = dict[str, AssociationDescriptor]


class SeedReport(BaseModel):
    """Outcome of a seed or resolve call."""

    states: dict[str, ModelState] = Field(default_factory=dict)
    inserted: dict[str, int] = Field(default_factory=dict)
    updated: dict[str, int] = Field(default_factory=dict)
    errors: list[SeedErrorRecord] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors and ModelState.FAILED not in self.states.values()

    def failed_models(self) -> list[str]:
        return [model for model, state in self.states.items() if state is ModelState.FAILED]

    def summary(self) -> dict[str, Any]:
        return {
            model: {
                "state": state.value,
                "inserted": self.inserted.get(model, 0),
                "updated": self.updated.get(model, 0),
            }
            for model, state in self.states.items()
        }
