"""
Seeding run context.

Owns every piece of mutable state of one seeding run so that repeated or
concurrent runs never share identity maps or registries.
"""

from database.seeds.common import AssociationRegistry, ModelState, SeedReport
from database.seeds.fixture_store import FixtureStore
from database.seeds.identity_map import IdentityMap
from shared.errors import SeedError


class SeedRun:
    """State of one `seed()` call, reused by a later `resolve_associations()`."""

    def __init__(self, fixtures: FixtureStore):
        self.fixtures = fixtures
        self.identity_map = IdentityMap()
        self.registries: dict[str, AssociationRegistry] = {}
        self.report = SeedReport()

    def state(self, model: str) -> ModelState:
        return self.report.states.get(model, ModelState.PENDING)

    def transition(self, model: str, state: ModelState) -> None:
        self.report.states[model] = state

    def record_error(self, error: SeedError, log_ref: str | None = None) -> None:
        self.report.errors.append(error.to_record(log_ref))
        if error.model:
            self.transition(error.model, ModelState.FAILED)
