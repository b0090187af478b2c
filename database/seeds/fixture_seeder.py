"""
Barrels - fixture seeding entry point.

Usage:
    store = SQLAlchemyStore(session_factory, Base)
    seeder = FixtureSeeder.from_directory(store, "fixtures")

    # Insert everything, then link optional associations
    report = await seeder.seed(["author", "book", "tag", "post"])

    # Or in two steps
    await seeder.seed(["author", "book"], auto_resolve_associations=False)
    await seeder.resolve_associations()

Model order is a contract: every model must come after the models its
required associations point to.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from database.seeds.common import ModelState, SeedReport
from database.seeds.context import SeedRun
from database.seeds.fixture_store import FixtureStore
from database.seeds.identity_map import IdentityMap
from database.seeds.seeders import AssociationResolver, SeedingEngine
from database.store.base import StoreCapability
from shared.config import ErrorPolicy, get_settings
from shared.errors import OrderingError

logger = logging.getLogger(__name__)


class FixtureSeeder:
    """
    Seeds a store from fixture collections and rebuilds their associations.

    Each call to `seed()` starts a new SeedRun; `resolve_associations()`
    continues the most recent one.
    """

    def __init__(
        self,
        store: StoreCapability,
        fixtures: FixtureStore,
        *,
        error_policy: ErrorPolicy | None = None,
        auto_resolve_associations: bool | None = None,
        abort_on_invalid_collection: bool | None = None,
    ):
        settings = get_settings()
        self.store = store
        self.fixtures = fixtures
        self.error_policy = error_policy or settings.SEED_ERROR_POLICY
        self.auto_resolve_associations = (
            settings.SEED_AUTO_RESOLVE_ASSOCIATIONS
            if auto_resolve_associations is None
            else auto_resolve_associations
        )
        self.abort_on_invalid_collection = (
            settings.SEED_ABORT_ON_INVALID_COLLECTION
            if abort_on_invalid_collection is None
            else abort_on_invalid_collection
        )
        self.run: SeedRun | None = None

    @classmethod
    def from_directory(
        cls,
        store: StoreCapability,
        source: str | Path | None = None,
        **kwargs,
    ) -> "FixtureSeeder":
        """Load fixtures from `source` (default: FIXTURES_DIR setting)."""
        fixtures = FixtureStore.from_directory(source or get_settings().FIXTURES_DIR)
        return cls(store, fixtures, **kwargs)

    @property
    def identity_map(self) -> IdentityMap:
        """Identity map of the most recent run."""
        if self.run is None:
            raise OrderingError("Nothing has been seeded yet")
        return self.run.identity_map

    def _model_names(self, model_names: Iterable[str] | None) -> list[str]:
        if model_names is None:
            return self.fixtures.model_names

        names: list[str] = []
        for name in model_names:
            name = name.lower()
            if name not in names:
                names.append(name)
        return names

    async def seed(
        self,
        model_names: Iterable[str] | None = None,
        auto_resolve_associations: bool | None = None,
    ) -> SeedReport:
        """
        Clear and insert fixtures for each model, in the given order.

        Args:
            model_names: Models to seed; defaults to every loaded collection
                in discovery order
            auto_resolve_associations: Run the deferred association pass
                afterwards (default from settings)

        Returns:
            SeedReport of the run
        """
        models = self._model_names(model_names)
        if auto_resolve_associations is None:
            auto_resolve_associations = self.auto_resolve_associations

        run = SeedRun(self.fixtures)
        self.run = run
        logger.info(f"[Barrels] Collections {models}")

        engine = SeedingEngine(
            self.store,
            run,
            self.error_policy,
            abort_on_invalid_collection=self.abort_on_invalid_collection,
        )
        await engine.seed(models)

        if auto_resolve_associations:
            seeded = [model for model in models if run.state(model) is ModelState.INSERTED]
            resolver = AssociationResolver(self.store, run, self.error_policy)
            await resolver.resolve(seeded)

        return run.report

    async def resolve_associations(
        self,
        model_names: Iterable[str] | None = None,
    ) -> SeedReport:
        """
        Write deferred associations for models seeded by the last `seed()`.

        Defaults to every model of that run. Models that were skipped or
        failed during seeding are left alone;
        a model that was never seeded is an OrderingError.
        """
        if self.run is None:
            raise OrderingError("Call seed() before resolving associations")

        run = self.run
        if model_names is None:
            # Everything the last seed() went through, in the same order
            model_names = list(run.report.states)

        models = []
        for model in self._model_names(model_names):
            if run.state(model) in (ModelState.SKIPPED, ModelState.FAILED):
                logger.warning(
                    f"[Barrels] Not resolving {model}: {run.state(model).value}",
                    extra={"model": model},
                )
                continue
            models.append(model)

        resolver = AssociationResolver(self.store, run, self.error_policy)
        await resolver.resolve(models)
        return run.report
