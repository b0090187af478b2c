"""
Barrels Association Resolver.

Deferred pass: writes the non-required associations that the insertion
pass left out. Every model handled here must already have a complete
identity map, and so must every model its associations point to.

To-one fields are overwritten on the persisted record. To-many fields
are attached one target at a time, so re-running the pass never removes
links that already exist.
"""

import logging
from typing import Any

from database.seeds.common import AssociationRegistry, ModelState
from database.seeds.seeders.base import BaseSeeder
from shared.errors import DependencyError, OrderingError, SeedError, StoreError, ValidationError

logger = logging.getLogger(__name__)


class AssociationResolver(BaseSeeder):
    """Seeder for the deferred association pass."""

    async def resolve(self, models: list[str]) -> None:
        """Resolve deferred associations of each model in the given order."""
        for model in models:
            await self.resolve_model(model)

    async def resolve_model(self, model: str) -> bool:
        """
        Write every deferred association of a seeded model.

        Returns:
            True when every record was updated, False when the model failed
            and the error policy allows the run to go on.

        Raises:
            OrderingError / OutOfBoundsError: always
            StoreError / ValidationError / DependencyError: under the ABORT policy
        """
        self.reset_stats()
        run = self.run

        if model not in run.identity_map:
            self.fail_fatal(
                OrderingError(
                    "Model has not been seeded in this run; cannot resolve its associations",
                    model=model,
                )
            )

        deferred: AssociationRegistry = {
            alias: descriptor
            for alias, descriptor in run.registries[model].items()
            if not descriptor.required
        }

        run.transition(model, ModelState.RESOLVING)
        for position, record in enumerate(run.fixtures.collection(model), start=1):
            present = {
                alias: descriptor
                for alias, descriptor in deferred.items()
                if record.get(alias) is not None
            }
            if not present:
                continue
            try:
                await self._resolve_record(model, position, record, present)
            except OrderingError as exc:
                self.fail_fatal(exc.with_context(model=model, position=position))
            except (StoreError, ValidationError, DependencyError) as exc:
                # Resolution of this model stops here; no automatic retry
                self.handle_failure(exc.with_context(model=model, position=position))
                return False

        run.report.updated[model] = self.stats["updated"]
        run.transition(model, ModelState.RESOLVED)
        self.log_summary(model)
        return True

    async def _resolve_record(
        self,
        model: str,
        position: int,
        record: dict[str, Any],
        associations: AssociationRegistry,
    ) -> None:
        """Read, patch and persist one record before touching the next."""
        identity_map = self.run.identity_map
        record_id = identity_map.resolve(model, position)

        # Resolve everything first so a bad reference writes nothing
        resolved: dict[str, Any] = {}
        for alias, descriptor in associations.items():
            try:
                self.check_target(descriptor)
                resolved[alias] = identity_map.resolve_reference(descriptor, record[alias])
            except SeedError as exc:
                raise exc.with_context(alias=alias)

        persisted = await self.store.fetch_by_id(model, record_id)

        to_one = {
            alias: value
            for alias, value in resolved.items()
            if not associations[alias].is_to_many
        }
        if to_one:
            persisted.update(to_one)
            await self.store.update(model, record_id, persisted)
            for alias in to_one:
                self.log_updated(model, position, alias)

        for alias, target_ids in resolved.items():
            if not associations[alias].is_to_many:
                continue
            for target_id in target_ids:
                try:
                    await self.store.attach(model, record_id, alias, target_id)
                except StoreError as exc:
                    raise exc.with_context(alias=alias)
            self.log_updated(model, position, alias)
