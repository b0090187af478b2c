"""
Barrels Seeding Engine.

Insertion pass for one model at a time:
1. Validate the fixture collection
2. Build the association registry from the store schema
3. Rewrite required associations from positions to identifiers
4. Truncate the model
5. Insert records in file order, filling the identity map

Deferred (non-required) association fields are left out of the insert
payload; the AssociationResolver writes them once every model exists.
"""

import copy
import logging
from typing import Any

from database.seeds.common import AssociationRegistry, ModelState
from database.seeds.registry import build_registry
from database.seeds.seeders.base import BaseSeeder
from shared.errors import DependencyError, OrderingError, SeedError, StoreError, ValidationError
from shared.logging_config import truncate_value

logger = logging.getLogger(__name__)


class SeedingEngine(BaseSeeder):
    """
    Seeder for the insertion pass.

    Models must be seeded after every model they require; the engine never
    reorders and fails with OrderingError instead.
    """

    async def seed(self, models: list[str]) -> None:
        """Seed each model in the given order."""
        for model in models:
            await self.seed_model(model)

    async def seed_model(self, model: str) -> bool:
        """
        Clear and re-insert every fixture record of a model.

        Returns:
            True when the identity map for the model is complete, False when
            the store does not know the model or the model failed and the
            error policy allows the run to go on.

        Raises:
            OrderingError / OutOfBoundsError: always
            StoreError: truncation failed (always) or insert failed (ABORT)
            ValidationError: malformed reference (ABORT), or missing or empty
                collection when abort_on_invalid_collection is set
            DependencyError: a required target failed or was skipped (ABORT)
        """
        self.reset_stats()
        run = self.run

        if not self.store.has_model(model):
            run.transition(model, ModelState.SKIPPED)
            self.log_skipped(model)
            return False

        logger.info(f"[Barrels] Seeding {model}...", extra={"model": model})

        try:
            collection = run.fixtures.collection(model)
        except ValidationError as exc:
            self.fail_model(exc.with_context(model=model))
            return False

        try:
            registry = await build_registry(self.store, model)
            run.registries[model] = registry
            payloads = [
                self._prepare(model, position, record, registry)
                for position, record in enumerate(collection, start=1)
            ]
        except OrderingError as exc:
            self.fail_fatal(exc.with_context(model=model))
        except (ValidationError, DependencyError, StoreError) as exc:
            self.handle_failure(exc.with_context(model=model))
            return False

        logger.info(f"[Barrels] Deleting {model} from database...", extra={"model": model})
        try:
            await self.store.truncate(model)
        except StoreError as exc:
            # A partially cleared store is not safe to seed into
            self.fail_fatal(exc.with_context(model=model))
        run.transition(model, ModelState.CLEARED)

        run.identity_map.start(model)
        run.transition(model, ModelState.INSERTING)
        for position, payload in enumerate(payloads, start=1):
            logger.debug(
                f"  {model} #{position} payload: {truncate_value(payload)}",
                extra={"model": model, "position": position},
            )
            try:
                result = await self.store.insert(model, payload)
                run.identity_map.append(model, result.assigned_id)
            except StoreError as exc:
                run.identity_map.discard(model)
                self.handle_failure(exc.with_context(model=model, position=position))
                return False
            except ValueError as exc:
                run.identity_map.discard(model)
                self.handle_failure(StoreError(str(exc), model=model, position=position))
                return False
            self.log_created(model, position)

        run.identity_map.complete(model, len(payloads))
        run.report.inserted[model] = len(payloads)
        run.transition(model, ModelState.INSERTED)
        logger.info(f"[Barrels] Seeded {model} in database...", extra={"model": model})
        self.log_summary(model)
        return True

    def _prepare(
        self,
        model: str,
        position: int,
        record: dict[str, Any],
        registry: AssociationRegistry,
    ) -> dict[str, Any]:
        """Working copy of a record, ready to be sent to the store."""
        working = copy.deepcopy(dict(record))

        for alias, descriptor in registry.items():
            if alias not in working:
                continue
            if not descriptor.required:
                # Never send a raw position; the resolver writes it later
                del working[alias]
                continue
            try:
                if working[alias] is not None:
                    self.check_target(descriptor)
                working[alias] = self.run.identity_map.resolve_reference(
                    descriptor, working[alias]
                )
            except SeedError as exc:
                raise exc.with_context(model=model, position=position, alias=alias)

        return working
