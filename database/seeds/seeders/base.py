"""
Barrels Base Seeder.

Provides common functionality for the insertion and association passes:
- Uniform logging format
- Statistics tracking
- The per-item failure policy
"""

import logging
from typing import NoReturn

from database.seeds.common import AssociationDescriptor, ModelState
from database.seeds.context import SeedRun
from database.store.base import StoreCapability
from shared.config import ErrorPolicy
from shared.errors import DependencyError, SeedError, get_error_logger

logger = logging.getLogger(__name__)


class BaseSeeder:
    """
    Base class for seeding passes with common functionality.

    Provides:
    - Consistent logging format
    - Statistics tracking (created, updated, skipped)
    - Error policy handling (abort or record-and-continue)
    """

    def __init__(
        self,
        store: StoreCapability,
        run: SeedRun,
        error_policy: ErrorPolicy = ErrorPolicy.ABORT,
        *,
        abort_on_invalid_collection: bool = False,
    ):
        """
        Initialize the seeder.

        Args:
            store: Store capability receiving the fixtures
            run: Context of the current seeding run
            error_policy: What to do after a per-item failure
            abort_on_invalid_collection: Raise when a model's fixture
                collection is missing or empty instead of failing only
                that model
        """
        self.store = store
        self.run = run
        self.error_policy = error_policy
        self.abort_on_invalid_collection = abort_on_invalid_collection
        self.stats = {
            "created": 0,
            "updated": 0,
            "skipped": 0,
        }

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        self.stats = {"created": 0, "updated": 0, "skipped": 0}

    def log_created(self, model: str, position: int) -> None:
        """Log a created record."""
        self.stats["created"] += 1
        logger.info(
            f"  + {model} #{position}: Created",
            extra={"model": model, "position": position},
        )

    def log_updated(self, model: str, position: int, alias: str) -> None:
        """Log an association written on a persisted record."""
        self.stats["updated"] += 1
        logger.info(
            f"  ~ {model} #{position}.{alias}: Updated",
            extra={"model": model, "position": position, "alias": alias},
        )

    def log_skipped(self, model: str) -> None:
        """Log a model the store does not know."""
        self.stats["skipped"] += 1
        logger.warning(f"  - {model}: Skipped (unknown to the store)", extra={"model": model})

    def log_summary(self, model: str) -> None:
        """Log a summary of operations."""
        logger.info(
            f"  {model}: {self.stats['created']} created, "
            f"{self.stats['updated']} updated, {self.stats['skipped']} skipped",
            extra={"model": model},
        )

    def fail_fatal(self, error: SeedError) -> NoReturn:
        """Record a failure that ends the run whatever the error policy."""
        log_ref = get_error_logger().log_error(error)
        self.run.record_error(error, log_ref)
        raise error

    def handle_failure(self, error: SeedError) -> None:
        """
        Record a failure in the run report, then apply the error policy.

        Re-raises under ABORT; returns normally under CONTINUE so the
        caller can move on to the next model.
        """
        log_ref = get_error_logger().log_error(error)
        self.run.record_error(error, log_ref)
        if self.error_policy is ErrorPolicy.ABORT:
            raise error

    def fail_model(self, error: SeedError) -> None:
        """
        Record a failure scoped to one model, such as an invalid collection.

        The run goes on with the next model unless the caller asked to
        abort on invalid collections.
        """
        log_ref = get_error_logger().log_error(error)
        self.run.record_error(error, log_ref)
        if self.abort_on_invalid_collection:
            raise error

    def check_target(self, descriptor: AssociationDescriptor) -> None:
        """
        Refuse references to a model that failed or was skipped in this run.

        Raises:
            DependencyError: the target has no identity map because it
                failed or is unknown to the store
        """
        target = descriptor.target_model
        state = self.run.state(target)
        if target in self.run.identity_map or state not in (ModelState.FAILED, ModelState.SKIPPED):
            return
        raise DependencyError(
            f"Target model '{target}' {state.value} earlier in this run",
            alias=descriptor.alias,
            context={"target_model": target, "target_state": state.value},
        )
