"""
Association Registry construction.

Built from the store's live schema at the start of every seeding run,
never cached across runs.
"""

import logging

from pydantic import ValidationError as PydanticValidationError

from database.seeds.common import AssociationDescriptor, AssociationRegistry
from database.store.base import StoreCapability
from shared.errors import StoreError

logger = logging.getLogger(__name__)


async def build_registry(store: StoreCapability, model: str) -> AssociationRegistry:
    """
    Table of association descriptors for `model`, keyed by alias.

    Raises:
        StoreError: the schema could not be read or is malformed
    """
    schema = await store.get_schema(model)

    registry: AssociationRegistry = {}
    for entry in schema.get("associations", []):
        try:
            descriptor = AssociationDescriptor.model_validate(entry)
        except PydanticValidationError as exc:
            raise StoreError(
                f"Malformed association in schema: {exc}",
                model=model,
                context={"association": dict(entry)},
            ) from exc
        registry[descriptor.alias] = descriptor

    logger.debug(
        f"Association registry for '{model}': "
        + ", ".join(
            f"{alias}->{d.target_model}{' (required)' if d.required else ''}"
            for alias, d in registry.items()
        )
    )
    return registry
