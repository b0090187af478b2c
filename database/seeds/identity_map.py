"""
Identity Map - fixture position to store-assigned identifier.

Fixture authors reference records by their 1-based position in the target
model's file; the store assigns its own keys on insert. The identity map
records, per model, the key produced for each position so references can
be rewritten.

A model's entry is either absent (not seeded in this run) or complete:
exactly one non-null, distinct identifier per fixture record. Entries are
built privately while a model is being inserted and only become visible
to lookups once `complete()` succeeds.
"""

from typing import Any

from database.seeds.common import AssociationDescriptor
from shared.errors import OrderingError, OutOfBoundsError, ValidationError


def is_position(value: Any) -> bool:
    """Positions are plain integers; bools are rejected even though they are ints."""
    return isinstance(value, int) and not isinstance(value, bool)


def position_to_index(position: int, length: int) -> int:
    """
    Convert a 1-based fixture position into a 0-based map index.

    Raises:
        OutOfBoundsError: position is below 1 or beyond `length`
    """
    if position < 1 or position > length:
        raise OutOfBoundsError(
            f"Position {position} is out of bounds (collection has {length} records)",
            context={"reference": position, "length": length},
        )
    return position - 1


class IdentityMap:
    """Run-scoped table of store identifiers, one ordered sequence per model."""

    def __init__(self):
        self._completed: dict[str, tuple[Any, ...]] = {}
        self._building: dict[str, list[Any]] = {}
        self._seen: dict[str, set[Any]] = {}

    def __contains__(self, model: str) -> bool:
        return model in self._completed

    def __getitem__(self, model: str) -> tuple[Any, ...]:
        if model not in self._completed:
            raise OrderingError(
                f"Model '{model}' has not been seeded yet in this run; "
                "list it before the models that reference it",
                context={"target_model": model},
            )
        return self._completed[model]

    def models(self) -> list[str]:
        return list(self._completed)

    def as_dict(self) -> dict[str, list[Any]]:
        return {model: list(ids) for model, ids in self._completed.items()}

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def start(self, model: str) -> None:
        """Begin a fresh entry for `model`, dropping any previous one."""
        self._completed.pop(model, None)
        self._building[model] = []
        self._seen[model] = set()

    def append(self, model: str, identifier: Any) -> None:
        """
        Record the identifier for the next fixture position.

        Raises:
            ValueError: identifier is null or already used for this model
        """
        entries = self._building[model]
        seen = self._seen[model]
        if identifier is None:
            raise ValueError(f"Store returned no identifier for position {len(entries) + 1}")
        if identifier in seen:
            raise ValueError(
                f"Store returned identifier {identifier!r} twice "
                f"(positions {entries.index(identifier) + 1} and {len(entries) + 1})"
            )
        entries.append(identifier)
        seen.add(identifier)

    def complete(self, model: str, expected: int) -> None:
        """
        Publish the entry once every fixture record has an identifier.

        Raises:
            ValueError: number of identifiers differs from `expected`
        """
        entries = self._building.pop(model)
        self._seen.pop(model, None)
        if len(entries) != expected:
            raise ValueError(
                f"Identity map for '{model}' has {len(entries)} entries, expected {expected}"
            )
        self._completed[model] = tuple(entries)

    def discard(self, model: str) -> None:
        """Drop a partially built or completed entry."""
        self._building.pop(model, None)
        self._seen.pop(model, None)
        self._completed.pop(model, None)

    # ------------------------------------------------------------------
    # Lookups (pure)
    # ------------------------------------------------------------------

    def resolve(self, model: str, position: int) -> Any:
        """
        Identifier of the record at 1-based `position` of `model`.

        Raises:
            OrderingError: `model` has no completed entry
            OutOfBoundsError: position outside the collection
        """
        entries = self[model]
        try:
            return entries[position_to_index(position, len(entries))]
        except OutOfBoundsError as exc:
            exc.context.setdefault("target_model", model)
            raise

    def resolve_reference(self, descriptor: AssociationDescriptor, value: Any) -> Any:
        """
        Rewrite an association value from positions to identifiers.

        To-one values are a single position, to-many values a list of
        positions. None means "no association" and is returned unchanged.

        Raises:
            ValidationError: value has the wrong shape for the association kind
            OrderingError: target model not seeded yet
            OutOfBoundsError: a position is outside the target collection
        """
        if value is None:
            return None

        if descriptor.is_to_many:
            if not isinstance(value, list) or not all(is_position(item) for item in value):
                raise ValidationError(
                    f"To-many association expects a list of positions, got {value!r}",
                    alias=descriptor.alias,
                )
            return [self.resolve(descriptor.target_model, item) for item in value]

        if not is_position(value):
            raise ValidationError(
                f"To-one association expects a position, got {value!r}",
                alias=descriptor.alias,
            )
        return self.resolve(descriptor.target_model, value)
