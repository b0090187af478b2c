"""
Fixture Store - parsed fixture collections keyed by model name.

A fixture directory holds one JSON file per model. The model name is the
file name up to the first dot, lower-cased (`Author.json` -> `author`,
`book.fixtures.json` -> `book`). Files are read in sorted name order and
that order is the default model processing order.

Each file contains a JSON array of records. A record's 1-based position in
the array is how other fixtures refer to it:

    // book.json
    [{"title": "X", "author": 1}, {"title": "Y", "author": 2}]
"""

import copy
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from shared.errors import ValidationError

logger = logging.getLogger(__name__)

FIXTURE_EXTENSIONS = (".json",)


def model_name_from_path(path: Path) -> str:
    """`fixtures/Book.json` -> `book`."""
    return path.name.split(".")[0].lower()


class FixtureStore:
    """In-memory holder of fixture collections, in discovery order."""

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = {}
        for model, collection in (data or {}).items():
            self._data[model.lower()] = copy.deepcopy(collection)

    @classmethod
    def from_directory(cls, source: str | Path) -> "FixtureStore":
        """
        Load every fixture file of a directory.

        Args:
            source: Directory containing <model>.json files

        Returns:
            FixtureStore with one collection per file

        Raises:
            ValidationError: directory missing or a file is not valid JSON
        """
        directory = Path(source)
        if not directory.is_dir():
            raise ValidationError(
                f"Fixture directory not found: {directory}",
                context={"source": str(directory)},
            )

        data: dict[str, Any] = {}
        for path in sorted(directory.iterdir()):
            if not path.is_file() or path.suffix.lower() not in FIXTURE_EXTENSIONS:
                continue
            model = model_name_from_path(path)
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data[model] = json.load(f)
            except (OSError, json.JSONDecodeError) as exc:
                raise ValidationError(
                    f"Cannot read fixture file {path.name}: {exc}",
                    model=model,
                    context={"source": str(path)},
                ) from exc
            logger.info(f"Loaded fixture file {path.name} for model '{model}'")

        return cls(data)

    @property
    def model_names(self) -> list[str]:
        """Model names in discovery order."""
        return list(self._data)

    def __contains__(self, model: str) -> bool:
        return model in self._data

    def collection(self, model: str) -> list[dict[str, Any]]:
        """
        The validated fixture collection of a model.

        Raises:
            ValidationError: no collection, not a list, empty, or a record
                that is not a mapping
        """
        if model not in self._data:
            raise ValidationError(
                "No fixture collection defined for this model", model=model
            )

        collection = self._data[model]
        if not isinstance(collection, list):
            raise ValidationError(
                f"Fixture collection must be a list, got {type(collection).__name__}",
                model=model,
            )
        if not collection:
            raise ValidationError("Fixture collection is empty", model=model)

        for position, record in enumerate(collection, start=1):
            if not isinstance(record, Mapping):
                raise ValidationError(
                    f"Fixture record must be an object, got {type(record).__name__}",
                    model=model,
                    position=position,
                )
        return collection
