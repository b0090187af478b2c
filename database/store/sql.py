"""
SQLAlchemy store capability.

Drives any async SQLAlchemy 2.x declarative model set. Model names are
the mapped class names lower-cased ("Author" -> "author"); association
aliases are relationship attribute names.

Association metadata comes from the mappers:
- to-many when the relationship uses a collection (uselist)
- required when it is many-to-one and every local FK column is NOT NULL
"""

import importlib
import logging
from typing import Any

from sqlalchemy import delete, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapper, RelationshipDirection, RelationshipProperty, selectinload

from database.store.base import AssociationKind, AssociationSchema, InsertResult, ModelSchema
from shared.errors import ConfigurationError, StoreError

logger = logging.getLogger(__name__)


class SQLAlchemyStore:
    """
    Store capability over an async session factory and a declarative base.

    Every operation runs in its own session and commits on success, so
    a failure never leaves half-applied changes of that operation behind.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        base: type[DeclarativeBase],
    ):
        self._session_factory = session_factory
        self._base = base
        self._classes: dict[str, type] = {
            mapper.class_.__name__.lower(): mapper.class_
            for mapper in base.registry.mappers
        }

    @property
    def base(self) -> type[DeclarativeBase]:
        return self._base

    @classmethod
    def from_models_module(
        cls,
        module_path: str,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> "SQLAlchemyStore":
        """Build a store from a module exposing a declarative `Base`."""
        try:
            module = importlib.import_module(module_path)
        except ImportError as exc:
            raise ConfigurationError(
                f"Cannot import models module '{module_path}': {exc}"
            ) from exc

        base = getattr(module, "Base", None)
        if base is None or not hasattr(base, "registry"):
            raise ConfigurationError(
                f"Module '{module_path}' does not define a declarative Base"
            )
        return cls(session_factory, base)

    # ------------------------------------------------------------------
    # Mapper helpers
    # ------------------------------------------------------------------

    def _class(self, model: str) -> type:
        if model not in self._classes:
            raise StoreError(f"Unknown model '{model}'", model=model)
        return self._classes[model]

    @staticmethod
    def _mapper(model_class: type) -> Mapper:
        return inspect(model_class)

    @staticmethod
    def _fk_attribute(mapper: Mapper, rel: RelationshipProperty) -> str | None:
        """Attribute key of the FK column backing a simple many-to-one."""
        if rel.direction is not RelationshipDirection.MANYTOONE:
            return None
        columns = list(rel.local_columns)
        if len(columns) != 1:
            return None
        return mapper.get_property_by_column(columns[0]).key

    @staticmethod
    def _is_required(rel: RelationshipProperty) -> bool:
        if rel.uselist or rel.direction is not RelationshipDirection.MANYTOONE:
            return False
        return all(not column.nullable for column in rel.local_columns)

    def _model_name(self, model_class: type) -> str:
        return model_class.__name__.lower()

    @staticmethod
    def _identity(instance: Any) -> Any:
        identity = inspect(instance).identity
        return identity[0] if len(identity) == 1 else identity

    @staticmethod
    def _to_dict(instance: Any) -> dict[str, Any]:
        mapper = inspect(type(instance))
        return {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}

    async def _load_target(
        self,
        session: AsyncSession,
        model: str,
        rel: RelationshipProperty,
        target_id: Any,
    ) -> Any:
        target = await session.get(rel.mapper.class_, target_id)
        if target is None:
            raise StoreError(
                f"No {self._model_name(rel.mapper.class_)} record with id {target_id!r}",
                model=model,
                alias=rel.key,
            )
        return target

    async def _assign(
        self,
        session: AsyncSession,
        model: str,
        instance: Any,
        record: dict[str, Any],
        *,
        skip_primary_key: bool = False,
    ) -> None:
        mapper = self._mapper(type(instance))
        relationships = mapper.relationships
        columns = {attr.key for attr in mapper.column_attrs}
        primary_keys = {mapper.get_property_by_column(col).key for col in mapper.primary_key}

        for key, value in record.items():
            if key in relationships:
                rel = relationships[key]
                fk_attribute = self._fk_attribute(mapper, rel)
                if rel.uselist:
                    targets = [
                        await self._load_target(session, model, rel, target_id)
                        for target_id in (value or [])
                    ]
                    setattr(instance, key, targets)
                elif fk_attribute is not None:
                    setattr(instance, fk_attribute, value)
                elif value is None:
                    setattr(instance, key, None)
                else:
                    setattr(instance, key, await self._load_target(session, model, rel, value))
            elif key in columns:
                if skip_primary_key and key in primary_keys:
                    continue
                setattr(instance, key, value)
            else:
                raise StoreError(f"Unknown field '{key}'", model=model, alias=key)

    def _secondary_tables(self, model_class: type) -> list:
        """Association tables linking the model through a many-to-many."""
        tables = []
        for mapper in self._base.registry.mappers:
            for rel in mapper.relationships:
                if rel.secondary is None:
                    continue
                if model_class in (rel.parent.class_, rel.mapper.class_) and rel.secondary not in tables:
                    tables.append(rel.secondary)
        return tables

    # ------------------------------------------------------------------
    # StoreCapability
    # ------------------------------------------------------------------

    def has_model(self, model: str) -> bool:
        return model in self._classes

    async def truncate(self, model: str) -> None:
        model_class = self._class(model)
        async with self._session_factory() as session:
            try:
                for table in self._secondary_tables(model_class):
                    await session.execute(table.delete())
                await session.execute(delete(model_class))
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StoreError(f"Truncate failed: {exc}", model=model) from exc

    async def get_schema(self, model: str) -> ModelSchema:
        mapper = self._mapper(self._class(model))
        associations: list[AssociationSchema] = []
        for rel in mapper.relationships:
            associations.append({
                "alias": rel.key,
                "kind": (AssociationKind.TO_MANY if rel.uselist else AssociationKind.TO_ONE).value,
                "target_model": self._model_name(rel.mapper.class_),
                "required": self._is_required(rel),
            })
        return {"associations": associations}

    async def insert(self, model: str, record: dict[str, Any]) -> InsertResult:
        model_class = self._class(model)
        async with self._session_factory() as session:
            try:
                instance = model_class()
                await self._assign(session, model, instance, record)
                session.add(instance)
                await session.flush()
                assigned_id = self._identity(instance)
                stored = self._to_dict(instance)
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StoreError(f"Insert failed: {exc}", model=model) from exc
        return InsertResult(record=stored, assigned_id=assigned_id)

    async def fetch_by_id(self, model: str, record_id: Any) -> dict[str, Any]:
        model_class = self._class(model)
        async with self._session_factory() as session:
            try:
                instance = await session.get(model_class, record_id)
            except SQLAlchemyError as exc:
                raise StoreError(f"Fetch failed: {exc}", model=model) from exc
            if instance is None:
                raise StoreError(f"No {model} record with id {record_id!r}", model=model)
            return self._to_dict(instance)

    async def update(self, model: str, record_id: Any, record: dict[str, Any]) -> None:
        model_class = self._class(model)
        mapper = self._mapper(model_class)
        # Relationship values that are not plain FK writes need the current state loaded
        options = [
            selectinload(getattr(model_class, key))
            for key in record
            if key in mapper.relationships
            and self._fk_attribute(mapper, mapper.relationships[key]) is None
        ]
        async with self._session_factory() as session:
            try:
                instance = await session.get(model_class, record_id, options=options)
                if instance is None:
                    raise StoreError(f"No {model} record with id {record_id!r}", model=model)
                await self._assign(session, model, instance, record, skip_primary_key=True)
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StoreError(f"Update failed: {exc}", model=model) from exc

    async def attach(self, model: str, record_id: Any, alias: str, target_id: Any) -> None:
        model_class = self._class(model)
        mapper = self._mapper(model_class)
        rel = mapper.relationships.get(alias)
        if rel is None or not rel.uselist:
            raise StoreError(f"'{alias}' is not a to-many association", model=model, alias=alias)

        async with self._session_factory() as session:
            try:
                instance = await session.get(
                    model_class, record_id, options=[selectinload(getattr(model_class, alias))]
                )
                if instance is None:
                    raise StoreError(f"No {model} record with id {record_id!r}", model=model)
                target = await self._load_target(session, model, rel, target_id)
                collection = getattr(instance, alias)
                if target not in collection:
                    collection.append(target)
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StoreError(f"Attach failed: {exc}", model=model, alias=alias) from exc
