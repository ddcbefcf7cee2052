from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from sqlalchemy import Column
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import types as sa_types
from sqlalchemy.exc import NoInspectionAvailable

from .date_format import compile_pattern
from .errors import SchemaDefinitionError
from .models import (AttributeSpec, Cardinality, EntityKind, MergePolicy,
                     NativeType, RelationshipSpec)

LOGGER = logging.getLogger("entity_importer.schema")


class AttributeAnnotations(BaseModel):
    """Import annotations read from a column's ``info`` dictionary."""

    import_name: Optional[str] = None
    date_format: Optional[str] = None
    primary_key: bool = False

    model_config = ConfigDict(extra="ignore")

    @field_validator("import_name")
    @classmethod
    def _non_empty(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("import_name must not be empty")
        return value

    @field_validator("date_format")
    @classmethod
    def _compiles(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            compile_pattern(value)
        return value


class RelationshipAnnotations(BaseModel):
    """Import annotations read from a relationship's ``info`` dictionary."""

    import_name: Optional[str] = None
    merge_policy: MergePolicy = MergePolicy.REPLACE

    model_config = ConfigDict(extra="ignore")

    @field_validator("import_name")
    @classmethod
    def _non_empty(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("import_name must not be empty")
        return value


def kind_name(model_class: Any) -> str:
    return model_class.__name__


def map_type(column_type: Any) -> Optional[NativeType]:
    if isinstance(column_type, sa_types.TypeDecorator):
        column_type = column_type.impl_instance
    if isinstance(column_type, sa_types.Boolean):
        return NativeType.BOOLEAN
    if isinstance(column_type, sa_types.Integer):
        return NativeType.INTEGER
    if isinstance(column_type, sa_types.Float):
        return NativeType.FLOAT
    if isinstance(column_type, sa_types.Numeric):
        return NativeType.DECIMAL
    if isinstance(column_type, (sa_types.DateTime, sa_types.Date)):
        return NativeType.DATE
    if isinstance(column_type, sa_types.LargeBinary):
        return NativeType.BINARY
    if isinstance(column_type, sa_types.String):
        return NativeType.STRING
    return None


def _annotations(model: type[BaseModel], info: Dict[str, Any], where: str):
    try:
        return model.model_validate(info)
    except ValidationError as exc:
        raise SchemaDefinitionError(
            f"Invalid import annotations on {where}: {exc}"
        ) from exc


def build_entity_kind(model_class: Any) -> EntityKind:
    """Derive the import mapping of a SQLAlchemy mapped class."""
    try:
        mapper = sa_inspect(model_class)
    except NoInspectionAvailable as exc:
        raise SchemaDefinitionError(f"{model_class!r} is not a mapped class") from exc

    name = kind_name(model_class)
    attributes: List[AttributeSpec] = []
    for prop in mapper.column_attrs:
        column = prop.columns[0]
        if len(prop.columns) != 1 or not isinstance(column, Column):
            LOGGER.debug("Skipping computed attribute %s.%s", name, prop.key)
            continue
        native_type = map_type(column.type)
        if native_type is None:
            LOGGER.debug(
                "Skipping %s.%s with unsupported type %s", name, prop.key, column.type
            )
            continue
        info = {**column.info, **prop.info}
        annotations = _annotations(AttributeAnnotations, info, f"{name}.{prop.key}")
        if annotations.date_format and native_type is not NativeType.DATE:
            raise SchemaDefinitionError(
                f"{name}.{prop.key} declares a date_format but is not a date column"
            )
        attributes.append(
            AttributeSpec(
                name=prop.key,
                native_type=native_type,
                import_key=annotations.import_name or prop.key,
                date_format=annotations.date_format,
                is_primary_key=annotations.primary_key,
            )
        )

    primary_keys = [attribute.name for attribute in attributes if attribute.is_primary_key]
    if len(primary_keys) > 1:
        raise SchemaDefinitionError(
            f"{name} declares more than one import primary key: {', '.join(primary_keys)}"
        )

    relationships: List[RelationshipSpec] = []
    for rel in mapper.relationships:
        if rel.viewonly:
            LOGGER.debug("Skipping view-only relationship %s.%s", name, rel.key)
            continue
        annotations = _annotations(
            RelationshipAnnotations, dict(rel.info), f"{name}.{rel.key}"
        )
        relationships.append(
            RelationshipSpec(
                name=rel.key,
                target=kind_name(rel.mapper.class_),
                cardinality=Cardinality.TO_MANY if rel.uselist else Cardinality.TO_ONE,
                import_key=annotations.import_name or rel.key,
                merge_policy=annotations.merge_policy,
                owns_related=bool(rel.cascade.delete_orphan),
            )
        )

    LOGGER.debug(
        "Built entity kind %s (%s attributes, %s relationships, primary key %s)",
        name,
        len(attributes),
        len(relationships),
        primary_keys[0] if primary_keys else None,
    )
    return EntityKind(
        name=name,
        model_class=model_class,
        attributes=tuple(attributes),
        relationships=tuple(relationships),
    )
