"""Metadata-driven import of nested records into SQLAlchemy object graphs."""

from .config import (ImporterConfig, get_default_date_format,
                     set_default_date_format)
from .errors import (AllocationFailure, CoercionFailure, DateFormatMismatch,
                     EntityImportError, MissingPrimaryKey,
                     SchemaDefinitionError, UnknownEntityKind)
from .importer import RecordImporter
from .merge import merge_related
from .models import (AttributeSpec, Cardinality, EntityKind, MergePolicy,
                     NativeType, RelationshipSpec)
from .schema import EntityRegistry

__all__ = [
    "AllocationFailure",
    "AttributeSpec",
    "Cardinality",
    "CoercionFailure",
    "DateFormatMismatch",
    "EntityImportError",
    "EntityKind",
    "EntityRegistry",
    "ImporterConfig",
    "MergePolicy",
    "MissingPrimaryKey",
    "NativeType",
    "RecordImporter",
    "RelationshipSpec",
    "SchemaDefinitionError",
    "UnknownEntityKind",
    "get_default_date_format",
    "merge_related",
    "set_default_date_format",
]
