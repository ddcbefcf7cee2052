from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple

DEFAULT_DATE_FORMAT = "yyyy-MM-dd'T'HH:mm:ssZZZZZ"
DEFAULT_DB_CONNECT_TIMEOUT = 60.0
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_HTTP_MAX_RETRIES = 3
DEFAULT_HTTP_BACKOFF_FACTOR = 1.0
DEFAULT_HTTP_BACKOFF_MAX = 30.0


class NativeType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    BINARY = "binary"

    @property
    def is_number(self) -> bool:
        return self in (NativeType.INTEGER, NativeType.DECIMAL, NativeType.FLOAT)


class Cardinality(str, Enum):
    TO_ONE = "to-one"
    TO_MANY = "to-many"


class MergePolicy(str, Enum):
    REPLACE = "Replace"
    MERGE = "Merge"
    MERGE_AND_PRUNE = "MergeAndPrune"


@dataclass(frozen=True)
class AttributeSpec:
    name: str
    native_type: NativeType
    import_key: str = ""
    date_format: Optional[str] = None
    is_primary_key: bool = False

    def __post_init__(self) -> None:
        if not self.import_key:
            object.__setattr__(self, "import_key", self.name)


@dataclass(frozen=True)
class RelationshipSpec:
    name: str
    target: str
    cardinality: Cardinality
    import_key: str = ""
    merge_policy: MergePolicy = MergePolicy.REPLACE
    owns_related: bool = False

    def __post_init__(self) -> None:
        if not self.import_key:
            object.__setattr__(self, "import_key", self.name)

    @property
    def is_to_many(self) -> bool:
        return self.cardinality is Cardinality.TO_MANY


@dataclass(frozen=True)
class EntityKind:
    """Import mapping for one persistent entity type."""

    name: str
    model_class: Any
    attributes: Tuple[AttributeSpec, ...] = ()
    relationships: Tuple[RelationshipSpec, ...] = field(default_factory=tuple)

    @property
    def primary_key(self) -> Optional[AttributeSpec]:
        for attribute in self.attributes:
            if attribute.is_primary_key:
                return attribute
        return None

    def attribute(self, name: str) -> Optional[AttributeSpec]:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        return None

    def relationship(self, name: str) -> Optional[RelationshipSpec]:
        for relationship in self.relationships:
            if relationship.name == name:
                return relationship
        return None
