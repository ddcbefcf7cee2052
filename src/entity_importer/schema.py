"""Registry of entity kinds and their cached import metadata."""

from __future__ import annotations

import importlib
import logging
import threading
from typing import Any, Dict, List

from .errors import SchemaDefinitionError, UnknownEntityKind
from .models import EntityKind
from .schema_builder import build_entity_kind, kind_name

LOGGER = logging.getLogger("entity_importer.schema")


class EntityRegistry:
    """Map entity kind names to mapped classes and resolved metadata.

    Metadata is built lazily on the first :meth:`resolve` of a kind and cached
    for the lifetime of the registry. Reads are lock-free; the single write
    path is serialised so concurrent sessions resolving the same kind build it
    once.
    """

    def __init__(self) -> None:
        self._models: Dict[str, Any] = {}
        self._kinds: Dict[str, EntityKind] = {}
        self._names: Dict[Any, str] = {}
        self._lock = threading.Lock()

    def register(self, model_class: Any) -> None:
        name = kind_name(model_class)
        with self._lock:
            existing = self._models.get(name)
            if existing is not None and existing is not model_class:
                raise SchemaDefinitionError(
                    f"Entity kind {name} is already registered for {existing!r}"
                )
            self._models[name] = model_class
            self._names.setdefault(model_class, name)

    def register_base(self, base: Any) -> None:
        """Register every class mapped by a declarative base."""
        mappers = list(base.registry.mappers)
        for mapper in mappers:
            self.register(mapper.class_)
        LOGGER.info("Registered %s entity kinds from %s", len(mappers), base.__name__)

    def register_kind(self, kind: EntityKind) -> None:
        """Register an explicitly declared kind, bypassing mapper inspection.

        Instances of the kind's class resolve to this kind from now on.
        """
        with self._lock:
            self._models[kind.name] = kind.model_class
            self._kinds[kind.name] = kind
            self._names[kind.model_class] = kind.name

    def resolve(self, kind: Any) -> EntityKind:
        name = self._name_of(kind)
        cached = self._kinds.get(name)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._kinds.get(name)
            if cached is None:
                model_class = self._models.get(name)
                if model_class is None:
                    raise UnknownEntityKind(kind)
                cached = build_entity_kind(model_class)
                self._kinds[name] = cached
        return cached

    def resolve_instance(self, instance: Any) -> EntityKind:
        for cls in type(instance).__mro__:
            name = self._names.get(cls)
            if name is not None:
                return self.resolve(name)
        raise UnknownEntityKind(type(instance).__name__)

    @property
    def kind_names(self) -> List[str]:
        return sorted(self._models)

    def __contains__(self, kind: Any) -> bool:
        try:
            return self._name_of(kind) in self._models
        except UnknownEntityKind:
            return False

    @staticmethod
    def _name_of(kind: Any) -> str:
        if isinstance(kind, str):
            return kind
        if isinstance(kind, EntityKind):
            return kind.name
        if isinstance(kind, type):
            return kind_name(kind)
        raise UnknownEntityKind(kind)


def load_object(path: str) -> Any:
    """Import ``package.module:attribute``, e.g. the models' declarative base."""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Expected 'package.module:attribute', got {path!r}")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attribute)
    except AttributeError as exc:
        raise ValueError(f"{module_name} has no attribute {attribute!r}") from exc
