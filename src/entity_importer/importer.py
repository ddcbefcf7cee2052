from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from .coercion import ValueCoercer
from .config import ImporterConfig
from .errors import AllocationFailure, CoercionFailure, MissingPrimaryKey
from .merge import Identity, merge_related, removed_related
from .models import AttributeSpec, EntityKind, RelationshipSpec
from .persistence import SessionStore
from .schema import EntityRegistry

LOGGER = logging.getLogger("entity_importer.importer")


def _is_record_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


class RecordImporter:
    """Import nested records into mapped instances of registered entity kinds.

    The importer only adds and mutates objects in the given session; flushing
    and committing stay with the caller, who aborts an import by rolling back.
    """

    def __init__(
        self, registry: EntityRegistry, config: Optional[ImporterConfig] = None
    ) -> None:
        self.registry = registry
        self.config = config or ImporterConfig.from_defaults()
        self.coercer = ValueCoercer(self.config)

    def import_many(
        self, records: Iterable[Any], kind: Any, session: Session
    ) -> List[Any]:
        """Upsert every record of a batch.

        When the kind declares a primary key and any record lacks a value for
        it, nothing is imported and an empty list is returned.
        """
        entity_kind = self.registry.resolve(kind)
        items = list(records)
        try:
            self.check_primary_keys(items, entity_kind)
        except MissingPrimaryKey as exc:
            LOGGER.warning(
                "Rejected batch of %s %s records: %s", len(items), entity_kind.name, exc
            )
            return []

        store = SessionStore(session, self.coercer)
        imported: List[Any] = []
        for index, record in enumerate(items):
            if not isinstance(record, Mapping):
                LOGGER.debug(
                    "Skipping %s record %s: not a mapping", entity_kind.name, index
                )
                continue
            instance = self._import_record(store, record, entity_kind, True)
            if instance is not None:
                imported.append(instance)

        LOGGER.info(
            "Imported %s of %s %s records", len(imported), len(items), entity_kind.name
        )
        return imported

    def import_one(
        self,
        record: Mapping[str, Any],
        kind: Any,
        session: Session,
        check_existing: bool = True,
    ) -> Optional[Any]:
        entity_kind = self.registry.resolve(kind)
        if not isinstance(record, Mapping):
            LOGGER.debug("Ignoring %s payload of type %s", entity_kind.name, type(record))
            return None
        store = SessionStore(session, self.coercer)
        return self._import_record(store, record, entity_kind, check_existing)

    def import_payload(self, payload: Any, kind: Any, session: Session) -> List[Any]:
        """Import a decoded document holding either one record or a list."""
        if isinstance(payload, Mapping):
            instance = self.import_one(payload, kind, session)
            return [] if instance is None else [instance]
        if _is_record_list(payload):
            return self.import_many(payload, kind, session)
        raise TypeError(f"Cannot import payload of type {type(payload).__name__}")

    def apply_values(
        self, instance: Any, values: Mapping[str, Any], session: Session
    ) -> None:
        """Assign ``values`` by literal attribute and relationship names."""
        entity_kind = self.registry.resolve_instance(instance)
        store = SessionStore(session, self.coercer)
        for key, raw in values.items():
            attribute = entity_kind.attribute(key)
            if attribute is not None:
                self._apply_attribute(store, instance, entity_kind, attribute, raw)
                continue
            relationship = entity_kind.relationship(key)
            if relationship is not None:
                self._apply_relationship(store, instance, entity_kind, relationship, raw)
                continue
            LOGGER.debug("Ignoring unknown key %r for %s", key, entity_kind.name)

    @staticmethod
    def check_primary_keys(records: Sequence[Any], kind: EntityKind) -> None:
        primary_key = kind.primary_key
        if primary_key is None:
            return
        for index, record in enumerate(records):
            if not isinstance(record, Mapping) or record.get(primary_key.import_key) is None:
                raise MissingPrimaryKey(kind.name, primary_key.import_key, index)

    def _import_record(
        self,
        store: SessionStore,
        record: Mapping[str, Any],
        kind: EntityKind,
        check_existing: bool,
    ) -> Optional[Any]:
        try:
            instance = store.resolve_instance(kind, record, check_existing)
        except AllocationFailure as exc:
            LOGGER.error("Skipping %s record: %s", kind.name, exc)
            return None

        known_keys = set()
        for attribute in kind.attributes:
            known_keys.add(attribute.import_key)
            if attribute.import_key in record:
                self._apply_attribute(
                    store, instance, kind, attribute, record[attribute.import_key]
                )
        for relationship in kind.relationships:
            known_keys.add(relationship.import_key)
            if relationship.import_key in record:
                self._apply_relationship(
                    store, instance, kind, relationship, record[relationship.import_key]
                )

        unknown = [key for key in record if key not in known_keys]
        if unknown:
            LOGGER.debug("Ignored unknown %s keys: %s", kind.name, ", ".join(map(str, unknown)))
        return instance

    def _apply_attribute(
        self,
        store: SessionStore,
        instance: Any,
        kind: EntityKind,
        attribute: AttributeSpec,
        raw: Any,
    ) -> None:
        if raw is None:
            return
        try:
            value = self.coercer.coerce(raw, attribute)
        except CoercionFailure as exc:
            LOGGER.warning("Leaving %s.%s unchanged: %s", kind.name, attribute.name, exc)
            return
        store.set_value(kind, instance, attribute, value)

    def _apply_relationship(
        self,
        store: SessionStore,
        instance: Any,
        kind: EntityKind,
        relationship: RelationshipSpec,
        payload: Any,
    ) -> None:
        if payload is None:
            return
        target = self.registry.resolve(relationship.target)

        imported: List[Any] = []
        if relationship.is_to_many:
            if not _is_record_list(payload):
                LOGGER.debug(
                    "Ignoring %s.%s: expected a list, got %s",
                    kind.name,
                    relationship.name,
                    type(payload).__name__,
                )
                return
            for item in payload:
                if not isinstance(item, Mapping):
                    continue
                related = self._import_record(store, item, target, True)
                if related is not None:
                    imported.append(related)
        else:
            if not isinstance(payload, Mapping):
                LOGGER.debug(
                    "Ignoring %s.%s: expected a mapping, got %s",
                    kind.name,
                    relationship.name,
                    type(payload).__name__,
                )
                return
            related = self._import_record(store, payload, target, True)
            if related is None:
                return
            imported.append(related)

        current = store.related(instance, relationship)
        final = merge_related(
            current,
            imported,
            relationship.cardinality,
            relationship.merge_policy,
            self._identity(target),
        )
        removed = removed_related(current, final)
        store.set_related(instance, relationship, final)
        if removed:
            LOGGER.debug(
                "%s on %s.%s disassociated %s instances%s",
                relationship.merge_policy.value,
                kind.name,
                relationship.name,
                len(removed),
                " (deleted on flush)" if relationship.owns_related else "",
            )

    @staticmethod
    def _identity(kind: EntityKind) -> Optional[Identity]:
        primary_key = kind.primary_key
        if primary_key is None:
            return None
        name = primary_key.name
        return lambda instance: getattr(instance, name)
