from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import event
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .coercion import ValueCoercer
from .errors import AllocationFailure, CoercionFailure
from .models import AttributeSpec, EntityKind, RelationshipSpec

LOGGER = logging.getLogger("entity_importer.persistence")

PENDING_INDEX_KEY = "entity_importer.pending"


def _clear_pending_index(session: Session, flush_context: Any) -> None:
    # Flushed instances are persistent and are found by query from now on.
    session.info.get(PENDING_INDEX_KEY, {}).clear()


class SessionStore:
    """Create, find and mutate instances through a SQLAlchemy session."""

    def __init__(self, session: Session, coercer: ValueCoercer) -> None:
        self.session = session
        self._coercer = coercer

    def resolve_instance(
        self, kind: EntityKind, record: Mapping[str, Any], check_existing: bool
    ) -> Any:
        """Return the existing instance matching ``record`` or a new one."""
        primary_key = kind.primary_key
        if not check_existing or primary_key is None:
            return self.create(kind)

        raw_key = record.get(primary_key.import_key)
        if raw_key is None:
            return self.create(kind)
        try:
            key_value = self._coercer.coerce(raw_key, primary_key)
        except CoercionFailure as exc:
            LOGGER.warning("Cannot match %s by primary key: %s", kind.name, exc)
            return self.create(kind)

        existing = self.find(kind, primary_key.name, key_value)
        if existing is not None:
            return existing
        return self.create(kind)

    def create(self, kind: EntityKind) -> Any:
        try:
            instance = kind.model_class()
            self.session.add(instance)
        except (SQLAlchemyError, TypeError) as exc:
            raise AllocationFailure(f"Cannot create {kind.name}: {exc}") from exc
        LOGGER.debug("Created new %s", kind.name)
        return instance

    def find(self, kind: EntityKind, attribute: str, value: Any) -> Optional[Any]:
        """Find an instance of ``kind`` whose ``attribute`` equals ``value``.

        Pending instances whose key was assigned through this store are
        matched from the session's pending index first, so they are found
        without flushing half-populated rows.
        """
        model_class = kind.model_class
        pending = self._pending_index.get((kind.name, value))
        if pending is not None:
            if sa_inspect(pending).pending and getattr(pending, attribute) == value:
                return pending
            del self._pending_index[(kind.name, value)]

        statement = select(model_class).where(getattr(model_class, attribute) == value)
        try:
            with self.session.no_autoflush:
                return self.session.scalars(statement).first()
        except SQLAlchemyError as exc:
            raise AllocationFailure(
                f"Cannot fetch {kind.name} where {attribute}={value!r}: {exc}"
            ) from exc

    def set_value(
        self, kind: EntityKind, instance: Any, attribute: AttributeSpec, value: Any
    ) -> None:
        setattr(instance, attribute.name, value)
        if attribute.is_primary_key and value is not None:
            self._pending_index[(kind.name, value)] = instance

    @property
    def _pending_index(self) -> Dict[Tuple[str, Any], Any]:
        index = self.session.info.get(PENDING_INDEX_KEY)
        if index is None:
            index = self.session.info[PENDING_INDEX_KEY] = {}
            event.listen(self.session, "after_flush_postexec", _clear_pending_index)
        return index

    def related(self, instance: Any, relationship: RelationshipSpec) -> List[Any]:
        with self.session.no_autoflush:
            value = getattr(instance, relationship.name)
        if relationship.is_to_many:
            return list(value or ())
        return [] if value is None else [value]

    def set_related(
        self, instance: Any, relationship: RelationshipSpec, final: Sequence[Any]
    ) -> None:
        """Assign the reconciled related set.

        Instances dropped from the collection become orphans; the ORM deletes
        them on flush when the relationship cascades ``delete-orphan``.
        """
        with self.session.no_autoflush:
            if not relationship.is_to_many:
                setattr(instance, relationship.name, final[0] if final else None)
                return
            current = getattr(instance, relationship.name)
            if isinstance(current, (set, frozenset)):
                setattr(instance, relationship.name, set(final))
            else:
                setattr(instance, relationship.name, list(final))
