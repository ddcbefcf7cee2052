from __future__ import annotations

import logging
import time
from typing import Optional

from sqlalchemy import Engine, MetaData, create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from .models import DEFAULT_DB_CONNECT_TIMEOUT

LOGGER = logging.getLogger("entity_importer.db")


class DatabaseSession:
    """Manage the SQLAlchemy engine and the sessions imports run in."""

    def __init__(
        self, url: str, connect_timeout: float = DEFAULT_DB_CONNECT_TIMEOUT
    ) -> None:
        self._url = url
        self._connect_timeout = connect_timeout
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker[Session]] = None

    def open(self) -> Engine:
        if self._engine is not None:
            return self._engine

        deadline = time.time() + self._connect_timeout
        attempts = 0
        while True:
            attempts += 1
            try:
                LOGGER.info("Creating SQLAlchemy engine (attempt %s)", attempts)
                engine = create_engine(self._url)
                with engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                self._engine = engine
                LOGGER.info("Connected to database")
                break
            except OperationalError as exc:
                if time.time() >= deadline:
                    raise RuntimeError("Database connection timed out") from exc
                LOGGER.warning("Database not ready yet (%s), retrying...", exc)
                time.sleep(min(2 * attempts, 10))

        self._sessionmaker = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._engine

    def ensure_schema(self, metadata: MetaData) -> None:
        metadata.create_all(self.engine)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Engine not initialised; call open()")
        return self._engine

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("Engine not initialised; call open()")
        return self._sessionmaker()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
