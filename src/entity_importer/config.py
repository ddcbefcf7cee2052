"""Configuration loading for the entity importer."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .models import (DEFAULT_DATE_FORMAT, DEFAULT_DB_CONNECT_TIMEOUT,
                     DEFAULT_HTTP_BACKOFF_FACTOR, DEFAULT_HTTP_BACKOFF_MAX,
                     DEFAULT_HTTP_MAX_RETRIES, DEFAULT_HTTP_TIMEOUT)

_default_date_format = DEFAULT_DATE_FORMAT
_default_date_format_lock = threading.Lock()


def get_default_date_format() -> str:
    """Return the process-wide date pattern new importers start from."""
    return _default_date_format


def set_default_date_format(date_format: str) -> None:
    """Change the process-wide date pattern.

    Importers snapshot the value when they are constructed, so the change only
    affects importers created afterwards.
    """
    global _default_date_format
    if not date_format:
        raise ValueError("Default date format must not be empty")
    with _default_date_format_lock:
        _default_date_format = date_format


@dataclass(frozen=True)
class ImporterConfig:
    default_date_format: str = DEFAULT_DATE_FORMAT

    @classmethod
    def from_defaults(cls) -> "ImporterConfig":
        return cls(default_date_format=get_default_date_format())


def _int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def _bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    models: str
    entity_kind: str
    source: str
    default_date_format: str = DEFAULT_DATE_FORMAT
    apply_schema: bool = False
    connect_timeout: float = DEFAULT_DB_CONNECT_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    http_max_retries: int = DEFAULT_HTTP_MAX_RETRIES
    http_backoff_factor: float = DEFAULT_HTTP_BACKOFF_FACTOR
    http_backoff_max: float = DEFAULT_HTTP_BACKOFF_MAX
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        database_url = os.getenv("IMPORT_DATABASE_URL")
        if not database_url:
            # Without a full URL, compose one from the individual POSTGRES_* vars.
            user = os.getenv("POSTGRES_USER")
            password = os.getenv("POSTGRES_PASSWORD")
            db = os.getenv("POSTGRES_DB")
            host = os.getenv("POSTGRES_HOST", "localhost")
            port = os.getenv("POSTGRES_PORT", "5432")
            if not (user and password and db):
                raise RuntimeError(
                    "IMPORT_DATABASE_URL or POSTGRES_USER, POSTGRES_PASSWORD and "
                    "POSTGRES_DB environment variables are required"
                )
            database_url = f"postgresql+psycopg://{user}:{password}@{host}:{port}/{db}"

        missing = [
            name
            for name in ("IMPORT_MODELS", "IMPORT_ENTITY_KIND", "IMPORT_SOURCE")
            if not (os.getenv(name) or "").strip()
        ]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        return cls(
            database_url=database_url,
            models=os.environ["IMPORT_MODELS"].strip(),
            entity_kind=os.environ["IMPORT_ENTITY_KIND"].strip(),
            source=os.environ["IMPORT_SOURCE"].strip(),
            default_date_format=os.getenv(
                "IMPORT_DEFAULT_DATE_FORMAT", DEFAULT_DATE_FORMAT
            ),
            apply_schema=_bool(os.getenv("IMPORT_APPLY_SCHEMA")),
            connect_timeout=_float(
                os.getenv("DATABASE_CONNECT_TIMEOUT"), DEFAULT_DB_CONNECT_TIMEOUT
            ),
            http_timeout=_float(os.getenv("HTTP_TIMEOUT"), DEFAULT_HTTP_TIMEOUT),
            http_max_retries=max(
                0, _int(os.getenv("HTTP_MAX_RETRIES"), DEFAULT_HTTP_MAX_RETRIES)
            ),
            http_backoff_factor=_float(
                os.getenv("HTTP_BACKOFF_FACTOR"), DEFAULT_HTTP_BACKOFF_FACTOR
            ),
            http_backoff_max=_float(
                os.getenv("HTTP_BACKOFF_MAX"), DEFAULT_HTTP_BACKOFF_MAX
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def importer_config(self) -> ImporterConfig:
        return ImporterConfig(default_date_format=self.default_date_format)
