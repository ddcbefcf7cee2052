from __future__ import annotations

import pytest

from entity_importer.config import (ImporterConfig, Settings,
                                    get_default_date_format,
                                    set_default_date_format)
from entity_importer.importer import RecordImporter
from entity_importer.models import DEFAULT_DATE_FORMAT

ENV_VARS = (
    "IMPORT_DATABASE_URL",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "POSTGRES_DB",
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "IMPORT_MODELS",
    "IMPORT_ENTITY_KIND",
    "IMPORT_SOURCE",
    "IMPORT_DEFAULT_DATE_FORMAT",
    "IMPORT_APPLY_SCHEMA",
    "DATABASE_CONNECT_TIMEOUT",
    "HTTP_TIMEOUT",
    "HTTP_MAX_RETRIES",
    "HTTP_BACKOFF_FACTOR",
    "HTTP_BACKOFF_MAX",
    "LOG_LEVEL",
)


@pytest.fixture()
def clean_env(monkeypatch):
    monkeypatch.setattr("entity_importer.config.load_dotenv", lambda: None)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("IMPORT_MODELS", "app.models:Base")
    monkeypatch.setenv("IMPORT_ENTITY_KIND", "Department")
    monkeypatch.setenv("IMPORT_SOURCE", "departments.json")
    return monkeypatch


def test_default_date_format_is_snapshotted_by_importers(registry):
    before = RecordImporter(registry)
    try:
        set_default_date_format("dd.MM.yyyy")
        after = RecordImporter(registry)

        assert get_default_date_format() == "dd.MM.yyyy"
        assert after.config.default_date_format == "dd.MM.yyyy"
        assert before.config.default_date_format == DEFAULT_DATE_FORMAT
    finally:
        set_default_date_format(DEFAULT_DATE_FORMAT)


def test_empty_default_date_format_is_rejected():
    with pytest.raises(ValueError):
        set_default_date_format("")
    assert get_default_date_format() == DEFAULT_DATE_FORMAT


def test_settings_from_env(clean_env):
    clean_env.setenv("IMPORT_DATABASE_URL", "sqlite:///import.db")
    clean_env.setenv("IMPORT_APPLY_SCHEMA", "yes")
    clean_env.setenv("HTTP_MAX_RETRIES", "5")
    clean_env.setenv("HTTP_TIMEOUT", "not-a-number")
    clean_env.setenv("IMPORT_DEFAULT_DATE_FORMAT", "yyyy-MM-dd")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.database_url == "sqlite:///import.db"
    assert settings.entity_kind == "Department"
    assert settings.apply_schema is True
    assert settings.http_max_retries == 5
    assert settings.http_timeout == 30.0
    assert settings.log_level == "DEBUG"
    assert settings.importer_config() == ImporterConfig(default_date_format="yyyy-MM-dd")


def test_settings_compose_postgres_url(clean_env):
    clean_env.setenv("POSTGRES_USER", "importer")
    clean_env.setenv("POSTGRES_PASSWORD", "secret")
    clean_env.setenv("POSTGRES_DB", "records")
    clean_env.setenv("POSTGRES_HOST", "db")

    settings = Settings.from_env()

    assert settings.database_url == "postgresql+psycopg://importer:secret@db:5432/records"
    assert settings.apply_schema is False


def test_settings_require_database(clean_env):
    with pytest.raises(RuntimeError):
        Settings.from_env()


def test_settings_require_import_target(clean_env):
    clean_env.setenv("IMPORT_DATABASE_URL", "sqlite://")
    clean_env.delenv("IMPORT_SOURCE")

    with pytest.raises(RuntimeError, match="IMPORT_SOURCE"):
        Settings.from_env()
