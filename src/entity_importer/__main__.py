from __future__ import annotations

import logging
import sys

from rich.console import Console

from .config import Settings
from .db_connector import DatabaseSession
from .errors import EntityImportError, RecordSourceError
from .importer import RecordImporter
from .logging_utils import setup_logging
from .schema import EntityRegistry, load_object
from .sources import RecordFetcher, load_records

console = Console(stderr=True)
LOGGER = logging.getLogger("entity_importer")


def run_import(settings: Settings) -> int:
    base = load_object(settings.models)
    registry = EntityRegistry()
    registry.register_base(base)
    importer = RecordImporter(registry, settings.importer_config())

    with console.status("Loading records..."):
        with RecordFetcher(
            timeout=settings.http_timeout,
            max_retries=settings.http_max_retries,
            backoff_factor=settings.http_backoff_factor,
            backoff_max=settings.http_backoff_max,
        ) as fetcher:
            payload = load_records(settings.source, fetcher)

    database = DatabaseSession(settings.database_url, settings.connect_timeout)
    database.open()
    try:
        if settings.apply_schema:
            LOGGER.info("Applying database schema as requested by configuration")
            database.ensure_schema(base.metadata)

        with database.session() as session, session.begin():
            with console.status(f"Importing {settings.entity_kind} records..."):
                imported = importer.import_payload(payload, settings.entity_kind, session)
    finally:
        database.dispose()

    LOGGER.info("Import completed: %s %s instances", len(imported), settings.entity_kind)
    return len(imported)


def main() -> None:
    try:
        settings = Settings.from_env()
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        setup_logging(console=console)
        LOGGER.error("Configuration error: %s", exc)
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.log_level, console=console)
    try:
        run_import(settings)
    except RecordSourceError as exc:
        LOGGER.exception("Cannot load records from %s", settings.source)
        print(f"Source error: {exc}", file=sys.stderr)
        sys.exit(2)
    except (EntityImportError, ValueError, TypeError) as exc:
        LOGGER.exception("Import failed")
        print(f"Import failed: {exc}", file=sys.stderr)
        sys.exit(3)
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        LOGGER.exception("Import failed")
        print(f"Import failed: {exc}", file=sys.stderr)
        sys.exit(3)


if __name__ == "__main__":
    main()
