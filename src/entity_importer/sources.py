"""Read raw records from local files or HTTP endpoints."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

from .errors import RecordSourceError, ResourceNotFoundError
from .models import (DEFAULT_HTTP_BACKOFF_FACTOR, DEFAULT_HTTP_BACKOFF_MAX,
                     DEFAULT_HTTP_MAX_RETRIES, DEFAULT_HTTP_TIMEOUT)

LOGGER = logging.getLogger("entity_importer.sources")

ENVELOPE_KEYS = ("results", "records", "items", "data")


class RecordFetcher:
    """HTTP client with retry and backoff for JSON record endpoints."""

    def __init__(
        self,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        max_retries: int = DEFAULT_HTTP_MAX_RETRIES,
        backoff_factor: float = DEFAULT_HTTP_BACKOFF_FACTOR,
        backoff_max: float = DEFAULT_HTTP_BACKOFF_MAX,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor
        self._backoff_max = backoff_max
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> "RecordFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch_json(self, url: str) -> Any:
        max_attempts = max(1, self._max_retries + 1)
        base_backoff = max(self._backoff_factor, 0.0) or 1.0
        backoff_ceiling = (
            self._backoff_max if self._backoff_max and self._backoff_max > 0 else float("inf")
        )
        sleep_time = base_backoff

        attempt = 0
        while attempt < max_attempts:
            attempt += 1
            try:
                LOGGER.debug("Requesting %s (attempt %s/%s)", url, attempt, max_attempts)
                response = self._client.get(url)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                preview = exc.response.text[:500]
                if status_code == 404:
                    LOGGER.warning("Resource not found at %s (preview: %s)", url, preview)
                    raise ResourceNotFoundError(str(exc)) from exc

                retryable = status_code >= 500 or status_code in {408, 429}
                if not (retryable and attempt < max_attempts):
                    LOGGER.error(
                        "HTTP %s for %s; response preview: %s", status_code, url, preview
                    )
                    raise RecordSourceError(f"HTTP {status_code} for {url}") from exc
                wait_time = min(sleep_time, backoff_ceiling)
                LOGGER.warning(
                    "HTTP %s for %s (attempt %s/%s). Retrying in %.1fs",
                    status_code,
                    url,
                    attempt,
                    max_attempts,
                    wait_time,
                )
                time.sleep(wait_time)
                sleep_time = self._next_backoff(sleep_time, base_backoff, backoff_ceiling)
            except httpx.RequestError as exc:
                if attempt >= max_attempts:
                    raise RecordSourceError(f"Network error for {url}: {exc}") from exc
                wait_time = min(sleep_time, backoff_ceiling)
                LOGGER.warning(
                    "Network error for %s (attempt %s/%s): %s. Retrying in %.1fs",
                    url,
                    attempt,
                    max_attempts,
                    exc,
                    wait_time,
                )
                time.sleep(wait_time)
                sleep_time = self._next_backoff(sleep_time, base_backoff, backoff_ceiling)
            except ValueError as exc:
                raise RecordSourceError(f"Response from {url} is not JSON: {exc}") from exc

        raise RecordSourceError(f"Failed to fetch {url} after {max_attempts} attempts")

    @staticmethod
    def _next_backoff(current: float, base: float, ceiling: float) -> float:
        next_value = max(current, base) * 2
        if ceiling > 0:
            next_value = min(next_value, ceiling)
        return max(next_value, base)


def read_file(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as fh:
            if path.suffix.lower() in {".yaml", ".yml"}:
                return yaml.safe_load(fh)
            return json.load(fh)
    except OSError as exc:
        raise RecordSourceError(f"Cannot read {path}: {exc}") from exc
    except (ValueError, yaml.YAMLError) as exc:
        raise RecordSourceError(f"Cannot decode {path}: {exc}") from exc


def extract_records(payload: Any) -> Any:
    """Unwrap ``{"results": [...]}`` style envelopes.

    Returns a list of records or a single mapping; anything else is rejected.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in ENVELOPE_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
        return payload

    preview = str(payload)
    if len(preview) > 500:
        preview = preview[:500] + "…"
    raise RecordSourceError(f"Unexpected record payload: {preview}")


def load_records(source: str, fetcher: Optional[RecordFetcher] = None) -> Any:
    if source.startswith(("http://", "https://")):
        if fetcher is None:
            with RecordFetcher() as own_fetcher:
                payload = own_fetcher.fetch_json(source)
        else:
            payload = fetcher.fetch_json(source)
    else:
        payload = read_file(Path(source))
    return extract_records(payload)
