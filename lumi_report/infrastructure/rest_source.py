"""Infrastructure adapter for the Firebase and Supabase REST backends."""

from __future__ import annotations

import logging
from typing import Any

import requests

from lumi_report.ingestion import rows_from_payload

logger = logging.getLogger(__name__)

SUPABASE_PAGE_SIZE = 1000


class SourceError(Exception):
    """A backend call failed: unreachable, non-2xx or undecodable."""


class RestClient:
    """Thin JSON-over-HTTP client; ``retries`` extra attempts after the first."""

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = 15.0,
        retries: int = 0,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.retries = retries

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        attempts = self.retries + 1
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
                response.raise_for_status()
                return response
            except requests.RequestException as exc:
                last_error = exc
                logger.debug("%s %s failed (attempt %d/%d): %s", method, url, attempt, attempts, exc)
        raise SourceError(f"{method} {url} failed: {last_error}") from last_error

    @staticmethod
    def _decode(response: requests.Response, method: str, url: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SourceError(f"{method} {url} returned invalid JSON") from exc

    def get_json(self, url: str, **kwargs: Any) -> Any:
        response = self._request("GET", url, **kwargs)
        return self._decode(response, "GET", url)

    def send_json(self, method: str, url: str, payload: Any = None, **kwargs: Any) -> Any:
        method = method.upper()
        if payload is not None:
            kwargs["json"] = payload
        response = self._request(method, url, **kwargs)
        return self._decode(response, method, url)

    def fetch_rows(self, url: str) -> list[dict[str, Any]]:
        return rows_from_payload(self.get_json(url))


def entity_url(collection_url: str, entity_id: str) -> str:
    """``<base>/ChangeLog.json`` + ``abc`` -> ``<base>/ChangeLog/abc.json``."""
    base = collection_url[: -len(".json")] if collection_url.endswith(".json") else collection_url.rstrip("/")
    return f"{base}/{entity_id}.json"


def firebase_rows_with_ids(payload: Any) -> list[dict[str, Any]]:
    """Object-of-objects payloads keep their push keys as ``id``."""
    if isinstance(payload, dict) and not isinstance(payload.get("data"), list):
        rows: list[dict[str, Any]] = []
        for key, value in payload.items():
            if isinstance(value, dict):
                rows.append({**value, "id": str(key)})
        return rows
    rows = rows_from_payload(payload)
    return [{**row, "id": str(row.get("id", idx))} for idx, row in enumerate(rows)]


class SupabaseTable:
    """PostgREST reader for one table, paging past the server row limit."""

    def __init__(self, client: RestClient, base_url: str, api_key: str, table: str) -> None:
        self.client = client
        self.url = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self.headers = {"apikey": api_key, "Authorization": f"Bearer {api_key}"}

    def fetch_all(self, order_col: str = "id", page_size: int = SUPABASE_PAGE_SIZE) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        offset = 0
        while True:
            headers = {**self.headers, "Range-Unit": "items", "Range": f"{offset}-{offset + page_size - 1}"}
            batch = self.client.get_json(self.url, params={"select": "*", "order": order_col}, headers=headers)
            if not isinstance(batch, list):
                raise SourceError(f"GET {self.url} returned {type(batch).__name__}, expected a list")
            rows.extend(row for row in batch if isinstance(row, dict))
            if len(batch) < page_size:
                break
            offset += page_size
        return rows
