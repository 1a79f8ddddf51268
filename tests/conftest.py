"""Shared fixtures: an in-memory HTTP session and settings rooted in tmp_path."""

from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from lumi_report.config import Settings
from lumi_report.infrastructure.local_store import LocalStore
from lumi_report.infrastructure.rest_source import RestClient


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, raw: bytes | None = None) -> None:
        self.status_code = status_code
        if raw is not None:
            self.content = raw
        elif payload is None:
            self.content = b""
        else:
            self.content = json.dumps(payload, ensure_ascii=False).encode("utf-8")

    def json(self) -> Any:
        return json.loads(self.content.decode("utf-8"))

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Routes ``(method, url)`` to queued responses; unrouted calls fail to connect.

    Queued items are consumed in order; the last one is repeated.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.calls: list[dict[str, Any]] = []

    def add(self, method: str, url: str, payload: Any = None, status: int = 200, raw: bytes | None = None) -> None:
        self.routes.setdefault((method.upper(), url), []).append(FakeResponse(payload, status, raw))

    def fail(self, method: str, url: str, exc: Exception | None = None) -> None:
        self.routes.setdefault((method.upper(), url), []).append(exc or requests.ConnectionError("refused"))

    def request(self, method: str, url: str, timeout: float | None = None, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        queue = self.routes.get((method.upper(), url))
        if not queue:
            raise requests.ConnectionError(f"no route for {method} {url}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def calls_for(self, method: str, url: str | None = None) -> list[dict[str, Any]]:
        return [
            call
            for call in self.calls
            if call["method"] == method and (url is None or call["url"] == url)
        ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(session):
    return RestClient(session=session, timeout=5.0)


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "store.json")


@pytest.fixture
def settings(tmp_path):
    return Settings(local_store_path=tmp_path / "store.json")
