# Shared fixtures: isolated settings and a stub Open Cloud upstream.
# Created: 2026-10-19

from __future__ import annotations

import json
from functools import partial
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from dsmanager.api.deps import get_client_factory, get_rate_limiter
from dsmanager.api.errors import install_error_handlers
from dsmanager.config import get_settings
from dsmanager.opencloud import OpenCloudClient
from dsmanager.security.rate_limiter import SlidingWindowRateLimiter, reset_default_limiter

UNIVERSE_ID = "1234567"
API_TOKEN = "test-api-key"
STORE_ROOT = f"/datastores/v1/universes/{UNIVERSE_ID}/standard-datastores"


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    """Point config at a temp dir and drop cached settings/limiters between tests."""
    monkeypatch.setenv("DSMANAGER_CONFIG_DIR", str(tmp_path / "config"))
    get_settings.cache_clear()
    reset_default_limiter()
    yield
    get_settings.cache_clear()
    reset_default_limiter()


class FakeOpenCloud:
    """In-memory stand-in for the Open Cloud datastore endpoints.

    Entries are kept per ``(datastore, scope, key)`` as a list of versions,
    newest last.  Every request is recorded in ``requests``.
    """

    def __init__(self, datastores: list[str] | None = None):
        self.datastores = list(datastores or [])
        self.entries: dict[tuple[str, str, str], list[dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.datastores_response: Any = None
        self.fail_with: int | None = None
        self._clock = 0

    # -- helpers used by tests --------------------------------------------

    def put(self, datastore: str, key: str, value: Any, scope: str = "global") -> dict:
        self._clock += 1
        version = {
            "version": f"v{self._clock}",
            "deleted": False,
            "contentLength": len(json.dumps(value)),
            "createdTime": f"2026-01-01T00:00:{self._clock:02d}Z",
            "objectCreatedTime": f"2026-01-01T00:00:{self._clock:02d}Z",
            "value": value,
        }
        self.entries.setdefault((datastore, scope, key), []).append(version)
        if datastore not in self.datastores:
            self.datastores.append(datastore)
        return {k: v for k, v in version.items() if k != "value"}

    def latest(self, datastore: str, key: str, scope: str = "global") -> dict | None:
        versions = self.entries.get((datastore, scope, key))
        if not versions or versions[-1]["deleted"]:
            return None
        return versions[-1]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # -- request handling --------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("x-api-key") != API_TOKEN:
            return httpx.Response(401, json={"error": "Unauthorized"})
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"message": "upstream failure"})

        path = request.url.path
        if not path.startswith(STORE_ROOT):
            return httpx.Response(404, json={"message": "unknown universe"})
        route = path[len(STORE_ROOT) :]
        params = request.url.params
        store = params.get("datastoreName", "")
        scope = params.get("scope", "global")
        key = params.get("entryKey", "")

        if route == "" and request.method == "GET":
            if self.datastores_response is not None:
                return httpx.Response(200, json=self.datastores_response)
            return httpx.Response(
                200,
                json={
                    "datastores": [
                        {"name": n, "createdTime": "2025-12-31T00:00:00Z"} for n in self.datastores
                    ],
                    "nextPageCursor": "",
                },
            )
        if route == "/datastore/entries":
            prefix = params.get("prefix", "")
            keys = [
                {"scope": s, "key": k}
                for (ds, s, k) in self.entries
                if ds == store and k.startswith(prefix) and self.latest(ds, k, s)
            ]
            return httpx.Response(200, json={"keys": keys, "nextPageCursor": ""})
        if route == "/datastore/entries/entry":
            return self._entry(request, store, key, scope)
        if route == "/datastore/entries/entry/increment":
            current = self.latest(store, key, scope)
            value = (current["value"] if current else 0) + float(params["incrementBy"])
            value = int(value) if value == int(value) else value
            self.put(store, key, value, scope)
            return httpx.Response(200, json=value)
        if route == "/datastore/entries/entry/versions":
            versions = [
                {k: v for k, v in ver.items() if k != "value"}
                for ver in self.entries.get((store, scope, key), [])
            ]
            if params.get("sortOrder", "Ascending") == "Descending":
                versions.reverse()
            return httpx.Response(200, json={"data": versions, "nextPageCursor": ""})
        if route == "/datastore/entries/entry/versions/version":
            for ver in self.entries.get((store, scope, key), []):
                if ver["version"] == params.get("versionId") and not ver["deleted"]:
                    return httpx.Response(200, json=ver["value"])
            return httpx.Response(404, json={"error": "NOT_FOUND"})
        return httpx.Response(404, json={"message": "no such route"})

    def _entry(self, request, store, key, scope) -> httpx.Response:
        current = self.latest(store, key, scope)
        if request.method == "GET":
            if current is None:
                return httpx.Response(404, json={"error": "NOT_FOUND", "message": "Entry not found"})
            return httpx.Response(200, json=current["value"])
        if request.method == "POST":
            if request.url.params.get("exclusiveCreate") == "true" and current is not None:
                return httpx.Response(412, json={"error": "PRECONDITION_FAILED"})
            return httpx.Response(200, json=self.put(store, key, json.loads(request.content), scope))
        if request.method == "DELETE":
            if current is None:
                return httpx.Response(404, json={"error": "NOT_FOUND"})
            self.put(store, key, None, scope)
            self.entries[(store, scope, key)][-1]["deleted"] = True
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture
def upstream():
    return FakeOpenCloud(datastores=["Players"])


@pytest.fixture
def limiter():
    return SlidingWindowRateLimiter(interval=60.0, limit=1000)


@pytest.fixture
def test_app(upstream, limiter):
    """All v1 routers wired to the stub upstream and a private limiter."""
    from dsmanager.api.v1 import mount_v1_routers

    app = FastAPI()
    install_error_handlers(app)
    mount_v1_routers(app)
    app.dependency_overrides[get_client_factory] = lambda: partial(
        OpenCloudClient, transport=upstream.transport
    )
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


@pytest.fixture
def creds() -> dict[str, str]:
    return {"universeId": UNIVERSE_ID, "apiToken": API_TOKEN}
