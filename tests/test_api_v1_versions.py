# Tests for API v1 versions router.
# Created: 2026-10-19

import httpx
import pytest
from fastapi.testclient import TestClient

from dsmanager.api.deps import get_client_factory
from dsmanager.api.v1.versions import mark_latest
from dsmanager.opencloud import OpenCloudClient


@pytest.fixture
def history(upstream):
    upstream.put("Players", "user_1", {"coins": 1})
    upstream.put("Players", "user_1", {"coins": 2})
    upstream.put("Players", "user_1", {"coins": 3})
    upstream.requests.clear()
    return upstream


def _params(creds, **extra):
    return {**creds, "entryKey": "user_1", **extra}


class TestListVersions:
    """Tests for GET /api/v1/datastores/{name}/entry/versions."""

    def test_descending_marks_first_as_latest(self, client, creds, history):
        resp = client.get("/api/v1/datastores/Players/entry/versions", params=_params(creds))
        assert resp.status_code == 200
        versions = resp.json()["versions"]
        assert [v["version"] for v in versions] == ["v3", "v2", "v1"]
        assert versions[0]["isLatest"] is True
        assert all("isLatest" not in v for v in versions[1:])
        assert "data" not in resp.json()

    def test_defaults_forwarded(self, client, creds, history):
        client.get("/api/v1/datastores/Players/entry/versions", params=_params(creds))
        params = history.requests[0].url.params
        assert params["sortOrder"] == "Descending"
        assert params["limit"] == "100"
        assert params["scope"] == "global"
        assert "cursor" not in params

    def test_ascending_is_not_marked(self, client, creds, history):
        resp = client.get(
            "/api/v1/datastores/Players/entry/versions",
            params=_params(creds, sortOrder="Ascending"),
        )
        versions = resp.json()["versions"]
        assert [v["version"] for v in versions] == ["v1", "v2", "v3"]
        assert all("isLatest" not in v for v in versions)

    def test_later_pages_are_not_marked(self, client, creds, history):
        resp = client.get(
            "/api/v1/datastores/Players/entry/versions", params=_params(creds, cursor="page2")
        )
        assert history.requests[0].url.params["cursor"] == "page2"
        assert all("isLatest" not in v for v in resp.json()["versions"])

    def test_upstream_cursor_passed_back(self, test_app, creds):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "version": "08DC",
                            "deleted": False,
                            "contentLength": 12,
                            "createdTime": "2026-01-01T00:00:00Z",
                            "objectCreatedTime": "2025-12-01T00:00:00Z",
                        }
                    ],
                    "nextPageCursor": "next",
                },
            )

        test_app.dependency_overrides[get_client_factory] = lambda: (
            lambda u, t: OpenCloudClient(u, t, transport=httpx.MockTransport(handler))
        )
        resp = TestClient(test_app).get(
            "/api/v1/datastores/Players/entry/versions", params=_params(creds)
        )
        body = resp.json()
        assert body["nextPageCursor"] == "next"
        assert body["versions"][0]["version"] == "08DC"
        assert body["versions"][0]["isLatest"] is True

    def test_invalid_sort_order(self, client, creds, history):
        resp = client.get(
            "/api/v1/datastores/Players/entry/versions",
            params=_params(creds, sortOrder="Sideways"),
        )
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Invalid request")
        assert history.requests == []

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_bounds(self, client, creds, limit):
        resp = client.get(
            "/api/v1/datastores/Players/entry/versions", params=_params(creds, limit=limit)
        )
        assert resp.status_code == 400

    def test_missing_entry_key(self, client, creds):
        resp = client.get("/api/v1/datastores/Players/entry/versions", params=creds)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing entryKey"}


class TestGetVersion:
    """Tests for GET /api/v1/datastores/{name}/entry/versions/version."""

    def test_get_version(self, client, creds, history):
        resp = client.get(
            "/api/v1/datastores/Players/entry/versions/version",
            params=_params(creds, versionId="v2"),
        )
        assert resp.status_code == 200
        assert resp.json() == {"coins": 2}

    def test_version_not_found(self, client, creds, history):
        resp = client.get(
            "/api/v1/datastores/Players/entry/versions/version",
            params=_params(creds, versionId="v99"),
        )
        assert resp.status_code == 404
        assert resp.json() == {"error": "Entry version not found"}

    def test_missing_version_id(self, client, creds):
        resp = client.get(
            "/api/v1/datastores/Players/entry/versions/version", params=_params(creds)
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing versionId"}


class TestMarkLatest:
    """Unit tests for mark_latest()."""

    def test_empty(self):
        assert mark_latest([], "Descending", True) == []

    def test_does_not_mutate_input_items(self):
        first = {"version": "v2"}
        result = mark_latest([first, {"version": "v1"}], "Descending", True)
        assert result[0]["isLatest"] is True
        assert "isLatest" not in first
