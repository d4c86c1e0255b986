# Tests for API v1 entries router.
# Created: 2026-10-19

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def seeded(upstream):
    upstream.put("Players", "user_1", {"coins": 10})
    upstream.put("Players", "user_2", {"coins": 20})
    upstream.put("Players", "guild_1", ["user_1"])
    upstream.requests.clear()
    return upstream


class TestListEntries:
    """Tests for GET/POST /api/v1/datastores/{name}/entries."""

    def test_list_all(self, client, creds, seeded):
        resp = client.get("/api/v1/datastores/Players/entries", params=creds)
        assert resp.status_code == 200
        data = resp.json()
        assert [k["key"] for k in data["keys"]] == ["user_1", "user_2", "guild_1"]
        assert data["nextPageCursor"] == ""

    def test_search_wins_over_prefix(self, client, creds, seeded):
        resp = client.get(
            "/api/v1/datastores/Players/entries",
            params={**creds, "search": "guild", "prefix": "user"},
        )
        assert resp.status_code == 200
        assert seeded.requests[0].url.params["prefix"] == "guild"
        assert [k["key"] for k in resp.json()["keys"]] == ["guild_1"]

    def test_prefix_and_cursor_forwarded(self, client, creds, seeded):
        client.get(
            "/api/v1/datastores/Players/entries",
            params={**creds, "prefix": "user", "cursor": "abc"},
        )
        params = seeded.requests[0].url.params
        assert params["prefix"] == "user"
        assert params["cursor"] == "abc"
        assert params["limit"] == "100"

    def test_short_path_lists_entries(self, client, creds, seeded):
        resp = client.get("/api/v1/datastores/Players", params=creds)
        assert resp.status_code == 200
        assert len(resp.json()["keys"]) == 3
        assert "X-RateLimit-Limit" in resp.headers

    def test_post_body(self, client, creds, seeded):
        resp = client.post("/api/v1/datastores/Players/entries", json={**creds, "search": "user"})
        assert resp.status_code == 200
        assert [k["key"] for k in resp.json()["keys"]] == ["user_1", "user_2"]

    def test_missing_credentials(self, client, seeded):
        resp = client.get("/api/v1/datastores/Players/entries")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing universeId or apiToken"}
        assert seeded.requests == []


class TestGetEntry:
    """Tests for GET /api/v1/datastores/{name}/entry."""

    def test_get(self, client, creds, seeded):
        resp = client.get("/api/v1/datastores/Players/entry", params={**creds, "entryKey": "user_1"})
        assert resp.status_code == 200
        assert resp.json() == {"coins": 10}
        assert seeded.requests[0].url.params["scope"] == "global"

    def test_missing_entry_key(self, client, creds, seeded):
        resp = client.get("/api/v1/datastores/Players/entry", params=creds)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing entryKey"}
        assert seeded.requests == []

    def test_missing_everything(self, client):
        resp = client.get("/api/v1/datastores/Players/entry")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing universeId, apiToken, or entryKey"}

    def test_not_found(self, client, creds, seeded):
        resp = client.get("/api/v1/datastores/Players/entry", params={**creds, "entryKey": "nobody"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Entry not found"}

    def test_upstream_failure(self, client, creds, seeded):
        seeded.fail_with = 500
        resp = client.get("/api/v1/datastores/Players/entry", params={**creds, "entryKey": "user_1"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "Open Cloud API error: 500 Internal Server Error"


class TestSetEntry:
    """Tests for POST /api/v1/datastores/{name}/entry."""

    def test_set_then_get_round_trip(self, client, creds, upstream):
        value = {"inventory": ["sword", "shield"], "level": 3, "banned": False, "note": None}
        resp = client.post(
            "/api/v1/datastores/Players/entry",
            params=creds,
            json={"entryKey": "user_9", "value": value},
        )
        assert resp.status_code == 200
        assert resp.json()["version"].startswith("v")

        resp = client.get("/api/v1/datastores/Players/entry", params={**creds, "entryKey": "user_9"})
        assert resp.json() == value

    def test_falsy_values_are_allowed(self, client, creds, upstream):
        for value in (0, False, "", None, []):
            resp = client.post(
                "/api/v1/datastores/Players/entry",
                params=creds,
                json={"entryKey": "flag", "value": value},
            )
            assert resp.status_code == 200, value
            assert upstream.latest("Players", "flag")["value"] == value

    def test_missing_value(self, client, creds, upstream):
        resp = client.post(
            "/api/v1/datastores/Players/entry", params=creds, json={"entryKey": "user_9"}
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing value"}
        assert upstream.requests == []

    def test_options_forwarded(self, client, creds, upstream):
        client.post(
            "/api/v1/datastores/Players/entry",
            params=creds,
            json={
                "entryKey": "user_9",
                "value": 1,
                "scope": "beta",
                "matchVersion": "v7",
                "exclusiveCreate": False,
            },
        )
        params = upstream.requests[0].url.params
        assert params["scope"] == "beta"
        assert params["matchVersion"] == "v7"
        assert params["exclusiveCreate"] == "false"

    def test_exclusive_create_conflict(self, client, creds, seeded):
        resp = client.post(
            "/api/v1/datastores/Players/entry",
            params=creds,
            json={"entryKey": "user_1", "value": {}, "exclusiveCreate": True},
        )
        assert resp.status_code == 412
        assert "error" in resp.json()

    def test_credentials_in_body(self, client, creds, upstream):
        resp = client.post(
            "/api/v1/datastores/Players/entry",
            json={**creds, "entryKey": "user_9", "value": 5},
        )
        assert resp.status_code == 200

    def test_malformed_json_is_400(self, client, creds):
        resp = client.post(
            "/api/v1/datastores/Players/entry",
            params=creds,
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Invalid request")


class TestDeleteEntry:
    """Tests for DELETE /api/v1/datastores/{name}/entry."""

    def test_delete(self, client, creds, seeded):
        resp = client.delete(
            "/api/v1/datastores/Players/entry", params={**creds, "entryKey": "user_1"}
        )
        assert resp.status_code == 200
        assert resp.json() == {"deleted": True, "entryKey": "user_1"}
        assert seeded.latest("Players", "user_1") is None

    def test_delete_missing_key(self, client, creds):
        resp = client.delete("/api/v1/datastores/Players/entry", params=creds)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing entryKey"}


class TestIncrementEntry:
    """Tests for POST /api/v1/datastores/{name}/entry/increment."""

    def test_increment(self, client, creds, upstream):
        upstream.put("Stats", "visits", 10)
        resp = client.post(
            "/api/v1/datastores/Stats/entry/increment",
            params=creds,
            json={"entryKey": "visits", "incrementBy": 5},
        )
        assert resp.status_code == 200
        assert resp.json() == 15

    def test_increment_by_zero_is_not_missing(self, client, creds, upstream):
        upstream.put("Stats", "visits", 10)
        resp = client.post(
            "/api/v1/datastores/Stats/entry/increment",
            params=creds,
            json={"entryKey": "visits", "incrementBy": 0},
        )
        assert resp.status_code == 200
        assert resp.json() == 10

    def test_missing_increment(self, client, creds):
        resp = client.post(
            "/api/v1/datastores/Stats/entry/increment", params=creds, json={"entryKey": "visits"}
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing incrementBy"}


class TestUnexpectedErrors:
    """Local failures are reported as 500 {error}."""

    def test_unexpected_exception(self, test_app, creds):
        from dsmanager.api.deps import get_client_factory

        def broken_factory(universe_id, api_token):
            raise RuntimeError("client construction failed")

        test_app.dependency_overrides[get_client_factory] = lambda: broken_factory
        # No exception escapes to the server layer.
        client = TestClient(test_app)
        resp = client.get("/api/v1/datastores/Players/entry", params={**creds, "entryKey": "k"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "client construction failed"}


class TestRoutingErrors:
    """Unmatched paths and methods still answer with the {error} envelope."""

    def test_encoded_slash_in_name_is_404_envelope(self, client, creds, upstream):
        resp = client.get("/api/v1/datastores/a%2Fb/entries", params=creds)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found"}
        assert upstream.requests == []

    def test_unknown_route(self, client):
        resp = client.get("/api/v1/nothing-here")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found"}

    def test_wrong_method(self, client):
        resp = client.delete("/api/v1/datastores")
        assert resp.status_code == 405
        assert resp.json() == {"error": "Method Not Allowed"}
        assert "GET" in resp.headers["allow"]
