# Open Cloud client for the Datastore v1 REST API.
# Created: 2026-10-19
#
# One method per upstream operation.  Credentials are per instance and are
# never logged; non-2xx answers raise OpenCloudError with the upstream status.

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from dsmanager.config import DEFAULT_OPENCLOUD_URL
from dsmanager.opencloud.errors import (
    NotFoundError,
    OpenCloudError,
    UpstreamConnectionError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "global"
DEFAULT_PAGE_LIMIT = 100

_ENTRIES = "/datastore/entries"
_ENTRY = "/datastore/entries/entry"


def _decode(resp: httpx.Response) -> Any:
    """Decode a response body: JSON when possible, text otherwise, None when empty."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _error_from_response(resp: httpx.Response) -> OpenCloudError:
    body = _decode(resp)
    message = f"Open Cloud API error: {resp.status_code} {resp.reason_phrase}".rstrip()
    if resp.status_code == 404:
        return NotFoundError(resp.status_code, message, body)
    return OpenCloudError(resp.status_code, message, body)


class OpenCloudClient:
    """Async client for one universe's standard datastores.

    Args:
        universe_id: Roblox universe (experience) ID.
        api_token: Open Cloud API key, sent as ``x-api-key``.
        base_url: API root, defaults to the public Open Cloud endpoint.
        timeout: Per-request timeout in seconds (None for no timeout).
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        universe_id: str,
        api_token: str,
        *,
        base_url: str = DEFAULT_OPENCLOUD_URL,
        timeout: float | None = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.universe_id = universe_id
        self._api_token = api_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def store_url(self) -> str:
        return f"{self._base_url}/universes/{self.universe_id}/standard-datastores"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        content: str | bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        # Empty strings and None mean "not given" upstream.
        query = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
        request_headers = {"x-api-key": self._api_token, **(headers or {})}

        logger.debug(
            "Open Cloud %s %s params=%s (token length %d)",
            method,
            path or "/",
            query,
            len(self._api_token),
        )
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.request(
                    method,
                    self.store_url + path,
                    params=query,
                    content=content,
                    headers=request_headers,
                )
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"Open Cloud request timed out: {method} {path}") from e
        except httpx.TransportError as e:
            raise UpstreamConnectionError(f"Could not reach Open Cloud: {e}") from e

        if resp.is_error:
            error = _error_from_response(resp)
            logger.warning("Open Cloud %s %s failed: %s", method, path, error.message)
            raise error

        logger.debug("Open Cloud %s %s -> %d", method, path, resp.status_code)
        return _decode(resp)

    # -- datastores --------------------------------------------------------

    async def list_datastores(
        self,
        limit: int = DEFAULT_PAGE_LIMIT,
        prefix: str | None = None,
        cursor: str | None = None,
    ) -> Any:
        """List datastores in the universe.

        Returns:
            Upstream body, normally ``{"datastores": [...], "nextPageCursor": "..."}``.
        """
        return await self._request(
            "GET", "", params={"limit": limit, "prefix": prefix, "cursor": cursor}
        )

    # -- entries -----------------------------------------------------------

    async def list_entries(
        self,
        datastore_name: str,
        prefix: str = "",
        cursor: str = "",
        limit: int = DEFAULT_PAGE_LIMIT,
        scope: str | None = None,
        all_scopes: bool | None = None,
    ) -> Any:
        """List entry keys, optionally filtered by key prefix.

        Returns:
            ``{"keys": [{"scope": ..., "key": ...}], "nextPageCursor": "..."}``.
        """
        return await self._request(
            "GET",
            _ENTRIES,
            params={
                "datastoreName": datastore_name,
                "prefix": prefix,
                "cursor": cursor,
                "limit": limit,
                "scope": scope,
                "AllScopes": all_scopes,
            },
        )

    async def get_entry(
        self, datastore_name: str, entry_key: str, scope: str = DEFAULT_SCOPE
    ) -> Any:
        """Return an entry's value.  Raises NotFoundError when the key does not exist."""
        return await self._request(
            "GET",
            _ENTRY,
            params={"datastoreName": datastore_name, "entryKey": entry_key, "scope": scope},
        )

    async def set_entry(
        self,
        datastore_name: str,
        entry_key: str,
        value: Any,
        match_version: str | None = None,
        exclusive_create: bool | None = None,
        scope: str = DEFAULT_SCOPE,
    ) -> Any:
        """Write an entry's value.

        ``exclusive_create=True`` makes upstream reject the write when the key
        already exists; ``match_version`` makes it reject a stale write.

        Returns:
            Version metadata for the new value.
        """
        return await self._request(
            "POST",
            _ENTRY,
            params={
                "datastoreName": datastore_name,
                "entryKey": entry_key,
                "scope": scope,
                "matchVersion": match_version,
                "exclusiveCreate": exclusive_create,
            },
            content=json.dumps(value),
            headers={"content-type": "application/json"},
        )

    async def delete_entry(
        self, datastore_name: str, entry_key: str, scope: str = DEFAULT_SCOPE
    ) -> Any:
        """Delete an entry.  Upstream answers 204, so this usually returns None."""
        return await self._request(
            "DELETE",
            _ENTRY,
            params={"datastoreName": datastore_name, "entryKey": entry_key, "scope": scope},
        )

    async def increment_entry(
        self,
        datastore_name: str,
        entry_key: str,
        increment_by: int | float,
        scope: str = DEFAULT_SCOPE,
    ) -> Any:
        """Increment a numeric entry and return its new value."""
        # Upstream requires an empty body with an explicit zero content length.
        return await self._request(
            "POST",
            f"{_ENTRY}/increment",
            params={
                "datastoreName": datastore_name,
                "entryKey": entry_key,
                "incrementBy": increment_by,
                "scope": scope,
            },
            content=b"",
            headers={"content-length": "0"},
        )

    # -- versions ----------------------------------------------------------

    async def list_versions(
        self,
        datastore_name: str,
        entry_key: str,
        scope: str = DEFAULT_SCOPE,
        limit: int = DEFAULT_PAGE_LIMIT,
        sort_order: str = "Descending",
        cursor: str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
    ) -> Any:
        """List an entry's versions.

        Returns:
            ``{"data": [{"version", "createdTime", "contentLength", "deleted", ...}],
            "nextPageCursor": "..."}``.
        """
        return await self._request(
            "GET",
            f"{_ENTRY}/versions",
            params={
                "datastoreName": datastore_name,
                "entryKey": entry_key,
                "scope": scope,
                "limit": limit,
                "sortOrder": sort_order,
                "cursor": cursor,
                "startTime": start_time,
                "endTime": end_time,
            },
        )

    async def get_version(
        self,
        datastore_name: str,
        entry_key: str,
        version_id: str,
        scope: str = DEFAULT_SCOPE,
    ) -> Any:
        """Return the value an entry held at *version_id*."""
        return await self._request(
            "GET",
            f"{_ENTRY}/versions/version",
            params={
                "datastoreName": datastore_name,
                "entryKey": entry_key,
                "versionId": version_id,
                "scope": scope,
            },
        )
