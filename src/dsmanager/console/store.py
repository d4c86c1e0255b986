# Console state store: credentials, selection and entry/version state over the API.
# Created: 2026-10-19
#
# Entry viewing moves through UNSELECTED -> LATEST <-> VERSION.  Picking a
# historical version switches to VERSION; saving from VERSION needs explicit
# confirmation and returns to LATEST.

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from dsmanager.opencloud import DEFAULT_SCOPE

if TYPE_CHECKING:
    from dsmanager.console.preferences import Preferences

logger = logging.getLogger(__name__)


class ViewState(str, Enum):
    UNSELECTED = "unselected"
    LATEST = "latest"
    VERSION = "version"


class ConsoleError(Exception):
    """An API call failed.  ``message`` is the route's ``error`` string."""

    def __init__(self, status_code: int | None, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class EntryDeletedError(ConsoleError):
    """The entry is known to be deleted; no request was made."""

    def __init__(self, datastore: str, key: str):
        super().__init__(404, f"Entry {key!r} in {datastore!r} was deleted")


class ConfirmationRequired(Exception):
    """Saving would overwrite the latest value with a historical version."""


@dataclass
class EntryPage:
    keys: list[str]
    next_page_cursor: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> EntryPage:
        keys = [
            item.get("key", "") if isinstance(item, dict) else str(item)
            for item in data.get("keys") or []
        ]
        return cls(keys=keys, next_page_cursor=data.get("nextPageCursor") or "")


@dataclass
class EntryVersion:
    version: str
    created_time: str = ""
    content_length: int = 0
    deleted: bool = False
    object_created_time: str | None = None
    is_latest: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> EntryVersion:
        return cls(
            version=data.get("version", ""),
            created_time=data.get("createdTime", ""),
            content_length=data.get("contentLength") or 0,
            deleted=bool(data.get("deleted", False)),
            object_created_time=data.get("objectCreatedTime"),
            is_latest=bool(data.get("isLatest", False)),
        )


def _missing_version_document(key: str, version: EntryVersion) -> dict[str, Any]:
    """Stand-in shown in place of a version's data when it no longer exists."""
    return {
        "error": "Version not found",
        "entryKey": key,
        "version": version.version,
        "createdTime": version.created_time,
        "deleted": version.deleted,
        "message": "This version is missing or was deleted and has no data to show.",
    }


class DatastoreConsole:
    """Client-side state holder for one operator session.

    Args:
        base_url: API root, e.g. ``http://127.0.0.1:8888/api/v1``.  Defaults
            to the ``console_api_url`` setting.
        preferences: Where last-used credentials are persisted.  Saved
            credentials are restored on construction.
        transport: Optional httpx transport (tests route it to the app).
        timeout: Per-request timeout in seconds.
        scope: Datastore scope used for entry operations.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        preferences: Preferences | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = 30.0,
        scope: str = DEFAULT_SCOPE,
    ):
        if base_url is None:
            from dsmanager.config import get_settings

            base_url = get_settings().console_api_url
        self.base_url = base_url.rstrip("/")
        self.preferences = preferences
        self.scope = scope
        self._transport = transport
        self._timeout = timeout

        self.universe_id = ""
        self.api_token = ""
        self.datastores: list[str] = []
        self.selected_datastore = ""
        self.selected_entry_key = ""
        self.entry_data: Any = None
        self.versions: list[EntryVersion] = []
        self.selected_version: EntryVersion | None = None
        self.version_missing = False
        self.known_deleted: set[tuple[str, str, str]] = set()
        self.is_loading = False

        if preferences is not None and preferences.credentials:
            self.universe_id, self.api_token = preferences.credentials

    # -- plumbing ----------------------------------------------------------

    @staticmethod
    def _store_path(datastore: str) -> str:
        return f"/datastores/{quote(datastore, safe='')}"

    def _marker(self, datastore: str, key: str) -> tuple[str, str, str]:
        return (datastore, self.scope, key)

    def _is_selected(self, datastore: str, key: str) -> bool:
        return datastore == self.selected_datastore and key == self.selected_entry_key

    async def _call(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        query = {"universeId": self.universe_id, **(params or {})}
        headers = {"x-api-key": self.api_token}

        self.is_loading = True
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, transport=self._transport, timeout=self._timeout
            ) as client:
                resp = await client.request(
                    method, path, params=query, json=json, headers=headers
                )
        except httpx.HTTPError as e:
            raise ConsoleError(None, f"Failed to connect: {e}") from e
        finally:
            self.is_loading = False

        try:
            data = resp.json() if resp.content else None
        except ValueError:
            data = resp.text

        if resp.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            raise ConsoleError(resp.status_code, message or f"HTTP {resp.status_code}")
        return data

    # -- view state --------------------------------------------------------

    @property
    def view_state(self) -> ViewState:
        if not self.selected_entry_key:
            return ViewState.UNSELECTED
        if self.selected_version is not None and not self.selected_version.is_latest:
            return ViewState.VERSION
        return ViewState.LATEST

    def _clear_entry(self) -> None:
        self.selected_entry_key = ""
        self.entry_data = None
        self.versions = []
        self.selected_version = None
        self.version_missing = False

    # -- credentials & datastores -----------------------------------------

    async def connect(self, universe_id: str, api_token: str) -> list[str]:
        """Verify credentials by listing datastores; remember them on success."""
        if not universe_id or not api_token:
            raise ConsoleError(400, "Please enter Universe ID and API Token")
        self.universe_id = universe_id
        self.api_token = api_token

        datastores = await self.fetch_datastores()
        if self.preferences is not None:
            self.preferences.save_credentials(universe_id, api_token)
        self.select_datastore("")
        logger.info("Connected to universe %s (%d datastores)", universe_id, len(datastores))
        return datastores

    async def fetch_datastores(self) -> list[str]:
        data = await self._call("GET", "/datastores")
        self.datastores = [d["name"] for d in (data or {}).get("datastores", [])]
        return self.datastores

    def clear_credentials(self) -> None:
        """Forget credentials and all selection state."""
        self.universe_id = ""
        self.api_token = ""
        self.datastores = []
        self.selected_datastore = ""
        self._clear_entry()
        self.known_deleted.clear()
        if self.preferences is not None:
            self.preferences.clear_credentials()

    async def create_datastore(self, name: str) -> list[str]:
        """Create a datastore and return the refreshed datastore list."""
        await self._call(
            "POST",
            "/datastores/create",
            json={"universeId": self.universe_id, "datastoreName": name},
        )
        return await self.fetch_datastores()

    def select_datastore(self, name: str) -> None:
        self.selected_datastore = name
        self._clear_entry()

    # -- entries -----------------------------------------------------------

    async def fetch_entries(
        self, datastore: str, search: str | None = None, cursor: str | None = None
    ) -> EntryPage:
        params = {"search": search or "", "cursor": cursor or ""}
        data = await self._call("GET", f"{self._store_path(datastore)}/entries", params=params)
        return EntryPage.from_api(data or {})

    async def iter_entries(
        self, datastore: str, search: str | None = None
    ) -> AsyncIterator[str]:
        """Yield every key, following ``nextPageCursor`` to the last page."""
        cursor = ""
        seen: set[str] = set()
        while True:
            page = await self.fetch_entries(datastore, search=search, cursor=cursor)
            for key in page.keys:
                yield key
            cursor = page.next_page_cursor
            if not cursor or cursor in seen:
                return
            seen.add(cursor)

    async def fetch_entry(self, datastore: str, key: str) -> Any:
        """Load an entry's latest value into the viewer."""
        marker = self._marker(datastore, key)
        if marker in self.known_deleted:
            raise EntryDeletedError(datastore, key)

        try:
            data = await self._call(
                "GET",
                f"{self._store_path(datastore)}/entry",
                params={"entryKey": key, "scope": self.scope},
            )
        except ConsoleError as e:
            if e.status_code == 404:
                self.known_deleted.add(marker)
            raise

        if not self._is_selected(datastore, key):
            self.versions = []
        self.selected_datastore = datastore
        self.selected_entry_key = key
        self.entry_data = data
        self.selected_version = None
        self.version_missing = False
        return data

    async def save_entry(
        self, datastore: str, key: str, value: Any, *, confirm: bool = False
    ) -> Any:
        """Write *value* as the entry's latest value.

        Raises:
            ConfirmationRequired: a historical version is being viewed and
                *confirm* is not set.
        """
        if self._is_selected(datastore, key) and self.view_state is ViewState.VERSION:
            if not confirm:
                raise ConfirmationRequired(
                    f"Saving will overwrite the latest value of {key!r} "
                    f"with version {self.selected_version.version}"
                )

        result = await self._call(
            "POST",
            f"{self._store_path(datastore)}/entry",
            json={"entryKey": key, "value": value, "scope": self.scope},
        )
        self.known_deleted.discard(self._marker(datastore, key))
        if self._is_selected(datastore, key):
            self.entry_data = value
            self.selected_version = None
            self.version_missing = False
            # The save added a version; the cached history is stale.
            self.versions = []
        return result

    async def delete_entry(self, datastore: str, key: str) -> Any:
        result = await self._call(
            "DELETE",
            f"{self._store_path(datastore)}/entry",
            params={"entryKey": key, "scope": self.scope},
        )
        self.known_deleted.add(self._marker(datastore, key))
        if self._is_selected(datastore, key):
            self._clear_entry()
        return result

    async def increment_entry(self, datastore: str, key: str, increment_by: int | float) -> Any:
        result = await self._call(
            "POST",
            f"{self._store_path(datastore)}/entry/increment",
            json={"entryKey": key, "incrementBy": increment_by, "scope": self.scope},
        )
        self.known_deleted.discard(self._marker(datastore, key))
        if self._is_selected(datastore, key) and self.view_state is ViewState.LATEST:
            self.entry_data = result
        return result

    # -- versions ----------------------------------------------------------

    async def fetch_versions(
        self, datastore: str, key: str, sort_order: str = "Descending"
    ) -> list[EntryVersion]:
        data = await self._call(
            "GET",
            f"{self._store_path(datastore)}/entry/versions",
            params={"entryKey": key, "scope": self.scope, "sortOrder": sort_order},
        )
        versions = [EntryVersion.from_api(v) for v in (data or {}).get("versions", [])]
        if self._is_selected(datastore, key):
            self.versions = versions
        return versions

    async def select_version(
        self, version: EntryVersion, datastore: str | None = None, key: str | None = None
    ) -> Any:
        """Show *version*'s data in the viewer.

        A version that no longer exists is shown as a placeholder document
        rather than raising.
        """
        datastore = datastore or self.selected_datastore
        key = key or self.selected_entry_key
        if not datastore or not key:
            raise ConsoleError(400, "No entry selected")

        try:
            data = await self._call(
                "GET",
                f"{self._store_path(datastore)}/entry/versions/version",
                params={"entryKey": key, "versionId": version.version, "scope": self.scope},
            )
            missing = False
        except ConsoleError as e:
            if e.status_code != 404:
                raise
            data = _missing_version_document(key, version)
            missing = True

        if not self._is_selected(datastore, key):
            self.versions = []
        self.selected_datastore = datastore
        self.selected_entry_key = key
        self.selected_version = version
        self.entry_data = data
        self.version_missing = missing
        return data

    async def restore_version(
        self, datastore: str, key: str, version: EntryVersion, *, confirm: bool = False
    ) -> Any:
        """Overwrite the entry's latest value with *version*'s data."""
        await self.select_version(version, datastore, key)
        if self.version_missing:
            raise ConsoleError(404, f"Version {version.version} has no data to restore")
        return await self.save_entry(datastore, key, self.entry_data, confirm=confirm)

    # -- live mode ---------------------------------------------------------

    async def live(
        self, datastore: str, interval: float = 5.0, *, search: str | None = None
    ) -> AsyncIterator[EntryPage]:
        """Re-list *datastore* every *interval* seconds until another datastore is selected.

        Failed refreshes are logged and the next tick proceeds as normal.
        """
        if self.selected_datastore != datastore:
            self.select_datastore(datastore)
        while True:
            await asyncio.sleep(interval)
            if self.selected_datastore != datastore:
                return
            try:
                page = await self.fetch_entries(datastore, search=search)
            except ConsoleError as e:
                logger.warning("Live refresh of %s failed: %s", datastore, e.message)
                continue
            yield page
