# Entry schemas.
# Created: 2026-10-19

from __future__ import annotations

from typing import Any

from pydantic import Field

from dsmanager.api.v1.schemas.common import APIResponse, CredentialsBody


class EntryListResponse(APIResponse):
    """One page of entry keys, as upstream lists them."""

    keys: list[Any] = []
    nextPageCursor: str = ""


class ListEntriesRequest(CredentialsBody):
    prefix: str = ""
    cursor: str = ""
    search: str = ""
    scope: str | None = None


class SetEntryRequest(CredentialsBody):
    """Body of an entry write.  ``value`` may be any JSON, null included."""

    entry_key: str | None = Field(default=None, alias="entryKey")
    value: Any = None
    scope: str | None = None
    match_version: str | None = Field(default=None, alias="matchVersion")
    exclusive_create: bool | None = Field(default=None, alias="exclusiveCreate")


class IncrementEntryRequest(CredentialsBody):
    entry_key: str | None = Field(default=None, alias="entryKey")
    increment_by: int | float | None = Field(default=None, alias="incrementBy")
    scope: str | None = None
