# Versions router: list an entry's version history, fetch one version.
# Created: 2026-10-19

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from dsmanager.api.deps import (
    ClientFactory,
    get_client_factory,
    require_params,
    resolve_api_token,
)
from dsmanager.api.errors import ApiError
from dsmanager.api.v1.schemas.common import ERROR_RESPONSES
from dsmanager.api.v1.schemas.versions import VersionListResponse
from dsmanager.opencloud import DEFAULT_SCOPE, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Versions"], responses=ERROR_RESPONSES)


def mark_latest(
    versions: list[dict[str, Any]], sort_order: str, first_page: bool
) -> list[dict[str, Any]]:
    """Flag the newest version with ``isLatest``.

    Only defined for the first page of a Descending listing, where the newest
    version is the first item.  Ascending listings are left unmarked.
    """
    if versions and first_page and sort_order == "Descending":
        versions[0] = {**versions[0], "isLatest": True}
    return versions


@router.get("/datastores/{name}/entry/versions", response_model=VersionListResponse)
async def list_versions(
    name: str,
    request: Request,
    universe_id: str | None = Query(None, alias="universeId"),
    api_token: str | None = Query(None, alias="apiToken"),
    entry_key: str | None = Query(None, alias="entryKey"),
    scope: str | None = None,
    limit: int = Query(100, ge=1, le=100),
    sort_order: Literal["Ascending", "Descending"] = Query("Descending", alias="sortOrder"),
    cursor: str = "",
    make_client: ClientFactory = Depends(get_client_factory),
):
    """List an entry's versions; upstream ``data`` is returned as ``versions``."""
    api_token = resolve_api_token(request, api_token)
    require_params({"universeId": universe_id, "apiToken": api_token, "entryKey": entry_key})

    data = await make_client(universe_id, api_token).list_versions(
        name,
        entry_key,
        scope=scope or DEFAULT_SCOPE,
        limit=limit,
        sort_order=sort_order,
        cursor=cursor or None,
    )
    data = data if isinstance(data, dict) else {}
    versions = [v for v in data.get("data") or [] if isinstance(v, dict)]
    return VersionListResponse(
        versions=mark_latest(versions, sort_order, first_page=not cursor),
        nextPageCursor=data.get("nextPageCursor") or "",
    )


@router.get("/datastores/{name}/entry/versions/version")
async def get_version(
    name: str,
    request: Request,
    universe_id: str | None = Query(None, alias="universeId"),
    api_token: str | None = Query(None, alias="apiToken"),
    entry_key: str | None = Query(None, alias="entryKey"),
    version_id: str | None = Query(None, alias="versionId"),
    scope: str | None = None,
    make_client: ClientFactory = Depends(get_client_factory),
):
    """Return the raw JSON value an entry held at ``versionId``."""
    api_token = resolve_api_token(request, api_token)
    require_params(
        {
            "universeId": universe_id,
            "apiToken": api_token,
            "entryKey": entry_key,
            "versionId": version_id,
        }
    )

    try:
        value = await make_client(universe_id, api_token).get_version(
            name, entry_key, version_id, scope or DEFAULT_SCOPE
        )
    except NotFoundError:
        raise ApiError(404, "Entry version not found")
    return JSONResponse(content=value)
