# Entries router: list/search keys, read, write, delete and increment entries.
# Created: 2026-10-19

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from dsmanager.api.deps import (
    ClientFactory,
    enforce_rate_limit,
    get_client_factory,
    require_params,
    resolve_api_token,
)
from dsmanager.api.errors import ApiError
from dsmanager.api.v1.schemas.common import ERROR_RESPONSES
from dsmanager.api.v1.schemas.entries import (
    EntryListResponse,
    IncrementEntryRequest,
    ListEntriesRequest,
    SetEntryRequest,
)
from dsmanager.opencloud import DEFAULT_SCOPE, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Entries"], responses=ERROR_RESPONSES)

_PAGE_LIMIT = 100


async def _list_entries(
    make_client: ClientFactory,
    datastore_name: str,
    universe_id: str | None,
    api_token: str | None,
    prefix: str = "",
    cursor: str = "",
    search: str = "",
    scope: str | None = None,
) -> EntryListResponse:
    require_params({"universeId": universe_id, "apiToken": api_token})

    # A search term is sent upstream as the key prefix and wins over ``prefix``.
    effective_prefix = search or prefix
    logger.debug("Listing entries of %s (prefix=%r)", datastore_name, effective_prefix)
    data = await make_client(universe_id, api_token).list_entries(
        datastore_name,
        prefix=effective_prefix,
        cursor=cursor,
        limit=_PAGE_LIMIT,
        scope=scope,
    )
    data = data if isinstance(data, dict) else {}
    return EntryListResponse(
        keys=data.get("keys") or [],
        nextPageCursor=data.get("nextPageCursor") or "",
    )


@router.get(
    "/datastores/{name}",
    response_model=EntryListResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
@router.get(
    "/datastores/{name}/entries",
    response_model=EntryListResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def list_entries(
    name: str,
    request: Request,
    universe_id: str | None = Query(None, alias="universeId"),
    api_token: str | None = Query(None, alias="apiToken"),
    prefix: str = "",
    cursor: str = "",
    search: str = "",
    scope: str | None = None,
    make_client: ClientFactory = Depends(get_client_factory),
):
    """List one page of entry keys, filtered by ``search`` or ``prefix``."""
    return await _list_entries(
        make_client,
        name,
        universe_id,
        resolve_api_token(request, api_token),
        prefix=prefix,
        cursor=cursor,
        search=search,
        scope=scope,
    )


@router.post(
    "/datastores/{name}/entries",
    response_model=EntryListResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def list_entries_from_body(
    name: str,
    request: Request,
    body: ListEntriesRequest | None = None,
    make_client: ClientFactory = Depends(get_client_factory),
):
    """List entry keys, parameters in the JSON body."""
    body = body or ListEntriesRequest()
    return await _list_entries(
        make_client,
        name,
        body.universe_id,
        resolve_api_token(request, body.api_token),
        prefix=body.prefix,
        cursor=body.cursor,
        search=body.search,
        scope=body.scope,
    )


@router.get("/datastores/{name}/entry")
async def get_entry(
    name: str,
    request: Request,
    universe_id: str | None = Query(None, alias="universeId"),
    api_token: str | None = Query(None, alias="apiToken"),
    entry_key: str | None = Query(None, alias="entryKey"),
    scope: str | None = None,
    make_client: ClientFactory = Depends(get_client_factory),
):
    """Return an entry's raw JSON value."""
    api_token = resolve_api_token(request, api_token)
    require_params({"universeId": universe_id, "apiToken": api_token, "entryKey": entry_key})

    try:
        value = await make_client(universe_id, api_token).get_entry(
            name, entry_key, scope or DEFAULT_SCOPE
        )
    except NotFoundError:
        raise ApiError(404, "Entry not found")
    return JSONResponse(content=value)


@router.post("/datastores/{name}/entry")
async def set_entry(
    name: str,
    request: Request,
    body: SetEntryRequest | None = None,
    universe_id: str | None = Query(None, alias="universeId"),
    api_token: str | None = Query(None, alias="apiToken"),
    make_client: ClientFactory = Depends(get_client_factory),
):
    """Create or overwrite an entry.

    Body: ``{entryKey, value, scope?, matchVersion?, exclusiveCreate?}``.
    """
    body = body or SetEntryRequest()
    universe_id = universe_id or body.universe_id
    api_token = resolve_api_token(request, api_token, body.api_token)
    require_params(
        {
            "universeId": universe_id,
            "apiToken": api_token,
            "entryKey": body.entry_key,
            # null is a legal value; only an absent field is missing
            "value": True if "value" in body.model_fields_set else None,
        }
    )

    result = await make_client(universe_id, api_token).set_entry(
        name,
        body.entry_key,
        body.value,
        match_version=body.match_version,
        exclusive_create=body.exclusive_create,
        scope=body.scope or DEFAULT_SCOPE,
    )
    logger.info("Saved %s/%s", name, body.entry_key)
    return JSONResponse(content=result)


@router.delete("/datastores/{name}/entry")
async def delete_entry(
    name: str,
    request: Request,
    universe_id: str | None = Query(None, alias="universeId"),
    api_token: str | None = Query(None, alias="apiToken"),
    entry_key: str | None = Query(None, alias="entryKey"),
    scope: str | None = None,
    make_client: ClientFactory = Depends(get_client_factory),
):
    """Delete an entry."""
    api_token = resolve_api_token(request, api_token)
    require_params({"universeId": universe_id, "apiToken": api_token, "entryKey": entry_key})

    result = await make_client(universe_id, api_token).delete_entry(
        name, entry_key, scope or DEFAULT_SCOPE
    )
    logger.info("Deleted %s/%s", name, entry_key)
    # Upstream answers 204 with no body.
    if result is None:
        result = {"deleted": True, "entryKey": entry_key}
    return JSONResponse(content=result)


@router.post("/datastores/{name}/entry/increment")
async def increment_entry(
    name: str,
    request: Request,
    body: IncrementEntryRequest | None = None,
    universe_id: str | None = Query(None, alias="universeId"),
    api_token: str | None = Query(None, alias="apiToken"),
    make_client: ClientFactory = Depends(get_client_factory),
):
    """Increment a numeric entry.  Body: ``{entryKey, incrementBy, scope?}``."""
    body = body or IncrementEntryRequest()
    universe_id = universe_id or body.universe_id
    api_token = resolve_api_token(request, api_token, body.api_token)
    require_params(
        {
            "universeId": universe_id,
            "apiToken": api_token,
            "entryKey": body.entry_key,
            "incrementBy": body.increment_by,
        }
    )

    result = await make_client(universe_id, api_token).increment_entry(
        name, body.entry_key, body.increment_by, body.scope or DEFAULT_SCOPE
    )
    return JSONResponse(content=result)
