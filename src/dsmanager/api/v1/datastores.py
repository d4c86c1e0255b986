# Datastores router: list datastores, create a datastore.
# Created: 2026-10-19

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from dsmanager.api.deps import (
    ClientFactory,
    enforce_rate_limit,
    get_client_factory,
    require_params,
    resolve_api_token,
)
from dsmanager.api.v1.schemas.common import ERROR_RESPONSES, CredentialsBody
from dsmanager.api.v1.schemas.datastores import (
    CreateDatastoreRequest,
    CreateDatastoreResponse,
    DatastoreInfo,
    DatastoreListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Datastores"], responses=ERROR_RESPONSES)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_datastores(data: Any) -> list[DatastoreInfo]:
    """Reshape an upstream listing into ``[{name, createdTime}]``.

    Upstream answers ``{"datastores": [...]}``; a bare array is accepted too.
    Items may be objects with a ``name`` or plain strings.  ``createdTime``
    is synthesized when upstream does not send one.
    """
    if isinstance(data, dict):
        items = data.get("datastores") or []
    elif isinstance(data, list):
        items = data
    else:
        items = []

    infos: list[DatastoreInfo] = []
    for item in items:
        if isinstance(item, str):
            infos.append(DatastoreInfo(name=item, createdTime=_now_iso()))
        elif isinstance(item, dict) and item.get("name"):
            infos.append(
                DatastoreInfo(name=item["name"], createdTime=item.get("createdTime") or _now_iso())
            )
    return infos


async def _list_datastores(
    make_client: ClientFactory, universe_id: str | None, api_token: str | None
) -> DatastoreListResponse:
    require_params({"universeId": universe_id, "apiToken": api_token})
    logger.info("Fetching datastores for universe %s", universe_id)
    data = await make_client(universe_id, api_token).list_datastores()
    return DatastoreListResponse(datastores=normalize_datastores(data))


@router.get(
    "/datastores",
    response_model=DatastoreListResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def list_datastores(
    request: Request,
    universe_id: str | None = Query(None, alias="universeId"),
    api_token: str | None = Query(None, alias="apiToken"),
    make_client: ClientFactory = Depends(get_client_factory),
):
    """List the universe's datastores."""
    return await _list_datastores(
        make_client, universe_id, resolve_api_token(request, api_token)
    )


@router.post(
    "/datastores",
    response_model=DatastoreListResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def list_datastores_from_body(
    request: Request,
    body: CredentialsBody | None = None,
    make_client: ClientFactory = Depends(get_client_factory),
):
    """List the universe's datastores, credentials in the JSON body."""
    body = body or CredentialsBody()
    return await _list_datastores(
        make_client, body.universe_id, resolve_api_token(request, body.api_token)
    )


@router.post("/datastores/create", response_model=CreateDatastoreResponse)
async def create_datastore(
    request: Request,
    body: CreateDatastoreRequest | None = None,
    make_client: ClientFactory = Depends(get_client_factory),
):
    """Create a datastore.

    Open Cloud has no explicit create call; datastores come into existence
    with their first entry, so this writes an ``__init_<ms>`` marker entry.
    """
    body = body or CreateDatastoreRequest()
    api_token = resolve_api_token(request, body.api_token)
    require_params(
        {
            "universeId": body.universe_id,
            "apiToken": api_token,
            "datastoreName": body.datastore_name,
        }
    )

    init_key = f"__init_{int(time.time() * 1000)}"
    await make_client(body.universe_id, api_token).set_entry(
        body.datastore_name, init_key, {"created": _now_iso()}
    )
    logger.info("Created datastore %s (marker %s)", body.datastore_name, init_key)
    return CreateDatastoreResponse()
