# Datastore schemas.
# Created: 2026-10-19

from __future__ import annotations

from pydantic import Field

from dsmanager.api.v1.schemas.common import APIResponse, CredentialsBody


class DatastoreInfo(APIResponse):
    name: str
    createdTime: str


class DatastoreListResponse(APIResponse):
    datastores: list[DatastoreInfo] = []


class CreateDatastoreRequest(CredentialsBody):
    datastore_name: str | None = Field(default=None, alias="datastoreName")


class CreateDatastoreResponse(APIResponse):
    success: bool = True
    message: str = "Datastore created successfully"
