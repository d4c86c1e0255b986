# Common API response schemas.
# Created: 2026-10-19

from __future__ import annotations

from pydantic import BaseModel, Field


class APIResponse(BaseModel):
    """Base response wrapper."""

    model_config = {"from_attributes": True}


class ErrorResponse(APIResponse):
    """Standard error envelope."""

    error: str
    details: str | None = None


class CredentialsBody(BaseModel):
    """JSON request body carrying credentials.

    Every field is optional so that missing parameters are reported by the
    route as a 400 ``{"error": "Missing ..."}`` instead of a schema error.
    The token may also come from the ``x-api-key`` header.
    """

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}

    universe_id: str | None = Field(default=None, alias="universeId")
    api_token: str | None = Field(default=None, alias="apiToken")


# OpenAPI documentation for the {error} envelope shared by every route.
ERROR_RESPONSES: dict[int | str, dict] = {
    400: {"model": ErrorResponse, "description": "Missing or invalid parameters"},
    404: {"model": ErrorResponse, "description": "Entry or version not found"},
    429: {"model": ErrorResponse, "description": "Too many requests"},
    500: {"model": ErrorResponse, "description": "Upstream or local failure"},
}
