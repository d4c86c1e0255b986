# Version history schemas.
# Created: 2026-10-19

from __future__ import annotations

from typing import Any

from dsmanager.api.v1.schemas.common import APIResponse


class VersionListResponse(APIResponse):
    """Upstream ``data`` renamed to ``versions``; items keep upstream field names."""

    versions: list[dict[str, Any]] = []
    nextPageCursor: str = ""
