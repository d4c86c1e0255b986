# Open Cloud error types.
# Created: 2026-10-19

from __future__ import annotations

from typing import Any


class OpenCloudError(Exception):
    """A failed call to the Open Cloud API.

    ``status_code`` is the upstream HTTP status (or a gateway status for
    transport failures) and ``body`` is the decoded upstream error body.
    """

    def __init__(self, status_code: int, message: str, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.body = body


class NotFoundError(OpenCloudError):
    """Upstream answered 404 (missing entry, version or datastore)."""


class UpstreamTimeoutError(OpenCloudError):
    def __init__(self, message: str):
        super().__init__(504, message)


class UpstreamConnectionError(OpenCloudError):
    def __init__(self, message: str):
        super().__init__(502, message)
