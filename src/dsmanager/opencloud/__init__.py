# Open Cloud Datastore API client.
# Created: 2026-10-19

from dsmanager.opencloud.client import DEFAULT_SCOPE, OpenCloudClient
from dsmanager.opencloud.errors import (
    NotFoundError,
    OpenCloudError,
    UpstreamConnectionError,
    UpstreamTimeoutError,
)

__all__ = [
    "DEFAULT_SCOPE",
    "NotFoundError",
    "OpenCloudClient",
    "OpenCloudError",
    "UpstreamConnectionError",
    "UpstreamTimeoutError",
]
