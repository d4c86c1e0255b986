# Console state store: client-side counterpart of the datastore API routes.
# Created: 2026-10-19

from dsmanager.console.preferences import Preferences
from dsmanager.console.store import (
    ConfirmationRequired,
    ConsoleError,
    DatastoreConsole,
    EntryDeletedError,
    EntryPage,
    EntryVersion,
    ViewState,
)

__all__ = [
    "ConfirmationRequired",
    "ConsoleError",
    "DatastoreConsole",
    "EntryDeletedError",
    "EntryPage",
    "EntryVersion",
    "Preferences",
    "ViewState",
]
