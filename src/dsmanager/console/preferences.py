# Persisted console preferences (last-used credentials, seen flags).
# Created: 2026-10-19

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_UNIVERSE_ID = "universeId"
_API_TOKEN = "apiToken"

ONBOARDING = "seenOnboarding"
WELCOME = "seenWelcome"


class Preferences:
    """Small JSON key/value file under the config dir.

    Holds the last-used ``universeId``/``apiToken`` and "has seen" flags.
    The file is written with 0600 permissions since it holds an API key.
    """

    def __init__(self, path: Path | None = None):
        if path is None:
            from dsmanager.config import get_config_dir

            path = get_config_dir() / "preferences.json"
        self.path = path
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable preferences file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2))
        self.path.chmod(0o600)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.save()

    def remove(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)
        self.save()

    # -- credentials -------------------------------------------------------

    @property
    def credentials(self) -> tuple[str, str] | None:
        universe_id = self._data.get(_UNIVERSE_ID)
        api_token = self._data.get(_API_TOKEN)
        if universe_id and api_token:
            return universe_id, api_token
        return None

    def save_credentials(self, universe_id: str, api_token: str) -> None:
        self._data[_UNIVERSE_ID] = universe_id
        self._data[_API_TOKEN] = api_token
        self.save()

    def clear_credentials(self) -> None:
        self.remove(_UNIVERSE_ID, _API_TOKEN)

    # -- flags -------------------------------------------------------------

    def has_seen(self, flag: str) -> bool:
        return bool(self._data.get(flag, False))

    def mark_seen(self, flag: str) -> None:
        self.set(flag, True)
