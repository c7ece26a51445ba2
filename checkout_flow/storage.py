"""
Read-only access to values the client persisted earlier (auth token, user
profile). The orchestrator only ever sees a ``KeyValueStore``.
"""

import json
import logging
from pathlib import Path
from typing import Mapping, Optional, Protocol

from pydantic import ValidationError

from .models import Prefill
from .settings import PROFILE_STORAGE_KEY, TOKEN_STORAGE_KEY

log = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...


class MappingStore:
    """Wraps a plain mapping; handy for tests and embedding."""

    def __init__(self, data: Optional[Mapping[str, str]] = None):
        self._data = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)


class JsonFileStore:
    """
    A JSON object on disk, read on every lookup.
    Missing or unreadable files behave like an empty store.
    """

    def __init__(self, path):
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            log.warning("client storage %s unreadable: %s", self.path, e)
            return None
        if not isinstance(data, dict):
            log.warning("client storage %s is not a JSON object", self.path)
            return None
        value = data.get(key)
        if value is None:
            return None
        return value if isinstance(value, str) else json.dumps(value)


def read_token(store: KeyValueStore, key: str = TOKEN_STORAGE_KEY) -> Optional[str]:
    token = store.get(key)
    return token or None


def read_prefill(store: KeyValueStore, key: str = PROFILE_STORAGE_KEY) -> Prefill:
    """Profile prefill for the checkout widget; corrupt data yields an empty prefill."""
    raw = store.get(key)
    if not raw:
        return Prefill()
    try:
        profile = json.loads(raw)
    except ValueError:
        log.warning("stored profile under %r is not valid JSON; checkout prefill left empty", key)
        return Prefill()
    if not isinstance(profile, dict):
        log.warning("stored profile under %r is not an object; checkout prefill left empty", key)
        return Prefill()
    try:
        return Prefill(
            name=profile.get("name") or "",
            email=profile.get("email") or "",
            contact=profile.get("contact") or profile.get("phone") or "",
        )
    except ValidationError:
        log.warning("stored profile under %r has unexpected field types", key)
        return Prefill()
