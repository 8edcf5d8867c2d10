from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import CredentialError
from .storage import KeyValueStorage

API_KEY_STORAGE_KEY = "GEMINI_API_KEY"

_KEY_RE = re.compile(r"[A-Za-z0-9_-]{20,100}")
_GOOGLE_PREFIX = "AIza"
_GOOGLE_KEY_LENGTH = 39


def validate_api_key(value: str | None) -> bool:
    """Format check for the OCR service key.

    20-100 characters of letters, digits, '-' and '_'. Keys with the
    "AIza" prefix must be exactly 39 characters long.
    """
    if not value or not isinstance(value, str):
        return False
    if not _KEY_RE.fullmatch(value):
        return False
    if value.startswith(_GOOGLE_PREFIX) and len(value) != _GOOGLE_KEY_LENGTH:
        return False
    return True


@dataclass
class CredentialStore:
    storage: KeyValueStorage
    key: str = API_KEY_STORAGE_KEY

    def save(self, api_key: str) -> None:
        api_key = (api_key or "").strip()
        if not validate_api_key(api_key):
            raise CredentialError("invalid_api_key_format")
        self.storage.set(self.key, api_key)

    def load(self) -> str:
        return self.storage.get(self.key) or ""

    def clear(self) -> None:
        self.storage.remove(self.key)
