"""Key/value persistence used by the card and credential stores.

Both backends store plain strings under string keys. `set` raises one of the
storage error kinds so callers can tell capacity problems from permission
problems.
"""
from __future__ import annotations

import errno
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .errors import StorageAccessError, StorageError, StorageQuotaError

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024

_QUOTA_ERRNOS = {errno.ENOSPC, errno.EFBIG, getattr(errno, "EDQUOT", errno.ENOSPC)}
_ACCESS_ERRNOS = {errno.EACCES, errno.EPERM, errno.EROFS}
_KEY_RE = re.compile(r"[A-Za-z0-9_]+")


class KeyValueStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


def classify_os_error(e: OSError, *, key: str) -> StorageError:
    if e.errno in _QUOTA_ERRNOS:
        return StorageQuotaError(f"quota_exceeded: {key}: {e}")
    if e.errno in _ACCESS_ERRNOS or isinstance(e, PermissionError):
        return StorageAccessError(f"access_denied: {key}: {e}")
    return StorageError(f"write_failed: {key}: {e}")


def _size(value: str) -> int:
    return len(value.encode("utf-8"))


@dataclass
class MemoryStorage:
    quota_bytes: int | None = None
    data: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(_size(v) for k, v in self.data.items() if k != key)
            if used + _size(value) > self.quota_bytes:
                raise StorageQuotaError(f"quota_exceeded: {key}: {used + _size(value)} > {self.quota_bytes}")
        self.data[key] = str(value)

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


@dataclass
class FileStorage:
    """One file per key under `root` (root/<key>.kv)."""

    root: Path
    quota_bytes: int | None = DEFAULT_QUOTA_BYTES

    def __post_init__(self):
        self.root = Path(self.root)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.fullmatch(key):
            raise ValueError(f"invalid storage key: {key!r}")
        return self.root / f"{key}.kv"

    def get(self, key: str) -> str | None:
        p = self._path(key)
        if not p.exists():
            return None
        try:
            return p.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            # unreadable is treated like absent
            return None

    def _used_bytes(self, exclude: Path) -> int:
        if not self.root.exists():
            return 0
        return sum(p.stat().st_size for p in self.root.glob("*.kv") if p != exclude)

    def set(self, key: str, value: str) -> None:
        p = self._path(key)
        tmp = p.with_name(p.name + ".tmp")
        try:
            if self.quota_bytes is not None:
                total = self._used_bytes(p) + _size(value)
                if total > self.quota_bytes:
                    raise StorageQuotaError(f"quota_exceeded: {key}: {total} > {self.quota_bytes}")
            self.root.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, p)
        except OSError as e:
            try:
                tmp.unlink()
            except OSError:
                pass
            raise classify_os_error(e, key=key) from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
