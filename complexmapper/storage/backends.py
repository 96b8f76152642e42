from __future__ import annotations

"""Raw key-value primitives the atomic store is layered on.

Both backends offer ``get`` / ``set`` / ``remove`` with no cross-key
atomicity. ``set`` raises :class:`CapacityError` when an optional byte quota
would be exceeded; the previous value of the key is left untouched.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional, Protocol
from urllib.parse import quote, unquote

from ..errors import CapacityError, StorageError


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...


def _size(text: str) -> int:
    return len(text.encode("utf-8"))


class MemoryStorage:
    """In-process storage with an optional quota, used by tests and dry runs."""

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            others = sum(_size(v) for k, v in self._data.items() if k != key)
            if others + _size(value) > self.quota_bytes:
                raise CapacityError(key, _size(value), self.quota_bytes)
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._data)

    def used_bytes(self) -> int:
        return sum(_size(v) for v in self._data.values())


class DirectoryStorage:
    """One UTF-8 file per key under ``root``.

    A single key is replaced with ``os.replace`` from a temporary file, so a
    reader never sees half a value. Nothing is atomic across keys.
    """

    SUFFIX = ".json"

    def __init__(self, root: Path | str, quota_bytes: Optional[int] = None) -> None:
        self.root = Path(root)
        self.quota_bytes = quota_bytes
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.root / (quote(key, safe="") + self.SUFFIX)

    def get(self, key: str) -> Optional[str]:
        p = self._path(key)
        try:
            return p.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read '{key}': {e}", key=key) from e

    def _used_except(self, key: str) -> int:
        skip = self._path(key).name
        return sum(p.stat().st_size for p in self.root.glob("*" + self.SUFFIX) if p.name != skip)

    def set(self, key: str, value: str) -> None:
        data = value.encode("utf-8")
        if self.quota_bytes is not None and self._used_except(key) + len(data) > self.quota_bytes:
            raise CapacityError(key, len(data), self.quota_bytes)
        target = self._path(key)
        tmp = target.with_name(target.name + ".tmp")
        try:
            with tmp.open("wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise StorageError(f"Failed to write '{key}': {e}", key=key) from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Failed to remove '{key}': {e}", key=key) from e

    def keys(self) -> List[str]:
        return sorted(unquote(p.name[: -len(self.SUFFIX)]) for p in self.root.glob("*" + self.SUFFIX))
