from __future__ import annotations

"""Staged-commit persistence over a raw key-value primitive.

Each logical store owns two backing keys::

    <key>            committed value (only ever replaced by a complete write)
    <key>__staging   in-flight write

Write: staging -> committed -> remove staging. A failure at any step raises
and leaves the committed value as it was. Read: a staging key is never
trusted; it is removed before the committed key is read, so every read is
a recovery point.
"""

import json
import logging
from typing import Any, Callable, Optional

from ..app import explain
from ..errors import StorageError
from .backends import KeyValueStorage

logger = logging.getLogger(__name__)

STAGING_SUFFIX = "__staging"

CLEAN = "CLEAN"
STAGED = "STAGED"


class AtomicStore:
    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        default_factory: Callable[[], Any] = dict,
    ) -> None:
        self.storage = storage
        self.key = key
        self.staging_key = key + STAGING_SUFFIX
        self.default_factory = default_factory

    def state(self) -> str:
        return STAGED if self.storage.get(self.staging_key) is not None else CLEAN

    def discard_staging(self) -> bool:
        """Drop an unconfirmed write. Returns True if one was found."""
        if self.storage.get(self.staging_key) is None:
            return False
        self.storage.remove(self.staging_key)
        committed = self.storage.get(self.key) is not None
        logger.info("Discarded staging for '%s' (committed value present: %s)", self.key, committed)
        explain.trace("storage.staging_discarded", {"key": self.key, "committed": committed})
        return True

    def read_text(self) -> Optional[str]:
        self.discard_staging()
        return self.storage.get(self.key)

    def read(self) -> Any:
        """Committed value, or a fresh default when absent or unreadable."""
        raw = self.read_text()
        if raw is None:
            return self.default_factory()
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning("Committed value of '%s' is not valid JSON (%s); using default", self.key, e)
            return self.default_factory()

    def write(self, value: Any) -> None:
        """Serialize and commit ``value``.

        Raises:
            CapacityError: the primitive rejected the staging or committed write.
            StorageError: any other backing-store failure.
        """
        text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        self._set(self.staging_key, text)
        self._set(self.key, text)
        self.storage.remove(self.staging_key)

    def _set(self, key: str, text: str) -> None:
        try:
            self.storage.set(key, text)
        except StorageError:
            logger.error("Write to '%s' failed; committed value of '%s' unchanged", key, self.key)
            raise
        except Exception as e:
            logger.error("Write to '%s' failed: %s", key, e)
            raise StorageError(f"Failed to write '{key}': {e}", key=key) from e

    def clear(self) -> None:
        self.write(self.default_factory())

    def size_bytes(self) -> int:
        raw = self.storage.get(self.key)
        return len(raw.encode("utf-8")) if raw is not None else 0
