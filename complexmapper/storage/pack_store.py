from __future__ import annotations

"""User-imported stimulus packs, keyed ``id@version``.

Sessions never reference this store for their own record: each session embeds
its pack snapshot, so deleting a pack leaves past sessions intact.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..models import StimulusList
from ..stimuli.snapshot import normalize_pack
from .atomic import AtomicStore
from .backends import KeyValueStorage

logger = logging.getLogger(__name__)

PACKS_KEY = "complex-mapper-custom-packs"


def pack_key(pack_id: str, version: str) -> str:
    return f"{pack_id}@{version}"


def _empty() -> Dict[str, Any]:
    return {"packs": {}}


class PackStore:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._store = AtomicStore(storage, PACKS_KEY, _empty)

    def _read(self) -> Dict[str, Dict[str, Any]]:
        data = self._store.read()
        packs = data.get("packs") if isinstance(data, dict) else None
        return packs if isinstance(packs, dict) else {}

    def _write(self, packs: Dict[str, Dict[str, Any]]) -> None:
        self._store.write({"packs": packs})

    def save(self, pack: StimulusList, imported_at: Optional[str] = None) -> StimulusList:
        """Persist ``pack`` with its schema tag, hash and import time filled in."""
        stamp = imported_at or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        stored = replace(normalize_pack(pack), imported_at=stamp)
        packs = self._read()
        packs[stored.key] = stored.to_json()
        self._write(packs)
        logger.info("Saved pack %s (%d words)", stored.key, len(stored.words))
        return stored

    def exists(self, pack_id: str, version: str) -> bool:
        return pack_key(pack_id, version) in self._read()

    def load(self, pack_id: str, version: str) -> Optional[StimulusList]:
        raw = self._read().get(pack_key(pack_id, version))
        return StimulusList.from_json(raw) if isinstance(raw, dict) else None

    def list(self) -> List[Dict[str, Any]]:
        out = []
        for raw in self._read().values():
            if not isinstance(raw, dict):
                continue
            out.append(
                {
                    "id": raw.get("id"),
                    "version": raw.get("version"),
                    "language": raw.get("language"),
                    "source": raw.get("source"),
                    "wordCount": len(raw.get("words") or ()),
                    "importedAt": raw.get("importedAt"),
                }
            )
        return out

    def raw_packs(self) -> Dict[str, Dict[str, Any]]:
        return self._read()

    def delete(self, pack_id: str, version: str) -> None:
        packs = self._read()
        if packs.pop(pack_key(pack_id, version), None) is not None:
            self._write(packs)

    def delete_all(self) -> None:
        self._write({})

    def estimate_bytes(self) -> int:
        return self._store.size_bytes()
