from __future__ import annotations

"""Storage usage report for quota debugging."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..constants import APP_VERSION
from .pack_store import PackStore
from .session_store import SessionStore


def _bytes(value: Any) -> int:
    return len(json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8"))


def _kb(n: int) -> float:
    return round(n / 1024, 1)


def build_storage_report(
    sessions: SessionStore, packs: PackStore, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Counts, approximate KB and the ten largest entries per store."""
    now = now or datetime.now(timezone.utc)
    session_rows = [
        {"id": s.id, "bytes": _bytes(s.to_json()), "imported": s.imported_from is not None}
        for s in sessions.load_all().values()
    ]
    session_rows.sort(key=lambda r: (-r["bytes"], r["id"]))

    pack_rows = []
    for key, raw in packs.raw_packs().items():
        pack_id, _, version = key.partition("@")
        pack_rows.append({"id": pack_id, "version": version, "bytes": _bytes(raw)})
    pack_rows.sort(key=lambda r: (-r["bytes"], r["id"], r["version"]))

    return {
        "generatedAt": now.isoformat(),
        "appVersion": APP_VERSION,
        "sessions": {
            "totalCount": len(session_rows),
            "approximateKB": _kb(sessions.estimate_bytes()),
            "largest10": session_rows[:10],
        },
        "packs": {
            "totalCount": len(pack_rows),
            "approximateKB": _kb(packs.estimate_bytes()),
            "largest10": pack_rows[:10],
        },
    }
