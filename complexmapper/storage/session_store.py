from __future__ import annotations

"""Completed sessions, the active draft and its advisory lock.

Persisted envelope (v3)::

    {"schemaVersion": 3, "sessions": {<id>: <SessionResult JSON>}}

Older data (a bare ``id -> session`` map, or an envelope below v3) is migrated
on read by filling explicit defaults, then written back.
"""

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from ..app import explain
from ..constants import DRAFT_LOCK_TTL_MS, SESSION_STORE_SCHEMA_VERSION
from ..errors import StorageError
from ..models import DraftSession, SessionResult
from .atomic import AtomicStore
from .backends import KeyValueStorage

logger = logging.getLogger(__name__)

SESSIONS_KEY = "complex-mapper-sessions"
DRAFT_KEY = "complex-mapper-draft"
DRAFT_LOCK_KEY = "complex-mapper-draft-lock"


@dataclass(frozen=True)
class SessionListEntry:
    id: str
    completed_at: str
    total_trials: int
    stimulus_list_id: str
    imported: bool = False

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "completedAt": self.completed_at,
            "totalTrials": self.total_trials,
            "stimulusListId": self.stimulus_list_id,
            "imported": self.imported,
        }


def _empty_envelope() -> Dict[str, Any]:
    return {"schemaVersion": SESSION_STORE_SCHEMA_VERSION, "sessions": {}}


def _parse_time(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _completed_before(session: SessionResult, cutoff: datetime) -> bool:
    t = _parse_time(session.completed_at)
    return t is not None and t < cutoff


def _now_ms() -> float:
    return time.time() * 1000


class SessionStore:
    def __init__(
        self,
        storage: KeyValueStorage,
        clock_ms: Callable[[], float] = _now_ms,
        lock_ttl_ms: int = DRAFT_LOCK_TTL_MS,
    ) -> None:
        self.storage = storage
        self._sessions = AtomicStore(storage, SESSIONS_KEY, _empty_envelope)
        self._draft = AtomicStore(storage, DRAFT_KEY, lambda: None)
        self.clock_ms = clock_ms
        self.lock_ttl_ms = lock_ttl_ms

    # ---- envelope I/O ----
    def _read_raw(self) -> Dict[str, Any]:
        data = self._sessions.read()
        if not isinstance(data, dict):
            logger.warning("Session store holds a %s, not an object; treating as empty", type(data).__name__)
            return _empty_envelope()
        if "schemaVersion" not in data:
            return self._migrate(data, 1)
        version = int(data.get("schemaVersion") or 0)
        sessions = data.get("sessions")
        if not isinstance(sessions, dict):
            sessions = {}
        if version < SESSION_STORE_SCHEMA_VERSION:
            return self._migrate(sessions, version)
        return {"schemaVersion": version, "sessions": sessions}

    def _migrate(self, sessions: Dict[str, Any], from_version: int) -> Dict[str, Any]:
        migrated: Dict[str, Any] = {}
        for sid, raw in sessions.items():
            if not isinstance(raw, dict):
                logger.warning("Dropping unmigratable session %s (not an object)", sid)
                continue
            raw = dict(raw)
            raw.setdefault("id", sid)
            try:
                migrated[sid] = SessionResult.from_json(raw).to_json()
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Dropping unmigratable session %s: %s", sid, e)
        envelope = {"schemaVersion": SESSION_STORE_SCHEMA_VERSION, "sessions": migrated}
        logger.info("Migrated %d session(s) from schema v%d to v%d", len(migrated), from_version, SESSION_STORE_SCHEMA_VERSION)
        try:
            self._sessions.write(envelope)
        except StorageError as e:
            # the migrated view is still served; the next successful write persists it
            logger.error("Could not persist migrated sessions: %s", e)
        return envelope

    def _load_all(self) -> Dict[str, SessionResult]:
        out: Dict[str, SessionResult] = {}
        for sid, raw in self._read_raw()["sessions"].items():
            try:
                out[sid] = SessionResult.from_json(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable session %s: %s", sid, e)
        return out

    def _write_all(self, sessions: Dict[str, SessionResult]) -> None:
        envelope = {
            "schemaVersion": SESSION_STORE_SCHEMA_VERSION,
            "sessions": {sid: s.to_json() for sid, s in sessions.items()},
        }
        self._sessions.write(envelope)

    # ---- completed sessions ----
    def save(self, session: SessionResult) -> None:
        sessions = self._load_all()
        sessions[session.id] = session
        self._write_all(sessions)
        explain.trace("session.saved", {"id": session.id, "trials": len(session.trials)})

    def load(self, session_id: str) -> Optional[SessionResult]:
        return self._load_all().get(session_id)

    def load_all(self) -> Dict[str, SessionResult]:
        return self._load_all()

    def exists(self, session_id: str) -> bool:
        return session_id in self._read_raw()["sessions"]

    def ids(self) -> List[str]:
        return list(self._read_raw()["sessions"])

    def list(self) -> List[SessionListEntry]:
        """Metadata for every session, most recently completed first."""
        entries = [
            SessionListEntry(
                id=s.id,
                completed_at=s.completed_at,
                total_trials=len(s.scored_trials),
                stimulus_list_id=s.config.stimulus_list_id,
                imported=s.imported_from is not None,
            )
            for s in self._load_all().values()
        ]
        entries.sort(key=lambda e: e.completed_at, reverse=True)
        return entries

    def delete(self, session_id: str) -> None:
        sessions = self._load_all()
        if sessions.pop(session_id, None) is not None:
            self._write_all(sessions)

    def delete_all(self) -> None:
        self._sessions.write(_empty_envelope())

    def export_all(self) -> str:
        return json.dumps(self._read_raw(), indent=2, ensure_ascii=False)

    def estimate_bytes(self) -> int:
        return self._sessions.size_bytes()

    def referenced_packs(self) -> Set[str]:
        """``id@version`` of every pack some stored session ran against."""
        return {
            f"{s.config.stimulus_list_id}@{s.config.stimulus_list_version}" for s in self._load_all().values()
        }

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete sessions completed strictly before ``cutoff``; returns the count."""
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)
        sessions = self._load_all()
        doomed = [sid for sid, s in sessions.items() if _completed_before(s, cutoff)]
        for sid in doomed:
            del sessions[sid]
        if doomed:
            self._write_all(sessions)
        return len(doomed)

    def delete_imported(self) -> int:
        sessions = self._load_all()
        doomed = [sid for sid, s in sessions.items() if s.imported_from is not None]
        for sid in doomed:
            del sessions[sid]
        if doomed:
            self._write_all(sessions)
        return len(doomed)

    # ---- draft ----
    def save_draft(self, draft: DraftSession) -> None:
        self._draft.write(draft.to_json())

    def load_draft(self) -> Optional[DraftSession]:
        data = self._draft.read()
        if not isinstance(data, dict):
            return None
        try:
            return DraftSession.from_json(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable draft: %s", e)
            return None

    def delete_draft(self) -> None:
        self.storage.remove(self._draft.staging_key)
        self.storage.remove(DRAFT_KEY)

    # ---- advisory draft lock ----
    def _read_lock(self) -> Optional[Dict[str, Any]]:
        raw = self.storage.get(DRAFT_LOCK_KEY)
        if raw is None:
            return None
        try:
            lock = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable draft lock")
            return None
        return lock if isinstance(lock, dict) else None

    def _expired(self, lock: Dict[str, Any]) -> bool:
        acquired = float(lock.get("acquiredAtMs") or 0)
        return self.clock_ms() - acquired >= self.lock_ttl_ms

    def acquire_draft_lock(self, tab_id: str) -> bool:
        """Take (or refresh) the lock unless another live holder has it."""
        lock = self._read_lock()
        if lock is None or lock.get("tabId") == tab_id or self._expired(lock):
            payload = {"tabId": tab_id, "acquiredAtMs": self.clock_ms()}
            self.storage.set(DRAFT_LOCK_KEY, json.dumps(payload, separators=(",", ":")))
            return True
        return False

    def release_draft_lock(self, tab_id: str) -> None:
        lock = self._read_lock()
        if lock is not None and lock.get("tabId") == tab_id:
            self.storage.remove(DRAFT_LOCK_KEY)

    def is_draft_locked_by_other(self, tab_id: str) -> bool:
        lock = self._read_lock()
        if lock is None or lock.get("tabId") == tab_id:
            return False
        return not self._expired(lock)
