from __future__ import annotations

"""Session Manager: orchestrates drafts, scoring, persistence, export and import.

CLI-agnostic. Every persisted artifact flows through the stores it owns, and
every exported artifact through the bundle/package builders.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from ..constants import APP_VERSION, EXPORT_SCHEMA_VERSION, SCORING_VERSION
from ..errors import ComplexMapperError, ValidationIssue
from ..models import DraftSession, SessionResult, StimulusList, Trial
from ..results.bundle import build_session_bundle, bundle_to_text
from ..results.csv_export import session_trials_to_csv
from ..results.filenames import bundle_filename, csv_filename, package_filename
from ..results.fingerprint import compute_session_fingerprint
from ..results.imports import ImportPreview, analyze_import, available_actions, session_from_preview
from ..results.package import build_package, package_to_text
from ..stats.ci_codes import session_ci_counts
from ..stats.config import ScoringConfig
from ..stats.scoring import score_session
from ..stimuli.registry import get_stimulus_list, is_builtin
from ..stimuli.schema import validate_stimulus_list
from ..stimuli.snapshot import snapshot_from_list
from ..storage.annotations import AnnotationStore
from ..storage.backends import KeyValueStorage
from ..storage.pack_store import PackStore
from ..storage.session_store import SessionStore
from ..util.randomness import new_seed, realize_order
from .explain import trace as xtrace

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def draft_to_session_result(
    draft: DraftSession,
    pack: Optional[StimulusList] = None,
    completed_at: Optional[str] = None,
    scoring_config: Optional[ScoringConfig] = None,
    session_context: Optional[Dict[str, Any]] = None,
) -> SessionResult:
    """Score a finished draft and freeze it into a SessionResult."""
    config = draft.session_config()
    scoring = score_session(draft.trials, scoring_config)
    fingerprint = compute_session_fingerprint(config, draft.stimulus_order, draft.seed_used)
    provenance = pack.provenance_snapshot() if pack is not None else None
    snapshot = snapshot_from_list(pack) if pack is not None else None
    return SessionResult(
        id=draft.id,
        config=config,
        trials=tuple(draft.trials),
        started_at=draft.started_at or draft.saved_at,
        completed_at=completed_at or utc_now_iso(),
        scoring=scoring,
        seed_used=draft.seed_used,
        stimulus_order=tuple(draft.stimulus_order),
        provenance_snapshot=provenance,
        session_fingerprint=fingerprint,
        scoring_version=SCORING_VERSION,
        app_version=APP_VERSION,
        export_schema_version=EXPORT_SCHEMA_VERSION,
        stimulus_pack_snapshot=snapshot,
        session_context=session_context,
    )


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    text: str
    payload: Optional[Dict[str, Any]] = None


class SessionManager:
    def __init__(
        self,
        cfg: Dict[str, Any],
        storage: KeyValueStorage,
        clock_ms: Optional[Callable[[], float]] = None,
    ) -> None:
        self.cfg = cfg
        self.storage = storage
        lock_ttl = int(cfg.get("draft", {}).get("lock_ttl_ms", 120000))
        if clock_ms is None:
            self.sessions = SessionStore(storage, lock_ttl_ms=lock_ttl)
        else:
            self.sessions = SessionStore(storage, clock_ms=clock_ms, lock_ttl_ms=lock_ttl)
        self.packs = PackStore(storage)
        self.annotations = AnnotationStore(storage)
        self.scoring_config = ScoringConfig.from_config(cfg)
        self.owner_id = str(uuid4())

    # ---- packs ----
    def resolve_pack(self, pack_id: str, version: str) -> Optional[StimulusList]:
        return get_stimulus_list(pack_id, version) or self.packs.load(pack_id, version)

    def resolve_pack_words(self, session: SessionResult) -> Optional[List[str]]:
        """Best-effort word list for a session's pack.

        Installed pack first, then the embedded snapshot, then the realized
        (scored) order.
        """
        pack = self.resolve_pack(session.config.stimulus_list_id, session.config.stimulus_list_version)
        if pack is not None:
            return list(pack.words)
        snap = session.stimulus_pack_snapshot
        if snap is not None and snap.words:
            return list(snap.words)
        if session.stimulus_order:
            return list(session.stimulus_order)
        return None

    def import_pack(self, data: Dict[str, Any]) -> Tuple[Optional[StimulusList], List[ValidationIssue]]:
        issues = validate_stimulus_list(data)
        if issues:
            return None, issues
        pack = StimulusList.from_json(data)
        if is_builtin(pack.id, pack.version) or self.packs.exists(pack.id, pack.version):
            return None, [
                ValidationIssue("PACK_EXISTS", f'Pack "{pack.key}" already exists. Delete it first to re-import.')
            ]
        saved = self.packs.save(pack)
        xtrace("pack.imported", {"key": saved.key, "words": len(saved.words)})
        return saved, []

    def delete_pack(self, pack_id: str, version: str) -> bool:
        """Delete a custom pack. Returns True if stored sessions still reference it.

        Sessions keep their embedded snapshot; nothing of theirs is touched.
        """
        self.packs.delete(pack_id, version)
        referenced = f"{pack_id}@{version}" in self.sessions.referenced_packs()
        if referenced:
            logger.info("Deleted pack %s@%s; stored sessions keep their snapshot", pack_id, version)
        return referenced

    # ---- drafts ----
    def start_draft(
        self,
        pack_id: str,
        version: str,
        order_policy: str = "fixed",
        seed: Optional[int] = None,
        practice_words: Sequence[str] = (),
        trial_timeout_ms: Optional[int] = None,
        break_every_n: Optional[int] = None,
    ) -> DraftSession:
        pack = self.resolve_pack(pack_id, version)
        if pack is None:
            raise ComplexMapperError(f"Unknown stimulus list {pack_id}@{version}")
        self._claim_draft()
        if order_policy == "seeded" and seed is None:
            seed = new_seed()
        now = utc_now_iso()
        draft = DraftSession(
            id=str(uuid4()),
            stimulus_list_id=pack.id,
            stimulus_list_version=pack.version,
            order_policy=order_policy,
            seed_used=seed if order_policy == "seeded" else None,
            word_list=list(pack.words),
            practice_words=list(practice_words),
            stimulus_order=realize_order(pack.words, order_policy, seed),
            saved_at=now,
            started_at=now,
            trial_timeout_ms=trial_timeout_ms,
            break_every_n=break_every_n,
        )
        self.sessions.save_draft(draft)
        xtrace("draft.started", {"id": draft.id, "pack": pack.key, "policy": order_policy})
        return draft

    def _claim_draft(self) -> None:
        if not self.sessions.acquire_draft_lock(self.owner_id):
            raise ComplexMapperError("Another process is running a session; try again later")

    def resume_draft(self) -> Optional[DraftSession]:
        """Load the saved draft, taking the lock first. ``None`` when there is no draft."""
        self._claim_draft()
        draft = self.sessions.load_draft()
        if draft is None:
            self.sessions.release_draft_lock(self.owner_id)
        return draft

    def discard_draft(self) -> None:
        self._claim_draft()
        self.sessions.delete_draft()
        self.sessions.release_draft_lock(self.owner_id)

    def record_trial(self, draft: DraftSession, trial: Trial) -> None:
        # refreshes our lock; fails if another live holder took it over
        self._claim_draft()
        draft.record_trial(trial)
        draft.saved_at = utc_now_iso()
        self.sessions.save_draft(draft)

    def complete_draft(
        self,
        draft: DraftSession,
        completed_at: Optional[str] = None,
        session_context: Optional[Dict[str, Any]] = None,
    ) -> SessionResult:
        pack = self.resolve_pack(draft.stimulus_list_id, draft.stimulus_list_version)
        session = draft_to_session_result(draft, pack, completed_at, self.scoring_config, session_context)
        self.sessions.save(session)
        self.sessions.delete_draft()
        self.sessions.release_draft_lock(self.owner_id)
        return session

    # ---- export ----
    def _require(self, session_id: str) -> SessionResult:
        session = self.sessions.load(session_id)
        if session is None:
            raise ComplexMapperError(f"No session with id '{session_id}'")
        return session

    def bundle_for(
        self, session: SessionResult, mode: str, anonymize: bool = False, exported_at: Optional[str] = None
    ) -> Dict[str, Any]:
        return build_session_bundle(
            session,
            mode=mode,
            exported_at=exported_at if exported_at is not None else utc_now_iso(),
            anonymize=anonymize,
            ci_counts=session_ci_counts(session),
            words=self.resolve_pack_words(session),
            annotations_summary=self.annotations.get_annotation_summary(session.id),
        )

    def export_bundle(
        self, session_id: str, mode: str = "full", anonymize: bool = False, exported_at: Optional[str] = None
    ) -> ExportArtifact:
        bundle = self.bundle_for(self._require(session_id), mode, anonymize, exported_at)
        hash_prefix = bundle["sessionResult"].get("sessionFingerprint")
        text = bundle_to_text(bundle)
        xtrace("bundle.exported", {"id": session_id, "mode": mode, "bytes": len(text)})
        return ExportArtifact(bundle_filename(mode, hash_prefix), text, bundle)

    def export_package(
        self, session_id: str, mode: str = "full", anonymize: bool = False, exported_at: Optional[str] = None
    ) -> ExportArtifact:
        session = self._require(session_id)
        stamp = exported_at if exported_at is not None else utc_now_iso()
        bundle = self.bundle_for(session, mode, anonymize, stamp)
        csv_id = bundle["sessionResult"]["id"]
        csv_args = (
            session.trials,
            session.scoring.trial_flags,
            csv_id,
            session.config.stimulus_list_id,
            session.config.stimulus_list_version,
            session.seed_used,
            session.session_fingerprint,
            session.scoring_version,
        )
        csv_redacted = session_trials_to_csv(*csv_args, redacted=True)
        csv_full = csv_redacted if mode == "redacted" else session_trials_to_csv(*csv_args)
        pkg = build_package(bundle, csv_full, csv_redacted, bundle["exportedAt"])
        return ExportArtifact(package_filename(mode, pkg["packageHash"]), package_to_text(pkg), pkg)

    def export_csv(self, session_id: str, redacted: bool = False) -> ExportArtifact:
        s = self._require(session_id)
        text = session_trials_to_csv(
            s.trials,
            s.scoring.trial_flags,
            s.id,
            s.config.stimulus_list_id,
            s.config.stimulus_list_version,
            s.seed_used,
            s.session_fingerprint,
            s.scoring_version,
            redacted=redacted,
        )
        return ExportArtifact(csv_filename(redacted), text)

    # ---- import ----
    def preview_import(self, raw_json: str) -> Optional[ImportPreview]:
        try:
            parsed = json.loads(raw_json)
        except ValueError as e:
            raise ComplexMapperError(f"Invalid JSON file: {e}") from e
        return analyze_import(parsed, raw_json)

    def import_session(self, preview: ImportPreview) -> SessionResult:
        if "Import as Session" not in available_actions(preview):
            raise ComplexMapperError("This file cannot be imported as a session")
        try:
            session = session_from_preview(preview, self.sessions.ids())
        except ValueError as e:
            raise ComplexMapperError(str(e)) from e
        self.sessions.save(session)
        return session

    def extract_pack(self, preview: ImportPreview) -> Tuple[Optional[StimulusList], List[ValidationIssue]]:
        if preview.integrity_failed:
            return None, [ValidationIssue("INTEGRITY_MISMATCH", "Package integrity check failed")]
        return self.import_pack(preview.pack_data)
