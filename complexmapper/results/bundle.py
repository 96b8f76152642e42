from __future__ import annotations

"""Research bundle (``rb_v3``) assembly.

A bundle is a plain dict whose top-level keys follow ``BUNDLE_KEY_ORDER`` when
canonicalized. The builder is a pure function of its inputs: identical inputs
(timestamp included) give canonically identical bundles, and changing only
``exported_at`` changes only ``exportedAt``.

Privacy modes:

    full      stimulus words and responses included
    minimal   responses included, stimulus words excluded
    redacted  neither; response text blanked, timing kept
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..codec import sha256_hex, stable_stringify
from ..constants import (
    APP_VERSION,
    EXPORT_SCHEMA_VERSION,
    PRIVACY_MODES,
    PROTOCOL_DOC_VERSION,
    SCORING_ALGORITHM,
)
from ..models import SessionResult, StimulusPackSnapshot, Trial, TrialFlag
from ..stimuli.snapshot import normalize_snapshot

logger = logging.getLogger(__name__)

BUNDLE_KEY_ORDER = (
    "exportSchemaVersion",
    "exportedAt",
    "protocolDocVersion",
    "appVersion",
    "scoringAlgorithm",
    "privacy",
    "sessionResult",
    "stimulusPackSnapshot",
    "ciCounts",
    "annotationsSummary",
)


@dataclass(frozen=True)
class CsvMeta:
    """Identity fields shared by the CSV rows and the fallback session payload."""

    session_id: str
    pack_id: str
    pack_version: str
    seed: Optional[int] = None
    session_fingerprint: Optional[str] = None
    order_policy: str = "fixed"
    trial_timeout_ms: Optional[int] = None
    break_every_n: Optional[int] = None
    stimulus_list_hash: Optional[str] = None

    @classmethod
    def from_session(cls, session: SessionResult) -> "CsvMeta":
        snap = session.stimulus_pack_snapshot
        return cls(
            session_id=session.id,
            pack_id=session.config.stimulus_list_id,
            pack_version=session.config.stimulus_list_version,
            seed=session.seed_used,
            session_fingerprint=session.session_fingerprint,
            order_policy=session.config.order_policy,
            trial_timeout_ms=session.config.trial_timeout_ms,
            break_every_n=session.config.break_every_n,
            stimulus_list_hash=snap.stimulus_list_hash if snap else None,
        )


def privacy_manifest(mode: str, anonymize: bool = False) -> Dict[str, Any]:
    if mode not in PRIVACY_MODES:
        raise ValueError(f"Unknown privacy mode '{mode}' (expected one of {', '.join(PRIVACY_MODES)})")
    return {
        "mode": mode,
        "includesStimulusWords": mode == "full",
        "includesResponses": mode != "redacted",
        "identifiersAnonymized": bool(anonymize),
    }


def redact_trials(trials: Sequence[Trial]) -> List[Trial]:
    return [t.with_response("") for t in trials]


def _session_payload(
    mode: str,
    trials: Sequence[Trial],
    trial_flags: Sequence[TrialFlag],
    mean_rt: Optional[float],
    median_rt: Optional[float],
    session: Optional[SessionResult],
    csv_meta: CsvMeta,
) -> Dict[str, Any]:
    trials_json = [t.to_json() for t in trials]
    if session is not None:
        payload = session.to_json()
        payload["trials"] = trials_json
        snap = session.stimulus_pack_snapshot
        if snap is not None and mode != "full":
            payload["stimulusPackSnapshot"] = snap.without_words().to_json()
        return payload

    config: Dict[str, Any] = {
        "stimulusListId": csv_meta.pack_id,
        "stimulusListVersion": csv_meta.pack_version,
        "orderPolicy": csv_meta.order_policy,
        "seed": csv_meta.seed,
    }
    if csv_meta.trial_timeout_ms is not None:
        config["trialTimeoutMs"] = csv_meta.trial_timeout_ms
    if csv_meta.break_every_n is not None:
        config["breakEveryN"] = csv_meta.break_every_n
    return {
        "id": csv_meta.session_id,
        "config": config,
        "trials": trials_json,
        "scoring": {
            "trialFlags": [tf.to_json() for tf in trial_flags],
            "summary": {"meanReactionTimeMs": mean_rt, "medianReactionTimeMs": median_rt},
        },
        "sessionFingerprint": csv_meta.session_fingerprint,
    }


def _pack_snapshot(
    mode: str,
    session: Optional[SessionResult],
    csv_meta: CsvMeta,
    snapshot: Optional[StimulusPackSnapshot],
    words: Optional[Sequence[str]],
) -> Dict[str, Any]:
    base = snapshot
    if base is None and session is not None:
        base = session.stimulus_pack_snapshot
    if base is None:
        base = StimulusPackSnapshot(
            stimulus_list_hash=csv_meta.stimulus_list_hash,
            stimulus_schema_version=None,
            provenance=session.provenance_snapshot if session else None,
        )
    normalized = normalize_snapshot(base, words)
    if mode != "full":
        normalized = normalized.without_words()
    return normalized.to_json()


def build_bundle(
    mode: str,
    trials: Sequence[Trial],
    trial_flags: Sequence[TrialFlag],
    mean_rt: Optional[float],
    median_rt: Optional[float],
    session: Optional[SessionResult],
    csv_meta: CsvMeta,
    ci_counts: Optional[Mapping[str, int]] = None,
    exported_at: str = "",
    anonymize: bool = False,
    snapshot: Optional[StimulusPackSnapshot] = None,
    words: Optional[Sequence[str]] = None,
    annotations_summary: Optional[Mapping[str, int]] = None,
) -> Dict[str, Any]:
    """Assemble an export bundle.

    Args:
        mode: ``full`` | ``minimal`` | ``redacted``.
        trials, trial_flags: The session's trials and their flags.
        mean_rt, median_rt: Summary figures used when ``session`` is absent.
        session: Full session record; preferred source of the payload.
        csv_meta: Identity fields (fallback payload and snapshot hash).
        ci_counts: Aggregated CI code counts; included when not ``None``.
        exported_at: ISO timestamp recorded as ``exportedAt``.
        anonymize: Apply :func:`anonymize_bundle` and record it in the manifest.
        snapshot: Pack snapshot to embed; defaults to the session's.
        words: Resolved pack words used to backfill the snapshot hash.
        annotations_summary: Tag -> count; the key is omitted when empty.
    """
    privacy = privacy_manifest(mode, anonymize)
    kept = redact_trials(trials) if mode == "redacted" else list(trials)

    bundle: Dict[str, Any] = {
        "exportSchemaVersion": EXPORT_SCHEMA_VERSION,
        "exportedAt": exported_at,
        "protocolDocVersion": PROTOCOL_DOC_VERSION,
        "appVersion": APP_VERSION,
        "scoringAlgorithm": SCORING_ALGORITHM,
        "privacy": privacy,
        "sessionResult": _session_payload(mode, kept, trial_flags, mean_rt, median_rt, session, csv_meta),
        "stimulusPackSnapshot": _pack_snapshot(mode, session, csv_meta, snapshot, words),
    }
    if ci_counts is not None:
        bundle["ciCounts"] = dict(ci_counts)
    if annotations_summary:
        bundle["annotationsSummary"] = dict(annotations_summary)

    if anonymize:
        bundle = anonymize_bundle(bundle)
    return bundle


def build_session_bundle(
    session: SessionResult,
    mode: str = "full",
    exported_at: str = "",
    anonymize: bool = False,
    ci_counts: Optional[Mapping[str, int]] = None,
    words: Optional[Sequence[str]] = None,
    annotations_summary: Optional[Mapping[str, int]] = None,
) -> Dict[str, Any]:
    """Convenience wrapper building a bundle from a stored session."""
    summary = session.scoring.summary
    return build_bundle(
        mode,
        session.trials,
        session.scoring.trial_flags,
        summary.mean_reaction_time_ms,
        summary.median_reaction_time_ms,
        session,
        CsvMeta.from_session(session),
        ci_counts=ci_counts,
        exported_at=exported_at,
        anonymize=anonymize,
        words=words,
        annotations_summary=annotations_summary,
    )


def anonymous_id(session_payload: Mapping[str, Any]) -> str:
    """``anon_<prefix>`` derived from the fingerprint (or the id when there is none)."""
    basis = session_payload.get("sessionFingerprint") or sha256_hex(str(session_payload.get("id", "")))
    return f"anon_{str(basis)[:12]}"


def anonymize_bundle(bundle: Mapping[str, Any]) -> Dict[str, Any]:
    """Strip identifying fields from a bundle copy.

    The privacy manifest is left exactly as built; ``importedFrom`` survives.
    """
    out = copy.deepcopy(dict(bundle))
    sr = out.get("sessionResult")
    if isinstance(sr, dict):
        sr["id"] = anonymous_id(sr)
        if "startedAt" in sr:
            sr["startedAt"] = ""
        if "completedAt" in sr:
            sr["completedAt"] = ""
        sr.pop("sessionContext", None)
    out["exportedAt"] = ""
    return out


def bundle_to_text(bundle: Mapping[str, Any]) -> str:
    """Canonical text of a bundle (the form that gets hashed and written)."""
    return stable_stringify(bundle, BUNDLE_KEY_ORDER)
