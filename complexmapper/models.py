from __future__ import annotations

"""Session data model with JSON (camelCase wire names) conversion.

Trial-level records are frozen: once a session is scored its trials, flags and
summary are never edited in place. Each ``from_json`` fills explicit defaults
for fields older exports did not carry, which is what lets legacy envelopes
and rb_v2 bundles load without special casing at the call sites.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple


# Flag kinds, in the order they are attached to a trial.
EMPTY_RESPONSE = "empty_response"
REPEATED_RESPONSE = "repeated_response"
TIMING_OUTLIER_SLOW = "timing_outlier_slow"
TIMING_OUTLIER_FAST = "timing_outlier_fast"
HIGH_EDITING = "high_editing"
TIMEOUT = "timeout"

FLAG_ORDER: Tuple[str, ...] = (
    EMPTY_RESPONSE,
    REPEATED_RESPONSE,
    TIMING_OUTLIER_SLOW,
    TIMING_OUTLIER_FAST,
    HIGH_EDITING,
    TIMEOUT,
)

ORDER_POLICIES = ("fixed", "seeded")


def _opt_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def _number(value: Any, default: float = 0) -> float:
    if value is None:
        return default
    num = float(value)
    return int(num) if num.is_integer() else num


@dataclass(frozen=True)
class StimulusWord:
    word: str
    index: int

    def to_json(self) -> Dict[str, Any]:
        return {"word": self.word, "index": self.index}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "StimulusWord":
        return cls(word=str(data.get("word", "")), index=int(data.get("index", 0)))


@dataclass(frozen=True)
class AssociationResponse:
    response: str = ""
    reaction_time_ms: float = 0
    t_first_key_ms: Optional[float] = None
    backspace_count: int = 0
    edit_count: int = 0
    composition_count: int = 0

    def to_json(self) -> Dict[str, Any]:
        return {
            "response": self.response,
            "reactionTimeMs": self.reaction_time_ms,
            "tFirstKeyMs": self.t_first_key_ms,
            "backspaceCount": self.backspace_count,
            "editCount": self.edit_count,
            "compositionCount": self.composition_count,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "AssociationResponse":
        first_key = data.get("tFirstKeyMs")
        return cls(
            response=str(data.get("response") or ""),
            reaction_time_ms=_number(data.get("reactionTimeMs")),
            t_first_key_ms=_number(first_key) if first_key is not None else None,
            backspace_count=int(data.get("backspaceCount") or 0),
            edit_count=int(data.get("editCount") or 0),
            composition_count=int(data.get("compositionCount") or 0),
        )


@dataclass(frozen=True)
class Trial:
    stimulus: StimulusWord
    association: AssociationResponse
    is_practice: bool = False
    timed_out: Optional[bool] = None

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "stimulus": self.stimulus.to_json(),
            "association": self.association.to_json(),
            "isPractice": self.is_practice,
        }
        if self.timed_out is not None:
            payload["timedOut"] = self.timed_out
        return payload

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Trial":
        timed_out = data.get("timedOut")
        return cls(
            stimulus=StimulusWord.from_json(data.get("stimulus") or {}),
            association=AssociationResponse.from_json(data.get("association") or {}),
            is_practice=bool(data.get("isPractice", False)),
            timed_out=bool(timed_out) if timed_out is not None else None,
        )

    def with_response(self, response: str) -> "Trial":
        """Copy of this trial with the response text replaced; timing is retained."""
        return replace(self, association=replace(self.association, response=response))


@dataclass(frozen=True)
class TrialFlag:
    trial_index: int
    flags: Tuple[str, ...] = ()

    def to_json(self) -> Dict[str, Any]:
        return {"trialIndex": self.trial_index, "flags": list(self.flags)}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "TrialFlag":
        return cls(trial_index=int(data.get("trialIndex", 0)), flags=tuple(data.get("flags") or ()))


@dataclass(frozen=True)
class ScoringSummary:
    total_trials: int = 0
    mean_reaction_time_ms: Optional[float] = None
    median_reaction_time_ms: Optional[float] = None
    std_dev_reaction_time_ms: Optional[float] = None
    empty_response_count: int = 0
    repeated_response_count: int = 0
    timing_outlier_count: int = 0
    timing_outlier_slow_count: int = 0
    timing_outlier_fast_count: int = 0
    high_editing_count: int = 0
    timeout_count: int = 0

    def to_json(self) -> Dict[str, Any]:
        return {
            "totalTrials": self.total_trials,
            "meanReactionTimeMs": self.mean_reaction_time_ms,
            "medianReactionTimeMs": self.median_reaction_time_ms,
            "stdDevReactionTimeMs": self.std_dev_reaction_time_ms,
            "emptyResponseCount": self.empty_response_count,
            "repeatedResponseCount": self.repeated_response_count,
            "timingOutlierCount": self.timing_outlier_count,
            "timingOutlierSlowCount": self.timing_outlier_slow_count,
            "timingOutlierFastCount": self.timing_outlier_fast_count,
            "highEditingCount": self.high_editing_count,
            "timeoutCount": self.timeout_count,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ScoringSummary":
        def opt(key: str) -> Optional[float]:
            value = data.get(key)
            return _number(value) if value is not None else None

        return cls(
            total_trials=int(data.get("totalTrials") or 0),
            mean_reaction_time_ms=opt("meanReactionTimeMs"),
            median_reaction_time_ms=opt("medianReactionTimeMs"),
            std_dev_reaction_time_ms=opt("stdDevReactionTimeMs"),
            empty_response_count=int(data.get("emptyResponseCount") or 0),
            repeated_response_count=int(data.get("repeatedResponseCount") or 0),
            timing_outlier_count=int(data.get("timingOutlierCount") or 0),
            timing_outlier_slow_count=int(data.get("timingOutlierSlowCount") or 0),
            timing_outlier_fast_count=int(data.get("timingOutlierFastCount") or 0),
            high_editing_count=int(data.get("highEditingCount") or 0),
            timeout_count=int(data.get("timeoutCount") or 0),
        )


@dataclass(frozen=True)
class SessionScoring:
    trial_flags: Tuple[TrialFlag, ...] = ()
    summary: ScoringSummary = field(default_factory=ScoringSummary)

    def flags_for(self, trial_index: int) -> Tuple[str, ...]:
        for tf in self.trial_flags:
            if tf.trial_index == trial_index:
                return tf.flags
        return ()

    def to_json(self) -> Dict[str, Any]:
        return {
            "trialFlags": [tf.to_json() for tf in self.trial_flags],
            "summary": self.summary.to_json(),
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SessionScoring":
        return cls(
            trial_flags=tuple(TrialFlag.from_json(tf) for tf in data.get("trialFlags") or ()),
            summary=ScoringSummary.from_json(data.get("summary") or {}),
        )


@dataclass(frozen=True)
class SessionConfig:
    stimulus_list_id: str
    stimulus_list_version: str
    max_response_time_ms: int = 0
    order_policy: str = "fixed"
    seed: Optional[int] = None
    trial_timeout_ms: Optional[int] = None
    break_every_n: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "stimulusListId": self.stimulus_list_id,
            "stimulusListVersion": self.stimulus_list_version,
            "maxResponseTimeMs": self.max_response_time_ms,
            "orderPolicy": self.order_policy,
            "seed": self.seed,
        }
        if self.trial_timeout_ms is not None:
            payload["trialTimeoutMs"] = self.trial_timeout_ms
        if self.break_every_n is not None:
            payload["breakEveryN"] = self.break_every_n
        return payload

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SessionConfig":
        policy = str(data.get("orderPolicy") or "fixed")
        return cls(
            stimulus_list_id=str(data.get("stimulusListId") or ""),
            stimulus_list_version=str(data.get("stimulusListVersion") or ""),
            max_response_time_ms=int(data.get("maxResponseTimeMs") or 0),
            order_policy=policy if policy in ORDER_POLICIES else "fixed",
            seed=_opt_int(data.get("seed")),
            trial_timeout_ms=_opt_int(data.get("trialTimeoutMs")),
            break_every_n=_opt_int(data.get("breakEveryN")),
        )


@dataclass(frozen=True)
class Provenance:
    source_name: str
    source_year: str
    source_citation: str
    license_note: str

    def to_json(self) -> Dict[str, Any]:
        return {
            "sourceName": self.source_name,
            "sourceYear": self.source_year,
            "sourceCitation": self.source_citation,
            "licenseNote": self.license_note,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Provenance":
        return cls(
            source_name=str(data.get("sourceName") or ""),
            source_year=str(data.get("sourceYear") or ""),
            source_citation=str(data.get("sourceCitation") or ""),
            license_note=str(data.get("licenseNote") or ""),
        )


@dataclass(frozen=True)
class ProvenanceSnapshot:
    """Pack identity and attribution frozen into a session at completion."""

    list_id: str
    list_version: str
    language: str
    source: str
    source_name: str
    source_year: str
    source_citation: str
    license_note: str
    word_count: int

    def to_json(self) -> Dict[str, Any]:
        return {
            "listId": self.list_id,
            "listVersion": self.list_version,
            "language": self.language,
            "source": self.source,
            "sourceName": self.source_name,
            "sourceYear": self.source_year,
            "sourceCitation": self.source_citation,
            "licenseNote": self.license_note,
            "wordCount": self.word_count,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ProvenanceSnapshot":
        return cls(
            list_id=str(data.get("listId") or ""),
            list_version=str(data.get("listVersion") or ""),
            language=str(data.get("language") or ""),
            source=str(data.get("source") or ""),
            source_name=str(data.get("sourceName") or ""),
            source_year=str(data.get("sourceYear") or ""),
            source_citation=str(data.get("sourceCitation") or ""),
            license_note=str(data.get("licenseNote") or ""),
            word_count=int(data.get("wordCount") or 0),
        )


@dataclass(frozen=True)
class StimulusList:
    """A versioned, attributable stimulus pack."""

    id: str
    version: str
    language: str
    source: str
    provenance: Provenance
    words: Tuple[str, ...]
    stimulus_schema_version: Optional[str] = None
    stimulus_list_hash: Optional[str] = None
    imported_at: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.id}@{self.version}"

    def provenance_snapshot(self) -> ProvenanceSnapshot:
        p = self.provenance
        return ProvenanceSnapshot(
            list_id=self.id,
            list_version=self.version,
            language=self.language,
            source=self.source,
            source_name=p.source_name,
            source_year=p.source_year,
            source_citation=p.source_citation,
            license_note=p.license_note,
            word_count=len(self.words),
        )

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "version": self.version,
            "language": self.language,
            "source": self.source,
            "provenance": self.provenance.to_json(),
            "words": list(self.words),
        }
        if self.stimulus_schema_version is not None:
            payload["stimulusSchemaVersion"] = self.stimulus_schema_version
        if self.stimulus_list_hash is not None:
            payload["stimulusListHash"] = self.stimulus_list_hash
        if self.imported_at is not None:
            payload["importedAt"] = self.imported_at
        return payload

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "StimulusList":
        return cls(
            id=str(data.get("id") or ""),
            version=str(data.get("version") or ""),
            language=str(data.get("language") or ""),
            source=str(data.get("source") or ""),
            provenance=Provenance.from_json(data.get("provenance") or {}),
            words=tuple(str(w) for w in data.get("words") or ()),
            stimulus_schema_version=data.get("stimulusSchemaVersion"),
            stimulus_list_hash=data.get("stimulusListHash"),
            imported_at=data.get("importedAt"),
        )


@dataclass(frozen=True)
class StimulusPackSnapshot:
    """Content identity of the pack a session ran against.

    When ``words`` is present, ``stimulus_list_hash`` and
    ``stimulus_schema_version`` must be present too; see
    :func:`complexmapper.stimuli.snapshot.normalize_snapshot`.
    """

    stimulus_list_hash: Optional[str] = None
    stimulus_schema_version: Optional[str] = None
    provenance: Optional[ProvenanceSnapshot] = None
    words: Optional[Tuple[str, ...]] = None

    def without_words(self) -> "StimulusPackSnapshot":
        return replace(self, words=None)

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "stimulusListHash": self.stimulus_list_hash,
            "stimulusSchemaVersion": self.stimulus_schema_version,
            "provenance": self.provenance.to_json() if self.provenance else None,
        }
        if self.words is not None:
            payload["words"] = list(self.words)
        return payload

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "StimulusPackSnapshot":
        prov = data.get("provenance")
        words = data.get("words")
        return cls(
            stimulus_list_hash=data.get("stimulusListHash"),
            stimulus_schema_version=data.get("stimulusSchemaVersion"),
            provenance=ProvenanceSnapshot.from_json(prov) if isinstance(prov, dict) else None,
            words=tuple(str(w) for w in words) if isinstance(words, list) else None,
        )


@dataclass(frozen=True)
class ImportedFrom:
    package_version: str
    package_hash: str
    original_session_id: str

    def to_json(self) -> Dict[str, Any]:
        return {
            "packageVersion": self.package_version,
            "packageHash": self.package_hash,
            "originalSessionId": self.original_session_id,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ImportedFrom":
        return cls(
            package_version=str(data.get("packageVersion") or ""),
            package_hash=str(data.get("packageHash") or ""),
            original_session_id=str(data.get("originalSessionId") or ""),
        )


@dataclass(frozen=True)
class SessionResult:
    id: str
    config: SessionConfig
    trials: Tuple[Trial, ...]
    started_at: str
    completed_at: str
    scoring: SessionScoring
    seed_used: Optional[int] = None
    stimulus_order: Tuple[str, ...] = ()
    provenance_snapshot: Optional[ProvenanceSnapshot] = None
    session_fingerprint: Optional[str] = None
    scoring_version: Optional[str] = None
    app_version: Optional[str] = None
    export_schema_version: Optional[str] = None
    stimulus_pack_snapshot: Optional[StimulusPackSnapshot] = None
    imported_from: Optional[ImportedFrom] = None
    session_context: Optional[Dict[str, Any]] = None

    @property
    def scored_trials(self) -> List[Trial]:
        return [t for t in self.trials if not t.is_practice]

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "config": self.config.to_json(),
            "trials": [t.to_json() for t in self.trials],
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "scoring": self.scoring.to_json(),
            "seedUsed": self.seed_used,
            "stimulusOrder": list(self.stimulus_order),
            "provenanceSnapshot": self.provenance_snapshot.to_json() if self.provenance_snapshot else None,
            "sessionFingerprint": self.session_fingerprint,
            "scoringVersion": self.scoring_version,
            "appVersion": self.app_version,
            "exportSchemaVersion": self.export_schema_version,
            "stimulusPackSnapshot": self.stimulus_pack_snapshot.to_json() if self.stimulus_pack_snapshot else None,
            "importedFrom": self.imported_from.to_json() if self.imported_from else None,
            "sessionContext": dict(self.session_context) if self.session_context is not None else None,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SessionResult":
        trials = tuple(Trial.from_json(t) for t in data.get("trials") or ())
        order = data.get("stimulusOrder")
        if order is None:
            order = [t.stimulus.word for t in trials if not t.is_practice]
        prov = data.get("provenanceSnapshot")
        snap = data.get("stimulusPackSnapshot")
        imported = data.get("importedFrom")
        context = data.get("sessionContext")
        return cls(
            id=str(data["id"]),
            config=SessionConfig.from_json(data.get("config") or {}),
            trials=trials,
            started_at=str(data.get("startedAt") or ""),
            completed_at=str(data.get("completedAt") or ""),
            scoring=SessionScoring.from_json(data.get("scoring") or {}),
            seed_used=_opt_int(data.get("seedUsed")),
            stimulus_order=tuple(str(w) for w in order),
            provenance_snapshot=ProvenanceSnapshot.from_json(prov) if isinstance(prov, dict) else None,
            session_fingerprint=data.get("sessionFingerprint"),
            scoring_version=data.get("scoringVersion"),
            app_version=data.get("appVersion"),
            export_schema_version=data.get("exportSchemaVersion"),
            stimulus_pack_snapshot=StimulusPackSnapshot.from_json(snap) if isinstance(snap, dict) else None,
            imported_from=ImportedFrom.from_json(imported) if isinstance(imported, dict) else None,
            session_context=dict(context) if isinstance(context, dict) else None,
        )


@dataclass
class DraftSession:
    """Mutable, partially completed session; exactly one is active at a time."""

    id: str
    stimulus_list_id: str
    stimulus_list_version: str
    order_policy: str = "fixed"
    seed_used: Optional[int] = None
    word_list: List[str] = field(default_factory=list)
    practice_words: List[str] = field(default_factory=list)
    stimulus_order: List[str] = field(default_factory=list)
    trials: List[Trial] = field(default_factory=list)
    current_index: int = 0
    saved_at: str = ""
    started_at: Optional[str] = None
    trial_timeout_ms: Optional[int] = None
    break_every_n: Optional[int] = None

    def record_trial(self, trial: Trial) -> None:
        self.trials.append(trial)
        self.current_index = len(self.trials)

    def to_session_result(
        self,
        pack: Optional[StimulusList] = None,
        completed_at: Optional[str] = None,
        scoring_config: Any = None,
    ) -> SessionResult:
        """Score the recorded trials and freeze them into a SessionResult."""
        from .app.session_manager import draft_to_session_result

        return draft_to_session_result(self, pack, completed_at, scoring_config)

    def session_config(self) -> SessionConfig:
        return SessionConfig(
            stimulus_list_id=self.stimulus_list_id,
            stimulus_list_version=self.stimulus_list_version,
            max_response_time_ms=self.trial_timeout_ms or 0,
            order_policy=self.order_policy,
            seed=self.seed_used,
            trial_timeout_ms=self.trial_timeout_ms,
            break_every_n=self.break_every_n,
        )

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "stimulusListId": self.stimulus_list_id,
            "stimulusListVersion": self.stimulus_list_version,
            "orderPolicy": self.order_policy,
            "seedUsed": self.seed_used,
            "wordList": list(self.word_list),
            "practiceWords": list(self.practice_words),
            "stimulusOrder": list(self.stimulus_order),
            "trials": [t.to_json() for t in self.trials],
            "currentIndex": self.current_index,
            "savedAt": self.saved_at,
        }
        if self.started_at is not None:
            payload["startedAt"] = self.started_at
        if self.trial_timeout_ms is not None:
            payload["trialTimeoutMs"] = self.trial_timeout_ms
        if self.break_every_n is not None:
            payload["breakEveryN"] = self.break_every_n
        return payload

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "DraftSession":
        word_list = [str(w) for w in data.get("wordList") or ()]
        order = data.get("stimulusOrder")
        policy = str(data.get("orderPolicy") or "fixed")
        return cls(
            id=str(data["id"]),
            stimulus_list_id=str(data.get("stimulusListId") or ""),
            stimulus_list_version=str(data.get("stimulusListVersion") or ""),
            order_policy=policy if policy in ORDER_POLICIES else "fixed",
            seed_used=_opt_int(data.get("seedUsed")),
            word_list=word_list,
            practice_words=[str(w) for w in data.get("practiceWords") or ()],
            stimulus_order=[str(w) for w in order] if order is not None else list(word_list),
            trials=[Trial.from_json(t) for t in data.get("trials") or ()],
            current_index=int(data.get("currentIndex") or 0),
            saved_at=str(data.get("savedAt") or ""),
            started_at=data.get("startedAt"),
            trial_timeout_ms=_opt_int(data.get("trialTimeoutMs")),
            break_every_n=_opt_int(data.get("breakEveryN")),
        )
