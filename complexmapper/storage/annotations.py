from __future__ import annotations

"""Per-trial manual tags and notes, keyed by session id and trial index.

Stored as ``{session_id: {str(trial_index): {"tags": [...], "note": str}}}``
through the same staged-commit protocol as sessions. An annotation with no
tags and a blank note is removed rather than stored.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

from .atomic import AtomicStore
from .backends import KeyValueStorage

ANNOTATIONS_KEY = "complex-mapper-trial-annotations"

SELF_TAG_ORDER: Tuple[str, ...] = ("DR", "M", "Med", "S")
SELF_TAG_LABELS: Dict[str, str] = {
    "DR": "Distant response",
    "M": "Multimodal",
    "Med": "Medical/clinical",
    "S": "Superficial",
}


@dataclass(frozen=True)
class TrialAnnotation:
    tags: Tuple[str, ...] = ()
    note: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.tags and not self.note.strip()

    def to_json(self) -> Dict[str, Any]:
        return {"tags": list(self.tags), "note": self.note}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "TrialAnnotation":
        return cls(tags=tuple(data.get("tags") or ()), note=str(data.get("note") or ""))


def _ordered_tags(tags: Iterable[str]) -> Tuple[str, ...]:
    tags = set(tags)
    unknown = sorted(tags - set(SELF_TAG_ORDER))
    if unknown:
        raise ValueError(f"Unknown annotation tag(s): {', '.join(unknown)}")
    return tuple(t for t in SELF_TAG_ORDER if t in tags)


class AnnotationStore:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._store = AtomicStore(storage, ANNOTATIONS_KEY, dict)

    def _read(self) -> Dict[str, Dict[str, Any]]:
        data = self._store.read()
        return data if isinstance(data, dict) else {}

    def get_annotation(self, session_id: str, trial_index: int) -> Optional[TrialAnnotation]:
        raw = self._read().get(session_id, {}).get(str(trial_index))
        return TrialAnnotation.from_json(raw) if isinstance(raw, dict) else None

    def set_annotation(self, session_id: str, trial_index: int, annotation: TrialAnnotation) -> None:
        """Store an annotation; an empty one deletes the entry."""
        ann = TrialAnnotation(tags=_ordered_tags(annotation.tags), note=annotation.note)
        data = self._read()
        per_session = data.get(session_id, {})
        if ann.is_empty:
            per_session.pop(str(trial_index), None)
        else:
            per_session[str(trial_index)] = ann.to_json()
        if per_session:
            data[session_id] = per_session
        else:
            data.pop(session_id, None)
        self._store.write(data)

    def get_session_annotations(self, session_id: str) -> Dict[int, TrialAnnotation]:
        raw = self._read().get(session_id, {})
        return {int(k): TrialAnnotation.from_json(v) for k, v in raw.items() if isinstance(v, dict)}

    def get_annotation_summary(self, session_id: str) -> Dict[str, int]:
        """Tag -> number of annotated trials carrying it, in tag order; absent tags omitted."""
        counts: Dict[str, int] = {}
        for ann in self.get_session_annotations(session_id).values():
            for tag in ann.tags:
                counts[tag] = counts.get(tag, 0) + 1
        return {t: counts[t] for t in SELF_TAG_ORDER if t in counts}

    def delete_session(self, session_id: str) -> None:
        data = self._read()
        if data.pop(session_id, None) is not None:
            self._store.write(data)
