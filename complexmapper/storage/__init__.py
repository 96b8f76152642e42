from .backends import KeyValueStorage, MemoryStorage, DirectoryStorage
from .atomic import AtomicStore, CLEAN, STAGED
from .session_store import SessionStore, SessionListEntry
from .pack_store import PackStore
from .annotations import AnnotationStore, TrialAnnotation, SELF_TAG_ORDER, SELF_TAG_LABELS
from .report import build_storage_report

__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "DirectoryStorage",
    "AtomicStore",
    "CLEAN",
    "STAGED",
    "SessionStore",
    "SessionListEntry",
    "PackStore",
    "AnnotationStore",
    "TrialAnnotation",
    "SELF_TAG_ORDER",
    "SELF_TAG_LABELS",
    "build_storage_report",
]
