from __future__ import annotations

"""Import preview: detect what a JSON file is and what may be done with it.

    pack      a bare stimulus pack file
    bundle    an ``rb_v*`` research bundle (may embed a pack)
    package   a ``pkg_v1`` session package (verified before anything else)
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Collection, Dict, List, Optional

from ..errors import CompatWarning, IntegrityResult
from ..models import ImportedFrom, SessionResult, StimulusPackSnapshot
from ..stimuli.snapshot import normalize_snapshot
from .compat import ImportCompat, compat_warnings, unknown_key_warnings
from .package import verify_package
from .schema import validate_bundle, validate_package

logger = logging.getLogger(__name__)

IMPORT_AS_SESSION = "Import as Session"
EXTRACT_PACK = "Extract Pack"
IMPORT_PACK = "Import Pack"
BLOCKED_INTEGRITY = "Blocked: Integrity mismatch"


@dataclass
class ImportPreview:
    type: str
    pack_data: Dict[str, Any]
    word_count: int
    hash: Optional[str]
    schema_version: Optional[str]
    size_bytes: int
    package_version: Optional[str] = None
    package_hash: Optional[str] = None
    compat: Optional[ImportCompat] = None
    integrity: Optional[IntegrityResult] = None
    session_to_import: Optional[SessionResult] = None
    warnings: List[CompatWarning] = field(default_factory=list)

    @property
    def integrity_failed(self) -> bool:
        return self.integrity is not None and not self.integrity.valid


def extract_pack_from_bundle(bundle: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Pack dict embedded in a bundle, or ``None`` without words + provenance."""
    if not isinstance(bundle.get("exportSchemaVersion"), str):
        return None
    snap = bundle.get("stimulusPackSnapshot")
    if not isinstance(snap, dict):
        return None
    words = snap.get("words")
    prov = snap.get("provenance")
    if not isinstance(words, list) or not words or not isinstance(prov, dict):
        return None
    pack: Dict[str, Any] = {
        "id": prov.get("listId"),
        "version": prov.get("listVersion"),
        "language": prov.get("language"),
        "source": prov.get("source"),
        "provenance": {
            "sourceName": prov.get("sourceName"),
            "sourceYear": prov.get("sourceYear"),
            "sourceCitation": prov.get("sourceCitation"),
            "licenseNote": prov.get("licenseNote"),
        },
        "words": list(words),
    }
    if snap.get("stimulusSchemaVersion") is not None:
        pack["stimulusSchemaVersion"] = snap["stimulusSchemaVersion"]
    if snap.get("stimulusListHash") is not None:
        pack["stimulusListHash"] = snap["stimulusListHash"]
    return pack


def _session_from_bundle(bundle: Dict[str, Any]) -> Optional[SessionResult]:
    sr = bundle.get("sessionResult")
    if not isinstance(sr, dict):
        return None
    try:
        session = SessionResult.from_json(sr)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Package session payload is not importable: %s", e)
        return None

    snap = session.stimulus_pack_snapshot
    if snap is None and isinstance(bundle.get("stimulusPackSnapshot"), dict):
        snap = StimulusPackSnapshot.from_json(bundle["stimulusPackSnapshot"])
    if snap is None:
        return session
    return replace(session, stimulus_pack_snapshot=normalize_snapshot(snap))


def analyze_import(parsed: Any, raw_json: str = "") -> Optional[ImportPreview]:
    """Classify a parsed JSON document; ``None`` when nothing importable is found."""
    if not isinstance(parsed, dict):
        return None
    kind = "pack"
    pack: Optional[Dict[str, Any]]
    package_version = package_hash = None
    compat: Optional[ImportCompat] = None
    integrity: Optional[IntegrityResult] = None
    session: Optional[SessionResult] = None
    warnings: List[CompatWarning] = []

    if isinstance(parsed.get("packageVersion"), str) and isinstance(parsed.get("bundle"), dict):
        kind = "package"
        bundle = parsed["bundle"]
        package_version = parsed["packageVersion"]
        package_hash = parsed.get("packageHash") if isinstance(parsed.get("packageHash"), str) else None
        pack = extract_pack_from_bundle(bundle)
        compat = ImportCompat.from_bundle(bundle)
        warnings += unknown_key_warnings(parsed, "package") + unknown_key_warnings(bundle, "bundle")
        warnings += [CompatWarning(i.code, i.message) for i in validate_package(parsed)]
        if package_hash is not None:
            integrity = verify_package(parsed)
            if integrity.valid:
                session = _session_from_bundle(bundle)
    elif isinstance(parsed.get("exportSchemaVersion"), str):
        kind = "bundle"
        pack = extract_pack_from_bundle(parsed)
        compat = ImportCompat.from_bundle(parsed)
        warnings += unknown_key_warnings(parsed, "bundle")
        warnings += [CompatWarning(i.code, i.message) for i in validate_bundle(parsed)]
    else:
        pack = dict(parsed)

    if pack is None:
        if kind != "package":
            return None
        # minimal/redacted packages carry no words but still import as sessions
        pack = {}

    words = pack.get("words")
    return ImportPreview(
        type=kind,
        pack_data=pack,
        word_count=len(words) if isinstance(words, list) else 0,
        hash=pack.get("stimulusListHash"),
        schema_version=pack.get("stimulusSchemaVersion"),
        size_bytes=len(raw_json.encode("utf-8")),
        package_version=package_version,
        package_hash=package_hash,
        compat=compat,
        integrity=integrity,
        session_to_import=session,
        warnings=compat_warnings(compat) + warnings,
    )


def available_actions(preview: ImportPreview, integrity_failed: Optional[bool] = None) -> List[str]:
    """Allowed actions for a preview; one list drives both display and gating."""
    failed = preview.integrity_failed if integrity_failed is None else integrity_failed
    if failed:
        return [BLOCKED_INTEGRITY]
    if preview.type == "package":
        actions: List[str] = []
        if preview.session_to_import is not None:
            actions.append(IMPORT_AS_SESSION)
        if preview.word_count > 0:
            actions.append(EXTRACT_PACK)
        if not actions:
            actions.append(IMPORT_AS_SESSION)
        return actions
    return [IMPORT_PACK]


def collision_free_id(session_id: str, package_hash: str, existing: Collection[str]) -> str:
    """``<id>__import_<hash8>`` when ``session_id`` is taken, numbered further if needed."""
    if session_id not in existing:
        return session_id
    candidate = f"{session_id}__import_{package_hash[:8]}"
    n = 2
    while candidate in existing:
        candidate = f"{session_id}__import_{package_hash[:8]}_{n}"
        n += 1
    return candidate


def session_from_preview(preview: ImportPreview, existing_ids: Collection[str]) -> SessionResult:
    """Session to persist for a verified package, stamped with ``importedFrom``."""
    if preview.integrity_failed:
        raise ValueError("Refusing to import a package whose integrity check failed")
    session = preview.session_to_import
    if session is None:
        raise ValueError("Package carries no importable session")
    package_hash = preview.package_hash or ""
    imported = ImportedFrom(
        package_version=preview.package_version or "",
        package_hash=package_hash,
        original_session_id=session.id,
    )
    new_id = collision_free_id(session.id, package_hash, existing_ids)
    if new_id != session.id:
        logger.info("Session id %s already exists; importing as %s", session.id, new_id)
    return replace(session, id=new_id, imported_from=imported)
