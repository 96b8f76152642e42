from __future__ import annotations

"""Non-blocking compatibility checks for imported bundles and packages.

Formats evolve additively: every version has an explicit set of recognized
top-level keys, and anything outside it is reported, never rejected. A field
recorded as ``None`` means "unknown" and never produces a warning.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from ..constants import (
    APP_VERSION,
    EXPORT_SCHEMA_VERSION,
    PACKAGE_VERSION,
    PRIVACY_MODES,
    PROTOCOL_DOC_VERSION,
    SUPPORTED_EXPORT_SCHEMAS,
)
from ..errors import CompatWarning

_RB_V2_KEYS = frozenset(
    {
        "exportSchemaVersion",
        "exportedAt",
        "protocolDocVersion",
        "appVersion",
        "scoringAlgorithm",
        "sessionResult",
        "stimulusPackSnapshot",
    }
)

RECOGNIZED_BUNDLE_KEYS: Dict[str, FrozenSet[str]] = {
    "rb_v2": _RB_V2_KEYS,
    "rb_v3": _RB_V2_KEYS | {"privacy", "ciCounts", "annotationsSummary"},
}

RECOGNIZED_PACKAGE_KEYS: Dict[str, FrozenSet[str]] = {
    "pkg_v1": frozenset(
        {"packageVersion", "packageHash", "hashAlgorithm", "exportedAt", "bundle", "csv", "csvRedacted"}
    ),
}


@dataclass(frozen=True)
class ImportCompat:
    """Version tags recorded by the producer of an imported artifact."""

    export_schema_version: Optional[str] = None
    protocol_doc_version: Optional[str] = None
    imported_app_version: Optional[str] = None
    privacy_mode: Optional[str] = None

    @classmethod
    def from_bundle(cls, bundle: Mapping[str, Any]) -> "ImportCompat":
        privacy = bundle.get("privacy")

        def text(value: Any) -> Optional[str]:
            return value if isinstance(value, str) else None

        return cls(
            export_schema_version=text(bundle.get("exportSchemaVersion")),
            protocol_doc_version=text(bundle.get("protocolDocVersion")),
            imported_app_version=text(bundle.get("appVersion")),
            privacy_mode=text(privacy.get("mode")) if isinstance(privacy, dict) else None,
        )


def compat_warnings(
    compat: Optional[ImportCompat], current_app_version: Optional[str] = APP_VERSION
) -> List[CompatWarning]:
    """Compare recorded version tags with the running app's."""
    if compat is None:
        return []
    warnings: List[CompatWarning] = []

    schema = compat.export_schema_version
    if schema and schema != EXPORT_SCHEMA_VERSION:
        if schema in SUPPORTED_EXPORT_SCHEMAS:
            msg = f"Older schema version: {schema} (current: {EXPORT_SCHEMA_VERSION})"
        else:
            msg = f"Unrecognized schema version: {schema} (current: {EXPORT_SCHEMA_VERSION})"
        warnings.append(CompatWarning("exportSchemaVersion", msg))

    if compat.protocol_doc_version and compat.protocol_doc_version != PROTOCOL_DOC_VERSION:
        warnings.append(
            CompatWarning("protocolDocVersion", f"Different protocol version: {compat.protocol_doc_version}")
        )

    if current_app_version and compat.imported_app_version and compat.imported_app_version != current_app_version:
        warnings.append(
            CompatWarning(
                "appVersion",
                f"Created with app v{compat.imported_app_version} (current: v{current_app_version})",
            )
        )

    mode = compat.privacy_mode
    if mode == "minimal":
        warnings.append(CompatWarning("privacy.mode", "Minimal export: stimulus words not included"))
    elif mode == "redacted":
        warnings.append(CompatWarning("privacy.mode", "Redacted export: responses and stimulus words not included"))
    elif mode and mode not in PRIVACY_MODES:
        warnings.append(CompatWarning("privacy.mode", f"Unknown privacy mode: {mode}"))

    return warnings


def unknown_key_warnings(obj: Mapping[str, Any], kind: str) -> List[CompatWarning]:
    """Warn about top-level keys the recorded version does not define.

    ``kind`` is ``"bundle"`` or ``"package"``. Unknown versions fall back to the
    current version's key set.
    """
    if kind == "package":
        version = obj.get("packageVersion")
        table = RECOGNIZED_PACKAGE_KEYS
        current = PACKAGE_VERSION
    else:
        version = obj.get("exportSchemaVersion")
        table = RECOGNIZED_BUNDLE_KEYS
        current = EXPORT_SCHEMA_VERSION
    known = table.get(version) if isinstance(version, str) else None
    if known is None:
        known = table[current]
    extra = sorted(k for k in obj if k not in known)
    return [CompatWarning(k, f"Unrecognized {kind} key '{k}' (ignored)") for k in extra]
