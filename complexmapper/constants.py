from __future__ import annotations

"""Version tags and identifiers recorded in every exported artifact."""

from . import __version__

APP_VERSION: str = __version__

EXPORT_SCHEMA_VERSION = "rb_v3"
SUPPORTED_EXPORT_SCHEMAS = ("rb_v2", "rb_v3")
PROTOCOL_DOC_VERSION = "PROTOCOL.md@2026-02-13"

SCORING_VERSION = "scoring_v2_mad_3.5"
SCORING_ALGORITHM = "MAD-modified-z@3.5 + fast<200ms + timeout excluded"

PACKAGE_VERSION = "pkg_v1"
HASH_ALGORITHM = "sha-256"

STIMULUS_SCHEMA_VERSION = "sp_v1"
CSV_SCHEMA_VERSION = "csv_v1"

# Envelope version of the persisted session map.
#  v1 - plain id -> session mapping, no timing metrics
#  v2 - timing metrics, practice flag, order policy, seed, stimulus order
#  v3 - provenance snapshot, fingerprint and version tags
SESSION_STORE_SCHEMA_VERSION = 3

PRIVACY_MODES = ("full", "minimal", "redacted")

DRAFT_LOCK_TTL_MS = 2 * 60 * 1000
