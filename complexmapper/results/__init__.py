from .bundle import BUNDLE_KEY_ORDER, CsvMeta, anonymize_bundle, build_bundle, build_session_bundle, bundle_to_text
from .package import PACKAGE_KEY_ORDER, build_package, verify_package, package_to_text
from .csv_export import CSV_COLUMNS, session_trials_to_csv, session_results_to_csv
from .fingerprint import compute_session_fingerprint
from .compat import ImportCompat, compat_warnings, unknown_key_warnings
from .imports import ImportPreview, analyze_import, available_actions, extract_pack_from_bundle
from .filenames import bundle_filename, package_filename, csv_filename, pack_filename

__all__ = [
    "BUNDLE_KEY_ORDER",
    "CsvMeta",
    "anonymize_bundle",
    "build_bundle",
    "build_session_bundle",
    "bundle_to_text",
    "PACKAGE_KEY_ORDER",
    "build_package",
    "verify_package",
    "package_to_text",
    "CSV_COLUMNS",
    "session_trials_to_csv",
    "session_results_to_csv",
    "compute_session_fingerprint",
    "ImportCompat",
    "compat_warnings",
    "unknown_key_warnings",
    "ImportPreview",
    "analyze_import",
    "available_actions",
    "extract_pack_from_bundle",
    "bundle_filename",
    "package_filename",
    "csv_filename",
    "pack_filename",
]
