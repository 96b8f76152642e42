from __future__ import annotations

"""Session package (``pkg_v1``): bundle + CSVs under an integrity digest.

``packageHash`` is the SHA-256 of the canonical envelope with the
``packageHash`` key removed. Verification never raises on a mismatch; it
returns an :class:`IntegrityResult` so callers can show both digests.
"""

import logging
from typing import Any, Dict, Mapping

from ..app import explain
from ..codec import hash_without_field, stable_stringify
from ..constants import HASH_ALGORITHM, PACKAGE_VERSION
from ..errors import CanonicalizationError, IntegrityResult

logger = logging.getLogger(__name__)

PACKAGE_KEY_ORDER = (
    "packageVersion",
    "packageHash",
    "hashAlgorithm",
    "exportedAt",
    "bundle",
    "csv",
    "csvRedacted",
)


def package_digest(envelope: Mapping[str, Any]) -> str:
    return hash_without_field(envelope, "packageHash", PACKAGE_KEY_ORDER)


def build_package(bundle: Mapping[str, Any], csv: str, csv_redacted: str, exported_at: str) -> Dict[str, Any]:
    """Wrap a bundle and its CSV renderings, then stamp the digest."""
    envelope: Dict[str, Any] = {
        "packageVersion": PACKAGE_VERSION,
        "packageHash": "",
        "hashAlgorithm": HASH_ALGORITHM,
        "exportedAt": exported_at,
        "bundle": dict(bundle),
        "csv": csv,
        "csvRedacted": csv_redacted,
    }
    envelope["packageHash"] = package_digest(envelope)
    explain.trace("package.built", {"hash": envelope["packageHash"][:12], "csvBytes": len(csv)})
    return envelope


def verify_package(envelope: Mapping[str, Any]) -> IntegrityResult:
    """Recompute the digest and compare with the stored ``packageHash``."""
    expected = envelope.get("packageHash")
    expected = expected if isinstance(expected, str) else ""
    try:
        actual = package_digest(envelope)
    except CanonicalizationError as e:
        logger.warning("Package cannot be canonicalized: %s", e)
        actual = ""
    result = IntegrityResult(valid=bool(expected) and expected == actual, expected=expected, actual=actual)
    if not result.valid:
        logger.warning("Package integrity mismatch: expected %s, actual %s", expected[:12], actual[:12])
    explain.trace("package.verified", {"valid": result.valid})
    return result


def package_to_text(envelope: Mapping[str, Any]) -> str:
    return stable_stringify(envelope, PACKAGE_KEY_ORDER)
