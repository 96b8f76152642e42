from __future__ import annotations

"""Deterministic JSON serialization and SHA-256 helpers.

Rules:
- Top-level keys follow the caller's explicit order; keys the order does not
  name follow, sorted, so the top level never depends on construction order.
- Nested objects keep their natural (insertion) order. Every ``to_json`` in
  :mod:`complexmapper.models` builds its dict from a fixed literal.
- Compact separators, UTF-8 preserved, NaN/Infinity rejected.
- Integral floats serialize as integers so ``400`` and ``400.0`` hash alike.
"""

import hashlib
import json
import math
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from ..errors import CanonicalizationError


def canonical_value(value: Any) -> Any:
    """Return a JSON-ready copy of ``value`` with numbers normalized."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise CanonicalizationError(f"canonical_value: non-finite number {value!r}")
        return int(value) if value.is_integer() else value
    if isinstance(value, Mapping):
        out: Dict[str, Any] = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise CanonicalizationError(f"canonical_value: non-string key {k!r}")
            out[k] = canonical_value(v)
        return out
    if isinstance(value, (list, tuple)):
        return [canonical_value(v) for v in value]
    raise CanonicalizationError(f"canonical_value: unsupported type {type(value).__name__}")


def _ordered(obj: Mapping[str, Any], key_order: Sequence[str]) -> Dict[str, Any]:
    ordered: Dict[str, Any] = {}
    for k in key_order:
        if k in obj:
            ordered[k] = obj[k]
    for k in sorted(k for k in obj if k not in ordered):
        ordered[k] = obj[k]
    return ordered


def stable_stringify(value: Any, key_order: Optional[Sequence[str]] = None) -> str:
    """Serialize ``value`` to its canonical text form.

    Args:
        value: Any JSON-compatible structure.
        key_order: Explicit ordering for the top-level object's keys.

    Raises:
        CanonicalizationError: if the value holds NaN, Infinity or a
            non-JSON type.
    """
    normalized = canonical_value(value)
    if key_order is not None and isinstance(normalized, dict):
        normalized = _ordered(normalized, key_order)
    try:
        return json.dumps(normalized, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise CanonicalizationError(f"stable_stringify: non-serializable input: {e}") from None


def sha256_hex(text: str) -> str:
    """Return the lowercase SHA-256 hex digest of UTF-8 encoded text."""
    if not isinstance(text, str):
        raise TypeError("sha256_hex: text must be str")
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def words_sha256(words: Iterable[str], separator: str = "\n") -> str:
    """Pack-identity hash: SHA-256 of the words joined by ``separator``.

    Words are hashed as-is (no case folding, no trimming, no trailing
    separator).
    """
    return sha256_hex(separator.join(words))


def hash_without_field(envelope: Mapping[str, Any], field: str, key_order: Sequence[str]) -> str:
    """SHA-256 of the canonical form of ``envelope`` with ``field`` removed."""
    body = {k: v for k, v in envelope.items() if k != field}
    return sha256_hex(stable_stringify(body, key_order))
