from __future__ import annotations

"""Deterministic, filesystem-safe names for exported artifacts."""

import re
from datetime import datetime, timezone
from typing import Optional

from ..constants import CSV_SCHEMA_VERSION, EXPORT_SCHEMA_VERSION, PACKAGE_VERSION

APP_SLUG = "cm"

_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]")


def sanitise(text: str) -> str:
    """Replace unsafe characters with ``-``, collapse runs, trim edge dashes."""
    out = _UNSAFE.sub("-", text)
    out = re.sub(r"-{2,}", "-", out)
    return out.strip("-")


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is not None:
        return now.astimezone(timezone.utc)
    return now


def _date(now: datetime) -> str:
    return now.strftime("%Y%m%d")


def _stamp(now: datetime) -> str:
    return now.strftime("%Y%m%dT%H%M")


def _hash_part(value: Optional[str]) -> str:
    return sanitise(value[:10]) if value else ""


def bundle_filename(mode: str, hash_prefix: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """``cm_rb_v3_<mode>[_<hash10>]_<YYYYMMDD>T<HHmm>.json``"""
    t = _now(now)
    hp = _hash_part(hash_prefix)
    parts = [APP_SLUG, EXPORT_SCHEMA_VERSION, sanitise(mode)] + ([hp] if hp else []) + [_stamp(t)]
    return "_".join(parts) + ".json"


def package_filename(mode: str, package_hash: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """``cm_pkg_v1_<mode>[_<hash10>]_<YYYYMMDD>T<HHmm>.json``"""
    t = _now(now)
    hp = _hash_part(package_hash)
    parts = [APP_SLUG, PACKAGE_VERSION, sanitise(mode)] + ([hp] if hp else []) + [_stamp(t)]
    return "_".join(parts) + ".json"


def csv_filename(redacted: bool = False, now: Optional[datetime] = None) -> str:
    """``cm_csv_v1_<YYYYMMDD>T<HHmm>[_redacted].csv``"""
    t = _now(now)
    parts = [APP_SLUG, CSV_SCHEMA_VERSION, _stamp(t)] + (["redacted"] if redacted else [])
    return "_".join(parts) + ".csv"


def pack_filename(pack_id: str, version: str, now: Optional[datetime] = None) -> str:
    """``cm_pack_<id>_<version>_<YYYYMMDD>.json``"""
    t = _now(now)
    return "_".join([APP_SLUG, "pack", sanitise(pack_id), sanitise(version), _date(t)]) + ".json"
