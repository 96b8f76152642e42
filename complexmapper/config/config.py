from __future__ import annotations

"""Configuration loading and validation.

This module loads YAML configuration, applies defaults, and normalizes
enumerations so callers can index sections without guarding.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..constants import DRAFT_LOCK_TTL_MS, PRIVACY_MODES
from ..errors import ComplexMapperError

logger = logging.getLogger(__name__)

DEFAULTS_PATH = Path(__file__).with_name("defaults.yml")


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ComplexMapperError(f"Config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ComplexMapperError(f"Config file {path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ComplexMapperError(f"Config file {path} must hold a mapping at the top level")
    return data


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        return _load_yaml(Path(path))
    return _load_yaml(DEFAULTS_PATH)


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    # Shallow defaults for missing sections
    for section in ("app", "storage", "scoring", "export", "draft"):
        if not isinstance(cfg.get(section), dict):
            cfg[section] = {}

    app = cfg["app"]
    storage = cfg["storage"]
    export = cfg["export"]
    draft = cfg["draft"]

    app.setdefault("version", None)

    storage.setdefault("data_dir", "./complexmapper-data")
    storage.setdefault("quota_bytes", None)

    # scoring keys are validated by ScoringConfig

    export.setdefault("privacy_mode", "full")
    export.setdefault("anonymize", False)
    export.setdefault("out_dir", "./exports")

    draft.setdefault("lock_ttl_ms", DRAFT_LOCK_TTL_MS)

    # Enum validations
    mode = export.get("privacy_mode")
    if mode not in PRIVACY_MODES:
        logger.warning("Unsupported privacy_mode '%s', using 'full'.", mode)
        export["privacy_mode"] = "full"

    export["anonymize"] = bool(export.get("anonymize"))

    quota = storage.get("quota_bytes")
    if quota is not None:
        try:
            storage["quota_bytes"] = int(quota)
        except (TypeError, ValueError):
            logger.warning("Invalid storage.quota_bytes '%s', disabling quota.", quota)
            storage["quota_bytes"] = None
        else:
            if storage["quota_bytes"] <= 0:
                logger.warning("Non-positive storage.quota_bytes, disabling quota.")
                storage["quota_bytes"] = None

    try:
        draft["lock_ttl_ms"] = int(draft["lock_ttl_ms"])
    except (TypeError, ValueError):
        logger.warning("Invalid draft.lock_ttl_ms '%s', using %d.", draft["lock_ttl_ms"], DRAFT_LOCK_TTL_MS)
        draft["lock_ttl_ms"] = DRAFT_LOCK_TTL_MS

    return cfg
