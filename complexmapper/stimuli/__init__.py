from .registry import get_stimulus_list, list_available_stimulus_lists, EXPECTED_HASHES
from .schema import validate_stimulus_list
from .snapshot import normalize_snapshot, snapshot_from_list, normalize_pack

__all__ = [
    "get_stimulus_list",
    "list_available_stimulus_lists",
    "EXPECTED_HASHES",
    "validate_stimulus_list",
    "normalize_snapshot",
    "snapshot_from_list",
    "normalize_pack",
]
