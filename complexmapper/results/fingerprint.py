from __future__ import annotations

"""Session fingerprint: deterministic SHA-256 of pack, config and realized order."""

from typing import Optional, Sequence

from ..codec import sha256_hex
from ..models import SessionConfig


def fingerprint_lines(config: SessionConfig, stimulus_order: Sequence[str], seed_used: Optional[int]) -> str:
    lines = [
        f"pack:{config.stimulus_list_id}@{config.stimulus_list_version}",
        f"order:{config.order_policy}",
        f"seed:{seed_used if seed_used is not None else 'null'}",
        f"timeout:{config.trial_timeout_ms if config.trial_timeout_ms is not None else 'none'}",
        f"break:{config.break_every_n if config.break_every_n is not None else 'none'}",
        f"words:{','.join(stimulus_order)}",
    ]
    return "\n".join(lines)


def compute_session_fingerprint(
    config: SessionConfig, stimulus_order: Sequence[str], seed_used: Optional[int]
) -> str:
    """Same inputs always give the same hex digest."""
    return sha256_hex(fingerprint_lines(config, stimulus_order, seed_used))
