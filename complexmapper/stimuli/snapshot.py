from __future__ import annotations

"""Keep embedded pack snapshots self-describing.

If a snapshot carries words, it must also carry the hash of exactly those
words and a schema tag. Values already present are never overwritten.
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence

from ..codec import words_sha256
from ..constants import STIMULUS_SCHEMA_VERSION
from ..models import StimulusList, StimulusPackSnapshot

logger = logging.getLogger(__name__)


def normalize_snapshot(
    snapshot: StimulusPackSnapshot, words: Optional[Sequence[str]] = None
) -> StimulusPackSnapshot:
    """Fill ``stimulus_list_hash`` / ``stimulus_schema_version`` from the words.

    ``words`` defaults to the snapshot's own words. With no words (or an empty
    list) the snapshot is returned unchanged.
    """
    effective = list(words) if words is not None else list(snapshot.words or ())
    if not effective:
        return snapshot
    computed = words_sha256(effective)
    if snapshot.stimulus_list_hash and snapshot.stimulus_list_hash != computed:
        logger.warning(
            "Snapshot hash %s does not match its words (%s); keeping recorded value",
            snapshot.stimulus_list_hash[:10],
            computed[:10],
        )
    return replace(
        snapshot,
        stimulus_schema_version=snapshot.stimulus_schema_version or STIMULUS_SCHEMA_VERSION,
        stimulus_list_hash=snapshot.stimulus_list_hash or computed,
        words=tuple(effective),
    )


def snapshot_from_list(pack: StimulusList) -> StimulusPackSnapshot:
    """Normalized snapshot of a pack as a session embeds it at completion."""
    base = StimulusPackSnapshot(
        stimulus_list_hash=pack.stimulus_list_hash,
        stimulus_schema_version=pack.stimulus_schema_version,
        provenance=pack.provenance_snapshot(),
        words=tuple(pack.words),
    )
    return normalize_snapshot(base)


def normalize_pack(pack: StimulusList) -> StimulusList:
    """Same backfill for a full pack record."""
    if not pack.words:
        return pack
    return replace(
        pack,
        stimulus_schema_version=pack.stimulus_schema_version or STIMULUS_SCHEMA_VERSION,
        stimulus_list_hash=pack.stimulus_list_hash or words_sha256(pack.words),
    )
