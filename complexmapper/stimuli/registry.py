from __future__ import annotations

"""Built-in stimulus lists, keyed by ``id@version``.

Each list is versioned and attributable. ``EXPECTED_HASHES`` freezes the
pack-identity hash of every built-in list so an accidental edit to a word is
caught by the test suite.
"""

from typing import Any, Dict, List, Optional

from ..constants import STIMULUS_SCHEMA_VERSION
from ..models import Provenance, StimulusList

DEMO_LIST_V1 = StimulusList(
    id="demo-10",
    version="1.0.0",
    language="en",
    source="Project demo list (not clinically validated)",
    provenance=Provenance(
        source_name="Complex Mapper Project",
        source_year="2025",
        source_citation="Internal demo list, not derived from any clinical instrument.",
        license_note="Project-internal; no license restrictions.",
    ),
    words=("tree", "house", "water", "mother", "dark", "journey", "bridge", "child", "fire", "silence"),
    stimulus_schema_version=STIMULUS_SCHEMA_VERSION,
)

# Kent & Rosanoff (1910), "A study of association in insanity". Public domain.
KENT_ROSANOFF_1910_V1 = StimulusList(
    id="kent-rosanoff-1910",
    version="1.0.0",
    language="en",
    source="Kent & Rosanoff (1910)",
    provenance=Provenance(
        source_name="Grace Helen Kent & Aaron Joshua Rosanoff",
        source_year="1910",
        source_citation=(
            'Kent, G. H., & Rosanoff, A. J. (1910). "A study of association in insanity." '
            "American Journal of Insanity, 67, 37-96."
        ),
        license_note="Public domain (published 1910, US copyright expired).",
    ),
    words=(
        "table", "dark", "music", "sickness", "man", "deep", "soft", "eating", "mountain", "house",
        "black", "mutton", "comfort", "hand", "short", "fruit", "butterfly", "smooth", "command", "chair",
        "sweet", "whistle", "woman", "cold", "slow", "wish", "river", "white", "beautiful", "window",
        "rough", "citizen", "foot", "spider", "needle", "red", "sleep", "anger", "carpet", "girl",
        "high", "working", "sour", "earth", "trouble", "soldier", "cabbage", "hard", "eagle", "stomach",
        "stem", "lamp", "dream", "yellow", "bread", "justice", "boy", "light", "health", "bible",
        "memory", "sheep", "bath", "cottage", "swift", "blue", "hungry", "priest", "ocean", "head",
        "stove", "long", "religion", "whiskey", "child", "bitter", "hammer", "thirsty", "city", "square",
        "butter", "doctor", "loud", "thief", "lion", "joy", "bed", "heavy", "tobacco", "baby",
        "moon", "scissors", "quiet", "green", "salt", "street", "king", "cheese", "blossom", "afraid",
    ),
    stimulus_schema_version=STIMULUS_SCHEMA_VERSION,
)

# sha256("\n".join(words)) per built-in list.
EXPECTED_HASHES: Dict[str, str] = {
    "demo-10@1.0.0": "703387c3dee2fc429df5b478e20916e77e15cb949ea31a2fb1d6067eb8714201",
    "kent-rosanoff-1910@1.0.0": "31ab5dd87c812e7204231c8756ed3e2572befdb611a7320aaf601cedfbbbf210",
}

_REGISTRY: Dict[str, StimulusList] = {lst.key: lst for lst in (DEMO_LIST_V1, KENT_ROSANOFF_1910_V1)}


def get_stimulus_list(list_id: str, version: str) -> Optional[StimulusList]:
    """Look up a built-in list; ``None`` if unknown."""
    return _REGISTRY.get(f"{list_id}@{version}")


def list_available_stimulus_lists() -> List[Dict[str, Any]]:
    """Metadata for every built-in list (without the word arrays)."""
    return [
        {
            "id": lst.id,
            "version": lst.version,
            "language": lst.language,
            "source": lst.source,
            "wordCount": len(lst.words),
        }
        for lst in _REGISTRY.values()
    ]


def is_builtin(list_id: str, version: str) -> bool:
    return f"{list_id}@{version}" in _REGISTRY
