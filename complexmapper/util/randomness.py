from __future__ import annotations

"""Seeded stimulus ordering and session simulation.

Orders are reproducible from ``(words, seed)`` through numpy's PCG64
generator; the recorded seed plus the realized order is what the session
fingerprint covers.
"""

import os
from typing import List, Optional, Sequence

import numpy as np

SEED_MAX = 2**31 - 1


def new_seed() -> int:
    """Seed from the SEED env var if set, else fresh entropy."""
    env = os.environ.get("SEED")
    if env is not None:
        try:
            return int(env) % SEED_MAX
        except ValueError:
            pass
    return int(np.random.default_rng().integers(0, SEED_MAX))


def seeded_order(words: Sequence[str], seed: int) -> List[str]:
    """Deterministic permutation of ``words``; the input is not mutated."""
    rng = np.random.default_rng(seed)
    idx = rng.permutation(len(words))
    return [words[int(i)] for i in idx]


def realize_order(words: Sequence[str], policy: str, seed: Optional[int]) -> List[str]:
    if policy == "seeded":
        if seed is None:
            raise ValueError("seeded order policy requires a seed")
        return seeded_order(words, seed)
    return list(words)


def simulate_trials(words: Sequence[str], seed: int, timeout_ms: int = 3000) -> List["Trial"]:
    """Deterministic synthetic trials for demos and tests.

    Roughly 5% timeouts and 5% empty responses. Other trials answer with the
    next stimulus word, echoing the stimulus itself about 10% of the time.
    """
    from ..models import AssociationResponse, StimulusWord, Trial

    rng = np.random.default_rng(seed)
    trials: List[Trial] = []
    for i, word in enumerate(words):
        timed_out = bool(rng.random() < 0.05)
        empty = not timed_out and bool(rng.random() < 0.05)
        echo = bool(rng.random() < 0.1)
        answer = word if echo else words[(i + 1) % len(words)]
        if answer.strip().lower() == word.strip().lower() and not echo:
            answer = f"{word}s"
        if timed_out:
            rt = float(timeout_ms)
        else:
            rt = float(max(80, round(350 + rng.random() * 300 + rng.random() * 200 - 100)))
        first_key = None if (empty or timed_out) else float(round(rt * 0.4 + rng.random() * 50))
        trials.append(
            Trial(
                stimulus=StimulusWord(word=word, index=i),
                association=AssociationResponse(
                    response="" if (empty or timed_out) else answer,
                    reaction_time_ms=rt,
                    t_first_key_ms=first_key,
                    backspace_count=int(round(rng.random() * 2)),
                    edit_count=int(round(1 + rng.random() * 2)),
                    composition_count=1 if i in (1, 4) else 0,
                ),
                timed_out=True if timed_out else None,
            )
        )
    return trials
