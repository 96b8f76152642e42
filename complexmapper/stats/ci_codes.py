from __future__ import annotations

"""Clinical-interest (CI) codes derived per trial from response content and flags.

    F    failure to respond (empty response or timeout); excludes every other code
    MSW  multi-word response
    RSW  response equals the stimulus word
    PRT  prolonged reaction time (timing_outlier_slow)
    (P)  perseveration marker (repeated_response)
"""

from typing import Dict, Iterable, List, Sequence

from ..models import REPEATED_RESPONSE, TIMEOUT, TIMING_OUTLIER_SLOW, SessionResult

F = "F"
MSW = "MSW"
RSW = "RSW"
PRT = "PRT"
PERSEVERATION = "(P)"

CI_CODE_ORDER = (F, MSW, RSW, PRT, PERSEVERATION)

CI_CODE_LABELS: Dict[str, str] = {
    F: "Failure to respond",
    MSW: "Multi-word response",
    RSW: "Response = stimulus",
    PRT: "Prolonged RT",
    PERSEVERATION: "Perseveration",
}


def compute_ci_codes(response: str, flags: Iterable[str], stimulus_word: str) -> List[str]:
    """Codes for one trial, in ``CI_CODE_ORDER``. An empty list is a valid outcome."""
    flags = set(flags)
    text = (response or "").strip()
    if TIMEOUT in flags or "timed_out" in flags or text == "":
        return [F]

    codes = set()
    if text.lower() == (stimulus_word or "").strip().lower():
        codes.add(RSW)
    if len(text.split()) > 1:
        codes.add(MSW)
    if TIMING_OUTLIER_SLOW in flags:
        codes.add(PRT)
    if REPEATED_RESPONSE in flags:
        codes.add(PERSEVERATION)
    return [c for c in CI_CODE_ORDER if c in codes]


def aggregate_ci_counts(per_trial_codes: Iterable[Sequence[str]]) -> Dict[str, int]:
    """Sum code occurrences; codes that never occur are omitted."""
    counts: Dict[str, int] = {}
    for codes in per_trial_codes:
        for c in codes:
            counts[c] = counts.get(c, 0) + 1
    ordered = {c: counts[c] for c in CI_CODE_ORDER if c in counts}
    for c in sorted(k for k in counts if k not in ordered):
        ordered[c] = counts[c]
    return ordered


def session_ci_codes(session: SessionResult) -> Dict[int, List[str]]:
    """Per-trial codes for the scored (non-practice) trials, keyed by trial index."""
    out: Dict[int, List[str]] = {}
    for i, trial in enumerate(session.trials):
        if trial.is_practice:
            continue
        flags = list(session.scoring.flags_for(i))
        if trial.timed_out:
            flags.append(TIMEOUT)
        out[i] = compute_ci_codes(trial.association.response, flags, trial.stimulus.word)
    return out


def session_ci_counts(session: SessionResult) -> Dict[str, int]:
    return aggregate_ci_counts(session_ci_codes(session).values())
