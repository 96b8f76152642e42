from __future__ import annotations

"""Pure scoring of a completed set of trials: per-trial flags + session summary.

Timing outliers use the modified z-score over the Median Absolute Deviation,

    modified_z = mad_constant * (rt - median) / MAD

computed over non-practice, non-timeout reaction times. Anything under
``fast_threshold_ms`` is a fast outlier regardless of MAD, so sessions whose
MAD is zero still catch implausibly quick submissions. A timed-out trial never
carries timing flags; repetition and editing are still reported.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..models import (
    EMPTY_RESPONSE,
    FLAG_ORDER,
    HIGH_EDITING,
    REPEATED_RESPONSE,
    TIMEOUT,
    TIMING_OUTLIER_FAST,
    TIMING_OUTLIER_SLOW,
    ScoringSummary,
    SessionScoring,
    Trial,
    TrialFlag,
)
from .config import ScoringConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = ScoringConfig()


def _round2(value: float) -> float:
    return round(float(value), 2)


def is_timed_out(trial: Trial, flags: Iterable[str] = ()) -> bool:
    """A trial timed out if the collector marked it, or a timeout flag is already present."""
    if trial.timed_out is True:
        return True
    return any(f in (TIMEOUT, "timed_out") for f in flags)


def timing_sample(trials: Sequence[Trial]) -> List[float]:
    """Reaction times that feed the robust center: non-practice, non-timeout."""
    return [float(t.association.reaction_time_ms) for t in trials if not t.is_practice and not is_timed_out(t)]


def mad_center(sample: Sequence[float]) -> Tuple[Optional[float], Optional[float]]:
    """Return ``(median, MAD)`` of the sample, or ``(None, None)`` when it is empty."""
    if len(sample) == 0:
        return None, None
    arr = np.asarray(sample, dtype=np.float64)
    median = float(np.median(arr))
    mad = float(np.median(np.abs(arr - median)))
    return median, mad


def modified_z(rt: float, median: float, mad: float, constant: float = 0.6745) -> float:
    return constant * (rt - median) / mad


def _is_high_editing(trial: Trial, cfg: ScoringConfig) -> bool:
    a = trial.association
    limit = max(cfg.high_editing_floor, len(a.response.strip()))
    return max(a.backspace_count, a.edit_count) > limit


def flag_trial(
    trial: Trial,
    median: Optional[float],
    mad: Optional[float],
    use_mad: bool,
    cfg: ScoringConfig = DEFAULT_CONFIG,
) -> Tuple[str, ...]:
    """Compute the flags for one trial against a precomputed center."""
    found = set()
    response = trial.association.response.strip()
    rt = float(trial.association.reaction_time_ms)

    if response == "":
        found.add(EMPTY_RESPONSE)

    timed_out = is_timed_out(trial)
    if timed_out:
        found.add(TIMEOUT)

    if response and response.lower() == trial.stimulus.word.strip().lower():
        found.add(REPEATED_RESPONSE)
    if _is_high_editing(trial, cfg):
        found.add(HIGH_EDITING)

    if timed_out:
        return tuple(f for f in FLAG_ORDER if f in found)

    if rt < cfg.fast_threshold_ms:
        found.add(TIMING_OUTLIER_FAST)
    if use_mad and median is not None and mad:
        z = modified_z(rt, median, mad, cfg.mad_constant)
        if z > cfg.mad_threshold:
            found.add(TIMING_OUTLIER_SLOW)
        elif z < -cfg.mad_threshold:
            found.add(TIMING_OUTLIER_FAST)

    return tuple(f for f in FLAG_ORDER if f in found)


def compute_trial_flags(trials: Sequence[Trial], cfg: ScoringConfig = DEFAULT_CONFIG) -> List[TrialFlag]:
    """Flags for every trial (practice included), indexed by position in ``trials``."""
    sample = timing_sample(trials)
    median, mad = mad_center(sample)
    use_mad = len(sample) >= cfg.min_mad_sample and bool(mad)
    if len(sample) and not use_mad:
        logger.debug("MAD outlier detection skipped (n=%d, mad=%s)", len(sample), mad)
    return [TrialFlag(trial_index=i, flags=flag_trial(t, median, mad, use_mad, cfg)) for i, t in enumerate(trials)]


def summarize(trials: Sequence[Trial], trial_flags: Sequence[TrialFlag]) -> ScoringSummary:
    """Aggregate statistics over non-practice trials.

    Central tendency fields are ``None`` when no timing sample exists.
    """
    by_index: Dict[int, Tuple[str, ...]] = {tf.trial_index: tf.flags for tf in trial_flags}
    scored = [(i, t) for i, t in enumerate(trials) if not t.is_practice]

    counts = {kind: 0 for kind in FLAG_ORDER}
    outliers = 0
    for i, _t in scored:
        flags = by_index.get(i, ())
        for kind in flags:
            if kind in counts:
                counts[kind] += 1
        if TIMING_OUTLIER_SLOW in flags or TIMING_OUTLIER_FAST in flags:
            outliers += 1

    sample = timing_sample(trials)
    if sample:
        arr = np.asarray(sample, dtype=np.float64)
        mean: Optional[float] = _round2(np.mean(arr))
        median: Optional[float] = _round2(np.median(arr))
        std: Optional[float] = _round2(np.std(arr))
    else:
        mean = median = std = None

    return ScoringSummary(
        total_trials=len(scored),
        mean_reaction_time_ms=mean,
        median_reaction_time_ms=median,
        std_dev_reaction_time_ms=std,
        empty_response_count=counts[EMPTY_RESPONSE],
        repeated_response_count=counts[REPEATED_RESPONSE],
        timing_outlier_count=outliers,
        timing_outlier_slow_count=counts[TIMING_OUTLIER_SLOW],
        timing_outlier_fast_count=counts[TIMING_OUTLIER_FAST],
        high_editing_count=counts[HIGH_EDITING],
        timeout_count=counts[TIMEOUT],
    )


def score_session(trials: Sequence[Trial], cfg: Optional[ScoringConfig] = None) -> SessionScoring:
    """Score a completed set of trials. Same input always yields the same output."""
    cfg = cfg or DEFAULT_CONFIG
    trial_flags = compute_trial_flags(trials, cfg)
    return SessionScoring(trial_flags=tuple(trial_flags), summary=summarize(trials, trial_flags))


def format_summary(summary: ScoringSummary) -> str:
    """Return a human-readable summary."""

    def ms(v: Optional[float]) -> str:
        return "n/a" if v is None else f"{v:.2f} ms"

    lines = [
        f"Scored trials: {summary.total_trials}",
        f"Mean RT: {ms(summary.mean_reaction_time_ms)}",
        f"Median RT: {ms(summary.median_reaction_time_ms)}",
        f"SD RT: {ms(summary.std_dev_reaction_time_ms)}",
        f"Empty: {summary.empty_response_count}  Repeated: {summary.repeated_response_count}",
        f"Outliers: {summary.timing_outlier_count} "
        f"(slow {summary.timing_outlier_slow_count}, fast {summary.timing_outlier_fast_count})",
        f"High editing: {summary.high_editing_count}  Timeouts: {summary.timeout_count}",
    ]
    return "\n".join(lines)
