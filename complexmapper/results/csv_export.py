from __future__ import annotations

"""Tabular (CSV) export of trials using pandas.

One row per trial. The first column carries the CSV schema token so a file
stays self-describing once detached from its bundle. The redacted variant
blanks ``response`` and keeps every timing column.
"""

import csv
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from ..constants import CSV_SCHEMA_VERSION, SCORING_VERSION
from ..models import SessionResult, Trial, TrialFlag

CSV_COLUMNS = [
    "csv_schema_version",
    "session_id",
    "session_fingerprint",
    "scoring_version",
    "pack_id",
    "pack_version",
    "seed",
    "order_index",
    "word",
    "warmup",
    "response",
    "t_first_input_ms",
    "t_submit_ms",
    "backspaces",
    "edits",
    "compositions",
    "timed_out",
    "flags",
]


def _fmt_num(value: Optional[float]) -> str:
    if value is None:
        return ""
    num = float(value)
    return str(int(num)) if num.is_integer() else repr(num)


def _bool(value: Optional[bool]) -> str:
    return "true" if value else "false"


def trial_row(
    trial: Trial,
    flags: Sequence[str],
    *,
    session_id: str,
    pack_id: str,
    pack_version: str,
    seed: Optional[int],
    session_fingerprint: Optional[str] = None,
    scoring_version: Optional[str] = SCORING_VERSION,
    redacted: bool = False,
) -> Dict[str, str]:
    a = trial.association
    return {
        "csv_schema_version": CSV_SCHEMA_VERSION,
        "session_id": session_id,
        "session_fingerprint": session_fingerprint or "",
        "scoring_version": scoring_version or "",
        "pack_id": pack_id,
        "pack_version": pack_version,
        "seed": "" if seed is None else str(seed),
        "order_index": str(trial.stimulus.index),
        "word": trial.stimulus.word,
        "warmup": _bool(trial.is_practice),
        "response": "" if redacted else a.response,
        "t_first_input_ms": _fmt_num(a.t_first_key_ms),
        "t_submit_ms": _fmt_num(a.reaction_time_ms),
        "backspaces": str(a.backspace_count),
        "edits": str(a.edit_count),
        "compositions": str(a.composition_count),
        "timed_out": _bool(trial.timed_out),
        "flags": "; ".join(flags),
    }


def rows_to_csv(rows: Iterable[Dict[str, str]]) -> str:
    """Render rows with the fixed header; ``\\n`` line endings, minimal quoting."""
    df = pd.DataFrame(list(rows), columns=CSV_COLUMNS, dtype=str)
    return df.to_csv(index=False, lineterminator="\n", quoting=csv.QUOTE_MINIMAL, na_rep="")


def flags_by_index(trial_flags: Sequence[TrialFlag]) -> Dict[int, Sequence[str]]:
    return {tf.trial_index: tf.flags for tf in trial_flags}


def session_trials_to_csv(
    trials: Sequence[Trial],
    trial_flags: Sequence[TrialFlag],
    session_id: str,
    pack_id: str,
    pack_version: str,
    seed: Optional[int],
    session_fingerprint: Optional[str] = None,
    scoring_version: Optional[str] = SCORING_VERSION,
    redacted: bool = False,
) -> str:
    """CSV for one session's trials."""
    by_index = flags_by_index(trial_flags)
    rows = [
        trial_row(
            t,
            by_index.get(i, ()),
            session_id=session_id,
            pack_id=pack_id,
            pack_version=pack_version,
            seed=seed,
            session_fingerprint=session_fingerprint,
            scoring_version=scoring_version,
            redacted=redacted,
        )
        for i, t in enumerate(trials)
    ]
    return rows_to_csv(rows)


def session_results_to_csv(sessions: Sequence[SessionResult], redacted: bool = False) -> str:
    """One CSV covering several completed sessions."""
    rows: List[Dict[str, Any]] = []
    for s in sessions:
        by_index = flags_by_index(s.scoring.trial_flags)
        for i, t in enumerate(s.trials):
            rows.append(
                trial_row(
                    t,
                    by_index.get(i, ()),
                    session_id=s.id,
                    pack_id=s.config.stimulus_list_id,
                    pack_version=s.config.stimulus_list_version,
                    seed=s.seed_used,
                    session_fingerprint=s.session_fingerprint,
                    scoring_version=s.scoring_version,
                    redacted=redacted,
                )
            )
    return rows_to_csv(rows)
