from .config import ScoringConfig
from .scoring import score_session, compute_trial_flags, summarize, format_summary
from .ci_codes import CI_CODE_ORDER, CI_CODE_LABELS, compute_ci_codes, aggregate_ci_counts, session_ci_counts

__all__ = [
    "ScoringConfig",
    "score_session",
    "compute_trial_flags",
    "summarize",
    "format_summary",
    "CI_CODE_ORDER",
    "CI_CODE_LABELS",
    "compute_ci_codes",
    "aggregate_ci_counts",
    "session_ci_counts",
]
