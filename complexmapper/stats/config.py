from __future__ import annotations

"""Scoring hyperparameters using Pydantic."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ScoringConfig(BaseModel):
    """Hyperparameters for flag detection.

    - mad_threshold: |modified z| above which a reaction time is an outlier
    - mad_constant: consistency constant for the modified z-score
    - fast_threshold_ms: reaction times below this are always fast outliers
    - high_editing_floor: minimum backspace/edit count before high_editing can fire
    - min_mad_sample: scored timing samples required before MAD detection runs
    """

    model_config = ConfigDict(frozen=True)

    mad_threshold: float = Field(3.5, gt=0)
    mad_constant: float = Field(0.6745, gt=0)
    fast_threshold_ms: float = Field(200, ge=0)
    high_editing_floor: int = Field(3, ge=0)
    min_mad_sample: int = Field(3, ge=1)

    @classmethod
    def from_config(cls, cfg: Optional[Dict[str, Any]]) -> "ScoringConfig":
        """Build from the ``scoring`` section of the YAML config (unknown keys ignored)."""
        section = dict((cfg or {}).get("scoring", {}) or {})
        known = {k: v for k, v in section.items() if k in cls.model_fields}
        return cls(**known)
