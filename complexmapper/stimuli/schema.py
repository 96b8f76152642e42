from __future__ import annotations

"""Pack file validation.

The pack envelope is parsed into Pydantic models whose validators raise
``PydanticCustomError`` with stable issue codes; the resulting
``ValidationError`` is flattened into :class:`ValidationIssue` records here
and never escapes :func:`validate_stimulus_list`.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from ..codec import words_sha256
from ..errors import ValidationIssue, issues_from_validation_error

MESSAGES: Dict[str, str] = {
    "MISSING_ID": "Pack ID is required.",
    "MISSING_VERSION": "Version is required.",
    "MISSING_LANGUAGE": "Language is required.",
    "MISSING_SOURCE": "Source is required.",
    "MISSING_PROVENANCE": "Provenance metadata is required.",
    "EMPTY_WORDS": "Word list must not be empty.",
    "BLANK_WORDS": "Word list contains blank entries.",
    "DUPLICATE_WORDS": "Word list contains duplicates (case-insensitive).",
}

_TOP_LEVEL_CODES = {
    "id": "MISSING_ID",
    "version": "MISSING_VERSION",
    "language": "MISSING_LANGUAGE",
    "source": "MISSING_SOURCE",
}


def _required_text(value: Any, code: str, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise PydanticCustomError(code, message)
    return value


class ProvenanceModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    sourceName: str = Field("", validate_default=True)
    sourceYear: str = Field("", validate_default=True)
    sourceCitation: str = Field("", validate_default=True)
    licenseNote: str = Field("", validate_default=True)

    @field_validator("sourceName", "sourceYear", "sourceCitation", "licenseNote", mode="before")
    @classmethod
    def _required(cls, v: Any, info: ValidationInfo) -> str:
        return _required_text(v, "MISSING_PROVENANCE_FIELD", f"provenance.{info.field_name} is required.")


class StimulusPackModel(BaseModel):
    """Shape of an imported pack file (``sp_v1``)."""

    model_config = ConfigDict(extra="allow")

    id: str = Field("", validate_default=True)
    version: str = Field("", validate_default=True)
    language: str = Field("", validate_default=True)
    source: str = Field("", validate_default=True)
    provenance: Optional[ProvenanceModel] = Field(None, validate_default=True)
    words: Any = None
    stimulusSchemaVersion: Optional[str] = None
    stimulusListHash: Optional[str] = None

    @field_validator("id", "version", "language", "source", mode="before")
    @classmethod
    def _required(cls, v: Any, info: ValidationInfo) -> str:
        code = _TOP_LEVEL_CODES[info.field_name]
        return _required_text(v, code, MESSAGES[code])

    @field_validator("provenance", mode="before")
    @classmethod
    def _provenance_present(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            raise PydanticCustomError("MISSING_PROVENANCE", MESSAGES["MISSING_PROVENANCE"])
        return v


def word_issues(words: Any) -> List[ValidationIssue]:
    if not isinstance(words, list) or len(words) == 0:
        return [ValidationIssue("EMPTY_WORDS", MESSAGES["EMPTY_WORDS"])]
    issues: List[ValidationIssue] = []
    blanks = [w for w in words if not isinstance(w, str) or not w.strip()]
    if blanks:
        issues.append(ValidationIssue("BLANK_WORDS", f"{len(blanks)} blank or non-string word(s) found."))
    seen = set()
    duplicates: List[str] = []
    for w in words:
        if isinstance(w, str):
            lower = w.strip().lower()
            if lower in seen:
                duplicates.append(w)
            seen.add(lower)
    if duplicates:
        issues.append(
            ValidationIssue(
                "DUPLICATE_WORDS",
                f"{len(duplicates)} duplicate word(s): {', '.join(duplicates[:5])}",
            )
        )
    return issues


def validate_stimulus_list(data: Any) -> List[ValidationIssue]:
    """Validate a pack dict. Returns an empty list when the pack is importable.

    A recorded ``stimulusListHash`` is checked against the words only once
    every structural check passes.
    """
    if not isinstance(data, dict):
        return [ValidationIssue("NOT_AN_OBJECT", "Pack must be a JSON object.")]
    issues: List[ValidationIssue] = []
    try:
        StimulusPackModel.model_validate(data)
    except ValidationError as err:
        issues.extend(issues_from_validation_error(err))
    issues.extend(word_issues(data.get("words")))
    if issues:
        return issues

    recorded = data.get("stimulusListHash")
    if recorded:
        computed = words_sha256(data["words"])
        if recorded != computed:
            issues.append(
                ValidationIssue(
                    "HASH_MISMATCH",
                    f"Hash mismatch: expected {recorded}, computed {computed}. Pack may be corrupted.",
                )
            )
    return issues
