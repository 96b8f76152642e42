from __future__ import annotations

"""Structural validation of imported bundles and packages (Pydantic)."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from pydantic_core import PydanticCustomError

from ..constants import PRIVACY_MODES
from ..errors import ValidationIssue, issues_from_validation_error


class PrivacyModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    mode: str
    includesStimulusWords: bool
    includesResponses: bool
    identifiersAnonymized: bool = False


class SessionResultModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    config: Dict[str, Any]
    trials: List[Dict[str, Any]]
    scoring: Dict[str, Any]


class BundleModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    exportSchemaVersion: str
    exportedAt: str = ""
    protocolDocVersion: Optional[str] = None
    appVersion: Optional[str] = None
    scoringAlgorithm: Optional[str] = None
    privacy: Optional[PrivacyModel] = None
    sessionResult: SessionResultModel
    stimulusPackSnapshot: Optional[Dict[str, Any]] = None
    ciCounts: Optional[Dict[str, int]] = None
    annotationsSummary: Optional[Dict[str, int]] = None

    @model_validator(mode="after")
    def _privacy_for_v3(self) -> "BundleModel":
        if self.exportSchemaVersion == "rb_v3" and self.privacy is None:
            raise PydanticCustomError("MISSING_PRIVACY", "rb_v3 bundles must carry a privacy manifest")
        if self.privacy is not None and self.privacy.mode not in PRIVACY_MODES:
            raise PydanticCustomError("UNKNOWN_PRIVACY_MODE", "Unknown privacy mode: {mode}", {"mode": self.privacy.mode})
        return self


class PackageModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    packageVersion: str
    packageHash: str
    hashAlgorithm: str
    exportedAt: str = ""
    bundle: BundleModel
    csv: str
    csvRedacted: str


def validate_bundle(data: Any) -> List[ValidationIssue]:
    if not isinstance(data, dict):
        return [ValidationIssue("NOT_AN_OBJECT", "Bundle must be a JSON object.")]
    try:
        BundleModel.model_validate(data)
    except ValidationError as err:
        return issues_from_validation_error(err)
    return []


def validate_package(data: Any) -> List[ValidationIssue]:
    if not isinstance(data, dict):
        return [ValidationIssue("NOT_AN_OBJECT", "Package must be a JSON object.")]
    try:
        PackageModel.model_validate(data)
    except ValidationError as err:
        return issues_from_validation_error(err)
    return []
