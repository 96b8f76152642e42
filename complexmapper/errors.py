from __future__ import annotations

"""Exception types and structured, non-raising result records."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class ComplexMapperError(Exception):
    """Base class for errors raised by this package."""


class StorageError(ComplexMapperError):
    """The backing key-value store failed to read, write or remove a key."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class CapacityError(StorageError):
    """The backing store rejected a write because it would exceed its quota."""

    def __init__(self, key: str, size: int, quota: Optional[int] = None) -> None:
        detail = f" (quota {quota} bytes)" if quota is not None else ""
        super().__init__(f"Storage capacity exceeded writing {size} bytes to '{key}'{detail}", key=key)
        self.size = size
        self.quota = quota


class CanonicalizationError(ComplexMapperError, ValueError):
    """A value cannot be serialized deterministically (NaN, Infinity, unsupported type)."""


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str

    def to_json(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class IntegrityResult:
    """Outcome of re-hashing a package. Mismatch is data, never an exception."""

    valid: bool
    expected: str
    actual: str

    def to_json(self) -> Dict[str, Any]:
        return {"valid": self.valid, "expected": self.expected, "actual": self.actual}


@dataclass(frozen=True)
class CompatWarning:
    field: str
    message: str

    def to_json(self) -> Dict[str, Any]:
        return {"field": self.field, "message": self.message}


def issues_from_validation_error(err: Any) -> List[ValidationIssue]:
    """Flatten a pydantic ``ValidationError`` into issue records.

    Custom error types raised with upper-case codes are kept as the issue code;
    pydantic's own error types map to ``MISSING_FIELD`` / ``INVALID_FIELD``.
    """
    out: List[ValidationIssue] = []
    for e in err.errors():
        kind = str(e.get("type", ""))
        loc = ".".join(str(p) for p in e.get("loc", ()))
        if kind.isupper():
            out.append(ValidationIssue(code=kind, message=str(e.get("msg"))))
        elif kind == "missing":
            out.append(ValidationIssue(code="MISSING_FIELD", message=f"{loc} is required"))
        else:
            out.append(ValidationIssue(code="INVALID_FIELD", message=f"{loc}: {e.get('msg')}"))
    return out
