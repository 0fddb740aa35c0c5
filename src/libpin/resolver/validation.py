"""
Version validation contract.

A retriever may be able to confirm that a candidate version exists before it
is fetched. The resolver only ever calls this capability; it never owns it.

Severity levels mirror form validation:
- ok: version is usable
- warning: version may be usable, treated as not usable by the resolver
- error: version is not usable
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


class ValidationKind(Enum):
    """Outcome of a version validation."""

    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ValidationResult:
    """
    Verdict returned by a retriever for one candidate version.

    Attributes:
        kind: OK, WARNING or ERROR
        message: Human-readable detail (may be empty)
    """

    kind: ValidationKind
    message: str = ""

    @classmethod
    def ok(cls, message: str = "") -> "ValidationResult":
        return cls(ValidationKind.OK, message)

    @classmethod
    def warning(cls, message: str) -> "ValidationResult":
        return cls(ValidationKind.WARNING, message)

    @classmethod
    def error(cls, message: str) -> "ValidationResult":
        return cls(ValidationKind.ERROR, message)

    @property
    def is_ok(self) -> bool:
        return self.kind is ValidationKind.OK

    def __str__(self) -> str:
        prefix = {
            ValidationKind.OK: "OK",
            ValidationKind.WARNING: "WARN",
            ValidationKind.ERROR: "ERROR",
        }[self.kind]
        return f"[{prefix}] {self.message}" if self.message else f"[{prefix}]"


@runtime_checkable
class Retriever(Protocol):
    """Protocol for library retrievers that can validate versions."""

    def validate_version(
        self, name: str, version: str, context: Optional[Any] = None
    ) -> ValidationResult:
        """Check whether ``version`` of library ``name`` can be fetched."""
        ...


def is_usable(result: Optional[ValidationResult]) -> bool:
    """True only for an explicit OK verdict; a missing verdict is not usable."""
    return result is not None and result.kind is ValidationKind.OK
