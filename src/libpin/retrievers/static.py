"""Retriever backed by a fixed list of known versions."""

from typing import Any, Iterable, Optional

from libpin.resolver.validation import ValidationResult


class StaticRetriever:
    """
    Validates versions against a fixed set.

    Useful for libraries published as versioned archives, and in tests.
    """

    def __init__(self, versions: Iterable[str]):
        self.versions = [str(v) for v in versions]

    def validate_version(
        self, name: str, version: str, context: Optional[Any] = None
    ) -> ValidationResult:
        if version in self.versions:
            return ValidationResult.ok()
        return ValidationResult.error(f"No version {version} found for library {name}")

    def __repr__(self) -> str:
        return f"StaticRetriever({self.versions!r})"
