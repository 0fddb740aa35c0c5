"""
Library Configuration
=====================
Administrator-declared configuration for one shared library: its name, the
retriever that fetches it, a default version and the policy flags read by
the resolver.

The entity is created at administration time and only read during a
resolution call.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from libpin.resolver.errors import LibraryConfigurationError
from libpin.resolver.validation import Retriever, ValidationResult

if TYPE_CHECKING:
    from libpin.resolver.context import ExecutionContext


DYNAMIC_BRANCH_PLACEHOLDER = "${BRANCH_NAME}"


def fix_empty_and_trim(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace; empty strings become None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


_TRUE_WORDS = {"true", "yes", "on", "1"}
_FALSE_WORDS = {"false", "no", "off", "0"}


def _parse_flag(data: Dict[str, Any], key: str, default: bool) -> bool:
    """Read a boolean policy flag; quoted YAML words are accepted, anything else fails."""
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE_WORDS | _FALSE_WORDS:
        return value.strip().lower() in _TRUE_WORDS
    raise LibraryConfigurationError(
        f"Flag '{key}' of library {data.get('name')} must be true or false, got {value!r}"
    )


@dataclass
class LibraryConfiguration:
    """
    User configuration for one library.

    Attributes:
        name: Library identifier, trimmed; must not be empty
        retriever: Backend fetching the library, optionally validating versions
        default_version: Version used when none other is specified
        implicit: Attach to jobs without an explicit declaration
        allow_version_override: Jobs may request their own literal version
        allow_dynamic_branch: Jobs may request ``${BRANCH_NAME}``
        allow_dynamic_branch_for_pull_requests: Fall back to pull-request
            source/target branches for ``PR-*`` branch names
        trace_dynamic_branch: Emit resolution diagnostics to the context tracer
        include_in_changesets: Report library changes in job changelogs
        caching_configuration: Opaque, passed through untouched
    """

    name: str
    retriever: Optional[Retriever] = None
    default_version: Optional[str] = None
    implicit: bool = False
    allow_version_override: bool = True
    allow_dynamic_branch: bool = False
    allow_dynamic_branch_for_pull_requests: bool = False
    trace_dynamic_branch: bool = False
    include_in_changesets: bool = True
    caching_configuration: Any = field(default=None, repr=False)

    def __post_init__(self):
        name = fix_empty_and_trim(self.name)
        if name is None:
            raise LibraryConfigurationError("Library name must not be empty")
        self.name = name
        self.default_version = fix_empty_and_trim(self.default_version)

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        retriever_factory: Optional[Callable[[Dict[str, Any]], Retriever]] = None,
    ) -> "LibraryConfiguration":
        """
        Build a configuration from a YAML mapping.

        Args:
            data: Mapping with snake_case keys; unknown keys are ignored
            retriever_factory: Builds a retriever from the ``retriever`` sub-mapping

        Raises:
            LibraryConfigurationError: If the mapping is not usable
        """
        if not isinstance(data, dict):
            raise LibraryConfigurationError(
                f"Library entry must be a mapping, got {type(data).__name__}"
            )

        retriever = None
        retriever_spec = data.get("retriever")
        if retriever_spec is not None:
            if retriever_factory is None:
                raise LibraryConfigurationError(
                    f"Library {data.get('name')} declares a retriever "
                    "but no retriever factory was given"
                )
            retriever = retriever_factory(retriever_spec)

        def flag(key: str, default: bool) -> bool:
            return _parse_flag(data, key, default)

        return cls(
            name=data.get("name") or "",
            retriever=retriever,
            default_version=data.get("default_version"),
            implicit=flag("implicit", False),
            allow_version_override=flag("allow_version_override", True),
            allow_dynamic_branch=flag("allow_dynamic_branch", False),
            allow_dynamic_branch_for_pull_requests=flag(
                "allow_dynamic_branch_for_pull_requests", False
            ),
            trace_dynamic_branch=flag("trace_dynamic_branch", False),
            include_in_changesets=flag("include_in_changesets", True),
            caching_configuration=data.get("caching"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for YAML/JSON output."""
        return {
            "name": self.name,
            "retriever": type(self.retriever).__name__ if self.retriever else None,
            "default_version": self.default_version,
            "implicit": self.implicit,
            "allow_version_override": self.allow_version_override,
            "allow_dynamic_branch": self.allow_dynamic_branch,
            "allow_dynamic_branch_for_pull_requests": self.allow_dynamic_branch_for_pull_requests,
            "trace_dynamic_branch": self.trace_dynamic_branch,
            "include_in_changesets": self.include_in_changesets,
        }

    def defaulted_changelogs(self, changelog: Optional[bool]) -> bool:
        """Explicit changelog choice wins over ``include_in_changesets``."""
        if changelog is None:
            return self.include_in_changesets
        return changelog

    def defaulted_version(
        self,
        version: Optional[str],
        context: Optional["ExecutionContext"] = None,
    ) -> str:
        """Resolve ``version`` against this configuration."""
        from libpin.resolver.resolver import VersionResolver

        return VersionResolver(self).resolve(version, context)


def lint_configuration(
    config: LibraryConfiguration,
    context: Optional[Any] = None,
) -> List[ValidationResult]:
    """
    Check a library configuration for policy combinations that cannot work.

    Rules are checked in order and the first failing rule wins.

    Args:
        config: Configuration to check
        context: Passed to the retriever when validating the default version

    Returns:
        A single-element list with the verdict
    """
    default = config.default_version

    if default is None:
        if config.implicit:
            return [ValidationResult.error(
                "If you load a library implicitly, you must specify a default version."
            )]
        if config.allow_dynamic_branch:
            return [ValidationResult.error(
                f"If you allow use of literal '@{DYNAMIC_BRANCH_PLACEHOLDER}' for overriding "
                "a default version, you must define that version as fallback."
            )]
        if not config.allow_version_override:
            return [ValidationResult.error(
                "If you deny overriding a default version, you must define that version."
            )]
        if config.allow_dynamic_branch_for_pull_requests:
            return [ValidationResult.warning(
                "This setting has no effect when you do not allow use of literal "
                f"'@{DYNAMIC_BRANCH_PLACEHOLDER}' for overriding a default version"
            )]
        return [ValidationResult.ok()]

    if default == DYNAMIC_BRANCH_PLACEHOLDER:
        if not config.allow_dynamic_branch:
            return [ValidationResult.error(
                f"Use of literal '@{DYNAMIC_BRANCH_PLACEHOLDER}' not allowed in this configuration."
            )]
        msg = (
            "Cannot validate default version: "
            f"literal '@{DYNAMIC_BRANCH_PLACEHOLDER}' is reserved "
            "for pipeline files from version control"
        )
        if config.implicit:
            return [ValidationResult.warning(msg)]
        return [ValidationResult.error(msg)]

    if config.retriever is None:
        return [ValidationResult.ok("No retriever configured; default version not validated.")]

    try:
        verdict = config.retriever.validate_version(config.name, default, context)
    except Exception as e:
        return [ValidationResult.error(f"Could not validate default version {default}: {e}")]
    return [verdict if verdict is not None else ValidationResult.error(
        f"Retriever gave no verdict for default version {default}"
    )]
