"""
Error taxonomy for library resolution.

Every resolution failure names the library so operators can fix the
configuration or the job environment without reading source.
"""

from typing import Optional


class LibpinError(Exception):
    """Base class for all libpin errors."""


class LibraryConfigurationError(LibpinError):
    """Raised when a library configuration cannot be constructed."""


class RetrieverError(LibpinError):
    """Raised when a retriever cannot be built from configuration."""


class LibraryResolutionError(LibpinError):
    """
    Raised when no concrete version can be settled for a library.

    Attributes:
        library: Name of the library being resolved
        kind: Failure kind (no_version, override_not_permitted, unresolved_branch)
    """

    kind = "resolution"

    def __init__(self, library: Optional[str], message: str):
        super().__init__(message)
        self.library = library


class NoVersionSpecified(LibraryResolutionError):
    """No requested version and no default version to fall back on."""

    kind = "no_version"

    def __init__(self, library: Optional[str]):
        super().__init__(library, f"No version specified for library {library}")


class OverrideNotPermitted(LibraryResolutionError):
    """A version was requested but the library policy forbids overriding."""

    kind = "override_not_permitted"

    def __init__(self, library: Optional[str], requested: Optional[str] = None):
        super().__init__(library, f"Version override not permitted for library {library}")
        self.requested = requested


class UnresolvedDynamicBranch(LibraryResolutionError):
    """Dynamic branch resolution ran out of candidates and there is no default."""

    kind = "unresolved_branch"

    def __init__(self, library: Optional[str], candidate: Optional[str]):
        super().__init__(
            library,
            f"BRANCH_NAME version {candidate} was not found, "
            f"and no default version specified, for library {library}",
        )
        self.candidate = candidate
