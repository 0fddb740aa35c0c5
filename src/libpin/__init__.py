"""
libpin - shared library version resolution.

Settles the single concrete version of a shared pipeline library that a job
should fetch, including the dynamic ``${BRANCH_NAME}`` placeholder.
"""

__version__ = "0.3.0"

from libpin.resolver.configuration import (  # noqa: E402
    DYNAMIC_BRANCH_PLACEHOLDER,
    LibraryConfiguration,
)
from libpin.resolver.context import ExecutionContext  # noqa: E402
from libpin.resolver.errors import (  # noqa: E402
    LibpinError,
    LibraryConfigurationError,
    LibraryResolutionError,
    NoVersionSpecified,
    OverrideNotPermitted,
    UnresolvedDynamicBranch,
)
from libpin.resolver.resolver import ResolutionSettings, VersionResolver  # noqa: E402

__all__ = [
    "DYNAMIC_BRANCH_PLACEHOLDER",
    "ExecutionContext",
    "LibpinError",
    "LibraryConfiguration",
    "LibraryConfigurationError",
    "LibraryResolutionError",
    "NoVersionSpecified",
    "OverrideNotPermitted",
    "ResolutionSettings",
    "UnresolvedDynamicBranch",
    "VersionResolver",
]
