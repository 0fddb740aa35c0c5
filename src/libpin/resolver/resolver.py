"""
Version Resolution Engine
=========================
Settles the single concrete version of a library to fetch.

Resolution order for a requested version:
1. None -> default version, else NoVersionSpecified
2. Literal version with overrides allowed -> returned verbatim
3. ``${BRANCH_NAME}`` with dynamic branches allowed -> dynamic resolution
4. Anything else -> OverrideNotPermitted

Dynamic resolution is a small pipeline of candidate steps:
- environment: ``BRANCH_NAME`` of the run, trusted verbatim
- discovery: first branch spec of the job's version-control source
Only the first candidate found is validated. Pull-request branch names may
then fall back to the pull-request source and target branches. When nothing
validates, the default version is used, else UnresolvedDynamicBranch.

Collaborator failures are downgraded to "no candidate" and never escape.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from libpin.resolver.configuration import DYNAMIC_BRANCH_PLACEHOLDER, LibraryConfiguration
from libpin.resolver.context import ExecutionContext, Job
from libpin.resolver.discovery import BranchDiscoverer, normalize_refspec
from libpin.resolver.errors import (
    LibraryConfigurationError,
    NoVersionSpecified,
    OverrideNotPermitted,
    UnresolvedDynamicBranch,
)
from libpin.resolver.tracing import NullTracer, Tracer, safe_trace
from libpin.resolver.validation import is_usable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionSettings:
    """
    Job-runner conventions used by dynamic branch resolution.

    Attributes:
        branch_variable: Environment variable holding the job's branch name
        pull_request_prefix: Prefix marking a branch name as a pull request
        pull_request_fallbacks: Variables tried in order for pull requests
            (source branch, then target branch)
    """

    branch_variable: str = "BRANCH_NAME"
    pull_request_prefix: str = "PR-"
    pull_request_fallbacks: Tuple[str, ...] = ("CHANGE_BRANCH", "CHANGE_TARGET")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ResolutionSettings":
        data = data or {}
        defaults = cls()
        fallbacks = data.get("pull_request_fallbacks")
        if fallbacks is None:
            fallbacks = defaults.pull_request_fallbacks
        elif isinstance(fallbacks, str):
            fallbacks = (fallbacks,)
        elif isinstance(fallbacks, (list, tuple)) and all(isinstance(v, str) for v in fallbacks):
            fallbacks = tuple(fallbacks)
        else:
            raise LibraryConfigurationError(
                "'pull_request_fallbacks' must be a variable name or a list of them, "
                f"got {fallbacks!r}"
            )
        return cls(
            branch_variable=data.get("branch_variable") or defaults.branch_variable,
            pull_request_prefix=data.get("pull_request_prefix") or defaults.pull_request_prefix,
            pull_request_fallbacks=fallbacks,
        )


def _describe(value: Optional[str]) -> str:
    if value is None:
        return "null"
    return value if value else "empty"


# A candidate step returns a branch name, or None to pass to the next step
CandidateStep = Callable[[ExecutionContext, Job, Tracer], Optional[str]]


class VersionResolver:
    """
    Resolves requested library versions for one library configuration.

    The resolver holds no per-call state; one instance may serve concurrent
    resolutions as long as the configuration is not modified meanwhile.

    Usage:
        resolver = VersionResolver(config)
        version = resolver.resolve("${BRANCH_NAME}", ExecutionContext(job=job, environment=env))
    """

    def __init__(
        self,
        config: LibraryConfiguration,
        discoverer: Optional[BranchDiscoverer] = None,
        settings: Optional[ResolutionSettings] = None,
    ):
        self.config = config
        self.discoverer = discoverer or BranchDiscoverer()
        self.settings = settings or ResolutionSettings()
        self.candidate_steps: List[CandidateStep] = [
            self._candidate_from_environment,
            self._candidate_from_discovery,
        ]

    def resolve(
        self,
        requested_version: Optional[str],
        context: Optional[ExecutionContext] = None,
    ) -> str:
        """
        Resolve a requested version to the concrete version to fetch.

        Args:
            requested_version: Version from the job's declaration, or None
            context: Execution context of the requesting run, if any

        Returns:
            Resolved version string

        Raises:
            NoVersionSpecified: Nothing requested and no default version
            OverrideNotPermitted: Requested version forbidden by policy
            UnresolvedDynamicBranch: ``${BRANCH_NAME}`` could not be settled
                and there is no default version
        """
        config = self.config
        tracer = self._tracer(context)
        safe_trace(tracer, f"Resolving '{requested_version}'")

        if requested_version is None:
            return self._default_or_fail()

        is_placeholder = requested_version == DYNAMIC_BRANCH_PLACEHOLDER
        if config.allow_version_override and not is_placeholder:
            return requested_version

        if config.allow_dynamic_branch and is_placeholder:
            version = self._resolve_dynamic(context, tracer)
            logger.debug("Library %s: %s resolved to %s", config.name, requested_version, version)
            return version

        raise OverrideNotPermitted(config.name, requested_version)

    # -------------------------------------------------------------------------
    # Dynamic branch resolution
    # -------------------------------------------------------------------------

    def _resolve_dynamic(self, context: Optional[ExecutionContext], tracer: Tracer) -> str:
        job = self._job(context)
        safe_trace(
            tracer,
            f"Resolving {self.settings.branch_variable}; "
            f"{'have' if job is not None else 'without'} a job object",
        )

        if job is None:
            safe_trace(tracer, "Trying to default: without a job we can't validate a version anyway")
            return self._default_or_fail()

        candidate = None
        for step in self.candidate_steps:
            candidate = step(context, job, tracer)
            if candidate:
                break

        if not candidate:
            safe_trace(tracer, f"Trying to default: candidate is {_describe(candidate)}")
            return self._default_or_fail()

        last_tried = candidate
        if self.config.retriever is None:
            safe_trace(tracer, f"No retriever to validate candidate: {candidate}")
        else:
            safe_trace(tracer, f"Trying to validate candidate: {candidate}")
            if self._validate(candidate, context):
                return candidate

            if self._is_pull_request(candidate):
                for variable in self.settings.pull_request_fallbacks:
                    value = self._read_env(context, variable, tracer)
                    if not value:
                        continue
                    last_tried = value
                    safe_trace(tracer, f"Trying to validate {variable}: {value}")
                    if self._validate(value, context):
                        return value

        safe_trace(
            tracer,
            f"Trying to default: could not resolve candidate which is {_describe(last_tried)}",
        )
        if self.config.default_version is None:
            raise UnresolvedDynamicBranch(self.config.name, last_tried)
        return self.config.default_version

    def _candidate_from_environment(
        self, context: ExecutionContext, job: Job, tracer: Tracer
    ) -> Optional[str]:
        """Trust the branch variable when the job runner set it."""
        return self._read_env(context, self.settings.branch_variable, tracer)

    def _candidate_from_discovery(
        self, context: ExecutionContext, job: Job, tracer: Tracer
    ) -> Optional[str]:
        """Ask the job's own version-control source for its branch."""
        try:
            raw = self.discoverer.discover(job, context.environment_snapshot, tracer)
        except Exception as e:
            logger.debug("Branch discovery failed for library %s: %s", self.config.name, e)
            safe_trace(tracer, f"Did not discover a branch: {e}")
            return None

        if not raw:
            return None

        candidate = normalize_refspec(raw)
        safe_trace(
            tracer,
            f"Discovered candidate '{candidate}' in version-control source of the job",
        )
        return candidate or None

    # -------------------------------------------------------------------------
    # Collaborator access (failures become "absent")
    # -------------------------------------------------------------------------

    def _read_env(
        self, context: ExecutionContext, variable: str, tracer: Tracer
    ) -> Optional[str]:
        try:
            value = context.env(variable)
        except Exception as e:
            logger.debug("Environment lookup of %s failed: %s", variable, e)
            safe_trace(tracer, f"Did not resolve envvar {variable}: {e}")
            return None

        if value:
            safe_trace(tracer, f"Resolved envvar {variable}='{value}'")
            return value
        safe_trace(tracer, f"Did not resolve envvar {variable}: not in env")
        return None

    def _job(self, context: Optional[ExecutionContext]) -> Optional[Job]:
        if context is None:
            return None
        try:
            return context.resolve_job()
        except Exception as e:
            logger.debug("Could not resolve job for library %s: %s", self.config.name, e)
            return None

    def _validate(self, candidate: str, context: Optional[ExecutionContext]) -> bool:
        retriever = self.config.retriever
        if retriever is None:
            return False
        try:
            verdict = retriever.validate_version(self.config.name, candidate, context)
        except Exception as e:
            logger.debug(
                "Validation of %s@%s raised: %s", self.config.name, candidate, e
            )
            return False
        return is_usable(verdict)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _is_pull_request(self, candidate: str) -> bool:
        return (
            self.config.allow_dynamic_branch_for_pull_requests
            and candidate.startswith(self.settings.pull_request_prefix)
        )

    def _default_or_fail(self) -> str:
        if self.config.default_version is None:
            raise NoVersionSpecified(self.config.name)
        return self.config.default_version

    def _tracer(self, context: Optional[ExecutionContext]) -> Tracer:
        if self.config.trace_dynamic_branch and context is not None and context.tracer is not None:
            return context.tracer
        return NullTracer()
