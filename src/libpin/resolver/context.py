"""
Execution context handed to one resolution call.

Bundles the requesting job, an environment provider bound to the run and an
optional tracer. Every part may be absent, e.g. when only checking whether a
version would be accepted.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Union,
    runtime_checkable,
)

from libpin.resolver.tracing import Tracer


EnvironmentProvider = Callable[[], Mapping[str, str]]


@runtime_checkable
class BuildDefinition(Protocol):
    """A job's build definition: where its pipeline script comes from."""

    def version_control_sources(self) -> Sequence[Any]:
        """Return attached version-control source descriptors (may be empty)."""
        ...


@runtime_checkable
class Job(Protocol):
    """The job (not the run) consuming a library."""

    def build_definition(self) -> Optional[BuildDefinition]:
        ...


@dataclass
class ExecutionContext:
    """
    Per-call resolution context.

    Attributes:
        job: Job requesting the library, if known
        environment: Mapping snapshot or zero-arg provider returning one
        tracer: Optional diagnostic sink
        job_loader: Optional callable resolving the job lazily; may raise
    """

    job: Optional[Job] = None
    environment: Union[Mapping[str, str], EnvironmentProvider, None] = None
    tracer: Optional[Tracer] = None
    job_loader: Optional[Callable[[], Optional[Job]]] = None

    def resolve_job(self) -> Optional[Job]:
        """Return the job, or the loader's result; the context is left untouched."""
        if self.job is None and self.job_loader is not None:
            return self.job_loader()
        return self.job

    def environment_snapshot(self) -> Mapping[str, str]:
        """Return the current environment mapping; provider errors propagate."""
        if self.environment is None:
            return {}
        if callable(self.environment):
            return self.environment() or {}
        return self.environment

    def env(self, name: str) -> Optional[str]:
        """Read one environment variable, or None if absent."""
        return self.environment_snapshot().get(name)
