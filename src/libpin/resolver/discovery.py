"""
Branch Discovery
================
Finds the branch a job is built from by inspecting the version-control
sources attached to its build definition.

Discovery never depends on a concrete version-control integration:
- Sources implementing ``BranchSource`` are used directly
- Foreign descriptor types can be adapted via ``register_source_adapter``
- Anything else is skipped, never treated as an error

Only the first recognized source and its first branch spec are consulted.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence

from libpin.resolver.context import Job
from libpin.resolver.tracing import NullTracer, Tracer, safe_trace


logger = logging.getLogger(__name__)

WILDCARD_REMOTE_PREFIX = "*/"


class BranchSpec(Protocol):
    """A declared branch specification; ``expand(env)`` is optional."""

    def literal(self) -> str:
        ...


class BranchSource(ABC):
    """Version-control source that can report its declared branch specs."""

    @abstractmethod
    def branch_specs(self) -> Sequence[BranchSpec]:
        """Return branch specs in declaration order."""
        pass


SourceAdapter = Callable[[Any], Optional[BranchSource]]

_SOURCE_ADAPTERS: Dict[type, SourceAdapter] = {}


def register_source_adapter(source_type: type, adapter: SourceAdapter) -> None:
    """Make descriptors of ``source_type`` discoverable through ``adapter``."""
    _SOURCE_ADAPTERS[source_type] = adapter


def unregister_source_adapter(source_type: type) -> None:
    _SOURCE_ADAPTERS.pop(source_type, None)


def as_branch_source(source: Any) -> Optional[BranchSource]:
    """Return a BranchSource view of ``source``, or None if unrecognized."""
    if isinstance(source, BranchSource):
        return source
    for klass in type(source).__mro__:
        adapter = _SOURCE_ADAPTERS.get(klass)
        if adapter is not None:
            return adapter(source)
    return None


def normalize_refspec(value: str) -> str:
    """Strip one leading ``*/`` remote-tracking wildcard."""
    if value.startswith(WILDCARD_REMOTE_PREFIX):
        return value[len(WILDCARD_REMOTE_PREFIX):]
    return value


def _type_name(obj: Any) -> str:
    klass = type(obj)
    return f"{klass.__module__}.{klass.__qualname__}"


class BranchDiscoverer:
    """
    Discovers the natural branch name of a job from its build definition.

    Usage:
        discoverer = BranchDiscoverer()
        candidate = discoverer.discover(job, environment=lambda: {"REF": "main"})
    """

    def discover(
        self,
        job: Job,
        environment: Optional[Callable[[], Mapping[str, str]]] = None,
        tracer: Optional[Tracer] = None,
    ) -> Optional[str]:
        """
        Return the raw branch candidate for ``job``, or None.

        Args:
            job: Job whose build definition is inspected
            environment: Provider used to expand templated branch specs
            tracer: Optional diagnostic sink

        Returns:
            Branch string as declared (not normalized), or None
        """
        tracer = tracer or NullTracer()

        safe_trace(tracer, "inspecting job for a build definition")
        definition = job.build_definition()
        if definition is None:
            safe_trace(tracer, "job has no build definition")
            return None

        sources = list(definition.version_control_sources() or [])
        if not sources:
            safe_trace(
                tracer,
                f"build definition '{_type_name(definition)}' is not associated "
                "with any version-control sources",
            )
            return None

        safe_trace(
            tracer,
            f"inspecting build definition '{_type_name(definition)}' "
            "for version-control sources it might use",
        )
        branch_source = None
        for source in sources:
            safe_trace(tracer, f"inspecting source '{_type_name(source)}': {source}")
            try:
                branch_source = as_branch_source(source)
            except Exception as e:
                logger.debug("Source adapter failed for %s: %s", _type_name(source), e)
                branch_source = None
            if branch_source is not None:
                break

        if branch_source is None:
            safe_trace(
                tracer,
                "no listed source was of a type with recognized branch support",
            )
            return None

        return self._first_branch(branch_source, environment, tracer)

    def _first_branch(
        self,
        source: BranchSource,
        environment: Optional[Callable[[], Mapping[str, str]]],
        tracer: Tracer,
    ) -> Optional[str]:
        safe_trace(tracer, f"inspecting first recognized source: {source}")
        try:
            specs = list(source.branch_specs() or [])
        except Exception as e:
            safe_trace(tracer, f"source did not return a list of branches: {e}")
            return None

        if not specs or specs[0] is None:
            safe_trace(tracer, "source declares no branch specs")
            return None

        spec = specs[0]
        candidate = None
        expand = getattr(spec, "expand", None)
        if callable(expand):
            # Shell-templated branch specs
            try:
                env = environment() if environment is not None else {}
                expanded = expand(env or {})
                candidate = str(expanded) if expanded is not None else None
            except Exception as e:
                safe_trace(tracer, f"could not expand branch spec: {e}")
                candidate = None
        else:
            safe_trace(tracer, f"branch spec '{_type_name(spec)}' does not support expansion")

        if not candidate:
            candidate = spec.literal()

        return candidate or None
