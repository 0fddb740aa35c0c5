"""
Retriever registry.

Builds retrievers from configuration mappings such as:

    retriever:
      type: git
      remote: https://example.com/org/pipeline-utils.git

    retriever:
      type: static
      versions: [master, release/1.2]
"""

from typing import Any, Callable, Dict

from libpin.resolver.errors import RetrieverError
from libpin.resolver.validation import Retriever
from libpin.retrievers.git import GitRetriever
from libpin.retrievers.static import StaticRetriever


RetrieverFactory = Callable[[Dict[str, Any]], Retriever]


def _git(spec: Dict[str, Any]) -> Retriever:
    remote = spec.get("remote")
    if not remote:
        raise RetrieverError("git retriever requires 'remote'")
    timeout = spec.get("timeout", 30)
    try:
        timeout = int(timeout)
    except (TypeError, ValueError):
        raise RetrieverError(f"git retriever 'timeout' must be a number of seconds, got {timeout!r}")
    return GitRetriever(remote, timeout=timeout)


def _static(spec: Dict[str, Any]) -> Retriever:
    return StaticRetriever(spec.get("versions") or [])


_FACTORIES: Dict[str, RetrieverFactory] = {
    "git": _git,
    "static": _static,
}


def register_retriever(retriever_type: str, factory: RetrieverFactory) -> None:
    """Register a custom retriever type."""
    _FACTORIES[retriever_type] = factory


def build_retriever(spec: Dict[str, Any]) -> Retriever:
    """
    Build a retriever from a configuration mapping.

    Raises:
        RetrieverError: If the mapping is malformed or the type is unknown
    """
    if not isinstance(spec, dict):
        raise RetrieverError(f"Retriever must be a mapping, got {type(spec).__name__}")
    retriever_type = spec.get("type")
    factory = _FACTORIES.get(retriever_type)
    if factory is None:
        raise RetrieverError(
            f"Unknown retriever type: {retriever_type}\n"
            f"Known types: {', '.join(sorted(_FACTORIES))}"
        )
    return factory(spec)
