"""
Library Resolution CLI Command
==============================
Provides CLI interface for resolving and checking configured libraries.

Commands:
- resolve: Resolve a requested version for one library
- check: Lint library configurations
- list: Show configured libraries

Usage:
    libpin resolve pipeline-utils
    libpin resolve pipeline-utils '${BRANCH_NAME}' --env BRANCH_NAME=feature/x
    libpin resolve pipeline-utils '${BRANCH_NAME}' --branch-spec '*/release' --trace
    libpin check
    libpin list
"""
from __future__ import annotations

import dataclasses
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import yaml

from libpin.resolver.configuration import LibraryConfiguration, lint_configuration
from libpin.resolver.context import ExecutionContext
from libpin.resolver.errors import LibpinError
from libpin.resolver.resolver import VersionResolver
from libpin.resolver.tracing import StreamTracer
from libpin.resolver.validation import ValidationKind
from libpin.retrievers.git import GitSource
from libpin.utils.config import (
    get_resolution_settings,
    is_feature_enabled,
    load_library_configurations,
    locate_repo_root,
)


class CommandLineDefinition:
    """Build definition assembled from command-line branch specs."""

    def __init__(self, sources: Sequence[object]):
        self.sources = list(sources)

    def version_control_sources(self) -> List[object]:
        return self.sources


class CommandLineJob:
    """Job stand-in for resolutions requested from the command line."""

    def __init__(self, branch_specs: Sequence[str] = ()):
        sources = [GitSource("(command line)", list(branch_specs))] if branch_specs else []
        self.definition = CommandLineDefinition(sources)

    def build_definition(self) -> CommandLineDefinition:
        return self.definition


def parse_env_pairs(pairs: Optional[Sequence[str]]) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` pairs; raises ValueError on malformed input."""
    env: Dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Expected KEY=VALUE, got: {pair}")
        key, value = pair.split("=", 1)
        env[key.strip()] = value
    return env


class ResolveCommand:
    """
    CLI command handler for library resolution.

    Reads library declarations from .libpin/config.yaml of the repository.
    """

    def __init__(self, repo_root: Optional[Path] = None):
        self.repo_root = repo_root or locate_repo_root()

    def _libraries(self) -> List[LibraryConfiguration]:
        return load_library_configurations(self.repo_root)

    def _library(self, name: str) -> Optional[LibraryConfiguration]:
        for library in self._libraries():
            if library.name == name:
                return library
        return None

    def resolve(
        self,
        name: str,
        version: Optional[str] = None,
        env_pairs: Optional[Sequence[str]] = None,
        inherit_env: bool = False,
        branch_specs: Optional[Sequence[str]] = None,
        trace: bool = False,
    ) -> int:
        """
        Resolve and print the version of library ``name``.

        Args:
            name: Library name as configured
            version: Requested version, or None for the default
            env_pairs: ``KEY=VALUE`` environment of the simulated run
            inherit_env: Start from the current process environment
            branch_specs: Branch specs of the simulated job's git source
            trace: Print resolution diagnostics to stderr

        Returns:
            Exit code (0 for success)
        """
        try:
            library = self._library(name)
            if library is None:
                print(f"Unknown library: {name}", file=sys.stderr)
                return 1

            environment: Dict[str, str] = dict(os.environ) if inherit_env else {}
            environment.update(parse_env_pairs(env_pairs))

            if trace or is_feature_enabled(self.repo_root, "trace_all"):
                library = dataclasses.replace(library, trace_dynamic_branch=True)

            context = ExecutionContext(
                job=CommandLineJob(branch_specs or ()),
                environment=environment,
                tracer=StreamTracer(),
            )
            resolver = VersionResolver(
                library, settings=get_resolution_settings(self.repo_root)
            )
            print(resolver.resolve(version, context))
            return 0

        except (LibpinError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    def check(self, name: Optional[str] = None) -> int:
        """
        Lint configured libraries.

        Returns:
            Exit code (1 if any library has an error)
        """
        try:
            libraries = self._libraries()
        except LibpinError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        if name is not None:
            libraries = [lib for lib in libraries if lib.name == name]
            if not libraries:
                print(f"Unknown library: {name}", file=sys.stderr)
                return 1

        failed = False
        for library in libraries:
            for verdict in lint_configuration(library):
                print(f"{library.name}: {verdict}")
                if verdict.kind is ValidationKind.ERROR:
                    failed = True

        return 1 if failed else 0

    def list(self) -> int:
        """Print configured libraries as YAML."""
        try:
            libraries = self._libraries()
        except LibpinError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        data = {"libraries": [lib.to_dict() for lib in libraries]}
        print(yaml.dump(data, default_flow_style=False, sort_keys=False))
        return 0
