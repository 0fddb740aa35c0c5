"""
Git integration.

- GitBranchSpec: branch specification with shell-style ``$VAR`` expansion
- GitSource: version-control source of a job definition, discoverable
- GitRetriever: validates library versions with ``git ls-remote``

Usage:
    retriever = GitRetriever("https://example.com/org/pipeline-utils.git")
    verdict = retriever.validate_version("pipeline-utils", "release/1.2")
"""

import logging
import re
import subprocess
from typing import Any, List, Mapping, Optional, Sequence, Union

from libpin.resolver.discovery import BranchSource
from libpin.resolver.validation import ValidationResult

logger = logging.getLogger(__name__)

_VAR_RE = re.compile(r"\$\{(\w+)\}|\$(\w+)")
_COMMIT_RE = re.compile(r"^[0-9a-f]{7,40}$")


class GitBranchSpec:
    """A branch specifier such as ``*/main`` or ``origin/${TARGET}``."""

    def __init__(self, name: str):
        self.name = name.strip() if name else "**"

    def literal(self) -> str:
        return self.name

    def expand(self, environment: Mapping[str, str]) -> str:
        """Expand ``${VAR}`` and ``$VAR``; unknown variables are kept as written."""

        def _sub(match: "re.Match[str]") -> str:
            key = match.group(1) or match.group(2)
            return environment.get(key, match.group(0))

        return _VAR_RE.sub(_sub, self.name)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"GitBranchSpec({self.name!r})"


class GitSource(BranchSource):
    """Git repository a job definition is loaded from."""

    def __init__(self, url: str, branches: Sequence[Union[str, GitBranchSpec]] = ()):
        self.url = url
        self.branches: List[GitBranchSpec] = [
            b if isinstance(b, GitBranchSpec) else GitBranchSpec(b) for b in branches
        ]

    def branch_specs(self) -> List[GitBranchSpec]:
        return list(self.branches)

    def __str__(self) -> str:
        return f"git {self.url} {[b.name for b in self.branches]}"


class GitRetriever:
    """Retriever for libraries hosted in a git repository."""

    def __init__(self, remote: str, timeout: int = 30):
        self.remote = remote
        self.timeout = timeout

    def _run_git(self, args: List[str]) -> subprocess.CompletedProcess:
        cmd = ["git"] + args
        logger.debug("git %s", " ".join(args))
        return subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)

    def validate_version(
        self, name: str, version: str, context: Optional[Any] = None
    ) -> ValidationResult:
        """Check that ``version`` names a branch or tag on the remote."""
        try:
            result = self._run_git(
                ["ls-remote", "--heads", "--tags", self.remote, version]
            )
        except FileNotFoundError:
            return ValidationResult.error(
                "git not found.\n"
                "Install git to validate library versions."
            )
        except subprocess.TimeoutExpired:
            return ValidationResult.error(
                f"Timed out after {self.timeout}s listing refs of {self.remote}"
            )

        if result.returncode != 0:
            return ValidationResult.error(
                f"git ls-remote failed for {self.remote}\n"
                f"stderr: {result.stderr.strip()}"
            )

        refs = [line.split("\t", 1)[-1] for line in result.stdout.splitlines() if line.strip()]
        wanted = {f"refs/heads/{version}", f"refs/tags/{version}"}
        if any(ref in wanted for ref in refs):
            return ValidationResult.ok(f"Currently maps to {version} in {self.remote}")

        if _COMMIT_RE.match(version):
            return ValidationResult.warning(
                f"Cannot confirm commit {version} without fetching {self.remote}"
            )
        return ValidationResult.error(f"No such version {version} in {self.remote} for {name}")

    def __repr__(self) -> str:
        return f"GitRetriever({self.remote!r})"
