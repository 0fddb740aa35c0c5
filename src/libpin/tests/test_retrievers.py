"""
Retriever implementations and the retriever registry.

GitRetriever tests stub subprocess.run; no git remote is contacted.
"""
import subprocess

import pytest

from libpin.resolver.errors import RetrieverError
from libpin.resolver.validation import Retriever, ValidationKind
from libpin.retrievers import build_retriever, register_retriever
from libpin.retrievers.git import GitRetriever
from libpin.retrievers.static import StaticRetriever


def _completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


def test_static_retriever_validates_known_versions():
    retriever = StaticRetriever(["master", "1.0"])

    assert retriever.validate_version("utils", "1.0").is_ok
    verdict = retriever.validate_version("utils", "2.0")
    assert verdict.kind is ValidationKind.ERROR
    assert "utils" in verdict.message


def test_git_retriever_finds_branch(monkeypatch):
    """
    Given: ls-remote lists refs/heads/feature/x
    When: Validating feature/x
    Then: The verdict is OK and the right command was run
    """
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return _completed("abc123\trefs/heads/feature/x\n")

    monkeypatch.setattr(subprocess, "run", fake_run)

    verdict = GitRetriever("https://example.com/utils.git").validate_version("utils", "feature/x")

    assert verdict.is_ok
    assert calls == [[
        "git", "ls-remote", "--heads", "--tags", "https://example.com/utils.git", "feature/x",
    ]]


def test_git_retriever_finds_tag(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: _completed("abc\trefs/tags/v1.2\n"))

    assert GitRetriever("repo").validate_version("utils", "v1.2").is_ok


def test_git_retriever_rejects_partial_match(monkeypatch):
    """
    Given: ls-remote only lists refs/heads/feature/x-old
    When: Validating feature/x
    Then: The verdict is ERROR
    """
    monkeypatch.setattr(
        subprocess, "run", lambda cmd, **kw: _completed("abc\trefs/heads/feature/x-old\n")
    )

    verdict = GitRetriever("repo").validate_version("utils", "feature/x")

    assert verdict.kind is ValidationKind.ERROR


def test_git_retriever_warns_on_commit_hash(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: _completed(""))

    verdict = GitRetriever("repo").validate_version("utils", "0a1b2c3d")

    assert verdict.kind is ValidationKind.WARNING


def test_git_retriever_reports_git_failure(monkeypatch):
    monkeypatch.setattr(
        subprocess, "run", lambda cmd, **kw: _completed(returncode=128, stderr="fatal: repository not found")
    )

    verdict = GitRetriever("repo").validate_version("utils", "main")

    assert verdict.kind is ValidationKind.ERROR
    assert "repository not found" in verdict.message


def test_git_retriever_reports_missing_git(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr(subprocess, "run", fake_run)

    verdict = GitRetriever("repo").validate_version("utils", "main")

    assert verdict.kind is ValidationKind.ERROR
    assert "git not found" in verdict.message


def test_git_retriever_reports_timeout(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

    monkeypatch.setattr(subprocess, "run", fake_run)

    verdict = GitRetriever("repo", timeout=5).validate_version("utils", "main")

    assert verdict.kind is ValidationKind.ERROR
    assert "5s" in verdict.message


def test_build_retriever_known_types():
    git = build_retriever({"type": "git", "remote": "https://example.com/u.git", "timeout": 10})
    static = build_retriever({"type": "static", "versions": ["master"]})

    assert isinstance(git, GitRetriever) and git.timeout == 10
    assert isinstance(static, StaticRetriever) and static.versions == ["master"]
    assert isinstance(static, Retriever)


@pytest.mark.parametrize(
    "spec",
    [{"type": "ftp"}, {"type": "git"}, "git", {}],
)
def test_build_retriever_rejects_bad_specs(spec):
    with pytest.raises(RetrieverError):
        build_retriever(spec)


@pytest.mark.parametrize("timeout", ["soon", None, [30]])
def test_build_retriever_rejects_unreadable_timeout(timeout):
    with pytest.raises(RetrieverError, match="timeout"):
        build_retriever({"type": "git", "remote": "https://example.com/u.git", "timeout": timeout})


def test_register_custom_retriever():
    """
    Given: A custom retriever type registered by name
    When: Building from a spec of that type
    Then: The custom factory is used
    """
    register_retriever("always", lambda spec: StaticRetriever([spec["version"]]))

    retriever = build_retriever({"type": "always", "version": "edge"})

    assert retriever.validate_version("utils", "edge").is_ok
