"""
Loading .libpin/config.yaml.
"""
import pytest
import yaml

from libpin.resolver.context import ExecutionContext
from libpin.resolver.errors import LibraryConfigurationError
from libpin.resolver.resolver import ResolutionSettings, VersionResolver
from libpin.retrievers.git import GitRetriever
from libpin.tests.shared_fixtures import PLACEHOLDER, FakeJob
from libpin.utils.config import (
    get_resolution_config,
    get_resolution_settings,
    is_feature_enabled,
    load_libpin_config,
    load_library_configurations,
    locate_repo_root,
)


def _write_config(root, data):
    config_dir = root / ".libpin"
    config_dir.mkdir(exist_ok=True)
    (config_dir / "config.yaml").write_text(yaml.safe_dump(data))


def test_missing_config_is_empty(tmp_path):
    assert load_libpin_config(tmp_path) == {}
    assert load_library_configurations(tmp_path) == []


def test_unparseable_config_is_empty(tmp_path):
    (tmp_path / ".libpin").mkdir()
    (tmp_path / ".libpin" / "config.yaml").write_text("libraries: [unclosed")

    assert load_libpin_config(tmp_path) == {}


def test_resolution_defaults(tmp_path):
    """
    Given: No resolution section
    When: Reading resolution settings
    Then: The PR- / CHANGE_BRANCH / CHANGE_TARGET conventions apply
    """
    settings = get_resolution_settings(tmp_path)

    assert settings.branch_variable == "BRANCH_NAME"
    assert settings.pull_request_prefix == "PR-"
    assert settings.pull_request_fallbacks == ("CHANGE_BRANCH", "CHANGE_TARGET")


def test_resolution_overrides(tmp_path):
    _write_config(tmp_path, {"resolution": {"pull_request_fallbacks": ["CHANGE_TARGET"]}})

    config = get_resolution_config(tmp_path)
    settings = get_resolution_settings(tmp_path)

    assert config["pull_request_prefix"] == "PR-"
    assert settings.pull_request_fallbacks == ("CHANGE_TARGET",)


def test_single_pull_request_fallback_is_one_variable(tmp_path):
    """
    Given: pull_request_fallbacks written as a single variable name
    When: A PR-1 branch is resolved with CHANGE_BRANCH=feature/y
    Then: CHANGE_BRANCH is read as a whole and feature/y wins
    """
    _write_config(tmp_path, {
        "resolution": {"pull_request_fallbacks": "CHANGE_BRANCH"},
        "libraries": [{
            "name": "utils",
            "default_version": "master",
            "allow_dynamic_branch": True,
            "allow_dynamic_branch_for_pull_requests": True,
            "retriever": {"type": "static", "versions": ["feature/y"]},
        }],
    })
    settings = get_resolution_settings(tmp_path)
    [library] = load_library_configurations(tmp_path)
    context = ExecutionContext(
        job=FakeJob(),
        environment={"BRANCH_NAME": "PR-1", "CHANGE_BRANCH": "feature/y"},
    )

    assert settings.pull_request_fallbacks == ("CHANGE_BRANCH",)
    assert VersionResolver(library, settings=settings).resolve(PLACEHOLDER, context) == "feature/y"


@pytest.mark.parametrize("fallbacks", [{"a": 1}, [1, 2], 7])
def test_malformed_pull_request_fallbacks_are_rejected(fallbacks):
    with pytest.raises(LibraryConfigurationError, match="pull_request_fallbacks"):
        ResolutionSettings.from_dict({"pull_request_fallbacks": fallbacks})


def test_libraries_are_loaded_with_retrievers(tmp_path):
    """
    Given: A config declaring one git-backed library
    When: Loading library configurations
    Then: The entity carries flags and a GitRetriever
    """
    _write_config(tmp_path, {
        "libraries": [{
            "name": "utils",
            "default_version": "master",
            "allow_dynamic_branch": True,
            "retriever": {"type": "git", "remote": "https://example.com/utils.git"},
        }],
    })

    [library] = load_library_configurations(tmp_path)

    assert library.name == "utils"
    assert library.allow_dynamic_branch is True
    assert isinstance(library.retriever, GitRetriever)
    assert library.retriever.remote == "https://example.com/utils.git"


def test_duplicate_library_names_are_rejected(tmp_path):
    _write_config(tmp_path, {"libraries": [{"name": "utils"}, {"name": " utils "}]})

    with pytest.raises(LibraryConfigurationError, match="Duplicate"):
        load_library_configurations(tmp_path)


def test_libraries_must_be_a_list(tmp_path):
    _write_config(tmp_path, {"libraries": {"name": "utils"}})

    with pytest.raises(LibraryConfigurationError):
        load_library_configurations(tmp_path)


def test_feature_flags(tmp_path):
    _write_config(tmp_path, {"features": {"trace_all": True}})

    assert is_feature_enabled(tmp_path, "trace_all") is True
    assert is_feature_enabled(tmp_path, "other") is False


def test_locate_repo_root_finds_nearest_config(tmp_path):
    """
    Given: A config file two levels above the working directory
    When: Locating the repository root without LIBPIN_HOME
    Then: The directory holding .libpin/config.yaml is returned
    """
    _write_config(tmp_path, {"libraries": []})
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert locate_repo_root(nested, environ={}) == tmp_path.resolve()


def test_locate_repo_root_ignores_bare_libpin_directory(tmp_path):
    (tmp_path / ".libpin").mkdir()
    nested = tmp_path / "a"
    nested.mkdir()

    assert locate_repo_root(nested, environ={}) == nested.resolve()


def test_locate_repo_root_prefers_libpin_home(tmp_path):
    _write_config(tmp_path, {"libraries": []})
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()

    root = locate_repo_root(tmp_path, environ={"LIBPIN_HOME": str(elsewhere)})

    assert root == elsewhere.resolve()
