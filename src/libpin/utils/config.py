"""
libpin Configuration Loader.

Loads library declarations and resolution settings from .libpin/config.yaml.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from libpin.resolver.configuration import LibraryConfiguration
from libpin.resolver.errors import LibraryConfigurationError
from libpin.resolver.resolver import ResolutionSettings
from libpin.retrievers import build_retriever

logger = logging.getLogger(__name__)

# Points straight at the directory holding .libpin/, skipping the search
HOME_ENV_VAR = "LIBPIN_HOME"


def config_path(repo_root: Path) -> Path:
    return repo_root / ".libpin" / "config.yaml"


def locate_repo_root(
    start: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    """
    Find the directory whose .libpin/config.yaml declares the libraries.

    LIBPIN_HOME wins when set. Otherwise ``start`` (default: cwd) and its
    parents are checked for a config file; the nearest one wins.

    Returns:
        Directory holding .libpin/, or ``start`` when no config file exists
        (loading then yields no libraries)
    """
    environ = os.environ if environ is None else environ
    home = environ.get(HOME_ENV_VAR)
    if home:
        return Path(home).expanduser().resolve()

    origin = (start or Path.cwd()).resolve()
    for candidate in (origin, *origin.parents):
        if config_path(candidate).is_file():
            logger.debug("Using library configuration %s", config_path(candidate))
            return candidate
    return origin


def load_libpin_config(repo_root: Path) -> Dict[str, Any]:
    """
    Load .libpin/config.yaml configuration file.

    Args:
        repo_root: Repository root path

    Returns:
        Parsed configuration dict, or empty dict if file doesn't exist

    Example config:
        libraries:
          - name: pipeline-utils
            default_version: master
            allow_dynamic_branch: true
            retriever:
              type: git
              remote: https://example.com/org/pipeline-utils.git
        resolution:
          pull_request_prefix: PR-
          pull_request_fallbacks: [CHANGE_BRANCH, CHANGE_TARGET]
    """
    path = config_path(repo_root)

    if not path.exists():
        return {}

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
            return config if isinstance(config, dict) else {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return {}


def get_resolution_config(repo_root: Path) -> Dict[str, Any]:
    """
    Get resolution settings with defaults applied.

    Args:
        repo_root: Repository root path

    Returns:
        Resolution configuration dict
    """
    config = load_libpin_config(repo_root)
    resolution_config = dict(config.get("resolution") or {})

    defaults = {
        "branch_variable": "BRANCH_NAME",
        "pull_request_prefix": "PR-",
        "pull_request_fallbacks": ["CHANGE_BRANCH", "CHANGE_TARGET"],
    }

    for key, default_value in defaults.items():
        if key not in resolution_config:
            resolution_config[key] = default_value

    return resolution_config


def get_resolution_settings(repo_root: Path) -> ResolutionSettings:
    return ResolutionSettings.from_dict(get_resolution_config(repo_root))


def load_library_configurations(repo_root: Path) -> List[LibraryConfiguration]:
    """
    Build library configurations from the ``libraries`` section.

    Raises:
        LibraryConfigurationError: On malformed entries or duplicate names
    """
    config = load_libpin_config(repo_root)
    entries = config.get("libraries") or []
    if not isinstance(entries, list):
        raise LibraryConfigurationError(
            f"'libraries' in {config_path(repo_root)} must be a list"
        )

    libraries: List[LibraryConfiguration] = []
    seen = set()
    for entry in entries:
        library = LibraryConfiguration.from_dict(entry, retriever_factory=build_retriever)
        if library.name in seen:
            raise LibraryConfigurationError(f"Duplicate library name: {library.name}")
        seen.add(library.name)
        libraries.append(library)

    return libraries


def is_feature_enabled(repo_root: Path, feature: str) -> bool:
    """
    Check if a specific feature is enabled in config.

    Args:
        repo_root: Repository root path
        feature: Feature name to check

    Returns:
        True if feature is enabled, False otherwise
    """
    config = load_libpin_config(repo_root)
    features = config.get("features", {}) or {}
    return bool(features.get(feature, False))
