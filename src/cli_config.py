"""Configuration loading and repository discovery.

Settings come from an optional YAML file; CLI overrides are applied on top
by the entry point. Repositories are discovered from the package manager's
own config file unless listed explicitly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """The configuration file is unreadable or has the wrong shape."""


@dataclass
class TargetConfig:
    """Overrides for the build target; None means detect."""
    os: Optional[str] = None
    arch: Optional[str] = None
    compiler: str = Constants.DEFAULT_COMPILER
    compiler_version: Optional[str] = None


@dataclass
class PackdepsConfig:
    cabal_dir: str = field(default_factory=lambda: str(Path.home() / Constants.CABAL_DIR_NAME))
    repositories: Optional[List[str]] = None
    indexes: List[str] = field(default_factory=list)
    target: TargetConfig = field(default_factory=TargetConfig)
    log_level: Optional[str] = None


def _as_mapping(value: Any, where: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{where}' must be a mapping")
    return value


def config_from_dict(data: Dict[str, Any]) -> PackdepsConfig:
    """Build a config from a parsed YAML document."""
    data = _as_mapping(data, "config")
    config = PackdepsConfig()
    if data.get("cabal_dir"):
        config.cabal_dir = os.path.expanduser(str(data["cabal_dir"]))
    repos = data.get("repositories")
    if repos is not None:
        if not isinstance(repos, list):
            raise ConfigError("'repositories' must be a list")
        config.repositories = [str(r) for r in repos]
    indexes = data.get("indexes")
    if indexes is not None:
        if not isinstance(indexes, list):
            raise ConfigError("'indexes' must be a list")
        config.indexes = [os.path.expanduser(str(i)) for i in indexes]
    target = _as_mapping(data.get("target"), "target")
    config.target = TargetConfig(
        os=target.get("os"),
        arch=target.get("arch"),
        compiler=str(target.get("compiler") or Constants.DEFAULT_COMPILER),
        compiler_version=(
            str(target["compiler_version"]) if target.get("compiler_version") is not None else None
        ),
    )
    if data.get("log_level"):
        config.log_level = str(data["log_level"]).upper()
    return config


def load_config(path: Optional[str] = None) -> PackdepsConfig:
    """Load configuration from ``path`` or $PACKDEPS_CONFIG.

    A missing file yields defaults with a warning.

    Raises:
        ConfigError: on malformed YAML or a document of the wrong shape.
    """
    path = path or os.environ.get(Constants.ENV_CONFIG)
    if not path:
        return PackdepsConfig()
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return PackdepsConfig()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config {path}: {e}") from e
    logger.debug("Loaded config from %s", path)
    return config_from_dict(data)


def apply_cli_overrides(config: PackdepsConfig, args) -> PackdepsConfig:
    """Apply CLI flags on top of the loaded configuration."""
    if getattr(args, "CABAL_DIR", None):
        config.cabal_dir = os.path.expanduser(args.CABAL_DIR)
    if getattr(args, "INDEXES", None):
        config.indexes = list(args.INDEXES)
    if getattr(args, "COMPILER_VERSION", None):
        config.target.compiler_version = args.COMPILER_VERSION
    if getattr(args, "TARGET_OS", None):
        config.target.os = args.TARGET_OS
    if getattr(args, "TARGET_ARCH", None):
        config.target.arch = args.TARGET_ARCH
    if getattr(args, "LOG_LEVEL", None):
        config.log_level = args.LOG_LEVEL
    return config


def repos_from_config(text: str) -> List[str]:
    """Repository names from ``remote-repo: NAME:URL`` lines."""
    repos = []
    for line in text.splitlines():
        if line.startswith(Constants.REMOTE_REPO_PREFIX):
            rest = line[len(Constants.REMOTE_REPO_PREFIX):]
            repos.append(rest.split(":", 1)[0].strip())
    return repos


def discover_repositories(config: PackdepsConfig) -> List[str]:
    """Explicit repositories, or those named in the package manager config."""
    if config.repositories is not None:
        return list(config.repositories)
    cfg_path = Path(config.cabal_dir) / Constants.CABAL_CONFIG_FILE
    try:
        text = cfg_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ConfigError(f"Cannot read {cfg_path}: {e}") from e
    return repos_from_config(text)


def index_path(cabal_dir: str, repo: str) -> Optional[str]:
    """First existing index archive for ``repo``, if any."""
    repo_dir = Path(cabal_dir) / Constants.PACKAGES_DIR / repo
    for name in Constants.INDEX_FILES:
        candidate = repo_dir / name
        if candidate.is_file():
            return str(candidate)
    return None


def index_paths(config: PackdepsConfig) -> List[str]:
    """Archives to load: explicit indexes, else one per discovered repository."""
    if config.indexes:
        return list(config.indexes)
    paths = []
    for repo in discover_repositories(config):
        path = index_path(config.cabal_dir, repo)
        if path is None:
            logger.warning("No index archive found for repository %s", repo)
            continue
        paths.append(path)
    return paths
