"""Configuration parsing and validation for workflow-sync.

This module reads the optional YAML configuration file that tunes branch
names, titles and tag names, and the JSON list of target repositories.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from typing_extensions import TypedDict

from .exceptions import InputFormatError
from .files import REF_TOKEN, WORKFLOW_DIR
from .models import RepositoryIdentifier
from .sync import COMMIT_MESSAGE, FEATURE_BRANCH, LAST_SYNCED_TAG, PR_TITLE
from .tagging import REPOS_FILE

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(".github/workflow-sync.yaml")


class GitUserConfig(TypedDict):
    """Commit identity used in target clones."""

    name: str
    email: str


class SyncConfig(TypedDict):
    """Main configuration structure.

    Every key is optional in the YAML file; missing keys take the defaults
    from ``default_config()``.
    """

    repos_file: str
    workflow_dir: str
    branch: str
    pr_title: str
    commit_message: str
    marker_tag: str
    ref_token: str
    api_url: str
    git_host: str
    git_user: GitUserConfig


_STRING_FIELDS = [
    "repos_file",
    "workflow_dir",
    "branch",
    "pr_title",
    "commit_message",
    "marker_tag",
    "ref_token",
    "api_url",
    "git_host",
]


def default_config() -> SyncConfig:
    """Return the configuration used when no file is given."""
    return {
        "repos_file": REPOS_FILE,
        "workflow_dir": WORKFLOW_DIR,
        "branch": FEATURE_BRANCH,
        "pr_title": PR_TITLE,
        "commit_message": COMMIT_MESSAGE,
        "marker_tag": LAST_SYNCED_TAG,
        "ref_token": REF_TOKEN,
        "api_url": "https://api.github.com",
        "git_host": "github.com",
        "git_user": {
            "name": "workflow-sync-bot",
            "email": "workflow-sync-bot@users.noreply.github.com",
        },
    }


def load_config(config_path: Path) -> SyncConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Configuration with defaults filled in for missing keys

    Raises:
        FileNotFoundError: If the config file doesn't exist
        yaml.YAMLError: If the YAML is malformed
        ValueError: If the config structure is invalid

    Example:
        >>> config = load_config(Path(".github/workflow-sync.yaml"))
        >>> print(config["branch"])
        sync-workflows
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML configuration: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Configuration must be a dictionary")

    config = default_config()

    unknown = sorted(set(data) - set(config))
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    for field in _STRING_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if not isinstance(value, str) or not value:
            raise ValueError(f"'{field}' must be a non-empty string")
        config[field] = value  # type: ignore[literal-required]

    if "git_user" in data:
        git_user = data["git_user"]
        if not isinstance(git_user, dict):
            raise ValueError("'git_user' must be a dictionary")
        for field in ("name", "email"):
            if field in git_user:
                if not isinstance(git_user[field], str):
                    raise ValueError(f"'git_user.{field}' must be a string")
                config["git_user"][field] = git_user[field]  # type: ignore[literal-required]

    logger.info(f"Successfully loaded configuration from {config_path}")
    return config


def parse_repositories(data: Any) -> list[RepositoryIdentifier]:
    """Validate a decoded repository list.

    Raises:
        InputFormatError: If ``data`` is not a list of ``owner/name`` strings
    """
    if not isinstance(data, list):
        raise InputFormatError("Repository list must be a JSON array of 'owner/name' strings")

    return [RepositoryIdentifier.parse(item) for item in data]


def load_repositories(repos_path: Path) -> list[RepositoryIdentifier]:
    """Load the target repositories from a JSON file.

    Args:
        repos_path: Path to a JSON array such as ``["acme/service-a"]``

    Returns:
        Parsed identifiers in file order

    Raises:
        InputFormatError: If the file is missing, is not valid JSON, or
            contains a malformed identifier
    """
    try:
        with repos_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise InputFormatError(f"Could not read '{repos_path}': {e}") from e
    except json.JSONDecodeError as e:
        raise InputFormatError(
            f"Could not parse '{repos_path}', expected a JSON formatted list of strings: {e}"
        ) from e

    repositories = parse_repositories(data)
    logger.info(f"Loaded {len(repositories)} target repositories from {repos_path}")
    return repositories
