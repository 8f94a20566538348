"""Tests for config module."""

import json
from pathlib import Path

import pytest
import yaml

from workflow_sync.config import (
    SyncConfig,
    default_config,
    load_config,
    load_repositories,
    parse_repositories,
)
from workflow_sync.exceptions import InputFormatError
from workflow_sync.models import RepositoryIdentifier


def test_load_config_overrides_defaults(tmp_path: Path) -> None:
    """Test loading configuration with some keys overridden."""
    config_file = tmp_path / "workflow-sync.yaml"
    config_data = {
        "repos_file": "targets.json",
        "branch": "bot/sync-workflows",
        "git_user": {"name": "sync-bot"},
    }
    with config_file.open("w", encoding="utf-8") as f:
        yaml.dump(config_data, f)

    config = load_config(config_file)

    assert config["repos_file"] == "targets.json"
    assert config["branch"] == "bot/sync-workflows"
    assert config["git_user"]["name"] == "sync-bot"
    assert config["git_user"]["email"] == default_config()["git_user"]["email"]
    assert config["pr_title"] == "(sync): update workflows"
    assert config["marker_tag"] == "last-synced"
    assert config["workflow_dir"] == ".github/workflows"


def test_load_config_empty_file(tmp_path: Path) -> None:
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("", encoding="utf-8")

    assert load_config(config_file) == default_config()


def test_load_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Configuration file not found"):
        load_config(tmp_path / "nonexistent.yaml")


def test_load_config_invalid_yaml(tmp_path: Path) -> None:
    """Test that loading config fails with invalid YAML."""
    config_file = tmp_path / "invalid.yaml"
    config_file.write_text("invalid: yaml: content: [", encoding="utf-8")

    with pytest.raises(yaml.YAMLError):
        load_config(config_file)


def test_load_config_not_a_dictionary(tmp_path: Path) -> None:
    config_file = tmp_path / "list.yaml"
    config_file.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Configuration must be a dictionary"):
        load_config(config_file)


def test_load_config_unknown_key(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text("sources: []\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Unknown configuration keys: sources"):
        load_config(config_file)


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("branch: 3\n", "'branch' must be a non-empty string"),
        ("pr_title: ''\n", "'pr_title' must be a non-empty string"),
        ("git_user: bot\n", "'git_user' must be a dictionary"),
        ("git_user:\n  email: 5\n", "'git_user.email' must be a string"),
    ],
)
def test_load_config_invalid_types(tmp_path: Path, content: str, message: str) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError, match=message):
        load_config(config_file)


def test_config_types() -> None:
    """Test that config types are properly structured."""
    config: SyncConfig = default_config()
    assert config["branch"] == "sync-workflows"
    assert config["repos_file"] == "repos.json"
    assert config["ref_token"] == "@main"


class TestLoadRepositories:
    """Test cases for reading the target repository list."""

    def test_load_repositories(self, tmp_path: Path) -> None:
        repos_file = tmp_path / "repos.json"
        repos_file.write_text(json.dumps(["acme/service-a", "acme/service-b"]), encoding="utf-8")

        assert load_repositories(repos_file) == [
            RepositoryIdentifier("acme", "service-a"),
            RepositoryIdentifier("acme", "service-b"),
        ]

    def test_empty_list(self, tmp_path: Path) -> None:
        repos_file = tmp_path / "repos.json"
        repos_file.write_text("[]", encoding="utf-8")
        assert load_repositories(repos_file) == []

    def test_malformed_json(self, tmp_path: Path) -> None:
        repos_file = tmp_path / "repos.json"
        repos_file.write_text('["acme/service-a",', encoding="utf-8")

        with pytest.raises(InputFormatError, match="expected a JSON formatted list of strings"):
            load_repositories(repos_file)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InputFormatError, match="Could not read"):
            load_repositories(tmp_path / "repos.json")

    @pytest.mark.parametrize("data", [{"repos": []}, "acme/service-a", 3, None])
    def test_not_an_array(self, data) -> None:
        with pytest.raises(InputFormatError, match="JSON array"):
            parse_repositories(data)

    @pytest.mark.parametrize("item", ["service-a", "acme/", "/service-a", 7])
    def test_malformed_identifier(self, item) -> None:
        with pytest.raises(InputFormatError):
            parse_repositories(["acme/service-b", item])
