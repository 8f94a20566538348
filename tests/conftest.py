"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional, Sequence

import pytest

from workflow_sync.git import GitClient
from workflow_sync.models import RepositoryIdentifier

SYNCED_CI_WORKFLOW = """name: CI
on: [push]
jobs:
  build:
    uses: acme/workflows/.github/workflows/build.yml@main
  lint:
    uses: acme/workflows/.github/workflows/lint.yml@main
"""


class RecordingRunner:
    """Stands in for ``subprocess`` in ``GitClient`` tests.

    Records every command and answers with canned output. Outputs and
    failures are looked up by the longest registered command prefix.
    """

    def __init__(self):
        self.calls: list[tuple[list[str], Optional[Path]]] = []
        self.outputs: dict[tuple[str, ...], str] = {}
        self.failures: dict[tuple[str, ...], tuple[int, str]] = {}

    def on(self, *prefix: str, output: str = "") -> None:
        self.outputs[prefix] = output

    def fail(self, *prefix: str, returncode: int = 128, stderr: str = "fatal") -> None:
        self.failures[prefix] = (returncode, stderr)

    @staticmethod
    def _lookup(table: dict, args: list[str]):
        matches = [prefix for prefix in table if tuple(args[: len(prefix)]) == prefix]
        if not matches:
            return None
        return table[max(matches, key=len)]

    def __call__(self, args: Sequence[str], cwd: Optional[Path] = None) -> str:
        args = list(args)
        self.calls.append((args, cwd))

        failure = self._lookup(self.failures, args)
        if failure is not None:
            returncode, stderr = failure
            raise subprocess.CalledProcessError(returncode, args, output="", stderr=stderr)

        output = self._lookup(self.outputs, args)
        return output or ""

    @property
    def commands(self) -> list[list[str]]:
        return [args for args, _ in self.calls]


@pytest.fixture
def runner() -> RecordingRunner:
    """Return a fresh recording git runner."""
    return RecordingRunner()


@pytest.fixture
def git_client(runner: RecordingRunner) -> GitClient:
    """Return a git client wired to the recording runner."""
    return GitClient(token="ghp_author", runner=runner)


@pytest.fixture
def service_a() -> RepositoryIdentifier:
    return RepositoryIdentifier("acme", "service-a")


@pytest.fixture
def service_b() -> RepositoryIdentifier:
    return RepositoryIdentifier("acme", "service-b")


@pytest.fixture
def synced_ci_workflow() -> str:
    """Return a synced workflow referencing reusable workflows at @main."""
    return SYNCED_CI_WORKFLOW


@pytest.fixture
def source_root(tmp_path: Path, synced_ci_workflow: str) -> Path:
    """Return a source repository checkout with one synced and one local workflow."""
    root = tmp_path / "source"
    workflows = root / ".github" / "workflows"
    workflows.mkdir(parents=True)
    (workflows / "synced_ci.yml").write_text(synced_ci_workflow, encoding="utf-8")
    (workflows / "release.yml").write_text("name: Release\n", encoding="utf-8")
    return root


def git(*args: str, cwd: Optional[Path] = None) -> str:
    """Run a real git command for test setup."""
    result = subprocess.run(
        [
            "git",
            "-c", "user.name=test",
            "-c", "user.email=test@example.com",
            "-c", "init.defaultBranch=main",
            *args,
        ],
        cwd=str(cwd) if cwd else None,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


def make_remote(remotes_dir: Path, full_name: str, files: dict[str, str]) -> Path:
    """Create a bare repository holding one commit with ``files``."""
    seed = remotes_dir.parent / "seeds" / full_name
    seed.mkdir(parents=True)
    git("init", str(seed))
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=seed)

    for relative, content in files.items():
        path = seed / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    git("add", "--all", cwd=seed)
    git("commit", "-m", "initial commit", cwd=seed)

    bare = remotes_dir / f"{full_name}.git"
    bare.parent.mkdir(parents=True, exist_ok=True)
    git("clone", "--bare", str(seed), str(bare))
    return bare


class LocalGitClient(GitClient):
    """Git client whose remotes are bare repositories on disk."""

    def __init__(self, remotes_dir: Path, **kwargs):
        super().__init__(**kwargs)
        self.remotes_dir = remotes_dir

    def remote_url(self, repo: RepositoryIdentifier) -> str:
        return str(self.remotes_dir / f"{repo.full_name}.git")
