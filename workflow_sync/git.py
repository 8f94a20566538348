"""Local git operations for workflow-sync.

Every operation that runs inside a clone takes the clone directory
explicitly and hands it to ``subprocess`` as ``cwd``. The process working
directory is never changed.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Optional, Sequence

from .exceptions import GitCommandError, TransportError
from .models import RepositoryIdentifier

logger = logging.getLogger(__name__)

VERSION_TAG_PATTERN = re.compile(r"^v(\d+)$")

Runner = Callable[[Sequence[str], Optional[Path]], str]


def _default_runner(args: Sequence[str], cwd: Optional[Path] = None) -> str:
    result = subprocess.run(
        list(args),
        cwd=str(cwd) if cwd else None,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


def version_number(tag: str) -> Optional[int]:
    """Return N for a ``vN`` tag, or None if the tag is not a version tag."""
    match = VERSION_TAG_PATTERN.match(tag)
    if match is None:
        return None
    return int(match.group(1))


class GitClient:
    """Runs git commands against local clones.

    Provides cloning with an embedded credential, branch and tag management,
    and the diff queries used to decide whether a sync is needed.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        user_name: str = "workflow-sync-bot",
        user_email: str = "workflow-sync-bot@users.noreply.github.com",
        host: str = "github.com",
        runner: Optional[Runner] = None,
    ):
        """Initialize the git client.

        Args:
            token: Access token embedded in remote URLs for clone and push
            user_name: Commit author name configured in each clone
            user_email: Commit author email configured in each clone
            host: Git host serving the repositories
            runner: Optional command runner, mainly for tests. Receives the
                argument list and working directory and returns stdout,
                raising ``subprocess.CalledProcessError`` on failure.
        """
        self.token = token
        self.user_name = user_name
        self.user_email = user_email
        self.host = host
        self._runner = runner or _default_runner

    def _redact(self, text: str) -> str:
        if self.token:
            return text.replace(self.token, "<token>")
        return text

    def _run(
        self,
        args: Sequence[str],
        repo_dir: Optional[Path] = None,
        transport: bool = False,
    ) -> str:
        """Run a git command and return its standard output.

        Raises:
            TransportError: If a command talking to a remote fails
            GitCommandError: If any other command fails
        """
        redacted = [self._redact(arg) for arg in args]
        logger.debug(f"> {' '.join(redacted)} (in {repo_dir or '.'})")

        try:
            return self._runner(args, repo_dir)
        except subprocess.CalledProcessError as e:
            error_class = TransportError if transport else GitCommandError
            stderr = e.stderr if isinstance(e.stderr, str) else ""
            raise error_class(redacted, e.returncode, self._redact(stderr)) from None

    def remote_url(self, repo: RepositoryIdentifier) -> str:
        """Build the HTTPS remote URL for a repository, embedding the token."""
        if self.token:
            return f"https://{self.user_name}:{self.token}@{self.host}/{repo.full_name}.git"
        return f"https://{self.host}/{repo.full_name}.git"

    def clone(self, repo: RepositoryIdentifier, target_dir: Path) -> None:
        """Clone a repository into a fresh directory.

        An existing ``target_dir`` is deleted first, so clones are always
        fresh.

        Raises:
            TransportError: If the clone fails
        """
        if target_dir.exists():
            logger.debug(f"Removing existing clone at {target_dir}")
            shutil.rmtree(target_dir)
        target_dir.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Cloning {repo} into {target_dir}")
        self._run(
            ["git", "clone", self.remote_url(repo), str(target_dir)],
            transport=True,
        )
        self.remote_origin_rewrite(target_dir, repo)

    def remote_origin_rewrite(self, repo_dir: Path, repo: RepositoryIdentifier) -> None:
        """Point ``origin`` at the credential-embedding URL of ``repo``."""
        self._run(["git", "remote", "set-url", "origin", self.remote_url(repo)], repo_dir)

    def configure_user(self, repo_dir: Path) -> None:
        """Set the commit identity for a single clone."""
        self._run(["git", "config", "user.name", self.user_name], repo_dir)
        self._run(["git", "config", "user.email", self.user_email], repo_dir)

    def stage(self, repo_dir: Path, path: str) -> None:
        self._run(["git", "add", "--all", "--", path], repo_dir)

    def commit(self, repo_dir: Path, message: str) -> None:
        self._run(["git", "commit", "-m", message], repo_dir)

    def push(self, repo_dir: Path, branch: str) -> None:
        logger.info(f"Pushing branch {branch}")
        self._run(["git", "push", "-u", "origin", branch], repo_dir, transport=True)

    def fetch_tags(self, repo_dir: Path) -> None:
        self._run(["git", "fetch", "--tags", "--force", "origin"], repo_dir, transport=True)

    def working_tree_clean(self, repo_dir: Path) -> bool:
        """Return True if there are no staged or unstaged changes."""
        return self._run(["git", "status", "--porcelain"], repo_dir).strip() == ""

    def files_changed_since(self, repo_dir: Path, ref: str, path_filter: str) -> list[str]:
        """List paths under ``path_filter`` that differ between ``ref`` and the working tree.

        The ref must exist; callers check that before asking.

        Args:
            repo_dir: Clone to inspect
            ref: Commit, branch or tag to compare against
            path_filter: Path or glob pathspec restricting the diff

        Returns:
            Repository-relative paths in git's output order
        """
        output = self._run(["git", "diff", "--name-only", ref, "--", path_filter], repo_dir)
        return [line for line in output.splitlines() if line]

    def local_branch_exists(self, repo_dir: Path, branch: str) -> bool:
        return self._run(["git", "branch", "--list", branch], repo_dir).strip() != ""

    def delete_local_branch(self, repo_dir: Path, branch: str) -> None:
        logger.info(f"Deleting local branch {branch}")
        self._run(["git", "branch", "-D", branch], repo_dir)

    def delete_remote_branch(self, repo_dir: Path, branch: str) -> None:
        logger.info(f"Deleting remote branch {branch}")
        self._run(["git", "push", "origin", "--delete", branch], repo_dir, transport=True)

    def checkout_new(self, repo_dir: Path, branch: str) -> None:
        self._run(["git", "checkout", "-b", branch], repo_dir)

    def checkout_existing(self, repo_dir: Path, branch: str) -> None:
        self._run(["git", "checkout", branch], repo_dir)

    def add_tag(self, repo_dir: Path, tag: str) -> None:
        """Create a tag at HEAD and push it. Fails if the tag already exists."""
        logger.info(f"Adding tag {tag}")
        self._run(["git", "tag", tag], repo_dir)
        self._run(["git", "push", "origin", tag], repo_dir, transport=True)

    def move_tag(self, repo_dir: Path, tag: str) -> None:
        """Force-update an existing tag to HEAD and force-push it."""
        logger.info(f"Moving tag {tag} to HEAD")
        self._run(
            ["git", "tag", "-fa", tag, "-m", f"Update tag `{tag}` to latest commit"],
            repo_dir,
        )
        self._run(["git", "push", "origin", tag, "--force"], repo_dir, transport=True)

    def tag_exists_remotely(self, repo_dir: Path, tag: str) -> bool:
        output = self._run(
            ["git", "ls-remote", "--tags", "origin", f"refs/tags/{tag}"],
            repo_dir,
            transport=True,
        )
        return output.strip() != ""

    def add_or_move_tag(self, repo_dir: Path, tag: str) -> None:
        if self.tag_exists_remotely(repo_dir, tag):
            self.move_tag(repo_dir, tag)
        else:
            self.add_tag(repo_dir, tag)

    def remote_tags(self, repo_dir: Path) -> list[str]:
        """List tag names on ``origin``, without peeled duplicates."""
        output = self._run(["git", "ls-remote", "--tags", "origin"], repo_dir, transport=True)

        tags = []
        for line in output.splitlines():
            _, _, ref = line.partition("\t")
            if not ref.startswith("refs/tags/") or ref.endswith("^{}"):
                continue
            tags.append(ref[len("refs/tags/"):])
        return tags

    def latest_version_tag(self, repo_dir: Path) -> str:
        """Return the highest ``vN`` tag on ``origin``.

        Tags are ordered by their numeric version, so ``v10`` sorts after
        ``v9``.

        Returns:
            The latest version tag, or an empty string if there is none yet
        """
        versions = []
        for tag in self.remote_tags(repo_dir):
            number = version_number(tag)
            if number is not None:
                versions.append((number, tag))

        versions.sort()
        if not versions:
            return ""
        return versions[-1][1]
