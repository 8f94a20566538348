"""Version tag decisions for the source repository.

Two questions are answered here, independently of each other:

* Should the version tag be created, incremented or moved to HEAD?
* Does the fleet need to be re-synced?

They can disagree: unrelated commits move the tag without requiring a
fleet-wide sync.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .files import SYNCED_WORKFLOW_GLOB
from .git import GitClient, version_number
from .sync import LAST_SYNCED_TAG

logger = logging.getLogger(__name__)

FIRST_VERSION_TAG = "v1"
REPOS_FILE = "repos.json"

CREATE = "create"
MOVE = "move"


@dataclass(frozen=True)
class TagDecision:
    """What to do with the version tag.

    ``action`` is ``"create"`` or ``"move"``; ``previous`` is the latest
    version tag before the decision, or an empty string if there was none.
    """

    action: str
    tag: str
    previous: str = ""

    @property
    def created(self) -> bool:
        return self.action == CREATE


@dataclass(frozen=True)
class SyncDecision:
    """Whether the fleet needs to be re-synced, and why."""

    should_sync: bool
    reason: str = ""
    changed_files: list[str] = field(default_factory=list)


def next_version_tag(tag: str) -> str:
    """Return the tag following ``tag``, e.g. ``v4`` after ``v3``.

    Raises:
        ValueError: If ``tag`` is not a ``vN`` version tag
    """
    number = version_number(tag)
    if number is None:
        raise ValueError(f"'{tag}' is not a version tag")
    return f"v{number + 1}"


class VersionTagPolicy:
    """Decides how the source repository's tags should change.

    Args:
        git: Client for local git operations
        repo_dir: Checkout of the source repository
        workflow_glob: Pathspec selecting synced workflow files
        repos_file: Path of the target repository list
        marker_tag: Tag recording the last fully propagated commit
    """

    def __init__(
        self,
        git: GitClient,
        repo_dir: Path,
        workflow_glob: str = SYNCED_WORKFLOW_GLOB,
        repos_file: str = REPOS_FILE,
        marker_tag: str = LAST_SYNCED_TAG,
    ):
        self.git = git
        self.repo_dir = repo_dir
        self.workflow_glob = workflow_glob
        self.repos_file = repos_file
        self.marker_tag = marker_tag
        self._tags_fetched = False

    def _fetch_tags(self) -> None:
        # Diffs need the tags as local refs.
        if not self._tags_fetched:
            self.git.fetch_tags(self.repo_dir)
            self._tags_fetched = True

    def decide_version_tag(self) -> TagDecision:
        """Decide whether to create a new version tag or move the current one.

        Returns:
            ``create v1`` if there is no version tag yet, ``create v<N+1>``
            if a synced workflow changed since ``v<N>``, otherwise
            ``move v<N>``
        """
        latest = self.git.latest_version_tag(self.repo_dir)
        if not latest:
            logger.info(f"No version tag exists yet, creating {FIRST_VERSION_TAG}")
            return TagDecision(CREATE, FIRST_VERSION_TAG)

        self._fetch_tags()
        changed = self.git.files_changed_since(self.repo_dir, latest, self.workflow_glob)
        if changed:
            tag = next_version_tag(latest)
            logger.info(f"Synced workflows changed since {latest}, creating {tag}: {changed}")
            return TagDecision(CREATE, tag, latest)

        logger.info(f"No synced workflow changed since {latest}, moving it to HEAD")
        return TagDecision(MOVE, latest, latest)

    def decide_sync(self) -> SyncDecision:
        """Decide whether targets need to be re-synced.

        Compares against the ``last-synced`` marker, never against the
        version tag.
        """
        if not self.git.tag_exists_remotely(self.repo_dir, self.marker_tag):
            return SyncDecision(True, f"no `{self.marker_tag}` tag exists yet")

        self._fetch_tags()
        changed = self.git.files_changed_since(
            self.repo_dir, self.marker_tag, self.workflow_glob
        ) + self.git.files_changed_since(self.repo_dir, self.marker_tag, self.repos_file)

        if not changed:
            return SyncDecision(False)

        files = "`, `".join(changed)
        return SyncDecision(
            True,
            f"`{files}` were different since `{self.marker_tag}`",
            changed,
        )

    def apply(self, decision: TagDecision) -> None:
        """Create or move the version tag on the remote."""
        if decision.created:
            self.git.add_tag(self.repo_dir, decision.tag)
        else:
            self.git.move_tag(self.repo_dir, decision.tag)
