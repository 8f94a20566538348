"""Workflow synchronization logic for workflow-sync.

This module drives each target repository through clone, file sync, the
feature branch lifecycle and the pull request lifecycle, and runs that
process over the whole fleet of targets.
"""

from __future__ import annotations

import enum
import logging
import time
from pathlib import Path
from typing import Callable, Iterable, Optional

from .exceptions import RepositorySyncError, WorkflowSyncError
from .files import WorkflowFileSync
from .git import GitClient
from .github import GitHubClient
from .models import PullRequestRef, RepositoryIdentifier, SyncOutcome

logger = logging.getLogger(__name__)

FEATURE_BRANCH = "sync-workflows"
PR_TITLE = "(sync): update workflows"
PR_BODY = "*Automatically generated by workflow-sync.*"
COMMIT_MESSAGE = "sync workflows"
LAST_SYNCED_TAG = "last-synced"


class SyncState(enum.Enum):
    """Stages a target repository passes through during a sync."""

    CLONING = "cloning"
    FILES_SYNCED = "files synced"
    BRANCH_PREPARED = "branch prepared"
    PUSHED = "pushed"
    PR_CREATED = "pull request created"
    PR_APPROVED = "pull request approved"
    PR_MERGED = "pull request merged"
    BRANCH_CLEANED = "branch cleaned"
    DONE = "done"
    FAILED = "failed"


class RepositorySync:
    """Synchronizes the source workflows into a single target repository.

    Each target is cloned fresh into its own directory under ``work_dir``.
    The feature branch is deleted locally and remotely before it is created,
    so a branch left behind by an earlier failed run never blocks a new one.
    Branches are only cleaned up after a confirmed merge; a failure after
    the push leaves the branch (and any pull request) for manual inspection.
    """

    def __init__(
        self,
        git: GitClient,
        author: GitHubClient,
        approver: GitHubClient,
        file_sync: WorkflowFileSync,
        source_root: Path,
        work_dir: Path,
        branch: str = FEATURE_BRANCH,
        pr_title: str = PR_TITLE,
        pr_body: str = PR_BODY,
        commit_message: str = COMMIT_MESSAGE,
    ):
        """Initialize the repository synchronizer.

        Args:
            git: Client for local git operations
            author: GitHub client that creates and merges pull requests
            approver: GitHub client with a second identity that approves them
            file_sync: Copies synced workflow files into a clone
            source_root: Checkout of the source repository
            work_dir: Directory that receives target clones
            branch: Feature branch name used on every target
            pr_title: Title of the pull requests
            pr_body: Body of the pull requests
            commit_message: Message of the sync commit
        """
        self.git = git
        self.author = author
        self.approver = approver
        self.file_sync = file_sync
        self.source_root = source_root
        self.work_dir = work_dir
        self.branch = branch
        self.pr_title = pr_title
        self.pr_body = pr_body
        self.commit_message = commit_message

        self.state = SyncState.CLONING
        self.pull_request: Optional[PullRequestRef] = None

    def clone_dir(self, target: RepositoryIdentifier) -> Path:
        return self.work_dir / target.owner / target.name

    def sync(self, target: RepositoryIdentifier) -> Optional[PullRequestRef]:
        """Synchronize workflows into ``target``.

        Args:
            target: Repository receiving the workflow files

        Returns:
            The merged pull request, or None if the target was already up
            to date

        Raises:
            RepositorySyncError: If any stage fails. Carries the last state
                reached and the pull request, if one was created.
        """
        self.state = SyncState.CLONING
        self.pull_request = None

        try:
            self._sync(target)
        except (WorkflowSyncError, OSError) as e:
            failed_after = self.state
            self.state = SyncState.FAILED
            logger.error(f"✗ Failed to sync {target} after '{failed_after.value}': {e}")
            raise RepositorySyncError(failed_after.value, e, self.pull_request) from e

        return self.pull_request

    def _advance(self, state: SyncState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state

    def _sync(self, target: RepositoryIdentifier) -> None:
        repo_dir = self.clone_dir(target)

        self.git.clone(target, repo_dir)
        self.git.configure_user(repo_dir)

        self.file_sync.sync(self.source_root, repo_dir)
        self.git.stage(repo_dir, self.file_sync.workflow_dir)
        self._advance(SyncState.FILES_SYNCED)

        if self.git.working_tree_clean(repo_dir):
            logger.info(f"✓ {target} is already up to date, no changes to commit")
            self._advance(SyncState.DONE)
            return

        default_branch = self.author.default_branch(target)
        self._delete_feature_branch(target, repo_dir)
        self.git.checkout_new(repo_dir, self.branch)
        self._advance(SyncState.BRANCH_PREPARED)

        self.git.commit(repo_dir, self.commit_message)
        self.git.push(repo_dir, self.branch)
        self._advance(SyncState.PUSHED)

        self.pull_request = self.author.create_pull_request(
            target, self.branch, default_branch, self.pr_title, self.pr_body
        )
        self._advance(SyncState.PR_CREATED)

        self.approver.approve_pull_request(self.pull_request)
        self._advance(SyncState.PR_APPROVED)

        self.pull_request = self.author.merge_pull_request(self.pull_request)
        self._advance(SyncState.PR_MERGED)

        self.git.checkout_existing(repo_dir, default_branch)
        self._delete_feature_branch(target, repo_dir)
        self._advance(SyncState.BRANCH_CLEANED)

        logger.info(f"✓ Synced {target}: {self.pull_request.url}")
        self._advance(SyncState.DONE)

    def _delete_feature_branch(self, target: RepositoryIdentifier, repo_dir: Path) -> None:
        """Delete the feature branch locally and remotely, wherever it exists."""
        if self.git.local_branch_exists(repo_dir, self.branch):
            self.git.delete_local_branch(repo_dir, self.branch)

        if self.author.remote_branch_exists(target, self.branch):
            self.git.delete_remote_branch(repo_dir, self.branch)


class FleetSyncResult:
    """Result of a fleet synchronization run.

    Contains one outcome per target repository.
    """

    def __init__(self):
        """Initialize empty fleet result."""
        self.outcomes: list[SyncOutcome] = []
        self.marker_advanced = False
        self.marker_error: Optional[Exception] = None

    def add(self, outcome: SyncOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def succeeded(self) -> list[SyncOutcome]:
        return [outcome for outcome in self.outcomes if outcome.is_success]

    @property
    def failed(self) -> list[SyncOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.is_success]

    @property
    def success_count(self) -> int:
        """Number of targets synchronized successfully."""
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        """Number of targets that failed."""
        return len(self.failed)

    @property
    def is_success(self) -> bool:
        """True if every target was synchronized successfully."""
        return self.failure_count == 0

    @property
    def partial_success(self) -> bool:
        """True if some, but not all, targets were synchronized."""
        return 0 < self.success_count < len(self.outcomes)

    def __str__(self) -> str:
        """String representation of fleet results."""
        changed = sum(1 for outcome in self.outcomes if outcome.changed)
        return (
            f"Sync completed: {self.success_count} successful "
            f"({changed} changed), {self.failure_count} failed"
        )


class FleetSync:
    """Runs ``RepositorySync`` over every target repository, one at a time.

    The ``last-synced`` marker on the source repository is only advanced
    when every target succeeded, so a partially failed run is retried from
    the same baseline.
    """

    def __init__(
        self,
        repository_sync: RepositorySync,
        git: GitClient,
        source_root: Path,
        marker_tag: str = LAST_SYNCED_TAG,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repository_sync = repository_sync
        self.git = git
        self.source_root = source_root
        self.marker_tag = marker_tag
        self._clock = clock

    def run(
        self, targets: Iterable[RepositoryIdentifier], advance_marker: bool = True
    ) -> FleetSyncResult:
        """Synchronize all targets sequentially.

        Args:
            targets: Target repositories, processed in order
            advance_marker: Move the marker tag when every target succeeded.
                Disabled when only part of the fleet is synchronized.

        Returns:
            Aggregated outcomes of the run
        """
        result = FleetSyncResult()
        start = self._clock()

        for target in targets:
            logger.info(f"Processing target: {target}")
            error: Optional[Exception] = None
            pull_request = None

            try:
                pull_request = self.repository_sync.sync(target)
            except RepositorySyncError as e:
                error = e
                pull_request = e.pull_request

            result.add(
                SyncOutcome(
                    repository=target,
                    error=error,
                    elapsed=self._clock() - start,
                    pull_request=pull_request,
                )
            )

        logger.info(str(result))

        if not advance_marker:
            logger.info(f"Leaving '{self.marker_tag}' in place for a partial run")
        elif result.is_success:
            self._advance_marker(result)
        else:
            logger.warning(
                f"Not moving '{self.marker_tag}': {result.failure_count} targets failed"
            )

        return result

    def _advance_marker(self, result: FleetSyncResult) -> None:
        try:
            self.git.configure_user(self.source_root)
            self.git.add_or_move_tag(self.source_root, self.marker_tag)
        except WorkflowSyncError as e:
            logger.error(f"✗ Failed to advance '{self.marker_tag}': {e}")
            result.marker_error = e
            return

        result.marker_advanced = True
        logger.info(f"✓ Advanced '{self.marker_tag}' to HEAD")
