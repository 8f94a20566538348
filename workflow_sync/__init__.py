"""Workflow Sync - propagate CI workflow files to a fleet of GitHub repositories.

This package copies synced workflow files from a source repository into
target repositories through pull requests, and maintains the version tags
that targets pin their workflows to.
"""

from .config import SyncConfig, load_config, load_repositories
from .exceptions import (
    ApiError,
    GitCommandError,
    InputFormatError,
    NotFoundError,
    RepositorySyncError,
    TransportError,
    WorkflowSyncError,
)
from .files import WorkflowFileSync
from .git import GitClient
from .github import GitHubClient
from .models import PullRequestRef, RepositoryIdentifier, SyncOutcome
from .sync import FleetSync, FleetSyncResult, RepositorySync, SyncState
from .tagging import SyncDecision, TagDecision, VersionTagPolicy

__version__ = "1.0.0"

__all__ = [
    "ApiError",
    "FleetSync",
    "FleetSyncResult",
    "GitClient",
    "GitCommandError",
    "GitHubClient",
    "InputFormatError",
    "NotFoundError",
    "PullRequestRef",
    "RepositoryIdentifier",
    "RepositorySync",
    "RepositorySyncError",
    "SyncConfig",
    "SyncDecision",
    "SyncOutcome",
    "SyncState",
    "TagDecision",
    "TransportError",
    "VersionTagPolicy",
    "WorkflowFileSync",
    "WorkflowSyncError",
    "load_config",
    "load_repositories",
]
