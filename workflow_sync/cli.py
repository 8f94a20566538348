"""Command-line interface for workflow-sync.

This module provides the ``sync`` and ``tag`` commands and wires the
clients together from configuration and environment credentials.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from .actions import pull_request_body, source_repository, write_job_summary, write_output
from .config import DEFAULT_CONFIG_PATH, SyncConfig, default_config, load_config, load_repositories
from .exceptions import WorkflowSyncError
from .files import WorkflowFileSync
from .git import GitClient
from .github import GitHubClient
from .models import RepositoryIdentifier
from .summary import render_sync_summary, render_tag_summary
from .sync import FleetSync, RepositorySync
from .tagging import VersionTagPolicy

AUTHOR_TOKEN_VARS = ("WORKFLOW_SYNC_TOKEN", "GITHUB_TOKEN")
APPROVER_TOKEN_VAR = "WORKFLOW_SYNC_APPROVER_TOKEN"


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration.

    Args:
        verbose: Enable debug logging if True
    """
    level = logging.DEBUG if verbose else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level, format=format_str, handlers=[logging.StreamHandler()]
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Propagate synced workflow files to a fleet of repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create or move the version tag and report whether a sync is needed
  python main.py tag

  # Sync workflows to every repository in repos.json
  python main.py sync

  # Sync workflows to a single repository
  python main.py sync --repo acme/service-a

  # Check both credentials and exit
  python main.py sync --test-connection
        """.strip(),
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help=f"Path to the configuration YAML file (default: {DEFAULT_CONFIG_PATH} if present)",
    )

    parser.add_argument(
        "--source-dir",
        type=Path,
        default=Path("."),
        help="Checkout of the source repository (default: current directory)",
    )

    parser.add_argument(
        "--source-repo",
        type=str,
        default=None,
        help="Source repository as owner/name (default: $GITHUB_REPOSITORY)",
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser(
        "sync", help="Open, approve and merge a workflow update PR on every target"
    )
    sync_parser.add_argument(
        "--repo",
        type=str,
        default=None,
        help="Sync a single owner/name repository instead of the list; never moves the marker tag",
    )
    sync_parser.add_argument(
        "--repos-file",
        type=Path,
        default=None,
        help="JSON list of target repositories (default: repos_file from config)",
    )
    sync_parser.add_argument(
        "--work-dir",
        type=Path,
        default=None,
        help="Directory for target clones (default: a temporary directory)",
    )
    sync_parser.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="GitHub API request timeout in seconds (default: none)",
    )
    sync_parser.add_argument(
        "--test-connection",
        action="store_true",
        help="Test both GitHub credentials and exit",
    )

    tag_parser = subparsers.add_parser(
        "tag", help="Create or move the version tag and decide whether to sync"
    )
    tag_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Decide the tag without creating or moving it",
    )

    return parser


def resolve_config(config_path: Optional[Path]) -> SyncConfig:
    """Load the given config file, the default one if present, or defaults."""
    if config_path is not None:
        return load_config(config_path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return default_config()


def author_token(env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    env = os.environ if env is None else env
    for name in AUTHOR_TOKEN_VARS:
        if env.get(name):
            return env[name]
    return None


def approver_token(env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    env = os.environ if env is None else env
    return env.get(APPROVER_TOKEN_VAR) or None


def resolve_source_repo(args: argparse.Namespace) -> RepositoryIdentifier:
    value = args.source_repo or source_repository()
    if not value:
        raise WorkflowSyncError(
            "Source repository unknown: pass --source-repo or set GITHUB_REPOSITORY"
        )
    return RepositoryIdentifier.parse(value)


def build_git_client(config: SyncConfig, token: Optional[str]) -> GitClient:
    return GitClient(
        token=token,
        user_name=config["git_user"]["name"],
        user_email=config["git_user"]["email"],
        host=config["git_host"],
    )


def run_sync(args: argparse.Namespace, config: SyncConfig) -> int:
    """Synchronize workflows to every target repository.

    Returns:
        Process exit code
    """
    logger = logging.getLogger(__name__)

    if args.repo:
        targets = [RepositoryIdentifier.parse(args.repo)]
    else:
        targets = load_repositories(args.repos_file or Path(config["repos_file"]))
    source_repo = resolve_source_repo(args)

    token = author_token()
    second_token = approver_token()
    if not token or not second_token:
        logger.error(
            f"Both an author token ({' or '.join(AUTHOR_TOKEN_VARS)}) "
            f"and an approver token ({APPROVER_TOKEN_VAR}) are required"
        )
        return 1

    with GitHubClient(token, timeout=args.timeout, api_url=config["api_url"]) as author, \
            GitHubClient(second_token, timeout=args.timeout, api_url=config["api_url"]) as approver:
        if args.test_connection:
            is_connected = author.test_connection() and approver.test_connection()
            return 0 if is_connected else 1

        git = build_git_client(config, token)
        source_root = args.source_dir
        git.remote_origin_rewrite(source_root, source_repo)

        version_tag = git.latest_version_tag(source_root)
        if not version_tag:
            logger.error(f"No version tag found on {source_repo}, run the 'tag' command first")
            return 1

        logger.info(f"Syncing {len(targets)} repositories to {source_repo}@{version_tag}")

        with tempfile.TemporaryDirectory(prefix="workflow-sync-") as temp_dir:
            repository_sync = RepositorySync(
                git=git,
                author=author,
                approver=approver,
                file_sync=WorkflowFileSync(
                    version_tag,
                    workflow_dir=config["workflow_dir"],
                    ref_token=config["ref_token"],
                ),
                source_root=source_root,
                work_dir=args.work_dir or Path(temp_dir),
                branch=config["branch"],
                pr_title=config["pr_title"],
                pr_body=pull_request_body(),
                commit_message=config["commit_message"],
            )
            fleet = FleetSync(repository_sync, git, source_root, marker_tag=config["marker_tag"])
            result = fleet.run(targets, advance_marker=not args.repo)

    write_job_summary(render_sync_summary(result, version_tag))

    if result.is_success and result.marker_error is None:
        logger.info(f"✓ {result}")
        return 0

    logger.error(f"✗ {result}")
    for outcome in result.failed:
        logger.error(f"  {outcome.repository}: {outcome.error}")
    return 1


def run_tag(args: argparse.Namespace, config: SyncConfig) -> int:
    """Create or move the version tag and report whether a sync is needed.

    Returns:
        Process exit code
    """
    logger = logging.getLogger(__name__)

    source_root = args.source_dir
    token = author_token()
    git = build_git_client(config, token)

    if token:
        git.remote_origin_rewrite(source_root, resolve_source_repo(args))
    git.configure_user(source_root)

    policy = VersionTagPolicy(
        git,
        source_root,
        workflow_glob=f"{config['workflow_dir']}/synced_*",
        repos_file=config["repos_file"],
        marker_tag=config["marker_tag"],
    )

    decision = policy.decide_version_tag()
    if args.dry_run:
        logger.info(f"DRY RUN MODE - would {decision.action} tag {decision.tag}")
    else:
        policy.apply(decision)

    sync_decision = policy.decide_sync()
    if sync_decision.should_sync:
        logger.info(f"Workflows need to be synchronized, because {sync_decision.reason}")
    else:
        logger.info("Workflows are up to date, no sync needed")

    write_output("should-sync", "true" if sync_decision.should_sync else "false")
    write_job_summary(render_tag_summary(decision, sync_decision))
    return 0


def main() -> None:
    """Main entry point for the CLI application."""
    parser = create_parser()
    args = parser.parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        try:
            config = resolve_config(args.config)
        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            sys.exit(1)

        if args.command == "sync":
            exit_code = run_sync(args, config)
        else:
            exit_code = run_tag(args, config)

        sys.exit(exit_code)

    except KeyboardInterrupt:
        logger.info("Sync interrupted by user")
        sys.exit(130)
    except WorkflowSyncError as e:
        logger.error(f"✗ {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            logger.exception("Full traceback:")
        sys.exit(1)


if __name__ == "__main__":
    main()
