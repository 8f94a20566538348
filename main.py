"""Main entry point for workflow-sync CLI tool.

This module maps GitHub Actions inputs onto the command-line interface
of the workflow synchronization tool.
"""

import os
import sys

from workflow_sync.cli import main


def main_with_env_parsing() -> None:
    """Main entry point that handles GitHub Actions environment variables."""
    # Credentials are passed as action inputs, the CLI reads them from the environment
    if os.getenv("INPUT_TOKEN"):
        os.environ.setdefault("WORKFLOW_SYNC_TOKEN", os.getenv("INPUT_TOKEN"))
    if os.getenv("INPUT_APPROVER_TOKEN"):
        os.environ.setdefault("WORKFLOW_SYNC_APPROVER_TOKEN", os.getenv("INPUT_APPROVER_TOKEN"))

    global_args = []
    if os.getenv("INPUT_CONFIG"):
        global_args.extend(["--config", os.getenv("INPUT_CONFIG")])
    if os.getenv("INPUT_SOURCE_REPO"):
        global_args.extend(["--source-repo", os.getenv("INPUT_SOURCE_REPO")])
    if os.getenv("INPUT_VERBOSE", "false").lower() == "true":
        global_args.append("--verbose")

    command = os.getenv("INPUT_COMMAND")
    if command:
        command_args = [command]
        if command == "sync" and os.getenv("INPUT_REPOS_FILE"):
            command_args.extend(["--repos-file", os.getenv("INPUT_REPOS_FILE")])
        if command == "sync" and os.getenv("INPUT_REPO"):
            command_args.extend(["--repo", os.getenv("INPUT_REPO")])
        if command == "tag" and os.getenv("INPUT_DRY_RUN", "false").lower() == "true":
            command_args.append("--dry-run")

        sys.argv = [sys.argv[0], *global_args, *command_args]

    main()


if __name__ == "__main__":
    main_with_env_parsing()
