"""GitHub Actions integration: step outputs, job summaries and run links."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from .sync import PR_BODY

logger = logging.getLogger(__name__)


def _append(path: Path, text: str) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(text)


def write_output(key: str, value: str, env: Optional[Mapping[str, str]] = None) -> None:
    """Set a step output through ``$GITHUB_OUTPUT``.

    Outside of GitHub Actions the pair is printed instead.
    """
    env = os.environ if env is None else env
    output_file = env.get("GITHUB_OUTPUT")

    if not output_file:
        print(f"{key}={value}")
        return

    _append(Path(output_file), f"{key}={value}\n")
    logger.debug(f"Wrote output {key}={value}")


def write_job_summary(markdown: str, env: Optional[Mapping[str, str]] = None) -> None:
    """Append markdown to ``$GITHUB_STEP_SUMMARY``, or print it when unset."""
    env = os.environ if env is None else env
    summary_file = env.get("GITHUB_STEP_SUMMARY")

    if not summary_file:
        print(markdown)
        return

    _append(Path(summary_file), markdown)
    logger.debug(f"Wrote job summary to {summary_file}")


def source_repository(env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return ``owner/name`` of the repository running the workflow, if known."""
    env = os.environ if env is None else env
    return env.get("GITHUB_REPOSITORY") or None


def pull_request_body(env: Optional[Mapping[str, str]] = None) -> str:
    """Build a pull request body linking the workflow run that opened it.

    Falls back to a generic note when the run cannot be identified.
    """
    env = os.environ if env is None else env
    repository = env.get("GITHUB_REPOSITORY")
    run_id = env.get("GITHUB_RUN_ID")
    if not repository or not run_id:
        return PR_BODY

    server = env.get("GITHUB_SERVER_URL", "https://github.com").rstrip("/")
    workflow = env.get("GITHUB_WORKFLOW", "workflow")
    run_number = env.get("GITHUB_RUN_NUMBER", run_id)
    run_url = f"{server}/{repository}/actions/runs/{run_id}"

    return (
        f"*Automatically generated from [workflow run **{workflow}** #{run_number}]"
        f"({run_url}) in [{repository}]({server}/{repository}).*"
    )
