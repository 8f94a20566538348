"""Markdown run summaries for the job summary page."""

from __future__ import annotations

from typing import Optional

from .models import SyncOutcome
from .sync import FleetSyncResult
from .tagging import SyncDecision, TagDecision

SUCCESS_GLYPH = "✅"
FAILURE_GLYPH = "❌"
NO_CHANGES = "No changes needed."
NOT_CREATED = "Could not create."


def format_elapsed(seconds: float) -> str:
    """Format a duration rounded to whole seconds, e.g. ``1m5s``."""
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)

    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def format_repository(outcome: SyncOutcome) -> str:
    repo = outcome.repository
    return f"**[`{repo.name}`]({repo.html_url})**"


def format_pull_request(outcome: SyncOutcome) -> str:
    pull_request = outcome.pull_request
    if pull_request is not None:
        return f"[**{pull_request.title}**]({pull_request.url}) #{pull_request.number}"
    if outcome.error is not None:
        return NOT_CREATED
    return NO_CHANGES


def render_table(outcomes: list[SyncOutcome]) -> str:
    lines = [
        "| Repository | Success | Pull Request | T-Start |",
        "|:-|:-:|:-|-:|",
    ]
    for outcome in outcomes:
        glyph = SUCCESS_GLYPH if outcome.is_success else FAILURE_GLYPH
        lines.append(
            f"| {format_repository(outcome)} | {glyph} | "
            f"{format_pull_request(outcome)} | {format_elapsed(outcome.elapsed)} |"
        )
    return "\n".join(lines)


def render_sync_summary(result: FleetSyncResult, version_tag: str) -> str:
    """Render the fleet run as a heading, a table and a list of errors.

    Args:
        result: Outcomes of the fleet run
        version_tag: Version tag the targets were pinned to

    Returns:
        Markdown summary
    """
    if result.is_success:
        heading = f"### 🟢 All Repos Now Use `{version_tag}` For Workflows"
    elif result.partial_success:
        heading = f"### 🟡 Some Repos Now Use `{version_tag}` For Workflows"
    else:
        heading = "### 🔴 No Workflows Changed"

    sections = [heading, render_table(result.outcomes)]

    errors = [
        f"- {FAILURE_GLYPH} {format_repository(outcome)} ({outcome.error})"
        for outcome in result.failed
    ]
    if result.marker_error is not None:
        errors.append(f"- {FAILURE_GLYPH} Could not advance the sync marker ({result.marker_error})")
    if errors:
        sections.append("\n".join(errors))

    return "\n\n".join(sections) + "\n"


def render_tag_summary(
    decision: TagDecision, sync_decision: Optional[SyncDecision] = None
) -> str:
    """Render the outcome of a tagging run."""
    verb = "Created" if decision.created else "Updated"
    lines = [f"### 🏷️ Tag `{decision.tag}` {verb}"]

    if sync_decision is not None and sync_decision.should_sync:
        lines.append(f"*Workflows need to be synchronized, because {sync_decision.reason}.*")

    return "\n".join(lines) + "\n"
