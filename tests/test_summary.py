"""Tests for markdown run summaries."""

import pytest

from workflow_sync.exceptions import RepositorySyncError, TransportError
from workflow_sync.models import PullRequestRef, RepositoryIdentifier, SyncOutcome
from workflow_sync.summary import (
    format_elapsed,
    format_pull_request,
    render_sync_summary,
    render_tag_summary,
)
from workflow_sync.sync import FleetSyncResult
from workflow_sync.tagging import SyncDecision, TagDecision

SERVICE_A = RepositoryIdentifier("acme", "service-a")
SERVICE_B = RepositoryIdentifier("acme", "service-b")


def merged_pull_request(repository: RepositoryIdentifier, number: int = 7) -> PullRequestRef:
    return PullRequestRef(
        repository=repository,
        number=number,
        title="(sync): update workflows",
        url=f"{repository.html_url}/pull/{number}",
        head="sync-workflows",
        base="main",
        merged=True,
    )


def fleet_result(*outcomes: SyncOutcome) -> FleetSyncResult:
    result = FleetSyncResult()
    for outcome in outcomes:
        result.add(outcome)
    return result


def failure(repository: RepositoryIdentifier) -> RepositorySyncError:
    cause = TransportError(["git", "push"], 128, "could not resolve host")
    return RepositorySyncError("branch prepared", cause)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0s"), (4.6, "5s"), (65, "1m5s"), (3600, "1h0m0s"), (3723, "1h2m3s")],
)
def test_format_elapsed(seconds: float, expected: str) -> None:
    assert format_elapsed(seconds) == expected


class TestFormatPullRequest:
    """Test cases for the pull request column."""

    def test_with_pull_request(self) -> None:
        outcome = SyncOutcome(SERVICE_A, pull_request=merged_pull_request(SERVICE_A))
        assert format_pull_request(outcome) == (
            "[**(sync): update workflows**](https://github.com/acme/service-a/pull/7) #7"
        )

    def test_unchanged_target(self) -> None:
        assert format_pull_request(SyncOutcome(SERVICE_A)) == "No changes needed."

    def test_failed_before_pull_request(self) -> None:
        outcome = SyncOutcome(SERVICE_A, error=failure(SERVICE_A))
        assert format_pull_request(outcome) == "Could not create."


class TestRenderSyncSummary:
    """Test cases for the fleet summary."""

    def test_all_succeeded(self) -> None:
        result = fleet_result(
            SyncOutcome(SERVICE_A, elapsed=3, pull_request=merged_pull_request(SERVICE_A)),
            SyncOutcome(SERVICE_B, elapsed=65),
        )

        markdown = render_sync_summary(result, "v5")

        assert markdown.startswith("### 🟢 All Repos Now Use `v5` For Workflows\n\n")
        assert "| Repository | Success | Pull Request | T-Start |" in markdown
        assert (
            "| **[`service-a`](https://github.com/acme/service-a)** | ✅ | "
            "[**(sync): update workflows**](https://github.com/acme/service-a/pull/7) #7 | 3s |"
        ) in markdown
        assert (
            "| **[`service-b`](https://github.com/acme/service-b)** | ✅ | "
            "No changes needed. | 1m5s |"
        ) in markdown
        assert "❌" not in markdown
        assert markdown.endswith("|\n")

    def test_some_failed(self) -> None:
        result = fleet_result(
            SyncOutcome(SERVICE_A, elapsed=3, pull_request=merged_pull_request(SERVICE_A)),
            SyncOutcome(SERVICE_B, error=failure(SERVICE_B), elapsed=9),
        )

        markdown = render_sync_summary(result, "v5")

        assert markdown.startswith("### 🟡 Some Repos Now Use `v5` For Workflows")
        assert "| ❌ | Could not create. | 9s |" in markdown
        assert "- ❌ **[`service-b`](https://github.com/acme/service-b)** (failed after" in markdown
        assert "could not resolve host" in markdown

    def test_all_failed(self) -> None:
        result = fleet_result(SyncOutcome(SERVICE_A, error=failure(SERVICE_A), elapsed=1))

        markdown = render_sync_summary(result, "v5")

        assert markdown.startswith("### 🔴 No Workflows Changed")

    def test_marker_error_listed(self) -> None:
        result = fleet_result(SyncOutcome(SERVICE_A, elapsed=1))
        result.marker_error = TransportError(["git", "push"], 1, "rejected")

        markdown = render_sync_summary(result, "v5")

        assert "- ❌ Could not advance the sync marker" in markdown


class TestRenderTagSummary:
    """Test cases for the tagging summary."""

    def test_created(self) -> None:
        markdown = render_tag_summary(TagDecision("create", "v4", "v3"))
        assert markdown == "### 🏷️ Tag `v4` Created\n"

    def test_updated_with_sync_reason(self) -> None:
        sync_decision = SyncDecision(
            True, "`repos.json` were different since `last-synced`", ["repos.json"]
        )

        markdown = render_tag_summary(TagDecision("move", "v3", "v3"), sync_decision)

        assert markdown == (
            "### 🏷️ Tag `v3` Updated\n"
            "*Workflows need to be synchronized, because "
            "`repos.json` were different since `last-synced`.*\n"
        )

    def test_no_sync_needed(self) -> None:
        markdown = render_tag_summary(TagDecision("move", "v3", "v3"), SyncDecision(False))
        assert "synchronized" not in markdown
