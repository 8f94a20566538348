"""Exception types raised by workflow-sync.

Input errors are fatal and abort a run before any git or API activity.
Git, transport and API errors are raised per target repository; the fleet
runner records them and moves on to the next target.
"""

from __future__ import annotations

from typing import Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import PullRequestRef


class WorkflowSyncError(Exception):
    """Base class for all workflow-sync errors."""


class InputFormatError(WorkflowSyncError):
    """Raised when the repository list or an identifier is malformed."""


class GitCommandError(WorkflowSyncError):
    """Raised when a local git command exits with a non-zero status.

    Attributes:
        command: The git command line, with secrets redacted
        returncode: Exit status of the command
        stderr: Captured standard error, with secrets redacted
    """

    def __init__(self, command: Sequence[str], returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"'{' '.join(self.command)}' exited with status {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)


class TransportError(GitCommandError):
    """Raised when talking to a remote fails (clone, fetch, push, ls-remote).

    Also raised for connection-level failures of the hosting API.
    """


class ApiError(WorkflowSyncError):
    """Raised for a non-2xx response from the hosting API.

    Attributes:
        status_code: HTTP status of the response
        body: Raw response body
    """

    def __init__(self, message: str, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        detail = f"{message} (HTTP {status_code})"
        if body:
            detail = f"{detail}: {body}"
        super().__init__(detail)


class NotFoundError(ApiError):
    """Raised when the hosting API answers 404 for a repository or branch."""


class RepositorySyncError(WorkflowSyncError):
    """Raised when synchronizing a single target repository fails.

    Attributes:
        state: Last state the target reached before the failure
        cause: The underlying error
        pull_request: Pull request created before the failure, if any
    """

    def __init__(
        self,
        state: str,
        cause: BaseException,
        pull_request: Optional[PullRequestRef] = None,
    ):
        self.state = state
        self.cause = cause
        self.pull_request = pull_request
        super().__init__(f"failed after '{state}': {cause}")
