"""GitHub API client for the pull request lifecycle.

This module wraps the REST endpoints workflow-sync needs on target
repositories: default branch lookup, branch queries, and creating,
approving and merging pull requests.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import quote

import requests

from .exceptions import ApiError, NotFoundError, TransportError
from .models import PullRequestRef, RepositoryIdentifier

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GitHubClient:
    """Client for the GitHub REST API bound to a single access token.

    An author and an approver are two separate instances: hosts reject
    approvals from the pull request's own author.
    """

    API_URL = "https://api.github.com"

    def __init__(
        self,
        token: str,
        timeout: Optional[int] = None,
        api_url: Optional[str] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: Access token used for every request of this client
            timeout: Optional request timeout in seconds
            api_url: Base URL of the REST API (GitHub Enterprise support)
        """
        self.token = token
        self.timeout = timeout
        self.api_url = (api_url or self.API_URL).rstrip("/")
        self.session = requests.Session()

        self.session.headers.update(
            {
                "User-Agent": "workflow-sync/1.0.0",
                "Accept": "application/vnd.github+json",
                "Authorization": f"token {self.token}",
            }
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send a request and map failures onto the error taxonomy.

        Raises:
            NotFoundError: If the API answers 404
            ApiError: If the API answers with any other non-2xx status
            TransportError: If the request could not be sent
        """
        url = f"{self.api_url}{path}"
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError([method, url], -1, str(e)) from e

        if response.status_code == 404:
            raise NotFoundError(f"{method} {path} not found", 404, response.text)
        if not response.ok:
            raise ApiError(f"{method} {path} failed", response.status_code, response.text)

        return response

    @staticmethod
    def _parse(response: requests.Response, parser: Callable[[Any], T]) -> T:
        """Decode a JSON response body and extract a value from it.

        Raises:
            ApiError: If the body is not JSON or lacks the expected fields
        """
        try:
            return parser(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ApiError(
                f"Unexpected response body from {response.url}",
                response.status_code,
                response.text,
            ) from e

    @staticmethod
    def _repo_path(repo: RepositoryIdentifier) -> str:
        return f"/repos/{quote(repo.owner, safe='')}/{quote(repo.name, safe='')}"

    def default_branch(self, repo: RepositoryIdentifier) -> str:
        """Return the configured default branch of a repository.

        Raises:
            NotFoundError: If the repository does not exist
        """
        response = self._request("GET", self._repo_path(repo))
        return self._parse(response, lambda data: data["default_branch"])

    def remote_branch_exists(self, repo: RepositoryIdentifier, branch: str) -> bool:
        """Check whether a branch exists on the remote repository.

        A 404 is a valid negative answer, not an error.

        Raises:
            ApiError: For any other non-2xx response
        """
        try:
            self._request("GET", f"{self._repo_path(repo)}/branches/{quote(branch, safe='')}")
        except NotFoundError:
            return False
        return True

    def create_pull_request(
        self,
        repo: RepositoryIdentifier,
        head: str,
        base: str,
        title: str,
        body: str,
    ) -> PullRequestRef:
        """Create a pull request in the specified repository.

        Args:
            repo: Target repository
            head: Branch containing the changes
            base: Branch the changes should be merged into
            title: Title of the pull request
            body: Body/description of the pull request

        Returns:
            Reference to the created pull request

        Raises:
            ApiError: If GitHub rejects the pull request

        Example:
            >>> client = GitHubClient(token="ghp_...")
            >>> pr = client.create_pull_request(
            ...     RepositoryIdentifier("acme", "service-a"),
            ...     "sync-workflows",
            ...     "main",
            ...     "(sync): update workflows",
            ...     "Automated workflow sync",
            ... )
            >>> print(pr.url)
            https://github.com/acme/service-a/pull/12
        """
        logger.info(f"Creating pull request on {repo}: {title}")
        data = {
            "title": title,
            "body": body,
            "head": head,
            "base": base,
            "maintainer_can_modify": True,
        }
        response = self._request("POST", f"{self._repo_path(repo)}/pulls", json=data)

        pull_request = self._parse(response, lambda data: PullRequestRef.from_api(repo, data))
        logger.info(f"Pull request created successfully: #{pull_request.number}")
        return pull_request

    def approve_pull_request(self, pull_request: PullRequestRef) -> None:
        """Approve a pull request with this client's identity.

        Raises:
            ApiError: If the identity is the author or lacks permission
        """
        logger.info(f"Approving pull request #{pull_request.number} on {pull_request.repository}")
        self._request(
            "POST",
            f"{self._repo_path(pull_request.repository)}/pulls/{pull_request.number}/reviews",
            json={"event": "APPROVE"},
        )

    def merge_pull_request(self, pull_request: PullRequestRef) -> PullRequestRef:
        """Merge a pull request.

        Conflicts, pending required checks and branch protection rejections
        all surface as ``ApiError``; none of them are retried.

        Returns:
            The same reference marked as merged
        """
        logger.info(f"Merging pull request #{pull_request.number} on {pull_request.repository}")
        response = self._request(
            "PUT",
            f"{self._repo_path(pull_request.repository)}/pulls/{pull_request.number}/merge",
            json={},
        )

        if not self._parse(response, lambda data: data.get("merged", True)):
            raise ApiError(
                f"Pull request #{pull_request.number} was not merged",
                response.status_code,
                response.text,
            )
        return pull_request.as_merged()

    def authenticated_user(self) -> str:
        """Return the login of the identity behind this client's token."""
        response = self._request("GET", "/user")
        return self._parse(response, lambda data: data["login"])

    def test_connection(self) -> bool:
        """Test that the API is reachable and the token is accepted.

        Returns:
            True if connection is successful, False otherwise
        """
        try:
            login = self.authenticated_user()
        except (ApiError, TransportError) as e:
            logger.error(f"GitHub connection test failed: {e}")
            return False

        logger.info(f"Authenticated to GitHub as {login}")
        return True

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()

    def __enter__(self) -> GitHubClient:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
