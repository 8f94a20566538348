"""Data structures shared by the sync and tagging code."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

from .exceptions import InputFormatError

GITHUB_URL = "https://github.com"


@dataclass(frozen=True)
class RepositoryIdentifier:
    """An ``owner/name`` pair identifying a GitHub repository."""

    owner: str
    name: str

    @classmethod
    def parse(cls, value: Any) -> RepositoryIdentifier:
        """Parse a repository identifier of the form ``owner/name``.

        Args:
            value: Identifier string

        Returns:
            Parsed identifier

        Raises:
            InputFormatError: If the value is not a string with exactly one
                separator and non-empty owner and name parts

        Example:
            >>> RepositoryIdentifier.parse("acme/service-a").name
            'service-a'
        """
        if not isinstance(value, str):
            raise InputFormatError(
                f"Repository identifier must be a string, got {type(value).__name__}"
            )

        parts = value.split("/")
        if len(parts) != 2 or not all(part.strip() for part in parts):
            raise InputFormatError(
                f"Repository identifier '{value}' is not in the format 'owner/name'"
            )

        return cls(owner=parts[0], name=parts[1])

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def html_url(self) -> str:
        return f"{GITHUB_URL}/{self.full_name}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class PullRequestRef:
    """A pull request opened on a target repository."""

    repository: RepositoryIdentifier
    number: int
    title: str
    url: str
    head: str
    base: str
    merged: bool = False

    @classmethod
    def from_api(
        cls, repository: RepositoryIdentifier, data: dict[str, Any]
    ) -> PullRequestRef:
        """Build a reference from a GitHub pull request payload."""
        return cls(
            repository=repository,
            number=data["number"],
            title=data["title"],
            url=data["html_url"],
            head=data["head"]["ref"],
            base=data["base"]["ref"],
            merged=bool(data.get("merged", False)),
        )

    def as_merged(self) -> PullRequestRef:
        return replace(self, merged=True)


@dataclass(frozen=True)
class SyncOutcome:
    """Result of synchronizing one target repository.

    ``elapsed`` is measured in seconds from the start of the fleet run,
    not from the start of this target.
    """

    repository: RepositoryIdentifier
    error: Optional[Exception] = None
    elapsed: float = 0.0
    pull_request: Optional[PullRequestRef] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def changed(self) -> bool:
        """True if a pull request was opened for this target."""
        return self.pull_request is not None
