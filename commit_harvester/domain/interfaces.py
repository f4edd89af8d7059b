"""
Domain Layer - Interfaces (Abstract Contracts)
-----------------------------------------------
Abstract definitions of what the infrastructure must provide.
The application layer (fetcher, orchestrator) depends on these,
never on BitbucketClient or NdjsonCommitStorage directly.

Tests swap in fakes for every one of them.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from .entities import Commit, RepositoryDescriptor, RepositoryPage


class IRepositorySource(ABC):
    """Contract for the paginated repository listing."""

    @abstractmethod
    async def list_repositories(self, page_size: int, cursor: str) -> RepositoryPage:
        """
        Fetch one page of repositories visible after `cursor`.

        Raises:
            SourceUnavailable - transport failure or non-success status
            DecodeError       - response does not match the expected schema
        """
        ...


class ICommitSource(ABC):
    """Contract for per-repository commit history and patch retrieval."""

    @abstractmethod
    async def list_commits(self, repository: RepositoryDescriptor, page_size: int) -> list[Commit]:
        """
        Fetch one page of commits for `repository`, newest first.
        Raises SourceUnavailable or DecodeError for the whole page.
        """
        ...

    @abstractmethod
    async def fetch_patch(self, patch_link: str) -> str:
        """Return the patch body. Raises SourceUnavailable unless the status is 200."""
        ...


class ICommitSink(ABC):
    """Contract for the single serialising writer."""

    @abstractmethod
    async def prepare(self) -> None:
        """Create the (empty) output artifact."""
        ...

    @abstractmethod
    async def persist(self, commit: Commit) -> bool:
        """Append one commit. Returns False if the record was dropped."""
        ...

    @property
    @abstractmethod
    def path(self) -> str:
        """Identifier of the output artifact."""
        ...

    @property
    @abstractmethod
    def records_written(self) -> int:
        ...

    @property
    @abstractmethod
    def records_dropped(self) -> int:
        """Records refused because the write target was reached."""
        ...

    @property
    @abstractmethod
    def records_failed(self) -> int:
        """Records that could not be encoded or appended."""
        ...


class ISubdomainScanner(ABC):
    """Contract for the enrichment text scan."""

    @abstractmethod
    def scan(self, text: str) -> list[str]:
        """Return hostnames referenced in `text`, de-duplicated, in first-seen order."""
        ...
