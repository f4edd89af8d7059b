from __future__ import annotations

import asyncio
import dataclasses
import logging

from commit_harvester.domain.entities import Commit, RepositoryDescriptor
from commit_harvester.domain.errors import HarvestError, SourceUnavailable
from commit_harvester.domain.interfaces import ICommitSource, ISubdomainScanner

log = logging.getLogger(__name__)


class CommitFetcher:
    """
    Fetches one repository's commit page and pushes every commit into the
    result channel, in the order the API returned them.

    Failures are contained to the repository (list request) or to the
    single commit (patch retrieval); nothing here propagates to siblings.
    Enrichment is on when a scanner is injected.
    """

    def __init__(self, source: ICommitSource, scanner: ISubdomainScanner | None = None) -> None:
        self._source  = source
        self._scanner = scanner

    async def fetch_commits(self, repository: RepositoryDescriptor, page_size: int,
                            channel: asyncio.Queue) -> int:
        """
        Push the commits of `repository` into `channel`.
        Returns how many were pushed.
        """
        try:
            commits = await self._source.list_commits(repository, page_size)
        except HarvestError as exc:
            log.warning("Skipping repository %s: %s", repository.full_name, exc)
            return 0

        pushed = 0
        for commit in commits:
            if self._scanner is not None:
                commit = await self._enrich(commit)
                if commit is None:
                    continue
            await channel.put(commit)
            pushed += 1

        log.debug("Repository %s | %d/%d commits pushed", repository.full_name, pushed, len(commits))
        return pushed

    async def _enrich(self, commit: Commit) -> Commit | None:
        """Attach patch subdomains, or return None to drop the commit."""
        if not commit.patch_link:
            log.info("Dropping commit %s: no patch link", commit.hash)
            return None
        try:
            patch = await self._source.fetch_patch(commit.patch_link)
        except SourceUnavailable as exc:
            log.info("Dropping commit %s: patch unavailable (%s)", commit.hash, exc.reason)
            return None

        return dataclasses.replace(commit, subdomains=tuple(self._scanner.scan(patch)))
