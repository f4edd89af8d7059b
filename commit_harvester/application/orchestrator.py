from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from commit_harvester.domain.errors import HarvestError
from commit_harvester.domain.interfaces import IRepositorySource, ICommitSink
from .commit_fetcher import CommitFetcher

log = logging.getLogger(__name__)

PAGE_SIZE      = 100
CHANNEL_SIZE   = 10
MAX_CONCURRENT = 15


class HarvestState(str, Enum):
    LISTING     = "listing"
    DISPATCHING = "dispatching"
    DRAINING    = "draining"
    DONE        = "done"
    FAILED      = "failed"


@dataclass(frozen=True)
class HarvestOutcome:
    repositories_listed:     int
    repositories_dispatched: int
    commits_pushed:          int


class HarvestOrchestrator:
    """
    Coordinates the fan-out/fan-in pipeline using asyncio.

    One listing request, one fetcher task per dispatched repository, and
    exactly one writer task draining a bounded queue. All collaborators are
    injected:
      - IRepositorySource → where repositories come from
      - CommitFetcher     → how one repository's commits are produced
      - ICommitSink       → where commits are written

    Dispatch is a soft cap: the progress counter grows by `page_size` per
    launched fetcher, and launching stops once it reaches `total`. Fetchers
    already running are never cancelled.
    """

    def __init__(self, source: IRepositorySource, fetcher: CommitFetcher, sink: ICommitSink,
                 page_size: int = PAGE_SIZE, channel_size: int = CHANNEL_SIZE,
                 max_concurrent: int = MAX_CONCURRENT) -> None:
        self._source       = source
        self._fetcher      = fetcher
        self._sink         = sink
        self._page_size    = page_size
        self._channel_size = channel_size
        self._semaphore    = asyncio.Semaphore(max_concurrent)
        self.state         = HarvestState.LISTING

    def _transition(self, state: HarvestState) -> None:
        log.debug("Orchestrator %s -> %s", self.state.value, state.value)
        self.state = state

    async def _drain(self, channel: asyncio.Queue) -> None:
        """Writer task: persist everything until the close sentinel (None) arrives."""
        while True:
            commit = await channel.get()
            if commit is None:
                break
            await self._sink.persist(commit)

    async def _unless_writer_dies(self, step: asyncio.Future, writer: asyncio.Task) -> None:
        """
        Await `step` (fetchers joining, or the close sentinel going in). If the
        writer exits first nothing drains the channel any more, so `step` is
        cancelled and the writer's error is raised.
        """
        await asyncio.wait({step, writer}, return_when=asyncio.FIRST_COMPLETED)
        if step.done():
            return

        step.cancel()
        await asyncio.gather(step, return_exceptions=True)
        self._transition(HarvestState.FAILED)
        writer.result()
        raise RuntimeError("writer stopped before the result channel was closed")

    async def _run_fetcher(self, repository, channel: asyncio.Queue) -> int:
        async with self._semaphore:
            return await self._fetcher.fetch_commits(repository, self._page_size, channel)

    async def run(self, total: int, cursor: str) -> HarvestOutcome:
        """
        Run the pipeline once. Raises SourceUnavailable / DecodeError if the
        repository listing fails; every later failure is contained.
        """
        self._transition(HarvestState.LISTING)
        try:
            page = await self._source.list_repositories(self._page_size, cursor)
        except HarvestError as exc:
            self._transition(HarvestState.FAILED)
            log.error("Repository listing failed: %s", exc)
            raise

        log.info("Listed %d repositories after %s (more pages: %s)",
                 len(page.repositories), cursor, page.has_next)

        self._transition(HarvestState.DISPATCHING)
        await self._sink.prepare()
        channel: asyncio.Queue = asyncio.Queue(maxsize=self._channel_size)
        writer = asyncio.create_task(self._drain(channel))

        dispatched_budget = 0
        tasks = []
        for repository in page.repositories:
            if dispatched_budget >= total:
                log.info("Dispatch budget %d reached target %d; %d repositories left undispatched",
                         dispatched_budget, total, len(page.repositories) - len(tasks))
                break
            dispatched_budget += self._page_size
            tasks.append(asyncio.create_task(self._run_fetcher(repository, channel)))

        self._transition(HarvestState.DRAINING)
        fetch_all = asyncio.gather(*tasks, return_exceptions=True)
        await self._unless_writer_dies(fetch_all, writer)

        closing = asyncio.ensure_future(channel.put(None))
        await self._unless_writer_dies(closing, writer)
        try:
            await writer
        except Exception:
            self._transition(HarvestState.FAILED)
            raise

        results = fetch_all.result()
        for result in results:
            if isinstance(result, BaseException):
                self._transition(HarvestState.FAILED)
                raise result

        self._transition(HarvestState.DONE)
        outcome = HarvestOutcome(
            repositories_listed     = len(page.repositories),
            repositories_dispatched = len(tasks),
            commits_pushed          = sum(results),
        )
        log.info("Harvest drained | %d/%d repositories dispatched | %d commits pushed",
                 outcome.repositories_dispatched, outcome.repositories_listed, outcome.commits_pushed)
        return outcome
