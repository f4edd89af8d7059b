from __future__ import annotations

import logging
from datetime import datetime, timezone

from commit_harvester.domain.entities import HarvestResult
from commit_harvester.domain.interfaces import ICommitSink
from .orchestrator import HarvestOrchestrator

log = logging.getLogger(__name__)


class HarvestApplicationService:
    """
    The top-level use case: harvest commits and persist them.

    Receives all dependencies via constructor injection.
    Knows the sequence of operations but not the implementation details.
    """

    def __init__(self, orchestrator: HarvestOrchestrator, storage: ICommitSink) -> None:
        self._orchestrator = orchestrator
        self._storage      = storage

    async def execute(self, total: int, cursor: str) -> HarvestResult:
        """
        Run one harvest for roughly `total` commits after `cursor`.
        Returns a HarvestResult describing what happened.
        """
        started_at = datetime.now(tz=timezone.utc)
        log.info("HarvestApplicationService | target: %d | cursor: %s | output: %s",
                 total, cursor, self._storage.path)

        try:
            outcome = await self._orchestrator.run(total, cursor)
        except Exception as exc:
            elapsed = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
            log.error("Harvest failed: %s", exc, exc_info=True)
            return HarvestResult(
                output_path             = None,
                status                  = "failed",
                records_written         = self._storage.records_written,
                records_dropped         = self._storage.records_dropped,
                records_failed          = self._storage.records_failed,
                repositories_listed     = 0,
                repositories_dispatched = 0,
                elapsed_secs            = elapsed,
                error_message           = str(exc),
            )

        elapsed = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
        written = self._storage.records_written
        log.info("Harvest complete | %d commits written | %d dropped | %d failed | %.1fs | %.1f commits/sec",
                 written, self._storage.records_dropped, self._storage.records_failed, elapsed,
                 written / elapsed if elapsed > 0 else 0)
        return HarvestResult(
            output_path             = self._storage.path,
            status                  = "success",
            records_written         = written,
            records_dropped         = self._storage.records_dropped,
            records_failed          = self._storage.records_failed,
            repositories_listed     = outcome.repositories_listed,
            repositories_dispatched = outcome.repositories_dispatched,
            elapsed_secs            = elapsed,
        )
