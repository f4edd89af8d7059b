"""
main.py - Dependency Wiring (Composition Root)
------------------------------------------------
This file has ONE job: wire all the pieces together and run the harvest.

It does NOT contain any business logic. It just:
  1. Parses CLI flags and reads settings from environment variables
  2. Creates concrete implementations of each interface
  3. Injects them into the classes that need them
  4. Calls the top-level use case (HarvestApplicationService.execute)
  5. Prints the output filename, or exits non-zero on failure

Dependency graph (what depends on what):
                         main.py  (wires everything)
                            │
              ┌─────────────┼───────────────┐
              ▼             ▼               ▼
    HarvestApplicationService │     NdjsonCommitStorage
              │             │
              ▼             ▼
    HarvestOrchestrator  BitbucketClient
              │
       ┌──────┴───────┐
       ▼              ▼
  CommitFetcher   PatchSubdomainScanner (only with --enrich)
"""

from __future__ import annotations

import argparse
import asyncio
import calendar
import dataclasses
import logging
import sys
from datetime import datetime, timezone

import httpx

# Application layer
from commit_harvester.application.commit_fetcher import CommitFetcher
from commit_harvester.application.harvest_service import HarvestApplicationService
from commit_harvester.application.orchestrator import HarvestOrchestrator

# Infrastructure layer
from commit_harvester.infrastructure.bitbucket_client import BitbucketClient
from commit_harvester.infrastructure.ndjson_storage import NdjsonCommitStorage, output_path_for
from commit_harvester.infrastructure.subdomain_scanner import PatchSubdomainScanner

from commit_harvester.config import DEFAULT_TOTAL, HarvestSettings
from commit_harvester.domain.entities import HarvestResult

log = logging.getLogger(__name__)

CURSOR_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"
DEFAULT_LOOKBACK_MONTHS = 3


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Cursor helpers
# ---------------------------------------------------------------------------

def _months_before(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + moment.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def default_cursor(now: datetime | None = None) -> str:
    """Three months before `now` (UTC), in the API's timestamp format."""
    now = now or datetime.now(tz=timezone.utc)
    return _months_before(now.astimezone(timezone.utc), DEFAULT_LOOKBACK_MONTHS).strftime(CURSOR_FORMAT)


def _iso_date(value: str) -> str:
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 date: {value!r}") from None
    return value


def _positive(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Harvest Bitbucket commit metadata into newline-delimited JSON"
    )
    parser.add_argument(
        "--total",
        type    = int,
        default = None,
        help    = f"Number of commits to collect (default: {DEFAULT_TOTAL})",
    )
    parser.add_argument(
        "--date",
        type    = _iso_date,
        default = None,
        help    = "List repositories updated after this ISO-8601 timestamp "
                  f"(default: {DEFAULT_LOOKBACK_MONTHS} months ago)",
    )
    parser.add_argument("--page-size", type=_positive, default=None,
                        help="Page length for repository and commit requests")
    parser.add_argument("--enrich", action="store_true", default=None,
                        help="Fetch each commit's patch and record the subdomains it mentions")
    parser.add_argument("--output-dir", default=None, help="Directory for the output file")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    return parser


# ---------------------------------------------------------------------------
# Dependency wiring
# ---------------------------------------------------------------------------

async def build_and_run(settings: HarvestSettings, total: int, cursor: str,
                        transport: httpx.AsyncBaseTransport | None = None) -> HarvestResult:
    """
    Wires all dependencies together and executes the harvest use case.

    This is the Composition Root - the only place that knows which
    concrete class implements each interface. `transport` lets tests
    swap the network for an httpx.MockTransport.
    """
    output_path = output_path_for(datetime.now(), settings.output_dir)

    async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:
        bitbucket = BitbucketClient(
            client  = client,                  # injected, BitbucketClient doesn't create this
            api_url = settings.api_url,
            timeout = settings.http_timeout,
        )
        storage = NdjsonCommitStorage(
            path  = output_path,
            limit = total,                     # hard cap at the writer
        )

        fetcher = CommitFetcher(
            source  = bitbucket,
            scanner = PatchSubdomainScanner(include_domains=False) if settings.enrich else None,
        )
        orchestrator = HarvestOrchestrator(
            source         = bitbucket,
            fetcher        = fetcher,
            sink           = storage,
            page_size      = settings.page_size,
            channel_size   = settings.channel_size,
            max_concurrent = settings.max_concurrent,
        )
        harvest_service = HarvestApplicationService(
            orchestrator = orchestrator,
            storage      = storage,
        )

        return await harvest_service.execute(total, cursor)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None, transport: httpx.AsyncBaseTransport | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Validate before touching the network
    if args.total is not None and args.total <= 0:
        parser.error("'--total' must be greater than 0")
    total = args.total or DEFAULT_TOTAL

    try:
        settings = HarvestSettings.from_env()
    except ValueError as exc:
        _configure_logging("INFO")
        log.error("Invalid configuration: %s", exc)
        return 1

    overrides = {
        "page_size":  args.page_size,
        "enrich":     args.enrich,
        "output_dir": args.output_dir,
        "log_level":  args.log_level.upper() if args.log_level else None,
    }
    settings = dataclasses.replace(settings, **{k: v for k, v in overrides.items() if v is not None})

    try:
        _configure_logging(settings.log_level)
    except ValueError as exc:
        parser.error(str(exc))

    cursor = args.date or default_cursor()
    result = asyncio.run(build_and_run(settings, total, cursor, transport))

    if result.status != "success":
        log.error("❌ Failed | %d commits written before failure | %d failed writes | error: %s",
                  result.records_written, result.records_failed, result.error_message)
        return 1

    log.info("✅ Success | %d commits | %d failed writes | %d/%d repositories | %.0fs",
             result.records_written, result.records_failed, result.repositories_dispatched,
             result.repositories_listed, result.elapsed_secs)
    print(result.output_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
