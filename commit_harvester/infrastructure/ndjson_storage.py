from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime
from typing import Iterator

from commit_harvester.domain.entities import Commit
from commit_harvester.domain.interfaces import ICommitSink

log = logging.getLogger(__name__)

FILENAME_FORMAT = "commits_%Y-%m-%d_%H-%M-%S.jsonl"

_FIELDS = (
    "hash",
    "author_name",
    "date",
    "message",
    "patch_link",
    "commit_url",
    "repository_link",
    "project_key",
    "project_name",
    "project_url",
)


def output_path_for(started_at: datetime, output_dir: str = ".") -> str:
    """Artifact path for a run that started at `started_at`."""
    return os.path.join(output_dir, started_at.strftime(FILENAME_FORMAT))


def commit_to_record(commit: Commit) -> dict:
    """Flatten a Commit into the JSON object written on one line."""
    record = {name: getattr(commit, name) for name in _FIELDS}
    if commit.subdomains is not None:
        record["subdomains"] = list(commit.subdomains)
    return record


def commit_from_record(record: dict) -> Commit:
    """Inverse of commit_to_record. Missing string fields come back as ""."""
    subdomains = record.get("subdomains")
    return Commit(
        **{name: record.get(name) or "" for name in _FIELDS},
        subdomains=tuple(subdomains) if subdomains is not None else None,
    )


def iter_commits(path: str) -> Iterator[Commit]:
    """Re-read an output artifact, one Commit per non-blank line."""
    with open(path, encoding="utf-8") as f:
        for line in f:
            if line.strip():
                yield commit_from_record(json.loads(line))


class NdjsonCommitStorage(ICommitSink):
    """
    Append-only newline-delimited JSON writer.

    Each persist() holds the lock for exactly one encode-and-append, so even
    if several writers shared this instance no line could be interleaved.
    The append itself runs in a worker thread to keep the event loop free.

    `limit` caps how many records are ever written; commits beyond it are
    counted as dropped. Records that could not be encoded or appended are
    counted as failed.
    """

    def __init__(self, path: str, limit: int | None = None) -> None:
        self._path = path
        self._limit = limit
        self._lock = asyncio.Lock()
        self._written = 0
        self._dropped = 0
        self._failed = 0

    @property
    def path(self) -> str:
        return self._path

    @property
    def records_written(self) -> int:
        return self._written

    @property
    def records_dropped(self) -> int:
        return self._dropped

    @property
    def records_failed(self) -> int:
        return self._failed

    async def prepare(self) -> None:
        directory = os.path.dirname(self._path)
        async with self._lock:
            if directory:
                await asyncio.to_thread(os.makedirs, directory, exist_ok=True)
            await asyncio.to_thread(self._touch)
        log.debug("Created output artifact %s", self._path)

    async def persist(self, commit: Commit) -> bool:
        async with self._lock:
            if self._limit is not None and self._written >= self._limit:
                self._dropped += 1
                log.debug("Target of %d reached; dropping commit %s", self._limit, commit.hash)
                return False
            try:
                line = json.dumps(commit_to_record(commit), ensure_ascii=False)
                await asyncio.to_thread(self._append, line)
            except (OSError, TypeError, ValueError) as exc:
                self._failed += 1
                log.error("Failed to write commit %s to %s: %s", commit.hash, self._path, exc)
                return False

            self._written += 1
            return True

    def _touch(self) -> None:
        with open(self._path, "a", encoding="utf-8"):
            pass

    def _append(self, line: str) -> None:
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
