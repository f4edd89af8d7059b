from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class RepositoryDescriptor:
    """
    Immutable domain entity describing one Bitbucket repository.

    Produced by the repository source, consumed exactly once to
    parameterise a commit fetch. Field names are OURS (snake_case);
    the translation from Bitbucket's JSON happens in the client.
    """
    name:           str
    full_name:      str
    updated_at:     str
    repository_url: str
    project_key:    str
    project_name:   str
    project_url:    str


@dataclass(frozen=True)
class Commit:
    """
    Immutable domain entity for one harvested commit.

    `subdomains` stays None unless enrichment ran, in which case it holds
    the hostnames found in the commit's patch, in first-seen order.
    """
    hash:            str
    author_name:     str
    date:            str
    message:         str
    patch_link:      str
    commit_url:      str
    repository_link: str
    project_key:     str
    project_name:    str
    project_url:     str
    subdomains:      tuple[str, ...] | None = None


@dataclass(frozen=True)
class RepositoryPage:
    """One page of the repository listing."""
    repositories: tuple[RepositoryDescriptor, ...]
    has_next:     bool


@dataclass(frozen=True)
class HarvestResult:
    """
    Immutable value object summarising a completed harvest run.
    Returned by the application service when the pipeline finishes.
    """
    output_path:             str | None
    status:                  str
    records_written:         int
    records_dropped:         int
    records_failed:          int
    repositories_listed:     int
    repositories_dispatched: int
    elapsed_secs:            float
    error_message:           str | None = None
