from __future__ import annotations

import pytest

from commit_harvester.domain.entities import RepositoryDescriptor
from tests._fixtures.bitbucket_fake import FakeBitbucket


@pytest.fixture
def fake_bitbucket() -> FakeBitbucket:
    """An empty fake API; tests fill in repositories, commits and patches."""
    return FakeBitbucket()


@pytest.fixture
def repository() -> RepositoryDescriptor:
    return RepositoryDescriptor(
        name           = "widgets",
        full_name      = "acme/widgets",
        updated_at     = "2026-09-01T10:00:00.000000+00:00",
        repository_url = "https://bitbucket.org/acme/widgets",
        project_key    = "PRJ",
        project_name   = "Project PRJ",
        project_url    = "https://bitbucket.org/acme/workspace/projects/PRJ",
    )


@pytest.fixture(autouse=True)
def _clean_harvest_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's HARVEST_* / BITBUCKET_* variables out of tests."""
    for name in (
        "BITBUCKET_API_URL",
        "HARVEST_PAGE_SIZE",
        "HARVEST_CHANNEL_SIZE",
        "HARVEST_MAX_CONCURRENT",
        "HARVEST_HTTP_TIMEOUT",
        "HARVEST_OUTPUT_DIR",
        "HARVEST_ENRICH",
        "HARVEST_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
