from __future__ import annotations

import logging
from typing import Any

import httpx

from commit_harvester.domain.entities import Commit, RepositoryDescriptor, RepositoryPage
from commit_harvester.domain.errors import DecodeError, SourceUnavailable
from commit_harvester.domain.interfaces import ICommitSource, IRepositorySource

log = logging.getLogger(__name__)

BITBUCKET_API_URL = "https://api.bitbucket.org/2.0"
BITBUCKET_WEB_URL = "https://bitbucket.org"
REQUEST_TIMEOUT = 30.0


def _dig(node: Any, *keys: str) -> str:
    """Walk nested dicts; anything missing or not a string becomes ""."""
    for key in keys:
        if not isinstance(node, dict):
            return ""
        node = node.get(key)
    return node if isinstance(node, str) else ""


class BitbucketClient(IRepositorySource, ICommitSource):
    """
    Concrete repository and commit source for the Bitbucket Cloud 2.0 API.

    The constructor receives an httpx.AsyncClient (injected) rather than
    creating one internally, so callers own the connection pool and tests
    can pass a client built on httpx.MockTransport.
    """

    def __init__(self, client: httpx.AsyncClient, api_url: str = BITBUCKET_API_URL,
                 timeout: float = REQUEST_TIMEOUT) -> None:
        self._client = client
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout

    # Anti-Corruption Layer
    @staticmethod
    def _parse_repository(node: dict) -> RepositoryDescriptor:
        """
        Translate one entry of `/repositories` into a RepositoryDescriptor.

        Bitbucket sends:               We store as:
          "full_name"               →  full_name
          "updated_on"              →  updated_at
          "project.links.html.href" →  project_url
        """
        full_name = _dig(node, "full_name")
        return RepositoryDescriptor(
            name           = _dig(node, "name"),
            full_name      = full_name,
            updated_at     = _dig(node, "updated_on"),
            repository_url = f"{BITBUCKET_WEB_URL}/{full_name}",
            project_key    = _dig(node, "project", "key"),
            project_name   = _dig(node, "project", "name"),
            project_url    = _dig(node, "project", "links", "html", "href"),
        )

    @staticmethod
    def _parse_commit(node: dict, repository: RepositoryDescriptor) -> Commit:
        """
        Translate one entry of `/commits` into a Commit.
        Absent sub-objects (e.g. no linked author user) degrade to "".
        """
        return Commit(
            hash            = _dig(node, "hash"),
            author_name     = _dig(node, "author", "user", "display_name"),
            date            = _dig(node, "date"),
            message         = _dig(node, "message"),
            patch_link      = _dig(node, "links", "patch", "href"),
            commit_url      = _dig(node, "links", "self", "href"),
            repository_link = repository.repository_url,
            project_key     = repository.project_key,
            project_name    = repository.project_name,
            project_url     = repository.project_url,
        )

    async def _get(self, url: str, params: dict | None = None) -> httpx.Response:
        try:
            response = await self._client.get(url, params=params, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SourceUnavailable(url, f"HTTP {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            raise SourceUnavailable(url, str(exc) or type(exc).__name__) from exc
        return response

    async def _get_values(self, url: str, params: dict) -> tuple[list, dict]:
        """GET a paginated collection and return its `values` plus the whole body."""
        response = await self._get(url, params)
        try:
            body = response.json()
        except ValueError as exc:
            raise DecodeError(url, f"invalid JSON ({exc})") from exc

        if not isinstance(body, dict) or not isinstance(body.get("values"), list):
            raise DecodeError(url, "missing 'values' list")
        return body["values"], body

    # IRepositorySource implementation
    async def list_repositories(self, page_size: int, cursor: str) -> RepositoryPage:
        url = f"{self._api_url}/repositories"
        values, body = await self._get_values(url, {"pagelen": page_size, "after": cursor})

        repositories = []
        for node in values:
            if not isinstance(node, dict):
                raise DecodeError(url, f"repository entry is {type(node).__name__}, expected object")
            repositories.append(self._parse_repository(node))

        log.debug("Listed %d repositories after %s", len(repositories), cursor)
        return RepositoryPage(
            repositories = tuple(repositories),
            has_next     = bool(body.get("next")),
        )

    # ICommitSource implementation
    async def list_commits(self, repository: RepositoryDescriptor, page_size: int) -> list[Commit]:
        url = f"{self._api_url}/repositories/{repository.full_name}/commits"
        values, _ = await self._get_values(url, {"pagelen": page_size})

        commits = []
        for node in values:
            if not isinstance(node, dict):
                log.debug("Skipping malformed commit entry in %s: %r", repository.full_name, node)
                continue
            commits.append(self._parse_commit(node, repository))
        return commits

    async def fetch_patch(self, patch_link: str) -> str:
        try:
            response = await self._client.get(patch_link, timeout=self._timeout)
        except httpx.RequestError as exc:
            raise SourceUnavailable(patch_link, str(exc) or type(exc).__name__) from exc

        if response.status_code != httpx.codes.OK:
            raise SourceUnavailable(patch_link, f"HTTP {response.status_code}")
        return response.text
