from __future__ import annotations

import logging
import re

import tldextract

from commit_harvester.domain.interfaces import ISubdomainScanner

log = logging.getLogger(__name__)

# Dotted hostname candidates; validity against the public suffix list is
# checked afterwards, so the pattern can stay permissive.
HOSTNAME_RE = re.compile(
    r"(?<![\w.-])((?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z][a-z0-9-]{0,62})(?![\w-])",
    re.IGNORECASE,
)

# ccTLDs that double as common file extensions in a patch
FILE_EXTENSIONS = frozenset({"py", "md", "sh", "rs", "pl", "cc", "in", "so", "mk", "am", "ps", "sc"})


class PatchSubdomainScanner(ISubdomainScanner):
    """
    Extracts subdomains from patch text.

    A candidate is kept only if tldextract resolves it to a registrable
    domain under a known public suffix. Bare registered domains
    (`example.com`) are skipped unless `include_domains` is set.

    Path components (`a/src/app.py`) are skipped. A two-label name whose
    last label is in FILE_EXTENSIONS (`setup.py`, `README.md`) is read as a
    file name, so a real host like `example.sh` is missed; deeper names
    such as `api.example.in` are kept.

    The bundled suffix snapshot is used (no network fetch) unless an
    extractor is injected.
    """

    def __init__(self, extractor: tldextract.TLDExtract | None = None,
                 include_domains: bool = False) -> None:
        self._extract = extractor or tldextract.TLDExtract(cache_dir=None, suffix_list_urls=())
        self._include_domains = include_domains

    def scan(self, text: str) -> list[str]:
        found: dict[str, None] = {}
        for match in HOSTNAME_RE.finditer(text):
            host = match.group(1).lower()
            if host in found:
                continue

            start = match.start(1)
            if text[start - 1:start] == "/" and text[max(start - 2, 0):start] != "//":
                continue
            labels = host.split(".")
            if len(labels) == 2 and labels[-1] in FILE_EXTENSIONS:
                continue

            parts = self._extract(host)
            if not parts.domain or not parts.suffix:
                continue
            if not parts.subdomain and not self._include_domains:
                continue
            found[host] = None

        log.debug("Found %d hosts in %d characters of patch", len(found), len(text))
        return list(found)
