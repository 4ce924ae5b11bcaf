"""Release/artifact resolution.

Walks release candidates newest-first and returns the first one with a
reachable WSL root filesystem. For each candidate the base locations are
tried in order: well-known filenames are probed first, and only when all of
them fail is the base fetched as a directory listing and scraped for links.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence
from urllib.parse import urldefrag, urljoin, urlparse

from .lib.http import fetch_index as http_fetch_index
from .lib.http import probe_uri
from .releases import ReleaseCandidate, ResolvedArtifact

logger = logging.getLogger(__name__)

ProbeFn = Callable[[str], bool]
FetchIndexFn = Callable[[str], Optional[str]]

DEFAULT_BASE_TEMPLATES = [
    "https://cloud-images.ubuntu.com/wsl/releases/{version}/current/",
    "https://cloud-images.ubuntu.com/wsl/{codename}/current/",
]

DEFAULT_FILENAME_TEMPLATES = [
    "ubuntu-{codename}-wsl-{arch}-wsl.rootfs.tar.gz",
    "ubuntu-{codename}-wsl-{arch}-wsl.rootfs.tar.xz",
    "ubuntu-{codename}-wsl-{arch}-wsl.wsl",
    "rootfs.tar.gz",
    "rootfs.tar.xz",
]

_HREF_RE = re.compile(r"""href\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_ARTIFACT_LINK_RE = re.compile(r"(rootfs|\.wsl$)", re.IGNORECASE)


class NoArtifactFound(RuntimeError):
    def __init__(self, attempted: Sequence[ReleaseCandidate]) -> None:
        self.attempted = list(attempted)
        tried = ", ".join(f"{c.version} ({c.codename})" for c in self.attempted) or "none"
        super().__init__(f"No downloadable rootfs found for any known release; tried: {tried}")


def is_probeable(uri: str) -> bool:
    if not uri or not uri.strip():
        return False
    try:
        parsed = urlparse(uri)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def extract_links(base_uri: str, html: str) -> List[str]:
    """Absolute URLs of rootfs-looking links in a directory listing, deduplicated.

    Fragments are dropped and the pattern is matched against the URL path.
    """

    seen = set()
    links: List[str] = []
    for href in _HREF_RE.findall(html or ""):
        href = href.strip()
        if not href:
            continue
        try:
            absolute = urldefrag(urljoin(base_uri, href))[0]
            path = urlparse(absolute).path
        except ValueError:
            logger.debug("Skipping malformed link %r", href)
            continue
        if not _ARTIFACT_LINK_RE.search(path):
            continue
        if absolute in seen:
            continue
        seen.add(absolute)
        links.append(absolute)
    return links


class ArtifactResolver:
    def __init__(
        self,
        probe: ProbeFn = probe_uri,
        fetch_index: FetchIndexFn = http_fetch_index,
        *,
        base_templates: Sequence[str] = tuple(DEFAULT_BASE_TEMPLATES),
        filename_templates: Sequence[str] = tuple(DEFAULT_FILENAME_TEMPLATES),
        arch: str = "amd64",
    ) -> None:
        self.probe = probe
        self.fetch_index = fetch_index
        self.base_templates = list(base_templates)
        self.filename_templates = list(filename_templates)
        self.arch = arch

    def base_locations(self, candidate: ReleaseCandidate) -> List[str]:
        return [self._format(t, candidate) for t in self.base_templates]

    def well_known_uris(self, base: str, candidate: ReleaseCandidate) -> List[str]:
        return [urljoin(base, self._format(t, candidate)) for t in self.filename_templates]

    def _format(self, template: str, candidate: ReleaseCandidate) -> str:
        return template.format(version=candidate.version, codename=candidate.codename, arch=self.arch)

    def _first_reachable(self, uris: Iterable[str]) -> Optional[str]:
        for uri in uris:
            if not is_probeable(uri):
                logger.debug("Skipping malformed uri %r", uri)
                continue
            try:
                reachable = self.probe(uri)
            except Exception as e:
                logger.debug("Probe %s failed: %s", uri, e)
                continue
            if reachable:
                return uri
        return None

    def _index_of(self, base: str) -> Optional[str]:
        try:
            return self.fetch_index(base)
        except Exception as e:
            logger.debug("Index fetch %s failed: %s", base, e)
            return None

    def find_artifact_uri(self, candidate: ReleaseCandidate) -> Optional[str]:
        for base in self.base_locations(candidate):
            if not is_probeable(base):
                logger.debug("Skipping malformed base %r", base)
                continue

            found = self._first_reachable(self.well_known_uris(base, candidate))
            if found:
                return found

            html = self._index_of(base)
            if not html:
                logger.info("No index listing at %s", base)
                continue

            links = extract_links(base, html)
            logger.info("Index %s lists %d rootfs candidate(s)", base, len(links))
            found = self._first_reachable(links)
            if found:
                return found
        return None

    def resolve(self, candidates: Sequence[ReleaseCandidate]) -> ResolvedArtifact:
        attempted: List[ReleaseCandidate] = []
        for candidate in candidates:
            attempted.append(candidate)
            logger.info("Looking for Ubuntu %s (%s) rootfs", candidate.version, candidate.codename)
            uri = self.find_artifact_uri(candidate)
            if uri is None:
                logger.warning("No rootfs available for %s (%s)", candidate.version, candidate.codename)
                continue

            logger.info("Resolved Ubuntu %s (%s): %s", candidate.version, candidate.codename, uri)
            return ResolvedArtifact(
                version=candidate.version,
                codename=candidate.codename,
                rootfs_uri=uri,
                release_date=candidate.release_date,
            )

        raise NoArtifactFound(attempted)
