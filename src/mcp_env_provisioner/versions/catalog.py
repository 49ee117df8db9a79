"""Release catalog snapshots and version resolution."""
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

import aiohttp

from mcp_env_provisioner.errors import CatalogUnavailable, UnresolvedVersion
from mcp_env_provisioner.logging import get_logger
from mcp_env_provisioner.types import SENTINEL_SUFFIX, ResolvedVersion
from mcp_env_provisioner.versions.ordering import branch_of, sort_versions, split_version
from mcp_env_provisioner.versions.sources import DEFAULT_SOURCES, ReleaseSource, fetch_releases

logger = get_logger(__name__)

EXACT_VERSION = re.compile(r"^\d+\.\d+\.\d+$")
PARTIAL_VERSION = re.compile(r"^\d+(\.\d+)?$")
LTS_REQUESTS = {"lts", "security"}


@dataclass(frozen=True)
class ReleaseCatalog:
    """Immutable snapshot of known releases per ecosystem, newest first."""
    releases: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    binaries: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    def versions(self, ecosystem: str) -> tuple[str, ...]:
        return self.releases.get(ecosystem, ())

    def binary_for(self, ecosystem: str, version: str) -> str | None:
        return self.binaries.get(ecosystem, {}).get(version)

    def with_releases(
        self,
        ecosystem: str,
        versions: Iterable[str],
        binaries: Mapping[str, str] | None = None,
    ) -> "ReleaseCatalog":
        """Return a new snapshot with ``ecosystem`` replaced."""
        releases = dict(self.releases)
        releases[ecosystem] = tuple(sort_versions(versions))
        all_binaries = dict(self.binaries)
        all_binaries[ecosystem] = MappingProxyType(dict(binaries or {}))
        return ReleaseCatalog(
            releases=MappingProxyType(releases),
            binaries=MappingProxyType(all_binaries),
        )


def _matches_prefix(version: str, prefix: str) -> bool:
    wanted = split_version(prefix)
    return split_version(version)[: len(wanted)] == wanted


def resolve_version(
    snapshot: ReleaseCatalog,
    ecosystem: str,
    request: str | None,
    tag_prefix: str = "",
) -> ResolvedVersion:
    """Map an abstract version request onto a release in ``snapshot``.

    Pure: the same snapshot and request always give the same answer.
    """
    status = (request or "").strip()
    if tag_prefix and status.startswith(tag_prefix):
        status = status[len(tag_prefix):]
    versions = snapshot.versions(ecosystem)

    def expand(version: str) -> ResolvedVersion:
        return ResolvedVersion(version, snapshot.binary_for(ecosystem, version))

    def newest() -> str:
        if not versions:
            raise UnresolvedVersion(ecosystem, status or "latest", "release catalog is empty")
        return versions[0]

    if not status:
        return expand(newest())

    if EXACT_VERSION.match(status):
        return expand(status)

    if PARTIAL_VERSION.match(status):
        match = next((v for v in versions if _matches_prefix(v, status)), None)
        if match:
            return expand(match)
        return ResolvedVersion(f"{status}{SENTINEL_SUFFIX}", None)

    stable = newest()
    if status.lower() in LTS_REQUESTS:
        previous = next((v for v in versions if branch_of(v) != branch_of(stable)), None)
        return expand(previous or stable)

    return expand(stable)


class VersionCatalog:
    """Owns the current release snapshot and swaps it on refresh."""

    def __init__(
        self,
        sources: Mapping[str, ReleaseSource] | None = None,
        snapshot: ReleaseCatalog | None = None,
    ):
        self.sources = dict(DEFAULT_SOURCES if sources is None else sources)
        self._snapshot = snapshot or ReleaseCatalog()
        for name, source in self.sources.items():
            if source.seed and not self._snapshot.versions(name):
                self._snapshot = self._snapshot.with_releases(name, source.seed)

    @property
    def snapshot(self) -> ReleaseCatalog:
        return self._snapshot

    def ecosystems(self) -> list[str]:
        return sorted(set(self.sources) | set(self._snapshot.releases))

    async def refresh(self, ecosystem: str, session: aiohttp.ClientSession | None = None) -> bool:
        """Fetch the release index for ``ecosystem``.

        Never raises for upstream trouble: a stale catalog is better than
        none, so failures are logged and the previous snapshot stays.
        """
        source = self.sources.get(ecosystem)
        if source is None:
            logger.warning("catalog_refresh_unknown_ecosystem", ecosystem=ecosystem)
            return False

        try:
            if session is None:
                async with aiohttp.ClientSession() as own_session:
                    releases = await fetch_releases(source, own_session)
            else:
                releases = await fetch_releases(source, session)
        except CatalogUnavailable as e:
            logger.warning(
                "catalog_refresh_failed",
                ecosystem=ecosystem,
                error=str(e),
                kept_versions=len(self._snapshot.versions(ecosystem)),
            )
            return False

        versions = set(source.seed) | set(releases)
        binaries = {v: url for v, url in releases.items() if url}
        self._snapshot = self._snapshot.with_releases(ecosystem, versions, binaries)

        logger.info(
            "catalog_refreshed",
            ecosystem=ecosystem,
            count=len(versions),
            newest=self._snapshot.versions(ecosystem)[0] if versions else None,
        )
        return True

    async def refresh_all(self, session: aiohttp.ClientSession | None = None) -> dict[str, bool]:
        """Refresh every registered source, one after another."""
        results = {}
        if session is None:
            async with aiohttp.ClientSession() as own_session:
                for name in self.sources:
                    results[name] = await self.refresh(name, own_session)
        else:
            for name in self.sources:
                results[name] = await self.refresh(name, session)
        return results

    def resolve(self, ecosystem: str, request: str | None) -> ResolvedVersion:
        source = self.sources.get(ecosystem)
        tag_prefix = source.tag_prefix if source else ""
        return resolve_version(self._snapshot, ecosystem, request, tag_prefix)

    def supported_versions(self) -> dict[str, list[str]]:
        return {name: list(self._snapshot.versions(name)) for name in self.ecosystems()}
