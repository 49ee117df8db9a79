"""Release catalogs and version resolution."""

from mcp_env_provisioner.versions.catalog import ReleaseCatalog, VersionCatalog, resolve_version
from mcp_env_provisioner.versions.ordering import compare_versions, sort_versions
from mcp_env_provisioner.versions.refresher import CatalogRefresher
from mcp_env_provisioner.versions.sources import DEFAULT_SOURCES, ReleaseSource

__all__ = [
    "CatalogRefresher",
    "DEFAULT_SOURCES",
    "ReleaseCatalog",
    "ReleaseSource",
    "VersionCatalog",
    "compare_versions",
    "resolve_version",
    "sort_versions",
]
