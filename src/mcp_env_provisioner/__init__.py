"""MCP environment provisioner package."""

__version__ = "0.1.0"

from mcp_env_provisioner.types import (
    ExecutionResult,
    FeatureRequest,
    LockHandle,
    ResolvedVersion,
)
from mcp_env_provisioner.errors import (
    ProvisionError,
    CatalogUnavailable,
    UnresolvedVersion,
    LockTimeout,
    ExecutionFailure,
)
from mcp_env_provisioner.locks import ResourceLock
from mcp_env_provisioner.terminal import normalize_output
from mcp_env_provisioner.versions import VersionCatalog, CatalogRefresher
from mcp_env_provisioner.privileged import PrivilegedExecutor
from mcp_env_provisioner.features import FeatureSequencer, DEFAULT_ACTION_CATALOG
from mcp_env_provisioner.provisioner import Provisioner

__all__ = [
    # Types
    "ExecutionResult",
    "FeatureRequest",
    "LockHandle",
    "ResolvedVersion",

    # Core mechanisms
    "ResourceLock",
    "normalize_output",
    "VersionCatalog",
    "CatalogRefresher",
    "PrivilegedExecutor",
    "FeatureSequencer",
    "DEFAULT_ACTION_CATALOG",
    "Provisioner",

    # Error types
    "ProvisionError",
    "CatalogUnavailable",
    "UnresolvedVersion",
    "LockTimeout",
    "ExecutionFailure",
]
