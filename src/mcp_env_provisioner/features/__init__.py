from mcp_env_provisioner.features.actions import (
    ActionCatalog,
    ActionContext,
    FeatureSpec,
    Narrate,
    Privileged,
    Shell,
    build_catalog,
)
from mcp_env_provisioner.features.catalog import DEFAULT_ACTION_CATALOG
from mcp_env_provisioner.features.sequencer import FeatureSequencer

__all__ = [
    "ActionCatalog",
    "ActionContext",
    "DEFAULT_ACTION_CATALOG",
    "FeatureSequencer",
    "FeatureSpec",
    "Narrate",
    "Privileged",
    "Shell",
    "build_catalog",
]
