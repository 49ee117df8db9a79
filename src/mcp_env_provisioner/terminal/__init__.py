"""Terminal output handling."""

from mcp_env_provisioner.terminal.normalizer import normalize_output

__all__ = ["normalize_output"]
