"""Privilege-separated helper execution."""

from mcp_env_provisioner.privileged.executor import PrivilegedExecutor
from mcp_env_provisioner.privileged.invocation import (
    DirectInvocation,
    EscalatedInvocation,
    invocation_from_settings,
)

__all__ = [
    "DirectInvocation",
    "EscalatedInvocation",
    "PrivilegedExecutor",
    "invocation_from_settings",
]
