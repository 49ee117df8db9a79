"""How the privileged helper gets launched."""
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from mcp_env_provisioner.config import Settings


class Invocation(Protocol):
    def argv(self, helper: Path, mode: str, args: Sequence[str]) -> list[str]: ...


@dataclass(frozen=True)
class EscalatedInvocation:
    """Run the helper through sudo; the sudoers entry must allow it without a password"""
    command: tuple[str, ...] = ("sudo", "-n")

    def argv(self, helper: Path, mode: str, args: Sequence[str]) -> list[str]:
        return [*self.command, str(helper), mode, *args]


@dataclass(frozen=True)
class DirectInvocation:
    """Run the helper as the current user, for local development"""
    interpreter: str

    def argv(self, helper: Path, mode: str, args: Sequence[str]) -> list[str]:
        return [self.interpreter, str(helper), mode, *args]


def invocation_from_settings(settings: Settings) -> Invocation:
    if settings.is_development:
        return DirectInvocation(interpreter=settings.interpreter)
    return EscalatedInvocation()
