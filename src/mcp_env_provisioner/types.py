"""Core type definitions"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Protocol

SENTINEL_SUFFIX = ":latest"


@dataclass(frozen=True)
class ResolvedVersion:
    """Concrete release chosen for an abstract version request"""
    version: str
    binary_url: str | None = None

    @property
    def name(self) -> str:
        """Version without the best-effort sentinel tag."""
        return self.version.removesuffix(SENTINEL_SUFFIX)

    @property
    def is_sentinel(self) -> bool:
        return self.version.endswith(SENTINEL_SUFFIX)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of a child process.

    ``code`` is the integer exit status, or the signal name when the
    process was killed without one.
    """
    code: int | str
    stdout: bytes = b""
    stderr: bytes = b""


@dataclass(frozen=True)
class LockHandle:
    """Exclusive claim on one resource key"""
    key: str
    path: Path
    acquired_at: datetime


@dataclass(frozen=True)
class FeatureRequest:
    """Desired state for one feature; ``off`` removes it"""
    key: str
    value: str = ""

    @property
    def is_off(self) -> bool:
        return self.value == "off"


@dataclass
class CapturedOutput:
    """Streams accumulated while a process runs"""
    stdout: bytearray = field(default_factory=bytearray)
    stderr: bytearray = field(default_factory=bytearray)


class CommandRunner(Protocol):
    """Runs one shell command in the target environment."""

    def __call__(self, command: str, log: bool = True) -> Awaitable[str | None]: ...


class AuditWriter(Protocol):
    """Receives narration lines and normalized command output."""

    def write(self, text: str) -> Awaitable[None]: ...
