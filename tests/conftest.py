import sys
from pathlib import Path
from typing import Dict, List, Tuple

import aiohttp
import pytest

from mcp_env_provisioner.config import Settings
from mcp_env_provisioner.errors import ExecutionFailure
from mcp_env_provisioner.runners import AuditLog
from mcp_env_provisioner.types import ExecutionResult
from mcp_env_provisioner.versions import ReleaseCatalog, VersionCatalog

PYTHON_311_URL = (
    "https://github.com/indygreg/python-build-standalone/releases/download/20230507/"
    "cpython-3.11.7+20230507-x86_64_v3-unknown-linux-gnu-pgo+lto-full.tar.zst"
)

HELPER_SCRIPT = """\
import os
import signal
import sys

mode, args = sys.argv[1], sys.argv[2:]
if mode == "echo":
    print(" ".join(args))
elif mode == "fail":
    print("half done", flush=True)
    sys.stderr.write("bad thing happened\\n")
    sys.exit(1)
elif mode == "signal":
    print("partial", flush=True)
    os.kill(os.getpid(), getattr(signal, args[0] if args else "SIGTERM"))
elif mode == "docker":
    print(f"docker {args[0]}d for {args[1]}")
else:
    sys.stderr.write(f"unknown mode {mode}\\n")
    sys.exit(2)
"""


class FakeResponse:
    """Stand-in for an aiohttp response context"""

    def __init__(self, text: str, status: int = 200):
        self._text = text
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientConnectionError(f"HTTP {self.status}")

    async def text(self) -> str:
        return self._text


class FakeSession:
    """Serves canned bodies by URL; URLs mapped to an exception raise it"""

    def __init__(self, pages: Dict[str, object]):
        self.pages = pages
        self.requested: List[str] = []

    def get(self, url: str, **kwargs):
        self.requested.append(url)
        page = self.pages.get(url)
        if page is None:
            return FakeResponse("", status=404)
        if isinstance(page, Exception):
            raise page
        return FakeResponse(page)


class RecordingRunner:
    """Command runner that records calls and can fail on a marker"""

    def __init__(self, fail_on: str | None = None):
        self.calls: List[Tuple[str, bool]] = []
        self.fail_on = fail_on

    @property
    def commands(self) -> List[str]:
        return [command for command, _ in self.calls]

    async def __call__(self, command: str, log: bool = True) -> str:
        self.calls.append((command, log))
        if self.fail_on and self.fail_on in command:
            raise ExecutionFailure(command, ExecutionResult(1, b"", b"boom\n"))
        return ""


class RecordingExecutor:
    """Privileged executor double that echoes its call"""

    def __init__(self):
        self.calls: List[Tuple[str, List[str]]] = []

    async def run(self, mode: str, args=(), on_output=None) -> ExecutionResult:
        self.calls.append((mode, list(args)))
        return ExecutionResult(0, f"{mode} {' '.join(args)}\n".encode())


@pytest.fixture
def helper_script(tmp_path: Path) -> Path:
    path = tmp_path / "sudoutil.py"
    path.write_text(HELPER_SCRIPT)
    return path


@pytest.fixture
def interpreter() -> str:
    return sys.executable


@pytest.fixture
def snapshot() -> ReleaseCatalog:
    return (
        ReleaseCatalog()
        .with_releases(
            "python",
            ["3.10.13", "3.12.1", "3.11.6", "3.11.7"],
            {"3.11.7": PYTHON_311_URL},
        )
        .with_releases("ruby", ["3.2.2", "3.3.0", "3.1.4"])
        .with_releases("java", ["17", "21"])
    )


@pytest.fixture
def version_catalog(snapshot: ReleaseCatalog) -> VersionCatalog:
    return VersionCatalog(sources={}, snapshot=snapshot)


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def audit() -> AuditLog:
    return AuditLog()


@pytest.fixture
def settings(tmp_path: Path, helper_script: Path, interpreter: str) -> Settings:
    return Settings(
        environment="development",
        helper_path=helper_script,
        lock_dir=tmp_path / "locks",
        lock_retries=3,
        refresh_interval=60,
        home=tmp_path,
        log_level="INFO",
        interpreter=interpreter,
    )
