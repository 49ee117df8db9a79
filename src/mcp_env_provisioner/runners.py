"""Local command runner and audit log."""
import asyncio
import os
import shlex
import tempfile
from pathlib import Path
from typing import Mapping

from fuuid import b58_fuuid

from mcp_env_provisioner.errors import ExecutionFailure
from mcp_env_provisioner.logging import get_logger
from mcp_env_provisioner.terminal import normalize_output
from mcp_env_provisioner.types import AuditWriter, ExecutionResult

logger = get_logger(__name__)

DEFAULT_SHELL = "/bin/bash"
READ_CHUNK = 8192


class AuditLog:
    """Append-only log of narration and command output.

    Keeps everything in memory and, when ``path`` is given, appends to that
    file as well.
    """

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else None
        self._parts: list[str] = []

    async def write(self, text: str) -> None:
        if not text:
            return
        self._parts.append(text)
        if self.path is not None:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(text)

    @property
    def text(self) -> str:
        return "".join(self._parts)


def combined_output(stdout: bytes, stderr: bytes) -> list[bytes]:
    """Stdout then stderr, kept on separate lines."""
    if stdout and stderr and not stdout.endswith(b"\n"):
        return [stdout, b"\n", stderr]
    return [stdout, stderr]


class LocalShellRunner:
    """Runs provisioning commands on this machine in one shell session.

    Commands share a single long-lived shell started in ``home``, so the
    working directory, variables and directory stack carry over from one
    command to the next, as they would over a remote login. A command that
    exits the shell ends the session; the next command starts a new one.

    Use as an async context manager, or call :meth:`close` when done.
    """

    def __init__(
        self,
        audit: AuditWriter,
        home: Path | None = None,
        shell_env: Mapping[str, str] | None = None,
        shell: str = DEFAULT_SHELL,
    ):
        self.audit = audit
        self.home = Path(home) if home is not None else Path.home()
        self.shell_env = dict(shell_env or {})
        self.shell = shell
        self._process: asyncio.subprocess.Process | None = None
        self._workdir: tempfile.TemporaryDirectory | None = None
        self._marker = f"__provisioner_done_{b58_fuuid()}__".encode()

    @property
    def _stderr_path(self) -> Path:
        return Path(self._workdir.name) / "stderr"

    async def _session(self) -> asyncio.subprocess.Process:
        if self._process is not None and self._process.returncode is None:
            return self._process

        if self._workdir is None:
            self._workdir = tempfile.TemporaryDirectory(prefix="provisioner-")
        cmd_env = {**os.environ, "HOME": str(self.home), **self.shell_env}
        logger.debug("shell_session_start", shell=self.shell, home=str(self.home))

        with self._stderr_path.open("ab") as stderr:
            self._process = await asyncio.create_subprocess_exec(
                self.shell,
                cwd=self.home,
                env=cmd_env,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=stderr,
            )
        return self._process

    async def _execute(self, command: str) -> ExecutionResult:
        process = await self._session()
        stderr_path = self._stderr_path
        stderr_path.write_bytes(b"")

        # Commands never read the session's stdin, which carries the protocol
        script = (
            f"{{\n{command}\n}} </dev/null 2>>{shlex.quote(str(stderr_path))}\n"
            f"printf '%s%s\\n' {shlex.quote(self._marker.decode())} \"$?\"\n"
        )
        process.stdin.write(script.encode())
        await process.stdin.drain()

        buffer = bytearray()
        while True:
            start = buffer.find(self._marker)
            end = buffer.find(b"\n", start) if start != -1 else -1
            if end != -1:
                code: int = int(buffer[start + len(self._marker):end])
                stdout = bytes(buffer[:start])
                break
            chunk = await process.stdout.read(READ_CHUNK)
            if not chunk:
                code = await process.wait()
                stdout = bytes(buffer)
                logger.debug("shell_session_exit", returncode=code)
                break
            buffer.extend(chunk)

        return ExecutionResult(code, stdout, stderr_path.read_bytes())

    async def __call__(self, command: str, log: bool = True) -> str | None:
        """Run ``command`` and return its decoded stdout.

        Raises:
            ExecutionFailure: the command exited nonzero
        """
        logger.debug("shell_cmd_exec", cmd=command)
        result = await self._execute(command)
        logger.debug("shell_cmd_complete", cmd=command, returncode=result.code)

        if log:
            await self.audit.write(normalize_output(f"$> {command}\n"))
            await self.audit.write(normalize_output(combined_output(result.stdout, result.stderr)))
            if result.code != 0:
                await self.audit.write(normalize_output(f"Exit status: {result.code}\n"))

        if result.code != 0:
            raise ExecutionFailure(command, result, logged=log)
        return result.stdout.decode(errors="replace")

    async def close(self) -> None:
        process, self._process = self._process, None
        if process is not None and process.returncode is None:
            process.stdin.close()
            await process.wait()
            logger.debug("shell_session_closed", returncode=process.returncode)
        if self._workdir is not None:
            self._workdir.cleanup()
            self._workdir = None

    async def __aenter__(self) -> "LocalShellRunner":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
