"""Privileged helper execution."""
import asyncio
import signal
from pathlib import Path
from typing import Callable, Collection, Sequence

from mcp_env_provisioner.errors import ExecutionFailure
from mcp_env_provisioner.logging import get_logger
from mcp_env_provisioner.privileged.invocation import Invocation
from mcp_env_provisioner.types import CapturedOutput, ExecutionResult

logger = get_logger(__name__)

READ_CHUNK = 8192

OutputCallback = Callable[[str, bytes], None]


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"SIG{signum}"


async def _pump(
    stream: asyncio.StreamReader | None,
    sink: bytearray,
    name: str,
    on_output: OutputCallback | None,
) -> None:
    if stream is None:
        return
    while chunk := await stream.read(READ_CHUNK):
        sink.extend(chunk)
        if on_output is not None:
            on_output(name, chunk)


class PrivilegedExecutor:
    """Runs the privileged helper program and maps its exit to a result.

    ``benign_signals`` lists the signal names that count as a clean
    termination when the helper dies without an exit code. ``None`` treats
    every signal as benign.
    """

    def __init__(
        self,
        helper: Path,
        invocation: Invocation,
        benign_signals: Collection[str] | None = None,
    ):
        self.helper = Path(helper)
        self.invocation = invocation
        self.benign_signals = None if benign_signals is None else frozenset(benign_signals)

    def _argv(self, mode: str, args: Sequence[str]) -> list[str]:
        return self.invocation.argv(self.helper, mode, args)

    def _is_success(self, code: int | str) -> bool:
        if code == 0:
            return True
        if isinstance(code, str):
            return self.benign_signals is None or code in self.benign_signals
        return False

    async def spawn(self, mode: str, args: Sequence[str] = ()) -> asyncio.subprocess.Process:
        """Start the helper and hand back the live process."""
        argv = self._argv(mode, args)
        logger.debug("privileged_spawn", mode=mode, argv=argv)
        return await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

    async def run(
        self,
        mode: str,
        args: Sequence[str] = (),
        on_output: OutputCallback | None = None,
    ) -> ExecutionResult:
        """Run the helper to completion.

        Output is accumulated as it arrives; ``on_output`` sees each chunk
        tagged ``"stdout"`` or ``"stderr"``.

        Raises:
            ExecutionFailure: on a nonzero exit, a non-benign signal or a
                failure to start the helper at all
        """
        label = " ".join([mode, *args])
        captured = CapturedOutput()
        try:
            process = await self.spawn(mode, args)
        except (OSError, ValueError) as e:
            captured.stderr.extend(f"{e}\n".encode())
            result = ExecutionResult(-1, bytes(captured.stdout), bytes(captured.stderr))
            logger.error("privileged_spawn_failed", mode=mode, error=str(e))
            raise ExecutionFailure(label, result) from e

        await asyncio.gather(
            _pump(process.stdout, captured.stdout, "stdout", on_output),
            _pump(process.stderr, captured.stderr, "stderr", on_output),
        )
        returncode = await process.wait()
        code: int | str = _signal_name(-returncode) if returncode < 0 else returncode
        result = ExecutionResult(code, bytes(captured.stdout), bytes(captured.stderr))

        logger.debug("privileged_complete", mode=mode, code=code)
        if not self._is_success(code):
            logger.error(
                "privileged_failed",
                mode=mode,
                code=code,
                stderr=result.stderr.decode(errors="replace"),
            )
            raise ExecutionFailure(label, result)
        return result
