"""Error handling for the environment provisioner."""
from typing import Any, Dict, Optional

from mcp.types import ErrorData, INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST

from mcp_env_provisioner.logging import get_logger
from mcp_env_provisioner.types import ExecutionResult

logger = get_logger(__name__)


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """Log an error with context."""
    error_info: Dict[str, Any] = {
        "error_type": error.__class__.__name__,
        "error_message": str(error),
    }
    if context:
        error_info["context"] = context
    if isinstance(error, ProvisionError):
        error_info["code"] = error.code
        error_info["details"] = error.details

    logger.error("provision_error", **error_info)


class ProvisionError(Exception):
    """Base error class for the provisioner."""

    def __init__(
        self,
        message: str,
        code: int = INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_error_data(self) -> ErrorData:
        """Convert to ErrorData format."""
        return ErrorData(code=self.code, message=str(self), data=self.details)


class CatalogUnavailable(ProvisionError):
    """Release index could not be fetched or parsed."""

    def __init__(self, ecosystem: str, reason: str):
        super().__init__(
            f"Release catalog for {ecosystem} unavailable: {reason}",
            code=INTERNAL_ERROR,
            details={"ecosystem": ecosystem, "reason": reason},
        )
        self.ecosystem = ecosystem


class UnresolvedVersion(ProvisionError):
    """Requested version or branch has no usable release."""

    def __init__(self, ecosystem: str, request: str, reason: str = "no matching release"):
        super().__init__(
            f"No {ecosystem} release for '{request}' is available to install: {reason}",
            code=INVALID_PARAMS,
            details={"ecosystem": ecosystem, "request": request, "reason": reason},
        )
        self.ecosystem = ecosystem
        self.request = request


class LockTimeout(ProvisionError):
    """Resource stayed locked past the retry budget."""

    def __init__(self, key: str, attempts: int):
        super().__init__(
            f"Resource {key} is busy, gave up after {attempts} attempts",
            code=INVALID_REQUEST,
            details={"key": key, "attempts": attempts},
        )
        self.key = key
        self.attempts = attempts


class ExecutionFailure(ProvisionError):
    """Command or privileged helper exited unexpectedly.

    Carries the full :class:`ExecutionResult`, including any output captured
    before the failure, so the audit log can explain what went wrong.
    ``logged`` is set when that output has already been written to the audit
    log.
    """

    def __init__(self, command: str, result: ExecutionResult, logged: bool = False):
        super().__init__(
            f"Command '{command}' failed with code {result.code}",
            code=INTERNAL_ERROR,
            details={
                "command": command,
                "exit_code": result.code,
                "stdout": result.stdout.decode(errors="replace"),
                "stderr": result.stderr.decode(errors="replace"),
            },
        )
        self.command = command
        self.result = result
        self.logged = logged

    def output(self) -> str:
        """Captured stdout followed by stderr, on separate lines."""
        stdout, stderr = self.details["stdout"], self.details["stderr"]
        if stdout and stderr and not stdout.endswith("\n"):
            return f"{stdout}\n{stderr}"
        return stdout + stderr
