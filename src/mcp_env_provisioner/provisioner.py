"""Request orchestration: one account, many features, one lock."""
from typing import Iterable

import structlog
from fuuid import b58_fuuid

from mcp_env_provisioner.errors import ExecutionFailure, ProvisionError, log_error
from mcp_env_provisioner.features.actions import ActionCatalog
from mcp_env_provisioner.features.sequencer import FeatureSequencer
from mcp_env_provisioner.locks import ResourceLock
from mcp_env_provisioner.logging import get_logger
from mcp_env_provisioner.terminal import normalize_output
from mcp_env_provisioner.types import AuditWriter, CommandRunner, FeatureRequest

logger = get_logger(__name__)


class Provisioner:
    def __init__(
        self,
        lock: ResourceLock,
        sequencer: FeatureSequencer,
        action_catalog: ActionCatalog,
    ):
        self.lock = lock
        self.sequencer = sequencer
        self.action_catalog = action_catalog

    async def provision(
        self,
        account: str,
        requests: Iterable[FeatureRequest],
        runner: CommandRunner,
        audit: AuditWriter,
    ) -> dict[str, str | None]:
        """Apply ``requests`` to ``account`` in order, holding its lock throughout.

        Returns the significant argument of each applied feature by key.
        """
        run_id = b58_fuuid()
        arguments: dict[str, str | None] = {}
        with structlog.contextvars.bound_contextvars(run_id=run_id, account=account):
            logger.info("provision_start")
            try:
                async with self.lock.hold(account):
                    for request in requests:
                        arguments[request.key] = await self.sequencer.apply(
                            request.key,
                            request.value,
                            self.action_catalog,
                            runner,
                            audit,
                            username=account,
                        )
            except ProvisionError as e:
                await audit.write(f"{e}\n")
                if isinstance(e, ExecutionFailure) and not e.logged:
                    await audit.write(normalize_output(e.output()))
                log_error(e, {"run_id": run_id, "account": account})
                raise
            logger.info("provision_complete", features=list(arguments))
        return arguments
