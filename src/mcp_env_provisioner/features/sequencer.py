"""Runs a feature's ordered actions through the supplied collaborators."""
from mcp_env_provisioner.errors import ProvisionError, UnresolvedVersion
from mcp_env_provisioner.features.actions import (
    Action,
    ActionCatalog,
    ActionContext,
    FeatureSpec,
    Narrate,
    Privileged,
    Shell,
    render,
)
from mcp_env_provisioner.logging import get_logger
from mcp_env_provisioner.privileged.executor import PrivilegedExecutor
from mcp_env_provisioner.terminal import normalize_output
from mcp_env_provisioner.types import AuditWriter, CommandRunner, ResolvedVersion
from mcp_env_provisioner.versions import VersionCatalog

logger = get_logger(__name__)


class FeatureSequencer:
    """Turns one ``(key, value)`` request into runner and helper calls.

    Every action is awaited before the next one starts. A failure stops the
    sequence where it is; steps that already ran are left in place, which is
    safe because catalog steps are written to be re-run.
    """

    def __init__(self, catalog: VersionCatalog, executor: PrivilegedExecutor | None = None):
        self.catalog = catalog
        self.executor = executor

    def _resolve(self, spec: FeatureSpec, value: str) -> ResolvedVersion | None:
        if spec.ecosystem is None:
            return None
        resolved = self.catalog.resolve(spec.ecosystem, value)
        if spec.require_binary and resolved.binary_url is None:
            raise UnresolvedVersion(
                spec.ecosystem, value or "latest", "no prebuilt binary for this release"
            )
        return resolved

    async def _run(
        self,
        action: Action,
        ctx: ActionContext,
        runner: CommandRunner,
        audit: AuditWriter | None,
    ) -> None:
        match action:
            case Narrate(message=message):
                if audit is not None:
                    await audit.write(normalize_output(f"$> {render(message, ctx)}\n"))
            case Shell(command=command, log=log):
                await runner(render(command, ctx), log)
            case Privileged(mode=mode):
                result = await self.executor.run(mode, action.render_args(ctx))
                if audit is not None and result.stdout:
                    await audit.write(normalize_output(result.stdout))

    async def apply(
        self,
        key: str,
        value: str,
        action_catalog: ActionCatalog,
        runner: CommandRunner,
        audit: AuditWriter | None = None,
        username: str = "",
    ) -> str | None:
        """Bring feature ``key`` to the desired ``value``.

        Returns the feature's significant argument (the normalized version
        or channel it was set to), ``"off"`` when it was removed, or ``None``
        for an unknown key.

        Raises:
            UnresolvedVersion: the version could not be resolved; nothing ran
            ProvisionError: a privileged step was selected with no executor
            ExecutionFailure: a step exited unexpectedly
        """
        spec = action_catalog.get(key)
        if spec is None:
            logger.info("feature_unknown", key=key, value=value)
            return None
        if not spec.accepts(value):
            logger.info("feature_value_ignored", key=key, value=value)
            return None

        disabling = value == "off"
        resolved = None if disabling else self._resolve(spec, value)
        argument = value if disabling else (spec.argument(value) if spec.argument else None)
        ctx = ActionContext(
            key=key,
            value=value,
            username=username,
            argument=argument,
            resolved=resolved,
        )

        actions = [
            a for a in (spec.disable if disabling else spec.enable)
            if a.when is None or a.when(ctx)
        ]
        if self.executor is None and any(isinstance(a, Privileged) for a in actions):
            raise ProvisionError(
                f"Feature {spec.name} needs the privileged helper, which is not configured",
                details={"key": key},
            )

        logger.info(
            "feature_apply",
            feature=spec.name,
            value=value,
            version=ctx.version or None,
            steps=len(actions),
        )
        for action in actions:
            await self._run(action, ctx, runner, audit)
        return argument
