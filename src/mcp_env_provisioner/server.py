"""MCP server implementation."""
import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, List

import mcp.types as types
from mcp.server import stdio
from mcp.server.lowlevel import Server
from mcp.server.models import InitializationOptions

from mcp_env_provisioner import __version__
from mcp_env_provisioner.config import Settings
from mcp_env_provisioner.errors import ExecutionFailure, ProvisionError, log_error
from mcp_env_provisioner.features import DEFAULT_ACTION_CATALOG, FeatureSequencer
from mcp_env_provisioner.locks import ResourceLock
from mcp_env_provisioner.logging import configure_logging, get_logger
from mcp_env_provisioner.privileged import PrivilegedExecutor, invocation_from_settings
from mcp_env_provisioner.provisioner import Provisioner
from mcp_env_provisioner.runners import AuditLog, LocalShellRunner
from mcp_env_provisioner.types import FeatureRequest
from mcp_env_provisioner.versions import CatalogRefresher, VersionCatalog

logger = get_logger("server")

tools = [
    types.Tool(
        name="provision_supported_versions",
        description="List the known releases for every supported runtime",
        inputSchema={"type": "object", "properties": {}},
    ),
    types.Tool(
        name="provision_resolve_version",
        description="Resolve a version request such as 'lts', '3.11' or '' to a concrete release",
        inputSchema={
            "type": "object",
            "properties": {
                "ecosystem": {"type": "string", "description": "Runtime name, e.g. python"},
                "request": {"type": "string", "description": "Version request"},
            },
            "required": ["ecosystem"],
        },
    ),
    types.Tool(
        name="provision_apply",
        description="Install, switch or remove runtime features for an account",
        inputSchema={
            "type": "object",
            "properties": {
                "account": {"type": "string", "description": "Account to provision"},
                "features": {
                    "type": "array",
                    "description": "Desired feature states, applied in order",
                    "items": {
                        "type": "object",
                        "properties": {
                            "key": {"type": "string"},
                            "value": {"type": "string"},
                        },
                        "required": ["key"],
                    },
                },
            },
            "required": ["account", "features"],
        },
    ),
]


@dataclass
class ServerState:
    settings: Settings
    catalog: VersionCatalog
    provisioner: Provisioner


def build_state(settings: Settings, catalog: VersionCatalog | None = None) -> ServerState:
    catalog = catalog or VersionCatalog()
    executor = PrivilegedExecutor(settings.helper_path, invocation_from_settings(settings))
    provisioner = Provisioner(
        ResourceLock(settings.lock_dir, retries=settings.lock_retries),
        FeatureSequencer(catalog, executor),
        DEFAULT_ACTION_CATALOG,
    )
    return ServerState(settings=settings, catalog=catalog, provisioner=provisioner)


async def _apply(state: ServerState, arguments: Dict[str, Any]) -> Dict[str, Any]:
    audit = AuditLog()
    requests = [
        FeatureRequest(key=str(f["key"]), value=str(f.get("value") or ""))
        for f in arguments["features"]
    ]
    try:
        async with LocalShellRunner(audit, home=state.settings.home) as runner:
            applied = await state.provisioner.provision(
                arguments["account"], requests, runner, audit
            )
    except ProvisionError as e:
        error: Dict[str, Any] = {"success": False, "error": str(e), "log": audit.text}
        if isinstance(e, ExecutionFailure):
            error["output"] = e.output()
        return error
    return {"success": True, "data": {"arguments": applied, "log": audit.text}}


async def handle_tool(state: ServerState, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Run one tool call and return its JSON-ready response."""
    if name == "provision_supported_versions":
        return {"success": True, "data": state.catalog.supported_versions()}

    elif name == "provision_resolve_version":
        resolved = state.catalog.resolve(arguments["ecosystem"], arguments.get("request", ""))
        return {
            "success": True,
            "data": {"version": resolved.version, "binary_url": resolved.binary_url},
        }

    elif name == "provision_apply":
        return await _apply(state, arguments)

    return {"success": False, "error": f"Unknown tool: {name}"}


async def init_server(state: ServerState) -> Server:
    logger.info("registered_tools", tools=[t.name for t in tools])

    server = Server("mcp-env-provisioner")

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        logger.debug("tools_requested")
        return tools

    @server.call_tool()
    async def call_tool(
        name: str, arguments: Dict[str, Any]
    ) -> list[types.TextContent | types.ImageContent | types.EmbeddedResource]:
        logger.debug("tool_called", tool=name, arguments=arguments)
        try:
            result = await handle_tool(state, name, arguments or {})
        except ProvisionError as e:
            log_error(e, {"tool": name})
            result = {"success": False, "error": str(e)}
        except KeyError as e:
            result = {"success": False, "error": f"Missing argument: {e.args[0]}"}
        return [types.TextContent(type="text", text=json.dumps(result))]

    return server


async def serve() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info("server_starting", environment=settings.environment)

    state = build_state(settings)
    server = await init_server(state)
    async with CatalogRefresher(state.catalog, settings.refresh_interval):
        async with stdio.stdio_server() as (read_stream, write_stream):
            init_options = InitializationOptions(
                server_name="mcp-env-provisioner",
                server_version=__version__,
                capabilities=types.ServerCapabilities(
                    tools=types.ToolsCapability(listChanged=False),
                    logging=types.LoggingCapability(),
                ),
            )
            await server.run(read_stream, write_stream, init_options)


def main() -> None:
    """Run the MCP server."""
    asyncio.run(serve())
