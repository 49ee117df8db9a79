import json

import pytest
from mcp.server.lowlevel import Server

from mcp_env_provisioner.features import FeatureSequencer, FeatureSpec, Shell, build_catalog
from mcp_env_provisioner.locks import ResourceLock
from mcp_env_provisioner.provisioner import Provisioner
from mcp_env_provisioner.server import ServerState, build_state, handle_tool, init_server, tools


@pytest.fixture
def state(settings, version_catalog):
    return build_state(settings, version_catalog)


@pytest.fixture
def shell_state(settings, version_catalog):
    catalog = build_catalog([
        FeatureSpec(name="greet", enable=(Shell("echo hello"),), disable=(Shell("exit 4"),)),
    ])
    provisioner = Provisioner(
        ResourceLock(settings.lock_dir, retries=0),
        FeatureSequencer(version_catalog),
        catalog,
    )
    return ServerState(settings=settings, catalog=version_catalog, provisioner=provisioner)


def test_tool_names():
    assert [t.name for t in tools] == [
        "provision_supported_versions",
        "provision_resolve_version",
        "provision_apply",
    ]


@pytest.mark.asyncio
async def test_supported_versions(state):
    result = await handle_tool(state, "provision_supported_versions", {})
    assert result["success"] is True
    assert result["data"]["python"][0] == "3.12.1"
    assert result["data"]["java"] == ["21", "17"]
    json.dumps(result)


@pytest.mark.asyncio
async def test_resolve_version(state):
    result = await handle_tool(
        state, "provision_resolve_version", {"ecosystem": "python", "request": "lts"}
    )
    assert result == {
        "success": True,
        "data": {"version": "3.11.7", "binary_url": state.catalog.snapshot.binary_for("python", "3.11.7")},
    }


@pytest.mark.asyncio
async def test_unknown_tool(state):
    result = await handle_tool(state, "provision_nothing", {})
    assert result == {"success": False, "error": "Unknown tool: provision_nothing"}


@pytest.mark.asyncio
async def test_apply_unknown_feature_is_noop(state):
    result = await handle_tool(
        state, "provision_apply", {"account": "alice", "features": [{"key": "cobol"}]}
    )
    assert result == {"success": True, "data": {"arguments": {"cobol": None}, "log": ""}}


@pytest.mark.asyncio
async def test_apply_runs_shell_steps(shell_state):
    result = await handle_tool(
        shell_state, "provision_apply", {"account": "alice", "features": [{"key": "greet"}]}
    )
    assert result["success"] is True
    assert "hello" in result["data"]["log"]


@pytest.mark.asyncio
async def test_apply_failure_returns_log(shell_state):
    result = await handle_tool(
        shell_state,
        "provision_apply",
        {"account": "alice", "features": [{"key": "greet", "value": "off"}]},
    )
    assert result["success"] is False
    assert "exit 4" in result["error"]
    assert "Exit status: 4" in result["log"]


@pytest.mark.asyncio
async def test_init_server(state):
    assert isinstance(await init_server(state), Server)
